"""Tests for the schema assemblers."""

import asyncio

import pytest

from kusto_schema.database.assemblers import (
    _map_in_order,
    load_entity_groups,
    load_external_tables,
    load_functions,
    load_materialized_views,
    load_tables,
)
from kusto_schema.database.commands import CommandExecutor, Failed, NotFound, Success
from kusto_schema.database.records import (
    ShowDatabaseSchemaResult,
    ShowExternalTableSchemaResult,
    ShowExternalTablesResult,
    ShowFunctionsResult,
)
from .fixtures import MockKustoClient, schema_row


@pytest.fixture
def executor():
    return CommandExecutor()


class TestLoadTables:
    """Test assembling tables from `.show database schema` rows."""

    @pytest.mark.asyncio
    async def test_tables_from_mock_cluster(self, executor, mock_cluster):
        result = await load_tables(executor, mock_cluster, "Samples")

        assert isinstance(result, Success)
        tables = result.value
        assert [t.name for t in tables] == ["StormEvents", "PopulationData"]

        storm = tables[0]
        assert storm.description == "US storm events"
        assert [(c.name, c.type) for c in storm.columns] == [
            ("StartTime", "datetime"),
            ("State", "string"),
            ("DamageProperty", "int"),
        ]
        assert storm.get_column("State").description == "State name"
        assert tables[1].description is None
        assert mock_cluster.commands == [".show database Samples schema"]

    @pytest.mark.asyncio
    async def test_grouping_ignores_row_order(self, executor):
        """Test interleaved rows still group into one table per name, columns in row order."""
        client = MockKustoClient()
        client.add_command(".show database Db schema", ShowDatabaseSchemaResult, [
            schema_row("A", "x", "System.String", database="Db"),
            schema_row("B", "y", "System.Int64", database="Db"),
            schema_row("A", doc="table A", database="Db"),
            schema_row("A", "z", "System.Boolean", database="Db"),
        ])

        result = await load_tables(executor, client, "Db")

        tables = result.value
        assert [t.name for t in tables] == ["A", "B"]
        assert [c.name for c in tables[0].columns] == ["x", "z"]
        assert tables[0].description == "table A"
        assert tables[0].schema == "(x:string, z:bool)"
        assert tables[1].columns[0].type == "long"

    @pytest.mark.asyncio
    async def test_unknown_column_type_is_dynamic(self, executor):
        client = MockKustoClient()
        client.add_command(".show database Db schema", ShowDatabaseSchemaResult, [
            schema_row("A", "x", "System.Something", database="Db"),
        ])

        result = await load_tables(executor, client, "Db")

        assert result.value[0].columns[0].type == "dynamic"

    @pytest.mark.asyncio
    async def test_no_rows_is_not_found(self, executor):
        client = MockKustoClient()
        client.add_command(".show database Gone schema", ShowDatabaseSchemaResult, [])

        result = await load_tables(executor, client, "Gone")

        assert isinstance(result, NotFound)

    @pytest.mark.asyncio
    async def test_database_row_only_is_empty_success(self, executor):
        """Test an existing database without tables yields no tables, not NotFound."""
        client = MockKustoClient()
        client.add_command(".show database Empty schema", ShowDatabaseSchemaResult, [
            schema_row("", database="Empty"),
        ])

        result = await load_tables(executor, client, "Empty")

        assert isinstance(result, Success)
        assert result.value == []

    @pytest.mark.asyncio
    async def test_transport_failure(self, executor):
        client = MockKustoClient()
        client.add_error(".show database Db schema", ConnectionError("reset"))

        result = await load_tables(executor, client, "Db")

        assert isinstance(result, Failed)

    @pytest.mark.asyncio
    async def test_transport_failure_strict_raises(self, executor):
        client = MockKustoClient()
        client.add_error(".show database Db schema", ConnectionError("reset"))

        with pytest.raises(ConnectionError):
            await load_tables(executor, client, "Db", throw_on_error=True)


class TestLoadExternalTables:
    """Test the two-step external table assembler."""

    @pytest.mark.asyncio
    async def test_tables_without_schema_are_omitted(self, executor, mock_cluster):
        result = await load_external_tables(executor, mock_cluster, "Samples")

        tables = result.value
        assert [t.name for t in tables] == ["ExternalLogs"]
        assert tables[0].schema == "(Timestamp:datetime,Message:string)"
        assert [c.name for c in tables[0].columns] == ["Timestamp", "Message"]
        assert tables[0].description == "Archived logs"
        assert mock_cluster.commands == [
            ".show external tables",
            ".show external table ExternalLogs cslschema",
            ".show external table Orphan cslschema",
        ]

    @pytest.mark.asyncio
    async def test_failed_follow_up_is_omitted(self, executor):
        client = MockKustoClient()
        client.add_command(".show external tables", ShowExternalTablesResult, [
            {"TableName": "Broken"},
            {"TableName": "Fine"},
        ])
        client.add_error(".show external table Broken cslschema", ConnectionError("reset"))
        client.add_command(".show external table Fine cslschema", ShowExternalTableSchemaResult, [
            {"Schema": "a:string"},
        ])

        result = await load_external_tables(executor, client, "Db")

        assert [t.name for t in result.value] == ["Fine"]

    @pytest.mark.asyncio
    async def test_failed_follow_up_strict_raises(self, executor):
        client = MockKustoClient()
        client.add_command(".show external tables", ShowExternalTablesResult, [{"TableName": "Broken"}])
        client.add_error(".show external table Broken cslschema", ConnectionError("reset"))

        with pytest.raises(ConnectionError):
            await load_external_tables(executor, client, "Db", throw_on_error=True)

    @pytest.mark.asyncio
    async def test_failed_listing(self, executor):
        client = MockKustoClient()
        client.add_error(".show external tables", ConnectionError("reset"))

        result = await load_external_tables(executor, client, "Db")

        assert isinstance(result, Failed)

    @pytest.mark.asyncio
    async def test_empty_listing(self, executor):
        client = MockKustoClient()
        client.add_command(".show external tables", ShowExternalTablesResult, [])

        result = await load_external_tables(executor, client, "Db")

        assert isinstance(result, Success)
        assert result.value == []

    @pytest.mark.asyncio
    async def test_concurrent_follow_ups_keep_listing_order(self, executor):
        """Test bounded fan-out returns tables in listing order."""
        names = [f"T{i}" for i in range(6)]
        client = MockKustoClient()
        client.add_command(".show external tables", ShowExternalTablesResult, [{"TableName": n} for n in names])
        for n in names:
            client.add_command(f".show external table {n} cslschema", ShowExternalTableSchemaResult, [
                {"Schema": f"{n.lower()}:string"},
            ])

        result = await load_external_tables(executor, client, "Db", concurrency=3)

        assert [t.name for t in result.value] == names


class TestLoadMaterializedViews:
    """Test the two-step materialized view assembler."""

    @pytest.mark.asyncio
    async def test_views_carry_query_and_schema(self, executor, mock_cluster):
        result = await load_materialized_views(executor, mock_cluster, "Samples")

        views = result.value
        assert len(views) == 1
        assert views[0].name == "DailyDamage"
        assert views[0].schema == "(StartTime:datetime,sum_DamageProperty:long)"
        assert views[0].query.startswith("StormEvents | summarize")
        assert views[0].description is None
        assert views[0].get_column("sum_DamageProperty").type == "long"


class TestLoadFunctions:
    """Test the function assembler."""

    @pytest.mark.asyncio
    async def test_functions(self, executor, mock_cluster):
        result = await load_functions(executor, mock_cluster, "Samples")

        functions = result.value
        assert [f.name for f in functions] == ["StormsIn", "Top"]
        assert functions[0].description == "Storms by state"
        assert functions[0].signature == "StormsIn(state:string)"

        top = functions[1]
        assert [(p.name, p.type, p.default) for p in top.parameter_symbols] == [
            ("T", "(*)", None),
            ("n", "long", "10"),
        ]
        assert top.parameter_symbols[0].is_tabular

    @pytest.mark.asyncio
    async def test_missing_parameters_default_to_empty_list(self, executor):
        client = MockKustoClient()
        client.add_command(".show functions", ShowFunctionsResult, [{"Name": "f", "Body": "{ 1 }"}])

        result = await load_functions(executor, client, "Db")

        assert result.value[0].parameters == "()"
        assert result.value[0].parameter_symbols == []

    @pytest.mark.asyncio
    async def test_failure_strict_raises(self, executor):
        client = MockKustoClient()
        client.add_error(".show functions", ConnectionError("reset"))

        assert isinstance(await load_functions(executor, client, "Db"), Failed)
        with pytest.raises(ConnectionError):
            await load_functions(executor, client, "Db", throw_on_error=True)


class TestLoadEntityGroups:
    """Test the entity group assembler."""

    @pytest.mark.asyncio
    async def test_entity_groups(self, executor, mock_cluster):
        result = await load_entity_groups(executor, mock_cluster, "Samples")

        groups = result.value
        assert len(groups) == 1
        assert groups[0].name == "AllSamples"
        assert groups[0].entities == [
            "cluster('help').database('Samples')",
            "cluster('help').database('Other')",
        ]


class TestMapInOrder:
    """Test ordered async mapping."""

    @pytest.mark.asyncio
    async def test_sequential(self):
        seen = []

        async def record(item):
            seen.append(item)
            return item * 2

        assert await _map_in_order(record, [1, 2, 3]) == [2, 4, 6]
        assert seen == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_bounded_concurrency(self):
        """Test no more than the limit run at once and results keep input order."""
        running = 0
        peak = 0

        async def work(item):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01 * (5 - item))
            running -= 1
            return item

        result = await _map_in_order(work, list(range(5)), concurrency=2)

        assert result == [0, 1, 2, 3, 4]
        assert peak == 2
