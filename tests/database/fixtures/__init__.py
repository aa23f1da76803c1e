"""Test fixtures package."""

from .mock_kusto import (
    FakeResponse,
    FakeResultTable,
    MockKustoClient,
    create_mock_cluster,
    records_response,
    schema_row,
)

__all__ = [
    "FakeResponse",
    "FakeResultTable",
    "MockKustoClient",
    "create_mock_cluster",
    "records_response",
    "schema_row",
]
