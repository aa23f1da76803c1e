"""Error types for Kusto schema discovery."""

from typing import Optional, Dict, Any


class KustoSchemaError(Exception):
    """Base exception for schema discovery errors."""

    def __init__(self, message: str, code: str = "KUSTO_SCHEMA_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to a dictionary for structured reporting."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConnectionResolutionError(KustoSchemaError):
    """A connection string or cluster identifier cannot be turned into an endpoint."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONNECTION_RESOLUTION_ERROR", details=details)


class CommandError(KustoSchemaError):
    """Error while issuing a management command or decoding its response."""

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        database: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        error_details["command"] = command
        error_details["database"] = database
        super().__init__(message, code="COMMAND_ERROR", details=error_details)
        self.command = command
        self.database = database


class RecordShapeError(CommandError):
    """A response table does not have the columns its record type expects.

    Raised when decoding a command response whose columns are missing one
    of the required fields, or when the record table itself is inconsistent.
    """

    def __init__(
        self,
        message: str,
        missing_columns: Optional[list] = None,
        command: Optional[str] = None,
        database: Optional[str] = None,
    ):
        super().__init__(
            message,
            command=command,
            database=database,
            details={"missing_columns": missing_columns or []},
        )
        self.code = "RECORD_SHAPE_ERROR"
        self.missing_columns = missing_columns or []


class CommandCancelledError(CommandError):
    """A command was aborted because its cancellation signal was set."""

    def __init__(self, command: Optional[str] = None, database: Optional[str] = None):
        super().__init__(
            f"Command cancelled: {command}",
            command=command,
            database=database,
        )
        self.code = "COMMAND_CANCELLED"


class LoaderClosedError(KustoSchemaError):
    """A symbol loader was used after it was closed."""

    def __init__(self, message: str = "Symbol loader has been closed"):
        super().__init__(message, code="LOADER_CLOSED")
