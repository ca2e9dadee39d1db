"""Exception hierarchy shared by the structure and replication engines."""


class MySQLSyncError(Exception):
    """Base exception for all mysql-sync errors."""

    pass


class DatabaseConnectionError(MySQLSyncError):
    """Raised when a database cannot be reached at startup."""

    pass


class CatalogQueryError(MySQLSyncError):
    """Raised when a catalog or data query fails."""

    pass


class TableNotFoundError(CatalogQueryError):
    """Raised when a table has no visible columns (missing or inaccessible)."""

    def __init__(self, table_name: str):
        super().__init__(f"Table '{table_name}' not found or has no columns")
        self.table_name = table_name


class DetectionError(MySQLSyncError):
    """Raised when change detection cannot decide whether a sync is needed."""

    pass


class SchemaRepairError(MySQLSyncError):
    """Raised when missing target columns cannot be added."""

    pass


class ReplicationError(MySQLSyncError):
    """Raised when a page still fails after every retry attempt."""

    pass


class CleanupError(MySQLSyncError):
    """Raised when drift cleanup fails. Replicated rows are kept."""

    pass


class ConfigValidationError(MySQLSyncError):
    """Raised when configuration is invalid."""

    def __init__(self, problems: list[str]):
        super().__init__("Invalid configuration: " + "; ".join(problems))
        self.problems = problems
