# group_archive/core/errors.py

"""Storage error taxonomy.

Only SchemaFatal is allowed to escape the persistence layer. The others are
raised inside it and turned into StoreResult values (or warnings) before they
reach a caller.
"""


class StorageError(Exception):
    """Base class for persistence failures."""


class SchemaFatal(StorageError):
    """A required table could not be created. Startup must abort."""


class SchemaDegraded(StorageError):
    """A column add or legacy repair failed. The old schema stays in use."""


class WriteFailed(StorageError):
    """A store operation could not write."""


class OperationTimeout(WriteFailed):
    """A store operation did not finish within the configured timeout."""


class ReadFailed(StorageError):
    """A lookup needed for change detection failed."""
