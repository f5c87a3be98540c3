"""Exception hierarchy for Moneybook.

Every error raised by the services derives from MoneybookError, so callers
can catch everything at once or pick out a specific kind:

- ValidationError: malformed input or a broken business rule
  (max depth, type mismatch, duplicate name, circular reference).
- NotFoundError: the referenced category or goal is not in scope.
- ConflictError: the operation is blocked by dependent records.
- StorageError: the database itself failed.
"""


class MoneybookError(Exception):
    """Base exception for all Moneybook errors."""


class ValidationError(MoneybookError):
    """Invalid input or business-rule violation."""


class NotFoundError(MoneybookError):
    """Referenced record does not exist in the organization."""


class ConflictError(MoneybookError):
    """Operation blocked by existing children or references."""


class StorageError(MoneybookError):
    """Database connectivity, constraint or query failure."""
