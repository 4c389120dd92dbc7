"""Merge engine errors."""


class MergeError(RuntimeError):
    """Base class for merge failures."""


class MergeRecordNotFound(MergeError, KeyError):
    """Raised when an undo targets an unknown merge record."""

    def __str__(self) -> str:
        return f"Merge record not found: {self.args[0] if self.args else ''}"


class EntityNotFound(MergeError, KeyError):
    """Raised when a merge references an entity that is not in the working set."""

    def __str__(self) -> str:
        return f"Entity not found: {self.args[0] if self.args else ''}"
