"""
Errors - Failure kinds raised and collected during a reconciliation pass.

Every fan-out level (object within resource, resource within controller,
controller within pass) collects its children's failures into an
AggregateError and keeps going.
"""

from typing import Iterator, List, Optional, Sequence


class InitializerError(Exception):
    """Base class for initializer controller errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ApiError(InitializerError):
    """Raised when the API server answers with a non-success status."""

    def __init__(self, status: int, message: str):
        self.status = status
        super().__init__(f"API server returned HTTP {status}: {message}")


class HookCallError(InitializerError):
    """Raised when an init hook answers with an error or an unusable body."""


class ListError(InitializerError):
    """Raised when objects or configurations cannot be enumerated."""


class DecodeError(InitializerError):
    """Raised when an InitializerController record cannot be decoded."""

    def __init__(self, name: str, reason: str):
        self.name = name
        super().__init__(f"can't decode InitializerController {name}: {reason}")


class _ObjectError(InitializerError):
    verb = ""

    def __init__(self, kind: str, namespace: str, name: str, cause: Exception):
        self.kind = kind
        self.namespace = namespace
        self.name = name
        self.cause = cause
        super().__init__(f"can't {self.verb} {kind} {namespace}/{name}: {cause}")


class HookError(_ObjectError):
    """The init hook failed for one object."""

    verb = "initialize"


class UpdateError(_ObjectError):
    """Writing one initialized object back failed."""

    verb = "update"


class AggregateError(InitializerError):
    """
    Composite of independent failures from one fan-out step.

    Use :meth:`from_errors` to build one; it returns ``None`` when nothing
    failed so callers can write ``if err:``.
    """

    def __init__(self, errors: Sequence[Exception]):
        self.errors: List[Exception] = list(errors)
        if len(self.errors) == 1:
            message = str(self.errors[0])
        else:
            message = "[" + ", ".join(str(e) for e in self.errors) + "]"
        super().__init__(message)

    @classmethod
    def from_errors(cls, errors: Sequence[Exception]) -> Optional["AggregateError"]:
        if not errors:
            return None
        return cls(errors)

    def flatten(self) -> List[Exception]:
        """Expand nested aggregates into a single list of leaf errors."""
        result: List[Exception] = []
        for err in self.errors:
            if isinstance(err, AggregateError):
                result.extend(err.flatten())
            else:
                result.append(err)
        return result

    def __len__(self) -> int:
        return len(self.errors)

    def __iter__(self) -> Iterator[Exception]:
        return iter(self.errors)
