"""
Results -- failure values returned by the editing core.

Responsibility:
    Defines the immutable value objects that carry the outcome of an
    editing operation back to the caller: ``Failure`` (one classified
    failure), ``Result`` (a value or a failure), and ``ValidationResult``
    (zero or more validation failures).

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.

Invariants enforced:
    - A ``Result`` holds exactly one of ``value`` or ``failure``.
    - ``ValidationResult.errors`` is always a tuple (never None).
    - Every ``Failure`` carries a machine-readable ``code``.

Failure modes:
    - ``Result.unwrap()`` on a failed result raises ``ResultUnwrapError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from expense_kernel.exceptions import (
    AdminAuthorizationError,
    EndpointUnresolvedError,
    ExpenseKernelError,
    LineItemNotFoundError,
    PersistenceError,
    ProjectNotFoundError,
    ProviderError,
)

T = TypeVar("T")


class FailureKind(str, Enum):
    """Failure taxonomy surfaced to the editing UI."""

    VALIDATION = "validation"
    ENDPOINT_UNRESOLVED = "endpoint_unresolved"
    PROVIDER = "provider"
    NOT_FOUND = "not_found"
    PERSISTENCE = "persistence"
    AUTHORIZATION = "authorization"
    # A late asynchronous result that a newer edit has already replaced.
    SUPERSEDED = "superseded"


@dataclass(frozen=True)
class Failure:
    """
    A single classified failure.

    Contract:
        Carries the failure kind, a machine-readable code, a human-readable
        message, an optional field path, and optional structured details.

    Non-goals:
        - Does NOT raise -- it IS the failure representation.
    """

    kind: FailureKind
    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None

    @classmethod
    def validation(
        cls,
        code: str,
        message: str,
        field: str | None = None,
        **details: Any,
    ) -> Failure:
        """Create a validation failure."""
        return cls(
            kind=FailureKind.VALIDATION,
            code=code,
            message=message,
            field=field,
            details=details or None,
        )

    @classmethod
    def from_exception(cls, exc: ExpenseKernelError) -> Failure:
        """Classify a kernel exception into a failure value."""
        details = {
            k: v for k, v in vars(exc).items()
            if not k.startswith("_") and k != "args"
        }
        return cls(
            kind=_kind_for(exc),
            code=exc.code,
            message=str(exc),
            field=details.pop("field_path", None) or details.pop("field", None),
            details=details or None,
        )


def _kind_for(exc: ExpenseKernelError) -> FailureKind:
    if isinstance(exc, EndpointUnresolvedError):
        return FailureKind.ENDPOINT_UNRESOLVED
    if isinstance(exc, ProviderError):
        return FailureKind.PROVIDER
    if isinstance(exc, (LineItemNotFoundError, ProjectNotFoundError)):
        return FailureKind.NOT_FOUND
    if isinstance(exc, PersistenceError):
        return FailureKind.PERSISTENCE
    if isinstance(exc, AdminAuthorizationError):
        return FailureKind.AUTHORIZATION
    return FailureKind.VALIDATION


class ResultUnwrapError(RuntimeError):
    """Raised when unwrapping a failed Result."""

    def __init__(self, failure: Failure):
        self.failure = failure
        super().__init__(f"{failure.code}: {failure.message}")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of an editing operation: a value or a failure.

    Guarantees:
        - Immutable (frozen dataclass)
        - bool(result) == result.is_success
    """

    value: T | None = None
    failure: Failure | None = None

    @classmethod
    def ok(cls, value: T) -> Result[T]:
        return cls(value=value, failure=None)

    @classmethod
    def fail(cls, failure: Failure) -> Result[T]:
        return cls(value=None, failure=failure)

    @property
    def is_success(self) -> bool:
        return self.failure is None

    def unwrap(self) -> T:
        """Return the value, raising ``ResultUnwrapError`` on failure."""
        if self.failure is not None:
            raise ResultUnwrapError(self.failure)
        return self.value  # type: ignore[return-value]

    def __bool__(self) -> bool:
        return self.is_success


@dataclass(frozen=True)
class ValidationResult:
    """
    Result of validation.

    Contract:
        Aggregates zero or more validation failures. is_valid is True only
        when there are no errors.

    Non-goals:
        - Does NOT contain warnings -- only hard errors.
    """

    is_valid: bool
    errors: tuple[Failure, ...] = field(default_factory=tuple)

    @classmethod
    def success(cls) -> ValidationResult:
        """Create a successful validation result."""
        return cls(is_valid=True, errors=())

    @classmethod
    def failure(cls, *errors: Failure) -> ValidationResult:
        """Create a failed validation result."""
        return cls(is_valid=False, errors=tuple(errors))

    @classmethod
    def of(cls, errors: list[Failure] | tuple[Failure, ...]) -> ValidationResult:
        """Success when ``errors`` is empty, failure otherwise."""
        if errors:
            return cls.failure(*errors)
        return cls.success()

    @property
    def codes(self) -> tuple[str, ...]:
        return tuple(e.code for e in self.errors)

    def __bool__(self) -> bool:
        return self.is_valid
