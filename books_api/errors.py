from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


class FieldProblem(str, Enum):
    MISSING = "missing"
    WRONG_TYPE = "wrong_type"
    INVALID = "invalid"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class FieldError:
    field: str
    problem: FieldProblem
    message: str


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str
    fields: tuple[FieldError, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[Failure] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, fields: tuple[FieldError, ...] = ()) -> "Result[T]":
        return cls(error=Failure(kind=kind, message=message, fields=tuple(fields)))
