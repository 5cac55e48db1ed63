from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError, field_validator

from .errors import ErrorKind, FieldError, FieldProblem, Result

# books.pages is a 32-bit INTEGER column
MAX_PAGES = 2_147_483_647

_EXPECTED_TYPES = {
    "string_type": "a string",
    "int_type": "an integer",
}


def isbn_problem(isbn: str) -> Optional[str]:
    if not isbn or not isbn.strip():
        return "isbn must not be blank"
    if "/" in isbn:
        return "isbn must not contain '/'"
    return None


class ValidationMode(str, Enum):
    CREATE = "create"
    UPDATE = "update"


class BookFields(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amazon_url: StrictStr
    author: StrictStr
    language: StrictStr
    pages: StrictInt = Field(gt=0, le=MAX_PAGES)
    publisher: StrictStr
    title: StrictStr
    year: StrictInt = Field(ge=1000, le=9999)


class Book(BookFields):
    isbn: StrictStr

    @field_validator("isbn")
    @classmethod
    def check_isbn(cls, value: str) -> str:
        problem = isbn_problem(value)
        if problem:
            raise ValueError(problem)
        return value


class BookResponse(BaseModel):
    book: Book


class BookListResponse(BaseModel):
    books: list[Book]


class MessageResponse(BaseModel):
    message: str


def _problem_for(error_type: str) -> FieldProblem:
    if error_type == "missing":
        return FieldProblem.MISSING
    if error_type == "extra_forbidden":
        return FieldProblem.UNEXPECTED
    if error_type in _EXPECTED_TYPES:
        return FieldProblem.WRONG_TYPE
    return FieldProblem.INVALID


def _describe(name: str, problem: FieldProblem, error: dict[str, Any]) -> str:
    if problem is FieldProblem.MISSING:
        return f"{name} is required"
    if problem is FieldProblem.UNEXPECTED:
        return f"{name} is not an accepted field"
    if problem is FieldProblem.WRONG_TYPE:
        return f"{name} must be {_EXPECTED_TYPES[error['type']]}"
    if error["type"] == "value_error":
        return str(error["ctx"]["error"])
    return f"{name}: {error['msg']}"


def field_errors(exc: ValidationError) -> tuple[FieldError, ...]:
    errors = []
    for error in exc.errors():
        name = ".".join(str(part) for part in error["loc"]) or "body"
        problem = _problem_for(error["type"])
        errors.append(FieldError(field=name, problem=problem, message=_describe(name, problem, error)))
    return tuple(errors)


def validate_book(payload: Any, mode: ValidationMode) -> Result[Union[Book, BookFields]]:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return Result.failure(ErrorKind.VALIDATION, "Request body must be a JSON object")

    schema = Book if mode is ValidationMode.CREATE else BookFields
    try:
        return Result.success(schema.model_validate(payload))
    except ValidationError as exc:
        return Result.failure(ErrorKind.VALIDATION, "Invalid book data", field_errors(exc))


def validate_isbn(isbn: str) -> Result[str]:
    problem = isbn_problem(isbn)
    if problem:
        error = FieldError(field="isbn", problem=FieldProblem.INVALID, message=problem)
        return Result.failure(ErrorKind.VALIDATION, "Invalid isbn", (error,))
    return Result.success(isbn)
