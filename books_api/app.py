import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, Body, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings
from .db import get_session, init_db
from .errors import ErrorKind, Failure, Result
from .models import (
    BookListResponse,
    BookResponse,
    MessageResponse,
    ValidationMode,
    validate_book,
    validate_isbn,
)
from .otel import configure_logging, configure_otel
from .repository import BookRepository

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger("books_api")
request_logger = logging.getLogger("books_api.requests")

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
}


class ApiError(Exception):
    def __init__(self, failure: Failure):
        super().__init__(failure.message)
        self.failure = failure
        self.status_code = STATUS_BY_KIND[failure.kind]


def unwrap(result: Result) -> Any:
    if not result.ok:
        raise ApiError(result.error)
    return result.value


def error_body(status_code: int, message: str, failure: Failure | None = None) -> dict:
    error: dict[str, Any] = {"status": status_code, "message": message}
    if failure is not None and failure.fields:
        error["fields"] = [
            {"field": item.field, "problem": item.problem.value, "message": item.message} for item in failure.fields
        ]
    return {"error": error}


def get_book_repository(session=Depends(get_session)) -> BookRepository:
    return BookRepository(session)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="A small Books API keyed by ISBN with relational persistence.",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)
if settings.otel_enabled:
    configure_otel(app, settings.otel_service_name, settings.version)

router = APIRouter(prefix="/books", tags=["books"])


@app.get("/health", tags=["health"])
def health() -> dict:
    return {"status": "ok"}


@router.get("", response_model=BookListResponse)
def list_books(repository: BookRepository = Depends(get_book_repository)) -> BookListResponse:
    return BookListResponse(books=repository.list_all())


@router.get("/{isbn}", response_model=BookResponse)
def get_book(isbn: str, repository: BookRepository = Depends(get_book_repository)) -> BookResponse:
    return BookResponse(book=unwrap(repository.get_by_isbn(isbn)))


@router.post("", response_model=BookResponse, status_code=status.HTTP_201_CREATED)
def create_book(
    payload: Any = Body(default=None),
    repository: BookRepository = Depends(get_book_repository),
) -> BookResponse:
    book = unwrap(validate_book(payload, ValidationMode.CREATE))
    return BookResponse(book=unwrap(repository.insert(book)))


@router.put("/{isbn}", response_model=BookResponse)
def update_book(
    isbn: str,
    payload: Any = Body(default=None),
    repository: BookRepository = Depends(get_book_repository),
) -> BookResponse:
    unwrap(validate_isbn(isbn))
    fields = unwrap(validate_book(payload, ValidationMode.UPDATE))
    return BookResponse(book=unwrap(repository.update(isbn, fields)))


@router.delete("/{isbn}", response_model=MessageResponse)
def delete_book(isbn: str, repository: BookRepository = Depends(get_book_repository)) -> MessageResponse:
    unwrap(repository.delete(isbn))
    return MessageResponse(message="Book deleted")


app.include_router(router)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, exc.failure.message, exc.failure),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(status.HTTP_400_BAD_REQUEST, "Request body is not valid JSON"),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.failed", extra={"path": request.url.path, "method": request.method})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"),
    )


@app.middleware("http")
async def request_logging_middleware(request, call_next):
    request_logger.info("request.start", extra={"path": request.url.path, "method": request.method})
    response = await call_next(request)
    request_logger.info(
        "request.end",
        extra={"path": request.url.path, "method": request.method, "status": response.status_code},
    )
    return response


@app.middleware("http")
async def request_id_middleware(request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response
