import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .entities import BookRecord
from .errors import ErrorKind, Result
from .models import Book, BookFields

logger = logging.getLogger("books_api.repository")


class BookRepository:
    def __init__(self, session: Session):
        self.session = session

    def list_all(self) -> list[Book]:
        records = self.session.execute(select(BookRecord).order_by(BookRecord.isbn)).scalars().all()
        return [self._to_schema(record) for record in records]

    def get_by_isbn(self, isbn: str) -> Result[Book]:
        record = self.session.get(BookRecord, isbn)
        if record is None:
            return self._not_found(isbn)
        return Result.success(self._to_schema(record))

    def insert(self, book: Book) -> Result[Book]:
        if self.session.get(BookRecord, book.isbn) is not None:
            return self._conflict(book.isbn)

        record = BookRecord(**book.model_dump())
        self.session.add(record)
        try:
            self.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent insert of the same isbn.
            self.session.rollback()
            return self._conflict(book.isbn)
        self.session.refresh(record)
        logger.info("book.created", extra={"isbn": record.isbn})
        return Result.success(self._to_schema(record))

    def update(self, isbn: str, fields: BookFields) -> Result[Book]:
        record = self.session.get(BookRecord, isbn)
        if record is None:
            return self._not_found(isbn)

        for name, value in fields.model_dump().items():
            setattr(record, name, value)
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        logger.info("book.updated", extra={"isbn": isbn})
        return Result.success(self._to_schema(record))

    def delete(self, isbn: str) -> Result[str]:
        record = self.session.get(BookRecord, isbn)
        if record is None:
            return self._not_found(isbn)
        self.session.delete(record)
        self.session.commit()
        logger.info("book.deleted", extra={"isbn": isbn})
        return Result.success(isbn)

    @staticmethod
    def _not_found(isbn: str) -> Result:
        return Result.failure(ErrorKind.NOT_FOUND, f"No book with isbn '{isbn}'")

    @staticmethod
    def _conflict(isbn: str) -> Result:
        logger.info("book.conflict", extra={"isbn": isbn})
        return Result.failure(ErrorKind.CONFLICT, f"A book with isbn '{isbn}' already exists")

    @staticmethod
    def _to_schema(record: BookRecord) -> Book:
        return Book.model_validate(record, from_attributes=True)
