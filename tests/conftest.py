import pytest
from sqlalchemy import create_engine, delete
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from books_api.db import Base
from books_api.entities import BookRecord

SEED_BOOK = {
    "isbn": "1234567890",
    "amazon_url": "https://amazon.com/book",
    "author": "Liv",
    "language": "English",
    "pages": 100,
    "publisher": "Publishing Company",
    "title": "How to Quilt",
    "year": 2024,
}


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    session = Session()
    session.execute(delete(BookRecord))
    session.add(BookRecord(**SEED_BOOK))
    session.commit()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def seed_book() -> dict:
    return dict(SEED_BOOK)


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"
