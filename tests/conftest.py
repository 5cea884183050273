from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session, create_engine
from sqlmodel.pool import StaticPool

from app.core.security import create_access_token
from app.db.session import get_session
from app.main import app
from app.models import Book, User
from app.services.payment import PaymentSimulator, get_payment_gateway


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


def _make_user(session, email, name):
    user = User(email=email, name=name)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture()
def user(session):
    return _make_user(session, "reader@example.com", "Reader")


@pytest.fixture()
def other_user(session):
    return _make_user(session, "other@example.com", "Other")


@pytest.fixture()
def books(session):
    """Book A at 10.00 and book B at 5.00."""
    book_a = Book(title="Book A", author_name="Author A", price=Decimal("10.00"), cover_image_url="/covers/a.jpg")
    book_b = Book(title="Book B", author_name="Author B", price=Decimal("5.00"))
    session.add(book_a)
    session.add(book_b)
    session.commit()
    session.refresh(book_a)
    session.refresh(book_b)
    return book_a, book_b


@pytest.fixture()
def gateway():
    return PaymentSimulator(decline_rate=0.0)


@pytest.fixture()
def client(engine, gateway):
    def get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def headers(user):
    return auth_headers(user)
