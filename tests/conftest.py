import os
from typing import Generator

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("RATE_LIMITING_ENABLED", "false")

from roombook.config import reset_settings_cache  # noqa: E402

reset_settings_cache()

from roombook.cache import agenda_cache  # noqa: E402
from roombook.database import Base, SessionLocal, engine  # noqa: E402
from services.reservations.app import app as reservations_app  # noqa: E402
from services.rooms.app import app as rooms_app  # noqa: E402
from services.users.app import app as users_app  # noqa: E402

USER_PAYLOAD = {
    "name": "Ana Souza",
    "email": "ana@example.com",
    "password": "secret1",
}


@pytest.fixture(autouse=True, scope="function")
def _create_test_database() -> Generator[None, None, None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    agenda_cache.clear()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session() -> Generator:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def users_client() -> Generator[TestClient, None, None]:
    with TestClient(users_app) as client:
        yield client


@pytest.fixture()
def rooms_client() -> Generator[TestClient, None, None]:
    with TestClient(rooms_app) as client:
        yield client


@pytest.fixture()
def reservations_client() -> Generator[TestClient, None, None]:
    with TestClient(reservations_app) as client:
        yield client


def login(users_client: TestClient, email: str, password: str) -> dict[str, str]:
    response = users_client.post(
        "/users/login",
        data={"username": email, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def auth_headers(users_client: TestClient) -> dict[str, str]:
    users_client.post("/users/register", json=USER_PAYLOAD)
    return login(users_client, USER_PAYLOAD["email"], USER_PAYLOAD["password"])
