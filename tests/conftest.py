"""
Shared pytest fixtures — in‑memory SQLite + FastAPI TestClient.
"""
import io
import os
import zipfile

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.database import (  # noqa: E402
    Base,
    build_engine,
    build_session_factory,
    get_db,
    get_session_factory,
)
from app.models import PriceModel  # noqa: E402, F401  — register model
from app.main import app  # noqa: E402

# build_engine gives sqlite:// a StaticPool, so every session shares one database
_ENGINE = build_engine("sqlite://")
_Session = build_session_factory(_ENGINE)


@pytest.fixture(autouse=True)
def _reset_tables():
    Base.metadata.create_all(bind=_ENGINE)
    yield
    Base.metadata.drop_all(bind=_ENGINE)


@pytest.fixture()
def engine():
    return _ENGINE


@pytest.fixture()
def session_factory():
    return _Session


@pytest.fixture()
def make_zip():
    def _make(csv_text: str, entry_name: str = "data.csv") -> bytes:
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.writestr(entry_name, csv_text)
        return buf.getvalue()
    return _make


@pytest.fixture()
def count_prices():
    def _count() -> int:
        with _Session() as session:
            return session.query(PriceModel).count()
    return _count


@pytest.fixture()
def client():
    # One connection backs every session, so each request gets a short-lived one
    def _override():
        session = _Session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override
    app.dependency_overrides[get_session_factory] = lambda: _Session
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
