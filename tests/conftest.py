"""
Shared test fixtures — SQLite database, test client, project helpers.
"""

import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Point settings at the test database before importing app modules
os.environ["DATABASE_URL"] = "sqlite:///./test_deckbid.db"

from deckbid.database import Base, get_db
from deckbid.main import app


TEST_DATABASE_URL = "sqlite:///./test_deckbid.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def db():
    """Direct database session for test setup/assertions."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def deck_project(client):
    """Create a plain deck project and return its id."""
    response = client.post("/api/projects/", json={
        "name": "Smith backyard deck",
        "type": "deck",
        "address": "12 Elm St",
    })
    assert response.status_code == 200
    return response.json()["id"]
