"""Shared fixtures: an in-memory MongoDB and a client bound to it."""

import mongomock
import pytest
from fastapi.testclient import TestClient

from chu.config import Settings
from chu.main import create_app
from chu.storage import DocumentStore


@pytest.fixture
def store():
    return DocumentStore(mongomock.MongoClient(), "test_chu")


@pytest.fixture
def settings():
    return Settings(connection_string=None, database_name="test_chu")


@pytest.fixture
def client(store, settings):
    app = create_app(store=store, settings=settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def user_payload():
    return {
        "username": "a",
        "password": "b",
        "clientId": "c1",
        "fitbitAccessToken": "t1",
        "age": 30,
        "gender": "f",
        "height": 170,
        "weight": 60,
        "memberSince": "2020",
        "averageDailySteps": 5000,
    }
