import pytest
from fastapi.testclient import TestClient

from config import TestingSettings
from main import create_app
from processor import TransactionProcessor


@pytest.fixture
def processor():
    """Fresh ledger for each test."""
    return TransactionProcessor()


@pytest.fixture
def client():
    """HTTP client bound to a fresh application and ledger."""
    with TestClient(create_app(TestingSettings())) as test_client:
        yield test_client
