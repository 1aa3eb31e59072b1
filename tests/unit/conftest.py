"""
Shared fixtures for unit tests.
"""
import mongomock
import pytest

from insight_engine.adapters.mongodb_adapter import MongoDBAdapter


@pytest.fixture
def mongo_adapter():
    """MongoDB adapter backed by mongomock."""
    client = mongomock.MongoClient()
    adapter = MongoDBAdapter(connection_string=client.HOST, database_name="test_db")
    # Replace the real client with the mock
    adapter.client = client
    adapter.db = client["test_db"]
    return adapter
