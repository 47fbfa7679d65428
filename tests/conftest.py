import pytest

from focusdesk.store import SqliteStore

from helpers import FlakyStore, run


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "test_focusdesk.db"


@pytest.fixture
def sqlite_store(db_path):
    store = SqliteStore(db_path)
    run(store.init_tables())
    return store


@pytest.fixture
def store(sqlite_store):
    """SQLite store wrapped so tests can inject failures and count calls."""
    return FlakyStore(sqlite_store)
