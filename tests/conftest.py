import pytest

from config import Settings
from contact_store import ContactStore
from db_setup import get_db_connection, init_db


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "contacts.db")
    init_db(path)
    return path


@pytest.fixture
def conn(db_path):
    conn = get_db_connection(db_path)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def store(conn):
    return ContactStore(conn)


@pytest.fixture
def settings(db_path):
    return Settings(db_path=db_path, db_timeout=5.0)
