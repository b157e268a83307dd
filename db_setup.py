import logging
import sqlite3
from contextlib import contextmanager

from config import DEFAULT_DB_PATH, DEFAULT_DB_TIMEOUT
from errors import StoreUnavailableError, TransactionConflictError

logger = logging.getLogger(__name__)


def init_db(db_path: str = DEFAULT_DB_PATH):
    conn = get_db_connection(db_path)
    try:
        with transaction(conn):
            conn.execute('''
                CREATE TABLE IF NOT EXISTS Contact (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    phoneNumber TEXT,
                    email TEXT,
                    linkedId INTEGER,
                    linkPrecedence TEXT CHECK(linkPrecedence IN ('secondary', 'primary')),
                    createdAt DATETIME DEFAULT CURRENT_TIMESTAMP,
                    updatedAt DATETIME DEFAULT CURRENT_TIMESTAMP,
                    deletedAt DATETIME,
                    FOREIGN KEY (linkedId) REFERENCES Contact (id)
                )
            ''')
            conn.execute("CREATE INDEX IF NOT EXISTS idx_contact_email ON Contact (email)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_contact_phone ON Contact (phoneNumber)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_contact_linked ON Contact (linkedId)")
    finally:
        conn.close()
    logger.info("Contact table ready at %s", db_path)


def get_db_connection(db_path: str = DEFAULT_DB_PATH, timeout: float = DEFAULT_DB_TIMEOUT):
    """Open a connection in autocommit mode; writes go through ``transaction``."""
    try:
        conn = sqlite3.connect(db_path, timeout=timeout, isolation_level=None)
    except sqlite3.Error as exc:
        raise StoreUnavailableError(f"Cannot open contact database: {exc}") from exc
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection):
    """Run the enclosed block as one serializable unit of work.

    BEGIN IMMEDIATE takes the write lock up front, so two writers touching the
    same cluster never interleave their reads and writes.
    """
    try:
        conn.execute("BEGIN IMMEDIATE")
    except sqlite3.Error as exc:
        raise _translate(exc) from exc

    try:
        yield conn
    except sqlite3.Error as exc:
        _rollback(conn)
        raise _translate(exc) from exc
    except BaseException:
        _rollback(conn)
        raise

    try:
        conn.execute("COMMIT")
    except sqlite3.Error as exc:
        _rollback(conn)
        raise _translate(exc) from exc


def _rollback(conn: sqlite3.Connection):
    if not conn.in_transaction:
        return
    try:
        conn.execute("ROLLBACK")
    except sqlite3.Error:
        logger.exception("Rollback failed")


def _translate(exc: sqlite3.Error):
    message = str(exc)
    if isinstance(exc, sqlite3.OperationalError) and ("locked" in message or "busy" in message):
        return TransactionConflictError(f"Contact database is busy: {message}")
    return StoreUnavailableError(f"Contact database error: {message}")
