import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

from db_models import Contact, LinkPrecedence


def _now() -> str:
    # UTC without offset, fixed width, so text order matches time order
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")


class ContactStore:
    """Lookup and mutation primitives over the Contact table.

    Callers own the transaction; nothing here commits.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def find_candidates(self, email: Optional[str] = None, phone: Optional[str] = None) -> List[Contact]:
        conditions = []
        params = []
        if email:
            conditions.append("email = ?")
            params.append(email)
        if phone:
            conditions.append("phoneNumber = ?")
            params.append(phone)
        if not conditions:
            return []

        rows = self.conn.execute(f"""
            SELECT * FROM Contact
            WHERE deletedAt IS NULL
            AND ({" OR ".join(conditions)})
            ORDER BY createdAt ASC, id ASC
        """, params).fetchall()
        return [Contact(**dict(row)) for row in rows]

    def find_by_id(self, contact_id: int) -> Optional[Contact]:
        row = self.conn.execute(
            "SELECT * FROM Contact WHERE id = ? AND deletedAt IS NULL", (contact_id,)
        ).fetchone()
        return Contact(**dict(row)) if row else None

    def find_cluster(self, root_id: int) -> List[Contact]:
        rows = self.conn.execute("""
            SELECT * FROM Contact
            WHERE (id = ? OR linkedId = ?) AND deletedAt IS NULL
            ORDER BY CASE WHEN id = ? THEN 0 ELSE 1 END, createdAt ASC, id ASC
        """, (root_id, root_id, root_id)).fetchall()
        return [Contact(**dict(row)) for row in rows]

    def create(
        self,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        linked_id: Optional[int] = None,
        precedence: LinkPrecedence = LinkPrecedence.PRIMARY,
    ) -> Contact:
        now = _now()
        cursor = self.conn.execute("""
            INSERT INTO Contact (phoneNumber, email, linkedId, linkPrecedence, createdAt, updatedAt)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (phone, email, linked_id, precedence.value, now, now))
        return self.find_by_id(cursor.lastrowid)

    def demote(self, contact_id: int, new_root_id: int):
        self.conn.execute("""
            UPDATE Contact
            SET linkedId = ?, linkPrecedence = 'secondary', updatedAt = ?
            WHERE id = ?
        """, (new_root_id, _now(), contact_id))

    def reparent(self, old_root_id: int, new_root_id: int) -> int:
        cursor = self.conn.execute("""
            UPDATE Contact
            SET linkedId = ?, updatedAt = ?
            WHERE linkedId = ?
        """, (new_root_id, _now(), old_root_id))
        return cursor.rowcount
