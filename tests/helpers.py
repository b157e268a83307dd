from db_models import LinkPrecedence


def insert_contact(conn, contact_id, email=None, phone=None, linked_id=None,
                   precedence=LinkPrecedence.PRIMARY, created_at="2023-04-01T00:00:00.000000"):
    conn.execute("""
        INSERT INTO Contact (id, phoneNumber, email, linkedId, linkPrecedence, createdAt, updatedAt)
        VALUES (?, ?, ?, ?, ?, ?, ?)
    """, (contact_id, phone, email, linked_id, precedence.value, created_at, created_at))


def all_contacts(conn):
    return [dict(row) for row in conn.execute("SELECT * FROM Contact ORDER BY id")]
