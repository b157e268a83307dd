import re
from datetime import datetime, timedelta, timezone

from db_models import LinkPrecedence
from helpers import insert_contact


def test_find_candidates_without_fields_is_empty(store, conn):
    insert_contact(conn, 1, email="a@x.com")

    assert store.find_candidates(None, None) == []


def test_find_candidates_matches_either_field_oldest_first(store, conn):
    insert_contact(conn, 1, email="a@x.com", phone="111", created_at="2023-03-01T00:00:00.000000")
    insert_contact(conn, 2, email="b@x.com", phone="222", created_at="2023-01-01T00:00:00.000000")
    insert_contact(conn, 3, email="c@x.com", phone="333", created_at="2023-02-01T00:00:00.000000")

    found = store.find_candidates("a@x.com", "222")

    assert [c.id for c in found] == [2, 1]


def test_absent_field_does_not_match_stored_nulls(store, conn):
    insert_contact(conn, 1, email="a@x.com")
    insert_contact(conn, 2, phone="111")

    assert [c.id for c in store.find_candidates("a@x.com", None)] == [1]
    assert [c.id for c in store.find_candidates(None, "111")] == [2]


def test_deleted_contacts_are_not_found(store, conn):
    insert_contact(conn, 1, email="a@x.com")
    conn.execute("UPDATE Contact SET deletedAt = '2023-05-01T00:00:00' WHERE id = 1")

    assert store.find_candidates("a@x.com") == []
    assert store.find_by_id(1) is None


def test_find_cluster_puts_root_first(store, conn):
    insert_contact(conn, 1, email="root@x.com", created_at="2023-02-01T00:00:00.000000")
    insert_contact(conn, 2, email="s1@x.com", linked_id=1, precedence=LinkPrecedence.SECONDARY,
                   created_at="2023-03-01T00:00:00.000000")
    # older than its root, as can happen in inconsistent data
    insert_contact(conn, 3, email="s0@x.com", linked_id=1, precedence=LinkPrecedence.SECONDARY,
                   created_at="2023-01-01T00:00:00.000000")
    insert_contact(conn, 4, email="other@x.com")

    assert [c.id for c in store.find_cluster(1)] == [1, 3, 2]


def test_create_assigns_id_and_timestamps(store):
    first = store.create("a@x.com", "111")
    second = store.create(None, "111", first.id, LinkPrecedence.SECONDARY)

    assert first.is_primary
    assert first.linkedId is None
    assert first.createdAt == first.updatedAt
    assert second.id > first.id
    assert second.linkedId == first.id
    assert second.email is None
    assert not second.is_primary
    assert second.seniority > first.seniority


def test_demote_links_former_root(store):
    older = store.create("a@x.com")
    younger = store.create("b@x.com")

    store.demote(younger.id, older.id)

    demoted = store.find_by_id(younger.id)
    assert demoted.linkPrecedence == LinkPrecedence.SECONDARY
    assert demoted.linkedId == older.id
    assert demoted.updatedAt >= younger.updatedAt


def test_reparent_moves_all_members_and_is_idempotent(store, conn):
    insert_contact(conn, 1, email="a@x.com")
    insert_contact(conn, 2, email="b@x.com")
    insert_contact(conn, 3, phone="333", linked_id=2, precedence=LinkPrecedence.SECONDARY)
    insert_contact(conn, 4, phone="444", linked_id=2, precedence=LinkPrecedence.SECONDARY)

    assert store.reparent(2, 1) == 2
    assert store.reparent(2, 1) == 0
    assert [c.id for c in store.find_cluster(1)] == [1, 3, 4]
    assert [c.id for c in store.find_cluster(2)] == [2]


def test_timestamps_are_stored_in_utc(store, conn):
    before = datetime.now(timezone.utc)
    created = store.create("a@x.com")

    raw = conn.execute("SELECT createdAt FROM Contact WHERE id = ?", (created.id,)).fetchone()[0]
    assert re.fullmatch(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{6}", raw)
    assert created.createdAt.utcoffset() == timedelta(0)
    assert abs(created.createdAt - before) < timedelta(minutes=1)


def test_seeded_and_created_contacts_compare_by_seniority(store, conn):
    insert_contact(conn, 1, email="old@x.com", created_at="2023-01-01T00:00:00.000000")
    created = store.create("new@x.com")

    seeded = store.find_by_id(1)
    assert seeded.createdAt.tzinfo == timezone.utc
    assert seeded.seniority < created.seniority
