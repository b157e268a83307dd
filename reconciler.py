"""Identity reconciliation over contact clusters.

A cluster is one primary contact plus the secondaries whose ``linkedId``
points straight at it. ``identify`` folds a new (email, phone) observation
into the clusters it touches, merging them under the oldest primary, and
returns the consolidated view of the surviving cluster.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Union

from contact_store import ContactStore
from db_models import Contact, ContactResponse, LinkPrecedence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Root:
    contact: Contact


@dataclass(frozen=True)
class Member:
    contact: Contact
    root_id: int


ClusterRef = Union[Root, Member]


def classify(contact: Contact) -> ClusterRef:
    if contact.is_primary:
        return Root(contact)
    if contact.linkedId is None:
        logger.warning("Secondary contact %s has no linkedId; treating it as its own root", contact.id)
        return Root(contact)
    return Member(contact, contact.linkedId)


def resolve_root(store: ContactStore, ref: ClusterRef) -> Contact:
    """Follow a member to its primary.

    Secondaries never chain, so one hop is normally enough. A chained secondary
    gets one extra hop; if that still misses a primary the member stands as
    its own root.
    """
    if isinstance(ref, Root):
        return ref.contact

    root = store.find_by_id(ref.root_id)
    if root is None:
        logger.warning(
            "Contact %s links to missing contact %s; treating it as its own root",
            ref.contact.id, ref.root_id,
        )
        return ref.contact
    if root.is_primary:
        return root

    logger.warning("Contact %s links to secondary contact %s", ref.contact.id, root.id)
    parent = store.find_by_id(root.linkedId) if root.linkedId is not None else None
    if parent is None or not parent.is_primary:
        logger.warning(
            "No primary reachable from contact %s; treating it as its own root", ref.contact.id
        )
        return ref.contact
    return parent


def identify(store: ContactStore, email: Optional[str] = None, phone: Optional[str] = None) -> ContactResponse:
    """Reconcile one observation. Must run inside a single transaction."""
    matched = store.find_candidates(email, phone)

    if not matched:
        contact = store.create(email, phone, None, LinkPrecedence.PRIMARY)
        logger.info("Created primary contact %s", contact.id)
        return build_response(contact.id, store.find_cluster(contact.id))

    roots: Dict[int, Contact] = {}
    for contact in matched:
        root = resolve_root(store, classify(contact))
        roots[root.id] = root

    ordered = sorted(roots.values(), key=lambda c: c.seniority)
    target = ordered[0]

    for stale in ordered[1:]:
        # Move the stale root's secondaries before demoting it so nothing
        # ever links to a secondary.
        moved = store.reparent(stale.id, target.id)
        store.demote(stale.id, target.id)
        logger.info(
            "Merged cluster %s into %s (%d secondaries moved)", stale.id, target.id, moved
        )

    cluster = store.find_cluster(target.id)
    if has_new_information(email, phone, cluster):
        contact = store.create(email, phone, target.id, LinkPrecedence.SECONDARY)
        logger.info("Created secondary contact %s under %s", contact.id, target.id)
        cluster = store.find_cluster(target.id)
    else:
        logger.debug("No new information for cluster %s", target.id)

    return build_response(target.id, cluster)


def has_new_information(email: Optional[str], phone: Optional[str], cluster: Iterable[Contact]) -> bool:
    """True if a supplied field is absent from every member of the cluster.

    Coverage is per field: the email and phone may be known from different rows.
    """
    email_known = False
    phone_known = False
    for contact in cluster:
        if email and contact.email == email:
            email_known = True
        if phone and contact.phoneNumber == phone:
            phone_known = True

    return bool((email and not email_known) or (phone and not phone_known))


def build_response(primary_id: int, cluster: List[Contact]) -> ContactResponse:
    # find_cluster puts the root first, so the primary's values lead each list
    emails = _unique(c.email for c in cluster)
    phone_numbers = _unique(c.phoneNumber for c in cluster)
    secondary_ids = [c.id for c in cluster if c.id != primary_id]

    return ContactResponse(
        primaryContactId=primary_id,
        emails=emails,
        phoneNumbers=phone_numbers,
        secondaryContactIds=secondary_ids,
    )


def _unique(values: Iterable[Optional[str]]) -> List[str]:
    seen = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen
