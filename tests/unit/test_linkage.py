"""Sharing & parent-linkage service tests."""

import uuid

import pytest
from conftest import OWNER, make_write

from notetree.core.errors import CircularReferenceError, NoteNotFoundError
from notetree.services.linkage import LinkageService


@pytest.fixture
def linkage(repo) -> LinkageService:
    return LinkageService(repository=repo)


@pytest.mark.asyncio
async def test_set_shared_response(linkage, repo, session):
    note = await repo.upsert(session, make_write("Share me"), OWNER, None)

    response = await linkage.set_shared(session, note.id, OWNER, True)

    assert response.model_dump() == {"message": "Note sharing updated", "is_shared": True}
    assert (await repo.get(session, note.id, OWNER)).is_shared is True


@pytest.mark.asyncio
async def test_set_parent_response_and_chain_stays_acyclic(linkage, repo, session):
    """Build a chain a <- b <- c, then try every upward move."""
    a = await repo.upsert(session, make_write("a"), OWNER, None)
    b = await repo.upsert(session, make_write("b"), OWNER, None)
    c = await repo.upsert(session, make_write("c"), OWNER, None)

    response = await linkage.set_parent(session, b.id, OWNER, a.id)
    assert response.message == "Note parent updated"
    assert response.parent == a.id
    await linkage.set_parent(session, c.id, OWNER, b.id)

    for descendant in (b.id, c.id):
        with pytest.raises(CircularReferenceError):
            await linkage.set_parent(session, a.id, OWNER, descendant)

    # Following parent links from any note terminates within three hops
    for start in (a.id, b.id, c.id):
        current, hops = start, 0
        while current is not None:
            current = (await repo.get(session, current, OWNER)).parent
            hops += 1
            assert hops <= 3


@pytest.mark.asyncio
async def test_set_parent_to_root(linkage, repo, session):
    a = await repo.upsert(session, make_write("a"), OWNER, None)
    b = await repo.upsert(session, make_write("b", parent=a.id), OWNER, None)

    response = await linkage.set_parent(session, b.id, OWNER, None)

    assert response.parent is None
    assert (await repo.get(session, a.id, OWNER)).has_children is False


@pytest.mark.asyncio
async def test_linkage_on_missing_note(linkage, session):
    with pytest.raises(NoteNotFoundError):
        await linkage.set_shared(session, uuid.uuid4(), OWNER, True)
