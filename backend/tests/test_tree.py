import random

import pytest

from exceptions.exceptions import (
    CycleDetectedException,
    InvalidParentException,
    NotFoundException,
    ValidationException,
)
from models.node import Node
from services.node_service import NodeService
from services.query_service import QueryService


def _file(service, owner, name, parent=None, key=None):
    return service.create_file(
        owner_id=owner.id,
        name=name,
        parent_id=parent.id if parent else None,
        storage_key=key or f"test/{name}",
        size_bytes=10,
        mime_type="text/plain"
    )


def test_random_moves_keep_a_forest(db, make_user):
    owner = make_user()
    service = NodeService(db)
    folders = [service.create_folder(owner.id, f"f{i}") for i in range(8)]
    parents = {f.id: None for f in folders}

    def is_ancestor(candidate, node_id):
        current = node_id
        while current is not None:
            if current == candidate:
                return True
            current = parents[current]
        return False

    rng = random.Random(1234)
    for _ in range(200):
        node = rng.choice(folders)
        target = rng.choice(folders + [None])
        target_id = target.id if target else None

        if target_id is not None and is_ancestor(node.id, target_id):
            with pytest.raises(CycleDetectedException):
                service.move(node.id, owner.id, target_id)
        else:
            service.move(node.id, owner.id, target_id)
            parents[node.id] = target_id

        for f in folders:
            path = service.get_ancestry_path(f.id)
            assert len(path) <= len(folders)
            assert path[0].parent_id is None
            assert path[-1].id == f.id

    stored = {n.id: n.parent_id for n in db.query(Node).all()}
    assert stored == parents


def test_move_into_descendant_fails_and_leaves_tree_unchanged(db, make_user):
    owner = make_user()
    service = NodeService(db)
    a = service.create_folder(owner.id, "a")
    b = service.create_folder(owner.id, "b", a.id)
    c = service.create_folder(owner.id, "c", b.id)

    before = {n.id: n.parent_id for n in db.query(Node).all()}

    with pytest.raises(CycleDetectedException):
        service.move(a.id, owner.id, c.id)
    with pytest.raises(CycleDetectedException):
        service.move(a.id, owner.id, a.id)

    db.expire_all()
    after = {n.id: n.parent_id for n in db.query(Node).all()}
    assert after == before


def test_move_rejects_file_and_foreign_parents(db, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    service = NodeService(db)
    folder = service.create_folder(alice.id, "docs")
    note = _file(service, alice, "note.txt")
    bobs_folder = service.create_folder(bob.id, "bobs")

    with pytest.raises(InvalidParentException):
        service.move(folder.id, alice.id, note.id)
    with pytest.raises(InvalidParentException):
        service.move(folder.id, alice.id, bobs_folder.id)
    with pytest.raises(InvalidParentException):
        service.create_folder(alice.id, "nested", note.id)


def test_rename_round_trip_keeps_storage_key(db, make_user):
    owner = make_user()
    service = NodeService(db)
    node = _file(service, owner, "report.pdf", key="users/x/abc.pdf")
    created_at = node.created_at

    service.rename(node.id, owner.id, "X")
    renamed = service.rename(node.id, owner.id, "Y")

    assert renamed.name == "Y"
    assert renamed.storage_key == "users/x/abc.pdf"
    assert renamed.created_at == created_at


def test_rename_rejects_blank_names(db, make_user):
    owner = make_user()
    service = NodeService(db)
    folder = service.create_folder(owner.id, "docs")

    with pytest.raises(ValidationException):
        service.rename(folder.id, owner.id, "   ")
    with pytest.raises(ValidationException):
        service.create_folder(owner.id, "x" * 256)

    db.refresh(folder)
    assert folder.name == "docs"


def test_trash_hides_subtree_without_writing_descendants(db, make_user):
    owner = make_user()
    service = NodeService(db)
    queries = QueryService(db)

    reports = service.create_folder(owner.id, "Reports")
    inner = service.create_folder(owner.id, "2024", reports.id)
    q1 = _file(service, owner, "q1.pdf", inner)
    stamps = {inner.id: inner.updated_at, q1.id: q1.updated_at}

    service.trash(reports.id, owner.id)

    db.expire_all()
    for node_id, updated_at in stamps.items():
        row = db.get(Node, node_id)
        assert row.trashed is False
        assert row.updated_at == updated_at

    root, _ = queries.list_children(None, owner.id)
    assert reports.id not in [n.id for n in root]
    assert queries.search(owner.id, "q1") == []
    with pytest.raises(NotFoundException):
        service.get_node(q1.id, owner.id)
    with pytest.raises(NotFoundException):
        queries.list_children(inner.id, owner.id)

    assert [n.id for n in queries.list_trash(owner.id)] == [reports.id]

    service.restore(reports.id, owner.id)
    assert [n.id for n in queries.search(owner.id, "q1")] == [q1.id]


def test_restore_of_live_node_is_a_noop(db, make_user):
    owner = make_user()
    service = NodeService(db)
    folder = service.create_folder(owner.id, "docs")

    restored = service.restore(folder.id, owner.id)
    assert restored.trashed is False
    assert restored.trashed_at is None


def test_ancestry_path_is_root_first(db, make_user):
    owner = make_user()
    service = NodeService(db)
    a = service.create_folder(owner.id, "a")
    b = service.create_folder(owner.id, "b", a.id)
    f = _file(service, owner, "f.txt", b)

    assert [n.name for n in service.get_ancestry_path(f.id)] == ["a", "b", "f.txt"]


def test_ancestry_path_reports_corrupt_cycles(db, make_user):
    owner = make_user()
    service = NodeService(db)
    a = service.create_folder(owner.id, "a")
    b = service.create_folder(owner.id, "b", a.id)

    # Corrupt the tree behind the service's back
    a.parent_id = b.id
    db.commit()

    with pytest.raises(CycleDetectedException):
        service.get_ancestry_path(b.id)


def test_breadcrumbs_stop_at_what_the_viewer_can_see(db, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    service = NodeService(db)
    a = service.create_folder(alice.id, "a")
    b = service.create_folder(alice.id, "b", a.id)
    f = _file(service, alice, "f.txt", b)
    service.access.grant(f.id, alice.id, "bob@example.com")

    assert [n.name for n in service.get_breadcrumbs(f.id, alice.id)] == ["a", "b", "f.txt"]
    assert [n.name for n in service.get_breadcrumbs(f.id, bob.id)] == ["f.txt"]


def test_move_locks_the_current_parent(db, make_user, monkeypatch):
    owner = make_user()
    service = NodeService(db)
    a = service.create_folder(owner.id, "a")
    b = service.create_folder(owner.id, "b")
    x = service.create_folder(owner.id, "x", a.id)

    node = service._get_visible_node(x.id)
    assert node.parent_id == a.id
    # Another writer re-parents x; the loaded object still says "a"
    db.query(Node).filter(Node.id == x.id).update({"parent_id": b.id}, synchronize_session=False)

    locked = []
    get_node = service._get_node

    def recording_get_node(node_id, lock=False):
        if lock:
            locked.append(node_id)
        return get_node(node_id, lock=lock)

    monkeypatch.setattr(service, "_get_node", recording_get_node)

    moved, new_parent = service._lock_for_move(node, None)
    assert new_parent is None
    assert moved.parent_id == b.id
    assert b.id in locked
    db.rollback()
