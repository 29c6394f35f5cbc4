from datetime import timedelta

import pytest

from core.clock import utcnow
from exceptions.exceptions import (
    ForbiddenException,
    GranteeNotFoundException,
    InvalidOrExpiredTokenException,
    InvalidParentException,
    NotFoundException,
    NotSharedException,
    ValidationException,
)
from models.share import Permission, ShareLink
from services.access_service import AccessService, satisfies
from services.node_service import NodeService
from services.query_service import QueryService


@pytest.fixture
def tree(db, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    nodes = NodeService(db)
    reports = nodes.create_folder(alice.id, "Reports")
    q1 = nodes.create_file(
        owner_id=alice.id,
        name="q1.pdf",
        parent_id=reports.id,
        storage_key="users/alice/q1.pdf",
        size_bytes=42,
        mime_type="application/pdf"
    )
    return alice, bob, reports, q1


def test_access_levels_are_ordered():
    assert satisfies("owner", Permission.EDIT)
    assert satisfies(Permission.EDIT, Permission.VIEW)
    assert not satisfies(Permission.VIEW, Permission.EDIT)
    assert not satisfies("none", Permission.VIEW)


def test_share_view_then_revoke(db, tree):
    alice, bob, _, q1 = tree
    access = AccessService(db)
    nodes = NodeService(db)
    queries = QueryService(db)

    access.grant(q1.id, alice.id, "bob@example.com", Permission.VIEW)
    assert [n.name for n in queries.list_shared_with_me(bob.id)] == ["q1.pdf"]

    with pytest.raises(ForbiddenException):
        nodes.rename(q1.id, bob.id, "x")

    access.revoke(q1.id, alice.id, bob.id)
    assert queries.list_shared_with_me(bob.id) == []
    with pytest.raises(ForbiddenException):
        nodes.get_node(q1.id, bob.id)


def test_grant_upserts_permission(db, tree):
    alice, bob, _, q1 = tree
    access = AccessService(db)
    nodes = NodeService(db)

    access.grant(q1.id, alice.id, "bob@example.com", Permission.VIEW)
    grant = access.grant(q1.id, alice.id, "BOB@example.com", Permission.EDIT)

    assert grant.permission == Permission.EDIT
    assert len(access.get_share_info(q1.id, alice.id)["shared_with"]) == 1
    assert nodes.rename(q1.id, bob.id, "q1-final.pdf").name == "q1-final.pdf"


def test_only_owner_manages_sharing(db, tree):
    alice, bob, _, q1 = tree
    access = AccessService(db)
    nodes = NodeService(db)
    access.grant(q1.id, alice.id, "bob@example.com", Permission.EDIT)

    with pytest.raises(ForbiddenException):
        access.grant(q1.id, bob.id, "alice@example.com", Permission.VIEW)
    with pytest.raises(ForbiddenException):
        access.create_link(q1.id, bob.id)
    with pytest.raises(ForbiddenException):
        nodes.trash(q1.id, bob.id)


def test_grant_errors(db, tree):
    alice, bob, _, q1 = tree
    access = AccessService(db)

    with pytest.raises(GranteeNotFoundException):
        access.grant(q1.id, alice.id, "nobody@example.com")
    with pytest.raises(ValidationException):
        access.grant(q1.id, alice.id, "alice@example.com")
    with pytest.raises(NotSharedException):
        access.revoke(q1.id, alice.id, bob.id)


def test_shared_folder_lists_only_children_the_viewer_can_open(db, tree):
    alice, bob, reports, q1 = tree
    access = AccessService(db)
    nodes = NodeService(db)
    queries = QueryService(db)
    salary = nodes.create_file(
        owner_id=alice.id,
        name="salary.xlsx",
        parent_id=reports.id,
        storage_key="users/alice/salary.xlsx",
        size_bytes=6
    )

    access.grant(reports.id, alice.id, "bob@example.com", Permission.VIEW)
    children, has_more = queries.list_children(reports.id, bob.id)
    assert children == []
    assert has_more is False

    access.grant(q1.id, alice.id, "bob@example.com", Permission.VIEW)
    children, _ = queries.list_children(reports.id, bob.id)
    assert [n.id for n in children] == [q1.id]
    assert nodes.get_node(q1.id, bob.id).id == q1.id
    assert [n.id for n in queries.search(bob.id, "q1")] == [q1.id]

    with pytest.raises(ForbiddenException):
        nodes.get_node(salary.id, bob.id)
    assert queries.search(bob.id, "salary") == []

    owner_view, _ = queries.list_children(reports.id, alice.id)
    assert [n.id for n in owner_view] == [q1.id, salary.id]


def test_editor_cannot_move_into_someone_elses_folder(db, tree):
    alice, bob, reports, q1 = tree
    access = AccessService(db)
    nodes = NodeService(db)
    archive = nodes.create_folder(alice.id, "Archive")
    access.grant(q1.id, alice.id, "bob@example.com", Permission.EDIT)

    with pytest.raises(InvalidParentException):
        nodes.move(q1.id, bob.id, archive.id)

    access.grant(archive.id, alice.id, "bob@example.com", Permission.EDIT)
    assert nodes.move(q1.id, bob.id, archive.id).parent_id == archive.id


def test_second_link_invalidates_first_token(db, tree):
    alice, _, _, q1 = tree
    access = AccessService(db)

    first = access.create_link(q1.id, alice.id).token
    node, permission = access.resolve_link(first)
    assert node.id == q1.id
    assert permission == Permission.VIEW

    second = access.create_link(q1.id, alice.id, Permission.EDIT).token
    assert second != first
    with pytest.raises(InvalidOrExpiredTokenException):
        access.resolve_link(first)
    assert access.resolve_link(second)[1] == Permission.EDIT
    assert db.query(ShareLink).count() == 1


def test_revoked_and_expired_links_stop_resolving(db, tree):
    alice, _, _, q1 = tree
    access = AccessService(db)

    token = access.create_link(q1.id, alice.id).token
    access.revoke_link(q1.id, alice.id)
    with pytest.raises(InvalidOrExpiredTokenException):
        access.resolve_link(token)
    with pytest.raises(NotSharedException):
        access.revoke_link(q1.id, alice.id)

    link = access.create_link(q1.id, alice.id, expires_in_hours=1)
    assert link.expires_at is not None
    link.expires_at = utcnow() - timedelta(minutes=1)
    db.commit()

    with pytest.raises(InvalidOrExpiredTokenException):
        access.resolve_link(link.token)
    assert access.get_share_info(q1.id, alice.id)["share_link"] is None


def test_link_permissions(db, tree):
    alice, _, reports, q1 = tree
    access = AccessService(db)
    nodes = NodeService(db)

    view_token = access.create_link(q1.id, alice.id, Permission.VIEW).token
    with pytest.raises(ForbiddenException):
        nodes.rename_via_link(view_token, "hacked.pdf")

    edit_token = access.create_link(q1.id, alice.id, Permission.EDIT).token
    assert nodes.rename_via_link(edit_token, "renamed.pdf").name == "renamed.pdf"
    assert nodes.move_via_link(edit_token, None).parent_id is None
    assert nodes.move_via_link(edit_token, reports.id).parent_id == reports.id


def test_link_to_trashed_node_is_gone(db, tree):
    alice, _, reports, q1 = tree
    access = AccessService(db)
    token = access.create_link(q1.id, alice.id).token

    NodeService(db).trash(reports.id, alice.id)

    with pytest.raises(NotFoundException):
        access.resolve_link(token)


def test_shared_link_target_follows_the_current_token(db, tree):
    alice, _, _, q1 = tree
    access = AccessService(db)
    queries = QueryService(db)

    first = access.create_link(q1.id, alice.id).token
    assert queries.list_shared_link_target(first).id == q1.id

    second = access.create_link(q1.id, alice.id).token
    with pytest.raises(InvalidOrExpiredTokenException):
        queries.list_shared_link_target(first)
    with pytest.raises(InvalidOrExpiredTokenException):
        queries.list_shared_link_target("no-such-token")
    assert queries.list_shared_link_target(second).id == q1.id


def test_permissions_accept_plain_strings(db, tree):
    alice, bob, _, q1 = tree
    access = AccessService(db)

    grant = access.grant(q1.id, alice.id, "bob@example.com", "edit")
    assert grant.permission == Permission.EDIT
    assert access.get_access_level(bob.id, q1) == "edit"

    link = access.create_link(q1.id, alice.id, "view")
    assert link.permission == Permission.VIEW

    with pytest.raises(ValidationException):
        access.create_link(q1.id, alice.id, "owner")
