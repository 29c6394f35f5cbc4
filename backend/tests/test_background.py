from datetime import timedelta

from background import clean_expired_links
from core.clock import utcnow
from models.share import Permission, ShareLink
from services.access_service import AccessService
from services.node_service import NodeService


def test_clean_expired_links_removes_only_expired(db, make_user):
    owner = make_user()
    nodes = NodeService(db)
    access = AccessService(db)
    old = nodes.create_folder(owner.id, "old")
    fresh = nodes.create_folder(owner.id, "fresh")
    forever = nodes.create_folder(owner.id, "forever")

    expired = access.create_link(old.id, owner.id, Permission.VIEW, expires_in_hours=1)
    expired.expires_at = utcnow() - timedelta(hours=2)
    db.commit()
    access.create_link(fresh.id, owner.id, Permission.VIEW, expires_in_hours=24)
    access.create_link(forever.id, owner.id, Permission.EDIT)

    assert clean_expired_links(db) == 1
    remaining = {link.node_id for link in db.query(ShareLink).all()}
    assert remaining == {fresh.id, forever.id}

    assert clean_expired_links(db) == 0
