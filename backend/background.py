import asyncio
from database import SessionLocal
from models.share import ShareLink
from sqlalchemy.orm import Session
from core.clock import utcnow
from core.config import settings
from core.logger import logger


async def cleanup_expired_links():
    while True:
        db = SessionLocal()
        try:
            clean_expired_links(db)
        except Exception as e:
            logger.error(f"Share link cleanup failed: {e}")
        finally:
            db.close()

        await asyncio.sleep(settings.LINK_CLEANUP_INTERVAL_SECONDS)


def clean_expired_links(db: Session) -> int:
    """Delete share links whose expiry has passed. Returns how many were removed."""
    cutoff = utcnow()

    try:
        removed = (
            db.query(ShareLink)
            .filter(ShareLink.expires_at.is_not(None), ShareLink.expires_at <= cutoff)
            .delete(synchronize_session=False)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    if removed:
        logger.info(f"Removed {removed} expired share links")
    return removed
