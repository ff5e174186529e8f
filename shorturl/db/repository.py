from typing import Dict, Iterable, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from datetime import datetime
import logging

from shorturl.core.errors import DuplicateShortcode, NotFound, StorageFailure
from shorturl.db.Models.models import Click, ShortURL
from shorturl.utils.encoding import minutes_from, utc_now

logger = logging.getLogger(__name__)


def _read(db: Session, what: str, query):
    try:
        return query()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Database read failed (%s): %s", what, e, extra={"context": {"operation": what}})
        raise StorageFailure("Internal server error") from e


def get_active_by_shortcode(db: Session, shortcode: str) -> Optional[ShortURL]:
    return _read(db, "get_active_by_shortcode", lambda: (
        db.query(ShortURL)
        .filter(ShortURL.shortcode == shortcode, ShortURL.is_active.is_(True))
        .first()
    ))

def shortcode_exists(db: Session, shortcode: str) -> bool:
    """Existence regardless of active state; a used code is never handed out again."""
    return _read(db, "shortcode_exists", lambda: (
        db.query(ShortURL.id).filter(ShortURL.shortcode == shortcode).first() is not None
    ))

def list_active(db: Session) -> List[ShortURL]:
    return _read(db, "list_active", lambda: (
        db.query(ShortURL)
        .filter(ShortURL.is_active.is_(True))
        .order_by(ShortURL.created_at.desc(), ShortURL.id.desc())
        .all()
    ))


def create_url(db: Session, original_url: str, shortcode: str, validity_minutes: int) -> ShortURL:
    created_at = utc_now()
    db_url = ShortURL(
        original_url=original_url,
        shortcode=shortcode,
        created_at=created_at,
        expires_at=minutes_from(created_at, validity_minutes),
        is_active=True,
    )
    try:
        db.add(db_url)
        db.commit()
        db.refresh(db_url)
        return db_url
    except IntegrityError as e:
        db.rollback()
        logger.warning(
            "IntegrityError creating ShortURL shortcode=%s: %s", shortcode, str(e.orig)
        )
        raise DuplicateShortcode(shortcode) from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "Failed to create ShortURL shortcode=%s: %s", shortcode, e,
            extra={"context": {"shortcode": shortcode}},
        )
        raise StorageFailure("Internal server error") from e


def mark_inactive(db: Session, ids: Iterable[int]) -> int:
    """Flip is_active for the given ids; rows already inactive are not counted."""
    ids = list(set(ids))
    if not ids:
        return 0
    try:
        updated = (
            db.query(ShortURL)
            .filter(ShortURL.id.in_(ids), ShortURL.is_active.is_(True))
            .update({ShortURL.is_active: False}, synchronize_session=False)
        )
        db.commit()
        return updated
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to mark %d mappings inactive: %s", len(ids), e)
        raise StorageFailure("Internal server error") from e

def find_expired_ids(db: Session, now: Optional[datetime] = None) -> List[int]:
    now = now or utc_now()
    rows = _read(db, "find_expired_ids", lambda: (
        db.query(ShortURL.id)
        .filter(ShortURL.is_active.is_(True), ShortURL.expires_at < now)
        .all()
    ))
    return [row.id for row in rows]


def create_click(
    db: Session,
    short_url_id: int,
    source: str,
    user_agent: str,
    ip_address: Optional[str],
    location: str,
) -> Click:
    if _read(db, "create_click", lambda: db.get(ShortURL, short_url_id)) is None:
        raise NotFound("Short URL not found")

    click = Click(
        short_url_id=short_url_id,
        timestamp=utc_now(),
        source=source,
        user_agent=user_agent,
        ip_address=ip_address,
        location=location,
    )
    try:
        db.add(click)
        db.commit()
        db.refresh(click)
        return click
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageFailure("Failed to record click") from e

def list_clicks(db: Session, short_url_id: int) -> List[Click]:
    return _read(db, "list_clicks", lambda: (
        db.query(Click)
        .filter(Click.short_url_id == short_url_id)
        .order_by(Click.timestamp.desc(), Click.id.desc())
        .all()
    ))

def list_clicks_for(db: Session, short_url_ids: Iterable[int]) -> Dict[int, List[Click]]:
    """Clicks for many mappings in one query, newest first, keyed by mapping id."""
    ids = list(short_url_ids)
    grouped: Dict[int, List[Click]] = {i: [] for i in ids}
    if not ids:
        return grouped
    rows = _read(db, "list_clicks_for", lambda: (
        db.query(Click)
        .filter(Click.short_url_id.in_(ids))
        .order_by(Click.short_url_id, Click.timestamp.desc(), Click.id.desc())
        .all()
    ))
    for click in rows:
        grouped[click.short_url_id].append(click)
    return grouped
