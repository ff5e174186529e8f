from typing import List
from sqlalchemy.orm import Session
import logging

from shorturl.core.config import settings
from shorturl.core.errors import NotFound
from shorturl.db import repository
from shorturl.db.Models.models import Click, ShortURL
from shorturl.schemas.URLInfoResponse import ClickData, URLInfoResponse, URLStatsResponse
from shorturl.utils.encoding import iso_z

logger = logging.getLogger(__name__)


def short_link(shortcode: str) -> str:
    return f"{settings.BASE_URL.rstrip('/')}/{shortcode}"


def _click_data(clicks: List[Click]) -> List[ClickData]:
    return [
        ClickData(timestamp=iso_z(c.timestamp), source=c.source, location=c.location)
        for c in clicks
    ]


class Analytics:
    """Click aggregates read straight from the click log, never cached."""

    @staticmethod
    def get_stats(db: Session, shortcode: str) -> URLStatsResponse:
        url_item = repository.get_active_by_shortcode(db, shortcode)
        if url_item is None:
            logger.warning(
                "Shortcode not found for stats: %s", shortcode,
                extra={"context": {"shortcode": shortcode}},
            )
            raise NotFound("Short URL not found")

        clicks = repository.list_clicks(db, url_item.id)
        return URLStatsResponse(
            short_link=short_link(url_item.shortcode),
            original_url=url_item.original_url,
            created_at=iso_z(url_item.created_at),
            expiry=iso_z(url_item.expires_at),
            total_clicks=len(clicks),
            click_data=_click_data(clicks),
        )

    @staticmethod
    def get_all(db: Session) -> List[URLInfoResponse]:
        urls: List[ShortURL] = repository.list_active(db)
        clicks_by_url = repository.list_clicks_for(db, [u.id for u in urls])
        return [
            URLInfoResponse(
                id=u.id,
                short_link=short_link(u.shortcode),
                original_url=u.original_url,
                created_at=iso_z(u.created_at),
                expiry=iso_z(u.expires_at),
                total_clicks=len(clicks_by_url[u.id]),
                click_data=_click_data(clicks_by_url[u.id]),
            ) for u in urls
        ]
