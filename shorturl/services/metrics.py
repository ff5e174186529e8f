from shorturl.db.Connection import database
from shorturl.db import repository
from typing import Optional
import logging

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "Unknown Location"
MAX_SOURCE_LENGTH = 255


def locate_ip(ip_address: Optional[str]) -> str:
    # No geolocation provider is wired in.
    return UNKNOWN_LOCATION


def record_click(
        short_url_id: int,
        source: str,
        user_agent: str,
        ip_address: Optional[str],
        location: str = UNKNOWN_LOCATION,
):
        """
        Append one click for a mapping. Runs after the redirect has been sent,
        so failures are logged and dropped instead of raised.
        """
        db = database.SessionLocal()
        try:
                click = repository.create_click(
                        db,
                        short_url_id,
                        (source or "Direct")[:MAX_SOURCE_LENGTH],
                        user_agent or "Unknown",
                        ip_address,
                        location,
                )
                logger.debug("metrics.record_click: click %s stored for mapping %s", click.id, short_url_id)
                return click
        except Exception:
                logger.exception(
                        "metrics.record_click: failed to record click for mapping %s", short_url_id,
                        extra={"context": {"short_url_id": short_url_id}},
                )
                return None
        finally:
                db.close()

def schedule_click(request, background_tasks, short_url_id: int, client_ip: Optional[str]):
    source = request.headers.get("referer") or request.headers.get("referrer") or "Direct"
    user_agent = request.headers.get("user-agent") or "Unknown"
    background_tasks.add_task(
        record_click, short_url_id, source, user_agent, client_ip, locate_ip(client_ip)
    )
