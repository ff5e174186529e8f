from fastapi import APIRouter, Depends, status, BackgroundTasks, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session
from typing import List
import logging

from shorturl.db.Connection import database
from shorturl.RateLimitHelper import get_client_ip
from shorturl.schemas.URLCreateRequest import URLCreateRequest
from shorturl.schemas.URLInfoResponse import URLCreateResponse, URLInfoResponse, URLStatsResponse
from shorturl.services.shortener import URLService
from shorturl.services.Analytics import Analytics, short_link
from shorturl.services import metrics
from shorturl.utils.encoding import iso_z

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/shorturls", response_model=URLCreateResponse, status_code=status.HTTP_201_CREATED, tags=["shorturls"])
def shorten_url_endpoint(url_request: URLCreateRequest, db: Session = Depends(database.get_db)):
    db_url = URLService.create_short_url(
        db,
        url_request.url,
        url_request.validity_minutes,
        url_request.shortcode,
    )
    logger.info(f"API success: Shortened {db_url.original_url[:50]}... to {db_url.shortcode}")
    return URLCreateResponse(
        short_link=short_link(db_url.shortcode),
        expiry=iso_z(db_url.expires_at),
    )

@router.get("/shorturls", response_model=List[URLInfoResponse], tags=["shorturls"])
def list_urls_endpoint(db: Session = Depends(database.get_db)):
    urls = Analytics.get_all(db)
    logger.info(f"Retrieved {len(urls)} URLs")
    return urls

@router.get("/shorturls/{shortcode}", response_model=URLStatsResponse, tags=["shorturls"])
def get_url_statistics_endpoint(shortcode: str, db: Session = Depends(database.get_db)):
    stats = Analytics.get_stats(db, shortcode)
    logger.info(f"Retrieved statistics for {shortcode}")
    return stats

@router.get("/{shortcode}", tags=["redirect"])
def redirect_to_url_endpoint(shortcode: str, request: Request, background_tasks: BackgroundTasks, db: Session = Depends(database.get_db)):
    db_url = URLService.resolve(db, shortcode)

    # Click accounting happens after the response and never fails the redirect.
    client_ip = get_client_ip(request)
    metrics.schedule_click(request, background_tasks, db_url.id, client_ip)

    logger.info(
        "Redirect for %s from %s", shortcode, client_ip,
        extra={"context": {"shortcode": shortcode, "ip": client_ip}},
    )
    return RedirectResponse(url=db_url.original_url, status_code=status.HTTP_302_FOUND)
