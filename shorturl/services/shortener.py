from datetime import datetime
from sqlalchemy.orm import Session
from typing import Optional
import logging

from shorturl.core.config import settings
from shorturl.core.errors import (
    AllocationExhausted,
    Conflict,
    DuplicateShortcode,
    Expired,
    InvalidInput,
    NotFound,
)
from shorturl.db import repository
from shorturl.db.Models.models import ShortURL
from shorturl.utils.encoding import (
    RESERVED_SHORT_CODES,
    as_utc,
    generate_short_code,
    is_valid_short_code,
    utc_now,
)


logger = logging.getLogger(__name__)


class URLService:

    @staticmethod
    def validate_custom_shortcode(db: Session, shortcode: str) -> str:
        if not is_valid_short_code(shortcode):
            raise InvalidInput("Shortcode must be alphanumeric and at most 20 characters")
        if shortcode in RESERVED_SHORT_CODES or repository.shortcode_exists(db, shortcode):
            logger.warning(
                "Shortcode collision: '%s'", shortcode,
                extra={"context": {"shortcode": shortcode}},
            )
            raise Conflict("Shortcode already exists")
        return shortcode

    @staticmethod
    def allocate_shortcode(db: Session, custom_shortcode: Optional[str] = None) -> str:
        """
        Pick a free shortcode. A custom one is validated and checked; otherwise
        random candidates are drawn until one is free or the retry budget runs out.
        Nothing is reserved: the insert's unique constraint has the final say.
        """
        if custom_shortcode:
            return URLService.validate_custom_shortcode(db, custom_shortcode)

        max_retries = settings.SHORTCODE_MAX_RETRIES
        for attempt in range(max_retries):
            candidate = generate_short_code(settings.SHORTCODE_LENGTH)
            if candidate in RESERVED_SHORT_CODES:
                continue
            if not repository.shortcode_exists(db, candidate):
                return candidate
            logger.info(f"Short code collision on attempt {attempt + 1}/{max_retries}")

        logger.error(f"Failed to generate unique short code after {max_retries} attempts")
        raise AllocationExhausted("Failed to generate a unique shortcode")

    @staticmethod
    def create_short_url(
        db: Session,
        original_url: str,
        validity_minutes: int,
        custom_shortcode: Optional[str] = None,
    ) -> ShortURL:
        if custom_shortcode:
            shortcode = URLService.allocate_shortcode(db, custom_shortcode)
            url_item = repository.create_url(db, original_url, shortcode, validity_minutes)
        else:
            url_item = URLService._create_with_generated_code(db, original_url, validity_minutes)

        logger.info(
            "Created shortcode %s for %s with %d minutes validity",
            url_item.shortcode, original_url[:50], validity_minutes,
            extra={"context": {"shortcode": url_item.shortcode, "validity": validity_minutes}},
        )
        return url_item

    @staticmethod
    def _create_with_generated_code(db: Session, original_url: str, validity_minutes: int) -> ShortURL:
        # A concurrent insert can still win the race after the existence check.
        for _ in range(settings.SHORTCODE_MAX_RETRIES):
            shortcode = URLService.allocate_shortcode(db)
            try:
                return repository.create_url(db, original_url, shortcode, validity_minutes)
            except DuplicateShortcode:
                logger.info("Generated shortcode %s taken at insert time, retrying", shortcode)
        raise AllocationExhausted("Failed to generate a unique shortcode")

    @staticmethod
    def resolve(db: Session, shortcode: str, now: Optional[datetime] = None) -> ShortURL:
        """Live mapping for a redirect, or NotFound / Expired as of `now`."""
        if not is_valid_short_code(shortcode):
            raise NotFound("Short URL not found")

        url_item = repository.get_active_by_shortcode(db, shortcode)
        if url_item is None:
            logger.warning(
                "Shortcode not found: %s", shortcode,
                extra={"context": {"shortcode": shortcode}},
            )
            raise NotFound("Short URL not found")

        now = now or utc_now()
        if now > as_utc(url_item.expires_at):
            logger.warning(
                "Expired URL accessed: %s", shortcode,
                extra={"context": {"shortcode": shortcode}},
            )
            if settings.LAZY_EXPIRY_ON_REDIRECT:
                repository.mark_inactive(db, [url_item.id])
            raise Expired("URL has expired")

        return url_item
