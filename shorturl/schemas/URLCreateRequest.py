from pydantic import BaseModel, Field, StrictInt, field_validator
from typing import Optional

from shorturl.core.config import settings
from shorturl.utils.encoding import is_valid_short_code, is_valid_url

# Request DTOs
class URLCreateRequest(BaseModel):
    url: str
    validity: Optional[StrictInt] = Field(default=None, description="Minutes until expiry (default 30)")
    shortcode: Optional[str] = Field(default=None, description="Custom shortcode")

    @field_validator('url')
    def validate_url(cls, v):
        if not v:
            raise ValueError('URL is required')
        if not is_valid_url(v):
            raise ValueError('Invalid URL format')
        return v

    @field_validator('validity')
    def validate_validity(cls, v):
        if v is None:
            return v
        if v < 1 or v > settings.MAX_VALIDITY_MINUTES:
            raise ValueError(
                f'Validity must be between 1 and {settings.MAX_VALIDITY_MINUTES} minutes (1 week)'
            )
        return v

    @field_validator('shortcode')
    def validate_shortcode(cls, v):
        # an empty shortcode means "generate one"
        if not v:
            return None
        if not is_valid_short_code(v):
            raise ValueError('Shortcode must be alphanumeric and at most 20 characters')
        return v

    @property
    def validity_minutes(self) -> int:
        return self.validity if self.validity is not None else settings.DEFAULT_VALIDITY_MINUTES
