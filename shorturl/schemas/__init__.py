# re-export common schemas for simpler imports
from .URLCreateRequest import URLCreateRequest
from .URLInfoResponse import ClickData, URLCreateResponse, URLInfoResponse, URLStatsResponse

__all__ = [
    "URLCreateRequest",
    "URLCreateResponse",
    "URLInfoResponse",
    "URLStatsResponse",
    "ClickData",
]
