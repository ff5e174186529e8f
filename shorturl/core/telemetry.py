import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

# loggers whose records would loop back through the sink
EXCLUDED_LOGGERS = ("httpx", "httpcore")


def level_name(levelno: int) -> str:
    """Collapse stdlib levels onto the collector's info/warn/error/debug."""
    if levelno >= logging.ERROR:
        return "error"
    if levelno >= logging.WARNING:
        return "warn"
    if levelno >= logging.INFO:
        return "info"
    return "debug"


class ExcludeLoggersFilter(logging.Filter):
    def __init__(self, prefixes=EXCLUDED_LOGGERS):
        super().__init__()
        self.prefixes = tuple(prefixes)

    def filter(self, record: logging.LogRecord) -> bool:
        return not any(
            record.name == p or record.name.startswith(p + ".") for p in self.prefixes
        )


class TelemetryHandler(logging.Handler):
    """
    Ships log records to an external collector as JSON:
    {timestamp, level, package, message, context}.

    Meant to sit behind a QueueListener so request threads never wait on it.
    Delivery failures go through handleError and are otherwise dropped.
    """

    def __init__(
        self,
        endpoint: str,
        package: str,
        timeout: float = 2.0,
        client: Optional[httpx.Client] = None,
    ):
        super().__init__()
        self.endpoint = endpoint
        self.package = package
        self._client = client or httpx.Client(
            timeout=timeout,
            headers={"User-Agent": "url-shortener-telemetry/1.0"},
        )

    def build_payload(self, record: logging.LogRecord) -> dict:
        context = getattr(record, "context", None) or {}
        return {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": level_name(record.levelno),
            "package": self.package,
            "message": record.getMessage(),
            "context": {"logger": record.name, **context},
        }

    def emit(self, record: logging.LogRecord) -> None:
        try:
            response = self._client.post(self.endpoint, json=self.build_payload(record))
            response.raise_for_status()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        try:
            self._client.close()
        finally:
            super().close()
