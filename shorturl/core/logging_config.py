import logging
import logging.handlers
import queue
import sys

from shorturl.core.config import settings
from shorturl.core.telemetry import ExcludeLoggersFilter, TelemetryHandler

_listener = None

def configure_logging():
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s | %(levelname)s | %(name)s | %(funcName)s:%(lineno)d | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    logging.getLogger("uvicorn.error").propagate = True

    logging.getLogger("uvicorn.access").disabled = True

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("redis").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    if settings.TELEMETRY_URL:
        start_telemetry(settings.TELEMETRY_URL)

    return logging.getLogger("shorturl")


def start_telemetry(endpoint: str):
    """Attach the external sink behind a queue so emitters never block on HTTP."""
    global _listener
    if _listener is not None:
        return _listener

    sink = TelemetryHandler(
        endpoint,
        package=settings.TELEMETRY_PACKAGE,
        timeout=settings.TELEMETRY_TIMEOUT,
    )
    records = queue.SimpleQueue()
    queue_handler = logging.handlers.QueueHandler(records)
    queue_handler.addFilter(ExcludeLoggersFilter())
    logging.getLogger().addHandler(queue_handler)

    _listener = logging.handlers.QueueListener(records, sink, respect_handler_level=True)
    _listener.start()
    return _listener


def stop_telemetry():
    global _listener
    if _listener is None:
        return
    _listener.stop()
    for handler in _listener.handlers:
        handler.close()
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, logging.handlers.QueueHandler):
            root.removeHandler(handler)
    _listener = None
