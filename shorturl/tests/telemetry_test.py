import json
import logging

import httpx
import pytest

from shorturl.core.telemetry import ExcludeLoggersFilter, TelemetryHandler, level_name


def _record(level=logging.INFO, msg="Created shortcode %s", args=("abc123",), name="shorturl.services", **extra):
    record = logging.LogRecord(name, level, __file__, 10, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def captured():
    sent = []

    def handler(request: httpx.Request):
        sent.append(request)
        return httpx.Response(200, json={"ok": True})

    return sent, httpx.Client(transport=httpx.MockTransport(handler))


def test_payload_shape(captured):
    sent, http = captured
    sink = TelemetryHandler("https://logs.example/ingest", package="url-shortener-backend", client=http)

    sink.handle(_record(context={"shortcode": "abc123"}))

    assert len(sent) == 1
    assert str(sent[0].url) == "https://logs.example/ingest"
    body = json.loads(sent[0].content)
    assert set(body) == {"timestamp", "level", "package", "message", "context"}
    assert body["level"] == "info"
    assert body["package"] == "url-shortener-backend"
    assert body["message"] == "Created shortcode abc123"
    assert body["context"]["shortcode"] == "abc123"
    assert body["context"]["logger"] == "shorturl.services"
    assert body["timestamp"].endswith("Z")


@pytest.mark.parametrize("levelno, expected", [
    (logging.DEBUG, "debug"),
    (logging.INFO, "info"),
    (logging.WARNING, "warn"),
    (logging.ERROR, "error"),
    (logging.CRITICAL, "error"),
])
def test_level_mapping(levelno, expected):
    assert level_name(levelno) == expected


def test_delivery_failure_is_swallowed(monkeypatch):
    def unreachable(request):
        raise httpx.ConnectError("collector down", request=request)

    monkeypatch.setattr(logging, "raiseExceptions", False)
    http = httpx.Client(transport=httpx.MockTransport(unreachable))
    sink = TelemetryHandler("https://logs.example/ingest", package="p", client=http)

    sink.handle(_record(level=logging.ERROR))


def test_error_status_is_swallowed(monkeypatch):
    monkeypatch.setattr(logging, "raiseExceptions", False)
    http = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(503)))
    sink = TelemetryHandler("https://logs.example/ingest", package="p", client=http)

    sink.handle(_record())


def test_http_client_records_are_filtered():
    f = ExcludeLoggersFilter()
    assert not f.filter(_record(name="httpx"))
    assert not f.filter(_record(name="httpcore.connection"))
    assert f.filter(_record(name="httpxtra"))
    assert f.filter(_record(name="shorturl.api.shortener"))


def test_queue_listener_ships_records(monkeypatch):
    from shorturl.core import logging_config

    sent = []

    def collector(request):
        sent.append(json.loads(request.content))
        return httpx.Response(202)

    def sink(endpoint, package, timeout):
        return TelemetryHandler(
            endpoint, package, client=httpx.Client(transport=httpx.MockTransport(collector))
        )

    monkeypatch.setattr(logging_config, "TelemetryHandler", sink)
    logging_config.start_telemetry("https://logs.example/ingest")
    try:
        logging.getLogger("shorturl.services.sweeper").warning(
            "Cleaned up %d expired URLs", 2, extra={"context": {"deactivated": 2}}
        )
        logging.getLogger("httpx").warning("should never be shipped")
    finally:
        # stop() drains the queue before returning
        logging_config.stop_telemetry()

    assert [p["message"] for p in sent] == ["Cleaned up 2 expired URLs"]
    assert sent[0]["level"] == "warn"
    assert sent[0]["context"]["deactivated"] == 2
