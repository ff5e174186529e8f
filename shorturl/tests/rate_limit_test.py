import redis.exceptions

from shorturl import RateLimitHelper
from shorturl.RateLimitHelper import check_rate_limit


class FakeRedis:
    """Just enough of the redis client surface for the fixed-window counter."""

    def __init__(self, down=False):
        self.down = down
        self.values = {}
        self.expiries = {}

    def ping(self):
        if self.down:
            raise redis.exceptions.ConnectionError("redis is down")
        return True

    def get(self, key):
        value = self.values.get(key)
        return None if value is None else str(value)

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    def __init__(self, client):
        self.client = client
        self.ops = []

    def incr(self, key, amount=1):
        self.ops.append(("incr", key, amount))

    def expire(self, key, seconds):
        self.ops.append(("expire", key, seconds))

    def execute(self):
        for op, key, arg in self.ops:
            if op == "incr":
                self.client.values[key] = self.client.values.get(key, 0) + arg
            else:
                self.client.expiries[key] = arg
        return [True] * len(self.ops)


def test_allows_until_limit():
    fake = FakeRedis()
    results = [check_rate_limit(fake, "rate_limit:1.2.3.4", 3, 900) for _ in range(4)]
    assert results == [True, True, True, False]
    assert fake.expiries == {"rate_limit:1.2.3.4": 900}


def test_fails_open_when_redis_down():
    assert check_rate_limit(FakeRedis(down=True), "rate_limit:x", 1, 60) is None


def test_middleware_returns_429(client, monkeypatch):
    from shorturl.core.config import settings

    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)
    monkeypatch.setattr(settings, "RATE_LIMIT_LIMIT", 2)
    fake = FakeRedis()
    monkeypatch.setattr("shorturl.db.Connection.database.redis_client", fake)

    statuses = [client.get("/shorturls").status_code for _ in range(3)]

    assert statuses == [200, 200, 429]
    limited = client.get("/shorturls")
    assert limited.json()["error"].startswith("Too many requests")
    assert limited.headers["retry-after"] == str(settings.RATE_LIMIT_WINDOW)
    # health checks are never limited
    assert client.get("/health").status_code == 200


def test_middleware_fails_open(client, monkeypatch):
    from shorturl.core.config import settings

    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)
    monkeypatch.setattr("shorturl.db.Connection.database.redis_client", FakeRedis(down=True))

    assert client.get("/shorturls").status_code == 200


def test_client_ip_prefers_forwarded_header():
    class Req:
        headers = {"x-forwarded-for": "203.0.113.5, 10.0.0.1"}
        client = None

    assert RateLimitHelper.get_client_ip(Req()) == "203.0.113.5"
