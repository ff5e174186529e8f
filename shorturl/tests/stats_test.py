def test_get_url_stats(client):
    """Test retrieving URL statistics."""
    client.post("/shorturls", json={"url": "https://example.com/stats", "shortcode": "stats1"})

    response = client.get("/shorturls/stats1")
    assert response.status_code == 200
    data = response.json()
    assert data["originalUrl"] == "https://example.com/stats"
    assert data["shortLink"] == "http://localhost:8000/stats1"
    assert data["totalClicks"] == 0
    assert data["clickData"] == []
    assert "createdAt" in data
    assert "expiry" in data


def test_get_url_stats_not_found(client):
    """Test getting stats for non-existent URL."""
    response = client.get("/shorturls/nonexistent")
    assert response.status_code == 404
    assert response.json() == {"error": "Short URL not found"}


def test_get_url_stats_hides_swept_mapping(client, expire):
    from shorturl.main import sweeper

    client.post("/shorturls", json={"url": "https://example.com/gone", "shortcode": "gone"})
    expire("gone")
    sweeper.run_once()

    assert client.get("/shorturls/gone").status_code == 404


def test_click_history_newest_first(client):
    client.post("/shorturls", json={"url": "https://example.com/h", "shortcode": "hist"})
    for ref in ("https://a.example/", "https://b.example/", "https://c.example/"):
        client.get("/hist", headers={"Referer": ref}, follow_redirects=False)

    clicks = client.get("/shorturls/hist").json()["clickData"]
    assert [c["source"] for c in clicks] == [
        "https://c.example/", "https://b.example/", "https://a.example/"
    ]
    timestamps = [c["timestamp"] for c in clicks]
    assert timestamps == sorted(timestamps, reverse=True)


def test_list_urls_empty(client):
    """Test listing URLs when database is empty."""
    response = client.get("/shorturls")
    assert response.status_code == 200
    assert response.json() == []


def test_list_urls_with_data(client, sample_urls):
    """Newest mapping first, every entry carrying its aggregates."""
    for url in sample_urls:
        client.post("/shorturls", json={"url": url})

    response = client.get("/shorturls")
    assert response.status_code == 200
    data = response.json()
    assert [item["originalUrl"] for item in data] == list(reversed(sample_urls))
    for item in data:
        assert set(item) == {
            "id", "shortLink", "originalUrl", "createdAt", "expiry", "totalClicks", "clickData"
        }
        assert item["totalClicks"] == 0
        assert item["clickData"] == []


def test_list_urls_click_aggregates(client):
    client.post("/shorturls", json={"url": "https://example.com/one", "shortcode": "one"})
    client.post("/shorturls", json={"url": "https://example.com/two", "shortcode": "two"})
    for _ in range(2):
        client.get("/one", follow_redirects=False)

    by_link = {item["shortLink"]: item for item in client.get("/shorturls").json()}
    one = by_link["http://localhost:8000/one"]
    two = by_link["http://localhost:8000/two"]

    assert one["totalClicks"] == 2
    assert len(one["clickData"]) == 2
    assert one["clickData"][0]["source"] == "Direct"
    assert two["totalClicks"] == 0
    assert two["clickData"] == []


def test_list_urls_excludes_inactive(client, expire):
    from shorturl.main import sweeper

    client.post("/shorturls", json={"url": "https://example.com/live", "shortcode": "live"})
    client.post("/shorturls", json={"url": "https://example.com/dead", "shortcode": "dead"})
    expire("dead")

    # expired but not yet swept is still listed
    assert len(client.get("/shorturls").json()) == 2

    sweeper.run_once()
    data = client.get("/shorturls").json()
    assert [item["shortLink"] for item in data] == ["http://localhost:8000/live"]


def test_list_urls_storage_failure(client, monkeypatch):
    from shorturl.core.errors import StorageFailure
    from shorturl.db import repository

    def unavailable(db):
        raise StorageFailure("Internal server error")

    monkeypatch.setattr(repository, "list_active", unavailable)
    response = client.get("/shorturls")
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
