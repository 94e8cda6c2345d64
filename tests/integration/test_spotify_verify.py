import pytest

responses = pytest.importorskip("responses")

from punklist import config
from punklist import spotify_verify
from punklist.spotify_verify import (
    reset_spotify_token,
    verify_artist,
    verify_artists,
)


@pytest.fixture(autouse=True)
def spotify_env(monkeypatch):
    monkeypatch.setattr(config, "SPOTIFY_CLIENT_ID", "client-id")
    monkeypatch.setattr(config, "SPOTIFY_CLIENT_SECRET", "client-secret")
    monkeypatch.setattr("punklist.spotify_verify.time.sleep", lambda *_: None)
    reset_spotify_token()
    yield
    reset_spotify_token()


def artist_item(name, artist_id="x1"):
    return {
        "name": name,
        "id": artist_id,
        "external_urls": {"spotify": f"https://open.spotify.com/artist/{artist_id}"},
        "followers": {"total": 1200},
        "popularity": 31,
        "genres": ["punk", "garage rock"],
    }


def search_body(*items):
    return {"artists": {"items": list(items)}}


def add_token(rsps):
    rsps.add(rsps.POST, config.SPOTIFY_TOKEN_URL, json={"access_token": "tok", "expires_in": 3600}, status=200)


def test_exact_match_is_verified():
    with responses.RequestsMock() as rsps:
        add_token(rsps)
        rsps.add(rsps.GET, config.SPOTIFY_SEARCH_URL, json=search_body(artist_item("Trashwomen")), status=200)

        token = spotify_verify.get_spotify_token()
        result = verify_artist("The Trashwomen", token)

    assert token == "tok"
    assert result["found"] is True
    assert result["spotifyUrl"] == "https://open.spotify.com/artist/x1"
    data = result["spotifyData"]
    assert data["spotifyName"] == "Trashwomen"
    assert data["scrapedName"] == "The Trashwomen"
    assert data["followers"] == 1200
    assert data["genres"] == ["punk", "garage rock"]
    assert data["matchType"] == "exact"
    assert data["searchResults"] == 1


def test_loose_candidates_are_not_found():
    with responses.RequestsMock() as rsps:
        rsps.add(
            rsps.GET,
            config.SPOTIFY_SEARCH_URL,
            json=search_body(artist_item("Nobody Band Tribute"), artist_item("Nobodies")),
            status=200,
        )

        result = verify_artist("Nobody Band", "tok")

    assert result["found"] is False
    assert result["spotifyUrl"] == "https://open.spotify.com/search/Nobody%20Band"
    assert result["spotifyData"]["notFound"] is True
    assert result["spotifyData"]["searchResults"] == 2


def test_rate_limit_is_retried():
    with responses.RequestsMock() as rsps:
        rsps.add(rsps.GET, config.SPOTIFY_SEARCH_URL, status=429, headers={"Retry-After": "0"})
        rsps.add(rsps.GET, config.SPOTIFY_SEARCH_URL, json=search_body(artist_item("Crass")), status=200)

        result = verify_artist("Crass", "tok")

    assert result["found"] is True


def test_expired_token_is_refreshed_once():
    with responses.RequestsMock() as rsps:
        rsps.add(rsps.GET, config.SPOTIFY_SEARCH_URL, status=401, json={"error": {"message": "expired"}})
        add_token(rsps)
        rsps.add(rsps.GET, config.SPOTIFY_SEARCH_URL, json=search_body(artist_item("Crass")), status=200)

        result = verify_artist("Crass", "stale")

    assert result["found"] is True


def test_server_error_is_recorded():
    with responses.RequestsMock() as rsps:
        rsps.add(rsps.GET, config.SPOTIFY_SEARCH_URL, status=500, json={"error": {"message": "boom"}})

        result = verify_artist("Crass", "tok")

    assert result["found"] is False
    assert result["spotifyData"]["error"] == "http 500: boom"
    assert result["spotifyUrl"] == "https://open.spotify.com/search/Crass"


def test_verify_artists_saves_after_each_batch():
    artists = [
        {"id": "crass", "name": "Crass"},
        {"id": "neurosis", "name": "Neurosis"},
    ]
    saved = []
    messages = []

    with responses.RequestsMock() as rsps:
        add_token(rsps)
        rsps.add(rsps.GET, config.SPOTIFY_SEARCH_URL, json=search_body(artist_item("Crass", "c1")), status=200)
        rsps.add(rsps.GET, config.SPOTIFY_SEARCH_URL, json=search_body(), status=200)

        results = verify_artists(
            artists,
            batch_size=1,
            batch_delay=0,
            save_func=lambda r: saved.append(dict(r)),
            log_func=messages.append,
        )

    assert results["crass"]["found"] is True
    assert results["neurosis"]["found"] is False
    assert [sorted(s) for s in saved] == [["crass"], ["crass", "neurosis"]]
    assert "1 found, 1 not found" in messages[-1]


def test_verify_artists_without_credentials(monkeypatch):
    monkeypatch.setattr(config, "SPOTIFY_CLIENT_ID", None)
    messages = []
    assert verify_artists([{"id": "crass", "name": "Crass"}], log_func=messages.append) == {}
    assert "skipped" in messages[0]
