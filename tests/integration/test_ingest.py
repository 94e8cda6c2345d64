import copy
import json
from pathlib import Path

import pytest

from punklist import config
from punklist.pipeline.corrections import load_corrections
from punklist.pipeline.ingest import build_databases
from punklist.pipeline.snapshot import artists_from_snapshot

FIXTURES = Path("tests/fixtures")
GILMAN = config.GILMAN_VENUE["id"]


def load_fixture(name):
    with open(FIXTURES / name, "r") as f:
        return json.load(f)


def raw_with(*events, date="2025-11-01"):
    return {"shows": [{"day": "sat nov 1", "normalizedDate": date, "events": list(events)}]}


def event(venue_text, *bands):
    return {
        "venue": {"text": venue_text, "href": None},
        "bands": [{"text": b, "href": None} for b in bands],
        "extra": "",
    }


@pytest.fixture
def built():
    raw = load_fixture("raw_shows.json")
    prior = artists_from_snapshot(load_fixture("prior_artists.json"))
    corrections = load_corrections(FIXTURES / "corrections.json", log_func=lambda *_: None)
    messages = []
    artists, venues, metrics = build_databases(raw, prior, {}, corrections, log_func=messages.append)
    return artists, venues, metrics, messages


def test_artist_table(built):
    artists, _, _, _ = built
    assert sorted(artists) == ["1000-dreams", "crass", "mischief-brew", "trashwomen"]

    assert artists["mischief-brew"]["name"] == "Mischief Brew"
    assert artists["mischief-brew"]["aliases"] == ["Mischief Brew", "Mischif Brew"]
    assert artists["mischief-brew"]["venues"] == [GILMAN]
    assert artists["mischief-brew"]["firstSeen"] == "2025-10-25"

    assert artists["1000-dreams"]["name"] == "1,000 Dreams"
    assert artists["1000-dreams"]["aliases"] == ["1,000 Dreams", "000 Dreams"]
    assert artists["crass"]["venues"] == ["thee-parkside-sf"]


def test_prior_artist_keeps_name_id_and_enrichment(built):
    artists, _, _, _ = built
    trashwomen = artists["trashwomen"]
    assert trashwomen["name"] == "Trashwomen"
    assert trashwomen["aliases"] == ["Trashwomen", "The Trashwomen"]
    assert trashwomen["firstSeen"] == "2025-09-01"
    assert trashwomen["lastSeen"] == "2025-10-25"
    assert trashwomen["spotifyVerified"] is True
    assert trashwomen["spotifyUrl"] == "https://open.spotify.com/artist/abc"


def test_gilman_spellings_are_one_venue(built):
    _, venues, _, _ = built
    assert sorted(venues) == [GILMAN, "thee-parkside-sf"]

    gilman = venues[GILMAN]
    assert gilman["name"] == "924 Gilman Street"
    assert gilman["address"] == "924 Gilman Street"
    assert gilman["city"] == "Berkeley"
    assert gilman["aliases"] == [
        "924 Gilman Street",
        "924 Gilman Street, 18+, Berkeley",
        "924 Gilman St (all ages)",
        "924 Gilman Street, Berkeley",
    ]
    assert (gilman["firstSeen"], gilman["lastSeen"]) == ("2025-10-25", "2025-10-27")


def test_new_venue_location(built):
    _, venues, _, _ = built
    parkside = venues["thee-parkside-sf"]
    assert parkside["name"] == "Thee Parkside, S.F."
    assert parkside["address"] is None
    assert parkside["city"] == "San Francisco"
    assert parkside["normalizedName"] == "thee parkside"


def test_metrics_and_log(built):
    _, _, metrics, messages = built
    assert metrics.prior_artists == 1
    assert metrics.new_artists == 3
    assert metrics.merged_artists == 1
    assert metrics.corrected_artists == 2
    assert metrics.new_venues == 2
    assert metrics.merged_venues == 2
    assert metrics.corrected_venues == 3
    assert metrics.filtered_bands == 3
    assert metrics.filtered_names == ["Volunteer Meeting", "1", "Membership Meeting"]
    assert any('"Mischif Brew" -> "Mischief Brew"' in m for m in messages)
    assert any("Merged duplicate artist" in m and "The Trashwomen" in m for m in messages)


def test_inputs_are_not_modified():
    raw = load_fixture("raw_shows.json")
    prior = artists_from_snapshot(load_fixture("prior_artists.json"))
    raw_before = copy.deepcopy(raw)
    prior_before = copy.deepcopy(prior)

    build_databases(raw, prior, {}, log_func=lambda *_: None)

    assert raw == raw_before
    assert prior == prior_before


def test_slug_collision_gets_suffix():
    prior = {"crass": {"id": "crass", "name": "Crass (UK)", "aliases": ["Crass (UK)"], "venues": []}}
    artists, _, metrics = build_databases(raw_with(event("Thee Parkside", "Crass")), prior, log_func=lambda *_: None)
    assert artists["crass-2"]["name"] == "Crass"
    assert artists["crass"]["name"] == "Crass (UK)"
    assert metrics.slug_collisions == 1


def test_ingest_fuzzy_is_off_by_default():
    prior = {"screeching-weasel": {"id": "screeching-weasel", "name": "Screeching Weasel", "aliases": ["Screeching Weasel"]}}
    artists, _, _ = build_databases(
        raw_with(event("Thee Parkside", "Screeching Weasell")), prior, log_func=lambda *_: None
    )
    assert "screeching-weasell" in artists


def test_ingest_fuzzy_when_enabled(monkeypatch):
    monkeypatch.setattr(config, "ARTIST_INGEST_FUZZY", True)
    prior = {"screeching-weasel": {"id": "screeching-weasel", "name": "Screeching Weasel", "aliases": ["Screeching Weasel"]}}
    artists, _, metrics = build_databases(
        raw_with(event("Thee Parkside", "Screeching Weasell")), prior, log_func=lambda *_: None
    )
    assert sorted(artists) == ["screeching-weasel"]
    assert artists["screeching-weasel"]["name"] == "Screeching Weasel"
    assert artists["screeching-weasel"]["aliases"] == ["Screeching Weasel", "Screeching Weasell"]
    assert metrics.merged_artists == 1


def test_exact_match_takes_scraped_capitalization():
    prior = {"crass": {"id": "crass", "name": "CRASS", "aliases": ["CRASS"], "venues": []}}
    artists, _, _ = build_databases(raw_with(event("Thee Parkside", "Crass")), prior, log_func=lambda *_: None)
    assert artists["crass"]["name"] == "Crass"
    assert artists["crass"]["aliases"] == ["CRASS", "Crass"]


def test_short_names_do_not_replace_existing():
    prior = {"x": {"id": "x", "name": "X", "aliases": ["X"], "venues": []}}
    artists, _, _ = build_databases(raw_with(event("Thee Parkside", "x")), prior, log_func=lambda *_: None)
    assert artists["x"]["name"] == "X"


def test_venue_matched_by_address_fills_city():
    prior_venues = {
        "bottom-of-the-hill": {
            "id": "bottom-of-the-hill",
            "name": "Bottom of the Hill",
            "aliases": ["Bottom of the Hill"],
            "address": "1233 17th Street",
            "city": None,
        }
    }
    _, venues, _ = build_databases(
        raw_with(event("BOTH, 1233 17th St., S.F.", "Crass")),
        {},
        prior_venues,
        log_func=lambda *_: None,
    )
    assert sorted(venues) == ["bottom-of-the-hill"]
    both = venues["bottom-of-the-hill"]
    assert both["name"] == "Bottom of the Hill"
    assert both["address"] == "1233 17th Street"
    assert both["city"] == "San Francisco"
    assert both["aliases"] == ["Bottom of the Hill", "BOTH, 1233 17th St., S.F."]
