import pytest

from punklist import config
from punklist.pipeline.corrections import CorrectionTable
from punklist.pipeline.match import (
    NO_MATCH,
    AliasMatch,
    CorrectionMatch,
    EntityIndex,
    ExactMatch,
    FuzzyMatch,
    NoMatch,
    is_gilman,
    match_artist,
    match_venue,
)


def artist(artist_id, name, aliases=None):
    return {"id": artist_id, "name": name, "aliases": aliases or [name]}


def venue(venue_id, name, aliases=None, address=None, city=None):
    return {
        "id": venue_id,
        "name": name,
        "aliases": aliases or [name],
        "address": address,
        "city": city,
    }


@pytest.fixture
def artist_index():
    return EntityIndex(
        "artist",
        {
            "crass": artist("crass", "Crass"),
            "crasss": artist("crasss", "Crasss"),
            "trashwomen": artist("trashwomen", "Trashwomen"),
            "mischief-brew": artist("mischief-brew", "Mischief Brew"),
            "screeching-weasel": artist("screeching-weasel", "Screeching Weasel"),
            "green-day": artist("green-day", "Green Day", ["Green Day", "Sweet Children"]),
        },
    )


def test_exact_match_is_case_and_punctuation_insensitive(artist_index):
    assert match_artist("CRASS!", artist_index) == ExactMatch("crass")


def test_exact_outranks_fuzzy(artist_index):
    assert match_artist("Crass", artist_index) == ExactMatch("crass")
    assert match_artist("Crasss", artist_index) == ExactMatch("crasss")


def test_leading_the_is_ignored(artist_index):
    assert match_artist("The Trashwomen", artist_index) == AliasMatch("trashwomen")


def test_alias_match(artist_index):
    assert match_artist("sweet children", artist_index) == AliasMatch("green-day")


def test_correction_match_carries_canonical_name(artist_index):
    corrections = CorrectionTable(artist={"mischif brew": "Mischief Brew"})
    result = match_artist("Mischif Brew", artist_index, corrections)
    assert result == CorrectionMatch("mischief-brew", "Mischief Brew")


def test_correction_without_record_is_no_match():
    corrections = CorrectionTable(artist={"mischif brew": "Mischief Brew"})
    assert match_artist("Mischif Brew", EntityIndex("artist"), corrections) == NO_MATCH


def test_fuzzy_respects_threshold(artist_index):
    # two transposed letters out of seventeen: ~0.88
    assert match_artist("Screeching Weasle", artist_index, threshold=0.9) == NO_MATCH
    result = match_artist("Screeching Weasle", artist_index, threshold=0.85)
    assert isinstance(result, FuzzyMatch)
    assert result.entity_id == "screeching-weasel"
    assert result.score == pytest.approx(15 / 17)


def test_fuzzy_can_be_disabled(artist_index):
    assert match_artist("Screeching Weasle", artist_index, threshold=0.5, fuzzy=False) == NO_MATCH


def test_empty_text_is_no_match(artist_index):
    assert match_artist("", artist_index) == NO_MATCH
    assert match_artist("   ", artist_index) == NO_MATCH
    assert match_artist(None, artist_index).entity_id is None


def test_first_record_keeps_a_shared_key():
    index = EntityIndex(
        "artist",
        {
            "a": artist("a", "Ghost", ["Ghost", "Spectre"]),
            "b": artist("b", "Spectre"),
        },
    )
    assert match_artist("Spectre", index) == ExactMatch("b")
    assert index.by_alias["spectre"] == "a"


def test_index_add_updates_lookups():
    index = EntityIndex("artist")
    assert len(index) == 0
    index.add(artist("crass", "Crass"))
    assert "crass" in index
    assert index.get("crass")["name"] == "Crass"
    assert match_artist("crass", index) == ExactMatch("crass")


@pytest.mark.parametrize(
    "text",
    ["924 Gilman Street, 18+, Berkeley", "924 Gilman St (all ages)", "924 GILMAN", "Gilman St 924"],
)
def test_gilman_variants(text):
    assert is_gilman(text)
    assert match_venue(text, EntityIndex("venue")) == CorrectionMatch(
        config.GILMAN_VENUE["id"], config.GILMAN_VENUE["name"]
    )


def test_not_gilman():
    assert not is_gilman("Gilman Brewing")
    assert not is_gilman("924 Valencia")


@pytest.fixture
def venue_index():
    return EntityIndex(
        "venue",
        {
            "thee-parkside": venue("thee-parkside", "Thee Parkside", city="San Francisco"),
            "bottom-of-the-hill": venue(
                "bottom-of-the-hill", "Bottom of the Hill", address="1233 17th Street", city="San Francisco"
            ),
            "the-warehouse": venue("the-warehouse", "The Warehouse", address="Warehouse"),
        },
    )


def test_venue_exact(venue_index):
    assert match_venue("thee parkside", venue_index) == ExactMatch("thee-parkside")


def test_venue_fuzzy_ignores_city_and_age_noise(venue_index):
    assert match_venue("Thee Parkside, S.F. (21+)", venue_index) == FuzzyMatch("thee-parkside", 1.0)


def test_venue_address_shortcut(venue_index):
    result = match_venue("BOTH, 1233 17th St., S.F.", venue_index)
    assert result == FuzzyMatch("bottom-of-the-hill", config.ADDRESS_MATCH_SCORE)


def test_venue_address_matches_whole_street_numbers():
    index = EntityIndex("venue", {"club-a": venue("club-a", "Club A", address="23 Main St")})
    assert index.address_match("Different Club, 123 Main St, Oakland") is None
    assert match_venue("Different Club, 123 Main St, Oakland", index) == NO_MATCH
    assert index.address_match("Club A, 23 Main St, Oakland") == "club-a"


def test_venue_address_needs_a_street_number(venue_index):
    assert "warehouse" not in venue_index.addresses
    assert match_venue("Old Warehouse Party Space", venue_index) == NO_MATCH


def test_venue_no_fuzzy(venue_index):
    assert match_venue("Thee Parkside, S.F.", venue_index, fuzzy=False) == NO_MATCH


def test_venue_correction(venue_index):
    corrections = CorrectionTable(venue={"the parkside": "Thee Parkside"})
    assert match_venue("The Parkside", venue_index, corrections) == CorrectionMatch(
        "thee-parkside", "Thee Parkside"
    )


def test_no_match_singleton():
    assert NO_MATCH == NoMatch()
    assert NO_MATCH.entity_id is None
