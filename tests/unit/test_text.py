from punklist.utils.text import (
    match_key,
    normalize,
    normalize_for_matching,
    normalize_venue_name,
    slugify,
)


def test_normalize():
    assert normalize("  The Trashwomen!! ") == "the trashwomen"
    assert normalize("Mischief   Brew\n") == "mischief brew"
    assert normalize("1,000 Dreams") == "1000 dreams"
    assert normalize("") == ""
    assert normalize(None) == ""


def test_normalize_for_matching_strips_leading_the():
    assert normalize_for_matching("The Trashwomen") == "trashwomen"
    assert normalize_for_matching("Trashwomen") == "trashwomen"
    assert normalize_for_matching("Theatre of Hate") == "theatre of hate"
    assert normalize_for_matching("Bring Me The Horizon") == "bring me the horizon"


def test_normalize_venue_name_gilman_variants():
    assert normalize_venue_name("924 Gilman Street, 18+, Berkeley") == "924 gilman st"
    assert normalize_venue_name("924 Gilman St (all ages)") == "924 gilman st"
    assert normalize_venue_name("924 Gilman Street, Berkeley, CA") == "924 gilman st"


def test_normalize_venue_name_strips_city_and_noise():
    assert normalize_venue_name("Thee Parkside, S.F.") == "thee parkside"
    assert normalize_venue_name("Thee Parkside, S.F. (21+)") == "thee parkside"
    assert normalize_venue_name("Eagle Tavern, SF, sold out") == "eagle tavern"
    assert normalize_venue_name("Bottom of the Hill, 1233 17th Street, SF") == "bottom of the hill 1233 17th st"


def test_normalize_venue_name_keeps_city_words_without_comma():
    assert normalize_venue_name("Royal Oak") == "royal oak"
    assert normalize_venue_name("Oakland Metro Operahouse") == "oakland metro operahouse"


def test_slugify():
    assert slugify("924 Gilman Street") == "924-gilman-street"
    assert slugify("The Trashwomen!") == "the-trashwomen"
    assert slugify("  --Crass-- ") == "crass"
    assert slugify("1,000 Dreams") == "1000-dreams"
    assert slugify("AC/DC  Tribute") == "acdc-tribute"
    assert slugify("!!!") == ""


def test_match_key_falls_back_for_punctuation_names():
    assert match_key("Crass") == "crass"
    assert match_key("!!!") == "!!!"
    assert match_key(None) == ""
