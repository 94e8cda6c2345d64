import re

from punklist import config

STREET_ADDRESS = re.compile(
    r"\d+\s+[A-Za-z0-9]+(?:\s+[A-Za-z0-9]+)*\s+"
    r"(Street|St|Avenue|Ave|Road|Rd|Boulevard|Blvd|Drive|Dr|Lane|Ln|Way|Place|Pl|Plaza|Court|Ct)\b\.?",
    re.I,
)
LEADING_AGE = re.compile(r"^\s*\(?\s*(\d+\s?[+-]|all ages|a/a)\s*\)?\s*,?\s*", re.I)
AGE_PART = re.compile(r"^\(?\s*(\d+\s?[+-]|all ages|a/a)\s*\)?$", re.I)
TRAILING_AGE = re.compile(r"\s*\(\s*(\d+\s?[+-]|all ages|a/a)\s*\)\s*$", re.I)


def looks_like_address(text):
    return bool(text and STREET_ADDRESS.search(text))


def expand_city_abbreviation(city):
    """Map "SF", "S.F.", "Oak" and friends to full city names."""
    if not city:
        return city
    return config.CITY_ABBREVIATIONS.get(city.lower().strip(), city.strip())


def _clean_city(city, corrections):
    city = expand_city_abbreviation(city)
    if corrections is not None:
        city = corrections.apply(city, "city")
    return city or None


def parse_venue_location(venue_text, corrections=None):
    """
    Pull address and city out of a free-text venue string.
      "Venue, 123 Main St, Oakland"   -> ("123 Main St", "Oakland")
      "924 Gilman Street, Berkeley"   -> ("924 Gilman Street", "Berkeley")
      "Venue, 123 Main St"            -> ("123 Main St", None)
      "Thee Parkside, S.F."           -> (None, "San Francisco")
    Returns a dict with "address" and "city" keys (either may be None).
    """
    if not venue_text:
        return {"address": None, "city": None}

    text = LEADING_AGE.sub("", venue_text.strip())
    parts = [TRAILING_AGE.sub("", p).strip() for p in text.split(",")]
    parts = [p for p in parts if p and not AGE_PART.match(p)]

    address = None
    city = None

    if len(parts) >= 3:
        address, city = parts[1], parts[2]
    elif len(parts) == 2:
        first, second = parts
        first_is_address = looks_like_address(first)
        second_is_address = looks_like_address(second)
        if first_is_address and not second_is_address:
            address, city = first, second
        elif second_is_address:
            address = second
        else:
            city = second
    elif len(parts) == 1 and looks_like_address(parts[0]):
        address = parts[0]

    return {
        "address": address or None,
        "city": _clean_city(city, corrections) if city else None,
    }


def display_location(address, city):
    """Compose "address, city" from whichever parts are present."""
    return ", ".join(p for p in (address, city) if p) or None
