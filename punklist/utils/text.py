import re

from punklist import config

STREET_SYNONYMS = {
    "street": "st",
    "avenue": "ave",
    "av": "ave",
    "boulevard": "blvd",
    "road": "rd",
    "drive": "dr",
    "place": "pl",
    "lane": "ln",
    "court": "ct",
}

AGE_RESTRICTION = re.compile(r"\b\d+\s?[+-](?!\d)")
VENUE_NOISE = re.compile(r"\b(all ages|a/a|sold out|presents)\b")


def normalize(text):
    """Lowercase, drop everything outside [a-z0-9 ], collapse whitespace."""
    if not text:
        return ""
    text = re.sub(r"[^a-z0-9\s]", "", text.lower())
    return re.sub(r"\s+", " ", text).strip()


def normalize_for_matching(text):
    """
    Normalize for artist matching: same as normalize() but without a
    leading "the", so "The Band" and "Band" land on the same key.
    """
    normalized = normalize(text)
    if normalized.startswith("the "):
        normalized = normalized[4:]
    return normalized


def _city_suffix_pattern():
    cities = sorted(config.CITY_ABBREVIATIONS, key=len, reverse=True)
    alternation = "|".join(re.escape(c) for c in cities)
    return re.compile(rf",\s*(?:{alternation})\.?\s*(?:,?\s*ca(?:lifornia)?)?\s*$")


_CITY_SUFFIX = _city_suffix_pattern()


def normalize_venue_name(text):
    """
    Aggressive venue key used only for dedup, never for display.
    "924 Gilman Street, 18+, Berkeley" and "924 Gilman St (all ages)"
    both become "924 gilman st".
    """
    if not text:
        return ""
    lowered = text.lower()
    lowered = AGE_RESTRICTION.sub(" ", lowered)
    lowered = VENUE_NOISE.sub(" ", lowered)
    lowered = re.sub(r"\(\s*\)", " ", lowered)
    lowered = re.sub(r"(,\s*)+", ", ", lowered).strip(" ,")
    lowered = _CITY_SUFFIX.sub("", lowered)
    tokens = normalize(lowered).split()
    return " ".join(STREET_SYNONYMS.get(token, token) for token in tokens)


def slugify(text):
    """Stable id for an entity: lowercase words joined by single hyphens."""
    text = (text or "").lower().strip()
    text = re.sub(r"[^a-z0-9\s-]", "", text)
    text = re.sub(r"\s+", "-", text)
    text = re.sub(r"-+", "-", text)
    return text.strip("-")


def match_key(text):
    """normalize(), falling back to the raw lowercase text for names like "!!!"."""
    return normalize(text) or (text or "").lower().strip()
