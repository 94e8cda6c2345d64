import re

from punklist import config
from punklist.utils.text import normalize

NON_ARTIST_TERMS = {
    # fragment left over when "1,000 Dreams" is split on its comma
    "1",
    "membership meeting",
    "member meeting",
    "members meeting",
    "venue meeting",
    "staff meeting",
    "volunteer meeting",
    "board meeting",
    "private event",
    "private party",
    "closed",
    "doors",
    "soundcheck",
    "cleanup",
    "setup",
    "teardown",
    "break",
    "intermission",
    "tbd",
    "tba",
    "to be announced",
    "to be determined",
    "screening",
    "film screening",
    "movie screening",
    "documentary screening",
    "film",
    "movie",
    "documentary",
    "cinema",
    "workshop",
    "talk",
    "lecture",
    "discussion",
    "fundraiser",
    "benefit",
    "memorial",
    "tribute",
    "open mic",
    "karaoke",
    "trivia",
    "trivia night",
    "comedy",
    "comedy show",
    "stand-up",
    "standup",
    "poetry",
    "poetry reading",
    "book reading",
    "art opening",
    "art show",
    "gallery opening",
    "exhibition",
    "book launch",
    "author reading",
    "panel discussion",
    "q&a",
    "meet and greet",
    "signing",
    "dj set",
}

CANCELLED_PATTERNS = [
    re.compile(r"^cancelled:", re.I),
    re.compile(r"^canceled:", re.I),
    re.compile(r"^probably cancelled:", re.I),
    re.compile(r"^postponed:", re.I),
    re.compile(r"^moved:", re.I),
    re.compile(r"^rescheduled:", re.I),
]

EVENT_PATTERNS = [
    re.compile(r"^screening\s+of\s+", re.I),
    re.compile(r"\s+screening$", re.I),
    re.compile(r"^film\s+screening", re.I),
    re.compile(r"^movie\s+screening", re.I),
    re.compile(r"^film:\s+", re.I),
    re.compile(r"^movie:\s+", re.I),
    re.compile(r"^documentary:\s+", re.I),
    re.compile(r"\s+presents\s+", re.I),
    re.compile(r"\s+featuring\s+", re.I),
    re.compile(r"^benefit\s+for\s+", re.I),
    re.compile(r"^memorial\s+for\s+", re.I),
    re.compile(r"^tribute\s+to\s+", re.I),
    re.compile(r"^fundraiser\s+for\s+", re.I),
    re.compile(r"open\s+mic(\s+night)?$", re.I),
    re.compile(r"comedy\s+(show|night)$", re.I),
    re.compile(r"trivia\s+night$", re.I),
    re.compile(r"^dj\s+night$", re.I),
    re.compile(r"^karaoke$", re.I),
    re.compile(r"birthday\s+(bash|celebration|party)", re.I),
    re.compile(r"'s\s.*birthday", re.I),
    re.compile(r"\d+(st|nd|rd|th)\s+birthday", re.I),
    re.compile(r"bday\s+bash", re.I),
]

# Listing boilerplate that sometimes lands in a band link
BOILERPLATE_PATTERNS = [
    re.compile(r"^\d{1,2}(:\d{2})?\s*(am|pm|a\.m\.|p\.m\.)?\s*$"),
    re.compile(r"^\d{1,2}(:\d{2})?\s*(am|pm|a\.m\.|p\.m\.)?\s*-\s*\d{1,2}(:\d{2})?\s*(am|pm|a\.m\.|p\.m\.)?\s*$"),
    re.compile(r"^\$\d+(\.\d{2})?(\s*-\s*\$\d+(\.\d{2})?)?$"),
    re.compile(r"^\$\d+(\.\d{2})?\s*/\s*\$\d+(\.\d{2})?$"),
    re.compile(r"^(free|sold out|cancelled|postponed|tbd|tbh|tba)$"),
    re.compile(r"^(doors?|show|music|live|event|concert|performance)\s*(at|@)?\s*\d"),
    re.compile(r"^(early show|late show|matinee|all ages|21\+|18\+|over \d+)$"),
    re.compile(r"^(advance|presale|at door|online|tickets?)$"),
    re.compile(r"^(info|information|details|more info|website|link)$"),
    re.compile(r"^(featuring|feat\.|ft\.|with|w/|and|&|\+)$"),
    re.compile(r"^(dj|mc|host|hosted by|presents?|proudly presents?)$"),
    re.compile(r"^(special guests?|surprise guests?|more tba|lineup tba)$"),
    re.compile(r"^(opening|opener|support|supporting)$"),
]


def is_non_artist(name):
    """
    Return True for calendar entries that aren't performers: meetings,
    placeholders, cancelled-show markers, screenings and other event types,
    announcements, and listing boilerplate.
    """
    if not name:
        return True

    lowered = name.lower().strip()
    if lowered in NON_ARTIST_TERMS or normalize(name) in NON_ARTIST_TERMS:
        return True

    if any(pattern.search(name) for pattern in CANCELLED_PATTERNS):
        return True

    if any(pattern.search(name) for pattern in EVENT_PATTERNS):
        return True

    if len(name) > config.MAX_ARTIST_NAME_LENGTH:
        return True

    # announcements read like several sentences
    if name.count(". ") >= 2:
        return True

    return any(pattern.search(lowered) for pattern in BOILERPLATE_PATTERNS)


def is_venue_administrative(name, venues):
    """
    924 Gilman lists its membership meetings on the calendar. An entry seen
    at exactly one venue, that venue being Gilman, with "meeting" in the
    name, is administrative. Venues may be display names or slugs.
    """
    venues = [v for v in (venues or []) if v]
    if len(venues) != 1:
        return False
    venue = normalize(venues[0].replace("-", " "))
    return "924 gilman" in venue and "meeting" in (name or "").lower()
