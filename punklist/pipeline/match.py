from dataclasses import dataclass
from typing import Union

from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

from punklist import config
from punklist.pipeline.corrections import CorrectionTable
from punklist.utils.text import match_key, normalize, normalize_for_matching, normalize_venue_name


@dataclass(frozen=True)
class NoMatch:
    entity_id = None


@dataclass(frozen=True)
class ExactMatch:
    entity_id: str


@dataclass(frozen=True)
class AliasMatch:
    entity_id: str


@dataclass(frozen=True)
class FuzzyMatch:
    entity_id: str
    score: float


@dataclass(frozen=True)
class CorrectionMatch:
    entity_id: str
    canonical_name: str


MatchResult = Union[NoMatch, ExactMatch, AliasMatch, FuzzyMatch, CorrectionMatch]

NO_MATCH = NoMatch()


class EntityIndex:
    """
    Lookup tables over one entity table (artists or venues).
    Keys point at record ids; the first record to claim a key keeps it.
    Call add() again after a record's name or aliases change.
    """

    def __init__(self, kind, records=None):
        self.kind = kind
        self.records = {}
        self.by_name = {}
        self.by_article = {}
        self.by_alias = {}
        self.addresses = {}
        self._fuzzy_seen = set()
        self._fuzzy_keys = []
        self._fuzzy_ids = []
        self._venue_keys = []
        self._venue_ids = []
        for record in (records or {}).values():
            self.add(record)

    def __contains__(self, entity_id):
        return entity_id in self.records

    def __len__(self):
        return len(self.records)

    def get(self, entity_id):
        return self.records.get(entity_id)

    def add(self, record):
        entity_id = record["id"]
        self.records[entity_id] = record

        name = record.get("name") or ""
        self.by_name.setdefault(match_key(name), entity_id)
        self._add_fuzzy(match_key(name), entity_id)
        if self.kind == "artist":
            article_key = normalize_for_matching(name)
            if article_key:
                self.by_article.setdefault(article_key, entity_id)

        for alias in record.get("aliases") or []:
            key = match_key(alias)
            if key:
                self.by_alias.setdefault(key, entity_id)
                self._add_fuzzy(key, entity_id)

        if self.kind == "venue":
            for text in [name] + list(record.get("aliases") or []):
                self._add_venue_key(normalize_venue_name(text), entity_id)
            address_key = normalize_venue_name(record.get("address"))
            # "Warehouse" alone would swallow half the calendar
            if address_key and any(c.isdigit() for c in address_key):
                self.addresses.setdefault(address_key, entity_id)

    def _add_fuzzy(self, key, entity_id):
        if key and (key, entity_id) not in self._fuzzy_seen:
            self._fuzzy_seen.add((key, entity_id))
            self._fuzzy_keys.append(key)
            self._fuzzy_ids.append(entity_id)

    def _add_venue_key(self, key, entity_id):
        if key and ("venue", key, entity_id) not in self._fuzzy_seen:
            self._fuzzy_seen.add(("venue", key, entity_id))
            self._venue_keys.append(key)
            self._venue_ids.append(entity_id)

    def best_fuzzy(self, text, threshold):
        """Best (id, score) at or above threshold over names, aliases and venue keys."""
        best = None

        key = match_key(text)
        if key and self._fuzzy_keys:
            hit = process.extractOne(
                key, self._fuzzy_keys,
                scorer=Levenshtein.normalized_similarity,
                score_cutoff=threshold,
            )
            if hit:
                best = (self._fuzzy_ids[hit[2]], hit[1])

        if self.kind == "venue" and self._venue_keys:
            venue_key = normalize_venue_name(text)
            if venue_key:
                hit = process.extractOne(
                    venue_key, self._venue_keys,
                    scorer=Levenshtein.normalized_similarity,
                    score_cutoff=threshold,
                )
                if hit and (best is None or hit[1] > best[1]):
                    best = (self._venue_ids[hit[2]], hit[1])

        return best

    def address_match(self, text):
        """Id of the first venue whose street address appears as whole words inside text."""
        venue_key = normalize_venue_name(text)
        if not venue_key:
            return None
        # "23 main st" must not hit "123 main st"
        padded = f" {venue_key} "
        for address_key, entity_id in self.addresses.items():
            if f" {address_key} " in padded:
                return entity_id
        return None


def is_gilman(text):
    """924 Gilman shows up under dozens of spellings; all of them are one venue."""
    normalized = normalize(text)
    return "924" in normalized and "gilman" in normalized


def _lookup(index, text, corrected):
    """Exact, the-insensitive and alias lookups. Returns a match or None."""
    key = match_key(text)
    if key in index.by_name:
        entity_id = index.by_name[key]
        return CorrectionMatch(entity_id, text) if corrected else ExactMatch(entity_id)

    if index.kind == "artist":
        article_key = normalize_for_matching(text)
        if article_key and article_key in index.by_article:
            entity_id = index.by_article[article_key]
            return CorrectionMatch(entity_id, text) if corrected else AliasMatch(entity_id)

    if key in index.by_alias:
        entity_id = index.by_alias[key]
        return CorrectionMatch(entity_id, text) if corrected else AliasMatch(entity_id)

    return None


def match_artist(text, index, corrections=None, threshold=config.ARTIST_FUZZY_THRESHOLD, fuzzy=True):
    """
    Resolve a scraped band name against the artist index.
    Priority: correction, exact, the-insensitive, alias, fuzzy.
    """
    if not text or not text.strip():
        return NO_MATCH
    if corrections is None:
        corrections = CorrectionTable.empty()

    corrected_text = corrections.apply(text, "artist")
    corrected = corrected_text != text

    result = _lookup(index, corrected_text, corrected)
    if result:
        return result

    if fuzzy:
        best = index.best_fuzzy(corrected_text, threshold)
        if best:
            return FuzzyMatch(best[0], best[1])

    return NO_MATCH


def match_venue(text, index, corrections=None, threshold=config.VENUE_FUZZY_THRESHOLD, fuzzy=True):
    """
    Resolve a scraped venue string against the venue index.
    Priority: Gilman rule, correction, exact, alias, fuzzy / address.
    """
    if not text or not text.strip():
        return NO_MATCH
    if is_gilman(text):
        return CorrectionMatch(config.GILMAN_VENUE["id"], config.GILMAN_VENUE["name"])
    if corrections is None:
        corrections = CorrectionTable.empty()

    corrected_text = corrections.apply(text, "venue")
    corrected = corrected_text != text

    result = _lookup(index, corrected_text, corrected)
    if result:
        return result

    if not fuzzy:
        return NO_MATCH

    candidates = []
    best = index.best_fuzzy(corrected_text, threshold)
    if best:
        candidates.append(best)
    address_id = index.address_match(corrected_text)
    if address_id and config.ADDRESS_MATCH_SCORE >= threshold:
        candidates.append((address_id, config.ADDRESS_MATCH_SCORE))

    if not candidates:
        return NO_MATCH
    entity_id, score = max(candidates, key=lambda c: c[1])
    return FuzzyMatch(entity_id, score)
