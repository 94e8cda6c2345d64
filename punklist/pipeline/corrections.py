import json
from dataclasses import dataclass, field
from pathlib import Path

from punklist.utils.text import normalize

NAMESPACES = {
    "artist": "artist_corrections",
    "venue": "venue_corrections",
    "city": "city_corrections",
}

# "1,000 Dreams" loses its comma to normalization and then looks like
# "000 Dreams". Kept as a single named exception, not a general rule.
THOUSAND_DREAMS_KEY = "000 dreams"
THOUSAND_DREAMS_NAME = "1,000 Dreams"


@dataclass(frozen=True)
class CorrectionTable:
    """Spelling corrections keyed by normalized misspelling, per namespace."""
    artist: dict = field(default_factory=dict)
    venue: dict = field(default_factory=dict)
    city: dict = field(default_factory=dict)

    @classmethod
    def empty(cls):
        return cls()

    @classmethod
    def from_dict(cls, data):
        """Build from {artist_corrections, venue_corrections, city_corrections}."""
        if not isinstance(data, dict):
            raise ValueError("corrections must be a JSON object")

        tables = {}
        for namespace, key in NAMESPACES.items():
            entries = data.get(key) or {}
            if not isinstance(entries, dict):
                raise ValueError(f"{key} must be an object")
            tables[namespace] = {
                normalize(misspelling): correction
                for misspelling, correction in entries.items()
                if normalize(misspelling) and isinstance(correction, str) and correction.strip()
            }
        return cls(**tables)

    def apply(self, text, namespace="artist"):
        """
        Return the corrected display name for text, or text unchanged.
        Exact normalized-key lookups only; no fuzzy correction.
        """
        if not text:
            return text
        normalized = normalize(text)

        if namespace in ("artist", "venue") and normalized == THOUSAND_DREAMS_KEY:
            return THOUSAND_DREAMS_NAME

        table = getattr(self, namespace, None) or {}
        return table.get(normalized, text)

    def __len__(self):
        return len(self.artist) + len(self.venue) + len(self.city)


def load_corrections(path, log_func=None):
    """
    Load the spelling corrections file.
    Missing or malformed files give an empty table so the run proceeds uncorrected.
    """
    log = log_func or print
    path = Path(path)

    if not path.exists():
        log(f"  No spelling corrections at {path}, matching uncorrected")
        return CorrectionTable.empty()

    try:
        with open(path, "r") as f:
            table = CorrectionTable.from_dict(json.load(f))
    except (OSError, ValueError) as e:
        log(f"  Warning: Could not load spelling corrections, using empty dictionary: {e}")
        return CorrectionTable.empty()

    log(
        f"  Loaded {len(table.artist)} artist, {len(table.venue)} venue "
        f"and {len(table.city)} city corrections"
    )
    return table
