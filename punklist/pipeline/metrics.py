from dataclasses import asdict, dataclass, field


@dataclass
class MergeMetrics:
    """Track what ingestion did to the artist and venue tables."""
    prior_artists: int = 0
    prior_venues: int = 0
    new_artists: int = 0
    merged_artists: int = 0
    corrected_artists: int = 0
    new_venues: int = 0
    merged_venues: int = 0
    corrected_venues: int = 0
    filtered_bands: int = 0
    slug_collisions: int = 0
    filtered_names: list = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


@dataclass
class SweepMetrics:
    """Track repairs made by the reconciliation sweep."""
    bands_resolved: int = 0
    bands_resynced: int = 0
    artists_synthesized: int = 0
    legacy_backfills: int = 0
    aliases_added: int = 0
    venues_resolved: int = 0
    venues_synthesized: int = 0
    artist_venue_refs_rewritten: int = 0
    integrity_artists: int = 0
    artists_purged: int = 0
    bands_purged: int = 0
    events_pruned: int = 0
    days_pruned: int = 0
    dates_backfilled: int = 0
    locations_backfilled: int = 0
    unresolved_bands: int = 0

    def to_dict(self):
        return asdict(self)
