from punklist import config
from punklist.pipeline.calendar import build_calendar, calendar_metadata, filter_upcoming
from punklist.pipeline.corrections import CorrectionTable
from punklist.pipeline.ingest import build_databases
from punklist.pipeline.merge import merge_venue_refs
from punklist.pipeline.reconcile import reconcile
from punklist.spotify_verify import apply_verification, compute_spotify_stats
from punklist.utils.dates import local_today, utc_timestamp
from punklist.utils.text import normalize_venue_name, slugify

ARTIST_FIELDS = (
    "id", "name", "aliases", "venues", "firstSeen", "lastSeen",
    "searchUrl", "spotifyUrl", "spotifyVerified", "spotifyData",
)
VENUE_FIELDS = ("id", "name", "address", "city", "aliases", "firstSeen", "lastSeen", "searchUrl")


def _records(data, key):
    if isinstance(data, dict):
        data = data.get(key)
    if not isinstance(data, list):
        return []
    return [r for r in data if isinstance(r, dict) and isinstance(r.get("name"), str) and r["name"].strip()]


def _aliases(record):
    aliases = []
    for alias in record.get("aliases") or []:
        if isinstance(alias, str) and alias and alias not in aliases:
            aliases.append(alias)
    if record["name"] not in aliases:
        aliases.append(record["name"])
    return aliases


def artists_from_snapshot(data):
    """Artist table keyed by id from a snapshot dict (or bare list). First record wins a duplicate id."""
    artists = {}
    for artist in _records(data, "artists"):
        record = dict(artist)
        record["id"] = artist.get("id") or slugify(artist["name"]) or "artist"
        if record["id"] in artists:
            continue
        record["aliases"] = _aliases(artist)
        record["venues"] = merge_venue_refs([], [v for v in artist.get("venues") or [] if isinstance(v, str)])
        record["firstSeen"] = artist.get("firstSeen")
        record["lastSeen"] = artist.get("lastSeen")
        record["searchUrl"] = artist.get("searchUrl")
        record["spotifyUrl"] = artist.get("spotifyUrl")
        record["spotifyVerified"] = bool(artist.get("spotifyVerified"))
        record["spotifyData"] = artist.get("spotifyData")
        artists[record["id"]] = record
    return artists


def venues_from_snapshot(data):
    venues = {}
    for venue in _records(data, "venues"):
        record = dict(venue)
        record["id"] = venue.get("id") or slugify(venue["name"]) or "venue"
        if record["id"] in venues:
            continue
        record["aliases"] = _aliases(venue)
        record["address"] = venue.get("address") or None
        record["city"] = venue.get("city") or None
        record["firstSeen"] = venue.get("firstSeen")
        record["lastSeen"] = venue.get("lastSeen")
        record["searchUrl"] = venue.get("searchUrl")
        record["normalizedName"] = normalize_venue_name(venue["name"])
        venues[record["id"]] = record
    return venues


def _sort_key(record):
    return (record["name"].lower(), record["id"])


def _ordered(record, fields):
    out = {f: record.get(f) for f in fields}
    out.update({k: v for k, v in record.items() if k not in out and k != "normalizedName"})
    return out


def to_artists_snapshot(artists, prior_meta=None, now=None):
    """{artists, total, lastUpdated, spotifyVerification} with artists sorted by name."""
    now = now or utc_timestamp()
    records = [_ordered(a, ARTIST_FIELDS) for a in sorted(artists.values(), key=_sort_key)]
    return {
        "artists": records,
        "total": len(records),
        "lastUpdated": now,
        "spotifyVerification": {
            **(prior_meta or {}),
            "lastProcessed": now,
            "stats": compute_spotify_stats(records),
        },
    }


def to_venues_snapshot(venues, now=None):
    """{venues, total, lastUpdated}; normalizedName is internal and dropped."""
    now = now or utc_timestamp()
    records = [_ordered(v, VENUE_FIELDS) for v in sorted(venues.values(), key=_sort_key)]
    return {"venues": records, "total": len(records), "lastUpdated": now}


def to_calendar_snapshot(calendar, now=None):
    now = now or utc_timestamp()
    return {"shows": calendar.get("shows") or [], "metadata": calendar_metadata(calendar, now)}


def process_snapshots(
    raw,
    prior_artists,
    prior_venues,
    corrections=None,
    verification=None,
    today=None,
    now=None,
    log_func=None,
    verify_func=None,
    upcoming_only=None,
):
    """
    Full transform from raw scrape plus prior snapshots to new snapshots:
    build -> verification -> calendar -> reconcile -> upcoming filter.
    verification: precomputed {artist_id: result}; verify_func(artists) is
    called after the build to produce more results (network lives there).
    Returns (artists_snapshot, venues_snapshot, calendar_snapshot, metrics).
    """
    log = log_func or print
    if corrections is None:
        corrections = CorrectionTable.empty()
    today = today or local_today()
    now = now or utc_timestamp()
    if upcoming_only is None:
        upcoming_only = config.CALENDAR_UPCOMING_ONLY

    prior_artist_table = artists_from_snapshot(prior_artists)
    prior_venue_table = venues_from_snapshot(prior_venues)
    log(f"Loaded {len(prior_artist_table)} existing artists and {len(prior_venue_table)} existing venues")

    artists, venues, merge_metrics = build_databases(
        raw, prior_artist_table, prior_venue_table, corrections, log_func=log
    )

    results = dict(verification or {})
    if verify_func:
        results.update(verify_func(artists) or {})
    if results:
        artists = apply_verification(artists, results)

    calendar = build_calendar(raw, artists, venues, corrections)
    artists, venues, calendar, sweep_metrics = reconcile(
        artists,
        venues,
        calendar,
        corrections,
        legacy_artists=prior_artist_table,
        today=today,
        log_func=log,
    )
    if upcoming_only:
        calendar = filter_upcoming(calendar, today, log_func=log)

    prior_meta = prior_artists.get("spotifyVerification") if isinstance(prior_artists, dict) else None
    metrics = {"merge": merge_metrics, "sweep": sweep_metrics, "verified": len(results)}
    return (
        to_artists_snapshot(artists, prior_meta, now),
        to_venues_snapshot(venues, now),
        to_calendar_snapshot(calendar, now),
        metrics,
    )
