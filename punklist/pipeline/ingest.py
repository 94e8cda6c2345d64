import copy

from punklist import config
from punklist.pipeline.corrections import CorrectionTable
from punklist.pipeline.match import (
    CorrectionMatch,
    EntityIndex,
    ExactMatch,
    NoMatch,
    match_artist,
    match_venue,
)
from punklist.pipeline.merge import merge_artist, merge_venue, new_artist, new_venue, unique_slug
from punklist.pipeline.metrics import MergeMetrics
from punklist.utils.filters import is_non_artist, is_venue_administrative
from punklist.utils.location import parse_venue_location
from punklist.utils.text import normalize_venue_name, slugify


def proposed_name(result, text, existing_name):
    """
    Name an observation proposes to the merge:
    exact -> the scraped text, correction -> the canonical name,
    anything looser -> the existing name (the scraped text becomes an alias).
    """
    if isinstance(result, ExactMatch):
        return text
    if isinstance(result, CorrectionMatch):
        return result.canonical_name
    return existing_name


def ingest_venue(venue, show_date, venues, index, corrections, metrics, log):
    """Resolve one event's venue into the venue table. Returns the venue id or None."""
    text = (venue.get("text") or "").strip()
    if not text:
        return None

    result = match_venue(text, index, corrections)
    location = parse_venue_location(text, corrections)
    is_gilman = result.entity_id == config.GILMAN_VENUE["id"]
    if is_gilman:
        location = {"address": config.GILMAN_VENUE["address"], "city": config.GILMAN_VENUE["city"]}

    if isinstance(result, NoMatch) or result.entity_id not in venues:
        if isinstance(result, NoMatch):
            name = corrections.apply(text, "venue")
            venue_id = unique_slug(name, venues, "venue")
            if venue_id != slugify(name):
                metrics.slug_collisions += 1
                log(f"  Slug collision for venue \"{name}\", using {venue_id}")
        else:
            name = result.canonical_name
            venue_id = result.entity_id

        if name != text:
            metrics.corrected_venues += 1
            log(f"  Corrected new venue: \"{text}\" -> \"{name}\"")

        record = new_venue(
            venue_id,
            name,
            aliases=[text],
            address=location["address"],
            city=location["city"],
            show_date=show_date,
            search_url=venue.get("href"),
        )
        venues[venue_id] = record
        index.add(record)
        metrics.new_venues += 1
        return venue_id

    existing = venues[result.entity_id]
    incoming = {
        "name": proposed_name(result, text, existing["name"]),
        "aliases": [text],
        "address": location["address"],
        "city": location["city"],
        "firstSeen": show_date,
        "lastSeen": show_date,
        "searchUrl": venue.get("href"),
    }
    merged = merge_venue(existing, incoming)

    if text not in (existing.get("aliases") or []):
        if isinstance(result, CorrectionMatch):
            metrics.corrected_venues += 1
            log(f"  Corrected venue spelling: \"{text}\" -> \"{merged['name']}\"")
        else:
            log(f"  Merged duplicate venue: \"{text}\" -> \"{merged['name']}\"")
    metrics.merged_venues += 1

    venues[merged["id"]] = merged
    index.add(merged)
    return merged["id"]


def ingest_band(band, venue_text, venue_id, show_date, artists, index, corrections, metrics, log):
    """Resolve one band into the artist table. Returns the artist id or None if filtered."""
    text = (band.get("text") or "").strip()
    if not text:
        return None

    if is_non_artist(text) or is_venue_administrative(text, [venue_text]):
        metrics.filtered_bands += 1
        if text not in metrics.filtered_names:
            metrics.filtered_names.append(text)
        return None

    venue_refs = [venue_id] if venue_id else []
    result = match_artist(text, index, corrections, fuzzy=config.ARTIST_INGEST_FUZZY)

    if isinstance(result, NoMatch):
        name = corrections.apply(text, "artist")
        if name != text:
            metrics.corrected_artists += 1
            log(f"  Applying spelling correction to new artist: \"{text}\" -> \"{name}\"")

        artist_id = unique_slug(name, artists, "artist")
        if artist_id != slugify(name):
            metrics.slug_collisions += 1
            log(f"  Slug collision for artist \"{name}\", using {artist_id}")

        record = new_artist(
            artist_id,
            name,
            aliases=[text],
            venues=venue_refs,
            show_date=show_date,
            search_url=band.get("href"),
        )
        artists[artist_id] = record
        index.add(record)
        metrics.new_artists += 1
        return artist_id

    existing = artists[result.entity_id]
    incoming = {
        "name": proposed_name(result, text, existing["name"]),
        "aliases": [text],
        "venues": venue_refs,
        "firstSeen": show_date,
        "lastSeen": show_date,
        "searchUrl": band.get("href"),
    }
    merged = merge_artist(existing, incoming)

    if text not in (existing.get("aliases") or []):
        if isinstance(result, CorrectionMatch):
            metrics.corrected_artists += 1
            log(f"  Corrected spelling: \"{text}\" -> \"{merged['name']}\"")
        else:
            log(f"  Merged duplicate artist: \"{text}\" -> \"{merged['name']}\"")
    metrics.merged_artists += 1

    artists[merged["id"]] = merged
    index.add(merged)
    return merged["id"]


def build_databases(raw, prior_artists=None, prior_venues=None, corrections=None, log_func=None):
    """
    Walk the raw scrape and fold every venue and band into the tables.
    - Prior records are carried forward (ids and dates kept)
    - Non-entity bands are dropped before matching
    - New records get slug ids, suffixed on collision
    Returns (artists, venues, metrics). Inputs are not modified.
    """
    log = log_func or print
    if corrections is None:
        corrections = CorrectionTable.empty()

    artists = copy.deepcopy(prior_artists or {})
    venues = copy.deepcopy(prior_venues or {})
    for venue in venues.values():
        venue["normalizedName"] = normalize_venue_name(venue.get("name"))

    metrics = MergeMetrics(prior_artists=len(artists), prior_venues=len(venues))
    artist_index = EntityIndex("artist", artists)
    venue_index = EntityIndex("venue", venues)

    log(f"Building databases from {len(raw.get('shows') or [])} show days...")

    for show in raw.get("shows") or []:
        show_date = show.get("normalizedDate")
        for event in show.get("events") or []:
            venue = event.get("venue") or {}
            venue_id = ingest_venue(venue, show_date, venues, venue_index, corrections, metrics, log)
            for band in event.get("bands") or []:
                ingest_band(
                    band,
                    venue.get("text"),
                    venue_id,
                    show_date,
                    artists,
                    artist_index,
                    corrections,
                    metrics,
                    log,
                )

    log(
        f"  {metrics.new_artists} new artists, {metrics.merged_artists} artist observations merged, "
        f"{metrics.corrected_artists} spelling corrections"
    )
    log(f"  {metrics.new_venues} new venues, {metrics.merged_venues} venue observations merged")
    if metrics.filtered_bands:
        log(f"  Filtered {metrics.filtered_bands} non-artist entries")

    return artists, venues, metrics
