import copy
from collections import defaultdict

from punklist import config
from punklist.pipeline.calendar import band_link, prune_empty, venue_location
from punklist.pipeline.corrections import CorrectionTable
from punklist.pipeline.match import CorrectionMatch, EntityIndex, NoMatch, match_artist, match_venue
from punklist.pipeline.merge import merge_venue_refs, new_artist, new_venue, preserve_enrichment, unique_slug
from punklist.pipeline.metrics import SweepMetrics
from punklist.utils.dates import local_today
from punklist.utils.filters import is_non_artist, is_venue_administrative
from punklist.utils.location import display_location, parse_venue_location
from punklist.utils.text import match_key, slugify


def _iter_events(calendar):
    for show in calendar.get("shows") or []:
        for event in show.get("events") or []:
            yield show, event


def _add_alias(record, text, index, metrics):
    if text and text not in record["aliases"]:
        record["aliases"].append(text)
        index.add(record)
        metrics.aliases_added += 1


def _attach(record, venue_id, show_date):
    """Fold one calendar occurrence into an artist: venue ref and date range."""
    if venue_id:
        record["venues"] = merge_venue_refs(record.get("venues"), [venue_id])
    if show_date:
        if record.get("firstSeen") and show_date < record["firstSeen"]:
            record["firstSeen"] = show_date
        if record.get("lastSeen") and show_date > record["lastSeen"]:
            record["lastSeen"] = show_date


def _is_event_non_entity(text, venue_text):
    return is_non_artist(text) or is_venue_administrative(text, [venue_text])


def _synthesize_artist(text, artists, index, legacy_index, corrections, venue_id, show_date, metrics, log):
    """
    New artist for a band nothing matched. A record from an older snapshot
    with the same name donates its venues and Spotify data (and its id when free).
    """
    name = corrections.apply(text, "artist")

    legacy = legacy_index.get(match_artist(name, legacy_index, corrections, fuzzy=False).entity_id)
    if legacy and legacy["id"] not in artists:
        artist_id = legacy["id"]
    else:
        artist_id = unique_slug(name, artists, "artist")

    record = new_artist(artist_id, name, aliases=[text], venues=[venue_id] if venue_id else [], show_date=show_date)
    if legacy:
        record["venues"] = merge_venue_refs(legacy.get("venues"), record["venues"])
        record["aliases"] = record["aliases"] + [a for a in legacy.get("aliases") or [] if a not in record["aliases"]]
        record["searchUrl"] = legacy.get("searchUrl")
        record.update(preserve_enrichment(legacy, record))
        metrics.legacy_backfills += 1

    artists[artist_id] = record
    index.add(record)
    metrics.artists_synthesized += 1
    log(f"  Created missing artist \"{name}\" ({artist_id})")
    return record


def _resolve_bands(calendar, artists, index, legacy_index, corrections, threshold, metrics, log):
    for show, event in _iter_events(calendar):
        show_date = show.get("normalizedDate")
        venue = event.get("venue") or {}
        for band in event.get("bands") or []:
            text = (band.get("text") or "").strip()
            current = band.get("id")

            if current and current not in artists:
                # left for the integrity pass
                continue

            result = match_artist(text, index, corrections, threshold=threshold) if text else NoMatch()

            if current:
                if not isinstance(result, NoMatch) and result.entity_id != current:
                    band["id"] = result.entity_id
                    metrics.bands_resynced += 1
                _add_alias(artists[band["id"]], text, index, metrics)
                continue

            if not isinstance(result, NoMatch) and result.entity_id in artists:
                record = artists[result.entity_id]
                band["id"] = record["id"]
                _add_alias(record, text, index, metrics)
                _attach(record, venue.get("id"), show_date)
                metrics.bands_resolved += 1
                continue

            if not text or _is_event_non_entity(text, venue.get("text")):
                continue

            record = _synthesize_artist(
                text, artists, index, legacy_index, corrections, venue.get("id"), show_date, metrics, log
            )
            band["id"] = record["id"]


def _synthesize_venue(venue, result, venues, index, corrections, show_date, metrics, log):
    text = venue.get("text")
    if isinstance(result, CorrectionMatch) and result.entity_id == config.GILMAN_VENUE["id"]:
        venue_id = result.entity_id
        name = config.GILMAN_VENUE["name"]
        location = {"address": config.GILMAN_VENUE["address"], "city": config.GILMAN_VENUE["city"]}
    else:
        name = corrections.apply(text, "venue")
        venue_id = unique_slug(name, venues, "venue")
        location = parse_venue_location(text, corrections)

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
    metrics.venues_synthesized += 1
    log(f"  Created missing venue \"{name}\" ({venue_id})")
    return record


def _resolve_venues(calendar, artists, venues, index, corrections, threshold, metrics, log):
    for show, event in _iter_events(calendar):
        venue = event.get("venue")
        if not venue or (venue.get("id") and venue["id"] in venues):
            continue
        text = (venue.get("text") or "").strip()
        if not text:
            venue["id"] = None
            continue

        result = match_venue(text, index, corrections, threshold=threshold)
        if not isinstance(result, NoMatch) and result.entity_id in venues:
            record = venues[result.entity_id]
            if text not in record["aliases"]:
                record["aliases"].append(text)
                index.add(record)
            metrics.venues_resolved += 1
        else:
            record = _synthesize_venue(venue, result, venues, index, corrections, show.get("normalizedDate"), metrics, log)
        venue["id"] = record["id"]

    # the calendar is the authority on who played where
    for show, event in _iter_events(calendar):
        venue_id = (event.get("venue") or {}).get("id")
        for band in event.get("bands") or []:
            if venue_id and band.get("id") in artists:
                _attach(artists[band["id"]], venue_id, None)


def _rewrite_artist_venues(artists, venues, index, corrections, metrics):
    """Point every artist venue reference at a current venue id."""
    by_slug = {}
    for venue in venues.values():
        for text in [venue["id"], venue.get("name")] + list(venue.get("aliases") or []):
            if text:
                by_slug.setdefault(slugify(text), venue["id"])

    for artist in artists.values():
        refs = []
        for ref in artist.get("venues") or []:
            if ref in venues:
                refs.append(ref)
                continue
            mapped = by_slug.get(slugify(ref))
            if not mapped:
                mapped = match_venue(ref, index, corrections, fuzzy=False).entity_id
            refs.append(mapped if mapped in venues else ref)

        refs = merge_venue_refs([], refs)
        if refs != artist.get("venues"):
            artist["venues"] = refs
            metrics.artist_venue_refs_rewritten += 1


def _integrity_pass(calendar, artists, index, corrections, metrics, log):
    """Minimal artist for every band id the calendar references but the table lacks."""
    occurrences = defaultdict(list)
    for show, event in _iter_events(calendar):
        venue_id = (event.get("venue") or {}).get("id")
        for band in event.get("bands") or []:
            if band.get("id") and band["id"] not in artists:
                occurrences[band["id"]].append((band.get("text"), venue_id, show.get("normalizedDate")))

    for artist_id, seen in occurrences.items():
        texts = [text for text, _, _ in seen if text]
        dates = sorted(d for _, _, d in seen if d)
        name = corrections.apply(texts[0], "artist") if texts else artist_id
        record = new_artist(artist_id, name, aliases=texts, venues=[v for _, v, _ in seen if v])
        record["firstSeen"] = dates[0] if dates else None
        record["lastSeen"] = dates[-1] if dates else None
        artists[artist_id] = record
        index.add(record)
        metrics.integrity_artists += 1
        log(f"  Created artist for orphan reference {artist_id}")


def _purge(calendar, artists, metrics, log):
    purged = {
        artist_id
        for artist_id, artist in artists.items()
        if is_non_artist(artist.get("name")) or is_venue_administrative(artist.get("name"), artist.get("venues"))
    }
    for artist_id in sorted(purged):
        log(f"  Purged non-artist \"{artists[artist_id]['name']}\"")
        del artists[artist_id]
    metrics.artists_purged += len(purged)

    for show, event in _iter_events(calendar):
        venue_text = (event.get("venue") or {}).get("text")
        bands = [
            band for band in event.get("bands") or []
            if band.get("id") not in purged and not _is_event_non_entity((band.get("text") or "").strip(), venue_text)
        ]
        metrics.bands_purged += len(event.get("bands") or []) - len(bands)
        event["bands"] = bands

    shows, events_pruned, days_pruned = prune_empty(calendar.get("shows") or [])
    metrics.events_pruned += events_pruned
    metrics.days_pruned += days_pruned
    calendar["shows"] = shows


def _backfill_dates(records, dates_by_id, dates_by_key, today_str, metrics):
    for record in records.values():
        if record.get("firstSeen") and record.get("lastSeen"):
            continue
        dates = list(dates_by_id.get(record["id"], []))
        for text in [record.get("name")] + list(record.get("aliases") or []):
            dates.extend(dates_by_key.get(match_key(text), []))
        dates = sorted(set(dates))

        if not record.get("firstSeen"):
            record["firstSeen"] = dates[0] if dates else today_str
        if not record.get("lastSeen"):
            record["lastSeen"] = dates[-1] if dates else today_str
        metrics.dates_backfilled += 1


def _calendar_dates(calendar):
    artist_ids = defaultdict(list)
    artist_keys = defaultdict(list)
    venue_ids = defaultdict(list)
    venue_keys = defaultdict(list)
    for show, event in _iter_events(calendar):
        show_date = show.get("normalizedDate")
        if not show_date:
            continue
        venue = event.get("venue") or {}
        if venue.get("id"):
            venue_ids[venue["id"]].append(show_date)
        if venue.get("text"):
            venue_keys[match_key(venue["text"])].append(show_date)
        for band in event.get("bands") or []:
            if band.get("id"):
                artist_ids[band["id"]].append(show_date)
            if band.get("text"):
                artist_keys[match_key(band["text"])].append(show_date)
    return artist_ids, artist_keys, venue_ids, venue_keys


def _backfill_locations(calendar, venues, corrections, metrics):
    for show, event in _iter_events(calendar):
        venue = event.get("venue")
        if not venue or venue.get("location"):
            continue
        location = venue_location(venues.get(venue.get("id")))
        if not location and venue.get("text"):
            parsed = parse_venue_location(venue["text"], corrections)
            location = display_location(parsed["address"], parsed["city"])
        if location:
            venue["location"] = location
            metrics.locations_backfilled += 1
        else:
            venue["location"] = None


def _refresh_bands(calendar, artists, metrics):
    for show, event in _iter_events(calendar):
        for band in event.get("bands") or []:
            artist = artists.get(band.get("id"))
            if band.get("id") and not artist:
                band["id"] = None
            if not band.get("id"):
                metrics.unresolved_bands += 1
            band["href"] = band_link(artist, band.get("href"))
            band["spotifyVerified"] = bool(artist and artist.get("spotifyVerified"))


def reconcile(artists, venues, calendar, corrections=None, legacy_artists=None, today=None, log_func=None):
    """
    Post-merge repair passes over the calendar and entity tables:
    - resolve bands without ids (exact, then fuzzy), re-sync bands with ids
    - resolve or create venues, rewrite artist venue references to ids
    - create artists for orphan band ids, then purge non-artists
    - backfill missing dates and event locations, refresh band links
    Every pass only fills gaps; references it can't resolve stay None.
    Returns (artists, venues, calendar, metrics). Inputs are not modified.
    """
    log = log_func or print
    if corrections is None:
        corrections = CorrectionTable.empty()
    today_str = (today or local_today()).isoformat()
    threshold = config.RECONCILE_FUZZY_THRESHOLD

    artists = copy.deepcopy(artists)
    venues = copy.deepcopy(venues)
    calendar = copy.deepcopy(calendar)
    metrics = SweepMetrics()

    log("Reconciling calendar references...")
    artist_index = EntityIndex("artist", artists)
    venue_index = EntityIndex("venue", venues)
    legacy_index = EntityIndex("artist", legacy_artists or {})

    _resolve_bands(calendar, artists, artist_index, legacy_index, corrections, threshold, metrics, log)
    _resolve_venues(calendar, artists, venues, venue_index, corrections, threshold, metrics, log)
    _rewrite_artist_venues(artists, venues, venue_index, corrections, metrics)
    _integrity_pass(calendar, artists, artist_index, corrections, metrics, log)
    _purge(calendar, artists, metrics, log)

    artist_ids, artist_keys, venue_ids, venue_keys = _calendar_dates(calendar)
    _backfill_dates(artists, artist_ids, artist_keys, today_str, metrics)
    _backfill_dates(venues, venue_ids, venue_keys, today_str, metrics)

    _backfill_locations(calendar, venues, corrections, metrics)
    _refresh_bands(calendar, artists, metrics)

    log(
        f"  {metrics.bands_resolved} bands resolved, {metrics.bands_resynced} re-synced, "
        f"{metrics.artists_synthesized + metrics.integrity_artists} artists created, "
        f"{metrics.artists_purged} purged"
    )
    if metrics.unresolved_bands:
        log(f"  {metrics.unresolved_bands} band references left unresolved")

    return artists, venues, calendar, metrics
