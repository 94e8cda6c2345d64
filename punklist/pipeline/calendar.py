import copy

from punklist.pipeline.corrections import CorrectionTable
from punklist.pipeline.match import EntityIndex, match_artist, match_venue
from punklist.utils.filters import is_non_artist, is_venue_administrative
from punklist.utils.location import display_location


def band_link(artist, scraped_href):
    """A verified Spotify page beats the scraped search link."""
    if artist and artist.get("spotifyVerified") and artist.get("spotifyUrl"):
        return artist["spotifyUrl"]
    return scraped_href


def present_band(band, artist):
    """Calendar band entry: {text, id, href, spotifyVerified}."""
    return {
        "text": band.get("text"),
        "id": artist["id"] if artist else None,
        "href": band_link(artist, band.get("href")),
        "spotifyVerified": bool(artist and artist.get("spotifyVerified")),
    }


def venue_location(venue):
    if not venue:
        return None
    return display_location(venue.get("address"), venue.get("city"))


def prune_empty(shows):
    """
    Drop events with no bands, then show days with no events.
    Returns (shows, events_pruned, days_pruned).
    """
    kept_shows = []
    events_pruned = 0
    days_pruned = 0
    for show in shows:
        events = [e for e in show.get("events") or [] if e.get("bands")]
        events_pruned += len(show.get("events") or []) - len(events)
        if not events:
            days_pruned += 1
            continue
        kept_shows.append({**show, "events": events})
    return kept_shows, events_pruned, days_pruned


def build_calendar(raw, artists, venues, corrections=None):
    """
    Derive the calendar from the raw scrape with ids resolved against the
    finished artist and venue tables. Only exact lookups are used here; the
    reconciliation sweep handles whatever is left unresolved.
    Returns {"shows": [...]}.
    """
    if corrections is None:
        corrections = CorrectionTable.empty()

    artist_index = EntityIndex("artist", artists)
    venue_index = EntityIndex("venue", venues)

    shows = []
    for show in raw.get("shows") or []:
        events = []
        for event in show.get("events") or []:
            venue = event.get("venue") or {}
            venue_text = venue.get("text")

            venue_record = venues.get(match_venue(venue_text, venue_index, corrections, fuzzy=False).entity_id)

            bands = []
            for band in event.get("bands") or []:
                text = (band.get("text") or "").strip()
                if not text or is_non_artist(text) or is_venue_administrative(text, [venue_text]):
                    continue
                artist = artists.get(match_artist(text, artist_index, corrections, fuzzy=False).entity_id)
                bands.append(present_band(band, artist))

            events.append(
                {
                    "venue": {
                        "text": venue_text,
                        "id": venue_record["id"] if venue_record else None,
                        "href": (venue_record or {}).get("searchUrl") or venue.get("href"),
                        "location": venue_location(venue_record),
                    },
                    "bands": bands,
                    "extra": event.get("extra"),
                }
            )
        shows.append(
            {
                "day": show.get("day"),
                "normalizedDate": show.get("normalizedDate"),
                "events": events,
            }
        )

    shows, _, _ = prune_empty(shows)
    return {"shows": copy.deepcopy(shows)}


def filter_upcoming(calendar, today, log_func=None):
    """Keep show days on or after today (a date or ISO string)."""
    log = log_func or print
    today_str = today if isinstance(today, str) else today.isoformat()
    shows = calendar.get("shows") or []
    undated = [show for show in shows if not show.get("normalizedDate")]
    if undated:
        labels = ", ".join(str(show.get("day")) for show in undated)
        log(f"  Warning: Dropped {len(undated)} show days with no date ({labels})")
    kept = [
        show for show in shows
        if show.get("normalizedDate") and show["normalizedDate"] >= today_str
    ]
    return {**calendar, "shows": kept}


def calendar_metadata(calendar, now):
    shows = calendar.get("shows") or []
    dates = sorted(s["normalizedDate"] for s in shows if s.get("normalizedDate"))
    return {
        "totalShows": len(shows),
        "totalEvents": sum(len(s.get("events") or []) for s in shows),
        "dateRange": {
            "start": dates[0] if dates else None,
            "end": dates[-1] if dates else None,
        },
        "lastUpdated": now,
    }
