from punklist.utils.filters import is_non_artist, is_venue_administrative


def validate_event(event):
    """Check that a raw event has venue text and at least one band."""
    if not (event.get("venue") or {}).get("text"):
        return False
    if not any((band.get("text") or "").strip() for band in event.get("bands") or []):
        return False
    return True


def find_integrity_problems(artists_snapshot, venues_snapshot, calendar):
    """
    Health report over the finished snapshots. Returns a list of
    human-readable problems; an empty list means the snapshot is consistent.
    """
    problems = []
    artists = {a["id"]: a for a in artists_snapshot.get("artists") or []}
    venue_ids = {v["id"] for v in venues_snapshot.get("venues") or []}

    for artist in artists.values():
        if is_non_artist(artist["name"]) or is_venue_administrative(artist["name"], artist.get("venues")):
            problems.append(f"non-artist entry in artists: {artist['name']}")
        if artist["name"] not in (artist.get("aliases") or []):
            problems.append(f"artist {artist['id']} is missing its name in aliases")

    for show in calendar.get("shows") or []:
        events = show.get("events") or []
        if not events:
            problems.append(f"empty show day: {show.get('normalizedDate')}")
        for event in events:
            venue = event.get("venue") or {}
            if venue.get("id") and venue["id"] not in venue_ids:
                problems.append(f"orphan venue id {venue['id']} on {show.get('normalizedDate')}")
            bands = event.get("bands") or []
            if not bands:
                problems.append(f"empty event at {venue.get('text')} on {show.get('normalizedDate')}")
            for band in bands:
                if band.get("id") and band["id"] not in artists:
                    problems.append(f"orphan artist id {band['id']} on {show.get('normalizedDate')}")
                if is_non_artist(band.get("text")):
                    problems.append(f"non-artist band in calendar: {band.get('text')}")

    return problems
