from punklist import config
from punklist.utils.text import normalize_venue_name, slugify

ENRICHMENT_FIELDS = ("spotifyUrl", "spotifyVerified", "spotifyData")


def _ordered_union(*lists):
    seen = set()
    merged = []
    for values in lists:
        for value in values or []:
            if value and value not in seen:
                seen.add(value)
                merged.append(value)
    return merged


def preferred_name(incoming, existing):
    """Incoming name wins unless it looks truncated (shorter than 3 characters)."""
    if not incoming or len(incoming.strip()) < config.MIN_NAME_LENGTH:
        return existing or incoming
    return incoming


def canonical_spotify_name(record):
    """Spotify's display name for a verified artist, else None."""
    if not record or not record.get("spotifyVerified"):
        return None
    data = record.get("spotifyData") or {}
    return data.get("spotifyName") or None


def preserve_enrichment(existing, incoming):
    """
    Merge the Spotify fields of two artist records.
    - A verified side wins as a block (existing first)
    - Otherwise each field keeps the existing value if set, else takes incoming
    - A set or true value is never replaced by None or False
    Returns a dict with spotifyUrl, spotifyVerified, spotifyData.
    """
    if existing.get("spotifyVerified"):
        source = existing
    elif incoming.get("spotifyVerified"):
        source = incoming
    else:
        source = None

    if source is not None:
        return {
            "spotifyUrl": source.get("spotifyUrl") or existing.get("spotifyUrl") or incoming.get("spotifyUrl"),
            "spotifyVerified": True,
            "spotifyData": source.get("spotifyData") or existing.get("spotifyData") or incoming.get("spotifyData"),
        }

    return {
        "spotifyUrl": existing.get("spotifyUrl") or incoming.get("spotifyUrl") or None,
        "spotifyVerified": False,
        "spotifyData": existing.get("spotifyData") or incoming.get("spotifyData") or None,
    }


def widen_dates(existing, incoming):
    """Return (firstSeen, lastSeen) covering both records. None means no constraint yet."""
    firsts = [d for d in (existing.get("firstSeen"), incoming.get("firstSeen")) if d]
    lasts = [d for d in (existing.get("lastSeen"), incoming.get("lastSeen")) if d]
    return (min(firsts) if firsts else None, max(lasts) if lasts else None)


def is_venue_id(ref):
    return bool(ref) and ref == slugify(ref)


def merge_venue_refs(existing, incoming):
    """
    Ordered union of an artist's venue references.
    Older snapshots stored venue display names; once any id reference is
    present the name strings are dropped and never come back.
    """
    refs = _ordered_union(existing, incoming)
    if any(is_venue_id(ref) for ref in refs):
        refs = [ref for ref in refs if is_venue_id(ref)]
    return refs


def merge_artist(existing, incoming):
    """
    Merge a new observation into an existing artist record.
    The id never changes. Returns a new dict.
    """
    name = preferred_name(incoming.get("name"), existing.get("name"))
    canonical = canonical_spotify_name(existing) or canonical_spotify_name(incoming)
    if canonical:
        name = canonical

    first_seen, last_seen = widen_dates(existing, incoming)

    merged = dict(existing)
    merged.update(
        {
            "id": existing["id"],
            "name": name,
            "aliases": _ordered_union(
                existing.get("aliases"),
                [existing.get("name")],
                incoming.get("aliases"),
                [incoming.get("name"), name],
            ),
            "venues": merge_venue_refs(existing.get("venues"), incoming.get("venues")),
            "firstSeen": first_seen,
            "lastSeen": last_seen,
            "searchUrl": existing.get("searchUrl") or incoming.get("searchUrl"),
        }
    )
    merged.update(preserve_enrichment(existing, incoming))
    return merged


def merge_venue(existing, incoming):
    """
    Merge a new observation into an existing venue record.
    - address/city: a value is kept, incoming only fills None
    - normalizedName is recomputed from the merged name
    """
    name = preferred_name(incoming.get("name"), existing.get("name"))
    first_seen, last_seen = widen_dates(existing, incoming)

    merged = dict(existing)
    merged.update(
        {
            "id": existing["id"],
            "name": name,
            "address": existing.get("address") or incoming.get("address") or None,
            "city": existing.get("city") or incoming.get("city") or None,
            "aliases": _ordered_union(
                existing.get("aliases"),
                [existing.get("name")],
                incoming.get("aliases"),
                [incoming.get("name"), name],
            ),
            "firstSeen": first_seen,
            "lastSeen": last_seen,
            "searchUrl": existing.get("searchUrl") or incoming.get("searchUrl"),
            "normalizedName": normalize_venue_name(name),
        }
    )
    return merged


def new_artist(artist_id, name, aliases=None, venues=None, show_date=None, search_url=None):
    return {
        "id": artist_id,
        "name": name,
        "aliases": _ordered_union([name], aliases),
        "venues": merge_venue_refs([], venues),
        "firstSeen": show_date,
        "lastSeen": show_date,
        "searchUrl": search_url,
        "spotifyUrl": None,
        "spotifyVerified": False,
        "spotifyData": None,
    }


def new_venue(venue_id, name, aliases=None, address=None, city=None, show_date=None, search_url=None):
    return {
        "id": venue_id,
        "name": name,
        "address": address,
        "city": city,
        "aliases": _ordered_union([name], aliases),
        "firstSeen": show_date,
        "lastSeen": show_date,
        "searchUrl": search_url,
        "normalizedName": normalize_venue_name(name),
    }


def unique_slug(name, taken, fallback):
    """slugify(name), suffixed -2, -3, ... while the slug belongs to another record."""
    base_slug = slugify(name) or fallback
    slug = base_slug
    counter = 2
    while slug in taken:
        slug = f"{base_slug}-{counter}"
        counter += 1
    return slug
