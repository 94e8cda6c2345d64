#!/usr/bin/env python3
"""
Spotify verification for the artist table and standalone runner.

An artist is verified when Spotify's search returns an artist whose name
matches exactly (ignoring case, punctuation and a leading or trailing
"the"). Anything looser is recorded as not found and linked to a Spotify
search page instead.
"""

import copy
import re
import sys
import time
from datetime import datetime, timezone
from urllib.parse import quote

import requests
from tqdm import tqdm

from punklist import config
from punklist.pipeline.merge import preserve_enrichment
from punklist.utils.filters import is_non_artist, is_venue_administrative

MODES = ("new", "failed", "all", "force-all")

_spotify_token = None
_spotify_token_expires_at = 0


class SpotifyError(Exception):
    """A Spotify request that failed after retries."""


def spotify_search_url(name):
    return f"https://open.spotify.com/search/{quote(name or '')}"


def get_spotify_token():
    """Get (and cache) a Spotify access token using Client Credentials flow."""
    global _spotify_token, _spotify_token_expires_at
    if not config.SPOTIFY_CLIENT_ID or not config.SPOTIFY_CLIENT_SECRET:
        return None

    now = time.time()
    if _spotify_token and now < (_spotify_token_expires_at - 60):
        return _spotify_token

    try:
        resp = requests.post(
            config.SPOTIFY_TOKEN_URL,
            data={"grant_type": "client_credentials"},
            auth=(config.SPOTIFY_CLIENT_ID, config.SPOTIFY_CLIENT_SECRET),
            timeout=10,
        )
        resp.raise_for_status()
        data = resp.json()
        _spotify_token = data.get("access_token")
        expires_in = data.get("expires_in", 3600)
        _spotify_token_expires_at = now + int(expires_in)
        return _spotify_token
    except requests.RequestException as e:
        print(f"  Warning: Spotify token request failed: {e}")
        return None


def reset_spotify_token():
    global _spotify_token, _spotify_token_expires_at
    _spotify_token = None
    _spotify_token_expires_at = 0


def spotify_request(params, token):
    """
    GET the search endpoint. Retries on 429 (honoring Retry-After) and on
    connection errors, refreshes the token once on 401.
    Returns parsed JSON or raises SpotifyError.
    """
    headers = {"Authorization": f"Bearer {token}"}
    refreshed = False

    for attempt in range(config.SPOTIFY_MAX_RETRIES + 1):
        try:
            resp = requests.get(config.SPOTIFY_SEARCH_URL, headers=headers, params=params, timeout=10)
        except requests.RequestException as e:
            if attempt >= config.SPOTIFY_MAX_RETRIES:
                raise SpotifyError(str(e)) from e
            time.sleep(attempt + 1)
            continue

        if resp.status_code == 401 and not refreshed:
            refreshed = True
            reset_spotify_token()
            token = get_spotify_token()
            if not token:
                raise SpotifyError("http 401: could not refresh token")
            headers["Authorization"] = f"Bearer {token}"
            continue

        if resp.status_code == 429:
            if attempt >= config.SPOTIFY_MAX_RETRIES:
                raise SpotifyError(f"rate limited after {config.SPOTIFY_MAX_RETRIES} retries")
            retry_after = int(resp.headers.get("Retry-After", "1"))
            time.sleep(retry_after)
            continue

        if resp.status_code >= 400:
            try:
                message = resp.json().get("error", {}).get("message", "unknown error")
            except ValueError:
                message = "unknown error"
            raise SpotifyError(f"http {resp.status_code}: {message}")

        return resp.json()

    raise SpotifyError("request failed")


def _comparable(name):
    name = (name or "").lower().strip()
    name = re.sub(r"[^\w\s]", "", name)
    name = re.sub(r"\s+", " ", name)
    name = re.sub(r"^the\s+", "", name)
    return re.sub(r"\s+the$", "", name)


def pick_exact_candidate(name, candidates):
    """First candidate whose name matches exactly, ignoring a leading or trailing "the"."""
    target = _comparable(name)
    if not target:
        return None
    for candidate in candidates:
        if _comparable(candidate.get("name")) == target:
            return candidate
    return None


def verify_artist(name, token):
    """
    Look one artist up on Spotify.
    Returns {found, spotifyUrl, spotifyData}; never raises.
    """
    verified_at = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    try:
        data = spotify_request({"q": name, "type": "artist", "limit": 10}, token)
        candidates = (data.get("artists") or {}).get("items") or []
        match = pick_exact_candidate(name, candidates)
        if match:
            return {
                "found": True,
                "spotifyUrl": (match.get("external_urls") or {}).get("spotify"),
                "spotifyData": {
                    "id": match.get("id"),
                    "spotifyName": match.get("name"),
                    "scrapedName": name,
                    "followers": (match.get("followers") or {}).get("total"),
                    "popularity": match.get("popularity"),
                    "genres": match.get("genres") or [],
                    "matchType": "exact",
                    "searchQuery": name,
                    "searchResults": len(candidates),
                    "verifiedAt": verified_at,
                },
            }
        return {
            "found": False,
            "spotifyUrl": spotify_search_url(name),
            "spotifyData": {
                "notFound": True,
                "scrapedName": name,
                "searchQuery": name,
                "searchResults": len(candidates),
                "verifiedAt": verified_at,
            },
        }
    except SpotifyError as e:
        print(f"  Warning: Error verifying {name}: {e}")
        return {
            "found": False,
            "spotifyUrl": spotify_search_url(name),
            "spotifyData": {
                "error": str(e),
                "scrapedName": name,
                "searchQuery": name,
                "verifiedAt": verified_at,
            },
        }


def get_verification_status(artist):
    """verified | failed | search-only | unverified"""
    url = artist.get("spotifyUrl") or ""
    if artist.get("spotifyVerified") and url and "/search/" not in url:
        return "verified"
    data = artist.get("spotifyData") or {}
    if data.get("notFound") or data.get("error"):
        return "failed"
    if "/search/" in url:
        return "search-only"
    return "unverified"


def select_for_verification(artists, mode="new", limit=None):
    """
    Pick the artists a run should look up.
      new       - never looked up
      failed    - not found, errored or search link only
      all       - everything not verified
      force-all - everything
    Non-artists are never sent to Spotify.
    """
    if mode not in MODES:
        raise ValueError(f"unknown mode: {mode}")

    records = artists.values() if isinstance(artists, dict) else artists
    selected = []
    for artist in records:
        name = artist.get("name")
        if is_non_artist(name) or is_venue_administrative(name, artist.get("venues")):
            continue
        status = get_verification_status(artist)
        if mode == "new" and status != "unverified":
            continue
        if mode == "failed" and status not in ("failed", "search-only"):
            continue
        if mode == "all" and status == "verified":
            continue
        selected.append(artist)

    if limit is not None:
        selected = selected[:max(int(limit), 0)]
    return selected


def verify_artists(artists, batch_size=None, batch_delay=None, save_func=None, log_func=None):
    """
    Verify artists in batches with a pause between batches.
    save_func(results) is called after each batch so a long run can resume.
    Returns {artist_id: result}.
    """
    log = log_func or print
    batch_size = batch_size or config.SPOTIFY_BATCH_SIZE
    batch_delay = config.SPOTIFY_BATCH_DELAY if batch_delay is None else batch_delay
    results = {}

    if not artists:
        return results

    token = get_spotify_token()
    if not token:
        log("  Spotify verification skipped: missing SPOTIFY_CLIENT_ID/SECRET or token request failed")
        return results

    progress = tqdm(
        total=len(artists),
        desc="Spotify verify",
        unit="artist",
        file=sys.stdout,
        disable=not sys.stdout.isatty(),
    )
    found = 0
    for start in range(0, len(artists), batch_size):
        batch = artists[start:start + batch_size]
        for artist in batch:
            token = get_spotify_token() or token
            result = verify_artist(artist["name"], token)
            results[artist["id"]] = result
            if result["found"]:
                found += 1
            progress.update(1)
            time.sleep(config.SPOTIFY_REQUEST_DELAY)

        if save_func:
            save_func(results)
        if start + batch_size < len(artists):
            time.sleep(batch_delay)
    progress.close()

    log(f"  Spotify verified {len(results)} artists: {found} found, {len(results) - found} not found")
    return results


def apply_verification(artists, results):
    """
    Fold verification results into the artist table. Returns a new table.
    A verified artist is never downgraded by a later not-found or error,
    and a verified artist takes Spotify's display name.
    """
    updated = copy.deepcopy(artists)
    for artist_id, result in (results or {}).items():
        artist = updated.get(artist_id)
        if not artist:
            continue
        incoming = {
            "spotifyUrl": result.get("spotifyUrl"),
            "spotifyVerified": bool(result.get("found")),
            "spotifyData": result.get("spotifyData"),
        }
        if incoming["spotifyVerified"] or not artist.get("spotifyVerified"):
            # a fresh lookup replaces an older one
            artist.update(preserve_enrichment(incoming, artist))

        spotify_name = (artist.get("spotifyData") or {}).get("spotifyName")
        if artist["spotifyVerified"] and spotify_name and spotify_name != artist["name"]:
            if artist["name"] not in artist["aliases"]:
                artist["aliases"].append(artist["name"])
            artist["name"] = spotify_name
            if spotify_name not in artist["aliases"]:
                artist["aliases"].append(spotify_name)
    return updated


def compute_spotify_stats(artists):
    records = list(artists.values() if isinstance(artists, dict) else artists)
    return {
        "totalArtists": len(records),
        "spotifyVerified": sum(1 for a in records if a.get("spotifyVerified")),
        "spotifyUrls": sum(1 for a in records if a.get("spotifyUrl")),
        "notFound": sum(1 for a in records if (a.get("spotifyData") or {}).get("notFound")),
        "unverified": sum(
            1 for a in records
            if not a.get("spotifyVerified") and not (a.get("spotifyData") or {}).get("notFound")
        ),
    }


def run_spotify_verification(mode="new", limit=None, log_func=None):
    """Verify artists in artists.json in place, saving after every batch."""
    from punklist.pipeline.io import load_existing_artists, save_json_atomic
    from punklist.pipeline.snapshot import artists_from_snapshot, to_artists_snapshot
    from punklist.utils.dates import utc_timestamp

    log = log_func or print
    snapshot = load_existing_artists(log_func=log)
    artists = artists_from_snapshot(snapshot)
    if not artists:
        log("No artists to verify")
        return False

    selected = select_for_verification(artists, mode=mode, limit=limit)
    log(f"Spotify verification mode: {mode}, {len(selected)} of {len(artists)} artists selected")

    def save(results):
        now = utc_timestamp()
        meta = {**(snapshot.get("spotifyVerification") or {}), "mode": mode, "lastVerified": now}
        save_json_atomic(config.ARTISTS_PATH, to_artists_snapshot(apply_verification(artists, results), meta, now))

    results = verify_artists(selected, save_func=save, log_func=log)
    if results:
        save(results)
        log(f"Artists saved to {config.ARTISTS_PATH}")
    return True


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Verify artists.json entries against Spotify")
    parser.add_argument("mode", nargs="?", default="new", choices=MODES, help="Which artists to look up")
    parser.add_argument("--limit", type=int, default=None, help="Max artists to verify")

    args = parser.parse_args()
    run_spotify_verification(mode=args.mode, limit=args.limit)


if __name__ == "__main__":
    main()
