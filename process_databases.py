#!/usr/bin/env python3
"""
Weekly run: scrape the listing, rebuild the artist and venue databases,
generate the calendar and reconcile every reference between them.
"""

import sys
import time
import traceback
from dataclasses import fields
from datetime import datetime, timezone

from punklist import config
from punklist.listing import scrape_listings
from punklist.pipeline.corrections import load_corrections
from punklist.pipeline.io import (
    load_existing_artists,
    load_existing_status,
    load_existing_venues,
    load_raw,
    save_json_atomic,
    write_run_log,
)
from punklist.pipeline.r2 import download_from_r2, upload_to_r2
from punklist.pipeline.snapshot import process_snapshots, to_artists_snapshot
from punklist.pipeline.validate import find_integrity_problems
from punklist.spotify_verify import apply_verification, select_for_verification, verify_artists
from punklist.utils.dates import local_today, utc_timestamp

MAX_REPORTED_PROBLEMS = 20


def make_verify_func(log):
    """Verify up to SPOTIFY_VERIFY_LIMIT never-checked artists, saving progress after each batch."""
    if not config.SPOTIFY_CLIENT_ID or not config.SPOTIFY_CLIENT_SECRET:
        log("Spotify verification skipped: missing SPOTIFY_CLIENT_ID/SECRET")
        return None

    def verify(artists):
        selected = select_for_verification(artists, mode="new", limit=config.SPOTIFY_VERIFY_LIMIT)
        if not selected:
            return {}
        log(f"\nVerifying {len(selected)} new artists on Spotify...")

        def save_progress(results):
            save_json_atomic(config.ARTISTS_PATH, to_artists_snapshot(apply_verification(artists, results)))

        return verify_artists(selected, save_func=save_progress, log_func=log)

    return verify


def log_summary(log, metrics, artists_snapshot, venues_snapshot, calendar_snapshot):
    log("")
    log("=" * 60)
    log("RUN SUMMARY")
    log("=" * 60)
    log(f"{'Metric':<44} {'Count':>10}")
    log("-" * 60)
    for section in ("merge", "sweep"):
        m = metrics[section]
        for f in fields(m):
            value = getattr(m, f.name)
            if isinstance(value, int):
                log(f"{section + '.' + f.name:<44} {value:>10}")
    log("-" * 60)
    log(f"{'artists':<44} {artists_snapshot['total']:>10}")
    log(f"{'venues':<44} {venues_snapshot['total']:>10}")
    log(f"{'show days':<44} {calendar_snapshot['metadata']['totalShows']:>10}")
    log(f"{'events':<44} {calendar_snapshot['metadata']['totalEvents']:>10}")
    log("=" * 60)

    stats = artists_snapshot["spotifyVerification"]["stats"]
    total = stats["totalArtists"] or 1
    log(
        f"Spotify: {stats['spotifyVerified']} verified ({stats['spotifyVerified'] * 100 // total}%), "
        f"{stats['notFound']} not found, {stats['unverified']} unverified"
    )


def main():
    run_timestamp = utc_timestamp()
    log_lines = []  # Collect log entries

    def log(message, level="INFO"):
        """Log a message to both console and log buffer."""
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        log_entry = f"[{timestamp}] [{level}] {message}"
        print(message)
        log_lines.append(log_entry)

    log(f"Starting run at {run_timestamp}")

    existing_status = load_existing_status(log_func=log)
    status = {
        "last_run": run_timestamp,
        "success": False,
        "error": None,
    }
    if existing_status.get("last_success"):
        status["last_success"] = existing_status["last_success"]

    today = local_today()
    start_time = time.time()

    try:
        if config.SCRAPE_LISTINGS:
            log(f"Scraping {config.LISTING_URL}...")
            raw = scrape_listings(config.LISTING_URL, today=today)
            event_count = sum(len(s["events"]) for s in raw["shows"])
            log(f"  Found {len(raw['shows'])} show days, {event_count} events")
        else:
            log("Scraping disabled, using the saved raw scrape")
            download_from_r2("raw.json", config.RAW_PATH)
            raw = load_raw(log_func=log)
    except Exception as e:
        error_msg = str(e)
        log(f"  ERROR: Failed to scrape listing: {error_msg}", "ERROR")
        log(f"  Traceback:\n{traceback.format_exc()}", "ERROR")
        status["error"] = error_msg
        save_json_atomic(config.STATUS_PATH, status)
        write_run_log(log_lines)
        sys.exit(1)

    download_from_r2("spelling-corrections.json", config.CORRECTIONS_PATH)
    corrections = load_corrections(config.CORRECTIONS_PATH, log_func=log)
    prior_artists = load_existing_artists(log_func=log)
    prior_venues = load_existing_venues(log_func=log)

    log("\nProcessing databases...")
    artists_snapshot, venues_snapshot, calendar_snapshot, metrics = process_snapshots(
        raw,
        prior_artists,
        prior_venues,
        corrections,
        today=today,
        now=run_timestamp,
        log_func=log,
        verify_func=make_verify_func(log),
    )

    save_json_atomic(config.RAW_PATH, raw)
    save_json_atomic(config.ARTISTS_PATH, artists_snapshot)
    save_json_atomic(config.VENUES_PATH, venues_snapshot)
    save_json_atomic(config.CALENDAR_PATH, calendar_snapshot)
    log(f"Snapshots saved to {config.DATA_DIR}")

    problems = find_integrity_problems(artists_snapshot, venues_snapshot, calendar_snapshot)
    for problem in problems[:MAX_REPORTED_PROBLEMS]:
        log(f"  {problem}", "WARNING")
    if len(problems) > MAX_REPORTED_PROBLEMS:
        log(f"  ... and {len(problems) - MAX_REPORTED_PROBLEMS} more integrity problems", "WARNING")

    log_summary(log, metrics, artists_snapshot, venues_snapshot, calendar_snapshot)
    log(f"\nRun took {time.time() - start_time:.1f}s")

    status.update(
        {
            "success": True,
            "last_success": run_timestamp,
            "artists": artists_snapshot["total"],
            "venues": venues_snapshot["total"],
            "show_days": calendar_snapshot["metadata"]["totalShows"],
            "events": calendar_snapshot["metadata"]["totalEvents"],
            "verified_this_run": metrics["verified"],
            "integrity_problems": len(problems),
            "merge": metrics["merge"].to_dict(),
            "sweep": metrics["sweep"].to_dict(),
        }
    )
    save_json_atomic(config.STATUS_PATH, status)
    log(f"Status saved to {config.STATUS_PATH}")

    # Save log file (time-based retention: 14 days)
    write_run_log(log_lines)
    log(f"Log saved to {config.LOG_PATH}")

    upload_to_r2(log_func=log)


if __name__ == "__main__":
    main()
