import json
import os
import re
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

from punklist import config
from punklist.pipeline.r2 import download_from_r2


def trim_log_by_time(log_path, retention_days=14):
    """
    Remove log entries older than retention_days.
    Returns list of lines to keep.
    """
    log_path = Path(log_path)
    if not log_path.exists():
        return []

    cutoff = datetime.now(timezone.utc) - timedelta(days=retention_days)
    cutoff_str = cutoff.strftime("%Y-%m-%d %H:%M:%S")

    kept_lines = []
    current_entry_recent = False

    with open(log_path, "r") as f:
        for line in f:
            match = re.match(r"\[(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})\]", line)
            if match:
                current_entry_recent = match.group(1) >= cutoff_str

            if current_entry_recent:
                kept_lines.append(line)

    return kept_lines


def write_run_log(log_lines, log_path=None, retention_days=config.LOG_RETENTION_DAYS):
    """Append this run's log lines after the entries still inside the retention window."""
    log_path = Path(log_path or config.LOG_PATH)
    existing_log = trim_log_by_time(log_path, retention_days=retention_days)
    log_content = existing_log + ["\n--- New Run ---\n"] + [line + "\n" for line in log_lines]

    log_path.parent.mkdir(parents=True, exist_ok=True)
    with open(log_path, "w") as f:
        f.writelines(log_content)


def save_json_atomic(path, data):
    """
    Write JSON to a temp file beside path, then rename it into place.
    Readers see the old file or the new one, never half of either.
    Errors propagate.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def load_json(path, default, label=None, log_func=None):
    """
    Load a JSON file, returning default when it is missing or unreadable.
    A missing file is normal on a first run; a broken one is warned about.
    """
    log = log_func or print
    path = Path(path)
    label = label or path.name

    if not path.exists():
        log(f"  No existing {label} found, starting fresh")
        return default

    try:
        with open(path, "r") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        log(f"  Warning: Could not load {label}: {e}")
        return default


def load_raw(path=None, log_func=None):
    """Load the raw scrape from a previous run."""
    data = load_json(path or config.RAW_PATH, {"shows": []}, "raw scrape", log_func)
    if not isinstance(data, dict) or not isinstance(data.get("shows"), list):
        (log_func or print)("  Warning: raw scrape has no shows list, ignoring it")
        return {"shows": []}
    return data


def load_existing_artists(log_func=None):
    """Load the previous artist snapshot (download from R2 first if available)."""
    download_from_r2("artists.json", config.ARTISTS_PATH)
    return load_json(config.ARTISTS_PATH, {"artists": []}, "artists snapshot", log_func)


def load_existing_venues(log_func=None):
    """Load the previous venue snapshot (download from R2 first if available)."""
    download_from_r2("venues.json", config.VENUES_PATH)
    return load_json(config.VENUES_PATH, {"venues": []}, "venues snapshot", log_func)


def load_existing_status(log_func=None):
    """Load existing run status file if available."""
    download_from_r2("run-status.json", config.STATUS_PATH)
    data = load_json(config.STATUS_PATH, {}, "run status", log_func)
    return data if isinstance(data, dict) else {}
