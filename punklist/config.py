import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

REPO_ROOT = Path(__file__).resolve().parents[1]
DATA_DIR = Path(os.environ.get("PUNKLIST_DATA_DIR", REPO_ROOT / "data"))
RAW_PATH = DATA_DIR / "raw.json"
ARTISTS_PATH = DATA_DIR / "artists.json"
VENUES_PATH = DATA_DIR / "venues.json"
CALENDAR_PATH = DATA_DIR / "calendar.json"
CORRECTIONS_PATH = DATA_DIR / "spelling-corrections.json"
STATUS_PATH = DATA_DIR / "run-status.json"
LOG_PATH = DATA_DIR / "run-log.txt"

LOG_RETENTION_DAYS = 14
TIMEZONE = "America/Los_Angeles"

LISTING_URL = os.environ.get("LISTING_URL", "http://www.foopee.com/punk/the-list/by-date.0.html")
LISTING_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}
SCRAPE_LISTINGS = os.environ.get("SCRAPE_LISTINGS", "true").lower() == "true"
CALENDAR_UPCOMING_ONLY = os.environ.get("CALENDAR_UPCOMING_ONLY", "true").lower() == "true"

# Matching thresholds
ARTIST_FUZZY_THRESHOLD = float(os.environ.get("ARTIST_FUZZY_THRESHOLD", "0.9"))
VENUE_FUZZY_THRESHOLD = float(os.environ.get("VENUE_FUZZY_THRESHOLD", "0.9"))
RECONCILE_FUZZY_THRESHOLD = float(os.environ.get("RECONCILE_FUZZY_THRESHOLD", "0.85"))
ADDRESS_MATCH_SCORE = 0.95
ARTIST_INGEST_FUZZY = os.environ.get("ARTIST_INGEST_FUZZY", "false").lower() == "true"
MIN_NAME_LENGTH = 3
MAX_ARTIST_NAME_LENGTH = 100

# 924 Gilman shows up under many spellings; all of them are one venue.
GILMAN_VENUE = {
    "id": "924-gilman-street-berkeley",
    "name": "924 Gilman Street",
    "address": "924 Gilman Street",
    "city": "Berkeley",
}

CITY_ABBREVIATIONS = {
    "sf": "San Francisco",
    "s.f.": "San Francisco",
    "s f": "San Francisco",
    "san fran": "San Francisco",
    "frisco": "San Francisco",
    "san francisco": "San Francisco",
    "oak": "Oakland",
    "oakland": "Oakland",
    "berk": "Berkeley",
    "berkeley": "Berkeley",
    "sj": "San Jose",
    "san jose": "San Jose",
    "mv": "Mountain View",
    "mountain view": "Mountain View",
    "pa": "Palo Alto",
    "palo alto": "Palo Alto",
    "rc": "Redwood City",
    "redwood city": "Redwood City",
    "sc": "Santa Cruz",
    "santa cruz": "Santa Cruz",
    "sac": "Sacramento",
    "sacramento": "Sacramento",
    "petaluma": "Petaluma",
    "santa rosa": "Santa Rosa",
    "richmond": "Richmond",
    "vallejo": "Vallejo",
    "hayward": "Hayward",
    "fremont": "Fremont",
}

SPOTIFY_CLIENT_ID = os.environ.get("SPOTIFY_CLIENT_ID")
SPOTIFY_CLIENT_SECRET = os.environ.get("SPOTIFY_CLIENT_SECRET")
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_SEARCH_URL = "https://api.spotify.com/v1/search"
SPOTIFY_VERIFY_LIMIT = int(os.environ.get("SPOTIFY_VERIFY_LIMIT", "50"))
SPOTIFY_BATCH_SIZE = int(os.environ.get("SPOTIFY_BATCH_SIZE", "5"))
SPOTIFY_BATCH_DELAY = float(os.environ.get("SPOTIFY_BATCH_DELAY", "2.0"))
SPOTIFY_REQUEST_DELAY = 0.05
SPOTIFY_MAX_RETRIES = 3

R2_ACCOUNT_ID = os.environ.get("R2_ACCOUNT_ID")
R2_ACCESS_KEY_ID = os.environ.get("R2_ACCESS_KEY_ID")
R2_SECRET_ACCESS_KEY = os.environ.get("R2_SECRET_ACCESS_KEY")
R2_BUCKET_NAME = os.environ.get("R2_BUCKET_NAME", "punk-list-data")
