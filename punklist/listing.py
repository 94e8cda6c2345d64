import copy
import random
import re
import time
from urllib.parse import quote

import requests
from bs4 import BeautifulSoup

from punklist import config
from punklist.pipeline.validate import validate_event
from punklist.utils.dates import parse_day_label


def _encode_query(text):
    return quote(re.sub(r"\s+", " ", text).strip())


def clean_extra(text):
    """Tidy the leftover event text: stray commas, newlines, runs of spaces."""
    text = re.sub(r"--\s*,", "--", text)
    text = re.sub(r"\s+,", ",", text)
    text = re.sub(r",+", ",", text)
    text = re.sub(r"\s*\n\s*", " ", text)
    text = re.sub(r"\s{2,}", " ", text)
    text = re.sub(r"(,\s*)+", ", ", text)
    text = re.sub(r"^[,\s]+|[,\s]+$", "", text)
    return text.strip()


def _parse_event(event_li):
    venue_link = event_li.select_one('a[href^="by-club"]')
    venue_text = venue_link.get_text(" ", strip=True) if venue_link else ""
    venue = {
        "text": venue_text,
        "href": f"https://www.google.com/search?q={_encode_query(venue_text)}" if venue_text else None,
    }

    bands = []
    for band_link in event_li.select('a[href*="by-band"]'):
        band_text = re.sub(r"\s+,", ",", band_link.get_text()).strip()
        if not band_text:
            continue
        bands.append(
            {
                "text": band_text,
                "href": f"https://open.spotify.com/search/{_encode_query(band_text)}",
            }
        )

    leftover = copy.copy(event_li)
    for link in leftover.find_all("a"):
        link.decompose()
    extra = leftover.get_text()
    if venue_text:
        extra = extra.replace(venue_text, "")

    return {"venue": venue, "bands": bands, "extra": clean_extra(extra)}


def parse_listing_page(html, today=None):
    """
    Parse the by-date listing page.
    Each top-level <li> is a show day ("<a><b>wed apr 23</b></a>") holding a
    <ul> of event <li>s: one by-club link for the venue, by-band links for
    the bands, and free text (ages, price, time) that becomes "extra".
    Returns {"shows": [{day, normalizedDate, events}]}.
    """
    soup = BeautifulSoup(html, "html.parser")
    shows = []

    for day_li in soup.select("ul > li"):
        label_tag = day_li.select_one(":scope > a > b")
        day = label_tag.get_text(" ", strip=True) if label_tag else ""
        events_ul = day_li.find("ul", recursive=False)
        if not day or events_ul is None:
            continue

        events = [_parse_event(li) for li in events_ul.find_all("li", recursive=False)]
        events = [e for e in events if validate_event(e)]
        if not events:
            continue

        shows.append(
            {
                "day": day,
                "normalizedDate": parse_day_label(day, today),
                "events": events,
            }
        )

    return {"shows": shows}


def fetch_with_retry(url, max_retries=3):
    for attempt in range(max_retries):
        try:
            r = requests.get(url, headers=config.LISTING_HEADERS, timeout=30)
            if r.status_code == 200:
                return r.text
            elif r.status_code >= 500:
                if attempt < max_retries - 1:
                    wait = (2 ** attempt) * 2 + random.uniform(1, 3)
                    time.sleep(wait)
                    continue
            r.raise_for_status()
            return None
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
            if attempt < max_retries - 1:
                wait = (2 ** attempt) * 2 + random.uniform(1, 3)
                print(f"    Listing: Retry {attempt + 1}/{max_retries} after {type(e).__name__}...")
                time.sleep(wait)
            else:
                raise
    return None


def scrape_listings(url=None, today=None):
    """Fetch and parse the listing. Raises when the page can't be fetched."""
    url = url or config.LISTING_URL
    html = fetch_with_retry(url)
    if html is None:
        raise RuntimeError(f"Could not fetch listing page: {url}")
    return parse_listing_page(html, today)
