#!/usr/bin/env python3
"""
Page Sequencer - fetch the numbered definition pages for one word
Pages ``<word>_1 .. <word>_N`` are requested in order with a fixed delay between
requests; the first page without a headword ends the sequence.
"""

import logging
import re
import time
from typing import Callable, List, Optional

import requests

from lexicon.config import LexiconConfig
from lexicon.errors import FetchError
from lexicon.models import Entry
from .oxford_extractor import extract_entry

logger = logging.getLogger(__name__)

# Statuses meaning "this page number does not exist for the word"
MISSING_PAGE_STATUSES = (404, 410)


def build_slug(term: str) -> str:
    return re.sub(r"\s+", "-", str(term).strip()).lower()


class OxfordPageSequencer:
    """Client for fetching Oxford Learner's Dictionaries definition pages"""

    def __init__(self, session: Optional[requests.Session] = None,
                 base_url: Optional[str] = None,
                 max_pages: Optional[int] = None,
                 delay: Optional[float] = None,
                 timeout: Optional[float] = None,
                 sleep: Callable[[float], None] = time.sleep):
        settings = LexiconConfig.get_scraper_config()
        self.base_url = (base_url or settings['base_url']).rstrip('/')
        self.max_pages = max_pages or settings['max_pages']
        self.delay = settings['delay_seconds'] if delay is None else delay
        self.timeout = timeout or settings['timeout']
        self._sleep = sleep

        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': settings['user_agent'],
            'Accept-Language': settings['accept_language'],
        })

    def page_urls(self, term: str, max_pages: Optional[int] = None) -> List[str]:
        slug = build_slug(term)
        count = max_pages or self.max_pages
        return [f"{self.base_url}/{slug}_{i}" for i in range(1, count + 1)]

    def fetch_page(self, url: str) -> Optional[str]:
        """Page markup, or None when the page does not exist"""
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.Timeout as e:
            raise FetchError(f"Timeout fetching {url}", url=url) from e
        except requests.RequestException as e:
            raise FetchError(f"Request error for {url}: {e}", url=url) from e

        if response.status_code in MISSING_PAGE_STATUSES:
            return None
        if not 200 <= response.status_code < 300:
            raise FetchError(f"HTTP {response.status_code} from {url}", url=url, status=response.status_code)
        return response.text

    def fetch_entries(self, term: str, max_pages: Optional[int] = None) -> List[Entry]:
        """All entries for a term; raises FetchError and keeps nothing on transport failure"""
        entries: List[Entry] = []
        for url in self.page_urls(term, max_pages):
            self._sleep(self.delay)
            html = self.fetch_page(url)
            entry = extract_entry(html) if html is not None else None
            if entry is None:
                logger.debug(f"No headword at {url}, stopping")
                break
            entries.append(entry)

        logger.info(f"Scraped {len(entries)} pages for '{term}'")
        return entries
