"""
Google Books enricher for bookcat.

Looks up bibliographic metadata for books added to a catalog and picks
random suggestions for the "what should I read next" feature.
"""

import os
import re
import random
import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import aiohttp

from ..models import Book, is_valid_year
from .base import MetadataEnricher

logger = logging.getLogger(__name__)

GOOGLE_BOOKS_URL = "https://www.googleapis.com/books/v1/volumes"

FICTION_KEYWORDS = ['fiction', 'novel', 'fantasy', 'science fiction', 'mystery', 'thriller', 'romance']
NON_FICTION_KEYWORDS = ['biography', 'history', 'science', 'self-help', 'business', 'memoir', 'reference']

HOLIDAY_KEYWORDS = {
    'Christmas': ['christmas', 'santa', 'xmas', 'holiday', 'winter wonderland', 'reindeer', 'snowman'],
    'Halloween': ['halloween', 'spooky', 'ghost', 'witch', 'pumpkin', 'haunted'],
    'Easter': ['easter', 'bunny', 'egg'],
    'Thanksgiving': ['thanksgiving', 'turkey', 'pilgrim'],
    'Summer': ['summer', 'beach', 'vacation', 'sun'],
    'Valentine': ['valentine', 'love', 'romance', 'heart'],
    'New Year': ['new year', 'resolution'],
}

SUGGESTION_SUBJECTS = [
    'fiction', 'mystery', 'fantasy', 'science fiction', 'romance', 'thriller',
    'historical fiction', 'adventure', 'biography', 'self-help', 'history',
]


def classify_genre(categories: List[str]) -> str:
    """Reduce Google Books categories to Fiction / Non-fiction."""
    text = ' '.join(c.lower() for c in categories)
    has_fiction = any(keyword in text for keyword in FICTION_KEYWORDS)
    has_non_fiction = any(keyword in text for keyword in NON_FICTION_KEYWORDS)

    if has_non_fiction and not has_fiction:
        return 'Non-fiction'
    return 'Fiction'


def detect_holiday_category(title: str, description: str) -> Optional[str]:
    """Return the first holiday whose keywords appear in title or description."""
    text = f"{title} {description}".lower()
    for holiday, keywords in HOLIDAY_KEYWORDS.items():
        if any(keyword in text for keyword in keywords):
            return holiday
    return None


def _normalize(value: str) -> str:
    return re.sub(r'[^\w\s]', '', value.lower().strip())


def _isbn(volume_info: Dict[str, Any], kind: str) -> Optional[str]:
    for identifier in volume_info.get('industryIdentifiers') or []:
        if identifier.get('type') == kind:
            return identifier.get('identifier')
    return None


class GoogleBooksEnricher(MetadataEnricher):
    """Enrich books from the Google Books volumes API."""

    def __init__(self, api_key: Optional[str] = None, base_url: str = GOOGLE_BOOKS_URL,
                 timeout: float = 10.0, rate_limit: int = 100):
        """
        Args:
            api_key: Optional API key; falls back to GOOGLE_BOOKS_API_KEY
            base_url: Volumes endpoint
            timeout: Total seconds allowed per request
            rate_limit: Requests per minute (0 disables the limiter)
        """
        self.api_key = api_key or os.environ.get('GOOGLE_BOOKS_API_KEY')
        self.base_url = base_url
        self.timeout = timeout
        self.rate_limit = rate_limit
        self._request_times: List[float] = []

    @property
    def name(self) -> str:
        return "google_books"

    async def _rate_limit_check(self) -> None:
        """Check and enforce rate limiting."""
        if not self.rate_limit:
            return

        now = datetime.now().timestamp()

        # Remove timestamps older than 1 minute
        self._request_times = [t for t in self._request_times if now - t < 60]

        if len(self._request_times) >= self.rate_limit:
            wait_time = 60 - (now - self._request_times[0])
            if wait_time > 0:
                logger.debug(f"Rate limit reached, waiting {wait_time:.1f} seconds")
                await asyncio.sleep(wait_time)

        self._request_times.append(now)

    async def _fetch(self, params: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Query the volumes endpoint.

        Returns:
            Decoded response, or None on a non-200 status
        """
        await self._rate_limit_check()

        if self.api_key:
            params = dict(params, key=self.api_key)

        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(self.base_url, params=params) as response:
                if response.status != 200:
                    logger.warning(f"Google Books request failed with status {response.status}")
                    return None
                return await response.json()

    def _parse_volume_info(self, volume_info: Dict[str, Any]) -> Dict[str, Any]:
        """Map a volumeInfo object onto BookFormData field names."""
        metadata: Dict[str, Any] = {}
        description = volume_info.get('description') or ''
        title = volume_info.get('title')

        if title:
            metadata['title'] = title

        if volume_info.get('authors'):
            metadata['author'] = ', '.join(volume_info['authors'])

        metadata['genre'] = classify_genre(volume_info.get('categories') or [])

        holiday = detect_holiday_category(title or '', description)
        if holiday:
            metadata['holiday_category'] = holiday

        image_links = volume_info.get('imageLinks') or {}
        cover = image_links.get('thumbnail') or image_links.get('smallThumbnail')
        if cover:
            metadata['cover_image_url'] = cover.replace('http:', 'https:', 1)

        isbn = _isbn(volume_info, 'ISBN_13') or _isbn(volume_info, 'ISBN_10')
        if isbn:
            metadata['isbn'] = isbn

        published = volume_info.get('publishedDate') or ''
        match = re.match(r'(\d{1,4})', published)
        if match and is_valid_year(int(match.group(1))):
            metadata['publication_year'] = int(match.group(1))

        if description:
            metadata['description'] = description

        return metadata

    async def enrich(self, title: str, author: str) -> Dict[str, Any]:
        """
        Look up the best match for ``title`` and ``author``.

        Returns:
            Suggested fields, or an empty dict when nothing was found or the
            request failed
        """
        query = f"{title} {author}".strip()
        if not query:
            return {}

        try:
            data = await self._fetch({'q': query, 'maxResults': 1})
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Google Books lookup failed for '{query}': {e}")
            return {}

        items = (data or {}).get('items') or []
        if not items:
            logger.info(f"No Google Books match for '{query}'")
            return {}

        metadata = self._parse_volume_info(items[0].get('volumeInfo') or {})
        logger.debug(f"Enriched '{query}' with fields: {sorted(metadata)}")
        return metadata

    async def suggest(self, existing_books: Sequence[Book]) -> Optional[Dict[str, Any]]:
        """
        Pick a random book from a random subject that is not already owned.

        Books are considered owned when the normalized title/author pair or
        the ISBN matches an existing book.
        """
        subject = random.choice(SUGGESTION_SUBJECTS)
        params = {'q': f'subject:{subject}', 'orderBy': 'relevance', 'maxResults': 40}

        try:
            data = await self._fetch(params)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Google Books suggestion failed: {e}")
            return None

        items = (data or {}).get('items') or []
        owned_keys = {f"{_normalize(b.title)}|{_normalize(b.author)}" for b in existing_books}
        owned_isbns = {b.isbn for b in existing_books if b.isbn}

        candidates = []
        for item in items:
            info = item.get('volumeInfo') or {}
            if not info.get('title') or not info.get('authors'):
                continue
            key = f"{_normalize(info['title'])}|{_normalize(info['authors'][0])}"
            if key in owned_keys:
                continue
            isbns = {_isbn(info, 'ISBN_13'), _isbn(info, 'ISBN_10')} - {None}
            if isbns & owned_isbns:
                continue
            candidates.append(info)

        if not candidates:
            return None

        return self._parse_volume_info(random.choice(candidates))
