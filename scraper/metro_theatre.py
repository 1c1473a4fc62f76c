"""Scraper for Metro Theatre (Sydney) upcoming events."""
import logging
import time
from datetime import datetime, timezone
from typing import List
from urllib.parse import urljoin
from zoneinfo import ZoneInfo

import requests
from bs4 import BeautifulSoup

from processor.errors import ScrapeError
from processor.models import Address, Event, Geo, SourceType

logger = logging.getLogger(__name__)


class MetroTheatreScraper:
    """Scraper for the Metro Theatre upcoming events listing."""

    LISTING_URL = "https://www.metrotheatre.com.au/?s&key=upcoming"
    VENUE_NAME = "Metro Theatre"
    VENUE_TZ = ZoneInfo("Australia/Sydney")
    SESSION_DATE_FORMAT = "%A, %d %B %Y %I:%M %p"

    def __init__(
        self,
        timeout: int = 30,
        request_delay: float = 1.0,
        listing_url: str = LISTING_URL
    ):
        """
        Initialize the scraper.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
            request_delay: Pause between event page fetches in seconds
            listing_url: Page listing upcoming events
        """
        self.timeout = timeout
        self.request_delay = request_delay
        self.listing_url = listing_url

    @property
    def source(self) -> SourceType:
        return SourceType.METRO_THEATRE

    def fetch_events(self) -> List[Event]:
        """
        Crawl the listing page and scrape every linked event.

        Links that fail to fetch or parse are logged and skipped.

        Returns:
            List of candidate Event objects

        Raises:
            requests.RequestException: If the listing page cannot be fetched
        """
        logger.info("Starting Metro Theatre scrape")
        links = self._parse_links(self._fetch_html(self.listing_url))
        logger.info(f"Found {len(links)} event links")

        events = []
        for i, link in enumerate(links):
            if i > 0:
                time.sleep(self.request_delay)
            try:
                events.append(self.fetch_event(link))
            except ScrapeError as e:
                logger.error(str(e))
                continue

        logger.info(f"Successfully scraped {len(events)} events")
        return events

    def fetch_event(self, url: str) -> Event:
        """
        Scrape a single event page.

        Raises:
            ScrapeError: If the page cannot be fetched or a field is missing
        """
        logger.debug(f"Scraping event at {url}")
        try:
            html_content = self._fetch_html(url)
        except requests.RequestException as e:
            raise ScrapeError(url, str(e)) from e
        return self._parse_event(url, html_content)

    def _fetch_html(self, url: str) -> str:
        response = requests.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.text

    def _parse_links(self, html_content: str) -> List[str]:
        soup = BeautifulSoup(html_content, 'html.parser')
        links = []
        for card in soup.select('a.evt-card'):
            href = card.get('href')
            if href:
                links.append(urljoin(self.listing_url, href))
            else:
                logger.debug("No link found in evt-card")
        return links

    def _parse_event(self, url: str, html_content: str) -> Event:
        soup = BeautifulSoup(html_content, 'html.parser')

        title_elem = soup.select_one('h1.title')
        if title_elem is None:
            raise ScrapeError(url, "no title found")

        description_elem = soup.select_one('div.post-content')
        if description_elem is None:
            raise ScrapeError(url, "no description found")

        date_elem = soup.select_one('li.session-date')
        if date_elem is None:
            raise ScrapeError(url, "no date found")

        start = self._parse_session_date(url, date_elem.get_text(strip=True))

        return Event(
            event_id='',
            source_name=self.source,
            source_event_id=url,
            title=title_elem.get_text(strip=True),
            description=description_elem.get_text(" ", strip=True),
            start=start,
            end=start,
            venue_name=self.VENUE_NAME,
            address=Address(
                line1="624 George St",
                post_code="2000",
                locality="Sydney",
                region="NSW",
                country="Australia",
            ),
            geo=Geo(lat=-33.87557496143779, lng=151.206671962522),
            url=url,
            fetched_at=datetime.now(timezone.utc),
        )

    def _parse_session_date(self, url: str, text: str) -> datetime:
        """
        Parse a session date such as "Friday, 31 October 2025 08:00 PM".

        Times on the page are venue-local.
        """
        try:
            local = datetime.strptime(text, self.SESSION_DATE_FORMAT)
        except ValueError as e:
            raise ScrapeError(url, f"unparseable date {text!r}") from e
        return local.replace(tzinfo=self.VENUE_TZ).astimezone(timezone.utc)
