"""
Base scraper class for OJ Test Suite Downloader

This module provides the abstract base class for the per-service extractors. An extractor
only reads pages: the session fetches them and the login controller and download
orchestrator decide what to fetch. Everything an extractor knows is the structure of the
service's HTML.

The BaseScraper class defines:
- Identity extraction from any page with the user menu
- Sample test suite extraction from a problem page
- Problem list extraction from a contest page
- Submission form extraction (CSRF token and form action)
- Helpers for CSS selection and direct text children that raise ScrapeError on mismatch

Example:
    >>> from scraper.yukicoder_scraper import YukicoderScraper
    >>> page = session.get("/problems/no/1").recv_html()
    >>> suite = YukicoderScraper().extract_samples(page)
    >>> len(suite)
    2

Note:
    All service-specific scrapers must inherit from this class and implement
    the abstract methods: extract_identity(), extract_samples(), extract_problem_list(),
    extract_csrf_token() and extract_submit_url().
"""

from abc import ABC, abstractmethod
from typing import List, NamedTuple
import logging

from bs4 import BeautifulSoup, NavigableString
from bs4.element import Tag

from service.credentials import Identity
from testsuite.suite import TestSuite
from utils.error_handler import ScrapeError

logger = logging.getLogger(__name__)


class ProblemLink(NamedTuple):
    """A problem as listed on a contest page"""
    name: str
    href: str


class BaseScraper(ABC):
    """
    Abstract base class for all service-specific scrapers.

    Scrapers are stateless: every method takes a parsed page and either returns the
    extracted value or raises ScrapeError when the page does not have the expected
    structure.

    Example:
        >>> class MyServiceScraper(BaseScraper):
        ...     def extract_identity(self, page: BeautifulSoup) -> Identity:
        ...         # Implementation for specific service
        ...         pass
        ...
        >>> identity = MyServiceScraper().extract_identity(page)
    """

    @abstractmethod
    def extract_identity(self, page: BeautifulSoup) -> Identity:
        """
        Extract the logged-in user from a page

        Args:
            page (BeautifulSoup): Any page carrying the user menu

        Returns:
            Identity: The user, or Identity.UNAUTHENTICATED when not logged in

        Raises:
            ScrapeError: If the user menu is missing
        """
        pass

    @abstractmethod
    def extract_samples(self, page: BeautifulSoup) -> TestSuite:
        """
        Extract the test suite described by a problem page

        Args:
            page (BeautifulSoup): Problem page

        Returns:
            TestSuite: Batch suite with the sample cases, or an interactive suite

        Raises:
            ScrapeError: If the time limit or the samples cannot be found
        """
        pass

    @abstractmethod
    def extract_problem_list(self, page: BeautifulSoup) -> List[ProblemLink]:
        """
        Extract the problems of a contest, in listing order

        Args:
            page (BeautifulSoup): Contest page

        Returns:
            List[ProblemLink]: Problem names and their links

        Raises:
            ScrapeError: If no problem can be found
        """
        pass

    @abstractmethod
    def extract_csrf_token(self, page: BeautifulSoup) -> str:
        pass

    @abstractmethod
    def extract_submit_url(self, page: BeautifulSoup) -> str:
        pass

    def is_public(self, page: BeautifulSoup) -> bool:
        """Whether a problem page shows the problem. Services without hidden problems keep the default"""
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def select_one(page: Tag, selector: str) -> Tag:
        element = page.select_one(selector)
        if element is None:
            logger.debug(f"Selector matched nothing: {selector}")
            raise ScrapeError(f"Failed to scrape: nothing matches {selector!r}")
        return element

    @staticmethod
    def direct_texts(element: Tag) -> List[str]:
        """Text nodes that are direct children of an element"""
        # Comments and CDATA are NavigableString subclasses
        return [str(child) for child in element.children if type(child) is NavigableString]
