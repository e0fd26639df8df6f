"""
Scraper package for OJ Test Suite Downloader
Contains the base scraper class and service-specific scrapers
"""

from .base_scraper import BaseScraper, ProblemLink
from .yukicoder_scraper import YukicoderScraper

__all__ = [
    'BaseScraper',
    'ProblemLink',
    'YukicoderScraper',
]
