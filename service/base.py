"""
Base service class for OJ Test Suite Downloader

A service ties together everything one judge needs for a command: the HTTP session bound
to its domain, its scraper, the console and the login controller. The download
orchestrator and the CLI only talk to services through this interface.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from scraper.base_scraper import BaseScraper
from service.archive import PairingDescriptor
from service.credentials import Identity, StoredCredential
from service.login import Authenticator, LoginController
from service.session import HttpSession
from utils.console import Console

logger = logging.getLogger(__name__)


class Service(ABC):
    """
    Abstract base class for all judge services.

    Attributes:
        name (str): Service name used in config templates (e.g. "yukicoder")
        base_domain (str): Host relative URLs are resolved against
        session (HttpSession): Session for this command
        extractor (BaseScraper): Page scraper for this service
        console (Console): User-facing output
        max_concurrent_downloads (int): Archive downloads running at once
        archive_workers (Optional[int]): Threads decoding archive entries
    """

    name: str = ""
    base_domain: Optional[str] = None

    def __init__(self, session: HttpSession, extractor: BaseScraper,
                 credential: Optional[StoredCredential] = None, console: Optional[Console] = None,
                 login_max_attempts: Optional[int] = None, max_concurrent_downloads: int = 4,
                 archive_workers: Optional[int] = None):
        self.session = session
        self.extractor = extractor
        self.console = console or session.console
        self.max_concurrent_downloads = max_concurrent_downloads
        self.archive_workers = archive_workers
        self.login_controller = LoginController(
            session, extractor, self.console, credential or StoredCredential(),
            self.authenticator(), max_attempts=login_max_attempts
        )

    @abstractmethod
    def authenticator(self) -> Authenticator:
        pass

    def login(self, assure: bool) -> Identity:
        return self.login_controller.login(assure)

    @property
    def identity(self) -> Identity:
        return self.login_controller.identity

    @property
    def silent(self) -> bool:
        return self.session.silent

    # ------------------------------------------------------------------
    # Addressing
    # ------------------------------------------------------------------

    def normalize_problem(self, problem: str) -> str:
        return problem

    def is_direct(self, contest: str) -> bool:
        """Whether problems of this contest are fetched one by one without a listing page"""
        return False

    @abstractmethod
    def problem_path(self, problem: str) -> str:
        pass

    @abstractmethod
    def listing_path(self, contest: str) -> str:
        pass

    # ------------------------------------------------------------------
    # Archives
    # ------------------------------------------------------------------

    def archive_descriptor(self) -> Optional[PairingDescriptor]:
        """How this service's test case archives are laid out, None if it has none"""
        return None

    def archive_key(self, name: str, url: str) -> Optional[str]:
        """Identifier used for the solved-status lookup and the archive URL"""
        return None

    def archive_url(self, key: str) -> Optional[str]:
        """Where the archive of a problem is published, None if it has none"""
        return None

    def filter_solved(self, keys: Sequence[str]) -> List[str]:
        return []
