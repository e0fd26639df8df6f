"""
HTTP session for OJ Test Suite Downloader

HttpSession wraps a requests.Session for the lifetime of one command. It owns the cookie
jar (a Mozilla/Netscape text file loaded at start and written back by `save_cookies`),
resolves relative URLs against the service's base domain, and issues requests through a
small builder that fails on any status the caller did not declare acceptable.

Redirects are never followed and failed requests are never retried: a redirect is data the
caller inspects (the submit flow reads its Location header) and a timeout is reported as a
NetworkError for the user to act on.

Example:
    >>> with HttpSession.start("yukicoder.me", cookies_path=Path("cookies.txt")) as session:
    ...     page = session.get("/problems/no/1").acceptable([200, 404]).recv_html()
"""

import logging
import webbrowser
from http.cookiejar import LoadError, MozillaCookieJar
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple, Union
from urllib.parse import urljoin, urlsplit

import requests
from requests.cookies import create_cookie
from bs4 import BeautifulSoup

from utils.console import Console
from utils.error_handler import (
    NetworkError, UnexpectedStatusError, URLValidationError, CookieStoreError, ScrapeError
)

logger = logging.getLogger(__name__)

USER_AGENT = "oj-testsuite-downloader (+https://github.com/oj-testsuite-downloader)"

GET_ACCEPTABLE: Tuple[int, ...] = (200,)
POST_ACCEPTABLE: Tuple[int, ...] = (200, 302)


class Request:
    """
    A pending request: declare the acceptable statuses, then send it in one of the
    supported shapes
    """

    def __init__(self, session: 'HttpSession', method: str, url: str,
                 acceptable: Sequence[int]):
        self._session = session
        self.method = method
        self.url = url
        self._acceptable = tuple(acceptable)

    def acceptable(self, statuses: Iterable[int]) -> 'Request':
        self._acceptable = tuple(statuses)
        return self

    def send(self) -> requests.Response:
        return self._session.send_request(self.method, self.url, self._acceptable)

    def send_form(self, data: Dict[str, str]) -> requests.Response:
        return self._session.send_request(self.method, self.url, self._acceptable, data=data)

    def send_multipart(self, fields: Dict[str, str]) -> requests.Response:
        # (None, value) makes requests emit a plain form-data part without a filename
        files = {name: (None, value) for name, value in fields.items()}
        return self._session.send_request(self.method, self.url, self._acceptable, files=files)

    def recv_html(self) -> BeautifulSoup:
        return BeautifulSoup(self.send().text, 'lxml')

    def recv_json(self) -> Any:
        response = self.send()
        try:
            return response.json()
        except ValueError as e:
            raise ScrapeError(f"Invalid JSON from {self.url}: {e}", self.url) from e


class HttpSession:
    """Cookie-persistent, base-domain aware wrapper around requests.Session"""

    def __init__(self, session: requests.Session, base_url: Optional[str] = None,
                 cookies_path: Optional[Path] = None, silent: bool = False,
                 timeout: Optional[float] = 30, console: Optional[Console] = None):
        self.session = session
        self.base_url = base_url
        self.cookies_path = cookies_path
        self.silent = silent
        self.timeout = timeout
        self.console = console or Console()

    @classmethod
    def start(cls, base_domain: Optional[str] = None, cookies_path: Optional[Union[str, Path]] = None,
              silent: bool = False, timeout: Optional[float] = 30,
              console: Optional[Console] = None) -> 'HttpSession':
        """
        Build a session and load the persisted cookie jar

        Args:
            base_domain (Optional[str]): Host relative URLs are resolved against (https)
            cookies_path (Optional[Union[str, Path]]): Mozilla-format cookie file
            silent (bool): Do not print requests to the console
            timeout (Optional[float]): Read timeout in seconds, None for no timeout
            console (Optional[Console]): Where progress lines go

        Returns:
            HttpSession: The started session

        Raises:
            CookieStoreError: If the cookie file exists but cannot be read or parsed
        """
        session = requests.Session()
        session.headers.update({'User-Agent': USER_AGENT})

        cookies_path = Path(cookies_path) if cookies_path is not None else None
        if cookies_path is not None:
            jar = MozillaCookieJar(str(cookies_path))
            if cookies_path.exists():
                try:
                    jar.load(str(cookies_path), ignore_discard=True, ignore_expires=True)
                except (LoadError, OSError) as e:
                    raise CookieStoreError(f"Failed to load cookies from {cookies_path}: {e}",
                                           str(cookies_path), e)
                logger.debug(f"Loaded {len(jar)} cookie(s) from {cookies_path}")
            session.cookies = jar

        base_url = f"https://{base_domain}" if base_domain else None
        return cls(session, base_url, cookies_path, silent, timeout, console)

    # ------------------------------------------------------------------
    # URLs
    # ------------------------------------------------------------------

    @property
    def host(self) -> Optional[str]:
        return urlsplit(self.base_url).hostname if self.base_url else None

    def resolve_url(self, url: str) -> str:
        """
        Resolve a possibly relative URL against the base domain

        Raises:
            URLValidationError: If the URL is malformed, or relative without a base domain
        """
        try:
            parts = urlsplit(url)
        except ValueError as e:
            raise URLValidationError(f"Malformed URL: {url!r}: {e}", url) from e

        if parts.scheme:
            if parts.scheme not in ('http', 'https') or not parts.netloc:
                raise URLValidationError(f"Malformed URL: {url!r}", url)
            return url
        if parts.netloc:
            raise URLValidationError(f"URL without a scheme: {url!r}", url)
        if self.base_url is None:
            raise URLValidationError(f"Relative URL without a base domain: {url!r}", url)
        return urljoin(self.base_url, url)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def get(self, url: str) -> Request:
        return Request(self, 'GET', self.resolve_url(url), GET_ACCEPTABLE)

    def post(self, url: str) -> Request:
        return Request(self, 'POST', self.resolve_url(url), POST_ACCEPTABLE)

    def send_request(self, method: str, url: str, acceptable: Sequence[int],
                     **kwargs) -> requests.Response:
        timeout = (self.timeout // 2, self.timeout) if self.timeout else None
        try:
            response = self.session.request(method, url, timeout=timeout,
                                            allow_redirects=False, **kwargs)
        except requests.exceptions.Timeout as e:
            raise NetworkError(f"Timed out: {method} {url}", original_exception=e, url=url) from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Request failed: {method} {url}: {e}", original_exception=e, url=url) from e

        logger.debug(f"{method} {url} -> {response.status_code}")
        if not self.silent:
            self.console.write(f"{method} {url} ... {response.status_code} {response.reason or ''}".rstrip())

        if response.status_code not in acceptable:
            raise UnexpectedStatusError(
                f"Unexpected status {response.status_code} for {method} {url} "
                f"(expected {', '.join(map(str, acceptable))})",
                url, response.status_code, acceptable
            )
        return response

    def open_in_browser(self, url: str) -> None:
        """Open a URL in the default browser. Failures are reported, never raised"""
        if not self.silent:
            self.console.write(f"Opening {url} in the default browser...")
        try:
            opened = webbrowser.open(url)
        except webbrowser.Error as e:
            logger.error(f"Failed to open {url}: {e}")
            self.console.warn(f"Failed to open {url} in the browser: {e}")
            return
        if not opened:
            self.console.warn(f"Failed to open {url} in the browser")

    # ------------------------------------------------------------------
    # Cookies
    # ------------------------------------------------------------------

    def clear_cookies(self) -> None:
        self.session.cookies.clear()

    def insert_cookie(self, name: str, value: str) -> None:
        self.session.cookies.set_cookie(create_cookie(name, value, domain=self.host or '', path='/'))

    def save_cookies(self) -> None:
        """
        Write the jar back to its file

        Raises:
            CookieStoreError: If the file cannot be written
        """
        if self.cookies_path is None:
            return
        jar = self.session.cookies
        try:
            self.cookies_path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(jar, MozillaCookieJar):
                jar.save(str(self.cookies_path), ignore_discard=True, ignore_expires=True)
            else:
                mozilla = MozillaCookieJar(str(self.cookies_path))
                for cookie in jar:
                    mozilla.set_cookie(cookie)
                mozilla.save(ignore_discard=True, ignore_expires=True)
        except OSError as e:
            raise CookieStoreError(f"Failed to save cookies to {self.cookies_path}: {e}",
                                   str(self.cookies_path), e)
        logger.debug(f"Saved cookies to {self.cookies_path}")

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> 'HttpSession':
        return self

    def __exit__(self, exc_type, exc_value, tb) -> None:
        try:
            self.save_cookies()
        finally:
            self.close()
