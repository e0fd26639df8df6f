"""
Login state machine

    LOGGED_OUT -> PROBING_STORED -> LOGGED_IN
                                 -> INTERACTIVE_RETRY -> LOGGED_IN | LOGGED_OUT | ABANDONED

A configured credential is consumed once and checked. If the session still has no identity,
an attended console enters the interactive loop, which prompts until the service accepts a
credential, the user declines, or the optional attempt cap is reached.

How a credential is installed into the session is the authenticator's business: yukicoder
takes a session cookie pasted from the browser, form-login services post a username and a
password.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from scraper.base_scraper import BaseScraper
from service.credentials import (
    Credential, Identity, SessionToken, StoredCredential, UsernamePassword
)
from service.session import HttpSession
from utils.console import Console
from utils.error_handler import LoginRequiredError, WrongCredentialError

logger = logging.getLogger(__name__)


class LoginState(Enum):
    LOGGED_OUT = "logged_out"
    PROBING_STORED = "probing_stored"
    LOGGED_IN = "logged_in"
    INTERACTIVE_RETRY = "interactive_retry"
    ABANDONED = "abandoned"


class Authenticator(ABC):
    """Prompts for a credential and installs it into a session"""

    label: str = "credential"
    instructions: str = ""

    def print_instructions(self, console: Console) -> None:
        if self.instructions:
            console.write(self.instructions)

    @abstractmethod
    def prompt(self, console: Console) -> Credential:
        pass

    @abstractmethod
    def install(self, session: HttpSession, credential: Credential) -> None:
        """Replace whatever identity the session holds with the given credential"""
        pass


class SessionCookieAuthenticator(Authenticator):
    def __init__(self, cookie_name: str, label: Optional[str] = None, instructions: str = ""):
        self.cookie_name = cookie_name
        self.label = label or cookie_name
        self.instructions = instructions

    def prompt(self, console: Console) -> Credential:
        return SessionToken(console.prompt_password(f"{self.label}: "))

    def install(self, session: HttpSession, credential: Credential) -> None:
        if not isinstance(credential, SessionToken):
            raise TypeError(f"{self.label} expects a session token, got {type(credential).__name__}")
        session.clear_cookies()
        session.insert_cookie(self.cookie_name, credential.token)


class FormLoginAuthenticator(Authenticator):
    label = "username and password"

    def __init__(self, login_path: str, username_field: str = "username",
                 password_field: str = "password", instructions: str = ""):
        self.login_path = login_path
        self.username_field = username_field
        self.password_field = password_field
        self.instructions = instructions

    def prompt(self, console: Console) -> Credential:
        username = console.prompt_reply("Username: ").strip()
        password = console.prompt_password("Password: ")
        return UsernamePassword(username, password)

    def install(self, session: HttpSession, credential: Credential) -> None:
        if not isinstance(credential, UsernamePassword):
            raise TypeError(f"Form login expects a username and password, got {type(credential).__name__}")
        session.clear_cookies()
        session.post(self.login_path).send_form({
            self.username_field: credential.username,
            self.password_field: credential.password,
        })


class LoginController:
    """
    Drives authentication for one session

    Args:
        session (HttpSession): The session to authenticate
        extractor (BaseScraper): Reads the identity from the identity page
        console (Console): Prompts and output
        credential (StoredCredential): Credential configured for this run, consumed once
        authenticator (Authenticator): Prompts for and installs credentials
        max_attempts (Optional[int]): Cap on interactive attempts, None or 0 for no cap
        identity_path (str): Page the identity is read from
    """

    def __init__(self, session: HttpSession, extractor: BaseScraper, console: Console,
                 credential: StoredCredential, authenticator: Authenticator,
                 max_attempts: Optional[int] = None, identity_path: str = "/"):
        self.session = session
        self.extractor = extractor
        self.console = console
        self.credential = credential
        self.authenticator = authenticator
        self.max_attempts = max_attempts or None
        self.identity_path = identity_path
        self.state = LoginState.LOGGED_OUT
        self.identity = Identity.UNAUTHENTICATED

    def check_identity(self) -> Identity:
        page = self.session.get(self.identity_path).recv_html()
        self.identity = self.extractor.extract_identity(page)
        logger.debug(f"Probed identity: {self.identity}")
        return self.identity

    def _attempt(self, credential: Credential) -> Identity:
        self.authenticator.install(self.session, credential)
        if not self.check_identity().is_authenticated:
            raise WrongCredentialError(self.authenticator.label)
        return self.identity

    def login(self, assure: bool) -> Identity:
        """
        Log in, prompting if needed

        Args:
            assure (bool): Login is mandatory. No "Login?" question is asked, and failing
                to log in raises instead of ending logged out

        Returns:
            Identity: The resolved identity, Identity.UNAUTHENTICATED if the user declined

        Raises:
            LoginRequiredError: If login is mandatory and could not be completed
        """
        self.state = LoginState.LOGGED_OUT
        stored = self.credential.take()

        if stored:
            self.state = LoginState.PROBING_STORED
            try:
                self._attempt(stored)
            except WrongCredentialError:
                logger.warning(f"Configured {self.authenticator.label} was not accepted")
                if assure:
                    self.state = LoginState.ABANDONED
                    raise LoginRequiredError(
                        f"The configured {self.authenticator.label} was not accepted"
                    )
        else:
            self.check_identity()

        if self.identity.is_authenticated:
            self.state = LoginState.LOGGED_IN
        else:
            self._interactive(assure)

        self.console.write(f"Username: {self.identity}")
        return self.identity

    def _interactive(self, assure: bool) -> None:
        if not self.console.interactive:
            if assure:
                self.state = LoginState.ABANDONED
                raise LoginRequiredError("Login required, but the console is not interactive")
            logger.info("Not logged in and the console is not interactive")
            self.state = LoginState.LOGGED_OUT
            return

        self.state = LoginState.INTERACTIVE_RETRY
        attempts = 0
        first = True
        while True:
            if first:
                if not assure and not self.console.ask_yes_or_no("Login? ", True):
                    self.state = LoginState.LOGGED_OUT
                    return
                self.authenticator.print_instructions(self.console)
                first = False

            if self.max_attempts is not None and attempts >= self.max_attempts:
                self.state = LoginState.ABANDONED
                raise LoginRequiredError(f"Gave up logging in after {attempts} attempt(s)")
            attempts += 1

            try:
                self._attempt(self.authenticator.prompt(self.console))
            except WrongCredentialError as e:
                self.console.warn(str(e))
                continue
            self.state = LoginState.LOGGED_IN
            return
