"""
yukicoder service for OJ Test Suite Downloader

Login works by pasting the REVEL_SESSION cookie from a browser. Problems are addressed as
`no/<number>` (direct mode) or `<contest id>/<problem letter>` (grouped mode). Full test
data is published as `/problems/no/<number>/testcase.zip`, but only to users who have
already solved the problem.
"""

import re
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote

from service.archive import PairingDescriptor, SortPolicy
from service.base import Service
from service.login import Authenticator, SessionCookieAuthenticator
from utils.error_handler import (
    AlreadyAcceptedError, FileSystemError, NoSuchProblemError, RecognizeByExtensionError,
    SubmissionRejectedError
)

logger = logging.getLogger(__name__)

BASE_DOMAIN = "yukicoder.me"
DIRECT_CONTEST = "no"
SESSION_COOKIE = "REVEL_SESSION"
CREDENTIAL_ENV = "YUKICODER_REVEL_SESSION"

LOGIN_INSTRUCTIONS = (
    f"\nInput \"{SESSION_COOKIE}\".\n\n"
    "Firefox: sqlite3 ~/path/to/cookies.sqlite 'SELECT value FROM moz_cookies "
    f"WHERE baseDomain=\"{BASE_DOMAIN}\" AND name=\"{SESSION_COOKIE}\"'\n"
    f"Chrome: chrome://settings/cookies/detail?site={BASE_DOMAIN}&search=cookie\n"
)

ARCHIVE_LAYOUT = PairingDescriptor(
    input_pattern=re.compile(r"\Atest_in/([a-z0-9_]+)\.txt\Z"),
    input_group=1,
    input_crlf_to_lf=True,
    output_pattern=re.compile(r"\Atest_out/([a-z0-9_]+)\.txt\Z"),
    output_group=1,
    output_crlf_to_lf=True,
    sortings=(SortPolicy.DICTIONARY, SortPolicy.NUMERIC),
)

_PROBLEM_NUMBER = re.compile(r"(?:https://yukicoder\.me)?/problems/no/(\d+)(?:/submit)?/?")

_CPP = ("cpp", "cpp14", "cpp17", "cpp-clang")
_FORTRAN = ("fortran",)

# Source file extension -> candidate language ids
LANG_IDS: Dict[str, Tuple[str, ...]] = {
    "cpp": _CPP, "cxx": _CPP, "cc": _CPP, "C": _CPP,
    "c": ("c11", "c"),
    "java": ("java8",),
    "cs": ("csharp", "csharp_mono"),
    "pl": ("perl", "perl6"),
    "p6": ("perl6",),
    "php": ("php", "php7"),
    "py": ("python", "python3", "pypy2", "pypy3"),
    "py2": ("python", "pypy2"),
    "py3": ("python3", "pypy3"),
    "rb": ("ruby",),
    "d": ("d",),
    "go": ("go",),
    "hs": ("haskell",),
    "scala": ("scala",),
    "nim": ("nim",),
    "rs": ("rust",),
    "kt": ("kotlin",),
    "scm": ("scheme",),
    "cr": ("crystal",),
    "swift": ("swift",),
    "ml": ("ocaml",),
    "clj": ("clojure",),
    "fs": ("fsharp",),
    "exs": ("elixer",), "ex": ("elixer",),
    "lua": ("lua",),
    "f": _FORTRAN, "for": _FORTRAN,
    "f90": _FORTRAN, "F90": _FORTRAN, "f95": _FORTRAN, "F95": _FORTRAN,
    "f03": _FORTRAN, "F03": _FORTRAN, "f08": _FORTRAN, "F08": _FORTRAN,
    "js": ("node",),
    "vim": ("vim",),
    "sh": ("sh",), "bash": ("sh",),
    "txt": ("text",),
    "asm": ("nasm",),
    "clay": ("clay",),
    "bf": ("bf",),
    "ws": ("Whitespace",),
}


def recognize_language(src_path: Path) -> str:
    """
    Pick the language id for a source file by its extension

    Raises:
        RecognizeByExtensionError: If the extension is unknown or maps to several ids
    """
    extension = src_path.suffix[1:]
    candidates = LANG_IDS.get(extension)
    if not candidates:
        raise RecognizeByExtensionError(extension, "Unknown extension")
    if len(candidates) > 1:
        listed = ", ".join(f'"{candidate}"' for candidate in candidates)
        raise RecognizeByExtensionError(extension, f"Candidates: [{listed}]")
    return candidates[0]


@dataclass
class SubmitProps:
    contest: str
    problem: str
    src_path: Path
    lang_id: Optional[str] = None
    open_in_browser: bool = False
    skip_checking_if_accepted: bool = False


class YukicoderService(Service):
    name = "yukicoder"
    base_domain = BASE_DOMAIN

    def authenticator(self) -> Authenticator:
        return SessionCookieAuthenticator(SESSION_COOKIE, instructions=LOGIN_INSTRUCTIONS)

    def normalize_problem(self, problem: str) -> str:
        return problem.upper()

    def is_direct(self, contest: str) -> bool:
        return contest.lower() == DIRECT_CONTEST

    def problem_path(self, problem: str) -> str:
        return f"/problems/no/{problem}"

    def listing_path(self, contest: str) -> str:
        return f"/contests/{contest}"

    def archive_descriptor(self) -> PairingDescriptor:
        return ARCHIVE_LAYOUT

    def archive_key(self, name: str, url: str) -> Optional[str]:
        match = _PROBLEM_NUMBER.fullmatch(url)
        return match.group(1) if match else None

    def archive_url(self, key: str) -> str:
        return f"https://{BASE_DOMAIN}/problems/no/{key}/testcase.zip"

    def filter_solved(self, keys: Sequence[str]) -> List[str]:
        """
        Problem numbers among `keys` the logged-in user has solved, in the order given

        Returns an empty list when not logged in.
        """
        identity = self.identity
        if not identity.is_authenticated:
            return []
        solved = self.session.get(f"/api/v1/solved/name/{quote(identity.name, safe='')}").recv_json()
        solved_numbers = {str(problem["No"]) for problem in solved}
        logger.debug(f"{identity.name} has solved {len(solved_numbers)} problem(s)")
        return [key for key in keys if key in solved_numbers]

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def _submit_url(self, contest: str, problem: str) -> str:
        if self.is_direct(contest):
            return f"{self.problem_path(problem)}/submit"
        links = self.extractor.extract_problem_list(
            self.session.get(self.listing_path(contest)).recv_html()
        )
        for link in links:
            if link.name.lower() == problem.lower():
                return f"{link.href}/submit"
        raise NoSuchProblemError(problem)

    def submit(self, props: SubmitProps) -> str:
        """
        Submit a source file

        Returns:
            str: Location of the submission page

        Raises:
            RecognizeByExtensionError: Language not given and not recognizable
            FileSystemError: The source cannot be read
            LoginRequiredError: Login failed
            NoSuchProblemError: The problem is not in the contest
            AlreadyAcceptedError: Already solved and the check is not skipped
            SubmissionRejectedError: The service did not redirect to a submission
        """
        problem = self.normalize_problem(props.problem)
        self.console.write(f"Target: {props.contest}/{problem}")

        lang_id = props.lang_id or recognize_language(props.src_path)
        try:
            code = props.src_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise FileSystemError(f"Failed to read {props.src_path}: {e}", str(props.src_path), e) from e

        self.login(assure=True)

        url = self._submit_url(props.contest, problem)
        match = _PROBLEM_NUMBER.fullmatch(url)
        if match and not props.skip_checking_if_accepted and self.filter_solved([match.group(1)]):
            raise AlreadyAcceptedError(problem)

        page = self.session.get(url).recv_html()
        token = self.extractor.extract_csrf_token(page)
        action = self.extractor.extract_submit_url(page)
        response = self.session.post(action).send_multipart({
            "csrf_token": token,
            "lang": lang_id,
            "source": code,
        })

        location = response.headers.get("Location")
        if location and "/submissions/" in location:
            self.console.write(f"Success: {location}")
            if props.open_in_browser:
                self.session.open_in_browser(self.session.resolve_url(location))
            return location
        raise SubmissionRejectedError(lang_id, len(code.encode("utf-8")), response.status_code, location)
