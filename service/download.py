"""
Download orchestration

    print targets -> login -> scrape (direct or grouped) -> augment with archives -> persist

Problems are addressed either directly (one request per problem, a 404 is recorded as
"not found" instead of failing) or through a contest listing page. Problems whose scraped
suite is an exact-match batch suite, and which the logged-in user has already solved, get
their sample cases replaced by the full test data from the service's archive.

Nothing is written until every problem has been scraped and augmented, so a failure in the
middle of a run leaves no suite files behind.
"""

import re
import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from bs4 import BeautifulSoup

from service.archive import ArchiveExtractor
from service.base import Service
from service.fetch import fetch_archives
from testsuite.destinations import DownloadDestinations
from testsuite.suite import CaseFile, TestSuite, is_archive_eligible, promote_to_files, suite_to_dict
from utils.error_handler import PleaseSpecifyProblemsError

logger = logging.getLogger(__name__)

_WORD = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|[0-9]+|[^\W_]+")


def split_words(name: str) -> List[str]:
    return _WORD.findall(name)


@dataclass
class DownloadProps:
    contest: str
    problems: Optional[List[str]]
    destinations: DownloadDestinations
    open_in_browser: bool = False
    only_scraped: bool = False


@dataclass
class DownloadOutcomeProblem:
    name: str
    url: str
    suite_path: Path
    suite: TestSuite
    name_lower: str = field(init=False)
    name_upper: str = field(init=False)
    name_kebab: str = field(init=False)
    name_snake: str = field(init=False)
    name_screaming: str = field(init=False)
    name_mixed: str = field(init=False)
    name_pascal: str = field(init=False)
    name_title: str = field(init=False)

    def __post_init__(self):
        words = split_words(self.name)
        lower = [word.lower() for word in words]
        capitalized = [word.capitalize() for word in words]
        self.name_lower = self.name.lower()
        self.name_upper = self.name.upper()
        self.name_kebab = "-".join(lower)
        self.name_snake = "_".join(lower)
        self.name_screaming = "_".join(word.upper() for word in words)
        self.name_mixed = "".join(lower[:1] + capitalized[1:])
        self.name_pascal = "".join(capitalized)
        self.name_title = " ".join(capitalized)

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in dataclasses.fields(self)}
        data['suite_path'] = str(self.suite_path)
        data['suite'] = suite_to_dict(self.suite, base_dir=self.suite_path.parent)
        return data


@dataclass
class DownloadOutcome:
    service: str
    contest: str
    open_in_browser: bool = False
    problems: List[DownloadOutcomeProblem] = field(default_factory=list)
    not_found: List[str] = field(default_factory=list)
    not_public: List[str] = field(default_factory=list)

    def push_problem(self, name: str, url: str, suite: TestSuite, suite_path: Path) -> DownloadOutcomeProblem:
        problem = DownloadOutcomeProblem(name, url, suite_path, suite)
        self.problems.append(problem)
        return problem

    def to_dict(self) -> Dict[str, Any]:
        return {
            'service': self.service,
            'open_in_browser': self.open_in_browser,
            'contest': {'slug': self.contest},
            'problems': [problem.to_dict() for problem in self.problems],
        }


def format_targets(contest: str, problems: Optional[Sequence[str]]) -> str:
    if problems is None:
        return f"Targets: {contest}/*"
    if len(problems) == 1:
        return f"Target: {contest}/{problems[0]}"
    return f"Targets: {contest}/{{{', '.join(problems)}}}"


class DownloadOrchestrator:
    """
    Runs a download for one service

    Args:
        service (Service): Service the problems belong to
        archive_extractor (Optional[ArchiveExtractor]): Defaults to one writing through
            the destinations' file manager
    """

    def __init__(self, service: Service, archive_extractor: Optional[ArchiveExtractor] = None):
        self.service = service
        self.session = service.session
        self.extractor = service.extractor
        self.console = service.console
        self.archive_extractor = archive_extractor

    def run(self, props: DownloadProps) -> DownloadOutcome:
        """
        Download the suites of the requested problems

        Returns:
            DownloadOutcome: The persisted problems plus the not-found/not-public names

        Raises:
            PleaseSpecifyProblemsError: Direct mode without any problem
            ScrapeError, ArchiveReadError, NetworkError, UnexpectedStatusError,
            FileSystemError: The run is aborted and no suite file is written
        """
        problems = None
        if props.problems is not None:
            problems = [self.service.normalize_problem(problem) for problem in props.problems]

        self.console.write(format_targets(props.contest, problems))
        self.service.login(assure=False)

        outcome = DownloadOutcome(self.service.name, props.contest, props.open_in_browser)
        if self.service.is_direct(props.contest):
            if not problems:
                raise PleaseSpecifyProblemsError()
            self._scrape_direct(outcome, problems, props.destinations)
        else:
            self._scrape_grouped(outcome, props.contest, problems, props.destinations)

        if not props.only_scraped:
            self._augment(outcome, props.destinations)

        self._persist(outcome, props.destinations)

        if props.open_in_browser:
            for problem in outcome.problems:
                self.session.open_in_browser(problem.url)
        return outcome

    def _scrape_direct(self, outcome: DownloadOutcome, problems: List[str],
                       destinations: DownloadDestinations) -> None:
        for problem in problems:
            path = self.service.problem_path(problem)
            response = self.session.get(path).acceptable((200, 404)).send()
            page = BeautifulSoup(response.text, 'lxml')
            if response.status_code == 404:
                outcome.not_found.append(problem)
            elif not self.extractor.is_public(page):
                outcome.not_public.append(problem)
            else:
                suite = self.extractor.extract_samples(page)
                outcome.push_problem(problem, self.session.resolve_url(path), suite,
                                     destinations.expand(problem))

        if outcome.not_found:
            self.console.warn(f"Not found: {outcome.not_found}")
        if outcome.not_public:
            self.console.warn(f"Not public: {outcome.not_public}")

    def _scrape_grouped(self, outcome: DownloadOutcome, contest: str, problems: Optional[List[str]],
                        destinations: DownloadDestinations) -> None:
        listing = self.session.get(self.service.listing_path(contest)).recv_html()
        links = self.extractor.extract_problem_list(listing)
        for link in links:
            if problems is not None and link.name not in problems:
                continue
            page = self.session.get(link.href).recv_html()
            suite = self.extractor.extract_samples(page)
            outcome.push_problem(link.name, self.session.resolve_url(link.href), suite,
                                 destinations.expand(link.name))

        if problems is not None:
            listed = {link.name for link in links}
            outcome.not_found.extend(problem for problem in problems if problem not in listed)
            if outcome.not_found:
                self.console.warn(f"Not found: {outcome.not_found}")

    def _augment(self, outcome: DownloadOutcome, destinations: DownloadDestinations) -> None:
        descriptor = self.service.archive_descriptor()
        if descriptor is None:
            return

        keys = {}
        for problem in outcome.problems:
            if not is_archive_eligible(problem.suite):
                continue
            key = self.service.archive_key(problem.name, problem.url)
            if key is not None:
                keys[problem.name] = key
        if not keys:
            return

        solved = set(self.service.filter_solved(list(keys.values())))
        urls = {name: self.service.archive_url(key) for name, key in keys.items() if key in solved}
        targets = [index for index, problem in enumerate(outcome.problems)
                   if urls.get(problem.name) is not None]
        if not targets:
            logger.info("No solved problems to download archives for")
            return

        names = [outcome.problems[index].name for index in targets]
        archives = fetch_archives(self.session, [urls[name] for name in names], names,
                                  silent=self.service.silent,
                                  max_workers=self.service.max_concurrent_downloads)

        extractor = self.archive_extractor or ArchiveExtractor(
            self.console, self.service.archive_workers, destinations.file_manager
        )
        for index, data in zip(targets, archives):
            problem = outcome.problems[index]
            cases = extractor.extract(problem.name, data, destinations.text_file_dir(problem.name),
                                      descriptor)
            paths = [CaseFile(case.key, case.input_path, case.output_path) for case in cases]
            promoted = promote_to_files(problem.suite, paths)
            logger.info(f"{problem.name}: {len(promoted)} case(s) from the archive")
            outcome.problems[index] = dataclasses.replace(problem, suite=promoted)

    def _persist(self, outcome: DownloadOutcome, destinations: DownloadDestinations) -> None:
        for problem in outcome.problems:
            path = destinations.file_manager.save_suite(problem.suite, problem.suite_path)
            self.console.write(f"{problem.name}: Saved to {path}")
