"""
Test suite model for OJ Test Suite Downloader

A suite is what the judging engine consumes: the cases of a problem plus its execution
metadata. Suites are immutable values. Replacing the scraped sample cases of a batch suite
with the files extracted from an archive is an explicit transition, `promote_to_files`,
which returns a new suite.

Serialized form (YAML or JSON):

    type: batch
    timelimit: 2000ms
    match: exact
    cases:
      - name: サンプル1
        in: "1 2\\n"
        out: "3\\n"

A promoted suite carries `files` (paths relative to the suite file) instead of `cases`.
"""

import dataclasses
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Tuple, Union


class Match(Enum):
    """How the judge compares actual and expected output"""
    EXACT = "exact"
    ANY = "any"


@dataclass(frozen=True)
class TestCase:
    __test__ = False

    name: str
    input: str
    output: Optional[str] = None


@dataclass(frozen=True)
class CaseFile:
    name: str
    input_path: Path
    output_path: Path


@dataclass(frozen=True)
class InlineCases:
    cases: Tuple[TestCase, ...] = ()


@dataclass(frozen=True)
class FileReferences:
    paths: Tuple[CaseFile, ...] = ()


CaseSource = Union[InlineCases, FileReferences]


@dataclass(frozen=True)
class BatchSuite:
    """Cases judged one by one against expected output"""
    timelimit: Optional[int] = None  # milliseconds
    match: Match = Match.EXACT
    cases: CaseSource = InlineCases()

    @classmethod
    def from_samples(cls, timelimit: Optional[int],
                     samples: Iterable[Tuple[str, Optional[str]]],
                     name: Callable[[int], str],
                     match: Match = Match.EXACT) -> 'BatchSuite':
        cases = tuple(TestCase(name(i), input_, output) for i, (input_, output) in enumerate(samples))
        return cls(timelimit=timelimit, match=match, cases=InlineCases(cases))

    @property
    def has_inline_cases(self) -> bool:
        return isinstance(self.cases, InlineCases)

    def __len__(self) -> int:
        source = self.cases
        return len(source.cases) if isinstance(source, InlineCases) else len(source.paths)


@dataclass(frozen=True)
class InteractiveSuite:
    """Judged by a tester program talking to the solution"""
    timelimit: Optional[int] = None


@dataclass(frozen=True)
class UnsubmittableSuite:
    """Problems that cannot be judged locally"""


TestSuite = Union[BatchSuite, InteractiveSuite, UnsubmittableSuite]


def promote_to_files(suite: TestSuite, paths: Sequence[CaseFile]) -> TestSuite:
    """
    Replace the inline cases of a batch suite with file references

    The time limit and match policy are kept. Suites other than batch suites have no
    cases to replace and are returned as they are.
    """
    if not isinstance(suite, BatchSuite):
        return suite
    return dataclasses.replace(suite, cases=FileReferences(tuple(paths)))


def is_archive_eligible(suite: TestSuite) -> bool:
    """Only exact-match batch suites that still hold their scraped cases take archive data"""
    return (isinstance(suite, BatchSuite)
            and suite.match is Match.EXACT
            and suite.has_inline_cases)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def _format_timelimit(timelimit: Optional[int]) -> Optional[str]:
    return None if timelimit is None else f"{timelimit}ms"


def _relative(path: Path, base_dir: Optional[Path]) -> str:
    if base_dir is not None:
        try:
            return PurePosixPath(Path(path).relative_to(base_dir)).as_posix()
        except ValueError:
            pass
    return Path(path).as_posix()


def suite_to_dict(suite: TestSuite, base_dir: Optional[Path] = None) -> Dict[str, Any]:
    if isinstance(suite, BatchSuite):
        data: Dict[str, Any] = {
            'type': 'batch',
            'timelimit': _format_timelimit(suite.timelimit),
            'match': suite.match.value,
        }
        if isinstance(suite.cases, InlineCases):
            data['cases'] = [
                {'name': case.name, 'in': case.input, 'out': case.output}
                for case in suite.cases.cases
            ]
        else:
            data['files'] = [
                {
                    'name': case.name,
                    'in': _relative(case.input_path, base_dir),
                    'out': _relative(case.output_path, base_dir),
                }
                for case in suite.cases.paths
            ]
        return data
    if isinstance(suite, InteractiveSuite):
        return {'type': 'interactive', 'timelimit': _format_timelimit(suite.timelimit)}
    if isinstance(suite, UnsubmittableSuite):
        return {'type': 'unsubmittable'}
    raise TypeError(f"Not a test suite: {suite!r}")
