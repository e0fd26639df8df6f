"""
Where downloaded suites and archive files go

The suite directory comes from the `test_suites` template in config.ini, expanded with the
service and contest names. Each problem gets `<dir>/<problem>.<ext>` for its suite file and
`<dir>/<problem>/` for the text files extracted from its archive.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from utils.file_manager import FileManager, YAML_SUFFIXES, JSON_SUFFIXES

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = tuple(suffix.lstrip('.') for suffix in YAML_SUFFIXES + JSON_SUFFIXES)


class DownloadDestinations:
    def __init__(self, suite_dir: Union[str, Path], extension: str = 'yaml',
                 file_manager: Optional[FileManager] = None):
        extension = extension.lstrip('.').lower()
        if extension not in SUPPORTED_EXTENSIONS:
            raise ValueError(f"Unsupported suite extension: {extension!r} "
                             f"(expected one of {', '.join(SUPPORTED_EXTENSIONS)})")
        self.file_manager = file_manager or FileManager()
        self.suite_dir = self.file_manager.resolve(suite_dir)
        self.extension = extension

    @classmethod
    def from_template(cls, template: str, service: str, contest: str, extension: str = 'yaml',
                      file_manager: Optional[FileManager] = None) -> 'DownloadDestinations':
        """Expand `{service}` and `{contest}` in a directory template"""
        suite_dir = template.format(service=service, contest=contest)
        logger.debug(f"Suite directory: {suite_dir}")
        return cls(suite_dir, extension, file_manager)

    def _stem(self, problem: str) -> str:
        return self.file_manager.safe_filename(problem.lower())

    def expand(self, problem: str) -> Path:
        return self.suite_dir / f"{self._stem(problem)}.{self.extension}"

    def text_file_dir(self, problem: str) -> Path:
        return self.suite_dir / self._stem(problem)
