"""
Test case archive extraction

A service publishes the full test data of a problem as a zip of many small text files,
e.g. `test_in/01.txt` and `test_out/01.txt`. A PairingDescriptor says which entries are
inputs, which are outputs and what part of the entry name pairs them up.

Extraction is scatter/gather: every entry is decoded and classified in its own worker task,
which returns an independent (key, side, artifact) tuple. The tuples are merged in entry
order by a single reducer after all tasks have finished, so no state is shared between
workers. Keys that did not get both sides are dropped, the remaining pairs are sorted and
written out.
"""

import io
import re
import logging
import zipfile
import zlib
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Dict, List, NamedTuple, Optional, Pattern, Tuple, Union

from utils.console import Console
from utils.error_handler import ArchiveReadError
from utils.file_manager import FileManager

logger = logging.getLogger(__name__)

INPUT = "input"
OUTPUT = "output"

_NUMERIC_KEY = re.compile(r"\+?[0-9]+")
# Keys beyond an unsigned 64-bit integer sort with the non-numeric ones
MAX_NUMERIC_KEY = 2 ** 64 - 1
_DRIVE = re.compile(r"[A-Za-z]:")


class SortPolicy(Enum):
    DICTIONARY = "dictionary"
    NUMERIC = "numeric"


@dataclass(frozen=True)
class PairingDescriptor:
    input_pattern: Pattern
    input_group: Union[int, str]
    input_crlf_to_lf: bool
    output_pattern: Pattern
    output_group: Union[int, str]
    output_crlf_to_lf: bool
    sortings: Tuple[SortPolicy, ...] = ()


class ArchiveArtifact(NamedTuple):
    path: Path  # relative to the destination directory
    text: str


class CompletedPair(NamedTuple):
    key: str
    input: ArchiveArtifact
    output: ArchiveArtifact


class ExtractedCase(NamedTuple):
    key: str
    input_path: Path
    output_path: Path


def sanitize_entry_name(name: str) -> Optional[Path]:
    """
    Turn an archive entry name into a path that stays inside the destination directory

    Leading slashes, drive letters, `.` and `..` components are dropped. Returns None when
    nothing is left.
    """
    parts = [part for part in PurePosixPath(name.replace("\\", "/")).parts
             if part not in ("", "/", ".", "..")]
    if parts and _DRIVE.fullmatch(parts[0]):
        parts = parts[1:]
    return Path(*parts) if parts else None


def _numeric_key(pair: CompletedPair) -> Tuple[int, int]:
    # Parseable keys first; unparseable keys all compare equal
    if _NUMERIC_KEY.fullmatch(pair.key):
        value = int(pair.key)
        if value <= MAX_NUMERIC_KEY:
            return (0, value)
    return (1, 0)


def sort_pairs(pairs: List[CompletedPair], sortings: Tuple[SortPolicy, ...]) -> None:
    """Sort in place, one stable pass per policy, so the last policy dominates"""
    for policy in sortings:
        if policy is SortPolicy.DICTIONARY:
            pairs.sort(key=lambda pair: pair.key)
        elif policy is SortPolicy.NUMERIC:
            pairs.sort(key=_numeric_key)


def pair_artifacts(classified: List[Optional[Tuple[str, str, ArchiveArtifact]]]) -> List[CompletedPair]:
    """Merge classified entries in order and keep the keys that have both sides"""
    pending: Dict[str, Dict[str, ArchiveArtifact]] = {}
    for item in classified:
        if item is None:
            continue
        key, side, artifact = item
        pending.setdefault(key, {})[side] = artifact

    completed = []
    for key, sides in pending.items():
        if INPUT in sides and OUTPUT in sides:
            completed.append(CompletedPair(key, sides[INPUT], sides[OUTPUT]))
        else:
            logger.debug(f"Dropping incomplete pair: {key}")
    return completed


class ArchiveExtractor:
    """
    Extracts paired test cases from zip archives

    Args:
        console (Console): Where the progress lines go
        max_workers (Optional[int]): Worker threads for decoding entries
        file_manager (Optional[FileManager]): Used for writing the text files
    """

    def __init__(self, console: Optional[Console] = None, max_workers: Optional[int] = None,
                 file_manager: Optional[FileManager] = None):
        self.console = console or Console()
        self.max_workers = max_workers
        self.file_manager = file_manager or FileManager()

    def _classify(self, archive: zipfile.ZipFile, info: zipfile.ZipInfo,
                  descriptor: PairingDescriptor) -> Optional[Tuple[str, str, ArchiveArtifact]]:
        name = info.filename
        match = descriptor.input_pattern.search(name)
        if match:
            side, group, crlf_to_lf = INPUT, descriptor.input_group, descriptor.input_crlf_to_lf
        else:
            match = descriptor.output_pattern.search(name)
            if not match:
                return None
            side, group, crlf_to_lf = OUTPUT, descriptor.output_group, descriptor.output_crlf_to_lf

        key = match.group(group)
        path = sanitize_entry_name(name)
        if key is None or path is None:
            return None

        try:
            text = archive.read(info).decode("utf-8")
        except UnicodeDecodeError as e:
            raise ArchiveReadError(f"{name} is not valid UTF-8", name, e) from e
        except (zipfile.BadZipFile, zlib.error, OSError, RuntimeError, NotImplementedError) as e:
            raise ArchiveReadError(f"Failed to read {name}: {e}", name, e) from e

        if crlf_to_lf and "\r\n" in text:
            text = text.replace("\r\n", "\n")
        return key, side, ArchiveArtifact(path, text)

    def read_pairs(self, name: str, data: bytes, descriptor: PairingDescriptor) -> List[CompletedPair]:
        """
        Decode, pair and sort the entries of an archive without writing anything

        The archive is opened once and shared by the workers; ZipFile serializes the
        underlying reads.

        Raises:
            ArchiveReadError: If the archive or one of its matched entries cannot be read
        """
        try:
            archive = zipfile.ZipFile(io.BytesIO(data))
        except (zipfile.BadZipFile, OSError) as e:
            raise ArchiveReadError(f"{name}: Failed to open the archive: {e}", name, e) from e

        with archive:
            entries = [info for info in archive.infolist() if not info.is_dir()]
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [executor.submit(self._classify, archive, info, descriptor) for info in entries]
                classified = [future.result() for future in futures]

        pairs = pair_artifacts(classified)
        sort_pairs(pairs, descriptor.sortings)
        logger.debug(f"{name}: {len(entries)} entries, {len(pairs)} complete pair(s)")
        return pairs

    def extract(self, name: str, data: bytes, directory: Union[str, Path],
                descriptor: PairingDescriptor) -> List[ExtractedCase]:
        """
        Extract the paired test cases of an archive into a directory

        Args:
            name (str): Label for the progress lines (the problem name)
            data (bytes): The zip archive
            directory (Union[str, Path]): Destination directory
            descriptor (PairingDescriptor): How entries are paired and sorted

        Returns:
            List[ExtractedCase]: Written cases in sorted order

        Raises:
            ArchiveReadError: If the archive cannot be read
            FileSystemError: If a file cannot be written. Files already written are kept
        """
        self.console.write(f"{name}: Unzipping...")
        pairs = self.read_pairs(name, data, descriptor)

        directory = self.file_manager.resolve(directory)
        extracted = []
        for pair in pairs:
            input_path = self.file_manager.save_text(pair.input.text, directory / pair.input.path)
            output_path = self.file_manager.save_text(pair.output.text, directory / pair.output.path)
            extracted.append(ExtractedCase(pair.key, input_path, output_path))

        count = 2 * len(extracted)
        self.console.write(f"{name}: Saved {count} {'file' if count == 1 else 'files'} to {directory}")
        return extracted
