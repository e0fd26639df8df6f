"""
File Manager for OJ Test Suite Downloader
Handles directory creation, test case text files and structured (YAML/JSON) suite files
"""

import os
import json
import shutil
from pathlib import Path
from typing import Dict, Optional, Any, Union
from datetime import datetime
import logging

import yaml

from testsuite.suite import TestSuite, suite_to_dict
from utils.error_handler import FileSystemError, handle_exception, ErrorDetector

logger = logging.getLogger(__name__)

YAML_SUFFIXES = ('.yaml', '.yml')
JSON_SUFFIXES = ('.json',)


class FileManager:
    """
    Utility class for managing files and directories
    """

    def __init__(self, base_dir: Optional[str] = None):
        """
        Initialize File Manager

        Args:
            base_dir (Optional[str]): Directory relative paths are resolved against
        """
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()

    def resolve(self, path: Union[str, Path]) -> Path:
        path_obj = Path(path)
        return path_obj if path_obj.is_absolute() else self.base_dir / path_obj

    @handle_exception
    def ensure_directory(self, path: Union[str, Path]) -> Path:
        """
        Ensure directory exists

        Args:
            path (Union[str, Path]): Directory path

        Returns:
            Path: Path object of the directory

        Raises:
            FileSystemError: If directory creation fails
        """
        path_obj = self.resolve(path)

        if not str(path).strip():
            raise FileSystemError("Empty path provided")

        if '\0' in str(path_obj):
            raise FileSystemError(f"Path contains invalid characters: {path_obj}")

        if path_obj.exists() and not path_obj.is_dir():
            raise FileSystemError(f"Path exists but is not a directory: {path_obj}", str(path_obj))

        if not path_obj.exists():
            parent = path_obj.parent
            while not parent.exists() and parent != parent.parent:
                parent = parent.parent
            if not ErrorDetector.check_disk_space(str(parent), required_mb=10):
                logger.warning(f"Low disk space when creating directory: {path_obj}")

        try:
            path_obj.mkdir(parents=True, exist_ok=True)
        except PermissionError as e:
            raise FileSystemError(f"Permission denied creating directory: {path_obj}", str(path_obj), e)
        except OSError as e:
            raise FileSystemError(f"OS error creating directory: {path_obj}: {e}", str(path_obj), e)

        logger.debug(f"Directory ensured: {path_obj}")
        return path_obj

    def safe_filename(self, filename: str, max_length: int = 255) -> str:
        """
        Create a safe filename by removing/replacing invalid characters

        Args:
            filename (str): Original filename
            max_length (int): Maximum filename length

        Returns:
            str: Safe filename
        """
        invalid_chars = '<>:"/\\|?*\0'
        safe_name = filename

        for char in invalid_chars:
            safe_name = safe_name.replace(char, '_')

        # Remove multiple consecutive underscores
        while '__' in safe_name:
            safe_name = safe_name.replace('__', '_')

        safe_name = safe_name.strip(' .')

        if len(safe_name) > max_length:
            name_part, ext_part = os.path.splitext(safe_name)
            safe_name = name_part[:max_length - len(ext_part)] + ext_part

        if not safe_name:
            safe_name = f"file_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

        return safe_name

    def save_text(self, text: str, filepath: Union[str, Path],
                  encoding: str = 'utf-8') -> Path:
        """
        Save text to file, creating parent directories

        Args:
            text (str): Text content
            filepath (Union[str, Path]): File path
            encoding (str): Text encoding

        Returns:
            Path: The written path

        Raises:
            FileSystemError: If the file cannot be written
        """
        filepath = self.resolve(filepath)
        self.ensure_directory(filepath.parent)

        try:
            # newline='' keeps the text byte-for-byte (no CRLF translation on Windows)
            with open(filepath, 'w', encoding=encoding, newline='') as f:
                f.write(text)
        except PermissionError as e:
            raise FileSystemError(f"Permission denied writing file: {filepath}", str(filepath), e)
        except OSError as e:
            raise FileSystemError(f"Failed to write {filepath}: {e}", str(filepath), e)

        logger.debug(f"Text saved to: {filepath}")
        return filepath

    @handle_exception
    def save_structured(self, data: Dict[str, Any], filepath: Union[str, Path],
                        indent: int = 2) -> Path:
        """
        Save data as YAML or JSON depending on the file suffix

        The data is serialized before anything touches the disk, written to a temporary
        sibling and then moved into place.

        Args:
            data (Dict[str, Any]): Data to save
            filepath (Union[str, Path]): Destination (.yaml, .yml or .json)
            indent (int): Indentation

        Returns:
            Path: The written path

        Raises:
            FileSystemError: If serialization or file operations fail
        """
        if data is None:
            raise FileSystemError("Cannot save None data")

        filepath = self.resolve(filepath)
        suffix = filepath.suffix.lower()

        try:
            if suffix in YAML_SUFFIXES:
                content = yaml.safe_dump(data, allow_unicode=True, sort_keys=False,
                                         default_flow_style=False, indent=indent)
            elif suffix in JSON_SUFFIXES:
                content = json.dumps(data, indent=indent, ensure_ascii=False) + '\n'
            else:
                raise FileSystemError(f"Unsupported suite file extension: {filepath.suffix!r}", str(filepath))
        except (TypeError, ValueError, yaml.YAMLError) as e:
            raise FileSystemError(f"Data cannot be serialized: {str(e)}", str(filepath), e)

        self.ensure_directory(filepath.parent)

        temp_file = filepath.with_name(filepath.name + '.tmp')
        try:
            with open(temp_file, 'w', encoding='utf-8') as f:
                f.write(content)
            shutil.move(str(temp_file), str(filepath))
        except PermissionError as e:
            raise FileSystemError(f"Permission denied writing file: {filepath}", str(filepath), e)
        except OSError as e:
            raise FileSystemError(f"OS error writing file: {filepath}", str(filepath), e)
        finally:
            if temp_file.exists():
                temp_file.unlink()

        logger.info(f"Saved: {filepath}")
        return filepath

    def save_suite(self, suite: TestSuite, filepath: Union[str, Path]) -> Path:
        """
        Save a test suite, with file references written relative to the suite file

        Args:
            suite (TestSuite): Suite to persist
            filepath (Union[str, Path]): Destination (.yaml, .yml or .json)

        Returns:
            Path: The written path
        """
        filepath = self.resolve(filepath)
        return self.save_structured(suite_to_dict(suite, base_dir=filepath.parent), filepath)
