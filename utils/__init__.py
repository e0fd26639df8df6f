"""
Utils package for OJ Test Suite Downloader
Contains error handling, console output and file management
"""

from .console import Console
from .file_manager import FileManager

__all__ = ['Console', 'FileManager']
