"""
Test suite package for OJ Test Suite Downloader
Contains the suite model and the download destinations
"""

from .suite import (
    Match, TestCase, CaseFile, InlineCases, FileReferences,
    BatchSuite, InteractiveSuite, UnsubmittableSuite, TestSuite,
    promote_to_files, is_archive_eligible, suite_to_dict,
)

__all__ = [
    'Match', 'TestCase', 'CaseFile', 'InlineCases', 'FileReferences',
    'BatchSuite', 'InteractiveSuite', 'UnsubmittableSuite', 'TestSuite',
    'promote_to_files', 'is_archive_eligible', 'suite_to_dict',
]
