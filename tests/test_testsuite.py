import os, sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
import json

import pytest
import yaml

from testsuite.destinations import DownloadDestinations
from testsuite.suite import (
    BatchSuite, CaseFile, FileReferences, InlineCases, InteractiveSuite, Match, TestCase,
    UnsubmittableSuite, is_archive_eligible, promote_to_files, suite_to_dict
)
from utils.file_manager import FileManager
from utils.error_handler import FileSystemError


def sample_suite(match=Match.EXACT):
    return BatchSuite.from_samples(
        2000, [("1 2\n", "3\n"), ("5 7\n", "12\n")], lambda i: f"サンプル{i + 1}", match
    )


def test_promotion_returns_a_new_suite(tmp_path):
    suite = sample_suite()
    files = [CaseFile("a", tmp_path / "test_in" / "a.txt", tmp_path / "test_out" / "a.txt")]

    promoted = promote_to_files(suite, files)

    assert promoted is not suite
    assert promoted.timelimit == 2000
    assert promoted.match is Match.EXACT
    assert promoted.cases == FileReferences(tuple(files))
    assert suite.has_inline_cases
    assert len(suite) == 2
    assert len(promoted) == 1


def test_promotion_ignores_interactive():
    suite = InteractiveSuite(1000)
    assert promote_to_files(suite, []) is suite


def test_archive_eligibility(tmp_path):
    assert is_archive_eligible(sample_suite())
    assert not is_archive_eligible(sample_suite(Match.ANY))
    assert not is_archive_eligible(promote_to_files(sample_suite(), []))
    assert not is_archive_eligible(InteractiveSuite(1000))
    assert not is_archive_eligible(UnsubmittableSuite())


def test_inline_suite_to_dict():
    assert suite_to_dict(sample_suite()) == {
        'type': 'batch',
        'timelimit': '2000ms',
        'match': 'exact',
        'cases': [
            {'name': 'サンプル1', 'in': '1 2\n', 'out': '3\n'},
            {'name': 'サンプル2', 'in': '5 7\n', 'out': '12\n'},
        ],
    }


def test_file_references_are_relative(tmp_path):
    files = [CaseFile("01", tmp_path / "1" / "test_in" / "01.txt", tmp_path / "1" / "test_out" / "01.txt")]
    data = suite_to_dict(promote_to_files(sample_suite(), files), base_dir=tmp_path)

    assert 'cases' not in data
    assert data['files'] == [{'name': '01', 'in': '1/test_in/01.txt', 'out': '1/test_out/01.txt'}]


def test_other_suite_kinds_to_dict():
    assert suite_to_dict(InteractiveSuite(2000)) == {'type': 'interactive', 'timelimit': '2000ms'}
    assert suite_to_dict(UnsubmittableSuite()) == {'type': 'unsubmittable'}


def test_special_judge_cases_have_no_output():
    suite = BatchSuite(None, Match.ANY, InlineCases((TestCase('x', '1\n', None),)))
    assert suite_to_dict(suite) == {
        'type': 'batch', 'timelimit': None, 'match': 'any',
        'cases': [{'name': 'x', 'in': '1\n', 'out': None}],
    }


def test_destinations(tmp_path):
    destinations = DownloadDestinations.from_template(
        "tests/{service}/{contest}", "yukicoder", "no", "yml", FileManager(str(tmp_path))
    )
    assert destinations.suite_dir == tmp_path / "tests" / "yukicoder" / "no"
    assert destinations.expand("A") == tmp_path / "tests" / "yukicoder" / "no" / "a.yml"
    assert destinations.text_file_dir("A") == tmp_path / "tests" / "yukicoder" / "no" / "a"

    with pytest.raises(ValueError):
        DownloadDestinations(tmp_path, "toml")


def test_save_suite_yaml(tmp_path):
    path = FileManager(str(tmp_path)).save_suite(sample_suite(), "suites/1.yaml")

    text = path.read_text(encoding='utf-8')
    assert text.startswith("type: batch\n")
    assert "サンプル1" in text
    assert yaml.safe_load(text) == suite_to_dict(sample_suite())
    assert not (tmp_path / "suites" / "1.yaml.tmp").exists()


def test_save_suite_json(tmp_path):
    files = [CaseFile("a", tmp_path / "1" / "test_in" / "a.txt", tmp_path / "1" / "test_out" / "a.txt")]
    manager = FileManager(str(tmp_path))
    path = manager.save_suite(promote_to_files(sample_suite(), files), tmp_path / "1.json")

    data = json.loads(path.read_text(encoding='utf-8'))
    assert data['files'][0]['in'] == "1/test_in/a.txt"
    assert data['timelimit'] == "2000ms"


def test_save_suite_unsupported_suffix(tmp_path):
    with pytest.raises(FileSystemError):
        FileManager(str(tmp_path)).save_suite(sample_suite(), "1.txt")


def test_save_text_keeps_newlines(tmp_path):
    path = FileManager(str(tmp_path)).save_text("a\nb\n", "x/y.txt")
    assert path.read_bytes() == b"a\nb\n"


def test_safe_filename():
    manager = FileManager()
    assert manager.safe_filename('a<b>c') == 'a_b_c'
    assert manager.safe_filename('  name. ') == 'name'
    assert manager.safe_filename('a???b') == 'a_b'
