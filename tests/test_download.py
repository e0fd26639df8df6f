import os, sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
import io
import logging
import time
import zipfile

import pytest
import responses
import yaml

from scraper.yukicoder_scraper import YukicoderScraper
from service.credentials import SessionToken, StoredCredential
from service.download import (
    DownloadOrchestrator, DownloadOutcomeProblem, DownloadProps, format_targets, split_words
)
from service.fetch import fetch_archives
from service.session import HttpSession
from service.yukicoder import YukicoderService
from testsuite.destinations import DownloadDestinations
from testsuite.suite import FileReferences, InlineCases, InteractiveSuite, Match
from utils.console import Console
from utils.error_handler import (
    ArchiveReadError, PleaseSpecifyProblemsError, ScrapeError, UnexpectedStatusError
)
from utils.file_manager import FileManager

BASE = "https://yukicoder.me"

LOGGED_IN_HTML = """
<div id="usermenu"><a href="/users/1">alice<img src="/public/img/anony.png"></a></div>
"""
LOGGED_OUT_HTML = """
<div id="usermenu"><a href="/auth/github">ログイン</a></div>
"""

PROBLEM_HTML = """
<html><body>
<div id="content">
<div>作問者: <a href="/users/2">writer</a> / 実行時間制限 : 1ケース 2.000秒 / メモリ制限 : 512 MB / {kind}問題
</div>
<div class="block">
<div class="sample"><div class="paragraph"><h6>入力</h6><pre>1 2
</pre><h6>出力</h6><pre>3
</pre></div></div>
</div>
</div>
</body></html>
"""

HIDDEN_HTML = """
<html><body><div id="content">この問題は非表示です<div>...</div></div></body></html>
"""

CONTEST_HTML = """
<html><body>
<div id="content">
<div class="left">
<table class="table"><tbody>
<tr><td>A</td><td>★</td><td><a href="/problems/no/1000">Aのプロブレム</a></td></tr>
<tr><td>B</td><td>★★</td><td><a href="/problems/no/1001">Bのプロブレム</a></td></tr>
</tbody></table>
</div>
</div>
</body></html>
"""


def make_zip(keys) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as archive:
        for key in keys:
            archive.writestr(f"test_in/{key}.txt", f"in {key}\r\n")
            archive.writestr(f"test_out/{key}.txt", f"out {key}\r\n")
    return buffer.getvalue()


@pytest.fixture
def mock():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as requests_mock:
        yield requests_mock


@pytest.fixture
def console():
    return Console(stdout=io.StringIO(), stderr=io.StringIO(), interactive=False)


def add_problem(mock, number, html=None, status=200):
    mock.add(responses.GET, f"{BASE}/problems/no/{number}",
             body=html if html is not None else PROBLEM_HTML.format(kind="通常"), status=status)


def make_service(mock, console, logged_in=True, solved=()):
    mock.add(responses.GET, f"{BASE}/", body=LOGGED_IN_HTML if logged_in else LOGGED_OUT_HTML)
    mock.add(responses.GET, f"{BASE}/api/v1/solved/name/alice", json=[{"No": n} for n in solved])
    session = HttpSession.start("yukicoder.me", silent=True, console=console)
    credential = StoredCredential(SessionToken("session") if logged_in else None)
    return YukicoderService(session, YukicoderScraper(), credential, console)


def make_props(tmp_path, contest, problems, **kwargs):
    destinations = DownloadDestinations(tmp_path / contest, 'yaml', FileManager(str(tmp_path)))
    return DownloadProps(contest, problems, destinations, **kwargs)


def test_direct_download(tmp_path, mock, console):
    service = make_service(mock, console, solved=[1])
    add_problem(mock, 1)
    add_problem(mock, 2)
    add_problem(mock, 3, html="", status=404)
    add_problem(mock, 4, html=HIDDEN_HTML)
    mock.add(responses.GET, f"{BASE}/problems/no/1/testcase.zip", body=make_zip(["1", "2"]))

    outcome = DownloadOrchestrator(service).run(make_props(tmp_path, "no", ["1", "2", "3", "4"]))

    assert [problem.name for problem in outcome.problems] == ["1", "2"]
    assert outcome.not_found == ["3"]
    assert outcome.not_public == ["4"]
    assert "Not found: ['3']" in console.stderr.getvalue()
    assert "Not public: ['4']" in console.stderr.getvalue()

    solved, unsolved = outcome.problems
    assert isinstance(solved.suite.cases, FileReferences)
    assert [case.name for case in solved.suite.cases.paths] == ["1", "2"]
    assert isinstance(unsolved.suite.cases, InlineCases)

    saved = yaml.safe_load((tmp_path / "no" / "1.yaml").read_text(encoding='utf-8'))
    assert saved['files'][0] == {'name': '1', 'in': '1/test_in/1.txt', 'out': '1/test_out/1.txt'}
    assert (tmp_path / "no" / "1" / "test_in" / "1.txt").read_bytes() == b"in 1\n"
    assert 'cases' in yaml.safe_load((tmp_path / "no" / "2.yaml").read_text(encoding='utf-8'))
    assert not (tmp_path / "no" / "3.yaml").exists()

    stdout = console.stdout.getvalue()
    assert stdout.startswith("Target")
    assert "Targets: no/{1, 2, 3, 4}" in stdout
    assert f"1: Saved to {tmp_path / 'no' / '1.yaml'}" in stdout


def test_only_scraped_skips_archives(tmp_path, mock, console):
    service = make_service(mock, console, solved=[1])
    add_problem(mock, 1)

    outcome = DownloadOrchestrator(service).run(make_props(tmp_path, "no", ["1"], only_scraped=True))

    assert isinstance(outcome.problems[0].suite.cases, InlineCases)
    assert not any("testcase.zip" in call.request.url for call in mock.calls)
    assert not any("/api/" in call.request.url for call in mock.calls)


def test_logged_out_keeps_samples(tmp_path, mock, console):
    service = make_service(mock, console, logged_in=False)
    add_problem(mock, 1)

    outcome = DownloadOrchestrator(service).run(make_props(tmp_path, "no", ["1"]))

    assert isinstance(outcome.problems[0].suite.cases, InlineCases)
    assert "Username: <not logged in>" in console.stdout.getvalue()


def test_special_judge_and_reactive_are_not_augmented(tmp_path, mock, console):
    service = make_service(mock, console, solved=[1, 2])
    add_problem(mock, 1, html=PROBLEM_HTML.format(kind="スペシャルジャッジ"))
    add_problem(mock, 2, html=PROBLEM_HTML.format(kind="リアクティブ"))

    outcome = DownloadOrchestrator(service).run(make_props(tmp_path, "no", ["1", "2"]))

    special, reactive = outcome.problems
    assert special.suite.match is Match.ANY
    assert isinstance(special.suite.cases, InlineCases)
    assert reactive.suite == InteractiveSuite(2000)
    assert not any("testcase.zip" in call.request.url for call in mock.calls)


@pytest.mark.parametrize("problems", [None, []])
def test_direct_mode_requires_problems(tmp_path, mock, console, problems):
    service = make_service(mock, console)
    with pytest.raises(PleaseSpecifyProblemsError):
        DownloadOrchestrator(service).run(make_props(tmp_path, "no", problems))


def test_grouped_download(tmp_path, mock, console):
    service = make_service(mock, console, solved=[1000])
    mock.add(responses.GET, f"{BASE}/contests/200", body=CONTEST_HTML)
    add_problem(mock, 1000)
    mock.add(responses.GET, f"{BASE}/problems/no/1000/testcase.zip", body=make_zip(["1"]))

    outcome = DownloadOrchestrator(service).run(make_props(tmp_path, "200", ["a", "c"]))

    assert [problem.name for problem in outcome.problems] == ["A"]
    assert outcome.problems[0].url == f"{BASE}/problems/no/1000"
    assert outcome.not_found == ["C"]
    assert "Not found: ['C']" in console.stderr.getvalue()
    assert isinstance(outcome.problems[0].suite.cases, FileReferences)
    assert (tmp_path / "200" / "a.yaml").exists()
    assert (tmp_path / "200" / "a" / "test_out" / "1.txt").exists()


def test_grouped_download_all_problems(tmp_path, mock, console):
    service = make_service(mock, console, logged_in=False)
    mock.add(responses.GET, f"{BASE}/contests/200", body=CONTEST_HTML)
    add_problem(mock, 1000)
    add_problem(mock, 1001)

    outcome = DownloadOrchestrator(service).run(make_props(tmp_path, "200", None))

    assert [problem.name for problem in outcome.problems] == ["A", "B"]
    assert outcome.not_found == []
    assert "Targets: 200/*" in console.stdout.getvalue()


def test_corrupt_archive_aborts_without_writing(tmp_path, mock, console):
    service = make_service(mock, console, solved=[1])
    add_problem(mock, 1)
    add_problem(mock, 2)
    mock.add(responses.GET, f"{BASE}/problems/no/1/testcase.zip", body=b"not a zip")

    with pytest.raises(ArchiveReadError):
        DownloadOrchestrator(service).run(make_props(tmp_path, "no", ["1", "2"]))
    assert not (tmp_path / "no" / "2.yaml").exists()


def test_scrape_failure_aborts_without_writing(tmp_path, mock, console):
    service = make_service(mock, console)
    add_problem(mock, 1)
    add_problem(mock, 2, html="<html><div id='content'><div>broken</div></div></html>")

    with pytest.raises(ScrapeError):
        DownloadOrchestrator(service).run(make_props(tmp_path, "no", ["1", "2"]))
    assert not (tmp_path / "no").exists()


def test_open_in_browser(tmp_path, mock, console, monkeypatch):
    opened = []
    monkeypatch.setattr("webbrowser.open", lambda url: opened.append(url) or True)
    service = make_service(mock, console, logged_in=False)
    add_problem(mock, 1)

    DownloadOrchestrator(service).run(make_props(tmp_path, "no", ["1"], open_in_browser=True))

    assert opened == [f"{BASE}/problems/no/1"]


def test_format_targets():
    assert format_targets("no", None) == "Targets: no/*"
    assert format_targets("no", ["1"]) == "Target: no/1"
    assert format_targets("200", ["A", "B"]) == "Targets: 200/{A, B}"


def test_name_variants(tmp_path):
    problem = DownloadOutcomeProblem("fooBar2", "https://example.com", tmp_path / "x.yaml",
                                     InteractiveSuite(1000))

    assert split_words("fooBar2") == ["foo", "Bar", "2"]
    assert problem.name_lower == "foobar2"
    assert problem.name_upper == "FOOBAR2"
    assert problem.name_kebab == "foo-bar-2"
    assert problem.name_snake == "foo_bar_2"
    assert problem.name_screaming == "FOO_BAR_2"
    assert problem.name_mixed == "fooBar2"
    assert problem.name_pascal == "FooBar2"
    assert problem.name_title == "Foo Bar 2"

    data = problem.to_dict()
    assert data['suite_path'] == str(tmp_path / "x.yaml")
    assert data['suite'] == {'type': 'interactive', 'timelimit': '1000ms'}


def slow_body(body, delay):
    def callback(request):
        time.sleep(delay)
        return (200, {}, body)
    return callback


def test_fetch_archives_keeps_input_order(mock, console):
    session = HttpSession.start("yukicoder.me", silent=True, console=console)
    mock.add_callback(responses.GET, f"{BASE}/a.zip", callback=slow_body(b"first", 0.3))
    mock.add_callback(responses.GET, f"{BASE}/b.zip", callback=slow_body(b"second", 0))

    bodies = fetch_archives(session, [f"{BASE}/a.zip", f"{BASE}/b.zip"], ["a", "b"],
                            silent=True, max_workers=2)

    assert bodies == [b"first", b"second"]


def test_fetch_archives_rejects_mismatched_labels(console):
    session = HttpSession.start("yukicoder.me", silent=True, console=console)
    with pytest.raises(ValueError):
        fetch_archives(session, [f"{BASE}/a.zip"], [], silent=True)
    assert fetch_archives(session, [], [], silent=True) == []


def test_each_problem_gets_its_own_archive(tmp_path, mock, console):
    service = make_service(mock, console, solved=[1, 2])
    add_problem(mock, 1)
    add_problem(mock, 2)
    mock.add_callback(responses.GET, f"{BASE}/problems/no/1/testcase.zip",
                      callback=slow_body(make_zip(["a1"]), 0.3))
    mock.add_callback(responses.GET, f"{BASE}/problems/no/2/testcase.zip",
                      callback=slow_body(make_zip(["b1", "b2"]), 0))

    outcome = DownloadOrchestrator(service).run(make_props(tmp_path, "no", ["1", "2"]))

    first, second = outcome.problems
    assert [case.name for case in first.suite.cases.paths] == ["a1"]
    assert [case.name for case in second.suite.cases.paths] == ["b1", "b2"]
    assert (tmp_path / "no" / "1" / "test_in" / "a1.txt").read_bytes() == b"in a1\n"
    assert (tmp_path / "no" / "2" / "test_out" / "b2.txt").read_bytes() == b"out b2\n"
    assert not (tmp_path / "no" / "1" / "test_in" / "b1.txt").exists()


def test_failed_archive_download_aborts_the_batch(tmp_path, mock, console):
    service = make_service(mock, console, solved=[1, 2])
    add_problem(mock, 1)
    add_problem(mock, 2)
    mock.add(responses.GET, f"{BASE}/problems/no/1/testcase.zip", body=make_zip(["1"]))
    mock.add(responses.GET, f"{BASE}/problems/no/2/testcase.zip", status=404)

    with pytest.raises(UnexpectedStatusError):
        DownloadOrchestrator(service).run(make_props(tmp_path, "no", ["1", "2"]))
    assert not (tmp_path / "no" / "1.yaml").exists()
    assert not (tmp_path / "no" / "2.yaml").exists()


class PartialArchiveService(YukicoderService):
    """Publishes the archive of problem 2 only"""

    def archive_url(self, key):
        return super().archive_url(key) if key == "2" else None


def test_problems_without_archive_url_keep_their_samples(tmp_path, mock, console):
    make_service(mock, console, solved=[1, 2])
    session = HttpSession.start("yukicoder.me", silent=True, console=console)
    service = PartialArchiveService(session, YukicoderScraper(), StoredCredential(SessionToken("session")),
                                    console)
    add_problem(mock, 1)
    add_problem(mock, 2)
    mock.add(responses.GET, f"{BASE}/problems/no/2/testcase.zip", body=make_zip(["1"]))

    outcome = DownloadOrchestrator(service).run(make_props(tmp_path, "no", ["1", "2"]))

    first, second = outcome.problems
    assert isinstance(first.suite.cases, InlineCases)
    assert isinstance(second.suite.cases, FileReferences)
    assert not any(call.request.url.endswith("/no/1/testcase.zip") for call in mock.calls)


def test_augmented_case_count_is_logged(tmp_path, mock, console, caplog):
    caplog.set_level(logging.INFO, logger="service.download")
    service = make_service(mock, console, solved=[1])
    add_problem(mock, 1)
    mock.add(responses.GET, f"{BASE}/problems/no/1/testcase.zip", body=make_zip(["1", "2", "3"]))

    DownloadOrchestrator(service).run(make_props(tmp_path, "no", ["1"]))

    assert "1: 3 case(s) from the archive" in caplog.text
