import os, sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
import time

import pytest
from bs4 import BeautifulSoup

from scraper.yukicoder_scraper import YukicoderScraper
from service.credentials import Identity
from testsuite.suite import BatchSuite, InlineCases, InteractiveSuite, Match, TestCase
from utils.error_handler import ScrapeError

PROBLEM_HTML = """
<html><body>
<div id="usermenu"><a href="/users/1">user1<img src="/public/img/anony.png"></a></div>
<div id="content">
<div>作問者: <a href="/users/2">writer</a> / 実行時間制限 : 1ケース 2.000秒 / メモリ制限 : 512 MB / {kind}問題
</div>
<div class="block">
<div class="sample"><div class="paragraph"><h6>入力</h6><pre>1 2
</pre><h6>出力</h6><pre>3
</pre></div></div>
<div class="sample"><div class="paragraph"><h6>入力</h6><pre>5 7
</pre><h6>出力</h6><pre>12
</pre></div></div>
</div>
</div>
</body></html>
"""

HIDDEN_HTML = """
<html><body>
<div id="content">この問題は非表示です<div>...</div></div>
</body></html>
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

SUBMIT_HTML = """
<html><body>
<form id="submit_form" action="/problems/no/1/submit" method="post">
<input type="hidden" name="csrf_token" value="token123">
<textarea name="source"></textarea>
</form>
</body></html>
"""


def page(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, 'lxml')


def user_menu(src: str) -> BeautifulSoup:
    return page(f'<div id="usermenu"><a href="/users/1"> someone <img src="{src}"></a></div>')


def test_extract_identity_provenance():
    scraper = YukicoderScraper()
    assert str(scraper.extract_identity(user_menu("/public/img/anony.png"))) == "someone (yukicoder)"
    assert str(scraper.extract_identity(
        user_menu("https://avatars2.githubusercontent.com/u/1?v=4"))) == "someone (GitHub)"
    assert str(scraper.extract_identity(
        user_menu("https://pbs.twimg.com/profile_images/1.png"))) == "someone (probably Twitter)"


def test_extract_identity_not_logged_in():
    scraper = YukicoderScraper()
    assert scraper.extract_identity(page("<div id='usermenu'></div>")) == Identity.UNAUTHENTICATED
    assert scraper.extract_identity(
        page("<div id='usermenu'><a href='/auth'>ログイン</a></div>")) == Identity.UNAUTHENTICATED


def test_extract_samples_regular():
    suite = YukicoderScraper().extract_samples(page(PROBLEM_HTML.format(kind="通常")))

    assert isinstance(suite, BatchSuite)
    assert suite.timelimit == 2000
    assert suite.match is Match.EXACT
    assert suite.cases == InlineCases((
        TestCase("サンプル1", "1 2\n", "3\n"),
        TestCase("サンプル2", "5 7\n", "12\n"),
    ))


def test_extract_samples_special_judge_drops_outputs():
    suite = YukicoderScraper().extract_samples(page(PROBLEM_HTML.format(kind="スペシャルジャッジ")))

    assert isinstance(suite, BatchSuite)
    assert suite.match is Match.ANY
    assert [case.output for case in suite.cases.cases] == [None, None]
    assert [case.input for case in suite.cases.cases] == ["1 2\n", "5 7\n"]


def test_extract_samples_reactive():
    suite = YukicoderScraper().extract_samples(page(PROBLEM_HTML.format(kind="リアクティブ")))
    assert suite == InteractiveSuite(2000)


def test_extract_samples_time_limit():
    html = PROBLEM_HTML.format(kind="通常").replace("2.000秒", "5.250秒")
    assert YukicoderScraper().extract_samples(page(html)).timelimit == 5250


def test_extract_samples_without_header_raises():
    with pytest.raises(ScrapeError):
        YukicoderScraper().extract_samples(page("<div id='content'><div>nothing here</div></div>"))


def test_extract_samples_incomplete_sample_raises():
    html = PROBLEM_HTML.format(kind="通常").replace("<h6>出力</h6><pre>12\n</pre>", "")
    with pytest.raises(ScrapeError):
        YukicoderScraper().extract_samples(page(html))


def test_is_public():
    scraper = YukicoderScraper()
    assert scraper.is_public(page(PROBLEM_HTML.format(kind="通常")))
    assert not scraper.is_public(page(HIDDEN_HTML))


def test_extract_problem_list():
    problems = YukicoderScraper().extract_problem_list(page(CONTEST_HTML))
    assert [(p.name, p.href) for p in problems] == [
        ("A", "/problems/no/1000"),
        ("B", "/problems/no/1001"),
    ]


def test_extract_problem_list_empty_raises():
    with pytest.raises(ScrapeError):
        YukicoderScraper().extract_problem_list(page("<div id='content'><div class='left'></div></div>"))


def test_extract_submit_form():
    scraper = YukicoderScraper()
    submit_page = page(SUBMIT_HTML)
    assert scraper.extract_csrf_token(submit_page) == "token123"
    assert scraper.extract_submit_url(submit_page) == "/problems/no/1/submit"


def test_extract_submit_form_missing_raises():
    scraper = YukicoderScraper()
    with pytest.raises(ScrapeError):
        scraper.extract_csrf_token(page("<html></html>"))
    with pytest.raises(ScrapeError):
        scraper.extract_submit_url(page("<html></html>"))


def test_scraper_performance():
    scraper = YukicoderScraper()
    problem_page = page(PROBLEM_HTML.format(kind="通常"))
    start = time.perf_counter()
    scraper.extract_samples(problem_page)
    duration = time.perf_counter() - start
    assert duration < 1.0
