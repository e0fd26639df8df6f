"""
yukicoder scraper for OJ Test Suite Downloader

Reads the user menu, problem pages, contest pages and submit pages of https://yukicoder.me.
"""

import re
import logging
from typing import List, Optional

from bs4 import BeautifulSoup

from scraper.base_scraper import BaseScraper, ProblemLink
from service.credentials import Identity
from testsuite.suite import BatchSuite, InteractiveSuite, Match, TestSuite
from utils.error_handler import ScrapeError

logger = logging.getLogger(__name__)

ANONYMOUS_ICON = "/public/img/anony.png"
GITHUB_AVATAR_PREFIX = "https://avatars2.githubusercontent.com"

# Second text node of the header divs, e.g.
# " / 実行時間制限 : 1ケース 2.000秒 / メモリ制限 : 512 MB / 通常問題"
PROBLEM_HEADER = re.compile(
    r"\A / 実行時間制限 : 1ケース (\d)\.(\d{3})秒 / メモリ制限 : \d+ MB / "
    r"(通常|スペシャルジャッジ|リアクティブ)問題.*\n?.*\Z"
)

REGULAR = "通常"
SPECIAL_JUDGE = "スペシャルジャッジ"
REACTIVE = "リアクティブ"

HIDDEN_MARKER = "非表示"


def sample_name(index: int) -> str:
    return f"サンプル{index + 1}"


class YukicoderScraper(BaseScraper):
    """
    Scraper for yukicoder

    Problem kinds map to suites as follows:
        通常 (regular)                 -> BatchSuite, exact match
        スペシャルジャッジ (special)    -> BatchSuite without expected output, any match
        リアクティブ (reactive)         -> InteractiveSuite
    """

    def extract_identity(self, page: BeautifulSoup) -> Identity:
        """
        The user menu links to the user page. The avatar tells where the account comes from:
        the anonymous icon for yukicoder accounts, a GitHub avatar, or anything else, which
        is probably Twitter.
        """
        link = page.select_one("#usermenu > a")
        if link is None:
            return Identity.UNAUTHENTICATED
        name = next((text.strip() for text in link.strings if text.strip()), None)
        image = link.find("img")
        src = image.get("src") if image is not None else None
        if name is None or src is None:
            return Identity.UNAUTHENTICATED

        if src == ANONYMOUS_ICON:
            provenance = "yukicoder"
        elif src.startswith(GITHUB_AVATAR_PREFIX):
            provenance = "GitHub"
        else:
            provenance = "probably Twitter"
        return Identity(name, provenance)

    def is_public(self, page: BeautifulSoup) -> bool:
        content = page.select_one("#content")
        if content is None:
            return True
        texts = self.direct_texts(content)
        return not texts or HIDDEN_MARKER not in texts[0]

    def _header(self, page: BeautifulSoup) -> Optional[str]:
        texts = [text for div in page.select("#content > div") for text in self.direct_texts(div)]
        return texts[1] if len(texts) > 1 else None

    def extract_samples(self, page: BeautifulSoup) -> TestSuite:
        header = self._header(page)
        match = PROBLEM_HEADER.match(header) if header is not None else None
        if match is None:
            raise ScrapeError("Failed to scrape: time limit and problem kind not found")

        seconds, millis, kind = match.groups()
        timelimit = 1000 * int(seconds) + int(millis)

        if kind == REACTIVE:
            return InteractiveSuite(timelimit)

        samples = []
        for paragraph in page.select("#content > div.block > div.sample > div.paragraph"):
            pres = [text for pre in paragraph.select("pre") for text in self.direct_texts(pre)]
            if len(pres) != 2:
                raise ScrapeError(f"Failed to scrape: expected 2 <pre> texts in a sample, found {len(pres)}")
            input_, output = pres
            samples.append((input_, output if kind == REGULAR else None))

        logger.debug(f"Scraped {len(samples)} sample(s), timelimit={timelimit}ms, kind={kind}")
        return BatchSuite.from_samples(
            timelimit, samples, sample_name,
            match=Match.ANY if kind == SPECIAL_JUDGE else Match.EXACT
        )

    def extract_problem_list(self, page: BeautifulSoup) -> List[ProblemLink]:
        problems = []
        for row in page.select("#content > div.left > table.table > tbody > tr"):
            cells = row.find_all("td")
            link = cells[2].find("a") if len(cells) > 2 else None
            if link is None or not link.get("href"):
                raise ScrapeError("Failed to scrape: malformed problem table row")
            problems.append(ProblemLink(cells[0].get_text().strip(), link["href"]))
        if not problems:
            raise ScrapeError("Failed to scrape: no problems listed")
        return problems

    def extract_csrf_token(self, page: BeautifulSoup) -> str:
        field = self.select_one(page, '#submit_form > input[name="csrf_token"]')
        if not field.get("value"):
            raise ScrapeError("Failed to scrape: CSRF token has no value")
        return field["value"]

    def extract_submit_url(self, page: BeautifulSoup) -> str:
        form = self.select_one(page, "#submit_form")
        if not form.get("action"):
            raise ScrapeError("Failed to scrape: submit form has no action")
        return form["action"]
