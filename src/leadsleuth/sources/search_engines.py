"""Search engine result page scrapers (Google, Bing)."""

from dataclasses import dataclass
from urllib.parse import parse_qs, urlparse

from selectolax.parser import HTMLParser, Node

from leadsleuth.core.http_client import HTTPClient
from leadsleuth.exceptions import BlockedError
from leadsleuth.logging_config import get_logger
from leadsleuth.settings import settings

logger = get_logger(__name__)


@dataclass(frozen=True)
class SearchHit:
    """One organic search result."""

    url: str
    title: str
    snippet: str = ""


# Phrases served instead of results when the engine suspects a bot
BLOCK_MARKERS = ("captcha", "unusual traffic", "/sorry/index")


class SearchEngine:
    """Fetch and parse one search engine's result page."""

    name = "search"
    search_url = ""

    def __init__(self, http: HTTPClient, search_url: str | None = None):
        self.http = http
        self.search_url = search_url or self.search_url

    async def search(self, query: str, limit: int = 10) -> list[SearchHit]:
        """Run a query.

        Args:
            query: Search query
            limit: Maximum hits to return

        Returns:
            Organic hits in rank order

        Raises:
            BlockedError: Engine answered with a captcha/block page
            FetchError: Request failed
        """
        response = await self.http.get(self.search_url, params=self.build_params(query, limit))
        html = response.text
        self._check_blocked(html)
        hits = self.parse(html)[:limit]
        logger.info("search_engine_query", engine=self.name, query=query, results=len(hits))
        return hits

    def build_params(self, query: str, limit: int) -> dict[str, str | int]:
        return {"q": query}

    def parse(self, html: str) -> list[SearchHit]:
        raise NotImplementedError

    def _check_blocked(self, html: str) -> None:
        lowered = html.lower()
        if any(marker in lowered for marker in BLOCK_MARKERS):
            logger.warning("search_engine_blocked", engine=self.name)
            raise BlockedError(f"{self.name} search blocked (captcha)", url=self.search_url)


class GoogleSearch(SearchEngine):
    """Google Search Results Page scraper.

    Google's HTML structure changes frequently, so several selectors are tried.
    """

    name = "google"
    search_url = settings.google_search_url

    def build_params(self, query: str, limit: int) -> dict[str, str | int]:
        return {"q": query, "num": limit, "hl": "en", "gl": "us"}

    def parse(self, html: str) -> list[SearchHit]:
        parser = HTMLParser(html)
        hits: list[SearchHit] = []
        seen: set[str] = set()

        for heading in parser.css("h3"):
            link = _ancestor(heading, "a")
            if link is None:
                continue
            url = self._clean_url(link.attributes.get("href") or "")
            if not url or url in seen or self._should_skip_url(url):
                continue
            seen.add(url)

            container = _ancestor(link, "div", css_class="g") or link.parent
            snippet = ""
            if container is not None:
                snippet_elem = (
                    container.css_first("div[data-sncf]")
                    or container.css_first("div.VwiC3b")
                    or container.css_first("span.st")
                )
                snippet = snippet_elem.text(separator=" ").strip() if snippet_elem else ""

            hits.append(SearchHit(url=url, title=heading.text().strip(), snippet=snippet))

        return hits

    @staticmethod
    def _clean_url(href: str) -> str:
        # Unwrap /url?q=<target>&sa=... redirect links
        if href.startswith("/url?"):
            target = parse_qs(urlparse(href).query).get("q")
            return target[0] if target else ""
        return href if href.startswith("http") else ""

    @staticmethod
    def _should_skip_url(url: str) -> bool:
        domain = urlparse(url).netloc.lower()
        return any(skip in domain for skip in ("google.", "gstatic.com", "googleadservices"))


class BingSearch(SearchEngine):
    """Bing result page scraper."""

    name = "bing"
    search_url = settings.bing_search_url

    def build_params(self, query: str, limit: int) -> dict[str, str | int]:
        return {"q": query, "count": limit}

    def parse(self, html: str) -> list[SearchHit]:
        parser = HTMLParser(html)
        hits: list[SearchHit] = []
        for result in parser.css("#b_results .b_algo"):
            link = result.css_first("h2 a")
            if link is None:
                continue
            url = link.attributes.get("href") or ""
            if not url.startswith("http"):
                continue
            snippet_elem = result.css_first(".b_caption p")
            hits.append(
                SearchHit(
                    url=url,
                    title=link.text().strip(),
                    snippet=snippet_elem.text(separator=" ").strip() if snippet_elem else "",
                )
            )
        return hits


def _ancestor(node: Node, tag: str, css_class: str | None = None) -> Node | None:
    current = node.parent
    while current is not None:
        if current.tag == tag:
            classes = (current.attributes.get("class") or "").split()
            if css_class is None or css_class in classes:
                return current
        current = current.parent
    return None
