"""Social profile link extraction."""

import re

from selectolax.parser import HTMLParser

LINKEDIN_REGEX = re.compile(r"https?://(?:[a-z]{2,3}\.)?linkedin\.com/(?:in|company)/[A-Za-z0-9_%-]+", re.IGNORECASE)
FACEBOOK_REGEX = re.compile(r"https?://(?:www\.|m\.)?facebook\.com/[A-Za-z0-9._-]+", re.IGNORECASE)

# facebook.com/<path> values that are not business pages
_FACEBOOK_NON_PAGES = {"sharer", "sharer.php", "share.php", "dialog", "plugins", "tr", "login", "policies"}


class SocialLinkExtractor:
    """Extract LinkedIn and Facebook URLs from a page."""

    def extract(self, html: str) -> tuple[list[str], list[str]]:
        """Extract social links.

        Args:
            html: Raw HTML

        Returns:
            (linkedin_urls, facebook_urls), deduped in order of appearance
        """
        if not html:
            return [], []

        candidates = self._anchor_hrefs(html)
        candidates.append(html)

        linkedin: list[str] = []
        facebook: list[str] = []
        for chunk in candidates:
            for url in LINKEDIN_REGEX.findall(chunk):
                _append_unique(linkedin, url)
            for url in FACEBOOK_REGEX.findall(chunk):
                page = url.rstrip("/").rsplit("/", 1)[-1].lower()
                if page not in _FACEBOOK_NON_PAGES:
                    _append_unique(facebook, url)

        return linkedin, facebook

    @staticmethod
    def _anchor_hrefs(html: str) -> list[str]:
        tree = HTMLParser(html)
        hrefs = []
        for node in tree.css("a[href]"):
            href = node.attributes.get("href")
            if href:
                hrefs.append(href.strip())
        return hrefs


def _append_unique(urls: list[str], url: str) -> None:
    key = url.rstrip("/").lower()
    if all(u.rstrip("/").lower() != key for u in urls):
        urls.append(url.rstrip("/"))
