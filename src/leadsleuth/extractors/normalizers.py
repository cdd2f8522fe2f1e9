"""Data normalization utilities."""

import re
from urllib.parse import urlparse

from selectolax.parser import HTMLParser
from slugify import slugify


class WebsiteNormalizer:
    """Normalize and validate website URLs."""

    @staticmethod
    def normalize(url: str) -> str | None:
        """Normalize a website URL.

        Args:
            url: Raw URL

        Returns:
            Normalized URL with scheme and no trailing slash, or None if invalid
        """
        if not url:
            return None

        url = url.strip()

        # Add scheme if missing
        if not url.lower().startswith(("http://", "https://")):
            url = f"https://{url}"

        try:
            parsed = urlparse(url)
        except ValueError:
            return None
        if not parsed.netloc or "." not in parsed.netloc:
            return None

        # Remove trailing slash
        path = parsed.path.rstrip("/")
        return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}{path}"


def clean_domain(url_or_domain: str | None) -> str:
    """Bare mail domain from a URL or domain: no scheme, ``www.``, path or port.

    Args:
        url_or_domain: URL or domain string

    Returns:
        Domain string (e.g., 'example.com'), or '' when nothing usable remains
    """
    if not url_or_domain:
        return ""

    domain = url_or_domain.strip().lower()
    domain = re.sub(r"^[a-z][a-z0-9+.-]*://", "", domain)
    domain = domain.split("/", 1)[0].split("?", 1)[0].split("#", 1)[0]
    domain = domain.rsplit("@", 1)[-1].split(":", 1)[0]

    # Remove www. prefix
    if domain.startswith("www."):
        domain = domain[4:]

    return domain if "." in domain else ""


def domain_from_business_name(business_name: str | None, tld: str = "com") -> str:
    """Guess a domain from the business name ("Acme HVAC, LLC" -> "acmehvac.com")."""
    if not business_name:
        return ""
    name = CompanyNameNormalizer.normalize_for_deduplication(business_name) or ""
    slug = slugify(name, separator="")
    return f"{slug}.{tld}" if slug else ""


class CompanyNameNormalizer:
    """Normalize company names."""

    LEGAL_SUFFIXES = [
        "llc",
        "inc",
        "corp",
        "co",
        "ltd",
        "lp",
        "llp",
        "pllc",
        "gmbh",
    ]

    @staticmethod
    def normalize_for_deduplication(name: str) -> str | None:
        """Normalize company name for matching.

        Args:
            name: Raw company name

        Returns:
            Lowercase name without punctuation or legal suffixes
        """
        if not name:
            return None

        name = name.lower().strip()

        # Remove punctuation
        name = re.sub(r"[^\w\s]", " ", name)

        # Remove legal suffixes
        for suffix in CompanyNameNormalizer.LEGAL_SUFFIXES:
            pattern = r"\b" + re.escape(suffix) + r"\b"
            name = re.sub(pattern, "", name)

        # Remove extra whitespace
        name = re.sub(r"\s+", " ", name).strip()

        return name


def normalize_profile_url(url: str | None) -> str:
    """Canonical form of a profile URL used for deduplication."""
    if not url:
        return ""
    url = url.strip()
    if url.startswith("/"):
        url = f"https://www.linkedin.com{url}"
    try:
        parsed = urlparse(url if "://" in url else f"https://{url}")
    except ValueError:
        return url.lower()
    host = parsed.netloc.lower()
    # Country subdomains (uk.linkedin.com) point at the same profile
    if host.endswith("linkedin.com"):
        host = "linkedin.com"
    elif host.startswith("www."):
        host = host[4:]
    path = parsed.path.rstrip("/").lower()
    return f"{host}{path}"


def phone_digits(phone: str | None) -> str:
    """Digit string used for phone deduplication (US country code dropped)."""
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    return digits


class TextCleaner:
    """Clean and extract text from HTML."""

    LAYOUT_TAGS = ["nav", "footer", "header"]

    @staticmethod
    def clean_html(html: str, drop_layout: bool = False) -> str:
        """Remove HTML tags and clean text.

        Args:
            html: HTML content
            drop_layout: Also drop nav/footer/header blocks

        Returns:
            Clean text
        """
        if not html:
            return ""

        tree = HTMLParser(html)
        tags = ["script", "style", "noscript", "svg"]
        if drop_layout:
            tags += TextCleaner.LAYOUT_TAGS
        tree.strip_tags(tags)

        root = tree.body or tree.root
        text = root.text(separator=" ") if root else ""

        # Clean whitespace
        return re.sub(r"\s+", " ", text).strip()
