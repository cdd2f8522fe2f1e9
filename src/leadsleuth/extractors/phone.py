"""Phone number extraction and normalization."""

import re

import phonenumbers
from phonenumbers import NumberParseException

from leadsleuth.logging_config import get_logger

logger = get_logger(__name__)


class PhoneExtractor:
    """Extract and normalize North American phone numbers."""

    # (555) 123-4567, 555.123.4567, +1 555 123 4567, 1-555-123-4567
    PHONE_REGEX = r"(?<!\w)(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}(?!\d)"

    TEL_LINK_REGEX = r"href=[\"']tel:([^\"']+)[\"']"

    def __init__(self, default_region: str = "US"):
        """Initialize phone extractor.

        Args:
            default_region: Default country code for parsing (ISO 3166-1 alpha-2)
        """
        self.default_region = default_region

    def extract_from_text(self, text: str) -> list[str]:
        """Extract phone numbers from text.

        Args:
            text: Text to search

        Returns:
            List of found phone numbers (raw)
        """
        if not text:
            return []

        return re.findall(self.PHONE_REGEX, text)

    def extract_tel_links(self, html: str) -> list[str]:
        """Raw numbers from ``tel:`` anchors."""
        if not html:
            return []
        return re.findall(self.TEL_LINK_REGEX, html, re.IGNORECASE)

    def normalize(self, phone: str, region: str | None = None) -> str | None:
        """Normalize phone number to ``(XXX) XXX-XXXX``.

        Args:
            phone: Raw phone number
            region: Country code (defaults to instance default)

        Returns:
            Normalized phone, or None if it is not a ten-digit national number
        """
        if not phone:
            return None

        region = region or self.default_region

        try:
            parsed = phonenumbers.parse(phone, region)
        except NumberParseException as e:
            logger.debug("phone_parse_error", phone=phone, error=str(e))
            return None

        # Placeholder numbers (555-01xx) are possible but not valid; keep them
        if parsed.country_code != 1 or not phonenumbers.is_possible_number(parsed):
            logger.debug("phone_invalid", phone=phone, region=region)
            return None

        digits = str(parsed.national_number)
        if len(digits) != 10:
            return None
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"

    def extract_and_normalize(self, text: str, html: str | None = None) -> list[str]:
        """Extract, normalize and dedupe phone numbers.

        Args:
            text: Visible page text
            html: Raw HTML, scanned for ``tel:`` links

        Returns:
            Unique normalized numbers in order of appearance
        """
        raw_phones = self.extract_tel_links(html or "") + self.extract_from_text(text)

        seen = set()
        results = []
        for raw in raw_phones:
            normalized = self.normalize(raw)
            if normalized and normalized not in seen:
                seen.add(normalized)
                results.append(normalized)

        return results
