"""Email extraction from websites and text."""

import re

from leadsleuth.logging_config import get_logger

logger = get_logger(__name__)


class EmailExtractor:
    """Extract and validate email addresses."""

    # Generic email regex
    EMAIL_REGEX = r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"

    MAILTO_REGEX = r"mailto:([A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,})"

    # Placeholder / automated mailboxes nobody answers
    JUNK_PATTERNS = [
        r"^noreply@",
        r"^no-reply@",
        r"^donotreply@",
        r"^example@",
        r"^test@",
        r"^demo@",
        r"^sample@",
        r"^user@",
        r"^your(name|email)?@",
        r"^webmaster@",
        r"^postmaster@",
        r"^abuse@",
        r"^privacy@",
    ]

    JUNK_DOMAINS = (
        "example.com",
        "example.org",
        "domain.com",
        "email.com",
        "sentry.io",
        "wixpress.com",
    )

    # Asset file names that look like addresses (logo@2x.png)
    ASSET_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".css", ".js")

    def extract_from_text(self, text: str, domain: str | None = None) -> list[str]:
        """Extract all email addresses from text.

        Args:
            text: Text to search
            domain: Optional domain to filter emails (e.g., 'example.com')

        Returns:
            List of unique lowercase email addresses, in order of appearance
        """
        if not text:
            return []

        emails = re.findall(self.EMAIL_REGEX, text, re.IGNORECASE)
        return self._unique(emails, domain)

    def extract_from_html(self, html: str, domain: str | None = None) -> list[str]:
        """Extract emails from raw HTML, mailto links first.

        Args:
            html: HTML content
            domain: Optional domain filter

        Returns:
            List of unique lowercase email addresses
        """
        if not html:
            return []

        mailto_emails = re.findall(self.MAILTO_REGEX, html, re.IGNORECASE)
        text_emails = re.findall(self.EMAIL_REGEX, html, re.IGNORECASE)
        return self._unique(mailto_emails + text_emails, domain)

    def _unique(self, emails: list[str], domain: str | None) -> list[str]:
        seen = set()
        unique_emails = []
        for email in emails:
            email_lower = email.lower().strip(".")
            if email_lower in seen:
                continue
            seen.add(email_lower)

            # Filter by domain if specified
            if domain and not (
                email_lower.endswith(f"@{domain.lower()}")
                or email_lower.endswith(f"@www.{domain.lower()}")
            ):
                continue
            if self.is_junk(email_lower):
                logger.debug("email_filtered_junk", email=email_lower)
                continue
            unique_emails.append(email_lower)

        return unique_emails

    def is_junk(self, email: str) -> bool:
        """Check whether an address is a placeholder or automated mailbox."""
        email = email.lower()
        if email.endswith(self.ASSET_SUFFIXES):
            return True
        email_domain = email.rsplit("@", 1)[-1]
        if any(email_domain == d or email_domain.endswith(f".{d}") for d in self.JUNK_DOMAINS):
            return True
        return any(re.match(pattern, email) for pattern in self.JUNK_PATTERNS)

    def validate_format(self, email: str) -> bool:
        """Validate email format.

        Args:
            email: Email address

        Returns:
            True if valid format
        """
        if not email or "@" not in email:
            return False

        # Check regex against the whole address
        if not re.fullmatch(self.EMAIL_REGEX, email, re.IGNORECASE):
            return False

        # Additional checks
        if len(email) > 320:  # RFC 5321
            return False

        local, domain = email.rsplit("@", 1)

        if len(local) > 64 or len(domain) > 255:
            return False

        # Check for consecutive dots
        if ".." in email:
            return False

        if local.startswith(".") or local.endswith("."):
            return False

        return True
