"""EmailListVerify single-address verifier."""

from leadsleuth.core.http_client import HTTPClient
from leadsleuth.exceptions import ProviderError
from leadsleuth.logging_config import get_logger
from leadsleuth.settings import settings
from leadsleuth.verification.base import VerificationOutcome

logger = get_logger(__name__)

# Plain-text answers from the API, mapped onto the JSON status names
_STATUS_ALIASES = {"ok": "valid", "ok_for_all": "catch-all", "accept_all": "catch-all"}

VALID_STATUSES = frozenset({"valid", "catch-all"})


class EmailListVerifyVerifier:
    """Verify addresses through EmailListVerify."""

    name = "emaillistverify"
    method = "emaillistverify_api"

    def __init__(self, api_key: str | None, http: HTTPClient, url: str | None = None):
        self.api_key = api_key or ""
        self.enabled = bool(self.api_key)
        self.http = http
        self.url = url or settings.emaillistverify_url

    async def verify(self, email: str) -> VerificationOutcome | None:
        """Verify one address.

        Returns:
            Outcome, or None when the API gave no status
        """
        if not self.enabled:
            raise ProviderError("EmailListVerify API is not configured", error_code="not_configured")

        response = await self.http.get(self.url, params={"secret": self.api_key, "email": email})

        try:
            status = response.json().get("status")
        except (ValueError, AttributeError):
            status = response.text

        if not status or not isinstance(status, str):
            return None

        status = status.strip().lower()
        status = _STATUS_ALIASES.get(status, status)

        logger.info("emaillistverify_email_verified", email=email, status=status)

        return VerificationOutcome(
            is_valid=status in VALID_STATUSES,
            method=self.method,
            details=f"Status: {status}",
        )
