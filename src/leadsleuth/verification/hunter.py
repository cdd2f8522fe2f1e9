"""Hunter.io email verifier.

API Documentation: https://hunter.io/api-documentation/v2#email-verifier
"""

from typing import Any

from leadsleuth.core.http_client import HTTPClient
from leadsleuth.exceptions import FetchError, ProviderError
from leadsleuth.logging_config import get_logger
from leadsleuth.settings import settings
from leadsleuth.verification.base import VerificationOutcome

logger = get_logger(__name__)


class HunterVerifier:
    """Verify deliverability through Hunter.io."""

    name = "hunter"
    method = "hunter_io_api"

    # Score at or above which an address counts as valid
    MIN_SCORE = 70

    def __init__(self, api_key: str | None, http: HTTPClient, base_url: str | None = None):
        """Initialize Hunter verifier.

        Args:
            api_key: Hunter.io API key (verifier is disabled without one)
            http: Shared HTTP client
            base_url: API root, e.g. ``https://api.hunter.io/v2``
        """
        self.api_key = api_key or ""
        self.enabled = bool(self.api_key)
        self.http = http
        self.base_url = (base_url or settings.hunter_base_url).rstrip("/")

    async def _request(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        """Make request to Hunter.io API.

        Args:
            endpoint: API endpoint
            params: Query parameters

        Returns:
            Response ``data`` object

        Raises:
            ProviderError: If API returns an error
        """
        if not self.enabled:
            raise ProviderError("Hunter.io API is not configured", error_code="not_configured")

        try:
            response = await self.http.get(
                f"{self.base_url}/{endpoint}",
                params={**params, "api_key": self.api_key},
                headers={"Accept": "application/json"},
            )
        except FetchError as e:
            if e.status_code == 401:
                raise ProviderError("Invalid API key", status_code=401, error_code="invalid_api_key") from e
            if e.status_code == 429:
                raise ProviderError("Rate limit exceeded", status_code=429, error_code="rate_limit") from e
            raise

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError("Hunter.io returned malformed JSON", status_code=response.status_code) from e

        if data.get("errors"):
            error = data["errors"][0]
            raise ProviderError(
                error.get("details", "Unknown error"),
                status_code=response.status_code,
                error_code=error.get("code"),
            )

        return data.get("data") or {}

    async def verify(self, email: str) -> VerificationOutcome | None:
        """Verify if an email address is deliverable.

        Args:
            email: Email address to verify

        Returns:
            Outcome, or None when Hunter had no answer for the address
        """
        data = await self._request("email-verifier", {"email": email})
        if not data:
            return None

        # "result" is the legacy field; newer responses carry "status"
        result = data.get("result") or data.get("status")
        score = data.get("score") or 0

        logger.info("hunter_email_verified", email=email, result=result, score=score)

        return VerificationOutcome(
            is_valid=result in ("deliverable", "valid") or score >= self.MIN_SCORE,
            method=self.method,
            details=f"Result: {result}, Score: {score}",
        )
