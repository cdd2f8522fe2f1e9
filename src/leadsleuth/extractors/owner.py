"""Owner name/title extraction from website text.

Two strategies behind one interface: a regex extractor that always works,
and an OpenAI-backed extractor that falls back to it whenever the model
call fails or the circuit is open.
"""

import json
import re
from abc import ABC, abstractmethod

from leadsleuth.core.http_client import HTTPClient
from leadsleuth.exceptions import LeadSleuthError, ProviderError
from leadsleuth.logging_config import get_logger
from leadsleuth.models import OwnerGuess
from leadsleuth.resilience.circuit_breaker import OPENAI
from leadsleuth.resilience.guard import ResilienceGuard
from leadsleuth.resilience.retry import API_CALL
from leadsleuth.settings import Settings

logger = get_logger(__name__)


class OwnerExtractor(ABC):
    """Guess the business owner from free text."""

    method: str = "none"

    @abstractmethod
    async def extract(self, text: str) -> OwnerGuess:
        """Return the best owner guess, or an empty guess."""


# One capitalized first name, optional middle initial, one last name
NAME = r"\b[A-Z][a-z]+(?:\s[A-Z]\.)?\s(?:Mc|Mac|O')?[A-Z][a-z]+(?:-[A-Z][a-z]+)?"

_TITLE_WORD = (
    r"(?:co-?)?(?:owner|founder)|president|ceo|chief executive officer|principal"
    r"|proprietor|managing partner|general manager"
)
TITLE = rf"(?i:(?:{_TITLE_WORD})(?:\s*(?:&|and|/)\s*(?:{_TITLE_WORD}))?)"

# Capitalized pairs that are headings, not people
_NOT_NAMES = {
    "about", "contact", "our", "the", "team", "us", "home", "family", "company",
    "services", "meet", "call", "today", "free", "estimate", "read", "more",
}


class RegexOwnerExtractor(OwnerExtractor):
    """Pattern-based owner extraction."""

    method = "regex"

    # (pattern, name group, title group or fixed title)
    PATTERNS: list[tuple[re.Pattern[str], int, int | str]] = [
        (re.compile(rf"(?i:owned(?:\s+and\s+operated)?\s+by)\s+({NAME})"), 1, "Owner"),
        (re.compile(rf"(?i:founded|started|established)\s+(?i:in\s+\d{{4}}\s+)?(?i:by)\s+({NAME})"), 1, "Founder"),
        (re.compile(rf"({NAME}),\s+({TITLE})\b"), 1, 2),
        (re.compile(rf"({TITLE})\s*:\s*({NAME})"), 2, 1),
        (re.compile(rf"({NAME})\s+[-–|]\s+({TITLE})\b"), 1, 2),
        (re.compile(rf"\b(?i:our|the)\s+({TITLE}),?\s+({NAME})"), 2, 1),
    ]

    async def extract(self, text: str) -> OwnerGuess:
        return self.extract_sync(text)

    def extract_sync(self, text: str) -> OwnerGuess:
        if not text:
            return OwnerGuess()

        for pattern, name_group, title_ref in self.PATTERNS:
            for match in pattern.finditer(text):
                name = match.group(name_group).strip()
                if not self._looks_like_name(name):
                    continue
                if isinstance(title_ref, int):
                    title = self._clean_title(match.group(title_ref))
                else:
                    title = title_ref
                logger.debug("owner_found_regex", name=name, title=title)
                return OwnerGuess(name=name, title=title, method=self.method)

        return OwnerGuess()

    @staticmethod
    def _looks_like_name(name: str) -> bool:
        words = [w.strip(".").lower() for w in name.split()]
        return len(words) >= 2 and not any(w in _NOT_NAMES for w in words)

    @staticmethod
    def _clean_title(title: str) -> str:
        title = re.sub(r"\s+", " ", title.strip())
        words = []
        for word in title.split(" "):
            if word.lower() == "ceo":
                words.append("CEO")
            elif word.lower() == "and":
                words.append("and")
            else:
                words.append("-".join(part.capitalize() for part in word.split("-")))
        return " ".join(words)


class OpenAIOwnerExtractor(OwnerExtractor):
    """Owner extraction through the OpenAI chat completions API."""

    method = "ai"

    SYSTEM_PROMPT = (
        "You are a data extraction assistant. Extract structured data from "
        "unstructured text and return only valid JSON."
    )

    USER_PROMPT = """Extract the business owner's name and title from this website text. Look for phrases like "owned by", "founded by", "owner", "president", "CEO", etc.

Website text:
{text}

Respond in JSON format:
{{
  "name": "John Smith" or null,
  "title": "Owner" or "CEO" or null
}}

If you can't find a clear owner, return null for both fields."""

    # Shorter text rarely names anyone; skip the API call
    MIN_TEXT_LENGTH = 50
    MAX_PROMPT_TEXT = 2000

    def __init__(
        self,
        api_key: str,
        http: HTTPClient,
        guard: ResilienceGuard,
        model: str = "gpt-4o-mini",
        url: str = "https://api.openai.com/v1/chat/completions",
        fallback: OwnerExtractor | None = None,
    ):
        """Initialize the AI extractor.

        Args:
            api_key: OpenAI API key
            http: Shared HTTP client
            guard: Breaker/retry wrapper (uses the ``openai`` breaker)
            model: Chat model name
            url: Chat completions endpoint
            fallback: Extractor used when the AI call fails (regex by default)
        """
        self.api_key = api_key
        self.http = http
        self.guard = guard
        self.model = model
        self.url = url
        self.fallback = fallback or RegexOwnerExtractor()

    async def extract(self, text: str) -> OwnerGuess:
        if not text or len(text) < self.MIN_TEXT_LENGTH:
            return await self.fallback.extract(text)

        try:
            content = await self.guard.call(
                OPENAI, API_CALL, "openai_owner_extraction", self._complete, text[: self.MAX_PROMPT_TEXT]
            )
            parsed = self._parse(content)
        except (LeadSleuthError, ValueError) as e:
            logger.warning("ai_owner_extraction_failed", error=str(e), fallback=self.fallback.method)
            return await self.fallback.extract(text)

        name = parsed.get("name") or None
        title = parsed.get("title") or None
        return OwnerGuess(
            name=name.strip() if isinstance(name, str) else None,
            title=title.strip() if isinstance(title, str) else None,
            method=self.method,
        )

    async def _complete(self, text: str) -> str:
        response = await self.http.post_json(
            self.url,
            {
                "model": self.model,
                "max_tokens": 150,
                "temperature": 0,
                "messages": [
                    {"role": "system", "content": self.SYSTEM_PROMPT},
                    {"role": "user", "content": self.USER_PROMPT.format(text=text)},
                ],
            },
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        data = response.json()
        # Extract text content from OpenAI response
        content = (data.get("choices") or [{}])[0].get("message", {}).get("content")
        if not content:
            raise ProviderError("OpenAI returned no content", status_code=response.status_code)
        return content

    @staticmethod
    def _parse(content: str) -> dict:
        # Models sometimes wrap JSON in a fenced block
        content = re.sub(r"^```(?:json)?\s*|\s*```$", "", content.strip())
        parsed = json.loads(content)
        if not isinstance(parsed, dict):
            raise ValueError("expected a JSON object")
        return parsed


def build_owner_extractor(
    settings: Settings,
    http: HTTPClient,
    guard: ResilienceGuard,
) -> OwnerExtractor:
    """Pick the owner extractor for the configured mode.

    ``auto`` uses AI when an OpenAI key is configured; ``ai`` without a key
    logs a warning and uses regex.
    """
    regex = RegexOwnerExtractor()
    wants_ai = settings.owner_extraction == "ai" or (
        settings.owner_extraction == "auto" and settings.openai_api_key
    )
    if not wants_ai:
        return regex
    if not settings.openai_api_key:
        logger.warning("owner_extraction_ai_unavailable", reason="no openai_api_key")
        return regex
    return OpenAIOwnerExtractor(
        api_key=settings.openai_api_key,
        http=http,
        guard=guard,
        model=settings.openai_model,
        url=settings.openai_url,
        fallback=regex,
    )
