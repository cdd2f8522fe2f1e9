"""Extractors for emails, phones, social links and owner names."""

from leadsleuth.extractors.email import EmailExtractor
from leadsleuth.extractors.links import SocialLinkExtractor
from leadsleuth.extractors.owner import (
    OpenAIOwnerExtractor,
    OwnerExtractor,
    RegexOwnerExtractor,
    build_owner_extractor,
)
from leadsleuth.extractors.phone import PhoneExtractor

__all__ = [
    "EmailExtractor",
    "OpenAIOwnerExtractor",
    "OwnerExtractor",
    "PhoneExtractor",
    "RegexOwnerExtractor",
    "SocialLinkExtractor",
    "build_owner_extractor",
]
