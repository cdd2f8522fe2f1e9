"""Enrichment source adapters."""

from leadsleuth.sources.base import BaseSourceAdapter, SourceConfig
from leadsleuth.sources.email_discovery import EmailDiscoverer, EmailPatternGenerator
from leadsleuth.sources.linkedin import LinkedInProspector, is_decision_maker
from leadsleuth.sources.search_engines import BingSearch, GoogleSearch, SearchHit
from leadsleuth.sources.website import WebsiteScraper

__all__ = [
    "BaseSourceAdapter",
    "BingSearch",
    "EmailDiscoverer",
    "EmailPatternGenerator",
    "GoogleSearch",
    "LinkedInProspector",
    "SearchHit",
    "SourceConfig",
    "WebsiteScraper",
    "is_decision_maker",
]
