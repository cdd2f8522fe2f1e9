"""Business contact enrichment: websites, email patterns and LinkedIn."""

__version__ = "0.1.0"
