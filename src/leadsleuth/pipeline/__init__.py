"""Enrichment pipeline: source fan-out, merge and batch runs."""

from leadsleuth.pipeline.aggregator import Aggregator, build_aggregator
from leadsleuth.pipeline.merge import SOURCE_WEIGHTS, ResultMerger

__all__ = ["SOURCE_WEIGHTS", "Aggregator", "ResultMerger", "build_aggregator"]
