"""Aggregation logic: normalization, grouping, matching and view assembly."""

from .normalizer import normalize_category, normalize_severity, severity_rank
from .matcher import names_related, related_items
from .kano import apply_new_learnings
from .pipeline import AggregationMode, empty_response, run_aggregation

__all__ = [
    'normalize_category',
    'normalize_severity',
    'severity_rank',
    'names_related',
    'related_items',
    'apply_new_learnings',
    'AggregationMode',
    'empty_response',
    'run_aggregation',
]
