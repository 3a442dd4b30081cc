"""Vocabulary normalization for constraint severities and categories.

The graph stores severity and category as free text ("Critical", "CRITICAL",
"Rules & Liability", missing, ...). Everything leaving the aggregation layer
uses the closed sets below. All functions are pure and never raise.
"""

import re
from typing import Optional

from node42.models import PRODUCT_JOB_CATEGORIES, SEVERITIES

DEFAULT_SEVERITY = "Medium"
UNKNOWN_SEVERITY_RANK = 99

SEVERITY_ORDER = {severity: rank for rank, severity in enumerate(SEVERITIES, start=1)}

_SEVERITY_LOOKUP = {severity.lower(): severity for severity in SEVERITIES}

# Display label -> canonical key, in tab order
CONSTRAINT_CATEGORIES = {
    "Physics/Energy": "physics_energy",
    "Space/Geometry": "space_geometry",
    "Time/Throughput": "time_throughput",
    "Human Limits": "human_limits",
    "Environment": "environment",
    "Rules & Liability": "rules_liability",
    "Ecosystem Dependencies": "ecosystem_dependencies",
    "Economics": "economics",
}

CATEGORY_KEYS = list(CONSTRAINT_CATEGORIES.values())

_CATEGORY_LABELS = {key: label for label, key in CONSTRAINT_CATEGORIES.items()}
_CATEGORY_BY_LABEL = {label.lower(): key for label, key in CONSTRAINT_CATEGORIES.items()}

MISSING_CATEGORY = "Other"

DEFAULT_PRODUCT_JOB_CATEGORY = "Usage"
_PRODUCT_JOB_LOOKUP = {category.lower(): category for category in PRODUCT_JOB_CATEGORIES}

_NON_WORD_RUN = re.compile(r"[\W_]+")


def normalize_severity(raw: Optional[str]) -> str:
    """Map a free-text severity onto Critical/High/Medium/Low (default Medium)."""
    if not isinstance(raw, str):
        return DEFAULT_SEVERITY
    return _SEVERITY_LOOKUP.get(raw.strip().lower(), DEFAULT_SEVERITY)


def severity_rank(value: Optional[str]) -> int:
    """Sort rank of a severity, most urgent first; unknown values rank 99."""
    if not isinstance(value, str):
        return UNKNOWN_SEVERITY_RANK
    canonical = _SEVERITY_LOOKUP.get(value.strip().lower())
    return SEVERITY_ORDER.get(canonical, UNKNOWN_SEVERITY_RANK)


def derive_category_key(raw: str) -> str:
    """Lowercase and collapse punctuation/whitespace runs into single underscores."""
    return _NON_WORD_RUN.sub("_", raw.lower()).strip("_")


def normalize_category(raw: Optional[str], synonyms: Optional[dict[str, str]] = None,
                       fallback: Optional[str] = None) -> str:
    """Map a free-text constraint category onto a canonical key.

    Resolution order: display label, derived key, synonym table (keyed by
    derived key). When nothing canonical matches, ``fallback`` is returned if
    given, otherwise the derived key itself.
    """
    if not isinstance(raw, str) or not raw.strip():
        raw = MISSING_CATEGORY

    direct = _CATEGORY_BY_LABEL.get(raw.strip().lower())
    if direct:
        return direct

    derived = derive_category_key(raw)
    if derived in _CATEGORY_LABELS:
        return derived

    if synonyms:
        mapped = synonyms.get(derived)
        if mapped in _CATEGORY_LABELS:
            return mapped

    if fallback is not None:
        return fallback
    return derived


def category_label(key: str) -> str:
    """Display label for a canonical category key (other keys pass through)."""
    return _CATEGORY_LABELS.get(key, key)


def normalize_product_job_category(raw: Optional[str]) -> str:
    """Map a product job category onto the five lifecycle categories.

    Missing values default to Usage; unknown values are kept (trimmed) so they
    still get their own bucket.
    """
    if not isinstance(raw, str) or not raw.strip():
        return DEFAULT_PRODUCT_JOB_CATEGORY
    value = raw.strip()
    return _PRODUCT_JOB_LOOKUP.get(value.lower(), value)
