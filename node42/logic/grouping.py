"""Bucketing and ordering of normalized constraints and job-map steps."""

from dataclasses import dataclass
from typing import Iterable, Optional

from node42.config_loader import FallbackStep
from node42.logic.normalizer import CATEGORY_KEYS, severity_rank
from node42.models import SEVERITIES
from node42.records import JobMapStepRecord


@dataclass
class NormalizedConstraint:
    """A constraint after vocabulary normalization.

    ``source_category`` keeps the graph text (used for ordering and for the
    by-severity view); ``category_key`` is the normalized key.
    """
    name: str
    description: str
    source_category: str
    category_key: str
    severity: str

    @property
    def sensitivity(self) -> str:
        return self.severity.upper()


@dataclass
class OrderedStep:
    order: int
    name: str
    description: str


def sort_constraints(items: Iterable[NormalizedConstraint]) -> list[NormalizedConstraint]:
    """Order by severity rank, then source category, then name (stable)."""
    return sorted(items, key=lambda c: (severity_rank(c.severity), c.source_category, c.name))


def group_by_severity(items: Iterable[NormalizedConstraint]) -> dict[str, list[NormalizedConstraint]]:
    """Severity -> constraints, canonical severities always present and first."""
    groups: dict[str, list[NormalizedConstraint]] = {severity: [] for severity in SEVERITIES}
    for item in items:
        groups.setdefault(item.severity, []).append(item)
    return groups


def group_by_category(items: Iterable[NormalizedConstraint]) -> dict[str, list[NormalizedConstraint]]:
    """Category key -> constraints, the eight canonical keys always present and first."""
    groups: dict[str, list[NormalizedConstraint]] = {key: [] for key in CATEGORY_KEYS}
    for item in items:
        groups.setdefault(item.category_key, []).append(item)
    return groups


def bucket_counts(groups: dict[str, list]) -> dict[str, int]:
    return {key: len(members) for key, members in groups.items()}


def order_job_map_steps(records: Iterable[JobMapStepRecord],
                        fallback: Optional[list[FallbackStep]] = None) -> list[OrderedStep]:
    """Sort steps by step number and renumber them 1..N.

    Duplicate or missing step numbers in the graph do not show up in the
    result; ties keep their query order. With no steps at all, the fallback
    sequence is returned as-is.
    """
    ordered = sorted(records, key=lambda r: r.step_number)
    if ordered:
        return [
            OrderedStep(order=i, name=r.name, description=r.description or "")
            for i, r in enumerate(ordered, start=1)
        ]
    return [
        OrderedStep(order=i, name=step.name, description=step.description)
        for i, step in enumerate(fallback or [], start=1)
    ]
