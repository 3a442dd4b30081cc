"""Typed raw records for graph query rows, plus field coercion helpers.

Every Cypher query in queries.py has one dataclass here. Rows come back from
the driver as dicts with nullable fields and, depending on how a property was
written, integers as plain ints, floats, numeric strings, or the
``{"low": ..., "high": ...}`` shape the JavaScript driver serialises Neo4j
integers to. All of that is absorbed by the ``coerce_*`` helpers so the
aggregation code only ever sees plain Python values.

Usage:
    rows = db.get_constraints(commodity_id)          # list[dict]
    records = [ConstraintRecord.from_row(r) for r in rows]
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional


# =============================================================================
# COERCION HELPERS
# =============================================================================

def _unwrap_value(val):
    """Unbox vendor integer wrappers.

    Neo4j integers serialised by other drivers arrive as {"low", "high"} dicts;
    driver-side Integer objects expose the same pair as attributes.
    """
    if isinstance(val, dict) and "low" in val:
        try:
            low = int(val.get("low") or 0)
            high = int(val.get("high") or 0)
        except (TypeError, ValueError, OverflowError):
            return None
        return (high << 32) + (low & 0xFFFFFFFF)
    if hasattr(val, "low") and hasattr(val, "high") and not isinstance(val, (int, float, str)):
        return _unwrap_value({"low": val.low, "high": val.high})
    return val


def coerce_number(value: Any, default: Optional[float] = 0.0) -> Optional[float]:
    """Coerce a possibly-boxed, possibly-null value to a finite float.

    None, booleans, NaN, infinities and anything non-numeric become ``default``.
    """
    value = _unwrap_value(value)
    if value is None or isinstance(value, bool):
        return default
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            number = float(value.strip())
        else:
            return default
    except (ValueError, OverflowError):
        return default
    return number if math.isfinite(number) else default


def coerce_int(value: Any, default: int = 0) -> int:
    """Coerce a possibly-boxed, possibly-null value to a plain int.

    Fractions are truncated; anything coerce_number rejects becomes ``default``.
    """
    value = _unwrap_value(value)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    number = coerce_number(value, default=None)
    if number is None:
        return default
    return int(number)


def coerce_str(value: Any, default: str = "") -> str:
    """Coerce a nullable property to a string, unboxing integers first."""
    value = _unwrap_value(value)
    if value is None:
        return default
    return str(value)


def coerce_optional_str(value: Any) -> Optional[str]:
    """Like coerce_str but keeps null (and empty strings) as None."""
    value = _unwrap_value(value)
    if value is None or value == "":
        return None
    return str(value)


def coerce_str_list(value: Any) -> Optional[list[str]]:
    """Return the string entries of a list property, or None if it is not a list."""
    if not isinstance(value, (list, tuple)):
        return None
    return [v for v in value if isinstance(v, str)]


def record_to_dict(record) -> dict:
    """Convert a driver Record (or anything dict-like) to a plain dict."""
    if record is None:
        return {}
    if isinstance(record, dict):
        return record
    if hasattr(record, "data"):
        return record.data()
    return dict(record)


# =============================================================================
# RAW RECORDS
# =============================================================================

@dataclass
class CommodityRecord:
    commodity_id: str
    name: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "CommodityRecord":
        return cls(
            commodity_id=coerce_str(row.get("commodityId")),
            name=coerce_optional_str(row.get("name")),
        )


@dataclass
class CompanyRecord:
    name: str

    @classmethod
    def from_row(cls, row: dict) -> "CompanyRecord":
        return cls(name=coerce_str(row.get("name")))


@dataclass
class ConstraintRecord:
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    impact_severity: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "ConstraintRecord":
        return cls(
            name=coerce_str(row.get("name")),
            description=coerce_optional_str(row.get("description")),
            category=coerce_optional_str(row.get("category")),
            impact_severity=coerce_optional_str(row.get("impact_severity")),
        )


@dataclass
class ErrorStatementRecord:
    statement: str
    category: Optional[str] = None
    impact: Optional[str] = None
    kpi_name: Optional[str] = None
    kpi_unit: Optional[str] = None
    # None means the property was missing or not a list
    related_job_map_steps: Optional[list[str]] = None
    related_core_jobs: Optional[list[str]] = None

    @classmethod
    def from_row(cls, row: dict) -> "ErrorStatementRecord":
        return cls(
            statement=coerce_str(row.get("statement")),
            category=coerce_optional_str(row.get("category")),
            impact=coerce_optional_str(row.get("impact")),
            kpi_name=coerce_optional_str(row.get("kpi_name")),
            kpi_unit=coerce_optional_str(row.get("kpi_unit")),
            related_job_map_steps=coerce_str_list(row.get("related_job_map_steps")),
            related_core_jobs=coerce_str_list(row.get("related_core_jobs")),
        )


@dataclass
class CoreJobRecord:
    name: str
    statement: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "CoreJobRecord":
        return cls(
            name=coerce_str(row.get("name")),
            statement=coerce_optional_str(row.get("statement")),
            category=coerce_optional_str(row.get("category")),
            description=coerce_optional_str(row.get("description")),
        )


@dataclass
class JobMapStepRecord:
    name: str
    description: Optional[str] = None
    step_number: float = 0

    @classmethod
    def from_row(cls, row: dict) -> "JobMapStepRecord":
        return cls(
            name=coerce_str(row.get("name")),
            description=coerce_optional_str(row.get("description")),
            step_number=coerce_number(row.get("step_number")),
        )


@dataclass
class ProductJobRecord:
    name: str
    statement: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    level: str = ""
    use_context: Optional[str] = None
    user_group: Optional[str] = None
    frequency: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "ProductJobRecord":
        return cls(
            name=coerce_str(row.get("name")),
            statement=coerce_optional_str(row.get("statement")),
            description=coerce_optional_str(row.get("description")),
            category=coerce_optional_str(row.get("category")),
            level=coerce_str(row.get("level")),
            use_context=coerce_optional_str(row.get("use_context")),
            user_group=coerce_optional_str(row.get("user_group")),
            frequency=coerce_optional_str(row.get("frequency")),
        )


@dataclass
class KanoRangeRecord:
    fact_name: str
    unit_of_measure: Optional[str] = None
    reverse_range: Optional[str] = None
    must_be_range: Optional[str] = None
    one_dimensional_range: Optional[str] = None
    attractive_range: Optional[str] = None
    classified_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "KanoRangeRecord":
        return cls(
            fact_name=coerce_str(row.get("factName")),
            unit_of_measure=coerce_optional_str(row.get("unitOfMeasure")),
            reverse_range=coerce_optional_str(row.get("reverseRange")),
            must_be_range=coerce_optional_str(row.get("mustBeRange")),
            one_dimensional_range=coerce_optional_str(row.get("oneDimensionalRange")),
            attractive_range=coerce_optional_str(row.get("attractiveRange")),
            classified_at=coerce_optional_str(row.get("classifiedAt")),
        )


@dataclass
class MarketRecord:
    id: str
    name: Optional[str] = None
    cpc_code: Optional[str] = None
    description: Optional[str] = None
    core_job_count: int = 0

    @classmethod
    def from_row(cls, row: dict) -> "MarketRecord":
        return cls(
            id=coerce_str(row.get("id")),
            name=coerce_optional_str(row.get("name")),
            cpc_code=coerce_optional_str(row.get("cpcCode")),
            description=coerce_optional_str(row.get("description")),
            core_job_count=coerce_int(row.get("coreJobCount")),
        )


# Criteria fields on a Market node, in display order:
# (criterion id, title, rating property, analysis property, sources property)
MARKET_CRITERIA_FIELDS = [
    (1, "Core Functional Job Performance",
     "cfj_performance_rating", "cfj_performance_reasoning", "cfj_performance_sources"),
    (2, "Performance Exceeds Customer Needs",
     "performance_exceeds_needs_rating", "performance_exceeds_needs_analysis",
     "performance_exceeds_needs_sources"),
    (3, "Customers Less Willing to pay for Performance Improvements",
     "willingness_to_pay_declining_rating", "willingness_to_pay_declining_analysis",
     "willingness_to_pay_declining_sources"),
    (4, "Shifting Customer Purchasing Criteria",
     "shifting_purchase_criteria_rating", "shifting_purchase_criteria_analysis",
     "shifting_purchase_criteria_sources"),
    (5, "Incumbents Overserving the Market",
     "incumbents_overserving_rating", "incumbents_overserving_analysis",
     "incumbents_overserving_sources"),
    (6, "New Market Segments Emerging",
     "new_segments_emerging_rating", "new_segments_emerging_analysis",
     "new_segments_emerging_sources"),
    (7, "Decreasing Differentiation",
     "decreasing_differentiation_rating", "decreasing_differentiation_analysis",
     "decreasing_differentiation_sources"),
]


@dataclass
class MarketDetailRecord:
    name: str
    description: Optional[str] = None
    market_type: Optional[str] = None
    core_functional_job: Optional[str] = None
    cpc_code: Optional[str] = None
    # property name -> value for every *_rating / *_analysis / *_reasoning / *_sources field
    criteria_fields: dict[str, Optional[str]] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: dict) -> "MarketDetailRecord":
        criteria_fields = {}
        for _, _, rating_key, analysis_key, sources_key in MARKET_CRITERIA_FIELDS:
            for key in (rating_key, analysis_key, sources_key):
                criteria_fields[key] = coerce_optional_str(row.get(key))
        return cls(
            name=coerce_str(row.get("name")),
            description=coerce_optional_str(row.get("description")),
            market_type=coerce_optional_str(row.get("market_type")),
            core_functional_job=coerce_optional_str(row.get("core_functional_job")),
            cpc_code=coerce_optional_str(row.get("cpc_code")),
            criteria_fields=criteria_fields,
        )


@dataclass
class ProductRecord:
    name: str
    company: Optional[str] = None
    description: Optional[str] = None
    commodity_id: Optional[str] = None
    commodity_title: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "ProductRecord":
        return cls(
            name=coerce_str(row.get("name")),
            company=coerce_optional_str(row.get("company")),
            description=coerce_optional_str(row.get("description")),
            commodity_id=coerce_optional_str(row.get("commodityId")),
            commodity_title=coerce_optional_str(row.get("commodityTitle")),
        )


@dataclass
class UnspscClassRecord:
    class_name: Optional[str] = None
    class_id: Optional[str] = None
    family_name: Optional[str] = None
    family_id: Optional[str] = None
    segment_name: Optional[str] = None
    segment_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "UnspscClassRecord":
        return cls(
            class_name=coerce_optional_str(row.get("className")),
            class_id=coerce_optional_str(row.get("classId")),
            family_name=coerce_optional_str(row.get("familyName")),
            family_id=coerce_optional_str(row.get("familyId")),
            segment_name=coerce_optional_str(row.get("segmentName")),
            segment_id=coerce_optional_str(row.get("segmentId")),
        )


@dataclass
class UnspscCommodityRecord:
    name: Optional[str] = None
    commodity_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "UnspscCommodityRecord":
        return cls(
            name=coerce_optional_str(row.get("name")),
            commodity_id=coerce_optional_str(row.get("commodityId")),
        )
