"""View assembly: raw records -> endpoint response models.

Each ``assemble_*`` function is pure: it takes typed records (already fetched)
plus configuration values and returns the response model for one endpoint.
"""

import re
from datetime import date
from typing import Iterable, Optional

from node42.config_loader import CustomerSpec, FallbackStep
from node42.logic.grouping import (
    NormalizedConstraint,
    bucket_counts,
    group_by_category,
    group_by_severity,
    order_job_map_steps,
    sort_constraints,
)
from node42.logic.matcher import errors_for_core_job, errors_for_step
from node42.logic.normalizer import (
    category_label,
    normalize_category,
    normalize_product_job_category,
    normalize_severity,
)
from node42.models import (
    PRODUCT_JOB_CATEGORIES,
    CommoditiesResponse,
    CommodityOption,
    CompaniesResponse,
    CompanyOption,
    ConstraintsResponse,
    ConstraintSummary,
    CoreJob,
    CoreJobErrorStatement,
    CoreJobsResponse,
    Customer,
    CustomersResponse,
    JobMapStep,
    KanoFeature,
    KanoRangesResponse,
    Market,
    MarketCriteria,
    MarketOption,
    MarketResponse,
    MarketsResponse,
    Product,
    ProductConstraint,
    ProductJob,
    ProductJobsResponse,
    ProductsResponse,
    SeverityConstraint,
    StepErrorStatement,
    UnspscClass,
    UnspscClassesResponse,
    UnspscClassOption,
    UnspscCommoditiesResponse,
    UnspscCommodityOption,
    UnspscFamilyGroup,
    UnspscSegmentGroup,
)
from node42.records import (
    MARKET_CRITERIA_FIELDS,
    CommodityRecord,
    CompanyRecord,
    ConstraintRecord,
    CoreJobRecord,
    ErrorStatementRecord,
    JobMapStepRecord,
    KanoRangeRecord,
    MarketDetailRecord,
    MarketRecord,
    ProductJobRecord,
    ProductRecord,
    UnspscClassRecord,
    UnspscCommodityRecord,
)

DEFAULT_JOB_CATEGORY = "General"
NO_ANALYSIS = "No analysis available."
NO_JOB_DEFINITION = "No job definition available."
UNKNOWN_MARKET = "Unknown Market"

MARKET_TYPES = {
    "overserved": "OVERSERVED",
    "partially overserved": "PARTIALLY_OVERSERVED",
    "partially_overserved": "PARTIALLY_OVERSERVED",
    "underserved": "UNDERSERVED",
    "consumption": "CONSUMPTION",
    "new market": "NEW_MARKET",
    "new_market": "NEW_MARKET",
    "growth": "GROWTH",
}
DEFAULT_MARKET_TYPE = "PARTIALLY_OVERSERVED"

_WHITESPACE_RUN = re.compile(r"\s+")


def slugify(text: str) -> str:
    """URL slug: lowercase, drop punctuation, spaces to hyphens."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"--+", "-", slug)
    return slug.strip()


def _constraint_id(category: str, name: str) -> str:
    return _WHITESPACE_RUN.sub("-", f"{category}-{name}").lower()


# =============================================================================
# CONSTRAINTS
# =============================================================================

def normalize_constraints(records: Iterable[ConstraintRecord],
                          synonyms: Optional[dict[str, str]] = None) -> list[NormalizedConstraint]:
    return [
        NormalizedConstraint(
            name=r.name,
            description=r.description or "",
            source_category=r.category or "",
            category_key=normalize_category(r.category, synonyms),
            severity=normalize_severity(r.impact_severity),
        )
        for r in records
    ]


def _product_constraint(item: NormalizedConstraint) -> ProductConstraint:
    return ProductConstraint(
        id=_constraint_id(item.category_key, item.name),
        name=item.name,
        description=item.description,
        category=item.category_key,
        sensitivity=item.sensitivity,
    )


def assemble_constraints(records: Iterable[ConstraintRecord],
                         synonyms: Optional[dict[str, str]] = None) -> ConstraintsResponse:
    ordered = sort_constraints(normalize_constraints(records, synonyms))
    by_severity = group_by_severity(ordered)
    by_category = group_by_category(ordered)

    return ConstraintsResponse(
        constraints_by_severity={
            severity: [
                SeverityConstraint(name=c.name, description=c.description, category=c.source_category)
                for c in members
            ]
            for severity, members in by_severity.items()
        },
        constraints_by_category={
            key: [_product_constraint(c) for c in members]
            for key, members in by_category.items()
        },
        constraints=[_product_constraint(c) for c in ordered],
        severity_counts=bucket_counts(by_severity),
        category_counts=bucket_counts(by_category),
        category_labels={key: category_label(key) for key in by_category},
        all_constraints=[
            ConstraintSummary(name=c.name, description=c.description,
                              category=c.source_category, severity=c.severity)
            for c in ordered
        ],
        total_constraints=len(ordered),
    )


# =============================================================================
# CORE JOBS
# =============================================================================

def _step_error(es: ErrorStatementRecord) -> StepErrorStatement:
    return StepErrorStatement(
        statement=es.statement,
        category=es.category or DEFAULT_JOB_CATEGORY,
        impact=es.impact or "",
        kpi_name=es.kpi_name or "",
        kpi_unit=es.kpi_unit or "",
        related_core_jobs=es.related_core_jobs or [],
    )


def _core_job_error(es: ErrorStatementRecord) -> CoreJobErrorStatement:
    return CoreJobErrorStatement(
        statement=es.statement,
        category=es.category or DEFAULT_JOB_CATEGORY,
        kpi_name=es.kpi_name or "",
        kpi_unit=es.kpi_unit or "",
    )


def assemble_core_jobs(error_statements: list[ErrorStatementRecord],
                       core_jobs: list[CoreJobRecord],
                       job_map_steps: list[JobMapStepRecord],
                       core_functional_job: Optional[str],
                       default_core_functional_job: str,
                       fallback_steps: Optional[list[FallbackStep]] = None) -> CoreJobsResponse:
    steps = []
    for step in order_job_map_steps(job_map_steps, fallback_steps):
        matched = errors_for_step(step.name, error_statements)
        steps.append(JobMapStep(
            order=step.order,
            name=step.name,
            description=step.description,
            error_statements=[_step_error(es) for es in matched],
            needs_count=len(matched),
        ))

    jobs_by_category: dict[str, list[CoreJob]] = {}
    for job in core_jobs:
        category = job.category or DEFAULT_JOB_CATEGORY
        matched = errors_for_core_job(job.name, error_statements)
        jobs_by_category.setdefault(category, []).append(CoreJob(
            name=job.name,
            statement=job.statement or "",
            description=job.description or "",
            error_statements=[_core_job_error(es) for es in matched],
        ))

    return CoreJobsResponse(
        steps=steps,
        core_jobs=jobs_by_category,
        core_functional_job=core_functional_job or default_core_functional_job,
        total_core_jobs=len(core_jobs),
        total_error_statements=len(error_statements),
        total_job_map_steps=len(job_map_steps),
    )


# =============================================================================
# PRODUCT JOBS
# =============================================================================

def assemble_product_jobs(records: Iterable[ProductJobRecord]) -> ProductJobsResponse:
    jobs_by_category: dict[str, list[ProductJob]] = {category: [] for category in PRODUCT_JOB_CATEGORIES}
    total = 0
    for job in records:
        total += 1
        category = normalize_product_job_category(job.category)
        jobs_by_category.setdefault(category, []).append(ProductJob(
            name=job.name,
            statement=job.statement or "",
            description=job.description or "",
            level=job.level,
            use_context=job.use_context or "",
            user_group=job.user_group or "",
            frequency=job.frequency or "",
        ))

    return ProductJobsResponse(
        jobs_by_category=jobs_by_category,
        category_counts={category: len(jobs_by_category[category]) for category in PRODUCT_JOB_CATEGORIES},
        total_jobs=total,
    )


# =============================================================================
# KANO RANGES
# =============================================================================

def assemble_kano_ranges(records: Iterable[KanoRangeRecord]) -> KanoRangesResponse:
    features = [
        KanoFeature(
            id=f"feature-{index}",
            name=r.fact_name,
            unit_of_measure=r.unit_of_measure or "",
            reverse_range=r.reverse_range or "—",
            must_be_range=r.must_be_range or "—",
            one_dimensional_range=r.one_dimensional_range or "—",
            attractive_range=r.attractive_range or "—",
            classified_at=r.classified_at,
        )
        for index, r in enumerate(records)
    ]
    return KanoRangesResponse(features=features, count=len(features))


# =============================================================================
# MARKETS
# =============================================================================

def assemble_markets(records: Iterable[MarketRecord]) -> MarketsResponse:
    markets = [
        MarketOption(
            id=r.id,
            name=r.name or UNKNOWN_MARKET,
            cpc_code=r.cpc_code,
            has_core_jobs=r.core_job_count > 0,
            core_job_count=r.core_job_count,
        )
        for r in records
    ]
    markets.sort(key=lambda m: (-m.core_job_count, m.name))
    return MarketsResponse(markets=markets)


def parse_rating(rating: str) -> str:
    """Criteria rating -> HIGH / MEDIUM / LOW (anything else is LOW)."""
    normalized = rating.strip().upper()
    if normalized in ("HIGH", "MEDIUM"):
        return normalized
    return "LOW"


def assemble_market_detail(record: MarketDetailRecord) -> MarketResponse:
    market_type = DEFAULT_MARKET_TYPE
    if record.market_type:
        market_type = MARKET_TYPES.get(record.market_type.lower(), DEFAULT_MARKET_TYPE)

    criteria = []
    for criterion_id, title, rating_key, analysis_key, sources_key in MARKET_CRITERIA_FIELDS:
        rating = record.criteria_fields.get(rating_key)
        if not rating:
            continue
        criteria.append(MarketCriteria(
            id=criterion_id,
            title=title,
            severity=parse_rating(rating),
            description=record.criteria_fields.get(analysis_key) or NO_ANALYSIS,
            sources=record.criteria_fields.get(sources_key),
        ))

    return MarketResponse(market=Market(
        id=slugify(record.name),
        name=record.name,
        type=market_type,
        core_job_to_be_done=record.core_functional_job or record.description or NO_JOB_DEFINITION,
        description=record.description,
        criteria=criteria,
        cpc_code=record.cpc_code,
    ))


# =============================================================================
# COMMODITIES / COMPANIES / PRODUCTS / CUSTOMERS
# =============================================================================

def assemble_commodities(records: Iterable[CommodityRecord],
                         allowed_ids: Optional[set[str]] = None) -> CommoditiesResponse:
    commodities = [
        CommodityOption(
            id=r.commodity_id,
            name=r.name or f"Commodity {r.commodity_id}",
            commodity_id=r.commodity_id,
        )
        for r in records
        if allowed_ids is None or r.commodity_id in allowed_ids
    ]
    return CommoditiesResponse(commodities=commodities)


def assemble_companies(records: Iterable[CompanyRecord]) -> CompaniesResponse:
    return CompaniesResponse(companies=[CompanyOption(value=r.name, label=r.name) for r in records])


def assemble_products(records: Iterable[ProductRecord]) -> ProductsResponse:
    return ProductsResponse(products=[
        Product(
            id=slugify(r.name),
            name=r.name,
            description=r.description or r.commodity_title,
            commodity_id=r.commodity_id,
        )
        for r in records
    ])


def format_update_date(day: date) -> str:
    """German short date without zero padding, e.g. 5.3.2026."""
    return f"{day.day}.{day.month}.{day.year}"


def assemble_customers(customers: Iterable[CustomerSpec], today: Optional[date] = None) -> CustomersResponse:
    last_update = format_update_date(today or date.today())
    return CustomersResponse(customers=[
        Customer(
            id=c.id,
            name=c.name,
            insight_level=c.insight_level,
            insight_count=c.insight_count,
            last_update=last_update,
            total_updates=c.total_updates,
            new_learnings=c.new_learnings,
            confirmed_assumptions=c.confirmed_assumptions,
            latest_insight=c.latest_insight,
        )
        for c in customers
    ])


# =============================================================================
# UNSPSC HIERARCHY
# =============================================================================

def assemble_unspsc_classes(records: Iterable[UnspscClassRecord]) -> UnspscClassesResponse:
    classes = [
        UnspscClass(
            value=r.class_name or "",
            label=r.class_name or "",
            class_id=r.class_id or "",
            family_name=r.family_name or "Unknown Family",
            family_id=r.family_id or "",
            segment_name=r.segment_name or "Unknown Segment",
            segment_id=r.segment_id or "",
        )
        for r in records
    ]

    grouped: dict[str, UnspscSegmentGroup] = {}
    for cls in classes:
        seg_key = cls.segment_id or cls.segment_name
        fam_key = cls.family_id or cls.family_name
        segment = grouped.setdefault(seg_key, UnspscSegmentGroup(
            segment_name=cls.segment_name, segment_id=cls.segment_id,
        ))
        family = segment.families.setdefault(fam_key, UnspscFamilyGroup(
            family_name=cls.family_name, family_id=cls.family_id,
        ))
        family.classes.append(UnspscClassOption(value=cls.value, label=cls.label, class_id=cls.class_id))

    return UnspscClassesResponse(classes=classes, grouped=grouped)


def assemble_unspsc_commodities(records: Iterable[UnspscCommodityRecord]) -> UnspscCommoditiesResponse:
    return UnspscCommoditiesResponse(commodities=[
        UnspscCommodityOption(value=r.name, label=r.name, commodity_id=r.commodity_id or "")
        for r in records
        if r.name
    ])
