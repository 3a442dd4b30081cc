"""Pydantic schemas for the dashboard API responses.

Fields are snake_case in Python and serialised camelCase on the wire, which
is what the dashboard front end reads. Every response model can be built with
no arguments; that instance is the "empty" shape also used for error bodies.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from node42.config_loader import DEFAULT_CORE_FUNCTIONAL_JOB

SEVERITIES = ["Critical", "High", "Medium", "Low"]

PRODUCT_JOB_CATEGORIES = ["Acquisition", "Preparation", "Usage", "Maintenance", "Disposal"]


class ApiModel(BaseModel):
    """Base schema: snake_case attributes, camelCase JSON."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ========================================
# Commodities, companies, products
# ========================================

class CommodityOption(ApiModel):
    id: str
    name: str
    commodity_id: str


class CommoditiesResponse(ApiModel):
    commodities: list[CommodityOption] = Field(default_factory=list)


class CompanyOption(ApiModel):
    value: str
    label: str


class CompaniesResponse(ApiModel):
    companies: list[CompanyOption] = Field(default_factory=list)


class Product(ApiModel):
    """Product linked to a company; id is the slug of the name."""
    id: str
    name: str
    description: Optional[str] = None
    commodity_id: Optional[str] = None


class ProductsResponse(ApiModel):
    products: list[Product] = Field(default_factory=list)


# ========================================
# Constraints
# ========================================

class SeverityConstraint(ApiModel):
    """Constraint as listed under its severity bucket (source category text)."""
    name: str
    description: str = ""
    category: str = ""


class ConstraintSummary(SeverityConstraint):
    severity: str = "Medium"


class ProductConstraint(ApiModel):
    """Constraint as shown on the restrictions page (category key, upper-case sensitivity)."""
    id: str
    name: str
    description: str = ""
    category: str
    sensitivity: str


class ConstraintsResponse(ApiModel):
    constraints_by_severity: dict[str, list[SeverityConstraint]] = Field(default_factory=dict)
    constraints_by_category: dict[str, list[ProductConstraint]] = Field(default_factory=dict)
    constraints: list[ProductConstraint] = Field(default_factory=list)
    severity_counts: dict[str, int] = Field(default_factory=dict)
    category_counts: dict[str, int] = Field(default_factory=dict)
    category_labels: dict[str, str] = Field(default_factory=dict)
    all_constraints: list[ConstraintSummary] = Field(default_factory=list)
    total_constraints: int = 0
    severities: list[str] = Field(default_factory=lambda: list(SEVERITIES))


# ========================================
# Core jobs / job map
# ========================================

class StepErrorStatement(ApiModel):
    statement: str
    category: str = "General"
    impact: str = ""
    kpi_name: str = ""
    kpi_unit: str = ""
    related_core_jobs: list[str] = Field(default_factory=list)


class JobMapStep(ApiModel):
    order: int
    name: str
    description: str = ""
    error_statements: list[StepErrorStatement] = Field(default_factory=list)
    needs_count: int = 0


class CoreJobErrorStatement(ApiModel):
    statement: str
    category: str = "General"
    kpi_name: str = ""
    kpi_unit: str = ""


class CoreJob(ApiModel):
    name: str
    statement: str = ""
    description: str = ""
    error_statements: list[CoreJobErrorStatement] = Field(default_factory=list)


class CoreJobsResponse(ApiModel):
    steps: list[JobMapStep] = Field(default_factory=list)
    core_jobs: dict[str, list[CoreJob]] = Field(default_factory=dict)
    core_functional_job: str = DEFAULT_CORE_FUNCTIONAL_JOB
    total_core_jobs: int = 0
    total_error_statements: int = 0
    total_job_map_steps: int = 0


# ========================================
# Product jobs
# ========================================

class ProductJob(ApiModel):
    name: str
    statement: str = ""
    description: str = ""
    level: str = ""
    use_context: str = ""
    user_group: str = ""
    frequency: str = ""


class ProductJobsResponse(ApiModel):
    jobs_by_category: dict[str, list[ProductJob]] = Field(default_factory=dict)
    category_counts: dict[str, int] = Field(default_factory=dict)
    total_jobs: int = 0
    categories: list[str] = Field(default_factory=lambda: list(PRODUCT_JOB_CATEGORIES))


# ========================================
# Kano ranges
# ========================================

class KanoFeature(ApiModel):
    """A BasicFact with its Kano classification ranges for one market."""
    id: str
    name: str
    unit_of_measure: str = ""
    reverse_range: str = "—"
    must_be_range: str = "—"
    one_dimensional_range: str = "—"
    attractive_range: str = "—"
    classified_at: Optional[str] = None
    # Simulated "changed since last session" highlight
    is_new_learning: bool = False
    updated_column: Optional[str] = None
    previous_value: Optional[str] = None


class KanoRangesResponse(ApiModel):
    features: list[KanoFeature] = Field(default_factory=list)
    count: int = 0


# ========================================
# Markets
# ========================================

class MarketOption(ApiModel):
    id: str
    name: str
    cpc_code: Optional[str] = None
    has_core_jobs: bool = False
    core_job_count: int = 0


class MarketsResponse(ApiModel):
    markets: list[MarketOption] = Field(default_factory=list)


class MarketMetrics(ApiModel):
    tam: Optional[str] = None
    cagr: Optional[str] = None


class MarketCriteria(ApiModel):
    id: int
    title: str
    severity: str
    description: str
    sources: Optional[str] = None


class Market(ApiModel):
    id: str
    name: str
    type: str
    core_job_to_be_done: str
    description: Optional[str] = None
    metrics: MarketMetrics = Field(default_factory=MarketMetrics)
    criteria: list[MarketCriteria] = Field(default_factory=list)
    cpc_code: Optional[str] = None


class MarketResponse(ApiModel):
    market: Optional[Market] = None


# ========================================
# UNSPSC hierarchy
# ========================================

class UnspscClassOption(ApiModel):
    value: str
    label: str
    class_id: str = ""


class UnspscClass(UnspscClassOption):
    family_name: str = "Unknown Family"
    family_id: str = ""
    segment_name: str = "Unknown Segment"
    segment_id: str = ""


class UnspscFamilyGroup(ApiModel):
    family_name: str
    family_id: str
    classes: list[UnspscClassOption] = Field(default_factory=list)


class UnspscSegmentGroup(ApiModel):
    segment_name: str
    segment_id: str
    families: dict[str, UnspscFamilyGroup] = Field(default_factory=dict)


class UnspscClassesResponse(ApiModel):
    classes: list[UnspscClass] = Field(default_factory=list)
    grouped: dict[str, UnspscSegmentGroup] = Field(default_factory=dict)


class UnspscCommodityOption(ApiModel):
    value: str
    label: str
    commodity_id: str = ""


class UnspscCommoditiesResponse(ApiModel):
    commodities: list[UnspscCommodityOption] = Field(default_factory=list)


# ========================================
# Customers
# ========================================

class Customer(ApiModel):
    id: str
    name: str
    insight_level: str
    insight_count: int
    last_update: str
    total_updates: int
    new_learnings: int
    confirmed_assumptions: str
    latest_insight: str


class CustomersResponse(ApiModel):
    customers: list[Customer] = Field(default_factory=list)
