"""Aggregation pipeline for the per-commodity / per-market dashboard views.

The four aggregation endpoints share one flow: fetch raw rows for an entity,
type them, then hand them to the matching assembler. Which queries run and
which assembler is used is selected by AggregationMode.

Fetches listed as "degradable" are wrapped in _safe_fetch: a failing query
is logged and counted as zero rows, so one broken sub-query cannot take down
the whole view.
"""

import logging
from enum import Enum
from typing import Callable, Optional

from node42.config_loader import DashboardConfig
from node42.logic.assembler import (
    assemble_constraints,
    assemble_core_jobs,
    assemble_kano_ranges,
    assemble_product_jobs,
)
from node42.logic.kano import apply_new_learnings
from node42.models import ConstraintsResponse, CoreJobsResponse, KanoRangesResponse, ProductJobsResponse
from node42.records import (
    ConstraintRecord,
    CoreJobRecord,
    ErrorStatementRecord,
    JobMapStepRecord,
    KanoRangeRecord,
    ProductJobRecord,
)

logger = logging.getLogger(__name__)


class AggregationMode(str, Enum):
    CONSTRAINTS = "constraints"
    CORE_JOBS = "core_jobs"
    PRODUCT_JOBS = "product_jobs"
    KANO_RANGES = "kano_ranges"


# Response model per mode; instantiated without arguments it is the empty view
RESPONSE_MODELS = {
    AggregationMode.CONSTRAINTS: ConstraintsResponse,
    AggregationMode.CORE_JOBS: CoreJobsResponse,
    AggregationMode.PRODUCT_JOBS: ProductJobsResponse,
    AggregationMode.KANO_RANGES: KanoRangesResponse,
}


def empty_response(mode: AggregationMode, config: Optional[DashboardConfig] = None):
    """The zero-row view for a mode."""
    if mode == AggregationMode.CORE_JOBS and config is not None:
        return CoreJobsResponse(core_functional_job=config.default_core_functional_job)
    return RESPONSE_MODELS[mode]()


def _safe_fetch(label: str, fetch: Callable[[], list]) -> list:
    """Run one sub-query; on failure log it and return no rows."""
    try:
        return fetch()
    except Exception as e:
        logger.warning(f"Sub-query '{label}' failed, continuing with no rows: {e}")
        return []


def _safe_fetch_value(label: str, fetch: Callable[[], Optional[str]]) -> Optional[str]:
    try:
        return fetch()
    except Exception as e:
        logger.warning(f"Sub-query '{label}' failed, using default: {e}")
        return None


# =============================================================================
# PER-MODE STAGES
# =============================================================================

def _constraints(db, config: DashboardConfig, commodity_id: str) -> ConstraintsResponse:
    rows = _safe_fetch("constraints", lambda: db.get_constraints(commodity_id))
    records = [ConstraintRecord.from_row(r) for r in rows]
    return assemble_constraints(records, config.category_synonyms)


def _product_jobs(db, config: DashboardConfig, commodity_id: str) -> ProductJobsResponse:
    rows = _safe_fetch("product_jobs", lambda: db.get_product_jobs(commodity_id))
    return assemble_product_jobs(ProductJobRecord.from_row(r) for r in rows)


def _core_jobs(db, config: DashboardConfig, market_name: str) -> CoreJobsResponse:
    error_rows = _safe_fetch("error_statements", lambda: db.get_error_statements(market_name))
    job_rows = _safe_fetch("core_jobs", lambda: db.get_core_jobs(market_name))
    step_rows = _safe_fetch("job_map_steps", lambda: db.get_job_map_steps(market_name))
    cfj = _safe_fetch_value("core_functional_job", lambda: db.get_core_functional_job(market_name))

    return assemble_core_jobs(
        error_statements=[ErrorStatementRecord.from_row(r) for r in error_rows],
        core_jobs=[CoreJobRecord.from_row(r) for r in job_rows],
        job_map_steps=[JobMapStepRecord.from_row(r) for r in step_rows],
        core_functional_job=cfj,
        default_core_functional_job=config.default_core_functional_job,
        fallback_steps=config.fallback_steps,
    )


def _kano_ranges(db, config: DashboardConfig, market_name: str,
                 new_learnings: bool = False) -> KanoRangesResponse:
    rows = db.get_kano_ranges(market_name)
    response = assemble_kano_ranges(KanoRangeRecord.from_row(r) for r in rows)
    if new_learnings:
        sim = config.kano
        response.features = apply_new_learnings(
            response.features,
            indices=sim.new_learning_indices,
            limit=sim.new_learning_limit,
            factor=sim.new_learning_factor,
        )
    return response


_STAGES = {
    AggregationMode.CONSTRAINTS: _constraints,
    AggregationMode.CORE_JOBS: _core_jobs,
    AggregationMode.PRODUCT_JOBS: _product_jobs,
    AggregationMode.KANO_RANGES: _kano_ranges,
}


def run_aggregation(mode: AggregationMode, db, config: DashboardConfig, **params):
    """Fetch, type and assemble one aggregation view.

    Args:
        mode: Which view to build.
        db: GraphConnection (or anything exposing the same get_* methods).
        config: Loaded dashboard configuration.
        **params: commodity_id for CONSTRAINTS / PRODUCT_JOBS, market_name for
            CORE_JOBS / KANO_RANGES, and optionally new_learnings for KANO_RANGES.

    Returns:
        The response model for ``mode``.
    """
    stage = _STAGES[AggregationMode(mode)]
    return stage(db, config, **params)
