"""Shared fixtures for the node42 test suite.

Loads the REAL packaged config.yaml (pins actual config values).
Provides a mock GraphConnection whose get_* methods return raw rows shaped
exactly like the driver output, including nulls and boxed integers.
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from node42.config_loader import load_dashboard_config


# =============================================================================
# CONFIG FIXTURES
# =============================================================================

@pytest.fixture
def config():
    """Load real DashboardConfig from the packaged config.yaml (not mocked)."""
    return load_dashboard_config()


# =============================================================================
# RAW ROW FIXTURES
# =============================================================================

CONSTRAINT_ROWS = [
    {"name": "Cooling load", "description": "Max heat dissipation", "category": "Physics/Energy",
     "impact_severity": "High"},
    {"name": "Food contact", "description": "EU 1935/2004", "category": "Rules & Liability",
     "impact_severity": "Critical"},
    {"name": "Line footprint", "description": None, "category": "Space/Geometry",
     "impact_severity": "Medium"},
]

ERROR_STATEMENT_ROWS = [
    {"statement": "Minimize time to locate the correct cup size", "category": "Speed",
     "impact": "High", "kpi_name": "Search time", "kpi_unit": "s",
     "related_job_map_steps": ["Locate"], "related_core_jobs": ["Fill cups"]},
    {"statement": "Minimize spillage during filling", "category": None, "impact": None,
     "kpi_name": None, "kpi_unit": None,
     "related_job_map_steps": ["Execute filling"], "related_core_jobs": None},
]

CORE_JOB_ROWS = [
    {"name": "Fill cups", "statement": "Fill cups to the target volume", "category": "Main",
     "description": None},
    {"name": "Seal lids", "statement": None, "category": None, "description": "Heat sealing"},
]

JOB_MAP_STEP_ROWS = [
    {"name": "Execute filling", "description": "Run the filler", "step_number": {"low": 5, "high": 0}},
    {"name": "Locate", "description": None, "step_number": 2},
    {"name": "Define", "description": "Set volume", "step_number": "1"},
]

PRODUCT_JOB_ROWS = [
    {"name": "Order cups", "statement": "Order the right cups", "description": None,
     "category": "acquisition", "level": None, "use_context": "Purchasing", "user_group": None,
     "frequency": "Monthly"},
    {"name": "Clean nozzles", "statement": None, "description": None, "category": "Maintenance",
     "level": {"low": 2, "high": 0}, "use_context": None, "user_group": "Operators", "frequency": None},
    {"name": "Run line", "statement": None, "description": None, "category": None,
     "level": "Core", "use_context": None, "user_group": None, "frequency": None},
]

KANO_ROWS = [
    {"factName": f"Fact {i:02d}", "unitOfMeasure": "mm", "reverseRange": f"< {i}",
     "mustBeRange": f"{i}-{i + 10}", "oneDimensionalRange": None, "attractiveRange": f"> {i + 20}",
     "classifiedAt": "2025-01-10"}
    for i in range(1, 8)
]


def _make_mock_db():
    """Create a mock of GraphConnection with realistic raw row shapes."""
    mock_db = MagicMock()
    mock_db.verify_connection.return_value = True

    mock_db.get_commodities.return_value = [
        {"commodityId": "23181501", "name": "Cup filling machines"},
        {"commodityId": "23181502", "name": None},
        {"commodityId": "99999999", "name": "Other commodity"},
    ]
    mock_db.get_companies.return_value = [{"name": "Acme"}, {"name": "Bechtel"}]
    mock_db.get_products.return_value = [
        {"name": "FillMaster 3000!", "company": "Acme", "description": None,
         "commodityId": "23181501", "commodityTitle": "Cup filling machines"},
    ]

    mock_db.get_constraints.return_value = list(CONSTRAINT_ROWS)
    mock_db.get_product_jobs.return_value = list(PRODUCT_JOB_ROWS)

    mock_db.get_error_statements.return_value = list(ERROR_STATEMENT_ROWS)
    mock_db.get_core_jobs.return_value = list(CORE_JOB_ROWS)
    mock_db.get_job_map_steps.return_value = list(JOB_MAP_STEP_ROWS)
    mock_db.get_core_functional_job.return_value = "Fill yogurt cups hygienically"
    mock_db.get_kano_ranges.return_value = list(KANO_ROWS)

    mock_db.get_markets.return_value = [
        {"id": "Bottling", "name": "Bottling", "cpcCode": "4422", "description": None, "coreJobCount": 3},
        {"id": "Yogurt Cup Filling", "name": "Yogurt Cup Filling", "cpcCode": None,
         "description": None, "coreJobCount": {"low": 7, "high": 0}},
        {"id": "Aseptic", "name": "Aseptic", "cpcCode": None, "description": None, "coreJobCount": 3},
        {"id": "Empty", "name": None, "cpcCode": None, "description": None, "coreJobCount": None},
    ]
    mock_db.find_market.return_value = {
        "name": "Yogurt Cup Filling",
        "description": "Filling of yogurt cups",
        "market_type": "Underserved",
        "core_functional_job": None,
        "cpc_code": "2229",
        "cfj_performance_rating": "high",
        "cfj_performance_reasoning": "Fillers are accurate",
        "cfj_performance_sources": "Interviews",
        "new_segments_emerging_rating": "unclear",
    }

    mock_db.get_unspsc_classes.return_value = [
        {"className": "Filling machinery", "classId": "231815", "familyName": "Packaging machinery",
         "familyId": "2318", "segmentName": "Industrial equipment", "segmentId": "23"},
        {"className": "Capping machinery", "classId": "231816", "familyName": "Packaging machinery",
         "familyId": "2318", "segmentName": "Industrial equipment", "segmentId": "23"},
        {"className": "Lab glassware", "classId": "411217", "familyName": None,
         "familyId": None, "segmentName": None, "segmentId": None},
    ]
    mock_db.get_unspsc_commodities.return_value = [
        {"name": "Cup fillers", "commodityId": "23181501"},
        {"name": None, "commodityId": "23181599"},
    ]
    return mock_db


@pytest.fixture
def mock_db():
    """Mock GraphConnection. Each method returns realistic raw rows."""
    return _make_mock_db()


# =============================================================================
# API FIXTURES
# =============================================================================

@pytest.fixture
def client(mock_db, config):
    """FastAPI test client with the graph connection and config overridden.

    Not used as a context manager, so startup (which opens a real driver)
    does not run.
    """
    from node42.main import app, get_dashboard_config, get_db
    app.dependency_overrides[get_db] = lambda: mock_db
    app.dependency_overrides[get_dashboard_config] = lambda: config
    yield TestClient(app)
    app.dependency_overrides.clear()
