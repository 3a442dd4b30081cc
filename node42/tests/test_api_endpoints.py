"""API endpoint integration tests: FastAPI endpoints with a mocked graph.

Tests the HTTP layer: query parameter aliases, camelCase response shapes,
400/404/500 handling. All graph calls go to the mock_db fixture.
"""

import re


# =============================================================================
# HEALTH & BASIC ENDPOINTS
# =============================================================================

class TestHealthEndpoint:
    def test_health_returns_200(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy"}

    def test_root_returns_200(self, client):
        assert client.get("/").status_code == 200

    def test_root_reports_dashboard_metadata(self, client):
        data = client.get("/").json()
        assert data["message"] == "node42 Dashboard API is running"
        assert data["dashboard"] == {
            "name": "node42",
            "description": "Market / product knowledge graph dashboard",
            "version": "1.0",
        }


# =============================================================================
# COMMODITIES / COMPANIES / PRODUCTS
# =============================================================================

class TestCommodities:
    def test_shape_and_default_name(self, client, mock_db):
        resp = client.get("/api/commodities")
        assert resp.status_code == 200
        commodities = resp.json()["commodities"]
        assert commodities[0] == {"id": "23181501", "name": "Cup filling machines", "commodityId": "23181501"}
        assert commodities[1]["name"] == "Commodity 23181502"
        mock_db.get_commodities.assert_called_once_with(None, None, 50)

    def test_filters_passed_through(self, client, mock_db):
        client.get("/api/commodities", params={"companyId": "Acme", "productName": "Filler"})
        mock_db.get_commodities.assert_called_once_with("Acme", "Filler", 50)

    def test_customer_allow_list(self, client):
        resp = client.get("/api/commodities", params={"customerId": "bechtel"})
        ids = [c["commodityId"] for c in resp.json()["commodities"]]
        assert ids == ["23181501", "23181502"]

    def test_unknown_customer_unfiltered(self, client):
        resp = client.get("/api/commodities", params={"customerId": "nobody"})
        assert len(resp.json()["commodities"]) == 3

    def test_failure_returns_500_with_empty_shape(self, client, mock_db):
        mock_db.get_commodities.side_effect = RuntimeError("db down")
        resp = client.get("/api/commodities")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to fetch commodities", "commodities": []}


class TestCompanies:
    def test_value_label(self, client):
        resp = client.get("/api/companies")
        assert resp.json() == {"companies": [{"value": "Acme", "label": "Acme"},
                                             {"value": "Bechtel", "label": "Bechtel"}]}


class TestProducts:
    def test_slug_and_description_fallback(self, client, mock_db):
        resp = client.get("/api/products", params={"companyId": "Acme"})
        product = resp.json()["products"][0]
        assert product == {
            "id": "fillmaster-3000",
            "name": "FillMaster 3000!",
            "description": "Cup filling machines",
            "commodityId": "23181501",
        }
        mock_db.get_products.assert_called_once_with("Acme", None)


# =============================================================================
# CONSTRAINTS
# =============================================================================

class TestConstraints:
    def test_missing_commodity_id(self, client, mock_db):
        resp = client.get("/api/constraints")
        assert resp.status_code == 400
        assert resp.json() == {"error": "commodityId is required"}
        mock_db.get_constraints.assert_not_called()

    def test_counts_and_ordering(self, client):
        data = client.get("/api/constraints", params={"commodityId": "23181501"}).json()
        assert data["severityCounts"] == {"Critical": 1, "High": 1, "Medium": 1, "Low": 0}
        assert data["constraints"][0]["sensitivity"] == "CRITICAL"
        assert [c["name"] for c in data["constraints"]] == ["Food contact", "Cooling load", "Line footprint"]
        assert data["totalConstraints"] == 3
        assert data["severities"] == ["Critical", "High", "Medium", "Low"]
        by_severity = [
            c["name"] for severity in data["severities"] for c in data["constraintsBySeverity"][severity]
        ]
        assert by_severity == [c["name"] for c in data["constraints"]]
        assert sum(data["severityCounts"].values()) == data["totalConstraints"]

    def test_category_views(self, client):
        data = client.get("/api/constraints", params={"commodityId": "23181501"}).json()
        assert list(data["constraintsByCategory"]) == [
            "physics_energy", "space_geometry", "time_throughput", "human_limits",
            "environment", "rules_liability", "ecosystem_dependencies", "economics",
        ]
        assert data["constraintsByCategory"]["rules_liability"][0]["id"] == "rules_liability-food-contact"
        assert sum(data["categoryCounts"].values()) == data["totalConstraints"]
        assert list(data["categoryLabels"]) == list(data["constraintsByCategory"])
        assert data["categoryLabels"]["rules_liability"] == "Rules & Liability"
        assert data["constraintsBySeverity"]["Critical"][0] == {
            "name": "Food contact", "description": "EU 1935/2004", "category": "Rules & Liability",
        }
        assert data["allConstraints"][2]["description"] == ""

    def test_query_failure_degrades_to_empty(self, client, mock_db):
        mock_db.get_constraints.side_effect = RuntimeError("db down")
        resp = client.get("/api/constraints", params={"commodityId": "1"})
        assert resp.status_code == 200
        assert resp.json()["totalConstraints"] == 0


# =============================================================================
# CORE JOBS
# =============================================================================

class TestCoreJobs:
    def test_steps_with_matched_errors(self, client, mock_db):
        data = client.get("/api/core-jobs", params={"marketName": "Yogurt Cup Filling"}).json()
        assert [(s["order"], s["name"], s["needsCount"]) for s in data["steps"]] == [
            (1, "Define", 0), (2, "Locate", 1), (3, "Execute filling", 1),
        ]
        locate_error = data["steps"][1]["errorStatements"][0]
        assert locate_error["kpiName"] == "Search time"
        assert locate_error["relatedCoreJobs"] == ["Fill cups"]
        execute_error = data["steps"][2]["errorStatements"][0]
        assert execute_error["category"] == "General"
        assert execute_error["impact"] == ""
        mock_db.get_core_jobs.assert_called_once_with("Yogurt Cup Filling")

    def test_core_jobs_grouped(self, client):
        data = client.get("/api/core-jobs", params={"marketName": "Yogurt Cup Filling"}).json()
        assert list(data["coreJobs"]) == ["Main", "General"]
        assert len(data["coreJobs"]["Main"][0]["errorStatements"]) == 1
        assert data["coreJobs"]["General"][0]["errorStatements"] == []
        assert data["coreFunctionalJob"] == "Fill yogurt cups hygienically"
        assert data["totalCoreJobs"] == 2
        assert data["totalErrorStatements"] == 2
        assert data["totalJobMapSteps"] == 3

    def test_empty_graph_uses_fallbacks(self, client, mock_db):
        mock_db.get_error_statements.return_value = []
        mock_db.get_core_jobs.return_value = []
        mock_db.get_job_map_steps.return_value = []
        mock_db.get_core_functional_job.return_value = None
        data = client.get("/api/core-jobs?marketName=Yogurt%20Cup%20Filling").json()
        assert [s["name"] for s in data["steps"]] == [
            "Define", "Locate", "Prepare", "Confirm", "Execute", "Monitor", "Modify", "Conclude",
        ]
        assert data["coreFunctionalJob"] == (
            "Enable accurate and efficient filling operations with minimal product waste and maximum uptime"
        )
        assert data["totalCoreJobs"] == 0
        assert data["coreJobs"] == {}
        mock_db.get_error_statements.assert_called_once_with("Yogurt Cup Filling")

    def test_market_name_optional(self, client, mock_db):
        resp = client.get("/api/core-jobs")
        assert resp.status_code == 200
        mock_db.get_job_map_steps.assert_called_once_with("")

    def test_malformed_step_number_is_coerced(self, client, mock_db):
        mock_db.get_job_map_steps.return_value = [
            {"name": "Define", "step_number": "Infinity"},
            {"name": "Locate", "step_number": {"low": float("inf"), "high": 0}},
        ]
        resp = client.get("/api/core-jobs", params={"marketName": "Yogurt Cup Filling"})
        assert resp.status_code == 200
        assert [(s["order"], s["name"]) for s in resp.json()["steps"]] == [(1, "Define"), (2, "Locate")]


# =============================================================================
# PRODUCT JOBS
# =============================================================================

class TestProductJobs:
    def test_missing_commodity_id(self, client):
        resp = client.get("/api/product-jobs")
        assert resp.status_code == 400
        assert resp.json() == {"error": "commodityId is required"}

    def test_buckets(self, client):
        data = client.get("/api/product-jobs", params={"commodityId": "23181501"}).json()
        assert data["categoryCounts"] == {
            "Acquisition": 1, "Preparation": 0, "Usage": 1, "Maintenance": 1, "Disposal": 0,
        }
        assert data["totalJobs"] == 3
        assert data["categories"] == ["Acquisition", "Preparation", "Usage", "Maintenance", "Disposal"]
        maintenance = data["jobsByCategory"]["Maintenance"][0]
        assert maintenance["level"] == "2"
        assert maintenance["userGroup"] == "Operators"
        assert data["jobsByCategory"]["Acquisition"][0]["level"] == ""


# =============================================================================
# KANO RANGES
# =============================================================================

class TestKanoRanges:
    def test_missing_market_name(self, client):
        resp = client.get("/api/kano-ranges")
        assert resp.status_code == 400
        assert resp.json() == {"error": "marketName is required"}

    def test_features(self, client):
        data = client.get("/api/kano-ranges", params={"marketName": "Yogurt Cup Filling"}).json()
        assert data["count"] == 7
        first = data["features"][0]
        assert first["id"] == "feature-0"
        assert first["name"] == "Fact 01"
        assert first["oneDimensionalRange"] == "—"
        assert first["classifiedAt"] == "2025-01-10"
        assert first["isNewLearning"] is False

    def test_new_learnings_flag(self, client):
        data = client.get("/api/kano-ranges",
                          params={"marketName": "Yogurt Cup Filling", "newLearnings": "true"}).json()
        feature = data["features"][1]
        assert feature["isNewLearning"] is True
        assert feature["updatedColumn"] == "must_be"
        assert feature["previousValue"] == "2-12"
        assert feature["mustBeRange"] == "2.1-12.6"

    def test_failure_returns_500_with_empty_shape(self, client, mock_db):
        mock_db.get_kano_ranges.side_effect = RuntimeError("db down")
        resp = client.get("/api/kano-ranges", params={"marketName": "m"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to fetch Kano ranges", "features": [], "count": 0}


# =============================================================================
# MARKETS
# =============================================================================

class TestMarkets:
    def test_sorted_by_core_job_count_then_name(self, client):
        markets = client.get("/api/markets").json()["markets"]
        assert [m["name"] for m in markets] == ["Yogurt Cup Filling", "Aseptic", "Bottling", "Unknown Market"]
        assert [m["hasCoreJobs"] for m in markets] == [True, True, True, False]
        assert markets[0]["coreJobCount"] == 7
        assert markets[2]["cpcCode"] == "4422"

    def test_filters_passed_through(self, client, mock_db):
        client.get("/api/markets", params={"commodityId": "23181501"})
        mock_db.get_markets.assert_called_once_with("23181501", None)

    def test_malformed_core_job_count_is_coerced(self, client, mock_db):
        mock_db.get_markets.return_value = [
            {"id": "A", "name": "A", "cpcCode": None, "description": None, "coreJobCount": "1e999"},
        ]
        resp = client.get("/api/markets")
        assert resp.status_code == 200
        assert resp.json()["markets"][0]["coreJobCount"] == 0
        assert resp.json()["markets"][0]["hasCoreJobs"] is False

    def test_failure_returns_500_with_empty_shape(self, client, mock_db):
        mock_db.get_markets.side_effect = RuntimeError("db down")
        resp = client.get("/api/markets")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to fetch markets", "markets": []}


class TestMarketDetail:
    def test_market_detail(self, client, mock_db):
        market = client.get("/api/markets/yogurt-cup-filling").json()["market"]
        assert market["id"] == "yogurt-cup-filling"
        assert market["type"] == "UNDERSERVED"
        assert market["coreJobToBeDone"] == "Filling of yogurt cups"
        assert market["metrics"] == {"tam": None, "cagr": None}
        assert market["cpcCode"] == "2229"
        assert [(c["id"], c["severity"]) for c in market["criteria"]] == [(1, "HIGH"), (6, "LOW")]
        assert market["criteria"][0]["description"] == "Fillers are accurate"
        assert market["criteria"][0]["sources"] == "Interviews"
        assert market["criteria"][1]["description"] == "No analysis available."
        mock_db.find_market.assert_called_once_with("yogurt-cup-filling")

    def test_not_found(self, client, mock_db):
        mock_db.find_market.return_value = None
        resp = client.get("/api/markets/nowhere")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Market not found"}

    def test_failure(self, client, mock_db):
        mock_db.find_market.side_effect = RuntimeError("db down")
        resp = client.get("/api/markets/x")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to fetch market"}


# =============================================================================
# UNSPSC HIERARCHY
# =============================================================================

class TestUnspsc:
    def test_classes_grouped(self, client):
        data = client.get("/api/unspsc/classes", params={"companyName": "Acme"}).json()
        assert len(data["classes"]) == 3
        families = data["grouped"]["23"]["families"]
        assert [c["value"] for c in families["2318"]["classes"]] == ["Filling machinery", "Capping machinery"]
        unknown = data["grouped"]["Unknown Segment"]
        assert unknown["families"]["Unknown Family"]["classes"][0]["classId"] == "411217"
        assert data["classes"][2]["familyName"] == "Unknown Family"

    def test_classes_without_company(self, client, mock_db):
        resp = client.get("/api/unspsc/classes")
        assert resp.json() == {"classes": [], "grouped": {}}
        mock_db.get_unspsc_classes.assert_not_called()

    def test_commodities_drop_null_names(self, client, mock_db):
        data = client.get("/api/unspsc/commodities",
                          params={"companyName": "Acme", "className": "Filling machinery"}).json()
        assert data == {"commodities": [{"value": "Cup fillers", "label": "Cup fillers",
                                         "commodityId": "23181501"}]}
        mock_db.get_unspsc_commodities.assert_called_once_with("Acme", "Filling machinery")

    def test_commodities_without_company(self, client):
        assert client.get("/api/unspsc/commodities").json() == {"commodities": []}


# =============================================================================
# CUSTOMERS
# =============================================================================

class TestCustomers:
    def test_static_customers(self, client):
        customers = client.get("/api/customers").json()["customers"]
        assert [c["id"] for c in customers] == ["bechtel", "welfen-gymnasium"]
        assert customers[0]["confirmedAssumptions"] == "72/52"
        assert re.match(r"^\d{1,2}\.\d{1,2}\.\d{4}$", customers[0]["lastUpdate"])
