import logging
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from node42 import __version__
from node42.config_loader import DashboardConfig, get_config, load_settings
from node42.database import GraphConnection
from node42.logic.assembler import (
    assemble_commodities,
    assemble_companies,
    assemble_customers,
    assemble_market_detail,
    assemble_markets,
    assemble_products,
    assemble_unspsc_classes,
    assemble_unspsc_commodities,
)
from node42.logic.pipeline import AggregationMode, empty_response, run_aggregation
from node42.models import (
    CommoditiesResponse,
    CompaniesResponse,
    CustomersResponse,
    MarketsResponse,
    ProductsResponse,
    UnspscClassesResponse,
    UnspscCommoditiesResponse,
)
from node42.records import (
    CommodityRecord,
    CompanyRecord,
    MarketDetailRecord,
    MarketRecord,
    ProductRecord,
    UnspscClassRecord,
    UnspscCommodityRecord,
)

settings = load_settings()
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

app = FastAPI(title="node42 Dashboard API", version=__version__)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup_event():
    """Open the graph connection and warm up its pool."""
    logger.info("Starting server warmup...")
    db = GraphConnection.from_settings(settings)
    db.warmup()
    app.state.db = db
    logger.info("Server ready")


@app.on_event("shutdown")
def shutdown_event():
    db = getattr(app.state, "db", None)
    if db is not None:
        db.close()


def get_db(request: Request) -> GraphConnection:
    return request.app.state.db


def get_dashboard_config() -> DashboardConfig:
    return get_config()


def _missing(param: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": f"{param} is required"})


def _failed(message: str, empty=None) -> JSONResponse:
    """500 body: the error plus the endpoint's empty shape."""
    content = {"error": message}
    if empty is not None:
        content.update(empty.model_dump(by_alias=True))
    return JSONResponse(status_code=500, content=content)


def _ok(model) -> dict:
    return model.model_dump(by_alias=True)


@app.get("/")
def root(config: DashboardConfig = Depends(get_dashboard_config)):
    return {
        "message": f"{config.name} Dashboard API is running",
        "version": __version__,
        "dashboard": {"name": config.name, "description": config.description, "version": config.version},
    }


@app.get("/health")
def health():
    return {"status": "healthy"}


# =============================================================================
# COMMODITIES / COMPANIES / PRODUCTS
# =============================================================================

@app.get("/api/commodities")
def get_commodities(
    company_id: Optional[str] = Query(None, alias="companyId"),
    product_name: Optional[str] = Query(None, alias="productName"),
    customer_id: Optional[str] = Query(None, alias="customerId"),
    db: GraphConnection = Depends(get_db),
    config: DashboardConfig = Depends(get_dashboard_config),
):
    try:
        rows = db.get_commodities(company_id, product_name, config.list_limit)
        records = [CommodityRecord.from_row(r) for r in rows]
        return _ok(assemble_commodities(records, config.commodity_allow_list(customer_id)))
    except Exception:
        logger.exception("Error fetching commodities")
        return _failed("Failed to fetch commodities", CommoditiesResponse())


@app.get("/api/companies")
def get_companies(db: GraphConnection = Depends(get_db)):
    try:
        rows = db.get_companies()
        return _ok(assemble_companies(CompanyRecord.from_row(r) for r in rows))
    except Exception:
        logger.exception("Error fetching companies")
        return _failed("Failed to fetch companies", CompaniesResponse())


@app.get("/api/products")
def get_products(
    company_id: Optional[str] = Query(None, alias="companyId"),
    commodity_id: Optional[str] = Query(None, alias="commodityId"),
    db: GraphConnection = Depends(get_db),
):
    try:
        rows = db.get_products(company_id, commodity_id)
        return _ok(assemble_products(ProductRecord.from_row(r) for r in rows))
    except Exception:
        logger.exception("Error fetching products")
        return _failed("Failed to fetch products", ProductsResponse())


# =============================================================================
# AGGREGATION VIEWS
# =============================================================================

def _aggregate(mode: AggregationMode, db: GraphConnection, config: DashboardConfig,
               failure: str, **params):
    try:
        return _ok(run_aggregation(mode, db, config, **params))
    except Exception:
        logger.exception(f"Error building {mode.value} view")
        return _failed(failure, empty_response(mode, config))


@app.get("/api/constraints")
def get_constraints(
    commodity_id: Optional[str] = Query(None, alias="commodityId"),
    db: GraphConnection = Depends(get_db),
    config: DashboardConfig = Depends(get_dashboard_config),
):
    if not commodity_id:
        return _missing("commodityId")
    return _aggregate(AggregationMode.CONSTRAINTS, db, config, "Failed to fetch constraints",
                      commodity_id=commodity_id)


@app.get("/api/core-jobs")
def get_core_jobs(
    market_name: str = Query("", alias="marketName"),
    db: GraphConnection = Depends(get_db),
    config: DashboardConfig = Depends(get_dashboard_config),
):
    logger.info(f"Fetching core jobs for market: {market_name}")
    return _aggregate(AggregationMode.CORE_JOBS, db, config, "Failed to fetch core jobs",
                      market_name=market_name)


@app.get("/api/product-jobs")
def get_product_jobs(
    commodity_id: Optional[str] = Query(None, alias="commodityId"),
    db: GraphConnection = Depends(get_db),
    config: DashboardConfig = Depends(get_dashboard_config),
):
    if not commodity_id:
        return _missing("commodityId")
    return _aggregate(AggregationMode.PRODUCT_JOBS, db, config, "Failed to fetch product jobs",
                      commodity_id=commodity_id)


@app.get("/api/kano-ranges")
def get_kano_ranges(
    market_name: Optional[str] = Query(None, alias="marketName"),
    new_learnings: bool = Query(False, alias="newLearnings"),
    db: GraphConnection = Depends(get_db),
    config: DashboardConfig = Depends(get_dashboard_config),
):
    if not market_name:
        return _missing("marketName")
    return _aggregate(AggregationMode.KANO_RANGES, db, config, "Failed to fetch Kano ranges",
                      market_name=market_name, new_learnings=new_learnings)


# =============================================================================
# MARKETS
# =============================================================================

@app.get("/api/markets")
def get_markets(
    commodity_id: Optional[str] = Query(None, alias="commodityId"),
    company_id: Optional[str] = Query(None, alias="companyId"),
    db: GraphConnection = Depends(get_db),
):
    try:
        rows = db.get_markets(commodity_id, company_id)
        return _ok(assemble_markets(MarketRecord.from_row(r) for r in rows))
    except Exception:
        logger.exception("Error fetching markets")
        return _failed("Failed to fetch markets", MarketsResponse())


@app.get("/api/markets/{market_id}")
def get_market(market_id: str, db: GraphConnection = Depends(get_db)):
    try:
        row = db.find_market(market_id)
        if row is None:
            return JSONResponse(status_code=404, content={"error": "Market not found"})
        return _ok(assemble_market_detail(MarketDetailRecord.from_row(row)))
    except Exception:
        logger.exception(f"Error fetching market '{market_id}'")
        return _failed("Failed to fetch market")


# =============================================================================
# UNSPSC HIERARCHY
# =============================================================================

@app.get("/api/unspsc/classes")
def get_unspsc_classes(
    company_name: Optional[str] = Query(None, alias="companyName"),
    db: GraphConnection = Depends(get_db),
):
    if not company_name:
        return _ok(UnspscClassesResponse())
    try:
        rows = db.get_unspsc_classes(company_name)
        return _ok(assemble_unspsc_classes(UnspscClassRecord.from_row(r) for r in rows))
    except Exception:
        logger.exception("Error fetching UNSPSC classes")
        return _failed("Failed to fetch UNSPSC classes", UnspscClassesResponse())


@app.get("/api/unspsc/commodities")
def get_unspsc_commodities(
    company_name: Optional[str] = Query(None, alias="companyName"),
    class_name: Optional[str] = Query(None, alias="className"),
    db: GraphConnection = Depends(get_db),
):
    if not company_name:
        return _ok(UnspscCommoditiesResponse())
    try:
        rows = db.get_unspsc_commodities(company_name, class_name)
        return _ok(assemble_unspsc_commodities(UnspscCommodityRecord.from_row(r) for r in rows))
    except Exception:
        logger.exception("Error fetching UNSPSC commodities")
        return _failed("Failed to fetch UNSPSC commodities", UnspscCommoditiesResponse())


# =============================================================================
# CUSTOMERS
# =============================================================================

@app.get("/api/customers")
def get_customers(config: DashboardConfig = Depends(get_dashboard_config)):
    try:
        return _ok(assemble_customers(config.customers))
    except Exception:
        logger.exception("Error fetching customers")
        return _failed("Failed to fetch customers", CustomersResponse())


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
