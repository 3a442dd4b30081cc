"""Cypher query builder for the dashboard endpoints.

Every endpoint issues fixed, parameterized read queries. Endpoints that offer
several filters (commodities, markets, products, UNSPSC commodities) share one
RETURN block per entity and only vary the MATCH/WHERE prefix, selected by
which filter parameters are present.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class CypherQuery:
    """A Cypher statement plus its parameters."""
    text: str
    params: dict = field(default_factory=dict)


# =============================================================================
# COMMODITIES / COMPANIES
# =============================================================================

_COMMODITY_RETURN = """
    RETURN DISTINCT
      c.commodity_id AS commodityId,
      c.commodity_title AS name
    ORDER BY c.commodity_title
    LIMIT $limit
"""


def commodities_query(company_id: Optional[str] = None, product_name: Optional[str] = None,
                      limit: int = 50) -> CypherQuery:
    """Commodities for a product name, else a company, else all with constraints."""
    if product_name:
        match = """
    MATCH (p:Product)-[:HAS_UNSPSC_CLASSIFICATION]->(c:UNSPSCCommodity)
    WHERE toLower(p.name) CONTAINS toLower($productName)"""
        params = {"productName": product_name}
    elif company_id:
        match = """
    MATCH (company:Company)-[:HAS_PRODUCT]->(p:Product)-[:HAS_UNSPSC_CLASSIFICATION]->(c:UNSPSCCommodity)
    WHERE toLower(company.name) CONTAINS toLower($companyId)"""
        params = {"companyId": company_id}
    else:
        match = """
    MATCH (c:UNSPSCCommodity)-[:HAS_CONSTRAINT]->(:CommodityConstraint)"""
        params = {}
    params["limit"] = limit
    return CypherQuery(match + _COMMODITY_RETURN, params)


COMPANIES = CypherQuery("""
    MATCH (c:Company)
    WHERE c.name IS NOT NULL
    RETURN DISTINCT c.name AS name
    ORDER BY c.name ASC
""")


# =============================================================================
# CONSTRAINTS / PRODUCT JOBS (per commodity)
# =============================================================================

def constraints_query(commodity_id: str) -> CypherQuery:
    return CypherQuery("""
    MATCH (c:UNSPSCCommodity {commodity_id: $commodityId})-[:HAS_CONSTRAINT]->(con:CommodityConstraint)
    RETURN con.name AS name, con.description AS description,
           con.category AS category, con.impact_severity AS impact_severity
    ORDER BY con.impact_severity, con.category, con.name
""", {"commodityId": commodity_id})


def product_jobs_query(commodity_id: str) -> CypherQuery:
    return CypherQuery("""
    MATCH (c:UNSPSCCommodity {commodity_id: $commodityId})-[:HAS_PRODUCT_JOB]->(pj:JTBDProductJob)
    RETURN pj.name AS name, pj.statement AS statement, pj.description AS description,
           pj.category AS category, pj.level AS level, pj.use_context AS use_context,
           pj.user_group AS user_group, pj.frequency AS frequency
    ORDER BY pj.category, pj.name
""", {"commodityId": commodity_id})


# =============================================================================
# CORE JOBS (per market)
# =============================================================================

def error_statements_query(market_name: str) -> CypherQuery:
    return CypherQuery("""
    MATCH (m:Market {name: $marketName})-[:HAS_ERROR_STATEMENT]->(es:JTBDErrorStatement)
    RETURN es.statement AS statement, es.category AS category, es.impact AS impact,
           es.kpi_name AS kpi_name, es.kpi_unit AS kpi_unit,
           es.related_job_map_steps AS related_job_map_steps,
           es.related_core_jobs AS related_core_jobs
    ORDER BY es.category
""", {"marketName": market_name})


def core_jobs_query(market_name: str) -> CypherQuery:
    return CypherQuery("""
    MATCH (m:Market {name: $marketName})-[:HAS_CORE_JOB]->(cj:JTBDCoreJob)
    RETURN cj.name AS name, cj.statement AS statement,
           cj.category AS category, cj.description AS description
    ORDER BY cj.category, cj.name
""", {"marketName": market_name})


def job_map_steps_query(market_name: str) -> CypherQuery:
    return CypherQuery("""
    MATCH (m:Market {name: $marketName})-[:HAS_JOB_MAP_STEP]->(s:JTBDJobMapStep)
    RETURN s.name AS name, s.description AS description, s.step_number AS step_number
    ORDER BY s.step_number
""", {"marketName": market_name})


def core_functional_job_query(market_name: str) -> CypherQuery:
    return CypherQuery("""
    MATCH (m:Market {name: $marketName})
    RETURN m.core_functional_job AS cfj, m.jtbd_cfj AS jtbd_cfj
""", {"marketName": market_name})


# =============================================================================
# KANO RANGES
# =============================================================================

def kano_ranges_query(market_name: str) -> CypherQuery:
    return CypherQuery("""
    MATCH (bf:BasicFact)-[r:MARKET_KANO_CLASSIFIED_FOR]->(m:Market)
    WHERE m.name = $marketName
    RETURN
      bf.name AS factName,
      bf.unit_of_measure AS unitOfMeasure,
      r.reverse_range AS reverseRange,
      r.must_be_range AS mustBeRange,
      r.one_dimensional_range AS oneDimensionalRange,
      r.attractive_range AS attractiveRange,
      r.classified_at AS classifiedAt
    ORDER BY bf.name
""", {"marketName": market_name})


# =============================================================================
# MARKETS
# =============================================================================

_MARKET_RETURN = """
    OPTIONAL MATCH (m)-[:HAS_CORE_JOB]->(cj:JTBDCoreJob)
    WITH m, count(DISTINCT cj) AS coreJobCount
    RETURN DISTINCT
      m.name AS id,
      m.name AS name,
      m.cpc_code AS cpcCode,
      m.description AS description,
      coreJobCount AS coreJobCount
    ORDER BY coreJobCount DESC, m.name
"""


def markets_query(commodity_id: Optional[str] = None, company_id: Optional[str] = None) -> CypherQuery:
    """Markets served by a commodity, else by a company's products, else all."""
    if commodity_id:
        match = """
    MATCH (c:UNSPSCCommodity)-[:COMMODITY_SERVES_MARKET]->(m:Market)
    WHERE c.commodity_id = $commodityId"""
        params = {"commodityId": commodity_id}
    elif company_id:
        match = """
    MATCH (company:Company)-[:HAS_PRODUCT]->(p:Product)-[:HAS_UNSPSC_CLASSIFICATION]->(c:UNSPSCCommodity)-[:COMMODITY_SERVES_MARKET]->(m:Market)
    WHERE toLower(company.name) CONTAINS toLower($companyId)"""
        params = {"companyId": company_id}
    else:
        match = """
    MATCH (m:Market)"""
        params = {}
    return CypherQuery(match + _MARKET_RETURN, params)


_MARKET_DETAIL_FIELDS = [
    "description", "market_type", "core_functional_job", "cpc_code",
    "cfj_performance_rating", "cfj_performance_reasoning", "cfj_performance_sources",
    "performance_exceeds_needs_rating", "performance_exceeds_needs_analysis",
    "performance_exceeds_needs_sources",
    "willingness_to_pay_declining_rating", "willingness_to_pay_declining_analysis",
    "willingness_to_pay_declining_sources",
    "shifting_purchase_criteria_rating", "shifting_purchase_criteria_analysis",
    "shifting_purchase_criteria_sources",
    "incumbents_overserving_rating", "incumbents_overserving_analysis",
    "incumbents_overserving_sources",
    "new_segments_emerging_rating", "new_segments_emerging_analysis",
    "new_segments_emerging_sources",
    "decreasing_differentiation_rating", "decreasing_differentiation_analysis",
    "decreasing_differentiation_sources",
]


def market_detail_query(slug: str) -> CypherQuery:
    """Single market by slug: name contains the de-hyphenated slug, or slugified name equals it."""
    returns = ",\n           ".join(f"m.{name} AS {name}" for name in _MARKET_DETAIL_FIELDS)
    return CypherQuery(f"""
    MATCH (m:Market)
    WHERE toLower(m.name) CONTAINS toLower($searchPattern)
       OR toLower(replace(m.name, ' ', '-')) = toLower($id)
    RETURN m.name AS name,
           {returns}
    LIMIT 1
""", {"searchPattern": slug.replace("-", " "), "id": slug})


# =============================================================================
# PRODUCTS
# =============================================================================

_PRODUCT_RETURN = """
    RETURN
      p.name AS name,
      p.company AS company,
      p.description AS description,
      c.commodity_id AS commodityId,
      c.commodity_title AS commodityTitle
    ORDER BY p.name
"""


def products_query(company_id: Optional[str] = None, commodity_id: Optional[str] = None) -> CypherQuery:
    if commodity_id and company_id:
        match = """
    MATCH (company:Company)-[:HAS_PRODUCT]->(p:Product)-[:HAS_UNSPSC_CLASSIFICATION]->(c:UNSPSCCommodity)
    WHERE c.commodity_id = $commodityId AND toLower(company.name) CONTAINS toLower($companyId)"""
        params = {"commodityId": commodity_id, "companyId": company_id}
    elif commodity_id:
        match = """
    MATCH (p:Product)-[:HAS_UNSPSC_CLASSIFICATION]->(c:UNSPSCCommodity)
    WHERE c.commodity_id = $commodityId"""
        params = {"commodityId": commodity_id}
    elif company_id:
        match = """
    MATCH (company:Company)-[:HAS_PRODUCT]->(p:Product)
    WHERE toLower(company.name) CONTAINS toLower($companyId)
    OPTIONAL MATCH (p)-[:HAS_UNSPSC_CLASSIFICATION]->(c:UNSPSCCommodity)"""
        params = {"companyId": company_id}
    else:
        match = """
    MATCH (p:Product)
    OPTIONAL MATCH (p)-[:HAS_UNSPSC_CLASSIFICATION]->(c:UNSPSCCommodity)"""
        params = {}
    return CypherQuery(match + _PRODUCT_RETURN, params)


# =============================================================================
# UNSPSC HIERARCHY
# =============================================================================

def unspsc_classes_query(company_name: str) -> CypherQuery:
    return CypherQuery("""
    MATCH (c:Company)-[:HAS_PRODUCT]->(p:Product)-[:HAS_UNSPSC_CLASSIFICATION]->(com:UNSPSCCommodity)
    WHERE c.name = $companyName
    MATCH (cls:UNSPSCClass)-[:HAS_COMMODITY]->(com)
    MATCH (fam:UNSPSCFamily)-[:HAS_CLASS]->(cls)
    MATCH (seg:UNSPSCSegment)-[:HAS_FAMILY]->(fam)
    RETURN DISTINCT
      cls.class_title AS className,
      cls.class_id AS classId,
      fam.family_title AS familyName,
      fam.family_id AS familyId,
      seg.segment_title AS segmentName,
      seg.segment_id AS segmentId
    ORDER BY seg.segment_id, fam.family_id, cls.class_id
""", {"companyName": company_name})


def unspsc_commodities_query(company_name: str, class_name: Optional[str] = None) -> CypherQuery:
    match = """
    MATCH (c:Company)-[:HAS_PRODUCT]->(p:Product)-[:HAS_UNSPSC_CLASSIFICATION]->(com:UNSPSCCommodity)
    WHERE c.name = $companyName"""
    params = {"companyName": company_name}
    if class_name:
        match += """
    MATCH (cls:UNSPSCClass)-[:HAS_COMMODITY]->(com)
    WHERE cls.class_title = $className"""
        params["className"] = class_name
    return CypherQuery(match + """
    RETURN DISTINCT com.commodity_title AS name, com.commodity_id AS commodityId
    ORDER BY com.commodity_id ASC
""", params)
