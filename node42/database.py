"""Neo4j access for the dashboard API.

GraphConnection owns one driver (and its connection pool). It is built once
at application startup, handed to request handlers through a dependency, and
closed at shutdown. Every public method runs one read query from queries.py
and returns plain dict rows; typing and coercion happen in records.py.
"""

import logging
import time
from typing import Optional

from neo4j import GraphDatabase
from neo4j.exceptions import ServiceUnavailable, SessionExpired

from node42 import queries
from node42.config_loader import Settings
from node42.queries import CypherQuery
from node42.records import record_to_dict

logger = logging.getLogger(__name__)


class GraphConfigError(RuntimeError):
    """Raised when Neo4j connection settings are incomplete."""


class GraphConnection:
    def __init__(self, uri: str, user: str, password: str, database: str = "neo4j"):
        self.uri = uri
        self.user = user
        self.password = password
        self.database = database
        self.driver = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "GraphConnection":
        if not settings.is_complete:
            raise GraphConfigError(
                "Missing Neo4j configuration. Please set NEO4J_URI, NEO4J_USER, and NEO4J_PASSWORD "
                "environment variables."
            )
        return cls(
            uri=settings.neo4j_uri,
            user=settings.neo4j_user,
            password=settings.neo4j_password,
            database=settings.neo4j_database,
        )

    def connect(self):
        if not self.driver:
            self.driver = GraphDatabase.driver(
                self.uri,
                auth=(self.user, self.password),
                max_connection_lifetime=3600,
                max_connection_pool_size=50,
                connection_acquisition_timeout=30,
                keep_alive=True,
            )
        return self.driver

    def warmup(self):
        """Pre-connect and warm up connection pool. Call on server start."""
        t = time.time()
        try:
            self.verify_connection()
            logger.info(f"Neo4j connection warmed up in {time.time() - t:.2f}s")
        except Exception as e:
            logger.warning(f"Neo4j warmup failed (non-fatal): {e}")

    def reconnect(self):
        """Force reconnection by closing existing driver and creating new one."""
        if self.driver:
            try:
                self.driver.close()
            except Exception as e:
                logger.debug(f"Ignoring error while closing stale driver: {e}")
            self.driver = None
        return self.connect()

    def close(self):
        if self.driver:
            self.driver.close()
            self.driver = None

    def _execute_with_retry(self, query_func, max_retries=2):
        """Execute a query function with automatic retry on connection failure."""
        last_error = None
        for attempt in range(max_retries + 1):
            try:
                return query_func()
            except (ServiceUnavailable, SessionExpired) as e:
                last_error = e
                if attempt < max_retries:
                    logger.warning(f"Neo4j connection lost ({e}), reconnecting (attempt {attempt + 1})")
                    self.reconnect()
                else:
                    raise
            except Exception as e:
                # Driver errors that only say so in the message
                error_msg = str(e).lower()
                if "defunct" in error_msg or "connection" in error_msg:
                    last_error = e
                    if attempt < max_retries:
                        logger.warning(f"Neo4j connection error ({e}), reconnecting (attempt {attempt + 1})")
                        self.reconnect()
                    else:
                        raise
                else:
                    raise
        raise last_error

    def run_read(self, query: CypherQuery) -> list[dict]:
        """Run one read query and return its rows as dicts."""
        def _query():
            driver = self.connect()
            with driver.session(database=self.database) as session:
                result = session.run(query.text, query.params)
                return [record_to_dict(record) for record in result]
        return self._execute_with_retry(_query)

    def verify_connection(self) -> bool:
        """Verify the connection and return True when the server answers."""
        rows = self.run_read(CypherQuery("RETURN 1 AS test"))
        return bool(rows) and rows[0].get("test") == 1

    # =========================================================================
    # COMMODITIES / COMPANIES / PRODUCTS
    # =========================================================================

    def get_commodities(self, company_id: Optional[str] = None, product_name: Optional[str] = None,
                        limit: int = 50) -> list[dict]:
        rows = self.run_read(queries.commodities_query(company_id, product_name, limit))
        logger.info(f"Found {len(rows)} commodities")
        return rows

    def get_companies(self) -> list[dict]:
        return self.run_read(queries.COMPANIES)

    def get_products(self, company_id: Optional[str] = None, commodity_id: Optional[str] = None) -> list[dict]:
        return self.run_read(queries.products_query(company_id, commodity_id))

    # =========================================================================
    # PER-COMMODITY AGGREGATES
    # =========================================================================

    def get_constraints(self, commodity_id: str) -> list[dict]:
        rows = self.run_read(queries.constraints_query(commodity_id))
        logger.info(f"Found {len(rows)} constraints for commodity {commodity_id}")
        return rows

    def get_product_jobs(self, commodity_id: str) -> list[dict]:
        rows = self.run_read(queries.product_jobs_query(commodity_id))
        logger.info(f"Found {len(rows)} product jobs for commodity {commodity_id}")
        return rows

    # =========================================================================
    # PER-MARKET AGGREGATES
    # =========================================================================

    def get_error_statements(self, market_name: str) -> list[dict]:
        rows = self.run_read(queries.error_statements_query(market_name))
        logger.info(f"Found {len(rows)} error statements for market '{market_name}'")
        return rows

    def get_core_jobs(self, market_name: str) -> list[dict]:
        rows = self.run_read(queries.core_jobs_query(market_name))
        logger.info(f"Found {len(rows)} core jobs for market '{market_name}'")
        return rows

    def get_job_map_steps(self, market_name: str) -> list[dict]:
        rows = self.run_read(queries.job_map_steps_query(market_name))
        logger.info(f"Found {len(rows)} job map steps for market '{market_name}'")
        return rows

    def get_core_functional_job(self, market_name: str) -> Optional[str]:
        """Core functional job text stored on the market node, if any."""
        rows = self.run_read(queries.core_functional_job_query(market_name))
        if not rows:
            return None
        return rows[0].get("jtbd_cfj") or rows[0].get("cfj") or None

    def get_kano_ranges(self, market_name: str) -> list[dict]:
        return self.run_read(queries.kano_ranges_query(market_name))

    # =========================================================================
    # MARKETS
    # =========================================================================

    def get_markets(self, commodity_id: Optional[str] = None, company_id: Optional[str] = None) -> list[dict]:
        return self.run_read(queries.markets_query(commodity_id, company_id))

    def find_market(self, slug: str) -> Optional[dict]:
        """First market matching a URL slug, or None."""
        rows = self.run_read(queries.market_detail_query(slug))
        return rows[0] if rows else None

    # =========================================================================
    # UNSPSC HIERARCHY
    # =========================================================================

    def get_unspsc_classes(self, company_name: str) -> list[dict]:
        return self.run_read(queries.unspsc_classes_query(company_name))

    def get_unspsc_commodities(self, company_name: str, class_name: Optional[str] = None) -> list[dict]:
        return self.run_read(queries.unspsc_commodities_query(company_name, class_name))
