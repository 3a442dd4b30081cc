"""Configuration Loader for the node42 dashboard API.

Two sources:
    - Environment (optionally from a .env file): Neo4j credentials, log level,
      and the path of the YAML file.
    - YAML (config.yaml next to this module): static tables the API serves or
      applies on top of graph data (demo customers, customer allow-list,
      fallback job-map steps, category synonyms, Kano simulation parameters).
"""

import os
from pathlib import Path
from typing import Optional
from dataclasses import dataclass, field

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


# =============================================================================
# PYDANTIC MODELS FOR CONFIGURATION VALIDATION
# =============================================================================

class Settings(BaseModel):
    """Connection settings for the graph database."""
    neo4j_uri: Optional[str] = None
    neo4j_user: Optional[str] = None
    neo4j_password: Optional[str] = None
    neo4j_database: str = "neo4j"
    log_level: str = "INFO"

    @property
    def is_complete(self) -> bool:
        return bool(self.neo4j_uri and self.neo4j_user and self.neo4j_password)


class FallbackStep(BaseModel):
    """A generic job-map step used when a market has none in the graph."""
    name: str
    description: str = ""


class CustomerSpec(BaseModel):
    """A demo customer shown on the customers page."""
    id: str
    name: str
    insight_level: str = "MEDIUM"
    insight_count: int = 0
    total_updates: int = 0
    new_learnings: int = 0
    confirmed_assumptions: str = ""
    latest_insight: str = ""


class KanoSimulation(BaseModel):
    """Parameters of the simulated "new learning" highlight on Kano ranges."""
    new_learning_indices: list[int] = Field(default_factory=lambda: [1, 5, 9, 13])
    new_learning_limit: int = 15
    new_learning_factor: float = 1.05


# =============================================================================
# MAIN CONFIGURATION CONTAINER
# =============================================================================

DEFAULT_CORE_FUNCTIONAL_JOB = (
    "Enable accurate and efficient filling operations with minimal product waste and maximum uptime"
)


@dataclass
class DashboardConfig:
    """Complete dashboard configuration container."""

    # Metadata
    name: str = "node42"
    description: str = ""
    version: str = "1.0"

    # Query limits
    list_limit: int = 50

    # Core jobs
    default_core_functional_job: str = DEFAULT_CORE_FUNCTIONAL_JOB
    fallback_steps: list[FallbackStep] = field(default_factory=list)

    # Constraints
    category_synonyms: dict[str, str] = field(default_factory=dict)

    # Kano
    kano: KanoSimulation = field(default_factory=KanoSimulation)

    # Customers (static demo data) and their commodity allow-list
    customers: list[CustomerSpec] = field(default_factory=list)
    customer_commodities: dict[str, list[str]] = field(default_factory=dict)

    def commodity_allow_list(self, customer_id: Optional[str]) -> Optional[set[str]]:
        """Commodity ids visible to a customer, or None if the customer is not restricted."""
        if not customer_id:
            return None
        ids = self.customer_commodities.get(customer_id)
        if ids is None:
            return None
        return set(ids)


# =============================================================================
# CONFIGURATION LOADER
# =============================================================================

_PACKAGE_DIR = Path(__file__).parent
DEFAULT_CONFIG_PATH = _PACKAGE_DIR / "config.yaml"


def load_settings() -> Settings:
    """Read connection settings from the environment."""
    return Settings(
        neo4j_uri=os.getenv("NEO4J_URI"),
        neo4j_user=os.getenv("NEO4J_USERNAME") or os.getenv("NEO4J_USER"),
        neo4j_password=os.getenv("NEO4J_PASSWORD"),
        neo4j_database=os.getenv("NEO4J_DATABASE", "neo4j"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )


def _resolve_config_path(config_path: Optional[str] = None) -> Path:
    if config_path is not None:
        return Path(config_path)
    env_path = os.getenv("NODE42_CONFIG")
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def load_dashboard_config(config_path: Optional[str] = None) -> DashboardConfig:
    """Load and validate dashboard configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to $NODE42_CONFIG, then
            config.yaml next to this module.

    Returns:
        Validated DashboardConfig object
    """
    path = _resolve_config_path(config_path)

    with open(path, 'r', encoding='utf-8') as f:
        raw = yaml.safe_load(f) or {}

    config = DashboardConfig()

    meta = raw.get("dashboard", {})
    config.name = meta.get("name", config.name)
    config.description = meta.get("description", "")
    config.version = str(meta.get("version", "1.0"))

    queries = raw.get("queries", {})
    config.list_limit = int(queries.get("list_limit", config.list_limit))

    core_jobs = raw.get("core_jobs", {})
    config.default_core_functional_job = core_jobs.get(
        "default_core_functional_job", DEFAULT_CORE_FUNCTIONAL_JOB
    )
    for step in core_jobs.get("fallback_steps", []):
        config.fallback_steps.append(FallbackStep(**step))

    constraints = raw.get("constraints", {})
    config.category_synonyms = {
        str(k).lower(): str(v) for k, v in constraints.get("category_synonyms", {}).items()
    }

    config.kano = KanoSimulation(**raw.get("kano", {}))

    for customer in raw.get("customers", []):
        config.customers.append(CustomerSpec(**customer))

    config.customer_commodities = {
        str(customer_id): [str(c) for c in ids]
        for customer_id, ids in raw.get("customer_commodities", {}).items()
    }

    return config


# =============================================================================
# CONFIG SINGLETON
# =============================================================================

_config: Optional[DashboardConfig] = None


def get_config() -> DashboardConfig:
    """Get the loaded dashboard configuration (singleton)."""
    global _config
    if _config is None:
        _config = load_dashboard_config()
    return _config


def reload_config(config_path: Optional[str] = None) -> DashboardConfig:
    """Force reload of dashboard configuration."""
    global _config
    _config = load_dashboard_config(config_path)
    return _config
