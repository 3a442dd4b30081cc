"""node42: read-only dashboard API over the market/product knowledge graph."""

__version__ = "0.4.2"
