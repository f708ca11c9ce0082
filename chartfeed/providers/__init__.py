"""
Upstream data sources.

Concrete clients for the oracle price subgraph and the stats REST endpoint,
plus an in-memory oracle for tests and offline runs.
"""

from .base import CandleSource, OracleClient
from .memory import InMemoryOracleClient
from .oracle import GraphOracleClient, fetch_ticks, reconcile_ticks
from .stats import StatsCandleClient

__all__ = [
    "CandleSource",
    "GraphOracleClient",
    "InMemoryOracleClient",
    "OracleClient",
    "StatsCandleClient",
    "fetch_ticks",
    "reconcile_ticks",
]
