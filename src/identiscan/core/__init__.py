"""
Core module - Scan aggregation engine.

This package contains the components that dispatch a query to every source,
govern request rates, fuse results and publish scan progress.
"""

from .config import AggregatorConfig
from .rate_limiter import RateGovernor, RateLimitPolicy
from .events import EventChannel, ScanEvent
from .registry import SourceRegistry
from .scan_job import AdapterFailure, ScanJob, ScanStats, ScanStatus
from .cache import ResultCache
from .fusion import ResultFusion, confidence_level
from .engine import ScanEngine, create_engine


__all__ = [
    # Engine
    "ScanEngine",
    "create_engine",
    "AggregatorConfig",
    # Scan jobs and events
    "ScanJob",
    "ScanStats",
    "ScanStatus",
    "AdapterFailure",
    "EventChannel",
    "ScanEvent",
    # Building blocks
    "SourceRegistry",
    "RateGovernor",
    "RateLimitPolicy",
    "ResultCache",
    "ResultFusion",
    "confidence_level",
]
