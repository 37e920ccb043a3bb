"""
identiscan - Federated identity reconnaissance

Fans a username, email, IP address or domain out to many public sources,
normalizes and deduplicates what they report, scores each finding's
confidence and streams progress until the result set is final.

Copyright (c) 2025
Licensed under MIT License
"""

__version__ = "1.0.0"
__author__ = "identiscan Team"
__status__ = "Development"

from .core import AggregatorConfig, ScanEngine, ScanEvent, ScanJob, ScanStatus, create_engine
from .adapters import BaseAdapter, Finding, FindingKind


__all__ = [
    "AggregatorConfig",
    "ScanEngine",
    "ScanEvent",
    "ScanJob",
    "ScanStatus",
    "create_engine",
    "BaseAdapter",
    "Finding",
    "FindingKind",
]
