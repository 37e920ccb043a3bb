"""
Scan Job - Lifecycle record of one query's execution.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..adapters.base_adapter import Finding
from ..utils import generate_id
from .events import EventChannel


class ScanStatus(Enum):
    """Scan job status"""
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class ScanStats:
    total_sources: int = 0
    completed_sources: int = 0
    total_results: int = 0    # Raw findings received
    unique_results: int = 0   # Findings left after fusion

    def to_dict(self) -> Dict[str, int]:
        return {
            "total_sources": self.total_sources,
            "completed_sources": self.completed_sources,
            "total_results": self.total_results,
            "unique_results": self.unique_results,
        }


@dataclass
class AdapterFailure:
    adapter: Optional[str]  # None for job-level errors
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {"adapter": self.adapter, "error": self.error}


@dataclass
class ScanJob:
    """
    One query's execution record.

    The dispatcher owns the job's buffers while it runs. Once the status is
    terminal, end_time is set and the job is never mutated again.
    """

    query: str
    options: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: generate_id("scan"))
    status: ScanStatus = ScanStatus.RUNNING
    progress: int = 0
    results: List[Finding] = field(default_factory=list)
    errors: List[AdapterFailure] = field(default_factory=list)
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    stats: ScanStats = field(default_factory=ScanStats)
    from_cache: bool = False

    # Runtime handles, not part of the snapshot
    events: EventChannel = field(default_factory=EventChannel, repr=False, compare=False)
    task: Optional[asyncio.Task] = field(default=None, repr=False, compare=False)
    done: asyncio.Event = field(default_factory=asyncio.Event, repr=False, compare=False)

    @property
    def is_terminal(self) -> bool:
        return self.status is not ScanStatus.RUNNING

    @property
    def duration(self) -> float:
        """Seconds elapsed, up to end_time once terminal."""
        end = self.end_time or datetime.now()
        return (end - self.start_time).total_seconds()

    def mark_source_completed(self) -> int:
        """Count one more finished source and recompute progress."""
        self.stats.completed_sources += 1
        if self.stats.total_sources:
            progress = round(self.stats.completed_sources / self.stats.total_sources * 100)
            self.progress = max(self.progress, min(100, progress))
        return self.progress

    def finish(self, status: ScanStatus):
        """Make the single terminal transition."""
        if self.is_terminal:
            raise RuntimeError(f"Scan {self.id} is already {self.status.value}")

        self.status = status
        self.end_time = datetime.now()
        if status is ScanStatus.COMPLETED:
            self.progress = 100
        self.done.set()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "id": self.id,
            "query": self.query,
            "options": self.options,
            "status": self.status.value,
            "progress": self.progress,
            "stats": self.stats.to_dict(),
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration": self.duration,
            "results": [f.to_dict() for f in self.results],
            "errors": [e.to_dict() for e in self.errors],
            "from_cache": self.from_cache,
        }
