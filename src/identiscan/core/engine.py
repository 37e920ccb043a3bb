"""
Scan Engine - Fans a query out to every source and fuses the results.

This module implements the dispatcher and the scan job state machine:

    running -> completed   (normal path, even if every source failed)
    running -> error       (only when the job itself could not be set up)

Each selected adapter runs as its own asyncio task under a per-adapter
deadline, and the whole fan-out runs under a total-scan deadline. When the
total deadline passes, the scan finalizes with whatever arrived and the
outstanding adapter calls are cancelled. Cancelling the scan task itself
finalizes the job the same way before the cancellation propagates.

Design Pattern: Fan-out/Fan-in + Observer
"""

import asyncio
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import structlog

from ..adapters import default_adapters
from ..adapters.base_adapter import BaseAdapter, Finding
from ..exceptions import AdapterTimeoutError, ScanNotFoundError, ScanSetupError
from .cache import ResultCache
from .config import AggregatorConfig
from .events import EventChannel, Handler, ScanEvent
from .fusion import ResultFusion
from .registry import SourceRegistry
from .scan_job import AdapterFailure, ScanJob, ScanStatus


class ScanEngine:
    """
    Owns the source registry, the result cache and the in-memory job table.

    Construct one engine at process start and pass it to whatever needs to
    run scans; there is no module-level state.

    Example:
        >>> engine = create_engine()
        >>> job = await engine.start_scan("octocat")   # returns immediately
        >>> job.events.on(ScanEvent.RESULT, print)      # live findings
        >>> job = await engine.wait(job.id)
        >>> job.status
        <ScanStatus.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        config: Optional[AggregatorConfig] = None,
        adapters: Optional[List[BaseAdapter]] = None,
        cache: Optional[ResultCache] = None,
        fusion: Optional[ResultFusion] = None,
    ):
        """
        Initialize the engine.

        Args:
            config: Aggregator configuration (uses defaults if None)
            adapters: Adapters to register up front
            cache: Result cache (a TTL cache per config if None)
            fusion: Fusion stage (built from config if None)
        """
        self.config = config or AggregatorConfig()
        self.registry = SourceRegistry(adapters)
        self.cache = cache if cache is not None else ResultCache(ttl=self.config.cache_ttl)
        self.fusion = fusion or ResultFusion(
            dedupe_fields=self.config.dedupe_fields,
            min_confidence=self.config.min_confidence_threshold,
        )

        # Receives every job's events; payloads carry scan_id
        self.events = EventChannel()

        self.scans: Dict[str, ScanJob] = {}
        self._job_slots = asyncio.Semaphore(self.config.max_concurrent_jobs)

        self.logger = structlog.get_logger(__name__)

    # ------------------------------------------------------------------
    # Registry and subscriptions
    # ------------------------------------------------------------------

    def register_adapter(self, adapter: BaseAdapter):
        self.registry.register(adapter)

    def unregister_adapter(self, name: str) -> bool:
        return self.registry.unregister(name)

    def get_adapters(self) -> List[Dict[str, Any]]:
        """Adapter name, priority and request budget, in priority order."""
        return [
            {
                "name": adapter.name,
                "priority": adapter.priority,
                "rate_limit": adapter.rate_limit.to_dict(),
            }
            for adapter in self.registry.list()
        ]

    def get_scan(self, scan_id: str) -> Optional[ScanJob]:
        return self.scans.get(scan_id)

    def on(self, event, handler: Handler):
        """Subscribe to an event from every scan this engine runs."""
        self.events.on(event, handler)

    def off(self, event, handler: Handler) -> bool:
        return self.events.off(event, handler)

    # ------------------------------------------------------------------
    # Scan lifecycle
    # ------------------------------------------------------------------

    async def start_scan(self, query: str, options: Optional[Dict[str, Any]] = None) -> ScanJob:
        """
        Start a scan without waiting for it to finish.

        Args:
            query: Username, email, IP address or domain
            options: ``adapters`` allow-list plus adapter-specific options

        Returns:
            The job, either running or already terminal (cache hit, zero
            selected adapters, or setup failure)
        """
        options = dict(options or {})
        job = ScanJob(query=query, options=options)
        self.scans[job.id] = job

        try:
            if self.config.enable_cache:
                cached = self.cache.get(query, options)
                if cached is not None:
                    self._complete_from_cache(job, cached)
                    return job

            adapters = self.registry.resolve(options.get("adapters"))
        except Exception as e:
            self._fail(job, ScanSetupError(f"Scan setup failed: {e}"))
            return job

        job.stats.total_sources = len(adapters)

        self.logger.info(
            "scan_started",
            scan_id=job.id,
            query=query,
            adapters=[a.name for a in adapters],
        )
        self._publish(job, ScanEvent.STARTED, {
            "query": query,
            "adapters": [a.name for a in adapters],
        })

        if not adapters:
            self._finalize(job)
            return job

        job.task = asyncio.create_task(self._run_scan(job, adapters), name=f"scan:{job.id}")
        return job

    async def wait(self, scan_id: str, timeout: Optional[float] = None) -> ScanJob:
        """
        Wait for a scan to reach a terminal state.

        Raises:
            ScanNotFoundError: If the id is unknown
            asyncio.TimeoutError: If timeout elapses first
        """
        job = self._require(scan_id)
        await asyncio.wait_for(job.done.wait(), timeout=timeout)
        return job

    async def scan(self, query: str, options: Optional[Dict[str, Any]] = None) -> ScanJob:
        """Start a scan and wait for its final state."""
        job = await self.start_scan(query, options)
        return await self.wait(job.id)

    async def stream(self, scan_id: str) -> AsyncIterator[Tuple[ScanEvent, Dict[str, Any]]]:
        """
        Yield a scan's events from now until its terminal event.

        Closing the iterator detaches the subscriber; the scan itself keeps
        running and can still be retrieved with get_scan().
        """
        job = self._require(scan_id)
        if job.is_terminal:
            yield self._terminal_event(job), self._snapshot_payload(job)
            return

        queue: asyncio.Queue = asyncio.Queue()

        def forward(event, payload):
            queue.put_nowait((event, payload))

        job.events.on_all(forward)
        try:
            while True:
                event, payload = await queue.get()
                yield event, payload
                if event.is_terminal:
                    return
        finally:
            job.events.off_all(forward)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def _run_scan(self, job: ScanJob, adapters: List[BaseAdapter]):
        tasks: List[asyncio.Task] = []
        try:
            async with self._job_slots:
                tasks = [
                    asyncio.create_task(self._run_adapter(job, adapter), name=f"{job.id}:{adapter.name}")
                    for adapter in adapters
                ]
                done, pending = await asyncio.wait(tasks, timeout=self.config.total_timeout)

                if pending:
                    self.logger.warning(
                        "scan_total_timeout",
                        scan_id=job.id,
                        total_timeout=self.config.total_timeout,
                        abandoned=len(pending),
                    )

                self._finalize(job)

        except asyncio.CancelledError:
            if not job.is_terminal:
                self.logger.warning("scan_cancelled", scan_id=job.id, received=len(job.results))
                self._finalize(job)
            raise

        except Exception as e:
            self.logger.error("scan_failed", scan_id=job.id, error=str(e), exc_info=True)
            if not job.is_terminal:
                self._fail(job, e)

        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

    async def _run_adapter(self, job: ScanJob, adapter: BaseAdapter):
        self._publish(job, ScanEvent.ADAPTER_START, {"adapter": adapter.name})

        try:
            findings = await asyncio.wait_for(
                adapter.run(job.query, job.options),
                timeout=self.config.default_timeout,
            )
        except asyncio.TimeoutError:
            self._record_failure(job, adapter, str(AdapterTimeoutError(adapter.name)))
            return
        except Exception as e:
            # Any adapter failure stays local to that adapter
            self._record_failure(job, adapter, str(e) or type(e).__name__)
            return

        if job.is_terminal:
            return

        findings = list(findings or [])[:self.config.max_results_per_source]
        for finding in findings:
            job.results.append(finding)
            job.stats.total_results += 1
            self._publish(job, ScanEvent.RESULT, {"adapter": adapter.name, "result": finding})

        progress = job.mark_source_completed()
        self.logger.debug(
            "adapter_complete",
            scan_id=job.id,
            adapter=adapter.name,
            findings=len(findings),
            progress=progress,
        )
        self._publish(job, ScanEvent.PROGRESS, {
            "progress": progress,
            "adapter": adapter.name,
            "results_count": len(findings),
        })

    def _record_failure(self, job: ScanJob, adapter: BaseAdapter, error: str):
        if job.is_terminal:
            return

        job.errors.append(AdapterFailure(adapter=adapter.name, error=error))
        progress = job.mark_source_completed()

        self.logger.warning("adapter_failed", scan_id=job.id, adapter=adapter.name, error=error)
        self._publish(job, ScanEvent.ADAPTER_ERROR, {"adapter": adapter.name, "error": error})
        self._publish(job, ScanEvent.PROGRESS, {
            "progress": progress,
            "adapter": adapter.name,
            "results_count": 0,
        })

    # ------------------------------------------------------------------
    # Terminal transitions
    # ------------------------------------------------------------------

    def _finalize(self, job: ScanJob):
        results: List[Finding] = self.fusion.fuse(job.results, job.query)
        job.results = results
        job.stats.unique_results = len(results)
        job.finish(ScanStatus.COMPLETED)

        if self.config.enable_cache:
            self.cache.set(job.query, job.options, results)

        self.logger.info(
            "scan_complete",
            scan_id=job.id,
            sources=job.stats.total_sources,
            completed=job.stats.completed_sources,
            raw_results=job.stats.total_results,
            unique_results=job.stats.unique_results,
            errors=len(job.errors),
            duration=f"{job.duration:.2f}s",
        )
        self._publish(job, ScanEvent.COMPLETE, {"scan": job.to_dict()})

    def _complete_from_cache(self, job: ScanJob, cached: List[Finding]):
        job.results = cached
        job.from_cache = True
        job.stats.unique_results = len(cached)
        job.finish(ScanStatus.COMPLETED)

        self.logger.info("scan_cache_hit", scan_id=job.id, query=job.query, results=len(cached))
        self._publish(job, ScanEvent.COMPLETE, {"scan": job.to_dict()})

    def _fail(self, job: ScanJob, error: Exception):
        job.errors.append(AdapterFailure(adapter=None, error=str(error)))
        job.finish(ScanStatus.ERROR)

        self.logger.error("scan_error", scan_id=job.id, error=str(error))
        self._publish(job, ScanEvent.ERROR, {"error": str(error), "scan": job.to_dict()})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _publish(self, job: ScanJob, event: ScanEvent, data: Dict[str, Any]):
        payload = {"scan_id": job.id, **data}
        job.events.emit(event, payload)
        self.events.emit(event, payload)

    def _require(self, scan_id: str) -> ScanJob:
        job = self.scans.get(scan_id)
        if job is None:
            raise ScanNotFoundError(f"Scan not found: {scan_id}")
        return job

    @staticmethod
    def _terminal_event(job: ScanJob) -> ScanEvent:
        return ScanEvent.ERROR if job.status is ScanStatus.ERROR else ScanEvent.COMPLETE

    @staticmethod
    def _snapshot_payload(job: ScanJob) -> Dict[str, Any]:
        return {"scan_id": job.id, "scan": job.to_dict()}


def create_engine(config: Optional[AggregatorConfig] = None, **kwargs) -> ScanEngine:
    """Build an engine with every built-in adapter registered."""
    config = config or AggregatorConfig()
    return ScanEngine(config=config, adapters=default_adapters(config), **kwargs)
