"""
Inference instrumentation: latency counters and the optional metrics side channel.

InferenceStats is process-wide shared state; updates take a threading.Lock so
hosts running classify_sync from worker threads stay consistent.

MetricsReporter sends a best-effort POST {inferenceMs, confidence, timestamp}
after each classification. report() only enqueues: one daemon worker thread per
reporter drains a bounded queue through one long-lived httpx.Client, and a
report that finds the queue full is dropped. Failures are logged at debug level
and never reach the caller.
"""

from __future__ import annotations

import asyncio
import queue
import threading
import time
from typing import Any

import httpx

from backend_argus.argus_logging import get_logger
from backend_argus.config.env import DEFAULT_METRICS_TIMEOUT_SEC

logger = get_logger(__name__)

METRICS_QUEUE_SIZE = 256

_STOP = object()


class InferenceStats:
    """Thread-safe counters: last latency, cumulative latency, inference count."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total = 0
        self._total_ms = 0.0
        self._last_ms = 0.0

    def record(self, latency_ms: float) -> None:
        with self._lock:
            self._total += 1
            self._total_ms += latency_ms
            self._last_ms = latency_ms

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            avg = self._total_ms / self._total if self._total else 0.0
            return {
                "lastLatencyMs": self._last_ms,
                "avgLatencyMs": avg,
                "totalInferences": self._total,
            }

    def reset(self) -> None:
        with self._lock:
            self._total = 0
            self._total_ms = 0.0
            self._last_ms = 0.0


def build_metrics_payload(inference_ms: float, confidence: int) -> dict[str, Any]:
    return {
        "inferenceMs": round(float(inference_ms), 4),
        "confidence": int(confidence),
        "timestamp": int(time.time() * 1000),
    }


class MetricsReporter:
    """Best-effort POST to a metrics endpoint. Disabled when url is None."""

    def __init__(
        self,
        url: str | None,
        timeout_sec: float = DEFAULT_METRICS_TIMEOUT_SEC,
        queue_size: int = METRICS_QUEUE_SIZE,
    ) -> None:
        self._url = url
        self._timeout = timeout_sec
        self._queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._lock = threading.Lock()
        self._worker: threading.Thread | None = None
        self._client: httpx.Client | None = None
        self._dropped = 0

    @property
    def enabled(self) -> bool:
        return bool(self._url)

    @property
    def dropped(self) -> int:
        with self._lock:
            return self._dropped

    def report(self, inference_ms: float, confidence: int) -> None:
        """Enqueue the POST and return immediately; drop it if the queue is full."""
        if not self._url:
            return
        self._ensure_worker()
        try:
            self._queue.put_nowait(build_metrics_payload(inference_ms, confidence))
        except queue.Full:
            with self._lock:
                self._dropped += 1
                dropped = self._dropped
            logger.debug("metrics_report_dropped", dropped=dropped)

    def _ensure_worker(self) -> None:
        with self._lock:
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(target=self._run, name="argus-metrics", daemon=True)
                self._worker.start()

    def _run(self) -> None:
        while True:
            payload = self._queue.get()
            try:
                if payload is _STOP:
                    return
                self._post(payload)
            finally:
                self._queue.task_done()

    def _post(self, payload: dict[str, Any]) -> None:
        try:
            if self._client is None:
                self._client = httpx.Client(timeout=self._timeout)
            r = self._client.post(self._url, json=payload)
            r.raise_for_status()
        except Exception as e:
            logger.debug("metrics_report_failed", url=self._url, error=str(e))

    def flush(self) -> None:
        """Block until every queued report has been sent or has failed."""
        self._queue.join()

    async def drain(self) -> None:
        """flush() without blocking the event loop (shutdown and tests)."""
        await asyncio.to_thread(self.flush)

    def close(self) -> None:
        """Flush, stop the worker and close the HTTP client."""
        with self._lock:
            worker = self._worker
            self._worker = None
        if worker is not None and worker.is_alive():
            self._queue.put(_STOP)
            worker.join()
        if self._client is not None:
            self._client.close()
            self._client = None
