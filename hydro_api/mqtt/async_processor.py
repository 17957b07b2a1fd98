"""Async alert dispatch: decouples the paho callback from alert evaluation.

The ingestion handler persists the reading inline on the paho network
thread and then enqueues it here. Worker threads run the alert engine
for every registered user, so a slow evaluation never holds up the
next message.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import List

from ..domain import SensorReading
from ..metrics import ALERT_QUEUE_DROPPED

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 1000
DEFAULT_NUM_WORKERS = 1


class AlertDispatcher:
    """Bounded queue + worker threads around AlertEngine.evaluate_for_all_users.

    - enqueue() returns immediately
    - a full queue drops the reading (the reading itself is already stored)
    """

    def __init__(
        self,
        engine,
        max_queue_size: int = DEFAULT_QUEUE_SIZE,
        num_workers: int = DEFAULT_NUM_WORKERS,
    ):
        self._engine = engine
        self._queue: queue.Queue = queue.Queue(maxsize=max_queue_size)
        self._num_workers = max(1, num_workers)
        self._stop_event = threading.Event()

        # Metrics
        self._enqueued = 0
        self._dropped = 0
        self._processed = 0
        self._errors = 0
        self._lock = threading.Lock()

        self._workers: List[threading.Thread] = []

    def start(self) -> None:
        """Start worker threads."""
        if self._workers:
            return
        self._stop_event.clear()
        for i in range(self._num_workers):
            t = threading.Thread(
                target=self._worker_loop,
                args=(i,),
                daemon=True,
                name=f"alert-worker-{i}",
            )
            t.start()
            self._workers.append(t)
        logger.info(
            "[ALERT_QUEUE] Started workers=%d queue_max=%d",
            self._num_workers, self._queue.maxsize,
        )

    def drain(self) -> None:
        """Block until every enqueued reading has been evaluated."""
        if self._workers:
            self._queue.join()

    def stop(self, drain: bool = True) -> None:
        """Stop workers. If drain=True, process remaining items first."""
        if drain:
            self.drain()
        self._stop_event.set()
        for t in self._workers:
            t.join(timeout=5.0)
        self._workers.clear()
        logger.info("[ALERT_QUEUE] Stopped. %s", self.metrics)

    def enqueue(self, reading: SensorReading) -> bool:
        """Enqueue a stored reading for evaluation. Returns False if full."""
        try:
            self._queue.put_nowait(reading)
            with self._lock:
                self._enqueued += 1
            return True
        except queue.Full:
            with self._lock:
                self._dropped += 1
            ALERT_QUEUE_DROPPED.inc()
            logger.warning("[ALERT_QUEUE] Queue full, dropped reading=%s", reading.id)
            return False

    def _worker_loop(self, worker_id: int) -> None:
        while not self._stop_event.is_set():
            try:
                reading = self._queue.get(timeout=0.5)
            except queue.Empty:
                continue

            try:
                self._engine.evaluate_for_all_users(reading)
                with self._lock:
                    self._processed += 1
            except Exception as e:
                with self._lock:
                    self._errors += 1
                logger.error(
                    "[ALERT_QUEUE] Worker %d error reading=%s: %s", worker_id, reading.id, e,
                )
            finally:
                self._queue.task_done()

    @property
    def metrics(self) -> dict:
        with self._lock:
            return {
                "queue_depth": self._queue.qsize(),
                "queue_max": self._queue.maxsize,
                "workers": len(self._workers),
                "enqueued": self._enqueued,
                "dropped": self._dropped,
                "processed": self._processed,
                "errors": self._errors,
            }
