from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, Dict, Mapping, NamedTuple, Optional, Sequence, Union

from show_validation.cache import AnalysisCache
from show_validation.config import AnalysisConfig
from show_validation.constants import EnvironmentType
from show_validation.errors import AnalysisCancelled
from show_validation.pipeline import run_validation_analysis
from show_validation.trajectories import TrajectoryPlayer

logger = logging.getLogger(__name__)


class RunHandle(NamedTuple):
    run_id: int
    future: Future


class ValidationRunner:
    """
    Runs validation analyses off the caller's thread.

    Every submit() gets a new run id and supersedes all earlier runs: queued
    ones are cancelled, running ones stop at their next cancellation check,
    and a superseded run that still finishes never replaces the result of a
    newer one. Pass a thread-based executor; jobs are closures.
    """

    def __init__(
        self,
        executor: Optional[Executor] = None,
        *,
        config: Optional[AnalysisConfig] = None,
        cache: Optional[AnalysisCache] = None,
        on_result: Optional[Callable[[int, Dict[str, Any]], None]] = None,
    ):
        self._own_executor = executor is None
        self._executor = executor if executor is not None else ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="show-validation"
        )
        self.config = config if config is not None else AnalysisConfig()
        self.cache = cache
        self.on_result = on_result

        self._lock = threading.Lock()
        self._next_run_id = 1
        self._latest_run_id: Optional[int] = None
        self._pending: Dict[int, Future] = {}
        self._latest_result: Optional[Dict[str, Any]] = None
        self._latest_result_run_id: Optional[int] = None

    @property
    def latest_run_id(self) -> Optional[int]:
        with self._lock:
            return self._latest_run_id

    def is_current(self, run_id: int) -> bool:
        with self._lock:
            return run_id == self._latest_run_id

    def latest_result(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._latest_result

    def latest_result_run_id(self) -> Optional[int]:
        with self._lock:
            return self._latest_result_run_id

    def submit(
        self,
        *,
        players: Sequence[TrajectoryPlayer],
        duration: float,
        environment: Union[str, EnvironmentType, None] = EnvironmentType.OUTDOOR,
        validation: Optional[Mapping[str, Any]] = None,
        cache_key: Optional[str] = None,
    ) -> RunHandle:
        with self._lock:
            run_id = self._next_run_id
            self._next_run_id += 1
            self._latest_run_id = run_id
            superseded = list(self._pending.items())

        for old_id, fut in superseded:
            if fut.cancel():
                logger.debug("cancelled queued run %d", old_id)

        players = list(players)

        def should_cancel() -> bool:
            return not self.is_current(run_id)

        def job() -> Dict[str, Any]:
            if cache_key is not None and self.cache is not None:
                with self._lock:
                    cached = self.cache.get(cache_key)
                if cached is not None:
                    logger.debug("run %d served from cache", run_id)
                    return cached

            result = run_validation_analysis(
                players=players,
                duration=duration,
                environment=environment,
                validation=validation,
                config=self.config,
                should_cancel=should_cancel,
            )
            if should_cancel():
                raise AnalysisCancelled(run_id)

            if cache_key is not None and self.cache is not None:
                with self._lock:
                    self.cache.put(cache_key, result)
            return result

        future = self._executor.submit(job)
        with self._lock:
            self._pending[run_id] = future
        future.add_done_callback(partial(self._on_done, run_id))
        return RunHandle(run_id=run_id, future=future)

    def _on_done(self, run_id: int, future: Future) -> None:
        with self._lock:
            self._pending.pop(run_id, None)

        if future.cancelled():
            return
        exc = future.exception()
        if isinstance(exc, AnalysisCancelled):
            logger.debug("run %d superseded before completion", run_id)
            return
        if exc is not None:
            logger.error("validation run %d failed: %s", run_id, exc, exc_info=exc)
            return

        result = future.result()
        with self._lock:
            if run_id != self._latest_run_id:
                logger.debug("discarding stale result of run %d", run_id)
                return
            self._latest_result = result
            self._latest_result_run_id = run_id

        if self.on_result is not None:
            self.on_result(run_id, result)

    def cancel_all(self) -> None:
        """Supersede every submitted run without starting a new one."""
        with self._lock:
            self._latest_run_id = None
            pending = list(self._pending.values())
        for fut in pending:
            fut.cancel()

    def shutdown(self, wait: bool = True) -> None:
        if self._own_executor:
            self._executor.shutdown(wait=wait)

    def __enter__(self) -> "ValidationRunner":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown(wait=True)
