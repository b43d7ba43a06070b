import logging
import os
import threading
from concurrent.futures import ALL_COMPLETED, FIRST_COMPLETED, BrokenExecutor, Executor, Future, ProcessPoolExecutor, ThreadPoolExecutor, wait
from typing import Dict, Optional

from .errors import EvaluationFailure, InvalidArgument
from .formulas import Formula, evaluate_range
from .model import CalculationResult, PartialResult, Range


logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 100000

_EXECUTORS = {
    "process": ProcessPoolExecutor,
    "thread": ThreadPoolExecutor,
}


class _Frontier:
    """Folds completed ranges into a sum in index order.

    Units may finish out of order; a unit is only added once every range
    before it has been added, so ``reached`` always ends a contiguous prefix
    ``[0, reached]`` and the summation order does not depend on timing.
    """

    def __init__(self):
        self.total = 0.0
        self.reached = -1
        self._parked: Dict[int, PartialResult] = {}

    def add(self, partial: PartialResult):
        self._parked[partial.range.start] = partial
        while self.reached + 1 in self._parked:
            p = self._parked.pop(self.reached + 1)
            self.total += p.value
            self.reached = p.range.end


class ParallelAccumulator:
    """Evaluates a series over ``[0, n]`` in chunks on a bounded worker pool.

    At most ``workers`` ranges are in flight at once. ``cancel()`` stops new
    submissions; ranges already submitted are still waited for and summed,
    so a cancelled run returns the exact sum over ``[0, reached_bound]``.

    A failed run raises ``EvaluationFailure`` and puts ``last_result()`` back
    to what it was before the run; an owned pool is replaced on the next run.
    """

    def __init__(
        self,
        workers: Optional[int] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        formula: Formula = Formula.LEIBNIZ,
        executor: str = "process",
        pool: Optional[Executor] = None,
    ):
        if workers is None:
            workers = os.cpu_count() or 1
        workers = int(workers)
        chunk_size = int(chunk_size)
        if workers < 1:
            raise InvalidArgument("workers must be >= 1")
        if chunk_size < 1:
            raise InvalidArgument("chunk_size must be >= 1")
        executor = (executor or "process").lower().strip()
        if executor not in _EXECUTORS:
            raise InvalidArgument("unsupported executor")
        self.workers = workers
        self.chunk_size = chunk_size
        self.formula = formula
        self.executor = executor
        self._pool = pool
        self._owns_pool = pool is None
        self._closed = False
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._last: Optional[CalculationResult] = None

    def _ensure_pool(self) -> Executor:
        if self._closed:
            raise RuntimeError("accumulator is closed")
        if self._pool is None:
            self._pool = _EXECUTORS[self.executor](max_workers=self.workers)
        return self._pool

    def _publish(self, result: CalculationResult):
        with self._lock:
            self._last = result

    def _drain(self, in_flight: Dict[Future, Range], frontier: _Frontier, return_when: str):
        done, _ = wait(list(in_flight), return_when=return_when)
        for fut in done:
            rng = in_flight.pop(fut)
            try:
                partial = fut.result()
            except Exception as exc:
                logger.error("range [%d, %d] failed: %s", rng.start, rng.end, exc)
                raise EvaluationFailure(rng) from exc
            logger.debug("drained [%d, %d]", rng.start, rng.end)
            frontier.add(partial)
        if frontier.reached >= 0:
            self._publish(CalculationResult(frontier.total, frontier.reached))

    def _abandon(self, in_flight: Dict[Future, Range], previous: Optional[CalculationResult]):
        for fut in in_flight:
            fut.cancel()
        self._publish(previous)
        if self._owns_pool and self._pool is not None:
            # a broken process pool rejects every later submit
            self._pool.shutdown(wait=False)
            self._pool = None

    def run(self, n: int) -> CalculationResult:
        if isinstance(n, bool) or not isinstance(n, int):
            raise InvalidArgument("n must be an integer")
        if n < 0:
            raise InvalidArgument("n must be >= 0")
        pool = self._ensure_pool()
        self._cancelled.clear()
        previous = self.last_result()
        logger.info("run n=%d workers=%d chunk_size=%d formula=%s", n, self.workers, self.chunk_size, self.formula.value)
        in_flight: Dict[Future, Range] = {}
        frontier = _Frontier()
        next_start = 0
        last_end = -1
        try:
            while not self._cancelled.is_set() and last_end < n:
                rng = Range(next_start, min(next_start + self.chunk_size, n))
                try:
                    in_flight[pool.submit(evaluate_range, self.formula, rng)] = rng
                except BrokenExecutor as exc:
                    logger.error("pool rejected [%d, %d]: %s", rng.start, rng.end, exc)
                    raise EvaluationFailure(rng) from exc
                logger.debug("submitted [%d, %d]", rng.start, rng.end)
                last_end = rng.end
                next_start = rng.end + 1
                if len(in_flight) >= self.workers:
                    self._drain(in_flight, frontier, FIRST_COMPLETED)
            if last_end < n:
                logger.info("cancelled after [0, %d] of [0, %d]", last_end, n)
            self._drain(in_flight, frontier, ALL_COMPLETED)
        except EvaluationFailure:
            self._abandon(in_flight, previous)
            raise
        result = CalculationResult(frontier.total, last_end)
        self._publish(result)
        logger.info("run finished reached_bound=%d approximation=%r", last_end, frontier.total)
        return result

    def cancel(self):
        self._cancelled.set()

    def last_result(self) -> Optional[CalculationResult]:
        with self._lock:
            return self._last

    def close(self):
        self._closed = True
        if self._pool is not None and self._owns_pool:
            self._pool.shutdown(wait=True)
        self._pool = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
