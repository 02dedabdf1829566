"""Single-in-flight classification requests run on a background worker."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional

from PIL import Image

from .pipeline import ClassifierPipeline, Prediction

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Image.Image]


@dataclass(frozen=True)
class Outcome:
    image: Image.Image
    prediction: Prediction


class ClassificationSession:
    """
    Fetch-then-classify requests, at most one outstanding at a time.

    ``submit`` returns ``None`` while a request is in flight; nothing is
    queued and neither the fetcher nor the model is called. The gate is
    released when the request finishes, whether it succeeded or failed.
    """

    def __init__(
        self,
        pipeline: ClassifierPipeline,
        fetcher: Fetcher,
        executor: Optional[Executor] = None,
    ) -> None:
        self.pipeline = pipeline
        self.fetcher = fetcher
        self._gate = threading.Lock()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="classify")

    @property
    def busy(self) -> bool:
        return self._gate.locked()

    def _run(self) -> Outcome:
        try:
            image = self.fetcher()
            prediction = self.pipeline.classify(image)
            logger.debug("Predicted index %d (p=%.4f)", prediction.index, prediction.probability)
            return Outcome(image=image, prediction=prediction)
        finally:
            self._gate.release()

    def submit(
        self,
        on_result: Optional[Callable[[Outcome], None]] = None,
        on_error: Optional[Callable[[BaseException], None]] = None,
    ) -> Optional["Future[Outcome]"]:
        if not self._gate.acquire(blocking=False):
            logger.info("Classification already in progress; request ignored.")
            return None
        try:
            future = self._executor.submit(self._run)
        except BaseException:
            self._gate.release()
            raise

        if on_result is not None or on_error is not None:
            def _deliver(f: "Future[Outcome]") -> None:
                exc = f.exception()
                if exc is not None:
                    if on_error is not None:
                        on_error(exc)
                elif on_result is not None:
                    on_result(f.result())

            future.add_done_callback(_deliver)
        return future

    def run_once(self) -> Optional[Outcome]:
        """Submit and wait. ``None`` if another request is in flight."""
        future = self.submit()
        if future is None:
            return None
        return future.result()

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)
