"""CompositionQueue — composite layer textures on a worker pool."""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor

from decalstudio.config.constants import COMPOSE_MAX_WORKERS
from decalstudio.core.compositor import CompositeResult, derive_image
from decalstudio.core.layer_store import CompositeJob, LayerStore

log = logging.getLogger(__name__)

ComposeFn = Callable[[CompositeJob], CompositeResult]


def _compose_job(job: CompositeJob) -> CompositeResult:
    return derive_image(job.original_image, job.crop_info, job.border_radius)


class CompositionQueue:
    """Runs compositions off the caller's thread and commits them to a store.

    Each submission carries the ticket issued by
    :meth:`LayerStore.begin_composite`; the store drops the result if the
    layer was deleted or re-derived in the meantime.  The returned future
    resolves to True when the result was committed.
    """

    def __init__(
        self,
        store: LayerStore,
        max_workers: int = COMPOSE_MAX_WORKERS,
        compose_fn: ComposeFn = _compose_job,
    ) -> None:
        self._store = store
        self._compose = compose_fn
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="decal-compose"
        )

    def submit(self, layer_id: int) -> Future[bool] | None:
        """Queue a composition of *layer_id*; None if it has nothing to compose."""
        job = self._store.begin_composite(layer_id)
        if job is None:
            return None
        return self._executor.submit(self._run, job)

    def submit_all(self) -> list[Future[bool]]:
        futures: list[Future[bool]] = []
        for layer in self._store.layers:
            future = self.submit(layer.layer_id)
            if future is not None:
                futures.append(future)
        return futures

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> CompositionQueue:
        return self

    def __exit__(self, *exc: object) -> None:
        self.shutdown()

    def _run(self, job: CompositeJob) -> bool:
        result = self._compose(job)
        if result.error is not None:
            log.warning("Composition of layer %d failed: %s", job.layer_id, result.error)
        return self._store.commit_composite(job, result)
