"""Parallel fan-out of region decoding.

Execution model::

    Main thread
        ↓
    Region file list (sorted by dimension, file name)
        ↓
    Thread/Process pool (max_workers = cpu_count by default)
        ↓
    _decode_worker()  [one task per region file]
        ↓
    Join barrier: wait for every task
        ↓
    Merge per-file results in region order (never completion order)

Workers share no mutable state: each returns its own ``DecodeResult`` and the
coordinator concatenates them only after all of them finished. A worker that
blows up on one file costs that file only.
"""

from __future__ import annotations

import os
import typing as t
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from time import perf_counter

from stashfinder.errors import ConfigError
from stashfinder.models import ContainerRecord
from stashfinder.reader.adapter import DecodeResult, DecodedDataAdapter
from stashfinder.reader.base import RegionRef
from stashfinder.utils import get_logger

logger = get_logger(__name__)

_DEFAULT_MAX_WORKERS: int = os.cpu_count() or 1

EXECUTORS = ("thread", "process")


def _decode_worker(args: t.Tuple[DecodedDataAdapter, RegionRef]) -> DecodeResult:
    # module level so ProcessPoolExecutor can pickle it
    adapter, region = args
    return adapter.decode(region)


@dataclass(frozen=True)
class FanoutResult:
    records: t.Tuple[ContainerRecord, ...]
    soft_errors: int
    regions_scanned: int
    regions_failed: t.Tuple[str, ...]


class FanoutCoordinator:
    """Decodes region files on a bounded pool and merges the results."""

    def __init__(
        self,
        adapter: DecodedDataAdapter,
        max_workers: t.Optional[int] = None,
        executor: str = "thread",
    ) -> None:
        self.adapter = adapter
        self.max_workers = max_workers if max_workers is not None else _DEFAULT_MAX_WORKERS
        if self.max_workers < 1:
            raise ConfigError(f"workers must be >= 1, got {self.max_workers}")
        if executor not in EXECUTORS:
            raise ConfigError(f"executor must be one of {EXECUTORS}, got {executor!r}")
        self.executor = executor

    def _pool(self, n_tasks: int) -> Executor:
        workers = max(1, min(self.max_workers, n_tasks))
        if self.executor == "process":
            return ProcessPoolExecutor(max_workers=workers)
        return ThreadPoolExecutor(max_workers=workers, thread_name_prefix="decode")

    def run(self, regions: t.Sequence[RegionRef]) -> FanoutResult:
        t0 = perf_counter()
        results: t.List[t.Optional[DecodeResult]] = [None] * len(regions)

        if regions:
            with self._pool(len(regions)) as pool:
                futures = {
                    pool.submit(_decode_worker, (self.adapter, region)): idx
                    for idx, region in enumerate(regions)
                }
                for fut in as_completed(futures):
                    idx = futures[fut]
                    region = regions[idx]
                    try:
                        results[idx] = fut.result()
                    except Exception as e:
                        logger.error("fanout: worker failed on %s: %s", region.label, e)
                        results[idx] = DecodeResult(
                            source=region.label,
                            dimension=region.dimension,
                            records=(),
                            soft_errors=1,
                            failed=True,
                        )

        # join barrier passed: every slot is filled
        records: t.List[ContainerRecord] = []
        soft_errors = 0
        failed: t.List[str] = []
        for res in results:
            records.extend(res.records)
            soft_errors += res.soft_errors
            if res.failed:
                failed.append(res.source)

        logger.info(
            "fanout: regions=%d failed=%d containers=%d soft_errors=%d workers=%d executor=%s took_ms=%d",
            len(regions),
            len(failed),
            len(records),
            soft_errors,
            self.max_workers,
            self.executor,
            int((perf_counter() - t0) * 1000),
        )
        return FanoutResult(
            records=tuple(records),
            soft_errors=soft_errors,
            regions_scanned=len(regions),
            regions_failed=tuple(failed),
        )
