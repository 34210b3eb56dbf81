from __future__ import annotations

import fnmatch
import typing as t
from dataclasses import dataclass, field

from stashfinder.errors import ConfigError
from stashfinder.models import Flag, StashCluster
from stashfinder.utils import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Thresholds:
    quantity_threshold: int
    density_threshold: int
    # (glob pattern, threshold); first match wins
    item_thresholds: t.Tuple[t.Tuple[str, int], ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.quantity_threshold <= 0:
            raise ConfigError(f"quantity_threshold must be positive, got {self.quantity_threshold}")
        if self.density_threshold <= 0:
            raise ConfigError(f"density_threshold must be positive, got {self.density_threshold}")
        for pattern, value in self.item_thresholds:
            if value <= 0:
                raise ConfigError(f"item threshold for {pattern!r} must be positive, got {value}")

    def for_item(self, item_id: str) -> int:
        for pattern, value in self.item_thresholds:
            if fnmatch.fnmatchcase(item_id, pattern):
                return value
        return self.quantity_threshold


def evaluate(cluster: StashCluster, thresholds: Thresholds) -> Flag:
    triggering: t.List[t.Tuple[str, int, int]] = []
    score = 0.0
    for item_id, total in cluster.totals.items():
        thr = thresholds.for_item(item_id)
        score = max(score, total / thr)
        if total >= thr:
            triggering.append((item_id, total, thr))
    # strongest trigger first
    triggering.sort(key=lambda x: (-(x[1] / x[2]), x[0]))
    return Flag(
        cluster=cluster,
        triggering_items=tuple(triggering),
        density_triggered=cluster.member_count >= thresholds.density_threshold,
        score=score,
    )


def rank_key(flag: Flag):
    c = flag.cluster
    return (-flag.score, -c.member_count, c.centroid, c.dimension, c.cluster_id)


def flag_clusters(clusters: t.Iterable[StashCluster], thresholds: Thresholds) -> t.List[Flag]:
    """Flagged clusters only, ranked by descending score."""
    flags = []
    total = 0
    for c in clusters:
        total += 1
        f = evaluate(c, thresholds)
        if f.triggering_items or f.density_triggered:
            flags.append(f)
    flags.sort(key=rank_key)
    logger.info("flagging: flagged=%d of clusters=%d", len(flags), total)
    return flags
