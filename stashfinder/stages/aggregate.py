from __future__ import annotations

import typing as t
from collections import Counter

import numpy as np

from stashfinder.models import ContainerRecord, StashCluster
from stashfinder.utils import get_logger

logger = get_logger(__name__)


def sum_items(members: t.Iterable[ContainerRecord]) -> t.Dict[str, int]:
    # commutative fold: member order never changes the totals
    totals: Counter = Counter()
    for rec in members:
        for stack in rec.items:
            totals[stack.item_id] += stack.count
    return dict(sorted(totals.items()))


def centroid(members: t.Sequence[ContainerRecord]) -> t.Tuple[float, float, float]:
    pts = np.array(sorted(m.position for m in members), dtype=np.float64)
    c = pts.mean(axis=0)
    return (float(c[0]), float(c[1]), float(c[2]))


def aggregate(components: t.Sequence[t.Sequence[ContainerRecord]]) -> t.List[StashCluster]:
    clusters: t.List[StashCluster] = []
    for cid, members in enumerate(components):
        if not members:
            continue
        clusters.append(
            StashCluster(
                cluster_id=cid,
                dimension=members[0].dimension,
                members=tuple(members),
                centroid=centroid(members),
                totals=sum_items(members),
            )
        )
    logger.info(
        "aggregate: clusters=%d item_types=%d",
        len(clusters),
        len({k for c in clusters for k in c.totals}),
    )
    return clusters
