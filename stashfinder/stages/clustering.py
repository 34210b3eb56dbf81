from __future__ import annotations

import typing as t
from collections import deque

from stashfinder.models import ContainerRecord
from stashfinder.stages.quadtree import QuadTree
from stashfinder.utils import get_logger

logger = get_logger(__name__)

Area = t.Tuple[int, int, int, int]


def build_indexes(records: t.Iterable[ContainerRecord]) -> t.Dict[str, QuadTree]:
    """One quadtree per dimension; payloads are indices into ``records``."""
    indexes: t.Dict[str, QuadTree] = {}
    for i, rec in enumerate(records):
        qt = indexes.get(rec.dimension)
        if qt is None:
            qt = indexes[rec.dimension] = QuadTree()
        qt.insert(rec.xz, i)
    return indexes


def filter_area(records: t.Sequence[ContainerRecord], area: t.Optional[Area]) -> t.List[ContainerRecord]:
    """Keep records whose (x, z) lies in the closed rectangle ``(x1, z1, x2, z2)``."""
    if area is None:
        return list(records)
    x1, z1, x2, z2 = area
    keep: t.Set[int] = set()
    for qt in build_indexes(records).values():
        keep.update(qt.bbox_query((x1, z1), (x2, z2)))
    out = [rec for i, rec in enumerate(records) if i in keep]
    logger.info("cluster.area: kept=%d from=%d area=%s", len(out), len(records), area)
    return out


def cluster(records: t.Iterable[ContainerRecord], *, radius: float) -> t.List[t.List[ContainerRecord]]:
    """Connected components of the "within ``radius``" relation.

    Containers are adjacent when they share a dimension and their horizontal
    distance is at most ``radius``. Every record ends up in exactly one
    component. Components are listed in order of their smallest member and
    members are sorted, both by ``ContainerRecord.order_key``.
    """
    if radius <= 0:
        raise ValueError(f"radius must be positive, got {radius}")

    ordered = sorted(records, key=lambda r: r.order_key)
    if not ordered:
        return []

    indexes = build_indexes(ordered)
    visited = [False] * len(ordered)
    components: t.List[t.List[ContainerRecord]] = []

    for start in range(len(ordered)):
        if visited[start]:
            continue
        visited[start] = True
        members = [start]
        queue = deque([start])
        while queue:
            cur = ordered[queue.popleft()]
            # indices follow order_key order, so sorting them gives a stable visit order
            for j in sorted(indexes[cur.dimension].range_query(cur.xz, radius)):
                if not visited[j]:
                    visited[j] = True
                    members.append(j)
                    queue.append(j)
        components.append([ordered[i] for i in sorted(members)])

    logger.info(
        "cluster.build: clusters=%d containers=%d radius=%s",
        len(components),
        len(ordered),
        radius,
    )
    return components
