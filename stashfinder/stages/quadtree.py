"""Point quadtree over horizontal (x, z) world coordinates."""

from __future__ import annotations

import typing as t
from dataclasses import dataclass

# Vanilla world border
WORLD_LIMIT = 30_000_000

Point = t.Tuple[float, float]


@dataclass(frozen=True)
class Bounds:
    """Half-open rectangle ``[x, x + width) x [z, z + height)``."""

    x: float
    z: float
    width: float
    height: float

    @classmethod
    def world(cls, limit: int = WORLD_LIMIT) -> "Bounds":
        # +1 so that the positive limit itself is inside
        return cls(-limit, -limit, 2 * limit + 1, 2 * limit + 1)

    def contains(self, px: float, pz: float) -> bool:
        return self.x <= px < self.x + self.width and self.z <= pz < self.z + self.height

    def intersects(self, min_x: float, min_z: float, max_x: float, max_z: float) -> bool:
        # closed query rectangle against half-open node
        return not (
            max_x < self.x
            or min_x >= self.x + self.width
            or max_z < self.z
            or min_z >= self.z + self.height
        )

    def quarters(self) -> t.List["Bounds"]:
        hw = self.width / 2.0
        hh = self.height / 2.0
        return [
            Bounds(self.x, self.z, hw, hh),
            Bounds(self.x + hw, self.z, hw, hh),
            Bounds(self.x + hw, self.z + hh, hw, hh),
            Bounds(self.x, self.z + hh, hw, hh),
        ]


class QuadTree:
    """Inserting and querying payloads located at 2D points.

    Leaves hold up to ``capacity`` points and split into four quadrants on
    overflow, unless ``max_depth`` is reached.
    """

    def __init__(
        self,
        bounds: t.Optional[Bounds] = None,
        *,
        capacity: int = 8,
        max_depth: int = 32,
        _depth: int = 0,
    ):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.bounds = bounds if bounds is not None else Bounds.world()
        self.capacity = capacity
        self.max_depth = max_depth
        self.depth = _depth
        self.elements: t.List[t.Tuple[float, float, t.Any]] = []
        self.children: t.Optional[t.List["QuadTree"]] = None
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> t.Iterator[t.Any]:
        stack = [self]
        while stack:
            node = stack.pop()
            for _, _, payload in node.elements:
                yield payload
            if node.children:
                stack.extend(reversed(node.children))

    def insert(self, point: Point, payload: t.Any) -> None:
        px, pz = point
        if not self.bounds.contains(px, pz):
            raise ValueError(f"point {point} outside quadtree bounds {self.bounds}")
        node = self
        while True:
            node._size += 1
            if node.children is None:
                node.elements.append((px, pz, payload))
                if len(node.elements) > node.capacity:
                    node._split()
                return
            node = node._child_for(px, pz)

    def _child_for(self, px: float, pz: float) -> "QuadTree":
        for child in self.children:  # type: ignore[union-attr]
            if child.bounds.contains(px, pz):
                return child
        raise AssertionError("point inside parent but in no quadrant")

    def _split(self) -> None:
        if self.depth >= self.max_depth:
            return
        self.children = [
            QuadTree(b, capacity=self.capacity, max_depth=self.max_depth, _depth=self.depth + 1)
            for b in self.bounds.quarters()
        ]
        elements, self.elements = self.elements, []
        for px, pz, payload in elements:
            child = self._child_for(px, pz)
            child.elements.append((px, pz, payload))
            child._size += 1
        for child in self.children:
            if len(child.elements) > child.capacity:
                child._split()

    def _collect(self, min_x: float, min_z: float, max_x: float, max_z: float) -> t.Iterator[t.Tuple[float, float, t.Any]]:
        stack = [self]
        while stack:
            node = stack.pop()
            if not node.bounds.intersects(min_x, min_z, max_x, max_z):
                continue
            for el in node.elements:
                if min_x <= el[0] <= max_x and min_z <= el[1] <= max_z:
                    yield el
            if node.children:
                stack.extend(node.children)

    def bbox_query(self, min_point: Point, max_point: Point) -> t.List[t.Any]:
        """All payloads inside the closed rectangle spanned by two corners."""
        x1, z1 = min_point
        x2, z2 = max_point
        min_x, max_x = min(x1, x2), max(x1, x2)
        min_z, max_z = min(z1, z2), max(z1, z2)
        return [payload for _, _, payload in self._collect(min_x, min_z, max_x, max_z)]

    def range_query(self, center: Point, radius: float) -> t.List[t.Any]:
        """All payloads within Euclidean distance ``radius`` of ``center``."""
        if radius < 0:
            raise ValueError("radius must be >= 0")
        cx, cz = center
        r2 = radius * radius
        out = []
        for px, pz, payload in self._collect(cx - radius, cz - radius, cx + radius, cz + radius):
            dx = px - cx
            dz = pz - cz
            if dx * dx + dz * dz <= r2:
                out.append(payload)
        return out
