"""Decode contract consumed by the scanner.

The engine never touches the save format directly: it only lists region files
and asks a :class:`MapReader` for the chunks of a region and the block
entities of a chunk. Block entities are handed over as plain Python mappings
(``{"id": ..., "x": ..., "y": ..., "z": ..., "Items": [...]}``) so a new save
format only needs a new reader.
"""

from __future__ import annotations

import abc
import typing as t
from dataclasses import dataclass
from pathlib import Path

OVERWORLD = "minecraft:overworld"
NETHER = "minecraft:the_nether"
END = "minecraft:the_end"

# Legacy per-dimension folders relative to the world root
_LEGACY_DIMENSION_DIRS = (
    (OVERWORLD, Path("region")),
    (NETHER, Path("DIM-1") / "region"),
    (END, Path("DIM1") / "region"),
)


@dataclass(frozen=True)
class RegionRef:
    dimension: str
    path: str

    @property
    def name(self) -> str:
        return Path(self.path).name

    @property
    def label(self) -> str:
        return f"{self.dimension}/{self.name}"


def dimension_dirs(world_root: Path) -> t.List[t.Tuple[str, Path]]:
    """Return ``(dimension, region_dir)`` pairs present under ``world_root``."""
    found: t.Dict[str, Path] = {}
    for dim, rel in _LEGACY_DIMENSION_DIRS:
        d = world_root / rel
        if d.is_dir():
            found[dim] = d
    # 1.16+ datapack / 1.21+ vanilla layout: dimensions/<namespace>/<name>/region
    dims_root = world_root / "dimensions"
    if dims_root.is_dir():
        for region_dir in sorted(dims_root.glob("*/*/region")):
            if not region_dir.is_dir():
                continue
            ns = region_dir.parent.parent.name
            name = region_dir.parent.name
            found.setdefault(f"{ns}:{name}", region_dir)
    return sorted(found.items())


class MapReader(abc.ABC):
    """Capability interface over a world save: list and decode operations only."""

    #: file suffix of region files handled by this reader
    suffix: str = ".mca"

    def region_files(
        self,
        world_root: t.Union[str, Path],
        dimensions: t.Optional[t.Iterable[str]] = None,
    ) -> t.List[RegionRef]:
        root = Path(world_root)
        wanted = set(dimensions) if dimensions else None
        refs: t.List[RegionRef] = []
        for dim, region_dir in dimension_dirs(root):
            if wanted is not None and dim not in wanted:
                continue
            for p in sorted(region_dir.glob(f"*{self.suffix}")):
                if p.is_file():
                    refs.append(RegionRef(dimension=dim, path=str(p)))
        return refs

    @abc.abstractmethod
    def chunks(self, region: RegionRef) -> t.Iterator[t.Any]:
        """Yield decoded chunks of ``region``.

        Raises :class:`~stashfinder.errors.RegionDecodeError` when the file as
        a whole cannot be read. A chunk that cannot be decoded is yielded as a
        :class:`~stashfinder.errors.ChunkDecodeError` instance so that the
        remaining chunks are still produced.
        """

    @abc.abstractmethod
    def block_entities(self, chunk: t.Any) -> t.Iterator[t.Mapping[str, t.Any]]:
        """Yield the block entities of a decoded chunk as plain mappings."""
