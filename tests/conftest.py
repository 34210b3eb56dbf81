from __future__ import annotations

import json
import os
import typing as t
from pathlib import Path

# no log files from test runs
os.environ.setdefault("LOG_DIR", "")

import pytest

from stashfinder.errors import ChunkDecodeError, RegionDecodeError
from stashfinder.models import ContainerKind, ContainerRecord, ItemStack
from stashfinder.reader.base import OVERWORLD, MapReader, RegionRef


class JsonMapReader(MapReader):
    """Reads ``*.json`` region files: ``{"chunks": [[block entity, ...], ...]}``.

    A chunk given as the string ``"CORRUPT"`` decodes as a chunk error and a
    file that is not valid JSON fails as a whole.
    """

    suffix = ".json"

    def chunks(self, region: RegionRef) -> t.Iterator[t.Any]:
        try:
            data = json.loads(Path(region.path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise RegionDecodeError(f"unreadable: {e}", region.label) from e
        for i, chunk in enumerate(data.get("chunks", [])):
            if chunk == "CORRUPT":
                yield ChunkDecodeError(f"chunk {i} corrupt", region.label)
                continue
            yield chunk

    def block_entities(self, chunk: t.Any) -> t.Iterator[t.Mapping[str, t.Any]]:
        yield from chunk


def chest(x: int, y: int, z: int, items: t.Optional[t.Dict[str, int]] = None, block_id: str = "minecraft:chest") -> dict:
    entries = [
        {"Slot": slot, "id": item_id, "Count": count}
        for slot, (item_id, count) in enumerate(sorted((items or {}).items()))
    ]
    return {"id": block_id, "x": x, "y": y, "z": z, "Items": entries}


def write_region(world: Path, rel: str, chunks: t.List[t.Any]) -> Path:
    p = world / rel
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps({"chunks": chunks}), encoding="utf-8")
    return p


def rec(
    x: int,
    z: int,
    items: t.Optional[t.Dict[str, int]] = None,
    *,
    y: int = 64,
    dim: str = OVERWORLD,
    kind: ContainerKind = ContainerKind.CHEST,
) -> ContainerRecord:
    stacks = tuple(
        ItemStack(slot=i, item_id=item_id, count=count)
        for i, (item_id, count) in enumerate(sorted((items or {}).items()))
    )
    return ContainerRecord(dimension=dim, position=(x, y, z), kind=kind, items=stacks)


@pytest.fixture
def json_reader() -> JsonMapReader:
    return JsonMapReader()


@pytest.fixture
def ten_region_world(tmp_path: Path) -> Path:
    """Ten valid region files with a diamond stash split over r.0.0 and r.1.0, plus noise."""
    world = tmp_path / "world"
    for i in range(10):
        base = i * 512
        chunks = [
            [chest(base + 1, 64, 1, {"minecraft:cobblestone": 64})],
            [chest(base + 300, 70, 300, {"minecraft:oak_log": 32, "minecraft:torch": 5})],
        ]
        if i == 0:
            chunks.append([chest(500, 64, 10, {"minecraft:diamond": 640}), chest(505, 64, 12, {"minecraft:diamond": 640})])
        if i == 1:
            chunks.append([chest(515, 64, 11, {"minecraft:diamond": 720})])
        write_region(world, f"region/r.{i}.0.json", chunks)
    return world
