"""Adapter from decoded block entities to :class:`ContainerRecord` values."""

from __future__ import annotations

import typing as t
from dataclasses import dataclass

from stashfinder.errors import ChunkDecodeError, RegionDecodeError
from stashfinder.models import ContainerKind, ContainerRecord, ItemStack
from stashfinder.reader.base import MapReader, RegionRef
from stashfinder.stages.quadtree import WORLD_LIMIT
from stashfinder.utils import get_logger

logger = get_logger(__name__)


class MalformedBlockEntity(ValueError):
    pass


@dataclass(frozen=True)
class DecodeResult:
    source: str
    dimension: str
    records: t.Tuple[ContainerRecord, ...]
    soft_errors: int = 0
    failed: bool = False


def _as_int(value: t.Any, what: str) -> int:
    # bool is an int subclass but never a valid coordinate or count
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedBlockEntity(f"{what} is not an integer: {value!r}")
    return value


def _nested_entries(raw: t.Mapping[str, t.Any]) -> t.List[t.Any]:
    """Container contents carried by an item (shulker boxes)."""
    components = raw.get("components")
    if isinstance(components, dict) and "minecraft:container" in components:
        # 1.20.5+: [{"slot": n, "item": {"id": ..., "count": ...}}]
        out = []
        for entry in components["minecraft:container"] or []:
            if not isinstance(entry, dict) or not isinstance(entry.get("item"), dict):
                raise MalformedBlockEntity("malformed container component entry")
            out.append(entry["item"])
        return out
    tag = raw.get("tag")
    if isinstance(tag, dict):
        bet = tag.get("BlockEntityTag")
        if isinstance(bet, dict) and isinstance(bet.get("Items"), list):
            return bet["Items"]
    return []


def parse_items(entries: t.Any, *, expand_nested: bool = False) -> t.List[ItemStack]:
    """Parse an ``Items`` list into item stacks, skipping empty slots.

    Raises :class:`MalformedBlockEntity` on entries that cannot be read.
    """
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise MalformedBlockEntity("Items is not a list")

    stacks: t.List[ItemStack] = []
    for index, raw in enumerate(entries):
        if not isinstance(raw, dict):
            raise MalformedBlockEntity(f"item entry {index} is not a compound")
        slot = _as_int(raw.get("Slot", raw.get("slot", index)), "Slot")
        item_id = raw.get("id")
        if item_id is None:
            continue
        if not isinstance(item_id, str):
            raise MalformedBlockEntity(f"item id is not a string: {item_id!r}")
        if "Count" in raw:
            count = _as_int(raw["Count"], "Count")
        else:
            # 1.20.5+ omits count for single items
            count = _as_int(raw.get("count", 1), "count")
        if count <= 0 or not item_id or item_id == "minecraft:air":
            continue
        stacks.append(ItemStack(slot=slot, item_id=item_id, count=count))

        if expand_nested:
            for inner in parse_items(_nested_entries(raw), expand_nested=True):
                stacks.append(ItemStack(slot=slot, item_id=inner.item_id, count=inner.count))
    return stacks


class DecodedDataAdapter:
    """Turns one region's block entities into container records.

    A malformed block entity or an undecodable chunk is dropped and counted as
    a soft error; only an unreadable region file fails the whole file.
    """

    def __init__(self, reader: MapReader, *, exclude_loot: bool, expand_nested: bool = False):
        self.reader = reader
        self.exclude_loot = exclude_loot
        self.expand_nested = expand_nested

    def to_record(self, entity: t.Mapping[str, t.Any], dimension: str, source: str = "") -> t.Optional[ContainerRecord]:
        if not isinstance(entity, dict):
            raise MalformedBlockEntity("block entity is not a compound")
        kind = ContainerKind.from_block_entity_id(str(entity.get("id") or ""))
        if kind is None:
            return None
        if self.exclude_loot and entity.get("LootTable"):
            return None
        pos = (
            _as_int(entity.get("x"), "x"),
            _as_int(entity.get("y"), "y"),
            _as_int(entity.get("z"), "z"),
        )
        if abs(pos[0]) > WORLD_LIMIT or abs(pos[2]) > WORLD_LIMIT:
            raise MalformedBlockEntity(f"position outside the world border: {pos}")
        items = parse_items(entity.get("Items"), expand_nested=self.expand_nested)
        return ContainerRecord(
            dimension=dimension,
            position=pos,
            kind=kind,
            items=tuple(items),
            source=source,
        )

    def decode(self, region: RegionRef) -> DecodeResult:
        records: t.List[ContainerRecord] = []
        soft_errors = 0
        try:
            for chunk in self.reader.chunks(region):
                if isinstance(chunk, ChunkDecodeError):
                    logger.warning("adapter: skipped chunk in %s: %s", region.label, chunk)
                    soft_errors += 1
                    continue
                try:
                    entities = list(self.reader.block_entities(chunk))
                except (ValueError, TypeError, KeyError, AttributeError) as e:
                    logger.warning("adapter: unreadable block entities in %s: %s", region.label, e)
                    soft_errors += 1
                    continue
                for entity in entities:
                    try:
                        rec = self.to_record(entity, region.dimension, region.label)
                    except MalformedBlockEntity as e:
                        logger.warning("adapter: dropped block entity in %s: %s", region.label, e)
                        soft_errors += 1
                        continue
                    if rec is not None:
                        records.append(rec)
        except RegionDecodeError as e:
            logger.warning("adapter: region %s skipped: %s", region.label, e)
            return DecodeResult(
                source=region.label,
                dimension=region.dimension,
                records=(),
                soft_errors=soft_errors + 1,
                failed=True,
            )

        logger.debug("adapter: %s containers=%d soft_errors=%d", region.label, len(records), soft_errors)
        return DecodeResult(
            source=region.label,
            dimension=region.dimension,
            records=tuple(records),
            soft_errors=soft_errors,
        )
