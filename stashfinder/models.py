from __future__ import annotations

import enum
import typing as t
from dataclasses import dataclass, field

Position = t.Tuple[int, int, int]


class ContainerKind(str, enum.Enum):
    CHEST = "chest"
    TRAPPED_CHEST = "trapped_chest"
    BARREL = "barrel"
    SHULKER_BOX = "shulker_box"
    HOPPER = "hopper"
    DISPENSER = "dispenser"
    DROPPER = "dropper"
    FURNACE = "furnace"
    BLAST_FURNACE = "blast_furnace"
    SMOKER = "smoker"
    BREWING_STAND = "brewing_stand"
    CHISELED_BOOKSHELF = "chiseled_bookshelf"
    DECORATED_POT = "decorated_pot"
    CRAFTER = "crafter"

    @classmethod
    def from_block_entity_id(cls, raw: str) -> t.Optional["ContainerKind"]:
        """Map a block-entity id (``minecraft:chest``, ``Chest``...) to a kind.

        Returns ``None`` for block entities that cannot hold items.
        """
        name = (raw or "").strip().lower()
        if ":" in name:
            name = name.split(":", 1)[1]
        name = _LEGACY_IDS.get(name, name)
        if name.endswith("shulker_box"):
            return cls.SHULKER_BOX
        try:
            return cls(name)
        except ValueError:
            return None


# Pre-1.11 block entity ids
_LEGACY_IDS = {
    "trap": "dispenser",
    "cauldron": "brewing_stand",
    "trappedchest": "trapped_chest",
}


@dataclass(frozen=True)
class ItemStack:
    slot: int
    item_id: str
    count: int

    def __post_init__(self):
        if self.count <= 0:
            raise ValueError(f"item stack count must be positive, got {self.count}")


@dataclass(frozen=True)
class ContainerRecord:
    dimension: str
    position: Position
    kind: ContainerKind
    items: t.Tuple[ItemStack, ...] = ()
    # informational only; not part of identity or ordering
    source: str = field(default="", compare=False)

    @property
    def container_id(self) -> str:
        x, y, z = self.position
        return f"{self.dimension}@{x},{y},{z}"

    @property
    def sort_key(self) -> t.Tuple[str, int, int, int, str]:
        x, y, z = self.position
        return (self.dimension, x, y, z, self.kind.value)

    @property
    def order_key(self) -> tuple:
        """``sort_key`` extended so that co-located duplicates still sort totally."""
        return (
            self.sort_key,
            self.source,
            tuple((s.slot, s.item_id, s.count) for s in self.items),
        )

    @property
    def xz(self) -> t.Tuple[int, int]:
        return (self.position[0], self.position[2])


@dataclass(frozen=True)
class StashCluster:
    cluster_id: int
    dimension: str
    members: t.Tuple[ContainerRecord, ...]
    centroid: t.Tuple[float, float, float]
    totals: t.Mapping[str, int]

    @property
    def member_count(self) -> int:
        return len(self.members)

    @property
    def member_ids(self) -> t.FrozenSet[str]:
        return frozenset(m.container_id for m in self.members)


@dataclass(frozen=True)
class Flag:
    cluster: StashCluster
    # (item_id, total, threshold)
    triggering_items: t.Tuple[t.Tuple[str, int, int], ...]
    density_triggered: bool
    score: float
