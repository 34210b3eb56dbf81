import pytest

from conftest import chest, write_region
from stashfinder.models import ContainerKind
from stashfinder.reader.adapter import DecodedDataAdapter, MalformedBlockEntity, parse_items
from stashfinder.reader.base import NETHER, OVERWORLD, RegionRef


@pytest.mark.parametrize("raw,kind", [
    ("minecraft:chest", ContainerKind.CHEST),
    ("minecraft:barrel", ContainerKind.BARREL),
    ("minecraft:lime_shulker_box", ContainerKind.SHULKER_BOX),
    ("minecraft:shulker_box", ContainerKind.SHULKER_BOX),
    ("Chest", ContainerKind.CHEST),
    ("Trap", ContainerKind.DISPENSER),
    ("minecraft:sign", None),
    ("", None),
])
def test_container_kind_mapping(raw, kind):
    assert ContainerKind.from_block_entity_id(raw) is kind


def test_parse_items_skips_empty_slots_and_reads_both_count_spellings():
    stacks = parse_items([
        {"Slot": 0, "id": "minecraft:diamond", "Count": 64},
        {"Slot": 1, "id": "minecraft:air", "Count": 1},
        {"Slot": 2, "id": "minecraft:dirt", "Count": 0},
        {"slot": 3, "id": "minecraft:emerald", "count": 12},
        {"Slot": 4, "id": "minecraft:elytra"},
    ])
    assert [(s.slot, s.item_id, s.count) for s in stacks] == [
        (0, "minecraft:diamond", 64),
        (3, "minecraft:emerald", 12),
        (4, "minecraft:elytra", 1),
    ]


@pytest.mark.parametrize("entries", [
    "not a list",
    [42],
    [{"Slot": 0, "id": 7, "Count": 1}],
    [{"Slot": 0, "id": "minecraft:dirt", "Count": "many"}],
    [{"Slot": True, "id": "minecraft:dirt", "Count": 1}],
])
def test_parse_items_rejects_malformed(entries):
    with pytest.raises(MalformedBlockEntity):
        parse_items(entries)


def test_nested_shulker_contents_expanded_in_both_formats():
    legacy = {
        "Slot": 5, "id": "minecraft:white_shulker_box", "Count": 1,
        "tag": {"BlockEntityTag": {"Items": [{"Slot": 0, "id": "minecraft:diamond_block", "Count": 64}]}},
    }
    modern = {
        "Slot": 6, "id": "minecraft:black_shulker_box", "count": 1,
        "components": {"minecraft:container": [
            {"slot": 0, "item": {"id": "minecraft:diamond_block", "count": 64}},
            {"slot": 1, "item": {"id": "minecraft:tnt", "count": 10}},
        ]},
    }
    flat = parse_items([legacy, modern])
    assert [s.item_id for s in flat] == ["minecraft:white_shulker_box", "minecraft:black_shulker_box"]

    nested = parse_items([legacy, modern], expand_nested=True)
    assert [(s.slot, s.item_id, s.count) for s in nested] == [
        (5, "minecraft:white_shulker_box", 1),
        (5, "minecraft:diamond_block", 64),
        (6, "minecraft:black_shulker_box", 1),
        (6, "minecraft:diamond_block", 64),
        (6, "minecraft:tnt", 10),
    ]


def test_loot_containers_follow_exclude_switch(json_reader):
    entity = dict(chest(1, 2, 3), LootTable="minecraft:chests/simple_dungeon")
    assert DecodedDataAdapter(json_reader, exclude_loot=True).to_record(entity, OVERWORLD) is None
    rec = DecodedDataAdapter(json_reader, exclude_loot=False).to_record(entity, OVERWORLD)
    assert rec is not None and rec.position == (1, 2, 3)


def test_decode_counts_soft_errors_without_aborting(tmp_path, json_reader):
    path = write_region(tmp_path, "region/r.0.0.json", [
        [
            chest(0, 64, 0, {"minecraft:diamond": 5}),
            {"id": "minecraft:sign", "x": 1, "y": 64, "z": 1},
            {"id": "minecraft:chest", "x": "bad", "y": 64, "z": 0},
            {"id": "minecraft:barrel", "x": 2, "y": 64, "z": 2, "Items": [{"Slot": 0, "id": "minecraft:dirt", "Count": "x"}]},
        ],
        "CORRUPT",
        [chest(3, 65, 3, {"minecraft:emerald": 7}, block_id="minecraft:trapped_chest")],
    ])
    adapter = DecodedDataAdapter(json_reader, exclude_loot=True)
    res = adapter.decode(RegionRef(dimension=NETHER, path=str(path)))

    assert not res.failed
    assert res.soft_errors == 3
    assert [(r.kind, r.position) for r in res.records] == [
        (ContainerKind.CHEST, (0, 64, 0)),
        (ContainerKind.TRAPPED_CHEST, (3, 65, 3)),
    ]
    assert all(r.dimension == NETHER for r in res.records)
    assert res.records[0].source == f"{NETHER}/r.0.0.json"


def test_unreadable_region_fails_whole_file(tmp_path, json_reader):
    bad = tmp_path / "region" / "r.0.0.json"
    bad.parent.mkdir(parents=True)
    bad.write_bytes(b"\x00\x01 not json")
    res = DecodedDataAdapter(json_reader, exclude_loot=True).decode(RegionRef(OVERWORLD, str(bad)))
    assert res.failed and res.soft_errors == 1 and res.records == ()


def test_region_files_discovers_dimensions(tmp_path, json_reader):
    write_region(tmp_path, "region/r.0.0.json", [])
    write_region(tmp_path, "region/r.-1.0.json", [])
    write_region(tmp_path, "DIM-1/region/r.0.0.json", [])
    write_region(tmp_path, "DIM1/region/r.0.0.json", [])
    write_region(tmp_path, "dimensions/mymod/mining/region/r.0.0.json", [])
    (tmp_path / "region" / "notes.txt").write_text("ignored")

    refs = json_reader.region_files(tmp_path)
    assert [(r.dimension, r.name) for r in refs] == [
        ("minecraft:overworld", "r.-1.0.json"),
        ("minecraft:overworld", "r.0.0.json"),
        ("minecraft:the_end", "r.0.0.json"),
        ("minecraft:the_nether", "r.0.0.json"),
        ("mymod:mining", "r.0.0.json"),
    ]
    only_nether = json_reader.region_files(tmp_path, ["minecraft:the_nether"])
    assert [r.dimension for r in only_nether] == ["minecraft:the_nether"]


def test_position_past_world_border_is_malformed(json_reader):
    adapter = DecodedDataAdapter(json_reader, exclude_loot=True)
    with pytest.raises(MalformedBlockEntity):
        adapter.to_record(chest(30_000_001, 64, 0), OVERWORLD)
    assert adapter.to_record(chest(-30_000_000, 64, 30_000_000), OVERWORLD) is not None
