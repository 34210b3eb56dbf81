import json

import pytest

from conftest import rec
from stashfinder.report import build_report, render, render_json, render_md
from stashfinder.stages.aggregate import aggregate
from stashfinder.stages.flagging import Thresholds, flag_clusters


def _report(flags, **extra):
    kwargs = dict(
        world="/saves/world",
        radius=16,
        quantity_threshold=100,
        density_threshold=50,
        regions_scanned=3,
        regions_failed=["minecraft:overworld/r.1.0.mca"],
        containers_scanned=4,
        clusters_total=2,
        soft_errors=2,
    )
    kwargs.update(extra)
    return build_report(flags, **kwargs)


def _flags():
    clusters = aggregate([
        [rec(0, 0, {"minecraft:diamond": 150}), rec(1, 3, {"minecraft:diamond": 50, "minecraft:dirt": 1})],
        [rec(900, 0, {"minecraft:tnt": 10})],
    ])
    return flag_clusters(clusters, Thresholds(quantity_threshold=100, density_threshold=50))


def test_json_report_is_canonical():
    report = _report(_flags())
    text = render_json(report)
    assert text.endswith("\n")
    assert render_json(report) == text

    data = json.loads(text)
    assert json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True) + "\n" == text
    assert data["regions_failed"] == ["minecraft:overworld/r.1.0.mca"]
    assert len(data["flagged"]) == 1

    fc = data["flagged"][0]
    assert fc["rank"] == 1
    assert fc["centroid"] == [0.5, 64.0, 1.5]
    assert fc["bounds_min"] == [0, 64, 0] and fc["bounds_max"] == [1, 64, 3]
    assert fc["triggering_items"] == [{"item_id": "minecraft:diamond", "count": 200, "threshold": 100}]
    assert fc["totals"] == {"minecraft:diamond": 200, "minecraft:dirt": 1}
    assert fc["containers"] == ["minecraft:overworld@0,64,0", "minecraft:overworld@1,64,3"]
    assert fc["score"] == 2.0


def test_score_and_centroid_rounded():
    clusters = aggregate([[rec(0, 0, {"minecraft:gold_ingot": 10}), rec(1, 0), rec(1, 1)]])
    flags = flag_clusters(clusters, Thresholds(quantity_threshold=3, density_threshold=50))
    fc = json.loads(render_json(_report(flags)))["flagged"][0]
    assert fc["score"] == 3.333333
    assert fc["centroid"] == [0.666667, 64.0, 0.333333]


def test_markdown_lists_flagged_and_failed_regions():
    text = render_md(_report(_flags()))
    assert text.startswith("# Dupe stash report\n")
    assert "| 1 | minecraft:overworld | 0.5, 64, 1.5 | 2 | 2.00 | minecraft:diamond x200 |" in text
    assert "## Failed regions" in text
    assert "- minecraft:overworld/r.1.0.mca" in text


def test_zero_findings_are_still_a_report():
    report = _report([], regions_failed=[], soft_errors=0)
    assert json.loads(render(report, "json"))["flagged"] == []
    assert "No suspicious stashes found." in render(report, "md")


def test_unknown_format_rejected():
    with pytest.raises(ValueError):
        render(_report([]), "xml")
