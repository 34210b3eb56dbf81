from __future__ import annotations

import json
import typing as t

from pydantic import BaseModel, Field

from stashfinder.models import Flag
from stashfinder.utils import get_logger

logger = get_logger(__name__)

OUTPUT_FORMATS = ("json", "md")

# Fixed precision keeps reports byte-identical across runs
_FLOAT_DIGITS = 6


class TriggerItem(BaseModel):
    item_id: str
    count: int
    threshold: int


class FlaggedCluster(BaseModel):
    rank: int
    dimension: str
    centroid: t.Tuple[float, float, float]
    bounds_min: t.Tuple[int, int, int]
    bounds_max: t.Tuple[int, int, int]
    member_count: int
    triggering_items: t.List[TriggerItem] = Field(default_factory=list)
    density_triggered: bool
    score: float
    totals: t.Dict[str, int] = Field(default_factory=dict)
    containers: t.List[str] = Field(default_factory=list)


class StashReport(BaseModel):
    world: str
    radius: float
    quantity_threshold: int
    density_threshold: int
    regions_scanned: int
    regions_failed: t.List[str] = Field(default_factory=list)
    containers_scanned: int
    clusters_total: int
    soft_errors: int
    flagged: t.List[FlaggedCluster] = Field(default_factory=list)


def _flagged_cluster(rank: int, flag: Flag) -> FlaggedCluster:
    c = flag.cluster
    xs, ys, zs = zip(*(m.position for m in c.members))
    return FlaggedCluster(
        rank=rank,
        dimension=c.dimension,
        centroid=tuple(round(v, _FLOAT_DIGITS) for v in c.centroid),
        bounds_min=(min(xs), min(ys), min(zs)),
        bounds_max=(max(xs), max(ys), max(zs)),
        member_count=c.member_count,
        triggering_items=[
            TriggerItem(item_id=item_id, count=count, threshold=thr)
            for item_id, count, thr in flag.triggering_items
        ],
        density_triggered=flag.density_triggered,
        score=round(flag.score, _FLOAT_DIGITS),
        totals=dict(sorted(c.totals.items())),
        containers=[m.container_id for m in c.members],
    )


def build_report(
    flags: t.Sequence[Flag],
    *,
    world: str,
    radius: float,
    quantity_threshold: int,
    density_threshold: int,
    regions_scanned: int,
    regions_failed: t.Sequence[str],
    containers_scanned: int,
    clusters_total: int,
    soft_errors: int,
) -> StashReport:
    return StashReport(
        world=world,
        radius=radius,
        quantity_threshold=quantity_threshold,
        density_threshold=density_threshold,
        regions_scanned=regions_scanned,
        regions_failed=sorted(regions_failed),
        containers_scanned=containers_scanned,
        clusters_total=clusters_total,
        soft_errors=soft_errors,
        flagged=[_flagged_cluster(i, f) for i, f in enumerate(flags, start=1)],
    )


def render_json(report: StashReport) -> str:
    payload = report.model_dump(mode="json")
    return json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n"


def _fmt_pos(p: t.Sequence[float]) -> str:
    return ", ".join(f"{v:g}" for v in p)


def render_md(report: StashReport) -> str:
    lines = [
        "# Dupe stash report",
        "",
        f"- World: `{report.world}`",
        f"- Radius: {report.radius:g}",
        f"- Quantity threshold: {report.quantity_threshold}",
        f"- Density threshold: {report.density_threshold}",
        f"- Regions scanned: {report.regions_scanned} (failed: {len(report.regions_failed)})",
        f"- Containers scanned: {report.containers_scanned}",
        f"- Clusters: {report.clusters_total} (flagged: {len(report.flagged)})",
        f"- Soft decode errors: {report.soft_errors}",
        "",
    ]
    if not report.flagged:
        lines.append("No suspicious stashes found.")
        return "\n".join(lines) + "\n"

    lines += [
        "| # | Dimension | Centroid | Containers | Score | Triggering items |",
        "|---|---|---|---|---|---|",
    ]
    for fc in report.flagged:
        trig = ", ".join(f"{ti.item_id} x{ti.count}" for ti in fc.triggering_items)
        if fc.density_triggered:
            trig = (trig + ", " if trig else "") + "density"
        lines.append(
            f"| {fc.rank} | {fc.dimension} | {_fmt_pos(fc.centroid)} | {fc.member_count} | {fc.score:.2f} | {trig} |"
        )
    if report.regions_failed:
        lines += ["", "## Failed regions", ""]
        lines += [f"- {r}" for r in report.regions_failed]
    return "\n".join(lines) + "\n"


def render(report: StashReport, fmt: str) -> str:
    if fmt == "json":
        return render_json(report)
    if fmt == "md":
        return render_md(report)
    raise ValueError(f"Unknown output format: {fmt}")
