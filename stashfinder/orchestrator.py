import math
import os
import time
import uuid
from pathlib import Path
from typing import Dict, Any, Optional

from stashfinder.errors import ConfigError, WorldNotFoundError
from stashfinder.fanout import FanoutCoordinator
from stashfinder.reader.adapter import DecodedDataAdapter
from stashfinder.reader.base import MapReader
from stashfinder.report import StashReport, build_report, render
from stashfinder.stages.aggregate import aggregate
from stashfinder.stages.clustering import cluster, filter_area
from stashfinder.stages.flagging import Thresholds, flag_clusters
from stashfinder.utils import get_logger, load_config, validate_config, write_output

logger = get_logger(__name__)


def _apply_overrides(cfg: Dict[str, Any], overrides: Optional[Dict[str, Any]]) -> None:
    if not overrides:
        return

    for key, value in overrides.items():
        if value is None:
            continue
        if key == "item_thresholds":
            # CLI patterns take precedence over file patterns
            merged = dict(value)
            for pattern, thr in (cfg.get("item_thresholds") or {}).items():
                merged.setdefault(pattern, thr)
            cfg["item_thresholds"] = merged
        else:
            cfg[key] = value


def resolve_config(config_path: Optional[str], overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Load, override and validate; raises ``ConfigError`` before any scan."""
    cfg = load_config(config_path)
    _apply_overrides(cfg, overrides)
    validate_config(cfg)
    # JSON Schema bounds let NaN and infinity through
    if not math.isfinite(cfg["radius"]):
        raise ConfigError(f"radius must be a finite number, got {cfg['radius']}")
    return cfg


def _check_world(world_path: str) -> Path:
    root = Path(world_path)
    if not root.exists():
        raise WorldNotFoundError(world_path)
    if not root.is_dir():
        raise WorldNotFoundError(world_path, "is not a directory")
    if not os.access(root, os.R_OK | os.X_OK):
        raise WorldNotFoundError(world_path, "is not readable")
    return root


def _default_reader() -> MapReader:
    from stashfinder.reader.nbt_reader import NbtMapReader

    return NbtMapReader()


def search_dupe_stashes(world_path: str, cfg: Dict[str, Any], *, reader: Optional[MapReader] = None) -> StashReport:
    """Run the whole scan for an already validated configuration."""
    # Every setting is checked before the first file is touched
    thresholds = Thresholds(
        quantity_threshold=int(cfg["quantity_threshold"]),
        density_threshold=int(cfg["density_threshold"]),
        item_thresholds=tuple((cfg.get("item_thresholds") or {}).items()),
    )
    radius = cfg["radius"]
    area = cfg.get("area")
    reader = reader or _default_reader()
    adapter = DecodedDataAdapter(
        reader,
        exclude_loot=bool(cfg["exclude_loot"]),
        expand_nested=bool(cfg.get("expand_nested", False)),
    )
    coordinator = FanoutCoordinator(
        adapter,
        max_workers=cfg.get("workers"),
        executor=cfg.get("executor", "thread"),
    )

    root = _check_world(world_path)
    regions = reader.region_files(root, cfg.get("dimensions"))
    logger.info("world=%s regions=%d dimensions=%s", world_path, len(regions), sorted({r.dimension for r in regions}))

    t0 = time.monotonic()
    fan = coordinator.run(regions)
    logger.info("decoded containers=%d took_ms=%d", len(fan.records), int((time.monotonic() - t0) * 1000))

    t1 = time.monotonic()
    records = filter_area(fan.records, tuple(area) if area else None)
    components = cluster(records, radius=radius)
    clusters = aggregate(components)
    flags = flag_clusters(clusters, thresholds)
    logger.info("analysed clusters=%d flagged=%d took_ms=%d", len(clusters), len(flags), int((time.monotonic() - t1) * 1000))

    return build_report(
        flags,
        world=str(world_path),
        radius=radius,
        quantity_threshold=thresholds.quantity_threshold,
        density_threshold=thresholds.density_threshold,
        regions_scanned=fan.regions_scanned,
        regions_failed=fan.regions_failed,
        containers_scanned=len(records),
        clusters_total=len(clusters),
        soft_errors=fan.soft_errors,
    )


def run_once(
    world_path: str,
    config_path: Optional[str] = None,
    *,
    overrides: Optional[Dict[str, Any]] = None,
    reader: Optional[MapReader] = None,
) -> StashReport:
    """Execute the scan once and emit the rendered report."""
    run_id = uuid.uuid4().hex[:8]
    logger.info("=== run start id=%s ===", run_id)

    try:
        cfg = resolve_config(config_path, overrides)
        report = search_dupe_stashes(world_path, cfg, reader=reader)
        out = write_output(render(report, cfg.get("format", "json")), cfg.get("output"))
        if out:
            logger.info("report written path=%s", out)
        logger.info("OK: flagged=%d soft_errors=%d", len(report.flagged), report.soft_errors)
        return report
    except Exception as e:
        logger.error("Scan failed: %s", e)
        raise
    finally:
        logger.info("=== run end id=%s ===", run_id)
