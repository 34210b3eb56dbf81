#!/usr/bin/env python3
import argparse
import sys

from stashfinder.errors import ConfigError, WorldNotFoundError
from stashfinder.orchestrator import run_once
from stashfinder.report import OUTPUT_FORMATS

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CONFIG = 2

_DIMENSION_ALIASES = {
    "overworld": "minecraft:overworld",
    "nether": "minecraft:the_nether",
    "the_nether": "minecraft:the_nether",
    "end": "minecraft:the_end",
    "the_end": "minecraft:the_end",
}


def parse_area(value: str) -> list:
    """``"<x1>,<z1>;<x2>,<z2>"`` -> ``[x1, z1, x2, z2]``."""
    try:
        first, second = value.split(";")
        x1, z1 = (int(v) for v in first.split(","))
        x2, z2 = (int(v) for v in second.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(
            'Area must be given as "<x1>,<z1>;<x2>,<z2>" with integer coordinates and no spaces.'
        )
    return [x1, z1, x2, z2]


def parse_item_threshold(value: str) -> tuple:
    """``"minecraft:diamond=512"`` -> ``("minecraft:diamond", 512)``."""
    pattern, sep, raw = value.rpartition("=")
    if not sep or not pattern:
        raise argparse.ArgumentTypeError("Item threshold must be given as PATTERN=COUNT")
    try:
        return pattern, int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Item threshold count is not an integer: {raw!r}")


def parse_dimension(value: str) -> str:
    v = value.strip().lower()
    return _DIMENSION_ALIASES.get(v, v)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Offline tools for Minecraft world saves")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("search-dupe-stashes", help="Find clusters of containers holding suspicious item amounts")
    p.add_argument("world", help="Path to the world save directory")
    p.add_argument("--config", help="Path to YAML config (search_dupe_stashes section)")
    p.add_argument("--radius", type=float, help="Neighbour distance in blocks (> 0)")
    p.add_argument("--quantity-threshold", dest="quantity_threshold", type=int, help="Aggregated item count that flags a cluster")
    p.add_argument("--density-threshold", dest="density_threshold", type=int, help="Container count that flags a cluster")
    p.add_argument("--item-threshold", dest="item_thresholds", type=parse_item_threshold, action="append",
                   metavar="PATTERN=COUNT", help="Per-item threshold override, glob patterns allowed (repeatable)")
    p.add_argument("--dimension", dest="dimensions", type=parse_dimension, action="append",
                   help="Only scan this dimension (repeatable), e.g. overworld, nether, minecraft:the_end")
    p.add_argument("-a", "--area", type=parse_area, help='Restrict to a rectangle: "<x1>,<z1>;<x2>,<z2>"')
    p.add_argument("--exclude-loot", dest="exclude_loot", action="store_true", help="Skip containers with an unrolled loot table")
    p.add_argument("--include-loot", dest="exclude_loot", action="store_false", help="Keep containers with an unrolled loot table")
    p.add_argument("--expand-nested", dest="expand_nested", action="store_true", help="Count shulker box contents inside containers")
    p.add_argument("--no-expand-nested", dest="expand_nested", action="store_false", help="Count shulker boxes as single items")
    p.add_argument("--workers", type=int, help="Decode worker count (default: CPU count)")
    p.add_argument("--executor", choices=["thread", "process"], help="Worker pool type")
    p.add_argument("--format", choices=list(OUTPUT_FORMATS), help="Report format")
    p.add_argument("-o", "--output", help="Write the report to this file instead of stdout")
    p.set_defaults(exclude_loot=None, expand_nested=None)
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = {
        "radius": args.radius,
        "quantity_threshold": args.quantity_threshold,
        "density_threshold": args.density_threshold,
        "item_thresholds": dict(args.item_thresholds) if args.item_thresholds else None,
        "dimensions": sorted(set(args.dimensions)) if args.dimensions else None,
        "area": args.area,
        "exclude_loot": args.exclude_loot,
        "expand_nested": args.expand_nested,
        "workers": args.workers,
        "executor": args.executor,
        "format": args.format,
        "output": args.output,
    }

    try:
        run_once(args.world, args.config, overrides=overrides)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_CONFIG
    except WorldNotFoundError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FATAL
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
