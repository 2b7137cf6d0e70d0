# src/magbasin/cli.py
"""Command line entry point: ``magbasin render | classify | config show``."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from magbasin.analysis.basin import GridSpec, basin_map
from magbasin.analysis.classify import classify_point
from magbasin.config import RunConfig, default_config, dump_config, load_config
from magbasin.errors import MagbasinError
from magbasin.plot.basin import save_basin_image
from magbasin.runtime.runner_api import Status
from magbasin.utils.timer import Timer

__all__ = ["main"]


def _resolve_config(path: str | None) -> RunConfig:
    return load_config(path) if path else default_config()


def _cmd_render(args: argparse.Namespace) -> int:
    cfg = _resolve_config(args.config)
    grid = cfg.grid
    if args.resolution is not None or args.extent is not None:
        grid = GridSpec(
            resolution=args.resolution if args.resolution is not None else grid.resolution,
            extent=args.extent if args.extent is not None else grid.extent,
        )
    out = Path(args.out) if args.out else cfg.output

    print(f"integrating {grid.n_points} points")
    with Timer("timing"):
        basin = basin_map(
            cfg.system,
            cfg.integrator,
            grid,
            config=cfg.classifier,
            jit=not args.no_jit,
            parallel_mode=args.parallel_mode,
            max_workers=args.workers,
        )
    written = save_basin_image(basin, out)
    print(f"wrote {written}")
    return 0


def _cmd_classify(args: argparse.Namespace) -> int:
    cfg = _resolve_config(args.config)
    result = classify_point(
        cfg.system,
        cfg.integrator,
        [args.x, args.y, args.vx, args.vy],
        cfg.classifier,
        jit=not args.no_jit,
    )
    print(f"converge_result={result.converge_result}")
    print(f"converge_time={result.converge_time:.6g}")
    print(f"step_count={result.step_count}")
    print(f"status={Status(result.status).name}")
    return 0


def _cmd_config_show(args: argparse.Namespace) -> int:
    cfg = _resolve_config(args.config)
    sys.stdout.write(dump_config(cfg))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="magbasin", description="Magnetic pendulum basin maps")
    sub = parser.add_subparsers(dest="command", required=True)

    render = sub.add_parser("render", help="classify the grid and write a PNG")
    render.add_argument("--config", help="TOML config path (default: reference run)")
    render.add_argument("--out", help="output PNG path (default: [output].path)")
    render.add_argument("--resolution", type=float)
    render.add_argument("--extent", type=float)
    render.add_argument("--no-jit", action="store_true", help="run kernels as plain Python")
    render.add_argument(
        "--parallel-mode", default="auto", choices=("auto", "numba", "threads", "none"),
    )
    render.add_argument("--workers", type=int, default=None, help="thread count for --parallel-mode threads")
    render.set_defaults(func=_cmd_render)

    classify = sub.add_parser("classify", help="classify one starting state")
    classify.add_argument("x", type=float)
    classify.add_argument("y", type=float)
    classify.add_argument("--vx", type=float, default=0.0)
    classify.add_argument("--vy", type=float, default=0.0)
    classify.add_argument("--config")
    classify.add_argument("--no-jit", action="store_true")
    classify.set_defaults(func=_cmd_classify)

    config = sub.add_parser("config", help="configuration helpers")
    config_sub = config.add_subparsers(dest="config_command", required=True)
    show = config_sub.add_parser("show", help="print the resolved configuration as TOML")
    show.add_argument("--config")
    show.set_defaults(func=_cmd_config_show)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.func(args))
    except (MagbasinError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
