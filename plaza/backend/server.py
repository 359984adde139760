"""Run the plaza API with uvicorn."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace

from plaza.backend.config import PlazaSettings, load_settings


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Plaza server")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--log-level", default=None)
    parser.add_argument("--no-demo", action="store_true", help="Start without demo users")
    parser.add_argument("--latency-scale", type=float, default=None)
    return parser.parse_args(argv)


def apply_overrides(settings: PlazaSettings, args: argparse.Namespace) -> PlazaSettings:
    overrides: dict[str, object] = {}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.log_level is not None:
        overrides["log_level"] = args.log_level.upper()
    if args.no_demo:
        overrides["seed_demo"] = False
    if args.latency_scale is not None:
        overrides["latency_scale"] = args.latency_scale
    return replace(settings, **overrides)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def main(argv: list[str] | None = None) -> int:
    settings = apply_overrides(load_settings(), parse_args(argv))
    setup_logging(settings.log_level)

    import uvicorn

    from plaza.backend.api import create_app
    from plaza.backend.service import PlazaService

    service = PlazaService(
        latency_scale=settings.latency_scale,
        seed_demo=settings.seed_demo,
        dwell_seconds=settings.dwell_seconds,
    )
    uvicorn.run(create_app(service=service), host=settings.host, port=settings.port, log_config=None)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
