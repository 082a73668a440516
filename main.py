from __future__ import annotations

import argparse
import asyncio
from dataclasses import replace
import json
import logging
from pathlib import Path

from cardpress_core.core import (
    Card,
    ConfigurationError,
    RenderConfig,
    build_card_renderer,
    load_render_config,
)

LOGGER = logging.getLogger("cardpress")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="cardpress")
    sub = parser.add_subparsers(dest="command", required=True)

    compile_cmd = sub.add_parser("compile", help="Compile a card into its primitive drawing instructions (JSON).")
    _add_common_args(compile_cmd)
    compile_cmd.add_argument("--indent", type=int, default=2)

    draw = sub.add_parser("draw", help="Compile and paint a card, saving the result as PNG.")
    _add_common_args(draw)
    draw.add_argument("--out", type=Path, required=True)
    args = parser.parse_args(argv)

    config = _resolve_config(args.config, args.templates)
    logging.basicConfig(level=config.log_level, format="%(levelname)s %(name)s: %(message)s")
    if config.template_dir is None:
        raise ConfigurationError("a template directory is required (--templates or template_dir in --config)")

    card = _load_card(args.card)
    renderer = build_card_renderer(config)

    if args.command == "compile":
        primitives = asyncio.run(renderer.build_async(card)) if args.use_async else renderer.build(card)
        print(json.dumps([p.to_dict() for p in primitives], indent=args.indent))
        return

    if args.command == "draw":
        surface = asyncio.run(renderer.draw_async(card)) if args.use_async else renderer.draw(card)
        args.out.parent.mkdir(parents=True, exist_ok=True)
        surface.save(args.out)
        LOGGER.info("wrote %dx%d card to %s", surface.width, surface.height, args.out)
        print(f"wrote {args.out}")
        return

    raise RuntimeError(f"unsupported command: {args.command}")


def _add_common_args(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("card", type=Path, help="Card JSON document (templateName, data, choices, defaultData).")
    cmd.add_argument("--templates", type=Path, default=None, help="Directory of <name>.json templates.")
    cmd.add_argument("--config", type=Path, default=None, help="cardpress TOML config file.")
    cmd.add_argument(
        "--async",
        dest="use_async",
        action="store_true",
        help="Fetch image/svg resources concurrently.",
    )


def _resolve_config(config_path: Path | None, templates: Path | None) -> RenderConfig:
    config = load_render_config(config_path) if config_path is not None else RenderConfig()
    if templates is not None:
        config = replace(config, template_dir=templates)
    return config


def _load_card(path: Path) -> Card:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"card document must be a JSON object: {path}")
    return Card.from_dict(payload)


if __name__ == "__main__":
    main()
