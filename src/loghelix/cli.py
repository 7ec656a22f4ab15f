"""Command-line access to the activity log and its helix rendering."""
from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import ConfigError, HelixConfig, load_config, resolve_store_dir
from .controller import InteractiveMutationController
from .layout import build_helix
from .store import FileBackend, LogStore, LogType, StorageError


def _load_cli_config(path: Optional[Path]) -> HelixConfig:
    if path is None:
        return HelixConfig()
    return load_config(path)


def _open_store(args: argparse.Namespace) -> tuple[LogStore, HelixConfig]:
    config = _load_cli_config(args.config)
    directory = resolve_store_dir(args.store, config)
    store = LogStore(FileBackend(directory), key=config.store.key)
    return store, config


def _write_json_output(payload: object, output_path: Optional[Path]) -> None:
    text = json.dumps(payload, indent=2)
    if output_path:
        output_path.write_text(text + "\n", encoding="utf-8")
        print(f"Wrote {output_path}")
    else:
        print(text)


def command_log(args: argparse.Namespace) -> None:
    store, _ = _open_store(args)
    if args.page:
        store.page = args.page
    log_type = LogType.from_token(args.type)
    store.append(log_type, args.message)
    print(f"Logged {log_type.value}: {args.message}")


def command_list(args: argparse.Namespace) -> None:
    store, _ = _open_store(args)
    entries = store.list()
    if args.json:
        print(json.dumps([entry.to_payload() for entry in entries], indent=2))
        return
    if not entries:
        print("Log is empty.")
        return
    for idx, entry in enumerate(entries):
        print(f"{idx}\t{entry.time}\t{entry.type}\t{entry.page}\t{entry.message}")


def command_remove_last(args: argparse.Namespace) -> None:
    store, _ = _open_store(args)
    before = len(store)
    store.remove_last()
    if before:
        print(f"Removed last entry ({before - 1} remaining).")
    else:
        print("Log is empty; nothing removed.")


def command_clear(args: argparse.Namespace) -> None:
    store, _ = _open_store(args)
    store.clear()
    print("Log cleared.")


def command_layout(args: argparse.Namespace) -> None:
    store, config = _open_store(args)
    geometry = build_helix(store.list(), config.layout)
    if args.out:
        _write_json_output(geometry.to_payload(), args.out)
        return
    print(f"Backbone points per strand: {len(geometry.strand1)}")
    print(f"Bridges: {len(geometry.bridges)}")
    print(f"Height: {geometry.height:.3f}")


def command_render(args: argparse.Namespace) -> None:
    from .render import save_helix_png

    store, config = _open_store(args)
    geometry = build_helix(store.list(), config.layout)
    save_helix_png(geometry, str(args.out), title=args.title)
    print(f"Wrote {args.out}")


def command_animate(args: argparse.Namespace) -> None:
    from .highlight import ProximityHighlighter
    from .render import animate_helix

    store, config = _open_store(args)
    geometry = build_helix(store.list(), config.layout)
    highlight = config.highlight
    highlighter = ProximityHighlighter(
        highlight.threshold,
        active_opacity=highlight.active_opacity,
        dimmed_opacity=highlight.dimmed_opacity,
        idle_opacity=highlight.idle_opacity,
    )
    query_points = None
    if args.query:
        query_points = [tuple(args.query)]
    count = animate_helix(
        geometry,
        str(args.out),
        frames=args.frames,
        fps=args.fps,
        query_points=query_points,
        highlighter=highlighter,
    )
    print(f"Wrote {args.out} ({count} frames)")


def command_viewer(args: argparse.Namespace) -> None:
    from .viewer import launch_viewer

    store, config = _open_store(args)
    controller = InteractiveMutationController(store, config=config.layout, rng=random.Random(args.seed))
    store.log_init()
    raise SystemExit(launch_viewer(controller))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Record activity events and render them as a double helix.",
    )
    parser.add_argument("--store", type=Path, help="Directory holding the persisted log (default: $LOGHELIX_STORE or ~/.loghelix).")
    parser.add_argument("--config", type=Path, help="YAML or JSON configuration file.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    log = subparsers.add_parser("log", help="Append an event to the log.")
    log.add_argument("--type", default=LogType.CUSTOM.value, help="Event type (init, pageChange, click, error, custom, other).")
    log.add_argument("--message", required=True, help="Event message.")
    log.add_argument("--page", help="Page identifier recorded with the event.")
    log.set_defaults(func=command_log)

    list_cmd = subparsers.add_parser("list", help="Print logged events, oldest first.")
    list_cmd.add_argument("--json", action="store_true", help="Emit the raw persisted records.")
    list_cmd.set_defaults(func=command_list)

    remove = subparsers.add_parser("remove-last", help="Delete the most recent event.")
    remove.set_defaults(func=command_remove_last)

    clear = subparsers.add_parser("clear", help="Delete every event.")
    clear.set_defaults(func=command_clear)

    layout = subparsers.add_parser("layout", help="Compute helix geometry for the current log.")
    layout.add_argument("--out", type=Path, help="Write the geometry payload as JSON.")
    layout.set_defaults(func=command_layout)

    render = subparsers.add_parser("render", help="Render the helix to a PNG.")
    render.add_argument("--out", type=Path, required=True, help="Output PNG path.")
    render.add_argument("--title", help="Optional figure title.")
    render.set_defaults(func=command_render)

    animate = subparsers.add_parser("animate", help="Render a rotating GIF of the helix.")
    animate.add_argument("--out", type=Path, required=True, help="Output GIF path.")
    animate.add_argument("--frames", type=int, default=36, help="Number of frames (default: 36).")
    animate.add_argument("--fps", type=int, default=12, help="Frames per second (default: 12).")
    animate.add_argument(
        "--query",
        type=float,
        nargs=3,
        metavar=("X", "Y", "Z"),
        help="Highlight bridges near this point on every frame.",
    )
    animate.set_defaults(func=command_animate)

    viewer = subparsers.add_parser("viewer", help="Open the interactive Qt viewer.")
    viewer.add_argument("--seed", type=int, help="Seed for custom bridge placement.")
    viewer.set_defaults(func=command_viewer)
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    try:
        args.func(args)
    except StorageError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc
    except (ConfigError, ValueError) as exc:
        parser.error(str(exc))


if __name__ == "__main__":  # pragma: no cover - manual invocation path
    main()
