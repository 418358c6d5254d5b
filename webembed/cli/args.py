# webembed/cli/args.py
from __future__ import annotations

import argparse
from dataclasses import replace
from typing import Optional

from webembed.app.config import ASSET_MODES, WebEmbedConfig, load_config
from webembed.bridge.message import MessageKind


def parse_bool(v: str) -> bool:
    s = str(v).strip().lower()
    if s in ("1", "true"):
        return True
    if s in ("0", "false"):
        return False
    raise argparse.ArgumentTypeError(f"Invalid bool literal '{v}' (use true/false)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="webembed")
    sub = parser.add_subparsers(dest="cmd", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=None, help="YAML config file (defaults apply when omitted).")
    common.add_argument("--port", type=int, default=None, help="Listening port (0 = any free port).")
    common.add_argument("--root", default=None, help="Bundle root directory.")
    common.add_argument("--mode", choices=ASSET_MODES, default=None, help="Asset store mode.")
    common.add_argument("--archive", default=None, help="Zip archive to preload the bundle from.")
    common.add_argument("--log-file", default=None, help="Also write the app log to this file.")
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")

    ps = sub.add_parser("serve", parents=[common], help="Serve the bundle until interrupted.")
    ps.add_argument("--secs", type=float, default=None, help="Stop after this many seconds.")

    sub.add_parser("assets", parents=[common], help="Preload the manifest and report failures.")

    pscript = sub.add_parser("script", parents=[common], help="Print the script a bridge command becomes.")
    pscript.add_argument("action")
    pscript.add_argument("--kind", choices=[k.value for k in MessageKind], default=MessageKind.COMMAND.value)
    pscript.add_argument("--target", default=None)
    pscript.add_argument("--visible", type=parse_bool, default=None)
    pscript.add_argument("--animation", default=None)
    pscript.add_argument("--message", default=None)
    pscript.add_argument("--value", default=None)

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def config_from_args(args: argparse.Namespace) -> WebEmbedConfig:
    """Load the config file (if any) and apply CLI overrides on top."""
    cfg = load_config(args.config)

    server = cfg.server
    if args.port is not None:
        server = replace(server, port=int(args.port))

    assets = cfg.assets
    if args.root is not None:
        assets = replace(assets, root=args.root)
    if args.archive is not None:
        # an archive only makes sense for preload
        assets = replace(assets, archive=args.archive, mode="preload")
    if args.mode is not None:
        assets = replace(assets, mode=args.mode)

    return replace(cfg, server=server, assets=assets)
