# webembed/cli/main.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

from webembed.core.errors import WebEmbedError

from webembed.cli.args import config_from_args, parse_args
from webembed.cli.commands import (
    cmd_assets,
    cmd_script,
    cmd_serve,
    configure_logging,
)


def main(argv: Optional[list[str]] = None) -> int:
    try:
        args = parse_args(argv)
        configure_logging(
            verbose=args.verbose,
            log_file=Path(args.log_file) if args.log_file else None,
        )
        cfg = config_from_args(args)

        if args.cmd == "serve":
            return cmd_serve(args, cfg)
        if args.cmd == "assets":
            return cmd_assets(args, cfg)
        if args.cmd == "script":
            return cmd_script(args, cfg)

        return 2
    except WebEmbedError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
