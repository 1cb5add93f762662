from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from packbuilder.core.errors import BuilderError
from packbuilder.core.service import BuilderService
from packbuilder.core.settings import Settings
from packbuilder.core.spec.models import CreateBuilderFlags
from packbuilder.core.stacks import StackConfig


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="packbuilder", description="Compose buildpack builder images")
    sub = ap.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-builder", help="Create a builder image from a builder.toml")
    create.add_argument("repo_name", help="Target image name, e.g. registry.example.com/acme/builder")
    create.add_argument("-b", "--builder-config", required=True, help="Path to builder.toml")
    create.add_argument("-s", "--stack", default="", help="Stack id (default: configured default stack)")
    create.add_argument("--publish", action="store_true", help="Write the image to the registry instead of the daemon")
    create.add_argument("--no-pull", action="store_true", help="Do not pull the stack build image first")

    sub.add_parser("stacks", help="List configured stacks")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8080)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        settings = Settings.from_env()
        logging.basicConfig(level=settings.log_level, format="%(message)s")

        if args.command == "create-builder":
            flags = CreateBuilderFlags(
                repo_name=args.repo_name,
                builder_toml_path=args.builder_config,
                stack_id=args.stack,
                publish=args.publish,
                no_pull=args.no_pull,
            )
            BuilderService(settings=settings).create_builder(flags)
            return 0

        if args.command == "stacks":
            stacks = StackConfig.load(settings.config_path)
            for sid in stacks.list_ids():
                marker = " (default)" if sid == stacks.default_stack_id else ""
                stack = stacks.get(sid)
                print(f"{sid}{marker}\t{', '.join(stack.build_images)}")
            return 0

        if args.command == "serve":
            import uvicorn

            uvicorn.run("packbuilder.api.main:app", host=args.host, port=args.port)
            return 0
    except BuilderError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
