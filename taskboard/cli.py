from __future__ import annotations

import argparse
import dataclasses
import json
import sys

import uvicorn

from taskboard.config import GatewayConfig, load_config
from taskboard.gateway.app import create_app
from taskboard.observability import get_json_logger
from taskboard.store import InMemoryTaskStore


def serve(cfg: GatewayConfig) -> int:
    """Run the HTTP service in the foreground until interrupted."""
    app = create_app(InMemoryTaskStore(), cfg)
    get_json_logger("taskboard").info(
        "server starting",
        extra={
            "event": "server_start",
            "attributes": {"host": cfg.host, "port": cfg.port, "api_prefix": cfg.api_prefix},
        },
    )
    uvicorn.run(app, host=cfg.host, port=cfg.port, log_config=None)
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser("taskboard")
    sub = parser.add_subparsers(dest="cmd")

    p_serve = sub.add_parser("serve", help="Run the task API server")
    p_serve.add_argument("--host")
    p_serve.add_argument("--port", type=int)

    sub.add_parser("config", help="Print the effective configuration as JSON")

    args = parser.parse_args(argv)
    cmd = str(getattr(args, "cmd", None) or "serve")
    cfg = load_config()
    if getattr(args, "host", None):
        cfg.host = args.host
    if getattr(args, "port", None) is not None:
        cfg.port = args.port

    if cmd == "config":
        sys.stdout.write(json.dumps(dataclasses.asdict(cfg), indent=2) + "\n")
        raise SystemExit(0)

    raise SystemExit(serve(cfg))


if __name__ == "__main__":
    main()
