from __future__ import annotations

import argparse
import json
import logging
import sys

from .api import fetch_server_status, run_command
from .commands import REGISTRY, Role
from .config import load_config
from .errors import OperationFailed, ValidationError
from .net import parse_address


def _emit(payload: object, as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, indent=2))
    elif isinstance(payload, dict):
        for key, value in payload.items():
            print(f"{key}: {value}")
    else:
        print(payload)


def cmd_status(args: argparse.Namespace) -> int:
    cfg = load_config()
    host, port = parse_address(args.address, args.port or cfg.query_port)
    report = fetch_server_status(host, port, timeout_ms=args.timeout_ms or cfg.timeout_ms)
    _emit(report.to_dict(), args.json)
    return 0


def cmd_exec(args: argparse.Namespace) -> int:
    cfg = load_config()
    host, port = parse_address(args.address, args.port or cfg.rcon_port)
    password = args.password if args.password is not None else cfg.rcon_password
    if not password:
        raise ValidationError("password", "pass --password or set MINECRAFT_RCON_PASS")

    output = run_command(
        host,
        port,
        key=args.key.upper(),
        args=args.args,
        role=Role.parse(args.role),
        password=password,
        timeout_ms=args.timeout_ms or cfg.timeout_ms,
        pacing_ms=args.pacing_ms if args.pacing_ms is not None else cfg.pacing_ms,
    )
    _emit({"output": output} if args.json else output, args.json)
    return 0


def cmd_commands(args: argparse.Namespace) -> int:
    rows = {
        key: {"template": spec.template, "enabled": spec.enabled, "admin_only": spec.admin_only}
        for key, spec in REGISTRY.items()
    }
    if args.json:
        _emit(rows, True)
        return 0
    for key, row in rows.items():
        flags = [name for name in ("enabled", "admin_only") if row[name]]
        print(f"{key:<12} {row['template']!r:<20} {','.join(flags)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mcwire", description="Minecraft query and RCON client.")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(x: argparse.ArgumentParser) -> None:
        x.add_argument("address", help="HOST or HOST:PORT")
        x.add_argument("--port", type=int, default=None)
        x.add_argument("--timeout-ms", type=int, default=None)
        x.add_argument("--json", action="store_true")

    status = sub.add_parser("status", help="query server status over UDP")
    add_common(status)
    status.set_defaults(func=cmd_status)

    exe = sub.add_parser("exec", help="run a registry command over RCON")
    add_common(exe)
    exe.add_argument("key", help="command key, e.g. KICK or CUSTOM")
    exe.add_argument("args", nargs="*")
    exe.add_argument("--role", default=Role.USER.value, choices=[r.value for r in Role])
    exe.add_argument("--password", default=None)
    exe.add_argument("--pacing-ms", type=float, default=None, help="delay between command and marker frames")
    exe.set_defaults(func=cmd_exec)

    commands = sub.add_parser("commands", help="list known command keys")
    commands.add_argument("--json", action="store_true")
    commands.set_defaults(func=cmd_commands)

    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    try:
        return int(args.func(args))
    except ValidationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except OperationFailed as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
