"""CLI entry point for ircdconf."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Sequence

from ircdconf.config.errors import FatalConfigError
from ircdconf.config.loader import initialize_config, load_config
from ircdconf.config.schema import IRCdConfig
from ircdconf.core.logging import configure_logging, get_logger


DEFAULT_CONFIG = Path(__file__).parent / "config" / "defaults.yml"
EXIT_CONFIG_ERROR = 1
EXIT_FATAL = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ircdconf")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Create starter config")
    init_parser.add_argument("--config", type=Path, default=Path("./ircd.yml"))
    init_parser.add_argument("--force", action="store_true")

    check_parser = subparsers.add_parser("check", help="Load and validate a config file")
    check_parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG)

    opers_parser = subparsers.add_parser("opers", help="Show resolved oper classes and opers")
    opers_parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG)

    logs_parser = subparsers.add_parser("logs", help="Show resolved logging directives")
    logs_parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG)

    return parser


def _summary(config: IRCdConfig) -> dict[str, Any]:
    server = config.server
    return {
        "network": config.network.name,
        "server": server.name,
        "datastore": config.datastore.path,
        "listen": list(server.listen),
        "tls_listeners": sorted(config.tls_listeners),
        "sts": server.sts.value() if server.sts.enabled else None,
        "max_sendq_bytes": server.max_sendq.value,
        "ip_cloaking": config.network.ip_cloaking.enabled,
        "connection_throttling": server.connection_throttle.enabled,
        "oper_classes": len(config.oper_classes),
        "opers": len(config.operators),
        "logging_directives": len(config.logging),
    }


def _opers_payload(config: IRCdConfig) -> dict[str, Any]:
    return {
        "oper_classes": {
            name: {
                "title": oper_class.title,
                "whois_line": oper_class.whois_line,
                "capabilities": sorted(oper_class.capabilities),
            }
            for name, oper_class in sorted(config.oper_classes.items())
        },
        "opers": {
            name: {
                "class": operator.oper_class.name,
                "whois_line": operator.whois_line,
                "vhost": operator.vhost,
                "modes": operator.modes,
            }
            for name, operator in sorted(config.operators.items())
        },
    }


def _load(config_path: Path) -> IRCdConfig:
    config = load_config(config_path)
    configure_logging(config.logging, force=True)
    return config


def cmd_init(config_path: Path, force: bool) -> int:
    initialize_config(config_path, force=force)
    print(f"wrote config: {config_path}")
    return 0


def cmd_check(config_path: Path) -> int:
    config = _load(config_path)
    print(json.dumps({"ok": True, **_summary(config)}, indent=2))
    return 0


def cmd_opers(config_path: Path) -> int:
    config = _load(config_path)
    print(json.dumps(_opers_payload(config), indent=2))
    return 0


def cmd_logs(config_path: Path) -> int:
    config = _load(config_path)
    print(json.dumps({"logging": [directive.snapshot() for directive in config.logging]}, indent=2))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "init":
            return cmd_init(args.config, args.force)
        if args.command == "check":
            return cmd_check(args.config)
        if args.command == "opers":
            return cmd_opers(args.config)
        if args.command == "logs":
            return cmd_logs(args.config)
    except FatalConfigError as exc:
        get_logger("ircdconf.cli").critical(str(exc), extra={"log_type": "server"})
        raise SystemExit(EXIT_FATAL) from exc
    except (OSError, ValueError) as exc:
        print(json.dumps({"ok": False, "error": str(exc)}, indent=2))
        return EXIT_CONFIG_ERROR

    parser.error(f"unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
