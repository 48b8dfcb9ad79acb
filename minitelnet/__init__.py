"""
minitelnet package init.
Exports the Telnet session classes, configuration helpers and errors.
"""

import argparse
import datetime
import json
import logging
import os
import sys
from typing import List, Optional

from .exceptions import (
    AuthenticationFailed,
    ConfigurationError,
    ConnectionClosed,
    DecodeError,
    MiniTelnetError,
    NotConnectedError,
    TimeoutError,
    TransportError,
    UnexpectedProtocolItem,
    UnknownNegotiationCommand,
)
from .session import AsyncSession, Session, TelnetBuilder, TelnetConfig, build_config


class JSONFormatter(logging.Formatter):
    """JSON formatter with structured logging support."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.datetime.now().isoformat(),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        protocol_phase = getattr(record, "protocol_phase", None)
        if protocol_phase:
            log_entry["protocol_phase"] = protocol_phase

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "WARNING") -> None:
    """
    Setup basic logging configuration.

    JSON lines are emitted instead of plain text when the environment
    variable ``MINITELNET_LOG_JSON`` is ``true``.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    use_json = os.environ.get("MINITELNET_LOG_JSON", "false").lower() == "true"
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    if use_json:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        root.addHandler(handler)
    else:
        logging.basicConfig(level=getattr(logging, level.upper()))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="minitelnet - log in to a Telnet daemon and run commands"
    )
    parser.add_argument("host", help="Host to connect to")
    parser.add_argument(
        "port", type=int, nargs="?", default=23, help="Port (default 23)"
    )
    parser.add_argument(
        "-c",
        "--command",
        dest="commands",
        action="append",
        default=[],
        help="Command to execute (repeatable)",
    )
    parser.add_argument(
        "--prompt",
        dest="prompts",
        action="append",
        required=True,
        help="Shell prompt text (repeatable)",
    )
    parser.add_argument("--user", help="Username; skips login when omitted")
    parser.add_argument(
        "--password",
        default=os.environ.get("MINITELNET_PASSWORD", ""),
        help="Password (default: $MINITELNET_PASSWORD)",
    )
    parser.add_argument("--login-prompt", default="login: ")
    parser.add_argument("--password-prompt", default="Password: ")
    parser.add_argument("--timeout", type=float, default=5.0)
    parser.add_argument("--connect-timeout", type=float, default=10.0)
    parser.add_argument(
        "--raw",
        action="store_true",
        help="Include the echoed command in the output",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
    )
    parser.add_argument(
        "--console",
        action="store_true",
        help="Print status messages to stdout instead of logging them",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point: connect, log in and run the given commands."""
    args = _build_parser().parse_args(argv)
    setup_logging(args.log_level)
    log = logging.getLogger(__name__)
    console_mode = (
        args.console
        or os.environ.get("MINITELNET_CONSOLE_MODE", "false").lower() == "true"
    )

    def report(msg: str, error: bool = False) -> None:
        if console_mode:
            print(msg, file=sys.stderr if error else sys.stdout)
        elif error:
            log.error(msg)
        else:
            log.info(msg)

    try:
        config = build_config(
            args.prompts,
            username_prompt=args.login_prompt,
            password_prompt=args.password_prompt,
            connect_timeout=args.connect_timeout,
            timeout=args.timeout,
        )
    except ConfigurationError as e:
        report(f"Invalid configuration: {e}", error=True)
        return 2

    session = Session(config, args.host, args.port)
    try:
        session.connect()
        report(f"Connected to {args.host}:{args.port}")
        if args.user:
            session.login(args.user, args.password)
        for command in args.commands:
            if args.raw:
                output = session.normal_execute(command)
            else:
                output = session.execute(command)
            sys.stdout.write(output)
        sys.stdout.flush()
    except MiniTelnetError as e:
        report(f"Session failed: {e}", error=True)
        return 1
    finally:
        session.close()
        report("Disconnected.")
    return 0


__all__ = [
    "AsyncSession",
    "Session",
    "TelnetBuilder",
    "TelnetConfig",
    "build_config",
    "setup_logging",
    "JSONFormatter",
    "main",
    "MiniTelnetError",
    "TimeoutError",
    "TransportError",
    "DecodeError",
    "UnknownNegotiationCommand",
    "AuthenticationFailed",
    "UnexpectedProtocolItem",
    "ConnectionClosed",
    "NotConnectedError",
    "ConfigurationError",
]
