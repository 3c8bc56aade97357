# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from functools import partial
from signal import SIGINT, signal
from typing import TYPE_CHECKING

import uvicorn
from dotenv import load_dotenv

from leadbridge.app import list_service_catalog, load_lead, onboarding_session, resolve_reference
from leadbridge.config import ConfigurationError, configure_logging, get_remote_config
from leadbridge.domain.errors import LeadBridgeError, NotFoundError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Onboarding wizard backend for the records store")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Bind address")
    serve.add_argument("--port", type=int, default=8000, help="Bind port (default: %(default)s)")

    reference = subparsers.add_parser(
        "resolve-reference",
        help="Resolve a sales-person reference to its record",
    )
    reference.add_argument("reference", type=str, help="Reference as typed by the user")

    show = subparsers.add_parser("show-lead", help="Print the wizard state stored for an email")
    show.add_argument("email", type=str, help="Email address the lead was registered with")

    subparsers.add_parser("list-services", help="List the active service catalog")

    return parser.parse_args(list(argv))


def _print_json(value: object) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False, default=str))


def _serve(args: argparse.Namespace) -> None:
    from leadbridge.ui.web import create_app

    config = get_remote_config()
    app = create_app(service_provider=partial(onboarding_session, config))
    uvicorn.run(app, host=args.host, port=args.port)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)

    try:
        if parsed_args.command == "serve":
            _serve(parsed_args)
        elif parsed_args.command == "resolve-reference":
            _print_json(resolve_reference(parsed_args.reference))
        elif parsed_args.command == "show-lead":
            state = load_lead(parsed_args.email)
            if state is None:
                log.warning("No lead found for %s", parsed_args.email)
                sys.exit(1)
            _print_json(state.as_payload())
        elif parsed_args.command == "list-services":
            _print_json([entry.as_payload() for entry in list_service_catalog()])
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except NotFoundError as exc:
        log.error("%s (tried: %s)", exc, ", ".join(exc.tried))  # noqa: TRY400
        sys.exit(1)
    except (LeadBridgeError, ConfigurationError):
        log.exception("Command failed")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    main()
