#!/usr/bin/env python3
"""
Command-line interface for mailflow.

Usage:
    mailflow [OPTIONS] check
    mailflow [OPTIONS] run [--tests DIR] [PYTEST_ARGS...]

Commands:
    check       Show the resolved configuration and the outbox
    run         Run the live browser scenarios through pytest

Options:
    --debug     Enable debug logging
    --version   Show version and exit
    --help      Show this message and exit
"""

import argparse
import logging
import os
import sys
import uuid
from typing import Optional, Sequence

from pydantic import ValidationError

from mailflow import __version__
from mailflow.config import MailFlowSettings, configure_logging, get_settings
from mailflow.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        prog="mailflow",
        description="mailflow - browser-driven webmail scenarios",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Inspect what a run would use:
        mailflow check

    Run the live scenarios in a visible Chrome window:
        mailflow run --headed --browser-channel chrome

Environment Variables:
    GMAIL_USERNAME              Account to sign in with
    GMAIL_PASSWORD              Account password
    RECIPIENT_EMAIL             Recipient for every outgoing message
    GMAIL_HANDLE_INTERSTITIALS  Dismiss optional sign-in prompts (default: true)
    MAILFLOW_DATA_FILE          Scenario data file (default: tests/data/config.json)
    MAILFLOW_CONFIG_FILE        Optional TOML configuration file
        """,
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"mailflow {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("check", help="Show resolved configuration and outbox")

    run = subparsers.add_parser(
        "run", help="Run the live scenarios", allow_abbrev=False
    )
    run.add_argument(
        "--tests",
        default=os.path.join("tests", "e2e"),
        help="Directory with the live scenarios (default: tests/e2e)",
    )
    args, extra = parser.parse_known_args(argv)
    if extra and args.command != "run":
        parser.error(f"unrecognized arguments: {' '.join(extra)}")
    # Anything run does not know is handed to pytest as is.
    args.pytest_args = extra
    return args


def check(settings: MailFlowSettings) -> int:
    """Print the configuration a run would use. Returns an exit code."""
    gmail = settings.gmail
    print(f"mailflow {__version__}")
    print("=" * 50)
    print(f"Webmail URL:          {gmail.base_url}")
    print(f"Username:             {gmail.username or '(not set)'}")
    print(f"Password:             {'********' if gmail.password else '(not set)'}")
    print(f"Recipient override:   {gmail.recipient_override or '(not set)'}")
    print(f"Handle interstitials: {gmail.handle_interstitials}")
    print(f"Browser:              {settings.browser.browser}"
          f"{' (' + settings.browser.channel + ')' if settings.browser.channel else ''}")
    print(f"Headless:             {settings.browser.headless}")
    print(f"Data file:            {settings.data_file}")

    if settings.credentials() is None:
        print("\nCredentials missing: scenarios that sign in will be skipped.")

    try:
        data = settings.load_scenario_data()
    except ConfigurationError as e:
        logger.error("%s", e)
        return 1

    run_token = uuid.uuid4().hex[:8] if settings.unique_subjects else None
    outbox = data.outbox(gmail.recipient_override, gmail.username or None, run_token)
    print(f"\nOutbox ({len(outbox)} messages):")
    for message in outbox:
        print(f"  - to={message.recipient or '(none)'} subject={message.subject!r}")

    if data.invalid_credentials:
        print(f"\nRejected-identifier scenario uses: {data.invalid_credentials.username}")
    return 0


def run(tests: str, pytest_args: Sequence[str]) -> int:
    """Run the live scenarios in-process. Returns pytest's exit code."""
    import pytest

    os.environ["MAILFLOW_LIVE"] = "true"
    args = [tests, *pytest_args]
    logger.info("Running pytest %s", " ".join(args))
    return int(pytest.main(args))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point for the mailflow command.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    args = parse_args(argv)

    try:
        settings = get_settings()
    except (ConfigurationError, ValidationError) as e:
        configure_logging(debug=args.debug)
        logger.error("%s", e)
        return 1

    configure_logging(settings.logging, debug=args.debug)

    try:
        if args.command == "check":
            return check(settings)
        return run(args.tests, args.pytest_args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
