"""
Main entry point for the Shutterfly Session Keeper.

Resolves a Cognito identity token for the configured Shutterfly account and
prints it, reusing the persisted session whenever it is still valid.
"""

import sys
import argparse
import asyncio
import logging
import json
from typing import Optional, List

from sfly_shared.exceptions import ConfigurationError, SessionKeeperError
from sfly_shared.logging_config import LogFormat, LogLevel, setup_logging
from sfly_client.auth.authenticator import Authenticator
from sfly_client.config import AuthenticatorConfiguration

logger = logging.getLogger(__name__)


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="sfly-session",
        description="Shutterfly Session Keeper",
        epilog="""
Examples:
  %(prog)s                      # Print a valid Cognito idToken
  %(prog)s --json               # Print {"token": ...}
  %(prog)s -v --log-level DEBUG # Narrate every resolution step
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    config_group = parser.add_argument_group('Configuration')
    config_group.add_argument("--config", type=str, metavar="FILE",
                              help="Configuration file path")
    config_group.add_argument("--session-file", type=str, metavar="PATH",
                              help="Session file path (overrides configuration)")
    config_group.add_argument("--strict", action="store_true",
                              help="Fail on a corrupt session file instead of logging in again")

    output_group = parser.add_argument_group('Output')
    output_group.add_argument("--json", action="store_true",
                              help="Output the token as JSON")
    output_group.add_argument("--verbose", "-v", action="store_true",
                              help="Log every resolution step")

    debug_group = parser.add_argument_group('Logging')
    debug_group.add_argument("--log-level", type=str, metavar="LEVEL",
                             choices=[level.value for level in LogLevel],
                             help="Log level (defaults to configuration)")
    debug_group.add_argument("--log-format", type=str, metavar="FORMAT",
                             choices=[fmt.value for fmt in LogFormat],
                             help="Log format: standard, detailed or json")
    debug_group.add_argument("--log-file", type=str, metavar="FILE",
                             help="Also write logs to this file")

    return parser.parse_args(argv)


def load_configuration(args) -> AuthenticatorConfiguration:
    """Load configuration and apply command line overrides."""
    config = AuthenticatorConfiguration(args.config)

    config.set_override('session.path', args.session_file)
    if args.strict:
        config.set_override('session.strict_store_reads', True)
    config.set_override('logging.level', args.log_level)
    config.set_override('logging.format', args.log_format)
    config.set_override('logging.file', args.log_file)

    errors = config.validate()
    if errors:
        raise ConfigurationError(
            "Invalid configuration: " + "; ".join(errors),
            context={'errors': errors, 'config_file': config.config_file}
        )

    return config


def configure_logging(config: AuthenticatorConfiguration) -> None:
    """Configure logging from the loaded configuration."""
    setup_logging(
        log_level=LogLevel(config.get_log_level()),
        log_format=LogFormat(config.get_log_format()),
        log_file=config.get_log_file()
    )


async def run(config: AuthenticatorConfiguration, verbose: bool = False) -> str:
    authenticator = Authenticator.from_config(config)
    return await authenticator.resolve(verbose=verbose)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)

    try:
        config = load_configuration(args)
        configure_logging(config)

        token = asyncio.run(run(config, verbose=args.verbose))

        if args.json:
            print(json.dumps({'token': token}))
        else:
            print(token)
        return 0

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    except SessionKeeperError as e:
        if args.json:
            print(json.dumps(e.to_dict(), default=str), file=sys.stderr)
        else:
            print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
