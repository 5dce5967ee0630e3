#!/usr/bin/env python3
"""Command-line interface for the Splurge Connection Refresher."""

import argparse
import json
import logging
import sys
from typing import Any, Optional

from splurge_connection_refresher.clients.http import ServiceContext, azure_token_provider
from splurge_connection_refresher.config import RefresherConfig
from splurge_connection_refresher.constants import Constants
from splurge_connection_refresher.exceptions import (
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)
from splurge_connection_refresher.services.orchestrator import RefreshOrchestrator
from splurge_connection_refresher.validation_utils import MATCH_MODES

logger = logging.getLogger(__name__)


class RefresherCLI:
    """Command-line interface for the connection refresher."""

    def __init__(self) -> None:
        """Initialize the CLI."""
        self._parser = self._create_parser()
        self._pretty = False

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the argument parser.

        Returns:
            Configured argument parser
        """
        parser = argparse.ArgumentParser(
            description="Splurge Connection Refresher - rotate expiring application secrets",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Report identities whose secrets expire within 30 days
  splurge-connection-refresher -o https://dev.azure.com/contoso -p Platform scan

  # Include owners in the report
  splurge-connection-refresher -o https://dev.azure.com/contoso -p Platform scan --owners

  # Preview a refresh of every identity matching a naming convention
  splurge-connection-refresher -o https://dev.azure.com/contoso -p Platform \\
    -n "^svc-" -d 14 refresh

  # Rotate secrets and update connections for real
  splurge-connection-refresher -o https://dev.azure.com/contoso -p Platform \\
    -n "^svc-" -d 14 refresh --apply

  # Read the access token from a custom environment variable
  splurge-connection-refresher -et DEVOPS_TOKEN -o https://dev.azure.com/contoso \\
    -p Platform refresh
            """,
        )

        # Global arguments
        parser.add_argument(
            "-o",
            "--organization",
            help=f"Organization URL (default: ${Constants.ORGANIZATION_ENV_VAR()})",
        )
        parser.add_argument(
            "-p",
            "--project",
            help=f"Project name (default: ${Constants.PROJECT_ENV_VAR()})",
        )
        parser.add_argument(
            "-t",
            "--token",
            help="Access token for the connection service",
        )
        parser.add_argument(
            "-et",
            "--env-token",
            help=f"Environment variable containing the access token (default: {Constants.TOKEN_ENV_VAR()})",
        )
        parser.add_argument(
            "-n",
            "--name-pattern",
            default="",
            help="Regular expression selecting identities by display name (default: all)",
        )
        parser.add_argument(
            "-d",
            "--threshold-days",
            type=int,
            default=Constants.DEFAULT_THRESHOLD_DAYS(),
            help=f"Report secrets expiring within this many days (default: {Constants.DEFAULT_THRESHOLD_DAYS()})",
        )
        parser.add_argument(
            "--match",
            choices=MATCH_MODES,
            default="exact",
            help="How a connection's principal id is matched to an identity (default: exact)",
        )
        parser.add_argument(
            "-w",
            "--max-workers",
            type=int,
            default=Constants.DEFAULT_MAX_WORKERS(),
            help=f"Concurrent owner lookups (default: {Constants.DEFAULT_MAX_WORKERS()})",
        )
        parser.add_argument(
            "--pretty",
            action="store_true",
            help="Pretty-print JSON outputs",
        )
        parser.add_argument(
            "-v",
            "--verbose",
            action="store_true",
            help="Enable debug logging",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command",
            help="Available commands",
        )

        # Scan command
        scan_parser = subparsers.add_parser(
            "scan",
            help="Report identities with expiring secrets",
        )
        scan_parser.add_argument(
            "--owners",
            action="store_true",
            help="Include the owners of each identity",
        )

        # Refresh command
        refresh_parser = subparsers.add_parser(
            "refresh",
            help="Rotate expiring secrets and reconcile dependent connections",
        )
        refresh_parser.add_argument(
            "--apply",
            action="store_true",
            help="Perform the rotation and connection writes (default: preview only)",
        )
        refresh_parser.add_argument(
            "--owners",
            action="store_true",
            help="Look up owners of each identity before refreshing",
        )

        return parser

    def _configure_logging(self, verbose: bool) -> None:
        """Send log records to stderr so stdout stays valid JSON."""
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

    def _build_config(self, args: argparse.Namespace) -> RefresherConfig:
        """Build and validate the run configuration.

        Command-line values win over the pipeline environment variables.

        Raises:
            ValidationError: If a value is missing or invalid
        """
        if args.token and args.env_token:
            raise ValidationError("Cannot specify both token and environment token")

        return RefresherConfig.from_environment(
            token_env_var=args.env_token,
            organization_url=args.organization,
            project=args.project,
            token=args.token,
            name_pattern=args.name_pattern,
            threshold_days=args.threshold_days,
            include_owners=bool(getattr(args, "owners", False)),
            max_workers=args.max_workers,
            apply=bool(getattr(args, "apply", False)),
            match_mode=args.match,
        )

    def _create_context(self, config: RefresherConfig) -> ServiceContext:
        """Create the service context shared by all clients."""
        return ServiceContext(
            organization_url=config.organization_url,
            project=config.project,
            devops_token=config.token,
            token_provider=azure_token_provider(),
            timeout=config.request_timeout,
        )

    def _create_orchestrator(
        self,
        context: ServiceContext,
        config: RefresherConfig
    ) -> RefreshOrchestrator:
        """Wire the orchestrator against the live services."""
        return RefreshOrchestrator.from_context(
            context,
            match_mode=config.match_mode,
            max_workers=config.max_workers,
        )

    def _print_json(self, payload: dict[str, Any]) -> None:
        """Print a JSON payload to stdout."""
        print(json.dumps(payload, indent=2 if self._pretty else None))

    def _print_error(self, *, message: str, code: str = "error", extra: dict[str, Any] | None = None) -> None:
        """Print a JSON error to stderr and exit non-zero."""
        error_obj = {
            "success": False,
            "error_code": code,
            "message": message,
        }
        if extra:
            error_obj["data"] = extra
        print(json.dumps(error_obj, indent=2), file=sys.stderr)
        sys.exit(1)

    def _handle_scan(self, config: RefresherConfig, orchestrator: RefreshOrchestrator) -> None:
        """Handle scan command."""
        identities = orchestrator.discover(
            config.name_pattern,
            config.threshold_days,
            require_match=bool(config.name_pattern),
            include_owners=config.include_owners,
        )
        self._print_json({
            "success": True,
            "command": "scan",
            "threshold_days": config.threshold_days,
            "count": len(identities),
            "identities": [identity.to_dict() for identity in identities],
        })

    def _handle_refresh(self, config: RefresherConfig, orchestrator: RefreshOrchestrator) -> None:
        """Handle refresh command."""
        summary = orchestrator.run(
            config.name_pattern,
            config.threshold_days,
            config.apply,
            require_match=bool(config.name_pattern),
            include_owners=config.include_owners,
        )
        if not config.apply:
            logger.info("Preview only, re-run with --apply to rotate secrets")
        self._print_json({
            "success": True,
            "command": "refresh",
            **summary.to_dict(),
        })

    def run(self, args: Optional[list[str]] = None) -> None:
        """Run the CLI with given arguments."""
        try:
            parsed_args = self._parser.parse_args(args)
            self._pretty = bool(getattr(parsed_args, "pretty", False))
            self._configure_logging(bool(getattr(parsed_args, "verbose", False)))

            if not parsed_args.command:
                self._print_error(message="No command specified", code="missing_command")

            config = self._build_config(parsed_args)

            with self._create_context(config) as context:
                orchestrator = self._create_orchestrator(context, config)
                if parsed_args.command == "scan":
                    self._handle_scan(config, orchestrator)
                elif parsed_args.command == "refresh":
                    self._handle_refresh(config, orchestrator)
                else:
                    self._print_error(message=f"Unknown command: {parsed_args.command}", code="unknown_command")

        except ValidationError as e:
            self._print_error(message=str(e), code="validation_error")
        except NotFoundError as e:
            self._print_error(message=str(e), code="not_found")
        except ExternalServiceError as e:
            self._print_error(message=str(e), code="service_unavailable")
        except KeyboardInterrupt:
            self._print_error(message="Operation cancelled by user", code="cancelled")
        except Exception as e:
            self._print_error(message=str(e), code="unexpected_error")


def main() -> None:
    """Main entry point for the CLI."""
    cli = RefresherCLI()
    cli.run()


if __name__ == "__main__":
    main()
