"""Unit tests for the CLI module."""

import json
import os
import unittest
from io import StringIO
from unittest.mock import MagicMock, patch

from splurge_connection_refresher.cli import RefresherCLI, main
from splurge_connection_refresher.constants import Constants
from splurge_connection_refresher.exceptions import NotFoundError, ServiceUnavailableError
from splurge_connection_refresher.models import (
    ConnectionOutcome,
    ConnectionStatus,
    IdentityOutcome,
    IdentityState,
    ReconcileAction,
    RunSummary,
)
from tests.test_utility import NOW, TestDataHelper

BASE_ARGS = ["-o", "https://dev.azure.com/contoso", "-p", "Platform", "-t", "devops-token"]


class TestRefresherCLIUnit(unittest.TestCase):
    """Unit tests for RefresherCLI with the remote pipeline mocked out."""

    def setUp(self):
        """Set up test fixtures."""
        self.cli = RefresherCLI()
        self.orchestrator = MagicMock()
        self.context = MagicMock()
        self.context.__enter__.return_value = self.context
        self.context.__exit__.return_value = False

        patcher_context = patch.object(RefresherCLI, "_create_context", return_value=self.context)
        patcher_orchestrator = patch.object(
            RefresherCLI, "_create_orchestrator", return_value=self.orchestrator
        )
        self.create_context = patcher_context.start()
        self.create_orchestrator = patcher_orchestrator.start()
        patch.object(RefresherCLI, "_configure_logging").start()
        self.addCleanup(patch.stopall)

        env = {k: v for k, v in os.environ.items() if not k.startswith("SYSTEM_")}
        patcher_env = patch.dict(os.environ, env, clear=True)
        patcher_env.start()

    def _run(self, args):
        """Run the CLI and capture stdout, stderr and the exit code."""
        exit_code = 0
        with patch("sys.stdout", new=StringIO()) as stdout, patch("sys.stderr", new=StringIO()) as stderr:
            try:
                self.cli.run(args)
            except SystemExit as e:
                exit_code = e.code
        return exit_code, stdout.getvalue(), stderr.getvalue()

    def test_scan_outputs_identities(self):
        """Test that scan prints the discovered identities."""
        self.orchestrator.discover.return_value = [TestDataHelper.identity("svc-app")]

        exit_code, stdout, _ = self._run(BASE_ARGS + ["-n", "^svc-", "-d", "14", "scan", "--owners"])

        self.assertEqual(exit_code, 0)
        result = json.loads(stdout)
        self.assertTrue(result["success"])
        self.assertEqual(result["command"], "scan")
        self.assertEqual(result["count"], 1)
        self.assertEqual(result["identities"][0]["display_name"], "svc-app")
        self.orchestrator.discover.assert_called_once_with(
            "^svc-", 14, require_match=True, include_owners=True
        )

    def test_refresh_defaults_to_preview(self):
        """Test that refresh without --apply runs in preview mode."""
        self.orchestrator.run.return_value = RunSummary(apply=False, threshold=NOW)

        exit_code, stdout, _ = self._run(BASE_ARGS + ["refresh"])

        self.assertEqual(exit_code, 0)
        self.orchestrator.run.assert_called_once_with(
            "", Constants.DEFAULT_THRESHOLD_DAYS(), False, require_match=False, include_owners=False
        )
        self.assertFalse(json.loads(stdout)["apply"])

    def test_refresh_apply_reports_summary(self):
        """Test that per-connection failures are reported without failing the process."""
        self.orchestrator.run.return_value = RunSummary(
            apply=True,
            threshold=NOW,
            identities=[IdentityOutcome(
                display_name="svc-app",
                app_id="app-1",
                state=IdentityState.PARTIALLY_FAILED,
                rotated=True,
                connections=[
                    ConnectionOutcome("sub-prod", ConnectionStatus.RECONCILED, "svc-app-sub-prod", ReconcileAction.UPDATED),
                    ConnectionOutcome("sub-dev", ConnectionStatus.FAILED, "svc-app-sub-dev", message="boom"),
                ],
            )],
        )

        exit_code, stdout, _ = self._run(BASE_ARGS + ["--pretty", "refresh", "--apply"])

        self.assertEqual(exit_code, 0)
        result = json.loads(stdout)
        self.assertEqual(result["rotated_identities"], 1)
        self.assertEqual(result["reconciled_connections"], 1)
        self.assertEqual(result["failed_connections"], 1)
        self.assertEqual(self.orchestrator.run.call_args.args[2], True)

    def test_invalid_organization_url_is_fatal(self):
        """Test that a bad organization URL fails before any service is created."""
        exit_code, _, stderr = self._run(
            ["-o", "https://example.com/contoso", "-p", "Platform", "-t", "tok", "refresh"]
        )

        self.assertEqual(exit_code, 1)
        error = json.loads(stderr)
        self.assertEqual(error["error_code"], "validation_error")
        self.create_context.assert_not_called()

    def test_missing_token(self):
        """Test that a missing token is a validation error."""
        exit_code, _, stderr = self._run(["-o", "https://dev.azure.com/contoso", "-p", "Platform", "scan"])

        self.assertEqual(exit_code, 1)
        self.assertIn(Constants.TOKEN_ENV_VAR(), json.loads(stderr)["message"])

    def test_token_and_env_token_conflict(self):
        """Test that both token sources cannot be given."""
        exit_code, _, stderr = self._run(BASE_ARGS + ["-et", "DEVOPS_TOKEN", "scan"])

        self.assertEqual(exit_code, 1)
        self.assertIn("Cannot specify both", json.loads(stderr)["message"])

    def test_pipeline_environment_fallback(self):
        """Test that organization, project and token come from pipeline variables."""
        self.orchestrator.discover.return_value = []
        with patch.dict(os.environ, {
            Constants.ORGANIZATION_ENV_VAR(): "https://dev.azure.com/contoso/",
            Constants.PROJECT_ENV_VAR(): "Platform",
            Constants.TOKEN_ENV_VAR(): "pipeline-token",
        }):
            exit_code, _, _ = self._run(["scan"])

        self.assertEqual(exit_code, 0)
        config = self.create_context.call_args.args[0]
        self.assertEqual(config.project, "Platform")
        self.assertEqual(config.token, "pipeline-token")

    def test_identity_not_found_is_fatal(self):
        """Test that an unmatched identity pattern exits non-zero."""
        self.orchestrator.run.side_effect = NotFoundError("No identity matches name pattern 'x'")

        exit_code, _, stderr = self._run(BASE_ARGS + ["-n", "x", "refresh"])

        self.assertEqual(exit_code, 1)
        self.assertEqual(json.loads(stderr)["error_code"], "not_found")

    def test_discovery_failure_is_fatal(self):
        """Test that an unavailable directory exits non-zero."""
        self.orchestrator.discover.side_effect = ServiceUnavailableError("directory down")

        exit_code, _, stderr = self._run(BASE_ARGS + ["scan"])

        self.assertEqual(exit_code, 1)
        self.assertEqual(json.loads(stderr)["error_code"], "service_unavailable")

    def test_no_command(self):
        """Test that running without a command is an error."""
        exit_code, _, stderr = self._run(BASE_ARGS)

        self.assertEqual(exit_code, 1)
        self.assertEqual(json.loads(stderr)["error_code"], "missing_command")

    def test_context_closed_after_run(self):
        """Test that the service context is always closed."""
        self.orchestrator.discover.return_value = []

        self._run(BASE_ARGS + ["scan"])

        self.context.__exit__.assert_called_once()

    def test_main(self):
        """Test the main entry point delegates to RefresherCLI.run."""
        with patch.object(RefresherCLI, "run") as run:
            main()
        run.assert_called_once_with()


if __name__ == "__main__":
    unittest.main()
