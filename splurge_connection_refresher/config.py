"""Configuration management for the Splurge Connection Refresher."""

import os
from dataclasses import dataclass, field

from splurge_connection_refresher.constants import Constants
from splurge_connection_refresher.exceptions import ValidationError
from splurge_connection_refresher.validation_utils import (
    compile_name_pattern,
    validate_match_mode,
    validate_organization_url,
    validate_project_name,
    validate_threshold_days,
)


@dataclass
class RefresherConfig:
    """Configuration for a connection refresh run."""

    # Target project
    organization_url: str
    project: str
    token: str = field(repr=False)

    # Discovery settings
    name_pattern: str = ""
    threshold_days: int = Constants.DEFAULT_THRESHOLD_DAYS()
    include_owners: bool = False
    max_workers: int = Constants.DEFAULT_MAX_WORKERS()

    # Reconciliation settings
    apply: bool = False
    match_mode: str = "exact"

    # Transport settings
    request_timeout: float = Constants.REQUEST_TIMEOUT_SECONDS()

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.organization_url = validate_organization_url(self.organization_url)
        validate_project_name(self.project)

        if not self.token:
            raise ValidationError("Access token cannot be empty")

        self.name_pattern = self.name_pattern or ""
        compile_name_pattern(self.name_pattern)
        validate_threshold_days(self.threshold_days)
        validate_match_mode(self.match_mode)

        if self.max_workers < 1:
            raise ValidationError("max_workers must be at least 1")
        if self.request_timeout <= 0:
            raise ValidationError("request_timeout must be positive")

    @classmethod
    def from_environment(
        cls,
        *,
        token_env_var: str | None = None,
        **overrides,
    ) -> "RefresherConfig":
        """Build a configuration from pipeline environment variables.

        Explicit keyword overrides win over the environment. Organization and
        project fall back to the predefined pipeline variables.

        Args:
            token_env_var: Environment variable holding the access token
            **overrides: Any RefresherConfig field

        Raises:
            ValidationError: If a required value is missing or invalid
        """
        token_env_var = token_env_var or Constants.TOKEN_ENV_VAR()
        values = {
            "organization_url": os.getenv(Constants.ORGANIZATION_ENV_VAR(), ""),
            "project": os.getenv(Constants.PROJECT_ENV_VAR(), ""),
            "token": os.getenv(token_env_var, ""),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})

        if not values["token"]:
            raise ValidationError(f"Environment variable '{token_env_var}' is not set")

        return cls(**values)
