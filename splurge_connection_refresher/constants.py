"""Library-wide constants.

These constants centralize tunable values used across modules to keep
behavior consistent and avoid duplication.
"""


class Constants:

    # Service endpoints
    _ORGANIZATION_URL_PREFIX: str = "https://dev.azure.com/"
    _GRAPH_BASE_URL: str = "https://graph.microsoft.com/v1.0"
    _GRAPH_SCOPE: str = "https://graph.microsoft.com/.default"
    _ARM_BASE_URL: str = "https://management.azure.com"
    _ARM_SCOPE: str = "https://management.azure.com/.default"
    _ARM_API_VERSION: str = "2022-12-01"
    _DEVOPS_API_VERSION: str = "7.1"
    _CONNECTION_TYPE: str = "azurerm"

    # Preview mode placeholders
    _PREVIEW_SECRET: str = "preview-secret-not-issued"
    _ZERO_TENANT_ID: str = "00000000-0000-0000-0000-000000000000"

    # Run policy
    _DEFAULT_THRESHOLD_DAYS: int = 30
    _MAX_THRESHOLD_DAYS: int = 3650
    _DEFAULT_MAX_WORKERS: int = 8
    _REQUEST_TIMEOUT_SECONDS: float = 30.0
    _CREDENTIAL_DISPLAY_NAME: str = "rotated-by-splurge-connection-refresher"

    # Pipeline environment
    _TOKEN_ENV_VAR: str = "SYSTEM_ACCESSTOKEN"
    _ORGANIZATION_ENV_VAR: str = "SYSTEM_COLLECTIONURI"
    _PROJECT_ENV_VAR: str = "SYSTEM_TEAMPROJECT"

    @classmethod
    def ORGANIZATION_URL_PREFIX(cls) -> str:
        return cls._ORGANIZATION_URL_PREFIX

    @classmethod
    def GRAPH_BASE_URL(cls) -> str:
        return cls._GRAPH_BASE_URL

    @classmethod
    def GRAPH_SCOPE(cls) -> str:
        return cls._GRAPH_SCOPE

    @classmethod
    def ARM_BASE_URL(cls) -> str:
        return cls._ARM_BASE_URL

    @classmethod
    def ARM_SCOPE(cls) -> str:
        return cls._ARM_SCOPE

    @classmethod
    def ARM_API_VERSION(cls) -> str:
        return cls._ARM_API_VERSION

    @classmethod
    def DEVOPS_API_VERSION(cls) -> str:
        return cls._DEVOPS_API_VERSION

    @classmethod
    def CONNECTION_TYPE(cls) -> str:
        return cls._CONNECTION_TYPE

    # Placeholder secret returned by a preview rotation
    @classmethod
    def PREVIEW_SECRET(cls) -> str:
        return cls._PREVIEW_SECRET

    @classmethod
    def ZERO_TENANT_ID(cls) -> str:
        return cls._ZERO_TENANT_ID

    @classmethod
    def DEFAULT_THRESHOLD_DAYS(cls) -> int:
        return cls._DEFAULT_THRESHOLD_DAYS

    @classmethod
    def MAX_THRESHOLD_DAYS(cls) -> int:
        return cls._MAX_THRESHOLD_DAYS

    # Owner lookup pool size
    @classmethod
    def DEFAULT_MAX_WORKERS(cls) -> int:
        return cls._DEFAULT_MAX_WORKERS

    @classmethod
    def REQUEST_TIMEOUT_SECONDS(cls) -> float:
        return cls._REQUEST_TIMEOUT_SECONDS

    @classmethod
    def CREDENTIAL_DISPLAY_NAME(cls) -> str:
        return cls._CREDENTIAL_DISPLAY_NAME

    @classmethod
    def TOKEN_ENV_VAR(cls) -> str:
        return cls._TOKEN_ENV_VAR

    @classmethod
    def ORGANIZATION_ENV_VAR(cls) -> str:
        return cls._ORGANIZATION_ENV_VAR

    @classmethod
    def PROJECT_ENV_VAR(cls) -> str:
        return cls._PROJECT_ENV_VAR
