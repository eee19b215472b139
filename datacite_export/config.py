"""DataCite deposit settings, loaded from the environment or a .env file."""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from datacite_export.models import PressContext
from datacite_export.utils.credential_manager import CredentialManager, CredentialStorageError

logger = logging.getLogger(__name__)

API_TYPE_MDS = "mds"
API_TYPE_REST = "rest"

# Identity recorded against DOIs deposited by this package
REGISTRATION_AGENCY = "DataciteExportPlugin"


class ConfigurationError(Exception):
    """Raised when required settings are missing; no API call may be made."""
    pass


def _env_flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class DataciteSettings:
    """Per-press DataCite settings."""

    username: str = ""
    password: str = ""
    test_mode: bool = False
    test_username: str = ""
    test_password: str = ""
    test_doi_prefix: str = ""
    api_type: str = API_TYPE_MDS
    export_path: Optional[str] = None
    error_log_path: Optional[str] = None

    @property
    def active_username(self) -> str:
        """Repository account used for the current mode."""
        return self.test_username if self.test_mode else self.username

    @property
    def active_password(self) -> str:
        """Repository password used for the current mode."""
        return self.test_password if self.test_mode else self.password

    @property
    def registration_agency(self) -> str:
        return REGISTRATION_AGENCY

    @classmethod
    def from_env(
        cls,
        env_file: Optional[str] = None,
        credential_manager: Optional[CredentialManager] = None
    ) -> "DataciteSettings":
        """
        Load settings from DATACITE_* environment variables.

        A .env file is read first (existing environment variables win).
        Passwords missing from the environment are looked up in the
        system credential store.

        Args:
            env_file: Path to a .env file. If None, python-dotenv searches for one.
            credential_manager: Credential store used for missing passwords

        Returns:
            DataciteSettings instance (not yet validated)
        """
        load_dotenv(env_file)

        settings = cls(
            username=os.getenv("DATACITE_USERNAME", ""),
            password=os.getenv("DATACITE_PASSWORD", ""),
            test_mode=_env_flag(os.getenv("DATACITE_TEST_MODE")),
            test_username=os.getenv("DATACITE_TEST_USERNAME", ""),
            test_password=os.getenv("DATACITE_TEST_PASSWORD", ""),
            test_doi_prefix=os.getenv("DATACITE_TEST_DOI_PREFIX", ""),
            api_type=os.getenv("DATACITE_API_TYPE", API_TYPE_MDS).strip().lower(),
            export_path=os.getenv("DATACITE_EXPORT_PATH") or None,
            error_log_path=os.getenv("DATACITE_ERROR_LOG") or None,
        )

        if (settings.username and not settings.password) or (
            settings.test_username and not settings.test_password
        ):
            settings._load_stored_passwords(credential_manager or CredentialManager())

        logger.info(
            f"DataCite settings loaded ({'TEST' if settings.test_mode else 'PRODUCTION'} mode, "
            f"{settings.api_type.upper()} API)"
        )
        return settings

    def _load_stored_passwords(self, credential_manager: CredentialManager) -> None:
        try:
            if self.username and not self.password:
                self.password = credential_manager.get_password(self.username, "production") or ""
            if self.test_username and not self.test_password:
                self.test_password = credential_manager.get_password(self.test_username, "test") or ""
        except CredentialStorageError as e:
            logger.warning(f"Could not read stored DataCite passwords: {e}")

    def validate(self, context: PressContext) -> None:
        """
        Check that a deposit can be attempted for the given press.

        Raises:
            ConfigurationError: Describing the first missing setting
        """
        if not context.publisher or not context.publisher.strip():
            raise ConfigurationError(f"No publisher is configured for press '{context.path}'")
        if self.api_type not in (API_TYPE_MDS, API_TYPE_REST):
            raise ConfigurationError(
                f"Unknown DataCite API type '{self.api_type}'. Use '{API_TYPE_MDS}' or '{API_TYPE_REST}'."
            )
        if self.username and not self.test_username:
            # Registering from production requires a test account as well
            raise ConfigurationError("A DataCite test username is required when a username is set")
        if self.test_mode:
            if not self.test_doi_prefix:
                raise ConfigurationError("Test mode is enabled but no test DOI prefix is configured")
            if not self.test_username or not self.test_password:
                raise ConfigurationError("Test mode is enabled but the DataCite test credentials are missing")
        elif not self.username or not self.password:
            raise ConfigurationError("DataCite username and password are required for depositing")
