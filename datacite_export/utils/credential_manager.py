"""
Credential Manager for DataCite Export.

Stores DataCite repository passwords in the operating system's credential
store via the keyring library, so that configuration files only need to
carry the repository account names.
"""

import logging
from typing import Optional

import keyring
import keyring.errors

logger = logging.getLogger(__name__)


class CredentialManagerError(Exception):
    """Base exception for CredentialManager errors."""
    pass


class CredentialStorageError(CredentialManagerError):
    """Raised when there's a problem storing or reading credentials."""
    pass


class CredentialManager:
    """
    Manages DataCite repository passwords with secure storage.

    Passwords are stored per API type ("test" or "production") and
    repository account (e.g. "TIB.PRESS").
    """

    SERVICE_NAME = "DataCiteExport"
    API_TYPES = ("test", "production")

    def _key(self, username: str, api_type: str) -> str:
        if api_type not in self.API_TYPES:
            raise ValueError(f"Invalid api_type: {api_type}. Must be 'test' or 'production'.")
        return f"{api_type}:{username}"

    def save_password(self, username: str, password: str, api_type: str) -> None:
        """
        Save a repository password.

        Raises:
            ValueError: If username or password is empty, or api_type is invalid
            CredentialStorageError: If the credential store rejects the password
        """
        if not username or not username.strip():
            raise ValueError("Username cannot be empty")
        if not password:
            raise ValueError("Password cannot be empty")
        key = self._key(username.strip(), api_type)

        try:
            keyring.set_password(self.SERVICE_NAME, key, password)
        except keyring.errors.KeyringError as e:
            logger.error(f"Failed to store password in credential store: {e}")
            raise CredentialStorageError(f"Failed to store password: {str(e)}")

        logger.info(f"Password stored for {username} ({api_type} API)")

    def get_password(self, username: str, api_type: str) -> Optional[str]:
        """
        Look up a repository password.

        Returns:
            The password, or None if none is stored for this account

        Raises:
            CredentialStorageError: If the credential store cannot be read
        """
        if not username:
            return None
        key = self._key(username, api_type)

        try:
            password = keyring.get_password(self.SERVICE_NAME, key)
        except keyring.errors.KeyringError as e:
            logger.error(f"Failed to retrieve password: {e}")
            raise CredentialStorageError(f"Failed to retrieve password: {str(e)}")

        if password is None:
            logger.debug(f"No stored password for {username} ({api_type} API)")
        return password

    def delete_password(self, username: str, api_type: str) -> bool:
        """
        Delete a stored repository password.

        Returns:
            True if a password was deleted, False if none was stored
        """
        key = self._key(username, api_type)
        try:
            keyring.delete_password(self.SERVICE_NAME, key)
        except keyring.errors.PasswordDeleteError:
            logger.warning(f"No stored password to delete for {username} ({api_type} API)")
            return False

        logger.info(f"Deleted stored password for {username} ({api_type} API)")
        return True
