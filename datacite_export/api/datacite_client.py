"""DataCite API clients for depositing DOI metadata."""

import base64
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict

import requests
from requests.auth import HTTPBasicAuth

from datacite_export.config import API_TYPE_REST, DataciteSettings

logger = logging.getLogger(__name__)

DOI_TAKEN_MESSAGE = "This DOI has already been taken"


class DataCiteAPIError(Exception):
    """Base exception for DataCite API errors."""
    pass


class TransportError(DataCiteAPIError):
    """Raised when a request fails on the network or with a non-2xx status."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(TransportError):
    """Raised when authentication fails."""
    pass


class ConflictError(DataCiteAPIError):
    """Raised when DataCite reports that the DOI has already been taken (HTTP 422)."""
    pass


def format_error_response(response: requests.Response) -> str:
    """Fold provider body and status into one message: "body (422 Unprocessable Entity)"."""
    body = (response.text or "").strip()
    return f"{body} ({response.status_code} {response.reason or ''})".replace(" )", ")")


class DepositStrategy(ABC):
    """Wire protocol used to register a DOI and its metadata with DataCite."""

    PRODUCTION_ENDPOINT = ""
    TEST_ENDPOINT = ""
    TIMEOUT = 30  # Request timeout in seconds

    def __init__(self, username: str, password: str, use_test_api: bool = False):
        """
        Initialize the deposit client.

        Args:
            username: DataCite repository account (client-id)
            password: DataCite repository password
            use_test_api: If True, use the test endpoint instead of production
        """
        self.username = username
        self.password = password
        self.use_test_api = use_test_api
        self.base_url = self.TEST_ENDPOINT if use_test_api else self.PRODUCTION_ENDPOINT
        self.auth = HTTPBasicAuth(username, password)

        logger.info(
            f"{type(self).__name__} initialized for {'TEST' if use_test_api else 'PRODUCTION'} API"
        )

    @abstractmethod
    def submit(self, doi: str, url: str, xml: bytes, is_redeposit: bool = False) -> str:
        """
        Register metadata and landing page URL of a DOI.

        Args:
            doi: DOI to register (already converted for test mode)
            url: Landing page URL
            xml: Serialized DataCite XML document
            is_redeposit: True if the DOI was registered before

        Returns:
            Success message

        Raises:
            TransportError: If a request fails
        """

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Send a request, translating requests exceptions into TransportError."""
        try:
            response = requests.request(method, url, auth=self.auth, timeout=self.TIMEOUT, **kwargs)
        except requests.exceptions.Timeout:
            logger.error(f"Timeout on {method} {url}")
            raise TransportError(f"Request to {url} timed out")
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Connection error on {method} {url}: {e}")
            raise TransportError(f"Connection to DataCite failed: {str(e)}")
        except requests.exceptions.RequestException as e:
            logger.error(f"Request exception on {method} {url}: {e}")
            raise TransportError(f"Network error while talking to DataCite: {str(e)}")

        if response.status_code == 401:
            logger.error(f"Authentication failed for {self.username}")
            raise AuthenticationError(format_error_response(response), response.status_code)
        return response

    @staticmethod
    def _raise_for_status(response: requests.Response, doi: str) -> None:
        if 200 <= response.status_code < 300:
            return
        message = format_error_response(response)
        logger.error(f"DataCite rejected DOI {doi}: {message}")
        raise TransportError(message, response.status_code)


class MdsDepositStrategy(DepositStrategy):
    """Legacy MDS API: upload metadata, then mint the DOI against its URL."""

    PRODUCTION_ENDPOINT = "https://mds.datacite.org/"
    TEST_ENDPOINT = "https://mds.test.datacite.org/"

    def submit(self, doi: str, url: str, xml: bytes, is_redeposit: bool = False) -> str:
        logger.info(f"Uploading metadata for DOI {doi}")
        response = self._request(
            "POST",
            f"{self.base_url}metadata",
            data=xml,
            headers={"Content-Type": "application/xml;charset=UTF-8"},
        )
        self._raise_for_status(response, doi)

        logger.info(f"Minting DOI {doi} -> {url}")
        response = self._request(
            "POST",
            f"{self.base_url}doi",
            data=f"doi={doi}\nurl={url}".encode("utf-8"),
            headers={"Content-Type": "text/plain;charset=UTF-8"},
        )
        self._raise_for_status(response, doi)

        return f"DOI {doi} registered"


class RestDepositStrategy(DepositStrategy):
    """
    DataCite REST API (JSON:API).

    New DOIs are created with ``POST /dois``; registered DOIs are updated with
    ``PUT /dois/{doi}``. If a POST is rejected because the DOI already exists,
    the deposit is retried once as an update.
    """

    PRODUCTION_ENDPOINT = "https://api.datacite.org"
    TEST_ENDPOINT = "https://api.test.datacite.org"

    HEADERS = {
        "Content-Type": "application/vnd.api+json",
        "Accept": "application/vnd.api+json",
    }

    @staticmethod
    def build_payload(doi: str, url: str, xml: bytes, publish: bool = True) -> Dict[str, Any]:
        """
        Build the JSON:API document for a DOI.

        Args:
            publish: Include ``event: publish`` (new DOIs); updates only carry metadata
        """
        attributes: Dict[str, Any] = {
            "doi": doi,
            "url": url,
            "xml": base64.b64encode(xml).decode("ascii"),
        }
        if publish:
            attributes = {"event": "publish", **attributes}
        return {"data": {"id": doi, "type": "dois", "attributes": attributes}}

    def submit(self, doi: str, url: str, xml: bytes, is_redeposit: bool = False) -> str:
        if is_redeposit:
            return self._update(doi, url, xml)
        try:
            return self._create(doi, url, xml)
        except ConflictError as e:
            logger.warning(f"DOI {doi} already exists ({e}), retrying as redeposit")
            return self._retry_as_redeposit(doi, url, xml)

    def _create(self, doi: str, url: str, xml: bytes) -> str:
        logger.info(f"Creating DOI {doi} via REST API")
        response = self._request(
            "POST",
            f"{self.base_url}/dois",
            json=self.build_payload(doi, url, xml),
            headers=self.HEADERS,
        )
        if response.status_code == 422 and self._is_doi_taken(response):
            raise ConflictError(format_error_response(response))
        self._raise_for_status(response, doi)
        return f"DOI {doi} registered"

    def _update(self, doi: str, url: str, xml: bytes) -> str:
        logger.info(f"Updating DOI {doi} via REST API")
        response = self._request(
            "PUT",
            f"{self.base_url}/dois/{doi}",
            json=self.build_payload(doi, url, xml, publish=False),
            headers=self.HEADERS,
        )
        self._raise_for_status(response, doi)
        return f"DOI {doi} updated"

    def _retry_as_redeposit(self, doi: str, url: str, xml: bytes) -> str:
        # A single retry; a failing update surfaces as an ordinary error
        return self._update(doi, url, xml)

    @staticmethod
    def _is_doi_taken(response: requests.Response) -> bool:
        try:
            error_data = response.json()
        except ValueError:  # json.JSONDecodeError is a subclass of ValueError
            return DOI_TAKEN_MESSAGE in (response.text or "")
        if not isinstance(error_data, dict):
            return DOI_TAKEN_MESSAGE in (response.text or "")
        errors = error_data.get("errors")
        if not isinstance(errors, list):
            return False
        for error in errors:
            if isinstance(error, dict) and DOI_TAKEN_MESSAGE.lower() in str(error.get("title", "")).lower():
                return True
        return False


def create_deposit_strategy(settings: DataciteSettings) -> DepositStrategy:
    """Create the deposit client configured by the settings (credentials of the active mode)."""
    strategy_class = RestDepositStrategy if settings.api_type == API_TYPE_REST else MdsDepositStrategy
    return strategy_class(
        username=settings.active_username,
        password=settings.active_password,
        use_test_api=settings.test_mode,
    )
