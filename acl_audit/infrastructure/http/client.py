"""HTTP client for the Azure DevOps REST API."""

import base64
import json
from typing import Any, Dict, Optional

import httpx

from acl_audit.infrastructure.logging import get_logger

logger = get_logger(__name__)


class APIError(Exception):
    """API error exception."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.details = details

    @property
    def is_auth_failure(self) -> bool:
        # 203 carries the sign-in page served for an unusable token
        return self.status_code in (203, 401, 403)


def basic_auth_header(pat: str) -> str:
    """Basic auth value for a personal access token (empty user name)"""
    encoded = base64.b64encode(f":{pat}".encode("utf-8")).decode("ascii")
    return f"Basic {encoded}"


class DevOpsClient:
    """HTTP client for one Azure DevOps organization.

    Paths are joined to ``org_url``; absolute URLs (such as the Graph host)
    are used as given.
    """

    def __init__(
        self,
        org_url: str,
        pat: str,
        api_version: str = "7.0",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize API client.

        Args:
            org_url: Organization base URL, e.g. https://dev.azure.com/contoso
            pat: Personal access token
            api_version: Default ``api-version`` query parameter
            timeout: Request timeout in seconds
            transport: Optional transport, used by tests
        """
        self.org_url = org_url.rstrip("/")
        self.api_version = api_version

        # Configure headers
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": basic_auth_header(pat),
        }

        self.client = httpx.Client(
            headers=self.headers,
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        """Close HTTP client."""
        self.client.close()

    def url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.org_url}/{path.lstrip('/')}"

    def _handle_response(self, response: httpx.Response) -> Any:
        """
        Handle API response.

        Args:
            response: HTTP response

        Returns:
            Response data

        Raises:
            APIError: If request failed
        """
        logger.debug(
            "api_response",
            status_code=response.status_code,
            path=response.request.url.path,
        )

        if response.status_code == 204:
            return None

        try:
            data = response.json() if response.content else None
        except json.JSONDecodeError:
            data = None

        if response.is_error:
            error_message = f"API request failed with status {response.status_code}"

            if data and isinstance(data, dict):
                error_message = data.get("message", error_message)

            raise APIError(
                message=error_message, status_code=response.status_code, details=data
            )

        # A sign-in page instead of JSON means the token was not accepted
        if data is None and response.content:
            raise APIError(
                message="Unexpected non-JSON response (check the access token)",
                status_code=response.status_code,
            )

        return data

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        api_version: Optional[str] = None,
        **kwargs,
    ) -> Any:
        """
        Make API request.

        Args:
            method: HTTP method
            path: API path relative to the organization, or an absolute URL
            params: Query parameters
            api_version: Overrides the client's default API version

        Returns:
            Response data

        Raises:
            APIError: If the request failed or could not be sent
        """
        query: Dict[str, Any] = dict(params or {})
        query.setdefault("api-version", api_version or self.api_version)
        url = self.url(path)

        logger.debug("api_request", method=method, url=url)

        try:
            response = self.client.request(method=method, url=url, params=query, **kwargs)
        except httpx.HTTPError as e:
            raise APIError(message=f"Request to {url} failed: {e}") from e

        return self._handle_response(response)

    def get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        api_version: Optional[str] = None,
        **kwargs,
    ) -> Any:
        """Make GET request."""
        return self.request("GET", path, params=params, api_version=api_version, **kwargs)

    def get_list(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        api_version: Optional[str] = None,
    ) -> list:
        """GET a collection and return its ``value`` array

        Raises:
            APIError: If the body is not a collection
        """
        data = self.get(path, params=params, api_version=api_version)
        if not data:
            return []
        if isinstance(data, dict):
            data = data.get("value") or []
        if not isinstance(data, list):
            raise APIError(
                f"Expected a collection from {path}",
                status_code=200,
                details={"body_type": type(data).__name__},
            )
        return data
