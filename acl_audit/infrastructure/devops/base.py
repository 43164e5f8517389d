"""Shared plumbing for the Azure DevOps service adapters"""

from typing import Any, Dict, List, Optional

import structlog

from acl_audit.core.errors import ServiceError
from acl_audit.infrastructure.http.client import APIError, DevOpsClient

logger = structlog.get_logger()


class DevOpsAdapter:
    """Base class for adapters over one REST area.

    Adapters translate ``APIError`` into ``ServiceError`` so callers above
    the infrastructure layer never see HTTP types.
    """

    service_name = "devops"

    def __init__(self, client: DevOpsClient):
        self.client = client
        self.logger = logger.bind(service=self.__class__.__name__)

    def _service_error(self, e: APIError) -> ServiceError:
        return ServiceError(self.service_name, str(e), status_code=e.status_code)

    def _get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        api_version: Optional[str] = None,
        not_found_ok: bool = False,
    ) -> Any:
        try:
            return self.client.get(path, params=params, api_version=api_version)
        except APIError as e:
            if not_found_ok and e.status_code == 404:
                return None
            raise self._service_error(e) from e

    def _get_list(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        api_version: Optional[str] = None,
    ) -> List[Any]:
        try:
            return self.client.get_list(path, params=params, api_version=api_version)
        except APIError as e:
            raise self._service_error(e) from e
