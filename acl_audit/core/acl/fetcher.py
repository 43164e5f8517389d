"""ACL retrieval per security scope"""

from typing import Any, List, Protocol

from acl_audit.core.errors import ServiceError
from acl_audit.infrastructure.logging import get_logger

from .models import AccessControlList

logger = get_logger(__name__)


class AccessControlService(Protocol):
    """Raw ACL query; raises ``ServiceError`` when the call fails"""

    def query_access_control_lists(self, namespace_id: str, token: str) -> List[Any]:
        ...


class ACLFetcher:
    """Fetches the ACL of one scope token.

    Failures never propagate: the scope is reported as empty and the error
    is carried on ``AccessControlList.fetch_error``.
    """

    def __init__(self, service: AccessControlService, namespace_id: str):
        self.service = service
        self.namespace_id = namespace_id

    def fetch_acl(self, scope_token: str) -> AccessControlList:
        try:
            payload = self.service.query_access_control_lists(self.namespace_id, scope_token)
        except ServiceError as e:
            logger.warning(
                "acl_fetch_failed",
                scope_token=scope_token,
                status_code=e.status_code,
                error=e.reason,
            )
            return AccessControlList.empty(scope_token, fetch_error=e.reason)

        acl = AccessControlList.from_payload(scope_token, payload or [])
        logger.debug("acl_fetched", scope_token=scope_token, entries=len(acl.entries))
        return acl
