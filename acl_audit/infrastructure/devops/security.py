"""Security namespaces and access control lists"""

from typing import Any, Dict, List, Optional

from acl_audit.core.errors import ServiceError

from .base import DevOpsAdapter


class SecurityService(DevOpsAdapter):
    """Security namespace lookup and raw ACL queries"""

    service_name = "security"

    def list_namespaces(self) -> List[Dict[str, Any]]:
        return [ns for ns in self._get_list("_apis/securitynamespaces") if isinstance(ns, dict)]

    def find_namespace(self, name: str) -> Optional[Dict[str, Any]]:
        """Namespace definition by display or internal name, case-insensitive"""
        wanted = name.lower()
        for namespace in self.list_namespaces():
            names = {
                str(namespace.get("displayName") or "").lower(),
                str(namespace.get("name") or "").lower(),
            }
            if wanted in names:
                return namespace
        return None

    def resolve_namespace(self, name: str, fallback_id: str) -> Dict[str, Any]:
        """Namespace by name, or a stub carrying ``fallback_id`` when lookup fails.

        The stub has no ``actions``, so callers keep the canonical permission
        catalog.
        """
        try:
            namespace = self.find_namespace(name)
        except ServiceError as e:
            self.logger.warning("namespace_lookup_failed", namespace=name, error=e.reason)
            namespace = None

        if namespace and namespace.get("namespaceId"):
            self.logger.info(
                "namespace_resolved",
                namespace=name,
                namespace_id=namespace["namespaceId"],
                actions=len(namespace.get("actions") or []),
            )
            return namespace

        self.logger.warning("namespace_fallback", namespace=name, namespace_id=fallback_id)
        return {"namespaceId": fallback_id, "name": name, "actions": []}

    def query_access_control_lists(self, namespace_id: str, token: str) -> List[Any]:
        """Raw ACLs for ``token``; raises ``ServiceError`` on failure"""
        return self._get_list(
            f"_apis/accesscontrollists/{namespace_id}",
            params={"token": token, "includeExtendedInfo": "false"},
        )
