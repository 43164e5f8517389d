"""Identity directory over the organization's identities API"""

from typing import Any, Dict, List, Optional

from acl_audit.core.identity.models import Identity, IdentityKind, MemberRef

from .base import DevOpsAdapter


def _property_value(data: Dict[str, Any], name: str) -> str:
    prop = (data.get("properties") or {}).get(name)
    if isinstance(prop, dict):
        value = prop.get("$value")
        return value if isinstance(value, str) else ""
    return ""


def parse_identity(data: Any) -> Optional[Identity]:
    """Identity from the service's identity payload.

    Display name prefers the provider name, then the custom and plain
    display names, then the id.
    """
    if not isinstance(data, dict):
        return None
    identity_id = data.get("id") or data.get("teamFoundationId")
    descriptor = data.get("descriptor") or data.get("subjectDescriptor") or identity_id
    if not descriptor:
        return None

    display_name = (
        data.get("providerDisplayName")
        or data.get("customDisplayName")
        or data.get("displayName")
        or identity_id
        or descriptor
    )
    kind = IdentityKind.GROUP if data.get("isContainer") else IdentityKind.USER
    return Identity(
        descriptor=descriptor,
        display_name=display_name,
        kind=kind,
        internal_id=identity_id,
        mail_address=_property_value(data, "Account") or _property_value(data, "Mail"),
    )


def parse_member(data: Any) -> Optional[MemberRef]:
    if isinstance(data, str):
        return MemberRef(descriptor=data) if data else None
    if isinstance(data, dict):
        identity_id = data.get("id") or data.get("teamFoundationId")
        descriptor = data.get("descriptor")
        if identity_id or descriptor:
            return MemberRef(identity_id=identity_id, descriptor=descriptor)
    return None


class IdentityService(DevOpsAdapter):
    """Identity lookups used for resolution and group expansion"""

    service_name = "identities"

    def read_identity_by_descriptor(self, descriptor: str) -> Optional[Identity]:
        items = self._get_list(
            "_apis/identities",
            params={"descriptors": descriptor, "queryMembership": "None"},
        )
        for item in items:
            identity = parse_identity(item)
            if identity is not None:
                return identity
        return None

    def read_identity(self, identity_id: str) -> Optional[Identity]:
        data = self._get(f"_apis/identities/{identity_id}", not_found_ok=True)
        return parse_identity(data)

    def list_members(self, identity_id: str) -> List[MemberRef]:
        items = self._get_list(f"_apis/identities/{identity_id}/members")
        members = [parse_member(item) for item in items]
        return [m for m in members if m is not None]

    def list_identities(self) -> List[Identity]:
        """Every identity the general search returns"""
        items = self._get_list(
            "_apis/identities",
            params={"searchFilter": "General", "filterValue": "", "queryMembership": "None"},
        )
        identities = [parse_identity(item) for item in items]
        return [i for i in identities if i is not None]
