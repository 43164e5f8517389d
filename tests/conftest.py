"""Pytest configuration and fixtures"""

from typing import Any, Dict, List, Optional

import pytest

from acl_audit.application.services.audit_service import AuditService
from acl_audit.core.acl.fetcher import ACLFetcher
from acl_audit.core.errors import AuthenticationError, ServiceError
from acl_audit.core.identity.models import Identity, IdentityKind, MemberRef
from acl_audit.core.identity.resolver import IdentityResolver
from acl_audit.core.permissions.catalog import PermissionCatalog
from acl_audit.core.resolution.engine import ScopeResolutionEngine
from acl_audit.core.resolution.models import Resource

NAMESPACE_ID = "2e9eb7ed-3c0a-47d4-87c1-0ffdd275fd87"
PROJECT_ID = "proj-1"
REPO_ID = "repo-1"

# Small catalog keeps expected record counts readable
TEST_PERMISSIONS = {1: "Administer", 2: "Read", 4: "Contribute", 8: "Force push"}


def make_user(name: str, identity_id: Optional[str] = None) -> Identity:
    return Identity(
        descriptor=f"Microsoft.TeamFoundation.Identity;S-1-9-{name}",
        display_name=name,
        kind=IdentityKind.USER,
        internal_id=identity_id or f"id-{name}",
        mail_address=f"{name}@contoso.com",
    )


def make_group(name: str, identity_id: Optional[str] = None) -> Identity:
    return Identity(
        descriptor=f"Microsoft.TeamFoundation.Identity;S-1-9-group-{name}",
        display_name=f"[Project]\\{name}",
        kind=IdentityKind.GROUP,
        internal_id=identity_id or f"gid-{name}",
    )


def acl_payload(token: str, aces: Dict[str, Any], inherit: bool = True) -> List[Dict[str, Any]]:
    """Wire form of one ACL; ``aces`` maps descriptor to (allow, deny)"""
    return [
        {
            "token": token,
            "inheritPermissions": inherit,
            "acesDictionary": {
                descriptor: {"descriptor": descriptor, "allow": allow, "deny": deny}
                for descriptor, (allow, deny) in aces.items()
            },
        }
    ]


class FakeDirectory:
    """In-memory identity directory recording every call"""

    def __init__(self):
        self.by_descriptor: Dict[str, Identity] = {}
        self.by_id: Dict[str, Identity] = {}
        self.members: Dict[str, List[MemberRef]] = {}
        self.failing: set = set()
        self.calls: List[tuple] = []

    def add(self, identity: Identity, members: Optional[List[Identity]] = None) -> Identity:
        self.by_descriptor[identity.descriptor] = identity
        if identity.internal_id:
            self.by_id[identity.internal_id] = identity
        if members is not None:
            self.members[identity.internal_id] = [
                MemberRef(identity_id=m.internal_id) for m in members
            ]
        return identity

    def _check(self, key: str) -> None:
        if key in self.failing:
            raise ServiceError("identities", f"lookup failed for {key}", status_code=500)

    def read_identity_by_descriptor(self, descriptor: str) -> Optional[Identity]:
        self.calls.append(("descriptor", descriptor))
        self._check(descriptor)
        return self.by_descriptor.get(descriptor)

    def read_identity(self, identity_id: str) -> Optional[Identity]:
        self.calls.append(("id", identity_id))
        self._check(identity_id)
        return self.by_id.get(identity_id)

    def list_members(self, identity_id: str) -> List[MemberRef]:
        self.calls.append(("members", identity_id))
        self._check(identity_id)
        return list(self.members.get(identity_id, []))

    def list_identities(self) -> List[Identity]:
        self.calls.append(("list", None))
        self._check("list")
        return list(self.by_descriptor.values())

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)


class FakeAclService:
    """ACL service answering from a token -> payload map"""

    def __init__(self):
        self.payloads: Dict[str, List[Dict[str, Any]]] = {}
        self.failing: Dict[str, int] = {}
        self.queries: List[str] = []

    def set_acl(self, token: str, aces: Dict[str, Any]) -> None:
        self.payloads[token] = acl_payload(token, aces)

    def fail(self, token: str, status_code: int = 403) -> None:
        self.failing[token] = status_code

    def query_access_control_lists(self, namespace_id: str, token: str) -> List[Any]:
        self.queries.append(token)
        if token in self.failing:
            raise ServiceError("security", "access denied", status_code=self.failing[token])
        return self.payloads.get(token, [])


class FakeProjects:
    def __init__(self, resources, auth_error=False):
        self.resources = resources
        self.auth_error = auth_error

    def verify(self, project):
        if self.auth_error:
            raise AuthenticationError("Authentication failed", status_code=401)
        return {"id": PROJECT_ID, "name": project}

    def list_repositories(self, project):
        return list(self.resources)


class FakeSecurity(FakeAclService):
    def __init__(self, actions=None):
        super().__init__()
        self.actions = actions or []

    def resolve_namespace(self, name, fallback_id):
        return {"namespaceId": NAMESPACE_ID, "name": name, "actions": self.actions}


class FakePolicies:
    def __init__(self, configurations):
        self.configurations = configurations

    def list_policy_configurations(self, project):
        return self.configurations


class FakeCatalogBuilder:
    def __init__(self, catalog):
        self.catalog = catalog
        self.builds = 0

    def build(self, project):
        self.builds += 1
        return self.catalog


def make_service(settings, directory, resources, security=None, sleeps=None, **kwargs) -> AuditService:
    """Audit service over in-memory collaborators"""
    return AuditService(
        settings,
        projects=kwargs.pop("projects", FakeProjects(resources)),
        security=security or FakeSecurity(),
        identities=directory,
        sleep=(sleeps.append if sleeps is not None else lambda _: None),
        **kwargs,
    )


@pytest.fixture
def resources() -> List[Resource]:
    return [
        Resource("repo-1", "web-app", "refs/heads/main"),
        Resource("repo-2", "api", "refs/heads/develop"),
        Resource("repo-3", "docs"),
    ]


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def acl_service() -> FakeAclService:
    return FakeAclService()


@pytest.fixture
def catalog() -> PermissionCatalog:
    return PermissionCatalog(TEST_PERMISSIONS)


@pytest.fixture
def resolver(directory: FakeDirectory) -> IdentityResolver:
    return IdentityResolver(directory)


@pytest.fixture
def engine(acl_service: FakeAclService, resolver: IdentityResolver, catalog: PermissionCatalog) -> ScopeResolutionEngine:
    return ScopeResolutionEngine(ACLFetcher(acl_service, NAMESPACE_ID), resolver, catalog)
