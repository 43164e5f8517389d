"""Scope and permission record models"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from acl_audit.core.identity.models import IdentityKind
from acl_audit.core.permissions.catalog import AccessDecision

BRANCH_REF_PREFIX = "refs/heads/"


class ScopeLevel(str, Enum):
    """Points in the inheritance hierarchy, most specific first"""

    BRANCH = "branch"
    REPOSITORY = "repository"
    PROJECT = "project"

    @property
    def specificity(self) -> int:
        """Lower is more specific"""
        return list(ScopeLevel).index(self)

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class Scope:
    """One security scope in a resource's chain"""

    level: ScopeLevel
    token: str


@dataclass(frozen=True)
class Resource:
    """A repository to audit"""

    id: str
    name: str
    default_branch: Optional[str] = None

    @property
    def default_branch_name(self) -> Optional[str]:
        """Default branch without the ``refs/heads/`` prefix"""
        if not self.default_branch:
            return None
        if self.default_branch.startswith(BRANCH_REF_PREFIX):
            return self.default_branch[len(BRANCH_REF_PREFIX):]
        return self.default_branch


@dataclass(frozen=True)
class PermissionRecord:
    """One row of the permission matrix"""

    resource_name: str
    resource_id: str
    identity_descriptor: str
    identity_display_name: str
    identity_kind: IdentityKind
    permission_name: str
    access: AccessDecision
    allow_mask: int
    deny_mask: int
    source_scope: ScopeLevel
    is_direct: bool
    permission_source: str = ""
    mail_address: str = ""
    member_of: Optional[str] = None
    branch: Optional[str] = None

    @property
    def dedup_key(self) -> Tuple[str, str, str]:
        return (self.resource_name, self.identity_descriptor, self.permission_name)

    def to_row(self) -> Dict[str, Any]:
        return {
            "resource_name": self.resource_name,
            "resource_id": self.resource_id,
            "branch": self.branch or "",
            "identity_kind": self.identity_kind.value,
            "identity_display_name": self.identity_display_name,
            "mail_address": self.mail_address,
            "identity_descriptor": self.identity_descriptor,
            "permission_name": self.permission_name,
            "access": self.access.value,
            "allow_mask": self.allow_mask,
            "deny_mask": self.deny_mask,
            "source_scope": self.source_scope.value,
            "permission_source": self.permission_source,
            "member_of": self.member_of or "",
            "is_direct": "Yes" if self.is_direct else "No",
        }


# Report column order and titles
REPORT_COLUMNS: List[Tuple[str, str]] = [
    ("resource_name", "Repository"),
    ("resource_id", "Repository ID"),
    ("branch", "Branch"),
    ("identity_kind", "Identity Type"),
    ("identity_display_name", "Display Name"),
    ("mail_address", "Email Address"),
    ("identity_descriptor", "Descriptor"),
    ("permission_name", "Permission"),
    ("access", "Allow/Deny"),
    ("allow_mask", "Allow Mask"),
    ("deny_mask", "Deny Mask"),
    ("source_scope", "Source Scope"),
    ("permission_source", "Permission Source"),
    ("member_of", "Member Of"),
    ("is_direct", "Is Direct Assignment"),
]


@dataclass
class ResourceReport:
    """Outcome of resolving one resource"""

    resource: Resource
    scopes: List[Scope]
    records: List[PermissionRecord] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    unresolved: List[str] = field(default_factory=list)
    branch: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None
