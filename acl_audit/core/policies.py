"""Branch policy records and scope matching"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from acl_audit.core.identity.models import Identity
from acl_audit.core.resolution.models import BRANCH_REF_PREFIX


@dataclass(frozen=True)
class BranchPolicyRecord:
    """One enabled policy that applies to an audited branch"""

    repository_name: str
    repository_id: str
    policy_type: str
    policy_id: Any
    is_enabled: bool
    is_blocking: bool
    settings_json: str

    def to_row(self) -> Dict[str, Any]:
        return {
            "repository_name": self.repository_name,
            "repository_id": self.repository_id,
            "policy_type": self.policy_type,
            "policy_id": self.policy_id,
            "is_enabled": self.is_enabled,
            "is_blocking": self.is_blocking,
            "settings_json": self.settings_json,
        }


POLICY_COLUMNS: List[Tuple[str, str]] = [
    ("repository_name", "Repository Name"),
    ("repository_id", "Repository ID"),
    ("policy_type", "Policy Type"),
    ("policy_id", "Policy ID"),
    ("is_enabled", "Is Enabled"),
    ("is_blocking", "Is Blocking"),
    ("settings_json", "Settings (JSON)"),
]


def _scope_matches(scope: Mapping[str, Any], repository_id: str, ref_name: str) -> bool:
    if scope.get("repositoryId") != repository_id:
        return False
    scope_ref = scope.get("refName")
    if not scope_ref:
        return True
    return scope_ref == ref_name or scope.get("matchKind") == "Prefix"


def policy_applies(policy: Mapping[str, Any], repository_id: str, branch: str) -> bool:
    """Whether an enabled policy covers ``branch`` of the repository.

    A scope entry matches when it names the repository and either names the
    branch, is a prefix match, or names no ref at all.
    """
    if not policy.get("isEnabled"):
        return False
    settings = policy.get("settings") or {}
    scopes = settings.get("scope") if isinstance(settings, dict) else None
    if not isinstance(scopes, list):
        return False

    ref_name = branch if branch.startswith(BRANCH_REF_PREFIX) else f"{BRANCH_REF_PREFIX}{branch}"
    return any(
        isinstance(scope, dict) and _scope_matches(scope, repository_id, ref_name)
        for scope in scopes
    )


def to_policy_record(
    policy: Mapping[str, Any], repository_name: str, repository_id: str
) -> BranchPolicyRecord:
    policy_type = policy.get("type") or {}
    return BranchPolicyRecord(
        repository_name=repository_name,
        repository_id=repository_id,
        policy_type=policy_type.get("displayName", "") if isinstance(policy_type, dict) else "",
        policy_id=policy.get("id"),
        is_enabled=bool(policy.get("isEnabled")),
        is_blocking=bool(policy.get("isBlocking")),
        settings_json=json.dumps(policy.get("settings") or {}, sort_keys=True),
    )


# Groups that hold every policy-changing permission without an explicit ACE
POLICY_ADMIN_GROUPS = (
    "Project Administrators",
    "Build Administrators",
    "Project Collection Administrators",
)

# Columns of the report listing who can change or bypass branch policies
POLICY_PERMISSION_COLUMNS: List[Tuple[str, str]] = [
    ("resource_name", "Repository"),
    ("identity_kind", "Identity Type"),
    ("identity_display_name", "Display Name"),
    ("mail_address", "Email Address"),
    ("identity_descriptor", "Descriptor"),
    ("permission_name", "Permission"),
    ("permission_source", "Permission Source"),
    ("is_direct", "Is Direct Assignment"),
]


def is_policy_admin_group(identity: Identity, project: str) -> bool:
    """Whether ``identity`` is an administrator group of ``project``.

    Names look like ``[Platform]\\Project Administrators``; unscoped names
    without a ``[...]`` prefix count for every project.
    """
    if not identity.is_group:
        return False
    name = identity.display_name
    if not any(group in name for group in POLICY_ADMIN_GROUPS):
        return False
    return f"[{project}]" in name or "[" not in name


def policy_admin_groups(identities: Iterable[Identity], project: str) -> List[Identity]:
    groups: List[Identity] = []
    descriptors = set()
    for identity in identities:
        if identity.descriptor in descriptors or not is_policy_admin_group(identity, project):
            continue
        descriptors.add(identity.descriptor)
        groups.append(identity)
    return groups
