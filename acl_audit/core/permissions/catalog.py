"""Permission catalog and access decision rule"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from acl_audit.infrastructure.logging import get_logger

logger = get_logger(__name__)


class AccessDecision(str, Enum):
    """Outcome of evaluating one permission bit against an ACE"""

    ALLOW = "Allow"
    DENY = "Deny"
    NOT_SET = "Not Set"


@dataclass(frozen=True)
class PermissionBit:
    """A single named capability"""

    bit: int
    name: str


# Git Repositories namespace. Administer and Manage permissions are kept on
# distinct bits, matching the namespace definition the service publishes.
GIT_REPOSITORY_PERMISSIONS: Dict[int, str] = {
    1: "Administer",
    2: "Read",
    4: "Contribute",
    8: "Force push (rewrite history, delete branches and tags)",
    16: "Create branch",
    32: "Create tag",
    64: "Manage notes",
    128: "Bypass policies when pushing",
    256: "Create repository",
    512: "Delete repository",
    1024: "Rename repository",
    2048: "Edit policies",
    4096: "Remove others' locks",
    8192: "Manage permissions",
    16384: "Contribute to pull requests",
    32768: "Bypass policies when completing pull requests",
}

# Bits that let an identity change or get around branch policies
POLICY_CHANGE_BITS: Tuple[int, ...] = (4, 8, 128, 2048, 4096, 8192, 32768)


def decide(allow_mask: int, deny_mask: int, bit: int) -> AccessDecision:
    """Evaluate one bit. Deny wins over allow when both are set."""
    if deny_mask & bit == bit:
        return AccessDecision.DENY
    if allow_mask & bit == bit:
        return AccessDecision.ALLOW
    return AccessDecision.NOT_SET


class PermissionCatalog:
    """Ordered, injective mapping of permission bits to names"""

    def __init__(self, permissions: Mapping[int, str]):
        bits: List[PermissionBit] = []
        names = set()
        for bit, name in sorted(permissions.items()):
            if bit <= 0 or bit & (bit - 1):
                raise ValueError(f"Permission bit must be a single positive bit: {bit}")
            if name in names:
                raise ValueError(f"Permission name used twice: {name}")
            names.add(name)
            bits.append(PermissionBit(bit=bit, name=name))
        self._bits: Tuple[PermissionBit, ...] = tuple(bits)

    @classmethod
    def default(cls) -> "PermissionCatalog":
        return cls(GIT_REPOSITORY_PERMISSIONS)

    @classmethod
    def policy_change(cls) -> "PermissionCatalog":
        """Canonical permissions that can alter or bypass branch policies"""
        return cls.default().subset(POLICY_CHANGE_BITS)

    @classmethod
    def from_namespace_actions(cls, actions: Iterable[Mapping[str, Any]]) -> "PermissionCatalog":
        """Build a catalog from a security namespace's ``actions`` list.

        Each action carries ``bit`` and ``displayName`` (or ``name``). Entries
        without a usable bit are skipped; when two actions share a bit the
        first one is kept.
        """
        permissions: Dict[int, str] = {}
        seen_names = set()
        for action in actions:
            bit = action.get("bit")
            name = action.get("displayName") or action.get("name")
            if not isinstance(bit, int) or bit <= 0 or bit & (bit - 1) or not name:
                logger.warning("namespace_action_skipped", action=dict(action))
                continue
            if bit in permissions or name in seen_names:
                logger.warning(
                    "namespace_action_aliased",
                    bit=bit,
                    name=name,
                    kept=permissions.get(bit),
                )
                continue
            permissions[bit] = name
            seen_names.add(name)
        return cls(permissions)

    def subset(self, bits: Iterable[int]) -> "PermissionCatalog":
        """Catalog restricted to ``bits``; unknown bits are ignored"""
        wanted = set(bits)
        return PermissionCatalog({p.bit: p.name for p in self._bits if p.bit in wanted})

    @property
    def mask(self) -> int:
        """Every catalog bit OR-ed together"""
        mask = 0
        for permission in self._bits:
            mask |= permission.bit
        return mask

    def all_bits(self) -> Tuple[PermissionBit, ...]:
        """All permissions in ascending bit order"""
        return self._bits

    def decide(self, allow_mask: int, deny_mask: int, bit: int) -> AccessDecision:
        return decide(allow_mask, deny_mask, bit)

    def name_of(self, bit: int) -> Optional[str]:
        for permission in self._bits:
            if permission.bit == bit:
                return permission.name
        return None

    def names_for(self, mask: int) -> List[str]:
        """Names of every catalog bit set in ``mask``"""
        return [p.name for p in self._bits if mask & p.bit == p.bit]

    def __len__(self) -> int:
        return len(self._bits)

    def __iter__(self):
        return iter(self._bits)
