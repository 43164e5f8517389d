"""Access control list models and wire parsing"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from acl_audit.infrastructure.logging import get_logger

logger = get_logger(__name__)


class AceWire(BaseModel):
    """One entry of an ACL's ``acesDictionary`` as the service sends it"""

    model_config = ConfigDict(extra="ignore")

    descriptor: Optional[str] = None
    allow: int = 0
    deny: int = 0

    @field_validator("allow", "deny", mode="before")
    @classmethod
    def validate_mask(cls, v: Any) -> Any:
        if v is None:
            return 0
        if isinstance(v, bool) or not isinstance(v, int):
            raise ValueError("mask must be an integer")
        if v < 0:
            raise ValueError("mask must not be negative")
        return v


class AclWire(BaseModel):
    """One ACL as the service sends it"""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    token: str
    inherit_permissions: bool = Field(default=True, alias="inheritPermissions")
    aces_dictionary: Dict[str, Any] = Field(default_factory=dict, alias="acesDictionary")

    @field_validator("aces_dictionary", mode="before")
    @classmethod
    def validate_aces(cls, v: Any) -> Any:
        return {} if v is None else v


@dataclass(frozen=True)
class AccessControlEntry:
    """One identity's allow/deny pair within an ACL"""

    identity_descriptor: str
    allow_mask: int
    deny_mask: int


@dataclass(frozen=True)
class AccessControlList:
    """All entries for one scope token"""

    scope_token: str
    entries: Tuple[AccessControlEntry, ...] = field(default_factory=tuple)
    inherit_permissions: bool = True
    fetch_error: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.entries

    @classmethod
    def empty(cls, scope_token: str, fetch_error: Optional[str] = None) -> "AccessControlList":
        return cls(scope_token=scope_token, fetch_error=fetch_error)

    @classmethod
    def from_payload(cls, scope_token: str, payload: List[Any]) -> "AccessControlList":
        """Merge the service's ACLs for ``scope_token`` into one list.

        ACLs for other tokens and malformed entries are dropped. The first
        entry seen for a descriptor wins.
        """
        entries: Dict[str, AccessControlEntry] = {}
        inherit = True
        wanted = scope_token.lower()

        for raw_acl in payload:
            try:
                acl = AclWire.model_validate(raw_acl)
            except ValidationError as e:
                logger.warning("malformed_acl_dropped", scope_token=scope_token, error=str(e))
                continue
            if acl.token.lower() != wanted:
                continue
            inherit = inherit and acl.inherit_permissions

            for key, raw_ace in acl.aces_dictionary.items():
                try:
                    ace = AceWire.model_validate(raw_ace)
                except ValidationError as e:
                    logger.warning(
                        "malformed_ace_dropped",
                        scope_token=scope_token,
                        descriptor=str(key)[:80],
                        error=str(e),
                    )
                    continue
                descriptor = (ace.descriptor or key).strip()
                if not descriptor:
                    logger.warning("malformed_ace_dropped", scope_token=scope_token, error="empty descriptor")
                    continue
                if descriptor in entries:
                    continue
                entries[descriptor] = AccessControlEntry(
                    identity_descriptor=descriptor,
                    allow_mask=ace.allow,
                    deny_mask=ace.deny,
                )

        return cls(
            scope_token=scope_token,
            entries=tuple(entries.values()),
            inherit_permissions=inherit,
        )
