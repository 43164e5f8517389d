"""Bulk identity catalog used as the last resolution fallback"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from acl_audit.core.errors import ConfigurationError

from .models import Identity, IdentityKind


class IdentityCatalog:
    """Identities fetched in bulk, indexed by descriptor"""

    def __init__(self, identities: Iterable[Identity] = ()):
        self._by_descriptor: Dict[str, Identity] = {}
        for identity in identities:
            self._by_descriptor.setdefault(identity.descriptor, identity)

    def find(self, descriptor: str) -> Optional[Identity]:
        """Exact descriptor match"""
        return self._by_descriptor.get(descriptor)

    def merge(self, identities: Iterable[Identity]) -> int:
        """Add identities not yet present; returns how many were added"""
        added = 0
        for identity in identities:
            if identity.descriptor not in self._by_descriptor:
                self._by_descriptor[identity.descriptor] = identity
                added += 1
        return added

    def identities(self) -> List[Identity]:
        return list(self._by_descriptor.values())

    def count(self, kind: IdentityKind) -> int:
        return sum(1 for i in self._by_descriptor.values() if i.kind == kind)

    def __len__(self) -> int:
        return len(self._by_descriptor)

    def __contains__(self, descriptor: str) -> bool:
        return descriptor in self._by_descriptor

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identities": [
                {
                    "descriptor": i.descriptor,
                    "display_name": i.display_name,
                    "kind": i.kind.value,
                    "internal_id": i.internal_id,
                    "mail_address": i.mail_address,
                }
                for i in self._by_descriptor.values()
            ]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IdentityCatalog":
        identities = []
        for item in data.get("identities", []):
            if not isinstance(item, dict) or not item.get("descriptor"):
                continue
            try:
                kind = IdentityKind(item.get("kind", IdentityKind.UNKNOWN.value))
            except ValueError:
                kind = IdentityKind.UNKNOWN
            identities.append(
                Identity(
                    descriptor=item["descriptor"],
                    display_name=item.get("display_name") or item["descriptor"],
                    kind=kind,
                    internal_id=item.get("internal_id"),
                    mail_address=item.get("mail_address") or "",
                )
            )
        return cls(identities)

    def save(self, path: Path) -> None:
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> "IdentityCatalog":
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Cannot read identity catalog '{path}': {e}", ["identity_catalog_path"]
            ) from e
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Identity catalog '{path}' must contain a JSON object",
                ["identity_catalog_path"],
            )
        return cls.from_dict(data)
