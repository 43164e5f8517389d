"""Per-run identity memoization"""

from typing import Dict, List, Optional, Tuple, Union

from .models import Identity, ResolutionFailure

Resolution = Union[Identity, ResolutionFailure]


class IdentityCache:
    """Memoizes resolutions and group expansions for one report run.

    Entries are never invalidated; a new run gets a new cache.
    """

    def __init__(self):
        self._resolutions: Dict[str, Resolution] = {}
        self._by_id: Dict[str, Optional[Identity]] = {}
        self._expansions: Dict[str, Tuple[Identity, ...]] = {}
        self.hits = 0
        self.misses = 0

    def get_resolution(self, descriptor: str) -> Optional[Resolution]:
        resolution = self._resolutions.get(descriptor)
        if resolution is None:
            self.misses += 1
        else:
            self.hits += 1
        return resolution

    def put_resolution(self, descriptor: str, resolution: Resolution) -> None:
        self._resolutions[descriptor] = resolution

    def has_identity_id(self, identity_id: str) -> bool:
        return identity_id in self._by_id

    def get_identity_by_id(self, identity_id: str) -> Optional[Identity]:
        return self._by_id.get(identity_id)

    def put_identity_by_id(self, identity_id: str, identity: Optional[Identity]) -> None:
        self._by_id[identity_id] = identity
        if identity is not None:
            self._resolutions.setdefault(identity.descriptor, identity)

    def get_expansion(self, identity_id: str) -> Optional[Tuple[Identity, ...]]:
        return self._expansions.get(identity_id)

    def put_expansion(self, identity_id: str, members: List[Identity]) -> None:
        self._expansions[identity_id] = tuple(members)

    def stats(self) -> Dict[str, int]:
        return {
            "resolutions": len(self._resolutions),
            "identities_by_id": len(self._by_id),
            "expansions": len(self._expansions),
            "hits": self.hits,
            "misses": self.misses,
        }
