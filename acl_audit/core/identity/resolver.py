"""Identity resolution and group membership expansion"""

from collections import deque
from dataclasses import replace
from typing import Callable, Deque, List, Optional, Protocol, Set, Tuple

from acl_audit.core.errors import ServiceError
from acl_audit.infrastructure.logging import get_logger

from .cache import IdentityCache, Resolution
from .catalog import IdentityCatalog
from .matchers import DESCRIPTOR_MATCHERS, DescriptorMatcher, match_descriptor
from .models import Identity, IdentityKind, MemberRef, ResolutionFailure

logger = get_logger(__name__)

# Descriptors can be several hundred characters long
LOG_DESCRIPTOR_LENGTH = 80


class IdentityDirectory(Protocol):
    """Directory operations the resolver depends on.

    Lookups return ``None`` when the principal does not exist and raise
    ``ServiceError`` when the directory cannot be reached.
    """

    def read_identity_by_descriptor(self, descriptor: str) -> Optional[Identity]:
        ...

    def read_identity(self, identity_id: str) -> Optional[Identity]:
        ...

    def list_members(self, identity_id: str) -> List[MemberRef]:
        ...


class IdentityResolver:
    """Resolves descriptors to identities and expands groups to users.

    Resolution tries, in order: the pure descriptor matchers, the directory,
    and the bulk identity catalog. A descriptor nothing can resolve yields a
    ``ResolutionFailure`` rather than an error.
    """

    def __init__(
        self,
        directory: IdentityDirectory,
        cache: Optional[IdentityCache] = None,
        catalog: Optional[IdentityCatalog] = None,
        catalog_loader: Optional[Callable[[], IdentityCatalog]] = None,
        matchers: Tuple[DescriptorMatcher, ...] = DESCRIPTOR_MATCHERS,
    ):
        self.directory = directory
        self.cache = cache if cache is not None else IdentityCache()
        self.matchers = matchers
        self._catalog = catalog
        self._catalog_loader = catalog_loader

    def resolve(self, descriptor: str) -> Resolution:
        cached = self.cache.get_resolution(descriptor)
        if cached is not None:
            return cached

        resolution = self._resolve_uncached(descriptor)
        self.cache.put_resolution(descriptor, resolution)
        return resolution

    def resolve_or_unknown(self, descriptor: str) -> Identity:
        """Resolve, substituting an Unknown identity on failure"""
        resolution = self.resolve(descriptor)
        if isinstance(resolution, ResolutionFailure):
            return resolution.to_identity()
        return resolution

    def _resolve_uncached(self, descriptor: str) -> Resolution:
        identity = match_descriptor(descriptor, self.matchers)
        if identity is not None:
            logger.debug("identity_matched_from_descriptor", display_name=identity.display_name)
            return identity

        try:
            identity = self.directory.read_identity_by_descriptor(descriptor)
        except ServiceError as e:
            logger.warning(
                "identity_directory_lookup_failed",
                descriptor=descriptor[:LOG_DESCRIPTOR_LENGTH],
                error=e.reason,
            )
            identity = None
        if identity is not None:
            return replace(identity, descriptor=descriptor)

        identity = self.catalog.find(descriptor)
        if identity is not None:
            logger.debug("identity_matched_from_catalog", display_name=identity.display_name)
            return replace(identity, descriptor=descriptor)

        logger.warning("identity_unresolved", descriptor=descriptor[:LOG_DESCRIPTOR_LENGTH])
        return ResolutionFailure(descriptor=descriptor)

    @property
    def catalog(self) -> IdentityCatalog:
        """The bulk catalog, loaded on first use"""
        if self._catalog is None:
            if self._catalog_loader is None:
                self._catalog = IdentityCatalog()
            else:
                try:
                    self._catalog = self._catalog_loader()
                    logger.info("identity_catalog_loaded", identities=len(self._catalog))
                except ServiceError as e:
                    logger.warning("identity_catalog_unavailable", error=e.reason)
                    self._catalog = IdentityCatalog()
        return self._catalog

    def expand_members(self, identity: Identity) -> List[Identity]:
        """Users reachable from a group through nested membership.

        Walks a worklist of group ids with a visited set, so cyclic
        membership terminates. Each user appears at most once; nested groups
        are not included.
        """
        if not identity.is_group:
            return []
        root_id = identity.internal_id
        if not root_id:
            logger.warning(
                "group_expansion_skipped",
                group=identity.display_name,
                reason="no internal id",
            )
            return []

        cached = self.cache.get_expansion(root_id)
        if cached is not None:
            return list(cached)

        users: List[Identity] = []
        user_descriptors: Set[str] = set()
        visited: Set[str] = {root_id}
        pending: Deque[str] = deque([root_id])

        def add_user(member: Identity) -> None:
            if member.descriptor not in user_descriptors:
                user_descriptors.add(member.descriptor)
                users.append(member)

        while pending:
            group_id = pending.popleft()
            for ref in self._list_members(group_id):
                member = self._resolve_member(ref)
                if member is None:
                    continue
                if member.is_group:
                    member_id = member.internal_id
                    if not member_id or member_id in visited:
                        continue
                    visited.add(member_id)
                    nested = self.cache.get_expansion(member_id)
                    if nested is not None:
                        for user in nested:
                            add_user(user)
                    else:
                        pending.append(member_id)
                elif member.kind == IdentityKind.USER:
                    add_user(member)

        self.cache.put_expansion(root_id, users)
        logger.debug(
            "group_expanded",
            group=identity.display_name,
            members=len(users),
            groups_visited=len(visited),
        )
        return users

    def _list_members(self, group_id: str) -> List[MemberRef]:
        try:
            return self.directory.list_members(group_id)
        except ServiceError as e:
            logger.warning("group_members_unavailable", group_id=group_id, error=e.reason)
            return []

    def _resolve_member(self, ref: MemberRef) -> Optional[Identity]:
        """Look a member up by id, then by descriptor when the id lookup misses"""
        member: Optional[Identity] = None
        if ref.identity_id:
            if self.cache.has_identity_id(ref.identity_id):
                member = self.cache.get_identity_by_id(ref.identity_id)
            else:
                try:
                    member = self.directory.read_identity(ref.identity_id)
                except ServiceError as e:
                    logger.warning("member_lookup_failed", identity_id=ref.identity_id, error=e.reason)
                self.cache.put_identity_by_id(ref.identity_id, member)
            if member is not None:
                return member

        if ref.descriptor:
            resolution = self.resolve(ref.descriptor)
            if isinstance(resolution, ResolutionFailure):
                return None
            return resolution

        return None
