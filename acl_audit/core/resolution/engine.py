"""Scope resolution engine.

Walks a resource's scope chain from most to least specific and flattens the
ACL entries found there into permission records. The first scope to decide an
(identity, permission) pair owns it: records are never overwritten, so a
less specific scope cannot override a more specific one even with a Deny.
"""

from typing import List, Optional, Sequence, Set, Tuple

from acl_audit.core.acl.fetcher import ACLFetcher
from acl_audit.core.acl.models import AccessControlEntry
from acl_audit.core.identity.models import Identity, IdentityKind, ResolutionFailure
from acl_audit.core.identity.resolver import IdentityResolver
from acl_audit.core.permissions.catalog import (
    AccessDecision,
    PermissionBit,
    PermissionCatalog,
)
from acl_audit.infrastructure.logging import get_logger

from .models import PermissionRecord, Resource, ResourceReport, Scope

logger = get_logger(__name__)

SeenKey = Tuple[str, str]


def describe_source(
    scope: Scope,
    is_direct: bool,
    kind: IdentityKind,
    group_name: Optional[str] = None,
) -> str:
    """Human-readable origin of a record"""
    if group_name is not None:
        source = f"Member of {group_name}"
        return source if is_direct else f"{source} (inherited)"

    if kind == IdentityKind.UNKNOWN:
        if is_direct:
            return "Direct Assignment (unresolved)"
        return f"{scope.level.label}-level (unresolved, inherited)"

    principal = "Group" if kind == IdentityKind.GROUP else "User"
    if is_direct:
        return f"Direct {principal} Assignment"
    return f"{scope.level.label}-level {principal} Assignment (inherited)"


class ScopeResolutionEngine:
    """Builds the deduplicated permission matrix for one resource at a time.

    With ``allow_only`` set, Deny decisions are not reported; they still
    never turn into an Allow.
    """

    def __init__(
        self,
        fetcher: ACLFetcher,
        resolver: IdentityResolver,
        catalog: Optional[PermissionCatalog] = None,
        allow_only: bool = False,
    ):
        self.fetcher = fetcher
        self.resolver = resolver
        self.catalog = catalog or PermissionCatalog.default()
        self.allow_only = allow_only

    def resolve_resource(
        self,
        resource: Resource,
        scopes: Sequence[Scope],
        branch: Optional[str] = None,
        implicit_grants: Sequence[Identity] = (),
    ) -> ResourceReport:
        """Resolve every scope of ``resource`` into permission records.

        ``scopes`` must be ordered most specific first; only the first scope
        produces direct assignments. ``implicit_grants`` are groups holding
        every catalog permission without an ACE (administrator groups). They
        are applied after the scopes, at the least specific one, so explicit
        entries keep precedence.
        """
        report = ResourceReport(resource=resource, scopes=list(scopes), branch=branch)
        seen: Set[SeenKey] = set()

        for index, scope in enumerate(scopes):
            acl = self.fetcher.fetch_acl(scope.token)
            if acl.fetch_error:
                report.warnings.append(
                    f"{scope.level.label} scope unavailable: {acl.fetch_error}"
                )

            emitted = len(report.records)
            for entry in acl.entries:
                self._resolve_entry(report, scope, index == 0, entry, seen)

            logger.debug(
                "scope_resolved",
                scope=scope.level.value,
                entries=len(acl.entries),
                records=len(report.records) - emitted,
            )

        if implicit_grants and scopes:
            self._grant_implicit(report, scopes[-1], implicit_grants, seen)

        logger.info(
            "resource_resolved",
            resource=resource.name,
            records=len(report.records),
            unresolved=len(report.unresolved),
            warnings=len(report.warnings),
        )
        return report

    def _decided_bits(
        self, entry: AccessControlEntry
    ) -> List[Tuple[PermissionBit, AccessDecision]]:
        decided = []
        for permission in self.catalog.all_bits():
            access = self.catalog.decide(entry.allow_mask, entry.deny_mask, permission.bit)
            if access == AccessDecision.NOT_SET:
                continue
            if self.allow_only and access != AccessDecision.ALLOW:
                continue
            decided.append((permission, access))
        return decided

    def _resolve_entry(
        self,
        report: ResourceReport,
        scope: Scope,
        is_direct: bool,
        entry: AccessControlEntry,
        seen: Set[SeenKey],
    ) -> None:
        decided = self._decided_bits(entry)
        if not decided:
            return

        resolution = self.resolver.resolve(entry.identity_descriptor)
        if isinstance(resolution, ResolutionFailure):
            identity = resolution.to_identity()
            if identity.descriptor not in report.unresolved:
                report.unresolved.append(identity.descriptor)
        else:
            identity = resolution

        self._emit(report, scope, is_direct, entry, identity, decided, seen)

    def _grant_implicit(
        self,
        report: ResourceReport,
        scope: Scope,
        groups: Sequence[Identity],
        seen: Set[SeenKey],
    ) -> None:
        granted = [(permission, AccessDecision.ALLOW) for permission in self.catalog.all_bits()]
        for group in groups:
            entry = AccessControlEntry(
                identity_descriptor=group.descriptor,
                allow_mask=self.catalog.mask,
                deny_mask=0,
            )
            self._emit(
                report,
                scope,
                False,
                entry,
                group,
                granted,
                seen,
                source=f"{group.display_name} (implicit administrator)",
            )

    def _emit(
        self,
        report: ResourceReport,
        scope: Scope,
        is_direct: bool,
        entry: AccessControlEntry,
        identity: Identity,
        decided: List[Tuple[PermissionBit, AccessDecision]],
        seen: Set[SeenKey],
        source: Optional[str] = None,
    ) -> None:
        members: Optional[List[Identity]] = None
        for permission, access in decided:
            key = (identity.descriptor, permission.name)
            if key in seen:
                continue
            seen.add(key)
            report.records.append(
                self._make_record(
                    report, scope, entry, identity, permission, access, is_direct, source=source
                )
            )

            if not identity.is_group:
                continue
            if members is None:
                members = self.resolver.expand_members(identity)
            for member in members:
                member_key = (member.descriptor, permission.name)
                if member_key in seen:
                    continue
                seen.add(member_key)
                report.records.append(
                    self._make_record(
                        report,
                        scope,
                        entry,
                        member,
                        permission,
                        access,
                        is_direct=False,
                        group=identity,
                        group_is_direct=is_direct,
                    )
                )

    def _make_record(
        self,
        report: ResourceReport,
        scope: Scope,
        entry: AccessControlEntry,
        identity: Identity,
        permission: PermissionBit,
        access: AccessDecision,
        is_direct: bool,
        group: Optional[Identity] = None,
        group_is_direct: bool = False,
        source: Optional[str] = None,
    ) -> PermissionRecord:
        if source is None:
            if group is not None:
                source = describe_source(scope, group_is_direct, identity.kind, group.display_name)
            else:
                source = describe_source(scope, is_direct, identity.kind)

        return PermissionRecord(
            resource_name=report.resource.name,
            resource_id=report.resource.id,
            identity_descriptor=identity.descriptor,
            identity_display_name=identity.display_name,
            identity_kind=identity.kind,
            permission_name=permission.name,
            access=access,
            allow_mask=entry.allow_mask,
            deny_mask=entry.deny_mask,
            source_scope=scope.level,
            is_direct=is_direct,
            permission_source=source,
            mail_address=identity.mail_address,
            member_of=group.display_name if group is not None else None,
            branch=report.branch,
        )
