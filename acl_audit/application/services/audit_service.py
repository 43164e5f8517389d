"""Application service running one permission audit.

A run verifies the access token, lists the project's repositories and, for
each one, resolves its scope chain into permission records. Configuration
and authentication problems end the run; anything that goes wrong inside
one repository is recorded on that repository's report and the run moves on.
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from acl_audit.core.acl.fetcher import ACLFetcher
from acl_audit.core.config import Settings
from acl_audit.core.errors import AuditError, ServiceError
from acl_audit.core.identity.cache import IdentityCache
from acl_audit.core.identity.catalog import IdentityCatalog
from acl_audit.core.identity.models import Identity
from acl_audit.core.identity.resolver import IdentityResolver
from acl_audit.core.permissions.catalog import PermissionCatalog
from acl_audit.core.policies import (
    BranchPolicyRecord,
    policy_admin_groups,
    policy_applies,
    to_policy_record,
)
from acl_audit.core.resolution.engine import ScopeResolutionEngine
from acl_audit.core.resolution.models import PermissionRecord, Resource, ResourceReport
from acl_audit.core.resolution.scopes import build_scope_chain
from acl_audit.infrastructure.devops.graph import GraphCatalogBuilder
from acl_audit.infrastructure.devops.identities import IdentityService
from acl_audit.infrastructure.devops.policies import PolicyService
from acl_audit.infrastructure.devops.projects import ProjectService
from acl_audit.infrastructure.devops.security import SecurityService
from acl_audit.infrastructure.http.client import DevOpsClient
from acl_audit.infrastructure.logging import bind_context, unbind_context

from .base import ServiceBase

# Branch audited for policies when a repository reports no default branch
FALLBACK_BRANCH = "main"


@dataclass
class AuditSummary:
    """Outcome of one audit run"""

    project_name: str
    project_id: str
    reports: List[ResourceReport] = field(default_factory=list)
    cache_stats: Dict[str, int] = field(default_factory=dict)

    @property
    def records(self) -> List[PermissionRecord]:
        return [record for report in self.reports for record in report.records]

    @property
    def failed(self) -> List[ResourceReport]:
        return [report for report in self.reports if not report.succeeded]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project": self.project_name,
            "repositories": len(self.reports),
            "records": len(self.records),
            "failed_repositories": len(self.failed),
            "warnings": sum(len(r.warnings) for r in self.reports),
            "unresolved_identities": len({d for r in self.reports for d in r.unresolved}),
        }


class AuditService(ServiceBase):
    """Drives the scope resolution engine over every repository of a project"""

    def __init__(
        self,
        settings: Settings,
        projects: ProjectService,
        security: SecurityService,
        identities: IdentityService,
        catalog_builder: Optional[GraphCatalogBuilder] = None,
        policies: Optional[PolicyService] = None,
        client: Optional[DevOpsClient] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(client)
        self.settings = settings
        self.projects = projects
        self.security = security
        self.identities = identities
        self.catalog_builder = catalog_builder
        self.policies = policies
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[DevOpsClient] = None) -> "AuditService":
        """Wire the service and its adapters to one HTTP client"""
        client = client or DevOpsClient(
            settings.org_url,
            settings.pat,
            api_version=settings.api_version,
            timeout=settings.request_timeout_seconds,
        )
        identities = IdentityService(client)
        return cls(
            settings,
            projects=ProjectService(client),
            security=SecurityService(client),
            identities=identities,
            catalog_builder=GraphCatalogBuilder(
                client,
                settings.graph_url,
                graph_api_version=settings.graph_api_version,
                identity_service=identities,
            ),
            policies=PolicyService(client),
            client=client,
        )

    def verify(self) -> Dict[str, Any]:
        """Fetch the project; raises ``AuthenticationError`` on rejected credentials"""
        return self.projects.verify(self.settings.project)

    def list_resources(self) -> List[Resource]:
        resources = self.projects.list_repositories(self.settings.project)
        name_filter = self.settings.repository_filter
        if name_filter:
            wanted = name_filter.lower()
            resources = [r for r in resources if wanted in r.name.lower()]
            self.logger.info("repositories_filtered", filter=name_filter, remaining=len(resources))
        return resources

    def branch_for(self, resource: Resource) -> Optional[str]:
        """Branch whose scope is audited for ``resource``, if any"""
        if not self.settings.include_branch_scope:
            return None
        return self.settings.branch or resource.default_branch_name

    def read_identity_catalog(self) -> Optional[IdentityCatalog]:
        """Catalog file named in the settings, if any.

        Raises:
            ConfigurationError: If the file cannot be read
        """
        path = self.settings.identity_catalog_path
        if path is None:
            return None
        catalog = IdentityCatalog.load(path)
        self.logger.info("identity_catalog_read", path=str(path), identities=len(catalog))
        return catalog

    def _build_identity_catalog(self) -> IdentityCatalog:
        if self.catalog_builder is None:
            return IdentityCatalog()
        return self.catalog_builder.build(self.settings.project)

    def build_engine(
        self,
        cache: Optional[IdentityCache] = None,
        catalog: Optional[PermissionCatalog] = None,
        allow_only: bool = False,
    ) -> ScopeResolutionEngine:
        """Engine over the Git namespace; ``catalog`` overrides the configured one"""
        namespace = self.security.resolve_namespace(
            self.settings.git_namespace_name, self.settings.git_namespace_id
        )

        if catalog is None:
            catalog = PermissionCatalog.default()
            actions = namespace.get("actions") or []
            if self.settings.use_namespace_catalog and actions:
                catalog = PermissionCatalog.from_namespace_actions(actions)
                self.logger.info("permission_catalog_from_namespace", permissions=len(catalog))

        # A catalog file is read up front; a built catalog only when first needed
        resolver = IdentityResolver(
            self.identities,
            cache=cache,
            catalog=self.read_identity_catalog(),
            catalog_loader=self._build_identity_catalog,
        )
        fetcher = ACLFetcher(self.security, namespace["namespaceId"])
        return ScopeResolutionEngine(fetcher, resolver, catalog, allow_only=allow_only)

    def audit_resource(
        self,
        engine: ScopeResolutionEngine,
        project_id: str,
        resource: Resource,
        include_branch: bool = True,
        implicit_grants: Sequence[Identity] = (),
    ) -> ResourceReport:
        """Resolve one repository; failures are recorded, not raised"""
        branch = self.branch_for(resource) if include_branch else None
        bind_context(repository=resource.name, branch=branch)
        try:
            scopes = build_scope_chain(project_id, resource.id, branch)
            return engine.resolve_resource(
                resource, scopes, branch=branch, implicit_grants=implicit_grants
            )
        except AuditError as e:
            self.logger.error("repository_audit_failed", error=e.message, exc_info=True)
            return ResourceReport(resource=resource, scopes=[], branch=branch, error=e.message)
        except Exception as e:
            self.logger.error(
                "repository_audit_failed",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return ResourceReport(
                resource=resource, scopes=[], branch=branch, error=f"{type(e).__name__}: {e}"
            )
        finally:
            unbind_context("repository", "branch")

    def _audit_resources(
        self,
        project: Dict[str, Any],
        resources: List[Resource],
        engine: ScopeResolutionEngine,
        cache: IdentityCache,
        **options: Any,
    ) -> AuditSummary:
        summary = AuditSummary(
            project_name=project.get("name", self.settings.project), project_id=project["id"]
        )
        for index, resource in enumerate(resources):
            summary.reports.append(self.audit_resource(engine, project["id"], resource, **options))
            if index < len(resources) - 1 and self.settings.request_delay_seconds:
                self._sleep(self.settings.request_delay_seconds)
        summary.cache_stats = cache.stats()
        return summary

    def run(self) -> AuditSummary:
        """Audit every repository of the configured project.

        Raises:
            AuthenticationError: If the first call is rejected
            ConfigurationError: If the identity catalog file cannot be read
            ServiceError: If the project or its repositories cannot be read
        """
        bind_context(run_id=uuid.uuid4().hex[:12], project=self.settings.project)
        project = self.verify()
        resources = self.list_resources()

        cache = IdentityCache()
        summary = self._audit_resources(project, resources, self.build_engine(cache), cache)
        self.logger.info("audit_completed", **summary.to_dict(), **summary.cache_stats)
        return summary

    def policy_admin_groups(self) -> List[Identity]:
        """Administrator groups of the project; empty when the listing fails"""
        try:
            identities = self.identities.list_identities()
        except ServiceError as e:
            self.logger.warning("admin_groups_unavailable", error=e.reason)
            return []
        groups = policy_admin_groups(identities, self.settings.project)
        self.logger.info("admin_groups_found", groups=[g.display_name for g in groups])
        return groups

    def audit_policy_permissions(self) -> AuditSummary:
        """Who can change or bypass branch policies, per repository.

        Walks the repository and project scopes with only the policy-changing
        permissions and reports allows. Project administrator groups and
        their members are added with every such permission.
        """
        bind_context(run_id=uuid.uuid4().hex[:12], project=self.settings.project)
        project = self.verify()
        resources = self.list_resources()

        cache = IdentityCache()
        engine = self.build_engine(cache, catalog=PermissionCatalog.policy_change(), allow_only=True)
        summary = self._audit_resources(
            project,
            resources,
            engine,
            cache,
            include_branch=False,
            implicit_grants=self.policy_admin_groups(),
        )
        self.logger.info("policy_permissions_completed", **summary.to_dict())
        return summary

    def export_policies(self) -> List[BranchPolicyRecord]:
        """Enabled branch policies for the audited branch of every repository"""
        if self.policies is None:
            return []
        bind_context(project=self.settings.project)
        self.verify()
        resources = self.list_resources()
        configurations = self.policies.list_policy_configurations(self.settings.project)

        records: List[BranchPolicyRecord] = []
        for resource in resources:
            branch = self.settings.branch or resource.default_branch_name or FALLBACK_BRANCH
            for policy in configurations:
                if policy_applies(policy, resource.id, branch):
                    records.append(to_policy_record(policy, resource.name, resource.id))

        self.logger.info(
            "policies_exported",
            repositories=len(resources),
            configurations=len(configurations),
            records=len(records),
        )
        return records

    def build_identity_catalog(self) -> IdentityCatalog:
        """Identity catalog built from the service's bulk sources"""
        if self.catalog_builder is None:
            raise ServiceError("graph", "no catalog builder configured")
        bind_context(project=self.settings.project)
        self.verify()
        return self.catalog_builder.build(self.settings.project)
