"""Bulk identity catalog built from teams, Graph groups and Graph users"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from acl_audit.core.errors import ServiceError
from acl_audit.core.identity.catalog import IdentityCatalog
from acl_audit.core.identity.models import Identity, IdentityKind
from acl_audit.infrastructure.http.client import DevOpsClient

from .base import DevOpsAdapter
from .identities import IdentityService


def parse_graph_subject(data: Any, kind: IdentityKind) -> Optional[Identity]:
    if not isinstance(data, dict) or not data.get("descriptor"):
        return None
    return Identity(
        descriptor=data["descriptor"],
        display_name=data.get("displayName") or data.get("principalName") or data["descriptor"],
        kind=kind,
        internal_id=data.get("originId"),
        mail_address=data.get("mailAddress") or "",
    )


def parse_team_identity(data: Any, kind: IdentityKind) -> Optional[Identity]:
    """Identity embedded in a team or team-member payload"""
    if not isinstance(data, dict):
        return None
    identity = data.get("identity") if "identity" in data else data
    if not isinstance(identity, dict) or not identity.get("descriptor"):
        return None
    unique_name = identity.get("uniqueName") or ""
    return Identity(
        descriptor=identity["descriptor"],
        display_name=identity.get("displayName") or data.get("name") or identity["descriptor"],
        kind=kind,
        internal_id=identity.get("id") or data.get("id"),
        mail_address=unique_name if "@" in unique_name else "",
    )


class GraphCatalogBuilder(DevOpsAdapter):
    """Collects identities from every bulk source that answers.

    Each source is optional: a failing source is logged and skipped. When
    Graph groups are unavailable, users are gathered from team memberships
    instead.
    """

    service_name = "graph"

    def __init__(
        self,
        client: DevOpsClient,
        graph_url: str,
        graph_api_version: str = "7.1-preview.1",
        identity_service: Optional[IdentityService] = None,
    ):
        super().__init__(client)
        self.graph_url = graph_url.rstrip("/")
        self.graph_api_version = graph_api_version
        self.identity_service = identity_service

    def build(self, project: str) -> IdentityCatalog:
        catalog = IdentityCatalog()
        sources: Dict[str, int] = {}

        teams = self._list_teams(project)
        sources["teams"] = catalog.merge(
            i for i in (parse_team_identity(t, IdentityKind.GROUP) for t in teams) if i
        )

        try:
            groups = self._get_list(
                f"{self.graph_url}/_apis/graph/groups", api_version=self.graph_api_version
            )
            sources["graph_groups"] = catalog.merge(
                i for i in (parse_graph_subject(g, IdentityKind.GROUP) for g in groups) if i
            )
        except ServiceError as e:
            self.logger.warning("graph_groups_unavailable", status_code=e.status_code, error=e.reason)
            sources["team_members"] = catalog.merge(self._team_members(project, teams))

        try:
            users = self._get_list(
                f"{self.graph_url}/_apis/graph/users", api_version=self.graph_api_version
            )
            sources["graph_users"] = catalog.merge(
                i for i in (parse_graph_subject(u, IdentityKind.USER) for u in users) if i
            )
        except ServiceError as e:
            self.logger.warning("graph_users_unavailable", status_code=e.status_code, error=e.reason)

        if self.identity_service is not None:
            try:
                sources["identities"] = catalog.merge(self.identity_service.list_identities())
            except ServiceError as e:
                self.logger.warning("identity_search_unavailable", error=e.reason)

        self.logger.info(
            "identity_catalog_built",
            identities=len(catalog),
            groups=catalog.count(IdentityKind.GROUP),
            users=catalog.count(IdentityKind.USER),
            **sources,
        )
        return catalog

    def _list_teams(self, project: str) -> List[Dict[str, Any]]:
        try:
            teams = self._get_list(f"_apis/projects/{quote(project, safe='')}/teams")
        except ServiceError as e:
            self.logger.warning("teams_unavailable", project=project, error=e.reason)
            return []
        return [t for t in teams if isinstance(t, dict)]

    def _team_members(self, project: str, teams: List[Dict[str, Any]]) -> List[Identity]:
        members: List[Identity] = []
        for team in teams:
            team_id = team.get("id")
            if not team_id:
                continue
            try:
                items = self._get_list(
                    f"_apis/projects/{quote(project, safe='')}/teams/{team_id}/members"
                )
            except ServiceError as e:
                self.logger.warning("team_members_unavailable", team=team.get("name"), error=e.reason)
                continue
            for item in items:
                identity = parse_team_identity(item, IdentityKind.USER)
                if identity is not None:
                    members.append(identity)
        return members
