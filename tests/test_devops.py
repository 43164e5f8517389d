"""Tests for the HTTP client and Azure DevOps adapters"""

import base64
import json

import httpx
import pytest

from acl_audit.core.acl.fetcher import ACLFetcher
from acl_audit.core.errors import AuthenticationError, ServiceError
from acl_audit.core.identity.models import Identity, IdentityKind, MemberRef
from acl_audit.core.policies import (
    is_policy_admin_group,
    policy_admin_groups,
    policy_applies,
    to_policy_record,
)
from acl_audit.infrastructure.devops.graph import GraphCatalogBuilder
from acl_audit.infrastructure.devops.identities import IdentityService, parse_identity
from acl_audit.infrastructure.devops.policies import PolicyService
from acl_audit.infrastructure.devops.projects import ProjectService
from acl_audit.infrastructure.devops.security import SecurityService
from acl_audit.infrastructure.http.client import APIError, DevOpsClient

ORG_URL = "https://dev.azure.com/contoso"
GRAPH_URL = "https://vssps.dev.azure.com/contoso"


def make_client(routes, seen=None):
    """Client whose transport answers from ``routes``: path -> (status, body)"""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        status, body = routes.get(request.url.path, (404, {"message": "not found"}))
        if isinstance(body, str):
            return httpx.Response(status, text=body, headers={"Content-Type": "text/html"})
        return httpx.Response(status, json=body)

    return DevOpsClient(ORG_URL, "secret-pat", transport=httpx.MockTransport(handler))


class TestDevOpsClient:
    """Test the authenticated HTTP client"""

    def test_basic_auth_and_api_version(self):
        """Test every request carries the PAT and api-version"""
        seen = []
        client = make_client({"/contoso/_apis/projects/P": (200, {"id": "p1"})}, seen)

        assert client.get("_apis/projects/P") == {"id": "p1"}

        request = seen[0]
        expected = base64.b64encode(b":secret-pat").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"
        assert request.url.params["api-version"] == "7.0"

    def test_absolute_urls_and_version_override(self):
        """Test Graph calls use their own host and version"""
        seen = []
        client = make_client({"/_apis/graph/users": (200, {"value": [{"descriptor": "aad.1"}]})}, seen)

        items = client.get_list(f"{GRAPH_URL}/_apis/graph/users", api_version="7.1-preview.1")

        assert items == [{"descriptor": "aad.1"}]
        assert seen[0].url.host == "vssps.dev.azure.com"
        assert seen[0].url.params["api-version"] == "7.1-preview.1"

    def test_error_status_raises(self):
        """Test error responses become APIError"""
        client = make_client({"/contoso/_apis/x": (500, {"message": "boom"})})

        with pytest.raises(APIError) as exc_info:
            client.get("_apis/x")

        assert exc_info.value.status_code == 500
        assert str(exc_info.value) == "boom"

    def test_sign_in_page_raises(self):
        """Test an HTML response is treated as an authentication failure"""
        client = make_client({"/contoso/_apis/x": (203, "<html>Sign in</html>")})

        with pytest.raises(APIError) as exc_info:
            client.get("_apis/x")

        assert exc_info.value.is_auth_failure

    def test_transport_errors_raise(self):
        """Test network failures become APIError"""

        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        client = DevOpsClient(ORG_URL, "pat", transport=httpx.MockTransport(handler))

        with pytest.raises(APIError) as exc_info:
            client.get("_apis/x")
        assert exc_info.value.status_code is None


class TestProjectService:
    """Test project verification and repository listing"""

    def test_verify(self):
        """Test a readable project"""
        client = make_client({"/contoso/_apis/projects/Platform": (200, {"id": "p1", "name": "Platform"})})
        assert ProjectService(client).verify("Platform")["id"] == "p1"

    @pytest.mark.parametrize("status", [401, 403])
    def test_verify_rejected_token(self, status):
        """Test rejected credentials are fatal"""
        client = make_client({"/contoso/_apis/projects/Platform": (status, {"message": "denied"})})

        with pytest.raises(AuthenticationError):
            ProjectService(client).verify("Platform")

    def test_verify_missing_project(self):
        """Test other failures are service errors"""
        client = make_client({})

        with pytest.raises(ServiceError) as exc_info:
            ProjectService(client).verify("Platform")
        assert exc_info.value.status_code == 404

    def test_list_repositories(self):
        """Test repository parsing"""
        client = make_client(
            {
                "/contoso/Platform/_apis/git/repositories": (
                    200,
                    {
                        "value": [
                            {"id": "r1", "name": "web", "defaultBranch": "refs/heads/main"},
                            {"id": "r2", "name": "empty"},
                            {"name": "no-id"},
                        ]
                    },
                )
            }
        )

        repositories = ProjectService(client).list_repositories("Platform")

        assert [(r.id, r.name, r.default_branch_name) for r in repositories] == [
            ("r1", "web", "main"),
            ("r2", "empty", None),
        ]


class TestSecurityService:
    """Test namespace lookup and ACL queries"""

    NAMESPACES = {
        "value": [
            {"namespaceId": "ns-other", "name": "Other", "displayName": "Other"},
            {
                "namespaceId": "ns-git",
                "name": "Git Repositories",
                "displayName": "Git Repositories",
                "actions": [{"bit": 2, "displayName": "Read"}],
            },
        ]
    }

    def test_resolve_namespace_by_name(self):
        """Test the namespace is found by display name"""
        client = make_client({"/contoso/_apis/securitynamespaces": (200, self.NAMESPACES)})

        namespace = SecurityService(client).resolve_namespace("git repositories", "fallback")

        assert namespace["namespaceId"] == "ns-git"
        assert namespace["actions"] == [{"bit": 2, "displayName": "Read"}]

    def test_resolve_namespace_fallback(self):
        """Test the well-known id is used when lookup fails"""
        client = make_client({"/contoso/_apis/securitynamespaces": (500, {"message": "down"})})

        namespace = SecurityService(client).resolve_namespace("Git Repositories", "fallback")

        assert namespace == {"namespaceId": "fallback", "name": "Git Repositories", "actions": []}

    def test_query_access_control_lists(self):
        """Test the token is passed as a query parameter"""
        seen = []
        payload = {"value": [{"token": "repoV2/p", "acesDictionary": {}}]}
        client = make_client({"/contoso/_apis/accesscontrollists/ns-git": (200, payload)}, seen)

        result = SecurityService(client).query_access_control_lists("ns-git", "repoV2/p")

        assert result == payload["value"]
        assert seen[0].url.params["token"] == "repoV2/p"

    @pytest.mark.parametrize("body", ["oops", 42, {"value": "oops"}])
    def test_malformed_body_gives_empty_acl(self, body):
        """Test a body that is not a collection is a recoverable fetch failure"""

        def handler(request):
            return httpx.Response(200, json=body)

        client = DevOpsClient(ORG_URL, "secret-pat", transport=httpx.MockTransport(handler))

        acl = ACLFetcher(SecurityService(client), "ns-git").fetch_acl("repoV2/p")

        assert acl.entries == ()
        assert "Expected a collection" in acl.fetch_error

    def test_query_failure_is_service_error(self):
        """Test failures carry the status code"""
        client = make_client({"/contoso/_apis/accesscontrollists/ns-git": (403, {"message": "no"})})

        with pytest.raises(ServiceError) as exc_info:
            SecurityService(client).query_access_control_lists("ns-git", "repoV2/p")
        assert exc_info.value.status_code == 403


class TestIdentityService:
    """Test identity parsing and lookups"""

    GROUP = {
        "id": "gid-1",
        "descriptor": "Microsoft.TeamFoundation.Identity;S-1-9-1",
        "providerDisplayName": "[Platform]\\Contributors",
        "customDisplayName": None,
        "isContainer": True,
    }
    USER = {
        "id": "uid-1",
        "descriptor": "Microsoft.IdentityModel.Claims.ClaimsIdentity;t\\alice@contoso.com",
        "providerDisplayName": "Alice",
        "isContainer": False,
        "properties": {"Account": {"$type": "System.String", "$value": "alice@contoso.com"}},
    }

    def test_parse_identity(self):
        """Test display name preference and kind"""
        group = parse_identity(self.GROUP)
        user = parse_identity(self.USER)

        assert group.kind == IdentityKind.GROUP
        assert group.display_name == "[Platform]\\Contributors"
        assert group.internal_id == "gid-1"
        assert user.kind == IdentityKind.USER
        assert user.mail_address == "alice@contoso.com"
        assert parse_identity(None) is None

    def test_read_by_descriptor_skips_nulls(self):
        """Test the lookup returns the first usable entry"""
        client = make_client({"/contoso/_apis/identities": (200, {"value": [None, self.GROUP]})})

        identity = IdentityService(client).read_identity_by_descriptor(self.GROUP["descriptor"])

        assert identity.internal_id == "gid-1"

    def test_read_identity_not_found(self):
        """Test a missing id is None, not an error"""
        assert IdentityService(make_client({})).read_identity("nope") is None

    def test_list_members(self):
        """Test both member shapes"""
        client = make_client(
            {
                "/contoso/_apis/identities/gid-1/members": (
                    200,
                    {"value": ["Microsoft.TeamFoundation.Identity;S-1-9-2", {"id": "uid-1"}, 7]},
                )
            }
        )

        members = IdentityService(client).list_members("gid-1")

        assert members == [
            MemberRef(descriptor="Microsoft.TeamFoundation.Identity;S-1-9-2"),
            MemberRef(identity_id="uid-1"),
        ]


class TestGraphCatalogBuilder:
    """Test the bulk identity catalog"""

    def test_graph_sources(self):
        """Test groups and users from Graph"""
        client = make_client(
            {
                "/contoso/_apis/projects/P/teams": (200, {"value": []}),
                "/_apis/graph/groups": (200, {"value": [{"descriptor": "vssgp.1", "displayName": "Readers"}]}),
                "/_apis/graph/users": (
                    200,
                    {"value": [{"descriptor": "aad.1", "principalName": "bob@contoso.com", "mailAddress": "bob@contoso.com"}]},
                ),
            }
        )

        catalog = GraphCatalogBuilder(client, GRAPH_URL).build("P")

        assert catalog.find("vssgp.1").kind == IdentityKind.GROUP
        assert catalog.find("aad.1").display_name == "bob@contoso.com"

    def test_team_members_when_groups_unavailable(self):
        """Test the team membership fallback"""
        client = make_client(
            {
                "/contoso/_apis/projects/P/teams": (200, {"value": [{"id": "t1", "name": "Team"}]}),
                "/contoso/_apis/projects/P/teams/t1/members": (
                    200,
                    {"value": [{"identity": {"descriptor": "d-carol", "displayName": "Carol", "uniqueName": "carol@contoso.com", "id": "c1"}}]},
                ),
                "/_apis/graph/groups": (401, {"message": "denied"}),
                "/_apis/graph/users": (401, {"message": "denied"}),
            }
        )

        catalog = GraphCatalogBuilder(client, GRAPH_URL).build("P")
        carol = catalog.find("d-carol")

        assert carol.display_name == "Carol"
        assert carol.mail_address == "carol@contoso.com"
        assert carol.kind == IdentityKind.USER


class TestPolicies:
    """Test branch policy matching"""

    def policy(self, scope, enabled=True):
        return {
            "id": 12,
            "isEnabled": enabled,
            "isBlocking": True,
            "type": {"displayName": "Minimum number of reviewers"},
            "settings": {"minimumApproverCount": 2, "scope": scope},
        }

    @pytest.mark.parametrize(
        "scope,expected",
        [
            ([{"repositoryId": "r1", "refName": "refs/heads/main", "matchKind": "Exact"}], True),
            ([{"repositoryId": "r1", "refName": "refs/heads/release", "matchKind": "Prefix"}], True),
            ([{"repositoryId": "r1"}], True),
            ([{"repositoryId": "r1", "refName": "refs/heads/dev", "matchKind": "Exact"}], False),
            ([{"repositoryId": "r2", "refName": "refs/heads/main"}], False),
            ([], False),
        ],
    )
    def test_policy_applies(self, scope, expected):
        """Test repository and branch matching"""
        assert policy_applies(self.policy(scope), "r1", "main") is expected

    def test_disabled_policy(self):
        """Test disabled policies never apply"""
        scope = [{"repositoryId": "r1"}]
        assert policy_applies(self.policy(scope, enabled=False), "r1", "main") is False

    def test_policy_record(self):
        """Test record fields"""
        policy = self.policy([{"repositoryId": "r1"}])
        record = to_policy_record(policy, "web", "r1")

        assert record.policy_type == "Minimum number of reviewers"
        assert record.is_blocking is True
        assert json.loads(record.settings_json)["minimumApproverCount"] == 2

    def test_list_policy_configurations(self):
        """Test the configurations listing"""
        client = make_client(
            {"/contoso/P/_apis/policy/configurations": (200, {"value": [self.policy([]), "bad"]})}
        )
        assert len(PolicyService(client).list_policy_configurations("P")) == 1

    @pytest.mark.parametrize(
        "name,kind,expected",
        [
            ("[Platform]\\Project Administrators", IdentityKind.GROUP, True),
            ("[Platform]\\Build Administrators", IdentityKind.GROUP, True),
            ("Project Collection Administrators", IdentityKind.GROUP, True),
            ("[Other]\\Project Administrators", IdentityKind.GROUP, False),
            ("[Platform]\\Contributors", IdentityKind.GROUP, False),
            ("Project Administrators", IdentityKind.USER, False),
        ],
    )
    def test_admin_group_matching(self, name, kind, expected):
        """Test administrator groups are matched by name and project"""
        identity = Identity(descriptor=name, display_name=name, kind=kind)
        assert is_policy_admin_group(identity, "Platform") is expected

    def test_admin_groups_are_distinct(self):
        """Test a group listed twice is kept once"""
        admins = Identity(
            descriptor="d-admins", display_name="[Platform]\\Project Administrators", kind=IdentityKind.GROUP
        )
        assert policy_admin_groups([admins, admins], "Platform") == [admins]
