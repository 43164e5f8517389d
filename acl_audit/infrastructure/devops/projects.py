"""Project and repository listing"""

from typing import Any, Dict, List
from urllib.parse import quote

from acl_audit.core.errors import AuthenticationError
from acl_audit.core.resolution.models import Resource
from acl_audit.infrastructure.http.client import APIError

from .base import DevOpsAdapter


class ProjectService(DevOpsAdapter):
    """Reads the audited project and its Git repositories"""

    service_name = "projects"

    def verify(self, project: str) -> Dict[str, Any]:
        """Fetch the project, treating rejected credentials as fatal.

        This is the first call of every run.

        Raises:
            AuthenticationError: If the service rejects the access token
            ServiceError: For any other failure
        """
        try:
            data = self.client.get(f"_apis/projects/{quote(project, safe='')}")
        except APIError as e:
            if e.is_auth_failure:
                raise AuthenticationError(
                    f"Authentication failed for project '{project}': {e}",
                    status_code=e.status_code,
                ) from e
            raise self._service_error(e) from e

        if not isinstance(data, dict) or not data.get("id"):
            raise self._service_error(APIError(f"Project '{project}' returned no id"))

        self.logger.info("project_verified", project=data.get("name", project), project_id=data["id"])
        return data

    def list_repositories(self, project: str) -> List[Resource]:
        items = self._get_list(f"{quote(project, safe='')}/_apis/git/repositories")
        repositories = []
        for item in items:
            if not isinstance(item, dict) or not item.get("id"):
                continue
            repositories.append(
                Resource(
                    id=item["id"],
                    name=item.get("name") or item["id"],
                    default_branch=item.get("defaultBranch"),
                )
            )
        self.logger.info("repositories_listed", project=project, count=len(repositories))
        return repositories
