"""Policy configurations of a project"""

from typing import Any, Dict, List
from urllib.parse import quote

from .base import DevOpsAdapter


class PolicyService(DevOpsAdapter):
    service_name = "policies"

    def list_policy_configurations(self, project: str) -> List[Dict[str, Any]]:
        items = self._get_list(f"{quote(project, safe='')}/_apis/policy/configurations")
        return [item for item in items if isinstance(item, dict)]
