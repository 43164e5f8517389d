"""Azure DevOps service adapters"""
from .base import DevOpsAdapter
from .graph import GraphCatalogBuilder
from .identities import IdentityService, parse_identity, parse_member
from .policies import PolicyService
from .projects import ProjectService
from .security import SecurityService

__all__ = [
    'DevOpsAdapter',
    'GraphCatalogBuilder',
    'IdentityService',
    'PolicyService',
    'ProjectService',
    'SecurityService',
    'parse_identity',
    'parse_member',
]
