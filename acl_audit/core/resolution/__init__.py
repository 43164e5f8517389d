"""Scope resolution core module"""
from .engine import ScopeResolutionEngine, describe_source
from .models import (
    REPORT_COLUMNS,
    PermissionRecord,
    Resource,
    ResourceReport,
    Scope,
    ScopeLevel,
)
from .scopes import (
    branch_token,
    build_scope_chain,
    encode_branch_name,
    project_token,
    repository_token,
)

__all__ = [
    'REPORT_COLUMNS',
    'PermissionRecord',
    'Resource',
    'ResourceReport',
    'Scope',
    'ScopeLevel',
    'ScopeResolutionEngine',
    'branch_token',
    'build_scope_chain',
    'describe_source',
    'encode_branch_name',
    'project_token',
    'repository_token',
]
