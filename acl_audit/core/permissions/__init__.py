"""Permission bits and access decisions"""
from .catalog import (
    GIT_REPOSITORY_PERMISSIONS,
    POLICY_CHANGE_BITS,
    AccessDecision,
    PermissionBit,
    PermissionCatalog,
    decide,
)

__all__ = [
    'GIT_REPOSITORY_PERMISSIONS',
    'POLICY_CHANGE_BITS',
    'AccessDecision',
    'PermissionBit',
    'PermissionCatalog',
    'decide',
]
