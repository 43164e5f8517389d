"""Access control list core module"""
from .fetcher import AccessControlService, ACLFetcher
from .models import AccessControlEntry, AccessControlList, AceWire, AclWire

__all__ = [
    'ACLFetcher',
    'AccessControlEntry',
    'AccessControlList',
    'AccessControlService',
    'AceWire',
    'AclWire',
]
