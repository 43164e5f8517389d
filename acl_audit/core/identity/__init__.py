"""Identity resolution core module"""
from .cache import IdentityCache
from .catalog import IdentityCatalog
from .matchers import DESCRIPTOR_MATCHERS, match_claims_identity, match_descriptor
from .models import Identity, IdentityKind, MemberRef, ResolutionFailure
from .resolver import IdentityDirectory, IdentityResolver

__all__ = [
    'DESCRIPTOR_MATCHERS',
    'Identity',
    'IdentityCache',
    'IdentityCatalog',
    'IdentityDirectory',
    'IdentityKind',
    'IdentityResolver',
    'MemberRef',
    'ResolutionFailure',
    'match_claims_identity',
    'match_descriptor',
]
