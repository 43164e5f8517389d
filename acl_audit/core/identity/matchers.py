"""Descriptor matchers that resolve an identity without a network call.

Each matcher is a pure function from a descriptor to an ``Identity`` or
``None``. ``DESCRIPTOR_MATCHERS`` is tried in order and the first match wins.
"""

import re
from typing import Callable, Optional, Tuple

from .models import Identity, IdentityKind

DescriptorMatcher = Callable[[str], Optional[Identity]]

EMAIL_PATTERN = re.compile(r"^[^@\s\\;]+@[^@\s\\;]+\.[^@\s\\;]+$")


def match_claims_identity(descriptor: str) -> Optional[Identity]:
    """Claims descriptors embed the principal name after the last backslash.

    ``Microsoft.IdentityModel.Claims.ClaimsIdentity;<tenant>\\alice@contoso.com``
    """
    if ";" not in descriptor or "\\" not in descriptor:
        return None

    identity_type, _, claim = descriptor.partition(";")
    if not identity_type or not claim:
        return None

    principal = claim.rsplit("\\", 1)[-1].strip()
    if not EMAIL_PATTERN.match(principal):
        return None

    return Identity(
        descriptor=descriptor,
        display_name=principal,
        kind=IdentityKind.USER,
        mail_address=principal,
    )


DESCRIPTOR_MATCHERS: Tuple[DescriptorMatcher, ...] = (
    match_claims_identity,
)


def match_descriptor(
    descriptor: str,
    matchers: Tuple[DescriptorMatcher, ...] = DESCRIPTOR_MATCHERS,
) -> Optional[Identity]:
    for matcher in matchers:
        identity = matcher(descriptor)
        if identity is not None:
            return identity
    return None
