"""Identity value types"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

# Length of the descriptor prefix kept in synthesized names
UNRESOLVED_PREFIX_LENGTH = 60


class IdentityKind(str, Enum):
    """Kind of security principal"""

    USER = "user"
    GROUP = "group"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Identity:
    """A resolved security principal"""

    descriptor: str
    display_name: str
    kind: IdentityKind
    internal_id: Optional[str] = None
    mail_address: str = ""

    @property
    def is_group(self) -> bool:
        return self.kind == IdentityKind.GROUP


@dataclass(frozen=True)
class ResolutionFailure:
    """A descriptor no strategy could resolve"""

    descriptor: str
    reason: str = "unresolved"

    @property
    def display_name(self) -> str:
        return f"[Unresolved: {self.descriptor[:UNRESOLVED_PREFIX_LENGTH]}...]"

    def to_identity(self) -> Identity:
        return Identity(
            descriptor=self.descriptor,
            display_name=self.display_name,
            kind=IdentityKind.UNKNOWN,
        )


@dataclass(frozen=True)
class MemberRef:
    """Reference to a group member as the directory returns it"""

    identity_id: Optional[str] = None
    descriptor: Optional[str] = None
