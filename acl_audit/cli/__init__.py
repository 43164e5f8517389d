"""acl-audit command-line interface"""

from acl_audit import __version__

__all__ = ["__version__"]
