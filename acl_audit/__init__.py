"""Repository permission auditing for Azure DevOps Git"""

__version__ = "0.1.0"
