"""HTTP access to the hosting service"""
from .client import APIError, DevOpsClient, basic_auth_header

__all__ = ['APIError', 'DevOpsClient', 'basic_auth_header']
