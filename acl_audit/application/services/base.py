"""Base service class for application services.

Services own the HTTP client they were built with and release it when used
as a context manager.
"""

from typing import Optional

import structlog

from acl_audit.infrastructure.http.client import DevOpsClient

logger = structlog.get_logger()


class ServiceBase:
    """Base class for application services.

    Provides a logger bound to the service name and context manager support
    for closing the underlying client.
    """

    def __init__(self, client: Optional[DevOpsClient] = None):
        self.client = client
        self.logger = logger.bind(service=self.__class__.__name__)

    def close(self) -> None:
        if self.client is not None:
            self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
