"""
Abstract I/O protocol definition.

This module defines the interface that all I/O implementations must follow.
"""

from typing import Protocol, runtime_checkable

from retsclient.protocol.types import RETSRequest, RETSResponse


@runtime_checkable
class SyncIOProtocol(Protocol):
    """
    Protocol defining the synchronous I/O interface.

    Implementations must provide a way to execute RETSRequest objects
    and return RETSResponse objects synchronously.  Headers and cookies
    from ``request.request_params`` are to be sent verbatim, and
    ``auth == "digest"`` means HTTP Digest with the given username and
    password.
    """

    def execute(self, request: RETSRequest) -> RETSResponse:
        """
        Execute a request and return the response.

        Args:
            request: The RETSRequest to execute

        Returns:
            RETSResponse with status, headers, body and cookies
        """
        ...

    def close(self) -> None:
        """Close any resources (e.g., HTTP session)."""
        ...
