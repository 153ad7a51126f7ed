"""
I/O layer for the RETS protocol.

This module provides the implementation executing RETSRequest objects
and returning RETSResponse objects.

The I/O layer is intentionally thin - it only handles HTTP transport.
All protocol logic (request parameters, XML parsing) is in retsclient.protocol.

Example:
    from retsclient.protocol import RETSProtocol
    from retsclient.io import SyncIO

    protocol = RETSProtocol(config)
    with SyncIO() as io:
        protocol.handle_login(io.execute(protocol.login_request()))
        response = io.execute(protocol.search_request("Property", "RES", "(Status=A)"))
        result = protocol.parse_search(response, "Property")
"""

from .base import SyncIOProtocol
from .sync import SyncIO

__all__ = [
    # Protocols
    "SyncIOProtocol",
    # Implementations
    "SyncIO",
]
