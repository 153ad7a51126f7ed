"""
Synchronous I/O implementation using the requests library.
"""

import logging
from typing import Optional, Union

import requests
from requests.auth import HTTPDigestAuth

from retsclient.protocol.types import RETSRequest, RETSResponse

log = logging.getLogger(__name__)


class SyncIO:
    """
    Synchronous I/O shell using the requests library.

    This is a thin wrapper that executes RETSRequest objects via HTTP
    and returns RETSResponse objects.

    Example:
        io = SyncIO()
        response = io.execute(protocol.login_request())
        protocol.handle_login(response)
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        verify: Union[bool, str] = True,
    ):
        """
        Initialize the sync I/O handler.

        Args:
            session: Existing requests Session to use (creates new if None)
            timeout: Request timeout in seconds
            verify: Verify SSL certificates, or path to a CA bundle
        """
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.timeout = timeout
        self.verify = verify

    def execute(self, request: RETSRequest) -> RETSResponse:
        """
        Execute a RETSRequest and return RETSResponse.

        Args:
            request: The request to execute

        Returns:
            RETSResponse with status, headers, body and the cookies known
            to the session after the request
        """
        params = request.request_params
        auth = None
        if params.auth == "digest" and params.username:
            auth = HTTPDigestAuth(params.username, params.password or "")

        log.debug(
            "sending request - method=%s, url=%s, headers=%s",
            request.method,
            request.url,
            params.headers,
        )
        response = self.session.request(
            method=request.method,
            url=request.url,
            params=request.params or None,
            data=request.data,
            headers=params.headers,
            cookies=params.cookies,
            auth=auth,
            timeout=self.timeout,
            verify=self.verify,
        )
        log.debug("server responded with %i %s", response.status_code, response.reason)

        ## the protocol layer owns the cookies and sends them with every
        ## request, so nothing may linger in the session jar after logout
        cookies = self.session.cookies.get_dict()
        self.session.cookies.clear()
        return RETSResponse(
            status=response.status_code,
            headers=dict(response.headers),
            body=response.content,
            cookies=cookies,
            url=request.url,
        )

    def close(self) -> None:
        """Close the session if we created it."""
        if self._owns_session and self.session:
            self.session.close()

    def __enter__(self) -> "SyncIO":
        """Context manager entry."""
        return self

    def __exit__(self, *args) -> None:
        """Context manager exit."""
        self.close()
