"""
RETS protocol operations combining request building and response parsing.

This class provides a high-level interface to RETS transactions while
remaining completely I/O-free.  It keeps the per-session state: cookies,
the session id and the method URLs announced by the Login reply.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from retsclient.lib import error
from retsclient.lib.auth import extract_auth_types
from retsclient.lib.keyvalue import decode_block

from .builders import build_method_url_table, build_request_params, extract_session_id
from .types import QueryResult, RequestParams, RETSConfig, RETSMethod, RETSRequest, RETSResponse
from .xml_parsers import (
    as_object,
    extract_body_text,
    parse_envelope,
    parse_metadata,
    parse_query,
    parse_reply,
)

log = logging.getLogger(__name__)


class RETSProtocol:
    """
    Sans-I/O RETS protocol handler.

    Builds requests and parses responses without doing any I/O.
    All HTTP communication is delegated to an external I/O implementation.

    Example:
        protocol = RETSProtocol(RETSConfig(url="https://rets.example.com/login", ...))

        # Build and execute the login request
        response = io.execute(protocol.login_request())
        protocol.handle_login(response)

        # Search
        response = io.execute(protocol.search_request("Property", "RES", "(Status=A)"))
        result = protocol.parse_search(response, "Property")
    """

    def __init__(self, config: RETSConfig, huge_tree: bool = False):
        """
        Args:
            config: Connection settings
            huge_tree: Allow parsing very large XML documents
        """
        self.config = config
        self.huge_tree = huge_tree
        self.cookies: Dict[str, str] = {}
        self.session_id: Optional[str] = None
        self.urls: Dict[str, str] = {}
        self.server_info: Dict[str, Optional[str]] = {}

    @property
    def logged_in(self) -> bool:
        return bool(self.urls)

    def request_params(self) -> RequestParams:
        return build_request_params(self.config, self.cookies, self.session_id)

    def _resolve_url(self, method: RETSMethod) -> str:
        """
        Resolve the URL of a capability announced at login, relative to
        the login URL.
        """
        base = self.config.url or ""
        if method is RETSMethod.LOGIN and not self.urls:
            return base
        path = self.urls.get(method.name)
        if not path:
            if not self.logged_in:
                raise error.RETSError(f"Not logged in, no URL known for {method.value}")
            raise error.RETSError(f"The server does not announce the {method.value} capability")
        return urljoin(base, path)

    def _request(
        self,
        method: RETSMethod,
        params: Optional[Dict[str, str]] = None,
        data: Optional[Dict[str, str]] = None,
    ) -> RETSRequest:
        return RETSRequest(
            method="POST" if data is not None else "GET",
            url=self._resolve_url(method),
            request_params=self.request_params(),
            params=params or {},
            data=data,
        )

    def _accept(self, response: RETSResponse) -> None:
        """
        Check the HTTP status and pick up the cookies of a response.

        Raises:
            AuthorizationError: On 401 and 403
            TransportError: On any other non-2xx status
        """
        if response.status in (401, 403):
            reason = f"HTTP status {response.status}"
            challenge = {k.lower(): v for k, v in response.headers.items()}.get(
                "www-authenticate"
            )
            if challenge:
                auth_types = extract_auth_types(challenge) & {"basic", "digest", "bearer"}
                reason += ", server accepts %s" % ", ".join(sorted(auth_types))
            raise error.AuthorizationError(url=response.url, reason=reason)
        if not response.ok:
            raise error.TransportError(
                url=response.url,
                reason=f"HTTP status {response.status}",
                status=response.status,
            )
        if response.cookies:
            self.cookies.update(response.cookies)
            session_id = extract_session_id(self.cookies)
            if session_id and session_id != self.session_id:
                log.debug("new RETS session id: %s", session_id)
                self.session_id = session_id

    # =========================================================================
    # Request builders
    # =========================================================================

    def login_request(self) -> RETSRequest:
        return self._request(RETSMethod.LOGIN)

    def logout_request(self) -> RETSRequest:
        return self._request(RETSMethod.LOGOUT)

    def search_request(
        self,
        resource: str,
        class_name: str,
        query: str,
        select: Optional[List[str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        count: int = 1,
        format: str = "STANDARD-XML",
        query_type: str = "DMQL2",
        standard_names: bool = False,
    ) -> RETSRequest:
        """
        Build a Search request.

        Args:
            resource: SearchType, like ``Property``
            class_name: Class, like ``RES``
            query: DMQL2 query, like ``(ListPrice=300000+)``
            select: Fields to return, all fields if None
            limit: Maximum number of records, server default if None
            offset: 1-based offset of the first record
            count: 0 for records only, 1 for records and count, 2 for count only
            format: STANDARD-XML, COMPACT or COMPACT-DECODED
            query_type: Query language
            standard_names: Use standard names instead of system names

        Returns:
            RETSRequest ready for execution
        """
        data = {
            "SearchType": resource,
            "Class": class_name,
            "Query": query,
            "QueryType": query_type,
            "Count": str(count),
            "Format": format,
            "StandardNames": "1" if standard_names else "0",
        }
        if select:
            data["Select"] = ",".join(select)
        if limit is not None:
            data["Limit"] = str(limit)
        if offset is not None:
            data["Offset"] = str(offset)
        return self._request(RETSMethod.SEARCH, data=data)

    def metadata_request(
        self,
        metadata_type: str = "METADATA-CLASS",
        id: str = "0",
        format: str = "STANDARD-XML",
    ) -> RETSRequest:
        """
        Build a GetMetadata request.

        Args:
            metadata_type: Type, like ``METADATA-CLASS`` or ``METADATA-SYSTEM``
            id: ID, a resource name, ``0`` for all or ``*`` for everything below
            format: Metadata format
        """
        params = {"Type": metadata_type, "ID": id, "Format": format}
        return self._request(RETSMethod.GET_METADATA, params=params)

    def get_object_request(
        self,
        resource: str,
        type: str,
        id: str,
        location: int = 0,
    ) -> RETSRequest:
        """
        Build a GetObject request.

        Args:
            resource: Resource, like ``Property``
            type: Object type, like ``Photo``
            id: ``<resource-key>:<object-id>``, like ``1001:*`` for all objects
            location: 1 to get URLs of the objects instead of the objects
        """
        params = {"Resource": resource, "Type": type, "ID": id, "Location": str(location)}
        return self._request(RETSMethod.GET_OBJECT, params=params)

    # =========================================================================
    # Response handlers
    # =========================================================================

    def handle_login(self, response: RETSResponse) -> Dict[str, str]:
        """
        Process a Login reply: store cookies, session id, server info and
        the method URL table.

        Returns:
            The method URL table

        Raises:
            LoginError, ProtocolError: If the ReplyCode is not 0
            ParseError: If the reply has no RETS-RESPONSE
        """
        self._accept(response)
        envelope = parse_reply(response.body, huge_tree=self.huge_tree)
        if envelope is None:
            raise error.ParseError("Empty Login reply", url=response.url)
        error.raise_for_reply(envelope.code, envelope.text, response.url)

        self.server_info = decode_block(extract_body_text(response.body))
        self.urls = build_method_url_table(self.server_info)
        if not self.urls:
            error.weirdness("Login reply did not announce any capability")
        log.debug("method urls: %s", self.urls)
        return self.urls

    def handle_logout(self, response: RETSResponse) -> Dict[str, Optional[str]]:
        """
        Process a Logout reply and forget the session.

        Returns:
            The key/value pairs of the RETS-RESPONSE, if any (ConnectTime, Billing, ...)
        """
        self._accept(response)
        content = as_object(parse_envelope(response.body, huge_tree=self.huge_tree))
        self.cookies = {}
        self.session_id = None
        self.urls = {}
        text = content.get("RETS-RESPONSE")
        return decode_block(text if isinstance(text, str) else None)

    def parse_search(
        self,
        response: RETSResponse,
        resource_type: str,
        flatten: bool = False,
        strict: bool = False,
    ) -> QueryResult:
        """
        Parse a Search reply.  A "No Records Found" reply code gives an
        empty result with count 0.
        """
        self._accept(response)
        try:
            return parse_query(
                response.body,
                resource_type,
                flatten=flatten,
                strict=strict,
                huge_tree=self.huge_tree,
            )
        except error.NoRecordsFound:
            return QueryResult(objects=[], count=0)

    def parse_object(self, response: RETSResponse) -> bytes:
        """
        Check a GetObject reply and return the raw object data.

        Servers report failures as an XML RETS reply instead of the
        object, those raise the matching ProtocolError.
        """
        self._accept(response)
        content_type = {k.lower(): v for k, v in response.headers.items()}.get("content-type", "")
        if content_type.split(";")[0].strip() in ("text/xml", "application/xml"):
            parse_envelope(response.body, huge_tree=self.huge_tree)
        return response.body

    def parse_metadata(
        self,
        response: RETSResponse,
        metadata_type: str = "METADATA-CLASS",
    ) -> List[Any]:
        """Parse a GetMetadata reply, always returning a list"""
        self._accept(response)
        return parse_metadata(
            response.body, metadata_type=metadata_type, huge_tree=self.huge_tree
        )
