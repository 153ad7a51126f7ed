"""
High-level RETS client using the Sans-I/O protocol layer.

RETSClient ties RETSProtocol to an I/O implementation (SyncIO by
default) and keeps one RETS session.

Example:
    with get_retsclient(url="https://rets.example.com/login",
                        username="user", password="pass") as client:
        result = client.search("Property", "RES", "(ListPrice=300000+)")
        for listing in result.objects:
            print(listing)
"""

import logging
import sys
from dataclasses import asdict
from types import TracebackType
from typing import Any, Dict, List, Optional

from retsclient.io import SyncIO, SyncIOProtocol
from retsclient.lib import error
from retsclient.lib.python_utilities import to_wire
from retsclient.protocol import QueryResult, RETSConfig, RETSProtocol, RETSRequest, RETSResponse

if sys.version_info < (3, 11):
    from typing_extensions import Self
else:
    from typing import Self

log = logging.getLogger(__name__)


class RETSClient:
    """
    Synchronous RETS client.

    The session is opened on the first transaction needing it, or
    explicitly through :meth:`login`.  Used as a context manager, the
    session is logged out and the HTTP session closed on exit.
    """

    def __init__(
        self,
        config: Optional[RETSConfig] = None,
        io: Optional[SyncIOProtocol] = None,
        huge_tree: bool = False,
        **config_data,
    ) -> None:
        """
        Args:
          config: Connection settings.  Keyword arguments accepted by
            RETSConfig.from_dict may be given instead, or on top of it.
          io: I/O implementation, a SyncIO is created if None
          huge_tree: boolean, enable XMLParser huge_tree for very big replies, beware of security issues, see : https://lxml.de/api/lxml.etree.XMLParser-class.html
        """
        if config is None:
            config = RETSConfig.from_dict(config_data)
        elif config_data:
            config = RETSConfig.from_dict({**asdict(config), **config_data})
        if not config.url:
            raise error.RETSError("No login url given")

        log.debug("url: " + str(config.url))
        self.config = config
        self.protocol = RETSProtocol(config, huge_tree=huge_tree)
        self.io = io or SyncIO(timeout=config.timeout, verify=config.ssl_verify_cert)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: Optional[BaseException] = None,
        exc_value: Optional[BaseException] = None,
        traceback: Optional[TracebackType] = None,
    ) -> None:
        try:
            if self.protocol.logged_in:
                self.logout()
        finally:
            self.close()

    def close(self) -> None:
        """Closes the HTTP session"""
        self.io.close()

    def _execute(self, request: RETSRequest) -> RETSResponse:
        response = self.io.execute(request)
        if error.debug_dump_communication:
            _dump_communication(request, response)
        return response

    def _ensure_logged_in(self) -> None:
        if not self.protocol.logged_in:
            self.login()

    def login(self) -> Dict[str, str]:
        """
        Log in, and return the method URL table announced by the server.
        """
        urls = self.protocol.handle_login(self._execute(self.protocol.login_request()))
        log.info("logged in to %s", self.config.url)
        return urls

    def logout(self) -> Dict[str, Optional[str]]:
        """Log out.  Returns the key/value information sent by the server"""
        return self.protocol.handle_logout(self._execute(self.protocol.logout_request()))

    def search(
        self,
        resource: str,
        class_name: str,
        query: str,
        resource_type: Optional[str] = None,
        flatten: bool = False,
        strict: bool = False,
        **search_params: Any,
    ) -> QueryResult:
        """
        Run a Search transaction.

        Args:
          resource: SearchType, like ``Property``
          class_name: Class, like ``RES``
          query: DMQL2 query
          resource_type: Element name of the records in the reply, defaults to ``resource``
          flatten: Collapse each record into a single level dict
          strict: Fail instead of returning the whole REData if resource_type is not found
          search_params: select, limit, offset, count, format, query_type, standard_names

        Returns:
          QueryResult
        """
        self._ensure_logged_in()
        request = self.protocol.search_request(resource, class_name, query, **search_params)
        return self.protocol.parse_search(
            self._execute(request),
            resource_type or resource,
            flatten=flatten,
            strict=strict,
        )

    def get_metadata(
        self,
        metadata_type: str = "METADATA-CLASS",
        id: str = "0",
    ) -> List[Any]:
        """
        Run a GetMetadata transaction in STANDARD-XML format.

        Returns:
          A list of ``metadata_type`` elements
        """
        self._ensure_logged_in()
        request = self.protocol.metadata_request(metadata_type, id)
        return self.protocol.parse_metadata(self._execute(request), metadata_type)

    def get_object(self, resource: str, type: str, id: str, location: int = 0) -> bytes:
        """Run a GetObject transaction and return the raw reply body"""
        self._ensure_logged_in()
        request = self.protocol.get_object_request(resource, type, id, location)
        return self.protocol.parse_object(self._execute(request))


def _dump_communication(request: RETSRequest, response: RETSResponse) -> None:
    import datetime
    from tempfile import NamedTemporaryFile

    headers = request.request_params.headers
    with NamedTemporaryFile(prefix="retscomm", delete=False) as commlog:
        commlog.write(b"=" * 80 + b"\n")
        commlog.write(f"{datetime.datetime.now():%FT%H:%M:%S}".encode("utf-8"))
        commlog.write(b"\n====>\n")
        commlog.write(f"{request.method} {request.url}\n".encode("utf-8"))
        commlog.write(b"\n".join(to_wire(f"{x}: {headers[x]}") for x in headers))
        commlog.write(b"\n\n")
        commlog.write(to_wire(str(request.data or request.params)))
        commlog.write(b"\n<====\n")
        commlog.write(f"{response.status}\n".encode("utf-8"))
        commlog.write(
            b"\n".join(to_wire(f"{x}: {response.headers[x]}") for x in response.headers)
        )
        commlog.write(b"\n\n")
        commlog.write(response.body)
        commlog.write(b"\n")


def get_retsclient(
    check_config_file: bool = True,
    config_file: Optional[str] = None,
    config_section: Optional[str] = None,
    environment: bool = True,
    **config_data,
) -> RETSClient:
    """
    This function will yield a RETSClient object.  It will not try to
    connect.  It will read configuration from various sources, dependent
    on the parameters given, in this order:

    * Data from the parameters given
    * Environment variables prepended with `RETS_`, like `RETS_URL`, `RETS_USERNAME`, `RETS_PASSWORD`.
    * Environment variables `RETS_CONFIG_FILE` and `RETS_CONFIG_SECTION`
    * Configuration file, `~/.config/rets/rets.conf` if nothing else is given.
    """
    ## late import, as the config stuff isn't needed for the protocol layer
    from . import config

    conf = config.get_config(
        check_config_file=check_config_file,
        config_file=config_file,
        config_section_name=config_section,
        environment=environment,
        **config_data,
    )
    if conf is None:
        raise error.RETSError("No RETS connection configured")
    return RETSClient(conf)
