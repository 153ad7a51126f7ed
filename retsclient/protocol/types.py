"""
Core protocol types for the Sans-I/O RETS implementation.

These dataclasses represent configuration, HTTP requests and responses
and parsed results at the protocol level, independent of any I/O
implementation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

DEFAULT_RETS_VERSION = "RETS/1.7.2"
DEFAULT_USER_AGENT = "RETS-Connector/1.2"

SESSION_COOKIE = "RETS-Session-ID"


class RETSMethod(Enum):
    """
    Capabilities a RETS server may announce in its Login reply.

    The value is the action name as the server spells it, the member
    name is the key used in the method URL table.
    """

    ACTION = "Action"
    CHANGE_PASSWORD = "ChangePassword"
    GET_OBJECT = "GetObject"
    LOGIN = "Login"
    LOGIN_COMPLETE = "LoginComplete"
    LOGOUT = "Logout"
    SEARCH = "Search"
    GET_METADATA = "GetMetadata"
    UPDATE = "Update"
    POST_OBJECT = "PostObject"
    GET_PAYLOAD_LIST = "GetPayloadList"


## Keys accepted by RETSConfig.from_dict, mapped to the field names.
_CONFIG_ALIASES = {
    "user": "username",
    "pass": "password",
    "userAgent": "user_agent",
    "userAgentPassword": "user_agent_password",
    "version": "rets_version",
    "retsVersion": "rets_version",
    "loginUrl": "url",
    "login_url": "url",
}


@dataclass(frozen=True)
class RETSConfig:
    """
    Connection settings for one RETS account.

    Attributes:
        url: Login URL of the RETS server
        username: Username for HTTP Digest authentication
        password: Password for HTTP Digest authentication
        user_agent: User-Agent header, also used for UA authentication
        user_agent_password: Enables the RETS-UA-Authorization header when set
        rets_version: RETS-Version header
        timeout: Request timeout in seconds
        ssl_verify_cert: Verify SSL certificates, or path to a CA bundle
    """

    url: str | None = None
    username: str | None = None
    password: str | None = None
    user_agent: str = DEFAULT_USER_AGENT
    user_agent_password: str | None = None
    rets_version: str = DEFAULT_RETS_VERSION
    timeout: float = 30.0
    ssl_verify_cert: bool | str = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RETSConfig":
        """
        Build a config from a mapping.  Both the snake_case field names
        and the camelCase spelling (userAgent, userAgentPassword, ...)
        are accepted.  Unknown keys and None values are ignored.
        """
        known = cls.__dataclass_fields__
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _CONFIG_ALIASES.get(key, key)
            if name in known and value is not None:
                kwargs[name] = value
        ## environment variables and config files deliver strings
        if isinstance(kwargs.get("timeout"), str):
            kwargs["timeout"] = float(kwargs["timeout"])
        if isinstance(kwargs.get("ssl_verify_cert"), str):
            verify = kwargs["ssl_verify_cert"]
            if verify.lower() in ("0", "false", "no", "off"):
                kwargs["ssl_verify_cert"] = False
            elif verify.lower() in ("1", "true", "yes", "on"):
                kwargs["ssl_verify_cert"] = True
        return cls(**kwargs)


@dataclass(frozen=True)
class RequestParams:
    """
    Everything the transport needs to send the next request.

    ``auth`` tells the transport to use HTTP Digest with username and
    password.  ``headers`` and ``cookies`` are to be applied verbatim;
    the RETS-UA-Authorization header is already computed when present.
    ``parse_response`` is always False, the caller parses the reply.
    """

    username: str | None
    password: str | None
    headers: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)
    auth: str = "digest"
    parse_response: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "auth": self.auth,
            "username": self.username,
            "password": self.password,
            "cookies": dict(self.cookies),
            "headers": dict(self.headers),
            "parse_response": self.parse_response,
        }


@dataclass(frozen=True)
class RETSRequest:
    """
    Represents an HTTP request to be made.

    Attributes:
        method: HTTP method, GET or POST
        url: Full URL for the request
        params: Query string parameters
        data: Form parameters for POST requests
        request_params: Headers, cookies and credentials
    """

    method: str
    url: str
    request_params: RequestParams
    params: dict[str, str] = field(default_factory=dict)
    data: dict[str, str] | None = None


@dataclass(frozen=True)
class RETSResponse:
    """
    Represents an HTTP response received.

    Attributes:
        status: HTTP status code
        headers: HTTP headers as dict
        body: Response body as bytes
        cookies: Cookies set by the response, name -> raw value
        url: The URL that was requested
    """

    status: int
    headers: dict[str, str]
    body: bytes
    cookies: dict[str, str] = field(default_factory=dict)
    url: str = ""

    @property
    def ok(self) -> bool:
        """True if status indicates success (2xx)."""
        return 200 <= self.status < 300


@dataclass
class ReplyEnvelope:
    """
    The outer RETS element of a reply.

    Attributes:
        code: ReplyCode, 0 means success
        text: ReplyText
        body: Simplified content of the RETS element, None for empty replies
    """

    code: int
    text: str = ""
    body: dict[str, Any] | None = None

    @property
    def ok(self) -> bool:
        return self.code == 0


@dataclass
class QueryResult:
    """
    Parsed result of a Search transaction.

    Attributes:
        objects: One mapping per record, always a list
        count: Total number of matching records, None when the server didn't say
    """

    objects: list[Any] = field(default_factory=list)
    count: int | None = None

    def as_dict(self) -> dict[str, Any]:
        ret: dict[str, Any] = {}
        if self.count is not None:
            ret["Count"] = self.count
        ret["Objects"] = self.objects
        return ret

    def __len__(self) -> int:
        return len(self.objects)

    def __iter__(self):
        return iter(self.objects)
