"""
Sans-I/O RETS protocol implementation.

This module provides protocol-level operations without any I/O.
It builds requests and parses responses as pure data transformations.

The protocol layer is organized into:
- types: Core data structures (RETSConfig, RETSRequest, RETSResponse, result types)
- builders: Pure functions building request parameters, session and URL lookups
- xml_parsers: Pure functions to normalize and parse XML replies
- operations: High-level RETSProtocol class combining builders and parsers

Example usage:

    from retsclient.protocol import RETSConfig, RETSProtocol

    protocol = RETSProtocol(RETSConfig(url="https://rets.example.com/login",
                                       username="user", password="pass"))

    # Build a request (no I/O)
    request = protocol.login_request()

    # Execute via your preferred I/O (sync or mock)
    response = your_http_client.execute(request)

    # Parse response (no I/O)
    urls = protocol.handle_login(response)
"""

from .types import (
    DEFAULT_RETS_VERSION,
    DEFAULT_USER_AGENT,
    # Enums
    RETSMethod,
    # Configuration and request/response
    RETSConfig,
    RETSRequest,
    RETSResponse,
    RequestParams,
    # Result types
    QueryResult,
    ReplyEnvelope,
)
from .builders import (
    build_method_url_table,
    build_request_params,
    extract_session_id,
)
from .xml_parsers import (
    as_object,
    as_sequence,
    extract_body_text,
    flatten_object,
    parse_compact,
    parse_envelope,
    parse_metadata,
    parse_query,
    parse_reply,
    simplify,
)
from .operations import RETSProtocol

__all__ = [
    "DEFAULT_RETS_VERSION",
    "DEFAULT_USER_AGENT",
    # Enums
    "RETSMethod",
    # Configuration and request/response
    "RETSConfig",
    "RETSRequest",
    "RETSResponse",
    "RequestParams",
    # Result types
    "QueryResult",
    "ReplyEnvelope",
    # Builders
    "build_method_url_table",
    "build_request_params",
    "extract_session_id",
    # XML Parsers
    "as_object",
    "as_sequence",
    "extract_body_text",
    "flatten_object",
    "parse_compact",
    "parse_envelope",
    "parse_metadata",
    "parse_query",
    "parse_reply",
    "simplify",
    # Protocol
    "RETSProtocol",
]
