"""
Authentication utilities for RETS clients.

RETS servers authenticate the user with plain HTTP Digest, which is
left to the HTTP library.  On top of that, servers may require the
client software itself to authenticate through the
``RETS-UA-Authorization`` header.  This module computes that header.
"""

from __future__ import annotations

import hashlib


def md5_hex(content: bytes | str) -> str:
    """
    Return the MD5 digest of ``content`` as 32 lowercase hex characters.

    Text is encoded as UTF-8 before hashing.

    Example:
        >>> md5_hex("abc")
        '900150983cd24fb0d6963f7d28e17f72'
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.md5(content).hexdigest()


def user_agent_auth_header(
    user_agent: str,
    user_agent_password: str,
    session_id: str | None = None,
    rets_version: str = "",
    request_id: str | None = None,
) -> str:
    """
    Build the value of the RETS-UA-Authorization header.

    Args:
        user_agent: The User-Agent registered with the server.
        user_agent_password: The password belonging to the user agent.
        session_id: RETS-Session-ID from the login cookie, if known.
        rets_version: The RETS-Version header sent with the request.
        request_id: RETS-Request-ID, normally not used.

    Returns:
        ``"Digest <hex>"``

    Missing session or request ids still occupy their slot in the
    colon separated digest input, as an empty string.

    Reference:
        RETS 1.7.2 specification, section 3.10
    """
    a1 = md5_hex(":".join([user_agent, user_agent_password]))
    digest = md5_hex(
        ":".join([a1, request_id or "", session_id or "", rets_version or ""])
    )
    return f"Digest {digest}"


def extract_auth_types(header: str) -> set[str]:
    """
    Extract authentication types from WWW-Authenticate header.

    Example:
        >>> sorted(extract_auth_types('Basic realm="test", Digest realm="test"'))
        ['basic', 'digest']
    """
    return {h.split()[0] for h in header.lower().split(",") if h.strip()}
