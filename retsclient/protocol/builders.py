"""
Pure functions for building the parameters of RETS requests.

Nothing in here does I/O; the results are handed to the transport.
"""

from typing import Any, Mapping, Optional

from retsclient.lib.auth import user_agent_auth_header

from .types import RequestParams, RETSConfig, RETSMethod, SESSION_COOKIE


def _objectify_config(config: RETSConfig | Mapping[str, Any]) -> RETSConfig:
    if isinstance(config, RETSConfig):
        return config
    return RETSConfig.from_dict(config)


def build_request_params(
    config: RETSConfig | Mapping[str, Any],
    cookies: Optional[Mapping[str, str]] = None,
    session_id: Optional[str] = None,
) -> RequestParams:
    """
    Build headers, cookies and credentials for the next request.

    Args:
        config: RETSConfig, or a mapping accepted by RETSConfig.from_dict
        cookies: Cookies to send, normally the ones from the previous reply
        session_id: RETS-Session-ID, used for the RETS-UA-Authorization digest

    Returns:
        RequestParams.  RETS-UA-Authorization is only included when
        ``config.user_agent_password`` is set.
    """
    config = _objectify_config(config)
    headers = {
        "RETS-Version": config.rets_version,
        "User-Agent": config.user_agent,
    }
    if config.user_agent_password:
        headers["RETS-UA-Authorization"] = user_agent_auth_header(
            config.user_agent,
            config.user_agent_password,
            session_id,
            config.rets_version,
        )
    return RequestParams(
        username=config.username,
        password=config.password,
        headers=headers,
        cookies=dict(cookies or {}),
    )


def extract_session_id(cookies: Any) -> Optional[str]:
    """
    Find the RETS session id in a cookie mapping.

    The cookie value may carry attributes, ``"1234; Path=/"`` gives
    ``"1234"``.  Returns None if ``cookies`` isn't a mapping or has no
    RETS-Session-ID.
    """
    if not isinstance(cookies, Mapping):
        return None
    value = cookies.get(SESSION_COOKIE)
    if value is None:
        return None
    return str(value).split(";", 1)[0].strip()


def build_method_url_table(capabilities: Any) -> dict[str, str]:
    """
    Map the capability list of a Login reply to the method URL table.

    ``{"GetMetadata": "/rets/getmetadata"}`` gives
    ``{"GET_METADATA": "/rets/getmetadata"}``.  Capabilities not listed
    in RETSMethod are ignored.
    """
    if not isinstance(capabilities, Mapping):
        return {}
    return {
        method.name: capabilities[method.value]
        for method in RETSMethod
        if method.value in capabilities
    }
