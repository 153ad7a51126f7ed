#!/usr/bin/env python
import logging
import os
from collections import defaultdict
from typing import Dict
from typing import Optional

from retsclient import __version__

## Environmental variables prepended with "PYTHON_RETS" are used for debug purposes,
## environmental variables prepended with "RETS_" are for connection parameters
debug_dump_communication = os.environ.get("PYTHON_RETS_COMMDUMP", False)
## one of DEBUG_PDB, DEBUG, DEVELOPMENT, PRODUCTION
debugmode = os.environ.get("PYTHON_RETS_DEBUGMODE")
if not debugmode:
    if "dev" in __version__:
        debugmode = "DEVELOPMENT"
    else:
        debugmode = "PRODUCTION"

log = logging.getLogger("retsclient")
if debugmode.startswith("DEBUG"):
    log.setLevel(logging.DEBUG)
else:
    log.setLevel(logging.WARNING)


def weirdness(*reasons) -> None:
    reason = " : ".join([str(x) for x in reasons])
    log.warning(f"Deviation from expectations found: {reason}")
    if debugmode == "DEBUG_PDB":
        log.error(f"Dropping into debugger due to {reason}")
        import pdb

        pdb.set_trace()


class RETSError(Exception):
    url: Optional[str] = None
    reason: str = "no reason"

    def __init__(self, reason: Optional[str] = None, url: Optional[str] = None) -> None:
        if url:
            self.url = url
        if reason:
            self.reason = reason
        super().__init__(self.reason)

    def __str__(self) -> str:
        if self.url:
            return "%s at '%s', reason %s" % (
                self.__class__.__name__,
                self.url,
                self.reason,
            )
        return self.reason


class ParseError(RETSError):
    """
    The reply could not be turned into structured data, either because
    the XML is broken or because an element the caller depends on
    (RETS-RESPONSE, METADATA, ...) is missing.
    """

    pass


class AuthorizationError(RETSError):
    """
    The server answered with HTTP 401 or 403.  The url property will
    contain the url in question, the reason property will contain the
    excuse the server sent.
    """

    pass


class TransportError(RETSError):
    """The server answered with a non-successful HTTP status"""

    status: Optional[int] = None

    def __init__(
        self,
        reason: Optional[str] = None,
        url: Optional[str] = None,
        status: Optional[int] = None,
    ) -> None:
        self.status = status
        super().__init__(reason, url)


class ProtocolError(RETSError):
    """
    The server delivered a well-formed RETS reply with a ReplyCode
    other than 0.  ``code`` holds the numeric reply code and
    ``reply_text`` the ReplyText as sent by the server.
    """

    code: int = -1
    reply_text: str = ""

    def __init__(self, code: int, reply_text: str = "", url: Optional[str] = None) -> None:
        self.code = code
        self.reply_text = reply_text or ""
        super().__init__(format_reply_error(code, reply_text), url)


class LoginError(ProtocolError):
    pass


class NoRecordsFound(ProtocolError):
    pass


DEFAULT_REPLY_MESSAGE = "An error occurred"

## Used for replies whose ReplyCode is not a number
INVALID_REPLY_CODE = -1

## Reply codes from the RETS 1.7.2 and 1.8 specifications.  Codes not
## listed here are reported with DEFAULT_REPLY_MESSAGE.
REPLY_CODES: Dict[int, str] = {
    INVALID_REPLY_CODE: "Invalid Reply Code",
    ## Login
    20036: "Miscellaneous Server Login Error",
    20037: "Client Authentication Failed",
    20041: "User Agent Not Registered or Denied",
    20050: "Server Temporarily Disabled",
    20134: "Not Logged In",
    20140: "Insecure Password, Login Denied",
    20141: "Same as Previous Password",
    20142: "The Requested Password Change Is Not Allowed",
    ## Search
    20200: "Unknown Query Field",
    20201: "No Records Found",
    20202: "Invalid Select",
    20203: "Miscellaneous Search Error",
    20206: "Invalid Query Syntax",
    20207: "Unauthorized Query",
    20208: "Maximum Records Exceeded",
    20209: "Timeout",
    20210: "Too Many Outstanding Queries",
    20211: "Query Too Complex",
    20212: "Invalid Key Request",
    20213: "Invalid Key",
    ## GetObject
    20400: "Invalid Resource",
    20401: "Invalid Type",
    20402: "Invalid Identifier",
    20403: "No Object Found",
    20406: "Unsupported MIME Type",
    20407: "Unauthorized Retrieval",
    20408: "Resource Unavailable",
    20409: "Object Unavailable",
    20410: "Request Too Large",
    20411: "Timeout",
    20412: "Too Many Outstanding Requests",
    20413: "Miscellaneous Error",
    ## GetMetadata
    20500: "Invalid Resource",
    20501: "Invalid Type",
    20502: "Invalid Identifier",
    20503: "No Metadata Found",
    20506: "Unsupported Metadata Type",
    20507: "Unauthorized Retrieval",
    20508: "Resource Currently Unavailable",
    20509: "Metadata Too Large",
    20513: "Miscellaneous Error",
    20514: "Requested DTD Version Unavailable",
    ## Logout
    20701: "Not Logged In",
    20702: "Miscellaneous Logout Error",
}


def describe_reply_code(code: int) -> str:
    return REPLY_CODES.get(code, DEFAULT_REPLY_MESSAGE)


def format_reply_error(code: int, reply_text: Optional[str] = None) -> str:
    """Utility for formatting a RETS reply code to an error string"""
    message = "%s: %s" % (code, describe_reply_code(code))
    if reply_text:
        message += " - %s" % reply_text
    return message


exception_by_code: Dict[int, type] = defaultdict(lambda: ProtocolError)
for code in (20036, 20037, 20041, 20050, 20140):
    exception_by_code[code] = LoginError
exception_by_code[20201] = NoRecordsFound


def raise_for_reply(code: int, reply_text: str = "", url: Optional[str] = None) -> None:
    """Raises the ProtocolError matching ``code``, unless it is 0"""
    if code == 0:
        return
    raise exception_by_code[code](code, reply_text, url)
