#!/usr/bin/env python
import logging

__version__ = "0.3.0"

from .client import RETSClient
from .client import get_retsclient
from .protocol.types import RETSConfig

## We should consider if the NullHandler-logic below is needed or not, and
## if there are better alternatives?
# Silence notification of no default logging handler
log = logging.getLogger("retsclient")


class NullHandler(logging.Handler):
    def emit(self, record) -> None:
        pass


log.addHandler(NullHandler())

__all__ = ["__version__", "RETSClient", "RETSConfig", "get_retsclient"]
