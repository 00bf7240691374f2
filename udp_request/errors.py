from __future__ import annotations
import errno as _errno
from typing import Optional


class UdpRequestError(Exception):
    """Base class for everything this package raises or reports."""


class RequestError(UdpRequestError):
    """Failure delivered to a single transaction's completion."""

    def __init__(self, message: str, tid: Optional[int] = None):
        super().__init__(message)
        self.tid = tid


class RequestTimeout(RequestError):
    code = "ETIMEDOUT"
    timeout = True

    def __init__(self, message: str = "Request timed out", tid: Optional[int] = None):
        super().__init__(message, tid)


class RequestCancelled(RequestError):
    code = "ECANCELED"

    def __init__(self, message: str = "Request cancelled", tid: Optional[int] = None):
        super().__init__(message, tid)


class TableFull(RequestError):
    """Every transaction id is currently pending."""


class MalformedFrame(UdpRequestError):
    """Inbound bytes that cannot be parsed or decoded. Never fatal."""


class TransportError(UdpRequestError):
    def __init__(self, cause: OSError):
        super().__init__(str(cause))
        self.cause = cause

    @property
    def errno(self) -> Optional[int]:
        return self.cause.errno


class TransportFatal(TransportError):
    pass


class TransportWarning(TransportError):
    pass


# bind-time failures the endpoint cannot recover from
FATAL_ERRNOS = frozenset({_errno.EADDRINUSE, _errno.EPERM, _errno.EACCES})


def classify(cause: OSError) -> TransportError:
    if cause.errno in FATAL_ERRNOS:
        return TransportFatal(cause)
    return TransportWarning(cause)
