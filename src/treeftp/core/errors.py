"""
Exception hierarchy for the FTP client
Every failure raised by the core derives from FTPError
"""


class FTPError(Exception):
    """Base class for FTP client errors"""

    def __init__(self, message, code=None):
        self.message = message
        self.code = code
        super().__init__(self.message)


class ConnectionFailure(FTPError):
    """Control handshake refused or the server could not be reached"""


class ControlChannelClosed(ConnectionFailure):
    """Server dropped the control channel (421 timeout is the usual cause)"""


class ReconnectTimeout(ConnectionFailure):
    """Bounded reconnection gave up before a session could be opened"""


class BadResponse(FTPError):
    """Malformed or truncated server reply"""


class ListingParseError(BadResponse):
    """A LIST line that does not describe a regular file, link or directory"""


class DataChannelFailure(FTPError):
    """Data channel negotiation or transfer failed"""


class DirectoryAccessFailure(FTPError):
    """CWD, PWD or CDUP refused by the server"""


class DisconnectFailure(FTPError):
    """Closing the control channel failed (session state is already reset)"""
