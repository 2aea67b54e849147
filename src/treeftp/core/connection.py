"""
Connection module for handling socket communications
Line-oriented transports for the control channel and the data channels
"""

import logging
import socket
import threading

from .errors import BadResponse, ConnectionFailure, ControlChannelClosed, DataChannelFailure

logger = logging.getLogger(__name__)

EOL = '\r\n'
MAX_LINE_LENGTH = 65536


class BaseConnection:
    """Manages a single socket connection and reads it line by line"""

    def __init__(self, host=None, port=None, timeout=30):
        """
        Initialize connection

        Args:
            host: Remote host address
            port: Remote port number
            timeout: Socket timeout in seconds (None blocks forever)
        """
        self.host = host
        self.port = port
        self.timeout = timeout
        self.sock = None
        self.is_connected = False
        self._buffer = b''
        self._lock = threading.Lock()

    def connect(self, host=None, port=None):
        """
        Establish connection to a server

        Args:
            host: Remote host (overrides init value if provided)
            port: Remote port (overrides init value if provided)

        Raises:
            ConnectionFailure: When the socket cannot be opened
        """
        if host:
            self.host = host
        if port:
            self.port = port

        try:
            self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            self.sock.settimeout(self.timeout)
            self.sock.connect((self.host, self.port))
        except OSError as e:
            self._drop_socket()
            raise ConnectionFailure(f"Failed to connect to {self.host}:{self.port}: {e}") from e

        self.is_connected = True
        logger.debug("Socket open to %s:%s", self.host, self.port)

    def attach(self, sock):
        """Adopt an already connected socket (accepted data channels)"""
        sock.settimeout(self.timeout)
        self.sock = sock
        self.host, self.port = sock.getpeername()[:2]
        self.is_connected = True

    def send(self, data):
        """
        Send data through socket

        Args:
            data: String or bytes to send
        """
        if not self.is_connected:
            raise ControlChannelClosed("Not connected")

        if isinstance(data, str):
            data = data.encode('utf-8')

        try:
            with self._lock:
                self.sock.sendall(data)
        except OSError as e:
            self.is_connected = False
            raise ControlChannelClosed(f"Connection lost: {e}") from e

    def send_line(self, line):
        """Send one text line, appending the line terminator when missing"""
        if not line.endswith(EOL):
            line += EOL
        self.send(line)

    def recv_line(self):
        """
        Receive a line of text

        Returns:
            str: Received line without its terminator, or None once the
            peer has closed the stream and nothing is left to read

        Raises:
            BadResponse: Line longer than MAX_LINE_LENGTH bytes
        """
        if self.sock is None:
            raise ControlChannelClosed("Not connected")

        while b'\n' not in self._buffer:
            if len(self._buffer) > MAX_LINE_LENGTH:
                self._buffer = b''
                raise BadResponse(f"Line exceeds {MAX_LINE_LENGTH} bytes")
            try:
                chunk = self.sock.recv(8192)
            except OSError as e:
                self.is_connected = False
                raise ControlChannelClosed(f"Connection lost: {e}") from e
            if not chunk:
                # Connection closed by remote
                self.is_connected = False
                if not self._buffer:
                    return None
                line, self._buffer = self._buffer, b''
                return line.decode('utf-8', errors='replace').rstrip('\r\n')
            self._buffer += chunk

        line, self._buffer = self._buffer.split(b'\n', 1)
        return line.decode('utf-8', errors='replace').rstrip('\r')

    def local_address(self):
        """IPv4 address this end of the socket is bound to"""
        if self.sock is None:
            raise ControlChannelClosed("Not connected")
        return self.sock.getsockname()[0]

    def close(self):
        """
        Close the connection

        The local state is cleared even if closing fails; the OSError is
        then re-raised so callers can report it.
        """
        sock = self._drop_socket()
        if sock is not None:
            sock.close()

    def _drop_socket(self):
        sock = self.sock
        self.sock = None
        self.is_connected = False
        self._buffer = b''
        return sock


class ControlConnection(BaseConnection):
    """Manages the FTP control connection"""

    def __init__(self, host=None, port=21, timeout=30):
        """
        Initialize control connection

        Args:
            host: FTP server host
            port: FTP server port (default 21)
            timeout: Connection timeout in seconds
        """
        super().__init__(host, port, timeout)


class DataConnection:
    """Manages one FTP data connection, either passive or active"""

    def __init__(self, timeout=30, accept_timeout=30):
        """
        Initialize data connection handler

        Args:
            timeout: Socket timeout for reads on the data channel
            accept_timeout: Upper bound for the server to connect back in
                active mode
        """
        self.mode = 'passive'
        self.timeout = timeout
        self.accept_timeout = accept_timeout
        self.connection = None
        self.server_socket = None  # Only for active mode
        self._passive_address = None

    def setup_passive(self, host, port):
        """
        Setup passive mode data connection (PASV)

        Args:
            host: Data connection host reported by the server
            port: Data connection port reported by the server
        """
        self.mode = 'passive'
        self._passive_address = (host, port)

    def setup_active(self, listen_host='0.0.0.0', listen_port=0):
        """
        Setup active mode data connection (PORT)

        Args:
            listen_host: Local address to listen on
            listen_port: Local port (0 for an ephemeral one)

        Returns:
            tuple: (host, port) actually bound
        """
        self.mode = 'active'
        self.server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            self.server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self.server_socket.bind((listen_host, listen_port))
            self.server_socket.listen(1)
        except OSError:
            self.close()
            raise
        return self.server_socket.getsockname()[:2]

    def connect(self):
        """
        Establish data connection

        In passive mode this connects to the address given by PASV. In
        active mode it waits for exactly one inbound connection, at most
        accept_timeout seconds.

        Raises:
            DataChannelFailure: When the channel cannot be established
        """
        self.connection = BaseConnection(timeout=self.timeout)
        if self.mode == 'passive':
            if self._passive_address is None:
                raise DataChannelFailure("Passive address not set")
            host, port = self._passive_address
            try:
                self.connection.connect(host, port)
            except ConnectionFailure as e:
                raise DataChannelFailure(f"Cannot open data channel: {e.message}") from e
            return

        if self.server_socket is None:
            raise DataChannelFailure("Active listener not set up")
        self.server_socket.settimeout(self.accept_timeout)
        try:
            client_sock, addr = self.server_socket.accept()
        except socket.timeout as e:
            raise DataChannelFailure(
                f"Server did not open the data channel within {self.accept_timeout}s") from e
        except OSError as e:
            raise DataChannelFailure(f"Accept failed: {e}") from e
        finally:
            self._close_listener()
        logger.debug("Accepted data channel from %s:%s", *addr[:2])
        self.connection.attach(client_sock)

    def recv_line(self):
        """Receive one line from the data channel, None at end of stream"""
        if self.connection is None:
            raise DataChannelFailure("Data channel not connected")
        try:
            return self.connection.recv_line()
        except (ControlChannelClosed, BadResponse) as e:
            raise DataChannelFailure(f"Data channel broken: {e.message}") from e

    def lines(self):
        """Yield every line until the server closes the data channel"""
        while True:
            line = self.recv_line()
            if line is None:
                return
            yield line

    def close(self):
        """Close data connection"""
        try:
            if self.connection:
                self.connection.close()
        except OSError as e:
            logger.debug("Ignoring error while closing data channel: %s", e)
        finally:
            self.connection = None
            self._close_listener()

    def _close_listener(self):
        if self.server_socket:
            try:
                self.server_socket.close()
            except OSError as e:
                logger.debug("Ignoring error while closing listener: %s", e)
            self.server_socket = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
