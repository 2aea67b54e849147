"""
Main FTP Client class
Owns the control channel, negotiates data channels and walks remote trees
"""

import functools
import logging
from enum import Enum

from .commands import CommandRegistry, FTPCommand, format_command
from .connection import ControlConnection, DataConnection
from .errors import (ConnectionFailure, ControlChannelClosed, DataChannelFailure,
                     DirectoryAccessFailure, DisconnectFailure, FTPError, ListingParseError)
from .explorer import explore_depth
from .parser import ResponseParser
from .supervisor import DEFAULT_RECONNECT_TIMEOUT, ReconnectSupervisor
from .tree import parse_listing_line

logger = logging.getLogger(__name__)

DEFAULT_CONTROL_PORT = 21
DEFAULT_DATA_PORT = 20
SERVICE_NOT_AVAILABLE = 421
FILE_UNAVAILABLE = 550


class DataMode(Enum):
    """How data channels are opened"""
    ACTIVE = "active"
    PASSIVE = "passive"


class FTPClient:
    """Main FTP client coordinating operations"""

    def __init__(self, timeout=30, data_mode=DataMode.PASSIVE, accept_timeout=30,
                 reconnect_timeout=DEFAULT_RECONNECT_TIMEOUT,
                 transport_factory=ControlConnection, data_factory=None,
                 address_resolver=None):
        """
        Initialize FTP client

        Args:
            timeout: Socket timeout in seconds
            data_mode: DataMode used for data channels
            accept_timeout: How long active mode waits for the server to
                connect back
            reconnect_timeout: Default bound for reconnect()
            transport_factory: Callable(host, port, timeout) building a
                control transport
            data_factory: Callable() building a DataConnection
            address_resolver: Callable() returning the IPv4 address
                announced by PORT (defaults to the control socket address)
        """
        self.timeout = timeout
        self.default_data_mode = data_mode
        self.reconnect_timeout = reconnect_timeout
        self.transport_factory = transport_factory
        self.data_factory = data_factory or functools.partial(
            DataConnection, timeout=timeout, accept_timeout=accept_timeout)
        self.address_resolver = address_resolver
        self.command_registry = CommandRegistry(self)
        self._initialize()

    def _initialize(self):
        """Reset every piece of session state"""
        self.control_conn = None
        self.is_connected = False
        self.data_mode = self.default_data_mode
        self.pasv_host = None
        self.pasv_port = DEFAULT_DATA_PORT
        self.response_code = None
        self.response = ''
        self.last_response = None

    # ===== Connection =====

    def connect(self, host, port=DEFAULT_CONTROL_PORT):
        """
        Connect to FTP server and read its greeting

        Raises:
            ConnectionFailure: Server unreachable or greeting not 2xx
        """
        if self.control_conn is not None:
            self._close_quietly(self.control_conn)
            self._initialize()

        conn, response = self._open_control(host, port)
        self._install(conn, response)
        logger.info("Connected to %s:%s", host, port)
        return response

    def _open_control(self, host, port, timeout=None):
        """Open a control transport and validate the greeting, touching no session state"""
        conn = self.transport_factory(host, port, self.timeout if timeout is None else timeout)
        conn.connect()
        try:
            response = ResponseParser.read(conn)
        except FTPError as e:
            self._close_quietly(conn)
            raise ConnectionFailure(f"Error when reading the greeting of {host}:{port}: {e.message}") from e

        if not response.is_success:
            self._close_quietly(conn)
            raise ConnectionFailure(f"FTP server refused connection: {response.text}", response.code)
        return conn, response

    def _install(self, conn, response):
        self.control_conn = conn
        self._record(response)
        self.is_connected = True

    def _record(self, response):
        self.last_response = response
        self.response_code = response.code
        self.response = response.text

    def login(self, username='anonymous', password='anonymous'):
        """
        Login to FTP server

        Returns:
            bool: True when the server accepted the credentials
        """
        code = self.command_registry.execute(FTPCommand.USER.value, username)
        # Definitive positive reply, no password needed
        if code // 100 == 2:
            return True
        if code // 100 != 3:
            return False
        code = self.command_registry.execute(FTPCommand.PASS.value, password)
        return code // 100 == 2

    def logout(self):
        """
        Send QUIT

        Returns:
            bool: True when the server acknowledged it
        """
        if self.command_registry.execute(FTPCommand.QUIT.value) // 100 != 2:
            return False
        self.is_connected = False
        return True

    def disconnect(self):
        """
        Close the control channel and forget the session

        Raises:
            DisconnectFailure: Closing failed (state is reset regardless)
        """
        conn = self.control_conn
        try:
            if conn is not None:
                conn.close()
        except OSError as e:
            self._initialize()
            raise DisconnectFailure(f"Deconnection failed: {e}") from e
        self._initialize()
        logger.info("Disconnected")

    def reconnect(self, host, port=DEFAULT_CONTROL_PORT, timeout=None):
        """
        Re-open the control channel, retrying for at most `timeout` seconds

        Raises:
            ReconnectTimeout: No session could be opened in time
        """
        timeout = self.reconnect_timeout if timeout is None else timeout
        if self.control_conn is not None:
            self._close_quietly(self.control_conn)
        self._initialize()

        supervisor = ReconnectSupervisor(
            functools.partial(self._open_control, timeout=min(self.timeout, timeout)),
            timeout=timeout,
            on_discard=lambda opened: self._close_quietly(opened[0]))
        logger.warning("Trying to reconnect to %s:%s for %ss", host, port, timeout)
        conn, response = supervisor.run(host, port)
        self._install(conn, response)
        return response

    def _close_quietly(self, conn):
        try:
            conn.close()
        except OSError as e:
            logger.debug("Ignoring error while closing %s: %s", conn, e)

    # ===== Commands =====

    def send_command(self, command, arg=None):
        """
        Send one command and read its complete reply

        Args:
            command: Verb, e.g. "CWD"
            arg: Optional single argument

        Returns:
            int: Reply code

        Raises:
            ControlChannelClosed: Channel lost, or the server announced 421
            BadResponse: Reply could not be parsed
        """
        if self.control_conn is None:
            raise ControlChannelClosed("Not connected")

        logger.debug("→ SEND: %s %s", command, '****' if command == FTPCommand.PASS.value else arg or '')
        try:
            self.control_conn.send(format_command(command, arg))
        except ControlChannelClosed:
            self.is_connected = False
            raise
        return self._receive_reply()

    def _receive_reply(self):
        """
        Read one complete reply and record it

        Raises:
            ControlChannelClosed: Channel lost, or the server announced 421
        """
        try:
            response = ResponseParser.read(self.control_conn)
        except ControlChannelClosed:
            self.is_connected = False
            raise
        logger.debug("← RECV: %s", response.text)

        self._record(response)
        if response.code == SERVICE_NOT_AVAILABLE:
            self.is_connected = False
            raise ControlChannelClosed(f"Control channel closed by the server: {response.text}",
                                       response.code)
        return response.code

    def _read_pending_reply(self):
        """Read the reply a data transfer leaves pending on the control channel"""
        if self.control_conn is None:
            raise ControlChannelClosed("Not connected")
        return self._receive_reply()

    def _abort_transfer(self, error):
        """Consume the reply left by a failed transfer, then re-raise `error`"""
        try:
            self._read_pending_reply()
        except ControlChannelClosed as lost:
            raise ControlChannelClosed(f"{lost.message} (after: {error.message})",
                                       lost.code) from error
        raise error

    def resolve_address(self):
        """IPv4 address to announce with PORT"""
        if self.address_resolver is not None:
            return self.address_resolver()
        return self.control_conn.local_address()

    def ask_data_connection(self, command, arg=None):
        """
        Open a data channel and send the command that uses it

        Returns:
            DataConnection: Connected data channel, or None when the server
            did not answer the command with a 1xx reply
        """
        data_conn = None
        if self.data_mode is DataMode.ACTIVE:
            try:
                data_conn = self.command_registry.execute(FTPCommand.PORT.value)
            except (DataChannelFailure, OSError, ValueError) as e:
                logger.warning("Active mode unavailable (%s), falling back to passive mode", e)
                self.data_mode = DataMode.PASSIVE

        if data_conn is None:
            data_conn = self.command_registry.execute(FTPCommand.PASV.value)
            try:
                data_conn.connect()
            except DataChannelFailure:
                data_conn.close()
                raise

        try:
            code = self.send_command(command, arg)
            # Not a positive preliminary reply: nothing will come on the data channel
            if code // 100 != 1:
                data_conn.close()
                return None
            if data_conn.mode == DataMode.ACTIVE.value:
                try:
                    data_conn.connect()
                except DataChannelFailure as e:
                    data_conn.close()
                    self._abort_transfer(e)
        except FTPError:
            data_conn.close()
            raise
        return data_conn

    # ===== Directory operations =====

    def list(self, directory_name, parent):
        """
        List a directory into `parent`

        Args:
            directory_name: Directory to list (None for the current one)
            parent: Directory node receiving the entries

        Returns:
            list: New FileNode children, in server order

        Raises:
            DataChannelFailure: Listing could not be transferred
        """
        data_conn = self.ask_data_connection(FTPCommand.LIST.value, directory_name)
        if data_conn is None or self.response_code // 100 > 2:
            raise DataChannelFailure(
                f"Cannot establish a data connection: {self.response}", self.response_code)

        nodes = []
        with data_conn:
            try:
                for line in data_conn.lines():
                    if not line.strip():
                        continue
                    try:
                        nodes.append(parse_listing_line(line, parent))
                    except ListingParseError as e:
                        logger.debug("Skipping listing line: %s", e.message)
            except DataChannelFailure as e:
                data_conn.close()
                self._abort_transfer(e)

        code = self._read_pending_reply()
        if code // 100 != 2:
            raise DataChannelFailure(f"Listing of {parent.pathname} failed: {self.response}", code)

        for node in nodes:
            parent.add_child(node)
        return nodes

    def change_working_directory(self, pathname):
        """
        Raises:
            DirectoryAccessFailure: CWD refused
        """
        code = self.command_registry.execute(FTPCommand.CWD.value, pathname)
        if code // 100 != 2:
            raise DirectoryAccessFailure(f"Cannot change to directory: {pathname}", code)

    def working_directory_name(self):
        """
        Returns:
            str: Current remote directory, as quoted in the PWD reply

        Raises:
            DirectoryAccessFailure: Server answered 550
            DataChannelFailure: Any other negative reply
        """
        code = self.command_registry.execute(FTPCommand.PWD.value)
        if code == FILE_UNAVAILABLE:
            raise DirectoryAccessFailure(
                f"Error when asking the name of the working directory, caused by: {self.response}", code)
        if code // 100 != 2:
            raise DataChannelFailure(f"Error when PWD command sent to the server: {self.response}", code)
        return ResponseParser.parse_pwd_response(self.last_response)

    def change_to_parent_directory(self):
        """
        Raises:
            DirectoryAccessFailure: CDUP refused
        """
        code = self.command_registry.execute(FTPCommand.CDUP.value)
        if code // 100 != 2:
            raise DirectoryAccessFailure(
                f"Error when trying to go back to the parent directory, caused by: {self.response}", code)

    def explore(self, node, max_depth=-1):
        """Explore the remote tree below `node`, at most `max_depth` deep (-1 unbounded)"""
        return explore_depth(self, node, max_depth)

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        if self.is_connected:
            try:
                self.logout()
            except FTPError as e:
                logger.debug("QUIT failed while closing: %s", e)
        self.disconnect()
