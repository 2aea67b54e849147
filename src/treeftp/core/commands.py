"""
Command handlers for FTP commands
Extensible command registry pattern
"""

import logging
from enum import Enum

from .connection import EOL
from .errors import DataChannelFailure
from .parser import ResponseParser

logger = logging.getLogger(__name__)


class FTPCommand(Enum):
    """RFC 959 verbs this client speaks"""
    USER = "USER"   # user name
    PASS = "PASS"   # password
    LIST = "LIST"   # list directory
    PASV = "PASV"   # passive mode
    PORT = "PORT"   # data port
    CWD = "CWD"     # change working directory
    PWD = "PWD"     # print working directory
    CDUP = "CDUP"   # change to parent directory
    QUIT = "QUIT"   # logout


def format_command(command, arg=None):
    """
    Format command string for sending

    Args:
        command: Command name
        arg: Optional single argument

    Returns:
        str: "VERB[ arg]" followed by CRLF
    """
    if arg is not None:
        return f"{command} {arg}{EOL}"
    return f"{command}{EOL}"


class CommandHandler:
    """Base class for FTP command handlers"""

    def __init__(self, client):
        """
        Args:
            client: FTPClient instance
        """
        self.client = client

    def execute(self, *args):
        """
        Execute the command

        Returns:
            int: Server reply code
        """
        raise NotImplementedError("Subclasses must implement execute()")


class SimpleCommand(CommandHandler):
    """Verb with at most one argument and a single reply"""

    verb = None

    def execute(self, arg=None):
        return self.client.send_command(self.verb, arg)


# ===== Authentication Commands =====

class UserCommand(SimpleCommand):
    """USER command handler - specify user for authentication"""
    verb = FTPCommand.USER.value


class PassCommand(SimpleCommand):
    """PASS command handler - specify password for authentication"""
    verb = FTPCommand.PASS.value


class QuitCommand(SimpleCommand):
    """QUIT command handler - logout"""
    verb = FTPCommand.QUIT.value


# ===== Directory Commands =====

class CwdCommand(SimpleCommand):
    """CWD command handler - change working directory"""
    verb = FTPCommand.CWD.value


class CdupCommand(SimpleCommand):
    """CDUP command handler - change to parent directory"""
    verb = FTPCommand.CDUP.value


class PwdCommand(SimpleCommand):
    """PWD command handler - print working directory"""
    verb = FTPCommand.PWD.value


# ===== Data Connection Commands =====

class PasvCommand(CommandHandler):
    """PASV command handler - enter passive mode"""

    def execute(self):
        """
        Send PASV and prepare a data connection to the reported endpoint

        Returns:
            DataConnection: Set up but not yet connected

        Raises:
            DataChannelFailure: Server refused passive mode
            BadResponse: Reply carries no usable (h1,h2,h3,h4,p1,p2)
        """
        code = self.client.send_command(FTPCommand.PASV.value)
        if code // 100 != 2:
            raise DataChannelFailure(f"Cannot switch to passive mode: {self.client.response}", code)

        host, port = ResponseParser.parse_pasv_response(self.client.last_response)
        self.client.pasv_host, self.client.pasv_port = host, port
        logger.debug("Passive endpoint %s:%s", host, port)

        data_conn = self.client.data_factory()
        data_conn.setup_passive(host, port)
        return data_conn


class PortCommand(CommandHandler):
    """PORT command handler - specify data port for active mode"""

    def execute(self):
        """
        Listen on an ephemeral port and announce it with PORT

        Returns:
            DataConnection: Listening, waiting for the server to connect

        Raises:
            DataChannelFailure: Server refused the PORT command
            OSError: Local listener could not be created
        """
        data_conn = self.client.data_factory()
        _, listen_port = data_conn.setup_active()
        try:
            address = self.client.resolve_address()
            port_arg = ResponseParser.format_port_command(address, listen_port)
            code = self.client.send_command(FTPCommand.PORT.value, port_arg)
            if code // 100 != 2:
                raise DataChannelFailure(f"PORT refused: {self.client.response}", code)
        except Exception:
            data_conn.close()
            raise
        return data_conn


# ===== Command Registry =====

class CommandRegistry:
    """Registry for FTP commands"""

    def __init__(self, client):
        """
        Args:
            client: FTPClient instance
        """
        self.client = client
        self.commands = {}
        self._register_default_commands()

    def _register_default_commands(self):
        """Register default FTP commands"""
        # Authentication
        self.register(FTPCommand.USER.value, UserCommand)
        self.register(FTPCommand.PASS.value, PassCommand)
        self.register(FTPCommand.QUIT.value, QuitCommand)

        # Data connection
        self.register(FTPCommand.PASV.value, PasvCommand)
        self.register(FTPCommand.PORT.value, PortCommand)

        # Directory navigation
        self.register(FTPCommand.CWD.value, CwdCommand)
        self.register(FTPCommand.CDUP.value, CdupCommand)
        self.register(FTPCommand.PWD.value, PwdCommand)

    def register(self, command_name, handler_class):
        """
        Register a command handler

        Args:
            command_name: Command name (uppercase)
            handler_class: CommandHandler subclass
        """
        self.commands[command_name.upper()] = handler_class

    def get_handler(self, command_name):
        """
        Get handler for command

        Raises:
            KeyError: Command is not supported by this client
        """
        handler_class = self.commands[command_name.upper()]
        return handler_class(self.client)

    def execute(self, command_name, *args):
        """
        Execute a command

        Args:
            command_name: Command name
            *args: Command arguments
        """
        return self.get_handler(command_name).execute(*args)
