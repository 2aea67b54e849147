from .commands import CommandRegistry, FTPCommand
from .connection import ControlConnection, DataConnection
from .parser import ResponseParser, FTPResponse
from .tree import FileNode, FileType, create_node, create_root, parse_listing_line, export_json
from .explorer import explore_depth
from .supervisor import ReconnectSupervisor
from .client import FTPClient, DataMode
from .errors import (FTPError, ConnectionFailure, ControlChannelClosed, ReconnectTimeout,
                     BadResponse, ListingParseError, DataChannelFailure,
                     DirectoryAccessFailure, DisconnectFailure)

__all__ = ['CommandRegistry', 'FTPCommand',
           'ControlConnection', 'DataConnection',
           'ResponseParser', 'FTPResponse',
           'FileNode', 'FileType', 'create_node', 'create_root', 'parse_listing_line', 'export_json',
           'explore_depth', 'ReconnectSupervisor',
           'FTPClient', 'DataMode',
           'FTPError', 'ConnectionFailure', 'ControlChannelClosed', 'ReconnectTimeout',
           'BadResponse', 'ListingParseError', 'DataChannelFailure',
           'DirectoryAccessFailure', 'DisconnectFailure']
