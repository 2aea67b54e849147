"""
In-memory FTP server used by the client tests
"""

import posixpath
from collections import deque

import pytest

from treeftp.core.client import FTPClient
from treeftp.core.errors import ConnectionFailure, ControlChannelClosed, DataChannelFailure


def dir_line(name, mode='drwxr-xr-x'):
    return f"{mode} 2 u g 4096 Jan 1 00:00 {name}"


def file_line(name, mode='-rw-r--r--'):
    return f"{mode} 1 u g 12 Jan 1 00:00 {name}"


def link_line(name, target, mode='lrwxrwxrwx'):
    return f"{mode} 1 u g 0 Jan 1 00:00 {name} -> {target}"


class FakeServer:
    """Tiny FTP server state machine working on a dict of listings"""

    def __init__(self, fs=None, user='anonymous', password='anonymous'):
        self.fs = fs if fs is not None else {'/': []}
        self.user = user
        self.password = password
        self.cwd = '/'
        self.greeting = ['220 Welcome']
        self.refuse = False
        self.deny_cwd = set()
        self.deny_list = set()
        self.deny_cdup = False
        self.pwd_reply = None
        self.port_reply = '200 PORT command successful'
        self.pasv_reply = '227 Entering Passive Mode (127,0,0,1,19,136)'
        self.user_reply = '331 Password required'
        self.close_on = None
        self.commands = []
        self.cwd_history = []
        self.pending_listing = None
        self.data_connections = []
        self.fail_data_connect = False

    def handle(self, line):
        """Return the reply lines for one command line"""
        line = line.rstrip('\r\n')
        self.commands.append(line)
        verb, _, arg = line.partition(' ')
        if self.close_on == verb:
            return None
        handler = getattr(self, f"do_{verb.lower()}", None)
        if handler is None:
            return ['502 Command not implemented']
        return handler(arg or None)

    def do_user(self, arg):
        return [self.user_reply]

    def do_pass(self, arg):
        if arg == self.password:
            return ['230 Login successful']
        return ['530 Login incorrect']

    def do_pwd(self, arg):
        if self.pwd_reply:
            return [self.pwd_reply]
        return [f'257 "{self.cwd}" is the current directory']

    def do_cwd(self, arg):
        path = arg if arg.startswith('/') else posixpath.join(self.cwd, arg)
        if path in self.deny_cwd or path not in self.fs:
            return ['550 Failed to change directory']
        self.cwd = path
        self.cwd_history.append(path)
        return ['250 Directory successfully changed']

    def do_cdup(self, arg):
        if self.deny_cdup:
            return ['550 Permission denied']
        self.cwd = posixpath.dirname(self.cwd.rstrip('/')) or '/'
        self.cwd_history.append(self.cwd)
        return ['250 Directory successfully changed']

    def do_pasv(self, arg):
        return [self.pasv_reply]

    def do_port(self, arg):
        return [self.port_reply]

    def do_list(self, arg):
        path = arg or self.cwd
        if path in self.deny_list:
            return ['550 Permission denied']
        self.pending_listing = list(self.fs.get(path, []))
        return ['150 Here comes the directory listing', '226 Directory send OK']

    def do_quit(self, arg):
        return ['221 Goodbye']


class FakeControl:
    """Control transport talking to a FakeServer"""

    def __init__(self, server, host, port, timeout):
        self.server = server
        self.host = host
        self.port = port
        self.timeout = timeout
        self.replies = deque()
        self.is_connected = False
        self.closed = False
        self.fail_close = False

    def connect(self):
        if self.server.refuse:
            raise ConnectionFailure(f"Failed to connect to {self.host}:{self.port}")
        self.is_connected = True
        self.replies.extend(self.server.greeting)

    def send(self, data):
        if not self.is_connected:
            raise ControlChannelClosed("Not connected")
        replies = self.server.handle(data)
        if replies is None:
            self.is_connected = False
            return
        self.replies.extend(replies)

    def recv_line(self):
        if self.replies:
            return self.replies.popleft()
        return None

    def local_address(self):
        return '192.168.1.10'

    def close(self):
        self.closed = True
        self.is_connected = False
        if self.fail_close:
            raise OSError("close failed")


class FakeDataConnection:
    """Data channel serving the listing prepared by the server's last LIST"""

    def __init__(self, server):
        self.server = server
        self.mode = 'passive'
        self.address = None
        self.connected = False
        self.closed = False
        self.fail_connect = server.fail_data_connect
        server.data_connections.append(self)

    def setup_passive(self, host, port):
        self.mode = 'passive'
        self.address = (host, port)

    def setup_active(self, listen_host='0.0.0.0', listen_port=0):
        self.mode = 'active'
        return '0.0.0.0', 5000

    def connect(self):
        if self.fail_connect:
            raise DataChannelFailure("cannot connect")
        self.connected = True

    def lines(self):
        listing, self.server.pending_listing = self.server.pending_listing or [], None
        yield from listing

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
def make_client(server):
    """Build an FTPClient wired to the fake server"""
    transports = []

    def factory(**kwargs):
        def transport_factory(host, port, timeout):
            transport = FakeControl(server, host, port, timeout)
            transports.append(transport)
            return transport

        client = FTPClient(transport_factory=transport_factory,
                           data_factory=lambda: FakeDataConnection(server),
                           **kwargs)
        client.transports = transports
        return client

    return factory


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def logged_in(client):
    client.connect('ftp.example.com', 21)
    assert client.login('anonymous', 'anonymous')
    return client
