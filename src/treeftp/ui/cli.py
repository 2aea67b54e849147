"""
Command-line interface for the tree explorer
Drives one connect / login / explore / print session
"""

import os

from ..core.client import DataMode, FTPClient
from ..core.errors import (ConnectionFailure, ControlChannelClosed, DataChannelFailure,
                           DirectoryAccessFailure, DisconnectFailure, FTPError, ReconnectTimeout)
from ..core.tree import create_root, export_json
from .render import count_entries, render_tree

PREFIX = '>> '


class CLIInterface:
    """Command-line interface handler"""

    def __init__(self, verbose=False, data_mode=DataMode.PASSIVE, client_factory=FTPClient):
        """Initialize CLI"""
        self.client = client_factory(data_mode=data_mode)
        self.connected = False
        self.verbose = verbose
        self.host = None
        self.port = None
        self.credentials = None
        self.root = None

    def say(self, message):
        print(PREFIX + message)

    # ===== Commands =====

    def cmd_connect(self, host, port):
        self.host, self.port = host, port
        self.say("Establishing connection to FTP server...")
        try:
            response = self.client.connect(host, port)
        except ConnectionFailure as e:
            self.say(f"Error: FTP server refused connection! ({e.message})")
            return False
        if self.verbose:
            print(response)
        self.connected = True
        return True

    def cmd_login(self, username, password):
        self.credentials = (username, password)
        try:
            if self.client.login(username, password):
                self.say("Login success!")
                return True
        except FTPError as e:
            self.say(f"Error: {e.message}")
            return False
        self.say("Error: unable to establish a connection to the server: "
                 "The username and/or password is incorrect.")
        return False

    def cmd_tree(self, depth=-1, directory=None):
        """
        Build the tree, either fully explored or one listing of `directory`

        Returns:
            bool: False when the tree could not be built completely
        """
        try:
            self.root = create_root(self.client.working_directory_name())
            self.say("Building the FTP tree in progress...")
            if directory:
                self.client.change_working_directory(directory)
                self.root = create_root(self.client.working_directory_name())
                self.client.list(None, self.root)
            else:
                self.client.explore(self.root, depth)
            return True
        except ControlChannelClosed as e:
            self._recover(e)
        except DirectoryAccessFailure as e:
            self.say(f"[Error: {e.message}]")
        except DataChannelFailure as e:
            self.say(f"Error: FTP server closed data channel: {e.message}")
        except FTPError as e:
            self.say(f"Unknown error occured: {e.message}")
        return False

    def _recover(self, error):
        self.say(f"Error: Lost connection to the server, caused by {error.message}")
        self.say("Try to reconnect ...")
        try:
            self.client.reconnect(self.host, self.port)
        except ReconnectTimeout as e:
            self.connected = False
            self.say(f"Timeout exceeded: {e.message}")
            return
        self.say("Connection to the server reestablished.")
        if self.credentials:
            try:
                self.client.login(*self.credentials)
            except FTPError as e:
                self.say(f"Error: {e.message}")
        self.say("Error: Cannot resume tree building after a server disconnect error.")
        self.say("Some of subdirectories are not explored!")

    def cmd_show(self):
        if self.root is None:
            return
        print(render_tree(self.root))
        directories, files = count_entries(self.root)
        print(f"\n{directories} directories, {files} files")

    def cmd_export(self, path):
        if self.root is None:
            return False
        try:
            written = export_json(self.root, path)
        except OSError as e:
            self.say(f"Error: cannot create the file! {e}")
            return False
        print(f"\nThe .json file is exported to: {os.path.abspath(written)}")
        return True

    def cmd_quit(self):
        if self.connected:
            try:
                self.client.logout()
            except FTPError as e:
                if self.verbose:
                    self.say(f"QUIT failed: {e.message}")
        try:
            self.client.disconnect()
        except DisconnectFailure:
            self.say("Error: Failed to disconnect!")
        self.connected = False
        self.say("Connection closed.")

    def run(self, host, port, username, password, depth=-1, directory=None, json_path=None):
        """
        Full session

        Returns:
            int: Process exit code
        """
        if not self.cmd_connect(host, port):
            return 1
        if not self.cmd_login(username, password):
            self.cmd_quit()
            return 1

        complete = self.cmd_tree(depth, directory)
        self.cmd_show()
        if json_path and not self.cmd_export(json_path):
            complete = False
        if self.connected:
            self.cmd_quit()
        return 0 if complete else 1
