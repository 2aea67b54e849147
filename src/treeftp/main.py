"""
Main entry point for the tree explorer
Connects to an FTP server and prints its directory tree
"""

import argparse
import logging
import sys

from treeftp.core.client import DEFAULT_CONTROL_PORT, DataMode
from treeftp.ui.cli import CLIInterface


def parse_arguments(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(prog='treeftp', description='Print the directory tree of an FTP server')

    # Connection parameters
    parser.add_argument('host', help='FTP server host')
    parser.add_argument('-p', '--port', '-port', type=int, default=DEFAULT_CONTROL_PORT, help='FTP server port')
    parser.add_argument('--active', action='store_true', help='Use active mode data connections')

    # Authentication parameters
    parser.add_argument('-u', '--user', help='Username (default: anonymous)')
    parser.add_argument('-P', '--password', help='Password (default: anonymous)')

    # Exploration
    parser.add_argument('-d', '--depth', type=int, default=-1, help='Maximum depth, negative for no limit')
    parser.add_argument('--dir', dest='directory', help='List only this absolute directory')
    parser.add_argument('--json', dest='json_path', help='Export the tree to this JSON file')

    parser.add_argument('-v', '--verbose', action='store_true', help='Log protocol exchanges')

    args = parser.parse_args(argv)
    if (args.user is None) != (args.password is None):
        parser.error('the username and password must both be present')
    if args.user is None:
        args.user, args.password = 'anonymous', 'anonymous'
    return args


def main(argv=None):
    """Main function: run one exploration session"""
    args = parse_arguments(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    data_mode = DataMode.ACTIVE if args.active else DataMode.PASSIVE
    cli = CLIInterface(verbose=args.verbose, data_mode=data_mode)
    return cli.run(args.host, args.port, args.user, args.password,
                   depth=args.depth, directory=args.directory, json_path=args.json_path)


if __name__ == '__main__':
    sys.exit(main())
