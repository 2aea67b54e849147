"""
User Interface module
Command-line front end and tree rendering for the FTP client
"""

from .cli import CLIInterface
from .render import render_tree

__all__ = ['CLIInterface', 'render_tree']
