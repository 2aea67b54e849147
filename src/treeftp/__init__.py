"""
treeftp - FTP client that maps remote directory trees
"""

__version__ = '0.1.0'
