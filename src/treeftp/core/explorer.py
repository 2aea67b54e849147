"""
Depth-first exploration of a remote directory tree
Every call leaves the server in the directory it found it in
"""

import logging
import posixpath

from .errors import DataChannelFailure, DirectoryAccessFailure

logger = logging.getLogger(__name__)


def explore_depth(client, node, max_depth=-1):
    """
    Populate the subtree below `node`

    Directories that cannot be entered or listed are left unexplored and
    their siblings are still visited. Lost control channels and malformed
    replies propagate.

    Args:
        client: Connected, logged in FTPClient
        node: FileNode to start from
        max_depth: Deepest node depth to list, negative for no bound

    Returns:
        FileNode: `node` itself
    """
    if not _should_enter(node, max_depth):
        return node

    try:
        start = client.working_directory_name()
    except (DirectoryAccessFailure, DataChannelFailure) as e:
        logger.warning("Start directory unknown, it will not be restored: %s", e.message)
        start = None

    if _explore(client, node, max_depth) and start is not None and _parent_path(node) != start:
        # CDUP took us next to the start node rather than back where we began
        client.change_working_directory(start)
    return node


def _should_enter(node, max_depth):
    if 0 <= max_depth <= node.depth:
        return False
    if not node.is_directory:
        return False
    if not node.is_accessible:
        logger.info("Not exploring %s: rights %s", node.pathname, node.user_rights)
        return False
    return True


def _explore(client, node, max_depth):
    """Returns True when it went into `node` (and back up one level)"""
    if not _should_enter(node, max_depth):
        return False

    try:
        client.change_working_directory(node.pathname)
    except DirectoryAccessFailure as e:
        logger.warning("Skipping %s: %s", node.pathname, e.message)
        return False

    try:
        children = client.list(client.working_directory_name(), node)
    except (DirectoryAccessFailure, DataChannelFailure) as e:
        logger.warning("Cannot list %s: %s", node.pathname, e.message)
        children = []

    for child in children:
        _explore(client, child, max_depth)

    _leave(client, node)
    return True


def _parent_path(node):
    return posixpath.dirname(node.pathname.rstrip('/')) or '/'


def _leave(client, node):
    """Go back up one level, by absolute path if CDUP is refused"""
    try:
        client.change_to_parent_directory()
    except DirectoryAccessFailure:
        parent = _parent_path(node)
        logger.warning("CDUP refused in %s, changing to %s", node.pathname, parent)
        client.change_working_directory(parent)
