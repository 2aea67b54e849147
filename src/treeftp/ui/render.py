"""
Text rendering of remote trees, in the style of the Unix `tree` command
"""

ROOT_CHAR = '.'
SUBFILE_CHAR = '├── '
LAST_SUBFILE_CHAR = '└── '
SUBFILE_LEVEL = '│   '
LINE_SPACE = '    '


def render_tree(root):
    """
    Render `root` and its explored subtree

    Returns:
        str: One line per node, the root shown as '.'
    """
    lines = [ROOT_CHAR]
    _render_children(root, '', lines)
    return '\n'.join(lines)


def _render_children(node, prefix, lines):
    children = node.children
    for index, child in enumerate(children):
        last = index == len(children) - 1
        lines.append(prefix + (LAST_SUBFILE_CHAR if last else SUBFILE_CHAR) + child.name)
        if child.is_directory:
            _render_children(child, prefix + (LINE_SPACE if last else SUBFILE_LEVEL), lines)


def count_entries(root):
    """(directories, files) below root, the root itself excluded"""
    directories = files = 0
    for node in root.walk():
        if node is root:
            continue
        if node.is_directory:
            directories += 1
        else:
            files += 1
    return directories, files
