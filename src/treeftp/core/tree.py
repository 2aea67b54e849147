"""
Remote directory tree model
Nodes are built from LIST lines; directories own their children
"""

import json
import weakref
from enum import Enum

from .errors import ListingParseError

PATH_SEPARATOR = '/'
DEFAULT_DEPTH = -1
FULL_RIGHTS = 'rwx'
SYMLINK_ARROW = '->'


class FileType(Enum):
    """Kinds of remote entries, keyed by the LIST selector character"""
    REGULAR = '-'
    SYMBOLIC = 'l'
    DIRECTORY = 'd'

    @classmethod
    def from_selector(cls, char):
        try:
            return cls(char)
        except ValueError:
            raise ListingParseError(f"Unknown file type {char!r}: has to be -, l, or d") from None

    @property
    def export_name(self):
        return f"{self.name}_FILE"


class FileNode:
    """One remote entry: regular file, symbolic link or directory"""

    def __init__(self, name, file_type, parent=None, depth=DEFAULT_DEPTH,
                 user_rights=FULL_RIGHTS, group_rights=FULL_RIGHTS, other_rights=FULL_RIGHTS):
        """
        Args:
            name: Entry name, or an absolute path for a root node
            file_type: FileType of the entry
            parent: Directory node this entry lives in (None for a root)
            depth: Exploration depth, DEFAULT_DEPTH when unset
            user_rights: 'rwx'-style string for the owner
            group_rights: 'rwx'-style string for the group
            other_rights: 'rwx'-style string for everybody else
        """
        if parent is not None and not parent.is_directory:
            raise TypeError(f"{parent.pathname} is not a directory")
        self._name = name
        self._file_type = file_type
        self._parent = weakref.ref(parent) if parent is not None else None
        self._pathname = self._build_pathname(name, parent)
        self._children = [] if file_type is FileType.DIRECTORY else None
        self.depth = depth
        self.user_rights = user_rights
        self.group_rights = group_rights
        self.other_rights = other_rights

    @staticmethod
    def _build_pathname(name, parent):
        if parent is None:
            return name if name.startswith(PATH_SEPARATOR) else PATH_SEPARATOR + name
        return parent.pathname.rstrip(PATH_SEPARATOR) + PATH_SEPARATOR + name

    @property
    def name(self):
        return self._name

    @property
    def file_type(self):
        return self._file_type

    @property
    def pathname(self):
        return self._pathname

    @property
    def parent(self):
        """Containing directory, or None for a root or once it is gone"""
        return self._parent() if self._parent is not None else None

    @property
    def is_directory(self):
        return self._file_type is FileType.DIRECTORY

    @property
    def children(self):
        """Entries of a directory in server order; always empty for leaves"""
        return tuple(self._children) if self._children is not None else ()

    def add_child(self, child):
        """Append an entry to this directory"""
        if self._children is None:
            raise TypeError(f"{self.pathname} is not a directory")
        self._children.append(child)

    def has_right(self, who, right):
        """
        Check one permission bit

        Args:
            who: 'user', 'group' or 'other'
            right: 'r', 'w' or 'x'
        """
        rights = getattr(self, f"{who}_rights")
        return right in rights

    @property
    def is_accessible(self):
        """Owner may read, write and enter this directory"""
        return self.is_directory and all(self.has_right('user', r) for r in FULL_RIGHTS)

    def walk(self):
        """Yield this node and every descendant, depth first"""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self):
        """Export document for this node and its subtree"""
        document = {
            'fileType': self._file_type.export_name,
            'name': self._name,
            'userRights': self.user_rights,
            'groupRights': self.group_rights,
            'otherRights': self.other_rights,
            'pathname': self._pathname,
        }
        if self.is_directory:
            document['files'] = [child.to_dict() for child in self._children]
        return document

    def to_json(self, indent=2):
        return json.dumps(self.to_dict(), indent=indent)

    def __repr__(self):
        return f"FileNode({self._file_type.name}, {self._pathname!r}, depth={self.depth})"


def create_node(name, file_type, parent=None, depth=DEFAULT_DEPTH, rights=(FULL_RIGHTS,) * 3):
    """Build a node of the given type; the parent is referenced, not modified"""
    user_rights, group_rights, other_rights = rights
    return FileNode(name, file_type, parent=parent, depth=depth,
                    user_rights=user_rights, group_rights=group_rights,
                    other_rights=other_rights)


def create_root(pathname=PATH_SEPARATOR, depth=0):
    """Directory node standing for the place exploration starts from"""
    return FileNode(pathname, FileType.DIRECTORY, depth=depth)


def parse_listing_line(line, parent):
    """
    Turn one LIST line into a node whose parent is `parent`

    Example:
        "drwxr-xr-x 2 u g 4096 Jan 1 00:00 sub" -> directory "sub"
        "lrwxrwxrwx 1 u g 0 Jan 1 00:00 link -> target" -> link "link"

    Raises:
        ListingParseError: Line does not describe a -, l or d entry
    """
    tokens = line.split()
    if len(tokens) < 2:
        raise ListingParseError(f"Cannot parse listing line: {line!r}")

    mode = tokens[0]
    file_type = FileType.from_selector(mode[0])
    if len(mode) < 10:
        raise ListingParseError(f"Bad permission string in listing line: {line!r}")

    # For links the name sits before "-> target"
    if SYMLINK_ARROW in tokens:
        if len(tokens) < 4:
            raise ListingParseError(f"Cannot parse listing line: {line!r}")
        name = tokens[-3]
    else:
        name = tokens[-1]

    depth = parent.depth + 1 if parent is not None else DEFAULT_DEPTH
    return create_node(name, file_type, parent=parent, depth=depth,
                       rights=(mode[1:4], mode[4:7], mode[7:10]))


def export_json(root, path):
    """
    Write the tree below `root` as a JSON document

    Returns:
        str: Path actually written (".json" appended when missing)
    """
    if not path.endswith('.json'):
        path += '.json'
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(root.to_dict(), f, indent=2)
    return path
