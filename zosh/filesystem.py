#!/usr/bin/env python3
"""
zosh.filesystem - A hierarchical, path-addressed virtual filesystem.

Core philosophy:
- Nodes live in an arena keyed by opaque ids; parents and children refer
  to each other by id only
- Every node's path is denormalized but always derivable from its parents
- Expected failures are returned as values, never raised
- Every successful mutation emits a change event to subscribers
"""

import itertools
import json
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from .defaults import DEFAULT_TREE

logger = logging.getLogger(__name__)

STORAGE_KEY = 'zos-filesystem'


class FileKind(str, Enum):
    """Tagged variant of a node: one structural kind and six leaf kinds."""
    FOLDER = 'folder'
    FILE = 'file'
    APPLICATION = 'application'
    IMAGE = 'image'
    VIDEO = 'video'
    AUDIO = 'audio'
    DOCUMENT = 'document'

    @property
    def is_folder(self) -> bool:
        return self is FileKind.FOLDER


class FSError(Enum):
    """Expected filesystem failures with their human-readable messages."""
    NOT_FOUND = 'Path not found'
    NOT_A_DIRECTORY = 'Not a directory'
    IS_A_DIRECTORY = 'Is a directory'
    PARENT_NOT_FOUND = 'Parent path not found'
    PARENT_NOT_DIRECTORY = 'Parent is not a directory'
    NAME_EXISTS = 'Name already exists'
    INVALID_NAME = 'Invalid name'
    CANNOT_MOVE_INTO_SELF = 'Cannot move into itself'
    CANNOT_DELETE_ROOT = 'Cannot delete root'
    CANNOT_MODIFY_ROOT = 'Cannot modify root'
    DIRECTORY_NOT_EMPTY = 'Directory not empty'
    SOURCE_NOT_FOUND = 'Source not found'
    DESTINATION_NOT_FOUND = 'Destination not found'
    DESTINATION_NOT_DIRECTORY = 'Destination is not a directory'

    @property
    def message(self) -> str:
        return self.value


_EXTENSION_KINDS = {
    'png': FileKind.IMAGE, 'jpg': FileKind.IMAGE, 'jpeg': FileKind.IMAGE,
    'gif': FileKind.IMAGE, 'webp': FileKind.IMAGE, 'svg': FileKind.IMAGE,
    'mp4': FileKind.VIDEO, 'webm': FileKind.VIDEO, 'mov': FileKind.VIDEO,
    'avi': FileKind.VIDEO,
    'mp3': FileKind.AUDIO, 'wav': FileKind.AUDIO, 'ogg': FileKind.AUDIO,
    'flac': FileKind.AUDIO,
    'pdf': FileKind.DOCUMENT, 'doc': FileKind.DOCUMENT,
    'docx': FileKind.DOCUMENT, 'txt': FileKind.DOCUMENT,
    'md': FileKind.DOCUMENT,
    'app': FileKind.APPLICATION, 'exe': FileKind.APPLICATION,
}


def infer_kind(name: str, mime_type: Optional[str] = None) -> FileKind:
    """Infer a leaf kind from an explicit mime type, else from the extension."""
    if mime_type:
        for prefix, kind in (('image/', FileKind.IMAGE),
                             ('video/', FileKind.VIDEO),
                             ('audio/', FileKind.AUDIO),
                             ('application/', FileKind.APPLICATION)):
            if mime_type.startswith(prefix):
                return kind

    ext = name.rsplit('.', 1)[-1].lower()
    return _EXTENSION_KINDS.get(ext, FileKind.FILE)


_id_counter = itertools.count(1)


def generate_id() -> str:
    """Issue an id that is unique for the lifetime of the process."""
    return f"{int(time.time() * 1000):x}-{uuid.uuid4().hex[:7]}-{next(_id_counter)}"


@dataclass
class FileMetadata:
    """Timestamps, size and presentation hints of a node."""
    created_at: datetime
    modified_at: datetime
    size: int = 0
    mime_type: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    permissions: Optional[str] = None
    owner: Optional[str] = None
    group: Optional[str] = None

    def to_dict(self) -> dict:
        d = dict(self.__dict__)
        d['created_at'] = self.created_at.isoformat()
        d['modified_at'] = self.modified_at.isoformat()
        return d

    @classmethod
    def from_dict(cls, data: dict) -> 'FileMetadata':
        data = dict(data)
        data['created_at'] = datetime.fromisoformat(data['created_at'])
        data['modified_at'] = datetime.fromisoformat(data['modified_at'])
        return cls(**data)


@dataclass
class FileNode:
    """One file or folder record in the arena."""
    id: str
    name: str
    kind: FileKind
    path: str
    parent_id: Optional[str]
    metadata: FileMetadata
    content: Optional[str] = None
    children: Optional[List[str]] = None

    def is_folder(self) -> bool:
        return self.kind.is_folder

    def is_file(self) -> bool:
        return not self.kind.is_folder

    def to_dict(self) -> dict:
        d = {
            'id': self.id,
            'name': self.name,
            'type': self.kind.value,
            'path': self.path,
            'parent_id': self.parent_id,
            'metadata': self.metadata.to_dict(),
        }
        if self.is_folder():
            d['children'] = list(self.children or [])
        else:
            d['content'] = self.content or ''
        return d

    @classmethod
    def from_dict(cls, data: dict) -> 'FileNode':
        kind = FileKind(data['type'])
        return cls(
            id=data['id'],
            name=data['name'],
            kind=kind,
            path=data['path'],
            parent_id=data.get('parent_id'),
            metadata=FileMetadata.from_dict(data['metadata']),
            content=None if kind.is_folder else data.get('content', ''),
            children=list(data.get('children', [])) if kind.is_folder else None,
        )


@dataclass
class FSResult:
    """Outcome of a filesystem operation."""
    success: bool
    error: Optional[FSError] = None
    node: Optional[FileNode] = None
    nodes: Optional[List[FileNode]] = None

    @classmethod
    def ok(cls, node: Optional[FileNode] = None,
           nodes: Optional[List[FileNode]] = None) -> 'FSResult':
        return cls(success=True, node=node, nodes=nodes)

    @classmethod
    def fail(cls, error: FSError) -> 'FSResult':
        return cls(success=False, error=error)

    def __bool__(self) -> bool:
        return self.success


class FSEventKind(str, Enum):
    CREATED = 'created'
    WRITTEN = 'written'
    RENAMED = 'renamed'
    MOVED = 'moved'
    COPIED = 'copied'
    DELETED = 'deleted'


@dataclass(frozen=True)
class FSEvent:
    """Emitted after every successful mutation."""
    kind: FSEventKind
    path: str
    node_id: str
    old_path: Optional[str] = None


def join_path(parent_path: str, name: str) -> str:
    """Canonical child path for a name under a parent path."""
    return f"{'' if parent_path == '/' else parent_path}/{name}"


class NodeStore:
    """
    Arena of filesystem nodes keyed by id.

    Holds no structural logic of its own; the FileSystem is its only writer.
    """

    def __init__(self):
        self.nodes: Dict[str, FileNode] = {}
        self.root_id: Optional[str] = None

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, node_id: Optional[str]) -> Optional[FileNode]:
        if node_id is None:
            return None
        return self.nodes.get(node_id)

    def add(self, node: FileNode) -> FileNode:
        self.nodes[node.id] = node
        return node

    def remove(self, node_id: str) -> None:
        self.nodes.pop(node_id, None)

    @property
    def root(self) -> FileNode:
        return self.nodes[self.root_id]

    def children_of(self, node: FileNode) -> List[FileNode]:
        return [self.nodes[cid] for cid in (node.children or []) if cid in self.nodes]

    def child_named(self, node: FileNode, name: str) -> Optional[FileNode]:
        for child_id in node.children or []:
            child = self.nodes.get(child_id)
            if child is not None and child.name == name:
                return child
        return None

    def to_dict(self) -> dict:
        return {
            'root_id': self.root_id,
            'nodes': {node_id: node.to_dict() for node_id, node in self.nodes.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'NodeStore':
        store = cls()
        store.root_id = data['root_id']
        for node_id, node_data in data['nodes'].items():
            store.nodes[node_id] = FileNode.from_dict(node_data)
        return store


class PathResolver:
    """Turns user path strings into canonical absolute paths and nodes."""

    def __init__(self, store: NodeStore, home: str = '/Users/user'):
        self.store = store
        self.home = home

    def normalize(self, path: str, cwd: str = '/') -> str:
        """Canonical absolute form of path relative to cwd.

        Empty means cwd, a leading '~' means the home directory, '..' pops
        one segment (never above root) and trailing slashes are dropped.
        """
        if not path:
            return cwd
        if path == '~':
            path = self.home
        elif path.startswith('~/'):
            path = self.home + path[1:]

        parts = [] if path.startswith('/') else [p for p in cwd.split('/') if p]
        for part in path.split('/'):
            if part == '..':
                if parts:
                    parts.pop()
            elif part and part != '.':
                parts.append(part)

        return '/' + '/'.join(parts)

    def resolve(self, canonical: str) -> Optional[FileNode]:
        """Walk from the root through child names to the node at canonical."""
        current = self.store.root
        for part in canonical.split('/'):
            if not part:
                continue
            if not current.is_folder():
                return None
            current = self.store.child_named(current, part)
            if current is None:
                return None
        return current


class FileSystem:
    """
    Virtual filesystem engine.

    All structural changes go through this class. Operations return an
    FSResult; only broken internal invariants are logged as errors.
    """

    def __init__(self, store=None, home: str = '/Users/user',
                 storage_key: str = STORAGE_KEY, seed: bool = True):
        # Optional persistence backend (see zosh.persistence)
        self.backing_store = store
        self.storage_key = storage_key
        self.home = home
        self._listeners: List[Callable[[FSEvent], None]] = []

        self.nodes = self._load()
        if self.nodes is None:
            self.nodes = self._init_filesystem(seed)
        self.resolver = PathResolver(self.nodes, home)
        self.cwd = home if self.resolver.resolve(home) else '/'

    # Setup and persistence

    def _init_filesystem(self, seed: bool) -> NodeStore:
        """Create a store holding the root and, optionally, the default tree."""
        nodes = NodeStore()
        now = datetime.now()
        root = FileNode(
            id=generate_id(), name='/', kind=FileKind.FOLDER, path='/',
            parent_id=None, children=[],
            metadata=FileMetadata(created_at=now, modified_at=now,
                                  permissions='drwxr-xr-x', owner='root',
                                  group='wheel'),
        )
        nodes.add(root)
        nodes.root_id = root.id

        if seed:
            for path, spec in DEFAULT_TREE:
                self._seed_node(nodes, path, spec, now)
        return nodes

    @staticmethod
    def _seed_node(nodes: NodeStore, path: str, spec: dict, now: datetime) -> None:
        parent_path, name = path.rsplit('/', 1)
        parent = nodes.root
        for part in parent_path.split('/'):
            if part:
                parent = nodes.child_named(parent, part)

        is_dir = spec.get('type') == 'dir'
        content = None if is_dir else spec.get('content', '')
        node = FileNode(
            id=generate_id(), name=name,
            kind=FileKind.FOLDER if is_dir else infer_kind(name),
            path=path, parent_id=parent.id,
            children=[] if is_dir else None, content=content,
            metadata=FileMetadata(
                created_at=now, modified_at=now,
                size=spec.get('size', len(content or '')),
                permissions=spec.get('permissions'),
                owner=spec.get('owner'), group=spec.get('group'),
            ),
        )
        nodes.add(node)
        parent.children.append(node.id)

    def _load(self) -> Optional[NodeStore]:
        if self.backing_store is None or not self.backing_store.exists(self.storage_key):
            return None
        try:
            return NodeStore.from_dict(json.loads(self.backing_store.read(self.storage_key)))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error("Failed to load file system: %s", e)
            return None

    def _save(self) -> None:
        if self.backing_store is None:
            return
        try:
            self.backing_store.write(self.storage_key, self.to_json())
        except Exception:
            # In-memory state stays authoritative.
            logger.exception("Failed to save file system")

    def _commit(self, event: FSEvent) -> None:
        """Post-mutation bookkeeping: invariants, persistence, notification."""
        for violation in self.check_invariants():
            logger.error("Invariant violation after %s %s: %s",
                         event.kind.value, event.path, violation)
        self._save()
        for listener in list(self._listeners):
            listener(event)

    # Subscription

    def subscribe(self, listener: Callable[[FSEvent], None]) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    # Path resolution

    def normalize(self, path: str) -> str:
        return self.resolver.normalize(path, self.cwd)

    def resolve_path(self, path: str) -> Optional[FileNode]:
        """Resolve an absolute or cwd-relative path to its node."""
        return self.resolver.resolve(self.normalize(path))

    def get_node(self, node_id: str) -> Optional[FileNode]:
        return self.nodes.get(node_id)

    def get_parent(self, path: str) -> Optional[FileNode]:
        node = self.resolve_path(path)
        return self.nodes.get(node.parent_id) if node else None

    def exists(self, path: str) -> bool:
        return self.resolve_path(path) is not None

    def is_folder(self, path: str) -> bool:
        node = self.resolve_path(path)
        return node is not None and node.is_folder()

    def change_directory(self, path: str) -> FSResult:
        node = self.resolve_path(path)
        if node is None:
            return FSResult.fail(FSError.NOT_FOUND)
        if not node.is_folder():
            return FSResult.fail(FSError.NOT_A_DIRECTORY)
        self.cwd = node.path
        return FSResult.ok(node)

    # Read operations

    def list_directory(self, path: str = '') -> FSResult:
        node = self.resolve_path(path)
        if node is None:
            return FSResult.fail(FSError.NOT_FOUND)
        if not node.is_folder():
            return FSResult.fail(FSError.NOT_A_DIRECTORY)
        return FSResult.ok(node, nodes=self.nodes.children_of(node))

    def read_file(self, path: str) -> FSResult:
        node = self.resolve_path(path)
        if node is None:
            return FSResult.fail(FSError.NOT_FOUND)
        if node.is_folder():
            return FSResult.fail(FSError.IS_A_DIRECTORY)
        return FSResult.ok(node)

    def walk(self, path: str = '/') -> Iterator[FileNode]:
        """Depth-first pre-order traversal of the subtree at path."""
        start = self.resolve_path(path)
        if start is None:
            return
        stack = [start]
        while stack:
            node = stack.pop()
            yield node
            if node.is_folder():
                stack.extend(reversed(self.nodes.children_of(node)))

    def search(self, query: str, from_path: str = '/') -> List[FileNode]:
        """Case-insensitive substring match on names, in traversal order."""
        needle = query.lower()
        return [node for node in self.walk(from_path) if needle in node.name.lower()]

    def get_size(self, path: str) -> int:
        node = self.resolve_path(path)
        if node is None:
            return 0
        if not node.is_folder():
            return node.metadata.size
        return sum(n.metadata.size for n in self.walk(node.path) if not n.is_folder())

    # Create operations

    def _check_new_child(self, parent_path: str, name: str) -> Tuple[Optional[FileNode], Optional[FSError]]:
        parent = self.resolve_path(parent_path)
        if parent is None:
            return None, FSError.PARENT_NOT_FOUND
        if not parent.is_folder():
            return None, FSError.PARENT_NOT_DIRECTORY
        if not name or '/' in name or name in ('.', '..'):
            return None, FSError.INVALID_NAME
        if self.nodes.child_named(parent, name) is not None:
            return None, FSError.NAME_EXISTS
        return parent, None

    def _attach(self, parent: FileNode, node: FileNode, now: datetime) -> None:
        self.nodes.add(node)
        parent.children.append(node.id)
        parent.metadata.modified_at = now

    def create_file(self, parent_path: str, name: str, content: str = '',
                    mime_type: Optional[str] = None,
                    kind: Optional[FileKind] = None) -> FSResult:
        parent, error = self._check_new_child(parent_path, name)
        if error:
            return FSResult.fail(error)
        if kind is not None and kind.is_folder:
            return self.create_folder(parent_path, name)

        now = datetime.now()
        node = FileNode(
            id=generate_id(), name=name,
            kind=kind or infer_kind(name, mime_type),
            path=join_path(parent.path, name), parent_id=parent.id,
            content=content or '',
            metadata=FileMetadata(created_at=now, modified_at=now,
                                  size=len(content or ''), mime_type=mime_type,
                                  permissions='-rw-r--r--', owner='user',
                                  group='staff'),
        )
        self._attach(parent, node, now)
        self._commit(FSEvent(FSEventKind.CREATED, node.path, node.id))
        return FSResult.ok(node)

    def create_folder(self, parent_path: str, name: str,
                      icon: Optional[str] = None,
                      color: Optional[str] = None) -> FSResult:
        parent, error = self._check_new_child(parent_path, name)
        if error:
            return FSResult.fail(error)

        now = datetime.now()
        node = FileNode(
            id=generate_id(), name=name, kind=FileKind.FOLDER,
            path=join_path(parent.path, name), parent_id=parent.id,
            children=[],
            metadata=FileMetadata(created_at=now, modified_at=now, icon=icon,
                                  color=color, permissions='drwxr-xr-x',
                                  owner='user', group='staff'),
        )
        self._attach(parent, node, now)
        self._commit(FSEvent(FSEventKind.CREATED, node.path, node.id))
        return FSResult.ok(node)

    # Update operations

    def write_file(self, path: str, content: str) -> FSResult:
        node = self.resolve_path(path)
        if node is None:
            return FSResult.fail(FSError.NOT_FOUND)
        if node.is_folder():
            return FSResult.fail(FSError.IS_A_DIRECTORY)

        node.content = content
        node.metadata.size = len(content)
        node.metadata.modified_at = datetime.now()
        self._commit(FSEvent(FSEventKind.WRITTEN, node.path, node.id))
        return FSResult.ok(node)

    def touch(self, path: str) -> FSResult:
        """Refresh modified_at of an existing node."""
        node = self.resolve_path(path)
        if node is None:
            return FSResult.fail(FSError.NOT_FOUND)
        node.metadata.modified_at = datetime.now()
        self._commit(FSEvent(FSEventKind.WRITTEN, node.path, node.id))
        return FSResult.ok(node)

    def _cascade_paths(self, node: FileNode) -> None:
        """Recompute the path of every descendant of node."""
        stack = [node]
        while stack:
            parent = stack.pop()
            for child in self.nodes.children_of(parent):
                child.path = join_path(parent.path, child.name)
                if child.is_folder():
                    stack.append(child)

    def rename(self, path: str, new_name: str) -> FSResult:
        node = self.resolve_path(path)
        if node is None:
            return FSResult.fail(FSError.NOT_FOUND)
        if node.parent_id is None:
            return FSResult.fail(FSError.CANNOT_MODIFY_ROOT)
        if not new_name or '/' in new_name or new_name in ('.', '..'):
            return FSResult.fail(FSError.INVALID_NAME)

        parent = self.nodes.get(node.parent_id)
        clash = self.nodes.child_named(parent, new_name)
        if clash is not None and clash.id != node.id:
            return FSResult.fail(FSError.NAME_EXISTS)

        old_path = node.path
        node.name = new_name
        node.path = join_path(parent.path, new_name)
        node.metadata.modified_at = datetime.now()
        self._cascade_paths(node)
        self._rebase_cwd(old_path, node.path)
        self._commit(FSEvent(FSEventKind.RENAMED, node.path, node.id, old_path))
        return FSResult.ok(node)

    def _rebase_cwd(self, old_path: str, new_path: str) -> None:
        if self.cwd == old_path or self.cwd.startswith(old_path + '/'):
            self.cwd = new_path + self.cwd[len(old_path):]

    # Delete operations

    def delete(self, path: str) -> FSResult:
        node = self.resolve_path(path)
        if node is None:
            return FSResult.fail(FSError.NOT_FOUND)
        if node.parent_id is None:
            return FSResult.fail(FSError.CANNOT_DELETE_ROOT)

        parent = self.nodes.get(node.parent_id)
        parent.children.remove(node.id)
        parent.metadata.modified_at = datetime.now()

        for doomed in list(self.walk_node(node)):
            self.nodes.remove(doomed.id)

        if self.cwd == node.path or self.cwd.startswith(node.path + '/'):
            self.cwd = parent.path
        self._commit(FSEvent(FSEventKind.DELETED, node.path, node.id))
        return FSResult.ok(node)

    def walk_node(self, node: FileNode) -> Iterator[FileNode]:
        stack = [node]
        while stack:
            current = stack.pop()
            yield current
            if current.is_folder():
                stack.extend(self.nodes.children_of(current))

    # Move/Copy operations

    def move(self, source_path: str, destination_path: str,
             new_name: Optional[str] = None) -> FSResult:
        """Reparent source under the destination folder.

        new_name optionally renames the node as part of the same move.
        """
        source, dest, name, error = self._move_preconditions(
            source_path, destination_path, new_name)
        if error is not None:
            return FSResult.fail(error)
        clash = self.nodes.child_named(dest, name)
        if clash is not None:
            if clash.id == source.id:
                return FSResult.ok(source)
            return FSResult.fail(FSError.NAME_EXISTS)

        now = datetime.now()
        old_path = source.path
        old_parent = self.nodes.get(source.parent_id)
        old_parent.children.remove(source.id)
        old_parent.metadata.modified_at = now

        source.parent_id = dest.id
        source.name = name
        source.path = join_path(dest.path, name)
        source.metadata.modified_at = now
        dest.children.append(source.id)
        dest.metadata.modified_at = now

        self._cascade_paths(source)
        self._rebase_cwd(old_path, source.path)
        self._commit(FSEvent(FSEventKind.MOVED, source.path, source.id, old_path))
        return FSResult.ok(source)

    def check_move(self, source_path: str, destination_path: str,
                   new_name: Optional[str] = None) -> Optional[FSError]:
        """Why move() would fail, not counting a clash with an existing name."""
        return self._move_preconditions(source_path, destination_path, new_name)[3]

    def _move_preconditions(self, source_path, destination_path, new_name):
        source = self.resolve_path(source_path)
        if source is None:
            return None, None, None, FSError.SOURCE_NOT_FOUND
        dest = self.resolve_path(destination_path)
        if dest is None:
            return source, None, None, FSError.DESTINATION_NOT_FOUND
        if not dest.is_folder():
            return source, dest, None, FSError.DESTINATION_NOT_DIRECTORY
        if source.parent_id is None:
            return source, dest, None, FSError.CANNOT_MODIFY_ROOT
        if dest.path == source.path or dest.path.startswith(source.path + '/'):
            return source, dest, None, FSError.CANNOT_MOVE_INTO_SELF

        name = new_name or source.name
        if '/' in name or name in ('.', '..'):
            return source, dest, name, FSError.INVALID_NAME
        return source, dest, name, None

    def copy(self, source_path: str, destination_path: str,
             new_name: Optional[str] = None) -> FSResult:
        """Deep-clone source into the destination folder with fresh ids."""
        source = self.resolve_path(source_path)
        if source is None:
            return FSResult.fail(FSError.SOURCE_NOT_FOUND)
        dest = self.resolve_path(destination_path)
        if dest is None:
            return FSResult.fail(FSError.DESTINATION_NOT_FOUND)
        if not dest.is_folder():
            return FSResult.fail(FSError.DESTINATION_NOT_DIRECTORY)

        name = new_name or source.name
        if source.parent_id is None and new_name is None:
            return FSResult.fail(FSError.INVALID_NAME)
        if '/' in name or name in ('.', '..'):
            return FSResult.fail(FSError.INVALID_NAME)
        if self.nodes.child_named(dest, name) is not None:
            return FSResult.fail(FSError.NAME_EXISTS)

        # Snapshot the subtree first so copying into a descendant terminates.
        plan = self._copy_plan(source)
        clone = self._clone(plan, dest, name, datetime.now())
        self._commit(FSEvent(FSEventKind.COPIED, clone.path, clone.id, source.path))
        return FSResult.ok(clone)

    def _copy_plan(self, node: FileNode) -> Tuple[FileNode, list]:
        return node, [self._copy_plan(child) for child in self.nodes.children_of(node)]

    def _clone(self, plan: Tuple[FileNode, list], parent: FileNode, name: str,
               now: datetime) -> FileNode:
        source, child_plans = plan
        meta = source.metadata
        clone = FileNode(
            id=generate_id(), name=name, kind=source.kind,
            path=join_path(parent.path, name), parent_id=parent.id,
            content=None if source.is_folder() else source.content,
            children=[] if source.is_folder() else None,
            metadata=FileMetadata(
                created_at=now, modified_at=now, size=meta.size,
                mime_type=meta.mime_type, icon=meta.icon, color=meta.color,
                permissions=meta.permissions, owner=meta.owner, group=meta.group,
            ),
        )
        self._attach(parent, clone, now)
        for child_plan in child_plans:
            self._clone(child_plan, clone, child_plan[0].name, now)
        return clone

    # Collaborator contract used by UI layers and persistence

    def list(self, path: str) -> FSResult:
        return self.list_directory(path)

    def read(self, path: str) -> Optional[str]:
        """Return file content, or None if path is missing or a folder."""
        result = self.read_file(path)
        return result.node.content if result else None

    def write(self, path: str, content: str) -> FSResult:
        """Write content, creating the file under an existing parent."""
        if self.exists(path):
            return self.write_file(path, content)
        canonical = self.normalize(path)
        parent_path, name = canonical.rsplit('/', 1)
        return self.create_file(parent_path or '/', name, content)

    def create(self, parent_path: str, name: str, kind: FileKind = FileKind.FILE,
               **options) -> FSResult:
        """Create a node of the given kind.

        Folders take icon and color, leaves take content and mime_type.
        Options that belong to the other kind are ignored.
        """
        if kind.is_folder:
            return self.create_folder(parent_path, name,
                                      icon=options.get('icon'),
                                      color=options.get('color'))
        return self.create_file(parent_path, name, options.get('content', ''),
                                mime_type=options.get('mime_type'), kind=kind)

    # Invariants

    def check_invariants(self) -> List[str]:
        """Return a description of every broken structural invariant."""
        problems = []
        roots = [n for n in self.nodes.nodes.values() if n.parent_id is None]
        if len(roots) != 1 or roots[0].id != self.nodes.root_id or roots[0].path != '/':
            problems.append(f"expected a single root at '/', found {len(roots)}")

        for node in self.nodes.nodes.values():
            if node.is_folder() and node.content is not None:
                problems.append(f"{node.path}: folder carries content")
            if node.is_file() and node.children is not None:
                problems.append(f"{node.path}: leaf carries children")
            if node.parent_id is None:
                continue
            parent = self.nodes.get(node.parent_id)
            if parent is None or node.id not in (parent.children or []):
                problems.append(f"{node.path}: detached from parent")
                continue
            if node.path != join_path(parent.path, node.name):
                problems.append(f"{node.path}: path does not match parent chain")

        for node in self.nodes.nodes.values():
            if not node.is_folder():
                continue
            names = set()
            for child_id in node.children:
                child = self.nodes.get(child_id)
                if child is None or child.parent_id != node.id:
                    problems.append(f"{node.path}: dangling child id {child_id}")
                elif child.name in names:
                    problems.append(f"{node.path}: duplicate child name {child.name}")
                else:
                    names.add(child.name)
        return problems

    # Serialization

    def to_json(self) -> str:
        """Serialize the node arena to JSON."""
        return json.dumps(self.nodes.to_dict(), indent=2)

    @classmethod
    def from_json(cls, json_str: str, home: str = '/Users/user') -> 'FileSystem':
        """Build a filesystem from a JSON snapshot produced by to_json."""
        fs = cls(home=home, seed=False)
        fs.nodes = NodeStore.from_dict(json.loads(json_str))
        fs.resolver = PathResolver(fs.nodes, home)
        fs.cwd = home if fs.resolver.resolve(home) else '/'
        return fs
