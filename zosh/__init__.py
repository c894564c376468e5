"""
zosh - A virtual filesystem with a zsh-flavoured shell on top

This package provides a hierarchical, path-addressed virtual filesystem
kept in an id-keyed node arena, along with a command interpreter that runs
a fixed set of Unix-like builtins against it and an interactive terminal.
"""

__version__ = "0.1.0"

from .filesystem import (
    FileSystem,
    FileNode,
    FileMetadata,
    FileKind,
    FSError,
    FSResult,
    FSEvent,
    FSEventKind,
    NodeStore,
    PathResolver,
)

from .persistence import (
    MemoryStore,
    DirectoryStore,
)

from .environment import Environment

from .command_parser import (
    Command,
    CommandParser,
    ChainSegment,
)

from .builtins import (
    Builtin,
    BuiltinCommands,
    CommandError,
    CommandResult,
)

from .completion import (
    CompletionEngine,
    CompletionResult,
)

from .terminal import (
    TerminalSession,
    TerminalConfig,
    CommandExecutor,
    CommandHistory,
    ChainResult,
)

__all__ = [
    # Core filesystem classes
    "FileSystem",
    "FileNode",
    "FileMetadata",
    "FileKind",
    "FSError",
    "FSResult",
    "FSEvent",
    "FSEventKind",
    "NodeStore",
    "PathResolver",

    # Persistence
    "MemoryStore",
    "DirectoryStore",

    # Environment
    "Environment",

    # Command parser
    "Command",
    "CommandParser",
    "ChainSegment",

    # Builtins
    "Builtin",
    "BuiltinCommands",
    "CommandError",
    "CommandResult",

    # Completion
    "CompletionEngine",
    "CompletionResult",

    # Terminal
    "TerminalSession",
    "TerminalConfig",
    "CommandExecutor",
    "CommandHistory",
    "ChainResult",

    # Version info
    "__version__",
]
