"""
Tab completion for the zosh terminal.

Completes the word under the cursor (the text after the last whitespace)
against the children of a directory in the virtual filesystem. The first
word of a line is also matched against command and alias names.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .builtins import Builtin
from .environment import Environment
from .filesystem import FileSystem


@dataclass
class CompletionResult:
    """New input line plus the candidates that were considered."""
    line: str
    candidates: List[str] = field(default_factory=list)
    applied: bool = False

    @property
    def ambiguous(self) -> bool:
        return len(self.candidates) > 1


class CompletionEngine:
    """
    Provides tab completion for commands and file paths.

    One match replaces the partial word (with a trailing '/' for folders),
    several matches leave the line alone and are reported as candidates,
    no match is a no-op.
    """

    def __init__(self, fs: FileSystem, environment: Optional[Environment] = None):
        self.fs = fs
        self.environment = environment

    def complete(self, line: str) -> CompletionResult:
        """Complete the last word of line."""
        if not line or line[-1].isspace():
            return CompletionResult(line)

        words = line.split()
        partial = words[-1]
        head = line[:len(line) - len(partial)]

        directory_prefix, name_prefix = self.split_partial(partial)
        paths = self.complete_path(directory_prefix, name_prefix)
        commands = []
        if len(words) == 1 and '/' not in partial:
            commands = [name for name in self.complete_command(partial) if name not in paths]

        matches = sorted(paths + commands)
        if len(matches) != 1:
            return CompletionResult(line, matches)

        if commands:
            return CompletionResult(head + commands[0] + ' ', matches, True)

        completed = directory_prefix + matches[0]
        if self.fs.is_folder(completed):
            completed += '/'
        return CompletionResult(head + completed, matches, True)

    @staticmethod
    def split_partial(partial: str):
        """Split a partial path into (directoryPrefix, namePrefix)."""
        cut = partial.rfind('/') + 1
        return partial[:cut], partial[cut:]

    def complete_command(self, prefix: str) -> List[str]:
        names = {b.value for b in Builtin}
        if self.environment is not None:
            names.update(self.environment.aliases)
        return sorted(name for name in names if name.startswith(prefix))

    def complete_path(self, directory_prefix: str, name_prefix: str) -> List[str]:
        """Sorted child names of directory_prefix starting with name_prefix."""
        listing = self.fs.list_directory(directory_prefix)
        if not listing:
            return []
        return sorted(node.name for node in listing.nodes if node.name.startswith(name_prefix))
