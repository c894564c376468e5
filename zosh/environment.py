"""
Per-session shell environment: variables and aliases.
"""

import re
from typing import Dict, Optional

from .defaults import DEFAULT_ALIASES, DEFAULT_ENV

_VAR_PATTERN = re.compile(r'\$(\w+)')
_BRACED_VAR_PATTERN = re.compile(r'\$\{(\w+)\}')


class Environment:
    """
    Mutable variable and alias tables scoped to one session.

    Provides a clean API for:
    - Reading, setting and unsetting variables
    - Creating and removing aliases
    - Expanding aliases and $VAR references in a command line
    """

    def __init__(self, variables: Optional[Dict[str, str]] = None,
                 aliases: Optional[Dict[str, str]] = None):
        self.variables: Dict[str, str] = dict(DEFAULT_ENV if variables is None else variables)
        self.aliases: Dict[str, str] = dict(DEFAULT_ALIASES if aliases is None else aliases)

    @classmethod
    def for_user(cls, user: str, hostname: str, home: str) -> 'Environment':
        """Default environment adjusted to a session's user, host and home."""
        env = cls()
        env.variables.update({
            'HOME': home, 'PWD': home, 'USER': user, 'LOGNAME': user,
            'HOSTNAME': hostname,
        })
        return env

    # Variables

    def get(self, name: str, default: str = '') -> str:
        return self.variables.get(name, default)

    def set(self, name: str, value: str) -> None:
        self.variables[name] = value

    def unset(self, name: str) -> bool:
        """Remove a variable. Returns True if it existed."""
        return self.variables.pop(name, None) is not None

    # Aliases

    def add_alias(self, name: str, command: str) -> None:
        self.aliases[name] = command

    def remove_alias(self, name: str) -> bool:
        """Remove an alias. Returns True if removed."""
        if name in self.aliases:
            del self.aliases[name]
            return True
        return False

    # Expansion

    def expand_alias(self, command_line: str) -> str:
        """Replace the first word by its alias, once.

        The expansion is not re-examined, so an alias whose value starts with
        another alias name is left as is.
        """
        stripped = command_line.strip()
        parts = stripped.split(None, 1)
        if not parts or parts[0] not in self.aliases:
            return stripped

        expanded = self.aliases[parts[0]]
        return expanded + stripped[len(parts[0]):]

    def expand_variables(self, command_line: str) -> str:
        """Substitute $NAME and ${NAME}; unknown names become empty."""
        line = _VAR_PATTERN.sub(lambda m: self.variables.get(m.group(1), ''), command_line)
        return _BRACED_VAR_PATTERN.sub(lambda m: self.variables.get(m.group(1), ''), line)

    def expand(self, command_line: str) -> str:
        """Alias expansion followed by variable expansion."""
        return self.expand_variables(self.expand_alias(command_line))
