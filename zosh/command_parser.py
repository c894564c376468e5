#!/usr/bin/env python3
"""
Command parser for the zosh terminal.

Translates raw input lines into a chain of segments and each segment into a
structured Command that the executor dispatches to a builtin.

Design Principles:
- Single responsibility: Parse commands, don't execute them
- Composable: chain split, expansion and word split are independent steps
- Expansion is late: a segment is expanded only when it is about to run,
  so variables exported earlier in the same chain are visible
"""

import re
import shlex
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .environment import Environment

AND = '&&'
SEQ = ';'

_ASSIGNMENT_PATTERN = re.compile(r'^([A-Za-z_]\w*)=(.*)$', re.DOTALL)


@dataclass
class ChainSegment:
    """One command of a chain and whether it only runs after a success."""
    text: str
    requires_prior_success: bool = False


@dataclass
class Command:
    """
    A single command with its arguments split into flags and positionals.

    This is the fundamental unit of execution. Each command maps to one
    builtin handler.
    """
    name: str
    args: List[str]
    flags: Dict[str, bool]
    raw_args: List[str]  # Original arguments before flag parsing
    raw_name: str = ''

    def has(self, *names: str) -> bool:
        """True if any of the given flags was passed."""
        return any(name in self.flags for name in names)

    @property
    def assignment(self) -> Optional[Tuple[str, str]]:
        """(name, value) when the command is a lone NAME=value word."""
        if self.raw_args:
            return None
        match = _ASSIGNMENT_PATTERN.match(self.raw_name)
        return (match.group(1), match.group(2)) if match else None

    def __str__(self) -> str:
        parts = [self.name]
        for key in self.flags:
            parts.append(f"--{key}" if len(key) > 1 else f"-{key}")
        parts.extend(self.args)
        return ' '.join(parts)


class CommandParser:
    """
    Parser for the shell's command syntax.

    This parser handles:
    - Command chains separated by && and ;
    - Alias and $VAR / ${VAR} expansion through an Environment
    - Quoting (single and double quotes, stripped from the words)
    - Flags (short: -a, -abc; long: --flag), kept apart from positionals
    """

    def __init__(self, environment: Optional[Environment] = None):
        """Initialize the parser."""
        self.environment = environment

    def split_chain(self, line: str) -> List[ChainSegment]:
        """Split a line on && and ; outside of quotes.

        A segment requires prior success iff the separator before it was &&.
        Empty segments are dropped. A line with an unbalanced quote is split
        with quotes ignored.
        """
        segments = self._scan_chain(line, honor_quotes=True)
        if segments is None:
            segments = self._scan_chain(line, honor_quotes=False)
        return segments

    def _scan_chain(self, line: str, honor_quotes: bool) -> Optional[List[ChainSegment]]:
        """Scan for separators; None if a quote is still open at the end."""
        segments = []
        current = []
        previous_separator = None
        in_single_quote = False
        in_double_quote = False

        def flush():
            text = ''.join(current).strip()
            if text:
                segments.append(ChainSegment(text, previous_separator == AND))
            current.clear()

        i = 0
        while i < len(line):
            char = line[i]
            if honor_quotes and char == "'" and not in_double_quote:
                in_single_quote = not in_single_quote
            elif honor_quotes and char == '"' and not in_single_quote:
                in_double_quote = not in_double_quote
            elif not in_single_quote and not in_double_quote:
                if line.startswith(AND, i):
                    flush()
                    previous_separator = AND
                    i += len(AND)
                    continue
                if char == SEQ:
                    flush()
                    previous_separator = SEQ
                    i += 1
                    continue
            current.append(char)
            i += 1

        if in_single_quote or in_double_quote:
            return None
        flush()
        return segments

    def expand(self, text: str) -> str:
        """Apply alias then variable expansion to one segment."""
        if self.environment is None:
            return text.strip()
        return self.environment.expand(text)

    def tokenize(self, text: str) -> List[str]:
        """Split into words, honoring and stripping quotes.

        Backslashes are kept literally; echo interprets \\n and \\t itself.
        """
        lexer = shlex.shlex(text, posix=True)
        lexer.whitespace_split = True
        lexer.commenters = ''
        lexer.escape = ''
        try:
            return list(lexer)
        except ValueError:
            # Handle unclosed quotes gracefully
            return text.split()

    def parse_command(self, text: str) -> Optional[Command]:
        """Parse an already expanded segment into a Command."""
        tokens = self.tokenize(text)
        if not tokens:
            return None

        raw_args = tokens[1:]
        flags, args = self._parse_flags(raw_args)
        return Command(
            name=tokens[0].lower(),
            args=args,
            flags=flags,
            raw_args=raw_args,
            raw_name=tokens[0],
        )

    def parse_segment(self, segment: ChainSegment) -> Optional[Command]:
        """Expand and parse one chain segment."""
        return self.parse_command(self.expand(segment.text))

    def parse(self, line: str) -> List[Optional[Command]]:
        """Expand and parse every segment of a line at once.

        Convenience for callers that do not need late expansion.
        """
        return [self.parse_segment(segment) for segment in self.split_chain(line)]

    def _parse_flags(self, args: List[str]) -> Tuple[Dict[str, bool], List[str]]:
        """
        Separate flags from positional arguments.

        Returns (flags_dict, remaining_args)
        """
        flags = {}
        remaining = []

        for i, arg in enumerate(args):
            if arg == '--':
                # End of flags marker
                remaining.extend(args[i + 1:])
                break
            elif arg.startswith('--'):
                flags[arg[2:]] = True
            elif arg.startswith('-') and len(arg) > 1:
                for char in arg[1:]:
                    flags[char] = True
            else:
                remaining.append(arg)

        return flags, remaining

    def parse_simple(self, command_str: str) -> Command:
        """
        Parse a single command without chaining or expansion.

        Convenience method for testing and simple cases.
        """
        cmd = self.parse_command(command_str)
        return cmd if cmd else Command(name='', args=[], flags={}, raw_args=[])
