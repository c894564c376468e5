#!/usr/bin/env python3
"""
Builtin commands of the zosh terminal.

Every command the shell understands is a member of the closed Builtin enum
and has exactly one handler method on BuiltinCommands. Handlers take a
parsed Command and return a CommandResult; they report expected failures
through the result and never raise for them.

Handler docstrings follow a fixed layout (description line, Usage:,
Options:, Examples:) because `help COMMAND` renders them.
"""

import ast
import calendar
import fnmatch
import logging
import math
import operator
import platform
import random
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional

from .command_parser import Command
from .environment import Environment
from .filesystem import FileNode, FileSystem, FSError

logger = logging.getLogger(__name__)

MAX_SOURCE_DEPTH = 8


class CommandError(Enum):
    """Command-level failures and their exit codes."""
    COMMAND_NOT_FOUND = 127
    MISSING_OPERAND = 1
    INVALID_FLAG_COMBINATION = 2

    @property
    def exit_code(self) -> int:
        return self.value


@dataclass
class CommandResult:
    """
    Represents the result of a command execution.

    text is what the terminal shows; clear and exit are requests to the
    session (clear the screen, end the REPL).
    """
    text: str = ''
    exit_code: int = 0
    clear: bool = False
    exit: bool = False
    error: Optional[CommandError] = None

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @classmethod
    def ok(cls, text: str = '') -> 'CommandResult':
        return cls(text=text)

    @classmethod
    def fail(cls, text: str = '', exit_code: int = 1,
             error: Optional[CommandError] = None) -> 'CommandResult':
        if error is not None:
            exit_code = error.exit_code
        return cls(text=text, exit_code=exit_code, error=error)

    def __str__(self) -> str:
        return self.text


class Builtin(Enum):
    """The closed set of commands the shell dispatches."""
    HELP = 'help'
    CLEAR = 'clear'
    EXIT = 'exit'
    PWD = 'pwd'
    CD = 'cd'
    LS = 'ls'
    CAT = 'cat'
    HEAD = 'head'
    TAIL = 'tail'
    LESS = 'less'
    MORE = 'more'
    TOUCH = 'touch'
    MKDIR = 'mkdir'
    RM = 'rm'
    RMDIR = 'rmdir'
    CP = 'cp'
    MV = 'mv'
    LN = 'ln'
    CHMOD = 'chmod'
    CHOWN = 'chown'
    ECHO = 'echo'
    GREP = 'grep'
    WC = 'wc'
    SORT = 'sort'
    UNIQ = 'uniq'
    WHOAMI = 'whoami'
    ID = 'id'
    HOSTNAME = 'hostname'
    UNAME = 'uname'
    DATE = 'date'
    UPTIME = 'uptime'
    DF = 'df'
    DU = 'du'
    PS = 'ps'
    TOP = 'top'
    KILL = 'kill'
    WHICH = 'which'
    TYPE = 'type'
    MAN = 'man'
    HISTORY = 'history'
    ENV = 'env'
    EXPORT = 'export'
    UNSET = 'unset'
    ALIAS = 'alias'
    UNALIAS = 'unalias'
    SET = 'set'
    SOURCE = 'source'
    DOT = '.'
    TRUE = 'true'
    FALSE = 'false'
    TEST = 'test'
    BRACKET = '['
    SLEEP = 'sleep'
    NEOFETCH = 'neofetch'
    COWSAY = 'cowsay'
    FORTUNE = 'fortune'
    CAL = 'cal'
    BC = 'bc'
    FIND = 'find'
    TREE = 'tree'

    @classmethod
    def lookup(cls, name: str) -> Optional['Builtin']:
        try:
            return cls(name.lower())
        except ValueError:
            return None

    @property
    def handler_name(self) -> str:
        return self.name.lower()


# Commands `type` reports as shell builtins
SHELL_BUILTINS = ['cd', 'pwd', 'echo', 'export', 'alias', 'history', 'exit']

BIN_DIRECTORIES = ['/bin', '/usr/bin', '/usr/local/bin']

FORTUNES = [
    'You will have a great day!',
    'A journey of a thousand miles begins with a single step.',
    'The best time to plant a tree was 20 years ago. The second best time is now.',
    "Code is like humor. When you have to explain it, it's bad.",
    'First, solve the problem. Then, write the code.',
    'In theory, there is no difference between theory and practice. In practice, there is.',
]

HELP_TEXT = """zOS Terminal - Available Commands:

FILE OPERATIONS:
  ls [path]       List directory contents (-l, -a, -h)
  cd [path]       Change directory
  pwd             Print working directory
  cat [file]      Display file contents
  head [file]     Display first lines (-n N)
  tail [file]     Display last lines (-n N)
  less [file]     View file (alias for cat)
  touch [file]    Create empty file
  mkdir [dir]     Create directory (-p for parents)
  rm [file]       Remove file (-r for recursive, -f for force)
  rmdir [dir]     Remove empty directory
  cp [src] [dst]  Copy file
  mv [src] [dst]  Move/rename file
  ln [src] [dst]  Link file (-s for symbolic)
  chmod, chown    Change mode or owner

TEXT PROCESSING:
  echo [text]     Print text
  grep [pattern] [file]  Search for pattern
  wc [file]       Word/line/char count (-l, -w, -c)
  sort [file]     Sort lines
  uniq [file]     Remove duplicates

SYSTEM:
  whoami          Current username
  id              User/group IDs
  hostname        System hostname
  uname [-a]      System information
  date            Current date/time
  uptime          System uptime
  df [-h]         Disk space
  du [path]       Directory size
  ps, top         Process list
  kill [pid]      Terminate a process
  which [cmd]     Locate command
  type [cmd]      Command type
  man [cmd]       Manual page
  history         Command history

ENVIRONMENT:
  env             Show environment
  export [VAR=val] Set environment variable
  unset [VAR]     Unset variable
  alias [name=cmd] Set alias
  unalias [name]  Remove alias
  set             Show shell variables

SHELL:
  clear           Clear screen
  exit            Exit shell
  source [file]   Run commands from a file
  test, [         Evaluate a condition
  true            Return success
  false           Return failure
  sleep [n]       Pause

MISC:
  neofetch        System info display
  cowsay [text]   ASCII cow
  fortune         Random quote
  cal             Calendar
  bc              Calculator
  tree            Directory tree
  find [path]     Find files (-name, -type)

Type 'help COMMAND' for detailed help on a specific command."""


def format_size(size: int) -> str:
    """Human-readable size with one decimal: 1.0K, 1.5M, 2.0G."""
    for factor, suffix in ((1073741824, 'G'), (1048576, 'M'), (1024, 'K')):
        if size >= factor:
            return f"{size / factor:.1f}{suffix}"
    return str(size)


def describe_error(error: FSError) -> str:
    """Terminal wording for a filesystem error."""
    if error in (FSError.NOT_FOUND, FSError.SOURCE_NOT_FOUND,
                 FSError.PARENT_NOT_FOUND, FSError.DESTINATION_NOT_FOUND):
        return 'No such file or directory'
    if error in (FSError.NOT_A_DIRECTORY, FSError.PARENT_NOT_DIRECTORY,
                 FSError.DESTINATION_NOT_DIRECTORY):
        return 'Not a directory'
    if error is FSError.NAME_EXISTS:
        return 'File exists'
    return error.message


def extract_docstring_sections(docstring: str) -> dict:
    """Extract structured sections from a handler docstring."""
    if not docstring:
        return {}

    lines = docstring.strip().split('\n')
    sections = {
        'description': lines[0].strip(),
        'usage': '',
        'options': [],
        'examples': []
    }

    current_section = None
    for line in lines[1:]:
        line = line.strip()
        if line.startswith('Usage:'):
            current_section = 'usage'
        elif line.startswith('Options:'):
            current_section = 'options'
        elif line.startswith('Examples:'):
            current_section = 'examples'
        elif line and current_section == 'usage':
            sections['usage'] = line
        elif line and current_section:
            sections[current_section].append(line)

    return sections


_BC_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: math.fmod,
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}


def evaluate_arithmetic(expression: str) -> float:
    """Evaluate + - * / % and parentheses over numbers.

    Raises SyntaxError for anything else and ZeroDivisionError on division
    by zero.
    """
    def visit(node):
        if isinstance(node, ast.Expression):
            return visit(node.body)
        if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)):
            return node.value
        if isinstance(node, ast.BinOp) and type(node.op) in _BC_OPERATORS:
            return _BC_OPERATORS[type(node.op)](visit(node.left), visit(node.right))
        if isinstance(node, ast.UnaryOp) and type(node.op) in _BC_OPERATORS:
            return _BC_OPERATORS[type(node.op)](visit(node.operand))
        raise SyntaxError(f"unsupported expression: {ast.dump(node)}")

    return visit(ast.parse(expression, mode='eval'))


def format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class BuiltinCommands:
    """
    Handlers for every Builtin, bound to one session's state.

    Each public method is named after its Builtin member and receives the
    parsed Command.
    """

    def __init__(self, fs: FileSystem, env: Environment, history=None,
                 user: str = 'user', started_at: Optional[datetime] = None,
                 run_line: Optional[Callable] = None):
        self.fs = fs
        self.environment = env
        self.command_history = history
        self.user = user
        self.started_at = started_at or datetime.now()
        # Callback executing one input line; used by source
        self.run_line = run_line
        self._source_depth = 0

    def handler_for(self, builtin: Builtin) -> Callable[[Command], CommandResult]:
        return getattr(self, builtin.handler_name)

    # Helpers

    def _read_text(self, name: str, arg: Optional[str]):
        """Return (content, None) for a readable file or (None, failure)."""
        if not arg:
            return None, CommandResult.fail(f"{name}: missing file operand",
                                            error=CommandError.MISSING_OPERAND)
        result = self.fs.read_file(arg)
        if not result:
            return None, CommandResult.fail(f"{name}: {arg}: {describe_error(result.error)}")
        return result.node.content or '', None

    def _split_destination(self, arg: str):
        canonical = self.fs.normalize(arg)
        parent_path, name = canonical.rsplit('/', 1)
        return parent_path or '/', name

    def _uptime_minutes(self) -> int:
        return int((datetime.now() - self.started_at).total_seconds() // 60)

    # Shell

    def help(self, cmd: Command) -> CommandResult:
        """Show available commands or detailed help for one command.

        Usage:
            help [COMMAND]

        Examples:
            help                   # Show all commands
            help ls                # Show help for ls
        """
        if not cmd.args:
            return CommandResult.ok(HELP_TEXT)

        name = cmd.args[0]
        builtin = Builtin.lookup(name)
        if builtin is None:
            return CommandResult.fail(f"help: no help available for '{name}'")

        sections = extract_docstring_sections(self.handler_for(builtin).__doc__)
        help_lines = [f"{name} - {sections['description']}", ""]
        if sections['usage']:
            help_lines.extend(["Usage:", f"    {sections['usage']}", ""])
        if sections['options']:
            help_lines.append("Options:")
            help_lines.extend(f"    {opt}" for opt in sections['options'])
            help_lines.append("")
        if sections['examples']:
            help_lines.append("Examples:")
            help_lines.extend(f"    {ex}" for ex in sections['examples'])
            help_lines.append("")
        return CommandResult.ok('\n'.join(help_lines).rstrip('\n'))

    def clear(self, cmd: Command) -> CommandResult:
        """Clear the terminal screen.

        Usage:
            clear
        """
        return CommandResult(clear=True)

    def exit(self, cmd: Command) -> CommandResult:
        """Exit the shell.

        Usage:
            exit
        """
        return CommandResult(text='logout\n[Process completed]', exit=True)

    def true(self, cmd: Command) -> CommandResult:
        """Return success.

        Usage:
            true
        """
        return CommandResult.ok()

    def false(self, cmd: Command) -> CommandResult:
        """Return failure.

        Usage:
            false
        """
        return CommandResult.fail()

    def test(self, cmd: Command) -> CommandResult:
        """Evaluate a conditional expression.

        Usage:
            test EXPRESSION

        Options:
            -e PATH                True if PATH exists
            -f PATH                True if PATH is a file
            -d PATH                True if PATH is a directory
            -z STRING              True if STRING is empty
            -n STRING              True if STRING is not empty
            A = B, A != B          String comparison
            ! EXPRESSION           Negation

        Examples:
            test -d /tmp && echo yes
            [ -f ~/.zshrc ] && source ~/.zshrc
        """
        return self._evaluate_test(cmd.name, list(cmd.raw_args))

    def bracket(self, cmd: Command) -> CommandResult:
        """Evaluate a conditional expression (same as test).

        Usage:
            [ EXPRESSION ]
        """
        words = list(cmd.raw_args)
        if not words or words[-1] != ']':
            return CommandResult.fail("[: ']' expected", exit_code=2)
        return self._evaluate_test('[', words[:-1])

    def _evaluate_test(self, name: str, words: List[str]) -> CommandResult:
        negate = False
        if words and words[0] == '!':
            negate = True
            words = words[1:]

        if not words:
            outcome = False
        elif len(words) == 1:
            outcome = words[0] != ''
        elif len(words) == 2 and words[0] in ('-e', '-f', '-d', '-z', '-n'):
            op, operand = words
            if op == '-z':
                outcome = operand == ''
            elif op == '-n':
                outcome = operand != ''
            else:
                node = self.fs.resolve_path(operand)
                if op == '-e':
                    outcome = node is not None
                elif op == '-f':
                    outcome = node is not None and node.is_file()
                else:
                    outcome = node is not None and node.is_folder()
        elif len(words) == 3 and words[1] in ('=', '==', '!='):
            outcome = (words[0] == words[2]) == (words[1] != '!=')
        else:
            return CommandResult.fail(f"{name}: unknown condition: {' '.join(words)}",
                                      exit_code=2)

        return CommandResult.ok() if outcome != negate else CommandResult.fail()

    def sleep(self, cmd: Command) -> CommandResult:
        """Pause for a number of seconds (returns immediately).

        Usage:
            sleep [SECONDS]
        """
        seconds = cmd.args[0] if cmd.args else 1
        return CommandResult.ok(f"sleep: slept for {seconds} seconds (simulated)")

    def source(self, cmd: Command) -> CommandResult:
        """Execute commands from a file in the current shell.

        Usage:
            source FILE

        Examples:
            source ~/.zshrc        # Re-read shell configuration
            . ~/.profile
        """
        if not cmd.args:
            return CommandResult.fail(f"{cmd.name}: filename argument required",
                                      error=CommandError.MISSING_OPERAND)
        path = cmd.args[0]
        result = self.fs.read_file(path)
        if not result:
            return CommandResult.fail(f"{cmd.name}: {describe_error(result.error).lower()}: {path}")
        if self._source_depth >= MAX_SOURCE_DEPTH:
            return CommandResult.fail(f"{cmd.name}: maximum nesting depth exceeded: {path}")
        if self.run_line is None:
            return CommandResult.fail(f"{cmd.name}: not available")

        outputs = []
        success = True
        leave = False
        self._source_depth += 1
        logger.debug("Sourcing %s (depth %d)", result.node.path, self._source_depth)
        try:
            for line in (result.node.content or '').split('\n'):
                line = line.strip()
                if not line or line.startswith('#'):
                    continue
                chain = self.run_line(line)
                outputs.extend(chain.outputs)
                success = chain.success
                if chain.exit:
                    leave = True
                    break
        finally:
            self._source_depth -= 1

        return CommandResult(text='\n'.join(outputs), exit_code=0 if success else 1,
                             exit=leave)

    def dot(self, cmd: Command) -> CommandResult:
        """Execute commands from a file (same as source).

        Usage:
            . FILE
        """
        return self.source(cmd)

    def history(self, cmd: Command) -> CommandResult:
        """Show the command history.

        Usage:
            history
        """
        entries = self.command_history.entries if self.command_history is not None else []
        return CommandResult.ok('\n'.join(f"  {i:>4}  {line}"
                                          for i, line in enumerate(entries, 1)))

    # Navigation

    def pwd(self, cmd: Command) -> CommandResult:
        """Print the current working directory.

        Usage:
            pwd
        """
        return CommandResult.ok(self.fs.cwd)

    def cd(self, cmd: Command) -> CommandResult:
        """Change the current directory.

        Usage:
            cd [DIRECTORY]

        Options:
            DIRECTORY              Target directory (default: ~)
            -                      Previous directory

        Examples:
            cd /tmp
            cd ..
            cd -
        """
        target = cmd.args[0] if cmd.args else '~'
        if cmd.raw_args and cmd.raw_args[0] == '-':
            target = self.environment.get('OLDPWD') or self.fs.cwd

        previous = self.fs.cwd
        result = self.fs.change_directory(target)
        if not result:
            if result.error is FSError.NOT_A_DIRECTORY:
                return CommandResult.fail(f"cd: not a directory: {target}")
            return CommandResult.fail(f"cd: no such file or directory: {target}")

        self.environment.set('PWD', self.fs.cwd)
        self.environment.set('OLDPWD', previous)
        return CommandResult.ok(self.fs.cwd if cmd.raw_args[:1] == ['-'] else '')

    def ls(self, cmd: Command) -> CommandResult:
        """List directory contents.

        Usage:
            ls [OPTIONS] [PATH]

        Options:
            -a, --all              Show hidden files (starting with .)
            -l                     Use long listing format
            -h                     Human-readable sizes with -l
            PATH                   Directory to list (default: current)

        Examples:
            ls                     # List current directory
            ls -la /tmp            # Long format with hidden files
        """
        arg = cmd.args[0] if cmd.args else None
        result = self.fs.list_directory(arg or '')
        if not result:
            if result.error is FSError.NOT_A_DIRECTORY:
                return CommandResult.ok(arg)
            return CommandResult.fail(
                f"ls: cannot access '{arg or self.fs.cwd}': No such file or directory")

        children = sorted(result.nodes, key=lambda node: node.name)
        if not cmd.has('a', 'all'):
            children = [c for c in children if not c.name.startswith('.')]

        if not cmd.has('l'):
            return CommandResult.ok('  '.join(c.name for c in children))

        return CommandResult.ok('\n'.join(self._long_entry(c, cmd.has('h'))
                                          for c in children))

    @staticmethod
    def _long_entry(node: FileNode, human: bool) -> str:
        meta = node.metadata
        perms = meta.permissions or ('drwxr-xr-x' if node.is_folder() else '-rw-r--r--')
        owner = meta.owner or 'user'
        group = meta.group or 'staff'
        size = format_size(meta.size) if human else str(meta.size)
        date = meta.modified_at.strftime('%b %d %H:%M')
        return f"{perms}  1 {owner:<6} {group:<6} {size:>8} {date} {node.name}"

    def tree(self, cmd: Command) -> CommandResult:
        """Display a directory as a tree.

        Usage:
            tree [PATH]
        """
        arg = cmd.args[0] if cmd.args else ''
        result = self.fs.list_directory(arg)
        if not result:
            return CommandResult.fail(f"tree: {arg}: {describe_error(result.error)}")

        lines = [result.node.path]

        def build(node: FileNode, prefix: str):
            children = sorted(self.fs.nodes.children_of(node), key=lambda c: c.name)
            for i, child in enumerate(children):
                last = i == len(children) - 1
                lines.append(prefix + ('└── ' if last else '├── ') + child.name)
                if child.is_folder():
                    build(child, prefix + ('    ' if last else '│   '))

        build(result.node, '')
        return CommandResult.ok('\n'.join(lines))

    def find(self, cmd: Command) -> CommandResult:
        """Search for files in a directory hierarchy.

        Usage:
            find [PATH] [-name PATTERN] [-type f|d]

        Options:
            -name PATTERN          Match names against a glob pattern
            -type f|d              Only files or only directories

        Examples:
            find ~ -name "*.md"
            find /etc -type f
        """
        words = list(cmd.raw_args)
        start = '.'
        if words and not words[0].startswith('-'):
            start = words.pop(0)

        pattern = None
        kind = None
        while words:
            option = words.pop(0)
            if option in ('-name', '-type') and not words:
                return CommandResult.fail(f"find: {option}: requires additional arguments",
                                          error=CommandError.MISSING_OPERAND)
            if option == '-name':
                pattern = words.pop(0)
            elif option == '-type':
                kind = words.pop(0)
                if kind not in ('f', 'd'):
                    return CommandResult.fail(f"find: -type: {kind}: unknown type")
            else:
                return CommandResult.fail(f"find: {option}: unknown primary or operator")

        if not self.fs.exists(start):
            return CommandResult.fail(f"find: {start}: No such file or directory")

        matches = []
        for node in self.fs.walk(start):
            if pattern is not None and not fnmatch.fnmatchcase(node.name, pattern):
                continue
            if kind == 'f' and node.is_folder() or kind == 'd' and not node.is_folder():
                continue
            matches.append(node.path)
        return CommandResult.ok('\n'.join(matches))

    # File contents

    def cat(self, cmd: Command) -> CommandResult:
        """Display file contents.

        Usage:
            cat FILE...

        Examples:
            cat notes.md
            cat ~/.zshrc ~/.bashrc
        """
        if not cmd.args:
            return CommandResult.fail('cat: missing file operand',
                                      error=CommandError.MISSING_OPERAND)
        outputs = []
        success = True
        for arg in cmd.args:
            content, failure = self._read_text('cat', arg)
            if failure:
                outputs.append(failure.text)
                success = False
            else:
                outputs.append(content)
        return CommandResult(text='\n'.join(outputs), exit_code=0 if success else 1)

    def _head_or_tail(self, cmd: Command, take: Callable[[List[str], int], List[str]]) -> CommandResult:
        args = cmd.args
        count = 10
        if cmd.has('n'):
            try:
                count = int(args[0]) if args else 10
            except ValueError:
                count = 10
            count = count or 10
            args = args[1:]

        content, failure = self._read_text(cmd.name, args[0] if args else None)
        if failure:
            return failure
        return CommandResult.ok('\n'.join(take(content.split('\n'), count)))

    def head(self, cmd: Command) -> CommandResult:
        """Display the first lines of a file.

        Usage:
            head [-n N] FILE

        Options:
            -n N                   Number of lines (default: 10)

        Examples:
            head -n 3 /etc/hosts
        """
        return self._head_or_tail(cmd, lambda lines, n: lines[:n])

    def tail(self, cmd: Command) -> CommandResult:
        """Display the last lines of a file.

        Usage:
            tail [-n N] FILE

        Options:
            -n N                   Number of lines (default: 10)

        Examples:
            tail -n 1 /var/log/system.log
        """
        return self._head_or_tail(cmd, lambda lines, n: lines[-n:])

    def less(self, cmd: Command) -> CommandResult:
        """View a file.

        Usage:
            less FILE
        """
        content, failure = self._read_text(cmd.name, cmd.args[0] if cmd.args else None)
        return failure or CommandResult.ok(content)

    def more(self, cmd: Command) -> CommandResult:
        """View a file (same as less).

        Usage:
            more FILE
        """
        return self.less(cmd)

    def echo(self, cmd: Command) -> CommandResult:
        """Print text.

        Usage:
            echo [TEXT...]

        Examples:
            echo hello world
            echo "line1\\nline2"      # \\n and \\t are expanded
        """
        text = ' '.join(cmd.raw_args)
        return CommandResult.ok(text.replace('\\n', '\n').replace('\\t', '\t'))

    # File management

    def touch(self, cmd: Command) -> CommandResult:
        """Create empty files or refresh their modification time.

        Usage:
            touch FILE...
        """
        if not cmd.args:
            return CommandResult.fail('touch: missing file operand',
                                      error=CommandError.MISSING_OPERAND)
        errors = []
        for arg in cmd.args:
            if self.fs.exists(arg):
                self.fs.touch(arg)
                continue
            parent_path, name = self._split_destination(arg)
            result = self.fs.create_file(parent_path, name)
            if not result:
                errors.append(f"touch: {arg}: {describe_error(result.error)}")
        return self._collect('', errors)

    @staticmethod
    def _collect(text: str, errors: List[str]) -> CommandResult:
        if errors:
            return CommandResult.fail('\n'.join(errors))
        return CommandResult.ok(text)

    def mkdir(self, cmd: Command) -> CommandResult:
        """Create directories.

        Usage:
            mkdir [-p] DIRECTORY...

        Options:
            -p                     Create missing parent directories

        Examples:
            mkdir projects
            mkdir -p a/b/c
        """
        if not cmd.args:
            return CommandResult.fail('mkdir: missing operand',
                                      error=CommandError.MISSING_OPERAND)
        errors = []
        for arg in cmd.args:
            if self.fs.exists(arg):
                errors.append(f"mkdir: {arg}: File exists")
                continue
            if cmd.has('p'):
                error = self._make_parents(self.fs.normalize(arg))
            else:
                parent_path, name = self._split_destination(arg)
                error = self.fs.create_folder(parent_path, name).error
            if error:
                errors.append(f"mkdir: {arg}: {describe_error(error)}")
        return self._collect('', errors)

    def _make_parents(self, canonical: str) -> Optional[FSError]:
        current = '/'
        for part in canonical.split('/'):
            if not part:
                continue
            path = current.rstrip('/') + '/' + part
            node = self.fs.resolve_path(path)
            if node is None:
                result = self.fs.create_folder(current, part)
                if not result:
                    return result.error
            elif not node.is_folder():
                return FSError.NOT_A_DIRECTORY
            current = path
        return None

    def rm(self, cmd: Command) -> CommandResult:
        """Remove files or directories.

        Usage:
            rm [-r] [-f] PATH...

        Options:
            -r, -R                 Remove directories and their contents
            -f                     Ignore nonexistent files

        Examples:
            rm notes.txt
            rm -rf build
        """
        if not cmd.args:
            return CommandResult.fail('rm: missing operand',
                                      error=CommandError.MISSING_OPERAND)
        errors = []
        for arg in cmd.args:
            node = self.fs.resolve_path(arg)
            if node is None:
                if not cmd.has('f'):
                    errors.append(f"rm: {arg}: No such file or directory")
            elif node.is_folder() and not cmd.has('r', 'R'):
                errors.append(f"rm: {arg}: is a directory")
            else:
                result = self.fs.delete(arg)
                if not result:
                    errors.append(f"rm: {arg}: {describe_error(result.error)}")
        return self._collect('', errors)

    def rmdir(self, cmd: Command) -> CommandResult:
        """Remove empty directories.

        Usage:
            rmdir DIRECTORY...
        """
        if not cmd.args:
            return CommandResult.fail('rmdir: missing operand',
                                      error=CommandError.MISSING_OPERAND)
        errors = []
        for arg in cmd.args:
            listing = self.fs.list_directory(arg)
            if not listing:
                errors.append(f"rmdir: {arg}: {describe_error(listing.error)}")
            elif listing.nodes:
                errors.append(f"rmdir: {arg}: {describe_error(FSError.DIRECTORY_NOT_EMPTY)}")
            else:
                result = self.fs.delete(arg)
                if not result:
                    errors.append(f"rmdir: {arg}: {describe_error(result.error)}")
        return self._collect('', errors)

    def cp(self, cmd: Command) -> CommandResult:
        """Copy files and directories.

        Usage:
            cp [-r] SOURCE DEST

        Options:
            -r, -R                 Copy directories recursively

        Examples:
            cp notes.md notes.bak
            cp -r projects /tmp
        """
        if len(cmd.args) < 2:
            return CommandResult.fail('cp: missing destination file operand',
                                      error=CommandError.MISSING_OPERAND)
        src_arg, dst_arg = cmd.args[0], cmd.args[1]
        source = self.fs.resolve_path(src_arg)
        if source is None:
            return CommandResult.fail(f"cp: {src_arg}: No such file or directory")
        if source.is_folder() and not cmd.has('r', 'R'):
            return CommandResult.fail(f"cp: {src_arg}: is a directory (not copied)")

        dest = self.fs.resolve_path(dst_arg)
        if dest is not None and dest.is_folder():
            result = self.fs.copy(src_arg, dst_arg)
        elif dest is not None:
            if source.is_folder():
                return CommandResult.fail(f"cp: {dst_arg}: Not a directory")
            if dest.id == source.id:
                return CommandResult.fail(f"cp: {src_arg} and {dst_arg} are identical")
            result = self.fs.write_file(dst_arg, source.content or '')
        else:
            parent_path, name = self._split_destination(dst_arg)
            result = self.fs.copy(src_arg, parent_path, new_name=name)

        if not result:
            return CommandResult.fail(f"cp: {dst_arg}: {describe_error(result.error)}")
        return CommandResult.ok()

    def mv(self, cmd: Command) -> CommandResult:
        """Move or rename files and directories.

        Usage:
            mv SOURCE DEST

        Examples:
            mv draft.md final.md   # Rename
            mv final.md Documents  # Move into a directory
        """
        if len(cmd.args) < 2:
            return CommandResult.fail('mv: missing destination file operand',
                                      error=CommandError.MISSING_OPERAND)
        src_arg, dst_arg = cmd.args[0], cmd.args[1]
        source = self.fs.resolve_path(src_arg)
        if source is None:
            return CommandResult.fail(f"mv: {src_arg}: No such file or directory")

        dest = self.fs.resolve_path(dst_arg)
        if dest is not None and dest.is_folder():
            target_display = f"{dst_arg.rstrip('/')}/{source.name}"
            result = self.fs.move(src_arg, dst_arg)
        elif dest is not None:
            if dest.id == source.id:
                return CommandResult.ok()
            if source.is_folder():
                return CommandResult.fail(f"mv: {dst_arg}: Not a directory")
            parent_path, name = self._split_destination(dst_arg)
            error = self.fs.check_move(src_arg, parent_path, new_name=name)
            if error is not None:
                return CommandResult.fail(f"mv: {dst_arg}: {describe_error(error)}")
            self.fs.delete(dst_arg)
            target_display = dst_arg
            result = self.fs.move(src_arg, parent_path, new_name=name)
        else:
            parent_path, name = self._split_destination(dst_arg)
            target_display = dst_arg
            result = self.fs.move(src_arg, parent_path, new_name=name)

        if result:
            return CommandResult.ok()
        if result.error is FSError.CANNOT_MOVE_INTO_SELF:
            return CommandResult.fail(
                f"mv: cannot move '{src_arg}' to a subdirectory of itself, '{target_display}'")
        return CommandResult.fail(f"mv: {dst_arg}: {describe_error(result.error)}")

    def ln(self, cmd: Command) -> CommandResult:
        """Make links between files (simulated).

        Usage:
            ln [-s] TARGET LINK_NAME

        Options:
            -s                     Make a symbolic link
        """
        if len(cmd.args) < 2:
            return CommandResult.fail('ln: missing destination file operand',
                                      error=CommandError.MISSING_OPERAND)
        if not self.fs.exists(cmd.args[0]):
            return CommandResult.fail(f"ln: {cmd.args[0]}: No such file or directory")
        link_type = 'symbolic link' if cmd.has('s') else 'hard link'
        return CommandResult.ok(
            f"ln: created {link_type} '{cmd.args[1]}' -> '{cmd.args[0]}' (simulated)")

    def chmod(self, cmd: Command) -> CommandResult:
        """Change file mode bits (simulated).

        Usage:
            chmod MODE FILE
        """
        if len(cmd.args) < 2:
            return CommandResult.fail('chmod: missing operand',
                                      error=CommandError.MISSING_OPERAND)
        return CommandResult.ok(
            f"chmod: mode of '{cmd.args[1]}' changed to {cmd.args[0]} (simulated)")

    def chown(self, cmd: Command) -> CommandResult:
        """Change file owner (simulated).

        Usage:
            chown OWNER FILE
        """
        if len(cmd.args) < 2:
            return CommandResult.fail('chown: missing operand',
                                      error=CommandError.MISSING_OPERAND)
        return CommandResult.ok(
            f"chown: changing ownership of '{cmd.args[1]}' to {cmd.args[0]} (simulated)")

    # Text processing

    def grep(self, cmd: Command) -> CommandResult:
        """Search for a regular expression in a file.

        Usage:
            grep [OPTIONS] PATTERN FILE

        Options:
            -i                     Ignore case
            -c                     Print only the count of matching lines
            -n                     Prefix lines with their line number

        Examples:
            grep TODO notes.md
            grep -in localhost /etc/hosts
        """
        if cmd.has('c') and cmd.has('n'):
            return CommandResult.fail('grep: options -c and -n cannot be combined',
                                      error=CommandError.INVALID_FLAG_COMBINATION)
        if len(cmd.args) < 2:
            return CommandResult.fail('grep: usage: grep [pattern] [file]',
                                      error=CommandError.MISSING_OPERAND)
        pattern, file_arg = cmd.args[0], cmd.args[1]
        content, failure = self._read_text('grep', file_arg)
        if failure:
            return failure

        try:
            regex = re.compile(pattern, re.IGNORECASE if cmd.has('i') else 0)
        except re.error as e:
            return CommandResult.fail(f"grep: invalid pattern: {e}", exit_code=2)

        matches = [(i, line) for i, line in enumerate(content.split('\n'), 1)
                   if regex.search(line)]
        if cmd.has('c'):
            return CommandResult.ok(str(len(matches)))
        if cmd.has('n'):
            return CommandResult.ok('\n'.join(f"{i}:{line}" for i, line in matches))
        return CommandResult.ok('\n'.join(line for _, line in matches))

    def wc(self, cmd: Command) -> CommandResult:
        """Count lines, words and characters.

        Usage:
            wc [-l | -w | -c] FILE

        Options:
            -l                     Lines only
            -w                     Words only
            -c                     Characters only
        """
        arg = cmd.args[0] if cmd.args else None
        content, failure = self._read_text('wc', arg)
        if failure:
            return failure

        lines = len(content.split('\n'))
        words = len(content.split())
        chars = len(content)
        if cmd.has('l'):
            return CommandResult.ok(str(lines))
        if cmd.has('w'):
            return CommandResult.ok(str(words))
        if cmd.has('c'):
            return CommandResult.ok(str(chars))
        return CommandResult.ok(f"  {lines}  {words}  {chars} {arg}")

    def sort(self, cmd: Command) -> CommandResult:
        """Sort the lines of a file.

        Usage:
            sort [-r] FILE

        Options:
            -r                     Reverse the order
        """
        content, failure = self._read_text('sort', cmd.args[0] if cmd.args else None)
        if failure:
            return failure
        return CommandResult.ok('\n'.join(sorted(content.split('\n'), reverse=cmd.has('r'))))

    def uniq(self, cmd: Command) -> CommandResult:
        """Drop adjacent duplicate lines.

        Usage:
            uniq FILE
        """
        content, failure = self._read_text('uniq', cmd.args[0] if cmd.args else None)
        if failure:
            return failure
        lines = content.split('\n')
        unique = [line for i, line in enumerate(lines) if i == 0 or line != lines[i - 1]]
        return CommandResult.ok('\n'.join(unique))

    # System information

    def whoami(self, cmd: Command) -> CommandResult:
        """Print the current user name.

        Usage:
            whoami
        """
        return CommandResult.ok(self.user)

    def id(self, cmd: Command) -> CommandResult:
        """Print user and group ids.

        Usage:
            id
        """
        return CommandResult.ok(
            f"uid=501({self.user}) gid=20(staff) "
            "groups=20(staff),12(everyone),61(localaccounts)")

    def hostname(self, cmd: Command) -> CommandResult:
        """Print the system host name.

        Usage:
            hostname
        """
        return CommandResult.ok(self.environment.get('HOSTNAME') or 'zos.local')

    def uname(self, cmd: Command) -> CommandResult:
        """Print system information.

        Usage:
            uname [-a | -s | -r | -m]

        Options:
            -a                     All information
            -s                     Kernel name
            -r                     Kernel release
            -m                     Machine hardware name
        """
        if cmd.has('a'):
            return CommandResult.ok('zOS Darwin 23.0.0 zOS Kernel Version 23.0.0 x86_64')
        if cmd.has('r'):
            return CommandResult.ok('23.0.0')
        if cmd.has('m'):
            return CommandResult.ok('x86_64')
        return CommandResult.ok('zOS')

    def date(self, cmd: Command) -> CommandResult:
        """Print the current date and time.

        Usage:
            date [-u]

        Options:
            -u                     Coordinated Universal Time
        """
        if cmd.has('u'):
            return CommandResult.ok(
                datetime.now(timezone.utc).strftime('%a, %d %b %Y %H:%M:%S GMT'))
        return CommandResult.ok(datetime.now().astimezone().strftime('%a %b %d %H:%M:%S %Z %Y'))

    def uptime(self, cmd: Command) -> CommandResult:
        """Show how long the session has been running.

        Usage:
            uptime
        """
        seconds = int((datetime.now() - self.started_at).total_seconds())
        hours, minutes = seconds // 3600, (seconds % 3600) // 60
        return CommandResult.ok(
            f" {datetime.now():%H:%M:%S}  up {hours}:{minutes:02d},  1 user,  "
            "load averages: 0.42 0.38 0.35")

    def df(self, cmd: Command) -> CommandResult:
        """Report file system disk space usage.

        Usage:
            df [-h]
        """
        if cmd.has('h'):
            return CommandResult.ok(
                "Filesystem      Size   Used  Avail Capacity  Mounted on\n"
                "/dev/disk1s1   500G   250G   250G    50%     /\n"
                "/dev/disk1s2   500G   100G   400G    20%     /System/Volumes/Data")
        return CommandResult.ok(
            "Filesystem     1K-blocks      Used Available Capacity  Mounted on\n"
            "/dev/disk1s1   524288000 262144000 262144000    50%     /\n"
            "/dev/disk1s2   524288000 104857600 419430400    20%     /System/Volumes/Data")

    def du(self, cmd: Command) -> CommandResult:
        """Estimate file space usage.

        Usage:
            du [-h] [PATH]
        """
        arg = cmd.args[0] if cmd.args else ''
        node = self.fs.resolve_path(arg)
        if node is None:
            return CommandResult.fail(f"du: {arg}: No such file or directory")
        size = '4.0K' if cmd.has('h') else '4'
        return CommandResult.ok(f"{size}\t{node.path}")

    def ps(self, cmd: Command) -> CommandResult:
        """List processes.

        Usage:
            ps
        """
        return CommandResult.ok(
            "  PID TTY          TIME CMD\n"
            "    1 ttys000  0:00.01 /sbin/launchd\n"
            "  501 ttys000  0:00.05 -zsh\n"
            "  502 ttys000  0:00.02 node\n"
            "  503 ttys000  0:00.01 ps")

    def top(self, cmd: Command) -> CommandResult:
        """Display a snapshot of system processes.

        Usage:
            top
        """
        return CommandResult.ok(
            "Processes: 128 total, 2 running, 126 sleeping, 512 threads\n"
            "Load Avg: 0.42, 0.38, 0.35\n"
            "CPU usage: 2.5% user, 1.2% sys, 96.3% idle\n"
            "MemRegions: 98765 total\n"
            "PhysMem: 8G used (2G wired), 8G unused\n"
            "VM: 1.2T vsize, 1234M framework vsize\n"
            "Networks: packets: 12345/6M in, 9876/4M out\n"
            "Disks: 1234/50M read, 567/25M written\n"
            "\n"
            "PID   COMMAND      %CPU TIME     MEM\n"
            "1     launchd      0.0  0:00.01  2.0M\n"
            "501   zsh          0.1  0:00.05  4.0M\n"
            "502   node         1.2  0:00.02  128M")

    def kill(self, cmd: Command) -> CommandResult:
        """Send a signal to a process (simulated).

        Usage:
            kill PID
        """
        if not cmd.args:
            return CommandResult.fail(
                'kill: usage: kill [-s sigspec | -n signum | -sigspec] pid',
                error=CommandError.MISSING_OPERAND)
        return CommandResult.ok(f"kill: {cmd.args[0]}: process terminated (simulated)")

    def which(self, cmd: Command) -> CommandResult:
        """Locate a command in the bin directories.

        Usage:
            which COMMAND
        """
        if not cmd.args:
            return CommandResult.ok()
        name = cmd.args[0]
        for directory in BIN_DIRECTORIES:
            path = f"{directory}/{name}"
            if self.fs.exists(path):
                return CommandResult.ok(path)
        return CommandResult.fail(f"{name} not found")

    def type(self, cmd: Command) -> CommandResult:
        """Describe how a command name would be interpreted.

        Usage:
            type COMMAND
        """
        if not cmd.args:
            return CommandResult.ok()
        name = cmd.args[0]
        if name in SHELL_BUILTINS:
            return CommandResult.ok(f"{name} is a shell builtin")
        if name in self.environment.aliases:
            return CommandResult.ok(f"{name} is aliased to '{self.environment.aliases[name]}'")
        if Builtin.lookup(name) is not None:
            return CommandResult.ok(f"{name} is /usr/bin/{name}")
        return CommandResult.fail(f"type: {name}: not found")

    def man(self, cmd: Command) -> CommandResult:
        """Show the manual page of a command.

        Usage:
            man COMMAND
        """
        if not cmd.args:
            return CommandResult.fail('What manual page do you want?',
                                      error=CommandError.MISSING_OPERAND)
        name = cmd.args[0]
        title = name.upper()
        summary, description = {
            'ls': ('list directory contents',
                   'List information about the FILEs (the current directory by default).'),
            'cd': ('change directory', 'Change the shell working directory.'),
            'cat': ('concatenate files', 'Concatenate FILE(s) to standard output.'),
        }.get(name, ('command description', f"Execute the {name} command."))
        return CommandResult.ok(
            f"{title}(1)                   User Commands                   {title}(1)\n"
            "\n"
            "NAME\n"
            f"       {name} - {summary}\n"
            "\n"
            "SYNOPSIS\n"
            f"       {name} [OPTION]... [FILE]...\n"
            "\n"
            "DESCRIPTION\n"
            f"       {description}\n"
            "\n"
            f"       For more information, try '{name} --help' or visit the online documentation.\n"
            "\n"
            f"zOS                            December 2024                   {title}(1)")

    # Environment

    def env(self, cmd: Command) -> CommandResult:
        """Print environment variables.

        Usage:
            env
        """
        return CommandResult.ok('\n'.join(f"{k}={v}" for k, v in self.environment.variables.items()))

    def export(self, cmd: Command) -> CommandResult:
        """Set environment variables.

        Usage:
            export [NAME=VALUE...]

        Examples:
            export EDITOR=nano
            export                 # List exported variables
        """
        if not cmd.args:
            return CommandResult.ok('\n'.join(f'declare -x {k}="{v}"'
                                              for k, v in self.environment.variables.items()))
        for arg in cmd.args:
            key, sep, value = arg.partition('=')
            if not key:
                continue
            if sep or key not in self.environment.variables:
                self.environment.set(key, value)
        return CommandResult.ok()

    def unset(self, cmd: Command) -> CommandResult:
        """Remove environment variables.

        Usage:
            unset NAME...
        """
        for name in cmd.args:
            self.environment.unset(name)
        return CommandResult.ok()

    def set(self, cmd: Command) -> CommandResult:
        """Print shell variables.

        Usage:
            set
        """
        lines = [f"{k}={v}" for k, v in self.environment.variables.items()]
        lines.append(f"_={cmd.name}")
        return CommandResult.ok('\n'.join(lines))

    def alias(self, cmd: Command) -> CommandResult:
        """Define or display aliases.

        Usage:
            alias [NAME[=VALUE]...]

        Examples:
            alias                  # List aliases
            alias gs='git status'
            alias ll               # Show one alias
        """
        if not cmd.args:
            return CommandResult.ok('\n'.join(f"alias {k}='{v}'"
                                              for k, v in self.environment.aliases.items()))
        lines = []
        missing = []
        for arg in cmd.args:
            name, sep, value = arg.partition('=')
            if not sep:
                if name in self.environment.aliases:
                    lines.append(f"alias {name}='{self.environment.aliases[name]}'")
                else:
                    missing.append(f"alias: {name}: not found")
                continue
            value = value.strip('\'"')
            if name and value:
                self.environment.add_alias(name, value)
        if missing:
            return CommandResult.fail('\n'.join(lines + missing))
        return CommandResult.ok('\n'.join(lines))

    def unalias(self, cmd: Command) -> CommandResult:
        """Remove aliases.

        Usage:
            unalias NAME...
        """
        if not cmd.args:
            return CommandResult.fail('unalias: not enough arguments',
                                      error=CommandError.MISSING_OPERAND)
        errors = [f"unalias: no such hash table element: {name}"
                  for name in cmd.args if not self.environment.remove_alias(name)]
        return self._collect('', errors)

    # Fun

    def neofetch(self, cmd: Command) -> CommandResult:
        """Display system information with a logo.

        Usage:
            neofetch
        """
        return CommandResult.ok('\n'.join([
            "",
            f"       .:'                    {self.user}@zos",
            "    _ :'_                     --------",
            " .'  `'  '.                   OS: zOS 1.0.0",
            ":  .-''-. .:                  Host: zosh",
            f":  :    :  :                  Kernel: Python {platform.python_version()}",
            f" '.  `--'  .'                 Uptime: {self._uptime_minutes()} mins",
            "   `:____:'                   Shell: zsh 5.9",
            "                              Terminal: zOS Terminal",
            "                              CPU: Multi-core Python Interpreter",
            "                              Memory: 64M / Unlimited",
        ]))

    def cowsay(self, cmd: Command) -> CommandResult:
        """Have a cow say something.

        Usage:
            cowsay [TEXT...]
        """
        text = ' '.join(cmd.raw_args) or 'moo'
        width = len(text) + 2
        return CommandResult.ok('\n'.join([
            ' ' + '_' * width,
            f"< {text} >",
            ' ' + '-' * width,
            "        \\   ^__^",
            "         \\  (oo)\\_______",
            "            (__)\\       )\\/\\",
            "                ||----w |",
            "                ||     ||",
        ]))

    def fortune(self, cmd: Command) -> CommandResult:
        """Print a random quote.

        Usage:
            fortune
        """
        return CommandResult.ok(random.choice(FORTUNES))

    def cal(self, cmd: Command) -> CommandResult:
        """Display the current month.

        Usage:
            cal
        """
        today = datetime.now()
        month = calendar.TextCalendar(firstweekday=calendar.SUNDAY).formatmonth(
            today.year, today.month)
        return CommandResult.ok('\n'.join(line.rstrip() for line in month.rstrip('\n').split('\n')))

    def bc(self, cmd: Command) -> CommandResult:
        """Evaluate an arithmetic expression.

        Usage:
            bc EXPRESSION

        Examples:
            bc "2 + 3 * 4"
            bc "(10 - 4) / 4"
        """
        if not cmd.args:
            return CommandResult.ok('bc: interactive mode not supported. Usage: bc "expression"')

        expression = re.sub(r'[^0-9+\-*/().%\s]', '', ' '.join(cmd.raw_args)).strip()
        if not expression:
            return CommandResult.ok('0')
        try:
            value = evaluate_arithmetic(expression)
        except ZeroDivisionError:
            return CommandResult.fail('bc: divide by zero')
        except (SyntaxError, ValueError, TypeError):
            return CommandResult.fail('bc: syntax error')
        return CommandResult.ok(format_number(value))
