#!/usr/bin/env python3
"""
Terminal emulator for zosh.

This module ties the virtual filesystem, the environment and the builtin
commands together into a session: it runs command chains, keeps history
and the displayed transcript, and provides the interactive REPL.

Design Principles:
- Clean separation between parsing and execution
- Explicit session object; every session owns its own filesystem,
  environment and history
- A failing command never aborts the session
"""

import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .builtins import Builtin, BuiltinCommands, CommandError, CommandResult
from .command_parser import ChainSegment, Command, CommandParser
from .completion import CompletionEngine, CompletionResult
from .environment import Environment
from .filesystem import FileSystem
from .persistence import DirectoryStore

logger = logging.getLogger(__name__)

CLEAR_SCREEN = '\033[2J\033[H'


@dataclass
class TerminalConfig:
    """Configuration for terminal session."""
    user: str = 'user'
    hostname: str = 'zos.local'
    home_dir: str = '/Users/user'
    initial_dir: Optional[str] = None  # Defaults to home_dir
    prompt_format: str = '{user}@{hostname}:{cwd}$ '
    enable_colors: bool = True
    history_size: int = 1000
    state_dir: Optional[str] = None  # Directory for persisted filesystem state
    log_level: str = 'WARNING'


@dataclass
class ChainResult:
    """Accumulated outcome of one input line."""
    outputs: List[str] = field(default_factory=list)
    success: bool = True
    clear: bool = False
    exit: bool = False

    @property
    def output(self) -> str:
        return '\n'.join(self.outputs)


@dataclass
class TranscriptEntry:
    """One submitted line as displayed by the terminal."""
    command: str
    output: str
    cwd: str


class CommandExecutor:
    """
    Executes command chains by dispatching each command to its builtin.

    Segments run left to right. A segment joined with && is skipped when the
    running outcome is a failure, and the outcome then stays a failure.
    """

    def __init__(self, commands: BuiltinCommands, parser: CommandParser):
        """Initialize with the session's builtins and parser."""
        self.commands = commands
        self.parser = parser
        self.handlers = self._build_dispatch_table()

    def _build_dispatch_table(self) -> dict:
        table = {}
        for builtin in Builtin:
            handler = getattr(self.commands, builtin.handler_name, None)
            if handler is None or not callable(handler):
                raise TypeError(f"no handler for builtin {builtin.value!r}")
            table[builtin] = handler
        return table

    def execute_line(self, line: str) -> ChainResult:
        """Run every segment of a line and return the accumulated result."""
        chain = ChainResult()

        for segment in self.parser.split_chain(line):
            if segment.requires_prior_success and not chain.success:
                logger.debug("Skipping %r after failure", segment.text)
                continue

            result = self.execute_segment(segment)

            if result.clear:
                return ChainResult(chain.outputs, True, clear=True)

            if result.text:
                chain.outputs.append(result.text)
            chain.success = result.success

            if result.exit:
                chain.exit = True
                break

        return chain

    def execute_segment(self, segment: ChainSegment) -> CommandResult:
        """Expand, parse and run one segment."""
        command = self.parser.parse_segment(segment)
        if command is None:
            return CommandResult.ok()
        return self.execute_command(command)

    def execute_command(self, command: Command) -> CommandResult:
        """Execute a single parsed command."""
        assignment = command.assignment
        if assignment is not None:
            self.commands.environment.set(*assignment)
            return CommandResult.ok()

        builtin = Builtin.lookup(command.name)
        if builtin is None:
            return CommandResult.fail(f"zsh: command not found: {command.name}",
                                      error=CommandError.COMMAND_NOT_FOUND)

        # Check for help flag first
        if 'help' in command.flags and builtin is not Builtin.HELP:
            return self.commands.help(Command('help', [builtin.value], {}, [builtin.value]))

        try:
            return self.handlers[builtin](command)
        except Exception as e:
            logger.exception("Unhandled error in %s (%s)", command.name, command)
            return CommandResult.fail(f"{command.name}: {e}")


class CommandHistory:
    """Manages command history for the terminal session."""

    def __init__(self, max_size: int = 1000):
        """Initialize with maximum history size."""
        self.max_size = max_size
        self.entries: List[str] = []
        self.position = 0

    def __len__(self) -> int:
        return len(self.entries)

    def add(self, command: str):
        """Add a command to history and reset the cursor past the end."""
        if command and command.strip():
            self.entries.append(command)
            if len(self.entries) > self.max_size:
                self.entries.pop(0)
        self.position = len(self.entries)

    def previous(self) -> Optional[str]:
        """Get previous command in history."""
        if self.position > 0:
            self.position -= 1
            return self.entries[self.position]
        return None

    def next(self) -> Optional[str]:
        """Get next command in history; '' once past the newest entry."""
        if self.position < len(self.entries) - 1:
            self.position += 1
            return self.entries[self.position]
        self.position = len(self.entries)
        return ''


class TerminalSession:
    """
    Main terminal session manager.

    This class provides the REPL loop and manages the terminal session,
    including prompt display, command execution, and session state.
    """

    def __init__(self, config: Optional[TerminalConfig] = None, store=None):
        """Initialize terminal session."""
        self.config = config or TerminalConfig()
        home = self.config.home_dir

        if store is None and self.config.state_dir:
            store = DirectoryStore(self.config.state_dir)
        self.fs = FileSystem(store=store, home=home)

        initial_dir = self.config.initial_dir or home
        if not self.fs.change_directory(initial_dir):
            logger.warning("Initial directory %s is not available, using %s",
                           initial_dir, self.fs.cwd)

        self.env = Environment.for_user(self.config.user, self.config.hostname, home)
        self.env.set('PWD', self.fs.cwd)

        self.history = CommandHistory(self.config.history_size)
        self.parser = CommandParser(self.env)
        self.started_at = datetime.now()
        self.commands = BuiltinCommands(self.fs, self.env, self.history,
                                        user=self.config.user,
                                        started_at=self.started_at)
        self.executor = CommandExecutor(self.commands, self.parser)
        self.commands.run_line = self.executor.execute_line
        self.completer = CompletionEngine(self.fs, self.env)

        self.transcript: List[TranscriptEntry] = []
        self.running = False

    @property
    def cwd(self) -> str:
        return self.fs.cwd

    def display_cwd(self) -> str:
        """Current directory with the home directory shown as ~."""
        home = self.env.get('HOME', self.config.home_dir)
        cwd = self.fs.cwd
        if cwd == home:
            return '~'
        if cwd.startswith(home + '/'):
            return '~' + cwd[len(home):]
        return cwd

    def get_prompt(self) -> str:
        """Generate the command prompt."""
        display_cwd = self.display_cwd()
        hostname = self.config.hostname.split('.')[0]

        if self.config.enable_colors:
            # Green for user@host, blue for path
            return f'\033[32m{self.config.user}@{hostname}\033[0m:\033[34m{display_cwd}\033[0m$ '

        return self.config.prompt_format.format(
            user=self.config.user,
            hostname=hostname,
            cwd=display_cwd,
            time=datetime.now().strftime('%H:%M:%S')
        )

    def execute(self, command_line: str) -> ChainResult:
        """Run a line, record it in history and the transcript."""
        if not command_line or not command_line.strip():
            return ChainResult()

        cwd = self.fs.cwd
        result = self.executor.execute_line(command_line)
        self.history.add(command_line)

        if result.clear:
            self.transcript.clear()
        else:
            self.transcript.append(TranscriptEntry(command_line, result.output, cwd))
        if result.exit:
            self.running = False
        return result

    def execute_command(self, command_line: str) -> Optional[str]:
        """
        Execute a command line and return the output.

        Returns None for exit commands.
        """
        result = self.execute(command_line)
        if result.exit:
            return None
        return result.output

    def complete(self, line: str) -> CompletionResult:
        """Tab-complete the last word of line."""
        return self.completer.complete(line)

    def recall_previous(self) -> Optional[str]:
        return self.history.previous()

    def recall_next(self) -> Optional[str]:
        return self.history.next()

    def _setup_readline(self):
        """Hook tab completion and history into readline when present."""
        try:
            import readline
        except ImportError:
            return

        def complete(text: str, state: int) -> Optional[str]:
            if state == 0:
                line = readline.get_line_buffer()[:readline.get_endidx()]
                result = self.completer.complete(line)
                if result.applied:
                    self._matches = [result.line.split()[-1]]
                elif len(line.split()) > 1 or '/' in text:
                    prefix = CompletionEngine.split_partial(text)[0]
                    self._matches = [prefix + c for c in result.candidates]
                else:
                    self._matches = list(result.candidates)
            return self._matches[state] if state < len(self._matches) else None

        self._matches: List[str] = []
        readline.set_completer_delims(' \t\n')
        readline.set_completer(complete)
        readline.parse_and_bind('tab: complete')
        readline.set_history_length(self.config.history_size)

    def run_interactive(self):
        """Run the interactive REPL loop."""
        self.running = True
        self._setup_readline()

        # Print welcome message
        print("Welcome to zOS Terminal")
        print("Type 'help' for help, 'exit' to quit")
        print()

        while self.running:
            try:
                command_line = input(self.get_prompt())
                result = self.execute(command_line)

                if result.clear:
                    print(CLEAR_SCREEN, end='')
                elif result.output:
                    print(result.output)
            except KeyboardInterrupt:
                print("^C")
                continue
            except EOFError:
                print()
                break

        self.running = False
        print("Goodbye!")

    def run_command(self, command_line: str) -> str:
        """
        Run a single command and return output.

        This method is useful for non-interactive use.
        """
        output = self.execute_command(command_line)
        return output if output is not None else ''

    def run_script(self, script_lines: List[str]) -> List[str]:
        """
        Run a script (list of command lines) and return outputs.
        """
        outputs = []
        for line in script_lines:
            # Skip comments and empty lines
            line = line.strip()
            if not line or line.startswith('#'):
                continue

            output = self.execute_command(line)
            if output is None:  # Exit command
                break
            outputs.append(output)

        return outputs


def main(argv: Optional[List[str]] = None):
    """Main entry point for the terminal emulator."""
    import argparse

    parser = argparse.ArgumentParser(description='zOS Terminal Emulator')
    parser.add_argument('-c', '--command', help='Execute command and exit')
    parser.add_argument('-u', '--user', help='Set username', default='user')
    parser.add_argument('-d', '--directory', help='Set initial directory')
    parser.add_argument('--state-dir', help='Persist the filesystem in this directory')
    parser.add_argument('--no-color', action='store_true', help='Disable colored prompt')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    args = parser.parse_args(argv)

    config = TerminalConfig(
        user=args.user,
        initial_dir=args.directory,
        enable_colors=not args.no_color,
        state_dir=args.state_dir,
        log_level='DEBUG' if args.verbose else 'WARNING',
    )
    logging.basicConfig(level=config.log_level,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    session = TerminalSession(config=config)

    # Run command or interactive session
    if args.command:
        result = session.execute(args.command)
        if result.output:
            print(result.output)
        sys.exit(0 if result.success else 1)
    else:
        session.run_interactive()


if __name__ == '__main__':
    main()
