#!/usr/bin/env python3
"""
Tests for the builtin commands, run through a terminal session against
the seeded default tree.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from zosh.builtins import (
    Builtin, BuiltinCommands, CommandError, FORTUNES,
    evaluate_arithmetic, extract_docstring_sections, format_size,
)
from zosh.terminal import TerminalConfig, TerminalSession


@pytest.fixture
def session():
    """A fresh session in /Users/user with the default tree."""
    return TerminalSession(TerminalConfig(enable_colors=False))


def run(session, line):
    return session.execute(line)


def run_command(session, line):
    """Execute one command directly and return its CommandResult."""
    return session.executor.execute_command(session.parser.parse_simple(line))


class TestHelpers:
    """Test module-level helpers."""

    def test_format_size(self):
        """Sizes use one decimal and the largest fitting suffix."""
        assert format_size(512) == '512'
        assert format_size(1024) == '1.0K'
        assert format_size(1536) == '1.5K'
        assert format_size(2048576) == '2.0M'
        assert format_size(3 * 1073741824) == '3.0G'

    def test_evaluate_arithmetic(self):
        """Only numbers and arithmetic operators are evaluated."""
        assert evaluate_arithmetic('2 + 3 * 4') == 14
        assert evaluate_arithmetic('(10 - 4) / 4') == 1.5
        assert evaluate_arithmetic('-7 % 3') == -1
        with pytest.raises(SyntaxError):
            evaluate_arithmetic('__import__("os")')

    def test_extract_docstring_sections(self):
        """Handler docstrings split into description, usage and lists."""
        sections = extract_docstring_sections(BuiltinCommands.grep.__doc__)
        assert sections['description'] == 'Search for a regular expression in a file.'
        assert sections['usage'] == 'grep [OPTIONS] PATTERN FILE'
        assert sections['examples'][0] == 'grep TODO notes.md'


class TestDispatch:
    """Test the closed set of builtins."""

    def test_every_builtin_has_a_documented_handler(self, session):
        """Each member maps to a callable with a help docstring."""
        for builtin in Builtin:
            handler = session.commands.handler_for(builtin)
            assert callable(handler)
            assert handler.__doc__, builtin.value
            assert builtin in session.executor.handlers

    def test_lookup_is_case_insensitive(self):
        """Names resolve regardless of case."""
        assert Builtin.lookup('LS') is Builtin.LS
        assert Builtin.lookup('.') is Builtin.DOT
        assert Builtin.lookup('[') is Builtin.BRACKET
        assert Builtin.lookup('vim') is None

    def test_unknown_command(self, session):
        """Unknown names fail with exit code 127."""
        result = run_command(session, 'foo bar')
        assert result.text == 'zsh: command not found: foo'
        assert result.error is CommandError.COMMAND_NOT_FOUND
        assert result.exit_code == 127

    def test_uppercase_command_name(self, session):
        """Command names are matched case-insensitively."""
        assert run(session, 'ECHO hi').output == 'hi'
        assert run(session, 'PWD').output == '/Users/user'

    def test_help_flag(self, session):
        """--help on any command shows its help."""
        output = run(session, 'ls --help').output
        assert output.startswith('ls - List directory contents.')
        assert 'Usage:' in output


class TestShellBuiltins:
    """Test help, true/false, test, sleep and source."""

    def test_help_overview(self, session):
        """Plain help lists the command groups."""
        output = run(session, 'help').output
        assert 'FILE OPERATIONS:' in output
        assert 'TEXT PROCESSING:' in output
        assert output.endswith("Type 'help COMMAND' for detailed help on a specific command.")

    def test_help_for_command(self, session):
        """help COMMAND renders the handler docstring."""
        output = run(session, 'help grep').output
        assert output.startswith('grep - Search for a regular expression in a file.')
        assert '    grep [OPTIONS] PATTERN FILE' in output
        assert 'Examples:' in output

    def test_help_unknown(self, session):
        """Help for an unknown command fails."""
        result = run(session, 'help nothing')
        assert not result.success
        assert result.output == "help: no help available for 'nothing'"

    def test_true_false(self, session):
        """true succeeds and false fails, both silently."""
        assert run(session, 'true').success
        result = run(session, 'false')
        assert not result.success
        assert result.output == ''

    def test_test_conditions(self, session):
        """File tests, string tests and negation."""
        assert run(session, 'test -d /tmp').success
        assert not run(session, 'test -f /tmp').success
        assert run(session, 'test -f ~/.zshrc').success
        assert run(session, 'test -e /nope && echo yes').output == ''
        assert run(session, 'test -z ""').success
        assert run(session, 'test -n abc').success
        assert run(session, 'test a = a').success
        assert run(session, 'test a != a').success is False
        assert run(session, 'test ! -e /nope').success

    def test_bracket_requires_closing(self, session):
        """[ needs a closing ]."""
        assert run(session, '[ -d /tmp ]').success
        assert not run(session, '[ -f /tmp ]').success
        result = run(session, '[ -e /tmp')
        assert not result.success
        assert result.output == "[: ']' expected"

    def test_sleep(self, session):
        """sleep returns at once with a notice."""
        assert run(session, 'sleep 2').output == 'sleep: slept for 2 seconds (simulated)'

    def test_source_runs_each_line(self, session):
        """Lines run in order; comments and blank lines are skipped."""
        session.fs.write('/tmp/script.sh', 'export A=1\n# comment\n\necho $A\necho done')
        assert run(session, 'source /tmp/script.sh').output == '1\ndone'
        assert session.env.get('A') == '1'
        assert run(session, '. /tmp/script.sh').output == '1\ndone'

    def test_source_profile(self, session):
        """The default profile sources ~/.zshrc."""
        result = run(session, 'source ~/.profile')
        assert result.success
        assert session.env.get('PS1') == '%n@%m:%~$ '
        assert session.env.get('PATH').startswith('/usr/local/bin:')

    def test_source_errors(self, session):
        """Missing operand and missing file fail."""
        result = run(session, 'source')
        assert result.output == 'source: filename argument required'
        result = run(session, 'source /nope.sh')
        assert not result.success
        assert result.output == 'source: no such file or directory: /nope.sh'

    def test_source_recursion_is_bounded(self, session):
        """A file that sources itself stops at the nesting limit."""
        session.fs.write('/tmp/loop.sh', 'source /tmp/loop.sh')
        result = run(session, 'source /tmp/loop.sh')
        assert not result.success
        assert 'maximum nesting depth exceeded' in result.output


class TestNavigation:
    """Test pwd, cd, ls, tree and find."""

    def test_pwd(self, session):
        """The session starts in the home directory."""
        assert run(session, 'pwd').output == '/Users/user'

    def test_cd_variants(self, session):
        """Absolute, relative, parent and home targets."""
        run(session, 'cd /tmp')
        assert session.cwd == '/tmp'
        run(session, 'cd ~/Documents')
        assert session.cwd == '/Users/user/Documents'
        run(session, 'cd ..')
        assert session.cwd == '/Users/user'
        run(session, 'cd /')
        run(session, 'cd')
        assert session.cwd == '/Users/user'

    def test_cd_updates_pwd_and_oldpwd(self, session):
        """PWD and OLDPWD follow cd, and cd - goes back."""
        run(session, 'cd /tmp')
        assert session.env.get('PWD') == '/tmp'
        assert session.env.get('OLDPWD') == '/Users/user'
        assert run(session, 'cd -').output == '/Users/user'
        assert session.cwd == '/Users/user'

    def test_cd_errors(self, session):
        """Missing targets and files are reported."""
        result = run(session, 'cd nonexistent')
        assert not result.success
        assert result.output == 'cd: no such file or directory: nonexistent'
        result = run(session, 'cd Desktop/README.txt')
        assert result.output == 'cd: not a directory: Desktop/README.txt'
        assert session.cwd == '/Users/user'

    def test_ls_hides_dot_files(self, session):
        """Entries are sorted and hidden names need -a."""
        output = run(session, 'ls').output
        assert output == 'Desktop  Documents  Downloads  Music  Pictures  Videos'
        assert '.zshrc' in run(session, 'ls -a').output

    def test_ls_long_format(self, session):
        """-l shows permissions, owner, group and size."""
        lines = run(session, 'ls -l /etc').output.split('\n')
        assert len(lines) == 3
        assert lines[0].startswith('-rw-r--r--  1 root   wheel')
        assert lines[0].endswith(' hosts')
        assert ' 89 ' in lines[0]

    def test_ls_human_sizes(self, session):
        """-h formats sizes."""
        output = run(session, 'ls -lh Pictures').output
        assert '2.0M' in output
        assert '1000.0K' in output

    def test_ls_file_and_missing(self, session):
        """A file argument echoes back; a missing one fails."""
        assert run(session, 'ls Desktop/README.txt').output == 'Desktop/README.txt'
        result = run(session, 'ls nonexistent')
        assert not result.success
        assert result.output == "ls: cannot access 'nonexistent': No such file or directory"

    def test_tree(self, session):
        """Children are drawn with box connectors."""
        run(session, 'mkdir /t /t/a /t/b && touch /t/a/f')
        assert run(session, 'tree /t').output == '/t\n├── a\n│   └── f\n└── b'

    def test_find(self, session):
        """-name globs and -type filters."""
        assert run(session, 'find /etc -type f').output == '/etc/hosts\n/etc/passwd\n/etc/shells'
        assert run(session, 'find ~ -name "*.md"').output == '/Users/user/Documents/notes.md'
        assert run(session, 'find /etc -type d').output == '/etc'
        assert not run(session, 'find /nope').success


class TestFileContents:
    """Test cat, head, tail, less and echo."""

    def test_cat(self, session):
        """cat prints content and reports problems."""
        assert run(session, 'cat Desktop/README.txt').output.startswith('Welcome to zOS!')
        assert run(session, 'cat nonexistent').output == 'cat: nonexistent: No such file or directory'
        assert run(session, 'cat Documents').output == 'cat: Documents: Is a directory'
        result = run_command(session, 'cat')
        assert result.text == 'cat: missing file operand'
        assert result.error is CommandError.MISSING_OPERAND

    def test_cat_multiple_files(self, session):
        """Several files are joined."""
        output = run(session, 'cat .bashrc .profile').output
        assert output.startswith('# zOS bashrc')
        assert output.endswith('source ~/.zshrc')

    def test_head_and_tail(self, session):
        """-n selects the number of lines."""
        assert run(session, 'head -n 2 /etc/hosts').output == '##\n# Host Database'
        assert run(session, 'tail -n 1 /var/log/system.log').output == \
            'Dec 25 10:00:01 zos kernel[0]: All systems operational'
        assert 'localhost' in run(session, 'head /etc/hosts').output
        assert run(session, 'head').output == 'head: missing file operand'

    def test_less_and_more(self, session):
        """less and more show the whole file."""
        content = session.fs.read('/etc/shells')
        assert run(session, 'less /etc/shells').output == content
        assert run(session, 'more /etc/shells').output == content

    def test_echo(self, session):
        """echo joins words and interprets \\n and \\t."""
        assert run(session, 'echo hello world').output == 'hello world'
        assert run(session, 'echo "hello   world"').output == 'hello   world'
        assert run(session, 'echo hello\\nworld').output == 'hello\nworld'
        assert run(session, 'echo $HOME').output == '/Users/user'
        assert run(session, 'echo').output == ''


class TestFileManagement:
    """Test touch, mkdir, rm, rmdir, cp, mv, ln, chmod and chown."""

    def test_touch(self, session):
        """touch creates new files and keeps existing ones."""
        assert run(session, 'touch new.txt').success
        assert session.fs.read('/Users/user/new.txt') == ''
        assert run(session, 'touch .zshrc').success
        assert session.fs.read('/Users/user/.zshrc').startswith('# zOS zshrc')
        assert run(session, 'touch').output == 'touch: missing file operand'

    def test_mkdir(self, session):
        """mkdir creates folders and reports problems."""
        assert run(session, 'mkdir work').success
        assert session.fs.is_folder('/Users/user/work')
        assert run(session, 'mkdir Documents').output == 'mkdir: Documents: File exists'
        assert run(session, 'mkdir a/b').output == 'mkdir: a/b: No such file or directory'
        assert run(session, 'mkdir').output == 'mkdir: missing operand'

    def test_mkdir_parents(self, session):
        """-p creates intermediate folders."""
        assert run(session, 'mkdir -p a/b/c').success
        assert session.fs.is_folder('/Users/user/a/b/c')

    def test_rm(self, session):
        """Folders need -r; -f silences missing operands."""
        assert run(session, 'rm Documents').output == 'rm: Documents: is a directory'
        assert run(session, 'rm -r Documents/projects/zos').success
        assert not session.fs.exists('/Users/user/Documents/projects/zos')
        assert run(session, 'rm .bashrc').success
        assert run(session, 'rm nonexistent').output == 'rm: nonexistent: No such file or directory'
        assert run(session, 'rm -f nonexistent').success
        assert run(session, 'rm').output == 'rm: missing operand'

    def test_rmdir(self, session):
        """Only empty folders are removed."""
        assert run(session, 'rmdir Documents').output == 'rmdir: Documents: Directory not empty'
        assert run(session, 'rmdir .zshrc').output == 'rmdir: .zshrc: Not a directory'
        assert run(session, 'rmdir Videos').success
        assert not session.fs.exists('/Users/user/Videos')

    def test_cp_file(self, session):
        """Copying to a new name, into a folder and over a file."""
        assert run(session, 'cp .zshrc zshrc.bak').success
        assert session.fs.read('/Users/user/zshrc.bak') == session.fs.read('/Users/user/.zshrc')
        assert run(session, 'cp .bashrc Documents').success
        assert session.fs.exists('/Users/user/Documents/.bashrc')
        assert run(session, 'cp .profile zshrc.bak').success
        assert session.fs.read('/Users/user/zshrc.bak').startswith('# zOS profile')

    def test_cp_directory(self, session):
        """Folders need -r and are copied by name into a folder."""
        assert run(session, 'cp Documents /tmp').output == 'cp: Documents: is a directory (not copied)'
        assert run(session, 'cp -r Documents /tmp').success
        assert session.fs.read('/tmp/Documents/notes.md') == \
            session.fs.read('/Users/user/Documents/notes.md')
        assert session.fs.is_folder('/tmp/Documents/projects/zos')

    def test_cp_errors(self, session):
        """Missing source or destination."""
        assert run(session, 'cp nope x').output == 'cp: nope: No such file or directory'
        assert run(session, 'cp .zshrc').output == 'cp: missing destination file operand'

    def test_mv(self, session):
        """Rename in place and move into a folder."""
        assert run(session, 'mv .bashrc bashrc').success
        assert session.fs.exists('/Users/user/bashrc')
        assert not session.fs.exists('/Users/user/.bashrc')
        assert run(session, 'mv bashrc Documents').success
        assert session.fs.exists('/Users/user/Documents/bashrc')

    def test_mv_onto_existing_file(self, session):
        """The destination file is replaced by the source."""
        source_id = session.fs.resolve_path('/Users/user/.bashrc').id
        dest_id = session.fs.resolve_path('/Users/user/.profile').id
        assert run(session, 'mv .bashrc .profile').success
        assert session.fs.resolve_path('/Users/user/.profile').id == source_id
        assert dest_id not in session.fs.nodes
        assert not session.fs.exists('/Users/user/.bashrc')
        assert session.fs.check_invariants() == []

    def test_mv_into_itself(self, session):
        """A folder cannot move below itself."""
        result = run(session, 'mv Documents Documents/projects')
        assert not result.success
        assert result.output == ("mv: cannot move 'Documents' to a subdirectory of itself, "
                                 "'Documents/projects/Documents'")
        assert session.fs.is_folder('/Users/user/Documents/projects')

    def test_mv_cwd_follows(self, session):
        """Moving the folder holding cwd rebases cwd."""
        run(session, 'cd Documents/projects')
        run(session, 'mv /Users/user/Documents /tmp')
        assert session.cwd == '/tmp/Documents/projects'

    def test_simulated_commands(self, session):
        """ln, chmod, chown and kill only report."""
        assert run(session, 'ln -s .zshrc link').output == \
            "ln: created symbolic link 'link' -> '.zshrc' (simulated)"
        assert run(session, 'chmod 755 .zshrc').output == \
            "chmod: mode of '.zshrc' changed to 755 (simulated)"
        assert run(session, 'chown root .zshrc').output == \
            "chown: changing ownership of '.zshrc' to root (simulated)"
        assert run(session, 'kill 123').output == 'kill: 123: process terminated (simulated)'
        assert not run(session, 'kill').success


class TestTextProcessing:
    """Test grep, wc, sort and uniq."""

    def test_grep(self, session):
        """Pattern matching with -i, -n and -c."""
        assert run(session, 'grep TODO Documents/notes.md').output == '## TODO'
        assert run(session, 'grep -i todo Documents/notes.md').output == '## TODO'
        assert run(session, 'grep -n Build Documents/notes.md').output == '4:- Build zOS'
        assert run(session, 'grep -c zOS Documents/notes.md').output == '1'
        assert run(session, 'grep nothing-here Documents/notes.md').output == ''

    def test_grep_errors(self, session):
        """-c with -n, missing operands and missing files.

        Combining -c and -n is refused rather than letting -c win, so the
        caller learns that one of the two flags would be ignored.
        """
        result = run_command(session, 'grep -c -n x Documents/notes.md')
        assert result.text == 'grep: options -c and -n cannot be combined'
        assert result.error is CommandError.INVALID_FLAG_COMBINATION
        assert result.exit_code == 2
        assert run(session, 'grep x').output == 'grep: usage: grep [pattern] [file]'
        assert run(session, 'grep x nope').output == 'grep: nope: No such file or directory'

    def test_wc(self, session):
        """Counts lines, words and characters."""
        assert run(session, 'wc /etc/shells').output == '  3  3  26 /etc/shells'
        assert run(session, 'wc -l /etc/shells').output == '3'
        assert run(session, 'wc -w /etc/shells').output == '3'
        assert run(session, 'wc -c /etc/shells').output == '26'

    def test_sort(self, session):
        """Lexicographic and reversed."""
        assert run(session, 'sort /etc/shells').output == '/bin/bash\n/bin/sh\n/bin/zsh'
        assert run(session, 'sort -r /etc/shells').output == '/bin/zsh\n/bin/sh\n/bin/bash'

    def test_uniq(self, session):
        """Only adjacent duplicates are dropped."""
        session.fs.write('/tmp/dup.txt', 'a\na\nb\na')
        assert run(session, 'uniq /tmp/dup.txt').output == 'a\nb\na'


class TestSystemInformation:
    """Test the informational commands."""

    def test_identity(self, session):
        """whoami, id, hostname and uname."""
        assert run(session, 'whoami').output == 'user'
        assert run(session, 'id').output.startswith('uid=501(user) gid=20(staff)')
        assert run(session, 'hostname').output == 'zos.local'
        assert run(session, 'uname').output == 'zOS'
        assert 'x86_64' in run(session, 'uname -a').output

    def test_date_and_uptime(self, session):
        """date and uptime produce one line each."""
        assert run(session, 'date -u').output.endswith(' GMT')
        assert ' up 0:00,' in run(session, 'uptime').output

    def test_canned_reports(self, session):
        """df, du, ps and top."""
        assert '500G' in run(session, 'df -h').output
        assert run(session, 'du').output == '4\t/Users/user'
        assert run(session, 'du -h /tmp').output == '4.0K\t/tmp'
        assert '-zsh' in run(session, 'ps').output
        assert run(session, 'top').output.startswith('Processes:')

    def test_which(self, session):
        """which searches the bin folders."""
        assert run(session, 'which ls').output == '/bin/ls'
        assert run(session, 'which grep').output == '/usr/bin/grep'
        result = run(session, 'which nothing')
        assert not result.success
        assert result.output == 'nothing not found'

    def test_type(self, session):
        """Builtins, aliases, commands and unknown names."""
        assert run(session, 'type cd').output == 'cd is a shell builtin'
        assert run(session, 'type ll').output == "ll is aliased to 'ls -la'"
        assert run(session, 'type grep').output == 'grep is /usr/bin/grep'
        result = run(session, 'type bogus')
        assert not result.success
        assert result.output == 'type: bogus: not found'

    def test_man(self, session):
        """man needs a page name."""
        result = run(session, 'man')
        assert not result.success
        assert result.output == 'What manual page do you want?'
        assert 'ls - list directory contents' in run(session, 'man ls').output

    def test_history(self, session):
        """Entries are numbered from one."""
        run(session, 'pwd')
        run(session, 'echo hi')
        assert run(session, 'history').output == '     1  pwd\n     2  echo hi'


class TestEnvironmentCommands:
    """Test env, export, unset, set, alias and unalias."""

    def test_env_and_set(self, session):
        """Variables are printed as NAME=value."""
        assert 'HOME=/Users/user' in run(session, 'env').output.split('\n')
        assert run(session, 'set').output.endswith('_=set')

    def test_export(self, session):
        """export sets variables and lists them without arguments."""
        run(session, 'export FOO=bar')
        assert run(session, 'echo $FOO').output == 'bar'
        assert 'declare -x HOME="/Users/user"' in run(session, 'export').output

    def test_assignment_without_export(self, session):
        """NAME=value on its own sets a variable."""
        assert run(session, 'X=5 && echo $X').output == '5'
        assert run(session, 'echo ${X}').output == '5'

    def test_unset(self, session):
        """Unset variables expand to nothing."""
        run(session, 'export FOO=bar')
        run(session, 'unset FOO')
        assert run(session, 'echo [$FOO]').output == '[]'

    def test_alias(self, session):
        """Defining, showing and using aliases."""
        assert run(session, "alias gs='git status'").success
        assert session.env.aliases['gs'] == 'git status'
        assert run(session, 'alias ll').output == "alias ll='ls -la'"
        assert "alias la='ls -a'" in run(session, 'alias').output
        assert run(session, 'alias nothing').output == 'alias: nothing: not found'

    def test_unalias(self, session):
        """Removing an alias disables it."""
        assert run(session, 'unalias ll').success
        assert run(session, 'll').output == 'zsh: command not found: ll'
        assert run(session, 'unalias ll').output == 'unalias: no such hash table element: ll'


class TestMisc:
    """Test the novelty commands."""

    def test_neofetch(self, session):
        """neofetch shows the user and host."""
        output = run(session, 'neofetch').output
        assert 'user@zos' in output
        assert 'Host: zosh' in output

    def test_cowsay(self, session):
        """The bubble fits the text."""
        lines = run(session, 'cowsay hi').output.split('\n')
        assert lines[0] == ' ____'
        assert lines[1] == '< hi >'
        assert '< moo >' in run(session, 'cowsay').output

    def test_fortune(self, session):
        """fortune picks from the fixed list."""
        assert run(session, 'fortune').output in FORTUNES

    def test_cal(self, session):
        """cal starts weeks on Sunday."""
        assert 'Su Mo Tu We Th Fr Sa' in run(session, 'cal').output

    def test_bc(self, session):
        """Arithmetic and its errors."""
        assert run(session, 'bc "2 + 3 * 4"').output == '14'
        assert run(session, 'bc 7/2').output == '3.5'
        assert run(session, 'bc "(1"').output == 'bc: syntax error'
        result = run(session, 'bc 1/0')
        assert not result.success
        assert result.output == 'bc: divide by zero'
