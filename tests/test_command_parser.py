#!/usr/bin/env python3
"""
Tests for the command parser: chain splitting, word splitting, flags,
assignments and expansion.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import unittest

from zosh.command_parser import ChainSegment, Command, CommandParser
from zosh.environment import Environment


class TestChainSplitting(unittest.TestCase):
    """Test splitting a line on && and ;."""

    def setUp(self):
        self.parser = CommandParser()

    def test_single_command(self):
        """A line without separators is one unconditional segment."""
        self.assertEqual(self.parser.split_chain('ls -la'), [ChainSegment('ls -la', False)])

    def test_and_and_semicolon(self):
        """Only segments after && require prior success."""
        segments = self.parser.split_chain('a && b ; c && d')
        self.assertEqual([(s.text, s.requires_prior_success) for s in segments],
                         [('a', False), ('b', True), ('c', False), ('d', True)])

    def test_whitespace_is_trimmed(self):
        """Segments carry no surrounding whitespace."""
        segments = self.parser.split_chain('  echo a   ;   echo b  ')
        self.assertEqual([s.text for s in segments], ['echo a', 'echo b'])

    def test_empty_segments_are_dropped(self):
        """Doubled or trailing separators add nothing."""
        segments = self.parser.split_chain('a ;; b ;')
        self.assertEqual([s.text for s in segments], ['a', 'b'])

    def test_separators_inside_quotes(self):
        """Quoted && and ; are not separators."""
        segments = self.parser.split_chain('echo "a && b"; echo \'c;d\'')
        self.assertEqual([s.text for s in segments], ['echo "a && b"', "echo 'c;d'"])

    def test_unbalanced_quote_ignores_quoting(self):
        """A quote left open makes the whole line split without quoting."""
        segments = self.parser.split_chain("echo don't ; echo hi")
        self.assertEqual([s.text for s in segments], ["echo don't", 'echo hi'])
        segments = self.parser.split_chain("false && echo it's ; echo \"a;b\"")
        self.assertEqual([(s.text, s.requires_prior_success) for s in segments],
                         [('false', False), ("echo it's", True),
                          ('echo "a', False), ('b"', False)])

    def test_no_separator_without_space(self):
        """Separators need no surrounding spaces."""
        segments = self.parser.split_chain('true&&echo x;echo y')
        self.assertEqual([s.text for s in segments], ['true', 'echo x', 'echo y'])


class TestTokenizing(unittest.TestCase):
    """Test word splitting."""

    def setUp(self):
        self.parser = CommandParser()

    def test_quotes_group_and_are_stripped(self):
        """Quoted text stays one word without its quotes."""
        self.assertEqual(self.parser.tokenize('echo "hello world" \'x y\''),
                         ['echo', 'hello world', 'x y'])

    def test_empty_quotes(self):
        """'' is an empty word."""
        self.assertEqual(self.parser.tokenize('test -z ""'), ['test', '-z', ''])

    def test_backslash_is_kept(self):
        """Backslashes pass through unchanged."""
        self.assertEqual(self.parser.tokenize('echo a\\nb'), ['echo', 'a\\nb'])

    def test_hash_is_not_a_comment(self):
        """# inside a line is an ordinary character."""
        self.assertEqual(self.parser.tokenize('echo #1'), ['echo', '#1'])

    def test_unclosed_quote_falls_back_to_whitespace(self):
        """An unbalanced quote splits on whitespace."""
        self.assertEqual(self.parser.tokenize('echo "abc def'), ['echo', '"abc', 'def'])


class TestCommandParsing(unittest.TestCase):
    """Test building Command objects."""

    def setUp(self):
        self.parser = CommandParser()

    def test_flags_and_args(self):
        """Combined short flags split into characters."""
        cmd = self.parser.parse_simple('ls -la /tmp')
        self.assertEqual(cmd.name, 'ls')
        self.assertEqual(cmd.flags, {'l': True, 'a': True})
        self.assertEqual(cmd.args, ['/tmp'])
        self.assertEqual(cmd.raw_args, ['-la', '/tmp'])
        self.assertTrue(cmd.has('a', 'all'))

    def test_long_flags(self):
        """--name is a single flag."""
        cmd = self.parser.parse_simple('ls --all')
        self.assertEqual(cmd.flags, {'all': True})
        self.assertFalse(cmd.has('a'))

    def test_double_dash_ends_flags(self):
        """Everything after -- is positional."""
        cmd = self.parser.parse_simple('rm -- -file')
        self.assertEqual(cmd.flags, {})
        self.assertEqual(cmd.args, ['-file'])

    def test_single_dash_is_positional(self):
        """A lone - is an argument."""
        cmd = self.parser.parse_simple('cd -')
        self.assertEqual(cmd.args, ['-'])

    def test_name_is_lowercased(self):
        """The name is lowercased; raw_name keeps the typed spelling."""
        cmd = self.parser.parse_simple('LS -L')
        self.assertEqual(cmd.name, 'ls')
        self.assertEqual(cmd.raw_name, 'LS')
        self.assertEqual(cmd.flags, {'L': True})

    def test_empty_input(self):
        """Blank text parses to nothing."""
        self.assertIsNone(self.parser.parse_command('   '))
        self.assertEqual(self.parser.parse_simple('').name, '')

    def test_assignment(self):
        """A lone NAME=value word is an assignment."""
        self.assertEqual(self.parser.parse_simple('FOO=bar').assignment, ('FOO', 'bar'))
        self.assertEqual(self.parser.parse_simple('FOO=').assignment, ('FOO', ''))
        self.assertIsNone(self.parser.parse_simple('FOO=bar baz').assignment)
        self.assertIsNone(self.parser.parse_simple('echo a=b').assignment)
        self.assertIsNone(self.parser.parse_simple('1X=2').assignment)

    def test_str(self):
        """Commands render back to a readable line."""
        cmd = Command('ls', ['/tmp'], {'l': True, 'all': True}, ['-l', '--all', '/tmp'])
        self.assertEqual(str(cmd), 'ls -l --all /tmp')


class TestExpansion(unittest.TestCase):
    """Test alias and variable expansion through an Environment."""

    def setUp(self):
        self.env = Environment(variables={'HOME': '/Users/user', 'USER': 'user'},
                               aliases={'ll': 'ls -la', 'a': 'b', 'b': 'echo hi'})
        self.parser = CommandParser(self.env)

    def test_alias_replaces_first_word(self):
        """Arguments after the alias are kept."""
        self.assertEqual(self.parser.expand('ll /tmp'), 'ls -la /tmp')
        self.assertEqual(self.parser.expand('echo ll'), 'echo ll')

    def test_alias_is_expanded_once(self):
        """The expansion is not expanded again."""
        self.assertEqual(self.parser.expand('a'), 'b')

    def test_variables(self):
        """Plain and braced references; unknown names become empty."""
        self.assertEqual(self.parser.expand('echo $HOME ${USER} [$NOPE]'),
                         'echo /Users/user user []')

    def test_parse_segment_expands_late(self):
        """Each segment sees the environment at the time it is parsed."""
        segments = self.parser.split_chain('export X=1 && echo $X')
        self.env.set('X', 'late')
        cmd = self.parser.parse_segment(segments[1])
        self.assertEqual(cmd.args, ['late'])

    def test_parse_whole_line(self):
        """parse() returns one Command per segment."""
        commands = self.parser.parse('ll ; echo $USER')
        self.assertEqual([c.name for c in commands], ['ls', 'echo'])
        self.assertEqual(commands[1].args, ['user'])


if __name__ == '__main__':
    unittest.main()
