"""Split notation text into note, pause and comment tokens.

The lexer reads one character at a time in one of three states:

- ``NORMAL`` - between and inside plain tokens. A pitch letter (``A``-``G``,
  either case), ``P``/``p`` or ``//`` starts a new token. Whitespace is
  skipped.
- ``IN_PARENS`` - inside ``(...)``. Everything is part of the current token,
  whitespace included, and no character starts a new token.
- ``IN_COMMENT`` - after an opening ``//``. Everything up to and including
  the next ``//`` belongs to the comment. An unterminated comment runs to
  the end of the input.

Nothing here raises: malformed tokens are handed to the parser as-is.
"""

import dataclasses
import enum
import typing

import melodyline.constants


START_CHARACTERS = frozenset("ABCDEFGabcdefgPp")


class LexerState (enum.Enum):

	"""Where the lexer currently is relative to parentheses and comments."""

	NORMAL = "normal"
	IN_PARENS = "in_parens"
	IN_COMMENT = "in_comment"


@dataclasses.dataclass(frozen=True)
class Token:

	"""
	One element of the input.

	Attributes:
		text: The token with whitespace outside parentheses removed. The
			parser matches its grammars against this.
		raw: The exact slice of the source the token covers.
		start: Offset of the first character in the source.
		end: Offset one past the last character in the source.
	"""

	text: str
	raw: str
	start: int
	end: int


class _TokenBuilder:

	"""Accumulates the characters of the token being read."""

	def __init__ (self, start: int) -> None:

		self.start = start
		self.end = start
		self.chars: typing.List[str] = []

	def add (self, chars: str, position: int) -> None:

		self.chars.append(chars)
		self.end = position + len(chars)

	def build (self, source: str) -> Token:

		return Token(text="".join(self.chars), raw=source[self.start:self.end], start=self.start, end=self.end)


def tokenize (text: str) -> typing.List[Token]:

	"""
	Split notation text into tokens, in source order.

	Example:
		```python
		[t.text for t in tokenize("C4(1000) G# // intro // P(500)")]
		# → ["C4(1000)", "G#", "// intro //", "P(500)"]
		```
	"""

	delimiter = melodyline.constants.COMMENT_DELIMITER

	tokens: typing.List[Token] = []
	current: typing.Optional[_TokenBuilder] = None
	state = LexerState.NORMAL
	i = 0

	def flush () -> None:
		nonlocal current
		if current is not None:
			tokens.append(current.build(text))
			current = None

	while i < len(text):

		ch = text[i]

		if state is LexerState.IN_COMMENT:

			assert current is not None

			if text.startswith(delimiter, i):
				current.add(delimiter, i)
				i += len(delimiter)
				flush()
				state = LexerState.NORMAL
			else:
				current.add(ch, i)
				i += 1

			continue

		if state is LexerState.IN_PARENS:

			assert current is not None

			current.add(ch, i)
			if ch == ")":
				state = LexerState.NORMAL
			i += 1

			continue

		# NORMAL

		if text.startswith(delimiter, i):
			flush()
			current = _TokenBuilder(i)
			current.add(delimiter, i)
			state = LexerState.IN_COMMENT
			i += len(delimiter)
			continue

		if ch in START_CHARACTERS:
			flush()
			current = _TokenBuilder(i)

		elif ch.isspace():
			i += 1
			continue

		elif current is None:
			# Stray text before any start character is kept as its own token.
			current = _TokenBuilder(i)

		current.add(ch, i)

		if ch == "(":
			state = LexerState.IN_PARENS

		i += 1

	flush()

	return tokens


def split_elements (text: str) -> typing.List[str]:

	"""Return just the compacted text of each token."""

	return [token.text for token in tokenize(text)]
