"""Write events back out as notation text.

Values equal to the parser's defaults (octave 4, 1000 ms) are left out so
the text stays compact, and parsing the result gives back equal events.
Comments are written verbatim. Tokens are separated by a single space,
which the tokenizer ignores.
"""

import decimal
import typing

import melodyline.constants
import melodyline.model

from melodyline.model import EventKind


TOKEN_SEPARATOR = " "


def format_number (value: float) -> str:

	"""Integral values without a decimal point, others in their shortest form."""

	if float(value).is_integer():
		return str(int(value))

	# Positional notation only: the grammar has no exponent form.
	return format(decimal.Decimal(repr(float(value))), "f")


def format_note (name: str, octave: int, duration_ms: float) -> str:

	"""
	Format one note, omitting default values.

	Example:
		```python
		format_note("C", 4, 1000)   # → "C"
		format_note("G#", 5, 250)   # → "G#5(250)"
		```
	"""

	text = name

	if octave != melodyline.constants.DEFAULT_OCTAVE:
		text += str(octave)

	return text + _format_duration(duration_ms)


def format_pause (duration_ms: float) -> str:

	"""Format one pause, omitting the default duration."""

	return "P" + _format_duration(duration_ms)


def format_event (event: melodyline.model.Event) -> str:

	"""
	Format a single error-free event.

	Raises:
		ValueError: If the event carries an error - it has no canonical form.
	"""

	if event.has_error:
		raise ValueError(f"Cannot serialize an event with an error: {event.raw_text!r}")

	if event.kind is EventKind.COMMENT:
		return event.raw_text

	if event.kind is EventKind.PAUSE:
		return format_pause(event.duration_ms)

	assert event.note_name is not None and event.octave is not None

	return format_note(event.note_name, event.octave, event.duration_ms)


def serialize (events: typing.Iterable[melodyline.model.Event]) -> str:

	"""Format error-free events as one notation string."""

	return join_tokens(format_event(event) for event in events)


def join_tokens (tokens: typing.Iterable[str]) -> str:

	return TOKEN_SEPARATOR.join(tokens)


def _format_duration (duration_ms: float) -> str:

	if duration_ms == melodyline.constants.DEFAULT_DURATION_MS:
		return ""

	return f"({format_number(duration_ms)})"
