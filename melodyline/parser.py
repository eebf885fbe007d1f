"""Turn notation text into a timed, validated event list.

Every token the tokenizer produces is matched against three grammars:

- **Comment** - ``// ... //``. Takes no time.
- **Pause** - ``P`` or ``p``, optionally followed by ``(<duration>)``.
- **Note** - a pitch letter ``A``-``G`` (either case), an optional ``#``,
  an optional octave digit ``0``-``8`` and an optional ``(<duration>)``.

Omitted octaves default to 4 and omitted durations to 1000 ms. Anything
else becomes an ``INVALID`` event carrying its text verbatim.

Errors are local: a bad token is recorded on its own event and parsing
carries on, so the caller always gets every token back in order with a
running clock threaded through them. Error events still occupy time -
their own duration when it could be read, the default duration otherwise.

Example:
	```python
	sequence = parse("C4(1000)G#P(500)")

	[(e.kind.value, e.start_ms, e.end_ms) for e in sequence]
	# → [("note", 0, 1000), ("note", 1000, 2000), ("pause", 2000, 2500)]
	```
"""

import re
import typing

import melodyline.constants
import melodyline.model
import melodyline.tokenizer

from melodyline.model import ErrorKind, EventKind


# Octave digits are read leniently so that "C9" and "C-1" are reported as a
# bad octave rather than as an unreadable token.
_NOTE_PATTERN = re.compile(r"^([A-Ga-g])(#?)(-?\d+)?(?:\((.*)\))?$", re.DOTALL)
_PAUSE_PATTERN = re.compile(r"^[Pp](?:\((.*)\))?$", re.DOTALL)
_NUMBER_PATTERN = re.compile(r"^\d+(?:\.\d+)?$")


def parse (text: str) -> melodyline.model.Sequence:

	"""
	Parse notation text into a `Sequence`.

	Parsing never raises for bad input. Check ``sequence.has_errors`` before
	playing, transforming or exporting.
	"""

	return melodyline.model.Sequence(text=text, events=tuple(parse_events(text)))


def parse_events (text: str) -> typing.List[melodyline.model.Event]:

	"""Parse notation text into a plain list of events."""

	events: typing.List[melodyline.model.Event] = []
	current_time = 0.0

	for token in melodyline.tokenizer.tokenize(text):

		event = _parse_token(token, current_time)
		events.append(event)

		if not event.is_comment:
			current_time = event.end_ms

	return events


def validate (text: str) -> typing.List[melodyline.model.NotationError]:

	"""Return only the errors found in ``text``, in token order."""

	return parse(text).errors


def _parse_token (token: melodyline.tokenizer.Token, start: float) -> melodyline.model.Event:

	"""
	Classify one token and build its event.
	"""

	text = token.text
	span = (token.start, token.end)

	if _is_comment(text):
		return melodyline.model.Event(
			kind = EventKind.COMMENT,
			start_ms = start,
			end_ms = start,
			duration_ms = 0,
			raw_text = token.raw,
			span = span
		)

	pause_match = _PAUSE_PATTERN.match(text)

	if pause_match:
		duration_text = pause_match.group(1)
		duration = _read_duration(duration_text)
		error = None

		if duration is None:
			error = melodyline.model.NotationError(
				kind = ErrorKind.INVALID_PAUSE_DURATION,
				text = token.raw,
				message = f"Invalid pause duration: {duration_text!r}"
			)
			duration = melodyline.constants.DEFAULT_DURATION_MS

		return melodyline.model.Event(
			kind = EventKind.PAUSE,
			start_ms = start,
			end_ms = start + duration,
			duration_ms = duration,
			error = error,
			raw_text = token.raw,
			span = span
		)

	note_match = _NOTE_PATTERN.match(text)

	if note_match:
		letter, accidental, octave_text, duration_text = note_match.groups()
		octave = int(octave_text) if octave_text is not None else melodyline.constants.DEFAULT_OCTAVE
		duration = _read_duration(duration_text)
		error = None

		if not melodyline.constants.MIN_OCTAVE <= octave <= melodyline.constants.MAX_OCTAVE:
			error = melodyline.model.NotationError(
				kind = ErrorKind.INVALID_OCTAVE,
				text = token.raw,
				message = (
					f"Invalid octave: {octave}. "
					f"Range: {melodyline.constants.MIN_OCTAVE}-{melodyline.constants.MAX_OCTAVE}"
				)
			)

		elif duration is None:
			error = melodyline.model.NotationError(
				kind = ErrorKind.INVALID_DURATION,
				text = token.raw,
				message = f"Invalid duration: {duration_text!r}"
			)

		if duration is None:
			duration = melodyline.constants.DEFAULT_DURATION_MS

		return melodyline.model.Event(
			kind = EventKind.NOTE,
			start_ms = start,
			end_ms = start + duration,
			duration_ms = duration,
			pitch_letter = letter.upper(),
			accidental = accidental,
			octave = octave,
			error = error,
			raw_text = token.raw,
			span = span
		)

	duration = melodyline.constants.DEFAULT_DURATION_MS

	return melodyline.model.Event(
		kind = EventKind.INVALID,
		start_ms = start,
		end_ms = start + duration,
		duration_ms = duration,
		error = melodyline.model.NotationError(
			kind = ErrorKind.INVALID_FORMAT,
			text = token.raw,
			message = f"Invalid format: {token.raw!r}"
		),
		raw_text = token.raw,
		span = span
	)


def _is_comment (text: str) -> bool:

	"""A closed ``// ... //`` comment (at least both delimiters)."""

	delimiter = melodyline.constants.COMMENT_DELIMITER

	return len(text) >= 2 * len(delimiter) and text.startswith(delimiter) and text.endswith(delimiter)


def _read_duration (duration_text: typing.Optional[str]) -> typing.Optional[float]:

	"""
	Read the contents of a ``(...)`` duration.

	Returns the default when there were no parentheses, the number when it
	is positive, and None when it is not a positive number.
	"""

	if duration_text is None:
		return melodyline.constants.DEFAULT_DURATION_MS

	if not _NUMBER_PATTERN.match(duration_text):
		return None

	value = float(duration_text)

	if value <= 0:
		return None

	return int(value) if value.is_integer() else value
