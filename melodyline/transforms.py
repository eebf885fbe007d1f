"""Rewrite a parsed sequence as new notation text.

Both transforms read an error-free event list and return a fresh notation
string; they never touch the events they are given. Parse the result before
transforming again.

- `transpose` shifts every note by a number of semitones.
- `scale_durations` multiplies every note and pause duration.

Comments pass through unchanged. Output uses the serializer's default
omission rules, so untouched defaults stay omitted.
"""

import logging
import math
import typing

import melodyline.model
import melodyline.pitch
import melodyline.serializer

from melodyline.model import EventKind


logger = logging.getLogger(__name__)


# Products are rounded to this many decimal places before the ceiling so that
# binary floating point noise (1000 * 1.1 == 1100.0000000000002) does not
# push an exact result up by one.
_CEILING_PRECISION = 9


class TransformError (Exception):
	pass


def transpose (events: typing.Iterable[melodyline.model.Event], semitones: int) -> str:

	"""
	Shift every note by ``semitones`` and return the new notation.

	Octaves carry base-12 and then wrap cyclically through 0-8, so ``B8``
	up one semitone becomes ``C0``. Flat spellings come out as sharps.

	Raises:
		TransformError: If any event carries an error.

	Example:
		```python
		transpose(parse("C4 E4(500) P G4"), 2)   # → "D F#(500) P A"
		```
	"""

	checked = _require_error_free(events, "transpose")

	tokens: typing.List[str] = []

	for event in checked:

		if event.kind is EventKind.NOTE:
			assert event.note_name is not None and event.octave is not None
			name, octave = melodyline.pitch.transpose_name(event.note_name, event.octave, semitones)
			tokens.append(melodyline.serializer.format_note(name, octave, event.duration_ms))

		else:
			tokens.append(melodyline.serializer.format_event(event))

	logger.debug(f"Transposed {len(checked)} events by {semitones} semitones")

	return melodyline.serializer.join_tokens(tokens)


def scale_durations (events: typing.Iterable[melodyline.model.Event], multiplier: float) -> str:

	"""
	Multiply every note and pause duration, rounding up to whole milliseconds.

	Each call rounds on its own, so scaling by ``a`` and then ``b`` gives
	``ceil(ceil(d * a) * b)``, which is not always ``ceil(d * a * b)``.

	Raises:
		ValueError: If ``multiplier`` is not positive.
		TransformError: If any event carries an error.
	"""

	if multiplier <= 0:
		raise ValueError("multiplier must be positive")

	checked = _require_error_free(events, "scale durations")

	tokens: typing.List[str] = []

	for event in checked:

		if event.kind is EventKind.NOTE:
			assert event.note_name is not None and event.octave is not None
			duration = scale_duration(event.duration_ms, multiplier)
			tokens.append(melodyline.serializer.format_note(event.note_name, event.octave, duration))

		elif event.kind is EventKind.PAUSE:
			tokens.append(melodyline.serializer.format_pause(scale_duration(event.duration_ms, multiplier)))

		else:
			tokens.append(melodyline.serializer.format_event(event))

	logger.debug(f"Scaled {len(checked)} events by {multiplier}")

	return melodyline.serializer.join_tokens(tokens)


def scale_duration (duration_ms: float, multiplier: float) -> int:

	"""``ceil(duration_ms * multiplier)``, immune to float noise in the product."""

	return int(math.ceil(round(duration_ms * multiplier, _CEILING_PRECISION)))


def _require_error_free (events: typing.Iterable[melodyline.model.Event], operation: str) -> typing.List[melodyline.model.Event]:

	"""
	Materialize the events and refuse the whole operation if any has an error.
	"""

	checked = list(events)
	errors = [event.error for event in checked if event.error is not None]

	if errors:
		raise TransformError(
			f"Cannot {operation}: sequence has {len(errors)} error(s), first: {errors[0].message}"
		)

	return checked
