import pytest

import melodyline.parser

from melodyline.model import ErrorKind, EventKind


def test_basic_parse_scenario () -> None:

	"""C4(1000)G#P(500) gives two notes and a pause on a running clock."""

	sequence = melodyline.parser.parse("C4(1000)G#P(500)")

	assert len(sequence) == 3

	c, g_sharp, pause = sequence.events

	assert c.kind is EventKind.NOTE
	assert (c.pitch_letter, c.accidental, c.octave, c.duration_ms) == ("C", "", 4, 1000)
	assert (c.start_ms, c.end_ms) == (0, 1000)

	assert g_sharp.kind is EventKind.NOTE
	assert (g_sharp.note_name, g_sharp.octave, g_sharp.duration_ms) == ("G#", 4, 1000)
	assert (g_sharp.start_ms, g_sharp.end_ms) == (1000, 2000)

	assert pause.kind is EventKind.PAUSE
	assert pause.duration_ms == 500
	assert (pause.start_ms, pause.end_ms) == (2000, 2500)

	assert not sequence.has_errors


def test_parse_is_deterministic () -> None:

	"""The same text always parses to the same events."""

	text = "C4(250) // intro // D#5 P q C9 E(0.5)"

	assert melodyline.parser.parse(text) == melodyline.parser.parse(text)


def test_defaults_applied () -> None:

	"""Missing octave is 4, missing duration is 1000 ms."""

	event = melodyline.parser.parse("A").events[0]

	assert event.octave == 4
	assert event.duration_ms == 1000
	assert event.midi_note == 69


def test_lowercase_letter_is_normalized () -> None:

	"""Pitch letters are stored upper case."""

	event = melodyline.parser.parse("f#3(200)").events[0]

	assert event.note_name == "F#"
	assert event.octave == 3


def test_decimal_durations () -> None:

	"""Durations may have a fractional part."""

	sequence = melodyline.parser.parse("C(250.5) P(0.5)")

	assert sequence[0].duration_ms == 250.5
	assert sequence[1].start_ms == 250.5
	assert sequence[1].end_ms == 251.0


def test_comment_takes_no_time () -> None:

	"""Comments sit between events without advancing the clock."""

	sequence = melodyline.parser.parse("C(500) // hold it // D(500)")

	comment = sequence[1]

	assert comment.kind is EventKind.COMMENT
	assert comment.duration_ms == 0
	assert comment.start_ms == comment.end_ms == 500
	assert comment.raw_text == "// hold it //"
	assert sequence[2].start_ms == 500


def test_durations_chain_between_non_comment_events () -> None:

	"""Each non-comment event starts where the previous one ended."""

	sequence = melodyline.parser.parse("C(100) P(50) // x // D#6(300) E0 P")
	timed = [e for e in sequence if not e.is_comment]

	for previous, current in zip(timed, timed[1:]):
		assert current.start_ms == previous.end_ms

	for event in timed:
		assert event.end_ms == event.start_ms + event.duration_ms


@pytest.mark.parametrize("text, octave", [("C9", 9), ("C-1", -1), ("D12(500)", 12)])
def test_out_of_range_octave (text: str, octave: int) -> None:

	"""Octaves outside 0-8 are InvalidOctave with the text kept verbatim."""

	event = melodyline.parser.parse(text).events[0]

	assert event.kind is EventKind.NOTE
	assert event.error is not None
	assert event.error.kind is ErrorKind.INVALID_OCTAVE
	assert event.error.text == text
	assert event.raw_text == text
	assert event.octave == octave


def test_octave_checked_before_duration () -> None:

	"""A token with both a bad octave and a bad duration reports the octave."""

	event = melodyline.parser.parse("C9(0)").events[0]

	assert event.error is not None
	assert event.error.kind is ErrorKind.INVALID_OCTAVE


@pytest.mark.parametrize("text", ["C(0)", "C4(abc)", "D()", "E(1.)"])
def test_invalid_note_duration (text: str) -> None:

	"""Non-positive or non-numeric note durations are InvalidDuration."""

	event = melodyline.parser.parse(text).events[0]

	assert event.kind is EventKind.NOTE
	assert event.error is not None
	assert event.error.kind is ErrorKind.INVALID_DURATION
	assert event.duration_ms == 1000


@pytest.mark.parametrize("text", ["P(0)", "p(x)", "P()"])
def test_invalid_pause_duration (text: str) -> None:

	"""Bad pause durations are InvalidPauseDuration."""

	event = melodyline.parser.parse(text).events[0]

	assert event.kind is EventKind.PAUSE
	assert event.error is not None
	assert event.error.kind is ErrorKind.INVALID_PAUSE_DURATION


def test_pause_default_duration () -> None:

	"""A bare P lasts 1000 ms."""

	event = melodyline.parser.parse("p").events[0]

	assert event.kind is EventKind.PAUSE
	assert event.duration_ms == 1000
	assert not event.has_error


@pytest.mark.parametrize("text", ["C##", "xyz", "C(100", "// open", "Cx"])
def test_invalid_format (text: str) -> None:

	"""Unreadable tokens become INVALID events with the text preserved."""

	events = melodyline.parser.parse(text).events
	invalid = [e for e in events if e.kind is EventKind.INVALID]

	assert invalid
	assert all(e.error is not None and e.error.kind is ErrorKind.INVALID_FORMAT for e in invalid)
	assert "".join(e.raw_text for e in events).replace(" ", "") == text.replace(" ", "")


def test_error_does_not_abort_parse () -> None:

	"""Tokens after an error are still parsed and timed."""

	sequence = melodyline.parser.parse("C(500) C9(500) Cx D(250)")

	assert [e.kind for e in sequence] == [EventKind.NOTE, EventKind.NOTE, EventKind.INVALID, EventKind.NOTE]
	assert [e.has_error for e in sequence] == [False, True, True, False]

	# The bad octave keeps its duration; the unreadable token takes the default.
	assert sequence[3].start_ms == 500 + 500 + 1000
	assert len(sequence.errors) == 2


def test_error_message_and_key () -> None:

	"""Errors carry a message and a localization key."""

	error = melodyline.parser.parse("P(0)").events[0].error

	assert error is not None
	assert error.message_key == "invalid_pause_duration"
	assert "0" in error.message


def test_validate_returns_errors_in_order () -> None:

	"""validate() lists only the errors."""

	errors = melodyline.parser.validate("C C9 D P(0)")

	assert [e.kind for e in errors] == [ErrorKind.INVALID_OCTAVE, ErrorKind.INVALID_PAUSE_DURATION]


def test_span_localizes_error () -> None:

	"""An error's span points at the offending text in the source."""

	source = "C4 D4 G9(200) E"
	event = melodyline.parser.parse(source).events[2]

	start, end = event.span

	assert source[start:end] == "G9(200)"


def test_empty_text () -> None:

	"""Nothing in, nothing out."""

	sequence = melodyline.parser.parse("")

	assert sequence.is_empty
	assert sequence.total_duration_ms == 0
