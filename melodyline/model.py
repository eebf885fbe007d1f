"""Data model shared by the parser, transforms, scheduler and codec.

- `Event` - the outcome of parsing one token: a note, a pause, a comment,
  or something unreadable, with its place on the timeline and any error.
- `Sequence` - the immutable, ordered result of one parse.
- `Voice` - a sequence bound to playback settings. Voices belong to the
  caller; the scheduler only moves their cursor while a session runs.

Times and durations are in milliseconds.
"""

import dataclasses
import enum
import typing

import melodyline.constants
import melodyline.constants.instruments
import melodyline.pitch


class EventKind (enum.Enum):

	"""What a token was recognised as."""

	NOTE = "note"
	PAUSE = "pause"
	COMMENT = "comment"
	INVALID = "invalid"


class ErrorKind (enum.Enum):

	"""
	The error taxonomy exposed to callers.

	The value doubles as the message key a localization layer looks up.
	"""

	INVALID_OCTAVE = "invalid_octave"
	INVALID_DURATION = "invalid_duration"
	INVALID_PAUSE_DURATION = "invalid_pause_duration"
	INVALID_FORMAT = "invalid_format"


@dataclasses.dataclass(frozen=True)
class NotationError:

	"""
	A problem found in one token.

	Attributes:
		kind: Which rule the token broke.
		text: The offending substring, verbatim.
		message: A human-readable English description.
	"""

	kind: ErrorKind
	text: str
	message: str

	@property
	def message_key (self) -> str:

		"""Key for looking up a localized message."""

		return self.kind.value


@dataclasses.dataclass(frozen=True)
class Event:

	"""
	One parsed token.

	``pitch_letter``, ``accidental`` and ``octave`` are only meaningful for
	notes. ``raw_text`` and ``span`` record where the token came from and do
	not take part in equality, so re-serialized text parses to equal events.
	"""

	kind: EventKind
	start_ms: float
	end_ms: float
	duration_ms: float
	pitch_letter: typing.Optional[str] = None
	accidental: str = ""
	octave: typing.Optional[int] = None
	error: typing.Optional[NotationError] = None
	raw_text: str = dataclasses.field(default="", compare=False)
	span: typing.Tuple[int, int] = dataclasses.field(default=(0, 0), compare=False)

	@property
	def has_error (self) -> bool:

		return self.error is not None

	@property
	def error_message (self) -> typing.Optional[str]:

		return self.error.message if self.error is not None else None

	@property
	def is_note (self) -> bool:

		return self.kind is EventKind.NOTE

	@property
	def is_pause (self) -> bool:

		return self.kind is EventKind.PAUSE

	@property
	def is_comment (self) -> bool:

		return self.kind is EventKind.COMMENT

	@property
	def is_playable (self) -> bool:

		"""True for an error-free note - the only events that make sound."""

		return self.kind is EventKind.NOTE and self.error is None

	@property
	def note_name (self) -> typing.Optional[str]:

		"""Pitch letter plus accidental (``"G#"``), or None for non-notes."""

		if self.pitch_letter is None:
			return None

		return self.pitch_letter + self.accidental

	@property
	def midi_note (self) -> typing.Optional[int]:

		"""MIDI note number of a playable note, None otherwise."""

		if not self.is_playable or self.note_name is None or self.octave is None:
			return None

		return melodyline.pitch.midi_note(self.note_name, self.octave)


@dataclasses.dataclass(frozen=True)
class Sequence:

	"""
	The ordered events produced by one parse of ``text``.

	Sequences are never modified. Transforms produce new notation text,
	which is parsed into a new sequence.
	"""

	text: str
	events: typing.Tuple[Event, ...]

	def __iter__ (self) -> typing.Iterator[Event]:

		return iter(self.events)

	def __len__ (self) -> int:

		return len(self.events)

	def __getitem__ (self, index: int) -> Event:

		return self.events[index]

	@property
	def is_empty (self) -> bool:

		return not self.events

	@property
	def has_errors (self) -> bool:

		return any(event.has_error for event in self.events)

	@property
	def errors (self) -> typing.List[NotationError]:

		"""Every error in token order."""

		return [event.error for event in self.events if event.error is not None]

	@property
	def notes (self) -> typing.List[Event]:

		"""Playable notes in order."""

		return [event for event in self.events if event.is_playable]

	@property
	def total_duration_ms (self) -> float:

		"""End time of the last non-comment event, or 0 when there is none."""

		ends = [event.end_ms for event in self.events if not event.is_comment]

		return max(ends) if ends else 0.0


@dataclasses.dataclass
class Voice:

	"""
	A sequence with the settings it plays back with.

	Attributes:
		sequence: The parsed notation this voice plays.
		instrument: Which instrument triggers its notes.
		volume: 0.0 (silent) to 1.0 (the instrument's full velocity).
		mute: Excluded from playback unless soloed.
		solo: When any voice is soloed, only soloed voices play.
		name: Label used for exported track names.
		current_event_index: Index of the event being played, or None. Set
			by the scheduler during a session and reset when it ends.
	"""

	sequence: Sequence
	instrument: melodyline.constants.instruments.InstrumentKind = melodyline.constants.instruments.DEFAULT_INSTRUMENT
	volume: float = 1.0
	mute: bool = False
	solo: bool = False
	name: str = ""
	current_event_index: typing.Optional[int] = None

	def __post_init__ (self) -> None:

		if not 0.0 <= self.volume <= 1.0:
			raise ValueError(f"Voice volume must be between 0 and 1, got {self.volume}")

	@property
	def velocity (self) -> int:

		"""Note-on velocity for this voice's instrument at its volume."""

		spec = melodyline.constants.instruments.INSTRUMENTS[self.instrument]

		return max(0, min(melodyline.constants.MAX_VELOCITY, int(round(spec.velocity * self.volume))))
