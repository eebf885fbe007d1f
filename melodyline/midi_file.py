"""Standard MIDI File export and import.

Export writes one track per voice into a Type 1 file. Import reads any
SMF, converts each track's notes back to milliseconds, and splits every
track into the fewest monophonic voices a first-fit pass can find, since
notation can only express one note at a time per voice.

Times are converted with round-half-up. Imported notes keep fractional
milliseconds until they are written as notation, where each duration is
rounded on its own, so whole-millisecond durations come back within a millisecond at
common resolutions such as 120 BPM and 480 ticks per beat. With the default 125 BPM and 480 ticks per beat one tick is exactly
one millisecond and whole-millisecond durations survive unchanged.

Example:
	```python
	data = encode([Voice(parse("C4(500) E4(500) G4"))])
	[voice.notation for voice in decode(data)]   # → ["C(500) E(500) G"]
	```
"""

import bisect
import collections
import dataclasses
import io
import logging
import math
import pathlib
import typing

import mido

import melodyline.constants
import melodyline.constants.instruments
import melodyline.model
import melodyline.parser
import melodyline.pitch
import melodyline.serializer


logger = logging.getLogger(__name__)


# Notes ending within this many milliseconds after another starts still
# count as non-overlapping when splitting voices.
VOICE_SPLIT_EPSILON_MS = 0.5

# MIDI's default tempo (120 BPM) when a file carries no set_tempo message.
_DEFAULT_FILE_TEMPO = 500000


class MidiFileError (Exception):
	pass


class MidiExportError (MidiFileError):
	pass


class MidiImportError (MidiFileError):
	pass


VoiceLike = typing.Union[melodyline.model.Voice, melodyline.model.Sequence]


@dataclasses.dataclass(frozen=True)
class ImportedNote:

	"""
	A note read from a track, in milliseconds converted through the tempo map.
	"""

	start_ms: float
	end_ms: float
	pitch: int
	channel: int = 0

	@property
	def duration_ms (self) -> float:

		return self.end_ms - self.start_ms


@dataclasses.dataclass
class DecodedVoice:

	"""
	One monophonic voice reconstructed from a track.

	Attributes:
		notation: The voice as notation text, gaps written as pauses.
		sequence: ``notation`` parsed.
		track_index: Index of the source track in the file.
		track_name: The source track's name, empty when it had none.
		channel: MIDI channel of the voice's first note.
		instrument: Instrument matched from the track's program change.
		notes: The notes the voice was built from.
	"""

	notation: str
	sequence: melodyline.model.Sequence
	track_index: int
	track_name: str = ""
	channel: int = 0
	instrument: melodyline.constants.instruments.InstrumentKind = melodyline.constants.instruments.DEFAULT_INSTRUMENT
	notes: typing.List[ImportedNote] = dataclasses.field(default_factory=list)

	def to_voice (self) -> melodyline.model.Voice:

		"""Build a playback voice from the decoded notation."""

		return melodyline.model.Voice(sequence=self.sequence, instrument=self.instrument, name=self.track_name)


def round_half_up (value: float) -> int:

	return int(math.floor(value + 0.5))


def ms_to_ticks (ms: float, ticks_per_beat: int, tempo: int) -> int:

	"""
	Convert milliseconds to ticks at a fixed tempo (microseconds per beat).
	"""

	return round_half_up(ms * 1000.0 * ticks_per_beat / tempo)


def ticks_to_ms (ticks: int, ticks_per_beat: int, tempo: int) -> float:

	"""
	Convert ticks to milliseconds at a fixed tempo (microseconds per beat).
	"""

	return mido.tick2second(ticks, ticks_per_beat, tempo) * 1000.0


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def encode (
	voices: typing.Sequence[VoiceLike],
	bpm: float = melodyline.constants.DEFAULT_BPM,
	ticks_per_beat: int = melodyline.constants.DEFAULT_TICKS_PER_BEAT
) -> bytes:

	"""
	Encode voices as a Type 1 Standard MIDI File.

	Each voice with at least one playable note becomes a track on its own
	channel (the GM percussion channel is skipped). Pauses, comments and
	error events produce no notes but their time still passes, so every note
	lands at its absolute start time. Mute and solo are playback settings
	and do not affect export.

	Parameters:
		voices: `Voice` objects, or bare `Sequence` objects played on the
			default instrument.
		bpm: Tempo written to the file.
		ticks_per_beat: Time division written to the file.

	Raises:
		ValueError: If ``bpm`` or ``ticks_per_beat`` is not positive.
		MidiExportError: If no voice contains a playable note.
	"""

	if bpm <= 0:
		raise ValueError("bpm must be positive")

	if ticks_per_beat <= 0:
		raise ValueError("ticks_per_beat must be positive")

	tempo = mido.bpm2tempo(bpm)
	mid = mido.MidiFile(type=1, ticks_per_beat=ticks_per_beat)

	for index, item in enumerate(voices):

		voice = _as_voice(item)
		track = _encode_track(voice, index, ticks_per_beat, tempo, with_tempo=not mid.tracks)

		if track is None:
			logger.debug(f"Voice {index} has no playable notes - no track written")
			continue

		mid.tracks.append(track)

	if not mid.tracks:
		raise MidiExportError("Nothing to export: no voice contains a playable note")

	buffer = io.BytesIO()
	mid.save(file=buffer)

	logger.info(f"Encoded {len(mid.tracks)} track(s) at {bpm} BPM, {ticks_per_beat} ticks per beat")

	return buffer.getvalue()


def write_file (path: typing.Union[str, pathlib.Path], voices: typing.Sequence[VoiceLike], **kwargs: typing.Any) -> None:

	"""Encode voices and write them to ``path``. Keyword arguments go to `encode`."""

	data = encode(voices, **kwargs)
	pathlib.Path(path).write_bytes(data)

	logger.info(f"Saved {path}")


def _as_voice (item: VoiceLike) -> melodyline.model.Voice:

	if isinstance(item, melodyline.model.Sequence):
		return melodyline.model.Voice(sequence=item)

	return item


def _encode_track (
	voice: melodyline.model.Voice,
	index: int,
	ticks_per_beat: int,
	tempo: int,
	with_tempo: bool
) -> typing.Optional[mido.MidiTrack]:

	"""
	Build the track for one voice, or None when it has nothing to play.
	"""

	notes = voice.sequence.notes

	if not notes:
		return None

	channel = melodyline.constants.channel_for_voice(index)
	spec = melodyline.constants.instruments.INSTRUMENTS[voice.instrument]
	velocity = max(1, voice.velocity)

	# (absolute tick, order, message): note_off sorts before note_on at the
	# same tick so a repeated pitch is released before it is struck again.
	timed: typing.List[typing.Tuple[int, int, mido.Message]] = []

	for event in notes:

		note = event.midi_note
		assert note is not None

		on_tick = ms_to_ticks(event.start_ms, ticks_per_beat, tempo)
		off_tick = max(on_tick + 1, ms_to_ticks(event.end_ms, ticks_per_beat, tempo))

		timed.append((on_tick, 1, mido.Message('note_on', channel=channel, note=note, velocity=velocity)))
		timed.append((off_tick, 0, mido.Message('note_off', channel=channel, note=note, velocity=0)))

	timed.sort(key=lambda item: (item[0], item[1]))

	track = mido.MidiTrack()
	track.append(mido.MetaMessage('track_name', name=voice.name or f"Voice {index + 1}", time=0))

	if with_tempo:
		track.append(mido.MetaMessage('set_tempo', tempo=tempo, time=0))

	track.append(mido.Message('program_change', channel=channel, program=spec.program, time=0))

	last_tick = 0

	for tick, _, message in timed:
		message.time = tick - last_tick
		track.append(message)
		last_tick = tick

	return track


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

class TempoMap:

	"""
	Converts absolute ticks to milliseconds across tempo changes.
	"""

	def __init__ (self, ticks_per_beat: int, changes: typing.Iterable[typing.Tuple[int, int]]) -> None:

		"""
		Parameters:
			ticks_per_beat: The file's time division.
			changes: ``(absolute tick, tempo)`` pairs from set_tempo messages.
		"""

		self.ticks_per_beat = ticks_per_beat

		ordered = sorted(changes, key=lambda change: change[0])

		if not ordered or ordered[0][0] > 0:
			ordered.insert(0, (0, _DEFAULT_FILE_TEMPO))

		# (segment start tick, tempo, milliseconds at segment start)
		self._segments: typing.List[typing.Tuple[int, int, float]] = []
		elapsed_ms = 0.0
		previous_tick, previous_tempo = ordered[0]

		for tick, tempo in ordered:
			elapsed_ms += ticks_to_ms(tick - previous_tick, ticks_per_beat, previous_tempo)
			self._segments.append((tick, tempo, elapsed_ms))
			previous_tick, previous_tempo = tick, tempo

		self._starts = [segment[0] for segment in self._segments]


	def to_ms (self, tick: int) -> float:

		position = bisect.bisect_right(self._starts, tick) - 1
		start_tick, tempo, start_ms = self._segments[max(0, position)]

		return start_ms + ticks_to_ms(tick - start_tick, self.ticks_per_beat, tempo)


def decode (data: bytes) -> typing.List[DecodedVoice]:

	"""
	Decode a Standard MIDI File into monophonic voices.

	Every track is split into the fewest voices a first-fit pass finds (see
	`split_voices`), and each voice is written as notation with explicit
	pauses for the gaps, including a leading pause when it starts late so
	voices stay aligned. Tracks without usable notes are skipped.

	Raises:
		MidiImportError: If the data is not a readable MIDI file or contains
			no usable notes.
	"""

	try:
		mid = mido.MidiFile(file=io.BytesIO(data))
	except Exception as exc:
		raise MidiImportError(f"Could not read MIDI data: {exc}") from exc

	tempo_map = TempoMap(mid.ticks_per_beat, _tempo_changes(mid))
	decoded: typing.List[DecodedVoice] = []

	for track_index, track in enumerate(mid.tracks):

		try:
			notes, name, program = _read_track(track, tempo_map)
		except Exception:
			logger.warning(f"Track {track_index} skipped: could not read its messages", exc_info=True)
			continue

		if not notes:
			logger.debug(f"Track {track_index} has no usable notes")
			continue

		instrument = (
			melodyline.constants.instruments.instrument_for_program(program)
			if program is not None
			else melodyline.constants.instruments.DEFAULT_INSTRUMENT
		)

		for voice_notes in split_voices(notes):

			notation = notes_to_notation(voice_notes)

			decoded.append(DecodedVoice(
				notation = notation,
				sequence = melodyline.parser.parse(notation),
				track_index = track_index,
				track_name = name,
				channel = voice_notes[0].channel,
				instrument = instrument,
				notes = voice_notes
			))

	if not decoded:
		raise MidiImportError("The MIDI file contains no usable notes")

	logger.info(f"Decoded {len(decoded)} voice(s) from {len(mid.tracks)} track(s)")

	return decoded


def read_file (path: typing.Union[str, pathlib.Path]) -> typing.List[DecodedVoice]:

	"""Read and decode a MIDI file from disk."""

	try:
		data = pathlib.Path(path).read_bytes()
	except OSError as exc:
		raise MidiImportError(f"Could not read {path}: {exc}") from exc

	return decode(data)


def split_voices (notes: typing.Iterable[ImportedNote]) -> typing.List[typing.List[ImportedNote]]:

	"""
	Split notes into monophonic voices, first fit.

	Notes are taken in (start, pitch) order and each goes into the first
	voice whose last note has ended by the time it starts, or into a new
	voice when none has. No voice ever holds two overlapping notes, and the
	result is deterministic for a given input.

	Example:
		```python
		# Two simultaneous notes need two voices; the third fits in the first.
		split_voices([ImportedNote(0, 500, 60), ImportedNote(0, 500, 64), ImportedNote(500, 900, 67)])
		# → [[C4 0-500, G4 500-900], [E4 0-500]]
		```
	"""

	voices: typing.List[typing.List[ImportedNote]] = []
	last_ends: typing.List[float] = []

	for note in sorted(notes, key=lambda n: (n.start_ms, n.pitch)):

		for slot, last_end in enumerate(last_ends):
			if last_end <= note.start_ms + VOICE_SPLIT_EPSILON_MS:
				voices[slot].append(note)
				last_ends[slot] = note.end_ms
				break
		else:
			voices.append([note])
			last_ends.append(note.end_ms)

	return voices


def notes_to_notation (notes: typing.Sequence[ImportedNote]) -> str:

	"""
	Write one monophonic voice as notation, with pauses for every gap.

	Every duration is rounded to whole milliseconds on its own. A note that
	follows the previous one without a gap is written straight after it;
	a note after a gap is placed at its own rounded start, so rounding
	drift never carries past a pause.
	"""

	tokens: typing.List[str] = []
	cursor = 0
	previous_end: typing.Optional[float] = None

	for note in notes:

		touching = previous_end is not None and note.start_ms - previous_end <= VOICE_SPLIT_EPSILON_MS

		if not touching:
			gap = round_half_up(note.start_ms) - cursor

			if gap > 0:
				tokens.append(melodyline.serializer.format_pause(gap))
				cursor += gap

		duration = round_half_up(note.duration_ms)

		name, octave = melodyline.pitch.from_midi_note(note.pitch)
		tokens.append(melodyline.serializer.format_note(name, octave, duration))
		cursor += duration
		previous_end = note.end_ms

	return melodyline.serializer.join_tokens(tokens)


def _tempo_changes (mid: mido.MidiFile) -> typing.List[typing.Tuple[int, int]]:

	"""Collect (absolute tick, tempo) from every track."""

	changes: typing.List[typing.Tuple[int, int]] = []

	for track in mid.tracks:

		tick = 0

		for message in track:
			tick += message.time
			if message.type == 'set_tempo':
				changes.append((tick, message.tempo))

	return changes


def _read_track (
	track: mido.MidiTrack,
	tempo_map: TempoMap
) -> typing.Tuple[typing.List[ImportedNote], str, typing.Optional[int]]:

	"""
	Pair note-on / note-off messages into notes.

	Repeated notes on the same channel and pitch pair first-in first-out.
	Notes still sounding at the end of the track end at its last tick.
	Returns the notes, the track name and the first program number.
	"""

	tick = 0
	name = ""
	program: typing.Optional[int] = None
	open_notes: typing.Dict[typing.Tuple[int, int], typing.Deque[int]] = collections.defaultdict(collections.deque)
	spans: typing.List[typing.Tuple[int, int, int, int]] = []

	for message in track:

		tick += message.time

		if message.type == 'track_name' and not name:
			name = message.name

		elif message.type == 'program_change' and program is None:
			program = message.program

		elif message.type == 'note_on' and message.velocity > 0:
			open_notes[(message.channel, message.note)].append(tick)

		elif message.type == 'note_off' or (message.type == 'note_on' and message.velocity == 0):
			pending = open_notes.get((message.channel, message.note))
			if pending:
				spans.append((pending.popleft(), tick, message.note, message.channel))

	for (channel, note), pending in open_notes.items():
		for start_tick in pending:
			spans.append((start_tick, tick, note, channel))

	notes: typing.List[ImportedNote] = []

	for start_tick, end_tick, note, channel in spans:

		start_ms = tempo_map.to_ms(start_tick)
		end_ms = tempo_map.to_ms(end_tick)

		if round_half_up(end_ms - start_ms) <= 0:
			logger.warning(f"Skipping zero-length note {note} at tick {start_tick}")
			continue

		if not melodyline.pitch.is_representable(note):
			logger.warning(f"Skipping note {note} at tick {start_tick}: outside octaves 0-8")
			continue

		notes.append(ImportedNote(start_ms=start_ms, end_ms=end_ms, pitch=note, channel=channel))

	return notes, name, program
