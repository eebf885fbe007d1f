import asyncio
import logging
import pathlib
import typing

import melodyline.config
import melodyline.constants.instruments
import melodyline.midi_file
import melodyline.model
import melodyline.output
import melodyline.parser
import melodyline.scheduler
import melodyline.transforms


logger = logging.getLogger(__name__)


class Player:

	"""
	The high-level entry point: notation in, sound and MIDI files out.

	A `Player` owns one MIDI output and one scheduler, and applies the
	configured defaults to the voices it creates.

	Example:
		```python
		player = melodyline.Player.from_config("melodyline.yaml")

		melody = player.voice("C4(500) E4(500) G4(1000)")
		bass = player.voice("C2(2000)", instrument="bass")

		await player.play([melody, bass])
		player.export_file("song.mid", [melody, bass])
		```
	"""

	def __init__ (
		self,
		settings: typing.Optional[melodyline.config.Settings] = None,
		output: typing.Optional[melodyline.output.MidiOutput] = None,
		clock: typing.Optional[melodyline.scheduler.Clock] = None
	) -> None:

		"""
		Parameters:
			settings: Defaults for voices, playback and export.
			output: MIDI output to play through. When omitted, the configured
				device is opened (or the first available one).
			clock: Timer source for the scheduler. Defaults to the running
				asyncio loop.
		"""

		self.settings = settings if settings is not None else melodyline.config.Settings()
		self.output = output if output is not None else melodyline.output.MidiOutput.open(self.settings.output_device)
		self.scheduler = melodyline.scheduler.Scheduler(self.output, clock=clock)


	@classmethod
	def from_config (cls, config_path: str = melodyline.config.DEFAULT_CONFIG_PATH, **kwargs: typing.Any) -> "Player":

		"""Create a player from a YAML config file."""

		return cls(settings=melodyline.config.load_config(config_path), **kwargs)


	def voice (
		self,
		notation: str,
		instrument: typing.Optional[str] = None,
		volume: typing.Optional[float] = None,
		name: str = ""
	) -> melodyline.model.Voice:

		"""
		Parse notation into a voice with the configured defaults.

		The voice is returned even when the notation has errors; check
		``voice.sequence.errors``.
		"""

		kind = (
			melodyline.constants.instruments.InstrumentKind.from_name(instrument)
			if instrument is not None
			else self.settings.instrument
		)

		return melodyline.model.Voice(
			sequence = melodyline.parser.parse(notation),
			instrument = kind,
			volume = self.settings.volume if volume is None else volume,
			name = name
		)


	def play (self, voices: typing.Sequence[melodyline.model.Voice], speed: typing.Optional[float] = None) -> "asyncio.Future[melodyline.scheduler.SessionState]":

		"""Start playback; see `Scheduler.play`. Speed defaults to the configured one."""

		return self.scheduler.play(voices, self.settings.speed if speed is None else speed)


	def stop (self) -> None:

		self.scheduler.stop()


	def transpose (self, voice: melodyline.model.Voice, semitones: int) -> melodyline.model.Voice:

		"""Return a new voice with the same settings and transposed notation."""

		return self._replace_notation(voice, melodyline.transforms.transpose(voice.sequence, semitones))


	def scale_durations (self, voice: melodyline.model.Voice, multiplier: float) -> melodyline.model.Voice:

		"""Return a new voice with the same settings and scaled durations."""

		return self._replace_notation(voice, melodyline.transforms.scale_durations(voice.sequence, multiplier))


	def export (self, voices: typing.Sequence[melodyline.model.Voice]) -> bytes:

		"""
		Encode voices as MIDI file bytes with the configured tempo and resolution.

		Raises:
			MidiExportError: If any voice's notation has errors, or nothing
				would be written.
		"""

		self._require_error_free(voices)

		return melodyline.midi_file.encode(voices, bpm=self.settings.bpm, ticks_per_beat=self.settings.ticks_per_beat)


	def export_file (self, path: typing.Union[str, pathlib.Path], voices: typing.Sequence[melodyline.model.Voice]) -> None:

		self._require_error_free(voices)

		melodyline.midi_file.write_file(path, voices, bpm=self.settings.bpm, ticks_per_beat=self.settings.ticks_per_beat)


	def import_midi (self, data: bytes) -> typing.List[melodyline.model.Voice]:

		"""Decode MIDI file bytes into playback voices, one per monophonic line."""

		return [decoded.to_voice() for decoded in melodyline.midi_file.decode(data)]


	def import_file (self, path: typing.Union[str, pathlib.Path]) -> typing.List[melodyline.model.Voice]:

		return [decoded.to_voice() for decoded in melodyline.midi_file.read_file(path)]


	def close (self) -> None:

		"""Stop playback and close the MIDI output."""

		self.scheduler.stop()
		self.output.close()


	def _replace_notation (self, voice: melodyline.model.Voice, notation: str) -> melodyline.model.Voice:

		logger.debug(f"New notation: {notation}")

		return melodyline.model.Voice(
			sequence = melodyline.parser.parse(notation),
			instrument = voice.instrument,
			volume = voice.volume,
			mute = voice.mute,
			solo = voice.solo,
			name = voice.name
		)


	def _require_error_free (self, voices: typing.Sequence[melodyline.model.Voice]) -> None:

		for index, voice in enumerate(voices):
			if voice.sequence.has_errors:
				first = voice.sequence.errors[0]
				raise melodyline.midi_file.MidiExportError(
					f"Cannot export voice {index}: {len(voice.sequence.errors)} error(s), first: {first.message}"
				)
