"""MIDI output used by the scheduler to trigger instruments.

A `MidiOutput` wraps an open ``mido`` output port and remembers which notes
are sounding, so a stopped session can silence exactly what it started.
Without a port every call is a no-op, which lets playback run (and be
tested) on machines with no MIDI device.
"""

import logging
import typing

import mido

import melodyline.constants
import melodyline.midi_utils


logger = logging.getLogger(__name__)


class MidiOutput:

	"""
	Sends note and program messages to a MIDI port.
	"""

	def __init__ (self, port: typing.Optional[typing.Any] = None, device_name: typing.Optional[str] = None) -> None:

		"""
		Wrap an already open port (or none, for silent operation).
		"""

		self.port = port
		self.device_name = device_name
		self.active_notes: typing.Set[typing.Tuple[int, int]] = set()


	@classmethod
	def open (cls, device_name: typing.Optional[str] = None) -> "MidiOutput":

		"""
		Open a device by name, or the first available one.

		Falls back to a silent output when no device can be opened.
		"""

		name, port = melodyline.midi_utils.select_output_device(device_name)

		if port is None:
			logger.warning("No MIDI output available - playback will be silent")

		return cls(port=port, device_name=name)


	@property
	def is_open (self) -> bool:

		return self.port is not None


	def program_change (self, channel: int, program: int) -> None:

		"""Select the instrument on a channel."""

		self._send(mido.Message('program_change', channel=channel, program=program))


	def note_on (self, channel: int, note: int, velocity: int) -> None:

		"""Start a note and remember it as sounding."""

		velocity = max(0, min(melodyline.constants.MAX_VELOCITY, velocity))

		if velocity == 0:
			return

		self.active_notes.add((channel, note))
		self._send(mido.Message('note_on', channel=channel, note=note, velocity=velocity))


	def note_off (self, channel: int, note: int) -> None:

		"""Release a note. Releasing a note that is not sounding does nothing."""

		if (channel, note) not in self.active_notes:
			return

		self.active_notes.discard((channel, note))
		self._send(mido.Message('note_off', channel=channel, note=note, velocity=0))


	def release_all (self) -> None:

		"""Send note_off for every note this output started and has not released."""

		for channel, note in sorted(self.active_notes):
			self._send(mido.Message('note_off', channel=channel, note=note, velocity=0))

		self.active_notes.clear()


	def panic (self) -> None:

		"""
		Release tracked notes, then send All Notes Off (CC 123) and All Sound Off
		(CC 120) on every channel.
		"""

		logger.info("Panic: sending all notes off.")

		self.release_all()

		for channel in range(melodyline.constants.MIDI_CHANNEL_COUNT):
			self._send(mido.Message('control_change', channel=channel, control=123, value=0))
			self._send(mido.Message('control_change', channel=channel, control=120, value=0))


	def close (self) -> None:

		"""Silence and close the port."""

		if self.port is None:
			return

		self.panic()
		self.port.close()
		self.port = None

		logger.info(f"Closed MIDI output: {self.device_name}")


	def _send (self, message: mido.Message) -> None:

		if self.port is None:
			return

		try:
			self.port.send(message)
		except Exception:
			logger.exception("MIDI send failed (device may be disconnected)")
