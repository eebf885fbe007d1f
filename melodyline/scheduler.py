"""Play voices against a clock, with cancellation.

A `Scheduler` turns a list of voices into timers on a shared clock. Each
call to `Scheduler.play` builds a fresh `PlaybackSession` that owns every
timer handle it creates and a single-shot future that resolves when the
session ends:

    IDLE -> SCHEDULED -> PLAYING -> COMPLETED | CANCELLED

At most one session is active per scheduler. Starting a new one stops the
previous one first, so two sessions' timers never interleave.

Per playing voice the scheduler creates one timer per note (at
``start / speed``), one release timer per note once it sounds, and one
voice-end timer that clears the voice's cursor. A final completion timer
fires once after the longest voice has ended.

The clock is anything with ``call_later``, ``create_future`` and ``time`` -
a running ``asyncio`` event loop by default. Everything happens in timer
callbacks on that loop; there are no threads.

Listeners can follow playback via `Scheduler.on_event`:

- ``"note"`` - ``(voice_index, event_index, midi_note, seconds)``
- ``"cursor"`` - ``(voice_index, event_index_or_None)``
- ``"voice_end"`` - ``(voice_index,)``
- ``"complete"`` - ``()``
- ``"stop"`` - ``()``
"""

import asyncio
import dataclasses
import enum
import logging
import typing

import melodyline.constants
import melodyline.constants.instruments
import melodyline.event_emitter
import melodyline.model
import melodyline.output


logger = logging.getLogger(__name__)


EVENT_NAMES = ("note", "cursor", "voice_end", "complete", "stop")


class PlaybackError (Exception):
	pass


class TimerHandle (typing.Protocol):

	"""A pending timer that can be cancelled."""

	def cancel (self) -> None:
		...


class Clock (typing.Protocol):

	"""
	The subset of an asyncio event loop the scheduler needs.
	"""

	def call_later (self, delay: float, callback: typing.Callable[..., typing.Any], *args: typing.Any) -> TimerHandle:
		...

	def create_future (self) -> "asyncio.Future[typing.Any]":
		...

	def time (self) -> float:
		...


class SessionState (enum.Enum):

	IDLE = "idle"
	SCHEDULED = "scheduled"
	PLAYING = "playing"
	COMPLETED = "completed"
	CANCELLED = "cancelled"


@dataclasses.dataclass
class ScheduledVoice:

	"""
	A voice taking part in a session, with the MIDI settings it plays with.
	"""

	index: int
	voice: melodyline.model.Voice
	channel: int
	velocity: int
	gate: float
	end_seconds: float


class PlaybackSession:

	"""
	One run of `Scheduler.play`.

	Holds the clock it runs on, every timer handle it has created, the notes
	each voice is currently sounding, and the future that reports how the
	session ended.
	"""

	def __init__ (self, clock: Clock, speed: float) -> None:

		self.clock = clock
		self.speed = speed
		self.state = SessionState.IDLE
		self.future: "asyncio.Future[SessionState]" = clock.create_future()
		self.voices: typing.List[ScheduledVoice] = []
		self.handles: typing.List[TimerHandle] = []
		self.duration_seconds = 0.0

		# voice index -> (event index, midi note) of the note it is holding
		self.sounding: typing.Dict[int, typing.Tuple[int, int]] = {}


	@property
	def finished (self) -> bool:

		return self.state in (SessionState.COMPLETED, SessionState.CANCELLED)


	def add_timer (self, delay: float, callback: typing.Callable[..., typing.Any], *args: typing.Any) -> None:

		"""Schedule a callback and keep its handle for cancellation."""

		self.handles.append(self.clock.call_later(max(0.0, delay), callback, *args))


	def cancel_timers (self) -> None:

		"""Cancel every pending timer. Cancelling a fired timer is harmless."""

		handles, self.handles = self.handles, []

		for handle in handles:
			handle.cancel()

		logger.debug(f"Cancelled {len(handles)} timers")


class Scheduler:

	"""
	Plays voices through a `MidiOutput`.
	"""

	def __init__ (self, output: typing.Optional[melodyline.output.MidiOutput] = None, clock: typing.Optional[Clock] = None) -> None:

		"""
		Parameters:
			output: Where notes are sent. Defaults to a silent output.
			clock: Timer source. Defaults to the running asyncio loop at the
				time `play` is called.
		"""

		self.output = output if output is not None else melodyline.output.MidiOutput()
		self._clock = clock
		self._session: typing.Optional[PlaybackSession] = None
		self.events = melodyline.event_emitter.EventEmitter(EVENT_NAMES)


	@property
	def session (self) -> typing.Optional[PlaybackSession]:

		"""The active session, or None when idle."""

		return self._session


	@property
	def is_playing (self) -> bool:

		return self._session is not None and not self._session.finished


	def on_event (self, event_name: str, callback: typing.Callable[..., typing.Any]) -> None:

		"""
		Register a callback for a named playback event.
		"""

		self.events.on(event_name, callback)


	@staticmethod
	def eligible_voices (voices: typing.Sequence[melodyline.model.Voice]) -> typing.List[typing.Tuple[int, melodyline.model.Voice]]:

		"""
		Return ``(index, voice)`` for every voice that will play.

		When any voice is soloed only soloed voices are audible, regardless of
		mute; otherwise every unmuted voice is. An audible voice plays when its
		sequence is non-empty, error-free and has a positive duration.
		"""

		any_solo = any(voice.solo for voice in voices)
		eligible: typing.List[typing.Tuple[int, melodyline.model.Voice]] = []

		for index, voice in enumerate(voices):

			audible = voice.solo if any_solo else not voice.mute

			if not audible:
				continue

			sequence = voice.sequence

			if sequence.has_errors:
				logger.warning(f"Voice {index} skipped: sequence has {len(sequence.errors)} error(s)")
				continue

			if sequence.is_empty or sequence.total_duration_ms <= 0:
				continue

			eligible.append((index, voice))

		return eligible


	def play (self, voices: typing.Sequence[melodyline.model.Voice], speed: float = 1.0) -> "asyncio.Future[SessionState]":

		"""
		Start playing ``voices`` and return a future for the session's end.

		Any session already running is stopped first. The future resolves to
		`SessionState.COMPLETED` after the longest voice finishes, or to
		`SessionState.CANCELLED` if `stop` is called first.

		Parameters:
			voices: The voices to play. Their list index picks the MIDI channel.
			speed: Tempo multiplier - 2.0 plays twice as fast.

		Raises:
			ValueError: If ``speed`` is not positive.
			PlaybackError: If no voice is eligible to play. Nothing is stopped
				or scheduled in that case.
		"""

		if speed <= 0:
			raise ValueError("speed must be positive")

		eligible = self.eligible_voices(voices)

		if not eligible:
			raise PlaybackError("Nothing to play: no unmuted voice has a non-empty, error-free sequence")

		self.stop()

		# A "stop" listener may have started a session of its own.
		while self._session is not None:
			logger.debug("Cancelling a session started while the previous one was stopping")
			self._finish(self._session, SessionState.CANCELLED)

		clock: Clock = self._clock if self._clock is not None else asyncio.get_running_loop()
		session = PlaybackSession(clock, speed)
		self._session = session

		for index, voice in eligible:

			spec = melodyline.constants.instruments.INSTRUMENTS[voice.instrument]

			scheduled = ScheduledVoice(
				index = index,
				voice = voice,
				channel = melodyline.constants.channel_for_voice(index),
				velocity = voice.velocity,
				gate = spec.gate,
				end_seconds = voice.sequence.total_duration_ms / speed / 1000.0
			)

			session.voices.append(scheduled)
			self.output.program_change(scheduled.channel, spec.program)

			for event_index, event in enumerate(voice.sequence):

				if not event.is_playable:
					continue

				session.add_timer(event.start_ms / speed / 1000.0, self._fire_note, session, scheduled, event_index)

			session.add_timer(scheduled.end_seconds, self._fire_voice_end, session, scheduled)

		session.duration_seconds = max(scheduled.end_seconds for scheduled in session.voices)
		session.add_timer(session.duration_seconds, self._fire_complete, session)
		session.state = SessionState.SCHEDULED

		logger.info(f"Playing {len(session.voices)} voice(s) at speed {speed} ({session.duration_seconds:.3f}s)")

		return session.future


	def stop (self) -> None:

		"""
		Cancel the active session, if any.

		Safe to call when idle and from inside a timer or listener callback.
		"""

		session = self._session

		if session is None:
			return

		self._finish(session, SessionState.CANCELLED)

		logger.info("Playback stopped")

		self.events.emit("stop")


	def _is_current (self, session: PlaybackSession) -> bool:

		return session is self._session and not session.finished


	def _release (self, session: PlaybackSession, scheduled: ScheduledVoice) -> None:

		"""Release whatever note the voice is holding."""

		held = session.sounding.pop(scheduled.index, None)

		if held is not None:
			self.output.note_off(scheduled.channel, held[1])


	def _fire_note (self, session: PlaybackSession, scheduled: ScheduledVoice, event_index: int) -> None:

		if not self._is_current(session):
			return

		session.state = SessionState.PLAYING

		event = scheduled.voice.sequence[event_index]
		note = event.midi_note
		assert note is not None

		# Voices are monophonic: a new note always ends the previous one.
		self._release(session, scheduled)

		seconds = event.duration_ms * scheduled.gate / session.speed / 1000.0

		scheduled.voice.current_event_index = event_index
		self.output.note_on(scheduled.channel, note, scheduled.velocity)
		session.sounding[scheduled.index] = (event_index, note)
		session.add_timer(seconds, self._fire_release, session, scheduled, event_index)

		logger.debug(f"Voice {scheduled.index}: note {note} (event {event_index}) for {seconds:.3f}s")

		self.events.emit("cursor", scheduled.index, event_index)

		if self._is_current(session):
			self.events.emit("note", scheduled.index, event_index, note, seconds)


	def _fire_release (self, session: PlaybackSession, scheduled: ScheduledVoice, event_index: int) -> None:

		if not self._is_current(session):
			return

		held = session.sounding.get(scheduled.index)

		# A later note on this voice may already have taken over.
		if held is not None and held[0] == event_index:
			self._release(session, scheduled)


	def _fire_voice_end (self, session: PlaybackSession, scheduled: ScheduledVoice) -> None:

		if not self._is_current(session):
			return

		self._release(session, scheduled)
		scheduled.voice.current_event_index = None

		self.events.emit("cursor", scheduled.index, None)

		if self._is_current(session):
			self.events.emit("voice_end", scheduled.index)


	def _fire_complete (self, session: PlaybackSession) -> None:

		if not self._is_current(session):
			return

		self._finish(session, SessionState.COMPLETED)

		logger.info("Playback complete")

		self.events.emit("complete")


	def _finish (self, session: PlaybackSession, state: SessionState) -> None:

		"""
		End a session: cancel its timers, silence it, clear cursors and
		resolve its future. Runs at most once per session.
		"""

		if session.finished:
			return

		session.state = state
		session.cancel_timers()

		if session is self._session:
			self._session = None

		for scheduled in session.voices:
			self._release(session, scheduled)

			if scheduled.voice.current_event_index is not None:
				scheduled.voice.current_event_index = None
				self.events.emit("cursor", scheduled.index, None)

		if not session.future.done():
			session.future.set_result(state)
