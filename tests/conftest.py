import asyncio
import heapq
import itertools
import typing

import mido
import pytest


class FakeMidiOut:

	"""MIDI output stub that records what is sent."""

	def __init__ (self) -> None:

		self.messages: typing.List[mido.Message] = []
		self.closed = False

	def send (self, message: mido.Message) -> None:

		"""Record an outgoing MIDI message."""

		self.messages.append(message)

	def close (self) -> None:

		self.closed = True

	def of_type (self, *types: str) -> typing.List[mido.Message]:

		"""Recorded messages of the given types, in order."""

		return [m for m in self.messages if m.type in types]


class FakeTimer:

	"""A timer on the fake clock."""

	def __init__ (self, when: float, callback: typing.Callable[..., typing.Any], args: typing.Tuple[typing.Any, ...]) -> None:

		self.when = when
		self.callback = callback
		self.args = args
		self.cancelled = False

	def cancel (self) -> None:

		self.cancelled = True


class FakeClock:

	"""
	A manually advanced clock with the scheduler's Clock interface.

	Timers due at the same time fire in the order they were created.
	"""

	def __init__ (self) -> None:

		self.now = 0.0
		self._timers: typing.List[typing.Tuple[float, int, FakeTimer]] = []
		self._counter = itertools.count()

	def time (self) -> float:

		return self.now

	def create_future (self) -> "asyncio.Future[typing.Any]":

		return asyncio.get_running_loop().create_future()

	def call_later (self, delay: float, callback: typing.Callable[..., typing.Any], *args: typing.Any) -> FakeTimer:

		timer = FakeTimer(self.now + delay, callback, args)
		heapq.heappush(self._timers, (timer.when, next(self._counter), timer))
		return timer

	@property
	def pending (self) -> int:

		"""Number of timers neither fired nor cancelled."""

		return sum(1 for _, _, timer in self._timers if not timer.cancelled)

	def advance (self, seconds: float) -> None:

		"""Move time forward, firing every timer that falls due on the way."""

		target = self.now + seconds

		while self._timers and self._timers[0][0] <= target + 1e-9:
			when, _, timer = heapq.heappop(self._timers)
			if timer.cancelled:
				continue
			self.now = when
			timer.callback(*timer.args)

		self.now = target

	def run_all (self) -> None:

		"""Fire every remaining timer."""

		while self.pending:
			latest = max(when for when, _, timer in self._timers if not timer.cancelled)
			self.advance(latest - self.now)


@pytest.fixture
def fake_clock () -> FakeClock:

	return FakeClock()


@pytest.fixture
def fake_port () -> FakeMidiOut:

	return FakeMidiOut()


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch, fake_port: FakeMidiOut) -> FakeMidiOut:

	"""Patch mido so opening any output returns the recording fake port."""

	monkeypatch.setattr(mido, "get_output_names", lambda: ["Dummy MIDI"])
	monkeypatch.setattr(mido, "open_output", lambda name: fake_port)

	return fake_port
