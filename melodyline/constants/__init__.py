"""Constants for melodyline.

This package contains:

- Notation defaults shared by the parser, the serializer and the codec
- MIDI timing defaults used when converting milliseconds to ticks
- ``melodyline.constants.instruments`` - the closed set of playable instruments

The timing defaults are chosen so that one tick is exactly one millisecond:
at 125 BPM a beat lasts 480 ms, and a file written with 480 ticks per beat
therefore stores every duration at millisecond resolution.
"""

# Notation defaults - omitted values are filled in with these and omitted
# again on serialization.

DEFAULT_OCTAVE = 4
DEFAULT_DURATION_MS = 1000

MIN_OCTAVE = 0
MAX_OCTAVE = 8
OCTAVE_COUNT = MAX_OCTAVE - MIN_OCTAVE + 1

COMMENT_DELIMITER = "//"

# MIDI timing defaults

DEFAULT_BPM = 125
DEFAULT_TICKS_PER_BEAT = 480

# MIDI channels (0-indexed). Channel 9 is General MIDI percussion and is
# never assigned to a melodic voice.

MIDI_CHANNEL_COUNT = 16
MIDI_DRUM_CHANNEL = 9

MAX_VELOCITY = 127


def channel_for_voice (voice_index: int) -> int:

	"""
	Map a voice index to a MIDI channel, skipping the percussion channel.

	Indices beyond the 15 melodic channels wrap around.
	"""

	if voice_index < 0:
		raise ValueError("voice_index cannot be negative")

	melodic = [ch for ch in range(MIDI_CHANNEL_COUNT) if ch != MIDI_DRUM_CHANNEL]

	return melodic[voice_index % len(melodic)]
