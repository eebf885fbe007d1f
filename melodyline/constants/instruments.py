"""Playable instruments and their synthesis parameters.

Playback and export both go through General MIDI, so an instrument is a
program number plus the two parameters the scheduler applies to every
note it triggers:

- ``velocity`` - the note-on velocity at full voice volume (1.0)
- ``gate`` - the fraction of each written duration that actually sounds,
  so repeated notes on the same pitch stay articulated

The set of instruments is closed: every ``InstrumentKind`` must have an
entry in ``INSTRUMENTS``, and this is checked when the module is imported.

    import melodyline.constants.instruments as instruments

    spec = instruments.INSTRUMENTS[instruments.InstrumentKind.FLUTE]
    spec.program    # 73
"""

import dataclasses
import enum
import typing


class InstrumentKind (enum.Enum):

	"""
	The instruments a voice can be played or exported with.
	"""

	PIANO = "piano"
	ORGAN = "organ"
	GUITAR = "guitar"
	BASS = "bass"
	VIOLIN = "violin"
	FLUTE = "flute"
	TRUMPET = "trumpet"
	SYNTH_LEAD = "synth_lead"

	@classmethod
	def from_name (cls, name: str) -> "InstrumentKind":

		"""
		Resolve a configuration string such as ``"piano"`` or ``"Synth Lead"``.

		Raises:
			ValueError: If the name does not match any instrument.
		"""

		key = name.strip().lower().replace(" ", "_").replace("-", "_")

		for kind in cls:
			if kind.value == key:
				return kind

		raise ValueError(
			f"Unknown instrument: {name!r}. Expected one of {[kind.value for kind in cls]}"
		)


@dataclasses.dataclass(frozen=True)
class InstrumentSpec:

	"""
	MIDI parameters for one instrument.

	Attributes:
		program: General MIDI program number (0-127, 0-indexed).
		velocity: Note-on velocity at full voice volume.
		gate: Fraction of the written duration that sounds (0 < gate <= 1).
	"""

	program: int
	velocity: int
	gate: float


INSTRUMENTS: typing.Dict[InstrumentKind, InstrumentSpec] = {
	InstrumentKind.PIANO:      InstrumentSpec(program=0,  velocity=100, gate=0.95),
	InstrumentKind.ORGAN:      InstrumentSpec(program=19, velocity=90,  gate=1.0),
	InstrumentKind.GUITAR:     InstrumentSpec(program=24, velocity=96,  gate=0.9),
	InstrumentKind.BASS:       InstrumentSpec(program=33, velocity=110, gate=0.9),
	InstrumentKind.VIOLIN:     InstrumentSpec(program=40, velocity=88,  gate=1.0),
	InstrumentKind.FLUTE:      InstrumentSpec(program=73, velocity=84,  gate=0.95),
	InstrumentKind.TRUMPET:    InstrumentSpec(program=56, velocity=104, gate=0.9),
	InstrumentKind.SYNTH_LEAD: InstrumentSpec(program=80, velocity=100, gate=0.85),
}

DEFAULT_INSTRUMENT = InstrumentKind.PIANO


# GM groups programs in families of eight (0-7 pianos, 16-23 organs, ...).
_FAMILY_TO_KIND: typing.Dict[int, InstrumentKind] = {
	0:  InstrumentKind.PIANO,
	2:  InstrumentKind.ORGAN,
	3:  InstrumentKind.GUITAR,
	4:  InstrumentKind.BASS,
	5:  InstrumentKind.VIOLIN,
	7:  InstrumentKind.TRUMPET,
	9:  InstrumentKind.FLUTE,
	10: InstrumentKind.SYNTH_LEAD,
}


def instrument_for_program (program: int) -> InstrumentKind:

	"""
	Return the instrument closest to a General MIDI program number.

	Exact program matches win; otherwise the GM family decides. Programs
	outside every known family map to the default instrument.
	"""

	for kind, spec in INSTRUMENTS.items():
		if spec.program == program:
			return kind

	return _FAMILY_TO_KIND.get(program // 8, DEFAULT_INSTRUMENT)


def _check_table () -> None:

	"""Fail at import if the table and the enum disagree."""

	missing = [kind for kind in InstrumentKind if kind not in INSTRUMENTS]

	if missing:
		raise RuntimeError(f"No instrument parameters defined for {missing}")

	for kind, spec in INSTRUMENTS.items():
		if not 0 <= spec.program <= 127:
			raise RuntimeError(f"{kind}: program {spec.program} outside 0-127")
		if not 1 <= spec.velocity <= 127:
			raise RuntimeError(f"{kind}: velocity {spec.velocity} outside 1-127")
		if not 0 < spec.gate <= 1:
			raise RuntimeError(f"{kind}: gate {spec.gate} outside (0, 1]")


_check_table()
