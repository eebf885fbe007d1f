"""Pitch names, chromatic indices and MIDI note numbers.

The notation only ever writes sharps, so the 12-tone table below is the
canonical spelling of every pitch class. Flat spellings are accepted on
lookup and normalized to their sharp equivalent (``Bb`` -> ``A#``).

MIDI numbering follows the usual convention: **C4 = 60**, A4 = 69.

Module-level constants:
- `CHROMATIC_SCALE`: pitch class (0-11) -> sharp spelling
- `NOTE_NAME_TO_INDEX`: sharp and flat spellings -> pitch class
- `FLAT_TO_SHARP`: the five flat spellings and their sharp equivalents
"""

import typing

import melodyline.constants


CHROMATIC_SCALE: typing.List[str] = [
	"C",
	"C#",
	"D",
	"D#",
	"E",
	"F",
	"F#",
	"G",
	"G#",
	"A",
	"A#",
	"B",
]

FLAT_TO_SHARP: typing.Dict[str, str] = {
	"Db": "C#",
	"Eb": "D#",
	"Gb": "F#",
	"Ab": "G#",
	"Bb": "A#",
}

NOTE_NAME_TO_INDEX: typing.Dict[str, int] = {name: index for index, name in enumerate(CHROMATIC_SCALE)}
NOTE_NAME_TO_INDEX.update({flat: NOTE_NAME_TO_INDEX[sharp] for flat, sharp in FLAT_TO_SHARP.items()})

SEMITONES_PER_OCTAVE = 12

# Lowest and highest MIDI notes the notation can express (C0 and B8).
LOWEST_MIDI_NOTE = (melodyline.constants.MIN_OCTAVE + 1) * SEMITONES_PER_OCTAVE
HIGHEST_MIDI_NOTE = (melodyline.constants.MAX_OCTAVE + 2) * SEMITONES_PER_OCTAVE - 1


def normalize_name (name: str) -> str:

	"""Return the sharp spelling of a note name (``"bb"`` -> ``"A#"``)."""

	if not name:
		raise ValueError("Empty note name")

	spelled = name[0].upper() + name[1:]

	return FLAT_TO_SHARP.get(spelled, spelled)


def chromatic_index (name: str) -> int:

	"""Return the pitch class (0-11) of a note name.

	Parameters:
		name: Note name with an optional ``#`` or ``b`` (e.g. ``"C"``, ``"F#"``, ``"Bb"``).

	Raises:
		ValueError: If the name is not recognised.

	Example:
		```python
		chromatic_index("C")   # → 0
		chromatic_index("Bb")  # → 10
		```
	"""

	normalized = normalize_name(name)

	if normalized not in NOTE_NAME_TO_INDEX:
		raise ValueError(
			f"Unknown note name: {name!r}. Expected e.g. 'C', 'F#', 'Bb'."
		)

	return NOTE_NAME_TO_INDEX[normalized]


def midi_note (name: str, octave: int) -> int:

	"""Return the MIDI note number for a note name and octave (A4 -> 69)."""

	return (octave + 1) * SEMITONES_PER_OCTAVE + chromatic_index(name)


def from_midi_note (note: int) -> typing.Tuple[str, int]:

	"""Split a MIDI note number into its sharp spelling and octave (61 -> ``("C#", 4)``)."""

	octave, index = divmod(note, SEMITONES_PER_OCTAVE)

	return CHROMATIC_SCALE[index], octave - 1


def is_representable (note: int) -> bool:

	"""True when a MIDI note falls inside the notation's octave range 0-8."""

	return LOWEST_MIDI_NOTE <= note <= HIGHEST_MIDI_NOTE


def transpose_name (name: str, octave: int, semitones: int) -> typing.Tuple[str, int]:

	"""Shift a pitch by semitones, carrying into the octave.

	The octave is carried base-12, so multi-octave shifts land correctly, and
	then wrapped cyclically into the 0-8 range (9 -> 0, -1 -> 8).

	Example:
		```python
		transpose_name("B", 4, 1)    # → ("C", 5)
		transpose_name("Bb", 4, 0)   # → ("A#", 4)
		transpose_name("B", 8, 1)    # → ("C", 0)
		```
	"""

	carry, index = divmod(chromatic_index(name) + semitones, SEMITONES_PER_OCTAVE)

	wrapped = (octave + carry - melodyline.constants.MIN_OCTAVE) % melodyline.constants.OCTAVE_COUNT

	return CHROMATIC_SCALE[index], wrapped + melodyline.constants.MIN_OCTAVE
