import pytest

import melodyline.parser
import melodyline.transforms


def _events (text: str) -> list:

	return list(melodyline.parser.parse(text).events)


def test_transpose_up_two () -> None:

	"""Notes move, durations and pauses stay."""

	assert melodyline.transforms.transpose(_events("C4 E4(500) P G4"), 2) == "D F#(500) P A"


def test_transpose_lowercase_input () -> None:

	"""Lowercase input comes out uppercase."""

	assert melodyline.transforms.transpose(_events("a#3(250) c"), 1) == "B3(250) C#"


def test_transpose_wraps_at_top_octave () -> None:

	"""B8 up one semitone becomes C0."""

	assert melodyline.transforms.transpose(_events("B8"), 1) == "C0"
	assert melodyline.transforms.transpose(_events("C0"), -1) == "B8"


def test_transpose_inverse_within_range () -> None:

	"""Up then down by the same amount gives back equal events."""

	original = _events("C4(500) D#5 P(250) // hook // G3(125)")
	up = melodyline.transforms.transpose(original, 7)
	back = melodyline.transforms.transpose(_events(up), -7)

	assert _events(back) == original


def test_transpose_keeps_comments () -> None:

	"""Comments pass through verbatim."""

	assert melodyline.transforms.transpose(_events("// intro // C"), 12) == "// intro // C5"


def test_transpose_refuses_errors () -> None:

	"""A single error aborts the whole transform."""

	with pytest.raises(melodyline.transforms.TransformError):
		melodyline.transforms.transpose(_events("C D9 E"), 1)


def test_scale_exact_products () -> None:

	"""Float noise in the product does not round the result up."""

	assert melodyline.transforms.scale_duration(1000, 1.1) == 1100
	assert melodyline.transforms.scale_duration(1000, 0.5) == 500


def test_scale_rounds_up () -> None:

	"""Fractional products round up to whole milliseconds."""

	assert melodyline.transforms.scale_duration(333, 0.5) == 167
	assert melodyline.transforms.scale_duration(1, 0.1) == 1


def test_scale_durations_notes_and_pauses () -> None:

	"""Notes and pauses scale, defaults are omitted again, comments stay."""

	text = melodyline.transforms.scale_durations(_events("C(500) // x // P(250) G5(2000)"), 2)

	assert text == "C // x // P(500) G5(4000)"


def test_scale_composition_rounds_each_step () -> None:

	"""Scaling by 0.1 then 10 is not the same as scaling by 1."""

	step = melodyline.transforms.scale_durations(_events("C(1)"), 0.1)
	assert step == "C(1)"

	assert melodyline.transforms.scale_durations(_events(step), 10) == "C(10)"


@pytest.mark.parametrize("multiplier", [0, -1, -0.5])
def test_scale_rejects_non_positive_multiplier (multiplier: float) -> None:

	"""Only positive multipliers are accepted."""

	with pytest.raises(ValueError):
		melodyline.transforms.scale_durations(_events("C"), multiplier)


def test_scale_refuses_errors () -> None:

	"""Invalid pause durations block scaling."""

	with pytest.raises(melodyline.transforms.TransformError):
		melodyline.transforms.scale_durations(_events("C P(0)"), 2)


def test_transforms_do_not_touch_input () -> None:

	"""The sequence passed in is left as it was."""

	sequence = melodyline.parser.parse("C(500) E")
	before = list(sequence.events)

	melodyline.transforms.transpose(sequence, 3)
	melodyline.transforms.scale_durations(sequence, 3)

	assert list(sequence.events) == before


def test_transpose_round_trip_across_wrap () -> None:

	"""Wrapping is cyclic, so going back down restores notes that crossed B8 -> C0."""

	up = melodyline.transforms.transpose(_events("B8(500) A8 C"), 3)
	assert up == "D0(500) C0 D#"

	assert melodyline.transforms.transpose(_events(up), -3) == "B8(500) A8 C"
