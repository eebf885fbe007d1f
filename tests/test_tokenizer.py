import melodyline.tokenizer


def test_splits_on_start_characters () -> None:

	"""Each pitch letter or pause starts a new token."""

	assert melodyline.tokenizer.split_elements("C4(1000)G#P(500)") == ["C4(1000)", "G#", "P(500)"]


def test_lowercase_start_characters () -> None:

	"""Lowercase letters and p start tokens too."""

	assert melodyline.tokenizer.split_elements("c4d#5p") == ["c4", "d#5", "p"]


def test_whitespace_between_tokens_is_skipped () -> None:

	"""Spaces and newlines outside tokens do not appear in any token."""

	assert melodyline.tokenizer.split_elements("  C4 \n\t D4(500)\n") == ["C4", "D4(500)"]


def test_whitespace_inside_token_is_compacted () -> None:

	"""Whitespace between parts of one token is dropped from its text but kept in raw."""

	tokens = melodyline.tokenizer.tokenize("C 4")

	assert len(tokens) == 1
	assert tokens[0].text == "C4"
	assert tokens[0].raw == "C 4"


def test_parentheses_are_opaque () -> None:

	"""Letters inside parentheses do not start tokens; whitespace there is kept."""

	assert melodyline.tokenizer.split_elements("C(1 0 E)D") == ["C(1 0 E)", "D"]


def test_comment_spans_newlines_and_letters () -> None:

	"""A comment runs to the closing delimiter, letters and newlines included."""

	tokens = melodyline.tokenizer.split_elements("C // A verse\nBridge // D")

	assert tokens == ["C", "// A verse\nBridge //", "D"]


def test_unterminated_comment_consumes_rest () -> None:

	"""Without a closing delimiter the comment runs to the end of input."""

	assert melodyline.tokenizer.split_elements("C // never closed D E") == ["C", "// never closed D E"]


def test_single_slash_is_ordinary () -> None:

	"""A lone slash belongs to the current token."""

	assert melodyline.tokenizer.split_elements("C/4 D") == ["C/4", "D"]


def test_leading_garbage_is_its_own_token () -> None:

	"""Text before any start character is kept so it can be reported."""

	assert melodyline.tokenizer.split_elements("xyz C4") == ["xyz", "C4"]


def test_offsets_locate_tokens () -> None:

	"""start/end point back into the source text."""

	source = "C4  G#(250)"
	tokens = melodyline.tokenizer.tokenize(source)

	assert [(t.start, t.end) for t in tokens] == [(0, 2), (4, 11)]
	assert source[tokens[1].start:tokens[1].end] == "G#(250)"


def test_empty_input () -> None:

	"""No text, no tokens."""

	assert melodyline.tokenizer.tokenize("") == []
	assert melodyline.tokenizer.tokenize("   \n") == []


def test_token_runs_until_next_start_character () -> None:

	"""Trailing non-start characters stay with the token before them."""

	assert melodyline.tokenizer.split_elements("C4 xyz D") == ["C4xyz", "D"]
