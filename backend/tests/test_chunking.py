import pytest

from video_pipeline.services.chunking import chunk_transcript, get_encoding


def _words(n: int) -> str:
    return " ".join(f"w{i}" for i in range(n))


def _window_starts(n_tokens: int, target_size: int = 500, overlap: int = 50) -> list[int]:
    starts = [0]
    while starts[-1] + target_size < n_tokens:
        starts.append(starts[-1] + target_size - overlap)
    return starts


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_blank_transcript_has_no_chunks(text):
    assert chunk_transcript(text) == []


def test_short_transcript_is_one_chunk():
    text = "  Hello   world, this is short.  "
    chunks = chunk_transcript(text)

    assert len(chunks) == 1
    assert chunks[0].text == "Hello   world, this is short."
    assert chunks[0].token_count == len(get_encoding().encode(text))
    assert chunks[0].index == 0


def test_exactly_target_size_is_one_chunk():
    text = _words(300)
    n_tokens = len(get_encoding().encode(text))

    assert len(chunk_transcript(text, target_size=n_tokens, overlap=10)) == 1
    assert len(chunk_transcript(text, target_size=n_tokens - 1, overlap=10)) == 2


def test_long_transcript_uses_overlapping_token_windows():
    encoding = get_encoding()
    text = _words(1000)
    tokens = encoding.encode(text)

    chunks = chunk_transcript(text)

    starts = _window_starts(len(tokens))
    assert [c.index for c in chunks] == list(range(len(starts)))
    assert [c.text for c in chunks] == [encoding.decode(tokens[s:s + 500]).strip() for s in starts]
    assert all(c.token_count == 500 for c in chunks[:-1])
    assert chunks[-1].token_count == len(tokens) - starts[-1]
    assert chunks[-1].text.endswith("w999")


def test_windows_count_tokens_not_words():
    # Each word is several BPE tokens, so a word split would give only two chunks
    text = " ".join(["antidisestablishmentarianism"] * 600)
    n_tokens = len(get_encoding().encode(text))

    chunks = chunk_transcript(text)

    assert n_tokens > 1000
    assert len(chunks) == len(_window_starts(n_tokens)) > 2
    assert chunks[0].token_count == 500
    assert len(chunks[0].text.split()) < 500


def test_custom_window():
    encoding = get_encoding()
    text = _words(10)
    tokens = encoding.encode(text)

    chunks = chunk_transcript(text, target_size=4, overlap=1)

    starts = _window_starts(len(tokens), target_size=4, overlap=1)
    assert [c.text for c in chunks] == [encoding.decode(tokens[s:s + 4]).strip() for s in starts]


def test_overlap_must_be_smaller_than_window():
    with pytest.raises(ValueError):
        chunk_transcript(_words(10), target_size=5, overlap=5)
