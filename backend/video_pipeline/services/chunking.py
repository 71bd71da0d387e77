from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

import tiktoken

TARGET_CHUNK_SIZE = 500  # tokens
OVERLAP_SIZE = 50  # tokens repeated at the start of the next chunk
ENCODING_NAME = "cl100k_base"


@dataclass(frozen=True)
class Chunk:
    text: str
    token_count: int
    index: int


@lru_cache(maxsize=1)
def get_encoding() -> tiktoken.Encoding:
    return tiktoken.get_encoding(ENCODING_NAME)


def chunk_transcript(
    transcript: str,
    *,
    target_size: int = TARGET_CHUNK_SIZE,
    overlap: int = OVERLAP_SIZE,
) -> list[Chunk]:
    """
    Split a transcript into overlapping windows of BPE tokens.

    Chunking rule:
      - blank transcript -> no chunks
      - fits in one window -> a single chunk with the whole (stripped) text
      - otherwise windows of ``target_size`` tokens, each starting
        ``target_size - overlap`` tokens after the previous one, until the
        last token is covered.  Each window is decoded back to text and
        stripped; ``token_count`` is the window's token count.
    """
    if overlap >= target_size:
        raise ValueError("overlap must be smaller than target_size")
    if not transcript or not transcript.strip():
        return []

    encoding = get_encoding()
    tokens = encoding.encode(transcript)
    if len(tokens) <= target_size:
        return [Chunk(text=transcript.strip(), token_count=len(tokens), index=0)]

    chunks: list[Chunk] = []
    start = 0
    while start < len(tokens):
        end = min(start + target_size, len(tokens))
        window = tokens[start:end]
        chunks.append(Chunk(text=encoding.decode(window).strip(), token_count=len(window), index=len(chunks)))
        if end == len(tokens):
            break
        start = end - overlap
    return chunks
