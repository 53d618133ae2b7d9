"""
Sentence-aligned text chunking.

Token budgets are approximated as character counts through a fixed ratio,
so no tokenizer is needed. Chunk boundaries are snapped to the nearest
sentence or paragraph end around the size budget when one is close enough.
"""
import re
from typing import List, NamedTuple, Optional

from .errors import InvalidInput
from .logging_config import logger

# ".", "!" or "?" followed by whitespace, or a blank line
SENTENCE_END = re.compile(r"[.!?]\s+|(?:\r?\n){2,}")


class ChunkMetadata(NamedTuple):
    """A chunk before it has been embedded and persisted."""

    content: str
    chunk_index: int
    start_char: int
    end_char: int


def find_sentence_end(text: str, target: int, window: int, floor: int = 0) -> int:
    """
    Return the offset just past the sentence terminator nearest to `target`.

    Terminators are searched in [target - window, target + window]; candidates
    ending before `floor` are ignored. Ties go to the earlier candidate.
    Returns -1 when nothing qualifies.
    """
    lo = max(0, target - window)
    hi = min(len(text), target + window)

    best_pos = -1
    best_distance = None
    for match in SENTENCE_END.finditer(text, lo, hi):
        pos = match.end()
        if pos < floor:
            continue
        distance = abs(pos - target)
        if best_distance is None or distance < best_distance:
            best_pos, best_distance = pos, distance
    return best_pos


def validate_chunking_config(
    chunk_size_tokens: int,
    overlap_tokens: int,
    min_chunk_tokens: int,
    tokens_per_char: int,
) -> None:
    if chunk_size_tokens <= 0:
        raise InvalidInput("chunk_size_tokens must be positive", field="chunk_size_tokens")
    if tokens_per_char <= 0:
        raise InvalidInput("tokens_per_char must be positive", field="tokens_per_char")
    if min_chunk_tokens < 0:
        raise InvalidInput("min_chunk_tokens must not be negative", field="min_chunk_tokens")
    if not 0 <= overlap_tokens < chunk_size_tokens:
        raise InvalidInput("overlap_tokens must be in [0, chunk_size_tokens)", field="overlap_tokens")


def chunk_text(
    text: Optional[str],
    chunk_size_tokens: int = 700,
    overlap_tokens: int = 150,
    min_chunk_tokens: int = 400,
    tokens_per_char: int = 4,
) -> List[ChunkMetadata]:
    """
    Split text into ordered, sentence-aligned chunks.

    Args:
        text: Raw extracted text; it is trimmed first
        chunk_size_tokens: Target chunk size in tokens
        overlap_tokens: Upper bound on how far a window may reach back into the previous chunk
        min_chunk_tokens: Non-final chunks smaller than this are not emitted
        tokens_per_char: Characters counted per token when converting budgets

    Returns:
        Chunks with dense zero-based indices; offsets refer to the trimmed text.
        Blank input gives an empty list.
    """
    validate_chunking_config(chunk_size_tokens, overlap_tokens, min_chunk_tokens, tokens_per_char)

    if text is None or not text.strip():
        logger.warning("Empty text received for chunking")
        return []

    text = text.strip()
    n = len(text)
    estimated_chars = chunk_size_tokens * tokens_per_char
    overlap_chars = overlap_tokens * tokens_per_char
    min_chars = min_chunk_tokens * tokens_per_char

    chunks: List[ChunkMetadata] = []
    start = 0

    while start < n:
        end = min(start + estimated_chars, n)

        # Not the tail: try to cut on a sentence or paragraph end
        if end < n:
            # A boundary before this floor would leave a gap before the next window
            floor = max(start + estimated_chars - overlap_chars, start + min_chars, start + 1)
            sentence_end = find_sentence_end(text, end, estimated_chars // 2, floor)
            if sentence_end > start:
                end = sentence_end

        content = text[start:end].strip()
        is_last = end >= n
        if content and (len(content) // tokens_per_char >= min_chunk_tokens or is_last):
            chunks.append(ChunkMetadata(content, len(chunks), start, end))
        else:
            logger.debug("Skipping undersized chunk", start=start, end=end, chars=len(content))

        next_start = max(start + estimated_chars - overlap_chars, end)

        # Safety check: ensure we're making progress
        if next_start <= start:
            break
        start = next_start

    logger.debug("Chunking complete", chars=n, chunks=len(chunks))
    return chunks


class ChunkingEngine:
    """chunk_text bound to one validated configuration."""

    def __init__(
        self,
        chunk_size_tokens: int = 700,
        overlap_tokens: int = 150,
        min_chunk_tokens: int = 400,
        tokens_per_char: int = 4,
    ):
        validate_chunking_config(chunk_size_tokens, overlap_tokens, min_chunk_tokens, tokens_per_char)
        self.chunk_size_tokens = chunk_size_tokens
        self.overlap_tokens = overlap_tokens
        self.min_chunk_tokens = min_chunk_tokens
        self.tokens_per_char = tokens_per_char

    @classmethod
    def from_settings(cls, settings) -> "ChunkingEngine":
        return cls(
            chunk_size_tokens=settings.chunk_size_tokens,
            overlap_tokens=settings.chunk_overlap_tokens,
            min_chunk_tokens=settings.chunk_min_tokens,
            tokens_per_char=settings.tokens_per_char,
        )

    def chunk(self, text: Optional[str]) -> List[ChunkMetadata]:
        return chunk_text(
            text,
            chunk_size_tokens=self.chunk_size_tokens,
            overlap_tokens=self.overlap_tokens,
            min_chunk_tokens=self.min_chunk_tokens,
            tokens_per_char=self.tokens_per_char,
        )
