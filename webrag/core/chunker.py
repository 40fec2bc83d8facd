import re
from typing import List

_SECTION_BREAK = re.compile(r"\n\s*\n+")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")

SECTION_SEPARATOR = "\n\n"
SENTENCE_SEPARATOR = " "


def _pack(units: List[str], max_chunk_size: int, separator: str) -> List[str]:
    """Greedily join units into pieces no longer than max_chunk_size.

    A unit that is already too long on its own is emitted as a piece of its
    own rather than being cut.
    """
    pieces: List[str] = []
    current = ""
    for unit in units:
        if not current:
            current = unit
        elif len(current) + len(separator) + len(unit) <= max_chunk_size:
            current += separator + unit
        else:
            pieces.append(current)
            current = unit
    if current:
        pieces.append(current)
    return pieces


def split_sentences(section: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_BREAK.split(section) if s.strip()]


def split_text_into_chunks(text: str, max_chunk_size: int = 500) -> List[str]:
    """Split text into ordered chunks of at most max_chunk_size characters.

    Blank-line separated sections are packed together first. A section that
    does not fit into an empty chunk is broken on sentence boundaries and
    its sentences are packed the same way. Sentences are never cut, so a
    single sentence longer than max_chunk_size comes back whole.
    """
    if max_chunk_size <= 0:
        raise ValueError("max_chunk_size must be positive")
    if not text or not text.strip():
        return []

    sections = [s.strip() for s in _SECTION_BREAK.split(text) if s.strip()]

    chunks: List[str] = []
    current = ""
    for section in sections:
        if not current and len(section) <= max_chunk_size:
            current = section
            continue
        if current and len(current) + len(SECTION_SEPARATOR) + len(section) <= max_chunk_size:
            current += SECTION_SEPARATOR + section
            continue

        if current:
            chunks.append(current)
            current = ""

        if len(section) > max_chunk_size:
            chunks.extend(_pack(split_sentences(section), max_chunk_size, SENTENCE_SEPARATOR))
        else:
            current = section

    if current:
        chunks.append(current)

    return chunks
