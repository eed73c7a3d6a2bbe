"""
Splitting assistant replies into short chat bubbles
"""
from typing import List
import re

from chad.config import (
    FINAL_CHUNK_WORDS,
    MESSAGE_DELIMITER,
    SEGMENT_MAX_CHARS,
    SEGMENT_MAX_WORDS,
    SENTENCE_CHUNK_WORDS
)

SENTENCE_END_RE = re.compile(r"(?<=[.!?])\s+")
INTERNAL_SEPARATOR_RE = re.compile(r"\s*[|,:]\s*")


def chunk_words(text: str, size: int) -> List[str]:
    """Regroup the words of text into pieces of at most size words"""
    words = text.split()
    return [" ".join(words[i:i + size]) for i in range(0, len(words), size)]


def _too_long(part: str) -> bool:
    return len(part.split()) > SEGMENT_MAX_WORDS or len(part) > SEGMENT_MAX_CHARS


def _split_on_delimiter(text: str) -> List[str]:
    return [part.strip() for part in text.split(MESSAGE_DELIMITER) if part.strip()]


def _split_fallback(text: str) -> List[str]:
    parts = []
    for sentence in SENTENCE_END_RE.split(text):
        for segment in INTERNAL_SEPARATOR_RE.split(sentence):
            segment = segment.strip()
            if not segment:
                continue
            if len(segment.split()) > SEGMENT_MAX_WORDS:
                parts.extend(chunk_words(segment, SENTENCE_CHUNK_WORDS))
            else:
                parts.append(segment)
    return parts


def split_into_messages(text: str) -> List[str]:
    """
    Turn one completion into ordered chat bubbles.

    The delimiter is authoritative when present. Otherwise the text is cut
    on sentence ends, then on pipes, commas and colons, and long pieces are
    chunked by six words. A last pass re-chunks anything still over seven
    words or sixty characters into five-word pieces.

    Args:
        text: raw completion text

    Returns:
        Non-empty strings in display order
    """
    if not text or not text.strip():
        return []

    if MESSAGE_DELIMITER in text:
        parts = _split_on_delimiter(text)
    else:
        parts = _split_fallback(text)

    messages = []
    for part in parts:
        if _too_long(part):
            messages.extend(chunk_words(part, FINAL_CHUNK_WORDS))
        else:
            messages.append(part)

    return [message for message in messages if message.strip()]
