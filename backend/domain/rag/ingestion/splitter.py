"""
Text splitting into overlapping word windows
"""

import logging
import re
from typing import List
from core.config import settings
from core.exceptions import IngestionError

logger = logging.getLogger(__name__)

MIN_CHUNK_WORDS = 50
MAX_CHUNK_WORDS = 2000

# Checked in order; first match wins
_LANGUAGE_PATTERNS = [
    ("romance", re.compile(r"[àáâãäåçèéêëìíîïñòóôõöùúûüý]")),
    ("german", re.compile(r"[äöüß]")),
    ("russian", re.compile(r"[а-я]")),
    ("greek", re.compile(r"[αβγδεζηθικλμνξοπρστυφχψω]")),
    ("chinese", re.compile(r"[一-龯]")),
    ("japanese", re.compile(r"[ぁ-んァ-ン]")),
    ("korean", re.compile(r"[가-힣]")),
    ("arabic", re.compile(r"[؀-ۿ]")),
]


def detect_language(text: str) -> str:
    """Coarse language tag from the characters in the first 200 chars."""
    sample = text[:200].lower()
    for language, pattern in _LANGUAGE_PATTERNS:
        if pattern.search(sample):
            return language
    return "english"


class TextSplitter:
    """Splits document text into overlapping word-window chunks"""

    def __init__(self, chunk_size: int = None, overlap: int = None):
        chunk_size = chunk_size or settings.chunk_size_words
        overlap = settings.chunk_overlap_words if overlap is None else overlap

        self.chunk_size = max(MIN_CHUNK_WORDS, min(MAX_CHUNK_WORDS, chunk_size))
        self.overlap = max(0, min(self.chunk_size - 1, overlap))

    def split(self, text: str) -> List[str]:
        """Split text into chunks of `chunk_size` words, each overlapping the previous by `overlap`."""
        try:
            words = text.split()
            if not words:
                raise IngestionError("Document content is empty", code="EmptyDocument")

            step = self.chunk_size - self.overlap
            chunks = []
            for start in range(0, len(words), step):
                chunks.append(" ".join(words[start:start + self.chunk_size]))
                if start + self.chunk_size >= len(words):
                    break

            logger.debug(f"Split {len(words)} words into {len(chunks)} chunks")
            return chunks
        except IngestionError:
            raise
        except Exception as e:
            logger.error(f"Error splitting text: {e}")
            raise IngestionError(f"Failed to split text: {e}")
