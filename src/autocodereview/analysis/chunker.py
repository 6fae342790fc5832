"""
Diff Chunker

Partitions a DiffDocument into bounded request payloads along file and hunk
boundaries.
"""

import logging
from dataclasses import dataclass
from typing import List, Tuple

from ..models.diff import DiffDocument, FileDiff


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiffChunk:
    """One analysis request worth of diff text."""
    index: int
    file_paths: Tuple[str, ...]
    text: str

    @property
    def size(self) -> int:
        return len(self.text)


class DiffChunker:
    """
    Packs whole files into chunks of at most ``max_chunk_size`` characters.

    A file that does not fit on its own is split between hunks, repeating
    the file header on every part. A hunk is never split, so a single hunk
    larger than the limit becomes an oversized chunk of its own.
    """

    def __init__(self, max_chunk_size: int = 60000):
        if max_chunk_size <= 0:
            raise ValueError("max_chunk_size must be positive")
        self.max_chunk_size = max_chunk_size

    def split(self, document: DiffDocument) -> List[DiffChunk]:
        """
        Split a document into ordered chunks.

        Args:
            document: Parsed diff

        Returns:
            Chunks with consecutive indexes, in file order
        """
        pieces: List[Tuple[str, str]] = []
        for file_diff in document.files:
            if not file_diff.hunks:
                logger.debug(f"Skipping {file_diff.path}: no hunks to analyze")
                continue
            pieces.extend((file_diff.path, text) for text in self._file_pieces(file_diff))

        chunks: List[DiffChunk] = []
        paths: List[str] = []
        parts: List[str] = []
        size = 0

        for path, text in pieces:
            if parts and size + len(text) > self.max_chunk_size:
                chunks.append(self._make_chunk(len(chunks), paths, parts))
                paths, parts, size = [], [], 0
            if path not in paths:
                paths.append(path)
            parts.append(text)
            size += len(text)

        if parts:
            chunks.append(self._make_chunk(len(chunks), paths, parts))

        logger.info(f"Split diff into {len(chunks)} chunks (limit {self.max_chunk_size} chars)")
        return chunks

    def _file_pieces(self, file_diff: FileDiff) -> List[str]:
        """Whole file text, or header-prefixed groups of hunks when too large."""
        if len(file_diff.text) <= self.max_chunk_size:
            return [file_diff.text]

        header = file_diff.header
        pieces: List[str] = []
        current: List[str] = []
        size = len(header)

        for hunk in file_diff.hunks:
            if current and size + len(hunk) > self.max_chunk_size:
                pieces.append(header + "".join(current))
                current, size = [], len(header)
            if len(header) + len(hunk) > self.max_chunk_size:
                logger.warning(
                    f"Hunk in {file_diff.path} exceeds chunk limit "
                    f"({len(hunk)} chars), sending it whole"
                )
            current.append(hunk)
            size += len(hunk)

        if current:
            pieces.append(header + "".join(current))

        logger.debug(f"Split {file_diff.path} into {len(pieces)} parts")
        return pieces

    def _make_chunk(self, index: int, paths: List[str], parts: List[str]) -> DiffChunk:
        return DiffChunk(index=index, file_paths=tuple(paths), text="".join(parts))
