"""
Unified Diff Parser

Parses raw unified diff text (``git diff`` output or a plain ``diff -u``
patch) into a DiffDocument without reformatting any of it.
"""

import re
import logging
from typing import List, Optional, Tuple

from ..exceptions import DiffUnavailable
from ..models.diff import ChangeKind, DiffDocument, FileDiff


logger = logging.getLogger(__name__)

# Keeps line terminators so joining the pieces gives back the input.
LINE_PATTERN = re.compile(r'[^\n]*\n|[^\n]+\Z')

# Escapes git uses in quoted paths (core.quotePath).
QUOTED_ESCAPE_PATTERN = re.compile(r'\\([0-7]{1,3}|.)')
QUOTED_ESCAPES = {'a': '\a', 'b': '\b', 't': '\t', 'n': '\n', 'v': '\v', 'f': '\f', 'r': '\r'}


class _FileBuilder:
    """Accumulates the raw lines of one file entry while parsing."""

    def __init__(self, first_line: str):
        self.header_lines: List[str] = [first_line]
        self.hunks: List[List[str]] = []

    def header_has(self, prefix: str) -> bool:
        return any(line.startswith(prefix) for line in self.header_lines)


class UnifiedDiffParser:
    """
    Parser for unified diff text.

    Splits the diff into file entries at ``diff --git`` lines (or at
    ``---``/``+++`` pairs for diffs without git headers) and into hunks at
    ``@@`` lines. Hunk bodies are consumed using the line counts from the hunk
    header, so content lines that happen to look like headers stay inside
    their hunk.
    """

    def __init__(self):
        """Initialize unified diff parser."""
        self.hunk_header_pattern = re.compile(r'^@@\s*-(\d+)(?:,(\d+))?\s*\+(\d+)(?:,(\d+))?\s*@@')
        self.binary_file_pattern = re.compile(r'^(Binary files? .* differ|GIT binary patch)')

    def parse(self, text: str) -> DiffDocument:
        """
        Parse diff text into a DiffDocument.

        Args:
            text: Raw unified diff

        Returns:
            DiffDocument whose ``to_text()`` equals ``text``

        Raises:
            DiffUnavailable: If non-blank text contains no file entries or a
                file entry has no recognizable path
        """
        if not text.strip():
            logger.info("Diff is empty, nothing to review")
            return DiffDocument(files=(), preamble=text)

        lines = LINE_PATTERN.findall(text)
        preamble: List[str] = []
        builders: List[_FileBuilder] = []
        current: Optional[_FileBuilder] = None
        old_left = new_left = 0

        i = 0
        while i < len(lines):
            line = lines[i]
            bare = line.rstrip('\r\n')

            if old_left > 0 or new_left > 0:
                tag = bare[:1]
                if tag in (' ', ''):
                    old_left -= 1
                    new_left -= 1
                elif tag == '-':
                    old_left -= 1
                elif tag == '+':
                    new_left -= 1
                elif tag != '\\':
                    # Truncated hunk; re-read this line as ordinary diff text.
                    logger.warning(f"Hunk ended early before line {i + 1}")
                    old_left = new_left = 0
                    continue
                current.hunks[-1].append(line)
                i += 1
                continue

            header_match = self.hunk_header_pattern.match(bare)
            next_line = lines[i + 1] if i + 1 < len(lines) else ''

            if bare.startswith('diff --git '):
                current = _FileBuilder(line)
                builders.append(current)
            elif header_match and current is not None:
                current.hunks.append([line])
                old_left = int(header_match.group(2) or 1)
                new_left = int(header_match.group(4) or 1)
            elif bare.startswith('--- ') and next_line.startswith('+++ ') and (
                current is None or current.hunks or current.header_has('--- ')
            ):
                current = _FileBuilder(line)
                builders.append(current)
            elif current is None:
                preamble.append(line)
            elif current.hunks:
                current.hunks[-1].append(line)
            else:
                current.header_lines.append(line)
            i += 1

        if not builders:
            raise DiffUnavailable("Malformed diff: no file headers found")

        files = tuple(self._build_file(builder) for builder in builders)
        document = DiffDocument(files=files, preamble=''.join(preamble))

        logger.info(
            f"Parsed diff: {len(files)} files, "
            f"+{document.total_additions}/-{document.total_deletions}"
        )
        return document

    def _build_file(self, builder: _FileBuilder) -> FileDiff:
        """Turn accumulated lines into an immutable FileDiff."""
        header_lines = [line.rstrip('\r\n') for line in builder.header_lines]

        old_path, new_path = self._paths_from_markers(header_lines)
        rename_from = self._value_after(header_lines, 'rename from ')
        rename_to = self._value_after(header_lines, 'rename to ')
        is_binary = any(self.binary_file_pattern.match(line) for line in header_lines)

        change_kind = self._determine_change_kind(header_lines, old_path, new_path, rename_from)

        git_old, git_new = self._paths_from_git_header(header_lines[0])
        if change_kind == ChangeKind.RENAMED:
            old_path = rename_from or old_path or git_old
            new_path = rename_to or new_path or git_new

        if change_kind == ChangeKind.DELETED:
            path = old_path or git_old
        else:
            path = new_path or git_new

        if not path:
            raise DiffUnavailable(f"Malformed diff: cannot determine file path from '{header_lines[0]}'")

        logger.debug(f"Parsed file {path} ({change_kind.value}, {len(builder.hunks)} hunks)")

        return FileDiff(
            path=path,
            change_kind=change_kind,
            header=''.join(builder.header_lines),
            hunks=tuple(''.join(hunk) for hunk in builder.hunks),
            old_path=old_path if change_kind == ChangeKind.RENAMED else None,
            is_binary=is_binary,
        )

    def _determine_change_kind(
        self,
        header_lines: List[str],
        old_path: Optional[str],
        new_path: Optional[str],
        rename_from: Optional[str],
    ) -> ChangeKind:
        """
        Determine change kind from the file's metadata lines.

        Args:
            header_lines: Header lines without terminators
            old_path: Path from the ``---`` marker (None for /dev/null)
            new_path: Path from the ``+++`` marker (None for /dev/null)
            rename_from: Value of a ``rename from`` line, if any

        Returns:
            Normalized change kind
        """
        if rename_from is not None:
            return ChangeKind.RENAMED
        if any(line.startswith(('new file mode', 'copy to ')) for line in header_lines):
            return ChangeKind.ADDED
        if any(line.startswith('deleted file mode') for line in header_lines):
            return ChangeKind.DELETED

        has_markers = any(line.startswith('--- ') for line in header_lines)
        if has_markers and old_path is None and new_path is not None:
            return ChangeKind.ADDED
        if has_markers and new_path is None and old_path is not None:
            return ChangeKind.DELETED
        return ChangeKind.MODIFIED

    def _paths_from_markers(self, header_lines: List[str]) -> Tuple[Optional[str], Optional[str]]:
        """Read old/new paths from ``---`` and ``+++`` lines."""
        old_path = new_path = None
        for line in header_lines:
            if line.startswith('--- '):
                old_path = self._clean_marker_path(line[4:], 'a/')
            elif line.startswith('+++ '):
                new_path = self._clean_marker_path(line[4:], 'b/')
        return old_path, new_path

    def _clean_marker_path(self, raw: str, prefix: str) -> Optional[str]:
        # Drop the optional tab-separated timestamp of plain `diff -u` output.
        path = self._unquote(raw.split('\t', 1)[0].strip())
        if path == '/dev/null':
            return None
        if path.startswith(prefix):
            path = path[len(prefix):]
        return path or None

    def _paths_from_git_header(self, line: str) -> Tuple[Optional[str], Optional[str]]:
        """
        Best-effort paths from ``diff --git a/X b/Y`` for hunk-less entries.

        Either path may be quoted (``"a/\\303\\251.png"``), which git does for
        names with special or non-ASCII characters.
        """
        if not line.startswith('diff --git '):
            return None, None
        rest = line[len('diff --git '):]

        if rest.startswith('"'):
            end = self._closing_quote(rest)
            if end is None:
                return None, None
            old, new = rest[:end + 1], rest[end + 2:]
        elif rest.endswith('"') and ' "' in rest:
            split_at = rest.rfind(' "')
            old, new = rest[:split_at], rest[split_at + 1:]
        elif rest.startswith('a/') and ' b/' in rest:
            old, new = rest.split(' b/', 1)
            new = 'b/' + new
        else:
            return None, None

        old, new = self._unquote(old), self._unquote(new)
        if not (old.startswith('a/') and new.startswith('b/')):
            return None, None
        return old[2:] or None, new[2:] or None

    def _closing_quote(self, text: str) -> Optional[int]:
        """Index of the quote closing the one at ``text[0]``."""
        i = 1
        while i < len(text):
            if text[i] == '\\':
                i += 2
                continue
            if text[i] == '"':
                return i
            i += 1
        return None

    def _unquote(self, text: str) -> str:
        """Decode a C-style quoted git path; unquoted text is returned as is."""
        if len(text) < 2 or text[0] != '"' or text[-1] != '"':
            return text

        body = text[1:-1]
        decoded = bytearray()
        i = 0
        while i < len(body):
            match = QUOTED_ESCAPE_PATTERN.match(body, i)
            if match:
                escape = match.group(1)
                if escape[0] in '01234567':
                    decoded.append(int(escape, 8) & 0xFF)
                else:
                    decoded.extend(QUOTED_ESCAPES.get(escape, escape).encode('utf-8'))
                i = match.end()
            else:
                decoded.extend(body[i].encode('utf-8'))
                i += 1
        return decoded.decode('utf-8', errors='replace')

    def _value_after(self, header_lines: List[str], prefix: str) -> Optional[str]:
        for line in header_lines:
            if line.startswith(prefix):
                return self._unquote(line[len(prefix):])
        return None
