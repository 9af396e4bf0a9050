"""Unified diff parsing - turn ``git diff`` text into structured file changes."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

DEV_NULL = "/dev/null"


class ChangeType(Enum):
    """Types of file changes."""

    ADD = "add"
    DELETE = "delete"
    MODIFY = "modify"
    RENAME = "rename"


class LineKind(Enum):
    """Classification of a line inside a hunk."""

    CONTEXT = "context"
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class DiffLine:
    """A single classified line of a hunk.

    ``line_number`` is the position in the old file for removed lines and
    in the new file for added and context lines.
    """

    kind: LineKind
    content: str
    line_number: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "content": self.content,
            "line_number": self.line_number,
        }


@dataclass
class DiffHunk:
    """One ``@@`` block of a file diff."""

    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    lines: list[DiffLine] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "old_start": self.old_start,
            "old_lines": self.old_lines,
            "new_start": self.new_start,
            "new_lines": self.new_lines,
            "lines": [line.to_dict() for line in self.lines],
        }


@dataclass
class DiffFile:
    """All changes to a single file.

    Attributes:
        path: New path, or the old path for deleted files
        change_type: add, delete, modify or rename
        old_path: Previous path, only set for renames
        added_lines: Number of added lines over all hunks
        removed_lines: Number of removed lines over all hunks
        hunks: Hunks in source order
    """

    path: str
    change_type: ChangeType
    old_path: str | None = None
    added_lines: int = 0
    removed_lines: int = 0
    hunks: list[DiffHunk] = field(default_factory=list)

    @property
    def total_changes(self) -> int:
        return self.added_lines + self.removed_lines

    def iter_lines(self, kind: LineKind | None = None) -> Iterator[DiffLine]:
        """Iterate over hunk lines in source order, optionally by kind."""
        for hunk in self.hunks:
            for line in hunk.lines:
                if kind is None or line.kind is kind:
                    yield line

    def added_content(self) -> list[str]:
        return [line.content for line in self.iter_lines(LineKind.ADDED)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "old_path": self.old_path,
            "change_type": self.change_type.value,
            "added_lines": self.added_lines,
            "removed_lines": self.removed_lines,
            "hunks": [h.to_dict() for h in self.hunks],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DiffFile:
        """Create from dictionary."""
        hunks = [
            DiffHunk(
                old_start=h["old_start"],
                old_lines=h["old_lines"],
                new_start=h["new_start"],
                new_lines=h["new_lines"],
                lines=[
                    DiffLine(
                        kind=LineKind(line["kind"]),
                        content=line["content"],
                        line_number=line.get("line_number"),
                    )
                    for line in h.get("lines", [])
                ],
            )
            for h in data.get("hunks", [])
        ]
        return cls(
            path=data["path"],
            change_type=ChangeType(data["change_type"]),
            old_path=data.get("old_path"),
            added_lines=data.get("added_lines", 0),
            removed_lines=data.get("removed_lines", 0),
            hunks=hunks,
        )


class ParserState(Enum):
    """States of the diff scanning state machine."""

    AWAITING_FILE = "awaiting_file"
    IN_FILE_HEADER = "in_file_header"
    IN_HUNK = "in_hunk"


@dataclass
class _OpenFile:
    """File record under construction; sealed into a DiffFile."""

    old_path: str
    new_path: str
    forced_type: ChangeType | None = None
    hunks: list[DiffHunk] = field(default_factory=list)

    def change_type(self) -> ChangeType:
        if self.forced_type is not None:
            return self.forced_type
        if self.old_path == DEV_NULL:
            return ChangeType.ADD
        if self.new_path == DEV_NULL:
            return ChangeType.DELETE
        if self.old_path != self.new_path:
            return ChangeType.RENAME
        return ChangeType.MODIFY

    def seal(self) -> DiffFile:
        change_type = self.change_type()
        added = removed = 0
        for hunk in self.hunks:
            for line in hunk.lines:
                if line.kind is LineKind.ADDED:
                    added += 1
                elif line.kind is LineKind.REMOVED:
                    removed += 1
        return DiffFile(
            path=self.old_path if change_type is ChangeType.DELETE else self.new_path,
            change_type=change_type,
            old_path=self.old_path if change_type is ChangeType.RENAME else None,
            added_lines=added,
            removed_lines=removed,
            hunks=self.hunks,
        )


@dataclass
class _OpenHunk:
    """Hunk under construction, tracking the next old/new line numbers."""

    hunk: DiffHunk
    next_old: int
    next_new: int

    def add(self, kind: LineKind, content: str) -> None:
        if kind is LineKind.REMOVED:
            number = self.next_old
            self.next_old += 1
        elif kind is LineKind.ADDED:
            number = self.next_new
            self.next_new += 1
        else:
            number = self.next_new
            self.next_old += 1
            self.next_new += 1
        self.hunk.lines.append(DiffLine(kind=kind, content=content, line_number=number))


class GitDiffParser:
    """Parse git unified diff output into DiffFile records.

    Single pass over the text with three states. A file header seals the
    open file, a hunk header seals the open hunk, and end of input seals
    both. Lines that are not understood are skipped, so parsing never fails.
    """

    DIFF_HEADER_PATTERN = re.compile(r"^diff --git a/(.+?) b/(.+?)$")
    NEW_FILE_PATTERN = re.compile(r"^new file mode")
    DELETED_FILE_PATTERN = re.compile(r"^deleted file mode")
    HUNK_HEADER_PATTERN = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")

    def __init__(self, diff_text: str | None = None):
        self.diff_text = diff_text or ""
        self.state = ParserState.AWAITING_FILE
        self.files: list[DiffFile] = []
        self._file: _OpenFile | None = None
        self._hunk: _OpenHunk | None = None

    def parse(self) -> list[DiffFile]:
        """Scan the diff text and return files in source order."""
        text = self.diff_text.replace("\r\n", "\n")
        for line in text.split("\n"):
            self.feed(line)
        self.close()
        return self.files

    def feed(self, line: str) -> None:
        """Advance the state machine by one line."""
        if line.startswith("diff --git"):
            self._start_file(line)
            return

        if self._file is None:
            return

        if line.startswith("@@"):
            self._start_hunk(line)
            return

        if self._hunk is None:
            self._header_line(self._file, line)
        else:
            self._hunk_line(self._hunk, line)

    def close(self) -> None:
        """Flush the open hunk and file at end of input."""
        self._flush_file()

    def _start_file(self, line: str) -> None:
        self._flush_file()
        match = self.DIFF_HEADER_PATTERN.match(line)
        if not match:
            logger.debug("Skipping unparseable file header: %.80s", line)
            return
        old_path, new_path = match.groups()
        self._file = _OpenFile(old_path=old_path, new_path=new_path)
        self.state = ParserState.IN_FILE_HEADER

    def _header_line(self, open_file: _OpenFile, line: str) -> None:
        # index, rename from/to, ---/+++ and binary notices carry no state
        if self.NEW_FILE_PATTERN.match(line):
            open_file.forced_type = ChangeType.ADD
        elif self.DELETED_FILE_PATTERN.match(line):
            open_file.forced_type = ChangeType.DELETE

    def _start_hunk(self, line: str) -> None:
        self._flush_hunk()
        match = self.HUNK_HEADER_PATTERN.match(line)
        if not match:
            logger.debug("Skipping malformed hunk header: %.80s", line)
            return
        old_start, old_lines, new_start, new_lines = match.groups()
        hunk = DiffHunk(
            old_start=int(old_start),
            old_lines=int(old_lines) if old_lines else 0,
            new_start=int(new_start),
            new_lines=int(new_lines) if new_lines else 0,
        )
        self._hunk = _OpenHunk(hunk=hunk, next_old=hunk.old_start, next_new=hunk.new_start)
        self.state = ParserState.IN_HUNK

    def _hunk_line(self, open_hunk: _OpenHunk, line: str) -> None:
        if line.startswith("+") and not line.startswith("+++"):
            open_hunk.add(LineKind.ADDED, line[1:])
        elif line.startswith("-") and not line.startswith("---"):
            open_hunk.add(LineKind.REMOVED, line[1:])
        elif line.startswith(" "):
            open_hunk.add(LineKind.CONTEXT, line[1:])

    def _flush_hunk(self) -> None:
        if self._hunk is not None and self._file is not None:
            self._file.hunks.append(self._hunk.hunk)
        self._hunk = None
        if self._file is not None:
            self.state = ParserState.IN_FILE_HEADER

    def _flush_file(self) -> None:
        self._flush_hunk()
        if self._file is not None:
            self.files.append(self._file.seal())
        self._file = None
        self.state = ParserState.AWAITING_FILE


def parse_diff(diff_text: str) -> list[DiffFile]:
    """Parse unified diff text into an ordered list of DiffFile records."""
    return GitDiffParser(diff_text).parse()


@dataclass
class FileSummary:
    """Per-file line counts."""

    path: str
    change_type: ChangeType
    added: int
    removed: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "change_type": self.change_type.value,
            "added": self.added,
            "removed": self.removed,
        }


@dataclass
class DiffSummary:
    """Aggregate view over a parsed diff."""

    total_files: int
    total_added: int
    total_removed: int
    files: list[FileSummary] = field(default_factory=list)

    @property
    def net_change(self) -> int:
        return self.total_added - self.total_removed

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_files": self.total_files,
            "total_added": self.total_added,
            "total_removed": self.total_removed,
            "net_change": self.net_change,
            "files": [f.to_dict() for f in self.files],
        }


def diff_summary(files: list[DiffFile]) -> DiffSummary:
    """Summarize parsed files into totals and per-file counts."""
    return DiffSummary(
        total_files=len(files),
        total_added=sum(f.added_lines for f in files),
        total_removed=sum(f.removed_lines for f in files),
        files=[
            FileSummary(
                path=f.path,
                change_type=f.change_type,
                added=f.added_lines,
                removed=f.removed_lines,
            )
            for f in files
        ],
    )
