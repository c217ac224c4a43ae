"""Stateless paging over file lines and directory listings.

A page is fully determined by ``(source, offset, page size)``; ``DONE`` marks
that nothing is left to fetch.
"""

from dataclasses import dataclass
from typing import Sequence

from gitproxy.errors import InvalidInputError, RangeNotSatisfiableError

DONE = -1
MIN_CHUNK_FILES = 1
MAX_CHUNK_FILES = 100


@dataclass(frozen=True)
class LineChunk:
    text: str
    start: int
    end: int
    total_lines: int
    next_start: int


@dataclass(frozen=True)
class FilePage:
    paths: list[str]
    cursor: int
    chunk_files: int
    total_files: int
    next_cursor: int

    @property
    def first(self) -> int:
        return self.cursor + 1

    @property
    def last(self) -> int:
        return min(self.cursor + len(self.paths), self.total_files)


def split_lines(text: str) -> list[str]:
    """Lines with their ``\\n`` kept, so joining a slice gives back exact text."""
    pieces = text.split("\n")
    lines = [p + "\n" for p in pieces[:-1]]
    if pieces[-1]:
        lines.append(pieces[-1])
    return lines


def validate_line_window(start: int, end: int) -> None:
    if start < 1:
        raise InvalidInputError("start must be >= 1")
    if end < 0:
        raise InvalidInputError("end must be >= 0")
    if end and end < start:
        raise InvalidInputError("end must be >= start (or 0 for no limit)")


def chunk_lines(lines: Sequence[str], start: int = 1, end: int = 0) -> LineChunk:
    """1-based inclusive window ``[start, end]``; ``end=0`` reads to the end."""
    validate_line_window(start, end)

    total = len(lines)
    # an empty file still has a readable (empty) first page
    if start > total and not (total == 0 and start == 1):
        raise RangeNotSatisfiableError(f"start={start} is beyond the end of the file ({total} lines)")

    range_end = total if end == 0 else min(end, total)
    return LineChunk(
        text="".join(lines[start - 1:range_end]),
        start=start,
        end=range_end,
        total_lines=total,
        next_start=range_end + 1 if range_end < total else DONE,
    )


def clamp_chunk_files(chunk_files: int) -> int:
    return min(max(chunk_files, MIN_CHUNK_FILES), MAX_CHUNK_FILES)


def chunk_files(files: Sequence[str], cursor: int = 0, chunk_files: int = 20) -> FilePage:
    size = clamp_chunk_files(chunk_files)
    cursor = max(cursor, 0)
    paths = list(files[cursor:cursor + size])
    consumed = cursor + len(paths)
    return FilePage(
        paths=paths,
        cursor=cursor,
        chunk_files=size,
        total_files=len(files),
        next_cursor=consumed if consumed < len(files) else DONE,
    )
