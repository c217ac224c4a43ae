import pytest

from conftest import numbered
from gitproxy.chunking import DONE, chunk_files, chunk_lines, split_lines
from gitproxy.errors import InvalidInputError, RangeNotSatisfiableError


def test_split_lines_keeps_terminators():
    assert split_lines("a\nb\n") == ["a\n", "b\n"]
    assert split_lines("a\nb") == ["a\n", "b"]
    assert split_lines("") == []
    assert split_lines("\n\n") == ["\n", "\n"]


def test_end_zero_returns_whole_file():
    lines = split_lines(numbered(10))
    chunk = chunk_lines(lines, 1, 0)
    assert chunk.text == numbered(10)
    assert (chunk.start, chunk.end, chunk.total_lines, chunk.next_start) == (1, 10, 10, DONE)


def test_consecutive_chunks_concatenate_to_full_text():
    text = numbered(600)
    lines = split_lines(text)
    first = chunk_lines(lines, 1, 400)
    second = chunk_lines(lines, 401, 800)
    assert first.next_start == 401
    assert (second.start, second.end, second.next_start) == (401, 600, DONE)
    assert first.text + second.text == chunk_lines(lines, 1, 0).text == text


def test_file_without_trailing_newline_round_trips():
    text = "x\ny\nz"
    lines = split_lines(text)
    assert chunk_lines(lines, 1, 2).text + chunk_lines(lines, 3, 3).text == text


def test_start_beyond_end_is_range_error():
    lines = split_lines(numbered(5))
    with pytest.raises(RangeNotSatisfiableError):
        chunk_lines(lines, 6, 0)


def test_last_line_exactly_is_served():
    chunk = chunk_lines(split_lines(numbered(5)), 5, 0)
    assert chunk.text == "line 5\n"
    assert chunk.next_start == DONE


def test_empty_file_has_an_empty_first_page():
    chunk = chunk_lines([], 1, 0)
    assert chunk.text == ""
    assert (chunk.end, chunk.total_lines, chunk.next_start) == (0, 0, DONE)
    with pytest.raises(RangeNotSatisfiableError):
        chunk_lines([], 2, 0)


@pytest.mark.parametrize("start,end", [(0, 0), (-3, 10), (5, 4), (1, -1)])
def test_bad_windows_are_invalid_input(start, end):
    with pytest.raises(InvalidInputError):
        chunk_lines(split_lines(numbered(10)), start, end)


def test_chunk_files_pages_25_files_by_20():
    files = [f"f{i:02d}.txt" for i in range(1, 26)]
    first = chunk_files(files, 0, 20)
    assert first.paths == files[:20]
    assert first.next_cursor == 20
    assert (first.first, first.last) == (1, 20)

    second = chunk_files(files, 20, 20)
    assert second.paths == files[20:]
    assert second.next_cursor == DONE
    assert (second.first, second.last) == (21, 25)


@pytest.mark.parametrize("size", [1, 3, 7, 24, 25, 100])
def test_following_cursors_visits_every_file_once(size):
    files = [f"src/{i:03d}.py" for i in range(25)]
    seen, cursor = [], 0
    while cursor != DONE:
        page = chunk_files(files, cursor, size)
        seen.extend(page.paths)
        cursor = page.next_cursor
    assert seen == files


def test_chunk_files_is_clamped():
    files = [str(i) for i in range(250)]
    assert chunk_files(files, 0, 1000).chunk_files == 100
    assert len(chunk_files(files, 0, 1000).paths) == 100
    assert chunk_files(files, 0, 0).chunk_files == 1
    assert chunk_files(files, -5, 10).cursor == 0


def test_cursor_past_the_end_is_an_empty_final_page():
    page = chunk_files(["a", "b"], 10, 5)
    assert page.paths == []
    assert page.next_cursor == DONE
