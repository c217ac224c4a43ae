"""Builds response bodies and metadata headers.

Digests are always taken over the raw chunk before any presentation transform,
and metadata goes to headers so the body stays exact program output.
"""

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import quote

from gitproxy.chunking import FilePage, LineChunk
from gitproxy.content import sha256_hex
from gitproxy.models import FileContent, ResolvedCommit

EXTENSION_LANGUAGE_MAP = {
    ".js": "javascript",
    ".ts": "typescript",
    ".jsx": "javascript",
    ".tsx": "typescript",
    ".py": "python",
    ".java": "java",
    ".kt": "kotlin",
    ".go": "go",
    ".rs": "rust",
    ".cpp": "cpp",
    ".c": "c",
    ".h": "c",
    ".cs": "csharp",
    ".php": "php",
    ".rb": "ruby",
    ".swift": "swift",
    ".html": "html",
    ".css": "css",
    ".scss": "scss",
    ".json": "json",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".toml": "toml",
    ".md": "markdown",
    ".sh": "shell",
    ".sql": "sql",
}


def detect_language(path: str) -> str:
    return EXTENSION_LANGUAGE_MAP.get(PurePosixPath(path).suffix.lower(), "text")


def header_value(value: str) -> str:
    # header values must stay latin-1
    return quote(value, safe="/@:._-~+=,")


@dataclass(frozen=True)
class Composed:
    body: str
    headers: dict[str, str] = field(default_factory=dict)


def pinned_headers(owner: str, repo: str, resolved: ResolvedCommit) -> dict[str, str]:
    return {
        "X-Owner": header_value(owner),
        "X-Repo": header_value(repo),
        "X-Ref": header_value(resolved.ref),
        "X-Commit-Sha": resolved.commit_sha,
        "X-Default-Branch": header_value(resolved.default_branch),
    }


def number_lines(text: str, first_line: int) -> str:
    if not text:
        return text
    lines = text.split("\n")
    trailing_newline = text.endswith("\n")
    if trailing_newline:
        lines.pop()
    width = len(str(first_line + len(lines) - 1))
    out = "\n".join(f"{n:>{width}} | {line}" for n, line in enumerate(lines, start=first_line))
    return out + "\n" if trailing_newline else out


def fence(text: str, path: str) -> str:
    if text and not text.endswith("\n"):
        text += "\n"
    return f"```{detect_language(path)}\n{text}```\n"


def compose_file_chunk(
    owner: str,
    repo: str,
    resolved: ResolvedCommit,
    content: FileContent,
    chunk: LineChunk,
    line_numbers: bool = False,
    markdown_fence: bool = False,
) -> Composed:
    headers = pinned_headers(owner, repo, resolved)
    headers.update({
        "X-Path": header_value(content.path),
        "X-Total-Lines": str(chunk.total_lines),
        "X-Range": f"{chunk.start}-{chunk.end}",
        "X-Next-Start": str(chunk.next_start),
        "X-File-Sha256": content.sha256,
        "X-Chunk-Sha256": sha256_hex(chunk.text),
        "X-Blob-Sha": content.blob_sha,
        "X-File-Size": str(content.size),
    })

    body = chunk.text
    if line_numbers:
        body = number_lines(body, chunk.start)
    if markdown_fence:
        body = fence(body, content.path)
    return Composed(body=body, headers=headers)


def bundle_block(path: str, text: Optional[str], skip_reason: Optional[str] = None) -> str:
    out = f"// ===== File: {path} =====\n"
    if text is None:
        return out + f"// [SKIP] {skip_reason}\n\n"
    return out + text + "\n\n"


def compose_bundle(
    owner: str,
    repo: str,
    resolved: ResolvedCommit,
    directory: str,
    page: FilePage,
    blocks: list[str],
) -> Composed:
    out = "// Repository Bundle\n"
    out += f"// repo={owner}/{repo} ref={resolved.ref} commit={resolved.commit_sha}\n"
    out += f"// dir={directory or '(root)'}\n"
    if page.paths:
        out += f"// files {page.first}-{page.last} of {page.total_files}\n"
    else:
        out += f"// files 0 of {page.total_files}\n"
    out += "// next cursor in header: X-Next-Cursor\n\n"
    out += "".join(blocks)

    headers = pinned_headers(owner, repo, resolved)
    headers.update({
        "X-Dir": header_value(directory),
        "X-Total-Files": str(page.total_files),
        "X-Chunk-Files": str(page.chunk_files),
        "X-Cursor": str(page.cursor),
        "X-Next-Cursor": str(page.next_cursor),
        "X-Body-Sha256": sha256_hex(out),
    })
    return Composed(body=out, headers=headers)


def compose_tree(
    owner: str,
    repo: str,
    resolved: ResolvedCommit,
    rendered: str,
    total_files: int,
    truncated: bool,
) -> Composed:
    headers = pinned_headers(owner, repo, resolved)
    headers.update({
        "X-Total-Files": str(total_files),
        "X-Tree-Truncated": "true" if truncated else "false",
    })
    return Composed(body=rendered, headers=headers)
