"""The proxy's operations: tree, file chunk, directory bundle, diff and tree metadata.

Each operation pins a commit first and keys every later read off its SHA.
"""

import asyncio
import logging
from urllib.parse import urlencode

from gitproxy.chunking import chunk_files, chunk_lines, split_lines, validate_line_window
from gitproxy.composer import (
    Composed,
    bundle_block,
    compose_bundle,
    compose_file_chunk,
    compose_tree,
)
from gitproxy.content import fetch_file, normalize_repo_path
from gitproxy.errors import BinaryContentError, UpstreamError
from gitproxy.models import DiffCommit, DiffFile, DiffResult, TreeCounts, TreeMeta
from gitproxy.resolver import get_default_branch, resolve_named_ref, resolve_ref
from gitproxy.tree import FileTree, entries_under, list_files, list_tree, render_tree

logger = logging.getLogger(__name__)


def api_link(base_url: str, endpoint: str, **params) -> str:
    return f"{base_url.rstrip('/')}/api/{endpoint}?{urlencode(params)}"


async def explore(provider, owner, repo, ref_input, base_url) -> Composed:
    resolved = await resolve_ref(provider, owner, repo, ref_input)
    entries, truncated = await list_tree(provider, owner, repo, resolved.commit_sha)
    tree = FileTree.build(entries)

    def file_link(path):
        return api_link(base_url, "get-file", owner=owner, repo=repo,
                        ref=resolved.commit_sha, path=path)

    def dir_link(path):
        params = dict(owner=owner, repo=repo, ref=resolved.commit_sha)
        if path:
            params["dir"] = path
        return api_link(base_url, "bundle", **params)

    rendered = render_tree(tree, repo, file_link, dir_link)
    return compose_tree(owner, repo, resolved, rendered, len(tree.files()), truncated)


async def get_file_chunk(
    provider,
    owner,
    repo,
    ref_input,
    path,
    start=1,
    end=0,
    line_numbers=False,
    markdown_fence=False,
) -> Composed:
    path = normalize_repo_path(path, required=True)
    validate_line_window(start, end)

    resolved = await resolve_ref(provider, owner, repo, ref_input)
    content = await fetch_file(provider, owner, repo, resolved.commit_sha, path)
    chunk = chunk_lines(split_lines(content.text), start, end)
    return compose_file_chunk(owner, repo, resolved, content, chunk,
                              line_numbers=line_numbers, markdown_fence=markdown_fence)


async def bundle(
    provider,
    owner,
    repo,
    ref_input,
    directory="",
    cursor=0,
    chunk_size=20,
    concurrency=8,
) -> Composed:
    directory = normalize_repo_path(directory)

    resolved = await resolve_ref(provider, owner, repo, ref_input)
    entries, _ = await list_tree(provider, owner, repo, resolved.commit_sha)
    page = chunk_files(list_files(entries, directory), cursor, chunk_size)

    # never more in flight than the page holds
    semaphore = asyncio.Semaphore(max(1, min(concurrency, page.chunk_files)))

    async def load(path):
        async with semaphore:
            try:
                content = await fetch_file(provider, owner, repo, resolved.commit_sha, path)
            except BinaryContentError:
                logger.warning("Bundle %s/%s: binary file skipped: %s", owner, repo, path)
                return bundle_block(path, None, "Binary file skipped.")
            except UpstreamError as e:
                logger.warning("Bundle %s/%s: failed to fetch %s: %s", owner, repo, path, e.message)
                return bundle_block(path, None, f"GitHub Error ({e.status_code}): {e.message}")
        return bundle_block(path, content.text)

    # gather keeps the sorted order regardless of completion order
    blocks = await asyncio.gather(*(load(p) for p in page.paths))
    return compose_bundle(owner, repo, resolved, directory, page, list(blocks))


def truncate_patch(patch, max_chars):
    if patch is None:
        return None
    if len(patch) > max_chars:
        return patch[:max_chars] + "\n[PATCH TRUNCATED]"
    return patch


def diff_prefix(path) -> str:
    prefix = normalize_repo_path(path)
    if prefix and (path or "").rstrip().endswith("/"):
        prefix += "/"
    return prefix


async def diff(
    provider,
    owner,
    repo,
    base,
    head,
    path="",
    patch_max_chars=2000,
    max_commits=20,
) -> DiffResult:
    prefix = diff_prefix(path)

    default_branch = await get_default_branch(provider, owner, repo)
    base_commit = await resolve_named_ref(provider, owner, repo, base, default_branch)
    head_commit = await resolve_named_ref(provider, owner, repo, head, default_branch)
    data = await provider.compare(owner, repo, base_commit.commit_sha, head_commit.commit_sha)

    commits = []
    for c in (data.get("commits") or [])[:max_commits]:
        info = c.get("commit") or {}
        author = info.get("author") or {}
        commits.append(DiffCommit(
            sha=c.get("sha", ""),
            message=(info.get("message") or "").split("\n")[0],
            author=author.get("name") or "",
            date=author.get("date") or "",
        ))

    files = []
    for f in data.get("files") or []:
        filename = f.get("filename") or ""
        if prefix and not filename.startswith(prefix):
            continue
        files.append(DiffFile(
            filename=filename,
            status=f.get("status") or "",
            additions=f.get("additions") or 0,
            deletions=f.get("deletions") or 0,
            changes=f.get("changes") or 0,
            blob_url=f.get("blob_url"),
            raw_url=f.get("raw_url"),
            patch=truncate_patch(f.get("patch"), patch_max_chars),
        ))

    return DiffResult(
        owner=owner,
        repo=repo,
        base=base,
        head=head,
        base_commit_sha=base_commit.commit_sha,
        head_commit_sha=head_commit.commit_sha,
        status=data.get("status"),
        ahead_by=data.get("ahead_by") or 0,
        behind_by=data.get("behind_by") or 0,
        total_commits=data.get("total_commits") or 0,
        commits=commits,
        files=files,
    )


async def tree_meta(provider, owner, repo, ref_input, directory="") -> TreeMeta:
    directory = normalize_repo_path(directory)

    resolved = await resolve_ref(provider, owner, repo, ref_input)
    entries, truncated = await list_tree(provider, owner, repo, resolved.commit_sha)
    items = entries_under(entries, directory)
    blobs = sum(1 for e in items if e.type == "blob")
    return TreeMeta(
        owner=owner,
        repo=repo,
        ref=resolved.ref,
        commit_sha=resolved.commit_sha,
        dir=directory,
        truncated=truncated,
        counts=TreeCounts(total=len(items), blobs=blobs, trees=len(items) - blobs),
        items=items,
    )
