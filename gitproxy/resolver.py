"""Pins a loosely specified ref (branch, tag, SHA or nothing) to a commit."""

import logging
import re

from gitproxy.errors import RefNotFoundError
from gitproxy.models import ResolvedCommit

logger = logging.getLogger(__name__)

# An all-hex branch or tag name is taken for a SHA. Known limitation, kept on purpose.
SHA_PATTERN = re.compile(r"^[0-9a-fA-F]{7,40}$")


def looks_like_sha(ref: str) -> bool:
    return bool(SHA_PATTERN.match(ref))


async def get_default_branch(provider, owner, repo) -> str:
    info = await provider.get_repo(owner, repo)
    return info.get("default_branch") or "main"


async def resolve_named_ref(provider, owner, repo, ref, default_branch) -> ResolvedCommit:
    if looks_like_sha(ref):
        commit_sha = ref.lower()
        if len(commit_sha) < 40:
            commit_sha = await provider.expand_commit_sha(owner, repo, commit_sha)
        return ResolvedCommit(ref=ref, commit_sha=commit_sha, default_branch=default_branch)

    for kind in ("heads", "tags"):
        sha = await provider.get_ref_sha(owner, repo, kind, ref)
        if sha:
            return ResolvedCommit(ref=ref, commit_sha=sha, default_branch=default_branch)

    raise RefNotFoundError(f'Could not resolve ref "{ref}"')


async def resolve_ref(provider, owner, repo, ref_input=None) -> ResolvedCommit:
    """Resolve ``ref_input`` to a commit; absent means the default branch.

    Repository lookup errors propagate with GitHub's status code.
    """
    default_branch = await get_default_branch(provider, owner, repo)
    ref = ref_input or default_branch
    resolved = await resolve_named_ref(provider, owner, repo, ref, default_branch)
    logger.info("Resolved %s/%s@%s -> %s", owner, repo, ref, resolved.commit_sha)
    return resolved
