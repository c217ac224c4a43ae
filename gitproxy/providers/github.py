import logging
from urllib.parse import quote

import httpx

from gitproxy.errors import NotAFileError, UpstreamError
from gitproxy.providers.base import VCSProvider

logger = logging.getLogger(__name__)

MAX_TAG_DEPTH = 10


class GitHubProvider(VCSProvider):
    """Thin wrapper over the GitHub REST endpoints the proxy needs.

    Every non-2xx answer is raised as ``UpstreamError`` with GitHub's status
    code and message. Nothing is retried.
    """

    API = "https://api.github.com"

    def __init__(self, token: str, client: httpx.AsyncClient, api_url: str | None = None,
                 user_agent: str = "gitproxy"):
        self.client = client
        self.api = (api_url or self.API).rstrip("/")
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": user_agent,
        }

    async def _get(self, url, params=None, accept=None):
        headers = dict(self.headers)
        if accept:
            headers["Accept"] = accept
        try:
            r = await self.client.get(url, headers=headers, params=params)
        except httpx.TimeoutException as e:
            raise UpstreamError(f"GitHub request timed out: {url}", status_code=504) from e
        except httpx.TransportError as e:
            raise UpstreamError(f"GitHub unreachable: {e}", status_code=502) from e
        if r.is_error:
            raise UpstreamError(self._error_message(r), status_code=r.status_code)
        return r

    @staticmethod
    def _error_message(r: httpx.Response) -> str:
        try:
            data = r.json()
        except ValueError:
            data = {}
        message = data.get("message") if isinstance(data, dict) else None
        return message or r.reason_phrase or f"GitHub error {r.status_code}"

    async def _get_json(self, url, params=None):
        r = await self._get(url, params=params)
        try:
            return r.json()
        except ValueError as e:
            raise UpstreamError(f"GitHub returned invalid JSON for {url}") from e

    def _repo_url(self, owner, repo):
        return f"{self.api}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"

    async def get_repo(self, owner, repo):
        return await self._get_json(self._repo_url(owner, repo))

    async def get_ref_sha(self, owner, repo, kind, name):
        """Commit SHA for ``refs/<kind>/<name>``, or None when the ref does not exist.

        Annotated tags are peeled to the commit they point at.
        """
        url = f"{self._repo_url(owner, repo)}/git/ref/{kind}/{quote(name, safe='/')}"
        try:
            data = await self._get_json(url)
        except UpstreamError as e:
            if e.status_code in (404, 409, 422):
                return None
            raise
        obj = data.get("object") if isinstance(data, dict) else None
        if not obj or not obj.get("sha"):
            return None
        # tags may point at other tags
        for _ in range(MAX_TAG_DEPTH):
            if obj.get("type") != "tag":
                return obj["sha"]
            tag = await self._get_json(f"{self._repo_url(owner, repo)}/git/tags/{obj['sha']}")
            obj = tag.get("object") or {}
            if not obj.get("sha"):
                return None
        raise UpstreamError(f"Tag {name} nests deeper than {MAX_TAG_DEPTH} levels", status_code=502)

    async def expand_commit_sha(self, owner, repo, sha):
        data = await self._get_json(f"{self._repo_url(owner, repo)}/commits/{sha}")
        return data["sha"]

    async def get_commit_tree_sha(self, owner, repo, commit_sha):
        data = await self._get_json(f"{self._repo_url(owner, repo)}/git/commits/{commit_sha}")
        tree_sha = (data.get("tree") or {}).get("sha")
        if not tree_sha:
            raise UpstreamError(f"Commit {commit_sha} has no tree sha", status_code=502)
        return tree_sha

    async def get_tree(self, owner, repo, tree_sha):
        """Recursive tree listing: ``(raw entries, truncated flag)``."""
        data = await self._get_json(
            f"{self._repo_url(owner, repo)}/git/trees/{tree_sha}",
            params={"recursive": "1"},
        )
        return data.get("tree") or [], bool(data.get("truncated"))

    async def get_raw_file(self, owner, repo, path, ref):
        url = f"{self._repo_url(owner, repo)}/contents/{quote(path, safe='/')}"
        r = await self._get(url, params={"ref": ref}, accept="application/vnd.github.raw+json")
        if self._is_directory_listing(r):
            raise NotAFileError(f"Path is a directory, not a file: {path}")
        return r.content

    @staticmethod
    def _is_directory_listing(r: httpx.Response) -> bool:
        # a directory comes back as a JSON array even with the raw media type
        if "json" not in r.headers.get("content-type", ""):
            return False
        try:
            return isinstance(r.json(), list)
        except ValueError:
            return False

    async def compare(self, owner, repo, base, head):
        url = f"{self._repo_url(owner, repo)}/compare/{quote(base, safe='')}...{quote(head, safe='')}"
        return await self._get_json(url)
