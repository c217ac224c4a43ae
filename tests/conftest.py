import asyncio
import hashlib
import re
from urllib.parse import unquote

import httpx
import pytest
from fastapi.testclient import TestClient

from gitproxy.config import TokenProvider
from gitproxy.content import git_blob_sha
from gitproxy.deps import get_http_client, get_token_provider
from gitproxy.main import app
from gitproxy.providers.github import GitHubProvider

OWNER = "acme"
REPO = "widgets"


def _json(data, status=200):
    return httpx.Response(status, json=data)


def _not_found():
    return _json({"message": "Not Found"}, status=404)


class FakeGitHub:
    """In-memory GitHub serving the handful of REST endpoints the proxy calls."""

    def __init__(self, owner=OWNER, repo=REPO, default_branch="main"):
        self.owner = owner
        self.repo = repo
        self.default_branch = default_branch
        self.commits = {}
        self.branches = {}
        self.tags = {}
        self.annotated_tags = {}
        self.compares = {}
        self.truncated = False
        self.failures = {}
        self.delays = {}
        self.requests = []

    def add_commit(self, files, branch=None):
        n = len(self.commits)
        sha = hashlib.sha1(f"commit-{n}".encode()).hexdigest()
        tree_sha = hashlib.sha1(f"tree-{n}".encode()).hexdigest()
        files = {p: (c.encode() if isinstance(c, str) else c) for p, c in files.items()}
        self.commits[sha] = {"tree": tree_sha, "files": files}
        if branch:
            self.branches[branch] = sha
        return sha

    def add_annotated_tag(self, name, target_sha):
        tag_sha = hashlib.sha1(f"tag-{name}".encode()).hexdigest()
        self.annotated_tags[tag_sha] = target_sha
        self.tags[name] = tag_sha
        return tag_sha

    def _tree_entries(self, files):
        entries, dirs = [], set()
        for path, data in files.items():
            parts = path.split("/")
            for i in range(1, len(parts)):
                dirs.add("/".join(parts[:i]))
            entries.append({"path": path, "mode": "100644", "type": "blob",
                            "sha": git_blob_sha(data), "size": len(data)})
        for d in dirs:
            entries.append({"path": d, "mode": "040000", "type": "tree",
                            "sha": hashlib.sha1(d.encode()).hexdigest()})
        return entries

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = unquote(request.url.path)
        self.requests.append(request)
        if path in self.delays:
            await asyncio.sleep(self.delays[path])
        if path in self.failures:
            failure = self.failures[path]
            if isinstance(failure, Exception):
                raise failure
            return _json({"message": "Server Error"}, status=failure)

        prefix = f"/repos/{self.owner}/{self.repo}"
        if not path.startswith(prefix):
            return _not_found()
        rest = path[len(prefix):]

        if rest == "":
            return _json({"full_name": f"{self.owner}/{self.repo}",
                          "default_branch": self.default_branch})

        m = re.fullmatch(r"/git/ref/(heads|tags)/(.+)", rest)
        if m:
            refs = self.branches if m.group(1) == "heads" else self.tags
            sha = refs.get(m.group(2))
            if not sha:
                return _not_found()
            kind = "tag" if sha in self.annotated_tags else "commit"
            return _json({"ref": f"refs/{m.group(1)}/{m.group(2)}",
                          "object": {"sha": sha, "type": kind}})

        m = re.fullmatch(r"/git/tags/([0-9a-f]{40})", rest)
        if m and m.group(1) in self.annotated_tags:
            target = self.annotated_tags[m.group(1)]
            kind = "tag" if target in self.annotated_tags else "commit"
            return _json({"object": {"sha": target, "type": kind}})

        m = re.fullmatch(r"/commits/([0-9a-fA-F]+)", rest)
        if m:
            matches = [s for s in self.commits if s.startswith(m.group(1).lower())]
            if len(matches) != 1:
                return _json({"message": "No commit found for SHA"}, status=422)
            return _json({"sha": matches[0]})

        m = re.fullmatch(r"/git/commits/([0-9a-f]{40})", rest)
        if m:
            commit = self.commits.get(m.group(1))
            if not commit:
                return _not_found()
            return _json({"sha": m.group(1), "tree": {"sha": commit["tree"]}})

        m = re.fullmatch(r"/git/trees/([0-9a-f]{40})", rest)
        if m:
            for commit in self.commits.values():
                if commit["tree"] == m.group(1):
                    return _json({"sha": m.group(1), "truncated": self.truncated,
                                  "tree": self._tree_entries(commit["files"])})
            return _not_found()

        m = re.fullmatch(r"/contents/(.+)", rest)
        if m:
            commit = self.commits.get(request.url.params.get("ref", ""))
            if not commit:
                return _not_found()
            if m.group(1) not in commit["files"]:
                listing = [{"path": p, "type": "file"} for p in commit["files"]
                           if p.startswith(m.group(1) + "/")]
                return _json(listing) if listing else _not_found()
            return httpx.Response(200, content=commit["files"][m.group(1)])

        m = re.fullmatch(r"/compare/(.+)\.\.\.(.+)", rest)
        if m:
            data = self.compares.get((m.group(1), m.group(2)))
            if data is None:
                return _not_found()
            return _json(data)

        return _not_found()


def numbered(count, label="line"):
    return "".join(f"{label} {i}\n" for i in range(1, count + 1))


@pytest.fixture()
def fake_github():
    return FakeGitHub()


@pytest.fixture()
def run_with_provider(fake_github):
    """Run ``fn(provider)`` against the fake GitHub and return its result."""
    def _run(fn):
        async def main():
            transport = httpx.MockTransport(fake_github.handler)
            async with httpx.AsyncClient(transport=transport) as client:
                return await fn(GitHubProvider("test-token", client))
        return asyncio.run(main())
    return _run


@pytest.fixture()
def client(fake_github):
    async def http_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(fake_github.handler)) as c:
            yield c

    app.dependency_overrides[get_http_client] = http_client
    app.dependency_overrides[get_token_provider] = lambda: TokenProvider({}, default="test-token")
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
