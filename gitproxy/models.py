from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    # immutable once built; serialized with camelCase keys
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class ResolvedCommit(WireModel):
    ref: str
    commit_sha: str
    default_branch: str


class TreeEntry(WireModel):
    path: str
    type: Literal["blob", "tree"]
    sha: str
    size: Optional[int] = None
    mode: Optional[str] = None


class FileContent(WireModel):
    path: str
    text: str
    blob_sha: str
    size: int
    sha256: str


class DiffCommit(WireModel):
    sha: str
    message: str
    author: str
    date: str


class DiffFile(WireModel):
    filename: str
    status: str
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    blob_url: Optional[str] = None
    raw_url: Optional[str] = None
    patch: Optional[str] = None


class DiffResult(WireModel):
    owner: str
    repo: str
    base: str
    head: str
    base_commit_sha: str
    head_commit_sha: str
    status: Optional[str] = None
    ahead_by: int = 0
    behind_by: int = 0
    total_commits: int = 0
    commits: list[DiffCommit]
    files: list[DiffFile]


class TreeCounts(WireModel):
    total: int
    blobs: int
    trees: int


class TreeMeta(WireModel):
    owner: str
    repo: str
    ref: str
    commit_sha: str
    dir: str
    truncated: bool
    counts: TreeCounts
    items: list[TreeEntry]
