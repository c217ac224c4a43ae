"""Recursive tree listing of a pinned commit and its hierarchical form.

The hierarchy is stored arena-style: every node lives in ``FileTree.nodes``
keyed by its full path (the root is ``""``), and a directory only records the
names of its children. Building and rendering are both iterative.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, Union

from gitproxy.models import TreeEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileNode:
    name: str
    path: str
    entry: TreeEntry


@dataclass
class DirNode:
    name: str
    path: str
    children: dict[str, str] = field(default_factory=dict)


Node = Union[DirNode, FileNode]


def join_path(parent: str, name: str) -> str:
    return f"{parent}/{name}" if parent else name


def _sort_key(node: Node):
    # directories first, then by name
    return (isinstance(node, FileNode), node.name)


class FileTree:
    def __init__(self):
        self.nodes: dict[str, Node] = {"": DirNode(name="", path="")}

    @classmethod
    def build(cls, entries: Iterable[TreeEntry]) -> "FileTree":
        tree = cls()
        for entry in entries:
            tree.insert(entry)
        return tree

    def insert(self, entry: TreeEntry) -> None:
        parts = [p for p in entry.path.split("/") if p]
        if not parts:
            return
        parent = self.nodes[""]
        for name in parts[:-1]:
            parent = self._ensure_dir(parent, name)
        name = parts[-1]
        if entry.type == "blob":
            path = join_path(parent.path, name)
            self.nodes[path] = FileNode(name=name, path=path, entry=entry)
            parent.children[name] = path
        else:
            self._ensure_dir(parent, name)

    def _ensure_dir(self, parent: DirNode, name: str) -> DirNode:
        path = join_path(parent.path, name)
        node = self.nodes.get(path)
        if not isinstance(node, DirNode):
            node = DirNode(name=name, path=path)
            self.nodes[path] = node
            parent.children[name] = path
        return node

    def get(self, path: str) -> Node | None:
        return self.nodes.get(path.strip("/"))

    def children(self, path: str = "") -> list[Node]:
        node = self.nodes.get(path)
        if not isinstance(node, DirNode):
            return []
        return sorted((self.nodes[p] for p in node.children.values()), key=_sort_key)

    def files(self) -> list[FileNode]:
        return [n for n in self.nodes.values() if isinstance(n, FileNode)]


def parse_entries(raw: Iterable[dict]) -> list[TreeEntry]:
    """Keep blob and tree entries; submodules (``commit``) are dropped."""
    entries = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        if item.get("type") not in ("blob", "tree") or not isinstance(item.get("path"), str):
            continue
        entries.append(TreeEntry(
            path=item["path"],
            type=item["type"],
            sha=item.get("sha") or "",
            size=item.get("size"),
            mode=item.get("mode"),
        ))
    return entries


async def list_tree(provider, owner, repo, commit_sha) -> tuple[list[TreeEntry], bool]:
    """Flat entries of ``commit_sha`` plus GitHub's truncation flag."""
    tree_sha = await provider.get_commit_tree_sha(owner, repo, commit_sha)
    raw, truncated = await provider.get_tree(owner, repo, tree_sha)
    if truncated:
        logger.warning("Tree listing for %s/%s@%s is truncated upstream", owner, repo, commit_sha)
    return parse_entries(raw), truncated


def dir_prefix(directory: str) -> str:
    directory = directory.strip("/")
    return f"{directory}/" if directory else ""


def entries_under(entries: Iterable[TreeEntry], directory: str = "") -> list[TreeEntry]:
    prefix = dir_prefix(directory)
    selected = [e for e in entries if e.path.startswith(prefix)]
    return sorted(selected, key=lambda e: e.path)


def list_files(entries: Iterable[TreeEntry], directory: str = "") -> list[str]:
    """Sorted blob paths under ``directory`` (whole repo when empty)."""
    return [e.path for e in entries_under(entries, directory) if e.type == "blob"]


def _mark_last(nodes: list[Node]) -> Iterator[tuple[Node, bool]]:
    for i, node in enumerate(nodes):
        yield node, i == len(nodes) - 1


def render_tree(
    tree: FileTree,
    root_label: str,
    file_link: Callable[[str], str],
    dir_link: Callable[[str], str],
) -> str:
    """Text rendering with a fetch link under every file and a bundle link on every directory."""
    lines = [f"{root_label}/  📦 {dir_link('')}"]
    stack = [(_mark_last(tree.children("")), "")]
    while stack:
        siblings, prefix = stack[-1]
        item = next(siblings, None)
        if item is None:
            stack.pop()
            continue
        node, is_last = item
        connector = "└─" if is_last else "├─"
        child_prefix = prefix + ("   " if is_last else "│  ")
        if isinstance(node, FileNode):
            lines.append(f"{prefix}{connector} {node.name}")
            lines.append(f"{child_prefix}└─ 🔗 {file_link(node.path)}")
        else:
            lines.append(f"{prefix}{connector} {node.name}/  📦 {dir_link(node.path)}")
            stack.append((_mark_last(tree.children(node.path)), child_prefix))
    return "\n".join(lines) + "\n"
