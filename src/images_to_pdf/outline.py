"""Hierarchical table of contents built from slash-delimited item paths."""

from __future__ import annotations

import weakref
from collections.abc import Sequence
from dataclasses import dataclass

from .paths import split_segments
from .renderer import Page
from .sources import Item


@dataclass(frozen=True)
class OutlineEntry:
    """One node of the exported, immutable outline."""

    title: str
    page: Page
    children: tuple[OutlineEntry, ...] = ()


class OutlineNode:
    """A mutable outline node, one per distinct path segment.

    Children are keyed by title and kept in the order they were first
    added. The parent link is a weak reference; ownership runs strictly
    from parent to children.
    """

    def __init__(self, title: str, parent: OutlineNode | None = None) -> None:
        self.title = title
        self.page: Page | None = None
        self.children: dict[str, OutlineNode] = {}
        self._parent = weakref.ref(parent) if parent is not None else None

    def __repr__(self) -> str:
        return f"OutlineNode({self.title!r}, children={len(self.children)})"

    @property
    def parent(self) -> OutlineNode | None:
        return self._parent() if self._parent is not None else None

    @property
    def first_child(self) -> OutlineNode | None:
        return next(iter(self.children.values()), None)

    def add_path(self, segments: Sequence[str]) -> OutlineNode:
        """Create (or reuse) one descendant per segment; return the last one."""
        node = self
        for title in segments:
            child = node.children.get(title)
            if child is None:
                child = OutlineNode(title, parent=node)
                node.children[title] = child
            node = child
        return node

    def bind(self, page: Page, segments: Sequence[str]) -> bool:
        """Bind *page* to the node at *segments* below this one.

        On the way back up, a node without a page adopts the page when the
        child it came through is its first child. Returns ``False`` if the
        path does not exist in the tree.
        """
        if not segments:
            self.page = page
            return True

        child = self.children.get(segments[0])
        if child is None or not child.bind(page, segments[1:]):
            return False

        if self.page is None and child is self.first_child:
            self.page = page
        return True

    def export(self) -> OutlineEntry | None:
        """Export this subtree, children sorted by title.

        Subtrees without any bound page are dropped. A node with no page of
        its own but with exported children links to their earliest page.
        """
        children = tuple(
            entry
            for entry in (
                self.children[title].export() for title in sorted(self.children)
            )
            if entry is not None
        )

        page = self.page
        if page is None:
            if not children:
                return None
            page = min((entry.page for entry in children), key=lambda p: p.index)

        return OutlineEntry(title=self.title, page=page, children=children)


class OutlineTree:
    """The document outline rooted at a node titled after the document."""

    def __init__(self, title: str) -> None:
        self.root = OutlineNode(title)

    @classmethod
    def from_items(cls, title: str, items: Sequence[Item]) -> OutlineTree:
        """Run the structural pass over items in canonical order."""
        tree = cls(title)
        for item in items:
            tree.add(item.path)
        return tree

    def add(self, path: str) -> OutlineNode:
        return self.root.add_path(split_segments(path))

    def bind(self, page: Page, path: str) -> bool:
        return self.root.bind(page, split_segments(path))

    def bind_pages(self, items: Sequence[Item], pages: Sequence[Page]) -> None:
        """Run the binding pass; *pages* must be in canonical order."""
        for page in pages:
            self.bind(page, items[page.index].path)

    def export(self) -> OutlineEntry | None:
        return self.root.export()
