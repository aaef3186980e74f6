"""Manifest scanning -- pull component declarations out of Brewfile text.

Only the first two tokens of a declaration line matter: the keyword and the
quoted name. ``tap 'user/repo', 'https://example.com/repo.git'`` reduces to
the declaration ``tap 'user/repo'`` and the name ``user/repo``. Arguments
after the name are ignored, so two blends that install the same formula
with different options still count as sharing it. Quote style is not
normalized: ``brew 'x'`` and ``brew "x"`` are different declarations.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from blend.models import Component, ComponentKind

_QUOTES = "'\""


def parse_line(line: str) -> Component | None:
    """Return the component declared on a manifest line, if any."""
    tokens = line.strip().split()
    if len(tokens) < 2 or tokens[0].startswith("#"):
        return None

    keyword = tokens[0]
    quoted = tokens[1].rstrip(",")
    if len(quoted) < 3 or quoted[0] not in _QUOTES or quoted[-1] != quoted[0]:
        return None

    return Component(
        kind=ComponentKind.from_keyword(keyword),
        keyword=keyword,
        name=quoted[1:-1],
        declaration=f"{keyword} {quoted}",
    )


def scan_components(text: str | bytes, kind: ComponentKind | None = None) -> list[Component]:
    """Scan manifest text for declarations, optionally of a single kind.

    Order of first appearance is kept; repeated declarations are collapsed.
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")

    seen: set[str] = set()
    components = []
    for line in text.splitlines():
        component = parse_line(line)
        if component is None or component.declaration in seen:
            continue
        if kind is not None and component.kind != kind:
            continue
        seen.add(component.declaration)
        components.append(component)
    return components


class ComponentIndex:
    """Reverse index from declaration text to the blends that declare it."""

    def __init__(self):
        self._owners: dict[str, set[str]] = defaultdict(set)

    @classmethod
    def build(cls, manifests: Iterable[tuple[str, bytes]]) -> ComponentIndex:
        index = cls()
        for blend_name, data in manifests:
            index.add(blend_name, scan_components(data))
        return index

    def add(self, blend_name: str, components: Iterable[Component]) -> None:
        for component in components:
            self._owners[component.declaration].add(blend_name)

    def owners(self, component: Component) -> set[str]:
        return set(self._owners.get(component.declaration, ()))

    def is_referenced_elsewhere(self, component: Component, excluding: str) -> bool:
        return bool(self.owners(component) - {excluding})
