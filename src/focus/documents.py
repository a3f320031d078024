"""Immutable container/entity forest and copy-on-write update helpers."""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional, Protocol, Sequence

_TAG_RE = re.compile(r"<[^>]+>")

EntityPath = tuple[int, ...]


@dataclass(frozen=True)
class Entity:
    """Trackable work item. The first line of ``text`` is its title."""
    id: str
    text: str
    children: tuple["Entity", ...] = ()
    data: Mapping[str, Any] = field(default_factory=dict)

    @property
    def title(self) -> str:
        return display_title(self.text)

    def with_text(self, text: str) -> "Entity":
        return replace(self, text=text)


@dataclass(frozen=True)
class Container:
    """Tree of entities persisted as a single unit (for example a board)."""
    id: str
    name: str
    children: tuple[Entity, ...] = ()
    data: Mapping[str, Any] = field(default_factory=dict)


class DocumentStoreError(Exception):
    """Raised by a document store that cannot persist a container."""


ContainerChange = Callable[[Container], Optional[Container]]


class DocumentStore(Protocol):
    def containers(self) -> Sequence[Container]:
        ...

    def replace(self, container: Container) -> None:
        ...

    def update(self, container_id: str, change: ContainerChange) -> Optional[Container]:
        """Apply ``change`` to the current persisted container and store the result.

        ``change`` returning ``None`` leaves the container untouched. Returns the
        stored container, or ``None`` when nothing was written.
        """
        ...


class InMemoryDocumentStore:
    """Thread-safe document store holding containers in memory."""
    def __init__(self, containers: Iterable[Container] = ()):
        self._lock = threading.RLock()
        self._containers: list[Container] = list(containers)

    def containers(self) -> Sequence[Container]:
        with self._lock:
            return tuple(self._containers)

    def replace(self, container: Container) -> None:
        with self._lock:
            for index, existing in enumerate(self._containers):
                if existing.id == container.id:
                    self._containers[index] = container
                    return
            self._containers.append(container)

    def update(self, container_id: str, change: ContainerChange) -> Optional[Container]:
        with self._lock:
            current = next((c for c in self._containers if c.id == container_id), None)
            if current is None:
                return None
            updated = change(current)
            if updated is None:
                return None
            self.replace(updated)
            return updated

    def remove(self, container_id: str) -> None:
        with self._lock:
            self._containers = [c for c in self._containers if c.id != container_id]


def display_title(text: str) -> str:
    first_line = text.split("\n", 1)[0]
    cleaned = _TAG_RE.sub("", first_line).replace("&nbsp;", " ").strip()
    return cleaned or "Untitled"


def iter_entities(entities: Iterable[Entity]) -> Iterator[Entity]:
    """Yield every entity of a forest, parents before their children."""
    for entity in entities:
        yield entity
        if entity.children:
            yield from iter_entities(entity.children)


def find_path(entities: Sequence[Entity], entity_id: str) -> Optional[EntityPath]:
    """Return the child-index path to ``entity_id``, or ``None``."""
    for index, entity in enumerate(entities):
        if entity.id == entity_id:
            return (index,)
        if entity.children:
            sub_path = find_path(entity.children, entity_id)
            if sub_path is not None:
                return (index, *sub_path)
    return None


def entity_at(entities: Sequence[Entity], path: EntityPath) -> Entity:
    if not path:
        raise ValueError("path must not be empty")
    entity = entities[path[0]]
    for index in path[1:]:
        entity = entity.children[index]
    return entity


def update_at_path(
    entities: Sequence[Entity],
    path: EntityPath,
    transform: Callable[[Entity], Entity],
) -> tuple[Entity, ...]:
    """Rebuild the ancestors along ``path`` around a transformed leaf.

    Siblings that are not on the path are reused as-is.
    """
    if not path:
        raise ValueError("path must not be empty")
    head, rest = path[0], path[1:]
    target = entities[head]
    if rest:
        updated = replace(target, children=update_at_path(target.children, rest, transform))
    else:
        updated = transform(target)
    return (*entities[:head], updated, *entities[head + 1 :])


def build_index(containers: Iterable[Container]) -> dict[str, Container]:
    """Map entity ids to the first container holding them."""
    index: dict[str, Container] = {}
    for container in containers:
        for entity in iter_entities(container.children):
            index.setdefault(entity.id, container)
    return index
