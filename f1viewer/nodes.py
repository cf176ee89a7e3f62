"""
Node primitives shared by the tree engine and the UI.

The engine never talks to a widget toolkit directly. It describes the
nodes it wants with NodeSpec and mutates existing nodes through the
TreeNodeView protocol, which the UI implements.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Protocol, Sequence

NO_CONTENT_SUFFIX = " - NO CONTENT AVAILABLE"
LIVE_SUFFIX = " - LIVE"
LOADING_LABEL = "loading..."


class NodeColor(str, Enum):
    """Rich colour names used for node labels."""
    ROOT = "blue"
    CATEGORY = "yellow"
    FOLDER = "wheat1"
    ITEM = "green"
    ACTION = "white"
    LOADING = "blue"
    NO_CONTENT = "red"
    LIVE = "red"
    DISPATCHED = "blue"


class NodeState(str, Enum):
    UNEXPANDED = "unexpanded"
    LOADING = "loading"
    POPULATED = "populated"
    NO_CONTENT = "no_content"


@dataclass
class NodeSpec:
    """Description of a node to be created, possibly with children."""
    label: str
    payload: Any = None
    color: NodeColor = NodeColor.ACTION
    expanded: bool = False
    children: list[NodeSpec] = field(default_factory=list)


class TreeNodeView(Protocol):
    """Operations the engine needs on a tree node."""

    state: NodeState

    @property
    def label(self) -> str: ...

    def set_label(self, label: str) -> None: ...

    @property
    def color(self) -> NodeColor: ...

    def set_color(self, color: NodeColor) -> None: ...

    @property
    def selectable(self) -> bool: ...

    def set_selectable(self, selectable: bool) -> None: ...

    @property
    def expanded(self) -> bool: ...

    def set_expanded(self, expanded: bool) -> None: ...

    @property
    def payload(self) -> Any: ...

    def set_payload(self, payload: Any) -> None: ...

    @property
    def children(self) -> Sequence[TreeNodeView]: ...

    def attach(self, specs: Sequence[NodeSpec]) -> None:
        """Create and add all children described by specs in one step."""
        ...


RedrawHook = Callable[[], None]


def no_redraw() -> None:
    pass
