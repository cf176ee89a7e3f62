"""
Busy Indicator

Blinks a tree node while an operation on it is pending.
"""
import asyncio
import logging
from typing import Awaitable, TypeVar

from f1viewer.nodes import LOADING_LABEL, NodeColor, RedrawHook, TreeNodeView, no_redraw


logger = logging.getLogger(__name__)

T = TypeVar("T")


class BusyIndicator:
    """
    Alternates a node's colour until a one-shot completion event is set.

    The node shows a loading placeholder while blinking; its label and
    colour are restored once the event fires.
    """

    def __init__(
        self,
        interval: float = 0.2,
        *,
        loading_color: NodeColor = NodeColor.LOADING,
        redraw: RedrawHook = no_redraw,
    ) -> None:
        self._interval = interval
        self._loading_color = loading_color
        self._redraw = redraw

    async def blink(self, node: TreeNodeView, done: asyncio.Event) -> None:
        """Blink node until done is set, then restore it."""
        original_label = node.label
        original_color = node.color
        node.set_label(LOADING_LABEL)
        self._redraw()

        colors = (self._loading_color, original_color)
        tick = 0
        try:
            while not done.is_set():
                node.set_color(colors[tick % 2])
                self._redraw()
                tick += 1
                try:
                    await asyncio.wait_for(done.wait(), timeout=self._interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            node.set_label(original_label)
            node.set_color(original_color)
            self._redraw()

    async def track(self, node: TreeNodeView, work: Awaitable[T]) -> T:
        """
        Await work while the node blinks.

        The blink stops and the node is restored before this returns,
        whether work succeeded or raised.
        """
        done = asyncio.Event()
        blinker = asyncio.create_task(self.blink(node, done))
        try:
            return await work
        finally:
            done.set()
            await blinker
