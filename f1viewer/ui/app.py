"""
Terminal UI

Textual application showing the catalog tree, an info table for the
highlighted node and, in debug mode, a log panel. Tree nodes are wrapped
in TextualNode, which implements the node primitives the engine uses.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Sequence

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.widgets import DataTable, Footer, RichLog, Tree
from textual.widgets.tree import TreeNode
from textual.worker import Worker, WorkerState

from f1viewer.nodes import NodeColor, NodeSpec, NodeState
from f1viewer.services.catalog_client import CatalogClient
from f1viewer.services.info_panel import InfoPanel
from f1viewer.services.tree_engine import TreeEngine


logger = logging.getLogger(__name__)

ROOT_LABEL = "VOD-Types"


class TextualNode:
    """Engine-facing view of a Textual tree node."""

    def __init__(
        self,
        node: TreeNode,
        label: str,
        *,
        color: NodeColor = NodeColor.ACTION,
        payload: Any = None,
        selectable: bool = True,
    ) -> None:
        self._node = node
        self._label = label
        self._color = color
        self._payload = payload
        self._selectable = selectable
        self.state = NodeState.UNEXPANDED
        node.data = self
        self._render()

    def _render(self) -> None:
        style = self._color.value if self._selectable else f"{self._color.value} dim"
        self._node.set_label(Text(self._label, style=style))

    @property
    def label(self) -> str:
        return self._label

    def set_label(self, label: str) -> None:
        self._label = label
        self._render()

    @property
    def color(self) -> NodeColor:
        return self._color

    def set_color(self, color: NodeColor) -> None:
        self._color = color
        self._render()

    @property
    def selectable(self) -> bool:
        return self._selectable

    def set_selectable(self, selectable: bool) -> None:
        self._selectable = selectable
        self._render()

    @property
    def expanded(self) -> bool:
        return self._node.is_expanded

    def set_expanded(self, expanded: bool) -> None:
        if expanded:
            self._node.expand()
        else:
            self._node.collapse()

    @property
    def payload(self) -> Any:
        return self._payload

    def set_payload(self, payload: Any) -> None:
        self._payload = payload

    @property
    def children(self) -> list[TextualNode]:
        return [child.data for child in self._node.children]

    def attach(self, specs: Sequence[NodeSpec]) -> None:
        for spec in specs:
            child = self._node.add(spec.label, expand=spec.expanded)
            wrapper = TextualNode(child, spec.label, color=spec.color, payload=spec.payload)
            if spec.children:
                wrapper.attach(spec.children)
                wrapper.set_expanded(spec.expanded)


class PanelLogHandler(logging.Handler):
    """Forwards log records to the debug panel."""

    def __init__(self, app: F1ViewerApp) -> None:
        super().__init__(level=logging.INFO)
        self._app = app
        self.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
        except Exception:
            self.handleError(record)
            return
        self._app.write_debug(message)


class F1ViewerApp(App):
    """Catalog browser."""

    TITLE = "f1viewer"

    CSS = """
    #catalog {
        width: 1fr;
    }
    #side {
        width: 1fr;
    }
    #info {
        height: 2fr;
        border: round $primary;
        border-title-align: left;
    }
    #debug {
        height: 1fr;
        border: round $secondary;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, *, debug: bool = False) -> None:
        super().__init__()
        self.debug_mode = debug
        self.engine: TreeEngine | None = None
        self.info_panel: InfoPanel | None = None
        self._root: TextualNode | None = None
        self._client: CatalogClient | None = None
        self._thread_id = threading.get_ident()

    def attach_services(self, engine: TreeEngine, info_panel: InfoPanel, client: CatalogClient) -> None:
        self.engine = engine
        self.info_panel = info_panel
        self._client = client

    def compose(self) -> ComposeResult:
        with Horizontal():
            yield Tree(ROOT_LABEL, id="catalog")
            with Vertical(id="side"):
                yield DataTable(id="info", show_header=False, cursor_type="none")
                if self.debug_mode:
                    yield RichLog(id="debug", wrap=True, markup=False)
        yield Footer()

    def on_mount(self) -> None:
        self._thread_id = threading.get_ident()
        tree = self.query_one("#catalog", Tree)
        tree.auto_expand = False
        tree.show_root = True
        self._root = TextualNode(tree.root, ROOT_LABEL, color=NodeColor.ROOT, selectable=False)
        tree.root.expand()

        table = self.query_one("#info", DataTable)
        table.border_title = "Info"
        table.add_columns("field", "value")
        if self.debug_mode:
            self.query_one("#debug", RichLog).border_title = "Debug"
            logging.getLogger().addHandler(PanelLogHandler(self))

        self.run_worker(self._load_root(), name="root", exit_on_error=False)

    async def on_unmount(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def _load_root(self) -> None:
        specs = await self.engine.load_root()
        self.info_panel.categories = self.engine.categories
        self._root.attach(specs)
        self.request_redraw()

    def request_redraw(self) -> None:
        try:
            self.query_one("#catalog", Tree).refresh()
        except NoMatches:
            pass

    def write_debug(self, message: str) -> None:
        if not self.debug_mode:
            return
        if threading.get_ident() != self._thread_id:
            self.call_from_thread(self.write_debug, message)
            return
        try:
            self.query_one("#debug", RichLog).write(message)
        except NoMatches:
            pass

    def on_tree_node_selected(self, event: Tree.NodeSelected) -> None:
        node = event.node.data
        if not isinstance(node, TextualNode) or not node.selectable:
            return
        self.run_worker(self.engine.select(node), group="select", exit_on_error=False)

    def on_tree_node_highlighted(self, event: Tree.NodeHighlighted) -> None:
        node = event.node.data
        if not isinstance(node, TextualNode):
            return
        # A newer highlight cancels the pending description
        self.run_worker(self._show_info(node.payload), group="info", exclusive=True, exit_on_error=False)

    async def _show_info(self, payload: Any) -> None:
        rows = await self.info_panel.describe(payload)
        table = self.query_one("#info", DataTable)
        table.clear()
        for row in rows:
            for index, line in enumerate(row.lines):
                title = Text(row.title, style="bold blue", justify="right") if index == 0 else ""
                table.add_row(title, line)
            table.add_row("", "")
        table.scroll_home(animate=False)

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if event.state == WorkerState.ERROR:
            logger.error("Background task %s failed: %s", event.worker.name, event.worker.error, exc_info=event.worker.error)
