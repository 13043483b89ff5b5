import logging
import random

from PyQt6.QtCore import QObject, pyqtSignal

from notegraph.config import LayoutConfig
from notegraph.graph_model import GraphModel, Node
from notegraph.simulation import QtClock, SimState, Simulation, seed_positions
from notegraph.view_transform import ViewTransform
from notegraph.workers import ThreadRunner

logger = logging.getLogger(__name__)

FOCUS_SCALE = 1.5


class LayoutController(QObject):
    """
    Owns the graph collections, the simulation and the view transform.

    All mutation happens here, on the thread that owns the controller. Fetches run
    through `runner` and their completions come back as queued calls.
    """

    graph_changed = pyqtSignal()
    selection_changed = pyqtSignal(object)  # Node or None
    loading_changed = pyqtSignal(bool)
    fetch_failed = pyqtSignal(str)
    simulation_state_changed = pyqtSignal(bool)  # running
    ticked = pyqtSignal()

    def __init__(self, source=None, config=None, clock=None, runner=None, rng=None, depth=2, limit=100, parent=None):
        super().__init__(parent)
        self.source = source
        self.config = config or LayoutConfig()
        self.runner = runner or ThreadRunner()
        self.rng = rng or random.Random()
        self.depth = depth
        self.limit = limit

        self.model = GraphModel()
        self.transform = ViewTransform()
        self.simulation = Simulation(
            self.model,
            self.config,
            clock if clock is not None else QtClock(self),
            on_tick=self._on_tick,
            on_state_changed=self._on_simulation_state,
        )

        self.selected = None
        self.error_message = None
        self._in_flight = 0
        self._last_request = 0
        self._applied_request = 0

    # --- Read-only views for the renderer ---

    @property
    def nodes(self):
        return self.model.node_list()

    @property
    def edges(self):
        return list(self.model.edges)

    @property
    def is_loading(self):
        return self._in_flight > 0

    @property
    def is_simulating(self):
        return self.simulation.is_running

    def node(self, uid):
        return self.model.get(uid)

    def neighbors(self, uid):
        """(incoming uids, outgoing uids) for the details panel."""
        return list(self.model.incoming.get(uid, [])), list(self.model.outgoing.get(uid, []))

    # --- Graph replacement ---

    def load(self, nodes, edges):
        """Replaces the graph and re-seeds every position. Does not start the simulation."""
        self.model.load(nodes, edges)
        seed_positions(self.model.node_list(), self.config, self.rng)

        if self.selected is not None:
            # Same uid across refreshes means same entity; otherwise the selection is gone
            self._set_selected(self.model.get(self.selected.uid))

        logger.info(f"Loaded graph: {len(self.model.nodes)} nodes, {len(self.model.edges)} edges")
        self.graph_changed.emit()

    def load_snapshot(self, snapshot):
        self.load(snapshot.nodes, snapshot.edges)

    # --- Simulation lifecycle ---

    def start_simulation(self):
        return self.simulation.start()

    def stop_simulation(self):
        self.simulation.stop()

    # --- Interaction ---

    def select(self, node):
        """Toggles selection: selecting the selected node clears it."""
        if node is None:
            self._set_selected(None)
            return None

        resolved = self._resolve(node)
        if resolved is None:
            logger.debug(f"Ignoring selection of unknown node {node!r}")
            return self.selected

        if self.selected is not None and self.selected.uid == resolved.uid:
            resolved = None
        self._set_selected(resolved)
        return self.selected

    def focus(self, node):
        """Selects `node`, zooms toward it and, for concepts, loads the sub-graph around it."""
        node = self._resolve(node)
        if node is None:
            return None

        self._set_selected(node)
        # Uses the position the node has right now, before any refresh lands
        self.transform.focus_on(node.position, self.config.center, FOCUS_SCALE)

        if not node.is_concept:
            return None

        label = node.label
        depth = self.depth
        return self._fetch(lambda: self.source.get_concept_graph(label, depth=depth), f"concept {label!r}")

    def reset(self):
        self._set_selected(None)
        self.transform.reset()
        return self.refresh()

    def refresh(self):
        depth, limit = self.depth, self.limit
        return self._fetch(lambda: self.source.get_graph(depth=depth, limit=limit), "graph")

    def move_node(self, node, x, y):
        """Pins `node` at (x, y) while the user drags it."""
        node = self._resolve(node)
        if node is None:
            return
        node.x = float(x)
        node.y = float(y)
        node.vx = 0.0
        node.vy = 0.0
        node.pinned = True
        self.start_simulation()

    def release_node(self, node):
        node = self._resolve(node)
        if node is None:
            return
        node.pinned = False
        self.start_simulation()

    def end_drag(self, node, moved):
        """Ends a press on `node`: a drag releases it back to the physics, a plain click toggles selection."""
        if moved:
            self.release_node(node)
        else:
            self.select(node)

    def shutdown(self):
        self.stop_simulation()
        self.runner.wait()

    # --- Internals ---

    def _resolve(self, node):
        if isinstance(node, Node):
            return self.model.get(node.uid)
        return self.model.get(node)

    def _set_selected(self, node):
        previous = self.selected
        self.selected = node
        if previous is not node:
            self.selection_changed.emit(node)

    def _fetch(self, fetch, description):
        if self.source is None:
            logger.warning(f"No graph source configured; cannot fetch {description}")
            return None

        self._last_request += 1
        request_id = self._last_request
        self._in_flight += 1
        if self._in_flight == 1:
            self.loading_changed.emit(True)

        logger.debug(f"Fetching {description} (request #{request_id})")
        self.runner.submit(fetch, request_id, self._on_fetch_succeeded, self._on_fetch_failed)
        return request_id

    def _finish_request(self):
        self._in_flight = max(0, self._in_flight - 1)
        if self._in_flight == 0:
            self.loading_changed.emit(False)

    def _on_fetch_succeeded(self, snapshot, request_id):
        self._finish_request()
        if request_id < self._applied_request:
            logger.info(f"Discarding stale response #{request_id}; #{self._applied_request} already applied")
            return

        self._applied_request = request_id
        self.error_message = None
        self.load_snapshot(snapshot)
        self.start_simulation()

    def _on_fetch_failed(self, message, request_id):
        self._finish_request()
        logger.warning(f"Graph fetch #{request_id} failed: {message}")
        if request_id < self._applied_request:
            return
        # Keep the last good graph and transform on screen
        self.error_message = message
        self.fetch_failed.emit(message)

    def _on_tick(self, movement):
        self.ticked.emit()

    def _on_simulation_state(self, state):
        self.simulation_state_changed.emit(state is SimState.RUNNING)
