import random

import pytest

from notegraph.api_client import GraphFetchError
from notegraph.config import LayoutConfig
from notegraph.controller import LayoutController
from notegraph.schema import ConceptSubgraph, GraphSnapshot
from notegraph.simulation import ManualClock
from notegraph.workers import InlineRunner


GRAPH = {
    "nodes": [
        {"id": "c1", "label": "Calculus", "type": "Concept"},
        {"id": "c2", "label": "Limits", "type": "Concept"},
        {"id": "c3", "label": "Derivatives", "type": "Concept"},
        {"id": "n1", "label": "Lecture 3", "type": "Note"},
    ],
    "edges": [
        {"source": "c1", "target": "c2", "type": "CONTAINS"},
        {"source": "c2", "target": "c3", "type": "LEADS_TO", "weight": 2.0},
        {"source": "n1", "target": "c3", "type": "RELATED"},
        {"source": "c1", "target": "gone", "type": "RELATED"},
    ],
}

CONCEPT = {
    "center": {"name": "Limits"},
    "connected": [
        {"concept": "Epsilon-delta", "relation": "REQUIRES", "depth": 1},
        {"concept": "Continuity", "relation": "LEADS_TO", "depth": 1},
    ],
}


class FakeSource:
    def __init__(self, graph=GRAPH, concept=CONCEPT):
        self.graph = graph
        self.concept = concept
        self.fail = False
        self.calls = []

    def get_graph(self, depth=2, limit=100):
        self.calls.append(("graph", depth, limit))
        if self.fail:
            raise GraphFetchError("server unreachable")
        return GraphSnapshot.model_validate(self.graph)

    def get_concept_graph(self, name, depth=2):
        self.calls.append(("concept", name, depth))
        if self.fail:
            raise GraphFetchError("server unreachable")
        return ConceptSubgraph.model_validate(self.concept).to_snapshot()


class DeferredRunner:
    """Holds submitted fetches so a test decides when, and in which order, they complete."""

    def __init__(self):
        self.pending = []

    def submit(self, fetch, request_id, on_success, on_error):
        self.pending.append((fetch, request_id, on_success, on_error))

    def complete(self, index=0):
        fetch, request_id, on_success, on_error = self.pending.pop(index)
        try:
            snapshot = fetch()
        except GraphFetchError as e:
            on_error(str(e), request_id)
            return
        on_success(snapshot, request_id)

    def wait(self, msecs=5000):
        pass


@pytest.fixture
def config():
    return LayoutConfig()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def controller(source, config, clock, rng):
    return LayoutController(source=source, config=config, clock=clock, runner=InlineRunner(), rng=rng)
