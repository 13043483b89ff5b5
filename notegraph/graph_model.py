import logging

import networkx as nx

from notegraph.schema import GraphEdgePayload, GraphNodePayload, NodeKind, RelationType

logger = logging.getLogger(__name__)


class Node:
    def __init__(self, uid, label, kind=NodeKind.CONCEPT, data=None):
        self.uid = uid
        self.label = label
        self.kind = NodeKind(kind)
        self.data = data or {}
        self.x = 0.0
        self.y = 0.0
        self.vx = 0.0
        self.vy = 0.0
        # Held by the user; the integrator leaves it in place
        self.pinned = False

    @property
    def is_concept(self):
        return self.kind == NodeKind.CONCEPT

    @property
    def position(self):
        return (self.x, self.y)

    def __repr__(self):
        return f"Node({self.uid!r}, {self.label!r}, {self.kind.value}, x={self.x:.1f}, y={self.y:.1f})"


class Edge:
    __slots__ = ("source", "target", "type", "weight")

    def __init__(self, source, target, type=RelationType.RELATED.value, weight=1.0):
        self.source = source
        self.target = target
        self.type = type
        self.weight = weight

    @property
    def relation(self):
        return RelationType.parse(self.type)

    def __iter__(self):
        # Allows `for u, v in model.edges` like a plain pair list
        yield self.source
        yield self.target

    def __repr__(self):
        return f"Edge({self.source!r} -> {self.target!r}, {self.type!r}, weight={self.weight})"


def _as_node_payload(item):
    if isinstance(item, GraphNodePayload):
        return item
    if isinstance(item, Node):
        return GraphNodePayload(id=item.uid, label=item.label, kind=item.kind, properties=item.data)
    return GraphNodePayload.model_validate(item)


def _as_edge_payload(item):
    if isinstance(item, GraphEdgePayload):
        return item
    if isinstance(item, Edge):
        return GraphEdgePayload(source=item.source, target=item.target, type=item.type, weight=item.weight)
    return GraphEdgePayload.model_validate(item)


def build_graph(nodes, edges):
    """
    Builds a MultiDiGraph from node/edge payloads (models, Node/Edge or plain dicts).
    Edges whose endpoints are not in `nodes` are dropped; duplicate ids keep the first node.
    """
    graph = nx.MultiDiGraph()

    for item in nodes:
        payload = _as_node_payload(item)
        if payload.id in graph:
            logger.debug(f"Duplicate node id {payload.id!r} ignored")
            continue
        graph.add_node(
            payload.id,
            label=payload.label or payload.id,
            kind=payload.kind,
            properties=payload.properties or {},
        )

    dropped = 0
    for item in edges:
        payload = _as_edge_payload(item)
        if payload.source not in graph or payload.target not in graph:
            dropped += 1
            logger.debug(f"Dropping edge {payload.source!r} -> {payload.target!r}: endpoint not loaded")
            continue
        graph.add_edge(payload.source, payload.target, type=payload.type, weight=payload.effective_weight)

    if dropped:
        logger.debug(f"Dropped {dropped} dangling edge(s)")
    return graph


class GraphModel:
    """Node/edge collections plus neighbor lookups. Replaced wholesale on every load."""

    def __init__(self):
        self.nodes = {}  # uid -> Node, in load order
        self.edges = []  # [Edge]
        self.incoming = {}  # uid -> [uids]
        self.outgoing = {}  # uid -> [uids]

    def load(self, nodes, edges):
        self.load_from_networkx(build_graph(nodes, edges))

    def load_from_networkx(self, nx_graph):
        # Build everything first, then swap, so readers never see a half-loaded graph
        nodes = {}
        incoming = {}
        outgoing = {}
        edges = []

        for uid, data in nx_graph.nodes(data=True):
            nodes[uid] = Node(uid, data.get("label", uid), data.get("kind", NodeKind.CONCEPT), data.get("properties"))
            incoming[uid] = []
            outgoing[uid] = []

        for u, v, data in nx_graph.edges(data=True):
            if u in nodes and v in nodes:
                edges.append(Edge(u, v, data.get("type", RelationType.RELATED.value), data.get("weight", 1.0)))
                outgoing[u].append(v)
                incoming[v].append(u)

        self.nodes, self.edges, self.incoming, self.outgoing = nodes, edges, incoming, outgoing

    def get(self, uid):
        return self.nodes.get(uid)

    def node_list(self):
        return list(self.nodes.values())

    def concept_nodes(self):
        return [n for n in self.nodes.values() if n.kind == NodeKind.CONCEPT]

    def note_nodes(self):
        return [n for n in self.nodes.values() if n.kind == NodeKind.NOTE]

    def to_networkx(self):
        graph = nx.MultiDiGraph()
        for node in self.nodes.values():
            graph.add_node(node.uid, label=node.label, kind=node.kind, properties=node.data)
        for edge in self.edges:
            graph.add_edge(edge.source, edge.target, type=edge.type, weight=edge.weight)
        return graph

    def components(self):
        """Weakly connected components, largest first."""
        graph = self.to_networkx()
        return sorted((set(c) for c in nx.weakly_connected_components(graph)), key=len, reverse=True)
