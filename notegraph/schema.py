"""
Boundary models for graph payloads returned by the notes service.

Payloads are validated here before anything reaches the layout model, so the
engine only ever sees well-formed ids, kinds and positive weights.
"""
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class NodeKind(str, Enum):
    CONCEPT = "concept"
    NOTE = "note"


class RelationType(str, Enum):
    REQUIRES = "requires"
    CONTAINS = "contains"
    LEADS_TO = "leads_to"
    RELATED = "related"

    @classmethod
    def parse(cls, raw):
        """Maps a server relation tag ("LEADS_TO", "leads-to", ...) to a member, RELATED if unknown."""
        key = str(raw or "").strip().lower().replace("-", "_").replace(" ", "_")
        try:
            return cls(key)
        except ValueError:
            return cls.RELATED

    @property
    def color(self):
        return RELATION_STYLES[self]["color"]

    @property
    def is_dashed(self):
        return RELATION_STYLES[self]["dashed"]

    @property
    def has_arrow(self):
        return RELATION_STYLES[self]["arrow"]


RELATION_STYLES = {
    RelationType.REQUIRES: {"color": "#e53935", "dashed": False, "arrow": True},
    RelationType.CONTAINS: {"color": "#1e88e5", "dashed": True, "arrow": False},
    RelationType.LEADS_TO: {"color": "#43a047", "dashed": False, "arrow": True},
    RelationType.RELATED: {"color": "#9e9e9e", "dashed": False, "arrow": False},
}


class GraphNodePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    label: str = ""
    kind: NodeKind = Field(
        default=NodeKind.CONCEPT, validation_alias=AliasChoices("kind", "type")
    )
    properties: Optional[Dict[str, Any]] = None

    @field_validator("kind", mode="before")
    @classmethod
    def _normalize_kind(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


class GraphEdgePayload(BaseModel):
    source: str = Field(min_length=1)
    target: str = Field(min_length=1)
    type: str = RelationType.RELATED.value
    weight: Optional[float] = Field(default=None, gt=0)

    @property
    def effective_weight(self):
        return 1.0 if self.weight is None else self.weight


class GraphSnapshot(BaseModel):
    nodes: List[GraphNodePayload] = Field(default_factory=list)
    edges: List[GraphEdgePayload] = Field(default_factory=list)


class ConceptRef(BaseModel):
    label: str = Field(min_length=1, validation_alias=AliasChoices("label", "name"))


class ConnectedConcept(BaseModel):
    concept: str = Field(min_length=1)
    relation: str = RelationType.RELATED.value
    depth: int = Field(default=1, ge=0)


class ConceptSubgraph(BaseModel):
    center: ConceptRef
    connected: List[ConnectedConcept] = Field(default_factory=list)

    def to_snapshot(self):
        """Synthesizes a center node plus one node and edge per connected entry."""
        center_id = f"center-{self.center.label}"
        nodes = [GraphNodePayload(id=center_id, label=self.center.label, kind=NodeKind.CONCEPT)]
        edges = []
        for index, entry in enumerate(self.connected):
            node_id = f"concept-{index}-{entry.concept}"
            nodes.append(GraphNodePayload(id=node_id, label=entry.concept, kind=NodeKind.CONCEPT))
            edges.append(GraphEdgePayload(source=center_id, target=node_id, type=entry.relation))
        return GraphSnapshot(nodes=nodes, edges=edges)


def parse_graph(payload):
    return GraphSnapshot.model_validate(payload)


def parse_concept_graph(payload):
    """Accepts either a ConceptSubgraph or a plain snapshot from the concept endpoint."""
    if isinstance(payload, dict) and "nodes" in payload and "center" not in payload:
        logger.debug("Concept endpoint returned a full snapshot shape")
        return GraphSnapshot.model_validate(payload)
    return ConceptSubgraph.model_validate(payload).to_snapshot()
