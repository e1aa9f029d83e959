"""Deterministic NDJSON serialization of the canonical graph store"""

import json
from typing import Any, Dict, List, TextIO

from pydantic import BaseModel

from ..services.graph_service import GraphStore


def _encode(record: BaseModel) -> str:
    payload: Dict[str, Any] = record.model_dump(mode="json", exclude_none=True)
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def serialize(store: GraphStore) -> List[str]:
    """
    Encode the store as one compact JSON line per record.

    Metadata comes first, then nodes sorted by id, then edges sorted by
    ``(source, target, relationship)``. Quarantined dangling edges are not
    part of the canonical graph and are not emitted.
    """
    lines = []
    if store.metadata is not None:
        lines.append(_encode(store.metadata))
    for node_id in sorted(store.nodes):
        lines.append(_encode(store.nodes[node_id]))
    for edge in sorted(store.edges, key=lambda e: e.sort_key):
        lines.append(_encode(edge))
    return lines


def write_ndjson(store: GraphStore, stream: TextIO) -> int:
    """Write the serialized store to ``stream``; returns the number of lines written"""
    lines = serialize(store)
    for line in lines:
        stream.write(line)
        stream.write("\n")
    return len(lines)
