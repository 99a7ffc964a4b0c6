from __future__ import annotations

import logging

import yaml

from workgraph.core.errors import GraphError, PersistenceError
from workgraph.core.graph.graph_model import GraphModel
from workgraph.core.io.store import GraphStore
from workgraph.core.layout.engine import layout_positions, normalize_mode
from workgraph.core.model import NodePosition

logger = logging.getLogger(__name__)


def organize(store: GraphStore, project_id: str, mode: str) -> list[NodePosition]:
    """Explicit re-layout: recompute every node's position and persist it.

    Saved positions are overwritten. An unknown mode fails before the store is read.
    """
    m = normalize_mode(mode)
    graph = GraphModel.build(store.list_nodes(project_id), store.list_edges(project_id))
    positions = layout_positions(graph, m)

    try:
        store.save_positions(project_id, positions)
    except PersistenceError:
        raise
    except (GraphError, OSError, yaml.YAMLError) as e:
        raise PersistenceError(
            code="E_SAVE_POSITIONS",
            message=f"failed to save positions: {e}",
            path=project_id,
        ) from e

    logger.info("organized %d nodes in project %s (mode=%s)", len(positions), project_id, m)
    return positions
