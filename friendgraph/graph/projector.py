"""
Graph projector - turns a user snapshot into renderable nodes and edges.

Nodes sit on a circle around a fixed center, in snapshot order, at angle
2*pi*index/n, optionally offset by a seeded jitter. Edges are deduplicated per
unordered friend pair.
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Sequence

import networkx as nx

from ..models import (
    GraphEdge,
    GraphNode,
    GraphNodeData,
    GraphProjection,
    NodePosition,
    User,
)
from ..settings import Settings, get_settings

logger = logging.getLogger(__name__)

HIGH_SCORE_NODE = "HighScoreNode"
LOW_SCORE_NODE = "LowScoreNode"
EDGE_TYPE = "smoothstep"


def pair_key(a: str, b: str) -> tuple[str, str]:
    """Canonical key of an unordered pair."""
    return (a, b) if a <= b else (b, a)


class GraphProjector:
    """Builds friendship graphs and their visual projection"""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def build_graph(self, users: Sequence[User]) -> nx.Graph:
        """Undirected NetworkX graph of the snapshot.

        Friend ids missing from the snapshot are skipped.
        """
        graph = nx.Graph()
        for user in users:
            graph.add_node(
                user.id,
                username=user.username,
                age=user.age,
                hobbies=list(user.hobbies),
                popularity_score=user.popularity_score,
            )

        for user in users:
            for friend_id in user.friends:
                if friend_id not in graph:
                    logger.warning(f"Skipping edge {user.id} -> {friend_id}: friend not in snapshot")
                    continue
                if friend_id == user.id:
                    logger.warning(f"Skipping self edge on {user.id}")
                    continue
                graph.add_edge(*pair_key(user.id, friend_id))

        return graph

    def layout(self, node_ids: Sequence[str]) -> dict[str, tuple[float, float]]:
        """Circular positions for ``node_ids`` in order."""
        center_x, center_y = self.settings.layout_center
        radius = self.settings.layout_radius
        jitter = self.settings.layout_jitter
        rng = random.Random(self.settings.graph_random_seed)

        count = len(node_ids)
        positions = {}
        for index, node_id in enumerate(node_ids):
            angle = 2 * math.pi * index / count
            x = center_x + radius * math.cos(angle)
            y = center_y + radius * math.sin(angle)
            if jitter:
                x += (rng.random() - 0.5) * jitter
                y += (rng.random() - 0.5) * jitter
            positions[node_id] = (x, y)
        return positions

    def node_type(self, score: float) -> str:
        return HIGH_SCORE_NODE if score > self.settings.high_score_threshold else LOW_SCORE_NODE

    def project(self, users: Sequence[User], revision: int | None = None) -> GraphProjection:
        """Project a snapshot into nodes and edges. Pure: no mutation, no I/O."""
        graph = self.build_graph(users)
        positions = self.layout([user.id for user in users])

        nodes = []
        for user in users:
            x, y = positions[user.id]
            node_type = self.node_type(user.popularity_score)
            nodes.append(
                GraphNode(
                    id=user.id,
                    data=GraphNodeData(
                        label=f"{user.username} ({user.age})",
                        username=user.username,
                        age=user.age,
                        hobbies=list(user.hobbies),
                        popularity_score=user.popularity_score,
                    ),
                    position=NodePosition(x=x, y=y),
                    type=node_type,
                    category="high" if node_type == HIGH_SCORE_NODE else "low",
                )
            )

        edges = []
        for source, target in graph.edges():
            source, target = pair_key(source, target)
            edges.append(GraphEdge(id=f"edge-{source}-{target}", source=source, target=target, type=EDGE_TYPE))

        logger.debug(f"Projected {len(nodes)} nodes and {len(edges)} edges")
        return GraphProjection(nodes=nodes, edges=edges, revision=revision)
