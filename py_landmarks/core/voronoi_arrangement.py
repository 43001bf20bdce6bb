"""
Editable planar subdivision built from a Voronoi diagram.

The faces of a ``VoronoiArrangement`` are the Voronoi regions of its sites
(computed with ``scipy.spatial.Voronoi``), its edges are the Voronoi ridges
and its vertices are the finite Voronoi vertices plus any isolated vertices
placed inside faces.
"""

import math
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial import Voronoi, cKDTree
import structlog

from ..config import settings
from .events import LocalEditKind
from .point_location import Feature
from .subdivision import ObservableSubdivision
from .traits import GeometryTraits, Point

logger = structlog.get_logger()


@dataclass(frozen=True)
class Vertex:
    """A subdivision vertex."""
    index: int
    point: Point
    isolated: bool = False


@dataclass(frozen=True)
class Edge:
    """A Voronoi ridge separating two sites. Vertex index -1 lies at infinity."""
    index: int
    sites: Tuple[int, int]
    vertices: Tuple[int, int]


def compute_voronoi_topology(sites: np.ndarray) -> Tuple[np.ndarray, List[Tuple[Tuple[int, int], Tuple[int, int]]]]:
    """
    Compute Voronoi vertices and ridges for an ``(N, 2)`` array of sites.

    Handles the inputs Qhull rejects: fewer than three sites and collinear
    sites, whose diagrams consist of parallel ridges only.

    Returns:
        Tuple of (vertex coordinates, list of ((site_a, site_b), (v_a, v_b)))
    """
    n_sites = len(sites)
    no_vertices = np.zeros((0, 2), dtype=np.float64)

    if n_sites < 2:
        return no_vertices, []

    offsets = sites - sites[0]
    if n_sites == 2 or np.linalg.matrix_rank(offsets) < 2:
        # Collinear: one ridge between each pair of consecutive sites
        direction = offsets[np.argmax(np.einsum("ij,ij->i", offsets, offsets))]
        order = np.argsort(offsets @ direction, kind="stable")
        ridges = [
            ((int(min(a, b)), int(max(a, b))), (-1, -1))
            for a, b in zip(order[:-1], order[1:])
        ]
        return no_vertices, ridges

    vor = Voronoi(sites)
    ridges = [
        ((int(min(p1, p2)), int(max(p1, p2))), (int(v1), int(v2)))
        for (p1, p2), (v1, v2) in zip(vor.ridge_points, vor.ridge_vertices)
    ]
    return np.asarray(vor.vertices, dtype=np.float64), ridges


class VoronoiArrangement(ObservableSubdivision):
    """
    Planar subdivision induced by a set of sites plus isolated vertices.

    Edits notify attached listeners: isolated-vertex edits are single local
    edits, while inserting or removing a site rewrites the whole diagram and
    is therefore reported inside a global change bracket.
    """

    def __init__(
        self,
        sites: Iterable[Point] = (),
        isolated_vertices: Iterable[Point] = (),
        traits: Optional[GeometryTraits] = None,
        tolerance: Optional[float] = None,
    ):
        super().__init__(traits)
        self.tolerance = settings.location_tolerance if tolerance is None else tolerance
        self._sites: List[Point] = []
        self._isolated: List[Point] = []
        self._voronoi_vertices = np.zeros((0, 2), dtype=np.float64)
        self._edges: List[Edge] = []
        self._ridge_lookup: Dict[FrozenSet[int], int] = {}

        for site in sites:
            site = Point(*site)
            self._check_new_site(site)
            self._sites.append(site)
        self._isolated = [Point(*p) for p in isolated_vertices]
        self._rebuild_topology()

    # Read access

    @property
    def sites(self) -> Tuple[Point, ...]:
        return tuple(self._sites)

    @property
    def isolated_vertices(self) -> Tuple[Point, ...]:
        return tuple(self._isolated)

    def vertices(self) -> Iterator[Vertex]:
        n_voronoi = len(self._voronoi_vertices)
        for i, (x, y) in enumerate(self._voronoi_vertices):
            yield Vertex(i, Point(float(x), float(y)))
        for k, point in enumerate(self._isolated):
            yield Vertex(n_voronoi + k, point, isolated=True)

    def edges(self) -> Tuple[Edge, ...]:
        return tuple(self._edges)

    def number_of_vertices(self) -> int:
        return len(self._voronoi_vertices) + len(self._isolated)

    def number_of_edges(self) -> int:
        return len(self._edges)

    def number_of_faces(self) -> int:
        return max(1, len(self._sites))

    def number_of_isolated_vertices(self) -> int:
        return len(self._isolated)

    # Local edits

    def add_isolated_vertex(self, point: Point) -> Vertex:
        """Place an isolated vertex inside whichever face contains ``point``."""
        point = Point(*point)
        self._isolated.append(point)
        vertex = Vertex(self.number_of_vertices() - 1, point, isolated=True)
        self._notify_local(LocalEditKind.ADD_ISOLATED_VERTEX)
        return vertex

    def move_isolated_vertex(self, k: int, point: Point) -> Vertex:
        """Move the ``k``-th isolated vertex to ``point``."""
        self._check_isolated_index(k)
        self._isolated[k] = Point(*point)
        self._notify_local(LocalEditKind.MOVE_ISOLATED_VERTEX)
        return Vertex(len(self._voronoi_vertices) + k, self._isolated[k], isolated=True)

    def remove_isolated_vertex(self, k: int) -> None:
        """Remove the ``k``-th isolated vertex."""
        self._check_isolated_index(k)
        del self._isolated[k]
        self._notify_local(LocalEditKind.REMOVE_VERTEX)

    # Global edits

    def insert_site(self, point: Point) -> int:
        """
        Add a site, splitting the face that contains it.

        Returns:
            Index of the new site (and of its face)
        """
        point = Point(*point)
        self._check_new_site(point)
        with self.global_change():
            before = self._counts()
            self._rebuild_topology(self._sites + [point])
            if len(self._sites) > 1:
                self._notify_local(LocalEditKind.SPLIT_FACE)
            self._report_topology_delta(before)
        return len(self._sites) - 1

    def remove_site(self, index: int) -> None:
        """Remove a site, merging its face into its neighbours."""
        if not 0 <= index < len(self._sites):
            raise IndexError(f"site index {index} out of range")
        with self.global_change():
            before = self._counts()
            self._rebuild_topology(self._sites[:index] + self._sites[index + 1:])
            if self._sites:
                self._notify_local(LocalEditKind.MERGE_FACE)
            self._report_topology_delta(before)

    def clear(self) -> None:
        """Remove every site and vertex, leaving a single unbounded face."""
        self._rebuild_topology([])
        self._isolated = []
        logger.debug("Arrangement cleared")
        self._notify_cleared()

    def _copy_from(self, other: "VoronoiArrangement") -> None:
        self._rebuild_topology(list(other._sites))
        self._isolated = list(other._isolated)
        self.tolerance = other.tolerance

    # Point location

    def locate_many(self, coords) -> List[Feature]:
        """
        Locate every row of an ``(N, 2)`` coordinate array.

        A query within ``tolerance`` of a vertex lies on that vertex. Otherwise
        a query equidistant (within ``tolerance``) from its two nearest sites
        lies on the ridge between them, and any other query lies in the face
        of its nearest site.
        """
        coords = np.asarray(coords, dtype=np.float64).reshape(-1, 2)
        n_queries = len(coords)
        if n_queries == 0:
            return []

        vertex_hit = np.full(n_queries, -1, dtype=np.intp)
        vertex_coords = self._vertex_array()
        if len(vertex_coords):
            dist, idx = cKDTree(vertex_coords).query(coords)
            mask = dist <= self.tolerance
            vertex_hit[mask] = idx[mask]

        n_sites = len(self._sites)
        nearest_face = np.zeros(n_queries, dtype=np.intp)
        on_ridge = np.zeros(n_queries, dtype=bool)
        nearest_pair = None
        if n_sites == 1:
            nearest_face[:] = 0
        elif n_sites >= 2:
            dist, nearest_pair = cKDTree(self._site_array()).query(coords, k=2)
            nearest_face = nearest_pair[:, 0]
            on_ridge = np.abs(dist[:, 0] - dist[:, 1]) <= self.tolerance

        features = []
        for k in range(n_queries):
            if vertex_hit[k] >= 0:
                features.append(Feature.vertex(vertex_hit[k]))
                continue
            if on_ridge[k]:
                ridge = self._ridge_lookup.get(frozenset(int(s) for s in nearest_pair[k]))
                if ridge is not None:
                    features.append(Feature.edge(ridge))
                    continue
            features.append(Feature.face(nearest_face[k]))
        return features

    # Internals

    def _site_array(self, sites: Optional[Sequence[Point]] = None) -> np.ndarray:
        approx = self.traits.approximate
        sites = self._sites if sites is None else sites
        return np.asarray(
            [(approx(p, 0), approx(p, 1)) for p in sites], dtype=np.float64
        ).reshape(-1, 2)

    def _vertex_array(self) -> np.ndarray:
        approx = self.traits.approximate
        isolated = np.asarray(
            [(approx(p, 0), approx(p, 1)) for p in self._isolated], dtype=np.float64
        ).reshape(-1, 2)
        return np.vstack([self._voronoi_vertices, isolated])

    def _rebuild_topology(self, sites: Optional[List[Point]] = None) -> None:
        """
        Recompute the diagram for ``sites`` (default: the current sites).

        The sites and topology are only replaced once the diagram has been
        computed, so a rejected site set leaves the arrangement unchanged.
        """
        sites = list(self._sites) if sites is None else sites
        vertices, ridges = compute_voronoi_topology(self._site_array(sites))
        self._sites = sites
        self._voronoi_vertices = vertices
        self._edges = [
            Edge(i, site_pair, vertex_pair)
            for i, (site_pair, vertex_pair) in enumerate(ridges)
        ]
        self._ridge_lookup = {frozenset(e.sites): e.index for e in self._edges}
        logger.debug(
            "Voronoi topology rebuilt",
            sites=len(self._sites),
            vertices=len(self._voronoi_vertices),
            edges=len(self._edges),
        )

    def _counts(self) -> Tuple[int, int]:
        return len(self._voronoi_vertices), len(self._edges)

    def _report_topology_delta(self, before: Tuple[int, int]) -> None:
        n_vertices, n_edges = before
        vertex_delta = len(self._voronoi_vertices) - n_vertices
        edge_delta = len(self._edges) - n_edges

        vertex_edit = LocalEditKind.CREATE_VERTEX if vertex_delta > 0 else LocalEditKind.REMOVE_VERTEX
        for _ in range(abs(vertex_delta)):
            self._notify_local(vertex_edit)

        edge_edit = LocalEditKind.CREATE_EDGE if edge_delta > 0 else LocalEditKind.REMOVE_EDGE
        for _ in range(abs(edge_delta)):
            self._notify_local(edge_edit)

    def _check_new_site(self, point: Point) -> None:
        approx = self.traits.approximate
        if not (math.isfinite(approx(point, 0)) and math.isfinite(approx(point, 1))):
            raise ValueError(f"site {tuple(point)} has non-finite coordinates")
        if any(site == point for site in self._sites):
            raise ValueError(f"site {tuple(point)} is already present")

    def _check_isolated_index(self, k: int) -> None:
        if not 0 <= k < len(self._isolated):
            raise IndexError(f"isolated vertex index {k} out of range")

    def __repr__(self) -> str:
        return (
            f"VoronoiArrangement(sites={len(self._sites)}, "
            f"vertices={self.number_of_vertices()}, edges={len(self._edges)})"
        )


def arrangement_from_points(points: Sequence[Point], **kwargs) -> VoronoiArrangement:
    """Build an arrangement whose vertices are exactly ``points`` (no sites)."""
    return VoronoiArrangement(isolated_vertices=points, **kwargs)
