from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence, Union

from shapely.geometry import Point
from shapely.geometry import box as shapely_box
from shapely.strtree import STRtree

from geo.aoi import BBox
from geo.mercator import project_to_unit, unproject_from_unit
from geo.viewport import Viewport
from layers.types import Station


@dataclass(frozen=True)
class Cluster:
    id: int
    longitude: float
    latitude: float
    count: int
    expansion_zoom: int

    @property
    def size_tier(self) -> str:
        return size_tier(self.count)


ClusterItem = Union[Cluster, Station]


def size_tier(count: int) -> str:
    # Rendering emphasis only; has no effect on how points are grouped.
    if count < 10:
        return "small"
    if count < 50:
        return "medium"
    if count < 100:
        return "large"
    return "extra-large"


@dataclass(frozen=True)
class ClusterOptions:
    radius_px: float = 40.0
    extent_px: float = 512.0
    min_zoom: int = 0
    max_zoom: int = 16
    min_points: int = 2


@dataclass(eq=False)
class _Node:
    x: float
    y: float
    count: int
    # Cluster id; for raw points this is the index into the input sequence.
    id: int
    is_point: bool
    origin_zoom: int
    children: tuple["_Node", ...] = ()
    # Lowest zoom level this node has been processed at (mutated while building).
    zoom: float = math.inf
    parent_id: int = -1
    _lonlat: tuple[float, float] | None = field(default=None, repr=False)

    def lonlat(self) -> tuple[float, float]:
        if self._lonlat is None:
            self._lonlat = unproject_from_unit(self.x, self.y)
        return self._lonlat


@dataclass
class _Level:
    nodes: list[_Node]
    tree: STRtree


class ClusterIndex:
    """
    Zoom-level cluster hierarchy for a fixed point set.

    Built bottom-up (max_zoom + 1 holds the raw points): at each zoom every
    unprocessed node absorbs its unprocessed neighbours within `radius_px`
    (measured in screen pixels at that zoom). Processing order is the input order,
    so the same points always produce the same ids and groupings.
    """

    def __init__(self, points: Sequence[Station], options: ClusterOptions | None = None):
        self.options = options or ClusterOptions()
        self.points: tuple[Station, ...] = tuple(points)
        self._clusters: dict[int, _Node] = {}
        self._levels: dict[int, _Level] = {}
        self._build()

    def _build(self) -> None:
        o = self.options
        usable = [
            (i, p)
            for i, p in enumerate(self.points)
            if math.isfinite(p.longitude) and math.isfinite(p.latitude)
        ]
        xs, ys = project_to_unit([p.longitude for _, p in usable], [p.latitude for _, p in usable])
        nodes = [
            _Node(x=x, y=y, count=1, id=i, is_point=True, origin_zoom=o.max_zoom + 1)
            for (i, _p), x, y in zip(usable, xs, ys)
        ]
        self._levels[o.max_zoom + 1] = _Level(nodes=nodes, tree=_tree(nodes))

        for z in range(o.max_zoom, o.min_zoom - 1, -1):
            below = self._levels[z + 1]
            nodes = self._cluster(below, z)
            self._levels[z] = _Level(nodes=nodes, tree=_tree(nodes))

    def _cluster(self, level: _Level, zoom: int) -> list[_Node]:
        o = self.options
        r = o.radius_px / (o.extent_px * (2**zoom))
        out: list[_Node] = []

        for i, p in enumerate(level.nodes):
            if p.zoom <= zoom:
                continue
            p.zoom = zoom

            idxs = sorted(
                int(j)
                for j in level.tree.query(Point(p.x, p.y), predicate="dwithin", distance=r)
            )
            neighbors = [
                level.nodes[j] for j in idxs if level.nodes[j] is not p and level.nodes[j].zoom > zoom
            ]
            total = p.count + sum(n.count for n in neighbors)

            if neighbors and total >= o.min_points:
                wx = p.x * p.count
                wy = p.y * p.count
                for n in neighbors:
                    n.zoom = zoom
                    wx += n.x * n.count
                    wy += n.y * n.count

                cid = (i << 5) + (zoom + 1) + len(self.points)
                for member in (p, *neighbors):
                    member.parent_id = cid
                node = _Node(
                    x=wx / total,
                    y=wy / total,
                    count=total,
                    id=cid,
                    is_point=False,
                    origin_zoom=zoom,
                    children=(p, *neighbors),
                )
                self._clusters[cid] = node
                out.append(node)
            else:
                out.append(p)
                for n in neighbors:
                    n.zoom = zoom
                    out.append(n)
        return out

    def _level_for(self, zoom: float) -> _Level:
        o = self.options
        z = int(math.floor(float(zoom)))
        z = max(o.min_zoom, min(o.max_zoom + 1, z))
        return self._levels[z]

    def _item(self, node: _Node) -> ClusterItem:
        if node.is_point:
            return self.points[node.id]
        lon, lat = node.lonlat()
        return Cluster(
            id=node.id,
            longitude=lon,
            latitude=lat,
            count=node.count,
            expansion_zoom=self._expansion_zoom(node),
        )

    def get_clusters(self, bounds: BBox | None, zoom: float) -> list[ClusterItem]:
        level = self._level_for(zoom)
        if not level.nodes:
            return []
        idxs: set[int] = set()
        for west, south, east, north in _query_boxes(bounds):
            (x0, x1), (y0, y1) = project_to_unit([west, east], [north, south])
            for j in level.tree.query(shapely_box(x0, y0, x1, y1)):
                idxs.add(int(j))
        return [self._item(level.nodes[j]) for j in sorted(idxs)]

    def cluster(self, cluster_id: int) -> Cluster:
        item = self._item(self._node(cluster_id))
        assert isinstance(item, Cluster)
        return item

    def _node(self, cluster_id: int) -> _Node:
        node = self._clusters.get(int(cluster_id))
        if node is None:
            raise KeyError(f"No cluster with id {cluster_id}")
        return node

    def _expansion_zoom(self, node: _Node) -> int:
        zoom = node.origin_zoom
        while zoom <= self.options.max_zoom:
            zoom += 1
            if len(node.children) != 1:
                break
            node = node.children[0]
            if node.is_point:
                break
        return zoom

    def expansion_zoom(self, cluster_id: int) -> int:
        return self._expansion_zoom(self._node(cluster_id))

    def children(self, cluster_id: int) -> list[ClusterItem]:
        return [self._item(c) for c in self._node(cluster_id).children]

    def leaves(self, cluster_id: int) -> list[Station]:
        point_idxs: list[int] = []
        stack = [self._node(cluster_id)]
        while stack:
            n = stack.pop()
            if n.is_point:
                point_idxs.append(n.id)
            else:
                stack.extend(n.children)
        return [self.points[i] for i in sorted(point_idxs)]


def _tree(nodes: list[_Node]) -> STRtree:
    return STRtree([Point(n.x, n.y) for n in nodes])


def _wrap_lon(lon: float) -> float:
    return ((lon + 180.0) % 360.0 + 360.0) % 360.0 - 180.0


def _query_boxes(bounds: BBox | None) -> list[tuple[float, float, float, float]]:
    """
    Split a view bbox into lon/lat boxes inside [-180, 180].
    """
    if bounds is None:
        return [(-180.0, -90.0, 180.0, 90.0)]
    b = bounds.normalized()
    south = max(-90.0, b.min_lat)
    north = min(90.0, b.max_lat)
    if b.max_lon - b.min_lon >= 360.0:
        return [(-180.0, south, 180.0, north)]
    west = _wrap_lon(b.min_lon)
    east = 180.0 if b.max_lon == 180.0 else _wrap_lon(b.max_lon)
    if west > east:
        return [(west, south, 180.0, north), (-180.0, south, east, north)]
    return [(west, south, east, north)]


class ClusterEngine:
    """
    Recomputes the visible clusters for each viewport.

    The hierarchy is rebuilt only when the point set changes; for the same points,
    zoom and radius the output is always identical.
    """

    def __init__(self, options: ClusterOptions | None = None):
        self.options = options or ClusterOptions()
        self._index: ClusterIndex | None = None
        self.builds = 0

    def index_for(self, points: Sequence[Station]) -> ClusterIndex:
        pts = tuple(points)
        if self._index is None or self._index.points != pts:
            self._index = ClusterIndex(pts, self.options)
            self.builds += 1
        return self._index

    def compute_clusters(
        self,
        points: Sequence[Station],
        viewport: Viewport,
        bounds: BBox | None,
    ) -> list[ClusterItem]:
        if not points:
            return []
        return self.index_for(points).get_clusters(bounds, viewport.zoom)

    def expansion_zoom(self, cluster_id: int) -> int:
        if self._index is None:
            raise KeyError(f"No cluster with id {cluster_id}")
        return self._index.expansion_zoom(cluster_id)

    def children(self, cluster_id: int) -> list[ClusterItem]:
        if self._index is None:
            raise KeyError(f"No cluster with id {cluster_id}")
        return self._index.children(cluster_id)

    def leaves(self, cluster_id: int) -> list[Station]:
        if self._index is None:
            raise KeyError(f"No cluster with id {cluster_id}")
        return self._index.leaves(cluster_id)

    def cluster(self, cluster_id: int) -> Cluster:
        if self._index is None:
            raise KeyError(f"No cluster with id {cluster_id}")
        return self._index.cluster(cluster_id)
