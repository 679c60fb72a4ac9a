from .clusters import Cluster, ClusterEngine, ClusterIndex, ClusterOptions, size_tier

__all__ = [
    "Cluster",
    "ClusterEngine",
    "ClusterIndex",
    "ClusterOptions",
    "size_tier",
]
