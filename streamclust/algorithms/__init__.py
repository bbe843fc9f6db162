"""
Clustering Algorithms Package.

This package contains the clustering core for streamline datasets: variance
threshold PCA, K-Means with three seeding strategies, average-linkage AHC,
the shared post-processing, and the orchestration of PCA-based and direct
clustering runs.

Modules
-------
- pca: Thin-SVD PCA keeping 99.9% of the energy.
- initialization: Random-position, sample and farthest-point seeding.
- kmeans: Lloyd's K-Means on reduced or raw coordinates.
- agg_clustering: Incremental average-linkage AHC.
- finalizer: Relabeling, entropy, representatives, back-projection.
- pca_cluster: Run configuration and clustering entry points.
"""

from .pca import PCA, perform_svd
from .initialization import generate_seeds
from .kmeans import KMeans
from .agg_clustering import AHCNode, hierarchical_merging
from .finalizer import ClusteringResult, ExtractedLine, MeanLine, finalize
from .pca_cluster import (
    ClusteringConfig,
    perform_direct_ahc,
    perform_direct_kmeans,
    perform_pca_clustering,
    run_clustering,
)
