"""
Utilities package initialization.

Exposes dataset loading, dissimilarity, evaluation and persistence helpers to
the top-level utils package for cleaner imports throughout the project.
"""

from .parser import (
    load_streamlines,
    preprocess_streamline_file,
    resample_streamline
)

from .distance import (
    MetricPreparation,
    get_dissimilarity,
    get_distance_matrix
)

from .clustering_metrics import (
    Silhouette,
    ValidityMeasurement,
    gamma_statistic
)

from .io_handler import (
    load_or_compute_distance_matrix,
    write_readme,
    write_results
)

from .time_recorder import TimeRecorder
