"""
Dissimilarity measures between streamlines.

Each curve is a flattened row of ``n_vertices * dimension`` coordinates. This
module provides the distance between a curve and an arbitrary vector of the
same length (usually a k-means centroid) and the full pairwise distance
matrix used by hierarchical clustering and the silhouette evaluation.

Norm options
------------
- 0: Euclidean distance between the flattened vectors.
- 1: Mean point-wise Euclidean distance between corresponding vertices.
- 2: Mean angle (radians) between corresponding segment directions.
- 3: Symmetric discrete Hausdorff distance between the vertex sets.
"""

from typing import Dict, Optional

import numpy as np
from scipy.spatial.distance import directed_hausdorff, pdist, squareform

from .parallel import map_row_chunks

EUCLIDEAN = 0
POINTWISE_MEAN = 1
SEGMENT_ANGLE = 2
HAUSDORFF = 3

NORM_OPTIONS: Dict[int, str] = {
    EUCLIDEAN: "euclidean",
    POINTWISE_MEAN: "pointwise_mean",
    SEGMENT_ANGLE: "segment_angle",
    HAUSDORFF: "hausdorff",
}


def check_norm_option(norm_option: int) -> int:
    if norm_option not in NORM_OPTIONS:
        raise ValueError(f"Norm option '{norm_option}' not supported. "
                         f"Choose one of {sorted(NORM_OPTIONS)}.")
    return norm_option


def _as_vertices(curve: np.ndarray, dimension: int) -> np.ndarray:
    if curve.shape[-1] % dimension != 0:
        raise ValueError(f"Curve length {curve.shape[-1]} is not a multiple "
                         f"of dimension {dimension}.")
    return curve.reshape(-1, dimension)


def _unit_segments(vertices: np.ndarray) -> np.ndarray:
    """
    Unit direction of every segment; zero-length segments map to the zero vector.
    """
    segments = np.diff(vertices, axis=0)
    norms = np.linalg.norm(segments, axis=1, keepdims=True)
    return np.divide(segments, norms, out=np.zeros_like(segments), where=norms > 0)


def _mean_angle(first_units: np.ndarray, second_units: np.ndarray) -> float:
    if len(first_units) == 0:
        return 0.0
    valid = (np.any(first_units != 0, axis=1)) & (np.any(second_units != 0, axis=1))
    cosines = np.clip(np.sum(first_units * second_units, axis=1), -1.0, 1.0)
    angles = np.where(valid, np.arccos(cosines), 0.0)
    return float(np.mean(angles))


class MetricPreparation:
    """
    Per-dataset auxiliary state for the dissimilarity measures.

    Parameters
    ----------
    row : int
        Number of curves.
    column : int
        Flattened curve length.
    dimension : int, default=3
        Coordinates per vertex.
    """

    def __init__(self, row: int, column: int, dimension: int = 3):
        self.row = row
        self.column = column
        self.dimension = dimension
        self.norm_option: Optional[int] = None
        self.unit_segments: Optional[np.ndarray] = None

    def preprocessing(self, data: np.ndarray, norm_option: int) -> "MetricPreparation":
        """
        Precomputes whatever `norm_option` needs from the dataset.

        Only the segment-angle norm needs state: the unit direction of each
        segment of every curve, shape (row, n_vertices - 1, dimension).
        """
        self.norm_option = check_norm_option(norm_option)
        if norm_option == SEGMENT_ANGLE:
            data = np.asarray(data, dtype=np.float64)
            vertices = data.reshape(data.shape[0], -1, self.dimension)
            segments = np.diff(vertices, axis=1)
            norms = np.linalg.norm(segments, axis=2, keepdims=True)
            self.unit_segments = np.divide(segments, norms, out=np.zeros_like(segments),
                                           where=norms > 0)
        return self


def pairwise_dissimilarity(first: np.ndarray, second: np.ndarray,
                           norm_option: int, dimension: int = 3) -> float:
    """
    Dissimilarity between two flattened curves without any precomputed state.
    """
    first = np.asarray(first, dtype=np.float64)
    second = np.asarray(second, dtype=np.float64)
    if norm_option == EUCLIDEAN:
        return float(np.linalg.norm(first - second))
    elif norm_option == POINTWISE_MEAN:
        diff = _as_vertices(first - second, dimension)
        return float(np.mean(np.linalg.norm(diff, axis=1)))
    elif norm_option == SEGMENT_ANGLE:
        return _mean_angle(_unit_segments(_as_vertices(first, dimension)),
                           _unit_segments(_as_vertices(second, dimension)))
    elif norm_option == HAUSDORFF:
        a = _as_vertices(first, dimension)
        b = _as_vertices(second, dimension)
        return float(max(directed_hausdorff(a, b)[0], directed_hausdorff(b, a)[0]))
    raise ValueError(f"Norm option '{norm_option}' not supported.")


def get_dissimilarity(first: np.ndarray, data: np.ndarray, index: int,
                      norm_option: int, prepared: Optional[MetricPreparation] = None) -> float:
    """
    Dissimilarity between vector `first` and row `index` of `data`.

    Parameters
    ----------
    first : np.ndarray
        Flattened curve or centroid.
    data : np.ndarray
        Dataset matrix of shape (row, column).
    index : int
        Row of `data` to compare against.
    norm_option : int
        One of `NORM_OPTIONS`.
    prepared : MetricPreparation, optional
        State from `MetricPreparation.preprocessing`. Reused for the dataset
        side of the segment-angle norm when available.

    Returns
    -------
    float
    """
    dimension = prepared.dimension if prepared is not None else 3
    if (norm_option == SEGMENT_ANGLE and prepared is not None
            and prepared.unit_segments is not None):
        first_units = _unit_segments(_as_vertices(np.asarray(first, dtype=np.float64), dimension))
        return _mean_angle(first_units, prepared.unit_segments[index])
    return pairwise_dissimilarity(first, data[index], norm_option, dimension)


def euclidean_distance_matrix(X: np.ndarray) -> np.ndarray:
    """
    Square Euclidean distance matrix of the rows of `X` (zero diagonal).
    """
    X = np.asarray(X, dtype=np.float64)
    if X.shape[0] < 2:
        return np.zeros((X.shape[0], X.shape[0]))
    return squareform(pdist(X, metric="euclidean"))


def get_distance_matrix(data: np.ndarray, norm_option: int,
                        prepared: Optional[MetricPreparation] = None,
                        n_jobs: int = 1) -> np.ndarray:
    """
    Full pairwise dissimilarity matrix of the dataset rows.

    The upper triangle is filled row by row on the worker pool and mirrored
    afterwards; the diagonal stays 0.
    """
    check_norm_option(norm_option)
    data = np.asarray(data, dtype=np.float64)
    n_rows = data.shape[0]
    if norm_option == EUCLIDEAN:
        return euclidean_distance_matrix(data)

    matrix = np.zeros((n_rows, n_rows))

    def fill(start: int, stop: int):
        for i in range(start, stop):
            for j in range(i + 1, n_rows):
                matrix[i, j] = get_dissimilarity(data[i], data, j, norm_option, prepared)

    map_row_chunks(fill, n_rows, n_jobs)
    return matrix + matrix.T
