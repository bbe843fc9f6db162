"""
Centroid seeding strategies for K-Means.

Three strategies are available, selected by name or by their historical
integer code:

1. ``random_pos``: uniform random positions inside the bounding box of the data.
2. ``from_samples``: random existing rows (MacQueen's second method [1]).
3. ``far_samples``: greedy farthest-point (MaxMin) sampling [2], using the
   streamline dissimilarity selected by the norm option.

References
----------
[1] MacQueen, J., "Some methods for classification and analysis of multivariate
    observations", 1967, Proc. 5th Berkeley Symp. Math. Stat. Prob., pp. 281-297.
[2] Mishra, B.K., Rath, A.K., Nanda, S.K., Baidyanath, R.R., "Efficient
    Intelligent Framework for Selection of Initial Cluster Centers", 2019,
    I.J. Intelligent Systems and Applications, 8, 44-55 (MaxMin step).
"""

from typing import Optional, Union

import numpy as np

from ..utils.distance import MetricPreparation, get_dissimilarity

RANDOM_POS = "random_pos"
FROM_SAMPLES = "from_samples"
FAR_SAMPLES = "far_samples"

INITIALIZATION_CODES = {
    1: RANDOM_POS,
    2: FROM_SAMPLES,
    3: FAR_SAMPLES,
}


def _rng(random_state: Optional[Union[int, np.random.Generator]]) -> np.random.Generator:
    if isinstance(random_state, np.random.Generator):
        return random_state
    return np.random.default_rng(random_state)


def generate_random_pos(data: np.ndarray, n_clusters: int,
                        random_state=None) -> np.ndarray:
    """
    Draws centroids uniformly inside the per-column [min, max] box of `data`.

    Returns
    -------
    np.ndarray
        Centroids of shape (n_clusters, n_features).
    """
    rng = _rng(random_state)
    lower = np.min(data, axis=0)
    upper = np.max(data, axis=0)
    return lower + rng.random((n_clusters, data.shape[1])) * (upper - lower)


def generate_from_samples(data: np.ndarray, n_clusters: int,
                          random_state=None) -> np.ndarray:
    """
    Picks `n_clusters` rows of `data` at random.

    Rows are distinct unless more centroids than rows are requested.
    """
    rng = _rng(random_state)
    n_samples = data.shape[0]
    indices = rng.choice(n_samples, size=n_clusters, replace=n_clusters > n_samples)
    return data[indices].copy()


def generate_far_samples(
        data: np.ndarray,
        n_clusters: int,
        norm_option: int = 0,
        prepared: Optional[MetricPreparation] = None,
        random_state=None
) -> np.ndarray:
    """
    Greedy farthest-point (MaxMin) seeding.

    The first centroid is a random row. Each following centroid is the row
    whose dissimilarity to its nearest already-chosen centroid is largest;
    ties go to the lowest row index.

    Parameters
    ----------
    data : np.ndarray
        Input data of shape (n_samples, n_features).
    n_clusters : int
        Number of centroids.
    norm_option : int, default=0
        Dissimilarity norm (0 is Euclidean, used on reduced coordinates).
    prepared : MetricPreparation, optional
        Precomputed dataset state for the norm.
    random_state : int or np.random.Generator, optional
        Seed for the first pick.

    Returns
    -------
    np.ndarray
        Centroids of shape (n_clusters, n_features).
    """
    rng = _rng(random_state)
    n_samples, n_features = data.shape
    centroids = np.zeros((n_clusters, n_features))

    first_index = int(rng.integers(n_samples))
    centroids[0] = data[first_index]

    # distance of every row to its nearest chosen centroid
    min_dists = np.array([
        get_dissimilarity(centroids[0], data, i, norm_option, prepared)
        for i in range(n_samples)
    ])

    for k in range(1, n_clusters):
        next_index = int(np.argmax(min_dists))
        centroids[k] = data[next_index]
        new_dists = np.array([
            get_dissimilarity(centroids[k], data, i, norm_option, prepared)
            for i in range(n_samples)
        ])
        min_dists = np.minimum(min_dists, new_dists)

    return centroids


def generate_seeds(
        strategy: Union[str, int],
        data: np.ndarray,
        n_clusters: int,
        norm_option: int = 0,
        prepared: Optional[MetricPreparation] = None,
        random_state=None
) -> np.ndarray:
    """
    Dispatches to a seeding strategy by name or integer code (1, 2, 3).
    """
    if n_clusters < 1:
        raise ValueError("n_clusters must be >= 1")
    if isinstance(strategy, (int, np.integer)):
        if strategy not in INITIALIZATION_CODES:
            raise ValueError(f"Initialization option '{strategy}' not supported.")
        strategy = INITIALIZATION_CODES[int(strategy)]

    data = np.asarray(data, dtype=np.float64)
    if strategy == RANDOM_POS:
        return generate_random_pos(data, n_clusters, random_state)
    elif strategy == FROM_SAMPLES:
        return generate_from_samples(data, n_clusters, random_state)
    elif strategy == FAR_SAMPLES:
        return generate_far_samples(data, n_clusters, norm_option, prepared, random_state)
    raise ValueError(f"Initialization '{strategy}' not supported.")
