"""
K-Means Algorithm for streamline clustering.

This module implements Lloyd's algorithm (Batch K-Means) for two settings:

- PCA-reduced coordinates, compared with plain Euclidean distance.
- Raw flattened streamlines, compared with a dissimilarity norm
  (see `streamclust.utils.distance`).

Convergence follows an empirical rule: iterate until the relative change of
the maximum centroid displacement drops below `tol`, the displacement itself
drops to `tol` or below, or `max_iters` rounds have run.

References
----------
[1] Lloyd, S., "Least squares quantization in PCM", 1982, IEEE Trans. Inf.
    Theory, 28(2), 129-137.
[2] MacQueen, J., "Some methods for classification and analysis of multivariate
    observations", 1967, Proc. 5th Berkeley Symp. Math. Stat. Prob., pp. 281-297.
"""

from typing import List, Optional, Union

import numpy as np
import pandas as pd

from ..utils.distance import MetricPreparation, check_norm_option, get_dissimilarity
from ..utils.parallel import map_row_chunks
from .initialization import FROM_SAMPLES, generate_seeds

INITIAL_MOVING = 1000.0


class KMeans:
    """
    K-Means clustering (Lloyd's Algorithm) with a pluggable dissimilarity.

    Parameters
    ----------
    n_clusters : int
        The number of clusters (centroids).
    norm_option : int, optional
        Dissimilarity norm for raw streamlines. None means Euclidean distance,
        used on PCA-reduced coordinates.
    prepared : MetricPreparation, optional
        Precomputed dataset state for `norm_option`.
    max_iters : int, default=20
        Hard cap on the number of rounds.
    tol : float, default=0.01
        Threshold for both the relative change of the displacement and the
        displacement itself.
    init : str or int, default='from_samples'
        Seeding strategy used when `fit` receives no seeds.
    random_state : int, optional
        Seed for the seeding strategy.
    n_jobs : int, default=1
        Worker pool size for the assignment step.
    verbose : bool, default=False
        If True, prints the displacement after every round.

    Attributes
    ----------
    labels_ : np.ndarray
        Raw cluster id per point from the last assignment step.
    cluster_sizes_ : np.ndarray
        Number of points per raw cluster id.
    centroids_ : np.ndarray
        Final centroids; empty clusters keep their previous position.
    members_ : List[List[int]]
        Ascending point indices per raw cluster id.
    n_iter_ : int
        Number of rounds run.
    moving_history_ : List[float]
        Maximum displacement of every round.
    stop_reason_ : str
        'relative_change', 'max_iterations' or 'small_displacement'.
    inertia_ : float
        Sum of squared point-to-centroid distances under the active metric,
        computed on first access.
    """

    def __init__(
        self,
        n_clusters: int,
        norm_option: Optional[int] = None,
        prepared: Optional[MetricPreparation] = None,
        max_iters: int = 20,
        tol: float = 0.01,
        init: Union[str, int] = FROM_SAMPLES,
        random_state: Optional[int] = None,
        n_jobs: int = 1,
        verbose: bool = False
    ):
        if n_clusters < 1:
            raise ValueError("n_clusters must be >= 1")
        if norm_option is not None:
            check_norm_option(norm_option)
        self.n_clusters = n_clusters
        self.norm_option = norm_option
        self.prepared = prepared
        self.max_iters = max_iters
        self.tol = tol
        self.init = init
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.verbose = verbose

        self.centroids_ = None
        self.labels_ = None
        self.cluster_sizes_ = None
        self.members_ = None
        self.n_iter_ = 0
        self.moving_history_: List[float] = []
        self.stop_reason_ = None
        self._fit_data = None
        self._inertia = None

    def _point_distances(self, X: np.ndarray, centroids: np.ndarray,
                         start: int, stop: int, prepared: Optional[MetricPreparation]) -> np.ndarray:
        """
        Distances from points start..stop-1 to every centroid, shape (stop-start, k).
        """
        if self.norm_option is None:
            return np.linalg.norm(X[start:stop, np.newaxis, :] - centroids[np.newaxis, :, :],
                                  axis=2)
        distances = np.empty((stop - start, len(centroids)))
        for i in range(start, stop):
            for j in range(len(centroids)):
                distances[i - start, j] = get_dissimilarity(
                    centroids[j], X, i, self.norm_option, prepared)
        return distances

    def _assign_chunk(self, X: np.ndarray, centroids: np.ndarray, start: int, stop: int,
                      prepared: Optional[MetricPreparation]):
        # argmin returns the first minimum, so ties go to the lowest centroid id
        labels = np.argmin(self._point_distances(X, centroids, start, stop, prepared), axis=1)
        counts = np.bincount(labels, minlength=self.n_clusters)
        sums = np.zeros((self.n_clusters, X.shape[1]))
        np.add.at(sums, labels, X[start:stop])
        return labels, counts, sums

    def _assign_clusters(self, X: np.ndarray, centroids: np.ndarray,
                         prepared: Optional[MetricPreparation] = None):
        """
        Assigns every point to its nearest centroid on the worker pool.

        Per-chunk counts and coordinate sums are reduced in chunk order.
        `prepared` defaults to the state the model was built with.

        Returns
        -------
        labels : np.ndarray
        counts : np.ndarray
        sums : np.ndarray
        """
        if prepared is None:
            prepared = self.prepared
        parts = map_row_chunks(
            lambda start, stop: self._assign_chunk(X, centroids, start, stop, prepared),
            X.shape[0], self.n_jobs)

        labels = np.concatenate([p[0] for p in parts]) if parts else np.zeros(0, dtype=int)
        counts = np.sum([p[1] for p in parts], axis=0) if parts else np.zeros(self.n_clusters, dtype=int)
        sums = np.sum([p[2] for p in parts], axis=0) if parts else np.zeros_like(centroids)
        return labels, counts, sums

    def _update_centroids(self, centroids: np.ndarray, counts: np.ndarray,
                          sums: np.ndarray):
        """
        Moves every non-empty centroid to the mean of its points.

        Empty clusters keep their centroid.

        Returns
        -------
        new_centroids : np.ndarray
        moving : float
            Largest displacement among non-empty clusters.
        """
        new_centroids = centroids.copy()
        moving = 0.0
        for k in range(self.n_clusters):
            if counts[k] > 0:
                new_centroids[k] = sums[k] / counts[k]
                moving = max(moving, float(np.linalg.norm(new_centroids[k] - centroids[k])))
        return new_centroids, moving

    def _compute_inertia(self, X: np.ndarray, labels: np.ndarray) -> float:
        inertia = 0.0
        for i, label in enumerate(labels):
            if self.norm_option is None:
                inertia += float(np.sum((X[i] - self.centroids_[label]) ** 2))
            else:
                inertia += get_dissimilarity(self.centroids_[label], X, i,
                                             self.norm_option, self.prepared) ** 2
        return inertia

    @property
    def inertia_(self) -> Optional[float]:
        if self._inertia is None and self.labels_ is not None:
            self._inertia = self._compute_inertia(self._fit_data, self.labels_)
        return self._inertia

    def fit(self, X: Union[np.ndarray, pd.DataFrame], seeds: Optional[np.ndarray] = None):
        """
        Runs Lloyd's iteration from `seeds` (or from the `init` strategy).

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Reduced coordinates or raw flattened streamlines.
        seeds : np.ndarray, optional
            Initial centroids of shape (n_clusters, n_features).

        Returns
        -------
        self
        """
        if isinstance(X, pd.DataFrame):
            X = X.values
        X = np.asarray(X, dtype=np.float64)

        if seeds is None:
            seeds = generate_seeds(self.init, X, self.n_clusters,
                                   norm_option=self.norm_option or 0,
                                   prepared=self.prepared,
                                   random_state=self.random_state)
        centroids = np.array(seeds, dtype=np.float64)
        if centroids.shape != (self.n_clusters, X.shape[1]):
            raise ValueError(f"Seeds must have shape {(self.n_clusters, X.shape[1])}, "
                             f"got {centroids.shape}.")

        moving = INITIAL_MOVING
        tag = 0
        self.moving_history_ = []
        while True:
            before = moving
            labels, counts, sums = self._assign_clusters(X, centroids)
            centroids, moving = self._update_centroids(centroids, counts, sums)
            tag += 1
            self.moving_history_.append(moving)
            if self.verbose:
                print(f"K-means iteration {tag} completed, and moving is {moving}!")

            if abs(moving - before) / before < self.tol:
                self.stop_reason_ = "relative_change"
                break
            if tag >= self.max_iters:
                self.stop_reason_ = "max_iterations"
                break
            if moving <= self.tol:
                self.stop_reason_ = "small_displacement"
                break

        self.n_iter_ = tag
        self.centroids_ = centroids
        self.labels_ = labels
        self.cluster_sizes_ = counts
        self.members_ = [np.flatnonzero(labels == k).tolist() for k in range(self.n_clusters)]
        self._fit_data = X
        self._inertia = None

        return self

    def predict(self, X: Union[np.ndarray, pd.DataFrame]) -> np.ndarray:
        """
        Assigns each point in X to the nearest fitted centroid.
        """
        if self.centroids_ is None:
            raise ValueError("Model has not been fitted yet. Call fit() first.")

        if isinstance(X, pd.DataFrame):
            X = X.values
        X = np.asarray(X, dtype=np.float64)

        prepared = None
        if self.norm_option is not None:
            dimension = self.prepared.dimension if self.prepared is not None else 3
            prepared = MetricPreparation(X.shape[0], X.shape[1], dimension)
            prepared.preprocessing(X, self.norm_option)
        return self._assign_clusters(X, self.centroids_, prepared)[0]

    def fit_predict(self, X: Union[np.ndarray, pd.DataFrame],
                    seeds: Optional[np.ndarray] = None) -> np.ndarray:
        self.fit(X, seeds)
        return self.labels_
