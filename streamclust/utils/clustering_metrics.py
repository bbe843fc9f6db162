"""
Cluster validity evaluation for streamline clustering.

Two evaluators are provided, each with a reduced-space variant (plain
Euclidean coordinates) and a raw-space variant (flattened curves compared
with one of the dissimilarity norms):

- `ValidityMeasurement`: compactness over separation, `f_c`. Lower is better.
- `Silhouette`: average silhouette (scikit-learn), Davies-Bouldin index and
  the normalized Hubert gamma statistic.

References
----------
[1] Rousseeuw, P.J., "Silhouettes: a graphical aid to the interpretation and
    validation of cluster analysis", 1987, J. Comput. Appl. Math., 20, 53-65.
[2] Davies, D.L., Bouldin, D.W., "A Cluster Separation Measure", 1979,
    IEEE TPAMI, 1(2), 224-227.
[3] Halkidi, M., Batistakis, Y., Vazirgiannis, M., "On Clustering Validation
    Techniques", 2001, J. Intell. Inf. Syst., 17, 107-145 (Hubert's Gamma).
"""

from typing import Dict, Optional

import numpy as np
from sklearn.metrics import davies_bouldin_score, silhouette_samples, silhouette_score

from .distance import (
    MetricPreparation,
    euclidean_distance_matrix,
    get_dissimilarity,
    get_distance_matrix,
    pairwise_dissimilarity,
)


def _cluster_means(X: np.ndarray, labels: np.ndarray) -> Dict[int, np.ndarray]:
    return {int(c): X[labels == c].mean(axis=0) for c in np.unique(labels)}


def gamma_statistic(distance_matrix: np.ndarray, labels: np.ndarray) -> float:
    """
    Normalized Hubert gamma statistic.

    Correlation between the pairwise distance and the indicator "the two
    curves sit in different clusters", over all pairs i < j [3]. Values close
    to 1 mean distances separate the clusters well.

    Parameters
    ----------
    distance_matrix : np.ndarray
        Square distance matrix.
    labels : np.ndarray
        Cluster label per curve.

    Returns
    -------
    float
        Gamma in [-1, 1]; 0.0 when either series is constant.
    """
    labels = np.asarray(labels)
    i_upper, j_upper = np.triu_indices(len(labels), k=1)
    distances = distance_matrix[i_upper, j_upper]
    different = (labels[i_upper] != labels[j_upper]).astype(np.float64)
    if distances.size < 2 or np.std(distances) == 0 or np.std(different) == 0:
        return 0.0
    return float(np.corrcoef(distances, different)[0, 1])


class ValidityMeasurement:
    """
    Compactness-over-separation validity measure.

    For every cluster, compactness is the mean distance of its members to
    the cluster centroid (or the mean intra-cluster pairwise distance when
    a full distance matrix is available). `f_c` is the mean compactness
    divided by the minimum distance between two centroids.

    Attributes
    ----------
    f_c : float
        The last computed score. 0.0 when fewer than two clusters exist.
    """

    def __init__(self):
        self.f_c = 0.0

    def compute_value(self, coordinates: np.ndarray, labels: np.ndarray) -> float:
        """
        Reduced-space variant using Euclidean distances.
        """
        coordinates = np.asarray(coordinates, dtype=np.float64)
        labels = np.asarray(labels)
        centers = _cluster_means(coordinates, labels)
        if len(centers) < 2:
            self.f_c = 0.0
            return self.f_c

        compactness = [
            np.mean(np.linalg.norm(coordinates[labels == c] - center, axis=1))
            for c, center in centers.items()
        ]
        center_matrix = np.vstack(list(centers.values()))
        separation = euclidean_distance_matrix(center_matrix)
        self.f_c = self._ratio(compactness, separation)
        return self.f_c

    def compute_value_by_norm(
            self,
            norm_option: int,
            data: np.ndarray,
            labels: np.ndarray,
            prepared: Optional[MetricPreparation] = None,
            is_special: bool = False,
            distance_matrix: Optional[np.ndarray] = None
    ) -> float:
        """
        Raw-space variant using the dissimilarity selected by `norm_option`.

        Parameters
        ----------
        norm_option : int
            Dissimilarity norm.
        data : np.ndarray
            Dataset matrix.
        labels : np.ndarray
            Cluster label per curve.
        prepared : MetricPreparation, optional
            Precomputed dataset state for the norm.
        is_special : bool, default=False
            Particle-based flow dataset; the full distance matrix is never
            used for those.
        distance_matrix : np.ndarray, optional
            Full pairwise matrix; enables pairwise intra-cluster compactness.

        Returns
        -------
        float
        """
        data = np.asarray(data, dtype=np.float64)
        labels = np.asarray(labels)
        centers = _cluster_means(data, labels)
        if len(centers) < 2:
            self.f_c = 0.0
            return self.f_c

        dimension = prepared.dimension if prepared is not None else 3
        use_matrix = distance_matrix is not None and not is_special
        compactness = []
        for c, center in centers.items():
            members = np.flatnonzero(labels == c)
            if use_matrix and len(members) > 1:
                block = distance_matrix[np.ix_(members, members)]
                compactness.append(block.sum() / (len(members) * (len(members) - 1)))
            else:
                compactness.append(np.mean([
                    get_dissimilarity(center, data, index, norm_option, prepared)
                    for index in members
                ]))

        center_list = list(centers.values())
        n_centers = len(center_list)
        separation = np.zeros((n_centers, n_centers))
        for i in range(n_centers):
            for j in range(i + 1, n_centers):
                separation[i, j] = separation[j, i] = pairwise_dissimilarity(
                    center_list[i], center_list[j], norm_option, dimension)
        self.f_c = self._ratio(compactness, separation)
        return self.f_c

    @staticmethod
    def _ratio(compactness, separation: np.ndarray) -> float:
        off_diagonal = separation[~np.eye(len(separation), dtype=bool)]
        min_separation = float(np.min(off_diagonal))
        if min_separation == 0:
            return float("inf")
        return float(np.mean(compactness) / min_separation)


class Silhouette:
    """
    Silhouette-family evaluation of a clustering.

    Attributes
    ----------
    s_average : float
        Mean silhouette over all curves [1].
    s_cluster : Dict[int, float]
        Mean silhouette per cluster label.
    db_index : float
        Davies-Bouldin index [2]. Lower is better.
    gamma_statistic : float or None
        Normalized Hubert gamma [3]. None for special (particle-based flow)
        datasets, where the full distance matrix is not built.
    """

    def __init__(self):
        self.s_average = 0.0
        self.s_cluster: Dict[int, float] = {}
        self.db_index = 0.0
        self.gamma_statistic: Optional[float] = None

    def _reset(self):
        self.s_average = 0.0
        self.s_cluster = {}
        self.db_index = 0.0
        self.gamma_statistic = None

    @staticmethod
    def _evaluable(labels: np.ndarray, group_number: int) -> bool:
        # silhouette is defined for 2 <= n_labels <= n_samples - 1
        return 2 <= group_number <= len(labels) - 1

    def _store_samples(self, samples: np.ndarray, labels: np.ndarray):
        self.s_average = float(np.mean(samples))
        self.s_cluster = {int(c): float(np.mean(samples[labels == c]))
                          for c in np.unique(labels)}

    def compute_value(self, coordinates: np.ndarray, labels: np.ndarray,
                      group_number: int, is_special: bool = False) -> "Silhouette":
        """
        Reduced-space evaluation with Euclidean distances.
        """
        self._reset()
        coordinates = np.asarray(coordinates, dtype=np.float64)
        labels = np.asarray(labels)
        if not self._evaluable(labels, group_number):
            return self

        if is_special:
            self._store_samples(silhouette_samples(coordinates, labels), labels)
        else:
            distance_matrix = euclidean_distance_matrix(coordinates)
            self._store_samples(silhouette_samples(distance_matrix, labels,
                                                   metric="precomputed"), labels)
            self.gamma_statistic = gamma_statistic(distance_matrix, labels)
        self.db_index = float(davies_bouldin_score(coordinates, labels))
        return self

    def compute_value_by_norm(
            self,
            norm_option: int,
            data: np.ndarray,
            labels: np.ndarray,
            prepared: Optional[MetricPreparation],
            group_number: int,
            is_special: bool = False,
            distance_matrix: Optional[np.ndarray] = None,
            n_jobs: int = 1
    ) -> "Silhouette":
        """
        Raw-space evaluation with the dissimilarity selected by `norm_option`.

        Uses `distance_matrix` when given; otherwise builds it, unless the
        dataset is special, in which case scikit-learn evaluates the norm
        pairwise on the fly and gamma is skipped.
        """
        self._reset()
        data = np.asarray(data, dtype=np.float64)
        labels = np.asarray(labels)
        if not self._evaluable(labels, group_number):
            return self

        dimension = prepared.dimension if prepared is not None else 3
        if is_special:
            score = silhouette_score(
                data, labels,
                metric=lambda a, b: pairwise_dissimilarity(a, b, norm_option, dimension))
            self.s_average = float(score)
        else:
            if distance_matrix is None:
                distance_matrix = get_distance_matrix(data, norm_option, prepared, n_jobs)
            self._store_samples(silhouette_samples(distance_matrix, labels,
                                                   metric="precomputed"), labels)
            self.gamma_statistic = gamma_statistic(distance_matrix, labels)

        self.db_index = self._davies_bouldin_by_norm(norm_option, data, labels,
                                                     prepared, dimension)
        return self

    @staticmethod
    def _davies_bouldin_by_norm(norm_option: int, data: np.ndarray, labels: np.ndarray,
                                prepared: Optional[MetricPreparation], dimension: int) -> float:
        centers = _cluster_means(data, labels)
        keys = list(centers)
        scatter = np.array([
            np.mean([get_dissimilarity(centers[c], data, index, norm_option, prepared)
                     for index in np.flatnonzero(labels == c)])
            for c in keys
        ])
        n_centers = len(keys)
        worst = np.zeros(n_centers)
        for i in range(n_centers):
            for j in range(n_centers):
                if i == j:
                    continue
                separation = pairwise_dissimilarity(centers[keys[i]], centers[keys[j]],
                                                    norm_option, dimension)
                if separation == 0:
                    continue
                worst[i] = max(worst[i], (scatter[i] + scatter[j]) / separation)
        return float(np.mean(worst))
