"""
PCA-based and direct clustering of streamlines.

Wires the clustering pieces together for one run:

- `perform_pca_clustering`: SVD reduction, then k-means or AHC-average on the
  reduced coordinates. Centroids are back-projected to original coordinates.
- `perform_direct_kmeans`: k-means on the raw flattened streamlines with a
  dissimilarity norm. The raw distance matrix used by the evaluation is
  cached on disk per norm option.
- `perform_direct_ahc`: AHC-average on the raw distance matrix.
- `run_clustering`: picks one of the above from a `ClusteringConfig`.

Every run records timings and scores into a `TimeRecorder` and returns a
`ClusteringResult`.
"""

from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from ..utils.clustering_metrics import Silhouette, ValidityMeasurement
from ..utils.distance import (
    MetricPreparation,
    check_norm_option,
    euclidean_distance_matrix,
    get_dissimilarity,
    get_distance_matrix,
)
from ..utils.io_handler import load_or_compute_distance_matrix, write_readme
from ..utils.time_recorder import TimeRecorder
from .agg_clustering import hierarchical_merging, set_label
from .finalizer import ClusteringResult, finalize
from .initialization import FAR_SAMPLES, generate_seeds
from .kmeans import KMeans
from .pca import perform_svd

KMEANS = "kmeans"
AHC = "ahc"

POST_PROCESSING_CODES = {
    1: KMEANS,
    2: AHC,
}


@dataclass
class ClusteringConfig:
    """
    Settings of one clustering run.

    Parameters
    ----------
    n_clusters : int, default=8
        Requested number of clusters.
    initialization : str or int, default='far_samples'
        K-means seeding strategy ('random_pos', 'from_samples', 'far_samples'
        or 1, 2, 3).
    post_processing : str or int, default='kmeans'
        Clustering after reduction: 'kmeans' (1) or 'ahc' (2).
    use_pca : bool, default=True
        Cluster PCA-reduced coordinates; otherwise raw streamlines.
    norm_option : int, default=0
        Dissimilarity norm for raw-space runs.
    is_special_dataset : bool, default=False
        Particle-based flow dataset: no distance matrix is built or cached.
    dimension : int, default=3
        Coordinates per vertex.
    random_state : int, optional
        Seed for the seeding strategy.
    n_jobs : int, default=1
        Worker pool size.
    cache_dir : str, optional
        Directory for the raw distance-matrix cache. None disables caching.
    readme_path : str, optional
        Text file receiving the evaluation summary. None disables it.
    verbose : bool, default=False
        Print progress.
    """
    n_clusters: int = 8
    initialization: Union[str, int] = FAR_SAMPLES
    post_processing: Union[str, int] = KMEANS
    use_pca: bool = True
    norm_option: int = 0
    is_special_dataset: bool = False
    dimension: int = 3
    random_state: Optional[int] = None
    n_jobs: int = 1
    cache_dir: Optional[str] = None
    readme_path: Optional[str] = None
    verbose: bool = False

    def __post_init__(self):
        if self.n_clusters < 1:
            raise ValueError("n_clusters must be >= 1")
        if isinstance(self.post_processing, int):
            if self.post_processing not in POST_PROCESSING_CODES:
                raise ValueError(f"Post-processing option '{self.post_processing}' not supported.")
            self.post_processing = POST_PROCESSING_CODES[self.post_processing]
        if self.post_processing not in (KMEANS, AHC):
            raise ValueError(f"Post-processing '{self.post_processing}' not supported.")
        check_norm_option(self.norm_option)


def _report(result: ClusteringResult, validity: ValidityMeasurement, sil: Silhouette,
            config: ClusteringConfig, description: str = ""):
    result.evaluation.update({
        "validity": validity.f_c,
        "silhouette": sil.s_average,
        "silhouette_per_cluster": sil.s_cluster,
        "davies_bouldin": sil.db_index,
        "gamma": sil.gamma_statistic,
        "entropy": result.entropy,
    })
    if config.readme_path:
        write_readme(config.readme_path, result.entropy, sil, validity.f_c, description)


def _evaluate_reduced(result: ClusteringResult, reduced: np.ndarray,
                      config: ClusteringConfig, recorder: TimeRecorder):
    vm = ValidityMeasurement()
    vm.compute_value(reduced, result.labels)
    recorder.record("PCA Validity measure is: ", vm.f_c)

    sil = Silhouette()
    with recorder.timer("Clustering evaluation computing takes: "):
        sil.compute_value(reduced, result.labels, result.group_number,
                          config.is_special_dataset)
    _report(result, vm, sil, config)


def _raw_distance_matrix(data: np.ndarray, prepared: MetricPreparation,
                         config: ClusteringConfig) -> np.ndarray:
    def compute():
        return get_distance_matrix(data, config.norm_option, prepared, config.n_jobs)

    if config.cache_dir is None:
        return compute()
    return load_or_compute_distance_matrix(config.cache_dir, config.norm_option,
                                           compute, config.verbose)


def _evaluate_raw(result: ClusteringResult, data: np.ndarray, prepared: MetricPreparation,
                  config: ClusteringConfig, recorder: TimeRecorder,
                  distance_matrix: Optional[np.ndarray] = None):
    if result.group_number <= 1:
        return

    if distance_matrix is None and not config.is_special_dataset:
        distance_matrix = _raw_distance_matrix(data, prepared, config)
        if config.verbose and len(data) > 1:
            print(f"Distance between 0 and 1 is {distance_matrix[0, 1]}")

    sil = Silhouette()
    with recorder.timer("Clustering evaluation computing takes: "):
        sil.compute_value_by_norm(config.norm_option, data, result.labels, prepared,
                                  result.group_number, config.is_special_dataset,
                                  distance_matrix, config.n_jobs)
    recorder.record("For norm ", config.norm_option)

    vm = ValidityMeasurement()
    vm.compute_value_by_norm(config.norm_option, data, result.labels, prepared,
                             config.is_special_dataset, distance_matrix)
    recorder.record("kmeans Validity measure is: ", vm.f_c)

    _report(result, vm, sil, config, f"For norm {config.norm_option}")


def perform_pc_kmeans(reduced: np.ndarray, basis: np.ndarray, mean: np.ndarray,
                      config: ClusteringConfig, recorder: TimeRecorder) -> ClusteringResult:
    """
    K-means on PCA coordinates followed by the shared post-processing.
    """
    seeds = generate_seeds(config.initialization, reduced, config.n_clusters,
                           norm_option=0, random_state=config.random_state)
    model = KMeans(config.n_clusters, n_jobs=config.n_jobs, verbose=config.verbose)
    with recorder.timer("k-means iteration for PC takes: "):
        model.fit(reduced, seeds)

    result = finalize(model.labels_, model.cluster_sizes_, model.members_,
                      model.centroids_, reduced, basis=basis, mean=mean)
    result.info.update({
        "pc_number": reduced.shape[1],
        "n_iter": model.n_iter_,
        "stop_reason": model.stop_reason_,
        "moving_history": list(model.moving_history_),
    })
    _evaluate_reduced(result, reduced, config, recorder)
    return result


def perform_ahc(reduced: np.ndarray, basis: np.ndarray, mean: np.ndarray,
                config: ClusteringConfig, recorder: TimeRecorder) -> ClusteringResult:
    """
    AHC-average on PCA coordinates followed by the shared post-processing.

    The elementary distances are Euclidean distances between reduced coordinates.
    """
    dist_matrix = euclidean_distance_matrix(reduced)
    nodes = hierarchical_merging(dist_matrix, config.n_clusters, recorder, config.verbose)
    raw_labels, members, storage, centroid = set_label(nodes, reduced)

    result = finalize(raw_labels, storage, members, centroid, reduced,
                      basis=basis, mean=mean)
    result.info.update({"pc_number": reduced.shape[1]})
    _evaluate_reduced(result, reduced, config, recorder)
    return result


def perform_pca_clustering(data: np.ndarray, config: Optional[ClusteringConfig] = None,
                           recorder: Optional[TimeRecorder] = None) -> ClusteringResult:
    """
    Reduces the streamlines with PCA, then clusters them with k-means or AHC.

    Parameters
    ----------
    data : np.ndarray
        Dataset matrix of shape (Row, Column).
    config : ClusteringConfig, optional
        Run settings; defaults to `ClusteringConfig()`.
    recorder : TimeRecorder, optional
        Instrumentation sink; a fresh one is used when omitted.

    Returns
    -------
    ClusteringResult
    """
    config = config or ClusteringConfig()
    recorder = recorder if recorder is not None else TimeRecorder()
    data = np.asarray(data, dtype=np.float64)

    reduced, basis, mean, pc_number = perform_svd(data, recorder, config.verbose)
    if config.verbose:
        print(f"{pc_number} principal components kept.")

    if config.post_processing == KMEANS:
        return perform_pc_kmeans(reduced, basis, mean, config, recorder)
    return perform_ahc(reduced, basis, mean, config, recorder)


def perform_direct_kmeans(data: np.ndarray, config: Optional[ClusteringConfig] = None,
                          recorder: Optional[TimeRecorder] = None) -> ClusteringResult:
    """
    K-means directly on the raw streamlines with the configured norm.

    When more than one group comes out and the dataset is not special, the
    raw distance matrix is loaded from (or written to) the cache directory
    before the silhouette and validity evaluation.
    """
    config = config or ClusteringConfig(use_pca=False)
    recorder = recorder if recorder is not None else TimeRecorder()
    data = np.asarray(data, dtype=np.float64)
    norm_option = config.norm_option

    prepared = MetricPreparation(data.shape[0], data.shape[1], config.dimension)
    prepared.preprocessing(data, norm_option)

    seeds = generate_seeds(config.initialization, data, config.n_clusters,
                           norm_option=norm_option, prepared=prepared,
                           random_state=config.random_state)
    model = KMeans(config.n_clusters, norm_option=norm_option, prepared=prepared,
                   n_jobs=config.n_jobs, verbose=config.verbose)
    if config.verbose:
        print("K-means start!")
    with recorder.timer("k-means iteration takes: "):
        model.fit(data, seeds)

    def distance_fn(centroid, index):
        return get_dissimilarity(centroid, data, index, norm_option, prepared)

    result = finalize(model.labels_, model.cluster_sizes_, model.members_,
                      model.centroids_, data, distance_fn=distance_fn)
    result.info.update({
        "norm_option": norm_option,
        "n_iter": model.n_iter_,
        "stop_reason": model.stop_reason_,
        "moving_history": list(model.moving_history_),
    })
    if config.verbose:
        print(f"There are {result.group_number} groups generated!")

    _evaluate_raw(result, data, prepared, config, recorder)
    return result


def perform_direct_ahc(data: np.ndarray, config: Optional[ClusteringConfig] = None,
                       recorder: Optional[TimeRecorder] = None) -> ClusteringResult:
    """
    AHC-average directly on the raw streamlines with the configured norm.
    """
    config = config or ClusteringConfig(use_pca=False, post_processing=AHC)
    recorder = recorder if recorder is not None else TimeRecorder()
    data = np.asarray(data, dtype=np.float64)
    norm_option = config.norm_option

    prepared = MetricPreparation(data.shape[0], data.shape[1], config.dimension)
    prepared.preprocessing(data, norm_option)

    if config.is_special_dataset:
        dist_matrix = get_distance_matrix(data, norm_option, prepared, config.n_jobs)
    else:
        dist_matrix = _raw_distance_matrix(data, prepared, config)

    nodes = hierarchical_merging(dist_matrix, config.n_clusters, recorder, config.verbose)
    raw_labels, members, storage, centroid = set_label(nodes, data)

    def distance_fn(centroid_row, index):
        return get_dissimilarity(centroid_row, data, index, norm_option, prepared)

    result = finalize(raw_labels, storage, members, centroid, data, distance_fn=distance_fn)
    result.info.update({"norm_option": norm_option})

    _evaluate_raw(result, data, prepared, config, recorder,
                  None if config.is_special_dataset else dist_matrix)
    return result


def run_clustering(data: np.ndarray, config: Optional[ClusteringConfig] = None,
                   recorder: Optional[TimeRecorder] = None) -> ClusteringResult:
    """
    Runs the clustering path selected by `config`.
    """
    config = config or ClusteringConfig()
    if config.use_pca:
        return perform_pca_clustering(data, config, recorder)
    if config.post_processing == KMEANS:
        return perform_direct_kmeans(data, config, recorder)
    return perform_direct_ahc(data, config, recorder)
