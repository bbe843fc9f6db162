"""
Post-processing shared by every clustering path.

Turns a raw cluster assignment (k-means or AHC) into the reported result:
labels ordered by cluster size, balanced entropy, closest and furthest
representative streamlines, and centroids expressed in the original
coordinate space.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence

import numpy as np


class ExtractedLine(NamedTuple):
    """A representative streamline and the (relabeled) cluster it belongs to."""
    index: int
    cluster: int


class MeanLine(NamedTuple):
    """A cluster centroid in original coordinates, tagged with its cluster."""
    coordinates: List[float]
    cluster: int


@dataclass
class ClusteringResult:
    """
    Everything a clustering run reports.

    Attributes
    ----------
    labels : np.ndarray
        Cluster id per streamline, 0 being the smallest non-empty cluster.
    sizes : np.ndarray
        Size of each streamline's own cluster.
    closest, furthest : List[ExtractedLine]
        Representative per non-empty cluster.
    mean_lines : List[MeanLine]
        Centroid per non-empty cluster in original coordinates.
    entropy : float
        Balanced entropy of the size distribution, in [0, 1].
    group_number : int
        Number of non-empty clusters.
    evaluation : Dict[str, Any]
        Validity / silhouette scores filled in by the orchestrator.
    info : Dict[str, Any]
        Run metadata (PC number, iterations, ...).
    """
    labels: np.ndarray
    sizes: np.ndarray
    closest: List[ExtractedLine]
    furthest: List[ExtractedLine]
    mean_lines: List[MeanLine]
    entropy: float
    group_number: int
    evaluation: Dict[str, Any] = field(default_factory=dict)
    info: Dict[str, Any] = field(default_factory=dict)


def relabel_by_size(storage: Sequence[int]) -> np.ndarray:
    """
    Maps raw cluster ids to ids ordered by ascending population.

    Empty clusters get -1. Equal sizes keep ascending raw id order.

    Parameters
    ----------
    storage : Sequence[int]
        Size per raw cluster id.

    Returns
    -------
    np.ndarray
        New id per raw cluster id.
    """
    storage = np.asarray(storage)
    increasing_order = np.full(len(storage), -1, dtype=int)
    group_no = 0
    for raw_id in np.argsort(storage, kind="stable"):
        if storage[raw_id] > 0:
            increasing_order[raw_id] = group_no
            group_no += 1
    return increasing_order


def balanced_entropy(storage: Sequence[int], n_rows: int) -> float:
    """
    Shannon entropy of the cluster sizes normalized by log2(#non-empty clusters).

    H = -sum(p_i * log2(p_i)) / log2(m), p_i = size_i / n_rows, over the m
    non-empty clusters. With fewer than two non-empty clusters H is 0.
    """
    sizes = np.asarray(storage, dtype=np.float64)
    sizes = sizes[sizes > 0]
    if len(sizes) < 2:
        return 0.0
    probability = sizes / float(n_rows)
    entropy = -np.sum(probability * np.log2(probability)) / np.log2(len(sizes))
    return float(entropy)


def select_representatives(
        centroids: np.ndarray,
        members: Sequence[Sequence[int]],
        distance_fn: Callable[[np.ndarray, int], float],
        increasing_order: np.ndarray
):
    """
    Finds, per non-empty cluster, the member closest to and furthest from its centroid.

    Members are scanned in list order; the first extremum wins.

    Parameters
    ----------
    centroids : np.ndarray
        Centroid per raw cluster id.
    members : Sequence[Sequence[int]]
        Member indices per raw cluster id.
    distance_fn : Callable
        distance_fn(centroid, index) -> distance of streamline `index`.
    increasing_order : np.ndarray
        Relabeling from `relabel_by_size`.

    Returns
    -------
    closest, furthest : List[ExtractedLine]
    """
    closest: List[ExtractedLine] = []
    furthest: List[ExtractedLine] = []
    for raw_id, member_list in enumerate(members):
        if increasing_order[raw_id] < 0 or len(member_list) == 0:
            continue
        shortest, far_dist = np.inf, -np.inf
        shortest_index = furthest_index = member_list[0]
        for index in member_list:
            to_center = distance_fn(centroids[raw_id], index)
            if to_center < shortest:
                shortest, shortest_index = to_center, index
            if to_center > far_dist:
                far_dist, furthest_index = to_center, index
        closest.append(ExtractedLine(int(shortest_index), int(increasing_order[raw_id])))
        furthest.append(ExtractedLine(int(furthest_index), int(increasing_order[raw_id])))
    return closest, furthest


def back_project(centroids: np.ndarray, basis: np.ndarray, mean: np.ndarray) -> np.ndarray:
    """
    Maps reduced-space centroids to original coordinates: centroids @ basis + mean.
    """
    return np.asarray(centroids, dtype=np.float64) @ basis + mean


def finalize(
        raw_labels: np.ndarray,
        storage: Sequence[int],
        members: Sequence[Sequence[int]],
        centroids: np.ndarray,
        coordinates: np.ndarray,
        distance_fn: Optional[Callable[[np.ndarray, int], float]] = None,
        basis: Optional[np.ndarray] = None,
        mean: Optional[np.ndarray] = None
) -> ClusteringResult:
    """
    Builds the reported result from a raw cluster assignment.

    Parameters
    ----------
    raw_labels : np.ndarray
        Raw cluster id per streamline.
    storage : Sequence[int]
        Size per raw cluster id.
    members : Sequence[Sequence[int]]
        Member indices per raw cluster id.
    centroids : np.ndarray
        Centroid per raw cluster id, in the space clustering ran in.
    coordinates : np.ndarray
        The clustered coordinates (reduced or raw).
    distance_fn : Callable, optional
        Distance between a centroid and a streamline index. Defaults to the
        Euclidean distance in `coordinates`.
    basis, mean : np.ndarray, optional
        PCA basis and mean; when given, centroids are back-projected.

    Returns
    -------
    ClusteringResult
    """
    raw_labels = np.asarray(raw_labels, dtype=int)
    storage = np.asarray(storage, dtype=int)
    coordinates = np.asarray(coordinates, dtype=np.float64)
    n_rows = len(raw_labels)

    if distance_fn is None:
        def distance_fn(centroid, index):
            return float(np.linalg.norm(centroid - coordinates[index]))

    increasing_order = relabel_by_size(storage)
    group_number = int(np.sum(storage > 0))
    entropy = balanced_entropy(storage, n_rows)

    labels = increasing_order[raw_labels]
    sizes = storage[raw_labels]

    closest, furthest = select_representatives(centroids, members, distance_fn,
                                               increasing_order)

    mass_pos = np.asarray(centroids, dtype=np.float64)
    if basis is not None:
        mass_pos = back_project(mass_pos, basis, mean)
    mean_lines = [MeanLine(mass_pos[raw_id].tolist(), int(increasing_order[raw_id]))
                  for raw_id in range(len(storage)) if storage[raw_id] > 0]

    return ClusteringResult(
        labels=labels,
        sizes=sizes,
        closest=closest,
        furthest=furthest,
        mean_lines=mean_lines,
        entropy=entropy,
        group_number=group_number,
    )
