"""
Average-linkage Agglomerative Hierarchical Clustering (AHC).

Starts from one node per streamline and repeatedly merges the closest pair of
live nodes until the requested number of clusters remains. The linkage
distance between two nodes is the mean of the elementary distances between
their members, always read from the fixed input distance matrix.

The candidate set holds exactly one entry per unordered pair of live nodes.
After a merge it is rebuilt incrementally: pairs that do not touch the two
merged nodes are carried over in their previous order, and one new pair per
remaining live node is appended for the new node. The pair selected next is
the first minimum of the rebuilt set.

References
----------
[1] Sokal, R.R., Michener, C.D., "A statistical method for evaluating
    systematic relationships", 1958, Univ. Kansas Sci. Bull., 38, 1409-1438
    (UPGMA / average linkage).
[2] Murtagh, F., Contreras, P., "Algorithms for hierarchical clustering: an
    overview", 2012, WIREs Data Mining Knowl. Discov., 2(1), 86-97.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..utils.time_recorder import TimeRecorder


@dataclass
class AHCNode:
    """
    A node of the merge hierarchy.

    Original streamlines are nodes 0..Row-1; merged nodes get increasing ids
    starting at Row.
    """
    index: int
    element: List[int] = field(default_factory=list)


def set_value(dist_matrix: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Builds the initial candidate set: every pair (i, j), i < j, in row-major order.

    Returns
    -------
    first, second : np.ndarray
        Node ids of each pair.
    distance : np.ndarray
        Elementary distance of each pair.
    """
    n = dist_matrix.shape[0]
    first, second = np.triu_indices(n, k=1)
    return first.astype(np.int64), second.astype(np.int64), dist_matrix[first, second].astype(np.float64)


def get_dist_at_nodes(first_list: List[int], second_list: List[int],
                      dist_matrix: np.ndarray) -> float:
    """
    Average-linkage distance: mean of dist_matrix[a, b] over a in first, b in second.
    """
    if not first_list or not second_list:
        raise ValueError("Linkage needs two non-empty nodes.")
    return float(np.mean(dist_matrix[np.ix_(first_list, second_list)]))


def hierarchical_merging(
        dist_matrix: np.ndarray,
        n_clusters: int,
        recorder: Optional[TimeRecorder] = None,
        verbose: bool = False,
        merges: Optional[List[Tuple[int, int, int, float]]] = None
) -> List[AHCNode]:
    """
    Merges nodes until `n_clusters` remain.

    Parameters
    ----------
    dist_matrix : np.ndarray
        Symmetric (Row x Row) elementary distance matrix.
    n_clusters : int
        Target number of clusters (>= 1). When Row is already at or below
        it, no merge happens.
    recorder : TimeRecorder, optional
        Receives the merge time.
    verbose : bool, default=False
        Print every merge.
    merges : list, optional
        Receives (first, second, new_index, linkage) for every merge, in order.

    Returns
    -------
    List[AHCNode]
        Live nodes sorted by ascending size, ties by ascending node id.
    """
    if n_clusters < 1:
        raise ValueError("n_clusters must be >= 1")

    dist_matrix = np.asarray(dist_matrix, dtype=np.float64)
    start = time.perf_counter()
    n_rows = dist_matrix.shape[0]

    # insertion order of the dict is the live-set order used for new pairs
    node_map: Dict[int, AHCNode] = {i: AHCNode(i, [i]) for i in range(n_rows)}
    first, second, distance = set_value(dist_matrix)

    index = n_rows
    while len(node_map) > n_clusters:
        # argmin returns the first minimum in scan order
        target = int(np.argmin(distance))
        pop_first, pop_second = int(first[target]), int(second[target])
        if merges is not None:
            merges.append((pop_first, pop_second, index, float(distance[target])))

        new_node = AHCNode(index, node_map[pop_first].element + node_map[pop_second].element)
        del node_map[pop_first]
        del node_map[pop_second]

        keep = ((first != pop_first) & (first != pop_second)
                & (second != pop_first) & (second != pop_second))
        others = list(node_map)
        new_distance = np.array([
            get_dist_at_nodes(new_node.element, node_map[other].element, dist_matrix)
            for other in others
        ], dtype=np.float64)

        first = np.concatenate([first[keep], np.array(others, dtype=np.int64)])
        second = np.concatenate([second[keep], np.full(len(others), index, dtype=np.int64)])
        distance = np.concatenate([distance[keep], new_distance])

        node_map[index] = new_node
        if verbose:
            print(f"Merged nodes {pop_first} and {pop_second} into {index}, "
                  f"{len(node_map)} clusters left.")
        index += 1

    nodes = sorted(node_map.values(), key=lambda node: (len(node.element), node.index))

    if recorder is not None:
        recorder.record(f"Hirarchical clustering for {n_clusters} groups takes: ",
                        f"{time.perf_counter() - start:.6f}s")
    return nodes


def set_label(nodes: List[AHCNode], coordinates: np.ndarray):
    """
    Turns the merge result into labels, member lists, sizes and centroids.

    Group ids follow the order of `nodes`.

    Parameters
    ----------
    nodes : List[AHCNode]
        Output of `hierarchical_merging`.
    coordinates : np.ndarray
        Coordinates of the clustered streamlines, shape (Row, D).

    Returns
    -------
    recorder : np.ndarray
        Group id per streamline.
    members : List[List[int]]
        Member indices per group, in node element order.
    storage : np.ndarray
        Size per group.
    centroid : np.ndarray
        Mean coordinates per group, shape (len(nodes), D).
    """
    coordinates = np.asarray(coordinates, dtype=np.float64)
    recorder = np.full(coordinates.shape[0], -1, dtype=int)
    members: List[List[int]] = []
    storage = np.zeros(len(nodes), dtype=int)
    centroid = np.zeros((len(nodes), coordinates.shape[1]))

    for group_id, node in enumerate(nodes):
        recorder[node.element] = group_id
        members.append(list(node.element))
        storage[group_id] = len(node.element)
        centroid[group_id] = coordinates[node.element].mean(axis=0)

    return recorder, members, storage, centroid
