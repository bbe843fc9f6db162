"""
Unit tests for average-linkage AHC.
"""

import numpy as np
import pytest

from streamclust.algorithms.agg_clustering import (
    AHCNode,
    get_dist_at_nodes,
    hierarchical_merging,
    set_label,
    set_value,
)
from streamclust.utils.distance import euclidean_distance_matrix
from streamclust.utils.time_recorder import TimeRecorder


def _line_matrix(values):
    values = np.asarray(values, dtype=float)
    return np.abs(values[:, None] - values[None, :])


class TestCandidates:
    """Tests for the candidate set and the linkage distance."""

    def test_initial_pairs_row_major(self):
        dist = _line_matrix([0.0, 1.0, 3.0])
        first, second, distance = set_value(dist)

        np.testing.assert_array_equal(first, [0, 0, 1])
        np.testing.assert_array_equal(second, [1, 2, 2])
        np.testing.assert_allclose(distance, [1.0, 3.0, 2.0])

    def test_linkage_is_mean_of_member_distances(self):
        rng = np.random.default_rng(0)
        dist = euclidean_distance_matrix(rng.normal(size=(7, 3)))
        first, second = [0, 3, 5], [1, 6]

        expected = np.mean([dist[a, b] for a in first for b in second])
        assert get_dist_at_nodes(first, second, dist) == pytest.approx(expected)

    def test_empty_node_raises(self):
        with pytest.raises(ValueError):
            get_dist_at_nodes([], [1], np.zeros((2, 2)))


class TestHierarchicalMerging:
    """Tests for the merge loop."""

    def test_merge_order(self):
        """
        Points 0, 1, 3, 10: (0,1) merge first into node 4, then node 2 joins
        it at linkage 2.5, giving node 5.
        """
        nodes = hierarchical_merging(_line_matrix([0.0, 1.0, 3.0, 10.0]), 2)

        assert [node.index for node in nodes] == [3, 5]
        assert nodes[0].element == [3]
        assert nodes[1].element == [2, 0, 1]

    def test_separated_groups(self, six_points):
        nodes = hierarchical_merging(euclidean_distance_matrix(six_points), 2)
        assert sorted(sorted(node.element) for node in nodes) == [[0, 1, 2], [3, 4, 5]]

    def test_partition_and_order(self):
        rng = np.random.default_rng(2)
        dist = euclidean_distance_matrix(rng.normal(size=(25, 2)))
        nodes = hierarchical_merging(dist, 4)

        assert len(nodes) == 4
        flat = sorted(i for node in nodes for i in node.element)
        assert flat == list(range(25))
        keys = [(len(node.element), node.index) for node in nodes]
        assert keys == sorted(keys)

    def test_no_merge_when_target_reached(self):
        dist = _line_matrix([0.0, 5.0, 1.0])
        nodes = hierarchical_merging(dist, 5)

        assert [node.index for node in nodes] == [0, 1, 2]
        assert all(len(node.element) == 1 for node in nodes)

    def test_single_cluster(self):
        nodes = hierarchical_merging(_line_matrix([0.0, 2.0, 7.0, 8.0]), 1)
        assert len(nodes) == 1
        assert sorted(nodes[0].element) == [0, 1, 2, 3]
        assert nodes[0].index == 6

    def test_every_merge_uses_average_linkage(self):
        """Each merged pair is the closest live pair under the brute-force mean linkage."""
        rng = np.random.default_rng(8)
        dist = euclidean_distance_matrix(rng.normal(size=(12, 2)))
        merges = []
        hierarchical_merging(dist, 1, merges=merges)

        assert len(merges) == 11
        elements = {i: [i] for i in range(12)}
        for pop_first, pop_second, new_index, linkage in merges:
            expected = dist[np.ix_(elements[pop_first], elements[pop_second])].mean()
            assert linkage == pytest.approx(expected)

            live = list(elements)
            best = min(dist[np.ix_(elements[a], elements[b])].mean()
                       for i, a in enumerate(live) for b in live[i + 1:])
            assert linkage == pytest.approx(best)

            elements[new_index] = elements.pop(pop_first) + elements.pop(pop_second)

    def test_no_merge_records_nothing(self):
        merges = []
        hierarchical_merging(_line_matrix([0.0, 1.0]), 2, merges=merges)
        assert merges == []

    def test_records_time(self):
        recorder = TimeRecorder()
        hierarchical_merging(_line_matrix([0.0, 1.0, 3.0]), 2, recorder)
        assert recorder.event_list == ["Hirarchical clustering for 2 groups takes: "]

    def test_invalid_target(self):
        with pytest.raises(ValueError):
            hierarchical_merging(np.zeros((2, 2)), 0)


class TestSetLabel:
    """Tests for turning nodes into labels and centroids."""

    def test_labels_follow_node_order(self, six_points):
        nodes = [AHCNode(7, [3, 4, 5]), AHCNode(9, [2, 0, 1])]
        labels, members, storage, centroid = set_label(nodes, six_points)

        np.testing.assert_array_equal(labels, [1, 1, 1, 0, 0, 0])
        assert members == [[3, 4, 5], [2, 0, 1]]
        np.testing.assert_array_equal(storage, [3, 3])
        np.testing.assert_allclose(centroid, [[31 / 3, 31 / 3], [1 / 3, 1 / 3]])
