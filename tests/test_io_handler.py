"""
Unit tests for result persistence and the distance-matrix cache.
"""

import numpy as np
import pandas as pd

from streamclust.algorithms.finalizer import ClusteringResult, ExtractedLine, MeanLine
from streamclust.utils.clustering_metrics import Silhouette
from streamclust.utils.io_handler import (
    load_or_compute_distance_matrix,
    read_distance_matrix,
    write_distance_matrix,
    write_readme,
    write_results,
)
from streamclust.utils.time_recorder import TimeRecorder


class TestDistanceMatrixCache:
    """Tests for the on-disk cache."""

    def test_write_then_read(self, tmp_path):
        matrix = np.array([[0.0, 1.5, 2.25], [1.5, 0.0, 3.0], [2.25, 3.0, 0.0]])
        filepath = tmp_path / "cache" / "1"
        write_distance_matrix(str(filepath), matrix)

        np.testing.assert_allclose(read_distance_matrix(str(filepath)), matrix)

    def test_round_trip_is_exact(self, tmp_path):
        rng = np.random.default_rng(6)
        matrix = rng.random((5, 5)) * 1e3 + 1e-9
        matrix = matrix + matrix.T
        np.fill_diagonal(matrix, 0.0)
        filepath = tmp_path / "0"
        write_distance_matrix(str(filepath), matrix)

        np.testing.assert_array_equal(read_distance_matrix(str(filepath)), matrix)

    def test_read_forces_zero_diagonal(self, tmp_path):
        filepath = tmp_path / "2"
        filepath.write_text("7 1 2 \n1 7 3 \n2 3 7 \n")

        matrix = read_distance_matrix(str(filepath))
        np.testing.assert_allclose(matrix, [[0, 1, 2], [1, 0, 3], [2, 3, 0]])

    def test_compute_only_once(self, tmp_path):
        calls = []

        def compute():
            calls.append(1)
            return np.array([[0.0, 4.0], [4.0, 0.0]])

        first = load_or_compute_distance_matrix(str(tmp_path), 3, compute)
        second = load_or_compute_distance_matrix(str(tmp_path), 3, compute)

        assert len(calls) == 1
        assert (tmp_path / "3").exists()
        np.testing.assert_allclose(first, second)


class TestReporting:
    """Tests for the README and CSV outputs."""

    def test_readme_appends(self, tmp_path):
        sil = Silhouette()
        sil.s_average, sil.db_index, sil.gamma_statistic = 0.75, 0.3, 0.9
        filepath = tmp_path / "out" / "README"

        write_readme(str(filepath), 0.98, sil, validity=0.05, description="For norm 1")
        write_readme(str(filepath), 0.5, sil)

        content = filepath.read_text()
        assert content.count("Average Silhouette value is: 0.75") == 2
        assert "For norm 1" in content
        assert "Validity measure is: 0.05" in content
        assert "Gamma statistic is: 0.9" in content
        assert "Balanced entropy is: 0.98" in content

    def test_write_results(self, tmp_path):
        result = ClusteringResult(
            labels=np.array([1, 1, 0]),
            sizes=np.array([2, 2, 1]),
            closest=[ExtractedLine(2, 0), ExtractedLine(0, 1)],
            furthest=[ExtractedLine(2, 0), ExtractedLine(1, 1)],
            mean_lines=[MeanLine([5.0, 5.0], 0), MeanLine([0.5, 0.0], 1)],
            entropy=0.92,
            group_number=2,
        )
        recorder = TimeRecorder()
        recorder.record("SVD takes: ", "0.1s")

        write_results(str(tmp_path), result, recorder)

        labels = pd.read_csv(tmp_path / "labels.csv")
        assert labels["label"].tolist() == [1, 1, 0]
        assert labels["cluster_size"].tolist() == [2, 2, 1]

        representatives = pd.read_csv(tmp_path / "representatives.csv")
        assert len(representatives) == 4
        assert set(representatives["kind"]) == {"closest", "furthest"}

        centroids = pd.read_csv(tmp_path / "centroids.csv")
        assert centroids["cluster"].tolist() == [0, 1]

        timing = pd.read_csv(tmp_path / "timing.csv")
        assert timing["event"].tolist() == ["SVD takes: "]
