"""
End-to-end tests for the clustering entry points.
"""

import numpy as np
import pytest

from streamclust.algorithms.pca_cluster import (
    AHC,
    KMEANS,
    ClusteringConfig,
    perform_direct_ahc,
    perform_direct_kmeans,
    perform_pca_clustering,
    run_clustering,
)
from streamclust.utils.time_recorder import TimeRecorder


def _assert_two_groups(labels, first, second):
    labels = np.asarray(labels)
    assert len(set(labels[first])) == 1
    assert len(set(labels[second])) == 1
    assert labels[first[0]] != labels[second[0]]


class TestConfig:
    """Tests for ClusteringConfig validation."""

    def test_integer_post_processing_code(self):
        assert ClusteringConfig(post_processing=2).post_processing == AHC
        assert ClusteringConfig(post_processing=1).post_processing == KMEANS

    @pytest.mark.parametrize("kwargs", [
        {"n_clusters": 0},
        {"post_processing": 3},
        {"post_processing": "dbscan"},
        {"norm_option": 5},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            ClusteringConfig(**kwargs)


class TestPcaClustering:
    """Tests for the PCA-reduced paths."""

    @pytest.mark.parametrize("post_processing", [KMEANS, AHC])
    def test_six_points(self, six_points, post_processing):
        recorder = TimeRecorder()
        config = ClusteringConfig(n_clusters=2, post_processing=post_processing,
                                  dimension=2, random_state=0)
        result = perform_pca_clustering(six_points, config, recorder)

        _assert_two_groups(result.labels, [0, 1, 2], [3, 4, 5])
        assert result.group_number == 2
        assert result.entropy == pytest.approx(1.0)
        assert sorted(line.index for line in result.closest) == [0, 3]
        assert result.info["pc_number"] == 2
        assert "SVD takes: " in recorder.event_list
        assert "PCA Validity measure is: " in recorder.event_list
        assert result.evaluation["silhouette"] > 0.8

    def test_centroids_back_projected(self, six_points):
        config = ClusteringConfig(n_clusters=2, dimension=2, random_state=0)
        result = perform_pca_clustering(six_points, config)

        centroids = sorted(line.coordinates for line in result.mean_lines)
        np.testing.assert_allclose(centroids, [[1 / 3, 1 / 3], [31 / 3, 31 / 3]], atol=1e-9)

    def test_streamline_families(self, two_families):
        config = ClusteringConfig(n_clusters=2, post_processing=AHC, random_state=0)
        result = run_clustering(two_families, config)
        _assert_two_groups(result.labels, list(range(6)), list(range(6, 12)))

    def test_writes_readme(self, six_points, tmp_path):
        readme = tmp_path / "README"
        config = ClusteringConfig(n_clusters=2, dimension=2, random_state=0,
                                  readme_path=str(readme))
        perform_pca_clustering(six_points, config)
        assert "Balanced entropy is: 1.0" in readme.read_text()


class TestDirectClustering:
    """Tests for the raw-space paths."""

    @pytest.mark.parametrize("norm_option", [0, 1, 2, 3])
    def test_direct_kmeans(self, two_families, norm_option):
        recorder = TimeRecorder()
        config = ClusteringConfig(n_clusters=2, use_pca=False, norm_option=norm_option,
                                  random_state=0)
        result = perform_direct_kmeans(two_families, config, recorder)

        _assert_two_groups(result.labels, list(range(6)), list(range(6, 12)))
        assert result.info["norm_option"] == norm_option
        assert "For norm " in recorder.event_list
        assert "kmeans Validity measure is: " in recorder.event_list
        assert result.evaluation["silhouette"] > 0.8

    def test_distance_matrix_is_cached(self, two_families, tmp_path):
        config = ClusteringConfig(n_clusters=2, use_pca=False, norm_option=1,
                                  random_state=0, cache_dir=str(tmp_path))
        first = perform_direct_kmeans(two_families, config)
        assert (tmp_path / "1").exists()

        second = perform_direct_kmeans(two_families, config)
        assert second.evaluation["silhouette"] == pytest.approx(
            first.evaluation["silhouette"], abs=1e-6)

    def test_cached_rerun_keeps_near_ties(self, tmp_path):
        """Distances differing past the 8th digit survive the cache round trip."""
        data = np.array([[0.0], [1.000000002], [10.0], [11.000000001]])
        config = ClusteringConfig(n_clusters=3, use_pca=False, post_processing=AHC,
                                  norm_option=0, dimension=1, cache_dir=str(tmp_path))
        first = perform_direct_ahc(data, config)
        assert (tmp_path / "0").exists()
        second = perform_direct_ahc(data, config)

        np.testing.assert_array_equal(first.labels, second.labels)
        assert first.closest == second.closest

    def test_special_dataset_builds_no_cache(self, two_families, tmp_path):
        config = ClusteringConfig(n_clusters=2, use_pca=False, norm_option=1,
                                  is_special_dataset=True, random_state=0,
                                  cache_dir=str(tmp_path))
        result = perform_direct_kmeans(two_families, config)

        assert not (tmp_path / "1").exists()
        assert result.evaluation["gamma"] is None

    def test_single_group_skips_evaluation(self, six_points):
        recorder = TimeRecorder()
        config = ClusteringConfig(n_clusters=1, use_pca=False, dimension=2, random_state=0)
        result = perform_direct_kmeans(six_points, config, recorder)

        assert result.group_number == 1
        assert result.entropy == 0.0
        assert result.evaluation == {}
        assert "For norm " not in recorder.event_list

    @pytest.mark.parametrize("norm_option", [1, 3])
    def test_direct_ahc(self, two_families, norm_option):
        config = ClusteringConfig(n_clusters=2, use_pca=False, post_processing=AHC,
                                  norm_option=norm_option, n_jobs=2)
        result = perform_direct_ahc(two_families, config)

        _assert_two_groups(result.labels, list(range(6)), list(range(6, 12)))
        assert result.group_number == 2

    def test_dispatch(self, six_points):
        config = ClusteringConfig(n_clusters=2, use_pca=False, dimension=2, random_state=0)
        result = run_clustering(six_points, config)
        _assert_two_groups(result.labels, [0, 1, 2], [3, 4, 5])
