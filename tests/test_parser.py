"""
Unit tests for loading and resampling streamline files.
"""

import numpy as np
import pytest

from streamclust.utils.parser import (
    build_data_matrix,
    load_csv_matrix,
    load_streamlines,
    preprocess_streamline_file,
    resample_streamline,
)


class TestLoading:
    """Tests for the file readers."""

    def test_load_streamlines(self, tmp_path):
        filepath = tmp_path / "lines.txt"
        filepath.write_text("0 0 0 1 0 0 2 0 0\n\n0 0 0 0 1 0\n")

        curves = load_streamlines(str(filepath))
        assert [c.shape for c in curves] == [(3, 3), (2, 3)]
        np.testing.assert_allclose(curves[1][1], [0.0, 1.0, 0.0])

    def test_bad_line_length(self, tmp_path):
        filepath = tmp_path / "broken.txt"
        filepath.write_text("0 0 0 1 0\n")
        with pytest.raises(ValueError):
            load_streamlines(str(filepath))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_streamlines(str(tmp_path / "nope.txt"))

    def test_csv_with_labels(self, tmp_path):
        filepath = tmp_path / "matrix.csv"
        filepath.write_text("a,0,0,1,1\nb,2,2,3,3\n")

        X, names = load_csv_matrix(str(filepath), has_labels=True)
        assert names == ["a", "b"]
        assert X.shape == (2, 4)


class TestResampling:
    """Tests for arc-length resampling."""

    def test_equal_spacing(self):
        vertices = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 3.0]])
        resampled = resample_streamline(vertices, 5)

        np.testing.assert_allclose(resampled, [[0, 0], [1, 0], [1, 1], [1, 2], [1, 3]])

    def test_degenerate_curve(self):
        resampled = resample_streamline(np.array([[2.0, 1.0, 0.0]]), 4)
        np.testing.assert_allclose(resampled, np.tile([2.0, 1.0, 0.0], (4, 1)))

    def test_build_matrix_uses_longest_curve(self):
        curves = [np.zeros((4, 3)), np.array([[0.0, 0.0, 0.0], [3.0, 0.0, 0.0]])]
        X = build_data_matrix(curves)

        assert X.shape == (2, 12)
        np.testing.assert_allclose(X[1].reshape(4, 3)[:, 0], [0.0, 1.0, 2.0, 3.0])

    def test_build_matrix_empty(self):
        with pytest.raises(ValueError):
            build_data_matrix([])


class TestPreprocess:
    """Tests for the single-file entry point."""

    def test_text_file(self, tmp_path):
        filepath = tmp_path / "flow.txt"
        filepath.write_text("0 0 0 1 0 0 2 0 0\n0 0 0 0 2 0\n")

        X, info = preprocess_streamline_file(str(filepath))
        assert X.shape == (2, 9)
        assert info["n_vertices"] == 3
        assert info["original_lengths"] == [3, 2]

    def test_resample_to_requested_count(self, tmp_path):
        filepath = tmp_path / "flow.txt"
        filepath.write_text("0 0 1 1\n")

        X, info = preprocess_streamline_file(str(filepath), dimension=2, n_vertices=3)
        np.testing.assert_allclose(X, [[0.0, 0.0, 0.5, 0.5, 1.0, 1.0]])
        assert info["dimension"] == 2
