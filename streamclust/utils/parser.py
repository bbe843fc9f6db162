"""
Parser / preprocessing utilities for streamline datasets.

Handles loading curve files and bringing every curve to the same number of
vertices so the dataset can be held as a single (Row x Column) matrix, with
Column = n_vertices * dimension.

Supported inputs
----------------
- Plain text: one curve per line, whitespace-separated flattened vertex
  coordinates ("x0 y0 z0 x1 y1 z1 ..."). Curves may differ in length.
- CSV: one curve per row, already of equal length, optional leading label
  column (read with pandas).
"""

import os
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

# ---------------------------------------------------------------------
# Basic helpers
# ---------------------------------------------------------------------

def load_streamlines(filepath: str, dimension: int = 3) -> List[np.ndarray]:
    """
    Loads a whitespace-separated streamline file.

    Parameters
    ----------
    filepath : str
        Path to the text file.
    dimension : int, default=3
        Coordinates per vertex. Every line must hold a multiple of it.

    Returns
    -------
    List[np.ndarray]
        One array of shape (n_vertices_i, dimension) per non-empty line.
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Could not find file: {filepath}")

    curves: List[np.ndarray] = []
    with open(filepath, "r", encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            values = line.split()
            if not values:
                continue
            if len(values) % dimension != 0:
                raise ValueError(f"Line {line_number} holds {len(values)} values, "
                                 f"not a multiple of dimension {dimension}.")
            curves.append(np.array(values, dtype=np.float64).reshape(-1, dimension))
    return curves


def load_csv_matrix(filepath: str, has_labels: bool = False) -> Tuple[np.ndarray, Optional[List[str]]]:
    """
    Loads an equal-length curve matrix from CSV.

    If `has_labels` is True, the first column holds a name per curve.
    """
    df = pd.read_csv(filepath, header=None)
    labels = None
    if has_labels:
        labels = df.iloc[:, 0].astype(str).tolist()
        df = df.iloc[:, 1:]
    return df.to_numpy(dtype=np.float64), labels


def resample_streamline(vertices: np.ndarray, n_vertices: int) -> np.ndarray:
    """
    Resamples a polyline to `n_vertices` points equally spaced by arc length.

    Degenerate curves (a single vertex, or zero total length) are repeated.

    Parameters
    ----------
    vertices : np.ndarray
        Array of shape (m, dimension).
    n_vertices : int
        Target vertex count, at least 1.

    Returns
    -------
    np.ndarray
        Array of shape (n_vertices, dimension).
    """
    if n_vertices < 1:
        raise ValueError("n_vertices must be >= 1")
    vertices = np.asarray(vertices, dtype=np.float64)

    segment_lengths = np.linalg.norm(np.diff(vertices, axis=0), axis=1)
    arc = np.concatenate([[0.0], np.cumsum(segment_lengths)])
    if len(vertices) == 1 or arc[-1] == 0:
        return np.repeat(vertices[:1], n_vertices, axis=0)

    targets = np.linspace(0.0, arc[-1], n_vertices)
    return np.column_stack([
        np.interp(targets, arc, vertices[:, d]) for d in range(vertices.shape[1])
    ])


# ---------------------------------------------------------------------
# Single-file preprocessing
# ---------------------------------------------------------------------

def build_data_matrix(
        curves: List[np.ndarray],
        n_vertices: Optional[int] = None,
) -> np.ndarray:
    """
    Stacks curves into a (Row x Column) matrix, resampling where needed.

    Parameters
    ----------
    curves : List[np.ndarray]
        Curves of shape (m_i, dimension).
    n_vertices : int, optional
        Common vertex count. Defaults to the longest curve.

    Returns
    -------
    np.ndarray
        Matrix of shape (len(curves), n_vertices * dimension).
    """
    if not curves:
        raise ValueError("No curves to build a data matrix from.")
    if n_vertices is None:
        n_vertices = max(len(c) for c in curves)

    rows = []
    for curve in curves:
        if len(curve) != n_vertices:
            curve = resample_streamline(curve, n_vertices)
        rows.append(curve.reshape(-1))
    return np.vstack(rows)


def preprocess_streamline_file(
        filepath: str,
        dimension: int = 3,
        n_vertices: Optional[int] = None,
) -> Tuple[np.ndarray, Dict[str, Any]]:
    """
    Loads a streamline dataset file and returns its equal-length data matrix.

    Parameters
    ----------
    filepath : str
        Path to a .txt/.dat streamline file or a .csv matrix.
    dimension : int, default=3
        Coordinates per vertex.
    n_vertices : int, optional
        Common vertex count for text files (defaults to the longest curve).

    Returns
    -------
    X : np.ndarray
        Dataset matrix of shape (Row, Column).
    info : Dict[str, Any]
        Metadata: source path, dimension, vertex count, original lengths.
    """
    extension = os.path.splitext(filepath)[1].lower()
    if extension == ".csv":
        X, names = load_csv_matrix(filepath)
        lengths = [X.shape[1] // dimension] * X.shape[0]
    else:
        curves = load_streamlines(filepath, dimension)
        lengths = [len(c) for c in curves]
        X = build_data_matrix(curves, n_vertices)
        names = None

    info: Dict[str, Any] = {
        "source": filepath,
        "dimension": dimension,
        "n_vertices": X.shape[1] // dimension,
        "original_lengths": lengths,
        "names": names,
    }
    return X, info
