"""
Persistence of clustering results and the distance-matrix cache.

The distance matrix of a raw-space run is expensive (Row x Row dissimilarity
evaluations), so it is cached to a plain text file named after the norm
option: one matrix row per line, values separated by spaces. On later runs
the file is parsed back instead of recomputed.
"""

import os
from typing import Any, Callable, Optional

import numpy as np
import pandas as pd


def save_dataframe(data, folder, filename):
    if isinstance(data, pd.DataFrame):
        if data.empty: return
        df_to_save = data
    elif not data:
        return
    else:
        df_to_save = pd.DataFrame(data)

    os.makedirs(folder, exist_ok=True)
    df_to_save.to_csv(os.path.join(folder, filename), index=False)


# ---------------------------------------------------------
# Distance matrix cache
# ---------------------------------------------------------
def read_distance_matrix(filepath: str) -> np.ndarray:
    """
    Parses a cached distance matrix.

    Rows are whitespace-separated floats. The diagonal is forced to 0. Row
    lengths are not validated: a consistent file is a precondition of the
    cache.

    Parameters
    ----------
    filepath : str
        Path to the cache file.

    Returns
    -------
    np.ndarray
        Square matrix of shape (Row, Row).
    """
    matrix = pd.read_csv(filepath, sep=r"\s+", header=None,
                         float_precision="round_trip").to_numpy(dtype=np.float64)
    np.fill_diagonal(matrix, 0.0)
    return matrix


def write_distance_matrix(filepath: str, matrix: np.ndarray):
    folder = os.path.dirname(filepath)
    if folder:
        os.makedirs(folder, exist_ok=True)
    np.savetxt(filepath, matrix, delimiter=" ", fmt="%.17g")


def load_or_compute_distance_matrix(
        cache_dir: str,
        norm_option: int,
        compute: Callable[[], np.ndarray],
        verbose: bool = False
) -> np.ndarray:
    """
    Returns the distance matrix for `norm_option`, reading the cache if present.

    Parameters
    ----------
    cache_dir : str
        Directory holding one cache file per norm option.
    norm_option : int
        Norm option; the cache file is named after it.
    compute : Callable
        Computes the matrix when no cache file exists.
    verbose : bool, default=False
        Print which path was taken.

    Returns
    -------
    np.ndarray
    """
    filepath = os.path.join(cache_dir, str(norm_option))
    if os.path.exists(filepath):
        if verbose:
            print("read distance matrix...")
        return read_distance_matrix(filepath)

    matrix = compute()
    write_distance_matrix(filepath, matrix)
    return matrix


# ---------------------------------------------------------
# Result reporting
# ---------------------------------------------------------
def write_readme(filepath: str, entropy: float, silhouette: Any,
                 validity: Optional[float] = None, description: str = ""):
    """
    Appends an evaluation block (entropy plus silhouette scores) to a text file.
    """
    folder = os.path.dirname(filepath)
    if folder:
        os.makedirs(folder, exist_ok=True)

    lines = []
    if description:
        lines.append(description)
    lines.append(f"Average Silhouette value is: {silhouette.s_average}")
    lines.append(f"Davies-Bouldin index is: {silhouette.db_index}")
    if silhouette.gamma_statistic is not None:
        lines.append(f"Gamma statistic is: {silhouette.gamma_statistic}")
    if validity is not None:
        lines.append(f"Validity measure is: {validity}")
    lines.append(f"Balanced entropy is: {entropy}")

    with open(filepath, "a", encoding="utf-8") as handle:
        handle.write("\n".join(lines) + "\n\n")


def write_results(folder: str, result: Any, recorder: Any = None, prefix: str = ""):
    """
    Writes a `ClusteringResult` as CSV tables.

    Files
    -----
    - <prefix>labels.csv: curve index, cluster label, size of that cluster.
    - <prefix>representatives.csv: closest / furthest curve per cluster.
    - <prefix>centroids.csv: mean centroid coordinates per cluster.
    - <prefix>timing.csv: instrumentation events, if a recorder is given.
    """
    save_dataframe(pd.DataFrame({
        "curve": np.arange(len(result.labels)),
        "label": result.labels,
        "cluster_size": result.sizes,
    }), folder, f"{prefix}labels.csv")

    rows = [{"kind": "closest", "cluster": line.cluster, "curve": line.index}
            for line in result.closest]
    rows += [{"kind": "furthest", "cluster": line.cluster, "curve": line.index}
             for line in result.furthest]
    save_dataframe(rows, folder, f"{prefix}representatives.csv")

    if result.mean_lines:
        centroid_df = pd.DataFrame([line.coordinates for line in result.mean_lines])
        centroid_df.insert(0, "cluster", [line.cluster for line in result.mean_lines])
        save_dataframe(centroid_df, folder, f"{prefix}centroids.csv")

    if recorder is not None:
        save_dataframe(recorder.to_dataframe(), folder, f"{prefix}timing.csv")
