"""
Principal Component Analysis (PCA) via thin SVD.

Reduces the flattened streamline matrix to the leading principal directions
that together explain more than 99.9% of the total variance. For typical flow
datasets this leaves 3 or 4 dimensions, on which k-means or AHC then run.

The number of retained directions is not a parameter: it is the smallest
prefix of the energy-ranked directions whose cumulative squared coefficient
norm exceeds `threshold_ratio` times the total.

References
----------
[1] Jolliffe, I.T., "Principal Component Analysis", 2nd ed., 2002, Springer.
[2] Shi, L., Laramee, R.S., Chen, G., "Integral Curve Clustering and
    Simplification for Flow Visualization: A Comparative Evaluation", 2019,
    IEEE TVCG.
"""

import time
from typing import Optional, Tuple

import numpy as np

from ..utils.time_recorder import TimeRecorder

THRESHOLD_RATIO = 0.999


class PCA:
    """
    Variance-threshold Principal Component Analysis.

    Parameters
    ----------
    threshold_ratio : float, default=0.999
        Fraction of the total energy the retained directions must exceed.
    verbose : bool, default=False
        If True, prints the energy spectrum and the selected number of PCs.

    Attributes
    ----------
    mean_ : np.ndarray
        Column-wise mean of the fitted data, shape (Column,).
    components_ : np.ndarray
        Projection basis, shape (n_components_, Column).
    n_components_ : int
        Number of retained directions (PC_Number).
    energy_ : np.ndarray
        Squared coefficient norm of every direction, in ranked order.
    explained_variance_ratio_ : np.ndarray
        `energy_` of the retained directions over the total energy.
    svd_time_ : float
        Wall time of the factorization in seconds.
    """

    def __init__(self, threshold_ratio: float = THRESHOLD_RATIO, verbose: bool = False):
        if not 0.0 < threshold_ratio < 1.0:
            raise ValueError("threshold_ratio must be in (0, 1).")
        self.threshold_ratio = threshold_ratio
        self.verbose = verbose
        self.mean_ = None
        self.components_ = None
        self.n_components_ = None
        self.energy_ = None
        self.explained_variance_ratio_ = None
        self.svd_time_ = None
        self._coefficients = None

    def fit(self, X: np.ndarray) -> "PCA":
        """
        Computes the variance-ranked basis and the number of PCs to keep.

        Parameters
        ----------
        X : np.ndarray
            Input data of shape (Row, Column).

        Returns
        -------
        self
        """
        X = np.asarray(X, dtype=np.float64)

        self.mean_ = np.mean(X, axis=0)
        X_centered = X - self.mean_

        start = time.perf_counter()
        _, _, Vt = np.linalg.svd(X_centered, full_matrices=False)
        self.svd_time_ = time.perf_counter() - start

        coefficients = X_centered @ Vt.T
        energy = np.sum(coefficients ** 2, axis=0)

        # stable sort keeps decomposition order among equal energies
        order = np.argsort(-energy, kind="stable")
        energy = energy[order]
        Vt = Vt[order]
        coefficients = coefficients[:, order]

        total_energy = float(np.sum(energy))
        threshold = self.threshold_ratio * total_energy
        cumulative = np.cumsum(energy)
        above = np.flatnonzero(cumulative > threshold)
        # zero total energy: nothing exceeds the threshold, keep one trivial direction
        n_components = int(above[0]) + 1 if above.size else min(1, len(energy))

        if self.verbose:
            print("[PCA] Energy spectrum:", energy)
            print(f"[PCA] Keeping {n_components} of {len(energy)} directions "
                  f"(threshold {self.threshold_ratio}).")

        self.energy_ = energy
        self.n_components_ = n_components
        self.components_ = Vt[:n_components]
        self._coefficients = coefficients[:, :n_components]
        if total_energy > 0:
            self.explained_variance_ratio_ = energy[:n_components] / total_energy
        else:
            self.explained_variance_ratio_ = np.zeros(n_components)

        return self

    def transform(self, X: np.ndarray) -> np.ndarray:
        """
        Projects data onto the retained directions.

        Parameters
        ----------
        X : np.ndarray
            Input data of shape (n, Column).

        Returns
        -------
        np.ndarray
            Coefficients of shape (n, n_components_).
        """
        if self.components_ is None:
            raise ValueError("PCA has not been fitted yet. Call fit() first.")

        X_centered = np.asarray(X, dtype=np.float64) - self.mean_
        return X_centered @ self.components_.T

    def inverse_transform(self, X_transformed: np.ndarray) -> np.ndarray:
        """
        Maps reduced coordinates back to the original space: Z @ basis + mean.
        """
        if self.components_ is None:
            raise ValueError("PCA has not been fitted yet. Call fit() first.")
        return np.asarray(X_transformed, dtype=np.float64) @ self.components_ + self.mean_

    def fit_transform(self, X: np.ndarray) -> np.ndarray:
        self.fit(X)
        return self._coefficients


def perform_svd(
        data: np.ndarray,
        recorder: Optional[TimeRecorder] = None,
        verbose: bool = False
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, int]:
    """
    Runs the dimensionality reduction step of PCA-based clustering.

    Parameters
    ----------
    data : np.ndarray
        Dataset matrix of shape (Row, Column).
    recorder : TimeRecorder, optional
        Receives the factorization time under "SVD takes: ".
    verbose : bool, default=False
        Print a completion message.

    Returns
    -------
    reduced : np.ndarray
        Coefficients, shape (Row, PC_Number).
    basis : np.ndarray
        Projection basis, shape (PC_Number, Column).
    mean : np.ndarray
        Column mean, shape (Column,).
    pc_number : int
    """
    pca = PCA(verbose=verbose)
    reduced = pca.fit_transform(data)

    if recorder is not None:
        recorder.record("SVD takes: ", f"{pca.svd_time_:.6f}s")
    if verbose:
        print("SVD completed!")

    return reduced, pca.components_, pca.mean_, pca.n_components_
