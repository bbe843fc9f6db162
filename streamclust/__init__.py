"""
streamclust: PCA-based, k-means and AHC clustering of streamlines and pathlines.
"""

__version__ = "0.1.0"
