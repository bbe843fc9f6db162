"""
Tests for the experiment runner loop.
"""

import glob

import pandas as pd

import main


def test_failed_task_does_not_stop_the_sweep(monkeypatch, tmp_path, six_points):
    """An error in one task is reported and the remaining tasks still run."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(main, "RUN_CONFIG", {
        "datasets": {"cylinder": True},
        "algorithms": {"PCA_KMeans": True, "PCA_AHC": False, "Direct_KMeans": True},
    })
    monkeypatch.setattr(main, "N_CLUSTERS_LIST", [2])
    monkeypatch.setattr(main, "NORM_OPTIONS", [0])
    monkeypatch.setattr(main, "N_JOBS", 1)
    monkeypatch.setattr(main, "preprocess_streamline_file",
                        lambda path, dimension=3: (six_points, {}))

    real_run = main.run_clustering
    calls = []

    def flaky_run(data, config, recorder):
        calls.append(config.use_pca)
        if config.use_pca:
            raise OSError("cache directory is read-only")
        return real_run(data, config, recorder)

    monkeypatch.setattr(main, "run_clustering", flaky_run)
    main.main()

    assert calls == [True, False]
    summaries = glob.glob(str(tmp_path / "results" / "run_*" / "summary.csv"))
    assert len(summaries) == 1
    summary = pd.read_csv(summaries[0])
    assert summary["algo_name"].tolist() == ["Direct_KMeans"]
    assert summary["groups"].tolist() == [2]
