import os
import datetime
import pandas as pd
from tqdm import tqdm

# Utilities
from streamclust.utils.parser import preprocess_streamline_file
from streamclust.utils.io_handler import save_dataframe, write_results
from streamclust.utils.time_recorder import TimeRecorder

# Algorithms
from streamclust.algorithms.pca_cluster import ClusteringConfig, run_clustering

# ---------------------------------------------------------
# CONFIGURATION
# ---------------------------------------------------------
RUN_CONFIG = {
    "datasets": {
        "cylinder": True,
        "tornado": False,
    },
    "algorithms": {
        "PCA_KMeans": True,
        "PCA_AHC": True,
        "Direct_KMeans": True,
    }
}

# (path, is_special_dataset) - special marks particle-based flow data
DATASETS_MAP = {
    "cylinder": ("dataset/cylinder.txt", False),
    "tornado": ("dataset/tornado.txt", False),
}

# Global Parameters
N_CLUSTERS_LIST = [4, 8, 12]
NORM_OPTIONS = [0, 1, 2]
INITIALIZATION = "far_samples"
DIMENSION = 3
N_JOBS = 4
RANDOM_STATE = 0


# ---------------------------------------------------------
# HELPER & MAIN
# ---------------------------------------------------------
def generate_task_list():
    tasks = []
    for ds_name, ds_enabled in RUN_CONFIG["datasets"].items():
        if not ds_enabled: continue

        for k in N_CLUSTERS_LIST:
            if RUN_CONFIG["algorithms"]["PCA_KMeans"]:
                tasks.append({"dataset": ds_name, "algo_name": "PCA_KMeans", "n_clusters": k,
                              "use_pca": True, "post_processing": "kmeans", "norm_option": 0})
            if RUN_CONFIG["algorithms"]["PCA_AHC"]:
                tasks.append({"dataset": ds_name, "algo_name": "PCA_AHC", "n_clusters": k,
                              "use_pca": True, "post_processing": "ahc", "norm_option": 0})
            if RUN_CONFIG["algorithms"]["Direct_KMeans"]:
                for norm in NORM_OPTIONS:
                    tasks.append({"dataset": ds_name, "algo_name": "Direct_KMeans", "n_clusters": k,
                                  "use_pca": False, "post_processing": "kmeans", "norm_option": norm})
    return tasks


def main():
    session_id = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    base_dir = f"results/run_{session_id}"
    os.makedirs(base_dir, exist_ok=True)

    print(f"Runner Started: {session_id}")
    all_tasks = generate_task_list()

    summary = []
    current_ds_name = None
    X = None

    pbar = tqdm(all_tasks, unit="run")

    for task in pbar:
        ds_name = task["dataset"]
        pbar.set_description(f"{ds_name} | {task['algo_name']} | k={task['n_clusters']} "
                             f"| norm={task['norm_option']}")

        # 1. Load Data if Dataset Changed
        if ds_name != current_ds_name:
            try:
                X, _ = preprocess_streamline_file(DATASETS_MAP[ds_name][0], dimension=DIMENSION)
                current_ds_name = ds_name
            except (OSError, ValueError) as e:
                pbar.write(f"Error loading {ds_name}: {e}")
                continue

        task_dir = os.path.join(base_dir, ds_name,
                                f"{task['algo_name']}_k{task['n_clusters']}_norm{task['norm_option']}")
        config = ClusteringConfig(
            n_clusters=task["n_clusters"],
            initialization=INITIALIZATION,
            post_processing=task["post_processing"],
            use_pca=task["use_pca"],
            norm_option=task["norm_option"],
            is_special_dataset=DATASETS_MAP[ds_name][1],
            dimension=DIMENSION,
            random_state=RANDOM_STATE,
            n_jobs=N_JOBS,
            cache_dir=os.path.join("cache", ds_name),
            readme_path=os.path.join(task_dir, "README"),
        )

        # 2. Run Clustering
        recorder = TimeRecorder()
        try:
            result = run_clustering(X, config, recorder)
        except Exception as e:
            pbar.write(f"Failed: {task} - {e}")
            continue

        write_results(task_dir, result, recorder)

        row = dict(task)
        row["groups"] = result.group_number
        row.update({k: v for k, v in result.evaluation.items() if k != "silhouette_per_cluster"})
        summary.append(row)

    if summary:
        save_dataframe(pd.DataFrame(summary), base_dir, "summary.csv")
        print(f"\nRun Complete. Data saved in {base_dir}")


if __name__ == "__main__":
    main()
