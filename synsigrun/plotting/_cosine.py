import matplotlib.pyplot as plt
import seaborn as sns
import numpy as np
import scipy.cluster
import pandas as pd

def cosine_similarity_plot(cosine_similarity_matrix: pd.DataFrame):
    """
    Plots cosine similarity heatmap
    --------------------------------------
    Args:
        * cosine_similarity_matrix: DataFrame with cosine similarities of each
            reference signature (rows) to each extracted signature (columns)

    Returns:
        * fig

    Example usage:
        cosine_similarity_plot(pd.read_csv('cosine.similarity.csv', index_col=0))
    """
    if cosine_similarity_matrix.shape[0] > 1:
        linkage_mat = scipy.cluster.hierarchy.linkage(cosine_similarity_matrix, metric='euclidean')
        sig_order = scipy.cluster.hierarchy.dendrogram(linkage_mat, no_plot=True)['leaves']
    else:
        sig_order = [0]
    sorted_cosine_similarity_matrix = cosine_similarity_matrix.iloc[sig_order]

    fig, (ax, cbar_ax) = plt.subplots(
        figsize=(cosine_similarity_matrix.shape[1] + .5, max(cosine_similarity_matrix.shape[0] / 3, 2)),
        ncols=2,
        gridspec_kw={'width_ratios': [cosine_similarity_matrix.shape[1] * 2, 1]}
    )
    sns.heatmap(sorted_cosine_similarity_matrix, vmin=.75, vmax=1, ax=ax, cbar_ax=cbar_ax, cmap='viridis', annot=True)
    ax.set_yticks(np.arange(cosine_similarity_matrix.shape[0]) + .5)
    ax.set_yticklabels(sorted_cosine_similarity_matrix.index)
    for _, spine in ax.spines.items():
        spine.set_visible(True)
    cbar_ax.set_frame_on(True)

    return fig
