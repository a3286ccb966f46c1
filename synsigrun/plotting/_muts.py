import matplotlib.pyplot as plt
import pandas as pd
from typing import Union

from ..context import context96, sbs_changes

def stacked_bar(H: pd.DataFrame, figsize: tuple = (8,8)):
    """
    Plot stacked barchart & normalized stacked barchart.
    --------------------------------------
    Args:
        * H: exposures (samples x signatures)
        * figsize: size of figure (int,int)

    Returns:
        * figure

    Example usage:
        stacked_bar(exposures.T)
    """
    H = H.copy()

    # Sort samples by mutation burden
    H['sum'] = H.sum(1)
    H = H.sort_values('sum', ascending=False)

    fig,axes = plt.subplots(2,1,figsize=figsize, sharex=True)

    H.iloc[:,:-1].plot(
        kind='bar',
        stacked=True,
        ax=axes[0],
        width=1.0,
        rasterized=True
    )

    axes[0].set_xticklabels([])
    axes[0].set_xticks([])
    axes[0].set_ylabel('Counts', fontsize=20)

    H_norm = H.iloc[:,:-1].div(H['sum'].replace(0, 1).values, axis=0)
    H_norm.plot(
        kind='bar',
        stacked=True,
        ax=axes[1],
        width=1.0,
        rasterized=True
    )

    axes[1].set_xticklabels([])
    axes[1].set_xticks([])
    axes[1].set_xlabel('Samples', fontsize=16)
    axes[1].set_ylabel('Fractions', fontsize=20)
    axes[1].get_legend().remove()
    axes[1].set_ylim([0,1])

    return fig

def signature_barplot(W: pd.DataFrame, contributions: Union[int, pd.Series] = 1):
    """
    Plots SBS96 signatures
    --------------------------------------
    Args:
        * W: signatures (mutation types x signatures), ICAMS labels such as 'ACAA'
        * contributions: Series of total contributions from each signature
            if W is normalized; else, 1

    Returns:
        * fig

    Example usage:
        signature_barplot(W, exposures.sum(1))
    """
    W = W.reindex(context96).fillna(0)
    sig_columns = list(W.columns)

    if isinstance(contributions, pd.Series):
        W = W * contributions[sig_columns]
    else:
        W = W * contributions

    n_sigs = len(sig_columns)

    # ICAMS label: 5' base, ref, 3' base, alt
    change_map = {chg: [x for x in context96 if x[1] + x[3] == chg] for chg in sbs_changes}
    color_map = {'CA': 'cyan', 'CG': 'red', 'CT': 'yellow', 'TA': 'purple', 'TC': 'green', 'TG': 'blue'}
    context_label = [x[0] + '-' + x[2] for x in change_map['CA']]

    x_coords = range(16)
    fig, axes = plt.subplots(nrows=n_sigs, ncols=6, figsize=(20, 2.5 * n_sigs), sharex='col', sharey='row', squeeze=False)
    for row, sig in enumerate(sig_columns):
        for col, chg in enumerate(sbs_changes):
            ax = axes[row, col]
            bar_heights = W[sig].loc[change_map[chg]]
            ax.bar(x_coords, bar_heights, width=.95, linewidth=1.5, edgecolor='gray', color=color_map[chg], rasterized=True)
            ax.set_xlim(-.55, 15.55)
            if row == 0:
                ax.set_title('>'.join(chg), fontsize=18)
            if row < n_sigs - 1:
                ax.tick_params(axis='x', length=0)
            else:
                ax.set_xticks(x_coords)
                ax.set_xticklabels(context_label, fontfamily='monospace', rotation='vertical')
            if col > 0:
                ax.tick_params(axis='y', length=0)
            if col == 5:
                ax.text(1.05, .5, sig, fontsize=14, rotation=270, transform=ax.transAxes, verticalalignment='center')

    plt.subplots_adjust(wspace=.08, hspace=.15)
    plt.suptitle('Mutational Signatures', y=1.18 - n_sigs * .06, fontsize=24, horizontalalignment='right')
    fig.text(.08, .5, 'Contributions', rotation='vertical', verticalalignment='center', fontsize=20, fontweight='bold')
    fig.text(.51, -.15 + n_sigs * .05, 'Motifs', horizontalalignment='center', fontsize=20, fontweight='bold')

    return fig
