import numpy as np
import pandas as pd
import sys
import os
import platform
from typing import Union
from importlib import metadata
from sklearn.metrics.pairwise import cosine_similarity

from .errors import OutputExistsError

SESSION_PACKAGES = ['synsigrun', 'numpy', 'pandas', 'scipy', 'scikit-learn', 'rpy2', 'tables', 'tqdm']

# ---------------------------------
# IOUtils
# ---------------------------------
def file_loader(x):
    if x.endswith('.csv'):
        return pd.read_csv(x, index_col=0)
    elif x.endswith('.parquet'):
        return pd.read_parquet(x)
    else:
        return pd.read_csv(x, sep='\t', index_col=0)

def prepare_outdir(outdir: str, overwrite: bool = False):
    """
    Create output directory.
    ------------------------
    Args:
        * outdir: directory to create
        * overwrite: if False, abort when {outdir} already holds files

    Returns:
        * None
    """
    if os.path.isdir(outdir):
        if os.listdir(outdir) and not overwrite:
            raise OutputExistsError("{} already exists".format(outdir))
    else:
        print("   * Creating output dir at {}".format(outdir))
        os.makedirs(outdir)

# ---------------------------------
# Provenance
# ---------------------------------
def python_session_info() -> str:
    """
    Plain-text description of the Python session: interpreter, platform
    and versions of the packages a run depends on.
    """
    lines = [
        "Python {}".format(sys.version.replace('\n', ' ')),
        "Platform: {}".format(platform.platform()),
        "",
        "Packages:"
    ]
    for pkg in SESSION_PACKAGES:
        try:
            lines.append("  {} {}".format(pkg, metadata.version(pkg)))
        except metadata.PackageNotFoundError:
            lines.append("  {} (not installed)".format(pkg))
    return '\n'.join(lines) + '\n'

def numpy_rng_kind() -> tuple:
    """RNG identifier of numpy's default generator."""
    return ('numpy', type(np.random.default_rng().bit_generator).__name__)

def write_provenance(outdir: str, seed: int, rng_kind: Union[tuple, list], session_info: str):
    """
    Dump seed, random-number generator and session description
    to {outdir}/seedInUse.txt, RNGInUse.txt and sessionInfo.txt.
    """
    with open(os.path.join(outdir, 'seedInUse.txt'), 'w') as f:
        f.write("{}\n".format(seed))
    with open(os.path.join(outdir, 'RNGInUse.txt'), 'w') as f:
        f.write(' '.join(str(x) for x in rng_kind) + '\n')
    with open(os.path.join(outdir, 'sessionInfo.txt'), 'w') as f:
        f.write(session_info)

# ---------------------------------
# Signature Matching
# ---------------------------------
def signature_cosine_similarity(signatures: pd.DataFrame, reference: pd.DataFrame) -> pd.DataFrame:
    """
    Cosine similarity of signatures to a reference set.
    ------------------------
    Args:
        * signatures: pd.DataFrame (mutation types x signatures)
        * reference: pd.DataFrame (mutation types x reference signatures)

    Returns:
        * pd.DataFrame (reference signatures x signatures)
    """
    reference = reference.loc[signatures.index]
    return pd.DataFrame(
        cosine_similarity(reference.T.values, signatures.T.values),
        index=reference.columns,
        columns=signatures.columns
    )

def map_sig_names(similarity_matrix: pd.DataFrame, minimum_similarity: float = 0.85) -> dict:
    """
    Assign each signature the name of its most similar reference signature.

    Returns:
        * dict: signature -> "{signature}-{reference}" or "{signature}-Unmatched"
            when the best cosine similarity is below {minimum_similarity}
    """
    s_assign = dict(similarity_matrix.idxmax())
    s_max = dict(similarity_matrix.max())
    return {key:key+"-"+s_assign[key] if s_max[key] >= minimum_similarity else key+"-Unmatched" for key in s_assign}
