import numpy as np
import pandas as pd
from typing import Union

from .errors import FormatError, DivisionByZeroError

RESULT_KINDS = ('weights', 'loadings')

# ---------------------------------
# ExposureRescaler
# ---------------------------------
def rescale(weights: Union[pd.Series, np.ndarray, list], total: float):
    """
    Convert relative signature weights to absolute mutation counts.
    ------------------------
    Args:
        * weights: fraction of the sample's mutations attributed to each
            signature; may sum to < 1 when the engine reports unexplained
            mutations
        * total: total mutation count of the sample

    Returns:
        * absolute count per signature; sums to total * sum(weights)
    """
    if not isinstance(weights, (pd.Series, np.ndarray)):
        weights = np.asarray(weights, dtype=float)
    return weights * total

def normalize_then_rescale(raw: Union[pd.Series, np.ndarray, list], total: float, sample=None):
    """
    Normalize raw loadings to relative weights, then rescale to {total}.
    ------------------------
    Args:
        * raw: unnormalized loadings per signature
        * total: total mutation count of the sample
        * sample: sample identifier used in error reporting

    Returns:
        * absolute count per signature; sums to total
    """
    if not isinstance(raw, (pd.Series, np.ndarray)):
        raw = np.asarray(raw, dtype=float)

    if np.isnan(np.asarray(raw, dtype=float)).any():
        raise FormatError("Engine returned missing loadings for sample {}".format(sample))

    raw_sum = raw.sum()
    if raw_sum == 0:
        raise DivisionByZeroError("Loadings sum to zero; engine produced a degenerate attribution", sample=sample)

    return rescale(raw / raw_sum, total)

def rescale_exposures(result, counts: pd.DataFrame) -> pd.DataFrame:
    """
    Rescale an engine result to absolute exposures.
    ------------------------
    Args:
        * result: EngineResult; result.exposures is (samples x signatures)
            and result.kind selects rescale ('weights') or
            normalize_then_rescale ('loadings')
        * counts: engine-orientation spectra (samples x mutation types)
            providing each sample's total mutation count

    Returns:
        * pd.DataFrame of exposures (signatures x samples)
    """
    if result.kind not in RESULT_KINDS:
        raise ValueError("Unable to use result kind {}; use one of {}.".format(result.kind, RESULT_KINDS))

    exposures = result.exposures
    if set(exposures.index) != set(counts.index):
        raise FormatError("Engine returned exposures for samples {} but catalog has {}".format(
            list(exposures.index), list(counts.index)))

    totals = counts.sum(axis=1)

    rescaled = dict()
    for sample in counts.index:
        w = exposures.loc[sample].astype(float)
        if result.kind == 'weights':
            rescaled[sample] = rescale(w, totals[sample])
        else:
            rescaled[sample] = normalize_then_rescale(w, totals[sample], sample=sample)

    return pd.DataFrame(rescaled, index=exposures.columns, columns=counts.index)

def normalize_signatures(signatures: pd.DataFrame) -> pd.DataFrame:
    """
    Normalize each signature (column) to sum to 1.
    """
    sums = signatures.sum(0)
    if (sums == 0).any():
        raise DivisionByZeroError("Signature sums to zero", sample=list(sums.index[sums == 0]))
    return signatures.div(sums, axis=1)

# ---------------------------------
# Exposure IO
# ---------------------------------
def write_exposure(exposures: pd.DataFrame, path: str):
    """
    Write exposures (signatures x samples) to a .csv file.
    """
    exposures = exposures.copy()
    exposures.index.name = None
    exposures.to_csv(path)

def read_exposure(path: str) -> pd.DataFrame:
    exposures = pd.read_csv(path, index_col=0)
    exposures.index.name = None
    return exposures
