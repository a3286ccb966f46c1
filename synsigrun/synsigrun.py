import os
import shutil
import pandas as pd
from typing import Union, Callable
import matplotlib.pyplot as plt

from .catalog import Catalog, read_catalog, write_catalog, to_engine_format, from_engine_format
from .exposure import rescale_exposures, normalize_signatures, write_exposure
from .engines import ENGINES, EngineResult, read_emu_results
from .errors import FormatError, EngineError
from .utils import prepare_outdir, write_provenance, numpy_rng_kind, python_session_info
from .utils import signature_cosine_similarity

from .plotting import signature_barplot, stacked_bar, cosine_similarity_plot

def _get_engine(engine: Union[str, Callable]) -> Callable:
    if callable(engine):
        return engine
    assert engine in ENGINES, "Unable to use engine {}; choose one of {}.".format(engine, list(ENGINES))
    return ENGINES[engine]

def _load_catalog(x: Union[str, Catalog], catalog_type: str = 'counts') -> Catalog:
    if isinstance(x, Catalog):
        return x
    print("   * Loading {} catalog from {}".format(catalog_type, x))
    return read_catalog(x, catalog_type=catalog_type, strict=False)

def _save_catalog_copy(x: Union[str, Catalog], path: str):
    if isinstance(x, Catalog):
        write_catalog(x, path)
    else:
        shutil.copy(x, path)

def _load_spectra(input_catalog, test_only: bool):
    catalog = _load_catalog(input_catalog)
    if test_only:
        print("   * Test run: using the first 10 samples")
        catalog = catalog.head_samples(10)
    return to_engine_format(catalog)

def _save_engine_output(result: EngineResult, out_dir: str):
    print("   * Saving raw engine outputs to {}".format(os.path.join(out_dir, 'engine_output.h5')))
    store = pd.HDFStore(os.path.join(out_dir, 'engine_output.h5'), 'w')
    store['exposures'] = result.exposures.astype(float)
    if result.signatures is not None:
        store['signatures'] = result.signatures.astype(float)
    store.close()

def _save_provenance(result: EngineResult, out_dir: str, seed: int):
    write_provenance(
        out_dir,
        seed,
        result.rng_kind if len(result.rng_kind) > 0 else numpy_rng_kind(),
        result.session_info if result.session_info else python_session_info()
    )

def _finish_extraction(
    result: EngineResult,
    counts: pd.DataFrame,
    meta,
    out_dir: str,
    seed: Union[int, str],
    gt_sigs_file: Union[str, Catalog, None] = None,
    plot_results: bool = False
    ) -> dict:
    """
    Rescale exposures, normalize extracted signatures and write
    extraction outputs to {out_dir}. {seed} is 'NA' when no seed was used.
    """
    if result.signatures is None:
        raise EngineError("Extraction engine returned no signatures")

    extracted = from_engine_format(result.signatures, meta.mutation_types, 'counts.signature', meta.region)
    extracted = Catalog(normalize_signatures(extracted.data), 'counts.signature', meta.region)
    exposures = rescale_exposures(result, counts)

    _save_engine_output(result, out_dir)

    print("   * Saving extracted signatures and inferred exposures to {}".format(out_dir))
    write_catalog(extracted, os.path.join(out_dir, 'extracted.signatures.csv'))
    write_exposure(exposures, os.path.join(out_dir, 'inferred.exposures.csv'))

    cosine = None
    if gt_sigs_file is not None:
        reference = _load_catalog(gt_sigs_file, 'counts.signature')
        _save_catalog_copy(gt_sigs_file, os.path.join(out_dir, 'ground.truth.signatures.csv'))
        cosine = signature_cosine_similarity(extracted.data, reference.data)
        cosine.to_csv(os.path.join(out_dir, 'cosine.similarity.csv'))

    _save_provenance(result, out_dir, seed)

    if plot_results:
        print("   * Saving report plots to {}".format(out_dir))
        if extracted.scheme == 'SBS96':
            _ = signature_barplot(extracted.data, contributions=exposures.sum(1))
            plt.savefig(os.path.join(out_dir, "signature_contributions.pdf"), dpi=100, bbox_inches='tight')
        _ = stacked_bar(exposures.T)
        plt.savefig(os.path.join(out_dir, "signature_stacked_barplot.pdf"), dpi=100, bbox_inches='tight')
        if cosine is not None:
            _ = cosine_similarity_plot(cosine)
            plt.savefig(os.path.join(out_dir, "cosine_similarity_plot.pdf"), dpi=100, bbox_inches='tight')
        plt.close('all')

    return {'signature': extracted, 'exposure': exposures}

# ---------------------------------
# Runs
# ---------------------------------
def run_attribution(
    engine: Union[str, Callable],
    input_catalog: Union[str, Catalog],
    gt_sigs_file: Union[str, Catalog],
    out_dir: str,
    seed: int = 1,
    test_only: bool = False,
    overwrite: bool = False,
    plot_results: bool = False,
    verbose: bool = False,
    **engine_kwargs
    ) -> pd.DataFrame:
    """
    Attribute spectra to known signatures.
    ------------------------
    Args:
        * engine: engine name (see engines.ENGINES) or engine callable
        * input_catalog: spectra catalog file (mutation types x samples)
        * gt_sigs_file: known signatures catalog file (mutation types x signatures)
        * out_dir: output directory to save files
        * seed: seed handed to the engine
        * test_only: only analyse the first 10 samples
        * overwrite: write into a populated {out_dir}
        * plot_results: save report plots
        * verbose: bool

    Engine_kwargs:
        * model: sigfit model ('nmf' or 'emu')

    Returns:
        * pd.DataFrame of inferred exposures (signatures x samples)
    """
    engine = _get_engine(engine)
    prepare_outdir(out_dir, overwrite=overwrite)

    counts, meta = _load_spectra(input_catalog, test_only)
    signatures, _ = to_engine_format(_load_catalog(gt_sigs_file, 'counts.signature'))

    if list(signatures.columns) != list(counts.columns):
        raise FormatError("Mutation types of signatures and spectra differ")

    print("   * Attributing {} samples to {} signatures...".format(counts.shape[0], signatures.shape[0]))
    result = engine(counts, signatures=signatures, seed=seed, verbose=verbose, out_dir=out_dir, **engine_kwargs)
    exposures = rescale_exposures(result, counts)

    _save_engine_output(result, out_dir)

    print("   * Saving inferred exposures to {}".format(os.path.join(out_dir, 'inferred.exposures.csv')))
    write_exposure(exposures, os.path.join(out_dir, 'inferred.exposures.csv'))
    _save_catalog_copy(gt_sigs_file, os.path.join(out_dir, 'ground.truth.signatures.csv'))

    _save_provenance(result, out_dir, seed)

    if plot_results:
        print("   * Saving report plots to {}".format(out_dir))
        _ = stacked_bar(exposures.T)
        plt.savefig(os.path.join(out_dir, "signature_stacked_barplot.pdf"), dpi=100, bbox_inches='tight')
        plt.close('all')

    return exposures

def run_extraction(
    engine: Union[str, Callable],
    input_catalog: Union[str, Catalog],
    out_dir: str,
    seed: int = 1,
    K_exact: Union[int, None] = None,
    K_range: Union[tuple, None] = None,
    gt_sigs_file: Union[str, Catalog, None] = None,
    test_only: bool = False,
    overwrite: bool = False,
    plot_results: bool = False,
    verbose: bool = False,
    **engine_kwargs
    ) -> dict:
    """
    Extract signatures from spectra and attribute spectra to them.
    ------------------------
    Args:
        * engine: engine name (see engines.ENGINES) or engine callable
        * input_catalog: spectra catalog file (mutation types x samples)
        * out_dir: output directory to save files
        * seed: seed handed to the engine
        * K_exact: exact number of signatures
        * K_range: (K_min, K_max) range of signature numbers to search
        * gt_sigs_file: optional reference signatures; extracted signatures
            are compared to them by cosine similarity
        * test_only: only analyse the first 10 samples
        * overwrite: write into a populated {out_dir}
        * plot_results: save report plots
        * verbose: bool

    Engine_kwargs:
        * model: sigfit model ('nmf' or 'emu')
        * cores: CPU cores for sigfit
        * emu_binary: path to EMu executable
        * opportunity: EMu mutational opportunity (samples x mutation types)

    Returns:
        * dict: 'signature' -> Catalog of normalized extracted signatures,
            'exposure' -> pd.DataFrame of inferred exposures (signatures x samples)
    """
    engine = _get_engine(engine)
    prepare_outdir(out_dir, overwrite=overwrite)

    counts, meta = _load_spectra(input_catalog, test_only)

    print("   * Extracting signatures from {} samples...".format(counts.shape[0]))
    result = engine(
        counts,
        seed=seed,
        K_exact=K_exact,
        K_range=K_range,
        verbose=verbose,
        out_dir=out_dir,
        **engine_kwargs
    )

    return _finish_extraction(result, counts, meta, out_dir, seed, gt_sigs_file, plot_results)

def convert_emu_results(
    emu_dir: str,
    input_catalog: Union[str, Catalog],
    out_dir: str,
    gt_sigs_file: Union[str, Catalog, None] = None,
    K: Union[int, None] = None,
    overwrite: bool = False,
    plot_results: bool = False
    ) -> dict:
    """
    Convert a completed EMu run in {emu_dir} to the standard outputs.
    ------------------------
    Args:
        * emu_dir: directory with EMu *_ml_spectra.txt and *_assigned.txt
        * input_catalog: spectra catalog EMu was run on
        * out_dir: output directory to save files
        * gt_sigs_file: optional reference signatures
        * K: number of signatures to pick when {emu_dir} holds several results

    Returns:
        * dict: 'signature' and 'exposure', as for run_extraction
    """
    prepare_outdir(out_dir, overwrite=overwrite)
    counts, meta = _load_spectra(input_catalog, False)

    print("   * Reading EMu results from {}".format(emu_dir))
    result = read_emu_results(emu_dir, meta.mutation_types, counts.index, K=K)

    return _finish_extraction(result, counts, meta, out_dir, 'NA', gt_sigs_file, plot_results)

# ---------------------------------
# Engine runs
# ---------------------------------
def run_deconstructsigs_attribute_only(input_catalog, gt_sigs_file, out_dir, seed=1, test_only=False, overwrite=False, **kwargs):
    """deconstructSigs attribution; see run_attribution."""
    return run_attribution('deconstructSigs', input_catalog, gt_sigs_file, out_dir,
        seed=seed, test_only=test_only, overwrite=overwrite, **kwargs)

def run_sigfit_attribute_only(input_catalog, gt_sigs_file, out_dir, seed=1, model='nmf', test_only=False, overwrite=False, **kwargs):
    """sigfit attribution; see run_attribution."""
    return run_attribution('sigfit.attribute', input_catalog, gt_sigs_file, out_dir,
        seed=seed, model=model, test_only=test_only, overwrite=overwrite, **kwargs)

def run_yapsa_attribute_only(input_catalog, gt_sigs_file, out_dir, seed=1, test_only=False, overwrite=False, **kwargs):
    """YAPSA attribution; see run_attribution."""
    return run_attribution('YAPSA', input_catalog, gt_sigs_file, out_dir,
        seed=seed, test_only=test_only, overwrite=overwrite, **kwargs)

def run_sigfit(
    input_catalog,
    out_dir,
    seed=1,
    K_exact=None,
    K_range=None,
    model='nmf',
    cores=None,
    gt_sigs_file=None,
    test_only=False,
    overwrite=False,
    **kwargs
    ):
    """sigfit extraction and attribution; see run_extraction."""
    return run_extraction('sigfit', input_catalog, out_dir, seed=seed, K_exact=K_exact, K_range=K_range,
        gt_sigs_file=gt_sigs_file, test_only=test_only, overwrite=overwrite, model=model, cores=cores, **kwargs)

def run_signer(input_catalog, out_dir, seed=1, K_exact=None, K_range=None, gt_sigs_file=None, test_only=False, overwrite=False, **kwargs):
    """signeR extraction and attribution; see run_extraction."""
    return run_extraction('signeR', input_catalog, out_dir, seed=seed, K_exact=K_exact, K_range=K_range,
        gt_sigs_file=gt_sigs_file, test_only=test_only, overwrite=overwrite, **kwargs)

def run_emu(
    input_catalog,
    out_dir,
    emu_binary='EMu',
    K_exact=None,
    opportunity_file=None,
    gt_sigs_file=None,
    seed=1,
    test_only=False,
    overwrite=False,
    **kwargs
    ):
    """
    EMu extraction and attribution; see run_extraction.

    Args:
        * opportunity_file: optional catalog of mutational opportunities
            (mutation types x samples)
    """
    opportunity = None
    if opportunity_file is not None:
        opportunity, _ = to_engine_format(_load_catalog(opportunity_file, 'density'))

    return run_extraction('EMu', input_catalog, out_dir, seed=seed, K_exact=K_exact,
        gt_sigs_file=gt_sigs_file, test_only=test_only, overwrite=overwrite,
        emu_binary=emu_binary, opportunity=opportunity, **kwargs)
