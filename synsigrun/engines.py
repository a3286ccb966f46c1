"""
Adapters around external signature attribution / extraction engines.

Every engine takes spectra in engine orientation (samples x mutation types)
and, for attribution, signatures (signatures x mutation types), and returns
an EngineResult. R packages are driven through rpy2; EMu is a standalone
binary run with subprocess.
"""
import glob
import os
import re
import subprocess
import tempfile
import numpy as np
import pandas as pd
from tqdm import tqdm
from typing import NamedTuple, Union

from .errors import EngineError, FormatError, DivisionByZeroError
from .utils import python_session_info

CRAN_REPO = "https://cloud.r-project.org"

# R package -> (source, install target)
R_PACKAGE_SOURCES = {
    'deconstructSigs': ('cran', 'deconstructSigs'),
    'rstan': ('cran', 'rstan'),
    'sigfit': ('github', 'kgori/sigfit'),
    'signeR': ('bioc', 'signeR'),
    'YAPSA': ('bioc', 'YAPSA'),
}

class EngineResult(NamedTuple):
    """
    Output of an engine run.
    ------------------------
    * kind: 'weights' (relative exposures summing to <= 1 per sample) or
        'loadings' (unnormalized exposures)
    * exposures: pd.DataFrame (samples x signatures)
    * signatures: pd.DataFrame (signatures x mutation types) for extraction
        runs, else None
    * rng_kind: random number generator used by the engine
    * session_info: description of the engine's runtime
    """
    kind: str
    exposures: pd.DataFrame
    signatures: Union[pd.DataFrame, None] = None
    rng_kind: tuple = ()
    session_info: str = ''

# ---------------------------------
# R Utils
# ---------------------------------
def _rpy2():
    import rpy2.robjects as ro
    from rpy2.robjects import packages as rpackages
    return ro, rpackages

def _py2r(df: pd.DataFrame):
    ro, _ = _rpy2()
    from rpy2.robjects import pandas2ri
    from rpy2.robjects.conversion import localconverter

    with localconverter(ro.default_converter + pandas2ri.converter) as cv:
        return cv.py2rpy(df)

def _r2py(obj) -> pd.DataFrame:
    ro, _ = _rpy2()
    from rpy2.robjects import pandas2ri
    from rpy2.robjects.conversion import localconverter

    obj = ro.r['as.data.frame'](obj)
    with localconverter(ro.default_converter + pandas2ri.converter) as cv:
        return cv.rpy2py(obj)

def _r_runtime_error():
    from rpy2.rinterface_lib.embedded import RRuntimeError
    return RRuntimeError

def _r_call(engine: str, fn, *args, sample=None, **kwargs):
    """Call an R function, re-raising R errors as EngineError."""
    try:
        return fn(*args, **kwargs)
    except _r_runtime_error() as e:
        raise EngineError(str(e).strip(), engine=engine, sample=sample) from e

def install_r_package(name: str):
    """
    Install an R package from CRAN, Bioconductor or GitHub if it is absent.
    """
    _, rpackages = _rpy2()
    from rpy2.robjects.vectors import StrVector

    if rpackages.isinstalled(name):
        return

    source, target = R_PACKAGE_SOURCES[name]
    print("   * Installing {} from {}...".format(name, source))

    utils = rpackages.importr('utils')
    if source == 'cran':
        utils.install_packages(StrVector([target]), repos=CRAN_REPO)
    elif source == 'bioc':
        if not rpackages.isinstalled('BiocManager'):
            utils.install_packages(StrVector(['BiocManager']), repos=CRAN_REPO)
        rpackages.importr('BiocManager').install(target, ask=False)
    elif source == 'github':
        if not rpackages.isinstalled('remotes'):
            utils.install_packages(StrVector(['remotes']), repos=CRAN_REPO)
        rpackages.importr('remotes').install_github(target, args="--preclean", build_vignettes=True)

    # sigfit samples with rstan
    if name == 'sigfit':
        install_r_package('rstan')

def r_set_seed(seed: int) -> tuple:
    """
    Seed R's generator.

    Returns:
        * tuple of R's RNGkind() after seeding
    """
    ro, _ = _rpy2()
    ro.r['set.seed'](seed)
    return tuple(ro.r['RNGkind']())

def r_session_info() -> str:
    ro, _ = _rpy2()
    return python_session_info() + "\nR session:\n" + '\n'.join(ro.r('capture.output(sessionInfo())')) + '\n'

def _check_k(K_exact: Union[int, None], K_range: Union[tuple, list, None]):
    """Exactly one of K_exact or K_range (K_min, K_max) must be provided."""
    exact = K_exact is not None and K_range is None
    ranged = K_exact is None and K_range is not None and len(K_range) == 2
    if not (exact or ranged):
        raise ValueError("Specify exactly one of K_exact or K_range (K_min, K_max).")

def _check_signatures(counts: pd.DataFrame, signatures: pd.DataFrame):
    if signatures is None:
        raise ValueError("Attribution requires a signature matrix.")
    if list(signatures.columns) != list(counts.columns):
        raise FormatError("Signature mutation types do not match spectra mutation types.")

def _sigfit_names(names) -> list:
    """'Signature A' -> 'sigfit.A'"""
    return [re.sub('Signature ', 'sigfit.', str(x)) for x in names]

def _pdf(out_dir: Union[str, None], filename: str):
    """Open an R pdf device in {out_dir}; returns the device closer."""
    _, rpackages = _rpy2()
    grdevices = rpackages.importr('grDevices')
    if out_dir is None:
        return lambda: None
    grdevices.pdf(os.path.join(out_dir, filename))
    return grdevices.dev_off

# ---------------------------------
# deconstructSigs
# ---------------------------------
def deconstructsigs_attribute(
    counts: pd.DataFrame,
    signatures: pd.DataFrame = None,
    seed: int = 1,
    verbose: bool = False,
    **kwargs
    ) -> EngineResult:
    """
    deconstructSigs attribution.
    ------------------------
    whichSignatures attributes one tumor per call, so samples are run
    one at a time. Weights are relative and may sum to < 1.

    Args:
        * counts: spectra (samples x mutation types)
        * signatures: known signatures (signatures x mutation types)
        * seed: seed for R's generator

    Returns:
        * EngineResult of kind 'weights'
    """
    _check_signatures(counts, signatures)

    empty = counts.index[counts.sum(1) == 0]
    if len(empty) > 0:
        raise DivisionByZeroError("Sample has no mutations to attribute", sample=empty[0])

    _, rpackages = _rpy2()
    install_r_package('deconstructSigs')
    rng_kind = r_set_seed(seed)
    ds = rpackages.importr('deconstructSigs')

    r_sigs = _py2r(signatures.astype(float))

    weights = list()
    for sample in tqdm(counts.index, desc='Samples: ', disable=not verbose):
        out = _r_call(
            'deconstructSigs',
            ds.whichSignatures,
            tumor_ref=_py2r(counts.loc[[sample]].astype(float)),
            signatures_ref=r_sigs,
            contexts_needed=True,
            sample=sample
        )
        w = _r2py(out.rx2('weights'))
        w.index = [sample]
        w.columns = signatures.index
        weights.append(w)

    return EngineResult('weights', pd.concat(weights), rng_kind=rng_kind, session_info=r_session_info())

# ---------------------------------
# sigfit
# ---------------------------------
def _sigfit_fit(sigfit, r_counts, r_signatures, model, seed, cores=None):
    kwargs = dict(counts=r_counts, signatures=r_signatures, model=model, iter=2000, warmup=1000, chains=1, seed=seed)
    if cores is not None:
        kwargs['cores'] = cores
    fit = _r_call('sigfit', sigfit.fit_signatures, **kwargs)
    pars = _r_call('sigfit', sigfit.retrieve_pars, fit, par="exposures", hpd_prob=0.90)
    return _r2py(pars.rx2('mean'))

def sigfit_attribute(
    counts: pd.DataFrame,
    signatures: pd.DataFrame = None,
    seed: int = 1,
    model: str = 'nmf',
    **kwargs
    ) -> EngineResult:
    """
    sigfit attribution with known signatures.
    ------------------------
    Args:
        * counts: spectra (samples x mutation types)
        * signatures: known signatures (signatures x mutation types)
        * seed: seed for R and for Stan sampling
        * model: 'nmf' or 'emu'

    Returns:
        * EngineResult of kind 'weights'
    """
    _check_signatures(counts, signatures)
    assert model in ('nmf', 'emu'), "Unable to use {}; specify either nmf or emu model.".format(model)
    _, rpackages = _rpy2()

    install_r_package('sigfit')
    rng_kind = r_set_seed(seed)
    sigfit = rpackages.importr('sigfit')

    exposures = _sigfit_fit(sigfit, _py2r(counts), _py2r(signatures.astype(float)), model, seed)
    exposures.index = counts.index
    exposures.columns = _sigfit_names(signatures.index)

    return EngineResult('weights', exposures, rng_kind=rng_kind, session_info=r_session_info())

def sigfit_extract(
    counts: pd.DataFrame,
    signatures: pd.DataFrame = None,
    seed: int = 1,
    K_exact: Union[int, None] = None,
    K_range: Union[tuple, None] = None,
    model: str = 'nmf',
    cores: Union[int, None] = None,
    out_dir: Union[str, None] = None,
    **kwargs
    ) -> EngineResult:
    """
    sigfit extraction and attribution.
    ------------------------
    Args:
        * counts: spectra (samples x mutation types)
        * signatures: ignored
        * seed: seed for R and for Stan sampling
        * K_exact: exact number of signatures
        * K_range: (K_min, K_max) to search for the best number of
            signatures; K_max - K_min must be at least 3
        * model: 'nmf' or 'emu'
        * cores: CPU cores for sampling; defaults to min(30, cpus / 2)
        * out_dir: directory for sigfit diagnostic plots

    Returns:
        * EngineResult of kind 'weights' with extracted signatures
    """
    _check_k(K_exact, K_range)
    assert model in ('nmf', 'emu'), "Unable to use {}; specify either nmf or emu model.".format(model)
    if K_range is not None and K_range[1] - K_range[0] < 3:
        raise ValueError("sigfit requires K_max - K_min >= 3; got {}".format(K_range))

    if cores is None:
        cores = int(min(30, (os.cpu_count() or 2) // 2))

    ro, rpackages = _rpy2()
    from rpy2.robjects.vectors import IntVector

    install_r_package('sigfit')
    rng_kind = r_set_seed(seed)
    sigfit = rpackages.importr('sigfit')
    r_counts = _py2r(counts)

    if K_range is not None:
        close = _pdf(out_dir, "sigfit.find.bestK.pdf")
        try:
            extr = _r_call(
                'sigfit',
                sigfit.extract_signatures,
                counts=r_counts,
                nsignatures=IntVector(range(K_range[0], K_range[1] + 1)),
                model=model,
                iter=1000,
                seed=seed,
                cores=cores
            )
        finally:
            close()
        K_best = int(extr.rx2('best')[0])
        print("   * The best number of signatures is {}".format(K_best))
        # Raw extraction over a K range is very large
        del extr
        ro.r('gc()')
    else:
        K_best = K_exact
        print("   * Assuming there are {} signatures active in input spectra".format(K_best))

    close = _pdf(out_dir, "sigfit.precise.extraction.pdf")
    try:
        extr = _r_call(
            'sigfit',
            sigfit.extract_signatures,
            counts=r_counts,
            nsignatures=K_best,
            model=model,
            iter=5000,
            seed=seed,
            cores=cores
        )
    finally:
        close()

    r_signatures = _r_call('sigfit', sigfit.retrieve_pars, extr, par="signatures").rx2('mean')
    extracted = _r2py(r_signatures)
    names = _sigfit_names(extracted.index)
    # sigfit renames SBS96 / SBS192 channels
    extracted.index = names
    extracted.columns = counts.columns

    exposures = _sigfit_fit(sigfit, r_counts, r_signatures, model, seed, cores=cores)
    exposures.index = counts.index
    exposures.columns = names

    return EngineResult('weights', exposures, signatures=extracted, rng_kind=rng_kind, session_info=r_session_info())

# ---------------------------------
# signeR
# ---------------------------------
def signer_extract(
    counts: pd.DataFrame,
    signatures: pd.DataFrame = None,
    seed: int = 1,
    K_exact: Union[int, None] = None,
    K_range: Union[tuple, None] = None,
    out_dir: Union[str, None] = None,
    **kwargs
    ) -> EngineResult:
    """
    signeR extraction and attribution.
    ------------------------
    With K_range, signeR picks the number of signatures by median BIC
    and a BIC boxplot is saved to {out_dir}/Nsig.BIC.plot.pdf.

    Returns:
        * EngineResult of kind 'loadings' with extracted signatures
    """
    _check_k(K_exact, K_range)

    ro, rpackages = _rpy2()
    from rpy2.robjects.vectors import IntVector

    install_r_package('signeR')
    rng_kind = r_set_seed(seed)
    signer_pkg = rpackages.importr('signeR')

    r_counts = ro.r['as.matrix'](_py2r(counts))

    if K_exact is not None:
        out = _r_call('signeR', signer_pkg.signeR, M=r_counts, nsig=K_exact)
        K_best = K_exact
        print("   * Assuming there are {} signatures active in input spectra".format(K_best))
    else:
        out = _r_call('signeR', signer_pkg.signeR, M=r_counts, nlim=IntVector(list(K_range)))
        K_best = int(out.rx2('Nsign')[0])
        print("   * The best number of signatures is {}".format(K_best))
        close = _pdf(out_dir, "Nsig.BIC.plot.pdf")
        try:
            _r_call('signeR', signer_pkg.BICboxplot, out)
        finally:
            close()

    names = ["signeR.{}".format(i) for i in range(1, K_best + 1)]

    # Phat: mutation types x K
    extracted = _r2py(out.rx2('Phat')).T
    extracted.index = names
    extracted.columns = counts.columns

    # Ehat: K x samples
    exposures = _r2py(out.rx2('Ehat')).T
    exposures.index = counts.index
    exposures.columns = names

    return EngineResult('loadings', exposures, signatures=extracted, rng_kind=rng_kind, session_info=r_session_info())

# ---------------------------------
# YAPSA
# ---------------------------------
def yapsa_attribute(
    counts: pd.DataFrame,
    signatures: pd.DataFrame = None,
    seed: int = 1,
    **kwargs
    ) -> EngineResult:
    """
    YAPSA linear combination decomposition (LCD) with known signatures.
    ------------------------
    LCD works in catalog orientation, so both matrices are transposed back
    before the call.

    Returns:
        * EngineResult of kind 'loadings'
    """
    _check_signatures(counts, signatures)
    _, rpackages = _rpy2()

    install_r_package('YAPSA')
    rng_kind = r_set_seed(seed)
    yapsa = rpackages.importr('YAPSA')

    lcd = _r_call(
        'YAPSA',
        yapsa.LCD,
        in_mutation_catalogue_df=_py2r(counts.T.astype(float)),
        in_signatures_df=_py2r(signatures.T.astype(float))
    )

    # LCD: signatures x samples
    exposures = _r2py(lcd).T
    exposures.index = counts.index
    exposures.columns = signatures.index

    return EngineResult('loadings', exposures, rng_kind=rng_kind, session_info=r_session_info())

# ---------------------------------
# EMu
# ---------------------------------
def read_emu_results(
    result_dir: str,
    mutation_types,
    sample_names,
    K: Union[int, None] = None
    ) -> EngineResult:
    """
    Parse EMu output files.
    ------------------------
    Args:
        * result_dir: directory containing {prefix}_{K}_ml_spectra.txt
            (K x mutation types) and {prefix}_{K}_assigned.txt (samples x K)
        * mutation_types: mutation types of the input spectra, in order
        * sample_names: sample names of the input spectra, in order
        * K: number of signatures to pick when several results are present

    Returns:
        * EngineResult of kind 'loadings' with extracted signatures
    """
    tag = "_{}".format(K) if K is not None else ""
    spectra_files = glob.glob(os.path.join(result_dir, "*{}_ml_spectra.txt".format(tag)))
    assigned_files = glob.glob(os.path.join(result_dir, "*{}_assigned.txt".format(tag)))

    if len(spectra_files) != 1 or len(assigned_files) != 1:
        raise FormatError("Expected one EMu signature and one exposure file in {}; found {} and {}".format(
            result_dir, spectra_files, assigned_files))

    mutation_types = list(mutation_types)
    sample_names = list(sample_names)

    extracted = pd.read_csv(spectra_files[0], sep=r'\s+', header=None)
    if extracted.shape[1] != len(mutation_types):
        raise FormatError("EMu signatures have {} mutation types, expected {}".format(
            extracted.shape[1], len(mutation_types)))
    names = ["EMu.{}".format(i) for i in range(1, extracted.shape[0] + 1)]
    extracted.index = names
    extracted.columns = mutation_types

    exposures = pd.read_csv(assigned_files[0], sep=r'\s+', header=None)
    if exposures.shape != (len(sample_names), len(names)):
        raise FormatError("EMu exposures have shape {}, expected {}".format(
            exposures.shape, (len(sample_names), len(names))))
    exposures.index = sample_names
    exposures.columns = names

    return EngineResult('loadings', exposures, signatures=extracted, rng_kind=('EMu',), session_info=python_session_info())

def emu_extract(
    counts: pd.DataFrame,
    signatures: pd.DataFrame = None,
    seed: int = 1,
    K_exact: Union[int, None] = None,
    K_range: Union[tuple, None] = None,
    emu_binary: str = 'EMu',
    opportunity: Union[pd.DataFrame, None] = None,
    out_dir: Union[str, None] = None,
    verbose: bool = False,
    **kwargs
    ) -> EngineResult:
    """
    Run the EMu binary for extraction and attribution.
    ------------------------
    Args:
        * counts: spectra (samples x mutation types)
        * signatures: ignored
        * seed: recorded only; EMu has no seed option
        * K_exact: force this number of signatures; else EMu selects K by BIC
        * K_range: not supported; EMu selects K itself
        * emu_binary: path to the EMu executable
        * opportunity: optional mutational opportunity (samples x mutation types)
        * out_dir: EMu files are kept in {out_dir}/EMu.results; else a
            temporary directory is used

    Returns:
        * EngineResult of kind 'loadings' with extracted signatures
    """
    if K_range is not None:
        raise ValueError("EMu selects the number of signatures itself; use K_exact to force it.")
    if not np.array_equal(counts.values, np.round(counts.values)):
        raise FormatError("EMu requires integer mutation counts")

    if out_dir is None:
        tmp = tempfile.TemporaryDirectory()
        work_dir = tmp.name
    else:
        tmp = None
        work_dir = os.path.join(out_dir, 'EMu.results')
        os.makedirs(work_dir, exist_ok=True)

    try:
        mut_file = os.path.join(work_dir, 'mutations.txt')
        np.savetxt(mut_file, counts.values, fmt='%d', delimiter=' ')

        cmd = [emu_binary, '--mut', mut_file, '--pre', os.path.join(work_dir, 'emu')]
        if opportunity is not None:
            opp_file = os.path.join(work_dir, 'opportunity.txt')
            np.savetxt(opp_file, opportunity.loc[counts.index, counts.columns].values, delimiter=' ')
            cmd += ['--opp', opp_file]
        if K_exact is not None:
            cmd += ['--force', str(K_exact)]

        print("   * Running {}".format(' '.join(cmd)))
        try:
            subprocess.run(cmd, check=True, capture_output=not verbose)
        except (OSError, subprocess.CalledProcessError) as e:
            raise EngineError("EMu failed: {}".format(e), engine='EMu') from e

        return read_emu_results(work_dir, counts.columns, counts.index, K=K_exact)
    finally:
        if tmp is not None:
            tmp.cleanup()

ENGINES = {
    'deconstructSigs': deconstructsigs_attribute,
    'sigfit.attribute': sigfit_attribute,
    'sigfit': sigfit_extract,
    'signeR': signer_extract,
    'YAPSA': yapsa_attribute,
    'EMu': emu_extract,
}
