# Modules
from . import plotting as pl
from . import engines as engines

# Independent imports
from .catalog import Catalog, read_catalog, write_catalog
from .catalog import to_engine_format, from_engine_format
from .exposure import rescale, normalize_then_rescale, rescale_exposures
from .engines import EngineResult

from .synsigrun import run_attribution
from .synsigrun import run_extraction
from .synsigrun import run_deconstructsigs_attribute_only
from .synsigrun import run_sigfit_attribute_only
from .synsigrun import run_yapsa_attribute_only
from .synsigrun import run_sigfit
from .synsigrun import run_signer
from .synsigrun import run_emu
from .synsigrun import convert_emu_results

__version__ = '0.1.0'
