import numpy as np
import pandas as pd
from typing import NamedTuple, Union

from .context import catalog_row_order, catalog_header, infer_scheme
from .errors import FormatError
from .utils import file_loader

CATALOG_TYPES = ('counts', 'density', 'counts.signature', 'density.signature')
REGIONS = ('genome', 'exome', 'transcript', 'genome.transcript', 'unknown')

class CatalogMetadata(NamedTuple):
    """
    Metadata stripped from a Catalog when handing it to an engine.
    """
    catalog_type: str
    region: str
    mutation_types: tuple

class Catalog:
    """
    Mutation catalog: mutation types as rows, samples or signatures
    as columns, together with the catalog type and genomic region.
    """
    def __init__(self, data: pd.DataFrame, catalog_type: str = 'counts', region: str = 'unknown'):
        if catalog_type not in CATALOG_TYPES:
            raise ValueError("Unable to use catalog type {}; choose one of {}.".format(catalog_type, CATALOG_TYPES))
        if region not in REGIONS:
            raise ValueError("Unable to use region {}; choose one of {}.".format(region, REGIONS))
        self.data = data
        self.catalog_type = catalog_type
        self.region = region

    @property
    def scheme(self):
        return infer_scheme(self.data.index)

    @property
    def mutation_types(self) -> list:
        return list(self.data.index)

    @property
    def samples(self) -> list:
        return list(self.data.columns)

    @property
    def shape(self) -> tuple:
        return self.data.shape

    def head_samples(self, n: int = 10):
        """Catalog restricted to the first {n} columns."""
        return Catalog(self.data.iloc[:, :n].copy(), self.catalog_type, self.region)

    def equals(self, other) -> bool:
        return isinstance(other, Catalog) and \
            self.catalog_type == other.catalog_type and \
            self.region == other.region and \
            list(self.data.index) == list(other.data.index) and \
            list(self.data.columns) == list(other.data.columns) and \
            np.array_equal(self.data.values, other.data.values)

    def __eq__(self, other):
        return self.equals(other)

    __hash__ = None

    def __repr__(self):
        return "Catalog(scheme={}, catalog_type={}, region={}, shape={})".format(
            self.scheme, self.catalog_type, self.region, self.shape)

def _check_unique(X: pd.DataFrame, what: str = 'catalog'):
    for axis, idx in (('row', X.index), ('column', X.columns)):
        if idx.has_duplicates:
            dups = list(idx[idx.duplicated()].unique())
            raise FormatError("Duplicate {} identifiers in {}: {}".format(axis, what, dups))

# ---------------------------------
# CatalogAdapter
# ---------------------------------
def to_engine_format(catalog: Catalog):
    """
    Convert a Catalog to the orientation external engines expect.
    ------------------------
    Args:
        * catalog: Catalog (mutation types x samples)

    Returns:
        * pd.DataFrame (samples x mutation types) without metadata
        * CatalogMetadata retained for the inverse conversion
    """
    X = catalog.data
    _check_unique(X)

    matrix = X.T.copy()
    metadata = CatalogMetadata(catalog.catalog_type, catalog.region, tuple(X.index))

    return matrix, metadata

def from_engine_format(
    matrix: Union[pd.DataFrame, np.ndarray],
    mutation_types,
    catalog_type: str = 'counts',
    region: str = 'unknown'
    ) -> Catalog:
    """
    Convert an engine matrix back to a Catalog.
    ------------------------
    Mutation types are attached by position; engines such as sigfit
    rename the channels.

    Args:
        * matrix: samples (or signatures) x mutation types
        * mutation_types: canonical row order for the catalog
        * catalog_type: catalog type of the result
        * region: genomic region of the result

    Returns:
        * Catalog (mutation types x samples)
    """
    if not isinstance(matrix, pd.DataFrame):
        matrix = pd.DataFrame(matrix)

    mutation_types = list(mutation_types)
    if matrix.shape[1] != len(mutation_types):
        raise FormatError("Engine matrix has {} columns, expected {} mutation types".format(
            matrix.shape[1], len(mutation_types)))

    X = pd.DataFrame(matrix.values.T.copy(), index=pd.Index(mutation_types), columns=matrix.index.copy())
    _check_unique(X)

    return Catalog(X, catalog_type=catalog_type, region=region)

# ---------------------------------
# Catalog IO
# ---------------------------------
def _detect_layout(columns) -> Union[str, None]:
    for scheme, header in catalog_header.items():
        if list(columns[:len(header)]) == header:
            return scheme
    return None

def _mutation_type_labels(df: pd.DataFrame, layout: str) -> list:
    h = df[catalog_header[layout]].astype(str)
    if layout == 'SBS96':
        return list(h['Trinucleotide'] + h['Mutation type'].str[-1])
    elif layout == 'DBS78':
        return list(h['Ref'] + h['Var'])
    else:
        return list(h.apply(lambda row: ':'.join(row), axis=1))

def _mutation_type_columns(mutation_types, scheme: str) -> pd.DataFrame:
    if scheme == 'SBS96':
        return pd.DataFrame({
            'Mutation type': [m[1] + '>' + m[3] for m in mutation_types],
            'Trinucleotide': [m[:3] for m in mutation_types]
        })
    elif scheme == 'DBS78':
        return pd.DataFrame({'Ref': [m[:2] for m in mutation_types], 'Var': [m[2:] for m in mutation_types]})
    else:
        return pd.DataFrame([m.split(':') for m in mutation_types], columns=catalog_header['ID83'])

def read_catalog(
    path: str,
    catalog_type: str = 'counts',
    region: str = 'unknown',
    strict: bool = True
    ) -> Catalog:
    """
    Read an ICAMS-style catalog file.
    ------------------------
    Args:
        * path: .csv catalog; SBS96, DBS78 and ID83 layouts are recognized
            from the header, anything else is read with mutation types in
            the first column (.tsv and .parquet are also accepted)
        * catalog_type: 'counts', 'density', 'counts.signature' or 'density.signature'
        * region: genomic region of the catalog
        * strict: if True, rows must already be in canonical order; else
            rows are reordered to it

    Returns:
        * Catalog
    """
    layout = None

    if path.endswith('.csv'):
        header = list(pd.read_csv(path, header=None, nrows=1, dtype=str).iloc[0].astype(str))
        df = pd.read_csv(path)
        layout = _detect_layout(header)

        if layout is not None:
            n = len(catalog_header[layout])
            values = df.iloc[:, n:].copy()
            values.columns = header[n:]
            values.index = _mutation_type_labels(df, layout)
        else:
            values = df.set_index(df.columns[0])
            values.columns = header[1:]
            values.index.name = None
    else:
        values = file_loader(path)

    _check_unique(values, path)

    try:
        values = values.apply(pd.to_numeric)
    except (ValueError, TypeError) as e:
        raise FormatError("Non-numeric entries in {}: {}".format(path, e))
    if values.isnull().values.any():
        raise FormatError("Missing entries in {}".format(path))
    if (values.values < 0).any():
        raise FormatError("Negative entries in {}".format(path))

    scheme = infer_scheme(values.index)
    if layout is not None and scheme != layout:
        raise FormatError("Rows of {} do not match the {} mutation types".format(path, layout))

    if scheme is not None:
        order = catalog_row_order[scheme]
        if list(values.index) != order:
            if strict:
                raise FormatError("Rows of {} are not in canonical {} order".format(path, scheme))
            values = values.loc[order]

    return Catalog(values, catalog_type=catalog_type, region=region)

def write_catalog(catalog: Catalog, path: str):
    """
    Write a catalog to {path} in the ICAMS layout of its scheme.
    """
    scheme = catalog.scheme
    if scheme is None:
        catalog.data.to_csv(path)
        return

    X = catalog.data.loc[catalog_row_order[scheme]]
    out = pd.concat([
        _mutation_type_columns(X.index, scheme),
        X.reset_index(drop=True)
    ], axis=1)
    out.to_csv(path, index=False)
