import itertools

# Substitution classes in ICAMS order
sbs_changes = ['CA', 'CG', 'CT', 'TA', 'TC', 'TG']

# 96 SNV: trinucleotide + alt base, e.g. ACAA == A[C>A]A
context96 = [l + r[0] + rr + r[1] for r, l, rr in itertools.product(sbs_changes, 'ACGT', 'ACGT')]

# 78 DBS: ref dinucleotide + alt dinucleotide, e.g. ACCA == AC>CA
context78 = ['ACCA', 'ACCG', 'ACCT', 'ACGA', 'ACGG', 'ACGT', 'ACTA', 'ACTG', 'ACTT', 'ATCA',
             'ATCC', 'ATCG', 'ATGA', 'ATGC', 'ATTA', 'CCAA', 'CCAG', 'CCAT', 'CCGA', 'CCGG',
             'CCGT', 'CCTA', 'CCTG', 'CCTT', 'CGAT', 'CGGC', 'CGGT', 'CGTA', 'CGTC', 'CGTT',
             'CTAA', 'CTAC', 'CTAG', 'CTGA', 'CTGC', 'CTGG', 'CTTA', 'CTTC', 'CTTG', 'GCAA',
             'GCAG', 'GCAT', 'GCCA', 'GCCG', 'GCTA', 'TAAT', 'TACG', 'TACT', 'TAGC', 'TAGG',
             'TAGT', 'TCAA', 'TCAG', 'TCAT', 'TCCA', 'TCCG', 'TCCT', 'TCGA', 'TCGG', 'TCGT',
             'TGAA', 'TGAC', 'TGAT', 'TGCA', 'TGCC', 'TGCT', 'TGGA', 'TGGC', 'TGGT', 'TTAA',
             'TTAC', 'TTAG', 'TTCA', 'TTCC', 'TTCG', 'TTGA', 'TTGC', 'TTGG']

# 83 ID: TYPE:SUBTYPE:SIZE:REPEAT_MH
_repeats = ['0', '1', '2', '3', '4', '5+']
_sizes = ['2', '3', '4', '5+']

context83 = \
    [':'.join(x) for x in itertools.product(['DEL'], 'CT', ['1'], _repeats)] + \
    [':'.join(x) for x in itertools.product(['INS'], 'CT', ['1'], _repeats)] + \
    [':'.join(x) for x in itertools.product(['DEL'], ['repeats'], _sizes, _repeats)] + \
    [':'.join(x) for x in itertools.product(['INS'], ['repeats'], _sizes, _repeats)] + \
    ['DEL:MH:2:1',
     'DEL:MH:3:1', 'DEL:MH:3:2',
     'DEL:MH:4:1', 'DEL:MH:4:2', 'DEL:MH:4:3',
     'DEL:MH:5+:1', 'DEL:MH:5+:2', 'DEL:MH:5+:3', 'DEL:MH:5+:4', 'DEL:MH:5+:5+']

catalog_row_order = {
    'SBS96': context96,
    'DBS78': context78,
    'ID83': context83,
}

# Header columns that describe the mutation type in each ICAMS file layout
catalog_header = {
    'SBS96': ['Mutation type', 'Trinucleotide'],
    'DBS78': ['Ref', 'Var'],
    'ID83': ['Type', 'Subtype', 'Indel_size', 'Repeat_MH_size'],
}

def infer_scheme(mutation_types) -> str:
    """
    Name of the classification scheme whose channels are exactly
    {mutation_types} (in any order), or None.
    """
    mutation_types = set(mutation_types)
    for scheme, order in catalog_row_order.items():
        if len(order) == len(mutation_types) and mutation_types == set(order):
            return scheme
    return None
