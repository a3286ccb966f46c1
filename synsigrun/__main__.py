"""
For argument parsing and CLI interface
"""
import argparse
from argparse import RawTextHelpFormatter

from .synsigrun import run_attribution
from .synsigrun import run_extraction
from .synsigrun import convert_emu_results

ATTRIBUTION_ENGINES = ['deconstructSigs', 'sigfit.attribute', 'YAPSA']
EXTRACTION_ENGINES = ['sigfit', 'signeR', 'EMu']

def main():
    parser = argparse.ArgumentParser(description='Run mutational signature engines on ICAMS catalogs.', formatter_class=RawTextHelpFormatter)
    parser.add_argument(
        'engine',
        help="Engine to run.\n"
             "  * attribution (requires {--gt_sigs}): deconstructSigs, sigfit.attribute, YAPSA\n"
             "  * extraction (requires {--K_exact} or {--K_range}; EMu selects K itself): sigfit, signeR, EMu\n"
             "  * EMu.convert: convert a finished EMu run; {input} is the EMu result directory",
        choices=ATTRIBUTION_ENGINES + EXTRACTION_ENGINES + ['EMu.convert']
    )
    parser.add_argument(
        'input',
        help="Input spectra catalog (mutation types x samples) in ICAMS .csv format"
    )
    parser.add_argument(
        '-o','--out_dir',
        help="Directory to save outputs; must not already hold files unless {--overwrite} (default: 'synsigrun_out')",
        default="synsigrun_out"
    )
    parser.add_argument(
        '--gt_sigs',
        help="Signature catalog (mutation types x signatures). Required for attribution;\n"
             "for extraction, extracted signatures are compared to it (default: None)",
        default=None
    )
    parser.add_argument(
        '--catalog',
        help="Spectra catalog EMu was run on. Required for EMu.convert (default: None)",
        default=None
    )
    parser.add_argument(
        '--seed',
        help="Seed for the engine's random number generator (default: 1)",
        default=1,
        type=int
    )
    k_group = parser.add_mutually_exclusive_group()
    k_group.add_argument(
        '--K_exact',
        help="Exact number of signatures to extract (default: None)",
        default=None,
        type=int
    )
    k_group.add_argument(
        '--K_range',
        help="Range of signature numbers to search, K_MIN K_MAX (default: None)",
        nargs=2,
        default=None,
        type=int
    )
    parser.add_argument(
        '--model',
        help="sigfit model (default: 'nmf')",
        default='nmf',
        choices=['nmf','emu']
    )
    parser.add_argument(
        '--cores',
        help="CPU cores for sigfit. Defaults to min(30, cpus / 2)",
        default=None,
        type=int
    )
    parser.add_argument(
        '--emu_binary',
        help="Path to EMu executable (default: 'EMu')",
        default='EMu'
    )
    parser.add_argument(
        '--test_only',
        help="Only analyse the first 10 samples",
        default=False,
        action='store_true'
    )
    parser.add_argument(
        '--overwrite',
        help="Write into a populated output directory",
        default=False,
        action='store_true'
    )
    parser.add_argument(
        '--plot',
        help="Save report plots",
        default=False,
        action='store_true'
    )
    parser.add_argument(
        '--verbose',
        help="Verbosity",
        default=False,
        action='store_true'
    )

    args = parser.parse_args()

    if args.engine in ATTRIBUTION_ENGINES and args.gt_sigs is None:
        parser.error("{} requires --gt_sigs".format(args.engine))
    if args.engine in ('sigfit', 'signeR') and args.K_exact is None and args.K_range is None:
        parser.error("{} requires --K_exact or --K_range".format(args.engine))
    if args.engine == 'EMu.convert' and args.catalog is None:
        parser.error("EMu.convert requires --catalog")

    print("---------------------------------------------------------")
    print("-------------------- S Y N S I G R U N ------------------")
    print("---------------------------------------------------------")

    if args.engine in ATTRIBUTION_ENGINES:
        engine_kwargs = {'model': args.model} if args.engine == 'sigfit.attribute' else {}
        run_attribution(
            args.engine,
            args.input,
            args.gt_sigs,
            args.out_dir,
            seed=args.seed,
            test_only=args.test_only,
            overwrite=args.overwrite,
            plot_results=args.plot,
            verbose=args.verbose,
            **engine_kwargs
        )
    elif args.engine == 'EMu.convert':
        convert_emu_results(
            args.input,
            args.catalog,
            args.out_dir,
            gt_sigs_file=args.gt_sigs,
            K=args.K_exact,
            overwrite=args.overwrite,
            plot_results=args.plot
        )
    else:
        if args.engine == 'sigfit':
            engine_kwargs = {'model': args.model, 'cores': args.cores}
        elif args.engine == 'EMu':
            engine_kwargs = {'emu_binary': args.emu_binary}
        else:
            engine_kwargs = {}
        run_extraction(
            args.engine,
            args.input,
            args.out_dir,
            seed=args.seed,
            K_exact=args.K_exact,
            K_range=tuple(args.K_range) if args.K_range is not None else None,
            gt_sigs_file=args.gt_sigs,
            test_only=args.test_only,
            overwrite=args.overwrite,
            plot_results=args.plot,
            verbose=args.verbose,
            **engine_kwargs
        )

if __name__ == "__main__":
    main()
