"""Command line entry point: fit LDA to a CSV document-term matrix."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from tmlda.lda import fit_lda
from tmlda.top_terms import top_n_terms

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fit an LDA topic model to a document-term matrix")
    parser.add_argument('input_csv',
                        help='Document-term counts; first column holds document ids, header holds terms')
    parser.add_argument('--k', type=int, required=True, help='Number of topics')
    parser.add_argument('--method', choices=['VEM', 'Gibbs'], default='VEM',
                        help='Estimation method')
    parser.add_argument('--seed', type=int, nargs='+', help='One seed per start')
    parser.add_argument('--nstart', type=int, default=1, help='Number of starts')
    parser.add_argument('--alpha', type=float, help='Initial alpha (default 50 / k)')
    parser.add_argument('--verbose', type=int, default=0,
                        help='Log progress every N iterations (0 = silent)')
    parser.add_argument('--em_tol', type=float, help='VEM: relative tolerance of the EM loop')
    parser.add_argument('--em_iter_max', type=int, help='VEM: maximum EM iterations')
    parser.add_argument('--iter', type=int, help='Gibbs: number of sweeps after burn-in')
    parser.add_argument('--burnin', type=int, help='Gibbs: number of burn-in sweeps')
    parser.add_argument('--thin', type=int, help='Gibbs: sweeps between checkpoints')
    parser.add_argument('--delta', type=float, help='Gibbs: topic-term prior')
    parser.add_argument('--top_n', type=int, default=10, help='Terms per topic in the terms output')
    parser.add_argument('--terms_csv', required=True, help='Output path for top terms per topic')
    parser.add_argument('--topics_csv', required=True,
                        help='Output path for document-topic proportions')
    parser.add_argument('--log_file', type=str, default=None,
                        help='Optional log file (otherwise stdout)')
    return parser.parse_args(argv)


def setup_logging(log_file: Optional[str]) -> None:
    log_format = '%(asctime)s - %(levelname)s - %(message)s'
    date_format = '%Y-%m-%d %H:%M:%S'

    handlers: List[logging.Handler]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers = [
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)
        ]
    else:
        handlers = [logging.StreamHandler(sys.stdout)]

    logging.basicConfig(level=logging.INFO, format=log_format,
                        datefmt=date_format, handlers=handlers)


def build_control(args: argparse.Namespace) -> Dict:
    control = {'nstart': args.nstart, 'verbose': args.verbose}
    if args.seed is not None:
        control['seed'] = args.seed
    if args.alpha is not None:
        control['alpha'] = args.alpha

    if args.method == 'VEM':
        method_options = ('em_tol', 'em_iter_max')
    else:
        method_options = ('iter', 'burnin', 'thin', 'delta')
    for name in method_options:
        value = getattr(args, name)
        if value is not None:
            control[name] = value
    return control


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file)

    counts = pd.read_csv(args.input_csv, index_col=0)
    logger.info("Loaded %d documents x %d terms from %s", counts.shape[0], counts.shape[1], args.input_csv)

    control = build_control(args)
    result = fit_lda(counts, k=args.k, method=args.method, control=control)
    logger.info("Fitted %s: log-likelihood = %.4f after %d iterations",
                result.method, result.log_lik(), result.iter)

    top_terms = top_n_terms(result.tidy('beta'), args.top_n, wt='beta', by='topic')
    top_terms = top_terms.sort_values(['topic', 'beta'], ascending=[True, False])
    Path(args.terms_csv).parent.mkdir(parents=True, exist_ok=True)
    top_terms.to_csv(args.terms_csv, index=False)

    doc_topics = pd.DataFrame(
        result.gamma,
        index=pd.Index(result.documents, name='document'),
        columns=[f"topic_{k}" for k in range(result.k)]
    )
    Path(args.topics_csv).parent.mkdir(parents=True, exist_ok=True)
    doc_topics.to_csv(args.topics_csv)

    logger.info("Wrote top terms to %s and document topics to %s", args.terms_csv, args.topics_csv)
    return 0


if __name__ == '__main__':
    sys.exit(main())
