"""Tests for the tmlda command line entry point."""

import pandas as pd

from tmlda import simulate_corpus
from tmlda.cli import build_control, main, parse_args


def write_counts(path):
    X, _, _ = simulate_corpus(seed=8, num_docs=20, num_terms=8, k=2, doc_length=20)
    counts = pd.DataFrame(
        X,
        index=[f"doc{i}" for i in range(len(X))],
        columns=[f"term{j}" for j in range(X.shape[1])]
    )
    counts.to_csv(path)
    return counts


def test_build_control_keeps_method_options_only():
    args = parse_args(['in.csv', '--k', '3', '--method', 'Gibbs', '--iter', '50',
                       '--em_tol', '0.01', '--seed', '4',
                       '--terms_csv', 't.csv', '--topics_csv', 'd.csv'])
    control = build_control(args)

    assert control == {'nstart': 1, 'verbose': 0, 'seed': [4], 'iter': 50}


def test_main_vem_writes_outputs(tmp_path):
    input_csv = tmp_path / "counts.csv"
    counts = write_counts(input_csv)
    terms_csv = tmp_path / "out" / "terms.csv"
    topics_csv = tmp_path / "out" / "topics.csv"

    code = main([str(input_csv), '--k', '2', '--seed', '1', '--em_iter_max', '10',
                 '--top_n', '3', '--terms_csv', str(terms_csv), '--topics_csv', str(topics_csv)])

    assert code == 0

    terms = pd.read_csv(terms_csv)
    assert list(terms.columns) == ['topic', 'term', 'beta']
    assert set(terms['topic']) == {0, 1}
    assert (terms.groupby('topic').size() >= 3).all()
    assert set(terms['term']) <= set(counts.columns)

    topics = pd.read_csv(topics_csv, index_col=0)
    assert topics.index.tolist() == counts.index.tolist()
    assert list(topics.columns) == ['topic_0', 'topic_1']


def test_main_gibbs(tmp_path):
    input_csv = tmp_path / "counts.csv"
    write_counts(input_csv)

    code = main([str(input_csv), '--k', '2', '--method', 'Gibbs', '--iter', '5', '--seed', '1',
                 '--terms_csv', str(tmp_path / "terms.csv"),
                 '--topics_csv', str(tmp_path / "topics.csv")])

    assert code == 0
    assert (tmp_path / "topics.csv").exists()
