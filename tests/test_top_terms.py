"""Tests for top_n_terms."""

import logging

import pytest
import numpy as np
import pandas as pd

from tmlda import top_n_terms


@pytest.fixture
def table():
    return pd.DataFrame({
        'term': ['a', 'b', 'c', 'd', 'e'],
        'beta': [0.5, 0.2, 0.2, 0.1, 0.0],
    })


def test_top_rows_keep_ties(table):
    """Test that ties at the boundary are all kept."""
    selected = top_n_terms(table, 2, wt='beta')
    assert selected['term'].tolist() == ['a', 'b', 'c']


def test_top_one(table):
    assert top_n_terms(table, 1, wt='beta')['term'].tolist() == ['a']


def test_negative_n_selects_bottom_rows(table):
    assert top_n_terms(table, -2, wt='beta')['term'].tolist() == ['d', 'e']


def test_n_larger_than_rows_keeps_everything(table):
    assert len(top_n_terms(table, 10, wt='beta')) == 5


def test_row_order_is_preserved():
    table = pd.DataFrame({'term': ['x', 'y', 'z'], 'beta': [0.1, 0.9, 0.5]})
    assert top_n_terms(table, 2, wt='beta')['term'].tolist() == ['y', 'z']


def test_default_weight_is_last_column(table, caplog):
    with caplog.at_level(logging.INFO, logger='tmlda.top_terms'):
        selected = top_n_terms(table, 1)

    assert selected['term'].tolist() == ['a']
    assert "Selecting by beta" in caplog.text


def test_weights_as_array(table):
    selected = top_n_terms(table, 2, wt=np.array([1, 5, 3, 2, 0]))
    assert selected['term'].tolist() == ['b', 'c']


def test_grouped_selection():
    """Test ranking within groups."""
    table = pd.DataFrame({
        'topic': [0, 0, 0, 1, 1, 1],
        'term': ['a', 'b', 'c', 'a', 'b', 'c'],
        'beta': [0.6, 0.3, 0.1, 0.1, 0.2, 0.7],
    })

    selected = top_n_terms(table, 1, wt='beta', by='topic')

    assert list(zip(selected['topic'], selected['term'])) == [(0, 'a'), (1, 'c')]


def test_grouped_default_weight_skips_group_column(caplog):
    table = pd.DataFrame({'beta': [0.6, 0.4, 0.1, 0.9], 'topic': [0, 0, 1, 1]})
    with caplog.at_level(logging.INFO, logger='tmlda.top_terms'):
        selected = top_n_terms(table, 1, by='topic')

    assert selected['beta'].tolist() == [0.6, 0.9]
    assert "Selecting by beta" in caplog.text


def test_missing_weights_are_dropped():
    table = pd.DataFrame({'term': ['a', 'b', 'c'], 'beta': [0.5, np.nan, 0.1]})
    assert top_n_terms(table, 3, wt='beta')['term'].tolist() == ['a', 'c']


@pytest.mark.parametrize("n", [[1, 2], '2', None, True])
def test_n_must_be_a_single_number(table, n):
    with pytest.raises(ValueError, match="single number"):
        top_n_terms(table, n, wt='beta')


def test_unknown_columns(table):
    with pytest.raises(ValueError, match="not found"):
        top_n_terms(table, 1, wt='gamma')
    with pytest.raises(ValueError, match="Grouping columns not found"):
        top_n_terms(table, 1, wt='beta', by='topic')


def test_tidy_beta_top_terms_per_topic():
    """Test the typical pipeline: tidy topic-term table, top terms per topic."""
    from tmlda import fit_lda, simulate_corpus

    X, _, _ = simulate_corpus(seed=3, num_docs=20, num_terms=8, k=2, doc_length=20)
    result = fit_lda(X, k=2, control={'seed': [1], 'em_iter_max': 5})

    selected = top_n_terms(result.tidy('beta'), 3, wt='beta', by='topic')

    assert set(selected['topic']) == {0, 1}
    assert (selected.groupby('topic').size() >= 3).all()
