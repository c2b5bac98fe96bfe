"""Tests for the evaluation API."""

import pytest
import numpy as np
import pandas as pd

from tmlda import fit_lda, simulate_corpus
from tmlda.evaluation import align_to_true_topics, compare_methods, evaluate_result

EXPECTED_METRICS = [
    'beta_correlation', 'theta_correlation',
    'beta_mae', 'theta_mae',
    'beta_mse', 'theta_mse',
    'num_iterations', 'log_likelihood',
]


def test_evaluate_vem_basic():
    """Test VEM evaluation produces expected metrics."""
    X, true_beta, true_theta = simulate_corpus(seed=42, num_docs=40, num_terms=12, k=2, doc_length=40)

    result = fit_lda(X, k=2, method='VEM', control={'seed': [1], 'em_iter_max': 50})
    metrics = evaluate_result(result, true_beta, true_theta)

    for key in EXPECTED_METRICS:
        assert key in metrics

    assert isinstance(metrics['beta_correlation'], float)
    assert isinstance(metrics['theta_correlation'], float)
    assert metrics['beta_mse'] >= 0
    assert metrics['theta_mae'] >= 0
    assert metrics['num_iterations'] > 0

    # Well separated block topics are recovered
    assert metrics['beta_correlation'] > 0.7


def test_evaluate_gibbs_basic():
    """Test Gibbs evaluation produces expected metrics."""
    X, true_beta, true_theta = simulate_corpus(seed=43, num_docs=30, num_terms=12, k=2, doc_length=20)

    result = fit_lda(X, k=2, method='Gibbs', control={'seed': [1], 'iter': 30, 'alpha': 0.1})
    metrics = evaluate_result(result, true_beta, true_theta)

    for key in EXPECTED_METRICS:
        assert key in metrics
    assert metrics['num_iterations'] == 30
    assert -1 <= metrics['beta_correlation'] <= 1


def test_evaluate_shape_mismatch():
    X, true_beta, true_theta = simulate_corpus(seed=1, num_docs=20, num_terms=12, k=2)
    result = fit_lda(X, k=2, control={'seed': [1], 'em_iter_max': 3})

    with pytest.raises(ValueError, match="does not match"):
        evaluate_result(result, true_beta, true_theta[:10])
    with pytest.raises(ValueError, match="does not match"):
        evaluate_result(result, np.vstack([true_beta, true_beta]), true_theta)


def test_alignment_recovers_permutation():
    """Test that permuted topics are mapped back to their true positions."""
    true_beta = np.array([
        [0.7, 0.1, 0.1, 0.1],
        [0.1, 0.7, 0.1, 0.1],
        [0.1, 0.1, 0.1, 0.7],
    ])
    theta = np.array([[0.6, 0.3, 0.1], [0.2, 0.2, 0.6]])
    order = [2, 0, 1]

    beta, aligned_theta, mapping = align_to_true_topics(true_beta[order], theta[:, order], true_beta)

    np.testing.assert_allclose(beta, true_beta)
    np.testing.assert_allclose(aligned_theta, theta)
    assert mapping == [1, 2, 0]


def test_compare_methods():
    """Test method comparison returns a DataFrame with one row per method."""
    X, true_beta, true_theta = simulate_corpus(seed=44, num_docs=30, num_terms=12, k=2, doc_length=20)

    comparison = compare_methods(
        X, k=2,
        true_beta=true_beta,
        true_theta=true_theta,
        methods=['VEM', 'Gibbs'],
        vem_control={'seed': [1], 'em_iter_max': 20},
        gibbs_control={'seed': [1], 'iter': 10},
    )

    assert isinstance(comparison, pd.DataFrame)
    assert len(comparison) == 2
    assert comparison['method'].tolist() == ['VEM', 'Gibbs']
    assert (comparison['runtime'] > 0).all()
    assert 'beta_correlation' in comparison.columns


def test_compare_methods_rejects_multiple_fits():
    X, true_beta, true_theta = simulate_corpus(seed=44, num_docs=20, num_terms=12, k=2)
    with pytest.raises(ValueError, match="single fitted model"):
        compare_methods(X, 2, true_beta, true_theta, methods=['VEM'],
                        vem_control={'seed': [1, 2], 'nstart': 2, 'best': False, 'em_iter_max': 2})
