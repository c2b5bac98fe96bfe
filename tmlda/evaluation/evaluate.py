"""Core evaluation functions for comparing fitted results to ground truth."""

import time
from typing import Dict, List, Tuple

import numpy as np
import pandas as pd
from scipy.optimize import linear_sum_assignment
from scipy.stats import pearsonr

from tmlda._core.results import LDAResult


def topic_correlation(estimated_beta: np.ndarray, true_beta: np.ndarray) -> np.ndarray:
    """Pearson correlation between every estimated and every true topic."""
    correlation_matrix = np.corrcoef(estimated_beta, true_beta)[:len(estimated_beta), len(estimated_beta):]

    # Undefined correlations (zero-variance rows) count as no relationship
    return np.nan_to_num(correlation_matrix, nan=0.0, posinf=1.0, neginf=-1.0)


def align_to_true_topics(
    estimated_beta: np.ndarray,
    estimated_theta: np.ndarray,
    true_beta: np.ndarray
) -> Tuple[np.ndarray, np.ndarray, List[int]]:
    """
    Permute estimated topics to best match the true topics.

    Uses the Hungarian algorithm on the negated topic correlation matrix.

    Returns
    -------
    tuple: (beta, theta, order)
        Reordered topic-term and document-topic matrices, and the estimated
        topic index placed at each true topic position
    """
    if estimated_beta.shape != true_beta.shape:
        raise ValueError(f"Estimated beta shape {estimated_beta.shape} does not match "
                         f"true beta shape {true_beta.shape}")

    cost_matrix = -topic_correlation(estimated_beta, true_beta)
    row_ind, col_ind = linear_sum_assignment(cost_matrix)

    reorder_mapping = {sim: est for est, sim in zip(row_ind, col_ind)}
    order = [int(reorder_mapping[i]) for i in range(len(reorder_mapping))]

    return estimated_beta[order, :], estimated_theta[:, order], order


def _pearson(estimated: np.ndarray, true: np.ndarray) -> float:
    correlation, _ = pearsonr(estimated.ravel(), true.ravel())
    return float(correlation)


def evaluate_result(
    result: LDAResult,
    true_beta: np.ndarray,
    true_theta: np.ndarray
) -> Dict[str, float]:
    """
    Evaluate a fitted result against ground truth parameters.

    Parameters
    ----------
    result : LDAResult
        Fitted model from fit_lda()
    true_beta : np.ndarray, shape (k, V)
        True topic-term probabilities
    true_theta : np.ndarray, shape (D, k)
        True document-topic proportions

    Returns
    -------
    dict
        - beta_correlation, theta_correlation: Pearson correlation of the
          aligned matrices
        - beta_mae, theta_mae: mean absolute errors
        - beta_mse, theta_mse: mean squared errors
        - num_iterations: iterations run
        - log_likelihood: ``result.log_lik()``

    Examples
    --------
    >>> X, true_beta, true_theta = simulate_corpus(seed=42, num_docs=100, num_terms=30, k=3)
    >>> result = fit_lda(X, k=3, control={'seed': [42]})
    >>> metrics = evaluate_result(result, true_beta, true_theta)
    >>> print(f"Beta correlation: {metrics['beta_correlation']:.3f}")
    """
    if true_theta.shape != result.gamma.shape:
        raise ValueError(f"Estimated theta shape {result.gamma.shape} does not match "
                         f"true theta shape {true_theta.shape}")

    beta, theta, _ = align_to_true_topics(np.exp(result.beta), result.gamma, true_beta)

    return {
        'beta_correlation': _pearson(beta, true_beta),
        'theta_correlation': _pearson(theta, true_theta),
        'beta_mae': float(np.mean(np.abs(beta - true_beta))),
        'theta_mae': float(np.mean(np.abs(theta - true_theta))),
        'beta_mse': float(np.mean((beta - true_beta) ** 2)),
        'theta_mse': float(np.mean((theta - true_theta) ** 2)),
        'num_iterations': result.iter,
        'log_likelihood': result.log_lik(),
    }


def compare_methods(
    x,
    k: int,
    true_beta: np.ndarray,
    true_theta: np.ndarray,
    methods: List[str] = ['VEM', 'Gibbs'],
    **method_kwargs
) -> pd.DataFrame:
    """
    Fit several estimation methods and compare their recovery.

    Parameters
    ----------
    x : array-like, shape (D, V)
        Count matrix
    k : int
        Number of topics
    true_beta, true_theta : np.ndarray
        Ground truth, see ``evaluate_result``
    methods : list of str, default=['VEM', 'Gibbs']
        Methods to compare
    **method_kwargs
        fit_lda arguments per method, prefixed with the lower-cased method
        name, e.g. ``vem_control={'em_tol': 1e-5}`` or
        ``gibbs_control={'iter': 500}``

    Returns
    -------
    pd.DataFrame
        One row per method with columns method, runtime and the metrics of
        ``evaluate_result``

    Examples
    --------
    >>> comparison = compare_methods(
    ...     X, k=3, true_beta=true_beta, true_theta=true_theta,
    ...     gibbs_control={'iter': 500, 'seed': [1]}
    ... )
    >>> print(comparison[['method', 'runtime', 'beta_correlation']])
    """
    # Import here to avoid circular dependency
    from tmlda.lda import fit_lda

    results = []

    for method in methods:
        method_args = {}
        prefix = f"{method.lower()}_"
        for key, value in method_kwargs.items():
            if key.startswith(prefix):
                method_args[key[len(prefix):]] = value

        start_time = time.time()
        result = fit_lda(x, k=k, method=method, **method_args)
        runtime = time.time() - start_time

        if not isinstance(result, LDAResult):
            raise ValueError(f"compare_methods needs a single fitted model for '{method}'; "
                             f"do not set best=False")

        row = {
            'method': result.method,
            'runtime': runtime,
        }
        row.update(evaluate_result(result, true_beta, true_theta))
        results.append(row)

    return pd.DataFrame(results)
