"""Posterior probabilities and perplexity for fitted LDA models."""

from typing import Any, Dict, Optional

import numpy as np

from tmlda._core.results import GibbsResult, LDAResult

# Sweeps used to infer topic proportions of new documents under a fixed Gibbs model
POSTERIOR_GIBBS_ITER = 500


def posterior(
    result: LDAResult,
    newdata=None,
    control: Optional[Dict[str, Any]] = None
) -> Dict[str, np.ndarray]:
    """
    Topic-term and document-topic probabilities.

    Parameters
    ----------
    result : LDAResult
        Fitted model
    newdata : array-like, optional
        Count matrix of new documents. Its terms are matched to the model's
        and the topic proportions are inferred with the topic-term
        distributions held fixed.
    control : dict, optional
        Extra settings for the inference on ``newdata``

    Returns
    -------
    dict
        'terms': np.ndarray (k, V), topic-term probabilities
        'topics': np.ndarray (D, k), document-topic probabilities
    """
    if newdata is None:
        return {'terms': np.exp(result.beta), 'topics': result.gamma}

    # Imported here to avoid circular dependency
    from tmlda.lda import fit_lda

    settings = {'estimate_beta': False}
    if isinstance(result, GibbsResult):
        settings['iter'] = POSTERIOR_GIBBS_ITER
    settings.update(control or {})
    settings['best'] = True

    fitted = fit_lda(newdata, model=result, control=settings)
    return {'terms': np.exp(fitted.beta), 'topics': fitted.gamma}


def perplexity(
    result: LDAResult,
    newdata=None,
    control: Optional[Dict[str, Any]] = None
) -> float:
    """
    Perplexity of a fitted model.

    The log-likelihood is
    sum_{d,w} count[d, w] * log(sum_k theta[d, k] * phi[k, w]) and the
    perplexity is exp(-log-likelihood / total count). Without ``newdata``
    theta and phi are the fitted ``gamma`` and ``exp(beta)`` evaluated on the
    training cells; with ``newdata`` theta is refit with phi held fixed.
    """
    if newdata is None:
        if result.counts is None:
            raise ValueError("Result carries no training counts; pass newdata")
        i = result.wordassignments['i']
        j = result.wordassignments['j']
        return _perplexity(result.gamma[i], np.exp(result.beta)[:, j], result.counts)

    from tmlda.lda import _validate_counts, match_terms

    x = match_terms(_validate_counts(newdata), result)
    probs = posterior(result, newdata, control=control)
    return _perplexity(probs['topics'][x.i], probs['terms'][:, x.j], x.v)


def _perplexity(theta_rows: np.ndarray, phi_cols: np.ndarray, counts: np.ndarray) -> float:
    word_probs = np.einsum('dk,kd->d', theta_rows, phi_cols)
    log_likelihood = np.sum(counts * np.log(word_probs))
    return float(np.exp(-log_likelihood / np.sum(counts)))
