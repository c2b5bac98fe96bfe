"""Data simulation for LDA models.

This module provides functions for generating synthetic document-term
count matrices with known topics, for testing and validation.
"""

import numpy as np


def simulate_corpus(
    seed: int,
    num_docs: int,
    num_terms: int,
    k: int,
    doc_length: float = 50,
    alpha: np.ndarray = None,
    topic_associated_weight: float = 1.0,
    nontopic_associated_weight: float = 0.01
) -> tuple:
    """
    Simulate a document-term count matrix from the LDA generative model.

    Terms are split into ``k`` equal blocks. Topic ``k`` puts
    ``topic_associated_weight`` on the terms of its block and
    ``nontopic_associated_weight`` on every other term, normalised to a
    probability distribution.

    Parameters
    ----------
    seed : int
        Random seed for reproducibility
    num_docs : int
        Number of documents
    num_terms : int
        Vocabulary size; must be divisible by ``k``
    k : int
        Number of topics
    doc_length : float, default=50
        Mean document length. Lengths are Poisson distributed with a
        minimum of one token.
    alpha : np.ndarray, optional
        Dirichlet prior (k,) of the document-topic proportions. If None,
        defaults to 0.1 uniform
    topic_associated_weight : float, default=1.0
        Unnormalised weight of the terms in a topic's block
    nontopic_associated_weight : float, default=0.01
        Unnormalised weight of all other terms

    Returns
    -------
    tuple: (X, beta, theta)
        X : np.ndarray, shape (num_docs, num_terms)
            Integer count matrix
        beta : np.ndarray, shape (k, num_terms)
            True topic-term probabilities
        theta : np.ndarray, shape (num_docs, k)
            True document-topic proportions

    Examples
    --------
    >>> from tmlda import fit_lda, simulate_corpus
    >>> from tmlda.evaluation import evaluate_result
    >>> X, true_beta, true_theta = simulate_corpus(
    ...     seed=42, num_docs=100, num_terms=30, k=3
    ... )
    >>> result = fit_lda(X, k=3, control={'seed': [42]})
    >>> metrics = evaluate_result(result, true_beta, true_theta)
    """
    if k < 1:
        raise ValueError(f"k must be positive, got {k}")
    if num_terms % k != 0:
        raise ValueError(f"Number of terms ({num_terms}) must be evenly divisible by number of topics ({k})")

    if alpha is None:
        alpha = np.ones(k) / 10
    elif len(alpha) != k:
        raise ValueError(f"Alpha must have length {k} (got {len(alpha)})")

    rng = np.random.default_rng(seed)

    # Block structure: topic k owns terms [k * block, (k + 1) * block)
    block = num_terms // k
    beta = np.full((k, num_terms), float(nontopic_associated_weight))
    for topic in range(k):
        beta[topic, topic * block:(topic + 1) * block] = topic_associated_weight
    beta /= beta.sum(axis=1, keepdims=True)

    theta = rng.dirichlet(alpha, num_docs)
    lengths = np.maximum(rng.poisson(doc_length, num_docs), 1)

    X = np.zeros((num_docs, num_terms), dtype=np.int64)
    for d in range(num_docs):
        word_probs = theta[d] @ beta
        X[d] = rng.multinomial(lengths[d], word_probs / word_probs.sum())

    return X, beta, theta
