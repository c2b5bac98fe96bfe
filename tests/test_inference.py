"""Tests for posterior probabilities and perplexity."""

import pytest
import numpy as np
import pandas as pd

from tmlda import fit_lda, perplexity, posterior, simulate_corpus


@pytest.fixture(scope="module")
def corpus():
    X, beta, theta = simulate_corpus(seed=11, num_docs=25, num_terms=12, k=2, doc_length=20)
    return X


@pytest.fixture(scope="module")
def vem_model(corpus):
    return fit_lda(corpus[:20], k=2, method='VEM', control={'seed': [1], 'em_iter_max': 15})


@pytest.fixture(scope="module")
def gibbs_model(corpus):
    return fit_lda(corpus[:20], k=2, method='Gibbs', control={'seed': [1], 'iter': 15})


def test_posterior_of_training_data(vem_model):
    probs = posterior(vem_model)

    np.testing.assert_allclose(probs['terms'], np.exp(vem_model.beta))
    np.testing.assert_allclose(probs['topics'], vem_model.gamma)


def test_posterior_of_new_documents_vem(corpus, vem_model):
    """Test that new documents get topic proportions under the fixed topics."""
    probs = posterior(vem_model, newdata=corpus[20:], control={'seed': [3]})

    assert probs['topics'].shape == (5, 2)
    np.testing.assert_allclose(probs['topics'].sum(axis=1), 1.0)
    np.testing.assert_allclose(probs['terms'], np.exp(vem_model.beta))


def test_posterior_of_new_documents_gibbs(corpus, gibbs_model):
    probs = posterior(gibbs_model, newdata=corpus[20:], control={'iter': 10, 'seed': [3]})

    assert probs['topics'].shape == (5, 2)
    np.testing.assert_allclose(probs['topics'].sum(axis=1), 1.0)
    np.testing.assert_allclose(probs['terms'], np.exp(gibbs_model.beta))


def test_posterior_matches_terms_by_label():
    """Test that new documents with reordered columns are aligned by term label."""
    X, _, _ = simulate_corpus(seed=5, num_docs=20, num_terms=6, k=2, doc_length=15)
    terms = ['t0', 't1', 't2', 't3', 't4', 't5']
    train = pd.DataFrame(X[:15], columns=terms)
    model = fit_lda(train, k=2, control={'seed': [1], 'em_iter_max': 10})

    new = pd.DataFrame(X[15:], columns=terms)
    shuffled = new[terms[::-1]]

    direct = posterior(model, newdata=new, control={'seed': [2]})
    reordered = posterior(model, newdata=shuffled, control={'seed': [2]})

    np.testing.assert_allclose(direct['topics'], reordered['topics'])


def training_perplexity(model, X):
    """exp(-sum(v * log(theta @ phi)) / n) over the dense training matrix."""
    word_probs = model.gamma @ np.exp(model.beta)
    mask = X > 0
    return np.exp(-np.sum(X[mask] * np.log(word_probs[mask])) / X.sum())


def test_perplexity_of_training_data(corpus, vem_model):
    value = perplexity(vem_model)

    assert value == pytest.approx(training_perplexity(vem_model, corpus[:20]))
    assert value > 1


def test_perplexity_of_training_data_gibbs(corpus, gibbs_model):
    """Test that Gibbs models use theta @ phi, not the collapsed likelihood."""
    value = perplexity(gibbs_model)

    assert value == pytest.approx(training_perplexity(gibbs_model, corpus[:20]))
    assert value != pytest.approx(np.exp(-gibbs_model.log_lik() / gibbs_model.n))
    np.testing.assert_array_equal(gibbs_model.counts.sum(), gibbs_model.n)


def test_perplexity_without_training_counts(vem_model):
    import copy

    stripped = copy.copy(vem_model)
    stripped.counts = None
    with pytest.raises(ValueError, match="no training counts"):
        perplexity(stripped)


def test_perplexity_of_new_documents(corpus, vem_model):
    value = perplexity(vem_model, newdata=corpus[20:], control={'seed': [3]})

    assert np.isfinite(value)
    assert value > 1


def test_perplexity_of_new_documents_gibbs(corpus, gibbs_model):
    value = perplexity(gibbs_model, newdata=corpus[20:], control={'iter': 10, 'seed': [3]})
    assert np.isfinite(value)
    assert value > 1
