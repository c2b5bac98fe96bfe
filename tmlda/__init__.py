"""Latent Dirichlet Allocation topic models for document-term matrices.

Fits LDA by variational EM (fast, deterministic given a seed) or by
collapsed Gibbs sampling (with burn-in, thinning and checkpoints).

Public API
----------
fit_lda : function
    Fit an LDA model to a document-term count matrix

VEMControl, GibbsControl : class
    Estimation settings for each method

LDAResult, VEMResult, GibbsResult, GibbsList : class
    Fitted models and the checkpoint list of one Gibbs start

posterior, perplexity : function
    Topic probabilities and perplexity, also for new documents

top_n_terms : function
    Keep the top (or bottom) rows of a table by a weight column

SimpleTripletMatrix, document_term_matrix : class, function
    Sparse document-term matrices

simulate_corpus : function
    Generate synthetic corpora with known topics

Examples
--------
>>> from tmlda import fit_lda, document_term_matrix
>>> dtm = document_term_matrix([['apple', 'pear', 'apple'], ['car', 'bus'], ['pear', 'bus']])
>>> result = fit_lda(dtm, k=2, control={'seed': [1]})
>>> result.get_terms(2)

With simulation:

>>> from tmlda import fit_lda, simulate_corpus
>>> X, _, _ = simulate_corpus(seed=42, num_docs=100, num_terms=30, k=3)
>>> result = fit_lda(X, k=3, method='Gibbs', control={'iter': 500, 'seed': [42]})
"""

from tmlda.lda import fit_lda, fit_lda_gibbs, fit_lda_vem, match_terms
from tmlda._core.controls import GibbsControl, TopicModelControl, VEMControl
from tmlda._core.inference import perplexity, posterior
from tmlda._core.results import GibbsList, GibbsResult, LDAResult, VEMResult
from tmlda._core.triplet import SimpleTripletMatrix, as_triplet_matrix, document_term_matrix
from tmlda.simulation import simulate_corpus
from tmlda.top_terms import top_n_terms

__all__ = [
    'fit_lda',
    'fit_lda_vem',
    'fit_lda_gibbs',
    'match_terms',
    'TopicModelControl',
    'VEMControl',
    'GibbsControl',
    'LDAResult',
    'VEMResult',
    'GibbsResult',
    'GibbsList',
    'posterior',
    'perplexity',
    'SimpleTripletMatrix',
    'as_triplet_matrix',
    'document_term_matrix',
    'simulate_corpus',
    'top_n_terms',
]

__version__ = '0.1.0'
