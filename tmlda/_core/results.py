"""Result classes for fitted LDA models."""

import numpy as np
import pandas as pd
from typing import Optional, Dict, Any, List, Union

from tmlda._core.controls import TopicModelControl


class LDAResult:
    """
    Encapsulates one fitted LDA model.

    Attributes
    ----------
    k : int
        Number of topics
    dim : tuple of int
        (number of documents, number of terms)
    alpha : float
        Symmetric Dirichlet parameter of the document-topic distributions
    beta : np.ndarray, shape (k, V)
        Logarithm of the topic-term probabilities. exp(beta[k]) sums to 1.
    gamma : np.ndarray, shape (D, k)
        Document-topic proportions. Rows sum to 1.
    wordassignments : SimpleTripletMatrix-like dict
        Most likely topic for every non-zero document-term cell, as
        ``{'i': rows, 'j': columns, 'v': topics}``
    loglikelihood : float or np.ndarray
        VEM: variational bound per document. Gibbs: collapsed log-likelihood.
    iter : int
        Number of iterations run
    log_likelihoods : list of float
        Log-likelihoods recorded every ``control.keep`` iterations
    n : int
        Total token count of the fitted matrix
    documents : list
        Document labels (length D)
    terms : list
        Term labels (length V)
    control : TopicModelControl
        Settings used for this fit, with its own seed
    call : dict
        Arguments of the fit_lda call that produced the result
    counts : np.ndarray, optional
        Count of every document-term cell of the fitted matrix, aligned with
        ``wordassignments``
    """

    method = None

    def __init__(
        self,
        k: int,
        alpha: float,
        beta: np.ndarray,
        gamma: np.ndarray,
        wordassignments: Dict[str, np.ndarray],
        loglikelihood: Union[float, np.ndarray],
        iter: int,
        n: int,
        control: TopicModelControl,
        documents: Optional[List] = None,
        terms: Optional[List] = None,
        log_likelihoods: Optional[List[float]] = None,
        call: Optional[Dict[str, Any]] = None,
        counts: Optional[np.ndarray] = None
    ):
        # Validate inputs
        if beta.ndim != 2:
            raise ValueError(f"beta must be 2D, got shape {beta.shape}")
        if gamma.ndim != 2:
            raise ValueError(f"gamma must be 2D, got shape {gamma.shape}")

        k_beta, V = beta.shape
        D, k_gamma = gamma.shape
        if not (k == k_beta == k_gamma):
            raise ValueError(f"Inconsistent k dimensions: k={k}, beta={k_beta}, gamma={k_gamma}")

        self.k = k
        self.dim = (D, V)
        self.alpha = alpha
        self.beta = beta
        self.gamma = gamma
        self.wordassignments = wordassignments
        self.loglikelihood = loglikelihood
        self.iter = iter
        self.n = n
        self.control = control
        self.log_likelihoods = log_likelihoods if log_likelihoods is not None else []
        self.call = call if call is not None else {}
        self.counts = counts

        # Default to integer indices if labels are missing
        self.has_term_labels = terms is not None
        self.documents = documents if documents is not None else list(range(D))
        self.terms = terms if terms is not None else list(range(V))
        if len(self.documents) != D:
            raise ValueError(f"documents length ({len(self.documents)}) must match D ({D})")
        if len(self.terms) != V:
            raise ValueError(f"terms length ({len(self.terms)}) must match V ({V})")

    @property
    def num_documents(self) -> int:
        return self.dim[0]

    @property
    def num_terms(self) -> int:
        return self.dim[1]

    def log_lik(self) -> float:
        """Log-likelihood of the fit; used to pick the best of several starts."""
        return float(np.sum(self.loglikelihood))

    def degrees_of_freedom(self) -> int:
        """Number of free parameters: k * (V - 1) topic-term entries, plus alpha when estimated."""
        df = self.k * (self.num_terms - 1)
        if getattr(self.control, 'estimate_alpha', False):
            df += 1
        return df

    def get_terms(self, n: int = 10) -> Dict[int, List]:
        """
        Most probable terms of every topic.

        Parameters
        ----------
        n : int, default=10
            Number of terms per topic (capped at V)

        Returns
        -------
        dict
            Topic index -> list of term labels, most probable first
        """
        return {
            topic: [term for term, _ in items]
            for topic, items in self.get_top_terms_per_topic(n=n).items()
        }

    def get_topics(self, n: int = 1) -> np.ndarray:
        """
        Most likely topics of every document.

        Returns
        -------
        np.ndarray, shape (D,) if n == 1 else (D, n)
            Topic indices ordered by decreasing proportion
        """
        order = np.argsort(-self.gamma, axis=1, kind='stable')[:, :n]
        return order[:, 0] if n == 1 else order

    def get_top_terms_per_topic(
        self,
        n: int = 10,
        use_names: bool = True
    ) -> Dict[int, List[tuple]]:
        """
        Get the top N terms most associated with each topic.

        Terms are ranked by their probability exp(beta[k, w]).

        Parameters
        ----------
        n : int, default=10
            Number of top terms to return per topic
        use_names : bool, default=True
            If True, return term labels; if False, return term indices

        Returns
        -------
        dict
            Topic index -> list of (term, probability) tuples, highest first

        Examples
        --------
        >>> result = fit_lda(x, k=3)
        >>> for topic, items in result.get_top_terms_per_topic(n=5).items():
        ...     print(topic, [term for term, _ in items])
        """
        topic_probs_all = np.exp(self.beta)
        results = {}
        for k in range(self.k):
            topic_probs = topic_probs_all[k]
            top_indices = np.argsort(-topic_probs, kind='stable')[:n]
            if use_names:
                results[k] = [(self.terms[i], float(topic_probs[i])) for i in top_indices]
            else:
                results[k] = [(int(i), float(topic_probs[i])) for i in top_indices]
        return results

    def get_term_topic_loadings(
        self,
        term: Optional[Union[str, int]] = None,
        term_idx: Optional[int] = None
    ) -> np.ndarray:
        """
        Probability of one term under every topic.

        Parameters
        ----------
        term : str or int, optional
            Term label (must exist in terms)
        term_idx : int, optional
            Column index of the term (0-based)

        Returns
        -------
        np.ndarray, shape (k,)
            Entry [k] is exp(beta[k, term])

        Raises
        ------
        ValueError
            If neither or both parameters are provided, or the term is unknown
        """
        if term is None and term_idx is None:
            raise ValueError("Must provide either term or term_idx")
        if term is not None and term_idx is not None:
            raise ValueError("Cannot provide both term and term_idx")

        if term is not None:
            try:
                idx = self.terms.index(term)
            except ValueError:
                raise ValueError(f"Term '{term}' not found in terms")
        else:
            if term_idx < 0 or term_idx >= self.num_terms:
                raise ValueError(f"term_idx {term_idx} out of range [0, {self.num_terms})")
            idx = term_idx

        return np.exp(self.beta[:, idx])

    def tidy(self, matrix: str = 'beta') -> pd.DataFrame:
        """
        One row per topic-term or document-topic pair.

        Parameters
        ----------
        matrix : {'beta', 'gamma'}, default='beta'
            'beta' gives columns (topic, term, beta) with beta the
            probability exp(beta[k, w]); 'gamma' gives (document, topic, gamma).

        Returns
        -------
        pd.DataFrame
        """
        if matrix == 'beta':
            return pd.DataFrame({
                'topic': np.repeat(np.arange(self.k), self.num_terms),
                'term': np.tile(np.asarray(self.terms, dtype=object), self.k),
                'beta': np.exp(self.beta).ravel(),
            })
        if matrix == 'gamma':
            return pd.DataFrame({
                'document': np.repeat(np.asarray(self.documents, dtype=object), self.k),
                'topic': np.tile(np.arange(self.k), self.num_documents),
                'gamma': self.gamma.ravel(),
            })
        raise ValueError(f"matrix must be 'beta' or 'gamma', got '{matrix}'")

    def summary(self) -> str:
        """
        Generate a human-readable summary of the fitted model.

        Returns
        -------
        str
            Summary text
        """
        lines = []
        lines.append("=" * 60)
        lines.append("LDA Model Results Summary")
        lines.append("=" * 60)
        lines.append("")

        lines.append(f"Method: {self.method}")
        lines.append(f"Number of documents: {self.num_documents}")
        lines.append(f"Number of terms: {self.num_terms}")
        lines.append(f"Number of topics: {self.k}")
        lines.append(f"Number of tokens: {self.n}")
        lines.append(f"Alpha: {self.alpha:.4f}")
        lines.append("")

        lines.append("Fit Information:")
        lines.append(f"  Iterations: {self.iter}")
        lines.append(f"  Log-likelihood: {self.log_lik():.2f}")
        lines.append("")

        lines.append("Topic Prevalence (mean gamma across documents):")
        topic_prevalence = self.gamma.mean(axis=0)
        top_terms = self.get_terms(n=5)
        for k in range(self.k):
            terms = ", ".join(str(t) for t in top_terms[k])
            lines.append(f"  Topic {k}: {topic_prevalence[k]:.3f}  [{terms}]")
        lines.append("")

        lines.append("=" * 60)

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(k={self.k}, "
                f"num_documents={self.num_documents}, "
                f"num_terms={self.num_terms}, "
                f"log_lik={self.log_lik():.2f})")

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert result to dictionary for serialization.

        Returns
        -------
        dict
            Dictionary containing all result data
        """
        return {
            'method': self.method,
            'k': self.k,
            'dim': self.dim,
            'alpha': self.alpha,
            'beta': self.beta,
            'gamma': self.gamma,
            'wordassignments': self.wordassignments,
            'loglikelihood': self.loglikelihood,
            'iter': self.iter,
            'log_likelihoods': self.log_likelihoods,
            'n': self.n,
            'documents': self.documents,
            'terms': self.terms,
            'control': self.control.to_dict(),
            'call': self.call,
            'counts': self.counts,
        }


class VEMResult(LDAResult):
    """LDA fitted by variational EM. ``loglikelihood`` is the bound per document."""

    method = 'VEM'


class GibbsResult(LDAResult):
    """
    LDA fitted by collapsed Gibbs sampling.

    Adds ``z`` (topic of every token, in triplet order), ``seedwords``
    (the seedword matrix used, or None) and ``delta`` (the topic-term prior).
    """

    method = 'Gibbs'

    def __init__(self, *args, z: np.ndarray, delta: np.ndarray,
                 seedwords: Optional[np.ndarray] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.z = z
        self.delta = delta
        self.seedwords = seedwords

    def to_dict(self) -> Dict[str, Any]:
        result_dict = super().to_dict()
        result_dict['z'] = self.z
        result_dict['delta'] = self.delta
        result_dict['seedwords'] = self.seedwords
        return result_dict


class GibbsList:
    """All checkpoint fits of one Gibbs start, in iteration order."""

    def __init__(self, fitted: List[GibbsResult]):
        if not fitted:
            raise ValueError("GibbsList needs at least one fitted model")
        self.fitted = list(fitted)

    def __len__(self) -> int:
        return len(self.fitted)

    def __getitem__(self, idx) -> GibbsResult:
        return self.fitted[idx]

    def __iter__(self):
        return iter(self.fitted)

    def log_liks(self) -> List[float]:
        return [fit.log_lik() for fit in self.fitted]

    def best(self) -> GibbsResult:
        """Checkpoint with the highest log-likelihood."""
        return self.fitted[int(np.argmax(self.log_liks()))]

    def __repr__(self) -> str:
        return f"GibbsList(num_fitted={len(self.fitted)})"
