"""Collapsed Gibbs sampling for LDA (Griffiths & Steyvers, 2004).

Every token of the count matrix carries a topic assignment z. One sweep
resamples each token from its full conditional

    p(z = k | rest) ~ (n_kw + delta_kw) / (n_k + sum_w delta_kw) * (n_dk + alpha)

where the counts exclude the token being resampled.
"""

import logging
from typing import Dict, Optional

import numpy as np
from scipy.special import gammaln

from tmlda._core.controls import GibbsControl
from tmlda._core.triplet import SimpleTripletMatrix
from tmlda._utils.monitor import LikelihoodMonitor
from tmlda._utils.output import write_state

logger = logging.getLogger(__name__)

INIT_RANDOM = 0
INIT_BETA = 1
INIT_Z = 2


class GibbsSampler:
    def __init__(self, x: SimpleTripletMatrix, k: int, alpha: float, delta: np.ndarray,
                 rng: np.random.Generator, fixed_beta: Optional[np.ndarray] = None):
        """
        Parameters
        ----------
        x : SimpleTripletMatrix
            Integer count matrix
        k : int
            Number of topics
        alpha : float
            Symmetric document-topic prior
        delta : np.ndarray, shape (k, V)
            Topic-term prior, one entry per topic and term
        rng : np.random.Generator
            Random stream; shared across checkpoint runs of one start
        fixed_beta : np.ndarray, shape (k, V), optional
            Log topic-term matrix held fixed while sampling
        """
        self.x = x
        self.k = k
        self.alpha = alpha
        self.delta = delta
        self.delta_sum = delta.sum(axis=1)
        self.rng = rng
        self.num_docs, self.num_terms = x.shape

        counts = x.v.astype(np.int64)
        self.cell_of_token = np.repeat(np.arange(len(counts)), counts)
        self.docs = x.i[self.cell_of_token]
        self.words = x.j[self.cell_of_token]
        self.num_tokens = len(self.docs)

        self.phi = None if fixed_beta is None else np.exp(fixed_beta)

        self.z = np.zeros(self.num_tokens, dtype=np.int64)
        self.nw = np.zeros((k, self.num_terms), dtype=np.int64)
        self.nd = np.zeros((self.num_docs, k), dtype=np.int64)
        self.nwsum = np.zeros(k, dtype=np.int64)

    def _recount(self):
        self.nw[:] = 0
        self.nd[:] = 0
        np.add.at(self.nw, (self.z, self.words), 1)
        np.add.at(self.nd, (self.docs, self.z), 1)
        self.nwsum = self.nw.sum(axis=1)

    def initialize_random(self):
        self.z = self.rng.integers(self.k, size=self.num_tokens)
        self._recount()

    def initialize_from_z(self, z: np.ndarray):
        z = np.asarray(z, dtype=np.int64)
        if z.shape != (self.num_tokens,):
            raise ValueError(f"z must have one entry per token ({self.num_tokens}), got shape {z.shape}")
        if z.min() < 0 or z.max() >= self.k:
            raise ValueError(f"z entries must lie in [0, {self.k})")
        self.z = z.copy()
        self._recount()

    def initialize_from_beta(self, log_beta: np.ndarray):
        """Draw each token's topic from the given topic-term matrix."""
        phi = np.exp(log_beta)
        nd = np.zeros((self.num_docs, self.k))
        uniforms = self.rng.random(self.num_tokens)
        for t in range(self.num_tokens):
            d, w = self.docs[t], self.words[t]
            p = phi[:, w] * (nd[d] + self.alpha)
            self.z[t] = self._draw(p, uniforms[t])
            nd[d, self.z[t]] += 1
        self._recount()

    def _draw(self, p: np.ndarray, u: float) -> int:
        cumulative = np.cumsum(p)
        return min(int(np.searchsorted(cumulative, u * cumulative[-1], side='right')), self.k - 1)

    def compute_conditional(self, t: int) -> np.ndarray:
        d, w = self.docs[t], self.words[t]
        if self.phi is None:
            word_term = (self.nw[:, w] + self.delta[:, w]) / (self.nwsum + self.delta_sum)
        else:
            word_term = self.phi[:, w]
        return word_term * (self.nd[d] + self.alpha)

    def run_iteration(self):
        """Run a single sweep over all tokens."""
        uniforms = self.rng.random(self.num_tokens)
        for t in range(self.num_tokens):
            d, w, k_old = self.docs[t], self.words[t], self.z[t]
            self.nw[k_old, w] -= 1
            self.nd[d, k_old] -= 1
            self.nwsum[k_old] -= 1

            k_new = self._draw(self.compute_conditional(t), uniforms[t])

            self.z[t] = k_new
            self.nw[k_new, w] += 1
            self.nd[d, k_new] += 1
            self.nwsum[k_new] += 1

    def log_likelihood(self) -> float:
        """Log p(w | z) with the topic-term distributions integrated out."""
        return float(np.sum(
            gammaln(self.delta_sum)
            - gammaln(self.delta).sum(axis=1)
            + gammaln(self.nw + self.delta).sum(axis=1)
            - gammaln(self.nwsum + self.delta_sum)
        ))

    def log_beta(self) -> np.ndarray:
        if self.phi is not None:
            return np.log(self.phi)
        return np.log((self.nw + self.delta) / (self.nwsum + self.delta_sum)[:, np.newaxis])

    def gamma(self) -> np.ndarray:
        return (self.nd + self.alpha) / (self.nd.sum(axis=1) + self.k * self.alpha)[:, np.newaxis]

    def word_assignments(self) -> np.ndarray:
        """Most frequent topic among the tokens of each triplet cell."""
        cell_counts = np.zeros((len(self.x.v), self.k), dtype=np.int64)
        np.add.at(cell_counts, (self.cell_of_token, self.z), 1)
        return np.argmax(cell_counts, axis=1)


def run_gibbs(
    x: SimpleTripletMatrix,
    control: GibbsControl,
    k: int,
    result_dir: str,
    rng: np.random.Generator,
    num_sweeps: int,
    initialize: int = INIT_RANDOM,
    delta: Optional[np.ndarray] = None,
    initial_beta: Optional[np.ndarray] = None,
    initial_z: Optional[np.ndarray] = None
) -> Dict:
    """
    Run ``num_sweeps`` Gibbs sweeps for one start.

    Parameters
    ----------
    x : SimpleTripletMatrix
        Integer count matrix (documents x terms)
    control : GibbsControl
        Settings; ``control.alpha`` must be set
    k : int
        Number of topics
    result_dir : str
        Directory for snapshots when ``control.save > 0``
    rng : np.random.Generator
        Random stream
    num_sweeps : int
        Number of sweeps to run
    initialize : {INIT_RANDOM, INIT_BETA, INIT_Z}
        How to obtain the starting assignments
    delta : np.ndarray, shape (k, V), optional
        Topic-term prior; defaults to ``control.delta`` everywhere
    initial_beta : np.ndarray, shape (k, V), optional
        Log topic-term matrix, required for INIT_BETA and when
        ``control.estimate_beta`` is False
    initial_z : np.ndarray, optional
        Token assignments, required for INIT_Z

    Returns
    -------
    dict
        alpha, beta (log), gamma, z, wordassignments, loglikelihood, iter,
        log_likelihoods, delta
    """
    if delta is None:
        delta = np.full((k, x.ncol), control.delta)

    fixed_beta = None if control.estimate_beta else initial_beta
    if not control.estimate_beta and fixed_beta is None:
        raise ValueError("A topic-term matrix is required when beta is not estimated")

    sampler = GibbsSampler(x, k, float(control.alpha), delta, rng, fixed_beta=fixed_beta)
    if initialize == INIT_Z:
        sampler.initialize_from_z(initial_z)
    elif initialize == INIT_BETA:
        sampler.initialize_from_beta(initial_beta)
    else:
        sampler.initialize_random()

    monitor = LikelihoodMonitor(
        convergence_threshold=None,
        max_iterations=num_sweeps,
        verbose=control.verbose,
        keep=control.keep,
        label='Gibbs'
    )
    for _ in range(num_sweeps):
        sampler.run_iteration()
        monitor.check_convergence(sampler.log_likelihood())
        if control.save > 0 and monitor.iteration % control.save == 0:
            write_state(result_dir, f"{monitor.iteration:03d}", sampler.log_beta(),
                        sampler.gamma(), sampler.alpha, z=sampler.z)

    if control.save > 0:
        write_state(result_dir, 'final', sampler.log_beta(), sampler.gamma(), sampler.alpha, z=sampler.z)

    loglikelihood = sampler.log_likelihood()
    if control.verbose > 0:
        logger.info("Gibbs sampling finished %d sweeps, log-likelihood = %.4f", num_sweeps, loglikelihood)

    return {
        'alpha': sampler.alpha,
        'beta': sampler.log_beta(),
        'gamma': sampler.gamma(),
        'z': sampler.z.copy(),
        'wordassignments': sampler.word_assignments(),
        'loglikelihood': loglikelihood,
        'iter': num_sweeps,
        'log_likelihoods': monitor.get_convergence_stats()['kept_likelihoods'],
        'delta': delta,
    }
