"""Variational EM estimation of LDA.

Follows Blei's lda-c: a symmetric Dirichlet prior alpha on the
document-topic proportions, per-document variational parameters
(gamma, phi) and maximum likelihood topic-term distributions.
"""

import logging
from typing import Dict, Optional, Tuple

import numpy as np
from scipy.special import digamma, gammaln, logsumexp, polygamma, xlogy

from tmlda._core.controls import VEMControl
from tmlda._core.triplet import SimpleTripletMatrix
from tmlda._utils.monitor import LikelihoodMonitor
from tmlda._utils.output import write_state

logger = logging.getLogger(__name__)

LOG_ZERO = -100.0
NEWTON_THRESH = 1e-5
MAX_ALPHA_ITER = 1000
NUM_INIT = 1


def _split_documents(x: SimpleTripletMatrix):
    """Group the triplets by document.

    Returns a list with one (cell_indices, words, counts) tuple per row.
    """
    order = np.argsort(x.i, kind='stable')
    bounds = np.searchsorted(x.i[order], np.arange(x.nrow + 1))
    documents = []
    for d in range(x.nrow):
        cells = order[bounds[d]:bounds[d + 1]]
        documents.append((cells, x.j[cells], x.v[cells].astype(float)))
    return documents


def optimize_alpha(suffstats: float, num_docs: int, num_topics: int) -> float:
    """Newton-Raphson on log(alpha) for the symmetric Dirichlet prior."""
    init_a = 100.0
    log_a = np.log(init_a)
    iteration = 0
    while True:
        iteration += 1
        a = np.exp(log_a)
        if np.isnan(a):
            init_a *= 10
            a = init_a
            log_a = np.log(a)
        df = num_docs * (num_topics * digamma(num_topics * a) - num_topics * digamma(a)) + suffstats
        d2f = num_docs * (num_topics ** 2 * polygamma(1, num_topics * a) - num_topics * polygamma(1, a))
        log_a = log_a - df / (d2f * a + df)
        if abs(df) <= NEWTON_THRESH or iteration >= MAX_ALPHA_ITER:
            break
    return float(np.exp(log_a))


class VEMModel:
    def __init__(self, x: SimpleTripletMatrix, k: int, control: VEMControl,
                 rng: np.random.Generator, initial_beta: Optional[np.ndarray] = None):
        """Set up sufficient statistics and the starting topic-term matrix."""
        self.x = x
        self.k = k
        self.control = control
        self.rng = rng
        self.num_docs, self.num_terms = x.shape
        self.alpha = float(control.alpha)
        self.var_iter_max = control.var_iter_max
        self.documents = _split_documents(x)

        if control.initialize == 'model':
            if initial_beta is None:
                raise ValueError("initialize='model' requires an initial topic-term matrix")
            self.log_beta = np.array(initial_beta, dtype=float)
        elif control.initialize == 'seeded':
            class_word = self._seeded_suffstats()
            self.log_beta = self._log_beta_from_suffstats(class_word)
        else:
            class_word = 1.0 / self.num_terms + self.rng.random((k, self.num_terms))
            self.log_beta = self._log_beta_from_suffstats(class_word)

    def _seeded_suffstats(self) -> np.ndarray:
        class_word = np.zeros((self.k, self.num_terms))
        for topic in range(self.k):
            for _ in range(NUM_INIT):
                d = int(np.floor(self.rng.random() * self.num_docs))
                _, words, counts = self.documents[d]
                class_word[topic, words] += counts
        return class_word + 1.0

    @staticmethod
    def _log_beta_from_suffstats(class_word: np.ndarray) -> np.ndarray:
        class_total = class_word.sum(axis=1, keepdims=True)
        with np.errstate(divide='ignore'):
            log_beta = np.log(class_word) - np.log(class_total)
        log_beta[class_word <= 0] = LOG_ZERO
        return log_beta

    def document_likelihood(self, counts, phi, gamma, log_beta_w) -> float:
        e_log_theta = digamma(gamma) - digamma(gamma.sum())
        likelihood = (gammaln(self.alpha * self.k) - self.k * gammaln(self.alpha)
                      - gammaln(gamma.sum()))
        likelihood += np.sum((self.alpha - 1) * e_log_theta + gammaln(gamma)
                             - (gamma - 1) * e_log_theta)
        likelihood += np.sum(counts[:, np.newaxis]
                             * (phi * (e_log_theta + log_beta_w) - xlogy(phi, phi)))
        return float(likelihood)

    def infer_document(self, words, counts) -> Tuple[np.ndarray, np.ndarray, float]:
        """Variational inference for one document under the current beta."""
        phi = np.full((len(words), self.k), 1.0 / self.k)
        gamma = np.full(self.k, self.alpha + counts.sum() / self.k)
        log_beta_w = self.log_beta[:, words].T
        digamma_gamma = digamma(gamma)

        likelihood_old = 0.0
        likelihood = 0.0
        converged = np.inf
        var_iter = 0
        while converged > self.control.var_tol and (self.var_iter_max == -1 or var_iter < self.var_iter_max):
            var_iter += 1
            log_phi = digamma_gamma + log_beta_w
            log_phi -= logsumexp(log_phi, axis=1, keepdims=True)
            phi = np.exp(log_phi)
            gamma = self.alpha + counts @ phi
            digamma_gamma = digamma(gamma)

            likelihood = self.document_likelihood(counts, phi, gamma, log_beta_w)
            converged = np.inf if likelihood_old == 0 else (likelihood_old - likelihood) / likelihood_old
            likelihood_old = likelihood

        return gamma, phi, likelihood

    def update_parameters(self) -> float:
        """One EM iteration: E-step over every document, then the M-step."""
        class_word = np.zeros((self.k, self.num_terms))
        alpha_suffstats = 0.0
        likelihood = 0.0

        for _, words, counts in self.documents:
            gamma, phi, doc_likelihood = self.infer_document(words, counts)
            likelihood += doc_likelihood
            alpha_suffstats += np.sum(digamma(gamma)) - self.k * digamma(gamma.sum())
            np.add.at(class_word.T, words, counts[:, np.newaxis] * phi)

        self.log_beta = self._log_beta_from_suffstats(class_word)
        if self.control.estimate_alpha:
            self.alpha = optimize_alpha(alpha_suffstats, self.num_docs, self.k)
        return likelihood

    def final_inference(self) -> Dict[str, np.ndarray]:
        """Per-document gamma, bound and word assignments under the final model."""
        gamma = np.zeros((self.num_docs, self.k))
        likelihood = np.zeros(self.num_docs)
        topics = np.zeros(len(self.x.v), dtype=np.int64)
        for d, (cells, words, counts) in enumerate(self.documents):
            gamma[d], phi, likelihood[d] = self.infer_document(words, counts)
            topics[cells] = np.argmax(phi, axis=1)
        return {'gamma': gamma, 'loglikelihood': likelihood, 'topics': topics}


def run_vem(
    x: SimpleTripletMatrix,
    control: VEMControl,
    k: int,
    result_dir: str,
    initial_beta: Optional[np.ndarray] = None
) -> Dict:
    """
    Fit LDA by variational EM for one seed.

    Parameters
    ----------
    x : SimpleTripletMatrix
        Integer count matrix (documents x terms)
    control : VEMControl
        Settings; ``control.seed`` must hold exactly one seed and
        ``control.alpha`` must be set
    k : int
        Number of topics
    result_dir : str
        Directory for snapshots when ``control.save > 0``
    initial_beta : np.ndarray, shape (k, V), optional
        Log topic-term matrix used when ``control.initialize == 'model'``

    Returns
    -------
    dict
        alpha, beta (log, k x V), gamma (unnormalised, D x k),
        loglikelihood (per document), iter, wordassignments (topic per
        triplet cell), log_likelihoods (recorded every ``keep`` iterations)
    """
    rng = np.random.default_rng(control.seed[0])
    model = VEMModel(x, k, control, rng, initial_beta=initial_beta)
    monitor = LikelihoodMonitor(
        convergence_threshold=control.em_tol,
        max_iterations=control.em_iter_max,
        verbose=control.verbose,
        keep=control.keep,
        label='VEM'
    )

    if control.em_iter_max != -1:
        while True:
            likelihood = model.update_parameters()
            stop = monitor.check_convergence(likelihood)

            change = monitor.relative_change()
            if change is not None and change < 0 and model.var_iter_max != -1:
                model.var_iter_max *= 2

            if control.save > 0 and monitor.iteration % control.save == 0:
                write_state(result_dir, f"{monitor.iteration:03d}", model.log_beta, None, model.alpha)
            if stop:
                break

    final = model.final_inference()
    if control.save > 0:
        write_state(result_dir, 'final', model.log_beta, final['gamma'], model.alpha)

    stats = monitor.get_convergence_stats()
    if control.verbose > 0:
        logger.info("VEM finished after %d iterations, log-likelihood = %.4f",
                    stats['num_iterations'], final['loglikelihood'].sum())

    return {
        'alpha': model.alpha,
        'beta': model.log_beta,
        'gamma': final['gamma'],
        'loglikelihood': final['loglikelihood'],
        'iter': stats['num_iterations'],
        'wordassignments': final['topics'],
        'log_likelihoods': stats['kept_likelihoods'],
    }
