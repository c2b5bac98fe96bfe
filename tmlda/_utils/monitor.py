import logging
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


class LikelihoodMonitor:
    """Track the log-likelihood across iterations and decide when to stop.

    Convergence is measured by the relative change
    ``(previous - current) / previous``. A negative change means the
    likelihood got worse and never counts as converged.
    """

    def __init__(self, convergence_threshold: Optional[float] = None, max_iterations: int = 1000,
                 verbose: int = 0, keep: int = 0, min_iterations: int = 3, label: str = 'EM'):
        self.convergence_threshold = convergence_threshold
        self.max_iterations = max_iterations
        self.verbose = verbose
        self.keep = keep
        self.min_iterations = min_iterations
        self.label = label
        self.likelihood_history = []
        self.change_history = []
        self.kept_likelihoods = []
        self.iteration = 0
        self.converged = False

    def relative_change(self) -> Optional[float]:
        if len(self.likelihood_history) < 2:
            return None
        previous, current = self.likelihood_history[-2], self.likelihood_history[-1]
        if previous == 0:
            return 0.0
        return (previous - current) / previous

    def record(self, likelihood: float) -> Optional[float]:
        """Store one iteration's likelihood and return the relative change."""
        self.likelihood_history.append(float(likelihood))
        self.iteration += 1

        if self.keep > 0 and self.iteration % self.keep == 0:
            self.kept_likelihoods.append(float(likelihood))

        change = self.relative_change()
        if change is not None:
            self.change_history.append(change)

        if self.verbose > 0 and self.iteration % self.verbose == 0:
            if change is None:
                logger.info("%s iteration %d: log-likelihood = %.4f", self.label, self.iteration, likelihood)
            else:
                logger.info("%s iteration %d: log-likelihood = %.4f, relative change = %.3e",
                            self.label, self.iteration, likelihood, change)
        return change

    def check_convergence(self, likelihood: float) -> bool:
        """Record ``likelihood`` and return True when iteration should stop."""
        change = self.record(likelihood)

        if 0 <= self.max_iterations <= self.iteration:
            return True
        if self.convergence_threshold is None or change is None:
            return False
        if self.iteration < self.min_iterations:
            return False
        if 0 <= change <= self.convergence_threshold:
            self.converged = True
            if self.verbose > 0:
                logger.info("%s converged after %d iterations", self.label, self.iteration)
            return True
        return False

    def get_convergence_stats(self) -> dict:
        """Return convergence statistics."""
        return {
            'final_likelihood': self.likelihood_history[-1] if self.likelihood_history else np.nan,
            'num_iterations': self.iteration,
            'likelihood_history': self.likelihood_history,
            'change_history': self.change_history,
            'kept_likelihoods': self.kept_likelihoods,
            'converged': self.converged,
        }
