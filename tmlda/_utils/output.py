import logging
import os
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


def result_directory(prefix: str) -> str:
    """Directory that holds the output files for ``prefix``."""
    return os.path.expanduser(f"{prefix}-lda")


def write_state(
    result_dir: str,
    tag: str,
    log_beta: np.ndarray,
    gamma: Optional[np.ndarray],
    alpha: float,
    z: Optional[np.ndarray] = None
) -> None:
    """Write one snapshot of a fit as ``<tag>.beta``, ``<tag>.gamma``, ``<tag>.other``.

    ``<tag>.other`` holds the topic count, term count and alpha, one per line.
    Gibbs snapshots also write the token assignments to ``<tag>.z``.
    """
    os.makedirs(result_dir, exist_ok=True)
    base = os.path.join(result_dir, tag)

    np.savetxt(f"{base}.beta", log_beta, fmt='%.10f')
    if gamma is not None:
        np.savetxt(f"{base}.gamma", gamma, fmt='%.10f')
    with open(f"{base}.other", 'w') as f:
        f.write(f"num_topics {log_beta.shape[0]}\n")
        f.write(f"num_terms {log_beta.shape[1]}\n")
        f.write(f"alpha {alpha:.10f}\n")
    if z is not None:
        np.savetxt(f"{base}.z", z, fmt='%d')

    logger.debug("Wrote %s snapshot to %s", tag, result_dir)
