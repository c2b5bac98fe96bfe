"""Control objects holding estimation settings for fit_lda."""

import dataclasses
import os
import tempfile
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import numpy as np


def _default_prefix() -> str:
    return os.path.join(tempfile.gettempdir(), f"tmlda_{uuid.uuid4().hex[:12]}")


@dataclass
class TopicModelControl:
    """
    Settings shared by every estimation method.

    Attributes
    ----------
    seed : list of int, optional
        One seed per start. Generated when omitted.
    verbose : int, default=0
        Log progress every ``verbose`` iterations (0 = silent)
    prefix : str, optional
        Path prefix for output files; files go to ``<prefix>-lda``
    save : int, default=0
        Write intermediate results every ``save`` iterations (0 = never)
    nstart : int, default=1
        Number of independent starts
    best : bool, default=True
        Return only the fit with the highest log-likelihood
    keep : int, default=0
        Record the log-likelihood every ``keep`` iterations
    estimate_beta : bool, default=True
        If False the topic-term distributions stay fixed at the model's
    alpha : float, optional
        Symmetric Dirichlet parameter of the document-topic distributions.
        Defaults to the initial model's alpha, else 50 / k.
    """
    seed: Optional[List[Optional[int]]] = None
    verbose: int = 0
    prefix: str = field(default_factory=_default_prefix)
    save: int = 0
    nstart: int = 1
    best: bool = True
    keep: int = 0
    estimate_beta: bool = True
    alpha: Optional[float] = None

    def __post_init__(self):
        if int(self.nstart) != self.nstart or self.nstart < 1:
            raise ValueError(f"nstart must be a positive integer, got {self.nstart}")
        self.nstart = int(self.nstart)

        for name in ('verbose', 'save', 'keep'):
            value = getattr(self, name)
            if int(value) != value or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value}")
            setattr(self, name, int(value))

        if self.alpha is not None and not self.alpha > 0:
            raise ValueError(f"alpha must be positive, got {self.alpha}")

        if self.seed is None:
            self.seed = self._default_seeds()
        elif isinstance(self.seed, (int, np.integer)):
            self.seed = [int(self.seed)]
        else:
            self.seed = [None if s is None else int(s) for s in self.seed]

    def _default_seeds(self) -> List[Optional[int]]:
        base = int(time.time())
        return [base + 1000 * i for i in range(self.nstart)]

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass
class VEMControl(TopicModelControl):
    """
    Settings for variational EM.

    ``var_*`` bound the per-document variational inference, ``em_*`` the
    outer EM loop. An ``em_iter_max`` of -1 skips the M-step entirely and
    ``var_iter_max`` of -1 removes the per-document limit.
    """
    estimate_alpha: bool = True
    var_iter_max: int = 500
    var_tol: float = 1e-6
    em_iter_max: int = 1000
    em_tol: float = 1e-4
    initialize: str = 'random'

    def __post_init__(self):
        super().__post_init__()
        if self.initialize not in ('random', 'seeded', 'model'):
            raise ValueError(f"initialize must be 'random', 'seeded' or 'model', got '{self.initialize}'")
        if self.var_iter_max < -1 or self.em_iter_max < -1:
            raise ValueError("var_iter_max and em_iter_max must be >= -1")


@dataclass
class GibbsControl(TopicModelControl):
    """
    Settings for collapsed Gibbs sampling.

    ``burnin`` sweeps are discarded, after which a fit is taken every
    ``thin`` sweeps until ``iter`` sweeps have been run. ``thin`` defaults
    to ``iter``, i.e. a single fit per start. Seeds may be None, in which
    case the sampler draws fresh entropy.
    """
    delta: float = 0.1
    iter: int = 2000
    thin: Optional[int] = None
    burnin: int = 0
    initialize: str = 'random'

    def __post_init__(self):
        super().__post_init__()
        if self.initialize not in ('random', 'beta', 'z'):
            raise ValueError(f"initialize must be 'random', 'beta' or 'z', got '{self.initialize}'")
        if not self.delta > 0:
            raise ValueError(f"delta must be positive, got {self.delta}")
        if self.iter < 1:
            raise ValueError(f"iter must be >= 1, got {self.iter}")
        if self.burnin < 0:
            raise ValueError(f"burnin must be >= 0, got {self.burnin}")
        if self.thin is None:
            self.thin = self.iter
        if self.thin < 1:
            raise ValueError(f"thin must be >= 1, got {self.thin}")
        if self.thin > self.iter:
            raise ValueError(f"thin ({self.thin}) must not exceed iter ({self.iter})")

    def _default_seeds(self) -> List[Optional[int]]:
        return [None] * self.nstart


def as_control(control: Union[None, Dict[str, Any], TopicModelControl], cls):
    """
    Coerce ``control`` to an instance of ``cls``.

    ``None`` gives the defaults, a dict is passed as keyword arguments and
    an instance of ``cls`` is copied.
    """
    if control is None:
        return cls()
    if isinstance(control, cls):
        return dataclasses.replace(control)
    if isinstance(control, TopicModelControl):
        raise ValueError(f"Expected a {cls.__name__}, got {type(control).__name__}")
    if isinstance(control, dict):
        valid = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(control) - valid)
        if unknown:
            raise ValueError(f"Unknown control parameters for {cls.__name__}: {unknown}")
        return cls(**control)
    raise ValueError(f"control must be None, a dict or a {cls.__name__}, got {type(control).__name__}")
