"""Main user-facing API for fitting LDA topic models.

``fit_lda`` validates the count matrix, resolves the estimation method and
hands over to ``fit_lda_vem`` or ``fit_lda_gibbs``. Those build the
control object, run the estimator once per start and select the best fit.
"""

import dataclasses
import logging
import os
import warnings
from typing import Any, Callable, Dict, List, Optional, Union

import numpy as np

from tmlda._core.controls import GibbsControl, TopicModelControl, VEMControl, as_control
from tmlda._core.results import GibbsList, GibbsResult, LDAResult, VEMResult
from tmlda._core.triplet import SimpleTripletMatrix, as_triplet_matrix
from tmlda._models.gibbs import INIT_BETA, INIT_RANDOM, INIT_Z, run_gibbs
from tmlda._models.vem import run_vem
from tmlda._utils.output import result_directory

logger = logging.getLogger(__name__)

ControlLike = Union[None, Dict[str, Any], TopicModelControl]


def match_terms(x: SimpleTripletMatrix, model: LDAResult) -> SimpleTripletMatrix:
    """
    Express ``x`` in the term space of ``model``.

    When both carry term labels, columns of ``x`` unknown to the model are
    dropped and the rest are placed at the model's term positions. Without
    labels the column counts must agree.
    """
    if model.has_term_labels and x.terms is not None:
        model_index = {term: idx for idx, term in enumerate(model.terms)}
        keep = [c for c, term in enumerate(x.terms) if term in model_index]
        keep.sort(key=lambda c: model_index[x.terms[c]])
        selected = x.select_columns(keep)
        positions = np.array([model_index[term] for term in selected.terms], dtype=np.int64)
        return SimpleTripletMatrix(
            selected.i, positions[selected.j] if len(positions) else selected.j, selected.v,
            nrow=x.nrow, ncol=model.num_terms,
            documents=x.documents, terms=model.terms,
            weighting=x.weighting
        )
    if x.ncol != model.num_terms:
        raise ValueError("The number of terms in the input matrix and the fitted model need to match")
    return x


def _validate_counts(x) -> SimpleTripletMatrix:
    x = as_triplet_matrix(x)
    if x.weighting not in ('tf', 'term frequency'):
        raise ValueError("The document-term matrix needs to have a term frequency weighting")
    if not np.all(np.isfinite(x.v)) or not np.array_equal(x.v, np.round(x.v)):
        raise ValueError("Input matrix needs to contain integer entries")
    if np.any(x.v < 0):
        raise ValueError("Input matrix needs to contain non-negative entries")
    if not np.all(x.row_sums() > 0):
        raise ValueError("Each row of the input matrix needs to contain at least one non-zero entry")
    return SimpleTripletMatrix(
        x.i, x.j, x.v.astype(np.int64),
        nrow=x.nrow, ncol=x.ncol,
        documents=x.documents, terms=x.terms,
        weighting=x.weighting
    )


def _describe_control(control: ControlLike) -> Any:
    if isinstance(control, TopicModelControl):
        return control.to_dict()
    return dict(control) if control is not None else None


def _select_best(fits: List[LDAResult], message: str):
    log_liks = np.array([fit.log_lik() for fit in fits])
    finite = np.isfinite(log_liks)
    if not finite.any():
        warnings.warn(message)
        return fits
    best = int(np.argmax(np.where(finite, log_liks, -np.inf)))
    return fits[best]


def _wordassignments(x: SimpleTripletMatrix, topics: np.ndarray) -> Dict[str, np.ndarray]:
    return {'i': x.i.copy(), 'j': x.j.copy(), 'v': topics}


def fit_lda_vem(
    x: SimpleTripletMatrix,
    k: int,
    control: ControlLike = None,
    model: Optional[LDAResult] = None,
    call: Optional[Dict[str, Any]] = None,
    seedwords=None
) -> Union[VEMResult, List[VEMResult]]:
    """
    Fit LDA by variational EM with ``control.nstart`` starts.

    Parameters
    ----------
    x : SimpleTripletMatrix
        Validated integer count matrix
    k : int
        Number of topics
    control : dict or VEMControl, optional
        Estimation settings
    model : LDAResult, optional
        Fitted model used for initialization; forces ``initialize='model'``
    call : dict, optional
        Description of the originating call, stored on each fit
    seedwords : ignored
        Only used by Gibbs sampling

    Returns
    -------
    VEMResult or list of VEMResult
        The best fit when ``control.best`` is True, else all fits
    """
    if seedwords is not None:
        warnings.warn("seedwords are only used by Gibbs sampling and are ignored")

    control = as_control(control, VEMControl)
    if len(control.seed) != control.nstart:
        raise ValueError(f"Need {control.nstart} seeds")
    if control.alpha is None:
        control.alpha = model.alpha if model is not None else 50 / k

    if model is None:
        if control.initialize == 'model':
            raise ValueError("Need a fitted model for initialization")
    else:
        control.initialize = 'model'
    if not control.estimate_beta:
        control.em_iter_max = -1

    result_dir = result_directory(control.prefix)
    if control.save > 0:
        os.makedirs(result_dir, exist_ok=True)

    fits = []
    for start, seed in enumerate(control.seed):
        control_i = dataclasses.replace(control, seed=[seed])
        fitted = run_vem(x, control_i, k, result_dir,
                         initial_beta=model.beta if model is not None else None)
        gamma = fitted['gamma'] / fitted['gamma'].sum(axis=1, keepdims=True)
        fit = VEMResult(
            k=k,
            alpha=fitted['alpha'],
            beta=fitted['beta'],
            gamma=gamma,
            wordassignments=_wordassignments(x, fitted['wordassignments']),
            loglikelihood=fitted['loglikelihood'],
            iter=fitted['iter'],
            n=int(x.v.sum()),
            control=control_i,
            documents=x.documents,
            terms=x.terms,
            log_likelihoods=fitted['log_likelihoods'],
            call=call,
            counts=x.v.copy()
        )
        if control.verbose > 0:
            logger.info("VEM start %d/%d (seed %s): log-likelihood = %.4f",
                        start + 1, control.nstart, seed, fit.log_lik())
        fits.append(fit)

    if control.best:
        return _select_best(fits, "problem selecting best fitting model")
    return fits


def _checkpoints(control: GibbsControl) -> List[int]:
    """Cumulative sweep counts at which Gibbs fits are taken."""
    last = control.burnin + control.iter
    points = list(range(control.burnin + control.thin, last + 1, control.thin))
    if not points or points[-1] != last:
        points.append(last)
    return points


def _seedword_prior(seedwords, k: int, num_terms: int, delta: float) -> np.ndarray:
    if isinstance(seedwords, np.ndarray):
        seedwords = np.asarray(seedwords, dtype=float)
    else:
        seedwords = as_triplet_matrix(seedwords).to_dense().astype(float)
    if seedwords.shape != (k, num_terms):
        raise ValueError(f"seedwords must have shape ({k}, {num_terms}), got {seedwords.shape}")
    return delta + seedwords


def fit_lda_gibbs(
    x: SimpleTripletMatrix,
    k: int,
    control: ControlLike = None,
    model: Optional[LDAResult] = None,
    call: Optional[Dict[str, Any]] = None,
    seedwords=None
) -> Union[GibbsResult, GibbsList, List]:
    """
    Fit LDA by collapsed Gibbs sampling with ``control.nstart`` starts.

    Each start first runs ``burnin + thin`` sweeps and then continues from
    the previous state in steps of ``thin`` until ``burnin + iter`` sweeps
    are done, keeping a fit at every checkpoint.

    Parameters
    ----------
    x : SimpleTripletMatrix
        Validated integer count matrix
    k : int
        Number of topics
    control : dict or GibbsControl, optional
        Estimation settings. With a model and a dict (or no) control,
        ``delta`` defaults to the model's and ``initialize`` to 'beta'.
    model : LDAResult, optional
        Fitted model used for initialization
    call : dict, optional
        Description of the originating call, stored on each fit
    seedwords : array-like, shape (k, V), optional
        Added to ``delta`` as a per topic-term prior. Defaults to the
        model's seedwords.

    Returns
    -------
    GibbsResult, GibbsList or list of GibbsList
        ``best=True``: the checkpoint with the highest log-likelihood over
        all starts. ``best=False``: one GibbsList per start, or the single
        GibbsList when ``nstart == 1``.
    """
    if model is not None and (control is None or isinstance(control, dict)):
        control = dict(control or {})
        if 'delta' not in control and isinstance(model.control, GibbsControl):
            control['delta'] = model.control.delta
        control.setdefault('initialize', 'beta')
    if model is not None and seedwords is None:
        seedwords = getattr(model, 'seedwords', None)

    control = as_control(control, GibbsControl)
    if len(control.seed) != control.nstart:
        raise ValueError(f"Need {control.nstart} seeds")
    if control.alpha is None:
        control.alpha = model.alpha if model is not None else 50 / k

    if control.initialize == 'z':
        if model is None or getattr(model, 'z', None) is None:
            raise ValueError("Need a model fitted by Gibbs sampling for initialization")
        if k != model.k:
            k = model.k
            warnings.warn(f"'k' set to {k}")
        if int(x.v.sum()) != len(model.z):
            raise ValueError("Dimension of data and fitted model need to match for initialization")
    if control.initialize == 'beta':
        if model is None:
            raise ValueError("Need a fitted model for initialization")
        if k != model.beta.shape[0]:
            k = model.beta.shape[0]
            warnings.warn(f"'k' set to {k}")
        if x.ncol != model.beta.shape[1]:
            raise ValueError("Dimension of data and fitted model need to match for initialization")
    if not control.estimate_beta and model is None:
        raise ValueError("Need a fitted model when beta is not estimated")

    result_dir = result_directory(control.prefix)
    if control.save > 0:
        os.makedirs(result_dir, exist_ok=True)

    delta = None
    if seedwords is not None:
        delta = _seedword_prior(seedwords, k, x.ncol, control.delta)
        seedwords = delta - control.delta

    initialize = {'beta': INIT_BETA, 'z': INIT_Z}.get(control.initialize, INIT_RANDOM)
    checkpoints = _checkpoints(control)

    fits = []
    for start, seed in enumerate(control.seed):
        rng = np.random.default_rng(seed)
        chain = []
        previous = 0
        for checkpoint in checkpoints:
            sweeps = checkpoint - previous
            control_i = dataclasses.replace(control, seed=[seed], iter=sweeps, thin=sweeps)
            if chain:
                fitted = run_gibbs(x, control_i, k, result_dir, rng, sweeps,
                                   initialize=INIT_Z, delta=delta,
                                   initial_beta=chain[-1].beta, initial_z=chain[-1].z)
            else:
                fitted = run_gibbs(x, control_i, k, result_dir, rng, sweeps,
                                   initialize=initialize, delta=delta,
                                   initial_beta=model.beta if model is not None else None,
                                   initial_z=getattr(model, 'z', None))
            previous = checkpoint

            chain.append(GibbsResult(
                k=k,
                alpha=fitted['alpha'],
                beta=fitted['beta'],
                gamma=fitted['gamma'],
                wordassignments=_wordassignments(x, fitted['wordassignments']),
                loglikelihood=fitted['loglikelihood'],
                iter=fitted['iter'],
                n=int(x.v.sum()),
                control=control_i,
                documents=x.documents,
                terms=x.terms,
                log_likelihoods=fitted['log_likelihoods'],
                call=call,
                counts=x.v.copy(),
                z=fitted['z'],
                delta=fitted['delta'],
                seedwords=seedwords
            ))
            if control.verbose > 0:
                logger.info("Gibbs start %d/%d checkpoint at sweep %d: log-likelihood = %.4f",
                            start + 1, control.nstart, checkpoint, chain[-1].log_lik())

        if control.best:
            fits.append(GibbsList(chain).best())
        else:
            fits.append(GibbsList(chain))

    if control.best:
        return _select_best(fits, "no finite likelihood")
    if control.nstart == 1:
        return fits[0]
    return fits


LDA_REGISTRY = {
    'fit_lda_vem': (fit_lda_vem, ('VEM', 'LDA_VEM', 'LDA_VEM.fit')),
    'fit_lda_gibbs': (fit_lda_gibbs, ('Gibbs', 'LDA_Gibbs', 'LDA_Gibbs.fit')),
}


def resolve_method(method: Union[str, Callable]) -> Callable:
    """
    Look up the fitting function for ``method``.

    A string matches a registry entry when it occurs, case-insensitively,
    inside one of the entry's aliases. Exactly one entry must match.
    """
    if callable(method):
        return method
    if not isinstance(method, str):
        raise ValueError("'method' not specified correctly")
    needle = method.lower()
    matches = [
        fit for fit, aliases in LDA_REGISTRY.values()
        if any(needle in alias.lower() for alias in aliases)
    ]
    if len(matches) != 1:
        raise ValueError("'method' not specified correctly")
    return matches[0]


def fit_lda(
    x,
    k: Optional[int] = None,
    method: Optional[Union[str, Callable]] = None,
    control: ControlLike = None,
    model: Optional[LDAResult] = None,
    seedwords=None
):
    """
    Fit a Latent Dirichlet Allocation model to a document-term count matrix.

    Parameters
    ----------
    x : SimpleTripletMatrix, scipy.sparse matrix, pd.DataFrame or array-like
        Documents x terms matrix of non-negative integer counts. Every
        document needs at least one non-zero count. DataFrame index and
        columns become document and term labels.
    k : int
        Number of topics (at least 2). Taken from ``model`` when given.
    method : {'VEM', 'Gibbs'} or callable, optional
        Estimation method. Matched case-insensitively against the aliases
        'VEM', 'LDA_VEM', 'LDA_VEM.fit', 'Gibbs', 'LDA_Gibbs',
        'LDA_Gibbs.fit'. Defaults to the model's method, else 'VEM'.
        A callable is invoked as ``method(x, k, control, model, call,
        seedwords=seedwords)``.
    control : dict, VEMControl or GibbsControl, optional
        Estimation settings, see ``VEMControl`` and ``GibbsControl``
    model : LDAResult, optional
        Previously fitted model used for initialization
    seedwords : array-like, shape (k, V), optional
        Gibbs only: per topic-term prior added to ``delta``

    Returns
    -------
    VEMResult, GibbsResult, GibbsList or list
        See ``fit_lda_vem`` and ``fit_lda_gibbs``

    Raises
    ------
    ValueError
        If the matrix is not a term-frequency count matrix, has an empty
        row, does not match ``model``, ``k`` is invalid, the number of
        seeds differs from ``nstart`` or ``method`` is not recognised.

    Examples
    --------
    >>> from tmlda import fit_lda, simulate_corpus
    >>> X, _, _ = simulate_corpus(seed=1, num_docs=50, num_terms=30, k=3)
    >>> result = fit_lda(X, k=3, method='VEM', control={'seed': [1]})
    >>> print(result.summary())

    Several Gibbs starts, keeping every checkpoint:

    >>> fits = fit_lda(X, k=3, method='Gibbs',
    ...                control={'nstart': 2, 'seed': [1, 2], 'iter': 200,
    ...                         'thin': 50, 'best': False})
    """
    call = {
        'k': k,
        'method': method if isinstance(method, str) or method is None else getattr(method, '__name__', repr(method)),
        'control': _describe_control(control),
        'model': repr(model) if model is not None else None,
        'seedwords': seedwords is not None,
    }

    x = _validate_counts(x)

    if model is not None:
        x = match_terms(x, model)
        k = model.k

    try:
        valid_k = k is not None and int(k) == k and int(k) >= 2
    except (TypeError, ValueError):
        valid_k = False
    if not valid_k:
        raise ValueError("'k' needs to be an integer of at least 2")
    k = int(k)

    if method is None:
        method = model.method if model is not None else 'VEM'
    fit = resolve_method(method)

    return fit(x, k, control, model, call, seedwords=seedwords)
