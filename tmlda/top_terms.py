"""Select the top (or bottom) rows of a table by a weight column."""

import logging
import numbers
from typing import List, Optional, Sequence, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def top_n_terms(
    x: pd.DataFrame,
    n: int,
    wt: Optional[Union[str, Sequence[float]]] = None,
    by: Optional[Union[str, List[str]]] = None
) -> pd.DataFrame:
    """
    Keep the rows of ``x`` with the ``n`` largest values of ``wt``.

    Rows are ranked with minimum ranks, so ties at the boundary are all
    kept and more than ``n`` rows may be returned. A negative ``n`` keeps
    the ``|n|`` smallest values instead. Rows with a missing weight are
    dropped. Row order is preserved.

    Parameters
    ----------
    x : pd.DataFrame
        Input table, e.g. the output of ``LDAResult.tidy()``
    n : int
        Number of rows to keep (per group when ``by`` is given)
    wt : str or array-like, optional
        Weight column name, or one weight per row. Defaults to the last
        column of ``x`` that is not a grouping column.
    by : str or list of str, optional
        Rank within groups defined by these columns

    Returns
    -------
    pd.DataFrame
        The selected rows of ``x``

    Examples
    --------
    >>> terms = result.tidy('beta')
    >>> top_n_terms(terms, 5, wt='beta', by='topic')

    Selecting the five least probable terms overall:
    >>> top_n_terms(terms, -5, wt='beta')
    """
    if isinstance(n, bool) or not isinstance(n, numbers.Real):
        raise ValueError(f"n must be a single number, got {n!r}")

    by = [by] if isinstance(by, str) else list(by or [])
    missing = [col for col in by if col not in x.columns]
    if missing:
        raise ValueError(f"Grouping columns not found: {missing}")

    if wt is None:
        candidates = [col for col in x.columns if col not in by]
        if not candidates:
            raise ValueError("x has no column to select by")
        wt = candidates[-1]
        logger.info("Selecting by %s", wt)

    if isinstance(wt, str):
        if wt not in x.columns:
            raise ValueError(f"Column '{wt}' not found")
        values = x[wt]
    else:
        values = pd.Series(np.asarray(wt), index=x.index)
        if len(values) != len(x):
            raise ValueError(f"wt must have one value per row ({len(x)}), got {len(values)}")

    ascending = n < 0
    if by:
        ranks = values.groupby([x[col] for col in by]).rank(method='min', ascending=ascending)
    else:
        ranks = values.rank(method='min', ascending=ascending)

    return x[(ranks <= abs(n)).to_numpy()]
