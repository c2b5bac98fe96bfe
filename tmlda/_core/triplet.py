"""Sparse document-term matrices in triplet form.

A ``SimpleTripletMatrix`` stores the non-zero cells of a documents x terms
matrix as three parallel arrays (row index, column index, value). This is
the layout both estimation engines consume.
"""

from collections import Counter
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
import scipy.sparse as sp


class SimpleTripletMatrix:
    """
    Sparse matrix stored as (i, j, v) triplets.

    Attributes
    ----------
    i : np.ndarray of int
        0-based row (document) index of each non-zero cell
    j : np.ndarray of int
        0-based column (term) index of each non-zero cell
    v : np.ndarray
        Cell values
    nrow, ncol : int
        Matrix dimensions
    documents : list, optional
        Row labels
    terms : list, optional
        Column labels
    weighting : str
        'tf' for raw counts, 'tfidf' for weighted matrices
    """

    def __init__(
        self,
        i,
        j,
        v,
        nrow: int,
        ncol: int,
        documents: Optional[List] = None,
        terms: Optional[List] = None,
        weighting: str = 'tf'
    ):
        self.i = np.asarray(i, dtype=np.int64)
        self.j = np.asarray(j, dtype=np.int64)
        self.v = np.asarray(v)
        self.nrow = int(nrow)
        self.ncol = int(ncol)

        if not (len(self.i) == len(self.j) == len(self.v)):
            raise ValueError("i, j and v must have the same length")
        if len(self.i) and (self.i.min() < 0 or self.i.max() >= self.nrow):
            raise ValueError(f"Row indices must lie in [0, {self.nrow})")
        if len(self.j) and (self.j.min() < 0 or self.j.max() >= self.ncol):
            raise ValueError(f"Column indices must lie in [0, {self.ncol})")

        self.documents = list(documents) if documents is not None else None
        self.terms = list(terms) if terms is not None else None
        if self.documents is not None and len(self.documents) != self.nrow:
            raise ValueError(f"documents length ({len(self.documents)}) must match nrow ({self.nrow})")
        if self.terms is not None and len(self.terms) != self.ncol:
            raise ValueError(f"terms length ({len(self.terms)}) must match ncol ({self.ncol})")

        self.weighting = weighting

    @property
    def shape(self):
        return (self.nrow, self.ncol)

    def row_sums(self) -> np.ndarray:
        return np.bincount(self.i, weights=self.v, minlength=self.nrow)

    def col_sums(self) -> np.ndarray:
        return np.bincount(self.j, weights=self.v, minlength=self.ncol)

    def to_coo(self) -> sp.coo_matrix:
        return sp.coo_matrix((self.v, (self.i, self.j)), shape=self.shape)

    def to_dense(self) -> np.ndarray:
        return self.to_coo().toarray()

    def select_columns(self, columns: Sequence[int]) -> 'SimpleTripletMatrix':
        """
        Return a matrix restricted to ``columns`` in the given order.

        Cells in columns that are not selected are dropped; the remaining
        column indices are renumbered to positions within ``columns``.
        """
        columns = np.asarray(columns, dtype=np.int64)
        position = np.full(self.ncol, -1, dtype=np.int64)
        position[columns] = np.arange(len(columns))
        new_j = position[self.j]
        keep = new_j >= 0
        terms = [self.terms[c] for c in columns] if self.terms is not None else None
        return SimpleTripletMatrix(
            self.i[keep], new_j[keep], self.v[keep],
            nrow=self.nrow, ncol=len(columns),
            documents=self.documents, terms=terms,
            weighting=self.weighting
        )

    def __len__(self) -> int:
        return len(self.v)

    def __repr__(self) -> str:
        density = len(self.v) / max(self.nrow * self.ncol, 1)
        return (f"SimpleTripletMatrix(nrow={self.nrow}, ncol={self.ncol}, "
                f"non_zero={len(self.v)}, density={density:.3f}, "
                f"weighting='{self.weighting}')")


def _from_sparse(matrix, documents=None, terms=None) -> SimpleTripletMatrix:
    coo = sp.coo_matrix(matrix)
    coo.sum_duplicates()
    keep = coo.data != 0
    return SimpleTripletMatrix(
        coo.row[keep], coo.col[keep], coo.data[keep],
        nrow=coo.shape[0], ncol=coo.shape[1],
        documents=documents, terms=terms
    )


def as_triplet_matrix(x) -> SimpleTripletMatrix:
    """
    Coerce ``x`` to a SimpleTripletMatrix.

    Accepts a SimpleTripletMatrix (returned unchanged), any scipy.sparse
    matrix, a pandas DataFrame (index becomes document labels, columns
    become term labels), a NumPy array or a nested list.
    """
    if isinstance(x, SimpleTripletMatrix):
        return x
    if sp.issparse(x):
        return _from_sparse(x)

    if isinstance(x, pd.DataFrame):
        return _from_sparse(
            x.to_numpy(),
            documents=x.index.tolist(),
            terms=x.columns.tolist()
        )

    array = np.asarray(x)
    if array.ndim != 2:
        raise ValueError(f"x must be 2D, got shape {array.shape}")
    if not np.issubdtype(array.dtype, np.number):
        raise ValueError(f"x must be numeric, got dtype {array.dtype}")
    return _from_sparse(array)


def document_term_matrix(
    texts: Sequence[Sequence[str]],
    documents: Optional[List] = None,
    weighting: str = 'tf'
) -> SimpleTripletMatrix:
    """
    Build a document-term matrix from tokenised documents.

    Parameters
    ----------
    texts : sequence of token sequences
        One list of tokens per document
    documents : list, optional
        Document labels; defaults to positions
    weighting : {'tf', 'tfidf'}, default='tf'
        'tf' keeps raw counts. 'tfidf' multiplies each count by
        log2(num_docs / document_frequency), normalised by document length.

    Returns
    -------
    SimpleTripletMatrix
        Terms are sorted alphabetically.
    """
    if weighting not in ('tf', 'tfidf'):
        raise ValueError(f"weighting must be 'tf' or 'tfidf', got '{weighting}'")

    counts = [Counter(tokens) for tokens in texts]
    terms = sorted(set().union(*counts)) if counts else []
    term_index = {term: idx for idx, term in enumerate(terms)}

    rows, cols, values = [], [], []
    for d, doc_counts in enumerate(counts):
        for term, count in doc_counts.items():
            rows.append(d)
            cols.append(term_index[term])
            values.append(count)

    i = np.asarray(rows, dtype=np.int64)
    j = np.asarray(cols, dtype=np.int64)
    v = np.asarray(values, dtype=np.int64)

    if weighting == 'tfidf' and len(v):
        num_docs = len(counts)
        doc_freq = np.bincount(j, minlength=len(terms))
        doc_len = np.bincount(i, weights=v, minlength=num_docs)
        v = (v / doc_len[i]) * np.log2(num_docs / doc_freq[j])

    return SimpleTripletMatrix(
        i, j, v,
        nrow=len(counts), ncol=len(terms),
        documents=documents if documents is not None else list(range(len(counts))),
        terms=terms,
        weighting=weighting
    )
