"""Evaluation utilities for LDA models against ground truth.

This module provides functions for researchers conducting simulation studies
to evaluate parameter recovery against known ground truth.
"""

from tmlda.evaluation.evaluate import align_to_true_topics, compare_methods, evaluate_result

__all__ = ['evaluate_result', 'compare_methods', 'align_to_true_topics']
