"""Tests for the likelihood convergence monitor."""

import logging

import pytest

from tmlda._utils.monitor import LikelihoodMonitor


def test_stops_at_max_iterations():
    monitor = LikelihoodMonitor(convergence_threshold=None, max_iterations=3)

    assert monitor.check_convergence(-100.0) is False
    assert monitor.check_convergence(-90.0) is False
    assert monitor.check_convergence(-80.0) is True
    assert monitor.converged is False


def test_relative_change():
    monitor = LikelihoodMonitor()
    monitor.record(-100.0)
    assert monitor.relative_change() is None

    monitor.record(-90.0)
    assert monitor.relative_change() == pytest.approx(0.1)


def test_converges_only_after_minimum_iterations():
    """Test that a tiny change counts only from the third iteration on."""
    monitor = LikelihoodMonitor(convergence_threshold=1e-3, max_iterations=100)

    assert monitor.check_convergence(-100.0) is False
    assert monitor.check_convergence(-100.0) is False
    assert monitor.check_convergence(-100.0) is True
    assert monitor.converged is True
    assert monitor.get_convergence_stats()['num_iterations'] == 3


def test_worse_likelihood_never_converges():
    monitor = LikelihoodMonitor(convergence_threshold=1e-3, max_iterations=100)
    for value in [-100.0, -90.0, -85.0]:
        monitor.check_convergence(value)

    # Likelihood decreases: negative relative change
    assert monitor.check_convergence(-95.0) is False
    assert monitor.relative_change() < 0


def test_unlimited_iterations():
    monitor = LikelihoodMonitor(max_iterations=-1)
    for _ in range(5):
        assert monitor.check_convergence(-1.0) is False


def test_keep_and_stats():
    monitor = LikelihoodMonitor(max_iterations=10, keep=2)
    for value in [-10.0, -9.0, -8.0, -7.0, -6.0]:
        monitor.check_convergence(value)

    stats = monitor.get_convergence_stats()
    assert stats['kept_likelihoods'] == [-9.0, -7.0]
    assert stats['final_likelihood'] == -6.0
    assert len(stats['likelihood_history']) == 5
    assert len(stats['change_history']) == 4


def test_verbose_logging(caplog):
    monitor = LikelihoodMonitor(max_iterations=10, verbose=2, label='VEM')
    with caplog.at_level(logging.INFO, logger='tmlda._utils.monitor'):
        for value in [-10.0, -9.0, -8.0]:
            monitor.check_convergence(value)

    assert "VEM iteration 2" in caplog.text
    assert "VEM iteration 1:" not in caplog.text
