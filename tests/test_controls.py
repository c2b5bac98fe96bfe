"""Tests for control objects."""

import pytest

from tmlda import GibbsControl, VEMControl
from tmlda._core.controls import as_control


def test_vem_control_defaults():
    """Test VEM defaults and generated seeds."""
    control = VEMControl(nstart=3)

    assert control.estimate_alpha is True
    assert control.var_iter_max == 500
    assert control.var_tol == 1e-6
    assert control.em_iter_max == 1000
    assert control.em_tol == 1e-4
    assert control.initialize == 'random'
    assert len(control.seed) == 3
    assert len(set(control.seed)) == 3
    assert control.alpha is None


def test_gibbs_control_defaults():
    """Test Gibbs defaults: thin follows iter and seeds are left open."""
    control = GibbsControl(iter=300, nstart=2)

    assert control.delta == 0.1
    assert control.burnin == 0
    assert control.thin == 300
    assert control.seed == [None, None]


def test_scalar_seed_becomes_list():
    control = VEMControl(seed=5)
    assert control.seed == [5]


@pytest.mark.parametrize("kwargs, message", [
    ({'nstart': 0}, "nstart"),
    ({'verbose': -1}, "verbose"),
    ({'alpha': 0}, "alpha"),
    ({'initialize': 'beta'}, "initialize"),
    ({'em_iter_max': -2}, "em_iter_max"),
])
def test_vem_control_validation(kwargs, message):
    with pytest.raises(ValueError, match=message):
        VEMControl(**kwargs)


@pytest.mark.parametrize("kwargs, message", [
    ({'delta': 0}, "delta"),
    ({'iter': 0}, "iter"),
    ({'burnin': -1}, "burnin"),
    ({'thin': 0}, "thin"),
    ({'iter': 5, 'thin': 10}, "must not exceed iter"),
    ({'initialize': 'seeded'}, "initialize"),
])
def test_gibbs_control_validation(kwargs, message):
    with pytest.raises(ValueError, match=message):
        GibbsControl(**kwargs)


def test_as_control_from_dict_and_instance():
    """Test coercion from None, dicts and instances."""
    assert isinstance(as_control(None, VEMControl), VEMControl)

    control = as_control({'em_tol': 1e-3, 'seed': [1]}, VEMControl)
    assert control.em_tol == 1e-3
    assert control.seed == [1]

    original = GibbsControl(iter=10, seed=[3])
    copied = as_control(original, GibbsControl)
    assert copied == original
    assert copied is not original


def test_as_control_rejects_unknown_keys_and_wrong_class():
    with pytest.raises(ValueError, match="Unknown control parameters"):
        as_control({'burnin': 10}, VEMControl)
    with pytest.raises(ValueError, match="Expected a GibbsControl"):
        as_control(VEMControl(), GibbsControl)
    with pytest.raises(ValueError, match="control must be"):
        as_control([1, 2], VEMControl)


def test_to_dict_round_trips_fields():
    control = GibbsControl(iter=10, seed=[1])
    as_dict = control.to_dict()

    assert as_dict['iter'] == 10
    assert as_dict['thin'] == 10
    assert GibbsControl(**as_dict) == control
