import numpy as np
import pytest
import torch

from stopping import GenericState, LSAtT, NLPAtX
from stopping.state import as_array


def test_fields_default_to_unset():
    state = NLPAtX(np.zeros(3))
    assert state.is_unset("gx")
    assert state.is_unset("start_time")
    assert not state.is_unset("x")


def test_update_sets_only_named_fields():
    state = NLPAtX(np.zeros(2))
    state.update(fx=1.5, gx=np.array([1.0, -1.0]))
    assert state.fx == 1.5
    assert np.array_equal(state.gx, [1.0, -1.0])
    assert state.Hx is None


def test_update_unknown_field_raises():
    with pytest.raises(AttributeError):
        GenericState(np.zeros(2)).update(fx=1.0)


def test_tensors_are_converted_to_numpy():
    state = NLPAtX(torch.ones(3, dtype=torch.float64))
    assert isinstance(state.x, np.ndarray)
    state.update(gx=torch.tensor([1.0, 2.0, 3.0]), fx=torch.tensor(2.0))
    assert isinstance(state.gx, np.ndarray)
    assert isinstance(state.fx, float)


def test_update_convert_coerces_lists():
    state = GenericState(np.zeros(2))
    state.update(convert=True, x=[1, 2])
    assert state.x.dtype == float


def test_as_array_scalars():
    assert as_array(None) is None
    assert as_array(np.float32(2.0)) == 2.0
    assert isinstance(as_array(3), float)


def test_has_nan_ignores_unset_and_time_fields():
    state = NLPAtX(np.zeros(2), current_time=float("nan"))
    assert not state.has_nan()
    state.update(gx=np.array([0.0, np.nan]))
    assert state.has_nan()


def test_has_nan_on_scalar_field():
    state = LSAtT(0.5)
    state.update(ht=float("nan"))
    assert state.has_nan()


def test_copy_is_deep():
    state = NLPAtX(np.zeros(2))
    clone = state.copy()
    clone.x[0] = 5.0
    assert state.x[0] == 0.0


def test_restore_in_place():
    state = NLPAtX(np.zeros(2), fx=3.0)
    snapshot = state.copy()
    state.update(x=np.ones(2), fx=None, gx=np.ones(2))
    restored = state.restore(snapshot)
    assert restored is state
    assert np.array_equal(state.x, np.zeros(2))
    assert state.fx == 3.0
    assert state.gx is None


def test_restore_rejects_other_state_type():
    with pytest.raises(TypeError):
        NLPAtX(np.zeros(2)).restore(GenericState(np.zeros(2)))


def test_as_dict_lists_every_field():
    names = set(LSAtT(1.0).as_dict())
    assert {"x", "d", "res", "ht", "gt", "h0", "g0", "current_score"} <= names
