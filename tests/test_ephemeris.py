"""
Ephemeris Tests
===============
"""
import pytest
import numpy as np

import force_propagation.model.ephemeris as ephemeris_module

from force_propagation.model.body      import Body, BodyRegistry
from force_propagation.model.ephemeris import (
  ConstantEphemeris,
  SpiceEphemeris,
  TabulatedEphemeris,
  load_spice_kernels,
)
from force_propagation.model.errors    import ConfigurationError


class TestConstantEphemeris:
  """Tests for fixed-state ephemerides."""

  def test_state_is_constant(self):
    """The same state is returned at every epoch."""
    ephemeris = ConstantEphemeris([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
    assert np.array_equal(ephemeris.get_state(0.0),   [1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
    assert np.array_equal(ephemeris.get_state(1.0e6), [1.0, 2.0, 3.0, 4.0, 5.0, 6.0])

  def test_returned_state_is_a_copy(self):
    """Modifying a returned state leaves the ephemeris unchanged."""
    ephemeris = ConstantEphemeris(np.ones(6))
    state     = ephemeris.get_state(0.0)
    state[0]  = 100.0
    assert ephemeris.get_state(0.0)[0] == 1.0

  def test_invalid_shape_raises(self):
    """States have six components."""
    with pytest.raises(ConfigurationError):
      ConstantEphemeris([1.0, 2.0, 3.0])


class TestTabulatedEphemeris:
  """Tests for interpolated ephemerides."""

  def test_uniform_motion_is_reproduced(self):
    """Uniform motion is interpolated exactly between nodes."""
    times  = np.linspace(0.0, 100.0, 11)
    vel    = np.array([10.0, -5.0, 2.0])
    states = np.vstack([
      np.outer(vel, times) + np.array([[1.0e6], [2.0e6], [3.0e6]]),
      np.outer(vel, np.ones_like(times)),
    ])
    ephemeris = TabulatedEphemeris(times, states)

    expected = np.concatenate([np.array([1.0e6, 2.0e6, 3.0e6]) + vel * 37.5, vel])
    assert np.allclose(ephemeris.get_state(37.5), expected, rtol=1e-12, atol=1e-9)

  def test_short_table_falls_back_to_linear(self):
    """Tables with fewer than four epochs are interpolated linearly."""
    times     = np.array([0.0, 10.0, 20.0])
    states    = np.zeros((6, 3))
    states[0] = [0.0, 100.0, 400.0]
    ephemeris = TabulatedEphemeris(times, states)

    assert np.isclose(ephemeris.get_state(15.0)[0], 250.0, rtol=1e-14)

  def test_invalid_tables_raise(self):
    """Mismatched shapes and non-increasing epochs are rejected."""
    with pytest.raises(ConfigurationError):
      TabulatedEphemeris([0.0, 1.0, 2.0], np.zeros((6, 2)))
    with pytest.raises(ConfigurationError):
      TabulatedEphemeris([0.0, 2.0, 1.0], np.zeros((6, 3)))

  def test_registry_updates_from_ephemeris(self):
    """Registry ephemeris updates set body states at the requested epoch."""
    body_registry = BodyRegistry()
    body_registry.add_body(Body(
      name      = 'Moon',
      ephemeris = TabulatedEphemeris([0.0, 10.0], [[0.0, 10.0], [0.0, 0.0], [0.0, 0.0], [1.0, 1.0], [0.0, 0.0], [0.0, 0.0]], kind='linear'),
    ))
    body_registry.update_ephemerides(5.0)

    assert np.allclose(body_registry.get_body('Moon').state, [5.0, 0.0, 0.0, 1.0, 0.0, 0.0], rtol=1e-14, atol=0.0)


class TestSpiceEphemeris:
  """Tests for SPICE-backed ephemerides."""

  def test_converts_kilometers_to_meters(self, monkeypatch):
    """spkezr output in km and km/s is returned in m and m/s."""
    calls = []

    def fake_spkezr(target, time, frame, aberration_correction, observer):
      calls.append((target, time, frame, aberration_correction, observer))
      return np.array([1.0, 2.0, 3.0, 0.1, 0.2, 0.3]), 1.5

    monkeypatch.setattr(ephemeris_module.spice, 'spkezr', fake_spkezr)

    ephemeris = SpiceEphemeris('MOON', observer='EARTH')
    state     = ephemeris.get_state(86400.0)

    assert np.allclose(state, [1000.0, 2000.0, 3000.0, 100.0, 200.0, 300.0], rtol=1e-15, atol=0.0)
    assert calls == [('MOON', 86400.0, 'J2000', 'NONE', 'EARTH')]

  def test_missing_kernel_raises(self, tmp_path):
    """Loading a kernel that does not exist raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
      load_spice_kernels([tmp_path / 'missing.bsp'])
