"""
Pytest Configuration and Fixtures
=================================

Shared fixtures for all tests.
"""
import matplotlib
matplotlib.use('Agg')

import pytest
import numpy as np

from pathlib import Path

from force_propagation.model.aerodynamics  import ConstantAerodynamicCoefficientInterface
from force_propagation.model.body          import Body, BodyRegistry
from force_propagation.model.constants     import SOLARSYSTEMCONSTANTS
from force_propagation.model.environment   import ExponentialAtmosphere, VehicleSystems
from force_propagation.model.ephemeris     import ConstantEphemeris
from force_propagation.model.gravity_field import GravityFieldModel


@pytest.fixture(scope="session")
def project_root():
  """Return the project root directory."""
  return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def scenarios_path(project_root):
  """Return the folder of the bundled scenario files."""
  return project_root / "scenarios"


@pytest.fixture
def leo_initial_state():
  """Circular LEO state at 400 km altitude, inclined 30 deg."""
  pos_mag = SOLARSYSTEMCONSTANTS.EARTH.RADIUS.EQUATOR + 400.0e3
  vel_mag = np.sqrt(SOLARSYSTEMCONSTANTS.EARTH.GP / pos_mag)
  inc     = np.radians(30.0)
  return np.array([
    pos_mag,                 # x [m]
    0.0,                     # y [m]
    0.0,                     # z [m]
    0.0,                     # vx [m/s]
    vel_mag * np.cos(inc),   # vy [m/s]
    vel_mag * np.sin(inc),   # vz [m/s]
  ])


@pytest.fixture
def earth_moon_vehicle_registry():
  """
  Earth at the origin with an exponential atmosphere, a fixed Moon and a vehicle
  with constant drag-only coefficients. The vehicle state is left at zero.
  """
  body_registry = BodyRegistry()
  body_registry.add_body(Body(
    name                = 'Earth',
    gravity_field_model = GravityFieldModel(SOLARSYSTEMCONSTANTS.EARTH.GP),
    atmosphere_model    = ExponentialAtmosphere.from_body_constants(SOLARSYSTEMCONSTANTS.EARTH),
  ))
  body_registry.add_body(Body(
    name                = 'Moon',
    gravity_field_model = GravityFieldModel(SOLARSYSTEMCONSTANTS.MOON.GP),
    ephemeris           = ConstantEphemeris([3.844e8, 0.0, 0.0, 0.0, 1022.0, 0.0]),
  ))
  body_registry.add_body(Body(
    name                              = 'Vehicle',
    mass                              = 500.0,
    aerodynamic_coefficient_interface = ConstantAerodynamicCoefficientInterface(
      reference_area     = 2.0,
      force_coefficients = [1.2, 0.0, 0.0],
    ),
    vehicle_systems                   = VehicleSystems(),
  ))
  body_registry.update_ephemerides(0.0)
  return body_registry
