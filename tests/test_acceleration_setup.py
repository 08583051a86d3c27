"""
Acceleration Setup Tests
========================

Creation of acceleration models from settings: direct versus third-body models,
mutual attraction and configuration errors.
"""
import pytest
import numpy as np

import force_propagation.setup.create_accelerations as create_accelerations_module

from force_propagation.model.acceleration             import (
  AccelerationModel,
  AerodynamicAcceleration,
  CentralGravitationalAccelerationModel,
  SphericalHarmonicsGravitationalAccelerationModel,
  ThirdBodyAcceleration,
  update_and_get_acceleration,
)
from force_propagation.model.body                     import Body, BodyRegistry
from force_propagation.model.constants                import SOLARSYSTEMCONSTANTS
from force_propagation.model.errors                   import ConfigurationError
from force_propagation.model.gravity_field            import GravityFieldModel, SphericalHarmonicsGravityField
from force_propagation.setup.acceleration_settings    import (
  AvailableAcceleration,
  aerodynamic,
  central_gravity,
  spherical_harmonic_gravity,
)
from force_propagation.setup.create_accelerations     import create_acceleration_models_map, register_acceleration_model_factory


EARTH_GP     = 3.986004418e14
EARTH_RADIUS = 6378137.0

COSINE_COEFFICIENTS = np.array([
  [1.0,                    0.0,                    0.0,                   0.0,                    0.0,                    0.0                  ],
  [0.0,                    0.0,                    0.0,                   0.0,                    0.0,                    0.0                  ],
  [-4.841651437908150e-4, -2.066155090741760e-10,  2.439383573283130e-6,  0.0,                    0.0,                    0.0                  ],
  [ 9.571612070934730e-7,  2.030462010478640e-6,   9.047878948095281e-7,  7.213217571215680e-7,   0.0,                    0.0                  ],
  [ 5.399658666389910e-7, -5.361573893888670e-7,   3.505016239626490e-7,  9.908567666723210e-7,  -1.885196330230330e-7,   0.0                  ],
  [ 6.867029137366810e-8, -6.292119230425290e-8,   6.520780431761640e-7, -4.518471523288430e-7,  -2.953287611756290e-7,   1.748117954960020e-7 ],
])

SINE_COEFFICIENTS = np.array([
  [0.0,  0.0,                    0.0,                    0.0,                    0.0,                   0.0                  ],
  [0.0,  0.0,                    0.0,                    0.0,                    0.0,                   0.0                  ],
  [0.0,  1.384413891379790e-9,  -1.400273703859340e-6,   0.0,                    0.0,                   0.0                  ],
  [0.0,  2.482004158568720e-7,  -6.190054751776180e-7,   1.414349261929410e-6,   0.0,                   0.0                  ],
  [0.0, -4.735673465180860e-7,   6.624800262758290e-7,  -2.009567235674520e-7,   3.088038821491940e-7,  0.0                  ],
  [0.0, -9.436980733957690e-8,  -3.233531925405220e-7,  -2.149554083060460e-7,   4.980705501023510e-8, -6.693799351801650e-7 ],
])

EARTH_STATE   = np.array([1.1e11, 0.5e11, 0.01e11, 0.0, 0.0, 0.0])
VEHICLE_STATE = EARTH_STATE + np.array([7.0e6, 8.0e6, 9.0e6, 0.0, 0.0, 0.0])


def earth_vehicle_registry(vehicle_gravity_field=None):
  body_registry = BodyRegistry()
  body_registry.add_body(Body(
    name                = 'Earth',
    state               = EARTH_STATE,
    gravity_field_model = SphericalHarmonicsGravityField(EARTH_GP, EARTH_RADIUS, COSINE_COEFFICIENTS, SINE_COEFFICIENTS),
  ))
  body_registry.add_body(Body(
    name                = 'Vehicle',
    state               = VEHICLE_STATE,
    gravity_field_model = vehicle_gravity_field,
  ))
  return body_registry


def sun_mars_jupiter_registry():
  body_registry = BodyRegistry()
  body_registry.add_body(Body('Sun',     state=np.zeros(6),                                      gravity_field_model=GravityFieldModel(SOLARSYSTEMCONSTANTS.SUN.GP)))
  body_registry.add_body(Body('Mars',    state=[2.279e11, 0.0, 0.0, 0.0, 24130.0, 0.0],          gravity_field_model=GravityFieldModel(SOLARSYSTEMCONSTANTS.MARS.GP)))
  body_registry.add_body(Body('Jupiter', state=[-5.0e11, 5.9e11, 1.0e10, -10000.0, -8000.0, 0.0], gravity_field_model=GravityFieldModel(SOLARSYSTEMCONSTANTS.JUPITER.GP)))
  return body_registry


class TestSphericalHarmonicSetup:
  """Tests for spherical harmonic models created from settings."""

  def test_matches_manually_created_model(self):
    """The created model reproduces a manually created one."""
    body_registry    = earth_vehicle_registry()
    acceleration_map = create_acceleration_models_map(
      body_registry,
      {'Vehicle': {'Earth': [spherical_harmonic_gravity(5, 5)]}},
      {'Vehicle': 'Earth'},
    )
    created_model = acceleration_map['Vehicle']['Earth'][0]
    assert isinstance(created_model, SphericalHarmonicsGravitationalAccelerationModel)

    manual_model = SphericalHarmonicsGravitationalAccelerationModel(
      position_of_affected_body_function = lambda: VEHICLE_STATE[0:3],
      gravity_field                      = body_registry.get_body('Earth').gravity_field_model,
      maximum_degree                     = 5,
      maximum_order                      = 5,
      position_of_exerting_body_function = lambda: EARTH_STATE[0:3],
    )

    acc_created_vec = update_and_get_acceleration(created_model, 0.0)
    acc_manual_vec  = update_and_get_acceleration(manual_model,  0.0)

    assert np.allclose(acc_created_vec, acc_manual_vec, rtol=1e-15, atol=0.0)
    assert created_model.gravitational_parameter == EARTH_GP

  def test_default_excludes_affected_body_mass(self):
    """Spherical harmonic gravity uses the exerting body's parameter by default."""
    body_registry    = earth_vehicle_registry(GravityFieldModel(0.1 * EARTH_GP))
    acceleration_map = create_acceleration_models_map(
      body_registry,
      {'Vehicle': {'Earth': [spherical_harmonic_gravity(5, 5)]}},
      {'Vehicle': 'Earth'},
    )
    assert acceleration_map['Vehicle']['Earth'][0].gravitational_parameter == EARTH_GP

  def test_mutual_attraction_adds_affected_body_mass(self):
    """Explicit mutual attraction sums both gravitational parameters."""
    body_registry    = earth_vehicle_registry(GravityFieldModel(0.1 * EARTH_GP))
    acceleration_map = create_acceleration_models_map(
      body_registry,
      {'Vehicle': {'Earth': [spherical_harmonic_gravity(5, 5, mutual_attraction=True)]}},
      {'Vehicle': 'Earth'},
    )
    assert np.isclose(
      acceleration_map['Vehicle']['Earth'][0].gravitational_parameter, EARTH_GP + 0.1 * EARTH_GP, rtol=1e-15,
    )

  def test_degree_above_field_raises(self):
    """Truncation beyond the stored coefficients is rejected."""
    with pytest.raises(ConfigurationError):
      create_acceleration_models_map(
        earth_vehicle_registry(),
        {'Vehicle': {'Earth': [spherical_harmonic_gravity(6, 6)]}},
        {'Vehicle': 'Earth'},
      )

  def test_point_mass_field_raises(self):
    """Spherical harmonic gravity needs a spherical harmonic field."""
    body_registry = sun_mars_jupiter_registry()
    with pytest.raises(ConfigurationError):
      create_acceleration_models_map(
        body_registry,
        {'Mars': {'Sun': [spherical_harmonic_gravity(2, 0)]}},
        {'Mars': 'Sun'},
      )

  def test_invalid_truncation_raises(self):
    """Order above degree is rejected when the settings are created."""
    with pytest.raises(ConfigurationError):
      spherical_harmonic_gravity(2, 3)


class TestCentralGravitySetup:
  """Tests for central gravity with the global origin and a moving central body."""

  def test_global_origin_gives_direct_models(self):
    """With the solar system barycenter as origin every model is direct."""
    body_registry    = sun_mars_jupiter_registry()
    acceleration_map = create_acceleration_models_map(
      body_registry,
      {'Mars': {'Sun': [central_gravity()], 'Jupiter': [central_gravity()]}},
      {'Mars': 'SSB'},
    )
    sun_model     = acceleration_map['Mars']['Sun'][0]
    jupiter_model = acceleration_map['Mars']['Jupiter'][0]

    assert isinstance(sun_model,     CentralGravitationalAccelerationModel)
    assert isinstance(jupiter_model, CentralGravitationalAccelerationModel)
    assert sun_model.gravitational_parameter     == SOLARSYSTEMCONSTANTS.SUN.GP
    assert jupiter_model.gravitational_parameter == SOLARSYSTEMCONSTANTS.JUPITER.GP

    pos_mars_vec    = body_registry.get_body('Mars').position
    pos_jupiter_vec = body_registry.get_body('Jupiter').position
    pos_rel_vec     = pos_mars_vec - pos_jupiter_vec
    expected_vec    = -SOLARSYSTEMCONSTANTS.JUPITER.GP * pos_rel_vec / np.linalg.norm(pos_rel_vec)**3

    assert np.allclose(update_and_get_acceleration(jupiter_model, 0.0), expected_vec, rtol=np.finfo(float).eps, atol=0.0)

  def test_central_body_gives_mutual_and_third_body_models(self):
    """Relative to the Sun: mutual attraction for the Sun, third-body model for Jupiter."""
    body_registry    = sun_mars_jupiter_registry()
    acceleration_map = create_acceleration_models_map(
      body_registry,
      {'Mars': {'Sun': [central_gravity()], 'Jupiter': [central_gravity()]}},
      {'Mars': 'Sun'},
    )
    sun_model     = acceleration_map['Mars']['Sun'][0]
    jupiter_model = acceleration_map['Mars']['Jupiter'][0]

    assert isinstance(sun_model, CentralGravitationalAccelerationModel)
    assert np.isclose(
      sun_model.gravitational_parameter,
      SOLARSYSTEMCONSTANTS.SUN.GP + SOLARSYSTEMCONSTANTS.MARS.GP,
      rtol = np.finfo(float).eps,
    )

    assert isinstance(jupiter_model, ThirdBodyAcceleration)
    assert jupiter_model.central_body_name == 'Sun'
    direct_model  = jupiter_model.acceleration_model_for_body_undergoing_acceleration
    central_model = jupiter_model.acceleration_model_for_central_body
    assert direct_model.gravitational_parameter  == SOLARSYSTEMCONSTANTS.JUPITER.GP
    assert central_model.gravitational_parameter == SOLARSYSTEMCONSTANTS.JUPITER.GP

    pos_mars_vec    = body_registry.get_body('Mars').position
    pos_jupiter_vec = body_registry.get_body('Jupiter').position
    pos_sun_vec     = body_registry.get_body('Sun').position
    gp_jupiter      = SOLARSYSTEMCONSTANTS.JUPITER.GP
    expected_vec    = (
      -gp_jupiter * (pos_mars_vec - pos_jupiter_vec) / np.linalg.norm(pos_mars_vec - pos_jupiter_vec)**3
      + gp_jupiter * (pos_sun_vec - pos_jupiter_vec) / np.linalg.norm(pos_sun_vec - pos_jupiter_vec)**3
    )
    assert np.allclose(update_and_get_acceleration(jupiter_model, 0.0), expected_vec, rtol=1e-14, atol=0.0)

  def test_mutual_attraction_disabled(self):
    """mutual_attraction=False keeps the exerting body's parameter only."""
    acceleration_map = create_acceleration_models_map(
      sun_mars_jupiter_registry(),
      {'Mars': {'Sun': [central_gravity(mutual_attraction=False)]}},
      {'Mars': 'Sun'},
    )
    assert acceleration_map['Mars']['Sun'][0].gravitational_parameter == SOLARSYSTEMCONSTANTS.SUN.GP

  def test_third_body_folds_masses_on_explicit_request(self):
    """An explicit mutual attraction is applied to both third-body terms."""
    acceleration_map = create_acceleration_models_map(
      sun_mars_jupiter_registry(),
      {'Mars': {'Jupiter': [central_gravity(mutual_attraction=True)]}},
      {'Mars': 'Sun'},
    )
    jupiter_model = acceleration_map['Mars']['Jupiter'][0]
    assert np.isclose(
      jupiter_model.acceleration_model_for_body_undergoing_acceleration.gravitational_parameter,
      SOLARSYSTEMCONSTANTS.JUPITER.GP + SOLARSYSTEMCONSTANTS.MARS.GP,
      rtol = 1e-15,
    )
    assert np.isclose(
      jupiter_model.acceleration_model_for_central_body.gravitational_parameter,
      SOLARSYSTEMCONSTANTS.JUPITER.GP + SOLARSYSTEMCONSTANTS.SUN.GP,
      rtol = 1e-15,
    )

  def test_models_keep_settings_order(self):
    """Exerting bodies keep the order in which they were given."""
    acceleration_map = create_acceleration_models_map(
      sun_mars_jupiter_registry(),
      {'Mars': {'Jupiter': [central_gravity()], 'Sun': [central_gravity()]}},
      {'Mars': 'Sun'},
    )
    assert list(acceleration_map['Mars'].keys()) == ['Jupiter', 'Sun']

  def test_models_follow_body_states(self):
    """Models read body states when updated, not when created."""
    body_registry    = sun_mars_jupiter_registry()
    acceleration_map = create_acceleration_models_map(
      body_registry,
      {'Mars': {'Sun': [central_gravity()]}},
      {'Mars': 'Sun'},
    )
    sun_model = acceleration_map['Mars']['Sun'][0]
    acc_first = update_and_get_acceleration(sun_model, 0.0)

    body_registry.get_body('Mars').set_state([2.0 * 2.279e11, 0.0, 0.0, 0.0, 0.0, 0.0])
    acc_second = update_and_get_acceleration(sun_model, 1.0)

    assert np.isclose(acc_first[0] / acc_second[0], 4.0, rtol=1e-14)


class TestAccelerationSetupErrors:
  """Tests for invalid acceleration maps."""

  def test_self_acceleration_raises(self):
    """A body cannot act on itself."""
    with pytest.raises(ConfigurationError):
      create_acceleration_models_map(
        sun_mars_jupiter_registry(),
        {'Mars': {'Mars': [central_gravity()]}},
        {'Mars': 'Sun'},
      )

  def test_self_central_body_raises(self):
    """A body cannot be its own integration origin."""
    with pytest.raises(ConfigurationError):
      create_acceleration_models_map(
        sun_mars_jupiter_registry(),
        {'Mars': {'Sun': [central_gravity()]}},
        {'Mars': 'Mars'},
      )

  def test_missing_central_body_entry_raises(self):
    """Every affected body needs a central body."""
    with pytest.raises(ConfigurationError):
      create_acceleration_models_map(
        sun_mars_jupiter_registry(),
        {'Mars': {'Sun': [central_gravity()]}},
        {},
      )

  def test_unregistered_exerting_body_raises(self):
    """Exerting bodies must be registered."""
    with pytest.raises(ConfigurationError):
      create_acceleration_models_map(
        sun_mars_jupiter_registry(),
        {'Mars': {'Saturn': [central_gravity()]}},
        {'Mars': 'Sun'},
      )

  def test_unknown_origin_raises(self):
    """An origin that is neither registered nor the global origin is rejected."""
    with pytest.raises(ConfigurationError):
      create_acceleration_models_map(
        sun_mars_jupiter_registry(),
        {'Mars': {'Jupiter': [central_gravity()]}},
        {'Mars': 'Phobos'},
      )

  def test_missing_gravity_field_raises(self):
    """Gravity needs a gravity field on the exerting body."""
    body_registry = sun_mars_jupiter_registry()
    body_registry.add_body(Body('Lander', state=[1.0e11, 0.0, 0.0, 0.0, 0.0, 0.0]))
    with pytest.raises(ConfigurationError):
      create_acceleration_models_map(
        body_registry,
        {'Mars': {'Lander': [central_gravity()]}},
        {'Mars': 'Sun'},
      )

  def test_aerodynamics_without_mass_raises(self, earth_moon_vehicle_registry):
    """Aerodynamic accelerations need a vehicle mass."""
    earth_moon_vehicle_registry.get_body('Vehicle').mass = None
    with pytest.raises(ConfigurationError):
      create_acceleration_models_map(
        earth_moon_vehicle_registry,
        {'Vehicle': {'Earth': [aerodynamic()]}},
        {'Vehicle': 'Earth'},
      )

  def test_aerodynamics_without_atmosphere_raises(self, earth_moon_vehicle_registry):
    """Aerodynamic accelerations need an atmosphere on the exerting body."""
    with pytest.raises(ConfigurationError):
      create_acceleration_models_map(
        earth_moon_vehicle_registry,
        {'Vehicle': {'Moon': [aerodynamic()]}},
        {'Vehicle': 'Earth'},
      )

  def test_aerodynamics_attaches_flight_conditions(self, earth_moon_vehicle_registry):
    """Creating an aerodynamic model gives the vehicle its flight conditions."""
    acceleration_map = create_acceleration_models_map(
      earth_moon_vehicle_registry,
      {'Vehicle': {'Earth': [aerodynamic()]}},
      {'Vehicle': 'Earth'},
    )
    vehicle = earth_moon_vehicle_registry.get_body('Vehicle')
    model   = acceleration_map['Vehicle']['Earth'][0]

    assert isinstance(model, AerodynamicAcceleration)
    assert vehicle.flight_conditions is model.flight_conditions
    assert vehicle.flight_conditions.central_body_name == 'Earth'


class TestBodyRegistry:
  """Tests for body handles and state functions."""

  def test_replaced_body_invalidates_state_functions(self):
    """Models built before a body is replaced fail instead of reading stale data."""
    body_registry    = sun_mars_jupiter_registry()
    acceleration_map = create_acceleration_models_map(
      body_registry,
      {'Mars': {'Sun': [central_gravity()]}},
      {'Mars': 'Sun'},
    )
    body_registry.add_body(Body('Sun', state=np.zeros(6), gravity_field_model=GravityFieldModel(1.0)))

    with pytest.raises(ConfigurationError):
      acceleration_map['Mars']['Sun'][0].update(0.0)

  def test_replacing_body_bumps_generation(self):
    """Replacing a body issues a new handle for the same slot."""
    body_registry = BodyRegistry()
    first_handle  = body_registry.add_body(Body('Earth'))
    second_handle = body_registry.add_body(Body('Earth'))

    assert first_handle.index == second_handle.index
    assert first_handle != second_handle
    assert body_registry.resolve(second_handle).name == 'Earth'
    with pytest.raises(ConfigurationError):
      body_registry.resolve(first_handle)

  def test_global_origin_position_is_zero(self):
    """The unregistered global origin sits at zero."""
    body_registry = BodyRegistry()
    assert body_registry.is_global_frame_origin('SSB')
    assert np.array_equal(body_registry.state_function('SSB')(), np.zeros(3))

  def test_unregistered_body_raises(self):
    """Looking up an unknown body is a configuration error."""
    with pytest.raises(ConfigurationError):
      BodyRegistry().get_handle('Earth')

  def test_invalid_state_shape_raises(self):
    """Body states have six components."""
    with pytest.raises(ConfigurationError):
      Body('Earth', state=[1.0, 2.0, 3.0])


class ConstantAcceleration(AccelerationModel):
  """Fixed acceleration, used to check factory registration."""

  def __init__(self, acc_vec):
    super().__init__()
    self.acc_vec = np.asarray(acc_vec, dtype=float)

  def update(self, current_time):
    self._current_acceleration = self.acc_vec.copy()
    self._current_time         = current_time


class TestAccelerationModelFactories:
  """Tests for the acceleration model factory table."""

  def test_registered_factory_is_used(self, monkeypatch):
    """A registered factory builds the models of its acceleration type."""
    monkeypatch.setattr(
      create_accelerations_module, '_ACCELERATION_MODEL_FACTORIES',
      dict(create_accelerations_module._ACCELERATION_MODEL_FACTORIES),
    )
    calls = []

    def create_constant_acceleration(body_registry, affected_name, exerting_name, central_body_name, settings):
      calls.append((affected_name, exerting_name, central_body_name))
      return ConstantAcceleration([1.0, 2.0, 3.0])

    register_acceleration_model_factory(AvailableAcceleration.CENTRAL_GRAVITY, create_constant_acceleration)
    acceleration_map = create_acceleration_models_map(
      sun_mars_jupiter_registry(),
      {'Mars': {'Sun': [central_gravity()]}},
      {'Mars': 'SSB'},
    )

    models = acceleration_map['Mars']['Sun']
    assert calls == [('Mars', 'Sun', 'SSB')]
    assert isinstance(models[0], ConstantAcceleration)
    assert np.array_equal(update_and_get_acceleration(models[0], 5.0), [1.0, 2.0, 3.0])
    assert models[0].current_time == 5.0

  def test_built_in_factories_unchanged(self):
    """Registration in another test does not leak into the default table."""
    acceleration_map = create_acceleration_models_map(
      sun_mars_jupiter_registry(), {'Mars': {'Sun': [central_gravity()]}}, {'Mars': 'SSB'},
    )
    assert isinstance(acceleration_map['Mars']['Sun'][0], CentralGravitationalAccelerationModel)

  def test_missing_factory_raises(self, monkeypatch):
    """Acceleration types without a factory are rejected."""
    monkeypatch.delitem(create_accelerations_module._ACCELERATION_MODEL_FACTORIES, AvailableAcceleration.CENTRAL_GRAVITY)
    with pytest.raises(ConfigurationError):
      create_acceleration_models_map(
        sun_mars_jupiter_registry(), {'Mars': {'Sun': [central_gravity()]}}, {'Mars': 'SSB'},
      )
