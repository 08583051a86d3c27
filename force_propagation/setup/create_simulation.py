"""
Simulation Setup
================

Converts a parsed scenario configuration (see input/configuration.py) into the
objects the propagation loop runs on: body registry, acceleration models,
integrator settings and propagator settings.
"""
import numpy as np

from types import SimpleNamespace

from force_propagation.model.aerodynamics              import ConstantAerodynamicCoefficientInterface
from force_propagation.model.body                      import Body, BodyRegistry
from force_propagation.model.environment               import AerodynamicAngles, ExponentialAtmosphere, VehicleSystems
from force_propagation.model.ephemeris                 import ConstantEphemeris, SpiceEphemeris, TabulatedEphemeris
from force_propagation.model.errors                    import ConfigurationError
from force_propagation.model.gravity_field             import GravityFieldModel, create_gravity_field_from_named_coefficients
from force_propagation.propagation.dependent_variables import (
  BodyAerodynamicAngleVariableSaveSettings,
  DependentVariableSaveSettings,
  PropagationDependentVariables,
  SingleAccelerationDependentVariableSaveSettings,
  SingleDependentVariableSaveSettings,
)
from force_propagation.propagation.integrators         import IntegratorSettings
from force_propagation.propagation.propagator          import TranslationalStatePropagatorSettings
from force_propagation.propagation.termination         import (
  PropagationDependentVariableTerminationSettings,
  PropagationHybridTerminationSettings,
  PropagationTimeTerminationSettings,
)
from force_propagation.setup.acceleration_settings     import (
  AccelerationSettings,
  AvailableAcceleration,
  SphericalHarmonicAccelerationSettings,
)
from force_propagation.setup.create_accelerations      import create_acceleration_models_map


def rotation_about_z_axis(
  rotation_rate : float,
):
  """
  Rotation from the global frame to a frame spinning about z at a constant rate,
  aligned with the global frame at t = 0.
  """
  def rotation_to_body_fixed(time: float) -> np.ndarray:
    angle = rotation_rate * time
    cos_a = np.cos(angle)
    sin_a = np.sin(angle)
    return np.array([
      [ cos_a, sin_a, 0.0],
      [-sin_a, cos_a, 0.0],
      [   0.0,   0.0, 1.0],
    ])
  return rotation_to_body_fixed


def _create_ephemeris(
  ephemeris_config : SimpleNamespace,
):
  if ephemeris_config.type == 'constant':
    return ConstantEphemeris(ephemeris_config.state)
  if ephemeris_config.type == 'tabulated':
    return TabulatedEphemeris(ephemeris_config.times, ephemeris_config.states, ephemeris_config.kind)
  return SpiceEphemeris(ephemeris_config.target, ephemeris_config.observer, ephemeris_config.frame)


def create_body_registry(
  config : SimpleNamespace,
) -> BodyRegistry:
  """
  Create every body of the scenario.

  Input:
  ------
    config : SimpleNamespace
      Configuration object from build_config.

  Output:
  -------
    body_registry : BodyRegistry
      Registry with all bodies, states set at the initial epoch.
  """
  body_registry = BodyRegistry(global_frame_origin=config.global_frame_origin)

  for body_config in config.bodies:
    gravity_field_model = None
    if body_config.gravity_harmonics:
      gravity_field_model = create_gravity_field_from_named_coefficients(
        gravitational_parameter = body_config.gp,
        reference_radius        = body_config.radius,
        coefficients            = body_config.gravity_harmonics,
      )
    elif body_config.gp is not None:
      gravity_field_model = GravityFieldModel(body_config.gp)

    atmosphere_model = None
    if body_config.atmosphere is not None:
      atmosphere_model = ExponentialAtmosphere(
        density_sea_level = body_config.atmosphere.density_sea_level,
        scale_height      = body_config.atmosphere.scale_height,
        reference_radius  = body_config.atmosphere.reference_radius,
        speed_of_sound    = body_config.atmosphere.speed_of_sound,
        rotation_rate     = body_config.atmosphere.rotation_rate,
      )

    aerodynamic_coefficient_interface = None
    vehicle_systems                   = None
    if body_config.aerodynamics is not None:
      aerodynamic_coefficient_interface = ConstantAerodynamicCoefficientInterface(
        reference_area      = body_config.aerodynamics.reference_area,
        force_coefficients  = body_config.aerodynamics.force_coefficients,
        moment_coefficients = body_config.aerodynamics.moment_coefficients,
      )
      vehicle_systems = VehicleSystems()

    body = Body(
      name                              = body_config.name,
      state                             = body_config.state,
      mass                              = body_config.mass,
      gravity_field_model               = gravity_field_model,
      ephemeris                         = _create_ephemeris(body_config.ephemeris) if body_config.ephemeris is not None else None,
      rotation_to_body_fixed            = rotation_about_z_axis(body_config.rotation_rate) if body_config.rotation_rate else None,
      atmosphere_model                  = atmosphere_model,
      aerodynamic_coefficient_interface = aerodynamic_coefficient_interface,
      vehicle_systems                   = vehicle_systems,
    )
    body_registry.add_body(body)

  body_registry.update_ephemerides(config.integrator.initial_time)
  return body_registry


def create_acceleration_settings(
  acceleration_config : SimpleNamespace,
) -> AccelerationSettings:
  try:
    acceleration_type = AvailableAcceleration(acceleration_config.type)
  except ValueError as error:
    options = ', '.join(member.value for member in AvailableAcceleration)
    raise ConfigurationError(f"Unknown acceleration type '{acceleration_config.type}'. Options: {options}") from error

  if acceleration_type == AvailableAcceleration.SPHERICAL_HARMONIC_GRAVITY:
    if acceleration_config.degree is None or acceleration_config.order is None:
      raise ConfigurationError("Spherical harmonic gravity requires 'degree' and 'order'")
    return SphericalHarmonicAccelerationSettings(
      maximum_degree    = int(acceleration_config.degree),
      maximum_order     = int(acceleration_config.order),
      mutual_attraction = acceleration_config.mutual_attraction,
    )
  return AccelerationSettings(acceleration_type, acceleration_config.mutual_attraction)


def create_selected_acceleration_map(
  config : SimpleNamespace,
) -> dict:
  return {
    affected_name: {
      exerting_name: [create_acceleration_settings(acceleration) for acceleration in accelerations]
      for exerting_name, accelerations in accelerations_of_body.items()
    }
    for affected_name, accelerations_of_body in config.accelerations.items()
  }


def create_dependent_variable_settings(
  variable_config : SimpleNamespace,
) -> SingleDependentVariableSaveSettings:
  try:
    variable_type = PropagationDependentVariables(variable_config.type)
  except ValueError as error:
    raise ConfigurationError(f"Unknown dependent variable kind '{variable_config.type}'") from error

  if variable_type == PropagationDependentVariables.AERODYNAMIC_ANGLE:
    angle_options = [angle.value for angle in AerodynamicAngles]
    if variable_config.angle not in angle_options:
      raise ConfigurationError(f"Aerodynamic angle variables require 'angle', one of: {', '.join(angle_options)}")
    return BodyAerodynamicAngleVariableSaveSettings(variable_config.body, AerodynamicAngles(variable_config.angle))

  if variable_type == PropagationDependentVariables.SINGLE_ACCELERATION:
    return SingleAccelerationDependentVariableSaveSettings(
      variable_config.body, variable_config.secondary, variable_config.index,
    )

  return SingleDependentVariableSaveSettings(variable_type, variable_config.body, variable_config.secondary)


def create_simulation(
  config : SimpleNamespace,
) -> SimpleNamespace:
  """
  Build everything the propagation loop needs from a configuration.

  Output:
  -------
    simulation : SimpleNamespace
      body_registry, acceleration_map, integrator_settings, propagator_settings.
  """
  body_registry    = create_body_registry(config)
  acceleration_map = create_acceleration_models_map(
    body_registry,
    create_selected_acceleration_map(config),
    dict(zip(config.bodies_to_propagate, config.central_bodies)),
  )

  integrator_settings = IntegratorSettings(
    method       = config.integrator.method,
    initial_time = config.integrator.initial_time,
    step_size    = config.integrator.step_size,
    rtol         = config.integrator.rtol,
    atol         = config.integrator.atol,
  )

  termination_settings = PropagationTimeTerminationSettings(config.termination.end_epoch)
  if config.termination.dependent_variable is not None:
    condition            = config.termination.dependent_variable
    termination_settings = PropagationHybridTerminationSettings(
      [
        termination_settings,
        PropagationDependentVariableTerminationSettings(
          create_dependent_variable_settings(condition.variable),
          condition.limit_value,
          condition.use_as_lower_limit,
        ),
      ],
      fulfill_single_condition = True,
    )

  dependent_variables_to_save = None
  if config.dependent_variables:
    dependent_variables_to_save = DependentVariableSaveSettings(
      [create_dependent_variable_settings(variable) for variable in config.dependent_variables],
      print_variable_indices = config.print_dependent_variable_indices,
    )

  propagator_settings = TranslationalStatePropagatorSettings(
    central_bodies              = config.central_bodies,
    acceleration_models         = acceleration_map,
    bodies_to_propagate         = config.bodies_to_propagate,
    initial_states              = config.initial_states,
    termination_settings        = termination_settings,
    dependent_variables_to_save = dependent_variables_to_save,
  )

  return SimpleNamespace(
    body_registry       = body_registry,
    acceleration_map    = acceleration_map,
    integrator_settings = integrator_settings,
    propagator_settings = propagator_settings,
  )
