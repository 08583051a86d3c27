"""
Acceleration Model Setup
========================

Turns a SelectedAccelerationMap and a CentralBodyMap into evaluable acceleration
models, choosing per (affected, exerting) pair between a direct model and a
third-body corrected model.

Resolution for an affected body A, exerting body P and integration origin O:
  1. P == O                  -> direct model, with mu_P + mu_A if mutual attraction applies
  2. O is a registered body  -> ThirdBodyAcceleration(direct(A <- P), direct(O <- P))
  3. O is the global origin  -> direct model with mu_P

Usage Example:
--------------
  selected_acceleration_map = {
    'Mars' : {
      'Sun'     : [central_gravity()],
      'Jupiter' : [central_gravity()],
    },
  }
  acceleration_map = create_acceleration_models_map(
    body_registry, selected_acceleration_map, {'Mars': 'Sun'},
  )
"""
from typing import Callable

from force_propagation.model.acceleration        import (
  AccelerationModel,
  AerodynamicAcceleration,
  CentralGravitationalAccelerationModel,
  SphericalHarmonicsGravitationalAccelerationModel,
  ThirdBodyAcceleration,
)
from force_propagation.model.body                import BodyRegistry
from force_propagation.model.environment         import FlightConditions
from force_propagation.model.errors              import ConfigurationError
from force_propagation.setup.acceleration_settings import (
  AccelerationSettings,
  AvailableAcceleration,
  SphericalHarmonicAccelerationSettings,
)


_ACCELERATION_MODEL_FACTORIES = {}


def register_acceleration_model_factory(
  acceleration_type : AvailableAcceleration,
  factory           : Callable,
) -> None:
  """
  Register the constructor used for an acceleration type.

  Input:
  ------
    acceleration_type : AvailableAcceleration
      Settings tag handled by the factory.
    factory : callable
      (body_registry, affected_name, exerting_name, central_body_name, settings) -> AccelerationModel
  """
  _ACCELERATION_MODEL_FACTORIES[AvailableAcceleration(acceleration_type)] = factory


def _get_registered_body(
  body_registry : BodyRegistry,
  body_name     : str,
  role          : str,
):
  if body_name not in body_registry:
    raise ConfigurationError(f"{role} body '{body_name}' is not registered")
  return body_registry.get_body(body_name)


def _validate_gravity_settings(
  body_registry : BodyRegistry,
  exerting_name : str,
  settings      : AccelerationSettings,
) -> None:
  exerting_body = body_registry.get_body(exerting_name)
  gravity_field = exerting_body.gravity_field_model
  if gravity_field is None:
    raise ConfigurationError(f"Body '{exerting_name}' exerts gravity but has no gravity field model")

  if isinstance(settings, SphericalHarmonicAccelerationSettings):
    if not gravity_field.has_spherical_harmonics():
      raise ConfigurationError(f"Body '{exerting_name}' has no spherical harmonic gravity field")
    if settings.maximum_degree > gravity_field.max_degree:
      raise ConfigurationError(
        f"Requested degree {settings.maximum_degree} exceeds the gravity field of '{exerting_name}' "
        f"(maximum degree {gravity_field.max_degree})"
      )


def _create_direct_gravity_model(
  body_registry           : BodyRegistry,
  affected_name           : str,
  exerting_name           : str,
  settings                : AccelerationSettings,
  gravitational_parameter : float,
) -> AccelerationModel:
  """
  Direct gravitational model of exerting_name acting on affected_name.
  """
  exerting_body = body_registry.get_body(exerting_name)
  body_pair     = (affected_name, exerting_name)

  if settings.acceleration_type == AvailableAcceleration.CENTRAL_GRAVITY:
    return CentralGravitationalAccelerationModel(
      position_of_affected_body_function = body_registry.state_function(affected_name),
      gravitational_parameter            = gravitational_parameter,
      position_of_exerting_body_function = body_registry.state_function(exerting_name),
      body_pair                          = body_pair,
    )

  return SphericalHarmonicsGravitationalAccelerationModel(
    position_of_affected_body_function = body_registry.state_function(affected_name),
    gravity_field                      = exerting_body.gravity_field_model,
    maximum_degree                     = settings.maximum_degree,
    maximum_order                      = settings.maximum_order,
    position_of_exerting_body_function = body_registry.state_function(exerting_name),
    gravitational_parameter            = gravitational_parameter,
    rotation_to_body_fixed_function    = exerting_body.get_rotation_to_body_fixed,
    body_pair                          = body_pair,
  )


def create_gravitational_acceleration_model(
  body_registry     : BodyRegistry,
  affected_name     : str,
  exerting_name     : str,
  central_body_name : str,
  settings          : AccelerationSettings,
) -> AccelerationModel:
  """
  Direct or third-body corrected gravity of exerting_name on affected_name, for
  integration relative to central_body_name.
  """
  _validate_gravity_settings(body_registry, exerting_name, settings)

  mu_exerting       = body_registry.get_body(exerting_name).gravitational_parameter
  mu_affected       = body_registry.get_body(affected_name).gravitational_parameter
  mutual_attraction = settings.uses_mutual_attraction()

  # Integration relative to the exerting body
  if exerting_name == central_body_name:
    return _create_direct_gravity_model(
      body_registry, affected_name, exerting_name, settings,
      mu_exerting + mu_affected if mutual_attraction else mu_exerting,
    )

  # Integration relative to a moving body: correct for its own acceleration
  if central_body_name in body_registry:
    mu_central = body_registry.get_body(central_body_name).gravitational_parameter
    # Only an explicit request folds the body masses into a third-body model
    fold_masses = settings.mutual_attraction is True
    return ThirdBodyAcceleration(
      _create_direct_gravity_model(
        body_registry, affected_name, exerting_name, settings,
        mu_exerting + mu_affected if fold_masses else mu_exerting,
      ),
      _create_direct_gravity_model(
        body_registry, central_body_name, exerting_name, settings,
        mu_exerting + mu_central if fold_masses else mu_exerting,
      ),
      central_body_name,
    )

  if not body_registry.is_global_frame_origin(central_body_name):
    raise ConfigurationError(
      f"Central body '{central_body_name}' of '{affected_name}' is neither registered nor the global frame origin"
    )

  return _create_direct_gravity_model(body_registry, affected_name, exerting_name, settings, mu_exerting)


def create_aerodynamic_acceleration_model(
  body_registry     : BodyRegistry,
  affected_name     : str,
  exerting_name     : str,
  central_body_name : str,
  settings          : AccelerationSettings,
) -> AccelerationModel:
  """
  Aerodynamic acceleration of affected_name in the atmosphere of exerting_name.
  Creates the vehicle's FlightConditions when it has none yet.
  """
  vehicle = body_registry.get_body(affected_name)
  if vehicle.mass is None or vehicle.mass <= 0.0:
    raise ConfigurationError(f"Body '{affected_name}' needs a positive mass for aerodynamic accelerations")

  flight_conditions = vehicle.flight_conditions
  if flight_conditions is None:
    flight_conditions = FlightConditions(body_registry, affected_name, exerting_name)
    vehicle.flight_conditions = flight_conditions
  elif flight_conditions.central_body_name != exerting_name:
    raise ConfigurationError(
      f"Body '{affected_name}' already has flight conditions relative to '{flight_conditions.central_body_name}'"
    )

  vehicle_handle = body_registry.get_handle(affected_name)

  def mass_function():
    return body_registry.resolve(vehicle_handle).mass

  return AerodynamicAcceleration(
    flight_conditions = flight_conditions,
    mass_function     = mass_function,
    body_pair         = (affected_name, exerting_name),
  )


register_acceleration_model_factory(AvailableAcceleration.CENTRAL_GRAVITY,            create_gravitational_acceleration_model)
register_acceleration_model_factory(AvailableAcceleration.SPHERICAL_HARMONIC_GRAVITY, create_gravitational_acceleration_model)
register_acceleration_model_factory(AvailableAcceleration.AERODYNAMIC,                create_aerodynamic_acceleration_model)


def create_acceleration_models_map(
  body_registry             : BodyRegistry,
  selected_acceleration_map : dict,
  central_bodies            : dict,
) -> dict:
  """
  Build the acceleration models of every (affected, exerting) pair.

  Input:
  ------
    body_registry : BodyRegistry
      Bodies of the scenario.
    selected_acceleration_map : dict
      {affected: {exerting: [AccelerationSettings, ...]}}
    central_bodies : dict
      {affected: integration origin}

  Output:
  -------
    acceleration_map : dict
      {affected: {exerting: [AccelerationModel, ...]}}, in settings order.

  Raises:
  -------
    ConfigurationError
      On self-loops, unknown bodies, missing origins or gravity fields, and
      unsupported acceleration types.
  """
  acceleration_map = {}
  for affected_name, accelerations_of_body in selected_acceleration_map.items():
    if affected_name not in central_bodies:
      raise ConfigurationError(f"No central body given for '{affected_name}'")
    central_body_name = central_bodies[affected_name]
    if central_body_name == affected_name:
      raise ConfigurationError(f"Body '{affected_name}' cannot be its own central body")

    _get_registered_body(body_registry, affected_name, 'Affected')

    models_of_body = {}
    for exerting_name, settings_list in accelerations_of_body.items():
      if exerting_name == affected_name:
        raise ConfigurationError(f"Body '{affected_name}' cannot exert an acceleration on itself")
      _get_registered_body(body_registry, exerting_name, 'Exerting')

      models = []
      for settings in settings_list:
        factory = _ACCELERATION_MODEL_FACTORIES.get(settings.acceleration_type)
        if factory is None:
          raise ConfigurationError(f"No acceleration model factory registered for {settings.acceleration_type}")
        models.append(factory(body_registry, affected_name, exerting_name, central_body_name, settings))
      models_of_body[exerting_name] = models

    acceleration_map[affected_name] = models_of_body

  return acceleration_map
