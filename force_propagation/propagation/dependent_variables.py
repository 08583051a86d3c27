"""
Dependent Variables
===================

Quantities derived from the environment and the force models, recorded by the
propagation loop after every step.

Each SingleDependentVariableSaveSettings is turned into an extractor, a function
returning a 1D array read from the bodies, flight conditions and acceleration
models as last updated by the loop. Extractors are looked up in a registry keyed
by variable kind; unknown kinds are rejected when the loop is built.

Usage Example:
--------------
  dependent_variables = DependentVariableSaveSettings([
    SingleDependentVariableSaveSettings(PropagationDependentVariables.MACH_NUMBER, 'Vehicle'),
    BodyAerodynamicAngleVariableSaveSettings('Vehicle', AerodynamicAngles.ANGLE_OF_ATTACK),
    SingleAccelerationDependentVariableSaveSettings('Vehicle', 'Moon'),
  ])
"""
import numpy as np

from enum   import Enum
from typing import Callable, Optional

from force_propagation.model.body        import BodyRegistry
from force_propagation.model.environment import AerodynamicAngles
from force_propagation.model.errors      import ConfigurationError, NotEvaluatedError


class PropagationDependentVariables(Enum):
  MACH_NUMBER                     = 'mach_number'
  ALTITUDE                        = 'altitude'
  AIRSPEED                        = 'airspeed'
  DENSITY                         = 'density'
  AERODYNAMIC_ANGLE               = 'aerodynamic_angle'
  CONTROL_SURFACE_DEFLECTION      = 'control_surface_deflection'
  AERODYNAMIC_FORCE_COEFFICIENTS  = 'aerodynamic_force_coefficients'
  AERODYNAMIC_MOMENT_COEFFICIENTS = 'aerodynamic_moment_coefficients'
  RELATIVE_POSITION               = 'relative_position'
  RELATIVE_VELOCITY               = 'relative_velocity'
  RELATIVE_DISTANCE               = 'relative_distance'
  TOTAL_ACCELERATION              = 'total_acceleration'
  TOTAL_ACCELERATION_NORM         = 'total_acceleration_norm'
  SINGLE_ACCELERATION             = 'single_acceleration'


class SingleDependentVariableSaveSettings:
  """
  One dependent variable of a body, optionally qualified by a secondary key
  (a second body, a control surface, an aerodynamic angle).
  """

  def __init__(
    self,
    variable_type   : PropagationDependentVariables,
    associated_body : str,
    secondary_body  : Optional[str] = None,
  ):
    self.variable_type   = variable_type
    self.associated_body = associated_body
    self.secondary_body  = secondary_body

  def __repr__(self) -> str:
    return f"{type(self).__name__}({self.variable_type}, '{self.associated_body}', {self.secondary_body!r})"


class BodyAerodynamicAngleVariableSaveSettings(SingleDependentVariableSaveSettings):

  def __init__(
    self,
    associated_body : str,
    angle           : AerodynamicAngles,
  ):
    super().__init__(PropagationDependentVariables.AERODYNAMIC_ANGLE, associated_body)
    self.angle = AerodynamicAngles(angle)


class SingleAccelerationDependentVariableSaveSettings(SingleDependentVariableSaveSettings):

  def __init__(
    self,
    associated_body    : str,
    exerting_body      : str,
    acceleration_index : int = 0,
  ):
    super().__init__(PropagationDependentVariables.SINGLE_ACCELERATION, associated_body, exerting_body)
    self.acceleration_index = int(acceleration_index)


class DependentVariableSaveSettings:
  """Ordered list of the dependent variables to record."""

  def __init__(
    self,
    dependent_variables    : list,
    print_variable_indices : bool = True,
  ):
    self.dependent_variables    = list(dependent_variables)
    self.print_variable_indices = print_variable_indices


class DependentVariableContext:
  """
  What extractors read from: the body registry, the acceleration models and the
  total acceleration of each propagated body at the last force evaluation.
  """

  def __init__(
    self,
    body_registry    : BodyRegistry,
    acceleration_map : dict,
  ):
    self.body_registry       = body_registry
    self.acceleration_map    = acceleration_map
    self.total_accelerations = {}

  def get_total_acceleration(
    self,
    body_name : str,
  ) -> np.ndarray:
    if body_name not in self.total_accelerations:
      raise NotEvaluatedError(f"Total acceleration of '{body_name}' requested before the first force evaluation")
    return self.total_accelerations[body_name].copy()


_VARIABLE_DESCRIPTIONS = {
  PropagationDependentVariables.MACH_NUMBER                     : 'Mach number',
  PropagationDependentVariables.ALTITUDE                        : 'Altitude',
  PropagationDependentVariables.AIRSPEED                        : 'Airspeed',
  PropagationDependentVariables.DENSITY                         : 'Density',
  PropagationDependentVariables.AERODYNAMIC_ANGLE               : 'Aerodynamic angle',
  PropagationDependentVariables.CONTROL_SURFACE_DEFLECTION      : 'Control surface deflection',
  PropagationDependentVariables.AERODYNAMIC_FORCE_COEFFICIENTS  : 'Aerodynamic force coefficients',
  PropagationDependentVariables.AERODYNAMIC_MOMENT_COEFFICIENTS : 'Aerodynamic moment coefficients',
  PropagationDependentVariables.RELATIVE_POSITION               : 'Relative position',
  PropagationDependentVariables.RELATIVE_VELOCITY               : 'Relative velocity',
  PropagationDependentVariables.RELATIVE_DISTANCE               : 'Relative distance',
  PropagationDependentVariables.TOTAL_ACCELERATION              : 'Total acceleration',
  PropagationDependentVariables.TOTAL_ACCELERATION_NORM         : 'Total acceleration norm',
  PropagationDependentVariables.SINGLE_ACCELERATION             : 'Single acceleration',
}


def get_dependent_variable_id(
  settings : SingleDependentVariableSaveSettings,
) -> str:
  """Human-readable name of a dependent variable."""
  description = _VARIABLE_DESCRIPTIONS.get(settings.variable_type, str(settings.variable_type))

  if isinstance(settings, BodyAerodynamicAngleVariableSaveSettings):
    return f"{settings.angle.value.replace('_', ' ').capitalize()} of {settings.associated_body}"
  if isinstance(settings, SingleAccelerationDependentVariableSaveSettings):
    return (
      f"{description} of {settings.associated_body} due to {settings.secondary_body}"
      f" (model {settings.acceleration_index})"
    )
  if settings.variable_type == PropagationDependentVariables.CONTROL_SURFACE_DEFLECTION:
    return f"{description} of {settings.associated_body} surface {settings.secondary_body}"
  if settings.secondary_body is not None:
    return f"{description} of {settings.associated_body} w.r.t. {settings.secondary_body}"
  return f"{description} of {settings.associated_body}"


# =============================================================================
# Extractors
# =============================================================================

def _get_flight_conditions(
  settings : SingleDependentVariableSaveSettings,
  context  : DependentVariableContext,
):
  body = context.body_registry.get_body(settings.associated_body)
  if body.flight_conditions is None:
    raise ConfigurationError(
      f"'{get_dependent_variable_id(settings)}' requires flight conditions, "
      f"but '{settings.associated_body}' has no aerodynamic acceleration"
    )
  return body.flight_conditions


def _flight_condition_scalar(attribute: str) -> Callable:
  def factory(settings, context):
    flight_conditions = _get_flight_conditions(settings, context)
    return (lambda: np.array([getattr(flight_conditions, attribute)])), 1
  return factory


def _aerodynamic_angle(settings, context):
  flight_conditions = _get_flight_conditions(settings, context)
  if not isinstance(settings, BodyAerodynamicAngleVariableSaveSettings):
    raise ConfigurationError("Aerodynamic angle variables require BodyAerodynamicAngleVariableSaveSettings")
  angle = settings.angle
  return (lambda: np.array([flight_conditions.get_aerodynamic_angle(angle)])), 1


def _control_surface_deflection(settings, context):
  flight_conditions = _get_flight_conditions(settings, context)
  surface_name      = settings.secondary_body
  if surface_name is None:
    raise ConfigurationError("Control surface deflection variables require a surface name")
  if surface_name not in flight_conditions.aerodynamic_coefficient_interface.control_surface_names:
    raise ConfigurationError(f"Control surface '{surface_name}' is not registered on '{settings.associated_body}'")
  return (lambda: np.array([flight_conditions.get_control_surface_deflection(surface_name)])), 1


def _aerodynamic_coefficients(component: slice) -> Callable:
  def factory(settings, context):
    interface = _get_flight_conditions(settings, context).aerodynamic_coefficient_interface
    return (lambda: interface.get_current_aerodynamic_coefficients()[component]), 3
  return factory


def _relative_state(component: str, size: int, norm: bool = False) -> Callable:
  def factory(settings, context):
    if settings.secondary_body is None:
      raise ConfigurationError(f"'{get_dependent_variable_id(settings)}' requires a second body")
    body_function      = context.body_registry.state_function(settings.associated_body, component)
    secondary_function = context.body_registry.state_function(settings.secondary_body,  component)
    if norm:
      return (lambda: np.array([np.linalg.norm(body_function() - secondary_function())])), 1
    return (lambda: body_function() - secondary_function()), size
  return factory


def _total_acceleration(norm: bool) -> Callable:
  def factory(settings, context):
    body_name = settings.associated_body
    if body_name not in context.acceleration_map:
      raise ConfigurationError(f"'{body_name}' has no accelerations")
    if norm:
      return (lambda: np.array([np.linalg.norm(context.get_total_acceleration(body_name))])), 1
    return (lambda: context.get_total_acceleration(body_name)), 3
  return factory


def _single_acceleration(settings, context):
  if not isinstance(settings, SingleAccelerationDependentVariableSaveSettings):
    raise ConfigurationError("Single acceleration variables require SingleAccelerationDependentVariableSaveSettings")
  models = context.acceleration_map.get(settings.associated_body, {}).get(settings.secondary_body)
  if not models:
    raise ConfigurationError(
      f"No acceleration of '{settings.secondary_body}' acting on '{settings.associated_body}'"
    )
  if not 0 <= settings.acceleration_index < len(models):
    raise ConfigurationError(
      f"Acceleration index {settings.acceleration_index} out of range ({len(models)} models)"
    )
  model = models[settings.acceleration_index]
  return model.get_acceleration, 3


_EXTRACTOR_FACTORIES = {
  PropagationDependentVariables.MACH_NUMBER                     : _flight_condition_scalar('mach_number'),
  PropagationDependentVariables.ALTITUDE                        : _flight_condition_scalar('altitude'),
  PropagationDependentVariables.AIRSPEED                        : _flight_condition_scalar('airspeed'),
  PropagationDependentVariables.DENSITY                         : _flight_condition_scalar('density'),
  PropagationDependentVariables.AERODYNAMIC_ANGLE               : _aerodynamic_angle,
  PropagationDependentVariables.CONTROL_SURFACE_DEFLECTION      : _control_surface_deflection,
  PropagationDependentVariables.AERODYNAMIC_FORCE_COEFFICIENTS  : _aerodynamic_coefficients(slice(0, 3)),
  PropagationDependentVariables.AERODYNAMIC_MOMENT_COEFFICIENTS : _aerodynamic_coefficients(slice(3, 6)),
  PropagationDependentVariables.RELATIVE_POSITION               : _relative_state('position', 3),
  PropagationDependentVariables.RELATIVE_VELOCITY               : _relative_state('velocity', 3),
  PropagationDependentVariables.RELATIVE_DISTANCE               : _relative_state('position', 1, norm=True),
  PropagationDependentVariables.TOTAL_ACCELERATION              : _total_acceleration(norm=False),
  PropagationDependentVariables.TOTAL_ACCELERATION_NORM         : _total_acceleration(norm=True),
  PropagationDependentVariables.SINGLE_ACCELERATION             : _single_acceleration,
}


def register_dependent_variable_extractor(
  variable_type,
  factory       : Callable,
) -> None:
  """
  Register the extractor factory of a variable kind. The kind is a
  PropagationDependentVariables member or any other hashable key used as the
  variable_type of SingleDependentVariableSaveSettings.

  factory: (settings, context) -> (function returning np.ndarray, size)
  """
  _EXTRACTOR_FACTORIES[variable_type] = factory


def create_single_dependent_variable_function(
  settings : SingleDependentVariableSaveSettings,
  context  : DependentVariableContext,
) -> tuple:
  """
  Output:
  -------
    result : tuple
      (function, size, id) of the variable.
  """
  factory = _EXTRACTOR_FACTORIES.get(settings.variable_type)
  if factory is None:
    raise ConfigurationError(f"Unknown dependent variable kind: {settings.variable_type}")
  if settings.associated_body not in context.body_registry:
    raise ConfigurationError(f"Dependent variable body '{settings.associated_body}' is not registered")

  function, size = factory(settings, context)
  return function, size, get_dependent_variable_id(settings)


def create_dependent_variable_function(
  save_settings : DependentVariableSaveSettings,
  context       : DependentVariableContext,
) -> tuple:
  """
  Combine all dependent variables into one function returning a single vector.

  Output:
  -------
    result : tuple
      (function, ids) with ids a dict {(start_index, size): id}, in output order.
  """
  functions = []
  ids       = {}
  index     = 0
  for settings in save_settings.dependent_variables:
    function, size, variable_id = create_single_dependent_variable_function(settings, context)
    functions.append((function, size, variable_id))
    ids[(index, size)] = variable_id
    index += size

  total_size = index

  def dependent_variable_function() -> np.ndarray:
    values = np.zeros(total_size)
    start  = 0
    for function, size, _ in functions:
      values[start:start + size] = function()
      start += size
    return values

  return dependent_variable_function, ids


def format_dependent_variable_ids(
  ids : dict,
) -> list:
  """Lines like '[4:7] Aerodynamic moment coefficients of Vehicle'."""
  lines = []
  for (start, size), variable_id in ids.items():
    index_range = f"[{start}]" if size == 1 else f"[{start}:{start + size}]"
    lines.append(f"{index_range:<9} {variable_id}")
  return lines
