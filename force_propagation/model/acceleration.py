"""
Acceleration Models Module
==========================

Acceleration exerted on one body by another, evaluated at a given epoch.

Summary:
--------
  AccelerationModel (update / get_acceleration)
  ├── CentralGravitationalAccelerationModel              : point mass
  ├── SphericalHarmonicsGravitationalAccelerationModel   : spherical harmonic expansion
  ├── ThirdBodyAcceleration                              : direct model minus the same model
  │                                                        acting on the integration origin
  └── AerodynamicAcceleration                            : 1/2 rho V² S C / m

Every model caches the acceleration of its last update. Reading the cache before
the first update raises NotEvaluatedError. Positions are obtained through
position functions (see BodyStateFunction), never through owned bodies.

Units:
------
- Position     : meters [m]
- Acceleration : meters per second squared [m/s²]
- Time         : seconds [s]

Sources:
--------
- Montenbruck, O., & Gill, E. (2000). Satellite Orbits: Models, Methods and Applications. Springer.
"""
import numpy as np

from abc    import ABC, abstractmethod
from typing import Callable, Optional

from force_propagation.model.environment   import AerodynamicAngles, FlightConditions, wind_from_body_rotation
from force_propagation.model.errors        import NotEvaluatedError, NumericalError, check_finite_vector
from force_propagation.model.gravity_field import SphericalHarmonicsGravityField, compute_harmonic_acceleration


class AccelerationModel(ABC):
  """
  Base class for acceleration models.
  """

  def __init__(self):
    self._current_acceleration = None
    self._current_time         = None

  @abstractmethod
  def update(
    self,
    current_time : float,
  ) -> None:
    """Recompute and cache the acceleration at current_time."""
    raise NotImplementedError

  def get_acceleration(self) -> np.ndarray:
    """Return the acceleration cached by the last update [m/s²]."""
    if self._current_acceleration is None:
      raise NotEvaluatedError(f"{type(self).__name__} acceleration requested before its first update")
    return self._current_acceleration.copy()

  @property
  def current_time(self) -> Optional[float]:
    return self._current_time


def update_and_get_acceleration(
  acceleration_model : AccelerationModel,
  current_time       : float,
) -> np.ndarray:
  acceleration_model.update(current_time)
  return acceleration_model.get_acceleration()


def compute_gravitational_acceleration(
  gravitational_parameter : float,
  pos_affected_vec        : np.ndarray,
  pos_exerting_vec        : np.ndarray,
  time                    : Optional[float] = None,
  body_pair               : Optional[tuple] = None,
) -> np.ndarray:
  """
  Point-mass gravitational acceleration.

  Input:
  ------
    gravitational_parameter : float
      Gravitational parameter of the exerting body [m³/s²].
    pos_affected_vec : np.ndarray
      Position of the body undergoing the acceleration [m].
    pos_exerting_vec : np.ndarray
      Position of the body exerting the acceleration [m].

  Output:
  -------
    acc_vec : np.ndarray
      Acceleration [m/s²].

  Raises:
  -------
    NumericalError
      If the two positions coincide or the result is not finite.
  """
  pos_rel_vec = pos_affected_vec - pos_exerting_vec
  pos_rel_mag = np.linalg.norm(pos_rel_vec)
  if pos_rel_mag == 0.0:
    raise NumericalError(
      "Zero separation in gravitational acceleration",
      time      = time,
      body_pair = body_pair,
      values    = {'pos_affected': pos_affected_vec, 'pos_exerting': pos_exerting_vec},
    )

  acc_vec = -gravitational_parameter * pos_rel_vec / pos_rel_mag**3
  return check_finite_vector(acc_vec, 'gravitational acceleration', time, body_pair)


class CentralGravitationalAccelerationModel(AccelerationModel):
  """
  Point-mass gravity of the exerting body.
  """

  def __init__(
    self,
    position_of_affected_body_function  : Callable,
    gravitational_parameter             : float,
    position_of_exerting_body_function  : Callable,
    body_pair                           : Optional[tuple] = None,
  ):
    """
    Input:
    ------
      position_of_affected_body_function : callable
        () -> position of the body undergoing the acceleration [m].
      gravitational_parameter : float
        Gravitational parameter used by the model [m³/s²].
      position_of_exerting_body_function : callable
        () -> position of the body exerting the acceleration [m].
      body_pair : tuple, optional
        (affected, exerting) body names, used in error messages.
    """
    super().__init__()
    self.position_of_affected_body_function = position_of_affected_body_function
    self.position_of_exerting_body_function = position_of_exerting_body_function
    self.gravitational_parameter            = float(gravitational_parameter)
    self.body_pair                          = body_pair

  def update(
    self,
    current_time : float,
  ) -> None:
    self._current_acceleration = compute_gravitational_acceleration(
      self.gravitational_parameter,
      np.asarray(self.position_of_affected_body_function(), dtype=float),
      np.asarray(self.position_of_exerting_body_function(), dtype=float),
      time      = current_time,
      body_pair = self.body_pair,
    )
    self._current_time = current_time


class SphericalHarmonicsGravitationalAccelerationModel(AccelerationModel):
  """
  Spherical harmonic gravity of the exerting body, truncated at a degree and order.

  The degree 0 term is evaluated as point-mass gravity in the inertial frame. The
  remaining terms are evaluated in the body-fixed frame of the exerting body and
  rotated back.
  """

  def __init__(
    self,
    position_of_affected_body_function : Callable,
    gravity_field                      : SphericalHarmonicsGravityField,
    maximum_degree                     : int,
    maximum_order                      : int,
    position_of_exerting_body_function : Callable,
    gravitational_parameter            : Optional[float]    = None,
    rotation_to_body_fixed_function    : Optional[Callable] = None,
    body_pair                          : Optional[tuple]    = None,
  ):
    """
    Input:
    ------
      position_of_affected_body_function : callable
        () -> position of the body undergoing the acceleration [m].
      gravity_field : SphericalHarmonicsGravityField
        Field of the exerting body.
      maximum_degree : int
        Maximum degree of the expansion.
      maximum_order : int
        Maximum order of the expansion.
      position_of_exerting_body_function : callable
        () -> position of the body exerting the acceleration [m].
      gravitational_parameter : float, optional
        Gravitational parameter used by the model, the field's one by default.
      rotation_to_body_fixed_function : callable, optional
        (time) -> 3x3 rotation from the global to the body-fixed frame. Identity by default.
      body_pair : tuple, optional
        (affected, exerting) body names, used in error messages.
    """
    super().__init__()
    self.position_of_affected_body_function = position_of_affected_body_function
    self.position_of_exerting_body_function = position_of_exerting_body_function
    self.gravity_field                      = gravity_field
    self.maximum_degree                     = int(maximum_degree)
    self.maximum_order                      = int(maximum_order)
    self.rotation_to_body_fixed_function    = rotation_to_body_fixed_function
    self.body_pair                          = body_pair
    self.gravitational_parameter            = float(
      gravitational_parameter if gravitational_parameter is not None else gravity_field.gravitational_parameter
    )

  def update(
    self,
    current_time : float,
  ) -> None:
    pos_affected_vec = np.asarray(self.position_of_affected_body_function(), dtype=float)
    pos_exerting_vec = np.asarray(self.position_of_exerting_body_function(), dtype=float)

    cosine_coefficients = self.gravity_field.unnormalized_cosine_coefficients
    sine_coefficients   = self.gravity_field.unnormalized_sine_coefficients

    # Point mass
    acc_vec = compute_gravitational_acceleration(
      self.gravitational_parameter * cosine_coefficients[0, 0],
      pos_affected_vec,
      pos_exerting_vec,
      time      = current_time,
      body_pair = self.body_pair,
    )

    # Harmonics in the body-fixed frame
    if self.maximum_degree >= 1:
      if self.rotation_to_body_fixed_function is None:
        rot_inertial_to_fixed = np.eye(3)
      else:
        rot_inertial_to_fixed = np.asarray(self.rotation_to_body_fixed_function(current_time), dtype=float)

      acc_fixed_vec = compute_harmonic_acceleration(
        body_fixed_pos_vec      = rot_inertial_to_fixed @ (pos_affected_vec - pos_exerting_vec),
        gravitational_parameter = self.gravitational_parameter,
        reference_radius        = self.gravity_field.reference_radius,
        cosine_coefficients     = cosine_coefficients,
        sine_coefficients       = sine_coefficients,
        max_degree              = self.maximum_degree,
        max_order               = self.maximum_order,
      )
      acc_vec = acc_vec + rot_inertial_to_fixed.T @ acc_fixed_vec

    self._current_acceleration = check_finite_vector(
      acc_vec, 'spherical harmonic acceleration', current_time, self.body_pair,
    )
    self._current_time = current_time


class ThirdBodyAcceleration(AccelerationModel):
  """
  Acceleration of a body relative to an integration origin, due to a third body P:

    a = a_direct(affected <- P) - a_direct(origin <- P)
  """

  def __init__(
    self,
    acceleration_model_for_body_undergoing_acceleration : AccelerationModel,
    acceleration_model_for_central_body                 : AccelerationModel,
    central_body_name                                   : str,
  ):
    """
    Input:
    ------
      acceleration_model_for_body_undergoing_acceleration : AccelerationModel
        Direct model of P acting on the affected body.
      acceleration_model_for_central_body : AccelerationModel
        Same model type of P acting on the integration origin.
      central_body_name : str
        Name of the integration origin.
    """
    super().__init__()
    if type(acceleration_model_for_body_undergoing_acceleration) is not type(acceleration_model_for_central_body):
      raise TypeError("Third-body acceleration requires two direct models of the same type")

    self.acceleration_model_for_body_undergoing_acceleration = acceleration_model_for_body_undergoing_acceleration
    self.acceleration_model_for_central_body                 = acceleration_model_for_central_body
    self.central_body_name                                   = central_body_name

  def update(
    self,
    current_time : float,
  ) -> None:
    self.acceleration_model_for_body_undergoing_acceleration.update(current_time)
    self.acceleration_model_for_central_body.update(current_time)
    self._current_acceleration = (
      self.acceleration_model_for_body_undergoing_acceleration.get_acceleration()
      - self.acceleration_model_for_central_body.get_acceleration()
    )
    self._current_time = current_time


class AerodynamicAcceleration(AccelerationModel):
  """
  Aerodynamic acceleration from the current flight conditions of a vehicle.

    F = sign * 1/2 rho V² S C,    a = F / m

  with C the current force coefficients and sign = -1 when positive coefficients
  point along negative frame axes (drag opposite to the airspeed velocity).
  """

  def __init__(
    self,
    flight_conditions : FlightConditions,
    mass_function     : Callable,
    body_pair         : Optional[tuple] = None,
  ):
    """
    Input:
    ------
      flight_conditions : FlightConditions
        Flight conditions of the vehicle, updated before this model.
      mass_function : callable
        () -> current vehicle mass [kg].
      body_pair : tuple, optional
        (vehicle, central body) names, used in error messages.
    """
    super().__init__()
    self.flight_conditions = flight_conditions
    self.mass_function     = mass_function
    self.body_pair         = body_pair

  def update(
    self,
    current_time : float,
  ) -> None:
    flight_conditions     = self.flight_conditions
    coefficient_interface = flight_conditions.aerodynamic_coefficient_interface

    dynamic_pressure = 0.5 * flight_conditions.density * flight_conditions.airspeed**2
    force_vec        = (
      dynamic_pressure * coefficient_interface.reference_area
      * coefficient_interface.get_current_force_coefficients()
    )
    if coefficient_interface.are_coefficients_in_negative_axis_direction:
      force_vec = -force_vec

    if not coefficient_interface.are_coefficients_in_aerodynamic_frame:
      force_vec = wind_from_body_rotation(
        flight_conditions.get_aerodynamic_angle(AerodynamicAngles.ANGLE_OF_ATTACK),
        flight_conditions.get_aerodynamic_angle(AerodynamicAngles.ANGLE_OF_SIDESLIP),
      ) @ force_vec

    mass = self.mass_function()
    if mass is None or mass <= 0.0:
      raise NumericalError(
        "Non-positive vehicle mass in aerodynamic acceleration",
        time      = current_time,
        body_pair = self.body_pair,
        values    = {'mass': mass},
      )

    acc_vec = flight_conditions.get_aerodynamic_to_inertial_rotation() @ force_vec / mass
    self._current_acceleration = check_finite_vector(acc_vec, 'aerodynamic acceleration', current_time, self.body_pair)
    self._current_time         = current_time
