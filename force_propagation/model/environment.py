"""
Environment Module
==================

Environment models evaluated before the force models at every epoch.

Summary:
--------
  ExponentialAtmosphere       : density and speed of sound versus altitude
  VehicleSystems              : control-surface deflection table of a vehicle
  AerodynamicAngleCalculator  : angle of attack, sideslip and bank from guidance
  FlightConditions            : altitude, density, airspeed, Mach number and the
                                aerodynamic frame of a vehicle relative to a central
                                body; refreshes the vehicle's aerodynamic coefficients

Frames:
-------
  The aerodynamic frame has x along the airspeed velocity and, for zero bank angle,
  z in the local vertical plane pointing toward the central body. The bank angle
  rotates y and z about x.
"""
import numpy as np

from enum   import Enum
from typing import Callable, Optional

from force_propagation.model.aerodynamics import AerodynamicCoefficientsIndependentVariables
from force_propagation.model.body         import BodyRegistry
from force_propagation.model.errors       import ConfigurationError, NotEvaluatedError, NumericalError


class ExponentialAtmosphere:
  """
  Exponential atmosphere of a body, with a constant speed of sound.
  """

  def __init__(
    self,
    density_sea_level : float,
    scale_height      : float,
    reference_radius  : float,
    speed_of_sound    : float,
    rotation_rate     : float = 0.0,
  ):
    """
    Input:
    ------
      density_sea_level : float
        Density at zero altitude [kg/m³].
      scale_height : float
        Density scale height [m].
      reference_radius : float
        Radius of the zero-altitude sphere [m].
      speed_of_sound : float
        Speed of sound [m/s].
      rotation_rate : float
        Rotation rate of the atmosphere about the z-axis [rad/s].
    """
    if scale_height <= 0.0 or reference_radius <= 0.0 or speed_of_sound <= 0.0:
      raise ConfigurationError("Atmosphere scale height, reference radius and speed of sound must be positive")

    self.density_sea_level = float(density_sea_level)
    self.scale_height      = float(scale_height)
    self.reference_radius  = float(reference_radius)
    self.speed_of_sound    = float(speed_of_sound)
    self.rotation_rate     = float(rotation_rate)

  @classmethod
  def from_body_constants(
    cls,
    body_constants,
  ) -> 'ExponentialAtmosphere':
    """Build from a SOLARSYSTEMCONSTANTS entry (e.g. SOLARSYSTEMCONSTANTS.EARTH)."""
    return cls(
      density_sea_level = body_constants.RHO_0,
      scale_height      = body_constants.H_0,
      reference_radius  = body_constants.RADIUS.EQUATOR,
      speed_of_sound    = body_constants.SPEED_OF_SOUND,
      rotation_rate     = body_constants.OMEGA,
    )

  def get_density(
    self,
    altitude : float,
  ) -> float:
    if altitude < 0:
      altitude = 0
    return self.density_sea_level * np.exp(-altitude / self.scale_height)

  def get_speed_of_sound(
    self,
    altitude : float,
  ) -> float:
    return self.speed_of_sound


class VehicleSystems:
  """Current control-surface deflections of a vehicle [rad]."""

  def __init__(self):
    self._control_surface_deflections = {}

  def set_current_control_surface_deflection(
    self,
    surface_name : str,
    deflection   : float,
  ) -> None:
    self._control_surface_deflections[surface_name] = float(deflection)

  def has_control_surface_deflection(
    self,
    surface_name : str,
  ) -> bool:
    return surface_name in self._control_surface_deflections

  def get_current_control_surface_deflection(
    self,
    surface_name : str,
  ) -> float:
    if surface_name not in self._control_surface_deflections:
      raise NotEvaluatedError(f"No deflection set for control surface '{surface_name}'")
    return self._control_surface_deflections[surface_name]

  @property
  def control_surface_names(self) -> list:
    return list(self._control_surface_deflections.keys())


class AerodynamicAngles(Enum):
  ANGLE_OF_ATTACK   = 'angle_of_attack'
  ANGLE_OF_SIDESLIP = 'angle_of_sideslip'
  BANK_ANGLE        = 'bank_angle'


class AerodynamicAngleCalculator:
  """
  Holds the orientation angle functions set by a guidance system and evaluates
  them once per epoch. Angles without a function are zero.
  """

  def __init__(self):
    self._angle_functions       = {angle: None for angle in AerodynamicAngles}
    self._angle_update_function = None
    self._current_angles        = None
    self._current_time          = None

  def set_orientation_angle_functions(
    self,
    angle_of_attack_function   : Optional[Callable] = None,
    angle_of_sideslip_function : Optional[Callable] = None,
    bank_angle_function        : Optional[Callable] = None,
    angle_update_function      : Optional[Callable] = None,
  ) -> None:
    """
    Input:
    ------
      angle_of_attack_function : callable, optional
        () -> angle of attack [rad].
      angle_of_sideslip_function : callable, optional
        () -> angle of sideslip [rad].
      bank_angle_function : callable, optional
        () -> bank angle [rad].
      angle_update_function : callable, optional
        (time) -> None, called before the angle functions at every epoch.
    """
    self._angle_functions[AerodynamicAngles.ANGLE_OF_ATTACK]   = angle_of_attack_function
    self._angle_functions[AerodynamicAngles.ANGLE_OF_SIDESLIP] = angle_of_sideslip_function
    self._angle_functions[AerodynamicAngles.BANK_ANGLE]        = bank_angle_function
    self._angle_update_function                                = angle_update_function

  def update(
    self,
    time : float,
  ) -> None:
    if self._angle_update_function is not None:
      self._angle_update_function(time)

    current_angles = {}
    for angle, angle_function in self._angle_functions.items():
      current_angles[angle] = float(angle_function()) if angle_function is not None else 0.0
    self._current_angles = current_angles
    self._current_time   = time

  def get_aerodynamic_angle(
    self,
    angle : AerodynamicAngles,
  ) -> float:
    if self._current_angles is None:
      raise NotEvaluatedError("Aerodynamic angles requested before their first update")
    return self._current_angles[AerodynamicAngles(angle)]


def wind_from_body_rotation(
  angle_of_attack   : float,
  angle_of_sideslip : float,
) -> np.ndarray:
  """
  Rotation matrix from the body frame to the aerodynamic (wind) frame.
  """
  ca, sa = np.cos(angle_of_attack),   np.sin(angle_of_attack)
  cb, sb = np.cos(angle_of_sideslip), np.sin(angle_of_sideslip)
  return np.array([
    [ ca * cb,  sb,  sa * cb],
    [-ca * sb,  cb, -sa * sb],
    [-sa,       0.0, ca     ],
  ])


class FlightConditions:
  """
  Flight conditions of a vehicle in the atmosphere of a central body.
  """

  def __init__(
    self,
    body_registry     : BodyRegistry,
    body_name         : str,
    central_body_name : str,
    angle_calculator  : Optional[AerodynamicAngleCalculator] = None,
  ):
    """
    Input:
    ------
      body_registry : BodyRegistry
        Registry holding the vehicle and the central body.
      body_name : str
        Vehicle name. Must carry an aerodynamic coefficient interface.
      central_body_name : str
        Body whose atmosphere the vehicle flies through. Must carry an atmosphere.
      angle_calculator : AerodynamicAngleCalculator, optional
        Angle source, a fresh calculator (all angles zero) by default.
    """
    vehicle      = body_registry.get_body(body_name)
    central_body = body_registry.get_body(central_body_name)

    if vehicle.aerodynamic_coefficient_interface is None:
      raise ConfigurationError(f"Body '{body_name}' has no aerodynamic coefficient interface")
    if central_body.atmosphere_model is None:
      raise ConfigurationError(f"Central body '{central_body_name}' has no atmosphere model")

    self.body_name         = body_name
    self.central_body_name = central_body_name
    self.angle_calculator  = angle_calculator if angle_calculator is not None else AerodynamicAngleCalculator()

    self._vehicle_state      = body_registry.state_function(body_name,         'state')
    self._central_body_state = body_registry.state_function(central_body_name, 'state')

    self.atmosphere_model                  = central_body.atmosphere_model
    self.aerodynamic_coefficient_interface = vehicle.aerodynamic_coefficient_interface
    self.vehicle_systems                   = vehicle.vehicle_systems

    self._current_time = None

  def _require_update(self) -> None:
    if self._current_time is None:
      raise NotEvaluatedError(f"Flight conditions of '{self.body_name}' requested before their first update")

  def update(
    self,
    time : float,
  ) -> None:
    """
    Evaluate guidance, the flight state and the aerodynamic coefficients at an epoch.
    """
    self.angle_calculator.update(time)

    state_rel_vec = self._vehicle_state() - self._central_body_state()
    pos_vec       = state_rel_vec[0:3]
    vel_vec       = state_rel_vec[3:6]
    pos_mag       = np.linalg.norm(pos_vec)
    if pos_mag == 0.0:
      raise NumericalError(
        "Vehicle coincides with the center of its central body",
        time      = time,
        body_pair = (self.body_name, self.central_body_name),
      )

    # Velocity relative to rotating atmosphere
    omega_vec        = np.array([0.0, 0.0, self.atmosphere_model.rotation_rate])
    airspeed_vel_vec = vel_vec - np.cross(omega_vec, pos_vec)
    airspeed         = np.linalg.norm(airspeed_vel_vec)

    altitude       = pos_mag - self.atmosphere_model.reference_radius
    density        = self.atmosphere_model.get_density(altitude)
    speed_of_sound = self.atmosphere_model.get_speed_of_sound(altitude)

    self._position_vec     = pos_vec
    self._airspeed_vel_vec = airspeed_vel_vec
    self._airspeed         = airspeed
    self._altitude         = altitude
    self._density          = density
    self._mach_number      = airspeed / speed_of_sound
    self._current_time     = time

    self._aerodynamic_to_inertial = self._compute_aerodynamic_frame(time)
    self._update_aerodynamic_coefficients()

  def _compute_aerodynamic_frame(
    self,
    time : float,
  ) -> np.ndarray:
    if self._airspeed == 0.0:
      return np.eye(3)

    x_axis     = self._airspeed_vel_vec / self._airspeed
    radial_dir = self._position_vec / np.linalg.norm(self._position_vec)
    z_axis     = -(radial_dir - np.dot(radial_dir, x_axis) * x_axis)
    z_mag      = np.linalg.norm(z_axis)
    if z_mag < 1e-12:
      raise NumericalError(
        "Aerodynamic frame undefined for purely radial airspeed",
        time      = time,
        body_pair = (self.body_name, self.central_body_name),
        values    = {'airspeed_velocity': self._airspeed_vel_vec},
      )
    z_axis = z_axis / z_mag
    y_axis = np.cross(z_axis, x_axis)

    bank_angle = self.angle_calculator.get_aerodynamic_angle(AerodynamicAngles.BANK_ANGLE)
    if bank_angle != 0.0:
      cos_bank, sin_bank = np.cos(bank_angle), np.sin(bank_angle)
      y_axis, z_axis = (
        cos_bank * y_axis + sin_bank * z_axis,
        -sin_bank * y_axis + cos_bank * z_axis,
      )

    return np.column_stack([x_axis, y_axis, z_axis])

  def _independent_variable_value(
    self,
    variable     : AerodynamicCoefficientsIndependentVariables,
    surface_name : Optional[str] = None,
  ) -> float:
    if variable == AerodynamicCoefficientsIndependentVariables.MACH_NUMBER:
      return self._mach_number
    if variable == AerodynamicCoefficientsIndependentVariables.ANGLE_OF_ATTACK:
      return self.angle_calculator.get_aerodynamic_angle(AerodynamicAngles.ANGLE_OF_ATTACK)
    if variable == AerodynamicCoefficientsIndependentVariables.ANGLE_OF_SIDESLIP:
      return self.angle_calculator.get_aerodynamic_angle(AerodynamicAngles.ANGLE_OF_SIDESLIP)
    if variable == AerodynamicCoefficientsIndependentVariables.ALTITUDE:
      return self._altitude
    if variable == AerodynamicCoefficientsIndependentVariables.CONTROL_SURFACE_DEFLECTION:
      if surface_name is None:
        raise ConfigurationError("Control surface deflection is only an independent variable of control surface increments")
      return self.vehicle_systems.get_current_control_surface_deflection(surface_name)
    raise ConfigurationError(f"Unknown aerodynamic independent variable: {variable}")

  def _update_aerodynamic_coefficients(self) -> None:
    interface = self.aerodynamic_coefficient_interface

    independent_variables = [
      self._independent_variable_value(variable)
      for variable in interface.independent_variable_names
    ]

    # Surfaces without a current deflection are left out of the update
    control_surface_independent_variables = {}
    if self.vehicle_systems is not None:
      for surface_name in interface.control_surface_names:
        if not self.vehicle_systems.has_control_surface_deflection(surface_name):
          continue
        control_surface_independent_variables[surface_name] = [
          self._independent_variable_value(variable, surface_name)
          for variable in interface.get_control_surface_independent_variable_names(surface_name)
        ]

    interface.update_full_current_coefficients(independent_variables, control_surface_independent_variables)

  @property
  def current_time(self) -> Optional[float]:
    return self._current_time

  @property
  def altitude(self) -> float:
    self._require_update()
    return self._altitude

  @property
  def density(self) -> float:
    self._require_update()
    return self._density

  @property
  def airspeed(self) -> float:
    self._require_update()
    return self._airspeed

  @property
  def airspeed_velocity(self) -> np.ndarray:
    self._require_update()
    return self._airspeed_vel_vec.copy()

  @property
  def mach_number(self) -> float:
    self._require_update()
    return self._mach_number

  def get_aerodynamic_angle(
    self,
    angle : AerodynamicAngles,
  ) -> float:
    return self.angle_calculator.get_aerodynamic_angle(angle)

  def get_control_surface_deflection(
    self,
    surface_name : str,
  ) -> float:
    if self.vehicle_systems is None:
      raise ConfigurationError(f"Body '{self.body_name}' has no vehicle systems")
    return self.vehicle_systems.get_current_control_surface_deflection(surface_name)

  def get_aerodynamic_to_inertial_rotation(self) -> np.ndarray:
    self._require_update()
    return self._aerodynamic_to_inertial.copy()
