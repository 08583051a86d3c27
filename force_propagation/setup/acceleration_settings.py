"""
Acceleration Settings
=====================

Declarative description of which body exerts which acceleration on which body.

  SelectedAccelerationMap : {affected: {exerting: [AccelerationSettings, ...]}}
  CentralBodyMap          : {affected: integration origin}

Insertion order of both maps is the evaluation order of the resulting models.
"""
from enum   import Enum
from typing import Optional

from force_propagation.model.errors import ConfigurationError


class AvailableAcceleration(Enum):
  CENTRAL_GRAVITY             = 'central_gravity'
  SPHERICAL_HARMONIC_GRAVITY  = 'spherical_harmonic_gravity'
  AERODYNAMIC                 = 'aerodynamic'


class AccelerationSettings:
  """
  Settings of a single acceleration.

  mutual_attraction:
    None  -> default of the acceleration type (True for central gravity,
             False for spherical harmonic gravity).
    True  -> the affected body's own gravitational parameter is added when the
             exerting body is the integration origin.
    False -> exerting body's gravitational parameter only.

  Spherical harmonic gravity with mutual_attraction=True scales the field with
  mu_exerting + mu_affected, the convention for setups where the affected body
  has a non-negligible mass (e.g. a vehicle at 0.1 of the central body's mu).
  """

  def __init__(
    self,
    acceleration_type : AvailableAcceleration,
    mutual_attraction : Optional[bool] = None,
  ):
    self.acceleration_type = AvailableAcceleration(acceleration_type)
    self.mutual_attraction = mutual_attraction

  def uses_mutual_attraction(self) -> bool:
    if self.mutual_attraction is not None:
      return bool(self.mutual_attraction)
    return self.acceleration_type == AvailableAcceleration.CENTRAL_GRAVITY

  def __repr__(self) -> str:
    return f"{type(self).__name__}({self.acceleration_type.value})"


class SphericalHarmonicAccelerationSettings(AccelerationSettings):
  """Spherical harmonic gravity truncated at maximum_degree / maximum_order."""

  def __init__(
    self,
    maximum_degree    : int,
    maximum_order     : int,
    mutual_attraction : Optional[bool] = None,
  ):
    super().__init__(AvailableAcceleration.SPHERICAL_HARMONIC_GRAVITY, mutual_attraction)
    if maximum_degree < 0 or maximum_order < 0 or maximum_order > maximum_degree:
      raise ConfigurationError(
        f"Invalid spherical harmonic truncation: degree={maximum_degree}, order={maximum_order}"
      )
    self.maximum_degree = int(maximum_degree)
    self.maximum_order  = int(maximum_order)

  def __repr__(self) -> str:
    return f"{type(self).__name__}(degree={self.maximum_degree}, order={self.maximum_order})"


def central_gravity(
  mutual_attraction : Optional[bool] = None,
) -> AccelerationSettings:
  return AccelerationSettings(AvailableAcceleration.CENTRAL_GRAVITY, mutual_attraction)


def spherical_harmonic_gravity(
  maximum_degree    : int,
  maximum_order     : int,
  mutual_attraction : Optional[bool] = None,
) -> SphericalHarmonicAccelerationSettings:
  return SphericalHarmonicAccelerationSettings(maximum_degree, maximum_order, mutual_attraction)


def aerodynamic() -> AccelerationSettings:
  return AccelerationSettings(AvailableAcceleration.AERODYNAMIC)
