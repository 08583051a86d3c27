"""
Aerodynamic Coefficients Module
===============================

Aerodynamic coefficient interfaces of a vehicle, with composable control-surface
increments.

Summary:
--------
  AerodynamicCoefficientInterface
  ├── ConstantAerodynamicCoefficientInterface
  ├── CustomAerodynamicCoefficientInterface
  └── TabulatedAerodynamicCoefficientInterface

  ControlSurfaceIncrementInterface
  └── CustomControlSurfaceIncrementInterface

Coefficient vectors have six entries: three force coefficients followed by three
moment coefficients. With increments registered, the current coefficients are

  C_total = C_base(base variables) + sum over supplied surfaces of dC_s(surface variables)
"""
import numpy as np

from abc               import ABC, abstractmethod
from enum              import Enum
from typing            import Callable, Optional
from scipy.interpolate import RegularGridInterpolator

from force_propagation.model.errors import ConfigurationError, NotEvaluatedError


class AerodynamicCoefficientsIndependentVariables(Enum):
  MACH_NUMBER                = 'mach_number'
  ANGLE_OF_ATTACK            = 'angle_of_attack'
  ANGLE_OF_SIDESLIP          = 'angle_of_sideslip'
  ALTITUDE                   = 'altitude'
  CONTROL_SURFACE_DEFLECTION = 'control_surface_deflection'


def _check_independent_variables(
  independent_variables : list,
  expected_count        : int,
  owner                 : str,
) -> list:
  independent_variables = [float(value) for value in independent_variables]
  if len(independent_variables) != expected_count:
    raise ConfigurationError(
      f"{owner} expects {expected_count} independent variables, got {len(independent_variables)}"
    )
  return independent_variables


def _check_coefficient_vector(
  coefficients : np.ndarray,
  owner        : str,
) -> np.ndarray:
  coefficients = np.asarray(coefficients, dtype=float).reshape(-1)
  if coefficients.size != 6:
    raise ConfigurationError(f"{owner} must return 6 coefficients, got {coefficients.size}")
  return coefficients


class ControlSurfaceIncrementInterface(ABC):
  """
  Coefficient increment of a single control surface.
  """

  def __init__(
    self,
    independent_variable_names : list,
  ):
    self.independent_variable_names = list(independent_variable_names)
    self._current_coefficients      = None

  @property
  def number_of_independent_variables(self) -> int:
    return len(self.independent_variable_names)

  @abstractmethod
  def _compute_coefficients(
    self,
    independent_variables : list,
  ) -> np.ndarray:
    raise NotImplementedError

  def evaluate_coefficients(
    self,
    independent_variables : list,
  ) -> np.ndarray:
    """Checked increment at the given variables, without touching the cache."""
    independent_variables = _check_independent_variables(
      independent_variables, self.number_of_independent_variables, type(self).__name__,
    )
    return _check_coefficient_vector(self._compute_coefficients(independent_variables), type(self).__name__)

  def update_current_coefficients(
    self,
    independent_variables : list,
  ) -> None:
    self._current_coefficients = self.evaluate_coefficients(independent_variables)

  def get_current_coefficients(self) -> np.ndarray:
    if self._current_coefficients is None:
      raise NotEvaluatedError("Control surface increment requested before its first update")
    return self._current_coefficients.copy()


class CustomControlSurfaceIncrementInterface(ControlSurfaceIncrementInterface):
  """
  Increment given by a user function of the independent variables.
  """

  def __init__(
    self,
    coefficient_function       : Callable,
    independent_variable_names : list,
  ):
    """
    Input:
    ------
      coefficient_function : callable
        list[float] -> 6 coefficient increments (3 force, 3 moment).
      independent_variable_names : list
        AerodynamicCoefficientsIndependentVariables, in argument order.
    """
    super().__init__(independent_variable_names)
    self.coefficient_function = coefficient_function

  def _compute_coefficients(
    self,
    independent_variables : list,
  ) -> np.ndarray:
    return self.coefficient_function(independent_variables)


class AerodynamicCoefficientInterface(ABC):
  """
  Base aerodynamic coefficients of a vehicle plus its control-surface increments.
  """

  def __init__(
    self,
    reference_area                              : float,
    independent_variable_names                  : list,
    are_coefficients_in_aerodynamic_frame       : bool = True,
    are_coefficients_in_negative_axis_direction : bool = True,
  ):
    """
    Input:
    ------
      reference_area : float
        Aerodynamic reference area [m²].
      independent_variable_names : list
        AerodynamicCoefficientsIndependentVariables of the base coefficients, in order.
      are_coefficients_in_aerodynamic_frame : bool
        Force coefficients are (drag, side, lift) in the aerodynamic frame.
      are_coefficients_in_negative_axis_direction : bool
        Positive coefficients point along the negative frame axes.
    """
    if reference_area <= 0.0:
      raise ConfigurationError(f"Aerodynamic reference area must be positive, got {reference_area}")

    self.reference_area                              = float(reference_area)
    self.independent_variable_names                  = list(independent_variable_names)
    self.are_coefficients_in_aerodynamic_frame       = are_coefficients_in_aerodynamic_frame
    self.are_coefficients_in_negative_axis_direction = are_coefficients_in_negative_axis_direction

    self._control_surface_increments = {}
    self._current_coefficients       = None

  @property
  def number_of_independent_variables(self) -> int:
    return len(self.independent_variable_names)

  @property
  def control_surface_names(self) -> list:
    return list(self._control_surface_increments.keys())

  def set_control_surface_increments(
    self,
    control_surface_increments : dict,
  ) -> None:
    """Replace the registered control surfaces (surface name -> ControlSurfaceIncrementInterface)."""
    for surface_name, increment in control_surface_increments.items():
      if not isinstance(increment, ControlSurfaceIncrementInterface):
        raise ConfigurationError(f"Control surface '{surface_name}' is not a ControlSurfaceIncrementInterface")
    self._control_surface_increments = dict(control_surface_increments)

  def get_control_surface_independent_variable_names(
    self,
    surface_name : str,
  ) -> list:
    if surface_name not in self._control_surface_increments:
      raise ConfigurationError(f"Control surface '{surface_name}' is not registered")
    return self._control_surface_increments[surface_name].independent_variable_names

  @abstractmethod
  def _compute_base_coefficients(
    self,
    independent_variables : list,
  ) -> np.ndarray:
    raise NotImplementedError

  def _evaluate_base_coefficients(
    self,
    independent_variables : list,
  ) -> np.ndarray:
    independent_variables = _check_independent_variables(
      independent_variables, self.number_of_independent_variables, type(self).__name__,
    )
    return _check_coefficient_vector(self._compute_base_coefficients(independent_variables), type(self).__name__)

  def update_current_coefficients(
    self,
    independent_variables : list,
  ) -> None:
    """Update the base coefficients only."""
    self._current_coefficients = self._evaluate_base_coefficients(independent_variables)

  def update_full_current_coefficients(
    self,
    independent_variables                 : list,
    control_surface_independent_variables : Optional[dict] = None,
  ) -> None:
    """
    Update the base coefficients, then add the increment of every supplied surface.

    Input:
    ------
      independent_variables : list
        Values of the base independent variables.
      control_surface_independent_variables : dict, optional
        Surface name -> list of values of that surface's independent variables.
        Registered surfaces missing from the dict contribute nothing.

    Raises:
    -------
      ConfigurationError
        On an unregistered surface, a wrong number of variables or a malformed
        coefficient vector. No cached coefficient is changed in that case.
    """
    control_surface_independent_variables = control_surface_independent_variables or {}

    for surface_name in control_surface_independent_variables:
      if surface_name not in self._control_surface_increments:
        raise ConfigurationError(f"Control surface '{surface_name}' is not registered")

    # Evaluate everything before any cache is written
    coefficients = self._evaluate_base_coefficients(independent_variables)
    increments   = {
      surface_name: self._control_surface_increments[surface_name].evaluate_coefficients(surface_variables)
      for surface_name, surface_variables in control_surface_independent_variables.items()
    }

    for surface_name, increment_coefficients in increments.items():
      self._control_surface_increments[surface_name]._current_coefficients = increment_coefficients
      coefficients = coefficients + increment_coefficients
    self._current_coefficients = coefficients

  def get_current_aerodynamic_coefficients(self) -> np.ndarray:
    if self._current_coefficients is None:
      raise NotEvaluatedError("Aerodynamic coefficients requested before their first update")
    return self._current_coefficients.copy()

  def get_current_force_coefficients(self) -> np.ndarray:
    return self.get_current_aerodynamic_coefficients()[0:3]

  def get_current_moment_coefficients(self) -> np.ndarray:
    return self.get_current_aerodynamic_coefficients()[3:6]


class ConstantAerodynamicCoefficientInterface(AerodynamicCoefficientInterface):
  """Coefficients independent of flight conditions."""

  def __init__(
    self,
    reference_area      : float,
    force_coefficients  : np.ndarray,
    moment_coefficients : Optional[np.ndarray] = None,
    **kwargs,
  ):
    super().__init__(reference_area, [], **kwargs)
    moment_coefficients = np.zeros(3) if moment_coefficients is None else moment_coefficients
    self._coefficients  = _check_coefficient_vector(
      np.concatenate([np.asarray(force_coefficients, dtype=float), np.asarray(moment_coefficients, dtype=float)]),
      type(self).__name__,
    )

  def _compute_base_coefficients(
    self,
    independent_variables : list,
  ) -> np.ndarray:
    return self._coefficients


class CustomAerodynamicCoefficientInterface(AerodynamicCoefficientInterface):
  """Coefficients given by a user function of the independent variables."""

  def __init__(
    self,
    coefficient_function       : Callable,
    reference_area             : float,
    independent_variable_names : list,
    **kwargs,
  ):
    super().__init__(reference_area, independent_variable_names, **kwargs)
    self.coefficient_function = coefficient_function

  def _compute_base_coefficients(
    self,
    independent_variables : list,
  ) -> np.ndarray:
    return self.coefficient_function(independent_variables)


class TabulatedAerodynamicCoefficientInterface(AerodynamicCoefficientInterface):
  """
  Coefficients interpolated linearly on a regular grid of the independent variables.
  """

  def __init__(
    self,
    grid_points                : list,
    coefficient_table          : np.ndarray,
    reference_area             : float,
    independent_variable_names : list,
    **kwargs,
  ):
    """
    Input:
    ------
      grid_points : list
        One strictly increasing 1D array per independent variable.
      coefficient_table : np.ndarray
        Coefficients on the grid, shape (len(grid_points[0]), ..., 6).
    """
    super().__init__(reference_area, independent_variable_names, **kwargs)

    grid_points       = [np.asarray(axis, dtype=float) for axis in grid_points]
    coefficient_table = np.asarray(coefficient_table, dtype=float)

    if len(grid_points) != len(self.independent_variable_names):
      raise ConfigurationError(
        f"Got {len(grid_points)} grid axes for {len(self.independent_variable_names)} independent variables"
      )
    expected_shape = tuple(axis.size for axis in grid_points) + (6,)
    if coefficient_table.shape != expected_shape:
      raise ConfigurationError(f"Coefficient table must have shape {expected_shape}, got {coefficient_table.shape}")

    self._interpolator = RegularGridInterpolator(
      tuple(grid_points),
      coefficient_table,
      method       = 'linear',
      bounds_error = False,
      fill_value   = None,
    )

  def _compute_base_coefficients(
    self,
    independent_variables : list,
  ) -> np.ndarray:
    return self._interpolator(np.array([independent_variables]))[0]
