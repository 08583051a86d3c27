"""
Gravity Field Module
====================

Gravity field models attached to bodies, and the spherical harmonic gradient
evaluation used by the spherical harmonics acceleration model.

Summary:
--------
  GravityFieldModel
  └── SphericalHarmonicsGravityField

Coefficients are stored fully normalized (as published in EGM2008, EGM96, ...)
and converted once to unnormalized form for the Cunningham recursion.

References:
- Montenbruck & Gill, "Satellite Orbits", Chapter 3.2
"""
import math
import numpy as np

from typing import Optional

from force_propagation.model.errors import ConfigurationError


class GravityFieldModel:
  """
  Point-mass gravity field, described by its gravitational parameter only.
  """

  def __init__(
    self,
    gravitational_parameter : float,
  ):
    """
    Input:
    ------
      gravitational_parameter : float
        Gravitational parameter of the body [m³/s²].
    """
    if not np.isfinite(gravitational_parameter) or gravitational_parameter < 0.0:
      raise ConfigurationError(f"Invalid gravitational parameter: {gravitational_parameter}")
    self._gravitational_parameter = float(gravitational_parameter)

  @property
  def gravitational_parameter(self) -> float:
    return self._gravitational_parameter

  def has_spherical_harmonics(self) -> bool:
    return False


class SphericalHarmonicsGravityField(GravityFieldModel):
  """
  Gravity field expanded in spherical harmonics up to a fixed degree and order.

  Notation:
    n : degree
    m : order
  """

  def __init__(
    self,
    gravitational_parameter : float,
    reference_radius        : float,
    cosine_coefficients     : np.ndarray,
    sine_coefficients       : np.ndarray,
  ):
    """
    Input:
    ------
      gravitational_parameter : float
        Gravitational parameter of the body [m³/s²].
      reference_radius : float
        Reference radius of the expansion [m].
      cosine_coefficients : np.ndarray
        Fully normalized C[n, m] table, shape (n_max + 1, n_max + 1).
      sine_coefficients : np.ndarray
        Fully normalized S[n, m] table, same shape as the cosine table.
    """
    super().__init__(gravitational_parameter)

    cosine_coefficients = np.array(cosine_coefficients, dtype=float)
    sine_coefficients   = np.array(sine_coefficients,   dtype=float)

    if reference_radius <= 0.0:
      raise ConfigurationError(f"Reference radius must be positive, got {reference_radius}")
    if cosine_coefficients.ndim != 2 or cosine_coefficients.shape[0] != cosine_coefficients.shape[1]:
      raise ConfigurationError(f"Cosine coefficients must be a square table, got shape {cosine_coefficients.shape}")
    if sine_coefficients.shape != cosine_coefficients.shape:
      raise ConfigurationError(
        f"Sine coefficient shape {sine_coefficients.shape} does not match cosine shape {cosine_coefficients.shape}"
      )

    self._reference_radius = float(reference_radius)
    self._max_degree       = cosine_coefficients.shape[0] - 1

    # Coefficient tables are immutable once the field exists
    cosine_coefficients.setflags(write=False)
    sine_coefficients.setflags(write=False)
    self._cosine_coefficients = cosine_coefficients
    self._sine_coefficients   = sine_coefficients

    normalization = _normalization_factors(self._max_degree)
    self._unnormalized_cosine = cosine_coefficients * normalization
    self._unnormalized_sine   = sine_coefficients   * normalization
    self._unnormalized_cosine.setflags(write=False)
    self._unnormalized_sine.setflags(write=False)

  @property
  def reference_radius(self) -> float:
    return self._reference_radius

  @property
  def max_degree(self) -> int:
    return self._max_degree

  @property
  def cosine_coefficients(self) -> np.ndarray:
    return self._cosine_coefficients

  @property
  def sine_coefficients(self) -> np.ndarray:
    return self._sine_coefficients

  @property
  def unnormalized_cosine_coefficients(self) -> np.ndarray:
    return self._unnormalized_cosine

  @property
  def unnormalized_sine_coefficients(self) -> np.ndarray:
    return self._unnormalized_sine

  def has_spherical_harmonics(self) -> bool:
    return True


def _normalization_factors(
  max_degree : int,
) -> np.ndarray:
  """
  Factors N[n, m] such that C_unnormalized = N * C_normalized.

    N[n, m] = sqrt( (2 - delta_0m) * (2n + 1) * (n - m)! / (n + m)! )
  """
  factors = np.zeros((max_degree + 1, max_degree + 1))
  for n_degree in range(max_degree + 1):
    for m_order in range(n_degree + 1):
      kronecker = 1.0 if m_order == 0 else 2.0
      factors[n_degree, m_order] = math.sqrt(
        kronecker * (2 * n_degree + 1)
        * math.factorial(n_degree - m_order) / math.factorial(n_degree + m_order)
      )
  return factors


def compute_harmonic_acceleration(
  body_fixed_pos_vec      : np.ndarray,
  gravitational_parameter : float,
  reference_radius        : float,
  cosine_coefficients     : np.ndarray,
  sine_coefficients       : np.ndarray,
  max_degree              : int,
  max_order               : int,
) -> np.ndarray:
  """
  Acceleration of the degree >= 1 terms of a spherical harmonic expansion.

  The degree 0 (point mass) term is excluded: the caller evaluates it directly
  so that a (0, 0) expansion reproduces the point-mass result exactly.

  Input:
  ------
    body_fixed_pos_vec : np.ndarray
      Position relative to the body center in the body-fixed frame [m].
    gravitational_parameter : float
      Gravitational parameter [m³/s²].
    reference_radius : float
      Reference radius [m].
    cosine_coefficients : np.ndarray
      Unnormalized C[n, m] table.
    sine_coefficients : np.ndarray
      Unnormalized S[n, m] table.
    max_degree : int
      Maximum degree to evaluate.
    max_order : int
      Maximum order to evaluate.

  Output:
  -------
    acc_vec : np.ndarray
      Acceleration in the body-fixed frame [m/s²].

  Notes:
  ------
    Cunningham recursion for V[n, m], W[n, m] (Montenbruck & Gill eq. 3.29-3.33).
  """
  if max_degree < 1:
    return np.zeros(3)

  pos_x, pos_y, pos_z = body_fixed_pos_vec
  pos_mag_pwr2 = pos_x * pos_x + pos_y * pos_y + pos_z * pos_z

  rho     = reference_radius / pos_mag_pwr2
  x_0     = pos_x * rho
  y_0     = pos_y * rho
  z_0     = pos_z * rho
  rho_ref = reference_radius * rho

  size = max_degree + 2
  V    = np.zeros((size, size))
  W    = np.zeros((size, size))

  # Zonal terms
  V[0, 0] = reference_radius / np.sqrt(pos_mag_pwr2)
  V[1, 0] = z_0 * V[0, 0]
  for n_degree in range(2, max_degree + 2):
    V[n_degree, 0] = (
      (2 * n_degree - 1) * z_0 * V[n_degree - 1, 0]
      - (n_degree - 1) * rho_ref * V[n_degree - 2, 0]
    ) / n_degree

  # Sectorial and tesseral terms
  for m_order in range(1, max_order + 2):
    V[m_order, m_order] = (2 * m_order - 1) * (x_0 * V[m_order - 1, m_order - 1] - y_0 * W[m_order - 1, m_order - 1])
    W[m_order, m_order] = (2 * m_order - 1) * (x_0 * W[m_order - 1, m_order - 1] + y_0 * V[m_order - 1, m_order - 1])

    if m_order + 1 < size:
      V[m_order + 1, m_order] = (2 * m_order + 1) * z_0 * V[m_order, m_order]
      W[m_order + 1, m_order] = (2 * m_order + 1) * z_0 * W[m_order, m_order]

    for n_degree in range(m_order + 2, size):
      V[n_degree, m_order] = (
        (2 * n_degree - 1) * z_0 * V[n_degree - 1, m_order]
        - (n_degree + m_order - 1) * rho_ref * V[n_degree - 2, m_order]
      ) / (n_degree - m_order)
      W[n_degree, m_order] = (
        (2 * n_degree - 1) * z_0 * W[n_degree - 1, m_order]
        - (n_degree + m_order - 1) * rho_ref * W[n_degree - 2, m_order]
      ) / (n_degree - m_order)

  acc_x = 0.0
  acc_y = 0.0
  acc_z = 0.0
  for n_degree in range(1, max_degree + 1):
    for m_order in range(0, min(n_degree, max_order) + 1):
      Cnm = cosine_coefficients[n_degree, m_order]
      Snm = sine_coefficients[n_degree, m_order]
      if Cnm == 0.0 and Snm == 0.0:
        continue

      if m_order == 0:
        acc_x -= Cnm * V[n_degree + 1, 1]
        acc_y -= Cnm * W[n_degree + 1, 1]
        acc_z -= (n_degree + 1) * Cnm * V[n_degree + 1, 0]
      else:
        fac = (n_degree - m_order + 1) * (n_degree - m_order + 2)
        acc_x += 0.5 * (
          - Cnm * V[n_degree + 1, m_order + 1] - Snm * W[n_degree + 1, m_order + 1]
          + fac * (Cnm * V[n_degree + 1, m_order - 1] + Snm * W[n_degree + 1, m_order - 1])
        )
        acc_y += 0.5 * (
          - Cnm * W[n_degree + 1, m_order + 1] + Snm * V[n_degree + 1, m_order + 1]
          + fac * (-Cnm * W[n_degree + 1, m_order - 1] + Snm * V[n_degree + 1, m_order - 1])
        )
        acc_z += (n_degree - m_order + 1) * (-Cnm * V[n_degree + 1, m_order] - Snm * W[n_degree + 1, m_order])

  scale = gravitational_parameter / (reference_radius * reference_radius)
  return scale * np.array([acc_x, acc_y, acc_z])


def _parse_coefficient_name(name: str) -> Optional[tuple]:
  """
  Parse a coefficient name like 'J2', 'C22', 'S22' into (degree, order, type).

  Only supports single-digit degree and order.

  Input:
  ------
    name : str
      Coefficient name (e.g., 'J2', 'J3', 'C21', 'S22', 'C33').

  Output:
  -------
    result : tuple | None
      (degree, order, coeff_type) where coeff_type is 'J', 'C', or 'S'.
      Returns None if parsing fails.
  """
  name = name.upper().strip()
  if len(name) < 2 or name[0] not in ('J', 'C', 'S'):
    return None

  coeff_type = name[0]
  nums       = name[1:]
  if not nums.isdigit():
    return None

  if coeff_type == 'J':
    # Zonal harmonic: order is always zero
    if len(nums) != 1:
      return None
    return (int(nums), 0, 'J')

  # Tesseral/sectorial: two digits, degree then order
  if len(nums) != 2:
    return None
  degree = int(nums[0])
  order  = int(nums[1])
  if order > degree:
    return None
  return (degree, order, coeff_type)


def create_gravity_field_from_named_coefficients(
  gravitational_parameter : float,
  reference_radius        : float,
  coefficients            : dict,
) -> SphericalHarmonicsGravityField:
  """
  Create a spherical harmonics field from named coefficients (e.g. {'J2': 1.08e-3, 'C22': 2.4e-6}).

  Input:
  ------
    gravitational_parameter : float
      Gravitational parameter [m³/s²].
    reference_radius : float
      Reference radius [m].
    coefficients : dict
      Coefficient name to value. J-values are unnormalized zonal harmonics
      (C[n,0] = -J[n] before normalization); C- and S-values are fully normalized.

  Output:
  -------
    field : SphericalHarmonicsGravityField
      Field with C[0,0] = 1 and the named coefficients set.
  """
  parsed = []
  for name, value in coefficients.items():
    result = _parse_coefficient_name(name)
    if result is None:
      raise ConfigurationError(f"Cannot parse gravity coefficient name: {name}")
    parsed.append((result, float(value)))

  max_degree = max([degree for (degree, _, _), _ in parsed], default=0)

  cosine_coefficients       = np.zeros((max_degree + 1, max_degree + 1))
  sine_coefficients         = np.zeros((max_degree + 1, max_degree + 1))
  cosine_coefficients[0, 0] = 1.0

  for (degree, order, coeff_type), value in parsed:
    if coeff_type == 'J':
      cosine_coefficients[degree, 0] = -value / np.sqrt(2 * degree + 1)
    elif coeff_type == 'C':
      cosine_coefficients[degree, order] = value
    else:
      sine_coefficients[degree, order] = value

  return SphericalHarmonicsGravityField(
    gravitational_parameter = gravitational_parameter,
    reference_radius        = reference_radius,
    cosine_coefficients     = cosine_coefficients,
    sine_coefficients       = sine_coefficients,
  )
