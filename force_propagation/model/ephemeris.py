"""
Ephemeris Module
================

State providers for bodies whose motion is prescribed rather than propagated.

Summary:
--------
  Ephemeris
  ├── ConstantEphemeris   : fixed state
  ├── TabulatedEphemeris  : cubic interpolation of a state table
  └── SpiceEphemeris      : spkezr lookup from loaded SPICE kernels

All states are 6-vectors [pos, vel] in meters and meters per second, expressed in
the global frame orientation and relative to the global frame origin.
"""
import numpy    as np
import spiceypy as spice

from abc               import ABC, abstractmethod
from pathlib           import Path
from scipy.interpolate import interp1d

from force_propagation.model.constants import CONVERTER, FRAMES
from force_propagation.model.errors    import ConfigurationError


class Ephemeris(ABC):
  """Time-dependent state of a body."""

  @abstractmethod
  def get_state(
    self,
    time : float,
  ) -> np.ndarray:
    """Return the 6-element state [m, m/s] at ephemeris time [s]."""
    raise NotImplementedError


class ConstantEphemeris(Ephemeris):
  """Body at rest (or moving at a frozen state) for the whole simulation."""

  def __init__(
    self,
    state : np.ndarray,
  ):
    state = np.array(state, dtype=float)
    if state.shape != (6,):
      raise ConfigurationError(f"Constant ephemeris state must have 6 elements, got shape {state.shape}")
    self._state = state

  def get_state(
    self,
    time : float,
  ) -> np.ndarray:
    return self._state.copy()


class TabulatedEphemeris(Ephemeris):
  """
  Ephemeris interpolated from a table of states, one interp1d per component.
  """

  def __init__(
    self,
    times  : np.ndarray,
    states : np.ndarray,
    kind   : str = 'cubic',
  ):
    """
    Input:
    ------
      times : np.ndarray
        Strictly increasing epochs [s], shape (N,).
      states : np.ndarray
        States at the epochs, shape (6, N).
      kind : str
        Interpolation kind passed to scipy interp1d.
    """
    times  = np.asarray(times,  dtype=float)
    states = np.asarray(states, dtype=float)

    if states.ndim != 2 or states.shape[0] != 6 or states.shape[1] != times.size:
      raise ConfigurationError(
        f"Tabulated states must have shape (6, {times.size}), got {states.shape}"
      )
    if times.size < 2 or np.any(np.diff(times) <= 0.0):
      raise ConfigurationError("Tabulated ephemeris epochs must be strictly increasing with at least two entries")

    # Cubic interpolation needs four nodes
    if kind == 'cubic' and times.size < 4:
      kind = 'linear'

    self._interpolators = [
      interp1d(
        times,
        states[i, :],
        kind       = kind,
        fill_value = 'extrapolate',
      )
      for i in range(6)
    ]

  def get_state(
    self,
    time : float,
  ) -> np.ndarray:
    return np.array([float(interpolator(time)) for interpolator in self._interpolators])


class SpiceEphemeris(Ephemeris):
  """
  Ephemeris read from loaded SPICE kernels.
  """

  def __init__(
    self,
    target   : str,
    observer : str = FRAMES.GLOBAL_ORIGIN,
    frame    : str = FRAMES.GLOBAL_ORIENTATION,
  ):
    self.target   = target
    self.observer = observer
    self.frame    = frame

  def get_state(
    self,
    time : float,
  ) -> np.ndarray:
    """
    Input:
    ------
      time : float
        Ephemeris time in seconds past J2000 epoch.

    Output:
    -------
      state : np.ndarray
        State of target relative to observer [m, m/s].
    """
    state, _ = spice.spkezr(
      self.target,
      time,
      self.frame,
      'NONE',
      self.observer,
    )
    # SPICE returns km and km/s, convert to m and m/s
    return np.array(state, dtype=float) * CONVERTER.M_PER_KM


def load_spice_kernels(
  kernel_filepaths : list,
) -> None:
  """
  Load SPICE kernel files (leap seconds, planetary ephemerides, constants).

  Input:
  ------
    kernel_filepaths : list
      Paths to kernel files, loaded in the given order.

  Raises:
  -------
    FileNotFoundError
      If a kernel file does not exist.
  """
  print(f"  Spice Kernels")
  for kernel_filepath in kernel_filepaths:
    kernel_filepath = Path(kernel_filepath)
    if not kernel_filepath.exists():
      raise FileNotFoundError(f"SPICE kernel not found: {kernel_filepath}")
    spice.furnsh(str(kernel_filepath))
    print(f"    Loaded : {kernel_filepath.name}")


def unload_spice_kernels() -> None:
  """Unload all SPICE kernels."""
  spice.kclear()
