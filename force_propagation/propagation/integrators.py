"""
Integrators
===========

Stepping primitives used by the propagation loop. An integrator advances a state
by one step of a derivative function f(t, y) and reports the new (t, y).

Summary:
--------
  IntegratorSettings
  Integrator
  ├── RungeKutta4Integrator : classical fixed-step RK4
  └── ScipyIntegrator       : adaptive DOP853 / RK45 / RK23 via scipy.integrate OdeSolver.step()
"""
import numpy as np

from abc             import ABC, abstractmethod
from typing          import Callable, Optional
from scipy.integrate import DOP853, RK23, RK45

from force_propagation.model.errors import ConfigurationError, NumericalError


SCIPY_SOLVERS = {
  'DOP853' : DOP853,
  'RK45'   : RK45,
  'RK23'   : RK23,
}


class IntegratorSettings:
  """
  Integration method and step control.
  """

  def __init__(
    self,
    method       : str,
    initial_time : float,
    step_size    : Optional[float] = None,
    rtol         : float           = 1e-12,
    atol         : float           = 1e-12,
    max_step     : float           = np.inf,
  ):
    """
    Input:
    ------
      method : str
        'RK4' (fixed step) or one of 'DOP853', 'RK45', 'RK23' (adaptive).
      initial_time : float
        Epoch of the initial state [s].
      step_size : float, optional
        Fixed step for RK4, initial step guess for adaptive methods [s].
      rtol : float
        Relative tolerance of adaptive methods.
      atol : float
        Absolute tolerance of adaptive methods.
      max_step : float
        Maximum step of adaptive methods [s].
    """
    method = method.upper()
    if method != 'RK4' and method not in SCIPY_SOLVERS:
      raise ConfigurationError(f"Unknown integration method '{method}'. Options: RK4, {', '.join(SCIPY_SOLVERS)}")
    if method == 'RK4' and (step_size is None or step_size == 0.0):
      raise ConfigurationError("RK4 integration requires a non-zero step size")

    self.method       = method
    self.initial_time = float(initial_time)
    self.step_size    = step_size
    self.rtol         = rtol
    self.atol         = atol
    self.max_step     = max_step


class Integrator(ABC):
  """Single-step integrator of y' = f(t, y)."""

  def __init__(
    self,
    state_derivative_function : Callable,
  ):
    self.state_derivative_function = state_derivative_function
    self.current_time              = None
    self.current_state             = None

  @abstractmethod
  def reset(
    self,
    initial_time  : float,
    initial_state : np.ndarray,
    end_time      : Optional[float] = None,
  ) -> None:
    raise NotImplementedError

  @abstractmethod
  def step(self) -> tuple:
    """Advance one step and return (time, state)."""
    raise NotImplementedError


class RungeKutta4Integrator(Integrator):
  """Classical fourth-order Runge-Kutta with a fixed step."""

  def __init__(
    self,
    state_derivative_function : Callable,
    step_size                 : float,
  ):
    super().__init__(state_derivative_function)
    self.step_size = float(step_size)

  def reset(
    self,
    initial_time  : float,
    initial_state : np.ndarray,
    end_time      : Optional[float] = None,
  ) -> None:
    self.current_time  = float(initial_time)
    self.current_state = np.array(initial_state, dtype=float)

  def step(self) -> tuple:
    f         = self.state_derivative_function
    time      = self.current_time
    state     = self.current_state
    step_size = self.step_size
    half_step = 0.5 * step_size

    k1 = f(time,             state)
    k2 = f(time + half_step, state + half_step * k1)
    k3 = f(time + half_step, state + half_step * k2)
    k4 = f(time + step_size, state + step_size * k3)

    self.current_state = state + step_size / 6.0 * (k1 + 2.0 * k2 + 2.0 * k3 + k4)
    self.current_time  = time + step_size
    return self.current_time, self.current_state.copy()


class ScipyIntegrator(Integrator):
  """
  Adaptive integrator stepping a scipy.integrate OdeSolver one accepted step at a time.
  """

  def __init__(
    self,
    state_derivative_function : Callable,
    method                    : str             = 'DOP853',
    rtol                      : float           = 1e-12,
    atol                      : float           = 1e-12,
    first_step                : Optional[float] = None,
    max_step                  : float           = np.inf,
  ):
    super().__init__(state_derivative_function)
    self.solver_class = SCIPY_SOLVERS[method]
    self.rtol         = rtol
    self.atol         = atol
    self.first_step   = first_step
    self.max_step     = max_step
    self._solver      = None

  def reset(
    self,
    initial_time  : float,
    initial_state : np.ndarray,
    end_time      : Optional[float] = None,
  ) -> None:
    # Without a known end epoch the solver runs until the loop stops it
    t_bound = end_time if end_time is not None else np.inf

    first_step = self.first_step
    if first_step is not None and np.isfinite(t_bound):
      first_step = min(abs(first_step), abs(t_bound - initial_time)) or None

    self._solver = self.solver_class(
      fun        = self.state_derivative_function,
      t0         = float(initial_time),
      y0         = np.array(initial_state, dtype=float),
      t_bound    = t_bound,
      rtol       = self.rtol,
      atol       = self.atol,
      first_step = first_step,
      max_step   = self.max_step,
    )
    self.current_time  = float(initial_time)
    self.current_state = np.array(initial_state, dtype=float)

  def step(self) -> tuple:
    if self._solver.status != 'running':
      raise NumericalError(
        f"Integrator cannot continue past t_bound (status '{self._solver.status}')",
        time = self.current_time,
      )

    message = self._solver.step()
    if self._solver.status == 'failed':
      raise NumericalError(f"Integrator step failed: {message}", time=self.current_time)

    self.current_time  = float(self._solver.t)
    self.current_state = np.array(self._solver.y, dtype=float)
    return self.current_time, self.current_state.copy()


def create_integrator(
  integrator_settings       : IntegratorSettings,
  state_derivative_function : Callable,
) -> Integrator:
  """
  Build the integrator described by the settings.
  """
  if integrator_settings.method == 'RK4':
    return RungeKutta4Integrator(state_derivative_function, integrator_settings.step_size)

  return ScipyIntegrator(
    state_derivative_function,
    method     = integrator_settings.method,
    rtol       = integrator_settings.rtol,
    atol       = integrator_settings.atol,
    first_step = integrator_settings.step_size,
    max_step   = integrator_settings.max_step,
  )
