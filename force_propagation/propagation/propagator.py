"""
Propagator
==========

Numerical propagation of the translational state of one or more bodies under an
acceleration map.

Each step runs, in order:
  1. environment update : ephemerides, propagated-body states, guidance callbacks
  2. force evaluation   : flight conditions and aerodynamic coefficients, then every
                          acceleration model, summed per body
  3. integration        : one step of the stepping primitive
  4. termination check
  5. dependent-variable snapshot of the post-step state

Propagated states are relative to each body's central body. A central body that is
itself propagated must precede the bodies that use it.
"""
import numpy as np

from enum   import Enum
from tqdm   import tqdm
from typing import Optional

from force_propagation.model.body                      import BodyRegistry
from force_propagation.model.errors                    import ConfigurationError, NumericalError
from force_propagation.propagation.dependent_variables import (
  DependentVariableContext,
  DependentVariableSaveSettings,
  create_dependent_variable_function,
  create_single_dependent_variable_function,
)
from force_propagation.propagation.integrators         import IntegratorSettings, create_integrator
from force_propagation.propagation.termination         import (
  PropagationTerminationSettings,
  create_termination_condition,
  get_end_epoch,
)


class PropagationPhase(Enum):
  RUNNING    = 'running'
  TERMINATED = 'terminated'


class TranslationalStatePropagatorSettings:
  """
  What to propagate, relative to what, under which accelerations, until when.
  """

  def __init__(
    self,
    central_bodies              : list,
    acceleration_models         : dict,
    bodies_to_propagate         : list,
    initial_states              : np.ndarray,
    termination_settings        : PropagationTerminationSettings,
    dependent_variables_to_save : Optional[DependentVariableSaveSettings] = None,
  ):
    """
    Input:
    ------
      central_bodies : list
        Integration origin of each propagated body.
      acceleration_models : dict
        {affected: {exerting: [AccelerationModel, ...]}} from create_acceleration_models_map.
      bodies_to_propagate : list
        Names of the propagated bodies.
      initial_states : np.ndarray
        Concatenated states relative to the central bodies, size 6 * len(bodies_to_propagate).
      termination_settings : PropagationTerminationSettings
        When to stop.
      dependent_variables_to_save : DependentVariableSaveSettings, optional
        Variables recorded after every step.
    """
    self.central_bodies              = list(central_bodies)
    self.acceleration_models         = acceleration_models
    self.bodies_to_propagate         = list(bodies_to_propagate)
    self.initial_states              = np.array(initial_states, dtype=float).reshape(-1)
    self.termination_settings        = termination_settings
    self.dependent_variables_to_save = dependent_variables_to_save


class PropagationLoop:
  """
  Single-arc propagation of translational dynamics.

  The loop owns no bodies: it writes propagated states into the registry during the
  environment update and reads everything else through the acceleration models.
  """

  def __init__(
    self,
    body_registry       : BodyRegistry,
    integrator_settings : IntegratorSettings,
    propagator_settings : TranslationalStatePropagatorSettings,
    guidance_callbacks  : Optional[list] = None,
    show_progress       : bool           = False,
  ):
    """
    Input:
    ------
      body_registry : BodyRegistry
        Bodies of the scenario.
      integrator_settings : IntegratorSettings
        Stepping primitive and initial epoch.
      propagator_settings : TranslationalStatePropagatorSettings
        Propagated bodies, accelerations, termination and dependent variables.
      guidance_callbacks : list, optional
        (time) -> None functions called during every environment update, after the
        body states are set.
      show_progress : bool
        Show a tqdm progress bar.

    Raises:
    -------
      ConfigurationError
        If the settings are inconsistent.
    """
    self.body_registry       = body_registry
    self.integrator_settings = integrator_settings
    self.propagator_settings = propagator_settings
    self.guidance_callbacks  = list(guidance_callbacks) if guidance_callbacks else []
    self.show_progress       = show_progress

    self._validate_settings()

    self.acceleration_map = propagator_settings.acceleration_models
    self._context         = DependentVariableContext(body_registry, self.acceleration_map)

    # Flight conditions of vehicles whose aerodynamics take part in the propagation
    self._flight_conditions = []
    for body in body_registry:
      if body.flight_conditions is not None and body.name in self.acceleration_map:
        self._flight_conditions.append(body.flight_conditions)

    self.termination_condition = create_termination_condition(
      propagator_settings.termination_settings,
      lambda settings: create_single_dependent_variable_function(settings, self._context),
    )

    self.dependent_variable_ids       = {}
    self._dependent_variable_function = None
    if propagator_settings.dependent_variables_to_save is not None:
      self._dependent_variable_function, self.dependent_variable_ids = create_dependent_variable_function(
        propagator_settings.dependent_variables_to_save, self._context,
      )

    self.phase                      = None
    self.state_history              = {}
    self.dependent_variable_history = {}
    self.termination_reason         = None
    self._stop_requested            = False

  def _validate_settings(self) -> None:
    settings = self.propagator_settings
    bodies   = settings.bodies_to_propagate

    if not bodies:
      raise ConfigurationError("No bodies to propagate")
    if len(set(bodies)) != len(bodies):
      raise ConfigurationError(f"Propagated bodies must be unique: {bodies}")
    if len(settings.central_bodies) != len(bodies):
      raise ConfigurationError(
        f"Got {len(settings.central_bodies)} central bodies for {len(bodies)} propagated bodies"
      )
    if settings.initial_states.size != 6 * len(bodies):
      raise ConfigurationError(
        f"Initial state size {settings.initial_states.size} does not match {len(bodies)} propagated bodies"
      )

    for index, (body_name, central_body_name) in enumerate(zip(bodies, settings.central_bodies)):
      if body_name not in self.body_registry:
        raise ConfigurationError(f"Propagated body '{body_name}' is not registered")
      if central_body_name == body_name:
        raise ConfigurationError(f"Body '{body_name}' cannot be its own central body")
      if central_body_name in bodies and bodies.index(central_body_name) > index:
        raise ConfigurationError(
          f"Central body '{central_body_name}' of '{body_name}' is propagated after it"
        )
      if central_body_name not in self.body_registry and not self.body_registry.is_global_frame_origin(central_body_name):
        raise ConfigurationError(f"Central body '{central_body_name}' is not registered")

    for affected_name in settings.acceleration_models:
      if affected_name not in bodies:
        raise ConfigurationError(f"Accelerations given for '{affected_name}', which is not propagated")

    if self.integrator_settings.step_size is not None and self.integrator_settings.step_size < 0.0:
      raise ConfigurationError("Only forward propagation is supported")

    end_epoch = get_end_epoch(settings.termination_settings)
    if end_epoch is not None and end_epoch < self.integrator_settings.initial_time:
      raise ConfigurationError(
        f"End epoch {end_epoch} precedes the initial epoch {self.integrator_settings.initial_time}; "
        f"only forward propagation is supported"
      )

  def stop(self) -> None:
    """Request the loop to end after the current step."""
    self._stop_requested = True

  # ---------------------------------------------------------------------------
  # Step phases
  # ---------------------------------------------------------------------------

  def _update_environment(
    self,
    time  : float,
    state : np.ndarray,
  ) -> None:
    settings = self.propagator_settings

    for body in self.body_registry:
      if body.name not in settings.bodies_to_propagate:
        body.update_state_from_ephemeris(time)

    # Central bodies precede their satellites, so their global states are current
    for index, (body_name, central_body_name) in enumerate(zip(settings.bodies_to_propagate, settings.central_bodies)):
      central_state = self.body_registry.state_function(central_body_name, 'state')()
      self.body_registry.get_body(body_name).set_state(state[6 * index:6 * index + 6] + central_state)

    for guidance_callback in self.guidance_callbacks:
      guidance_callback(time)

  def _evaluate_forces(
    self,
    time : float,
  ) -> dict:
    for flight_conditions in self._flight_conditions:
      flight_conditions.update(time)

    total_accelerations = {}
    for affected_name, accelerations_of_body in self.acceleration_map.items():
      acc_vec = np.zeros(3)
      for models in accelerations_of_body.values():
        for model in models:
          model.update(time)
          acc_vec = acc_vec + model.get_acceleration()
      total_accelerations[affected_name] = acc_vec

    self._context.total_accelerations = total_accelerations
    return total_accelerations

  def state_derivative(
    self,
    time  : float,
    state : np.ndarray,
  ) -> np.ndarray:
    """
    d/dt [pos, vel] of every propagated body, relative to its central body.
    """
    self._update_environment(time, state)
    total_accelerations = self._evaluate_forces(time)

    state_derivative = np.zeros_like(state, dtype=float)
    for index, body_name in enumerate(self.propagator_settings.bodies_to_propagate):
      offset = 6 * index
      state_derivative[offset:offset + 3]     = state[offset + 3:offset + 6]
      state_derivative[offset + 3:offset + 6] = total_accelerations.get(body_name, np.zeros(3))
    return state_derivative

  def _record(
    self,
    time  : float,
    state : np.ndarray,
  ) -> None:
    self.state_history[time] = state.copy()
    if self._dependent_variable_function is not None:
      self.dependent_variable_history[time] = self._dependent_variable_function()

  # ---------------------------------------------------------------------------
  # Main loop
  # ---------------------------------------------------------------------------

  def propagate(self) -> dict:
    """
    Run the loop until termination.

    Output:
    -------
      result : dict
        See assemble_results.

    Raises:
    -------
      NumericalError
        If a model or the integrator fails. The loop is left TERMINATED with the
        history up to the last completed step, and the error carries the epoch.
    """
    self.phase                      = PropagationPhase.RUNNING
    self.state_history              = {}
    self.dependent_variable_history = {}
    self.termination_reason         = None
    self._stop_requested            = False

    time      = self.integrator_settings.initial_time
    state     = self.propagator_settings.initial_states.copy()
    end_epoch = get_end_epoch(self.propagator_settings.termination_settings)

    integrator = create_integrator(self.integrator_settings, self.state_derivative)
    integrator.reset(time, state, end_epoch)

    progress_bar = None
    if self.show_progress:
      progress_bar = tqdm(
        total = (end_epoch - time) if end_epoch is not None else None,
        desc  = "Propagating",
        unit  = "s",
      )

    try:
      self.state_derivative(time, state)
      self._record(time, state)

      while self.phase == PropagationPhase.RUNNING:
        if self._stop_requested:
          self.termination_reason = "Stopped on request"
          break

        previous_time = time
        time, state   = integrator.step()

        # Refresh environment and forces at the accepted state
        self.state_derivative(time, state)

        if progress_bar is not None:
          progress_bar.update(time - previous_time)

        is_terminated = self.termination_condition.is_met(time)
        self._record(time, state)
        if is_terminated:
          self.termination_reason = self.termination_condition.reason
          break

    except NumericalError as error:
      self.phase              = PropagationPhase.TERMINATED
      self.termination_reason = f"Numerical error: {error.message}"
      tagged_error = error.with_time(time)
      if tagged_error is error:
        raise
      raise tagged_error from error

    finally:
      if progress_bar is not None:
        progress_bar.close()

    self.phase = PropagationPhase.TERMINATED
    return self.assemble_results()

  def assemble_results(self) -> dict:
    """
    Output:
    -------
      result : dict
        Dictionary containing:
        - success : bool - True unless the loop ended on an error
        - message : str - Status message
        - termination_reason : str - What ended the loop
        - time : np.ndarray - Recorded epochs [s]
        - state : np.ndarray - State history [6n x N]
        - state_f : np.ndarray - Final state vector
        - dependent_variables : np.ndarray - Dependent variable history [m x N]
        - state_history : dict - {epoch: state}
        - dependent_variable_history : dict - {epoch: dependent variables}
        - dependent_variable_ids : dict - {(start_index, size): id}
        - bodies_to_propagate : list
        - central_bodies : list
    """
    times = np.array(list(self.state_history.keys()))
    state = np.array(list(self.state_history.values())).T

    if self.dependent_variable_history:
      dependent_variables = np.array(list(self.dependent_variable_history.values())).T
    else:
      dependent_variables = np.zeros((0, times.size))

    success = self.termination_reason is not None and not self.termination_reason.startswith("Numerical error")

    return {
      'success'                    : success,
      'message'                    : "Propagation completed" if success else "Propagation failed",
      'termination_reason'         : self.termination_reason,
      'time'                       : times,
      'state'                      : state,
      'state_f'                    : state[:, -1] if times.size else None,
      'dependent_variables'        : dependent_variables,
      'state_history'              : dict(self.state_history),
      'dependent_variable_history' : dict(self.dependent_variable_history),
      'dependent_variable_ids'     : dict(self.dependent_variable_ids),
      'bodies_to_propagate'        : list(self.propagator_settings.bodies_to_propagate),
      'central_bodies'             : list(self.propagator_settings.central_bodies),
    }


def propagate_translational_dynamics(
  body_registry       : BodyRegistry,
  integrator_settings : IntegratorSettings,
  propagator_settings : TranslationalStatePropagatorSettings,
  guidance_callbacks  : Optional[list] = None,
  show_progress       : bool           = False,
) -> dict:
  """
  Build a PropagationLoop and run it.

  Output:
  -------
    result : dict
      See PropagationLoop.assemble_results.
  """
  return PropagationLoop(
    body_registry       = body_registry,
    integrator_settings = integrator_settings,
    propagator_settings = propagator_settings,
    guidance_callbacks  = guidance_callbacks,
    show_progress       = show_progress,
  ).propagate()
