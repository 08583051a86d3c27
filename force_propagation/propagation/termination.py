"""
Termination
===========

Settings deciding when the propagation loop stops, and the conditions evaluated
after every step.

Summary:
--------
  PropagationTerminationSettings
  ├── PropagationTimeTerminationSettings               : t >= end epoch
  ├── PropagationDependentVariableTerminationSettings  : dependent variable crosses a limit
  ├── PropagationCustomTerminationSettings             : user predicate of time
  └── PropagationHybridTerminationSettings             : any / all of several settings
"""
from typing import Callable, Optional

from force_propagation.model.errors import ConfigurationError


class PropagationTerminationSettings:
  """Base class of termination settings."""

  pass


class PropagationTimeTerminationSettings(PropagationTerminationSettings):

  def __init__(
    self,
    end_epoch : float,
  ):
    self.end_epoch = float(end_epoch)


class PropagationDependentVariableTerminationSettings(PropagationTerminationSettings):
  """
  Stop when a scalar dependent variable passes limit_value: from above when used as
  a lower limit, from below otherwise.
  """

  def __init__(
    self,
    dependent_variable_settings : 'SingleDependentVariableSaveSettings',
    limit_value                 : float,
    use_as_lower_limit          : bool,
  ):
    self.dependent_variable_settings = dependent_variable_settings
    self.limit_value                 = float(limit_value)
    self.use_as_lower_limit          = use_as_lower_limit


class PropagationCustomTerminationSettings(PropagationTerminationSettings):

  def __init__(
    self,
    termination_function : Callable,
  ):
    """termination_function: (time) -> bool"""
    self.termination_function = termination_function


class PropagationHybridTerminationSettings(PropagationTerminationSettings):

  def __init__(
    self,
    termination_settings     : list,
    fulfill_single_condition : bool = True,
  ):
    if not termination_settings:
      raise ConfigurationError("Hybrid termination requires at least one termination setting")
    self.termination_settings     = list(termination_settings)
    self.fulfill_single_condition = fulfill_single_condition


class TerminationCondition:
  """
  Evaluable condition. After is_met() returns True, reason describes what triggered.
  """

  def __init__(self):
    self.reason = None

  def is_met(
    self,
    time : float,
  ) -> bool:
    raise NotImplementedError


class TimeTerminationCondition(TerminationCondition):

  def __init__(
    self,
    end_epoch : float,
  ):
    super().__init__()
    self.end_epoch = end_epoch

  def is_met(
    self,
    time : float,
  ) -> bool:
    if time >= self.end_epoch:
      self.reason = f"End epoch reached (t = {time} >= {self.end_epoch})"
      return True
    return False


class DependentVariableTerminationCondition(TerminationCondition):

  def __init__(
    self,
    dependent_variable_function : Callable,
    variable_id                 : str,
    limit_value                 : float,
    use_as_lower_limit          : bool,
  ):
    super().__init__()
    self.dependent_variable_function = dependent_variable_function
    self.variable_id                 = variable_id
    self.limit_value                 = limit_value
    self.use_as_lower_limit          = use_as_lower_limit

  def is_met(
    self,
    time : float,
  ) -> bool:
    value = float(self.dependent_variable_function()[0])
    if self.use_as_lower_limit:
      is_met = value < self.limit_value
    else:
      is_met = value > self.limit_value
    if is_met:
      bound       = 'lower' if self.use_as_lower_limit else 'upper'
      self.reason = f"{self.variable_id} passed {bound} limit {self.limit_value} (value {value})"
    return is_met


class CustomTerminationCondition(TerminationCondition):

  def __init__(
    self,
    termination_function : Callable,
  ):
    super().__init__()
    self.termination_function = termination_function

  def is_met(
    self,
    time : float,
  ) -> bool:
    if self.termination_function(time):
      self.reason = "Custom termination condition met"
      return True
    return False


class HybridTerminationCondition(TerminationCondition):

  def __init__(
    self,
    conditions               : list,
    fulfill_single_condition : bool,
  ):
    super().__init__()
    self.conditions               = conditions
    self.fulfill_single_condition = fulfill_single_condition

  def is_met(
    self,
    time : float,
  ) -> bool:
    # Evaluate every condition so that each reason is up to date
    results = [condition.is_met(time) for condition in self.conditions]
    is_met  = any(results) if self.fulfill_single_condition else all(results)
    if is_met:
      self.reason = "; ".join(
        condition.reason for condition, result in zip(self.conditions, results) if result
      )
    return is_met


def create_termination_condition(
  termination_settings               : PropagationTerminationSettings,
  create_dependent_variable_function : Optional[Callable] = None,
) -> TerminationCondition:
  """
  Build the condition described by the settings.

  Input:
  ------
    termination_settings : PropagationTerminationSettings
      Settings to convert.
    create_dependent_variable_function : callable, optional
      (SingleDependentVariableSaveSettings) -> (function, size, id), needed for
      dependent-variable conditions.
  """
  if isinstance(termination_settings, PropagationTimeTerminationSettings):
    return TimeTerminationCondition(termination_settings.end_epoch)

  if isinstance(termination_settings, PropagationDependentVariableTerminationSettings):
    if create_dependent_variable_function is None:
      raise ConfigurationError("Dependent variable termination requires dependent variable support")
    function, size, variable_id = create_dependent_variable_function(
      termination_settings.dependent_variable_settings
    )
    if size != 1:
      raise ConfigurationError(f"Termination variable '{variable_id}' must be scalar, has size {size}")
    return DependentVariableTerminationCondition(
      function, variable_id, termination_settings.limit_value, termination_settings.use_as_lower_limit,
    )

  if isinstance(termination_settings, PropagationCustomTerminationSettings):
    return CustomTerminationCondition(termination_settings.termination_function)

  if isinstance(termination_settings, PropagationHybridTerminationSettings):
    return HybridTerminationCondition(
      [
        create_termination_condition(settings, create_dependent_variable_function)
        for settings in termination_settings.termination_settings
      ],
      termination_settings.fulfill_single_condition,
    )

  raise ConfigurationError(f"Unsupported termination settings: {type(termination_settings).__name__}")


def get_end_epoch(
  termination_settings : PropagationTerminationSettings,
) -> Optional[float]:
  """
  Epoch at which the propagation is certain to stop, if any. Used to bound
  adaptive integrators and to size the progress bar.
  """
  if isinstance(termination_settings, PropagationTimeTerminationSettings):
    return termination_settings.end_epoch
  if isinstance(termination_settings, PropagationHybridTerminationSettings):
    end_epochs = [get_end_epoch(settings) for settings in termination_settings.termination_settings]
    if termination_settings.fulfill_single_condition:
      known = [epoch for epoch in end_epochs if epoch is not None]
      return min(known) if known else None
    if all(epoch is not None for epoch in end_epochs):
      return max(end_epochs)
  return None
