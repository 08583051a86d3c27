"""
Errors
======

Exception hierarchy shared by the acceleration models, the acceleration setup and
the propagation loop.

Summary:
--------
  ForcePropagationError
  ├── ConfigurationError  : invalid settings, detected at build time or first evaluation
  ├── NumericalError      : degenerate geometry or non-finite values during evaluation
  └── NotEvaluatedError   : cached value read before its first update
"""
import numpy as np

from typing import Optional


class ForcePropagationError(Exception):
  """Base exception for the force-model and propagation core."""

  pass


class ConfigurationError(ForcePropagationError, ValueError):
  """Settings cannot be turned into a consistent force graph or loop."""

  pass


class NotEvaluatedError(ForcePropagationError, RuntimeError):
  """A cached quantity was requested before it was computed."""

  pass


class NumericalError(ForcePropagationError, ArithmeticError):
  """
  Physically degenerate configuration encountered while evaluating a model.

  Carries the diagnostic context needed to locate the failure: the epoch, the
  (affected, exerting) body pair and the offending values.
  """

  def __init__(
    self,
    message   : str,
    time      : Optional[float] = None,
    body_pair : Optional[tuple] = None,
    values    : Optional[dict]  = None,
  ):
    self.message   = message
    self.time      = time
    self.body_pair = body_pair
    self.values    = values if values is not None else {}
    super().__init__(self._format())

  def _format(self) -> str:
    parts = [self.message]
    if self.time is not None:
      parts.append(f"time={self.time!r}")
    if self.body_pair is not None:
      parts.append(f"bodies={self.body_pair[0]}<-{self.body_pair[1]}")
    for key, value in self.values.items():
      if isinstance(value, np.ndarray):
        value = np.array2string(value, precision=12)
      parts.append(f"{key}={value}")
    return " | ".join(parts)

  def with_time(
    self,
    time : float,
  ) -> 'NumericalError':
    """Return a copy of this error tagged with an epoch, keeping an existing one."""
    if self.time is not None:
      return self
    return NumericalError(self.message, time, self.body_pair, self.values)


def check_finite_vector(
  vector    : np.ndarray,
  name      : str,
  time      : Optional[float] = None,
  body_pair : Optional[tuple] = None,
) -> np.ndarray:
  """
  Raise a NumericalError if a vector contains NaN or infinite entries.

  Input:
  ------
    vector : np.ndarray
      Vector to check.
    name : str
      Name used in the error message.
    time : float, optional
      Epoch of the evaluation [s].
    body_pair : tuple, optional
      (affected, exerting) body names.

  Output:
  -------
    vector : np.ndarray
      The unchanged input vector.
  """
  if not np.all(np.isfinite(vector)):
    raise NumericalError(
      f"Non-finite {name}",
      time      = time,
      body_pair = body_pair,
      values    = {name: vector},
    )
  return vector
