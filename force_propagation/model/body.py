"""
Body Module
===========

Bodies of a scenario and the registry that owns them.

Summary:
--------
  Body               : name, state, mass and optional environment models
  BodyHandle         : (index, generation) address of a body in the registry
  BodyRegistry       : arena of bodies, names the inertial global frame origin
  BodyStateFunction  : non-owning provider of a body's position or velocity

Acceleration models never hold a Body directly. They receive BodyStateFunction
objects, which keep a weak reference to the registry and a handle, so replacing or
dropping a body is detected instead of silently reading stale data.
"""
import weakref
import numpy as np

from typing import Optional

from force_propagation.model.constants     import FRAMES
from force_propagation.model.errors        import ConfigurationError
from force_propagation.model.gravity_field import GravityFieldModel


class Body:
  """
  A natural or artificial body taking part in the simulation.
  """

  def __init__(
    self,
    name                              : str,
    state                             : Optional[np.ndarray]        = None,
    mass                              : Optional[float]             = None,
    gravity_field_model               : Optional[GravityFieldModel] = None,
    ephemeris                         = None,
    rotation_to_body_fixed            = None,
    atmosphere_model                  = None,
    aerodynamic_coefficient_interface = None,
    vehicle_systems                   = None,
  ):
    """
    Input:
    ------
      name : str
        Unique body name.
      state : np.ndarray, optional
        Initial state [pos, vel] in the global frame [m, m/s].
      mass : float, optional
        Body mass [kg], required for aerodynamic accelerations.
      gravity_field_model : GravityFieldModel, optional
        Gravity field exerted by the body.
      ephemeris : Ephemeris, optional
        Prescribed state as a function of time.
      rotation_to_body_fixed : callable, optional
        time -> 3x3 rotation matrix from the global to the body-fixed frame.
        Identity when omitted.
      atmosphere_model : ExponentialAtmosphere, optional
        Atmosphere surrounding the body.
      aerodynamic_coefficient_interface : AerodynamicCoefficientInterface, optional
        Aerodynamic coefficients of the body as a vehicle.
      vehicle_systems : VehicleSystems, optional
        Control-surface deflection table of the body as a vehicle.
    """
    if not name:
      raise ConfigurationError("Body name must be a non-empty string")

    self.name                              = name
    self.mass                              = mass
    self.gravity_field_model               = gravity_field_model
    self.ephemeris                         = ephemeris
    self.rotation_to_body_fixed            = rotation_to_body_fixed
    self.atmosphere_model                  = atmosphere_model
    self.aerodynamic_coefficient_interface = aerodynamic_coefficient_interface
    self.vehicle_systems                   = vehicle_systems
    self.flight_conditions                 = None

    self._state = np.zeros(6)
    if state is not None:
      self.set_state(state)

  @property
  def state(self) -> np.ndarray:
    return self._state

  @property
  def position(self) -> np.ndarray:
    return self._state[0:3]

  @property
  def velocity(self) -> np.ndarray:
    return self._state[3:6]

  @property
  def gravitational_parameter(self) -> float:
    """Gravitational parameter of the body, zero without a gravity field."""
    if self.gravity_field_model is None:
      return 0.0
    return self.gravity_field_model.gravitational_parameter

  def set_state(
    self,
    state : np.ndarray,
  ) -> None:
    state = np.array(state, dtype=float)
    if state.shape != (6,):
      raise ConfigurationError(f"State of body '{self.name}' must have 6 elements, got shape {state.shape}")
    self._state = state

  def update_state_from_ephemeris(
    self,
    time : float,
  ) -> None:
    if self.ephemeris is not None:
      self.set_state(self.ephemeris.get_state(time))

  def get_rotation_to_body_fixed(
    self,
    time : float,
  ) -> np.ndarray:
    if self.rotation_to_body_fixed is None:
      return np.eye(3)
    return np.asarray(self.rotation_to_body_fixed(time), dtype=float)

  def __repr__(self) -> str:
    return f"Body('{self.name}')"


class BodyHandle:
  """
  Stable address of a body: slot index plus the generation of the slot when the
  handle was issued.
  """

  __slots__ = ('index', 'generation')

  def __init__(
    self,
    index      : int,
    generation : int,
  ):
    self.index      = index
    self.generation = generation

  def __eq__(self, other) -> bool:
    if not isinstance(other, BodyHandle):
      return NotImplemented
    return self.index == other.index and self.generation == other.generation

  def __hash__(self) -> int:
    return hash((self.index, self.generation))

  def __repr__(self) -> str:
    return f"BodyHandle(index={self.index}, generation={self.generation})"


class BodyRegistry:
  """
  Arena of bodies indexed by name.

  The global frame origin (default 'SSB') is inertial and fixed at zero. It may be
  referenced as a frame origin without being registered as a body.
  """

  def __init__(
    self,
    global_frame_origin : str = FRAMES.GLOBAL_ORIGIN,
  ):
    self.global_frame_origin = global_frame_origin

    self._bodies        = []
    self._generations   = []
    self._index_by_name = {}

  def add_body(
    self,
    body : Body,
  ) -> BodyHandle:
    """
    Add a body, or replace the body registered under the same name.

    Replacing a body invalidates every handle issued for the previous one.
    """
    if body.name in self._index_by_name:
      index = self._index_by_name[body.name]
      self._bodies[index]       = body
      self._generations[index] += 1
    else:
      index = len(self._bodies)
      self._bodies.append(body)
      self._generations.append(0)
      self._index_by_name[body.name] = index
    return BodyHandle(index, self._generations[index])

  def get_handle(
    self,
    name : str,
  ) -> BodyHandle:
    if name not in self._index_by_name:
      raise ConfigurationError(f"Body '{name}' is not registered")
    index = self._index_by_name[name]
    return BodyHandle(index, self._generations[index])

  def resolve(
    self,
    handle : BodyHandle,
  ) -> Body:
    if handle.index >= len(self._bodies) or self._generations[handle.index] != handle.generation:
      raise ConfigurationError(f"Stale body handle {handle}: the body was replaced or removed")
    return self._bodies[handle.index]

  def get_body(
    self,
    name : str,
  ) -> Body:
    return self.resolve(self.get_handle(name))

  def is_global_frame_origin(
    self,
    name : str,
  ) -> bool:
    """True if name is the inertial origin and no body is registered under it."""
    return name == self.global_frame_origin and name not in self._index_by_name

  def state_function(
    self,
    name      : str,
    component : str = 'position',
  ) -> 'BodyStateFunction':
    """
    Non-owning provider of the current position, velocity or full state of a body.
    The global frame origin yields zeros.
    """
    if self.is_global_frame_origin(name):
      return BodyStateFunction(self, None, name, component)
    return BodyStateFunction(self, self.get_handle(name), name, component)

  def update_ephemerides(
    self,
    time : float,
  ) -> None:
    for body in self._bodies:
      body.update_state_from_ephemeris(time)

  @property
  def body_names(self) -> list:
    return list(self._index_by_name.keys())

  def __contains__(self, name: str) -> bool:
    return name in self._index_by_name

  def __len__(self) -> int:
    return len(self._bodies)

  def __iter__(self):
    return iter(list(self._bodies))


class BodyStateFunction:
  """
  Callable returning a body's current position, velocity or state.
  Holds a weak reference to the registry and a handle, never the body itself.
  """

  _COMPONENTS = {
    'position' : slice(0, 3),
    'velocity' : slice(3, 6),
    'state'    : slice(0, 6),
  }

  def __init__(
    self,
    body_registry : BodyRegistry,
    handle        : Optional[BodyHandle],
    body_name     : str,
    component     : str = 'position',
  ):
    if component not in self._COMPONENTS:
      raise ConfigurationError(f"Unknown state component '{component}'")
    self._registry_ref = weakref.ref(body_registry)
    self._handle       = handle
    self._slice        = self._COMPONENTS[component]
    self.body_name     = body_name
    self.component     = component

  def __call__(self) -> np.ndarray:
    if self._handle is None:
      return np.zeros(self._slice.stop - self._slice.start)
    body_registry = self._registry_ref()
    if body_registry is None:
      raise ConfigurationError(f"Body registry holding '{self.body_name}' no longer exists")
    return body_registry.resolve(self._handle).state[self._slice].copy()

  def __repr__(self) -> str:
    return f"BodyStateFunction('{self.body_name}', '{self.component}')"
