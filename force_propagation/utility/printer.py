import numpy as np

from force_propagation.propagation.dependent_variables import format_dependent_variable_ids


def print_acceleration_map(
  acceleration_map : dict,
) -> None:
  """
  Print the acceleration models created for each body, in evaluation order.

  Input:
  ------
    acceleration_map : dict
      {affected: {exerting: [AccelerationModel, ...]}}
  """
  print("\nAcceleration Models")
  for affected_name, accelerations_of_body in acceleration_map.items():
    print(f"  {affected_name}")
    for exerting_name, models in accelerations_of_body.items():
      for index, model in enumerate(models):
        detail = ""
        if hasattr(model, 'central_body_name'):
          detail = f" (corrected for {model.central_body_name})"
        elif hasattr(model, 'gravitational_parameter'):
          detail = f" (GP {model.gravitational_parameter:.6e} m³/s²)"
        print(f"    {exerting_name:<12} [{index}] {type(model).__name__}{detail}")


def print_dependent_variable_ids(
  dependent_variable_ids : dict,
) -> None:
  if not dependent_variable_ids:
    return
  print("\nDependent Variables")
  for line in format_dependent_variable_ids(dependent_variable_ids):
    print(f"  {line}")


def print_results_summary(
  result : dict,
) -> None:
  """
  Print a summary of the propagation results.

  Input:
  ------
    result : dict
      Propagation result from PropagationLoop.propagate.
  """
  print("\nResults Summary")
  print(f"  Status             : {result['message']}")
  print(f"  Termination Reason : {result['termination_reason']}")

  times = result['time']
  if times.size == 0:
    return

  print(f"  Epochs             : {times.size} ({times[0]:.6f} s to {times[-1]:.6f} s)")

  state_f = result['state'][:, -1]
  for index, (body_name, central_body_name) in enumerate(zip(result['bodies_to_propagate'], result['central_bodies'])):
    pos_vec_f = state_f[6 * index:6 * index + 3]
    vel_vec_f = state_f[6 * index + 3:6 * index + 6]
    print(f"  Final State of {body_name} w.r.t. {central_body_name}")
    print(f"    Position : {pos_vec_f[0]:>19.12e}  {pos_vec_f[1]:>19.12e}  {pos_vec_f[2]:>19.12e} m")
    print(f"    Velocity : {vel_vec_f[0]:>19.12e}  {vel_vec_f[1]:>19.12e}  {vel_vec_f[2]:>19.12e} m/s")
    print(f"    Distance : {np.linalg.norm(pos_vec_f):>19.12e} m")

  if result['dependent_variables'].size:
    values_f = result['dependent_variables'][:, -1]
    print(f"  Final Dependent Variables")
    for (start, size), variable_id in result['dependent_variable_ids'].items():
      values_str = "  ".join(f"{value:>19.12e}" for value in values_f[start:start + size])
      print(f"    {variable_id}")
      print(f"      {values_str}")
