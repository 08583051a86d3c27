import numpy as np

from typing import Any


def get_equal_limits(
  ax              : Any,
  buffer_fraction : float = 0.0,
) -> tuple[float, float]:
  """
  Get equal limits for a 3D plot so the aspect ratio is preserved.

  Input:
  ------
    ax : mpl_toolkits.mplot3d.Axes3D
      The 3D axes object.
    buffer_fraction : float
      Fraction of the range added as buffer on each side (default 0.0).

  Output:
  -------
    min_limit : float
      The minimum limit for all axes.
    max_limit : float
      The maximum limit for all axes.
  """
  all_limits = np.array([ax.get_xlim3d(), ax.get_ylim3d(), ax.get_zlim3d()])
  min_limit  = float(np.min(all_limits[:, 0]))
  max_limit  = float(np.max(all_limits[:, 1]))

  if buffer_fraction > 0:
    buffer     = buffer_fraction * (max_limit - min_limit)
    min_limit -= buffer
    max_limit += buffer

  return min_limit, max_limit


def add_stats(
  ax    : Any,
  data  : np.ndarray,
  label : str,
) -> None:
  """
  Add a statistics text box (initial, final, min, max) to a plot axis.

  Input:
  ------
    ax : matplotlib.axes.Axes
      The axes object to add statistics to.
    data : np.ndarray
      Data array to compute statistics from.
    label : str
      Label prefix for statistics text.
  """
  data = np.asarray(data, dtype=float)
  if data.size == 0:
    return

  stats = (
    f'{label} Initial : {data[0]:.6g}\n'
    f'{label} Final   : {data[-1]:.6g}\n'
    f'{label} Min     : {np.min(data):.6g}\n'
    f'{label} Max     : {np.max(data):.6g}'
  )
  ax.text(
    0.02, 0.95,
    stats,
    transform         = ax.transAxes,
    fontsize          = 9,
    verticalalignment = 'top',
    bbox              = dict(boxstyle='round', facecolor='white', alpha=0.8),
  )


def body_state_slices(
  result : dict,
) -> list[tuple[str, str, np.ndarray]]:
  """
  Split the stacked state history of a result into one 6xN block per propagated body.

  Output:
  -------
    blocks : list[tuple[str, str, np.ndarray]]
      (body name, central body name, 6xN state history)
  """
  blocks = []
  for index, (body_name, central_body_name) in enumerate(zip(result['bodies_to_propagate'], result['central_bodies'])):
    blocks.append((body_name, central_body_name, result['state'][6 * index:6 * index + 6, :]))
  return blocks
