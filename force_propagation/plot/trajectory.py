import matplotlib.pyplot as plt
import numpy             as np

from pathlib           import Path
from matplotlib.figure import Figure
from matplotlib.lines  import Line2D

from force_propagation.plot.utility import add_stats, body_state_slices, get_equal_limits


def plot_3d_trajectories(
  result : dict,
) -> Figure:
  """
  Plot 3D position and velocity trajectories of every propagated body in a 1x2 grid.

  Input:
  ------
    result : dict
      Propagation result dictionary containing 'state' (6n x N), 'bodies_to_propagate'
      and 'central_bodies'.

  Output:
  -------
    matplotlib.figure.Figure
      Figure object containing the 3D plots.
  """
  fig = plt.figure(figsize=(18,10))
  ax1 = fig.add_subplot(121, projection='3d')
  ax2 = fig.add_subplot(122, projection='3d')

  colors = plt.rcParams['axes.prop_cycle'].by_key()['color']
  for index, (body_name, central_body_name, states) in enumerate(body_state_slices(result)):
    color = colors[index % len(colors)]
    label = f'{body_name} w.r.t. {central_body_name}'
    pos_x, pos_y, pos_z = states[0, :], states[1, :], states[2, :]
    vel_x, vel_y, vel_z = states[3, :], states[4, :], states[5, :]

    ax1.plot(pos_x, pos_y, pos_z, '-', color=color, linewidth=1, label=label)
    ax1.scatter([pos_x[0]], [pos_y[0]], [pos_z[0]], s=100, marker='>', facecolors='white', edgecolors=color, linewidths=2) # type: ignore
    ax1.scatter([pos_x[-1]], [pos_y[-1]], [pos_z[-1]], s=100, marker='s', facecolors='white', edgecolors=color, linewidths=2) # type: ignore

    ax2.plot(vel_x, vel_y, vel_z, '-', color=color, linewidth=1, label=label)
    ax2.scatter([vel_x[0]], [vel_y[0]], [vel_z[0]], s=100, marker='>', facecolors='white', edgecolors=color, linewidths=2) # type: ignore
    ax2.scatter([vel_x[-1]], [vel_y[-1]], [vel_z[-1]], s=100, marker='s', facecolors='white', edgecolors=color, linewidths=2) # type: ignore

  for ax, quantity, unit in ((ax1, 'Pos', 'm'), (ax2, 'Vel', 'm/s')):
    ax.set_xlabel(f'{quantity}-X [{unit}]')
    ax.set_ylabel(f'{quantity}-Y [{unit}]')
    ax.set_zlabel(f'{quantity}-Z [{unit}]') # type: ignore
    ax.grid(True)
    ax.set_box_aspect([1,1,1]) # type: ignore
    min_limit, max_limit = get_equal_limits(ax)
    ax.set_xlim([min_limit, max_limit]) # type: ignore
    ax.set_ylim([min_limit, max_limit]) # type: ignore
    ax.set_zlim([min_limit, max_limit]) # type: ignore
  ax1.legend(loc='upper left', fontsize=9)

  legend_handles = [
    Line2D([0], [0], marker='>', color='w', markerfacecolor='white', markeredgecolor='black',
           markersize=10, markeredgewidth=2, linestyle='None', label='Start'),
    Line2D([0], [0], marker='s', color='w', markerfacecolor='white', markeredgecolor='black',
           markersize=10, markeredgewidth=2, linestyle='None', label='End'),
  ]
  fig.legend(handles=legend_handles, loc='upper right', fontsize=11, framealpha=0.9)

  plt.tight_layout(rect=[0, 0.02, 1, 0.95])
  return fig


def plot_time_series(
  result : dict,
) -> Figure:
  """
  Plot position and velocity components vs time, one column per propagated body.

  Input:
  ------
    result : dict
      Propagation result dictionary containing 'time' and 'state'.

  Output:
  -------
    matplotlib.figure.Figure
      Figure object containing the time series plots.
  """
  blocks = body_state_slices(result)
  time   = result['time']

  fig, axes = plt.subplots(2, len(blocks), figsize=(9 * len(blocks), 10), sharex=True, squeeze=False)

  for column, (body_name, central_body_name, states) in enumerate(blocks):
    ax_pos = axes[0, column]
    ax_vel = axes[1, column]

    pos_mag = np.linalg.norm(states[0:3, :], axis=0)
    vel_mag = np.linalg.norm(states[3:6, :], axis=0)

    ax_pos.plot(time, states[0, :], 'r-', label='X', linewidth=1.5)
    ax_pos.plot(time, states[1, :], 'g-', label='Y', linewidth=1.5)
    ax_pos.plot(time, states[2, :], 'b-', label='Z', linewidth=1.5)
    ax_pos.plot(time, pos_mag, 'k-', label='Magnitude', linewidth=2)
    ax_pos.set_title(f'{body_name} w.r.t. {central_body_name}')
    ax_pos.set_ylabel('Position\n[m]')
    ax_pos.legend(loc='upper right')
    ax_pos.grid(True)
    ax_pos.ticklabel_format(style='scientific', axis='y', scilimits=(0,0))
    add_stats(ax_pos, pos_mag, '|r|')

    ax_vel.plot(time, states[3, :], 'r-', label='X', linewidth=1.5)
    ax_vel.plot(time, states[4, :], 'g-', label='Y', linewidth=1.5)
    ax_vel.plot(time, states[5, :], 'b-', label='Z', linewidth=1.5)
    ax_vel.plot(time, vel_mag, 'k-', label='Magnitude', linewidth=2)
    ax_vel.set_xlabel('Time\n[s]')
    ax_vel.set_ylabel('Velocity\n[m/s]')
    ax_vel.legend(loc='upper right')
    ax_vel.grid(True)
    ax_vel.ticklabel_format(style='scientific', axis='y', scilimits=(0,0))
    add_stats(ax_vel, vel_mag, '|v|')

  fig.align_ylabels(axes[:, 0])
  plt.subplots_adjust(hspace=0.17, wspace=0.2)
  return fig


def plot_dependent_variables(
  result : dict,
) -> Figure:
  """
  Plot every saved dependent variable vs time, one row per variable.

  Input:
  ------
    result : dict
      Propagation result dictionary containing 'time', 'dependent_variables' (m x N)
      and 'dependent_variable_ids' {(start, size): id}.

  Output:
  -------
    matplotlib.figure.Figure
      Figure object containing the dependent variable plots.
  """
  time      = result['time']
  values    = result['dependent_variables']
  variables = sorted(result['dependent_variable_ids'].items())

  fig, axes = plt.subplots(len(variables), 1, figsize=(12, 2.5 * len(variables) + 1), sharex=True, squeeze=False)

  for row, ((start, size), variable_id) in enumerate(variables):
    ax = axes[row, 0]
    if size == 1:
      ax.plot(time, values[start, :], 'b-', linewidth=1.5)
      add_stats(ax, values[start, :], 'Value')
    else:
      for component in range(size):
        ax.plot(time, values[start + component, :], '-', linewidth=1.5, label=f'[{component}]')
      ax.legend(loc='upper right', fontsize=8, ncol=min(size, 6))
    ax.set_ylabel(variable_id, rotation=0, ha='right', va='center', fontsize=9)
    ax.grid(True)

  axes[-1, 0].set_xlabel('Time\n[s]')
  fig.align_ylabels(axes[:, 0])
  plt.tight_layout()
  return fig


def generate_plots(
  result             : dict,
  figures_folderpath : Path,
  scenario_name      : str = "scenario",
) -> list[Path]:
  """
  Generate and save all propagation plots.

  Input:
  ------
    result : dict
      Propagation result dictionary.
    figures_folderpath : Path
      Directory to save plots. Created if missing.
    scenario_name : str
      Name of the scenario for plot titles and filenames.

  Output:
  -------
    filepaths : list[Path]
      Saved figure files.
  """
  print("\nGenerate and Save Plots")
  print(f"  Figure Folderpath : {figures_folderpath}")

  filepaths = []
  if result['time'].size == 0:
    print("  No recorded epochs, skipping plots")
    return filepaths

  figures_folderpath = Path(figures_folderpath)
  figures_folderpath.mkdir(parents=True, exist_ok=True)
  name_lower = scenario_name.lower().replace(' ', '_')

  figures = [
    ('3D',          '3d',          plot_3d_trajectories(result)),
    ('Time Series', 'timeseries',  plot_time_series(result)),
  ]
  if result['dependent_variable_ids']:
    figures.append(('Dependent Variables', 'dependent_variables', plot_dependent_variables(result)))

  for title, prefix, fig in figures:
    filepath = figures_folderpath / f'{prefix}_{name_lower}.png'
    fig.suptitle(f'{scenario_name} - {title}', fontsize=16)
    fig.savefig(filepath, dpi=150, bbox_inches='tight')
    plt.close(fig)
    print(f"    {title:<19} : <figures_folderpath>/{filepath.name}")
    filepaths.append(filepath)

  return filepaths
