"""
Plot and Logger Tests
=====================
"""
import sys
import numpy as np

import matplotlib.pyplot as plt

from force_propagation.plot.trajectory                 import generate_plots, plot_dependent_variables, plot_time_series
from force_propagation.plot.utility                    import add_stats, body_state_slices
from force_propagation.propagation.dependent_variables import format_dependent_variable_ids
from force_propagation.utility.logger                  import start_logging, stop_logging
from force_propagation.utility.printer                 import print_results_summary


def create_result(number_of_epochs=5, with_dependent_variables=True):
  time  = np.linspace(0.0, 40.0, number_of_epochs)
  state = np.vstack([
    np.outer([7.0e6, 0.0, 0.0], np.ones_like(time)) + np.outer([0.0, 7500.0, 0.0], time),
    np.outer([0.0, 7500.0, 0.0], np.ones_like(time)),
  ])
  if with_dependent_variables:
    dependent_variables    = np.vstack([np.linalg.norm(state[0:3], axis=0), state[3:6]])
    dependent_variable_ids = {(0, 1): 'Relative distance of Vehicle w.r.t. Earth', (1, 3): 'Relative velocity of Vehicle w.r.t. Earth'}
  else:
    dependent_variables    = np.zeros((0, time.size))
    dependent_variable_ids = {}

  return {
    'success'                : True,
    'message'                : "Propagation completed",
    'termination_reason'     : "End epoch reached",
    'time'                   : time,
    'state'                  : state,
    'state_f'                : state[:, -1],
    'dependent_variables'    : dependent_variables,
    'dependent_variable_ids' : dependent_variable_ids,
    'bodies_to_propagate'    : ['Vehicle'],
    'central_bodies'         : ['Earth'],
  }


class TestPlots:
  """Tests for figure generation."""

  def test_generate_plots_writes_files(self, tmp_path):
    """All figures are written with the scenario name in the filename."""
    filepaths = generate_plots(create_result(), tmp_path / 'figures', scenario_name='Test Case')

    assert [filepath.name for filepath in filepaths] == [
      '3d_test_case.png',
      'timeseries_test_case.png',
      'dependent_variables_test_case.png',
    ]
    assert all(filepath.exists() for filepath in filepaths)

  def test_no_dependent_variable_figure_without_variables(self, tmp_path):
    """The dependent variable figure is skipped when nothing was saved."""
    filepaths = generate_plots(create_result(with_dependent_variables=False), tmp_path, scenario_name='orbit')
    assert [filepath.name for filepath in filepaths] == ['3d_orbit.png', 'timeseries_orbit.png']

  def test_empty_result_skips_plots(self, tmp_path):
    """Nothing is written without recorded epochs."""
    result = create_result()
    result['time'] = np.array([])
    assert generate_plots(result, tmp_path / 'figures') == []
    assert not (tmp_path / 'figures').exists()

  def test_figure_layout(self):
    """One time-series column per body and one row per dependent variable."""
    result = create_result()

    fig = plot_time_series(result)
    assert len(fig.axes) == 2
    plt.close(fig)

    fig = plot_dependent_variables(result)
    assert len(fig.axes) == 2
    plt.close(fig)

  def test_body_state_slices(self):
    """Stacked states are split per propagated body."""
    result = create_result()
    blocks = body_state_slices(result)
    assert len(blocks) == 1
    assert blocks[0][0:2] == ('Vehicle', 'Earth')
    assert blocks[0][2].shape == (6, 5)

  def test_add_stats_on_empty_data(self):
    """No statistics box is drawn for empty data."""
    fig, ax = plt.subplots()
    add_stats(ax, np.array([]), 'x')
    assert len(ax.texts) == 0
    add_stats(ax, np.array([1.0, 3.0, 2.0]), 'x')
    assert len(ax.texts) == 1
    plt.close(fig)


class TestLogger:
  """Tests for console output logging."""

  def test_output_copied_to_log_file(self, tmp_path):
    """Printed output is copied to the log file until logging stops."""
    log_filepath = tmp_path / 'logs' / 'run.log'
    original_stdout = sys.stdout

    context = start_logging(log_filepath)
    print("Inside the log")
    stop_logging(context)
    print("Outside the log")

    assert sys.stdout is original_stdout
    log_text = log_filepath.read_text()
    assert "Inside the log" in log_text
    assert "Outside the log" not in log_text

  def test_stop_without_context(self):
    """Stopping without a context leaves the streams untouched."""
    original_stdout = sys.stdout
    stop_logging(None)
    assert sys.stdout is original_stdout


class TestPrinter:
  """Tests for console summaries."""

  def test_results_summary(self, capsys):
    """The summary lists the final state and dependent variables."""
    print_results_summary(create_result())
    output = capsys.readouterr().out

    assert "Results Summary" in output
    assert "Final State of Vehicle w.r.t. Earth" in output
    assert "Relative distance of Vehicle w.r.t. Earth" in output

  def test_dependent_variable_id_lines(self):
    """Scalar variables show one index, vectors an index range."""
    lines = format_dependent_variable_ids({(0, 1): 'Altitude of Vehicle', (1, 3): 'Total acceleration of Vehicle'})
    assert lines[0].startswith('[0]')
    assert lines[1].startswith('[1:4]')
