"""
Force-Model Propagator

Description:
  This script propagates the translational state of one or more bodies under a
  composed set of acceleration models. Everything is read from a scenario .yaml file:
  the bodies (gravity fields, ephemerides, atmospheres, aerodynamic coefficients),
  the accelerations acting on each propagated body, the central bodies, the
  integrator, the termination conditions and the dependent variables to save.

  The script performs the following steps:
  1. Loads the scenario and builds the configuration.
  2. Loads SPICE kernels, if the scenario lists any.
  3. Creates the body registry and the acceleration models.
  4. Propagates until a termination condition is met.
  5. Prints a summary and optionally saves plots.

Usage:

  Argument       Required   Description
  -------------  --------   --------------------------------------------------
  --scenario     Yes        Scenario .yaml file
  --log-file     No         Copy console output into a log file
  --plot-folder  No         Save figures into a folder
  --progress     No         Show a progress bar

  Example Commands:
    python -m force_propagation.main \
      --scenario scenarios/earth_vehicle_entry.yaml \
      [--log-file output/earth_vehicle_entry.log] \
      [--plot-folder output/figures] \
      [--progress]
"""
from pathlib import Path
from typing  import Optional

from force_propagation.input.cli                import parse_command_line_arguments
from force_propagation.input.configuration      import build_config, load_scenario_file, print_configuration
from force_propagation.model.ephemeris          import load_spice_kernels, unload_spice_kernels
from force_propagation.plot.trajectory          import generate_plots
from force_propagation.propagation.propagator   import PropagationLoop
from force_propagation.setup.create_simulation  import create_simulation
from force_propagation.utility.logger           import start_logging, stop_logging
from force_propagation.utility.printer          import (
  print_acceleration_map,
  print_dependent_variable_ids,
  print_results_summary,
)


def run_scenario(
  scenario_filepath : Path,
  log_filepath      : Optional[Path] = None,
  plot_folderpath   : Optional[Path] = None,
  show_progress     : bool           = False,
) -> dict:
  """
  Run the propagation described by a scenario file.

  Input:
  ------
    scenario_filepath : Path
      Scenario .yaml file.
    log_filepath : Path, optional
      File receiving a copy of the console output.
    plot_folderpath : Path, optional
      Folder receiving the figures. No plots without it.
    show_progress : bool
      Show a progress bar during propagation.

  Output:
  -------
    result : dict
      Propagation result, see PropagationLoop.assemble_results.
  """
  # Process inputs
  config = build_config(
    load_scenario_file(scenario_filepath),
    scenario_filepath = scenario_filepath,
    log_filepath      = log_filepath,
    plot_folderpath   = plot_folderpath,
    show_progress     = show_progress,
  )

  # Start logging to file
  logger = start_logging(config.log_filepath) if config.log_filepath is not None else None

  kernels_loaded = False
  try:
    print_configuration(config)

    if config.spice_kernels:
      print("\nLoad Files")
      load_spice_kernels(config.spice_kernels)
      kernels_loaded = True

    # Build bodies, accelerations and settings
    simulation = create_simulation(config)
    print_acceleration_map(simulation.acceleration_map)

    propagation_loop = PropagationLoop(
      body_registry       = simulation.body_registry,
      integrator_settings = simulation.integrator_settings,
      propagator_settings = simulation.propagator_settings,
      show_progress       = config.show_progress,
    )
    dependent_variable_settings = simulation.propagator_settings.dependent_variables_to_save
    if dependent_variable_settings is not None and dependent_variable_settings.print_variable_indices:
      print_dependent_variable_ids(propagation_loop.dependent_variable_ids)

    # Propagate
    print("\nPropagate")
    result = propagation_loop.propagate()

    # Display results and create plots
    print_results_summary(result)
    if config.plot_folderpath is not None:
      generate_plots(
        result             = result,
        figures_folderpath = config.plot_folderpath,
        scenario_name      = config.name,
      )

  finally:
    if kernels_loaded:
      unload_spice_kernels()
    stop_logging(logger)

  return result


def main(
  argv : Optional[list] = None,
) -> int:
  # Parse command-line arguments
  args = parse_command_line_arguments(argv)

  result = run_scenario(
    scenario_filepath = args.scenario_filepath,
    log_filepath      = args.log_filepath,
    plot_folderpath   = args.plot_folderpath,
    show_progress     = args.show_progress,
  )
  return 0 if result['success'] else 1


if __name__ == "__main__":
  raise SystemExit(main())
