import sys
import argparse

from pathlib import Path
from typing  import Optional


def parse_command_line_arguments(
  argv : Optional[list] = None,
) -> argparse.Namespace:
  """
  Parse command-line arguments for the force-model propagator.

  Input:
  ------
    argv : list, optional
      Arguments to parse. Defaults to sys.argv[1:].

  Output:
  -------
    args : argparse.Namespace
      Parsed command-line arguments.
  """
  parser = argparse.ArgumentParser(
    description     = 'Force-model composition and numerical propagation of body states',
    formatter_class = argparse.RawDescriptionHelpFormatter,
  )

  # If no arguments provided, print help and exit
  if argv is None and len(sys.argv) == 1:
    parser.print_help(sys.stderr)
    sys.exit(1)

  parser.add_argument(
    '--scenario',
    dest     = 'scenario_filepath',
    type     = Path,
    required = True,
    help     = 'Scenario .yaml file with bodies, accelerations, integrator and termination settings.',
  )
  parser.add_argument(
    '--log-file',
    dest    = 'log_filepath',
    type    = Path,
    default = None,
    help    = 'Copy console output into this file (disabled by default).',
  )
  parser.add_argument(
    '--plot-folder',
    '--plots',
    dest    = 'plot_folderpath',
    type    = Path,
    default = None,
    help    = 'Save state and dependent variable figures into this folder (disabled by default).',
  )
  parser.add_argument(
    '--progress',
    dest    = 'show_progress',
    action  = 'store_true',
    default = False,
    help    = 'Show a progress bar during propagation (disabled by default).',
  )

  # Parse arguments
  args = parser.parse_args(argv)

  return args
