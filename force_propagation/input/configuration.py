import yaml
import numpy as np

from pathlib import Path
from types   import SimpleNamespace
from typing  import Optional

from force_propagation.model.constants import FRAMES, get_body_constants
from force_propagation.model.errors    import ConfigurationError


def load_scenario_file(
  scenario_filepath : Path,
) -> dict:
  """
  Load a scenario .yaml file.

  Input:
  ------
    scenario_filepath : Path
      Path to the scenario file.

  Output:
  -------
    scenario : dict
      Raw scenario content.

  Raises:
  -------
    FileNotFoundError
      If the file does not exist.
    ConfigurationError
      If the file does not hold a mapping.
  """
  scenario_filepath = Path(scenario_filepath)
  if not scenario_filepath.exists():
    raise FileNotFoundError(f"Scenario file not found: {scenario_filepath}")

  with open(scenario_filepath, 'r') as f:
    scenario = yaml.safe_load(f)

  if not isinstance(scenario, dict):
    raise ConfigurationError(f"Scenario file {scenario_filepath} must contain a mapping at top level")
  return scenario


def _require(
  section : dict,
  key     : str,
  where   : str,
):
  if key not in section or section[key] is None:
    raise ConfigurationError(f"Missing '{key}' in {where}")
  return section[key]


def parse_vec3(raw_val) -> np.ndarray:
  """Parse an "x, y, z" string or an [x, y, z] list."""
  if isinstance(raw_val, str):
    clean = raw_val.replace('[', '').replace(']', '')
    values = np.array([float(x.strip()) for x in clean.split(',')])
  elif isinstance(raw_val, (list, tuple)):
    values = np.array([float(x) for x in raw_val])
  else:
    raise ConfigurationError(f"Unknown format for vector: {raw_val}")
  if values.size != 3:
    raise ConfigurationError(f"Expected 3 components, got {values.size}: {raw_val}")
  return values


def parse_state(
  raw   : dict,
  where : str,
) -> np.ndarray:
  """
  Support 'state' (6-element list) OR 'pos_vec__m' and 'vel_vec__m_per_s'.
  """
  if 'state' in raw:
    state = np.array(raw['state'], dtype=float)
    if state.shape != (6,):
      raise ConfigurationError(f"'state' in {where} must have 6 elements")
    return state
  if 'pos_vec__m' in raw and 'vel_vec__m_per_s' in raw:
    return np.concatenate((parse_vec3(raw['pos_vec__m']), parse_vec3(raw['vel_vec__m_per_s'])))
  raise ConfigurationError(f"{where} must contain 'state' or 'pos_vec__m'/'vel_vec__m_per_s'")


def _parse_gravity_harmonics(
  raw_harmonics,
  body_constants,
  body_name      : str,
) -> dict:
  """
  Named coefficients. A list of names takes values from the body constants
  (e.g. [J2, J3, C22, S22]); a mapping gives explicit values.
  """
  if raw_harmonics is None:
    return {}

  if isinstance(raw_harmonics, dict):
    return {str(name).upper(): float(value) for name, value in raw_harmonics.items()}

  if body_constants is None:
    raise ConfigurationError(f"Gravity harmonics of '{body_name}' listed by name need 'constants' to take values from")

  harmonics = {}
  for name in raw_harmonics:
    name = str(name).upper()
    if not hasattr(body_constants, name):
      raise ConfigurationError(f"No value of {name} in the constants of '{body_name}'")
    harmonics[name] = float(getattr(body_constants, name))
  return harmonics


def _parse_ephemeris(
  raw_ephemeris : Optional[dict],
  body_name     : str,
) -> Optional[SimpleNamespace]:
  if raw_ephemeris is None:
    return None

  where          = f"ephemeris of '{body_name}'"
  ephemeris_type = str(_require(raw_ephemeris, 'type', where)).lower()

  if ephemeris_type == 'constant':
    return SimpleNamespace(type='constant', state=parse_state(raw_ephemeris, where))

  if ephemeris_type == 'tabulated':
    states = np.array(_require(raw_ephemeris, 'states', where), dtype=float)
    return SimpleNamespace(
      type   = 'tabulated',
      times  = np.array(_require(raw_ephemeris, 'times__s', where), dtype=float),
      states = states.T if states.ndim == 2 and states.shape[1] == 6 else states,
      kind   = raw_ephemeris.get('kind', 'cubic'),
    )

  if ephemeris_type == 'spice':
    return SimpleNamespace(
      type     = 'spice',
      target   = str(raw_ephemeris.get('target', body_name)).upper(),
      observer = str(raw_ephemeris.get('observer', FRAMES.GLOBAL_ORIGIN)).upper(),
      frame    = raw_ephemeris.get('frame', FRAMES.GLOBAL_ORIENTATION),
    )

  raise ConfigurationError(f"Unknown ephemeris type '{ephemeris_type}' for '{body_name}'. Options: constant, tabulated, spice")


def _parse_body(
  body_name : str,
  raw_body  : dict,
) -> SimpleNamespace:
  raw_body = raw_body or {}

  # Physical constants of known bodies fill in what the file leaves out
  body_constants = None
  if 'constants' in raw_body:
    try:
      body_constants = get_body_constants(str(raw_body['constants']))
    except KeyError as error:
      raise ConfigurationError(str(error)) from error

  gp     = raw_body.get('gp__m3_per_s2', body_constants.GP                if body_constants else None)
  radius = raw_body.get('radius__m',     body_constants.RADIUS.EQUATOR    if body_constants else None)

  gravity_harmonics = _parse_gravity_harmonics(raw_body.get('gravity_harmonics'), body_constants, body_name)
  if gravity_harmonics and (gp is None or radius is None):
    raise ConfigurationError(f"Gravity harmonics of '{body_name}' need 'gp__m3_per_s2' and 'radius__m'")

  atmosphere = None
  if raw_body.get('atmosphere') is not None:
    raw_atmosphere = raw_body['atmosphere']
    if raw_atmosphere == 'exponential':
      raw_atmosphere = {}
    atmosphere_values = {
      'density_sea_level' : raw_atmosphere.get('rho_0__kg_per_m3',         getattr(body_constants, 'RHO_0',          None)),
      'scale_height'      : raw_atmosphere.get('scale_height__m',          getattr(body_constants, 'H_0',            None)),
      'speed_of_sound'    : raw_atmosphere.get('speed_of_sound__m_per_s',  getattr(body_constants, 'SPEED_OF_SOUND', None)),
      'rotation_rate'     : raw_atmosphere.get('rotation_rate__rad_per_s', getattr(body_constants, 'OMEGA',          0.0)),
      'reference_radius'  : raw_atmosphere.get('reference_radius__m',      radius),
    }
    missing = [key for key, value in atmosphere_values.items() if value is None]
    if missing:
      raise ConfigurationError(f"Atmosphere of '{body_name}' is missing: {', '.join(missing)}")
    atmosphere = SimpleNamespace(**{key: float(value) for key, value in atmosphere_values.items()})

  aerodynamics = None
  if raw_body.get('aerodynamics') is not None:
    raw_aerodynamics = raw_body['aerodynamics']
    where            = f"aerodynamics of '{body_name}'"
    aerodynamics = SimpleNamespace(
      reference_area      = float(_require(raw_aerodynamics, 'reference_area__m2', where)),
      force_coefficients  = np.array(_require(raw_aerodynamics, 'force_coefficients', where), dtype=float),
      moment_coefficients = np.array(raw_aerodynamics.get('moment_coefficients', [0.0, 0.0, 0.0]), dtype=float),
    )

  return SimpleNamespace(
    name              = body_name,
    gp                = float(gp) if gp is not None else None,
    radius            = float(radius) if radius is not None else None,
    gravity_harmonics = gravity_harmonics,
    mass              = float(raw_body['mass__kg']) if raw_body.get('mass__kg') is not None else None,
    state             = parse_state(raw_body, f"body '{body_name}'") if ('state' in raw_body or 'pos_vec__m' in raw_body) else None,
    ephemeris         = _parse_ephemeris(raw_body.get('ephemeris'), body_name),
    rotation_rate     = float(raw_body.get('rotation_rate__rad_per_s', 0.0)),
    atmosphere        = atmosphere,
    aerodynamics      = aerodynamics,
  )


def _parse_acceleration(
  raw_acceleration,
  where            : str,
) -> SimpleNamespace:
  # Shorthand: a bare type name
  if isinstance(raw_acceleration, str):
    raw_acceleration = {'type': raw_acceleration}

  acceleration_type = str(_require(raw_acceleration, 'type', where)).lower().replace('-', '_').replace(' ', '_')
  return SimpleNamespace(
    type              = acceleration_type,
    degree            = raw_acceleration.get('degree'),
    order             = raw_acceleration.get('order'),
    mutual_attraction = raw_acceleration.get('mutual_attraction'),
  )


def _parse_dependent_variable(
  raw_variable : dict,
) -> SimpleNamespace:
  where = "dependent variable entry"
  return SimpleNamespace(
    type      = str(_require(raw_variable, 'type', where)).lower(),
    body      = str(_require(raw_variable, 'body', where)),
    secondary = raw_variable.get('secondary', raw_variable.get('exerting', raw_variable.get('surface'))),
    angle     = raw_variable.get('angle'),
    index     = int(raw_variable.get('index', 0)),
  )


def build_config(
  scenario          : dict,
  scenario_filepath : Optional[Path] = None,
  log_filepath      : Optional[Path] = None,
  plot_folderpath   : Optional[Path] = None,
  show_progress     : bool           = False,
) -> SimpleNamespace:
  """
  Parse and validate a scenario into a configuration object.

  Input:
  ------
    scenario : dict
      Raw scenario content (see load_scenario_file).
    scenario_filepath : Path, optional
      Path of the scenario file, used to resolve relative kernel paths.
    log_filepath : Path, optional
      File receiving a copy of the console output.
    plot_folderpath : Path, optional
      Folder receiving the figures.
    show_progress : bool
      Show a progress bar during propagation.

  Output:
  -------
    config : SimpleNamespace
      Configuration object with bodies, accelerations, integrator, termination,
      dependent variables and output settings.

  Raises:
  -------
    ConfigurationError
      If a required entry is missing or malformed.
  """
  raw_bodies = _require(scenario, 'bodies', 'scenario')
  if not isinstance(raw_bodies, dict) or not raw_bodies:
    raise ConfigurationError("'bodies' must be a non-empty mapping of body name to body settings")
  bodies = [_parse_body(str(name), raw_body) for name, raw_body in raw_bodies.items()]

  raw_propagation     = _require(scenario, 'propagation', 'scenario')
  bodies_to_propagate = [str(name) for name in _require(raw_propagation, 'bodies_to_propagate', 'propagation')]
  central_bodies      = [str(name) for name in _require(raw_propagation, 'central_bodies', 'propagation')]

  raw_initial_states = _require(raw_propagation, 'initial_states', 'propagation')
  initial_state_list = []
  for name in bodies_to_propagate:
    if name not in raw_initial_states:
      raise ConfigurationError(f"No initial state given for propagated body '{name}'")
    initial_state_list.append(parse_state(raw_initial_states[name] or {}, f"initial state of '{name}'"))
  initial_states = np.concatenate(initial_state_list)

  accelerations = {}
  for affected_name, raw_accelerations in _require(raw_propagation, 'accelerations', 'propagation').items():
    accelerations[str(affected_name)] = {
      str(exerting_name): [
        _parse_acceleration(raw, f"acceleration of '{exerting_name}' on '{affected_name}'") for raw in raw_list
      ]
      for exerting_name, raw_list in raw_accelerations.items()
    }

  raw_integrator = _require(scenario, 'integrator', 'scenario')
  integrator     = SimpleNamespace(
    method       = str(raw_integrator.get('method', 'RK4')),
    initial_time = float(raw_integrator.get('initial_time__s', 0.0)),
    step_size    = float(raw_integrator['step_size__s']) if raw_integrator.get('step_size__s') is not None else None,
    rtol         = float(raw_integrator.get('rtol', 1e-12)),
    atol         = float(raw_integrator.get('atol', 1e-12)),
  )

  raw_termination = _require(scenario, 'termination', 'scenario')
  termination     = SimpleNamespace(
    end_epoch          = float(_require(raw_termination, 'end_epoch__s', 'termination')),
    dependent_variable = None,
  )
  if raw_termination.get('dependent_variable') is not None:
    raw_condition = raw_termination['dependent_variable']
    termination.dependent_variable = SimpleNamespace(
      variable           = _parse_dependent_variable(raw_condition),
      limit_value        = float(_require(raw_condition, 'limit', 'termination dependent variable')),
      use_as_lower_limit = bool(raw_condition.get('use_as_lower_limit', True)),
    )

  dependent_variables = [_parse_dependent_variable(raw) for raw in (scenario.get('dependent_variables') or [])]

  scenario_folderpath = Path(scenario_filepath).parent if scenario_filepath is not None else Path.cwd()
  spice_kernels       = [
    Path(kernel) if Path(kernel).is_absolute() else scenario_folderpath / kernel
    for kernel in ((scenario.get('spice') or {}).get('kernels') or [])
  ]

  return SimpleNamespace(
    name                             = str(scenario.get('name', 'scenario')),
    scenario_filepath                = Path(scenario_filepath) if scenario_filepath is not None else None,
    global_frame_origin              = str(scenario.get('global_frame_origin', FRAMES.GLOBAL_ORIGIN)),
    bodies                           = bodies,
    bodies_to_propagate              = bodies_to_propagate,
    central_bodies                   = central_bodies,
    initial_states                   = initial_states,
    accelerations                    = accelerations,
    integrator                       = integrator,
    termination                      = termination,
    dependent_variables              = dependent_variables,
    print_dependent_variable_indices = bool(scenario.get('print_dependent_variable_indices', True)),
    spice_kernels                    = spice_kernels,
    log_filepath                     = Path(log_filepath) if log_filepath is not None else None,
    plot_folderpath                  = Path(plot_folderpath) if plot_folderpath is not None else None,
    show_progress                    = show_progress,
  )


def print_configuration(
  config : SimpleNamespace,
) -> None:
  """
  Print the scenario configuration.

  Input:
  ------
    config : SimpleNamespace
      Configuration object from build_config.
  """
  print("\nScenario Configuration")
  print(f"  Name                : {config.name}")
  if config.scenario_filepath is not None:
    print(f"  Scenario Filepath   : {config.scenario_filepath}")
  print(f"  Global Frame Origin : {config.global_frame_origin}")

  # Bodies table
  headers = ['Body', 'GP [m³/s²]', 'Harmonics', 'Ephemeris', 'Atmosphere', 'Aerodynamics']
  rows    = []
  for body in config.bodies:
    rows.append([
      body.name,
      f"{body.gp:.6e}" if body.gp is not None else "None",
      ' '.join(body.gravity_harmonics) if body.gravity_harmonics else "None",
      body.ephemeris.type if body.ephemeris is not None else "None",
      str(body.atmosphere is not None),
      str(body.aerodynamics is not None),
    ])

  # Column widths: max of header and all values, plus 4 for spacing
  min_spacing = 4
  col_widths  = []
  for col_idx in range(len(headers)):
    max_len = len(headers[col_idx])
    for row in rows:
      max_len = max(max_len, len(row[col_idx]))
    col_widths.append(max_len + min_spacing)

  print("\n  Bodies")
  print("    " + "".join(h.ljust(col_widths[i]) for i, h in enumerate(headers)))
  print("    " + "".join(("-" * (col_widths[i] - min_spacing)).ljust(col_widths[i]) for i in range(len(headers))))
  for row in rows:
    print("    " + "".join(row[col_idx].ljust(col_widths[col_idx]) for col_idx in range(len(row))))

  print("\n  Accelerations")
  for affected_name, accelerations_of_body in config.accelerations.items():
    for exerting_name, accelerations in accelerations_of_body.items():
      for acceleration in accelerations:
        detail = ""
        if acceleration.degree is not None:
          detail = f" (degree {acceleration.degree}, order {acceleration.order})"
        print(f"    {affected_name} <- {exerting_name} : {acceleration.type}{detail}")

  print("\n  Propagation")
  for body_name, central_body_name in zip(config.bodies_to_propagate, config.central_bodies):
    print(f"    {body_name} w.r.t. {central_body_name}")
  step_str = f"{config.integrator.step_size} s" if config.integrator.step_size is not None else "adaptive"
  print(f"    Integrator   : {config.integrator.method}, step {step_str}")
  print(f"    Initial Time : {config.integrator.initial_time} s")
  print(f"    End Epoch    : {config.termination.end_epoch} s")
  if config.termination.dependent_variable is not None:
    condition = config.termination.dependent_variable
    bound     = 'lower' if condition.use_as_lower_limit else 'upper'
    print(f"    Stop When    : {condition.variable.type} of {condition.variable.body} passes {bound} limit {condition.limit_value}")
