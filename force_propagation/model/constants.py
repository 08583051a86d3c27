class CONVERTER:
  # Angle Conversions
  RAD_PER_DEG = 3.141592653589793 / 180.0  # [radian] per [degree]
  DEG_PER_RAD = 180.0 / 3.141592653589793  # [degree] per [radian]

  # Time Conversions
  SEC_PER_DAY  = 86400                     # [seconds] per [day]
  SEC_PER_HOUR = 3600                      # [seconds] per [hour]

  # Distance Conversions
  M_PER_KM = 1000.0                        # [meters] per [kilometer]
  KM_PER_M = 1.0 / 1000.0                  # [kilometers] per [meter]
  M_PER_AU = 149597870700.0                # [meters] per [astronomical unit]


class FRAMES:
  # Name of the inertial origin of the global frame (solar system barycenter)
  GLOBAL_ORIGIN      = 'SSB'
  GLOBAL_ORIENTATION = 'J2000'


class SOLARSYSTEMCONSTANTS:
  """
  Physical constants of the bodies used by the default scenarios and tests.
  """

  class SUN:
    class RADIUS:
      EQUATOR = 696340000.0                 # Sun's equatorial radius [m]

    GP = 1.32712440018e20                   # Sun's gravitational parameter [m³/s²]

  class EARTH:
    class RADIUS:
      EQUATOR = 6378137.0                   # Earth's WGS84 equatorial radius [m]

    GP = 3.986004418e14                     # Earth's gravitational parameter [m³/s²]

    # Zonal harmonics (unnormalized, WGS-84)
    J2 =  1.08263e-3
    J3 = -2.532153e-6
    J4 = -1.61962159137e-6

    # Tesseral harmonics (normalized)
    C22 =  2.43914352e-6
    S22 = -1.40016683e-6

    # Rotation rate
    OMEGA = 7.2921150e-5                    # Earth's rotation rate [rad/s]

    # Reference atmosphere parameters (simplified exponential model)
    RHO_0          = 1.225                  # Earth's sea level density [kg/m³]
    H_0            = 8500.0                 # Earth's scale height [m]
    SPEED_OF_SOUND = 340.294                # Sea level speed of sound [m/s]

  class MOON:
    class RADIUS:
      EQUATOR = 1737400.0                   # Moon's equatorial radius [m]

    GP = 4.9048695e12                       # Moon's gravitational parameter [m³/s²]

  class MARS:
    class RADIUS:
      EQUATOR = 3397200.0                   # Mars's equatorial radius [m]

    GP = 4.28283e13                         # Mars's gravitational parameter [m³/s²]

  class JUPITER:
    class RADIUS:
      EQUATOR = 71492000.0                  # Jupiter's equatorial radius [m]

    GP = 1.2671277e17                       # Jupiter's gravitational parameter [m³/s²]


def get_body_constants(
  body_name : str,
):
  """
  Look up the constants class of a body by (case-insensitive) name.

  Input:
  ------
    body_name : str
      Body name (e.g. 'Earth', 'SUN').

  Output:
  -------
    constants : type
      Nested constants class (e.g. SOLARSYSTEMCONSTANTS.EARTH).
  """
  body_upper = body_name.upper()
  if hasattr(SOLARSYSTEMCONSTANTS, body_upper):
    return getattr(SOLARSYSTEMCONSTANTS, body_upper)
  raise KeyError(f"No constants defined for body: {body_name}")
