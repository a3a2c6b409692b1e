import os

# physics
G = 9.80665                 # m/s^2, standard gravity
EARTH_RADIUS_M = 6371000.0  # mean Earth radius used by the haversine formula
MIL_CIRCLE = 6400.0         # NATO mils per full circle

# catalog
WEAPONS_FILE = os.environ.get("ARTY_WEAPONS_FILE")  # None: the packaged arty_assets/weapons.toml
DEFAULT_CHARGE_LABEL = "Charge"

# firing tables
TABLE_STEP_M = 250.0
TABLE_MIN_RANGE_M = 100.0
TABLE_MIN_STEP_M = 1.0
TABLE_MAX_ROWS = 5000
TABLE_CACHE_SIZE = 64     # tables kept by TableManager, least recently used dropped first

# MET / elevation lookups
OPEN_METEO_ELEVATION_URL = "https://api.open-meteo.com/v1/elevation"
OPEN_METEO_FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
HTTP_TIMEOUT_S = float(os.environ.get("ARTY_HTTP_TIMEOUT", "5.0"))

# report generation
OPENAI_MODEL = os.environ.get("ARTY_OPENAI_MODEL", "gpt-4o-mini")
REPORT_TEMPERATURE = 0.2
# below these ranges the report asks for a direct fire solution
MIN_INDIRECT_RANGE_HOWITZER_M = 2000.0
MIN_INDIRECT_RANGE_MORTAR_M = 100.0

# api server
SERVER_HOST = os.environ.get("ARTY_HOST", "127.0.0.1")
SERVER_PORT = int(os.environ.get("ARTY_PORT", "8000"))

# logging
LOG_LEVEL = os.environ.get("ARTY_LOG_LEVEL", "INFO").upper()
CRASH_LOG_FILE = "crash_log.txt"
