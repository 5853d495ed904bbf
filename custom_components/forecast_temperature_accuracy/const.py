"""Constants for the Forecast Temperature Accuracy integration."""

DOMAIN = "forecast_temperature_accuracy"

# Config keys
CONF_NAME = "name"
CONF_TEMPERATURE_SENSOR = "temperature_sensor"
CONF_UNIT = "unit"
CONF_LATITUDE = "latitude"
CONF_LONGITUDE = "longitude"
CONF_TEMPEST_API_KEY = "tempest_api_key"
CONF_TEMPEST_STATION_ID = "tempest_station_id"
CONF_HISTORY_DAYS = "history_days"
CONF_REFRESH_INTERVAL = "refresh_interval"
CONF_FORECAST_LOOKAHEAD = "forecast_lookahead"

# Unit option strings ("" = follow the HA unit system)
UNIT_AUTO = ""
UNIT_CELSIUS = "C"
UNIT_FAHRENHEIT = "F"

# Defaults
DEFAULT_NAME = "Forecast Temperature Accuracy"
DEFAULT_HISTORY_DAYS = 7
DEFAULT_REFRESH_INTERVAL = 60  # minutes, forecasts aren't more granular than hourly
DEFAULT_FORECAST_LOOKAHEAD = 0  # hours, 0 = current only

# Config ranges
MIN_HISTORY_DAYS = 1
MAX_HISTORY_DAYS = 30
MIN_REFRESH_INTERVAL = 5
MAX_REFRESH_INTERVAL = 60
MAX_FORECAST_LOOKAHEAD = 48

# History store
STORAGE_VERSION = 1
STORAGE_KEY_PREFIX = f"{DOMAIN}."
DEDUP_WINDOW_FACTOR = 0.8  # fraction of the refresh interval
SECONDARY_QUALIFIER = "openmeteo"

# Statistics engine (fixed, not configurable)
ACCURATE_THRESHOLD = 2.0  # degrees
TREND_THRESHOLD = 0.5  # degrees of MAE change between the two 24h windows
TREND_WINDOW_HOURS = 24
TREND_MIN_RECORDS = 2
RECENT_WINDOW_SIZE = 168  # 7 days at hourly

# Forecast providers
OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"
OPEN_METEO_FORECAST_HOURS = 48
TEMPEST_URL = "https://swd.weatherflow.com/swd/rest/better_forecast"
FETCH_TIMEOUT_SECONDS = 20

SOURCE_NAME_OPEN_METEO = "Open-Meteo"
SOURCE_NAME_TEMPEST = "Tempest"

# Platforms
PLATFORMS = ["sensor", "button"]
