"""Constants for the Tranzy open-data API adapter.

API Documentation: https://api.tranzy.ai/v1/opendata/docs
Authentication: an API key in ``X-API-Key`` plus the agency in ``X-Agency-Id``.
"""

TRANZY_BASE_URL = "https://api.tranzy.ai/v1"

STOPS_PATH = "/opendata/stops"
VEHICLES_PATH = "/opendata/vehicles"
ROUTES_PATH = "/opendata/routes"
TRIPS_PATH = "/opendata/trips"
STOP_TIMES_PATH = "/opendata/stop_times"

API_KEY_HEADER = "X-API-Key"
AGENCY_ID_HEADER = "X-Agency-Id"

DEFAULT_HEADERS = {
    "Accept": "application/json",
}

# Accessibility flags as reported on vehicle records
WHEELCHAIR_ACCESSIBLE = "WHEELCHAIR_ACCESSIBLE"
BIKE_ACCESSIBLE = "BIKE_ACCESSIBLE"

# Minimum delay between requests to the same API key
TRANZY_MIN_DELAY_SECONDS = 0.2
