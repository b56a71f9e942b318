"""Internal constants shared across the library."""

USER_AGENT = "pymuseum"

# ------------------------------------------------------------------
# Durable storage keys
# ------------------------------------------------------------------

FAVOURITES_KEY = "favourites"
RATINGS_KEY = "ratings"
PENDING_SYNC_KEY = "pending_sync"

# ------------------------------------------------------------------
# Navigation
# ------------------------------------------------------------------

LOCATION_UPDATE_INTERVAL_SECONDS = 5.0
GEOLOCATION_TIMEOUT_SECONDS = 5.0

# Seed position for simulated tracking when nothing better is known.
DEFAULT_LAT = 40.7610
DEFAULT_LNG = -73.9780

# Full width of the uniform perturbation applied to simulated positions
# (degrees; roughly +/- 55 m of latitude).
SIMULATED_JITTER_DEGREES = 0.001

# ------------------------------------------------------------------
# Ratings
# ------------------------------------------------------------------

RATING_MIN = 1
RATING_MAX = 5
