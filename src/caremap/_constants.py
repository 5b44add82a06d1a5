"""Internal constants shared across the library."""

DEFAULT_STYLE = "mapbox://styles/rochote/cm3tyv8c5005t01si3pw64drv"
DEFAULT_CENTER: tuple[float, float] = (2.190, 41.379)
DEFAULT_ZOOM = 12.0
DEFAULT_PITCH = 60.0
DEFAULT_BEARING = -17.6

# Source files are exported as UTF-16 with a BOM.
DEFAULT_ENCODING = "utf-16"
DEFAULT_FACILITIES_SOURCE = "./data/caps_final.csv"
DEFAULT_ISOCHRONES_SOURCE = "./data/isochrones.geojson"

# ------------------------------------------------------------------
# Map source / layer identifiers
# ------------------------------------------------------------------

FACILITIES_SOURCE_ID = "facilities"
FACILITIES_CIRCLE_LAYER_ID = "facilities-circle"
FACILITIES_LABEL_LAYER_ID = "facilities-label"
ISOCHRONE_SOURCE_ID = "isochrone"
ISOCHRONE_FILL_LAYER_ID = "isochrone-fill"

# ------------------------------------------------------------------
# Tabular columns
# ------------------------------------------------------------------

COL_NAME = "name"
COL_REGISTER_ID = "register_id"
COL_LAT = "geo_epgs_4326_lat"
COL_LON = "geo_epgs_4326_lon"
COL_WAIT_TIME = "simulated_wait_time"
COL_OCCUPANCY = "occupancy_percentage"
COL_CURRENT_OCCUPANCY = "current_occupancy"
COL_IS_HOSPITAL = "is_hospital"
COL_PHONE = "values_value"
ADDRESS_COLUMNS: tuple[str, ...] = (
    "addresses_road_name",
    "addresses_start_street_number",
    "addresses_end_street_number",
    "addresses_postal_code",
)
ADDRESS_FALLBACK = "Address not provided"

# ------------------------------------------------------------------
# Occupancy buckets (stroke colour of the facility circles)
# ------------------------------------------------------------------

OCCUPANCY_MEDIUM_THRESHOLD = 50.0
OCCUPANCY_HIGH_THRESHOLD = 75.0
OCCUPANCY_LOW_COLOR = "#065f46"
OCCUPANCY_MEDIUM_COLOR = "#854d0e"
OCCUPANCY_HIGH_COLOR = "#7f1d1d"

FACILITY_FILL_COLOR = "#7BACFC"
FACILITY_RADIUS = 16
FACILITY_STROKE_WIDTH = 4
LABEL_TEXT_SIZE = 16
LABEL_TEXT_COLOR = "#ffffff"

# ------------------------------------------------------------------
# Isochrone fill
# ------------------------------------------------------------------

HIGHLIGHTED_FACILITIES: tuple[str, ...] = ("Vall d'Hebron Barcelona Hospital Campus",)
ISOCHRONE_HIGHLIGHT_FILL = "#ef4444"
ISOCHRONE_HIGHLIGHT_OUTLINE = "#dc2626"
ISOCHRONE_DEFAULT_FILL = "#22c55e"
ISOCHRONE_DEFAULT_OUTLINE = "#15803d"
ISOCHRONE_OPACITY = 0.35

# Upper bound (exclusive) of the synthesized "impacted population" figure.
IMPACTED_POPULATION_RANGE = 1000
