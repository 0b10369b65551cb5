"""
Constants for the image-subsetter server.

All magic strings, limits, and configuration keys live here.
"""


class ServerConfig:
    NAME = "image-subsetter"
    VERSION = "0.1.0"
    DESCRIPTION = "GIS Image Subsetter: raster crop server for CGI and HTTP transports"
    PAGE_TITLE = "GIS Image Subsetter"


class EnvVar:
    CONFIG_BASENAME = "SUBSETTER_CONFIG"
    TEMP_DIR = "SUBSETTER_TEMP_DIR"
    LOG_LEVEL = "SUBSETTER_LOG_LEVEL"
    GATEWAY_INTERFACE = "GATEWAY_INTERFACE"
    QUERY_STRING = "QUERY_STRING"


class ConfigKey:
    """Keys recognised in the ``<basename>.config`` file."""

    FILENAME = "Filename"
    PREFIX = "DPrefix"
    SUFFIX = "DSuffix"
    MISSING = "Missing"
    RESOLVER = "Resolver"
    TEMP_DIR = "TempDir"


class ModeKind:
    SINGLE = "single"
    DYNAMIC_ID = "dynamic_id"
    SCRIPT = "script"


class TransportMode:
    CGI = "cgi"
    HTTP = "http"


class Param:
    """Request parameter names."""

    SIZE = "size"
    BBOX = "bbox"
    ID = "ID"
    RAW = "RAW"
    DEBUG = "dbg"


CONFIG_SUFFIX = ".config"
SCRIPT_SUFFIX = ".py"
RESOLVER_ENTRY_POINT = "query_handler"

# Output size negotiation
MAX_OUTPUT_SIZE = 2048
DEFAULT_OUTPUT_SIZE = 1024

# Bounding box default, EPSG:4326 full extent
GEOGRAPHIC_DEFAULT_BBOX = (-180.0, -90.0, 180.0, 90.0)
BBOX_VALUE_COUNT = 4

# Pseudo-counts returned by the bbox parser for ordering violations
BBOX_X_ORDER_VIOLATION = -1
BBOX_Y_ORDER_VIOLATION = -2

# Output codec
OUTPUT_FORMAT = "JPEG"
OUTPUT_SUFFIX = ".jpg"
OUTPUT_CONTENT_TYPE = "image/jpeg"
OUTPUT_QUALITY = 75
HTML_CONTENT_TYPE = "text/html"

# Temporary artifacts larger than this are never sent
MAX_ARTIFACT_BYTES = 10 * 1024 * 1024  # 10 MB

# Retry policy for remote rasters
RETRY_ATTEMPTS = 3
RETRY_WAIT_MIN = 1
RETRY_WAIT_MAX = 10
REMOTE_PATH_PREFIXES = ("/vsicurl/", "/vsis3/", "/vsigs/", "/vsiaz/", "/vsihttp")

# HTTP defaults for the persistent transport
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8080

# Status codes the error page knows about; anything else is reported as 404
HTTP_STATUS_REASONS: dict[int, str] = {
    200: "OK",
    400: "Bad Request",
    404: "Not Found",
    500: "Internal Server Error",
}
ERROR_STATUS_CODES = (400, 404, 500)
FALLBACK_ERROR_STATUS = 404


class ErrorMessages:
    MISSING_SIZE = "Missing size parameter"
    INVALID_SIZE = "Can't parse size"
    INVALID_BBOX = "Can't parse bbox"
    INVALID_BBOX_X_ORDER = "Can't parse bbox: maxX must be greater than minX"
    INVALID_BBOX_Y_ORDER = "Can't parse bbox: maxY must be greater than minY"
    BAD_BBOX_VALUES = "Bad bbox values"
    MISSING_ID = "Missing ID element"
    NO_SUCH_DATASET = "No such dataset"
    DATASET_FAILURE = "dataset failure"
    CONFIGURATION_FAILURE = "Configuration failure"
    RASTER_LOOKUP_FAILURE = "Raster lookup failure"
    INVALID_RASTER_REQUEST = "Invalid raster request"
    RENDER_FAILURE = "Raster rendering failure"
    UNEXPECTED_FAILURE = "Unexpected server failure"

    # Startup
    NO_CONFIGURATION = "No configuration found: expected {} or {}"
    NO_MODE = "Configuration file {} defines none of Filename, Resolver, DPrefix, DSuffix"
    SCRIPT_UNREADABLE = "Can't read {} as a resolver script: {}"
    SCRIPT_NO_ENTRY_POINT = "Invalid resolver script {}: no callable '{}'"
    SINGLE_OPEN_FAILED = "Can't open file named \"{}\""


class SuccessMessages:
    MODE_SINGLE = "Serving single dataset {}"
    MODE_DYNAMIC = "Serving datasets {}<ID>{}"
    MODE_SCRIPT = "Serving datasets resolved by {}"
    LOOP_FINISHED = "Request loop finished after {} request(s)"
