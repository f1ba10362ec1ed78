"""Constants for the MPD gateway."""

CONF_MPD_HOST = "mpd_host"
CONF_MPD_CONTROL_PORT = "mpd_control_port"
CONF_MPD_HTTP_PORT = "mpd_http_port"
CONF_MPD_PASSWORD = "mpd_password"
CONF_SERVER_HOST = "server_host"
CONF_SERVER_PORT = "server_port"
CONF_STATIC_DIRECTORY = "static_directory"
CONF_STREAM_SCHEME = "stream_scheme"
CONF_CONTROL_TIMEOUT = "control_timeout"
CONF_WATCHER_RECONNECT_DELAY = "watcher_reconnect_delay"

REQUIRED_KEYS = (
    CONF_MPD_HOST,
    CONF_MPD_CONTROL_PORT,
    CONF_MPD_HTTP_PORT,
    CONF_SERVER_PORT,
    CONF_STATIC_DIRECTORY,
)

DEFAULT_CONFIG_PATH = "config.yaml"
DEFAULT_SERVER_HOST = "0.0.0.0"
DEFAULT_STREAM_SCHEME = "http"
DEFAULT_CONTROL_TIMEOUT = 10.0  # seconds
DEFAULT_WATCHER_RECONNECT_DELAY = 2.0  # seconds
MAX_WATCHER_RECONNECT_DELAY = 60.0

# Routes
ROUTE_STREAM = "/stream"
ROUTE_SONGS = "/songs"
ROUTE_CURRENT = "/current"
ROUTE_UPCOMING = "/upcoming"
ROUTE_ADD = "/add"
ROUTE_EVENTS = "/events"
ROUTE_HEALTH = "/health"

PARAM_SONG = "song"
INDEX_FILE = "index.html"

# Messages sent to HTTP clients. Causes are only ever logged.
MSG_LIST_FAILED = "An error occurred while processing your request"
MSG_CURRENT_FAILED = "Couldn't get current song info"
MSG_UPCOMING_FAILED = "Couldn't get upcoming playlist"
MSG_NO_SONG = "No song specified"
MSG_UNKNOWN_SONG = "Unknown song"
MSG_INTERNAL_ERROR = "Internal server error"
MSG_ADDED_SONG = "Added song: {song}"

# Subsystems the watcher listens for
WATCHED_SUBSYSTEMS = ("player", "playlist", "mixer", "options")
