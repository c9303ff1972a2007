DEFAULT_PORT = 8080
DEFAULT_ADDRESS = "localhost"

# Keywords accepted by --address in addition to literal IPv4 addresses
ADDRESS_LOCALHOST = "localhost"
ADDRESS_ANY = "any"
BIND_ALL_HOST = "0.0.0.0"

# Seconds between a page load and the render it schedules
PAGE_REFRESH_DELAY = 2.0

# Seconds to wait before re-establishing a failed filesystem watch
WATCH_RETRY_DELAY = 1.0

# Milliseconds the watcher groups filesystem changes into one batch
WATCH_DEBOUNCE_MS = 100

EVENTS_PATH = "/events"

# Seconds the server waits for open connections before closing them on shutdown
GRACEFUL_SHUTDOWN_TIMEOUT = 5
