"""Internal constants shared across the library."""

# ------------------------------------------------------------------
# Status polling pacing (seconds)
# ------------------------------------------------------------------

#: Minimum time from one ``fetch_status`` start to the next.
POLL_INTERVAL = 0.9
#: Extra pause after every poll, even when the call outlived the interval.
POLL_COOLDOWN = 0.1

# ------------------------------------------------------------------
# Invalidation delays (seconds)
# ------------------------------------------------------------------

WRITE_INVALIDATE_DELAY = 0.05
FILE_INVALIDATE_DELAY = 0.05

REQUEST_TIMEOUT = 10.0

# ------------------------------------------------------------------
# Well-known setting keys
# ------------------------------------------------------------------

# Local settings file
PRIMARY_NAME_KEY = "client.primary-name"

# Daemon settings
DRIVER_KEY = "local.driver"
BRIDGED_NETWORK_KEY = "local.bridged-network"
PRIVILEGED_MOUNTS_KEY = "local.privileged-mounts"
PASSPHRASE_KEY = "local.passphrase"

# Persisted GUI store
ON_APP_CLOSE_KEY = "onAppClose"
HOTKEY_KEY = "hotkey"

SENSITIVE_SETTING_KEYS: frozenset[str] = frozenset({PASSPHRASE_KEY})

# ------------------------------------------------------------------
# Daemon endpoints
# ------------------------------------------------------------------

INFO_ENDPOINT = "/v1/info"
GET_ENDPOINT = "/v1/get"
SET_ENDPOINT = "/v1/set"
NETWORKS_ENDPOINT = "/v1/networks"

USER_AGENT = "vmsync/1"
