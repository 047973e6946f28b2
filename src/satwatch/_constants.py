"""Internal constants shared across the library."""

#: Fallback device identifier for events that carry no resolvable identifier.
SENTINEL_DEVICE_ID = "VIRTUAL-TEST"

#: Default per-asset retention for position/message/timeline logs.
DEFAULT_RETENTION = 5000

# ------------------------------------------------------------------
# Upstream timestamp sentinels (epoch milliseconds)
# ------------------------------------------------------------------

#: ``DateTime.MinValue`` (0001-01-01T00:00:00Z) as epoch milliseconds.
DOTNET_MIN_DATE_MS = -62_135_596_800_000
#: ``DateTime.MaxValue`` (9999-12-31T23:59:59.999Z) as epoch milliseconds.
DOTNET_MAX_DATE_MS = 253_402_300_799_999

DEGENERATE_EPOCH_MS: frozenset[int] = frozenset({DOTNET_MIN_DATE_MS, DOTNET_MAX_DATE_MS})

# ------------------------------------------------------------------
# Outbound gateway endpoints
# ------------------------------------------------------------------

REST_MESSAGE_PATH = "/Messaging/Message"
REST_SOS_ACK_PATH = "/Emergency/Acknowledge"
SOAP_MESSAGE_PATH = "/Messaging.svc/Message"
SOAP_SOS_ACK_PATH = "/Emergency.svc/Acknowledge"

#: Provider codes meaning "a third-party emergency provider owns this incident".
#: An acknowledgement rejected with one of these is a soft success.
DEFAULT_SOFT_ACK_CODES: frozenset[str] = frozenset({"NotAuthoritative", "EmergencyProviderOwned"})
