"""Common configuration constants used across the application."""

# Block Time Estimation
DEFAULT_SAMPLE_SIZE = 50
"""Number of blocks between the two snapshots used to average block time"""

# Submission Scheduling
DEFAULT_POLL_INTERVAL_MS = 500
"""Delay between scheduler polling rounds in milliseconds"""

DEFAULT_EARLY_SUBMISSION_BLOCKS = 2
"""Blocks subtracted from the predicted target to submit early"""

DEFAULT_MAX_FAILED_ROUNDS = 20
"""Consecutive all-endpoint failures tolerated before giving up"""

PROGRESS_LOG_EVERY_BLOCKS = 10
"""Scheduler logs progress when the observed height is a multiple of this"""

REPREDICT_AFTER_SECONDS = 600.0
"""Waits longer than this are re-predicted midway instead of trusted"""

# Balance Monitoring
DEFAULT_MONITOR_INTERVAL_MS = 200
"""Tick interval for high-frequency balance monitoring"""

DEFAULT_LEGACY_INTERVAL_MS = 2_000
"""Tick interval for the low-frequency polling baseline"""

# Priority Fees
UNBONDING_FEE_MULTIPLIER = 3.0
"""Fee multiplier used when racing an unbonding completion"""

MONITOR_FEE_MULTIPLIER = 5.0
"""Fee multiplier used for same-block execution after a balance increase"""

# HTTP and Network Constants
DEFAULT_TIMEOUT = 10.0
"""Default bound on a single endpoint call in seconds"""

CONNECTION_TIMEOUT = 3.0
"""Timeout for establishing connections"""

# Retry Configuration
MAX_RETRIES = 3
"""Default maximum number of retry attempts"""

RETRY_BASE_DELAY = 1.0
"""Base delay for exponential backoff in seconds"""

RETRY_MAX_DELAY = 30.0
"""Maximum delay between retries in seconds"""

# HTTP Connection Pooling
MAX_KEEPALIVE_CONNECTIONS = 5
"""Maximum number of keepalive connections in pool"""

MAX_CONNECTIONS = 20
"""Maximum total number of connections"""

# Cosmos SDK
SEND_AUTHORIZATION_TYPE = "/cosmos.bank.v1beta1.SendAuthorization"
"""Type URL of a bank send authorization"""

MSG_SEND_TYPE = "/cosmos.bank.v1beta1.MsgSend"
"""Type URL of a bank send message"""


__all__ = [
    "CONNECTION_TIMEOUT",
    "DEFAULT_EARLY_SUBMISSION_BLOCKS",
    "DEFAULT_LEGACY_INTERVAL_MS",
    "DEFAULT_MAX_FAILED_ROUNDS",
    "DEFAULT_MONITOR_INTERVAL_MS",
    "DEFAULT_POLL_INTERVAL_MS",
    "DEFAULT_SAMPLE_SIZE",
    "DEFAULT_TIMEOUT",
    "MAX_CONNECTIONS",
    "MAX_KEEPALIVE_CONNECTIONS",
    "MAX_RETRIES",
    "MONITOR_FEE_MULTIPLIER",
    "MSG_SEND_TYPE",
    "PROGRESS_LOG_EVERY_BLOCKS",
    "REPREDICT_AFTER_SECONDS",
    "RETRY_BASE_DELAY",
    "RETRY_MAX_DELAY",
    "SEND_AUTHORIZATION_TYPE",
    "UNBONDING_FEE_MULTIPLIER",
]
