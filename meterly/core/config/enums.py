"""Configuration enums for type-safe settings.

These enums provide type safety and IDE autocomplete for configuration values.
They inherit from str to maintain JSON serialization compatibility.
"""

from enum import Enum


class Environment(str, Enum):
    """Deployment environments.

    Controls environment-specific behavior like log formatting and adapter defaults.
    """

    LOCAL = "local"
    TEST = "test"
    DEV = "dev"
    PRD = "prd"


class KeyValueBackendType(str, Enum):
    """Key-value store backends."""

    MEMORY = "memory"
    REDIS = "redis"


class EventBusBackendType(str, Enum):
    """Event bus transports.

    MEMORY fans out in-process; REDIS uses Redis Streams with consumer groups.
    """

    MEMORY = "memory"
    REDIS = "redis"


class BlobBackendType(str, Enum):
    """Blob storage backends for rendered invoice artifacts."""

    FILESYSTEM = "filesystem"
    AWS = "aws"


class UsagePeriodSource(str, Enum):
    """Which clock assigns a consumption event to a usage period.

    PROCESSING uses the wall clock at aggregation time (historical behavior).
    EVENT uses the timestamp carried by the event itself.
    """

    PROCESSING = "processing"
    EVENT = "event"
