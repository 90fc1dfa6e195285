"""Exception taxonomy shared by the job processor, stores and HTTP layer."""


class HadithAdminError(Exception):
    """Base class for application errors."""


class DeliveryError(HadithAdminError):
    """Push gateway failed to broadcast a message (transport, credentials, payload)."""


class PersistenceError(HadithAdminError):
    """A record store could not read or write its collection."""


class AuthorizationError(HadithAdminError):
    """On-demand cron trigger rejected. Mapped to HTTP 401 in main.py."""


class ConfigurationError(HadithAdminError):
    """Unusable configuration value. Callers fall back to a default instead of aborting."""


class ConflictError(HadithAdminError):
    """Requested change conflicts with the record's state (e.g. editing a delivered notification)."""
