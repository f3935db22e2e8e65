class ApplicationTrackerError(Exception):
    """Base class for errors raised by the tracker's own components."""


class ConfigurationError(ApplicationTrackerError):
    """Missing or malformed credentials; the owning component refuses to start."""


class StoreAccessError(ApplicationTrackerError):
    """The spreadsheet could not be opened or written (permissions, bad id)."""


class NotifierError(ApplicationTrackerError):
    """The digest could not be delivered to the webhook."""
