"""Error taxonomy shared by the store, services and routes."""


class MedBridgeError(Exception):
    """Base exception for all expected MedBridge errors."""

    message: str

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(MedBridgeError):
    """Malformed request rejected before any external call."""


class ServiceError(MedBridgeError):
    """Upstream translation/transcription/summary failure."""


class PersistenceError(MedBridgeError):
    """Backend write or delete failure."""


class FetchError(MedBridgeError):
    """Backend read failure while loading the conversation."""
