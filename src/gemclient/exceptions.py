"""
Custom exceptions for the Gemini terminal client.
"""


class GeminiError(Exception):
    """Base exception for all client related errors."""
    pass


class TransportError(GeminiError):
    """Raised when a connection or TLS handshake fails."""
    pass


class ProtocolError(GeminiError):
    """Raised when a response violates the protocol (e.g. bad media type)."""
    pass


class NavigationError(GeminiError):
    """Raised when a target cannot be resolved (unsupported scheme)."""
    pass


class LinkLookupError(GeminiError):
    """Raised when a link key is not numeric or not in the link table."""
    pass


class InvariantViolation(GeminiError):
    """Raised when a binary page reaches the gemtext renderer."""
    pass
