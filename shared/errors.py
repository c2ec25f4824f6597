"""
Shared error handling for the Entitlements Bridge.
"""

from typing import Dict, Any, Optional


class BridgeException(Exception):
    """Base exception for Entitlements Bridge services."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


# Identity header errors


class MissingHeader(BridgeException):
    """The identity header was absent or empty."""

    def __init__(self, message: str = "no x-rh-identity header", details: Optional[Dict[str, Any]] = None):
        super().__init__("MISSING_HEADER", message, details)


class DecodeError(BridgeException):
    """A payload could not be decoded (bad base64, bad JSON, wrong shape)."""

    def __init__(self, message: str = "payload could not be decoded", details: Optional[Dict[str, Any]] = None):
        super().__init__("DECODE_ERROR", message, details)


class MalformedAssertion(BridgeException):
    """The identity header decoded but is not a well-formed identity record."""

    def __init__(self, message: str = "x-rh-identity is not a valid identity record", details: Optional[Dict[str, Any]] = None):
        super().__init__("MALFORMED_ASSERTION", message, details)


class InvalidSubject(BridgeException):
    """The identity record does not describe a named user."""

    def __init__(self, message: str = "x-rh-identity does not contain username ok", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_SUBJECT", message, details)


# Directory errors


class TransportError(BridgeException):
    """The identity provider could not be reached or answered with an error."""

    def __init__(self, message: str = "identity provider unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("TRANSPORT_ERROR", message, details)


# Resolution errors


class AuthenticationError(BridgeException):
    """Authentication-related errors."""

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class DirectoryError(BridgeException):
    """The user directory could not be fetched."""

    def __init__(self, message: str = "Directory unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("DIRECTORY_ERROR", message, details)


class UserNotFound(BridgeException):
    """No usable directory entry matches the requested username."""

    def __init__(self, message: str = "User is not known", details: Optional[Dict[str, Any]] = None):
        super().__init__("USER_NOT_FOUND", message, details)
