"""
Operations built on the issuer and the identity registry: registration,
token review, and reset.
"""

from .registration import RegistrationService
from .reset import ResetService
from .validation import AuthResult, ValidationService

__all__ = ["AuthResult", "RegistrationService", "ResetService", "ValidationService"]
