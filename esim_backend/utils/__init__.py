"""Utility functions for the backend."""
from .logging_security import SecureLogger, log_secure

__all__ = [
    'SecureLogger',
    'log_secure',
]
