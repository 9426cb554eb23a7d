"""
Data Collection Module

Ahrefs API v3 access for competitor discovery and referring-domain profiles.
"""

from .client import AhrefsClient, AhrefsError, RetryConfig, create_client

__all__ = [
    "AhrefsClient",
    "AhrefsError",
    "RetryConfig",
    "create_client",
]
