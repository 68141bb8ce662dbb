"""
Token authentication for doctors and administrators.

Kept apart from any view module so that DRF can import the class from
settings during initialisation without circular imports.  Clients may
also send a SimpleJWT access token (``Authorization: Bearer ...``); that
class is configured directly in ``REST_FRAMEWORK`` settings.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """DRF token authentication using the ``Token`` keyword.

    Exists to give the project a stable import path for its settings
    and a single place for later customisation.
    """

    keyword = 'Token'
