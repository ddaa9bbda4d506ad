"""
Authentication models.

Copyright (C) 2025 FitTrack

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from pydantic import BaseModel


class TokenData(BaseModel):
    """Claims extracted from a verified access token."""

    sub: str
    email: str | None = None


class AuthenticatedUser(BaseModel):
    """The acting user, as vouched for by the access token."""

    id: str
    email: str | None = None
