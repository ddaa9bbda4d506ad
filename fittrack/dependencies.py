"""
Dependency injection system.

Copyright (C) 2025 FitTrack

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from typing import Annotated, Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from .config import Settings, get_settings
from .core.database import get_db_client
from .core.security import decode_access_token
from .models.auth import AuthenticatedUser, TokenData
from .utils.exceptions import AuthenticationError

# Common dependencies
SettingsDep = Annotated[Settings, Depends(get_settings)]

# Database dependency. Typed as Any so the generated client is only needed at runtime.
DBDep = Annotated[Any, Depends(get_db_client)]

# auto_error is off so a missing header goes through our own 401 path
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> AuthenticatedUser:
    """
    Resolve the acting user from the bearer token.

    The token's `sub` claim is trusted as the user id; every goal and
    progress query is scoped by it. Any failure is an AuthenticationError,
    raised before storage is touched.
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as e:
        raise AuthenticationError(detail=str(e)) from e

    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError(detail="Token has no subject")

    token_data = TokenData(sub=str(subject), email=payload.get("email"))
    return AuthenticatedUser(id=token_data.sub, email=token_data.email)


# Create a reusable type shortcut
CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
