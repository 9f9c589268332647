from typing import List, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from edubrain.config import settings
from edubrain.exceptions import AuthenticationError
from edubrain.schemas.users import TokenData

# auto_error is off so a missing header is reported as 401 rather than 403
bearer_scheme = HTTPBearer(auto_error=False)

def decode_access_token(token: str) -> TokenData:
    """
    Decode and validate a JWT access token.
    
    Raises:
        AuthenticationError: 403 if the token is malformed, tampered with or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"require_exp": True},
        )
        return TokenData(
            id=payload.get("id"),
            username=payload.get("username"),
            role=payload.get("role"),
        )
    except (JWTError, PydanticValidationError):
        raise AuthenticationError(status_code=403)

async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> TokenData:
    """
    Get the caller's identity from the Authorization: Bearer header.
    
    The identity is taken from the token alone; no database lookup is made.
    
    Raises:
        AuthenticationError: 401 if no bearer token was sent, 403 if it is invalid
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(status_code=401)
    token_data = decode_access_token(credentials.credentials)
    # Read back by the request logging middleware
    request.state.user = token_data
    return token_data

class RoleChecker:
    """
    Dependency that admits only callers holding one of the allowed roles.
    """
    def __init__(self, allowed_roles: List[str]):
        self.allowed_roles = allowed_roles
    
    async def __call__(self, user: TokenData = Depends(get_current_user)) -> TokenData:
        if user.role.value not in self.allowed_roles:
            raise AuthenticationError(status_code=403)
        return user

require_admin = RoleChecker(["admin"])
require_account = RoleChecker(["admin", "student"])
