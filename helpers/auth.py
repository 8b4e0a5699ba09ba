import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional

from config import JWT_SECRET_KEY, JWT_ALGORITHM, JWT_ACCESS_TOKEN_EXPIRE_MINUTES
from helpers.errors import UnauthenticatedError
from models.auth_model import TokenData

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    """
    Sign a token the same way the account service does.
    Only used for local tooling and tests; login lives elsewhere.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)
    return encoded_jwt

def decode_access_token(token: Optional[str]) -> TokenData:
    """
    Verify a bearer token and extract the caller identity.
    Raises UnauthenticatedError for missing, expired or tampered tokens.
    """
    if not token:
        raise UnauthenticatedError("Authentication token required")

    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise UnauthenticatedError("Token expired")
    except jwt.PyJWTError:
        raise UnauthenticatedError("Invalid authentication token")

    user_id = payload.get("id")
    if not user_id:
        raise UnauthenticatedError("Invalid authentication token")

    return TokenData(
        username=payload.get("sub"),
        user_id=str(user_id),
        user_type=payload.get("type"),
    )

def extract_bearer_token(header_value: Optional[str]) -> Optional[str]:
    """Pull the token out of an "Authorization: Bearer ..." header value"""
    if not header_value:
        return None
    scheme, _, token = header_value.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()
