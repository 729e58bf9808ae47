from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import jwt
from fastapi import HTTPException

from app.config import settings


def create_access_token(
    user_id: str,
    user_type: str = "student",
    permissions: Optional[List[Dict]] = None,
    opaque_token: Optional[str] = None,
    custom_claims: Optional[Dict] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    to_encode = {
        "user_id": user_id,
        "token_type": "access",
        "user_type": user_type,
        "permissions": permissions,
        "opaque_token": opaque_token,
    }

    if custom_claims:
        to_encode.update(custom_claims)

    to_encode = {k: v for k, v in to_encode.items() if v is not None}

    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire, "iat": datetime.now(timezone.utc)})

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str) -> Dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")
