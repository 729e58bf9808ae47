import time
from typing import Dict, Optional

import httpx
from cachetools import TTLCache
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import settings
from app.core.logging_config import get_logger

from .utils import verify_token

logger = get_logger(__name__)

# Create a security instance
security = HTTPBearer()


class OAuthApiAccessorError(Exception):
    def __init__(self, message, error_code):
        super().__init__(message)
        self.error_code = error_code


class Oauth2AsAccessor:
    """
    Introspects opaque tokens against the portal's OAuth2 server.

    Successful introspections are kept in an in-memory TTL cache until the
    token's own expiry or TOKEN_CACHE_TTL_SECONDS, whichever comes first.
    """
    _instance = None

    def __new__(cls, *args, **kwargs):
        if not cls._instance:
            cls._instance = super(Oauth2AsAccessor, cls).__new__(cls)
            cls._instance.__initialized = False
        return cls._instance

    def __init__(self):
        if self.__initialized:
            return
        self.cache = TTLCache(maxsize=1000, ttl=settings.TOKEN_CACHE_TTL_SECONDS)
        self.__initialized = True

    @staticmethod
    def get_validation_url() -> str:
        oauth_token_url = settings.OAUTH2_URL
        if not oauth_token_url:
            raise OAuthApiAccessorError(f"OAuth token url is not set for {settings.ENV}", 5002)

        if not oauth_token_url.startswith(("http://", "https://")):
            oauth_token_url = f"https://{oauth_token_url}"
            logger.warning(f"Protocol missing from OAUTH2_URL. Using: {oauth_token_url}")
        return oauth_token_url

    @staticmethod
    def get_headers(token: str) -> Dict[str, str]:
        return {
            "X_Introspect_Secret": settings.X_INTROSPECT_SECRET or "",
            "Authorization": f"Bearer {token}",
            "accept": "application/json",
        }

    @staticmethod
    def handle_response(response: httpx.Response) -> Dict:
        if response.status_code == 200:
            return response.json()
        try:
            detail = response.json().get("detail", "Token introspection failed")
        except ValueError:
            detail = "Token introspection failed"
        raise HTTPException(status_code=response.status_code, detail=detail)

    def get_cached(self, opaque_token: str) -> Optional[Dict]:
        cached_item = self.cache.get(opaque_token)
        if not cached_item:
            return None
        data, expiry = cached_item
        if time.time() > expiry:
            del self.cache[opaque_token]
            return None
        return dict(data, source="sm-cache")

    def store(self, opaque_token: str, data: Dict) -> None:
        expiry = data.get("exp", int(time.time()) + settings.TOKEN_CACHE_TTL_SECONDS)
        if expiry > time.time():
            self.cache[opaque_token] = (data, expiry)

    def introspect(self, oauth_token: str, opaque_token: str, use_cache: bool = True) -> Dict:
        if use_cache:
            cached = self.get_cached(opaque_token)
            if cached:
                return cached

        url = self.get_validation_url()
        logger.info(f"Introspecting token at {url}")
        try:
            response = httpx.post(url, headers=self.get_headers(oauth_token), timeout=10.0)
        except httpx.TimeoutException:
            logger.error("Request to OAuth2 server timed out")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication server is not responding. Please try again later.",
            )
        except httpx.HTTPError as ex:
            logger.error(f"Connection error to OAuth2 server: {ex}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Could not connect to authentication server.",
            )

        data = self.handle_response(response)
        if not data.get("active", True):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token is no longer active")
        if use_cache:
            self.store(opaque_token, data)
        return dict(data, source="introspect-http")


def validate_bearer_token(use_cache: bool = True):
    async def get_token_data(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Dict:
        token = credentials.credentials

        try:
            payload = verify_token(token)
        except HTTPException as e:
            logger.warning(f"Rejected bearer token: {e.detail}")
            raise

        claims = payload
        opaque_token = payload.get("opaque_token")
        if opaque_token and settings.OAUTH2_URL:
            try:
                claims = Oauth2AsAccessor().introspect(token, opaque_token, use_cache)
            except OAuthApiAccessorError as e:
                logger.error(f"Introspection misconfigured: {e}")
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail="Authentication error",
                )

        user_id = claims.get("user_id") or payload.get("user_id")
        if not user_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication token",
            )

        return {
            "user_id": str(user_id),
            "user_type": claims.get("user_type") or payload.get("user_type"),
            "permissions": claims.get("permissions", payload.get("permissions", [])),
        }

    return get_token_data
