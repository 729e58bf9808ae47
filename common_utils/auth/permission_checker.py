from typing import List, Optional

from fastapi import Depends, HTTPException, status

from app.core.logging_config import get_logger
from app.utils.response_utils import ResponseWrapper

from .token_validation import validate_bearer_token

logger = get_logger(__name__)


class PermissionChecker:
    def __init__(
        self,
        required_permissions: List[str],
        user_type: Optional[str] = None,
    ):
        self.required_permissions = required_permissions
        self.user_type = user_type

    async def __call__(self, user_data=Depends(validate_bearer_token(use_cache=True))):
        user_permissions = []
        for p in user_data.get("permissions", []):
            module = p.get("module", "")
            actions = p.get("action", [])
            user_permissions.extend([f"{module}.{action}" for action in actions])

        if not any(p in user_permissions for p in self.required_permissions):
            logger.warning(f"Permission denied. Required: {self.required_permissions}, User has: {user_permissions}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=ResponseWrapper.error(
                    message="Insufficient permissions",
                    error_code="FORBIDDEN",
                ),
            )

        if self.user_type and user_data.get("user_type") != self.user_type:
            logger.warning(f"User type {user_data.get('user_type')} cannot call a {self.user_type} endpoint")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=ResponseWrapper.error(
                    message=f"Only {self.user_type}s can access this endpoint",
                    error_code="FORBIDDEN",
                ),
            )

        return user_data
