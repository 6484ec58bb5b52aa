"""
FleetRent - Authorization
JWT bearer tokens turned into a role-based authorization context
"""

import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional, List
from functools import wraps

from shared.config import settings
from shared.enums import UserRole, Permission, ROLE_PERMISSIONS


class AuthToken:
    """JWT token management"""

    @staticmethod
    def create_token(user_id: int, username: str, role: UserRole) -> str:
        """Create JWT token for user"""
        now = datetime.now(timezone.utc)
        payload = {
            "user_id": user_id,
            "username": username,
            "role": role.value,
            "exp": now + timedelta(hours=settings.jwt_expiration_hours),
            "iat": now,
        }
        return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)

    @staticmethod
    def decode_token(token: str) -> Optional[dict]:
        """Decode and validate JWT token"""
        try:
            return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None


class AuthContext:
    """Current user authorization context"""

    def __init__(self, user_id: int, username: str, role: UserRole):
        self.user_id = user_id
        self.username = username
        self.role = role
        self._permissions = ROLE_PERMISSIONS.get(role, [])

    def __repr__(self):
        return f"<AuthContext(user_id={self.user_id}, username='{self.username}', role='{self.role.value}')>"

    def has_permission(self, permission: Permission) -> bool:
        """Check if user has specific permission"""
        return permission in self._permissions

    def has_all_permissions(self, permissions: List[Permission]) -> bool:
        """Check if user has all given permissions"""
        return all(self.has_permission(p) for p in permissions)

    @classmethod
    def system(cls) -> "AuthContext":
        """Context for setup scripts and seeding"""
        return cls(user_id=0, username="system", role=UserRole.SUPER_ADMIN)

    @classmethod
    def from_token(cls, token: str) -> Optional["AuthContext"]:
        """Create auth context from JWT token"""
        payload = AuthToken.decode_token(token)
        if not payload:
            return None

        try:
            role = UserRole(payload["role"])
        except (KeyError, ValueError):
            return None

        return cls(
            user_id=payload.get("user_id", 0),
            username=payload.get("username", ""),
            role=role,
        )


def require_permission(*permissions: Permission):
    """Decorator to require specific permissions"""
    def decorator(func):
        @wraps(func)
        def wrapper(auth: AuthContext, *args, **kwargs):
            if not auth.has_all_permissions(list(permissions)):
                raise PermissionError(
                    f"Not allowed. Required: {[p.value for p in permissions]}"
                )
            return func(auth, *args, **kwargs)
        return wrapper
    return decorator
