"""Sesión autenticada compartida entre servidor y cliente."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class User(BaseModel):
    """Usuario del panel; hoy sólo se conoce su nombre."""

    username: str


class AuthSession(BaseModel):
    """Estado de autenticación que se pasa explícitamente a cada handler.

    `user` siempre es `None` cuando `is_authenticated` es falso.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    is_authenticated: bool = Field(default=False, alias="isAuthenticated")
    user: User | None = None

    @model_validator(mode="after")
    def _check_user_consistency(self) -> AuthSession:
        if not self.is_authenticated and self.user is not None:
            raise ValueError("anonymous session cannot carry a user")
        if self.is_authenticated and self.user is None:
            raise ValueError("authenticated session requires a user")
        return self

    @classmethod
    def anonymous(cls) -> AuthSession:
        return cls(is_authenticated=False, user=None)

    @classmethod
    def for_user(cls, username: str) -> AuthSession:
        return cls(is_authenticated=True, user=User(username=username))

    def to_wire(self) -> dict[str, object]:
        """Serializa como responde `GET /api/auth/check`."""
        if not self.is_authenticated or self.user is None:
            return {"isAuthenticated": False}
        return {"isAuthenticated": True, "user": self.user.model_dump()}
