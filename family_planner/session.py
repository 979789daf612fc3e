from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel


class AuthenticatedUser(BaseModel):
    user_id: str
    username: str
    email: str | None = None
    full_name: str | None = None


class SessionProvider(ABC):
    """Supplies the signed-in account. Authentication itself happens elsewhere."""

    @abstractmethod
    def current_user(self) -> Optional[AuthenticatedUser]:
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        pass


class StaticSessionProvider(SessionProvider):
    def __init__(self, user: Optional[AuthenticatedUser] = None):
        self._user = user

    def current_user(self) -> Optional[AuthenticatedUser]:
        return self._user

    async def sign_out(self) -> None:
        self._user = None
