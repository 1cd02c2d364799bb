from typing import Dict, Optional

from shadanga.client.errors import ClientError
from shadanga.client.schemas import SessionUser


class SessionContext:
    """Holds the learner's token and profile between login and logout."""

    def __init__(self):
        self.token: Optional[str] = None
        self.user: Optional[SessionUser] = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def start(self, token: str, user: SessionUser) -> None:
        self.token = token
        self.user = user

    def clear(self) -> None:
        self.token = None
        self.user = None

    def auth_headers(self) -> Dict[str, str]:
        if not self.token:
            raise ClientError("Please sign in to continue.")
        return {"Authorization": f"Bearer {self.token}"}
