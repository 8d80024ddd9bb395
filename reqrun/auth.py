"""reqrun auth - credential strategies applied to outgoing requests.

The set of schemes is closed: none, basic and bearer. Each strategy touches
only the Authorization header of the request it is given.
"""

import base64

import requests

from reqrun.errors import InvalidAuthType

AUTH_TYPES = ("none", "basic", "bearer")


class NoAuth:
    """No credentials."""

    def apply(self, request: requests.Request) -> None:
        return None

    def describe(self) -> str:
        return "none"

    def __eq__(self, other):
        return isinstance(other, NoAuth)

    def __repr__(self):
        return "NoAuth()"


class BasicAuth:
    """Authorization: Basic base64(user:password)."""

    def __init__(self, user: str = "", password: str = ""):
        self.user = user
        self.password = password

    def apply(self, request: requests.Request) -> None:
        credentials = base64.b64encode(f"{self.user}:{self.password}".encode()).decode()
        request.headers["Authorization"] = f"Basic {credentials}"

    def describe(self) -> str:
        return f"basic ({self.user})" if self.user else "basic"

    def __eq__(self, other):
        return (
            isinstance(other, BasicAuth)
            and other.user == self.user
            and other.password == self.password
        )

    def __repr__(self):
        return f"BasicAuth(user={self.user!r})"


class BearerAuth:
    """Authorization: Bearer <token>.

    An empty token adds nothing. The request goes out unauthenticated rather
    than failing.
    """

    def __init__(self, token: str = ""):
        self.token = token

    def apply(self, request: requests.Request) -> None:
        if self.token:
            request.headers["Authorization"] = f"Bearer {self.token}"

    def describe(self) -> str:
        return "bearer (set)" if self.token else "bearer (empty token)"

    def __eq__(self, other):
        return isinstance(other, BearerAuth) and other.token == self.token

    def __repr__(self):
        return "BearerAuth(token=***)" if self.token else "BearerAuth(token='')"


AuthStrategy = NoAuth | BasicAuth | BearerAuth


def select_auth(
    auth_type: str | None,
    user: str = "",
    password: str = "",
    token: str = "",
) -> AuthStrategy:
    """Pick the strategy for a declared auth type.

    - "" / None / "none" -> NoAuth
    - "basic"            -> BasicAuth(user, password)
    - "bearer"           -> BearerAuth(token)

    Anything else raises InvalidAuthType.
    """
    kind = (auth_type or "").strip().lower()

    if kind in ("", "none"):
        return NoAuth()
    if kind == "basic":
        return BasicAuth(user or "", password or "")
    if kind == "bearer":
        return BearerAuth(token or "")

    raise InvalidAuthType(auth_type)
