from readthis.schemas.common import CamelModel


class LoginIn(CamelModel):
    username: str | None = None
    password: str | None = None


class RefreshIn(CamelModel):
    refresh_token: str | None = None


class GoogleIn(CamelModel):
    credential: str | None = None


class TokenPairOut(CamelModel):
    access_token: str
    refresh_token: str
    id: int


class UserOut(CamelModel):
    id: int
    email: str
    username: str
    image_url: str | None = None


class GoogleAuthOut(UserOut):
    access_token: str
    refresh_token: str
