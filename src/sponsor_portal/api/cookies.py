"""Starlette cookie transport for the session service."""

from dataclasses import dataclass
from datetime import datetime

from fastapi import Request, Response


@dataclass
class StarletteCookieJar:
    """Reads cookies from the request and writes them to the response."""

    request: Request
    response: Response | None = None

    def get_cookie(self, name: str) -> str | None:
        return self.request.cookies.get(name)

    def set_cookie(  # noqa: PLR0913
        self,
        name: str,
        value: str,
        *,
        max_age: int,
        expires: datetime,
        path: str,
        secure: bool,
        httponly: bool,
        samesite: str,
    ) -> None:
        self._writable().set_cookie(
            key=name,
            value=value,
            max_age=max_age,
            expires=expires,
            path=path,
            secure=secure,
            httponly=httponly,
            samesite=samesite,
        )

    def delete_cookie(self, name: str, *, path: str) -> None:
        self._writable().delete_cookie(key=name, path=path)

    def _writable(self) -> Response:
        if self.response is None:
            raise RuntimeError("Cookie jar has no response to write to")
        return self.response
