"""Immutable view of an inbound download request."""

from dataclasses import dataclass
from typing import Optional

from starlette.datastructures import Headers, QueryParams
from starlette.requests import Request

from shared.network.client_identity import resolve_client_user_agent


@dataclass(frozen=True)
class AccessRequest:
    path: str
    raw_query: str
    headers: Headers
    method: str
    client_address: Optional[str]
    client_user_agent: str

    @classmethod
    def from_request(cls, request: Request) -> "AccessRequest":
        """Snapshot a Starlette request. ``path`` is the decoded path as routed."""
        headers = Headers(raw=list(request.headers.raw))
        client = request.client
        return cls(
            path=request.scope["path"],
            raw_query=request.scope.get("query_string", b"").decode("latin-1"),
            headers=headers,
            method=request.method.upper(),
            client_address=client.host if client else None,
            client_user_agent=resolve_client_user_agent(headers),
        )

    @property
    def sign(self) -> str:
        """Value of the ``sign`` query parameter, empty when absent."""
        return QueryParams(self.raw_query).get("sign", "")
