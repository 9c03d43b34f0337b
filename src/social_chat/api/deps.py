"""FastAPI dependency injection helpers for the dev hub."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from social_chat.application.dto.principal import Principal
from social_chat.application.exceptions import NotAuthenticatedError
from social_chat.application.ports.auth import TokenVerifier
from social_chat.infrastructure.hub.registry import InMemoryChatRegistry
from social_chat.infrastructure.ws.hub import ChatHub

_bearer_scheme = HTTPBearer()


def get_hub(request: Request) -> ChatHub:
    return request.app.state.hub


def get_registry(request: Request) -> InMemoryChatRegistry:
    return request.app.state.hub.registry


def get_verifier(request: Request) -> TokenVerifier:
    return request.app.state.verifier


HubDep = Annotated[ChatHub, Depends(get_hub)]
RegistryDep = Annotated[InMemoryChatRegistry, Depends(get_registry)]
VerifierDep = Annotated[TokenVerifier, Depends(get_verifier)]


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
    verifier: VerifierDep,
) -> Principal:
    try:
        return await verifier.verify(credentials.credentials)
    except NotAuthenticatedError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.detail,
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
