from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.jwt import decode_token
from src.core.auth.models import Admin, PrincipalKind
from src.core.auth.principal import Principal
from src.core.auth.service import AuthService
from src.core.database import get_db
from src.core.exceptions import AuthenticationError, AuthorizationError
from src.modules.residents.models import Resident


async def get_current_principal(
    authorization: Annotated[str | None, Header()] = None,
    db: AsyncSession = Depends(get_db),
) -> Principal:
    """
    Dependency to resolve the caller from a JWT bearer token.

    The token's role claim selects the table (admins or residents)
    the subject id is looked up in.
    """
    if not authorization:
        raise AuthenticationError("Authorization header required")

    if not authorization.startswith("Bearer "):
        raise AuthenticationError("Invalid authorization header format")

    token = authorization.replace("Bearer ", "")

    payload = decode_token(token, token_type="access")

    auth_service = AuthService(db)
    return await auth_service.load_principal(
        PrincipalKind(payload["role"]), int(payload["sub"]), version=payload.get("ver", 0)
    )


def require_principal(kind: PrincipalKind):
    """
    Dependency factory to require a specific principal kind.

    Usage:
        @router.post("/slots")
        async def create_slot(admin: Admin = Depends(require_principal(PrincipalKind.ADMIN))):
            ...
    """

    async def kind_checker(
        principal: Principal = Depends(get_current_principal),
    ) -> Admin | Resident:
        if principal.kind != kind:
            raise AuthorizationError(f"Required role: {kind.value}")
        return principal.identity

    return kind_checker


# Convenience dependencies
CurrentAdmin = Annotated[Admin, Depends(require_principal(PrincipalKind.ADMIN))]
CurrentResident = Annotated[Resident, Depends(require_principal(PrincipalKind.RESIDENT))]
