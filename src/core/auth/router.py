from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import CurrentAdmin, CurrentResident
from src.core.auth.models import PrincipalKind
from src.core.auth.principal import Principal
from src.core.auth.schemas import (
    AdminLoginResponse,
    AdminResponse,
    AdminUpdate,
    LoginRequest,
    RefreshRequest,
    ResidentLoginResponse,
    TokenResponse,
)
from src.core.auth.service import AuthService
from src.core.database import get_db
from src.modules.residents.router import resident_to_response
from src.modules.residents.schemas import (
    ResidentProfileUpdate,
    ResidentRegister,
    ResidentResponse,
)
from src.modules.residents.service import ResidentService
from src.shared.schemas import SuccessResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])


# --- Admin ---


@router.post("/admin/login", response_model=SuccessResponse[AdminLoginResponse])
async def admin_login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Authenticate admin and return tokens."""
    auth_service = AuthService(db)

    admin, access_token, refresh_token = await auth_service.authenticate_admin(
        email=data.email,
        password=data.password,
    )

    return SuccessResponse(
        data=AdminLoginResponse(
            admin=AdminResponse.model_validate(admin),
            access_token=access_token,
            refresh_token=refresh_token,
        ),
        message="Login successful",
    )


@router.post("/admin/refresh", response_model=SuccessResponse[TokenResponse])
async def admin_refresh(
    data: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    """Refresh admin access token using refresh token."""
    auth_service = AuthService(db)

    access_token, refresh_token = await auth_service.refresh_tokens(
        data.refresh_token, PrincipalKind.ADMIN
    )

    return SuccessResponse(
        data=TokenResponse(access_token=access_token, refresh_token=refresh_token),
        message="Tokens refreshed",
    )


@router.post("/admin/logout", response_model=SuccessResponse[None])
async def admin_logout(
    admin: CurrentAdmin,
    db: AsyncSession = Depends(get_db),
):
    """Log out: every token issued to this admin so far stops working."""
    await AuthService(db).logout(Principal(kind=PrincipalKind.ADMIN, identity=admin))
    return SuccessResponse(data=None, message="Logged out")


@router.get("/admin/me", response_model=SuccessResponse[AdminResponse])
async def get_admin_me(admin: CurrentAdmin):
    """Get current authenticated admin info."""
    return SuccessResponse(
        data=AdminResponse.model_validate(admin),
        message="Admin info retrieved",
    )


@router.put("/admin/me", response_model=SuccessResponse[AdminResponse])
async def update_admin_me(
    data: AdminUpdate,
    admin: CurrentAdmin,
    db: AsyncSession = Depends(get_db),
):
    """Update current admin's profile."""
    auth_service = AuthService(db)
    admin = await auth_service.update_admin_profile(
        admin, name=data.name, email=data.email, password=data.password
    )
    return SuccessResponse(
        data=AdminResponse.model_validate(admin),
        message="Profile updated",
    )


# --- Resident ---


@router.post(
    "/resident/register",
    response_model=SuccessResponse[ResidentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def resident_register(
    data: ResidentRegister,
    db: AsyncSession = Depends(get_db),
):
    """Register a new resident account. Duplicate email or phone returns 409."""
    resident = await ResidentService(db).register_resident(data)
    return SuccessResponse(
        data=resident_to_response(resident),
        message="Registration successful",
    )


@router.post("/resident/login", response_model=SuccessResponse[ResidentLoginResponse])
async def resident_login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Authenticate resident and return tokens."""
    auth_service = AuthService(db)

    resident, access_token, refresh_token = await auth_service.authenticate_resident(
        email=data.email,
        password=data.password,
    )
    resident = await ResidentService(db).get_resident_by_id(resident.id)

    return SuccessResponse(
        data=ResidentLoginResponse(
            resident=resident_to_response(resident),
            access_token=access_token,
            refresh_token=refresh_token,
        ),
        message="Login successful",
    )


@router.post("/resident/refresh", response_model=SuccessResponse[TokenResponse])
async def resident_refresh(
    data: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    """Refresh resident access token using refresh token."""
    auth_service = AuthService(db)

    access_token, refresh_token = await auth_service.refresh_tokens(
        data.refresh_token, PrincipalKind.RESIDENT
    )

    return SuccessResponse(
        data=TokenResponse(access_token=access_token, refresh_token=refresh_token),
        message="Tokens refreshed",
    )


@router.post("/resident/logout", response_model=SuccessResponse[None])
async def resident_logout(
    resident: CurrentResident,
    db: AsyncSession = Depends(get_db),
):
    """Log out: every token issued to this resident so far stops working."""
    await AuthService(db).logout(Principal(kind=PrincipalKind.RESIDENT, identity=resident))
    return SuccessResponse(data=None, message="Logged out")


@router.get("/resident/me", response_model=SuccessResponse[ResidentResponse])
async def get_resident_me(
    resident: CurrentResident,
    db: AsyncSession = Depends(get_db),
):
    """Get current authenticated resident's profile."""
    resident = await ResidentService(db).get_resident_by_id(resident.id)
    return SuccessResponse(
        data=resident_to_response(resident),
        message="Profile retrieved",
    )


@router.put("/resident/me", response_model=SuccessResponse[ResidentResponse])
async def update_resident_me(
    data: ResidentProfileUpdate,
    resident: CurrentResident,
    db: AsyncSession = Depends(get_db),
):
    """Update current resident's profile. Email and password cannot be changed here."""
    resident = await ResidentService(db).update_profile(resident, data)
    return SuccessResponse(
        data=resident_to_response(resident),
        message="Profile updated",
    )
