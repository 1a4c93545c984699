import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit import AuditAction, AuditService
from src.core.auth.jwt import create_access_token, create_refresh_token, decode_token
from src.core.auth.models import Admin, PrincipalKind
from src.core.auth.password import hash_password, verify_password
from src.core.auth.principal import Principal
from src.core.exceptions import AuthenticationError, DuplicateError
from src.modules.residents.models import Resident

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authentication operations of admins and residents."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.audit = AuditService(session)

    async def get_admin_by_email(self, email: str) -> Admin | None:
        """Get admin by email."""
        stmt = select(Admin).where(Admin.email == email.lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_admin_by_id(self, admin_id: int) -> Admin | None:
        """Get admin by ID."""
        stmt = select(Admin).where(Admin.id == admin_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_resident_by_email(self, email: str) -> Resident | None:
        stmt = select(Resident).where(
            Resident.email == email.lower(), Resident.is_deleted.is_(False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_resident_by_id(self, resident_id: int) -> Resident | None:
        stmt = select(Resident).where(Resident.id == resident_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def load_principal(
        self, kind: PrincipalKind, subject_id: int, version: int | None = None
    ) -> Principal:
        """
        Resolve a token subject against the table of its principal kind.

        When ``version`` is given it must match the account's current
        token version, so tokens issued before a logout are refused.

        Raises:
            AuthenticationError: If the account is missing or deactivated,
                or the token was revoked
        """
        if kind == PrincipalKind.ADMIN:
            identity = await self.get_admin_by_id(subject_id)
            if not identity:
                raise AuthenticationError("Admin not found")
            if not identity.is_active:
                raise AuthenticationError("Admin account is deactivated")
        else:
            identity = await self.get_resident_by_id(subject_id)
            if not identity:
                raise AuthenticationError("Resident not found")
            if not identity.is_active:
                raise AuthenticationError("Resident account is disabled")

        if version is not None and version != identity.token_version:
            raise AuthenticationError("Session has ended, please log in again")

        return Principal(kind=kind, identity=identity)

    async def create_admin(self, email: str, password: str, name: str = "") -> Admin:
        """Create a new admin."""
        existing = await self.get_admin_by_email(email)
        if existing:
            raise DuplicateError("Admin", "email", email)

        admin = Admin(
            email=email.lower(),
            password_hash=hash_password(password),
            name=name,
            is_active=True,
        )

        self.session.add(admin)
        await self.session.flush()

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="Admin",
            entity_id=admin.id,
            new_values={"email": admin.email, "name": admin.name},
        )
        logger.info("Admin %s created", admin.email)

        return admin

    async def authenticate_admin(self, email: str, password: str) -> tuple[Admin, str, str]:
        """
        Authenticate admin and return tokens.

        Returns:
            Tuple of (admin, access_token, refresh_token)

        Raises:
            AuthenticationError: If credentials are invalid
        """
        admin = await self.get_admin_by_email(email)

        if not admin or not verify_password(password, admin.password_hash):
            logger.warning("Failed admin login for %s", email)
            raise AuthenticationError("Invalid email or password")

        if not admin.is_active:
            raise AuthenticationError("Admin account is deactivated")

        admin.last_login_at = datetime.now(timezone.utc)
        await self.session.flush()

        await self.audit.log(
            action=AuditAction.LOGIN,
            entity_type="Admin",
            entity_id=admin.id,
            actor_id=admin.id,
            actor_kind=PrincipalKind.ADMIN,
        )

        return (
            admin,
            create_access_token(admin.id, PrincipalKind.ADMIN, admin.token_version),
            create_refresh_token(admin.id, PrincipalKind.ADMIN, admin.token_version),
        )

    async def authenticate_resident(
        self, email: str, password: str
    ) -> tuple[Resident, str, str]:
        """
        Authenticate resident and return tokens.

        Only enabled, non-deleted residents with a password may log in.
        """
        resident = await self.get_resident_by_email(email)

        if not resident or not resident.can_login:
            logger.warning("Failed resident login for %s", email)
            raise AuthenticationError("Invalid email or password")

        if not verify_password(password, resident.password_hash):
            logger.warning("Failed resident login for %s", email)
            raise AuthenticationError("Invalid email or password")

        if not resident.is_active:
            raise AuthenticationError("Resident account is disabled")

        await self.audit.log(
            action=AuditAction.LOGIN,
            entity_type="Resident",
            entity_id=resident.id,
            actor_id=resident.id,
            actor_kind=PrincipalKind.RESIDENT,
        )

        return (
            resident,
            create_access_token(resident.id, PrincipalKind.RESIDENT, resident.token_version),
            create_refresh_token(resident.id, PrincipalKind.RESIDENT, resident.token_version),
        )

    async def refresh_tokens(
        self, refresh_token: str, expected_kind: PrincipalKind
    ) -> tuple[str, str]:
        """
        Refresh access token using refresh token.

        A token issued to one principal kind cannot be refreshed on the
        other kind's endpoint.

        Returns:
            Tuple of (new_access_token, new_refresh_token)
        """
        payload = decode_token(refresh_token, token_type="refresh")

        kind = PrincipalKind(payload["role"])
        if kind != expected_kind:
            raise AuthenticationError("Invalid token role")

        principal = await self.load_principal(
            kind, int(payload["sub"]), version=payload.get("ver", 0)
        )
        version = principal.identity.token_version

        return (
            create_access_token(principal.id, kind, version),
            create_refresh_token(principal.id, kind, version),
        )

    async def update_admin_profile(
        self,
        admin: Admin,
        name: str | None = None,
        email: str | None = None,
        password: str | None = None,
    ) -> Admin:
        """Update the logged-in admin's own profile."""
        old_values = {"name": admin.name, "email": admin.email}

        if email is not None and email.lower() != admin.email:
            existing = await self.get_admin_by_email(email)
            if existing:
                raise DuplicateError("Admin", "email", email)
            admin.email = email.lower()
        if name is not None:
            admin.name = name
        if password is not None:
            admin.password_hash = hash_password(password)

        await self.session.flush()

        await self.audit.log(
            action=AuditAction.UPDATE,
            entity_type="Admin",
            entity_id=admin.id,
            actor_id=admin.id,
            actor_kind=PrincipalKind.ADMIN,
            old_values=old_values,
            new_values={"name": admin.name, "email": admin.email},
        )

        await self.session.refresh(admin)
        return admin

    async def logout(self, principal: Principal) -> None:
        """
        End every session of the caller.

        Tokens are stateless, so logout bumps the account's token version;
        access and refresh tokens issued before it stop working.
        """
        identity = principal.identity
        identity.token_version = (identity.token_version or 0) + 1
        await self.session.flush()

        await self.audit.log(
            action=AuditAction.LOGOUT,
            entity_type="Admin" if principal.kind == PrincipalKind.ADMIN else "Resident",
            entity_id=identity.id,
            actor_id=identity.id,
            actor_kind=principal.kind,
        )
        logger.info("%s %s logged out", principal.kind.value.capitalize(), identity.id)
