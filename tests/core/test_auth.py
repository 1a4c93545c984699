import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit import AuditService
from src.core.auth.jwt import create_refresh_token, decode_token
from src.core.auth.models import Admin, PrincipalKind
from src.core.auth.principal import Principal
from src.core.auth.service import AuthService
from src.core.exceptions import AuthenticationError, DuplicateError
from src.modules.areas.models import Area
from src.modules.residents.models import Resident


class TestAuthService:
    """Tests for AuthService."""

    async def test_create_admin(self, db_session: AsyncSession):
        """Test creating a new admin."""
        auth_service = AuthService(db_session)

        admin = await auth_service.create_admin(
            email="Test@Water-Delivery.com",
            password="Password123",
            name="Test Admin",
        )

        assert admin.id is not None
        assert admin.email == "test@water-delivery.com"
        assert admin.name == "Test Admin"
        assert admin.is_active is True
        assert admin.password_hash != "Password123"  # Password should be hashed

        trail = await AuditService(db_session).list_for_entity("Admin", admin.id)
        assert [entry.action for entry in trail] == ["CREATE"]

    async def test_create_admin_duplicate_email(self, db_session: AsyncSession):
        """Test that duplicate email raises error."""
        auth_service = AuthService(db_session)
        await auth_service.create_admin(email="test@water-delivery.com", password="Password123")

        with pytest.raises(DuplicateError) as exc_info:
            await auth_service.create_admin(email="test@water-delivery.com", password="Another123")

        assert "already exists" in str(exc_info.value)

    async def test_authenticate_admin_success(self, db_session: AsyncSession, admin: Admin):
        """Test successful admin authentication."""
        auth_service = AuthService(db_session)

        admin, access_token, refresh_token = await auth_service.authenticate_admin(
            email="admin@water-delivery.com",
            password="Password123",
        )

        assert admin.last_login_at is not None
        assert decode_token(access_token)["role"] == "admin"
        assert decode_token(refresh_token, token_type="refresh")["sub"] == str(admin.id)

    async def test_authenticate_admin_wrong_password(
        self, db_session: AsyncSession, admin: Admin
    ):
        """Test admin authentication with wrong password."""
        with pytest.raises(AuthenticationError):
            await AuthService(db_session).authenticate_admin(
                email="admin@water-delivery.com",
                password="WrongPassword",
            )

    async def test_authenticate_inactive_admin(self, db_session: AsyncSession, admin: Admin):
        """Test authentication with deactivated admin."""
        admin.is_active = False
        await db_session.flush()

        with pytest.raises(AuthenticationError) as exc_info:
            await AuthService(db_session).authenticate_admin(
                email="admin@water-delivery.com",
                password="Password123",
            )

        assert "deactivated" in str(exc_info.value)

    async def test_authenticate_resident_success(
        self, db_session: AsyncSession, resident: Resident
    ):
        """Test successful resident authentication."""
        _, access_token, _ = await AuthService(db_session).authenticate_resident(
            email="resident@water-delivery.com",
            password="Password123",
        )

        payload = decode_token(access_token)
        assert payload["role"] == "resident"
        assert payload["sub"] == str(resident.id)

    async def test_authenticate_resident_without_password(
        self, db_session: AsyncSession, make_resident, area
    ):
        """Residents created without a password cannot log in."""
        await make_resident(area, email="nopass@water-delivery.com")

        with pytest.raises(AuthenticationError):
            await AuthService(db_session).authenticate_resident(
                email="nopass@water-delivery.com",
                password="anything",
            )

    async def test_authenticate_disabled_resident(
        self, db_session: AsyncSession, resident: Resident
    ):
        """Disabled residents are refused."""
        resident.is_enabled = False
        await db_session.flush()

        with pytest.raises(AuthenticationError) as exc_info:
            await AuthService(db_session).authenticate_resident(
                email="resident@water-delivery.com",
                password="Password123",
            )

        assert "disabled" in str(exc_info.value)

    async def test_refresh_rejects_other_kind(
        self, db_session: AsyncSession, resident: Resident
    ):
        """A resident refresh token cannot be used on the admin side."""
        token = create_refresh_token(resident.id, PrincipalKind.RESIDENT)

        with pytest.raises(AuthenticationError) as exc_info:
            await AuthService(db_session).refresh_tokens(token, PrincipalKind.ADMIN)

        assert "role" in str(exc_info.value)

    async def test_logout_revokes_earlier_tokens(self, db_session: AsyncSession, admin: Admin):
        """After logout a refresh token from the earlier session is refused."""
        auth_service = AuthService(db_session)
        _, _, refresh_token = await auth_service.authenticate_admin(
            email="admin@water-delivery.com", password="Password123"
        )

        await auth_service.logout(Principal(kind=PrincipalKind.ADMIN, identity=admin))

        assert admin.token_version == 1
        with pytest.raises(AuthenticationError) as exc_info:
            await auth_service.refresh_tokens(refresh_token, PrincipalKind.ADMIN)
        assert "Session has ended" in str(exc_info.value)

        trail = await AuditService(db_session).list_for_entity("Admin", admin.id)
        assert [entry.action for entry in trail][-1] == "LOGOUT"


class TestAuthEndpoints:
    """Tests for auth API endpoints."""

    async def test_admin_login_success(self, client: AsyncClient, admin: Admin):
        """Test admin login endpoint."""
        response = await client.post(
            "/api/v1/auth/admin/login",
            json={"email": "admin@water-delivery.com", "password": "Password123"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert "access_token" in data["data"]
        assert "refresh_token" in data["data"]
        assert data["data"]["admin"]["email"] == "admin@water-delivery.com"

    async def test_admin_login_wrong_credentials(self, client: AsyncClient):
        """Test login with wrong credentials."""
        response = await client.post(
            "/api/v1/auth/admin/login",
            json={"email": "wrong@water-delivery.com", "password": "WrongPass"},
        )

        assert response.status_code == 401
        assert response.json()["success"] is False

    async def test_admin_refresh(self, client: AsyncClient, admin: Admin):
        """Test refreshing admin tokens."""
        login = await client.post(
            "/api/v1/auth/admin/login",
            json={"email": "admin@water-delivery.com", "password": "Password123"},
        )
        refresh_token = login.json()["data"]["refresh_token"]

        response = await client.post(
            "/api/v1/auth/admin/refresh", json={"refresh_token": refresh_token}
        )

        assert response.status_code == 200
        assert decode_token(response.json()["data"]["access_token"])["role"] == "admin"

    async def test_access_token_cannot_refresh(self, client: AsyncClient, admin_headers):
        """Access tokens are rejected by the refresh endpoint."""
        access_token = admin_headers["Authorization"].removeprefix("Bearer ")

        response = await client.post(
            "/api/v1/auth/admin/refresh", json={"refresh_token": access_token}
        )

        assert response.status_code == 401

    async def test_get_me_unauthorized(self, client: AsyncClient):
        """Test /me endpoint without token."""
        response = await client.get("/api/v1/auth/admin/me")
        assert response.status_code == 401

    async def test_get_admin_me(self, client: AsyncClient, admin_headers):
        """Test /admin/me endpoint with valid token."""
        response = await client.get("/api/v1/auth/admin/me", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "admin@water-delivery.com"

    async def test_update_admin_me(self, client: AsyncClient, admin_headers):
        """Admin renames themself and can log in with a new password."""
        response = await client.put(
            "/api/v1/auth/admin/me",
            json={"name": "Ops", "password": "NewPassword1"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Ops"

        login = await client.post(
            "/api/v1/auth/admin/login",
            json={"email": "admin@water-delivery.com", "password": "NewPassword1"},
        )
        assert login.status_code == 200

    async def test_resident_login(self, client: AsyncClient, resident: Resident):
        """Resident login returns the profile with the area name."""
        response = await client.post(
            "/api/v1/auth/resident/login",
            json={"email": "resident@water-delivery.com", "password": "Password123"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["resident"]["id"] == resident.id
        assert data["resident"]["area_name"] == "Koramangala"

    async def test_resident_refresh_with_admin_token(self, client: AsyncClient, admin: Admin):
        """An admin refresh token is refused on the resident endpoint."""
        token = create_refresh_token(admin.id, PrincipalKind.ADMIN)

        response = await client.post(
            "/api/v1/auth/resident/refresh", json={"refresh_token": token}
        )

        assert response.status_code == 401

    async def test_resident_token_on_admin_endpoint(
        self, client: AsyncClient, resident_headers
    ):
        """Resident tokens are authenticated but not authorized for admin routes."""
        response = await client.get("/api/v1/auth/admin/me", headers=resident_headers)
        assert response.status_code == 403

    async def test_admin_token_on_resident_endpoint(self, client: AsyncClient, admin_headers):
        response = await client.get("/api/v1/auth/resident/me", headers=admin_headers)
        assert response.status_code == 403

    async def test_disabled_resident_token_rejected(
        self, client: AsyncClient, db_session: AsyncSession, resident: Resident, resident_headers
    ):
        """A token issued before the resident was disabled stops working."""
        resident.is_enabled = False
        await db_session.commit()

        response = await client.get("/api/v1/auth/resident/me", headers=resident_headers)
        assert response.status_code == 401

    async def test_update_resident_me(
        self, client: AsyncClient, resident: Resident, resident_headers
    ):
        """Residents edit their address and quantity; email is not part of the profile."""
        response = await client.put(
            "/api/v1/auth/resident/me",
            json={"house_no": "12B", "water_quantity": 40, "email": "other@water-delivery.com"},
            headers=resident_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["house_no"] == "12B"
        assert data["water_quantity"] == 40
        assert data["email"] == "resident@water-delivery.com"

    async def test_admin_logout(self, client: AsyncClient, admin: Admin, admin_headers):
        """Logout ends the session; a fresh login works again."""
        response = await client.post("/api/v1/auth/admin/logout", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Logged out"

        response = await client.get("/api/v1/auth/admin/me", headers=admin_headers)
        assert response.status_code == 401

        login = await client.post(
            "/api/v1/auth/admin/login",
            json={"email": "admin@water-delivery.com", "password": "Password123"},
        )
        token = login.json()["data"]["access_token"]
        response = await client.get(
            "/api/v1/auth/admin/me", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 200

    async def test_resident_logout(
        self, client: AsyncClient, resident: Resident, resident_headers
    ):
        login = await client.post(
            "/api/v1/auth/resident/login",
            json={"email": "resident@water-delivery.com", "password": "Password123"},
        )
        refresh_token = login.json()["data"]["refresh_token"]

        response = await client.post("/api/v1/auth/resident/logout", headers=resident_headers)
        assert response.status_code == 200

        response = await client.get("/api/v1/auth/resident/me", headers=resident_headers)
        assert response.status_code == 401
        response = await client.post(
            "/api/v1/auth/resident/refresh", json={"refresh_token": refresh_token}
        )
        assert response.status_code == 401

    async def test_logout_requires_auth(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/resident/logout")
        assert response.status_code == 401


class TestResidentRegistration:
    """Tests for POST /auth/resident/register."""

    @staticmethod
    def _payload(area: Area, **overrides) -> dict:
        payload = {
            "name": "Farah",
            "email": "Farah@Water-Delivery.com",
            "password": "Secret123",
            "country_code": "+91",
            "phone": "99001 22334",
            "area_id": area.id,
            "house_no": "7",
            "water_quantity": 25,
        }
        payload.update(overrides)
        return payload

    async def test_register_and_login(self, client: AsyncClient, area: Area):
        response = await client.post(
            "/api/v1/auth/resident/register", json=self._payload(area)
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["email"] == "farah@water-delivery.com"
        assert data["phone"] == "9900122334"
        assert data["is_verified"] is True
        assert data["is_enabled"] is True
        assert "password_hash" not in data

        login = await client.post(
            "/api/v1/auth/resident/login",
            json={"email": "farah@water-delivery.com", "password": "Secret123"},
        )
        assert login.status_code == 200
        assert login.json()["data"]["resident"]["id"] == data["id"]

    async def test_register_duplicate_email(
        self, client: AsyncClient, area: Area, resident: Resident
    ):
        response = await client.post(
            "/api/v1/auth/resident/register",
            json=self._payload(area, email="resident@water-delivery.com"),
        )

        assert response.status_code == 409
        assert response.json()["errors"][0]["field"] == "email"

    async def test_register_duplicate_phone(
        self, client: AsyncClient, area: Area, resident: Resident
    ):
        response = await client.post(
            "/api/v1/auth/resident/register",
            json=self._payload(area, country_code=resident.country_code, phone=resident.phone),
        )

        assert response.status_code == 409
        assert response.json()["errors"][0]["field"] == "phone"

    async def test_register_requires_password(self, client: AsyncClient, area: Area):
        payload = self._payload(area)
        del payload["password"]

        response = await client.post("/api/v1/auth/resident/register", json=payload)

        assert response.status_code == 422

    async def test_register_unknown_area(self, client: AsyncClient, area: Area):
        response = await client.post(
            "/api/v1/auth/resident/register", json=self._payload(area, area_id=9999)
        )
        assert response.status_code == 404
