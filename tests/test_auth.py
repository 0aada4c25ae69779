"""
Authentication and user administration endpoint tests.
"""

import pytest
from httpx import AsyncClient
from jose import jwt

from backoffice.models import UserRole


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, admin_user):
    """Test successful login."""
    response = await client.post(
        "/api/v1/auth/login",
        json={
            "email": "admin@example.com",
            "password": "testpassword123",
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"


@pytest.mark.asyncio
async def test_token_carries_no_role(client: AsyncClient, admin_user):
    """Roles are read from the user record, not from the token."""
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "admin@example.com", "password": "testpassword123"},
    )

    claims = jwt.get_unverified_claims(response.json()["access_token"])
    assert claims["sub"] == str(admin_user.id)
    assert "role" not in claims


@pytest.mark.asyncio
async def test_demoted_user_loses_admin_access(client: AsyncClient, db_session, admin_user):
    """A role change applies to tokens issued before it."""
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "admin@example.com", "password": "testpassword123"},
    )
    client.headers["Authorization"] = f"Bearer {response.json()['access_token']}"

    admin_user.role = UserRole.SALES
    await db_session.commit()

    response = await client.get("/api/v1/users")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, admin_user):
    """Test login with wrong password."""
    response = await client.post(
        "/api/v1/auth/login",
        json={
            "email": "admin@example.com",
            "password": "wrongpassword",
        },
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_disabled_account(client: AsyncClient, db_session, sales_user):
    """Disabled accounts cannot log in."""
    sales_user.is_active = False
    await db_session.commit()

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "sales@example.com", "password": "testpassword123"},
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_get_current_user(auth_client: AsyncClient):
    """Test getting current user profile."""
    response = await auth_client.get("/api/v1/auth/me")

    assert response.status_code == 200
    data = response.json()
    assert data["email"] == "admin@example.com"
    assert data["role"] == "admin"
    assert "hashed_password" not in data


@pytest.mark.asyncio
async def test_protected_route_without_token(client: AsyncClient):
    """Test accessing protected route without token."""
    response = await client.get("/api/v1/auth/me")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_admin_provisions_user(auth_client: AsyncClient):
    """Admins create accounts with a role."""
    response = await auth_client.post(
        "/api/v1/users",
        json={
            "email": "rep@example.com",
            "password": "password123",
            "full_name": "Field Rep",
            "role": "sales",
        },
    )

    assert response.status_code == 201
    assert response.json()["role"] == "sales"

    response = await auth_client.post(
        "/api/v1/users",
        json={
            "email": "rep@example.com",
            "password": "password123",
            "full_name": "Field Rep",
        },
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_sales_user_cannot_provision(sales_client: AsyncClient):
    """User administration is admin only."""
    response = await sales_client.post(
        "/api/v1/users",
        json={
            "email": "rep@example.com",
            "password": "password123",
            "full_name": "Field Rep",
        },
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_change_password(sales_client: AsyncClient):
    """Users change their own password."""
    response = await sales_client.post(
        "/api/v1/users/me/change-password",
        json={"current_password": "wrongpassword", "new_password": "newpassword123"},
    )
    assert response.status_code == 400

    response = await sales_client.post(
        "/api/v1/users/me/change-password",
        json={"current_password": "testpassword123", "new_password": "newpassword123"},
    )
    assert response.status_code == 200
