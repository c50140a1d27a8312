"""
API tests for User/Authentication controller.

This module covers the sign-up callback, the current user endpoints and user
lookup, with identity supplied by bearer token or the X-User-Id header.
"""

import uuid

import pytest
from fastapi import status
from httpx import AsyncClient

from models import MessageRole
from tests.conftest import make_token
from tests.factories import create_conversation_with_messages


class TestUserAuthController:
    """Test cases for User/Authentication API endpoints."""

    @pytest.mark.asyncio
    async def test_save_user_creates_then_updates(self, client: AsyncClient):
        user_id = f"user_{uuid.uuid4()}"

        created = await client.post("/api/auth/save", json={"id": user_id, "email": "new@example.com"})
        replayed = await client.post("/api/auth/save", json={"id": user_id, "username": "nouveau"})

        assert created.status_code == status.HTTP_201_CREATED
        assert created.json()["email"] == "new@example.com"
        assert replayed.status_code == status.HTTP_200_OK
        assert replayed.json()["username"] == "nouveau"

    @pytest.mark.asyncio
    async def test_save_user_invalid_email(self, client: AsyncClient):
        response = await client.post("/api/auth/save", json={"id": "user_x", "email": "invalid-email"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_save_user_blank_id(self, client: AsyncClient):
        response = await client.post("/api/auth/save", json={"id": "   "})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_get_me_with_header(self, authenticated_client: AsyncClient, test_user):
        response = await authenticated_client.get("/api/auth/me")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == test_user.id
        assert response.json()["email"] == "test@example.com"

    @pytest.mark.asyncio
    async def test_first_request_with_token_mirrors_user(self, client: AsyncClient):
        user_id = f"user_{uuid.uuid4()}"
        token = make_token(user_id, email="fresh@example.com", user_metadata={"username": "fresh"})

        response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["id"] == user_id
        assert data["email"] == "fresh@example.com"
        assert data["username"] == "fresh"

    @pytest.mark.asyncio
    async def test_update_me(self, authenticated_client: AsyncClient):
        response = await authenticated_client.patch("/api/auth/me", json={"username": "renamed"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["username"] == "renamed"

    @pytest.mark.asyncio
    async def test_update_me_with_taken_email(self, authenticated_client: AsyncClient, test_user_2):
        response = await authenticated_client.patch("/api/auth/me", json={"email": "test2@example.com"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_delete_me(self, client: AsyncClient, test_db, test_user):
        user_id = test_user.id
        await create_conversation_with_messages(test_db, user_id, [(MessageRole.USER, "Bonjour")])
        headers = {"X-User-Id": user_id}

        response = await client.delete("/api/auth/me", headers=headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["success"] is True

    @pytest.mark.asyncio
    async def test_lookup_user(self, authenticated_client: AsyncClient, test_user_2):
        found = await authenticated_client.get(f"/api/auth/{test_user_2.id}")
        missing = await authenticated_client.get("/api/auth/user_missing")

        assert found.json()["username"] == "testuser2"
        assert missing.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_inactive_user(self, client: AsyncClient, test_db, test_user):
        test_user.is_active = False
        await test_db.commit()

        response = await client.get("/api/auth/me", headers={"X-User-Id": test_user.id})

        assert response.status_code == status.HTTP_403_FORBIDDEN
