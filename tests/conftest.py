"""Shared fixtures for user account tests."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app import create_app
from auth import TokenSigner
from service import RegistrationService
from settings import Settings
from store import UserStore


TEST_SECRET = "test-secret-key-for-testing"
VALID_PASSWORD = "12345"


@pytest.fixture
def store() -> UserStore:
    return UserStore()


@pytest.fixture
def signer() -> TokenSigner:
    return TokenSigner(secret=TEST_SECRET)


@pytest.fixture
def registration(store, signer) -> RegistrationService:
    return RegistrationService(store=store, signer=signer)


@pytest.fixture
def settings() -> Settings:
    return Settings(jwt_private_key=TEST_SECRET)


@pytest.fixture
def client(settings, store) -> TestClient:
    return TestClient(create_app(settings=settings, store=store))


@pytest.fixture
def sample_payload() -> dict:
    """A minimal valid registration payload."""
    return {
        "name": "12345",
        "email": "me@email.com",
        "password": VALID_PASSWORD,
    }
