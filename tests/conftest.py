"""Shared fixtures: an app on TestingConfig and an in-memory users store.

The fake store mirrors the unique email/username indexes so registration
tests never need a running MongoDB.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId
from flask import Flask

from backend.app import create_app
from backend.app.config import TestingConfig
from backend.app.repositories import UserAlreadyExistsError
from backend.app.services.auth import registration_service


class FakeUsersRepository:
    def __init__(self) -> None:
        self.users: List[Dict[str, Any]] = []
        self.exists_calls: List[str] = []
        self.insert_calls = 0
        self.exists_error: Optional[Exception] = None
        self.insert_error: Optional[Exception] = None
        # Identifiers reported as free by exists(), to simulate a lost race
        self.hide_from_exists: set = set()

    def exists(self, identifier: str) -> bool:
        self.exists_calls.append(identifier)
        if self.exists_error is not None:
            raise self.exists_error
        key = identifier.lower()
        if key in self.hide_from_exists:
            return False
        return any(u['email'] == key or u['username'] == key for u in self.users)

    def insert(self, user_data: Dict[str, Any]) -> ObjectId:
        self.insert_calls += 1
        if self.insert_error is not None:
            raise self.insert_error
        user_data['email'] = user_data['email'].lower()
        user_data['username'] = user_data['username'].lower()
        fields = tuple(
            f for f in ('email', 'username')
            if any(u[f] == user_data[f] for u in self.users)
        )
        if fields:
            raise UserAlreadyExistsError(fields)
        user_data['_id'] = ObjectId()
        self.users.append(dict(user_data))
        return user_data['_id']


@pytest.fixture(name="users")
def fixture_users(monkeypatch) -> FakeUsersRepository:
    repo = FakeUsersRepository()
    monkeypatch.setattr(registration_service, "users_repo", repo)
    return repo


@pytest.fixture(name="app")
def fixture_app() -> Flask:
    return create_app(TestingConfig)


@pytest.fixture(name="client")
def fixture_client(app: Flask, users):
    return app.test_client()
