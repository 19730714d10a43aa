"""Tests for the users repository against a stubbed collection."""
from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
from pymongo.errors import DuplicateKeyError, NetworkTimeout

from backend.app import db as db_module
from backend.app.repositories import UserAlreadyExistsError, UsersRepository, _duplicate_fields


class StubCollection:
    def __init__(self) -> None:
        self.count_filters: List[Dict[str, Any]] = []
        self.inserted: List[Dict[str, Any]] = []
        self.count_result = 0
        self.insert_error = None

    def count_documents(self, filter_dict, limit=0):
        self.count_filters.append(filter_dict)
        return self.count_result

    def insert_one(self, document):
        if self.insert_error is not None:
            raise self.insert_error
        self.inserted.append(document)
        return SimpleNamespace(inserted_id="new-id")


@pytest.fixture(name="collection")
def fixture_collection(app, monkeypatch) -> StubCollection:
    stub = StubCollection()
    monkeypatch.setattr(db_module, "get_db", lambda: {app.config["USERS_COLLECTION"]: stub})
    with app.app_context():
        yield stub


def test_exists_matches_email_or_username(collection) -> None:
    collection.count_result = 1
    assert UsersRepository().exists("Ann@X.com") is True
    assert collection.count_filters == [
        {"$or": [{"email": "ann@x.com"}, {"username": "ann@x.com"}]}
    ]


def test_exists_false_when_no_match(collection) -> None:
    assert UsersRepository().exists("ann") is False


def test_insert_lowercases_keys(collection) -> None:
    inserted_id = UsersRepository().insert({"email": "Ann@X.com", "username": "Ann", "passwordHash": "h"})
    assert inserted_id == "new-id"
    assert collection.inserted[0]["email"] == "ann@x.com"
    assert collection.inserted[0]["username"] == "ann"


def test_insert_duplicate_raises_user_already_exists(collection) -> None:
    collection.insert_error = DuplicateKeyError(
        "E11000 duplicate key error", 11000, {"keyValue": {"username": "ann"}}
    )
    with pytest.raises(UserAlreadyExistsError) as exc:
        UsersRepository().insert({"email": "ann@x.com", "username": "ann"})
    assert exc.value.fields == ("username",)
    assert exc.value.status == 409


def test_insert_store_error_propagates(collection) -> None:
    collection.insert_error = NetworkTimeout("timed out")
    with pytest.raises(NetworkTimeout):
        UsersRepository().insert({"email": "ann@x.com", "username": "ann"})


@pytest.mark.parametrize("details,message,expected", [
    ({"keyValue": {"email": "a@x.com"}}, "", ("email",)),
    ({"keyPattern": {"username": 1}}, "", ("username",)),
    ({}, "E11000 duplicate key error collection: forum.users index: email_unique dup key: { email: \"a@x.com\" }", ("email",)),
    ({}, "E11000 duplicate key error collection: forum.users index: username_unique dup key: { username: \"ann\" }", ("username",)),
    ({}, "E11000 duplicate key error", ()),
])
def test_duplicate_fields(details, message, expected) -> None:
    error = DuplicateKeyError(message, 11000, details)
    assert _duplicate_fields(error) == expected


def test_fixed_collection_name_ignores_config(app) -> None:
    with app.app_context():
        repo = UsersRepository("accounts")
        assert repo.collection_name == "accounts"


def test_ensure_indexes_creates_unique_user_indexes(app, monkeypatch) -> None:
    created = []
    stub = SimpleNamespace(create_index=lambda keys, **kwargs: created.append((keys, kwargs)))
    monkeypatch.setattr(db_module, "get_db", lambda: {app.config["USERS_COLLECTION"]: stub})
    with app.app_context():
        assert db_module.ensure_indexes() is True
    assert [keys for keys, _ in created] == [[("email", 1)], [("username", 1)]]
    assert all(kwargs["unique"] for _, kwargs in created)


def test_ensure_indexes_reports_connection_failure(app, monkeypatch) -> None:
    def failing_get_db():
        raise db_module.DatabaseError("down")

    monkeypatch.setattr(db_module, "get_db", failing_get_db)
    with app.app_context():
        assert db_module.ensure_indexes() is False


def _health_with_indexes(app, monkeypatch, index_info):
    client = SimpleNamespace(
        admin=SimpleNamespace(command=lambda name: {"ok": 1}),
        server_info=lambda: {"version": "7.0.0"},
    )
    users_collection = SimpleNamespace(index_information=lambda: index_info)
    monkeypatch.setattr(db_module, "get_mongo_client", lambda: client)
    monkeypatch.setattr(db_module, "get_db", lambda: {app.config["USERS_COLLECTION"]: users_collection})
    with app.app_context():
        return db_module.health_check()


def test_health_check_reports_unique_user_indexes(app, monkeypatch) -> None:
    health = _health_with_indexes(app, monkeypatch, {
        "_id_": {"key": [("_id", 1)]},
        "email_unique": {"key": [("email", 1)], "unique": True},
        "username_unique": {"key": [("username", 1)], "unique": True},
    })
    assert health["status"] == "healthy"
    assert health["users_collection"] == app.config["USERS_COLLECTION"]
    assert health["missing_unique_indexes"] == []


def test_health_check_degraded_without_unique_username_index(app, monkeypatch) -> None:
    health = _health_with_indexes(app, monkeypatch, {
        "_id_": {"key": [("_id", 1)]},
        "email_unique": {"key": [("email", 1)], "unique": True},
        "username_1": {"key": [("username", 1)]},
    })
    assert health["status"] == "degraded"
    assert health["missing_unique_indexes"] == ["username"]
