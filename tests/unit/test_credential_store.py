from __future__ import annotations

import json

from social_chat.infrastructure.auth.credential_store import FileCredentialStore, parse_bundle


def test_load_bundle(tmp_path):
    path = tmp_path / "token.json"
    path.write_text(json.dumps({
        "token": "abc",
        "user": {"id": 42, "nickname": "me", "email": "me@example.com", "firstName": "Me"},
    }))

    creds = FileCredentialStore(path).load()

    assert creds is not None
    assert creds.token == "abc"
    assert creds.user_id == 42
    assert creds.email == "me@example.com"
    assert creds.is_authenticated


def test_missing_file(tmp_path):
    assert FileCredentialStore(tmp_path / "nope.json").load() is None


def test_corrupt_file(tmp_path):
    path = tmp_path / "token.json"
    path.write_text("{not json")

    assert FileCredentialStore(path).load() is None


def test_parse_bundle_rejects_incomplete_data():
    assert parse_bundle([]) is None
    assert parse_bundle({"token": "abc"}) is None
    assert parse_bundle({"token": "", "user": {"id": 1}}) is None
    assert parse_bundle({"token": "abc", "user": {"id": "x"}}) is None


def test_zero_user_id_is_not_authenticated():
    creds = parse_bundle({"token": "abc", "user": {"id": 0}})

    assert creds is not None
    assert creds.is_authenticated is False
