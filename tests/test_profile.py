# tests/test_profile.py

from __future__ import annotations

import pytest

from taskbuddy.exceptions import NotOwnerError
from taskbuddy.models import Profile
from taskbuddy.services.profile import ProfileService

from .conftest import OTHER_USER, USER
from .fakes import FailingStorage


@pytest.fixture()
def profiles(session, storage) -> ProfileService:
    return ProfileService(session, storage)


def test_sign_in_creates_then_refreshes_name(profiles, session) -> None:
    profiles.ensure_on_sign_in(USER, "Sam")
    profiles.upsert_profile(USER, website="https://sam.dev")
    profiles.ensure_on_sign_in(USER, "Sam Doe")

    profile = session.get(Profile, USER)
    assert profile.full_name == "Sam Doe"
    assert profile.website == "https://sam.dev"


def test_upsert_writes_only_given_fields(profiles) -> None:
    profiles.upsert_profile(USER, full_name="Sam", username="sam")

    profile = profiles.upsert_profile(USER, username=None)

    assert profile.full_name == "Sam"
    assert profile.username is None
    assert profile.updated_at is not None


def test_get_profile_without_user(profiles) -> None:
    assert profiles.get_profile("") is None
    assert profiles.get_profile(USER) is None


def test_avatar_roundtrip(profiles) -> None:
    path = profiles.upload_avatar(USER, "face.jpeg", b"jpeg")

    assert path.startswith(f"{USER}/") and path.endswith(".jpeg")
    assert profiles.avatar_bytes(USER, path) == b"jpeg"


def test_avatar_paths_are_unique(profiles) -> None:
    first = profiles.upload_avatar(USER, "a.png", b"1")
    second = profiles.upload_avatar(USER, "a.png", b"2")
    assert first != second


def test_unreadable_avatar_is_none(profiles, caplog) -> None:
    assert profiles.avatar_bytes(USER, None) is None
    assert profiles.avatar_bytes(USER, "user-1/missing.png") is None
    assert "Error downloading image" in caplog.text


def test_avatar_upload_failure_propagates(session) -> None:
    service = ProfileService(session, FailingStorage())
    with pytest.raises(Exception):
        service.upload_avatar(USER, "a.png", b"x")


def test_foreign_avatar_is_not_readable(profiles) -> None:
    path = profiles.upload_avatar(OTHER_USER, "secret.png", b"theirs")

    assert profiles.avatar_bytes(USER, path) is None
    assert profiles.avatar_bytes(OTHER_USER, path) == b"theirs"


def test_profile_cannot_point_at_foreign_avatar(profiles, session) -> None:
    path = profiles.upload_avatar(OTHER_USER, "secret.png", b"theirs")
    profiles.upsert_profile(USER, full_name="Sam")

    with pytest.raises(NotOwnerError):
        profiles.upsert_profile(USER, avatar_url=path)
    with pytest.raises(NotOwnerError):
        profiles.upsert_profile(USER, avatar_url=f"{USER}-{path}")

    assert session.get(Profile, USER).avatar_url is None
    assert profiles.upsert_profile(USER, avatar_url=None).avatar_url is None
