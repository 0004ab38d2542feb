from __future__ import annotations

import asyncio
from typing import Any

import pytest
from fastapi import HTTPException

import blogfeed.core.security as security
from blogfeed.core.auth import Principal, Role
from blogfeed.core.config import Settings


def _settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "supabase_url": "https://example.supabase.co",
        "supabase_anon_key": "anon-key",
        "otel_enabled": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def _principal_for(monkeypatch: pytest.MonkeyPatch, user: dict[str, Any], settings: Settings | None = None) -> Principal:
    async def _fake_fetch(**_: Any) -> dict[str, Any]:
        return user

    monkeypatch.setattr(security, "_fetch_supabase_user", _fake_fetch)
    return asyncio.run(security._principal_from_bearer(settings or _settings(), "Bearer token"))


def test_app_metadata_admin_role_grants_admin_scopes(monkeypatch: pytest.MonkeyPatch) -> None:
    principal = _principal_for(monkeypatch, {"id": "u1", "app_metadata": {"role": "super_admin"}})

    assert principal.role is Role.ADMIN
    assert principal.is_admin
    assert {"posts:write", "categories:write", "notifications:read"} <= principal.scopes


def test_user_metadata_role_cannot_elevate(monkeypatch: pytest.MonkeyPatch) -> None:
    principal = _principal_for(
        monkeypatch,
        {"id": "u2", "app_metadata": {}, "user_metadata": {"role": "admin", "full_name": "  Casey  "}},
    )

    assert principal.role is Role.READER
    assert principal.name == "Casey"
    with pytest.raises(PermissionError):
        principal.require_scopes({"posts:write"})


def test_missing_user_id_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    with pytest.raises(HTTPException) as exc_info:
        _principal_for(monkeypatch, {"app_metadata": {"role": "admin"}})

    assert exc_info.value.status_code == 401


def test_unconfigured_auth_is_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    with pytest.raises(HTTPException) as exc_info:
        _principal_for(monkeypatch, {"id": "u1"}, _settings(supabase_url=None))

    assert exc_info.value.status_code == 503


def test_optional_principal_is_none_without_header() -> None:
    assert asyncio.run(security.get_optional_principal(settings=_settings(), authorization=None)) is None

