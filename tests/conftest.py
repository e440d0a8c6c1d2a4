from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone

import pytest

from passcore.ad import DirectoryError
from passcore.env_settings import PasswordChangeOptions
from passcore.host_logon import LogonResult


class FakeEntry:
    def __init__(self, commit_error: Exception | None = None) -> None:
        self.values: dict = {}
        self.commits = 0
        self.commit_error = commit_error

    def __setitem__(self, attr, value) -> None:
        self.values[attr] = value

    def commit_changes(self) -> None:
        if self.commit_error is not None:
            raise self.commit_error
        self.commits += 1


class FakePrincipal:
    def __init__(
        self,
        upn: str = "jdoe@corp.example.com",
        password: str = "OldPass123!",
        groups: tuple[str, ...] = ("Domain Users",),
        cannot_change: bool = False,
        last_password_set: datetime | None = datetime(2024, 1, 1, tzinfo=timezone.utc),
        change_error: Exception | None = None,
        set_error: Exception | None = None,
        commit_error: Exception | None = None,
    ) -> None:
        self.user_principal_name = upn
        self.password = password
        self.groups = list(groups)
        self.user_cannot_change_password = cannot_change
        self.last_password_set = last_password_set
        self.change_error = change_error
        self.set_error = set_error
        self.entry = FakeEntry(commit_error)
        self.calls: list[str] = []

    def get_authorization_groups(self) -> list[str]:
        self.calls.append("groups")
        return list(self.groups)

    def get_underlying_object(self) -> FakeEntry:
        return self.entry

    def change_password(self, old_password: str, new_password: str) -> None:
        self.calls.append("change")
        if self.change_error is not None:
            raise self.change_error
        if old_password != self.password:
            raise DirectoryError("Password change failed: constraintViolation")
        self.password = new_password

    def set_password(self, new_password: str) -> None:
        self.calls.append("set")
        if self.set_error is not None:
            raise self.set_error
        self.password = new_password

    def save(self) -> None:
        self.calls.append("save")


class FakeContext:
    def __init__(self, directory: "FakeDirectory") -> None:
        self.directory = directory
        self.automatic = directory.automatic
        self.host = "dc1.corp.example.com"
        self.lookups: list[tuple] = []
        self.bind_checks: list[tuple[str, str]] = []

    def find_by_identity(self, id_type, value):
        self.lookups.append((id_type, value))
        return self.directory.principals.get(value)

    def validate_credentials(self, user: str, password: str) -> bool:
        self.bind_checks.append((user, password))
        if not user or not password:
            return False
        if not self.directory.bind_available:
            return False
        for p in self.directory.principals.values():
            if p.user_principal_name == user:
                return p.password == password
        return False


class FakeDirectory:
    """Context factory that records every open/close."""

    def __init__(self, automatic: bool = False) -> None:
        self.automatic = automatic
        self.principals: dict[str, FakePrincipal] = {}
        self.bind_available = True
        self.opened = 0
        self.closed = 0
        self.open_error: Exception | None = None
        self.last_context: FakeContext | None = None

    def add(self, key: str, principal: FakePrincipal) -> FakePrincipal:
        self.principals[key] = principal
        return principal

    @contextmanager
    def __call__(self, options):
        if self.open_error is not None:
            raise self.open_error
        self.opened += 1
        ctx = FakeContext(self)
        self.last_context = ctx
        try:
            yield ctx
        finally:
            self.closed += 1


class FakeLogon:
    def __init__(self, result: LogonResult | None = None) -> None:
        self.result = result or LogonResult(success=False, error_code=0xC000006D)
        self.calls: list[tuple] = []

    def __call__(self, target, domain, username, password, timeout_s=7) -> LogonResult:
        self.calls.append((target, domain, username, password))
        return self.result


def make_options(**kwargs) -> PasswordChangeOptions:
    base = {
        "ldap_hostnames": "dc1.corp.example.com;dc2.corp.example.com",
        "ldap_username": "svc-passcore",
        "ldap_password": "secret",
        "default_domain": "corp.example.com",
    }
    base.update(kwargs)
    return PasswordChangeOptions(**base)


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def logon() -> FakeLogon:
    return FakeLogon()


@pytest.fixture
def options_factory():
    return make_options


@pytest.fixture
def principal_factory():
    return FakePrincipal


@pytest.fixture
def ambient_directory() -> FakeDirectory:
    return FakeDirectory(automatic=True)
