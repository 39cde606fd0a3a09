from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from app.schemas.endpoint import EndpointDefinition, ParamDef
from app.services.auth import IdentityRecord, TokenVerifier

SECRET = "test-access-secret"


def create_access_token(data: dict, expires_delta: timedelta = None, secret: str = SECRET):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret, algorithm="HS256")


class FakeStore:
    def __init__(self, definitions=None):
        self.definitions = list(definitions or [])

    async def find_active_definitions(self, method):
        return [d for d in self.definitions if d.method == method and d.is_active]

    async def exists_method_path(self, method, path, exclude_id=None):
        return any(
            d.method == method and d.path == path and d.id != exclude_id
            for d in self.definitions
        )


class FakeDirectory:
    def __init__(self, system_users=None, app_users=None):
        self.system_users = system_users or {}
        self.app_users = app_users or {}

    async def lookup_system_user(self, identity_id):
        return self.system_users.get(identity_id)

    async def lookup_app_user(self, identity_id):
        return self.app_users.get(identity_id)


class FakeEngine:
    def __init__(self, rows=None, affected=0, error=None):
        self.rows = rows or []
        self.affected = affected
        self.error = error
        self.executed = []

    async def execute_read(self, sql):
        self.executed.append(("read", sql))
        if self.error:
            raise self.error
        return list(self.rows)

    async def execute_write(self, sql):
        self.executed.append(("write", sql))
        if self.error:
            raise self.error
        return self.affected


def make_definition(id, method, path, sql, params=(), **kwargs):
    return EndpointDefinition(
        id=id,
        method=method,
        path=path,
        sql=sql,
        params=[ParamDef(**p) for p in params],
        **kwargs,
    )


@pytest.fixture
def verifier():
    return TokenVerifier(SECRET)


@pytest.fixture
def directory():
    return FakeDirectory(
        system_users={
            1: IdentityRecord(active=True),
            2: IdentityRecord(active=False),
        },
        app_users={
            10: IdentityRecord(active=True, roles=["user"]),
            11: IdentityRecord(active=True, roles=["admin", "user"]),
            12: IdentityRecord(active=False, roles=["admin"]),
        },
    )


@pytest.fixture
def token_for():
    def _token_for(identity_id, kind=None, **kwargs):
        claims = {"sub": str(identity_id)}
        if kind:
            claims["type"] = kind
        return "Bearer " + create_access_token(claims, **kwargs)
    return _token_for
