import pytest

from conftest import FakeStore, make_definition
from app.core.errors import DefinitionValidationError
from app.schemas.endpoint import EndpointCreateRequest, ParamDef
from app.services.endpoint_validator import validate_definition


def request(**kwargs):
    data = {"method": "GET", "path": "/orders", "sql": "SELECT * FROM orders"}
    data.update(kwargs)
    return EndpointCreateRequest(**data)


async def errors_for(payload, store=None):
    with pytest.raises(DefinitionValidationError) as exc:
        await validate_definition(payload, store or FakeStore())
    return exc.value.errors


async def test_normalizes_and_infers_path_params():
    definition = await validate_definition(
        request(method="get", path="  /orders/{id} ", sql="  SELECT * FROM orders WHERE id = {id}  "),
        FakeStore(),
    )
    assert definition.method == "GET"
    assert definition.path == "/orders/{id}"
    assert definition.sql == "SELECT * FROM orders WHERE id = {id}"
    assert definition.params == [ParamDef(name="id", location="path", type="string", required=True)]
    assert definition.warnings == []


async def test_identifier_interpolation_is_rejected():
    errors = await errors_for(request(method="DELETE", path="/purge", sql="DELETE FROM {table}"))
    assert any("Unsafe identifier interpolation detected for parameter(s): table" in e for e in errors)


@pytest.mark.parametrize("sql", [
    "SELECT * FROM orders o JOIN {other} x ON x.id = o.id",
    "UPDATE {tbl} SET status = 'x'",
    "INSERT INTO {tbl} (id) VALUES (1)",
    "TRUNCATE {tbl}",
    "alter table {tbl} add column x int",
    'SELECT * FROM "{tbl}"',
    'UPDATE "{tbl}" SET status = \'x\'',
    "SELECT * FROM `{tbl}`",
    'SELECT * FROM"{tbl}"',
])
async def test_identifier_positions(sql):
    errors = await errors_for(request(method="POST", sql=sql))
    assert any("Unsafe identifier interpolation" in e for e in errors)


async def test_value_position_delete_is_accepted():
    definition = await validate_definition(
        request(method="DELETE", path="/orders/{id}", sql="DELETE FROM orders WHERE id = {id}"),
        FakeStore(),
    )
    assert definition.method == "DELETE"
    assert [p.name for p in definition.params] == ["id"]


async def test_placeholder_only_sql_is_rejected():
    errors = await errors_for(request(sql="{query};"))
    assert "SQL must include some static text and cannot be only placeholders." in errors


async def test_sandbox_errors_are_reported():
    errors = await errors_for(request(sql="SELECT * FROM sysUser"))
    assert any(e.startswith("Invalid SQL:") and "system tables" in e for e in errors)


async def test_sandbox_warnings_are_attached():
    definition = await validate_definition(request(method="POST", path="/reset", sql="TRUNCATE orders"), FakeStore())
    assert definition.warnings == ["TRUNCATE command detected - this will delete all data"]


async def test_all_violations_are_reported_together():
    errors = await errors_for(request(method="PATCH", path="orders list", sql="  "))
    assert "Invalid HTTP method" in errors
    assert 'Path must start with "/"' in errors
    assert "Path must not contain spaces" in errors
    assert "SQL is required" in errors


@pytest.mark.parametrize("path", ["/auth", "/auth/login", "/AUTH/x"])
async def test_reserved_path_prefix(path):
    errors = await errors_for(request(path=path))
    assert any("is reserved" in e for e in errors)


async def test_reserved_prefix_is_a_whole_segment():
    definition = await validate_definition(request(path="/authors"), FakeStore())
    assert definition.path == "/authors"


@pytest.mark.parametrize("path", ["/orders/x{id}", "/orders/{id}/{id}"])
async def test_malformed_path_placeholders(path):
    await errors_for(request(path=path, sql="SELECT * FROM orders"))


async def test_duplicate_method_and_path():
    store = FakeStore([make_definition(5, "GET", "/orders", "SELECT 1")])
    errors = await errors_for(request(), store)
    assert "Endpoint with same method and path already exists" in errors

    # same method+path on its own id is an update, not a duplicate
    definition = await validate_definition(request(), store, existing_id=5)
    assert definition.id == 5

    # other methods do not collide
    await validate_definition(request(method="POST"), store)


async def test_sql_only_params_follow_method_policy():
    get_def = await validate_definition(
        request(path="/search", sql="SELECT * FROM orders WHERE status = {status}"), FakeStore())
    assert get_def.params == [ParamDef(name="status", location="query", type="string", required=True)]

    post_def = await validate_definition(
        request(method="POST", path="/orders", sql="INSERT INTO orders (status) VALUES ({status})"), FakeStore())
    assert post_def.params[0].location == "body"


async def test_explicit_params_win():
    definition = await validate_definition(
        request(
            path="/sum/{a}/{b}",
            sql="SELECT {a}::int + {b}::int AS total WHERE {flag}",
            params=[
                ParamDef(name="a", location="path", type="number", required=True),
                ParamDef(name="flag", location="query", type="boolean", required=False),
            ],
        ),
        FakeStore(),
    )
    by_name = {p.name: p for p in definition.params}
    assert [p.name for p in definition.params] == ["a", "flag", "b"]
    assert by_name["a"].type == "number"
    assert by_name["b"] == ParamDef(name="b", location="path", type="string", required=True)
    assert by_name["flag"].required is False


async def test_path_param_override_must_stay_in_path():
    errors = await errors_for(request(
        path="/orders/{id}",
        sql="SELECT * FROM orders WHERE id = {id}",
        params=[ParamDef(name="id", location="query", required=True)],
    ))
    assert "Path parameter 'id' must be located in path and required" in errors


async def test_explicit_param_names_are_checked():
    errors = await errors_for(request(params=[
        ParamDef(name="x", location="query"),
        ParamDef(name="x", location="body"),
        ParamDef(name="bad name", location="query"),
    ]))
    assert "Duplicate parameter definition: x" in errors
    assert "Invalid parameter name: 'bad name'" in errors


async def test_access_policy_is_carried():
    definition = await validate_definition(
        request(is_protected=True, allowed_roles=["admin"], is_active=False, description=""),
        FakeStore(),
    )
    assert definition.is_protected is True
    assert definition.allowed_roles == ["admin"]
    assert definition.is_active is False
    assert definition.description is None
