import pytest

from app.services.path_matcher import match_path_template, route_specificity


def test_captures_placeholders():
    result = match_path_template("/users/{id}/orders/{orderId}", "/users/42/orders/7")
    assert result.matched
    assert result.params == {"id": "42", "orderId": "7"}


def test_segment_count_must_match():
    assert not match_path_template("/users/{id}/orders/{orderId}", "/users/42/orders").matched
    assert not match_path_template("/users", "/users/42").matched


def test_literal_segments_are_case_sensitive():
    assert match_path_template("/get-now", "/get-now").matched
    assert not match_path_template("/get-now", "/Get-Now").matched
    assert not match_path_template("/users/{id}/orders", "/users/1/items").matched


def test_empty_segments_are_ignored():
    result = match_path_template("/users/{id}/", "//users///5")
    assert result.matched
    assert result.params == {"id": "5"}


def test_captured_values_are_url_decoded():
    result = match_path_template("/search/{term}", "/search/hello%20world%2Fx")
    assert result.params == {"term": "hello world/x"}


@pytest.mark.parametrize("template", ["/files/{*}", "/files/pre{name}", "/files/{na me}"])
def test_only_whole_identifier_segments_capture(template):
    # anything that is not exactly {identifier} is compared literally
    assert not match_path_template(template, "/files/report").matched


def test_root_template():
    assert match_path_template("/", "/").matched
    assert match_path_template("/", "").matched


def test_specificity_prefers_literal_segments():
    templates = ["/users/{id}", "/users/active", "/{kind}/{id}"]
    assert sorted(templates, key=route_specificity) == ["/users/active", "/users/{id}", "/{kind}/{id}"]


def test_specificity_prefers_earlier_literal_on_tie():
    templates = ["/{a}/orders", "/users/{b}"]
    assert sorted(templates, key=route_specificity) == ["/users/{b}", "/{a}/orders"]
