"""Tests for origin simulation against a CORS policy."""

import pytest

from cors_diagnoser.core.analyzer import simulate_origin
from cors_diagnoser.core.models import CorsConfiguration


def test_origin_in_list_echoes_tested_origin():
    result = simulate_origin(
        "https://app.example.com",
        {"origin": ["https://example.com", "https://app.example.com"]},
    )
    assert result.allowed
    assert result.headers["Access-Control-Allow-Origin"] == "https://app.example.com"
    assert result.reason is None


def test_list_match_is_normalized_but_echoes_literal():
    result = simulate_origin("https://APP.example.com/", {"origin": ["https://app.example.com"]})
    assert result.allowed
    assert result.headers["Access-Control-Allow-Origin"] == "https://APP.example.com/"


def test_single_origin_echoes_configured_value():
    result = simulate_origin("https://example.com", {"origin": "https://Example.com/"})
    assert result.allowed
    assert result.headers["Access-Control-Allow-Origin"] == "https://Example.com/"


@pytest.mark.parametrize("wildcard", ["*", True])
def test_wildcard_allows_any_origin(wildcard):
    result = simulate_origin("https://anything.test", {"origin": wildcard})
    assert result.allowed
    assert result.headers == {"Access-Control-Allow-Origin": "*"}


@pytest.mark.parametrize("wildcard", ["*", True])
def test_wildcard_with_credentials_is_never_allowed(wildcard):
    result = simulate_origin("https://anything.test", {"origin": wildcard, "credentials": True})
    assert not result.allowed
    assert result.reason == "Cannot use wildcard origin (*) with credentials. Must specify exact origin."
    assert result.headers["Access-Control-Allow-Credentials"] == "true"
    assert not result.preflight.allowed


def test_rejection_reasons():
    assert simulate_origin("https://evil.test", {"origin": "https://a.com"}).reason == (
        "Origin 'https://evil.test' does not match configured origin 'https://a.com'"
    )
    assert simulate_origin("https://evil.test", {"origin": ["https://a.com", "https://b.com"]}).reason == (
        "Origin 'https://evil.test' is not in the list of allowed origins: https://a.com, https://b.com"
    )
    for config in ({"origin": False}, {}):
        result = simulate_origin("https://a.com", config)
        assert not result.allowed
        assert result.reason == "CORS is not configured (origin is false or undefined)"


def test_credentials_header_only_when_allowed():
    allowed = simulate_origin("https://a.com", {"origin": "https://a.com", "credentials": True})
    assert allowed.headers["Access-Control-Allow-Credentials"] == "true"

    blocked = simulate_origin("https://b.com", {"origin": "https://a.com", "credentials": True})
    assert "Access-Control-Allow-Credentials" not in blocked.headers


def test_policy_headers_are_rendered():
    result = simulate_origin(
        "https://a.com",
        CorsConfiguration(
            origin="https://a.com",
            methods=["GET", "PUT"],
            allowed_headers=["Content-Type", "X-Token"],
            exposed_headers=["X-Total"],
            max_age=0,
        ),
    )
    assert result.headers["Access-Control-Allow-Methods"] == "GET, PUT"
    assert result.headers["Access-Control-Allow-Headers"] == "Content-Type, X-Token"
    assert result.headers["Access-Control-Expose-Headers"] == "X-Total"
    assert result.headers["Access-Control-Max-Age"] == "0"
    assert result.preflight.required
    assert result.preflight.allowed


def test_preflight_requirements():
    simple = simulate_origin("https://a.com", {"origin": "https://a.com", "methods": ["get", "HEAD", "post"]})
    assert not simple.preflight.required
    assert simple.preflight.allowed

    # a non-simple method without Allow-Headers cannot pass
    put_only = simulate_origin("https://a.com", {"origin": "https://a.com", "methods": ["PUT"]})
    assert put_only.preflight.required
    assert not put_only.preflight.allowed

    headers_only = simulate_origin("https://a.com", {"origin": "https://a.com", "allowed_headers": ["X-Token"]})
    assert headers_only.preflight.required
    assert not headers_only.preflight.allowed


def test_result_to_dict():
    data = simulate_origin("https://a.com", {"origin": "https://a.com"}).to_dict()
    assert data == {
        "allowed": True,
        "reason": None,
        "headers": {"Access-Control-Allow-Origin": "https://a.com"},
        "preflight": {"required": False, "allowed": True},
    }
