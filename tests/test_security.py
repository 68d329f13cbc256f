"""Tests for the CORS security advisor."""

import logging

from cors_diagnoser.core.models import CorsConfiguration, Severity
from cors_diagnoser.core.security import check_security, is_wildcard_origin


def test_scenario_all_rules_fire_sorted_by_severity():
    issues = check_security(
        {
            "origin": "*",
            "credentials": True,
            "methods": ["GET", "DELETE"],
            "exposedHeaders": ["Authorization"],
        },
        "production",
    )
    assert [i.level for i in issues] == [
        Severity.CRITICAL,
        Severity.WARNING,
        Severity.WARNING,
        Severity.INFO,
    ]
    assert [i.title for i in issues] == [
        "Credentials with Wildcard Origin",
        "Wildcard Origin in Production",
        "Sensitive Headers Exposed",
        "Potentially Unnecessary HTTP Methods Allowed",
    ]


def test_empty_configuration_has_no_issues():
    assert check_security(CorsConfiguration()) == []
    assert check_security({}) == []


def test_wildcard_is_fine_in_development():
    assert check_security({"origin": "*"}, "development") == []


def test_wildcard_credentials_critical_in_any_environment():
    issues = check_security(CorsConfiguration(origin=True, credentials=True), "development")
    assert [i.level for i in issues] == [Severity.CRITICAL]


def test_wildcard_in_origin_list():
    assert is_wildcard_origin(["https://a.com", "*"])
    assert is_wildcard_origin(True)
    assert is_wildcard_origin("*")
    assert not is_wildcard_origin(False)
    assert not is_wildcard_origin("https://a.com")


def test_sensitive_headers_are_named():
    issues = check_security({"origin": "https://a.com", "exposed_headers": ["X-API-Key", "X-Request-Id"]})
    assert len(issues) == 1
    assert "X-API-Key" in issues[0].description
    assert "X-Request-Id" not in issues[0].description


def test_dangerous_methods_are_named_case_insensitively():
    issues = check_security({"origin": "https://a.com", "methods": ["get", "put", "trace"]})
    assert len(issues) == 1
    assert issues[0].level is Severity.INFO
    assert "put, trace" in issues[0].description


def test_unknown_environment_falls_back_to_production(caplog):
    with caplog.at_level(logging.WARNING):
        issues = check_security({"origin": "*"}, "staging")
    assert [i.title for i in issues] == ["Wildcard Origin in Production"]
    assert "Unknown environment 'staging'" in caplog.text
