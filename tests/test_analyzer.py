"""Tests for analyze_headers and configuration_from_headers."""

import ast

import pytest

from cors_diagnoser.core import analyzer
from cors_diagnoser.core.analyzer import analyze_headers, configuration_from_headers
from cors_diagnoser.core.models import Severity


def _by_issue(diagnoses):
    # several entries may share a title; keep the first (the analyzer's own)
    issues = {}
    for d in diagnoses:
        issues.setdefault(d.issue, d)
    return issues


def test_missing_allow_origin_is_critical():
    diagnoses = analyze_headers({"Origin": "https://example.com"}, "GET", {})
    missing = _by_issue(diagnoses)["Missing Access-Control-Allow-Origin"]
    assert missing.severity is Severity.CRITICAL
    assert missing.pattern is None
    assert "https://example.com" in missing.description
    assert 'origins=["https://example.com"]' in missing.code_example


def test_missing_allow_origin_also_reported_by_catalog():
    diagnoses = analyze_headers({"Origin": "https://example.com"}, "GET", {})
    same_title = [d for d in diagnoses if d.issue == "Missing Access-Control-Allow-Origin"]
    assert [(d.severity, d.pattern) for d in same_title] == [
        (Severity.CRITICAL, None),
        (Severity.WARNING, "missing-allow-origin"),
    ]


def test_wildcard_credentials_tagged_once():
    diagnoses = analyze_headers(
        {},
        "GET",
        {"Access-Control-Allow-Origin": "*", "Access-Control-Allow-Credentials": "true"},
    )
    tagged = [d for d in diagnoses if d.pattern == "wildcard-credentials-conflict"]
    assert len(tagged) == 1
    assert tagged[0].severity is Severity.CRITICAL
    # catalog match is not duplicated, security findings follow
    assert [d.issue for d in diagnoses] == [
        "Wildcard Origin with Credentials",
        "Credentials with Wildcard Origin",
        "Wildcard Origin in Production",
    ]


def test_preflight_custom_headers_not_allowed(preflight_request):
    diagnoses = analyze_headers(
        preflight_request,
        "OPTIONS",
        {"Access-Control-Allow-Origin": "https://app.example.com", "Access-Control-Allow-Methods": "PUT"},
    )
    tagged = [d for d in diagnoses if d.pattern == "custom-headers-not-allowed"]
    assert len(tagged) == 1
    assert tagged[0].severity is Severity.CRITICAL
    assert "x-custom" in tagged[0].description
    assert '"x-custom"' in tagged[0].code_example


def test_preflight_missing_methods(preflight_request):
    diagnoses = analyze_headers(
        preflight_request,
        "OPTIONS",
        {"Access-Control-Allow-Origin": "https://app.example.com", "Access-Control-Allow-Headers": "x-custom"},
    )
    issues = _by_issue(diagnoses)
    assert issues["Missing Access-Control-Allow-Methods on Preflight"].severity is Severity.CRITICAL
    assert '"PATCH"' in issues["Missing Access-Control-Allow-Methods on Preflight"].code_example
    # catalog adds its preflight entry as a warning
    assert issues["Preflight Request Failure"].severity is Severity.WARNING


def test_origin_mismatch():
    diagnoses = analyze_headers(
        {"Origin": "https://evil.example"},
        "GET",
        {"Access-Control-Allow-Origin": "https://example.com"},
    )
    mismatch = _by_issue(diagnoses)["Origin Mismatch"]
    assert mismatch.severity is Severity.CRITICAL


def test_origin_match_ignores_case_and_trailing_slash():
    diagnoses = analyze_headers(
        {"Origin": "https://Example.com/"},
        "GET",
        {"Access-Control-Allow-Origin": "https://example.com"},
    )
    assert diagnoses == []


def test_security_findings_keep_their_severity():
    diagnoses = analyze_headers(
        {"Origin": "https://a.com"},
        "GET",
        {"Access-Control-Allow-Origin": "https://a.com", "Access-Control-Allow-Methods": "GET, DELETE"},
    )
    assert len(diagnoses) == 1
    assert diagnoses[0].severity is Severity.INFO
    assert diagnoses[0].code_example is None


@pytest.mark.parametrize(
    "request_headers,method,response_headers",
    [
        ({}, "GET", {}),
        (None, None, None),
        ({"Origin": ["https://a.com", "https://b.com"]}, "BREW", [("X", None)]),
        ("not headers", 42, object()),
        ({"Origin": "http://[::1"}, "OPTIONS", {"Access-Control-Allow-Origin": "http://[::1]:8080"}),
    ],
)
def test_never_raises(request_headers, method, response_headers):
    assert isinstance(analyze_headers(request_headers, method, response_headers), list)


def test_identical_inputs_give_identical_results(preflight_request):
    first = analyze_headers(preflight_request, "OPTIONS", {})
    second = analyze_headers(preflight_request, "OPTIONS", {})
    assert first == second
    assert first is not second


def test_failing_step_returns_partial_results(monkeypatch, caplog):
    def explode(exchange, found):
        raise RuntimeError("boom")

    steps = analyzer.ANALYSIS_STEPS
    monkeypatch.setattr(analyzer, "ANALYSIS_STEPS", steps[:1] + (explode,) + steps[1:])

    diagnoses = analyze_headers({"Origin": "https://example.com"}, "GET", {})
    assert diagnoses[0].issue == "Missing Access-Control-Allow-Origin"
    assert "explode" in caplog.text


def test_configuration_from_headers():
    config = configuration_from_headers(
        {
            "Access-Control-Allow-Origin": "https://a.com",
            "Access-Control-Allow-Methods": "GET, POST",
            "Access-Control-Allow-Headers": "Content-Type",
            "Access-Control-Expose-Headers": "X-Total",
            "Access-Control-Allow-Credentials": "true",
            "Access-Control-Max-Age": "600abc",
        }
    )
    assert config.origin == "https://a.com"
    assert config.methods == ["GET", "POST"]
    assert config.allowed_headers == ["Content-Type"]
    assert config.exposed_headers == ["X-Total"]
    assert config.credentials is True
    assert config.max_age == 600


def test_configuration_from_empty_headers():
    config = configuration_from_headers({})
    assert config.origin is False
    assert config.methods is None
    assert config.credentials is None
    assert configuration_from_headers({"Access-Control-Max-Age": "soon"}).max_age is None


def test_code_examples_survive_quotes_in_origin():
    diagnoses = analyze_headers({"Origin": 'https://a.com"'}, "GET", {})
    for diagnosis in diagnoses:
        if diagnosis.pattern is None:
            ast.parse(diagnosis.code_example)
