"""Tests for remediation snippet generation."""

import ast

import pytest

from cors_diagnoser.core.codegen import generate_fetch_example, generate_server_example


@pytest.mark.parametrize(
    "issue,description_keyword",
    [
        ("wildcard credentials conflict", "wildcard"),
        ("Multiple Origins Misconfiguration", "comma-separated"),
        ("preflight missing methods", "OPTIONS"),
        ("OPTIONS request failed", "OPTIONS"),
        ("custom headers not allowed", "custom request headers"),
        ("Missing Access-Control-Allow-Headers", "custom request headers"),
        ("credentials mismatch", "credentials"),
        ("method not allowed", "HTTP methods"),
        ("missing allow origin", "flask-cors"),
        ("", "flask-cors"),
    ],
)
def test_server_template_selection(issue, description_keyword):
    example = generate_server_example(issue)
    assert example.language == "python"
    assert description_keyword in example.description


@pytest.mark.parametrize(
    "issue",
    [
        "wildcard credentials conflict",
        "multiple origins",
        "preflight missing methods",
        "custom headers not allowed",
        "credentials",
        "methods",
        "anything else",
    ],
)
def test_server_examples_are_valid_python(issue):
    example = generate_server_example(
        issue,
        origin="https://app.example.com",
        methods=["GET", "PATCH"],
        headers=["X-Token"],
    )
    ast.parse(example.code)
    assert "https://app.example.com" in example.code


def test_server_example_context_is_rendered():
    code = generate_server_example(
        "custom headers not allowed", origin="https://a.com", headers=["X-One", "X-Two"]
    ).code
    assert 'allow_headers=["X-One", "X-Two"]' in code
    assert 'origins=["https://a.com"]' in code


def test_server_example_defaults():
    code = generate_server_example("multiple origins").code
    assert '["https://example.com", "https://app.example.com"]' in code


def test_origin_is_not_html_escaped():
    code = generate_server_example("missing allow origin", origin="https://a.com/?x=1&y=<2>").code
    assert "&amp;" not in code
    assert "&y=<2>" in code


@pytest.mark.parametrize(
    "issue,marker",
    [
        ("credentials mismatch", "credentials: 'include'"),
        ("custom headers not allowed", "'X-Custom-Header': 'value'"),
        ("preflight failure", "triggers preflight"),
        ("missing allow origin", "fetch('https://example.com/api/data')"),
    ],
)
def test_fetch_examples(issue, marker):
    example = generate_fetch_example(issue)
    assert example.language == "javascript"
    assert marker in example.code


def test_fetch_custom_headers_list():
    code = generate_fetch_example("header not allowed", origin="https://api.test", headers=["X-A", "X-B"]).code
    assert "'X-A': 'value'," in code
    assert "'X-B': 'value'\n" in code
    assert "fetch('https://api.test/api/data'" in code


@pytest.mark.parametrize("issue", ["missing allow origin", "wildcard credentials conflict", "preflight failure", "method not allowed"])
def test_quoted_origin_keeps_server_snippet_valid(issue):
    origin = 'https://a.com"); import os  # \\'
    code = generate_server_example(issue, origin=origin).code
    ast.parse(code)
    assert '"https://a.com\\"); import os  # \\\\"' in code


def test_quoted_origin_is_escaped_in_fetch_snippet():
    code = generate_fetch_example("header not allowed", origin="https://a.com'x", headers=["X-'B"]).code
    assert "fetch('https://a.com\\'x/api/data'" in code
    assert "'X-\\'B': 'value'" in code
