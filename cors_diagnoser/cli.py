"""CORS Diagnoser CLI - Command Line Interface."""

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import asyncio
import json
import logging

import typer
import yaml
from rich.console import Console
from rich.panel import Panel

from cors_diagnoser import __version__
from cors_diagnoser.core.analyzer import analyze_headers, compare_configuration, simulate_origin
from cors_diagnoser.core.models import Diagnosis, Severity
from cors_diagnoser.core.patterns import COMMON_PATTERNS, get_pattern
from cors_diagnoser.core.security import check_security
from cors_diagnoser.reporting.console import DiagnosisPrinter
from cors_diagnoser.utils.config import (
    CONFIG_TEMPLATE,
    DEFAULT_CONFIG_PATH,
    Config,
    load_cors_configuration,
)

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="cors-diagnoser",
    help="🔍 CORS Diagnoser - find out why the browser blocked your request",
    add_completion=False,
)

console = Console()
printer = DiagnosisPrinter(console)

FAIL_ON_LEVELS = ("critical", "warning", "info", "none")
OUTPUT_FORMATS = ("text", "json")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Diagnose CORS misconfigurations from headers, configs or live servers."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _fail(message: str) -> None:
    console.print(f"[bold red]❌ {message}[/bold red]")
    raise typer.Exit(code=1)


def _load_settings(path: str) -> Config:
    """Load cors-diagnoser.yaml; a missing file means defaults."""
    settings = Config(path)
    try:
        settings.load()
    except FileNotFoundError:
        logger.debug("No settings file at %s, using defaults", path)
    except ValueError as e:
        _fail(f"Invalid settings file {path}: {e}")
    return settings


def parse_header_args(values: Optional[List[str]]) -> List[Tuple[str, str]]:
    """Turn repeated ``"Name: value"`` options into header pairs.

    Raises:
        ValueError: If an entry has no colon or an empty name
    """
    headers = []
    for raw in values or []:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"Invalid header '{raw}', expected 'Name: value'")
        headers.append((name.strip(), value.strip()))
    return headers


def _load_document(path: str) -> Dict[str, Any]:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    with open(file_path, encoding="utf-8") as f:
        text = f.read()
    try:
        data = json.loads(text) if file_path.suffix.lower() == ".json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValueError(f"Could not parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping/object")
    return data


def _exceeds_threshold(diagnoses: List[Diagnosis], fail_on: str) -> bool:
    if fail_on == "none":
        return False
    threshold = Severity(fail_on).rank
    return any(d.severity.rank <= threshold for d in diagnoses)


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold magenta]CORS Diagnoser[/bold magenta] v{__version__}")


@app.command()
def init(
    path: str = typer.Option(DEFAULT_CONFIG_PATH, "--path", "-p", help="Where to write the file"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
):
    """Initialize a new cors-diagnoser.yaml configuration file."""
    target = Path(path)
    if target.exists() and not force:
        _fail(f"{path} already exists (use --force to overwrite)")

    with open(target, "w", encoding="utf-8") as f:
        f.write(CONFIG_TEMPLATE)

    console.print(f"[green]✓[/green] Created {path}")
    console.print("Edit the file with your expected CORS policy.")


@app.command()
def analyze(
    request_header: Optional[List[str]] = typer.Option(
        None, "--request-header", "-H", help="Request header as 'Name: value' (repeatable)"
    ),
    response_header: Optional[List[str]] = typer.Option(
        None, "--response-header", "-R", help="Response header as 'Name: value' (repeatable)"
    ),
    method: str = typer.Option("GET", "--method", "-m", help="HTTP method of the request"),
    file: Optional[str] = typer.Option(
        None,
        "--file",
        "-f",
        help="JSON/YAML file with request_headers, response_headers and method",
    ),
    format: str = typer.Option("text", "--format", help="Output format (text, json)"),
    fail_on: str = typer.Option(
        "none",
        "--fail-on",
        help="Exit with code 1 if an issue at or above this level is found (critical, warning, info, none)",
    ),
):
    """Diagnose a captured request/response header pair."""
    if format not in OUTPUT_FORMATS:
        _fail(f"Unknown format '{format}', expected one of: {', '.join(OUTPUT_FORMATS)}")
    if fail_on not in FAIL_ON_LEVELS:
        _fail(f"Unknown --fail-on level '{fail_on}', expected one of: {', '.join(FAIL_ON_LEVELS)}")

    try:
        if file:
            document = _load_document(file)
            request_headers: Any = document.get("request_headers") or {}
            response_headers: Any = document.get("response_headers") or {}
            document_method = document.get("method")
            if document_method is not None:
                if not isinstance(document_method, str):
                    raise ValueError(f"method must be a string, got {type(document_method).__name__}")
                method = document_method
        else:
            request_headers = parse_header_args(request_header)
            response_headers = parse_header_args(response_header)
    except (FileNotFoundError, ValueError) as e:
        _fail(str(e))

    diagnoses = analyze_headers(request_headers, method.upper(), response_headers)

    if format == "json":
        typer.echo(json.dumps([d.to_dict() for d in diagnoses], indent=2))
    else:
        printer.print_diagnoses(diagnoses, title=f"CORS analysis of {method.upper()} request")

    if _exceeds_threshold(diagnoses, fail_on):
        raise typer.Exit(code=1)


@app.command()
def compare(
    current: str = typer.Option(..., "--current", "-c", help="File with the current CORS policy"),
    expected: Optional[str] = typer.Option(
        None, "--expected", "-e", help="File with the expected policy (defaults to settings)"
    ),
    settings: str = typer.Option(DEFAULT_CONFIG_PATH, "--settings", "-s", help="Settings file"),
    format: str = typer.Option("text", "--format", help="Output format (text, json)"),
):
    """Compare a CORS policy against the expected one."""
    try:
        current_config = load_cors_configuration(current)
        if expected:
            expected_config = load_cors_configuration(expected)
        else:
            expected_config = _load_settings(settings).expected
            if expected_config is None:
                _fail(f"No --expected file given and no 'expected' section in {settings}")
    except (FileNotFoundError, ValueError) as e:
        _fail(str(e))

    diff = compare_configuration(current_config, expected_config)
    if format == "json":
        typer.echo(json.dumps(diff.to_dict(), indent=2))
    else:
        printer.print_diff(diff)

    if not diff.matches:
        raise typer.Exit(code=1)


@app.command("test-origin")
def test_origin_command(
    origin: str = typer.Argument(..., help="Origin to simulate, e.g. https://app.example.com"),
    config: str = typer.Option(..., "--config", "-c", help="File with the CORS policy"),
    format: str = typer.Option("text", "--format", help="Output format (text, json)"),
):
    """Simulate a request from ORIGIN against a CORS policy."""
    try:
        policy = load_cors_configuration(config)
    except (FileNotFoundError, ValueError) as e:
        _fail(str(e))

    result = simulate_origin(origin, policy)
    if format == "json":
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        printer.print_origin_test(origin, result)

    if not result.allowed:
        raise typer.Exit(code=1)


@app.command()
def check(
    config: str = typer.Option(..., "--config", "-c", help="File with the CORS policy"),
    environment: Optional[str] = typer.Option(
        None, "--environment", "-e", help="production or development (defaults to settings)"
    ),
    settings: str = typer.Option(DEFAULT_CONFIG_PATH, "--settings", "-s", help="Settings file"),
    fail_on: str = typer.Option("critical", "--fail-on", help="critical, warning, info, none"),
):
    """Review a CORS policy for security problems."""
    if fail_on not in FAIL_ON_LEVELS:
        _fail(f"Unknown --fail-on level '{fail_on}', expected one of: {', '.join(FAIL_ON_LEVELS)}")
    try:
        policy = load_cors_configuration(config)
    except (FileNotFoundError, ValueError) as e:
        _fail(str(e))

    environment = environment or _load_settings(settings).environment
    issues = check_security(policy, environment)
    console.print(f"Environment: [bold]{environment}[/bold]")
    printer.print_security_issues(issues)

    if fail_on != "none" and any(i.level.rank <= Severity(fail_on).rank for i in issues):
        raise typer.Exit(code=1)


@app.command()
def patterns():
    """List the known CORS error patterns."""
    printer.print_patterns(COMMON_PATTERNS)


@app.command()
def explain(pattern_id: str = typer.Argument(..., help="Pattern id, see `patterns`")):
    """Explain one CORS error pattern and how to fix it."""
    pattern = get_pattern(pattern_id)
    if pattern is None:
        _fail(f"Unknown pattern '{pattern_id}'. Run 'cors-diagnoser patterns' to list them.")
    printer.print_pattern(pattern)


@app.command()
def probe(
    url: str = typer.Argument(..., help="URL to probe"),
    origin: Optional[str] = typer.Option(None, "--origin", "-o", help="Origin to send"),
    method: Optional[str] = typer.Option(None, "--method", "-m", help="HTTP method"),
    request_header: Optional[List[str]] = typer.Option(
        None, "--request-header", "-H", help="Extra request header as 'Name: value' (repeatable)"
    ),
    settings: str = typer.Option(DEFAULT_CONFIG_PATH, "--settings", "-s", help="Settings file"),
    format: str = typer.Option("text", "--format", help="Output format (text, json)"),
    fail_on: str = typer.Option("none", "--fail-on", help="critical, warning, info, none"),
):
    """Send browser-like CORS requests to a live server and diagnose them."""
    from cors_diagnoser.backend.probe import CorsProbe, ProbeError

    if fail_on not in FAIL_ON_LEVELS:
        _fail(f"Unknown --fail-on level '{fail_on}', expected one of: {', '.join(FAIL_ON_LEVELS)}")

    probe_settings = _load_settings(settings).probe
    origin = origin or probe_settings.get("origin") or "https://example.com"
    method = (method or probe_settings.get("method") or "GET").upper()
    try:
        headers = dict(parse_header_args(request_header))
        cors_probe = CorsProbe(timeout=probe_settings.get("timeout", 10.0))
        result = asyncio.run(cors_probe.probe(url, origin, method, headers))
    except ValueError as e:
        _fail(str(e))
    except ProbeError as e:
        _fail(f"Probe failed: {e}")

    if format == "json":
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        console.print(
            Panel(
                f"{method} {url}\nOrigin: {origin}\n"
                f"Preflight: {result.preflight_status if result.preflight_sent else 'not needed'}\n"
                f"Status: {result.status_code}",
                title="🔍 CORS Probe",
                border_style="magenta",
            )
        )
        printer.print_diagnoses(result.diagnoses)

    if _exceeds_threshold(result.diagnoses, fail_on):
        raise typer.Exit(code=1)


@app.command()
def watch(
    url: str = typer.Argument(..., help="Page to open"),
    wait: float = typer.Option(5.0, "--wait", "-w", help="Seconds to keep listening after load"),
    verbose: bool = typer.Option(False, "--verbose", help="Print listener notices"),
):
    """Open a page in headless Chromium and explain the CORS errors it logs."""
    try:
        from playwright.async_api import async_playwright
    except ImportError:
        _fail("Playwright is not installed. Run: pip install 'cors-diagnoser[browser]' && playwright install")

    from cors_diagnoser.frontend.listener import BrowserListener

    listener = BrowserListener(verbose=verbose, printer=printer)

    async def _watch() -> None:
        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(headless=True)
            try:
                page = await browser.new_page()
                listener.start(page)
                await page.goto(url)
                await page.wait_for_timeout(wait * 1000)
            finally:
                listener.stop()
                await browser.close()

    try:
        asyncio.run(_watch())
    except Exception as e:
        logger.debug("watch failed", exc_info=True)
        _fail(f"Could not watch {url}: {e}")

    errors = listener.get_errors()
    if not errors:
        console.print("[green]✓ No CORS errors logged by the page.[/green]")
    else:
        console.print(f"[bold red]{len(errors)} CORS error(s) captured.[/bold red]")


if __name__ == "__main__":
    app()
