import io

import pytest
from rich.console import Console

from cors_diagnoser.backend.history import ErrorHistory
from cors_diagnoser.reporting.console import DiagnosisPrinter


@pytest.fixture
def console_output():
    """StringIO that captures everything a test printer renders."""
    return io.StringIO()


@pytest.fixture
def printer(console_output):
    """Printer writing to a plain, wide, colourless buffer."""
    console = Console(file=console_output, force_terminal=False, color_system=None, width=200)
    return DiagnosisPrinter(console)


@pytest.fixture
def history():
    return ErrorHistory(max_size=5)


@pytest.fixture
def preflight_request():
    return {
        "Origin": "https://app.example.com",
        "Access-Control-Request-Method": "PUT",
        "Access-Control-Request-Headers": "x-custom",
    }
