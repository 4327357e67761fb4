"""
Pytest fixtures for the expense report kernel test suite.

Provides:
- Structured logging configuration and log capture
- The default configuration and an editing session built from it
- In-memory collaborators and a scripted geocoder
"""

import json
import logging
import threading
from decimal import Decimal
from io import StringIO

import pytest

from expense_config import get_active_config
from expense_kernel.exceptions import ProviderError
from expense_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from expense_modules.report.config import EditingSession, settings_from_definition
from expense_modules.report.memory import (
    InMemoryFileStorage,
    InMemoryReportRepository,
    InMemorySettingsRepository,
    StaticUserDirectory,
)
from expense_modules.report.mileage import MileageCalculator
from expense_modules.report.service import ExpenseReportService

# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture expense_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, service):
            service.save_report(report)
            logs = captured_logs()
            assert any(r["message"] == "report_saved" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("expense_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Configuration fixtures
# =============================================================================


@pytest.fixture
def config():
    return get_active_config()


@pytest.fixture
def settings(config):
    """Settings seeded from the default configuration (rate 0.67; meals 12/15/20)."""
    return settings_from_definition(config.settings)


@pytest.fixture
def session(config, settings):
    return EditingSession.from_configuration(config, settings=settings)


# =============================================================================
# Collaborators
# =============================================================================


class FakeGeocoder:
    """
    Scripted geocoder.

    ``places`` maps a query to its normalized place; ``routes`` maps an
    (origin, destination) pair to meters. Every call is recorded.
    """

    def __init__(self, places=None, routes=None):
        self.places = dict(places or {})
        self.routes = dict(routes or {})
        self.resolve_calls: list[str] = []
        self.distance_calls: list[tuple[str, str]] = []
        self.failing = False
        self._lock = threading.Lock()

    def resolve_place(self, query):
        self.resolve_calls.append(query)
        return self.places.get(query)

    def distance_meters(self, origin, destination):
        with self._lock:
            self.distance_calls.append((origin, destination))
        if self.failing:
            raise ProviderError("distance service unavailable", origin, destination)
        return self.routes.get((origin, destination))


HOME = "12 Elm St, Springfield"
SITE = "400 River Rd, Shelbyville"
DEPOT = "9 Depot Ln, Capital City"


@pytest.fixture
def geocoder():
    return FakeGeocoder(
        places={"home": HOME, "site": SITE, "depot": DEPOT},
        routes={
            (HOME, SITE): Decimal("16093.4"),
            (HOME, DEPOT): Decimal("32186.8"),
            (SITE, DEPOT): Decimal("8046.7"),
        },
    )


@pytest.fixture
def calculator(geocoder):
    return MileageCalculator(geocoder)


@pytest.fixture
def report_repository():
    return InMemoryReportRepository()


@pytest.fixture
def settings_repository(settings):
    return InMemorySettingsRepository(settings)


@pytest.fixture
def user_directory():
    return StaticUserDirectory(["Riley Chen", "Alex Moreno", "Sam Patel"])


@pytest.fixture
def file_storage():
    return InMemoryFileStorage()


@pytest.fixture
def service(report_repository, user_directory, file_storage, calculator, session):
    return ExpenseReportService(
        reports=report_repository,
        users=user_directory,
        files=file_storage,
        mileage=calculator,
        session=session,
    )
