"""
Typed Exception Hierarchy for the Expense Report Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers must be able to tell a missing line item from a failed distance
lookup without parsing message strings. Every exception here:
  1. Is a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, UI-safe)
  3. Carries structured DATA as attributes

Collaborators (repositories, geocoders, file storage) raise these. The
editing service catches them at its boundary and hands the caller a
``Failure`` value instead (see ``expense_kernel.domain.results``), so an
editing session never crashes on any of them.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ExpenseKernelError (base)
    |
    +-- LineItemError
    |   +-- LineItemNotFoundError
    |   +-- DerivedFieldError
    |   +-- InvalidFieldError
    |
    +-- ProviderError
    |   +-- EndpointUnresolvedError
    |   +-- RouteNotFoundError
    |
    +-- PersistenceError
    |   +-- ReportNotFoundError
    |
    +-- SettingsError
    |   +-- InvalidSettingsError
    |   +-- AdminAuthorizationError
    |   +-- DuplicateProjectError
    |   +-- ProjectNotFoundError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Line item       | LINE_ITEM_NOT_FOUND         | Line item id absent from the report
                | DERIVED_FIELD               | Write to a field derived from rates
                | INVALID_FIELD               | Unknown field path or bad value
----------------|-----------------------------|-----------------------------------------
Provider        | PROVIDER_ERROR              | Distance lookup failed
                | ENDPOINT_UNRESOLVED         | From/to place has no selection
                | ROUTE_NOT_FOUND             | Provider returned no route
----------------|-----------------------------|-----------------------------------------
Persistence     | PERSISTENCE_ERROR           | Load/save collaborator failed
                | REPORT_NOT_FOUND            | No stored report for the id
----------------|-----------------------------|-----------------------------------------
Settings        | INVALID_SETTINGS            | Rate or project value out of range
                | ADMIN_AUTHORIZATION         | Settings edit without admin unlock
                | DUPLICATE_PROJECT           | Project name already present
                | PROJECT_NOT_FOUND           | Project name absent
----------------|-----------------------------|-----------------------------------------
Config          | CONFIGURATION_ERROR         | YAML configuration is malformed
"""


class ExpenseKernelError(Exception):
    """
    Base exception for all expense kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "EXPENSE_KERNEL_ERROR"


# Line item exceptions


class LineItemError(ExpenseKernelError):
    """Base exception for line item errors."""

    code: str = "LINE_ITEM_ERROR"


class LineItemNotFoundError(LineItemError):
    """Line item with the given id is not part of the report."""

    code: str = "LINE_ITEM_NOT_FOUND"

    def __init__(self, line_item_id: str, report_id: str | None = None):
        self.line_item_id = line_item_id
        self.report_id = report_id
        super().__init__(f"Line item not found: {line_item_id}")


class DerivedFieldError(LineItemError):
    """Field is computed from settings and cannot be written directly."""

    code: str = "DERIVED_FIELD"

    def __init__(self, field_path: str, category: str):
        self.field_path = field_path
        self.category = category
        super().__init__(
            f"Field '{field_path}' is derived for category {category}"
        )


class InvalidFieldError(LineItemError):
    """Field path is unknown or the value is not acceptable."""

    code: str = "INVALID_FIELD"

    def __init__(self, field_path: str, reason: str):
        self.field_path = field_path
        self.reason = reason
        super().__init__(f"Invalid field '{field_path}': {reason}")


# Provider exceptions


class ProviderError(ExpenseKernelError):
    """Geocoding or distance lookup failed."""

    code: str = "PROVIDER_ERROR"

    def __init__(self, message: str, origin: str | None = None, destination: str | None = None):
        self.origin = origin
        self.destination = destination
        super().__init__(message)


class EndpointUnresolvedError(ProviderError):
    """One or both trip endpoints have no autocomplete selection."""

    code: str = "ENDPOINT_UNRESOLVED"

    def __init__(self, missing: tuple[str, ...]):
        self.missing = missing
        super().__init__(f"Unresolved trip endpoint(s): {', '.join(missing)}")


class RouteNotFoundError(ProviderError):
    """Provider answered but returned no usable distance."""

    code: str = "ROUTE_NOT_FOUND"

    def __init__(self, origin: str, destination: str):
        super().__init__(
            f"No route between '{origin}' and '{destination}'",
            origin=origin,
            destination=destination,
        )


# Persistence exceptions


class PersistenceError(ExpenseKernelError):
    """Load or save through a persistence collaborator failed."""

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation} failed: {reason}")


class ReportNotFoundError(PersistenceError):
    """No stored report exists for the id."""

    code: str = "REPORT_NOT_FOUND"

    def __init__(self, report_id: str):
        self.report_id = report_id
        super().__init__("load_report", f"report {report_id} does not exist")


# Settings exceptions


class SettingsError(ExpenseKernelError):
    """Base exception for settings errors."""

    code: str = "SETTINGS_ERROR"


class InvalidSettingsError(SettingsError):
    """A settings value is out of its allowed range."""

    code: str = "INVALID_SETTINGS"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid setting '{field}': {reason}")


class AdminAuthorizationError(SettingsError):
    """Settings mutation attempted without an admin unlock."""

    code: str = "ADMIN_AUTHORIZATION"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Admin authorization required for {operation}")


class DuplicateProjectError(SettingsError):
    """Project names are unique within the settings."""

    code: str = "DUPLICATE_PROJECT"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Project already exists: {name}")


class ProjectNotFoundError(SettingsError):
    """Project name is not in the settings."""

    code: str = "PROJECT_NOT_FOUND"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Project not found: {name}")


# Configuration exceptions


class ConfigurationError(ExpenseKernelError):
    """Configuration file content is malformed."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid configuration in {source}: {reason}")
