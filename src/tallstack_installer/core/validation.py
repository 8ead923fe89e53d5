"""Structural validators for wizard input.

Each ``validate_*`` function returns ``None`` when the value is acceptable and
a human-readable explanation otherwise, so the wizard can re-prompt the one
field that failed.
"""

from __future__ import annotations

import ipaddress
import re

from tallstack_installer.core.constants import MIN_PASSWORD_LENGTH

PROJECT_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9-]{2,49}$")
HEX_COLOR_PATTERN = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")
DATABASE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
PANEL_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9-]*$")
EMAIL_PATTERN = re.compile(r"^[^@\s\\]+@[^@\s\\]+\.[^@\s\\]+$")
_HOSTNAME_LABEL = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")


def validate_project_name(value: str) -> str | None:
    if PROJECT_NAME_PATTERN.fullmatch(value):
        return None
    return (
        "Project name must start with a lowercase letter and contain only "
        "lowercase letters, numbers and hyphens (3-50 characters)"
    )


def validate_hex_color(value: str) -> str | None:
    if HEX_COLOR_PATTERN.fullmatch(value):
        return None
    return "Colour must be a hex value like #6366F1 or #63F"


def is_valid_database_name(value: str) -> bool:
    return bool(DATABASE_NAME_PATTERN.fullmatch(value))


def validate_database_name(value: str) -> str | None:
    if is_valid_database_name(value):
        return None
    return "Database name may only contain letters, numbers and underscores"


def validate_host(value: str) -> str | None:
    """Accept hostnames, IPv4 and IPv6 addresses."""
    candidate = value.strip()
    if not candidate:
        return "Host cannot be empty"
    try:
        ipaddress.ip_address(candidate.strip("[]"))
        return None
    except ValueError:
        pass
    if len(candidate) > 253:
        return "Host name is too long"
    labels = candidate.rstrip(".").split(".")
    if all(_HOSTNAME_LABEL.match(label) for label in labels):
        return None
    return f"'{value}' is not a valid hostname or IP address"


def validate_port(value: str) -> str | None:
    try:
        port = int(value)
    except (TypeError, ValueError):
        return "Port must be a number"
    if 1 <= port <= 65535:
        return None
    return "Port must be between 1 and 65535"


def validate_positive_int(value: str) -> str | None:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return "Please enter a whole number"
    if number < 0:
        return "Please enter zero or a positive number"
    return None


def validate_price(value: str) -> str | None:
    try:
        price = float(value)
    except (TypeError, ValueError):
        return "Price must be a number, e.g. 29 or 9.99"
    if price < 0:
        return "Price cannot be negative"
    return None


def validate_panel_name(value: str) -> str | None:
    if PANEL_NAME_PATTERN.fullmatch(value):
        return None
    return "Panel name must be lowercase letters, numbers and hyphens"


def validate_email(value: str) -> str | None:
    if EMAIL_PATTERN.fullmatch(value):
        return None
    return "Please enter a valid email address"


def validate_password(value: str) -> str | None:
    if len(value) >= MIN_PASSWORD_LENGTH:
        return None
    return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"


def validate_required(value: str) -> str | None:
    if value.strip():
        return None
    return "A value is required"


def format_app_name(project_name: str) -> str:
    """``my-saas-app`` -> ``My Saas App``."""
    return " ".join(word.capitalize() for word in project_name.replace("-", " ").split())


def default_database_name(project_name: str) -> str:
    return project_name.replace("-", "_")


def slugify_role(name: str) -> str:
    return re.sub(r"\s+", "_", name.strip().lower())


__all__ = [
    "PROJECT_NAME_PATTERN",
    "HEX_COLOR_PATTERN",
    "DATABASE_NAME_PATTERN",
    "validate_project_name",
    "validate_hex_color",
    "is_valid_database_name",
    "validate_database_name",
    "validate_host",
    "validate_port",
    "validate_positive_int",
    "validate_price",
    "validate_panel_name",
    "validate_email",
    "validate_password",
    "validate_required",
    "format_app_name",
    "default_database_name",
    "slugify_role",
]
