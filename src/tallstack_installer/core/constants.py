"""Choice tables and fixed values used across the wizard and installer."""

from __future__ import annotations

TOTAL_PHASES = 10

DEFAULT_DESCRIPTION = "A SaaS application built with Laravel TALL Stack"
DEFAULT_BRAND_COLOR = "#6366F1"

# Numeric menu keys map to stored values; anything else resolves to the default.
DATABASE_DRIVERS = {
    "1": ("mysql", "MySQL", "Most popular, great for most apps"),
    "2": ("pgsql", "PostgreSQL", "Advanced features, better for complex queries"),
    "3": ("sqlite", "SQLite", "Simple file-based, perfect for development"),
}
DEFAULT_DATABASE_DRIVER = "mysql"
DEFAULT_PORTS = {"mysql": 3306, "pgsql": 5432}
SQLITE_DATABASE_NAME = "database.sqlite"

AUTH_STRATEGIES = {
    "1": ("otp_only", "OTP Only", "Passwordless login with one-time codes"),
    "2": ("otp_socialite", "OTP + Social Login", "One-time codes plus social providers"),
    "3": ("password_socialite", "Password + Social Login", "Classic passwords plus social providers"),
}
DEFAULT_AUTH_STRATEGY = "otp_only"
SOCIAL_AUTH_STRATEGIES = frozenset({"otp_socialite", "password_socialite"})

SOCIAL_PROVIDERS = {
    "1": "google",
    "2": "github",
    "3": "facebook",
    "4": "twitter",
    "5": "linkedin",
    "6": "apple",
}
DEFAULT_SOCIAL_PROVIDERS = ["google", "github"]

PAYMENT_PROVIDERS = {
    "1": ("lemonsqueezy", "Lemon Squeezy", "Merchant of record, handles global tax"),
    "2": ("stripe", "Stripe", "Laravel Cashier integration"),
    "3": ("paypal", "PayPal", "Subscription API stubs"),
    "4": (None, "Skip", "Configure payments later"),
}

FILAMENT_RESOURCES = {
    "1": "users",
    "2": "teams",
    "3": "subscriptions",
}
FILAMENT_WIDGETS = {
    "1": "arr",
    "2": "mrr",
    "3": "users",
    "4": "signups",
}
DEFAULT_FILAMENT_PANEL = "admin"

TEAM_CREATION_PERMISSIONS = {
    "1": ("super_admin", "Super Admin only", "Only platform administrators create teams"),
    "2": ("team_admin", "Team Admins", "Team administrators may create new teams"),
    "3": ("all_users", "All users", "Every registered user may create teams"),
}
DEFAULT_TEAM_CREATION_PERMISSION = "team_admin"

LEGAL_PAGES = {
    "terms": "Terms of Service",
    "privacy": "Privacy Policy",
    "gdpr": "GDPR Compliance",
    "cookies": "Cookie Policy",
}

MAX_SUBSCRIPTION_PLANS = 5
DEFAULT_TRIAL_DAYS = 14

MIN_PASSWORD_LENGTH = 8

OTP_TEST_CODE = "123456"

# Base commands the installer may execute; argv[0] must be one of these.
ALLOWED_COMMANDS = frozenset({"composer", "php", "npm", "node", "git", "claude"})

CLAUDE_INSTALL_HINT = "npm install -g @anthropic-ai/claude-code"
