"""The ten wizard phases.

Each handler receives the running :class:`InstallerWizard` and records its
answers in ``wizard.config``. Handlers only ask and validate; nothing touches
the target project until the installation steps run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from tallstack_installer.core.constants import (
    AUTH_STRATEGIES,
    CLAUDE_INSTALL_HINT,
    DATABASE_DRIVERS,
    DEFAULT_AUTH_STRATEGY,
    DEFAULT_BRAND_COLOR,
    DEFAULT_DATABASE_DRIVER,
    DEFAULT_DESCRIPTION,
    DEFAULT_FILAMENT_PANEL,
    DEFAULT_PORTS,
    DEFAULT_SOCIAL_PROVIDERS,
    DEFAULT_TEAM_CREATION_PERMISSION,
    DEFAULT_TRIAL_DAYS,
    FILAMENT_RESOURCES,
    FILAMENT_WIDGETS,
    LEGAL_PAGES,
    MAX_SUBSCRIPTION_PLANS,
    PAYMENT_PROVIDERS,
    SOCIAL_AUTH_STRATEGIES,
    SOCIAL_PROVIDERS,
    SQLITE_DATABASE_NAME,
    TEAM_CREATION_PERMISSIONS,
)
from tallstack_installer.core.validation import (
    default_database_name,
    format_app_name,
    slugify_role,
    validate_database_name,
    validate_email,
    validate_hex_color,
    validate_host,
    validate_panel_name,
    validate_password,
    validate_port,
    validate_positive_int,
    validate_price,
    validate_project_name,
    validate_required,
)
from tallstack_installer.database.probe import DatabaseSettings, normalize_error
from tallstack_installer.exceptions import (
    DirectoryConflictError,
    GenerationError,
    InstallationAborted,
    InvalidDatabaseName,
)
from tallstack_installer.generation.backends import select_backend
from tallstack_installer.generation.coordinator import GenerationCoordinator
from tallstack_installer.generation.prompts import GenerationRequest
from tallstack_installer.installer.project_dir import RESOLUTION_CHOICES, ConflictResolution

if TYPE_CHECKING:
    from tallstack_installer.wizard.orchestrator import InstallerWizard

logger = logging.getLogger(__name__)


@dataclass
class Phase:
    number: int
    title: str
    icon: str
    handler: Callable[["InstallerWizard"], None]
    required: bool = True
    condition: Callable[["InstallerWizard"], bool] | None = None
    # values recorded when the condition skips the phase
    skip_values: dict[str, Any] = field(default_factory=dict)
    skip_reason: str = ""


def _menu(choices: dict[str, tuple]) -> dict[str, str]:
    return {key: f"{label} [dim]- {description}[/dim]" for key, (_value, label, description) in choices.items()}


def _resolve(choices: dict[str, tuple], key: str, default: Any) -> Any:
    entry = choices.get(key)
    return entry[0] if entry else default


# -- phase 0 ----------------------------------------------------------------


def verify_ai_tooling(wizard: "InstallerWizard") -> None:
    ui, config = wizard.ui, wizard.config

    with ui.spinner("Checking for Claude Code CLI..."):
        installed = wizard.detect_claude()
    if installed:
        ui.success("Claude Code CLI found")
    else:
        ui.warning("Claude Code CLI not found")
        ui.info_box(
            "Install Claude Code",
            [
                f"[cyan]{CLAUDE_INSTALL_HINT}[/cyan]",
                "",
                "The CLI writes the AI landing page. Without it the installer",
                "falls back to the Anthropic API key or a static template.",
            ],
            style="yellow",
        )
        if not ui.confirm("Continue without Claude Code CLI?", default=True):
            raise InstallationAborted("Installation cancelled", exit_code=0)
    config.set("claude_code_installed", installed)

    api_key = ""
    stored = wizard.secrets.get("anthropic_api_key")
    if stored and ui.confirm("Use the stored Anthropic API key?", default=True):
        api_key = stored
    else:
        api_key = ui.prompt_password(
            "Anthropic API key",
            hint="Starts with sk-ant-. Leave empty to rely on the Claude Code CLI.",
        )

    if not api_key and not installed:
        raise InstallationAborted(
            "An Anthropic API key is required when Claude Code CLI is not installed",
            causes=["No API key was entered", "Claude Code CLI is missing"],
            actions=[f"Install the CLI with: {CLAUDE_INSTALL_HINT}", "Create a key at https://console.anthropic.com"],
        )
    if api_key and not api_key.startswith("sk-ant-"):
        ui.warning("API key does not start with 'sk-ant-'; double-check it was copied correctly")
    if api_key and api_key != stored:
        wizard.secrets.set("anthropic_api_key", api_key)
        ui.success(f"API key stored in {wizard.secrets.path}")

    config.set("anthropic_api_key", api_key)
    backend = select_backend(installed, api_key)
    config.set("ai_backend", backend)
    wizard.coordinator = GenerationCoordinator(api_key=api_key or None, **wizard.coordinator_options)


# -- phase 1 ----------------------------------------------------------------


def configure_project(wizard: "InstallerWizard") -> None:
    ui, config = wizard.ui, wizard.config

    name = ui.prompt_validated(
        "Project name",
        validate_project_name,
        hint="Lowercase letters, numbers and hyphens, e.g. my-saas-app",
    )
    config.set("project_name", name)
    config.set("app_name", format_app_name(name))
    config.set("description", ui.prompt("Short description", default=DEFAULT_DESCRIPTION))
    config.set(
        "brand_color",
        ui.prompt_validated("Primary brand colour", validate_hex_color, default=DEFAULT_BRAND_COLOR),
    )

    project_path = wizard.cwd / name
    config.set("project_path", str(project_path))
    if not project_path.exists():
        return

    if not wizard.clean:
        raise DirectoryConflictError(project_path)

    ui.warning(f"Directory {project_path} already exists")
    choice = ui.select(
        "What should happen to the existing directory?",
        {"1": "Back it up and start fresh", "2": "Delete it permanently", "3": "Abort"},
        default="3",
    )
    resolution = RESOLUTION_CHOICES[choice]
    if resolution is ConflictResolution.DELETE and not ui.confirm(
        f"Really delete {project_path}? This cannot be undone", default=False
    ):
        resolution = ConflictResolution.ABORT
    if resolution is ConflictResolution.ABORT:
        raise InstallationAborted(f"Installation aborted: '{project_path}' was left untouched")
    config.set("directory_resolution", resolution.value)


# -- phase 2 ----------------------------------------------------------------


def _collect_plans(wizard: "InstallerWizard") -> list[dict[str, str]]:
    ui = wizard.ui
    plans: list[dict[str, str]] = []
    while True:
        number = len(plans) + 1
        ui.section(f"Plan {number}", "💳")
        plans.append(
            {
                "name": ui.prompt_validated("Plan name", validate_required, default="Starter" if number == 1 else None),
                "price": ui.prompt_validated("Monthly price (USD)", validate_price, default="29"),
                "description": ui.prompt("Plan description", default="Perfect for getting started"),
            }
        )
        if len(plans) >= MAX_SUBSCRIPTION_PLANS:
            ui.info(f"Maximum of {MAX_SUBSCRIPTION_PLANS} plans reached")
            return plans
        if not ui.confirm("Add another plan?", default=len(plans) < 3):
            return plans


def configure_landing_page(wizard: "InstallerWizard") -> None:
    ui, config = wizard.ui, wizard.config

    landing = ui.confirm("Generate an AI landing page?", default=True)
    config.set("landing_page", landing)
    if landing:
        description = ui.prompt_multiline(
            "Describe your product for the landing page",
            hint="What does it do, who is it for? Press Enter twice to finish.",
        )
        config.set("app_description", description or config.get("description", ""))

    has_subscriptions = ui.confirm("Will the app sell subscriptions?", default=True)
    config.set("has_subscriptions", has_subscriptions)
    if has_subscriptions:
        config.set("subscription_plans", _collect_plans(wizard))
        trial = ui.prompt_validated("Free trial days", validate_positive_int, default=str(DEFAULT_TRIAL_DAYS))
        config.set("trial_days", int(trial))
        config.add_feature(f"Subscriptions ({len(config.get('subscription_plans'))} plans)")
    else:
        config.set("subscription_plans", [])
        config.set("trial_days", 0)

    if not landing:
        return
    backend = config.get("ai_backend")
    if backend is None or wizard.coordinator is None:
        ui.warning("No AI backend available; the default landing page template will be used")
        config.add_feature("Landing page (template)")
        return

    request = GenerationRequest(
        app_name=config.require("app_name"),
        description=config.get("app_description", ""),
        brand_color=config.require("brand_color"),
        has_subscriptions=has_subscriptions,
        subscription_plans=config.get("subscription_plans"),
        trial_days=config.get("trial_days"),
        model=wizard.preferences.ai_model,
        max_tokens=wizard.preferences.ai_max_tokens,
        backend=backend,
    )
    try:
        wizard.coordinator.start(request)
    except (GenerationError, OSError) as exc:
        ui.warning(f"Could not start background generation: {exc}")
    else:
        ui.success("Landing page generation started in the background")
    config.add_feature("AI landing page")


# -- phase 3 ----------------------------------------------------------------


def _collect_database_credentials(wizard: "InstallerWizard", driver: str, reenter: bool) -> None:
    ui, config = wizard.ui, wizard.config
    default_user = "postgres" if driver == "pgsql" else "root"
    config.set(
        "database_host",
        ui.prompt_validated("Database host", validate_host, default=config.get("database_host", "127.0.0.1")),
        reenter=reenter,
    )
    config.set(
        "database_port",
        int(
            ui.prompt_validated(
                "Database port", validate_port, default=str(config.get("database_port", DEFAULT_PORTS[driver]))
            )
        ),
        reenter=reenter,
    )
    config.set(
        "database_name",
        ui.prompt_validated(
            "Database name",
            validate_database_name,
            default=config.get("database_name", default_database_name(config.require("project_name"))),
        ),
        reenter=reenter,
    )
    config.set(
        "database_username",
        ui.prompt("Database username", default=config.get("database_username", default_user)),
        reenter=reenter,
    )
    config.set("database_password", ui.prompt_password("Database password"), reenter=reenter)


def configure_database(wizard: "InstallerWizard") -> None:
    ui, config = wizard.ui, wizard.config

    key = ui.select("Database engine", _menu(DATABASE_DRIVERS), default="1", recommended="1")
    driver = _resolve(DATABASE_DRIVERS, key, DEFAULT_DATABASE_DRIVER)
    config.set("database_driver", driver)
    if driver == "sqlite":
        config.set("database_name", SQLITE_DATABASE_NAME)
        config.set("database_validated", True)
        config.add_feature("SQLite database")
        return

    create = ui.confirm("Create the database if it does not exist?", default=True)
    config.set("create_database", create)

    max_attempts = max(1, wizard.preferences.db_max_attempts)
    attempt = 0
    while True:
        attempt += 1
        _collect_database_credentials(wizard, driver, reenter=attempt > 1)
        settings = DatabaseSettings.from_config(config)
        with ui.spinner("Testing database connection..."):
            result = wizard.probe.probe(settings)

        if result.connected and result.error is None:
            ui.success(f"Connected to {driver} at {settings.host}:{settings.port}")
            exists = result.schema_exists
            if exists:
                ui.info(f"Database '{settings.name}' already exists and will be reused")
            elif create:
                try:
                    wizard.probe.create_database(settings)
                except InvalidDatabaseName:
                    raise
                except Exception as exc:
                    ui.warning(f"Could not create database: {normalize_error(exc, settings)}")
                else:
                    ui.success(f"Created database '{settings.name}'")
                    exists = True
            else:
                ui.warning(f"Database '{settings.name}' does not exist; create it before migrations run")
            config.set("database_validated", True)
            config.set("database_exists", exists)
            config.add_feature(f"{'PostgreSQL' if driver == 'pgsql' else 'MySQL'} database")
            return

        ui.error(result.error or "Connection failed")
        if attempt >= max_attempts:
            break
        ui.info(f"Please re-enter the database credentials (attempt {attempt + 1} of {max_attempts})")

    choice = ui.select(
        "The database connection could not be verified",
        {"1": "Continue with these settings anyway", "2": "Abort installation"},
        default="2",
    )
    if choice != "1":
        raise InstallationAborted(
            "Database connection could not be verified",
            causes=[result.error or "Connection failed"],
            actions=["Start the database server and check the credentials", "Choose SQLite for local development"],
        )
    ui.warning("Continuing with unverified database settings; migrations may fail")
    config.set("database_validated", False)
    config.set("database_exists", False)


# -- phase 4 ----------------------------------------------------------------


def configure_authentication(wizard: "InstallerWizard") -> None:
    ui, config = wizard.ui, wizard.config

    key = ui.select("Authentication strategy", _menu(AUTH_STRATEGIES), default="1", recommended="1")
    strategy = _resolve(AUTH_STRATEGIES, key, DEFAULT_AUTH_STRATEGY)
    config.set("auth_strategy", strategy)

    providers: list[str] = []
    if strategy in SOCIAL_AUTH_STRATEGIES:
        keys = ui.multi_select("Social login providers", SOCIAL_PROVIDERS, default=["1", "2"])
        providers = [SOCIAL_PROVIDERS[k] for k in keys] or list(DEFAULT_SOCIAL_PROVIDERS)
        config.add_feature(f"Social login ({', '.join(providers)})")
    config.set("social_providers", providers)
    if strategy != "password_socialite":
        config.add_feature("Passwordless OTP login")


# -- phase 5 ----------------------------------------------------------------


def configure_payments(wizard: "InstallerWizard") -> None:
    ui, config = wizard.ui, wizard.config
    key = ui.select("Payment provider", _menu(PAYMENT_PROVIDERS), default="1", recommended="1")
    provider = _resolve(PAYMENT_PROVIDERS, key, None)
    config.set("payment_provider", provider)
    if provider:
        config.add_feature(f"Payments via {PAYMENT_PROVIDERS[key][1]}")


# -- phase 6 ----------------------------------------------------------------


def configure_filament(wizard: "InstallerWizard") -> None:
    ui, config = wizard.ui, wizard.config
    if not ui.confirm("Install the Filament admin panel?", default=True):
        config.set("filament", False)
        return

    config.set("filament", True)
    panel = ui.prompt_validated("Admin panel name", validate_panel_name, default=DEFAULT_FILAMENT_PANEL)
    config.set("filament_panel_name", panel)
    resources = ui.multi_select("Admin resources", FILAMENT_RESOURCES, default=["1", "2"])
    config.set("filament_resources", [FILAMENT_RESOURCES[k] for k in resources])
    widgets = ui.multi_select("Dashboard widgets", FILAMENT_WIDGETS, default=["1", "2", "3", "4"])
    config.set("filament_widgets", [FILAMENT_WIDGETS[k] for k in widgets])
    config.add_feature(f"Filament admin panel (/{panel})")


# -- phase 7 ----------------------------------------------------------------


def configure_roles(wizard: "InstallerWizard") -> None:
    ui, config = wizard.ui, wizard.config
    key = ui.select("Who may create teams?", _menu(TEAM_CREATION_PERMISSIONS), default="2", recommended="2")
    config.set("team_creation_permission", _resolve(TEAM_CREATION_PERMISSIONS, key, DEFAULT_TEAM_CREATION_PERMISSION))

    roles: list[dict[str, Any]] = []
    if ui.confirm("Add custom roles?", default=False):
        while True:
            name = ui.prompt_validated("Role name", validate_required)
            roles.append(
                {
                    "name": name,
                    "slug": slugify_role(name),
                    "description": ui.prompt("Role description", default=f"Custom role for {name}"),
                    "can_create_teams": ui.confirm("Can this role create teams?", default=False),
                }
            )
            if not ui.confirm("Add another role?", default=False):
                break
    config.set("custom_roles", roles)
    config.add_feature("Roles & permissions (Spatie)")


# -- phase 8 ----------------------------------------------------------------


def configure_infrastructure(wizard: "InstallerWizard") -> None:
    ui, config = wizard.ui, wizard.config
    secrets: dict[str, str] = {}

    cloudflare = None
    if ui.confirm("Configure CloudFlare?", default=False):
        cloudflare = {
            "api_token": ui.prompt_password("CloudFlare API token"),
            "zone_id": ui.prompt("CloudFlare zone ID"),
        }
        secrets["cloudflare_api_token"] = cloudflare["api_token"]
        config.add_feature("CloudFlare")
    config.set("cloudflare", cloudflare)

    mailgun = None
    if ui.confirm("Configure Mailgun?", default=False):
        mailgun = {
            "api_key": ui.prompt_password("Mailgun API key"),
            "domain": ui.prompt("Mailgun domain"),
        }
        secrets["mailgun_api_key"] = mailgun["api_key"]
        config.add_feature("Mailgun")
    config.set("mailgun", mailgun)

    forge = None
    if ui.confirm("Configure Laravel Forge?", default=False):
        forge = {
            "api_token": ui.prompt_password("Forge API token"),
            "server_id": ui.prompt("Forge server ID"),
        }
        secrets["forge_api_token"] = forge["api_token"]
        config.add_feature("Laravel Forge")
    config.set("forge", forge)

    stored = {key: value for key, value in secrets.items() if value}
    if stored:
        wizard.secrets.set_many(stored)
        ui.success(f"Stored {len(stored)} credential(s) in {wizard.secrets.path}")


# -- phase 9 ----------------------------------------------------------------


def configure_legal_and_admin(wizard: "InstallerWizard") -> None:
    ui, config = wizard.ui, wizard.config

    pages = [page for page, title in LEGAL_PAGES.items() if ui.confirm(f"Generate {title} page?", default=True)]
    config.set("legal_pages", pages)
    config.set("cookie_banner", "cookies" in pages)
    if pages:
        config.add_feature(f"Legal pages ({', '.join(pages)})")

    todo = ui.confirm("Install the internal todo system?", default=True)
    config.set("todo_system", todo)
    if todo:
        config.add_feature("Todo system")

    ui.section("Super admin account", "👑")
    project_name = config.require("project_name")
    name = ui.prompt("Name", default="Admin")
    email = ui.prompt_validated("Email", validate_email, default=f"admin@{project_name.replace('-', '')}.test")
    while True:
        password = ui.prompt_password("Password", hint="At least 8 characters")
        problem = validate_password(password)
        if problem is None:
            break
        ui.error(problem)
    config.set("super_admin", {"name": name, "email": email, "password": password})
    wizard.process_env["SUPER_ADMIN_PASSWORD"] = password


def build_phases() -> list[Phase]:
    return [
        Phase(0, "AI Tooling", "🤖", verify_ai_tooling),
        Phase(1, "Project Configuration", "📦", configure_project),
        Phase(2, "AI Landing Page", "🎨", configure_landing_page, required=False),
        Phase(3, "Database", "🗄️", configure_database),
        Phase(4, "Authentication", "🔐", configure_authentication),
        Phase(
            5,
            "Payments",
            "💳",
            configure_payments,
            required=False,
            condition=lambda wizard: bool(wizard.config.get("has_subscriptions")),
            skip_values={"payment_provider": None},
            skip_reason="no subscriptions planned",
        ),
        Phase(6, "Filament Admin", "🛠️", configure_filament, required=False),
        Phase(7, "Roles & Permissions", "👥", configure_roles),
        Phase(8, "Infrastructure", "☁️", configure_infrastructure, required=False),
        Phase(9, "Legal & Finalize", "📜", configure_legal_and_admin),
    ]


__all__ = ["Phase", "build_phases"]
