"""Installation step operations and the ordered step list.

Every operation takes an :class:`InstallContext`, performs one unit of work on
the target project and returns a short detail string for the summary. Steps
for features the operator did not select return ``"not selected"`` without
touching the project.
"""

from __future__ import annotations

import html
import json
import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Sequence

from tallstack_installer.core.constants import (
    LEGAL_PAGES,
    OTP_TEST_CODE,
    SOCIAL_AUTH_STRATEGIES,
)
from tallstack_installer.core.env_file import update_env_file
from tallstack_installer.generation.prompts import GenerationRequest
from tallstack_installer.installer.project_dir import prepare_project_directory
from tallstack_installer.installer.steps import InstallContext, InstallStep
from tallstack_installer.installer.templates import escape_php_single_quoted, write_stub

logger = logging.getLogger(__name__)

NOT_SELECTED = "not selected"

FILAMENT_RESOURCE_MODELS = {
    "users": "User",
    "teams": "Team",
    "subscriptions": "Subscription",
}
FILAMENT_WIDGET_CLASSES = {
    "arr": "ArrStatsOverview",
    "mrr": "MrrStatsOverview",
    "users": "UserStatsOverview",
    "signups": "SignupStatsOverview",
}

PAYMENT_PACKAGES = {
    "stripe": "laravel/cashier",
    "lemonsqueezy": "lemonsqueezy/laravel",
}
PAYMENT_ENV = {
    "stripe": {"STRIPE_KEY": "", "STRIPE_SECRET": "", "STRIPE_WEBHOOK_SECRET": "", "CASHIER_CURRENCY": "usd"},
    "lemonsqueezy": {"LEMON_SQUEEZY_API_KEY": "", "LEMON_SQUEEZY_STORE": "", "LEMON_SQUEEZY_SIGNING_SECRET": ""},
    "paypal": {"PAYPAL_CLIENT_ID": "", "PAYPAL_CLIENT_SECRET": "", "PAYPAL_MODE": "sandbox"},
}


def _env_path(ctx: InstallContext) -> Path:
    return ctx.project_path / ".env"


def _artisan(ctx: InstallContext, *args: str, env: dict[str, str] | None = None) -> None:
    ctx.runner.run(["php", "artisan", *args], cwd=ctx.project_path, env=env)


def _composer_require(ctx: InstallContext, *packages: str) -> None:
    ctx.runner.run(["composer", "require", *packages, "--no-interaction"], cwd=ctx.project_path)


def _patch_user_model(
    project_path: Path,
    traits: Sequence[str] = (),
    implements: str | None = None,
    methods: Sequence[str] = (),
) -> bool:
    """Add traits, an interface and methods to ``app/Models/User.php``."""
    user_model = project_path / "app" / "Models" / "User.php"
    if not user_model.exists():
        logger.warning("User model not found at %s", user_model)
        return False

    source = user_model.read_text(encoding="utf-8")
    original = source
    class_line = re.search(r"^class User extends [^\n{]+", source, re.MULTILINE)
    if class_line is None:
        logger.warning("Could not locate the User class declaration")
        return False

    if implements and implements not in class_line.group(0):
        declaration = class_line.group(0).rstrip()
        joiner = ", " if " implements " in declaration else " implements "
        source = source.replace(class_line.group(0), f"{declaration}{joiner}{implements}", 1)

    missing_traits = [trait for trait in traits if trait not in source]
    if missing_traits:
        trait_lines = "".join(f"    use {trait};\n" for trait in missing_traits)
        source = re.sub(r"(^class User extends [^{]+\{\n)", lambda m: m.group(1) + trait_lines, source, count=1, flags=re.MULTILINE)

    for method in methods:
        signature = method.strip().splitlines()[0]
        if signature not in source:
            closing = source.rstrip().rfind("}")
            source = source[:closing].rstrip() + "\n\n" + method.rstrip() + "\n}\n"

    if source != original:
        user_model.write_text(source, encoding="utf-8")
    return source != original


def create_project_directory(ctx: InstallContext) -> str:
    return prepare_project_directory(ctx.project_path, ctx.config.get("directory_resolution"))


def install_laravel(ctx: InstallContext) -> str:
    ctx.runner.run(
        [
            "composer",
            "create-project",
            "laravel/laravel",
            str(ctx.project_path),
            "--prefer-dist",
            "--no-interaction",
        ],
        cwd=ctx.project_path.parent,
    )
    return "laravel/laravel"


def install_jetstream(ctx: InstallContext) -> str:
    _composer_require(ctx, "laravel/jetstream")
    _artisan(ctx, "jetstream:install", "livewire", "--teams", "--no-interaction")
    return "livewire + teams"


def configure_database(ctx: InstallContext) -> str:
    config = ctx.config
    driver = config.require("database_driver")
    if driver == "sqlite":
        database_file = ctx.project_path / "database" / "database.sqlite"
        database_file.parent.mkdir(parents=True, exist_ok=True)
        database_file.touch(exist_ok=True)
        update_env_file(_env_path(ctx), {"DB_CONNECTION": "sqlite"})
        return "sqlite"

    update_env_file(
        _env_path(ctx),
        {
            "DB_CONNECTION": driver,
            "DB_HOST": config.require("database_host"),
            "DB_PORT": config.require("database_port"),
            "DB_DATABASE": config.require("database_name"),
            "DB_USERNAME": config.require("database_username"),
            "DB_PASSWORD": config.get("database_password", ""),
        },
    )
    if not config.get("database_validated", False):
        return f"{driver} (connection not verified)"
    return driver


def setup_authentication(ctx: InstallContext) -> str:
    strategy = ctx.config.require("auth_strategy")
    values: dict[str, object] = {
        "AUTH_STRATEGY": strategy,
        "OTP_ENABLED": strategy != "password_socialite",
        "OTP_LENGTH": 6,
        "OTP_EXPIRES_IN": 10,
        "OTP_PREFILL_LOCAL": True,
        "OTP_DEFAULT_CODE": OTP_TEST_CODE,
    }
    providers: list[str] = ctx.config.get("social_providers") or []
    if strategy in SOCIAL_AUTH_STRATEGIES and providers:
        _composer_require(ctx, "laravel/socialite")
        values["SOCIAL_PROVIDERS"] = ",".join(providers)
        for provider in providers:
            prefix = provider.upper()
            values[f"{prefix}_CLIENT_ID"] = ""
            values[f"{prefix}_CLIENT_SECRET"] = ""
            values[f"{prefix}_REDIRECT_URI"] = f"${{APP_URL}}/auth/{provider}/callback"
    update_env_file(_env_path(ctx), values)
    if strategy in SOCIAL_AUTH_STRATEGIES and providers:
        return f"{strategy} ({', '.join(providers)})"
    return strategy


def install_payment_provider(ctx: InstallContext) -> str:
    provider = ctx.config.get("payment_provider")
    if not provider:
        return NOT_SELECTED

    package = PAYMENT_PACKAGES.get(provider)
    if package:
        _composer_require(ctx, package)

    values: dict[str, object] = dict(PAYMENT_ENV.get(provider, {}))
    values["PAYMENT_PROVIDER"] = provider
    values["SUBSCRIPTION_TRIAL_DAYS"] = ctx.config.get("trial_days", 0)
    update_env_file(_env_path(ctx), values)
    return provider


def install_filament(ctx: InstallContext) -> str:
    if not ctx.config.get("filament"):
        return NOT_SELECTED

    panel = ctx.config.get("filament_panel_name", "admin")
    _composer_require(ctx, "filament/filament:^5.0", "-W")
    _artisan(ctx, "filament:install", "--panels", "--no-interaction")

    created = []
    for resource in ctx.config.get("filament_resources") or []:
        model = FILAMENT_RESOURCE_MODELS.get(resource)
        if model and (ctx.project_path / "app" / "Models" / f"{model}.php").exists():
            _artisan(ctx, "make:filament-resource", model, "--generate", f"--panel={panel}", "--no-interaction")
            created.append(resource)
        else:
            logger.info("Skipping Filament resource %s: model not present", resource)

    for widget in ctx.config.get("filament_widgets") or []:
        widget_class = FILAMENT_WIDGET_CLASSES.get(widget)
        if widget_class:
            _artisan(ctx, "make:filament-widget", widget_class, "--stats-overview", f"--panel={panel}", "--no-interaction")

    write_stub(
        "filament/AdminPanelAccess.php.stub",
        ctx.project_path / "app" / "Policies" / "AdminPanelAccess.php",
        {"PANEL_ID": escape_php_single_quoted(panel)},
        stub_root=ctx.stub_root,
    )
    _patch_user_model(
        ctx.project_path,
        implements="\\Filament\\Models\\Contracts\\FilamentUser",
        methods=[
            "    public function canAccessPanel(\\Filament\\Panel $panel): bool\n"
            "    {\n"
            "        return \\App\\Policies\\AdminPanelAccess::allows($this, $panel);\n"
            "    }\n"
        ],
    )
    return f"panel '{panel}', resources: {', '.join(created) or 'none'}"


def configure_roles(ctx: InstallContext) -> str:
    _composer_require(ctx, "spatie/laravel-permission")
    _artisan(ctx, "vendor:publish", "--provider=Spatie\\Permission\\PermissionServiceProvider", "--no-interaction")

    permission = ctx.config.get("team_creation_permission", "team_admin")
    custom_roles = ctx.config.get("custom_roles") or []
    write_stub(
        "spatie/permission-teams.php.stub",
        ctx.project_path / "config" / "permission-teams.php",
        {
            "TEAM_CREATION_PERMISSION": escape_php_single_quoted(permission),
            "TEAM_ADMIN_CAN_CREATE_TEAMS": "false" if permission == "super_admin" else "true",
            "CUSTOM_ROLES": json.dumps(custom_roles, indent=4),
        },
        stub_root=ctx.stub_root,
    )
    write_stub(
        "spatie/SpatieRolesSeeder.php.stub",
        ctx.project_path / "database" / "seeders" / "SpatieRolesSeeder.php",
        stub_root=ctx.stub_root,
    )
    write_stub(
        "spatie/HasTeamRoles.php.stub",
        ctx.project_path / "app" / "Concerns" / "HasTeamRoles.php",
        stub_root=ctx.stub_root,
    )
    _patch_user_model(
        ctx.project_path,
        traits=["\\Spatie\\Permission\\Traits\\HasRoles", "\\App\\Concerns\\HasTeamRoles"],
    )
    return f"{permission}, {len(custom_roles)} custom role(s)"


def apply_branding(ctx: InstallContext) -> str:
    color = ctx.config.require("brand_color")
    update_env_file(
        _env_path(ctx),
        {"APP_NAME": ctx.config.require("app_name"), "BRAND_PRIMARY_COLOR": color},
    )
    css_dir = ctx.project_path / "resources" / "css"
    write_stub("branding/brand.css.stub", css_dir / "brand.css", {"BRAND_COLOR": color}, stub_root=ctx.stub_root)

    app_css = css_dir / "app.css"
    import_line = "@import './brand.css';"
    if app_css.exists():
        content = app_css.read_text(encoding="utf-8")
        if import_line not in content:
            lines = content.splitlines(keepends=True)
            # keep framework @imports first; CSS requires imports before other rules
            insert_at = 0
            for index, line in enumerate(lines):
                if line.lstrip().startswith("@import"):
                    insert_at = index + 1
            lines.insert(insert_at, import_line + "\n")
            app_css.write_text("".join(lines), encoding="utf-8")
    return color


def configure_integrations(ctx: InstallContext) -> str:
    values: dict[str, object] = {}
    configured = []
    cloudflare = ctx.config.get("cloudflare")
    if cloudflare:
        values["CLOUDFLARE_API_TOKEN"] = cloudflare.get("api_token", "")
        values["CLOUDFLARE_ZONE_ID"] = cloudflare.get("zone_id", "")
        configured.append("cloudflare")
    mailgun = ctx.config.get("mailgun")
    if mailgun:
        values["MAIL_MAILER"] = "mailgun"
        values["MAILGUN_DOMAIN"] = mailgun.get("domain", "")
        values["MAILGUN_SECRET"] = mailgun.get("api_key", "")
        configured.append("mailgun")
    else:
        values["MAIL_MAILER"] = "log"
    forge = ctx.config.get("forge")
    if forge:
        values["FORGE_API_TOKEN"] = forge.get("api_token", "")
        values["FORGE_SERVER_ID"] = forge.get("server_id", "")
        configured.append("forge")

    env_path = _env_path(ctx)
    update_env_file(env_path, values)
    if configured and env_path.exists():
        env_path.chmod(0o600)
    return ", ".join(configured) or "mail: log driver"


def generate_legal_pages(ctx: InstallContext) -> str:
    pages: list[str] = ctx.config.get("legal_pages") or []
    if not pages:
        return NOT_SELECTED

    app_name = ctx.config.require("app_name")
    today = date.today().strftime("%B %d, %Y")
    views = ctx.project_path / "resources" / "views"
    for page in pages:
        write_stub(
            "legal/page.blade.stub",
            views / "legal" / f"{page}.blade.php",
            {"APP_NAME": app_name, "PAGE_TITLE": LEGAL_PAGES[page], "CURRENT_DATE": today},
            stub_root=ctx.stub_root,
        )

    routes_file = ctx.project_path / "routes" / "web.php"
    if routes_file.exists():
        routes = routes_file.read_text(encoding="utf-8")
        additions = [
            f"Route::view('/{page}', 'legal.{page}')->name('{page}');"
            for page in pages
            if f"'legal.{page}'" not in routes
        ]
        if additions:
            routes = routes.rstrip("\n") + "\n\n" + "\n".join(additions) + "\n"
            routes_file.write_text(routes, encoding="utf-8")

    if ctx.config.get("cookie_banner"):
        write_stub(
            "legal/cookie-consent.blade.stub",
            views / "components" / "cookie-consent.blade.php",
            {"APP_NAME": app_name},
            stub_root=ctx.stub_root,
        )
    return ", ".join(pages)


def setup_todo_system(ctx: InstallContext) -> str:
    if not ctx.config.get("todo_system"):
        return NOT_SELECTED
    stamp = datetime.now().strftime("%Y_%m_%d_%H%M%S")
    write_stub("todo/Todo.php.stub", ctx.project_path / "app" / "Models" / "Todo.php", stub_root=ctx.stub_root)
    write_stub(
        "todo/create_todos_table.php.stub",
        ctx.project_path / "database" / "migrations" / f"{stamp}_create_todos_table.php",
        stub_root=ctx.stub_root,
    )
    return "model + migration"


def landing_request(ctx: InstallContext) -> GenerationRequest:
    config = ctx.config
    return GenerationRequest(
        app_name=config.require("app_name"),
        description=config.get("app_description") or config.get("description", ""),
        brand_color=config.require("brand_color"),
        has_subscriptions=bool(config.get("has_subscriptions")),
        subscription_plans=config.get("subscription_plans") or [],
        trial_days=int(config.get("trial_days") or 0),
        auth_strategy=config.get("auth_strategy", "otp_only"),
        model=ctx.preferences.ai_model,
        max_tokens=ctx.preferences.ai_max_tokens,
        backend=config.get("ai_backend") or "cli",
    )


def apply_landing_page(ctx: InstallContext) -> str:
    """Await the background page, fall back to generating now, then to the default."""
    if not ctx.config.get("landing_page"):
        return NOT_SELECTED

    destination = ctx.project_path / "resources" / "views" / "welcome.blade.php"
    content = None
    source = "default template"
    coordinator = ctx.coordinator
    if coordinator is not None and coordinator.job is not None:
        with ctx.ui.spinner("Waiting for AI landing page..."):
            content = coordinator.await_result(
                timeout=ctx.preferences.ai_timeout_seconds,
                poll_interval=ctx.preferences.ai_poll_interval_seconds,
            )
        if content is not None:
            source = "AI generated"
        elif coordinator.job.diagnostics.strip():
            logger.warning("Landing page worker log:\n%s", coordinator.job.diagnostics)

    if content is None and coordinator is not None and ctx.config.get("ai_backend"):
        ctx.ui.warning("Background generation did not finish; generating the landing page now")
        with ctx.ui.spinner("Generating landing page..."):
            content = coordinator.generate_now(landing_request(ctx))
        if content is not None:
            source = "AI generated (synchronous)"

    if content is None:
        app_name = ctx.config.require("app_name")
        write_stub(
            "landing/welcome.blade.stub",
            destination,
            {
                "APP_NAME": html.escape(app_name),
                "APP_DESCRIPTION": html.escape(
                    ctx.config.get("app_description") or ctx.config.get("description", "")
                ),
                "BRAND_COLOR": ctx.config.require("brand_color"),
                "YEAR": date.today().year,
            },
            stub_root=ctx.stub_root,
        )
        return source

    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(content, encoding="utf-8")
    return source


def install_frontend(ctx: InstallContext) -> str:
    ctx.runner.run(["npm", "install"], cwd=ctx.project_path)
    return "npm install"


def build_assets(ctx: InstallContext) -> str:
    ctx.runner.run(["npm", "run", "build"], cwd=ctx.project_path)
    return "npm run build"


def final_configuration(ctx: InstallContext) -> str:
    _artisan(ctx, "key:generate", "--force")
    _artisan(ctx, "migrate", "--force")
    _artisan(ctx, "storage:link")

    config = ctx.config
    features = "\n".join(f"- {feature}" for feature in config.features) or "- Jetstream teams"
    write_stub(
        "CLAUDE.md.stub",
        ctx.project_path / "CLAUDE.md",
        {
            "APP_NAME": config.require("app_name"),
            "DESCRIPTION": config.get("description", ""),
            "DATABASE_DRIVER": config.require("database_driver"),
            "AUTH_STRATEGY": config.require("auth_strategy"),
            "PAYMENT_PROVIDER": config.get("payment_provider") or "none",
            "FEATURES": features,
        },
        stub_root=ctx.stub_root,
    )
    return "key, migrations, storage link"


def seed_super_admin(ctx: InstallContext) -> str:
    admin = ctx.config.require("super_admin")
    write_stub(
        "SuperAdminSeeder.php.stub",
        ctx.project_path / "database" / "seeders" / "SuperAdminSeeder.php",
        {
            "SUPER_ADMIN_NAME": escape_php_single_quoted(admin["name"]),
            "SUPER_ADMIN_EMAIL": escape_php_single_quoted(admin["email"]),
        },
        stub_root=ctx.stub_root,
    )
    if (ctx.project_path / "database" / "seeders" / "SpatieRolesSeeder.php").exists():
        _artisan(ctx, "db:seed", "--class=SpatieRolesSeeder", "--force")
    _artisan(
        ctx,
        "db:seed",
        "--class=SuperAdminSeeder",
        "--force",
        env={"SUPER_ADMIN_PASSWORD": ctx.process_env.get("SUPER_ADMIN_PASSWORD", "")},
    )
    return admin["email"]


def build_install_steps() -> list[InstallStep]:
    """Full ordered step list; unselected features become no-op steps."""
    return [
        InstallStep("directory", "Creating project directory", create_project_directory, critical=True),
        InstallStep("laravel", "Installing Laravel framework", install_laravel),
        InstallStep("jetstream", "Installing Jetstream with Livewire", install_jetstream),
        InstallStep("database", "Configuring database", configure_database),
        InstallStep("auth", "Setting up authentication", setup_authentication),
        InstallStep("payments", "Installing payment provider", install_payment_provider),
        InstallStep("filament", "Installing Filament admin", install_filament),
        InstallStep("roles", "Configuring roles & permissions", configure_roles),
        InstallStep("branding", "Applying branding", apply_branding),
        InstallStep("integrations", "Configuring integrations", configure_integrations),
        InstallStep("legal", "Generating legal pages", generate_legal_pages),
        InstallStep("todo", "Setting up todo system", setup_todo_system),
        InstallStep("landing", "Applying landing page", apply_landing_page),
        InstallStep("npm", "Installing frontend dependencies", install_frontend),
        InstallStep("assets", "Building assets", build_assets),
        InstallStep("finalize", "Final configuration", final_configuration),
        InstallStep("super_admin", "Seeding super admin", seed_super_admin),
    ]


__all__ = [
    "NOT_SELECTED",
    "build_install_steps",
    "create_project_directory",
    "install_laravel",
    "install_jetstream",
    "configure_database",
    "setup_authentication",
    "install_payment_provider",
    "install_filament",
    "configure_roles",
    "apply_branding",
    "configure_integrations",
    "generate_legal_pages",
    "setup_todo_system",
    "apply_landing_page",
    "landing_request",
    "install_frontend",
    "build_assets",
    "final_configuration",
    "seed_super_admin",
]
