"""Tests for installation step operations against a fake Laravel project."""

from __future__ import annotations

import logging
from pathlib import Path

import httpx
import pytest

from tallstack_installer.core.commands import CommandResult
from tallstack_installer.core.env_file import parse_env_file
from tallstack_installer.core.preferences import InstallerPreferences
from tallstack_installer.core.settings import InstallerConfig
from tallstack_installer.exceptions import CommandError
from tallstack_installer.generation import coordinator as coordinator_module
from tallstack_installer.generation.backends import AnthropicApiBackend
from tallstack_installer.generation.coordinator import GenerationCoordinator
from tallstack_installer.installer import operations
from tallstack_installer.installer.steps import InstallContext

USER_MODEL = """<?php

namespace App\\Models;

class User extends Authenticatable
{
    use HasApiTokens;

    protected $fillable = ['name', 'email'];
}
"""


class FakeRunner:
    def __init__(self, fail: set[str] | None = None):
        self.calls: list[tuple[list[str], dict | None]] = []
        self.fail = fail or set()

    def run(self, argv, *, cwd=None, env=None, **kwargs):
        self.calls.append((list(argv), env))
        if argv[0] in self.fail:
            raise CommandError(argv, 1, "failed")
        return CommandResult(list(argv), 0, "", "")

    def commands(self) -> list[str]:
        return [" ".join(argv) for argv, _ in self.calls]


class FakeCoordinator:
    def __init__(self, background: str | None = None, synchronous: str | None = None, started: bool = True):
        self.background = background
        self.synchronous = synchronous
        self.job = type("Job", (), {"diagnostics": ""})() if started else None
        self.sync_requests = []

    def await_result(self, timeout, poll_interval):
        return self.background

    def generate_now(self, request):
        self.sync_requests.append(request)
        return self.synchronous


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    root = tmp_path / "my-saas-app"
    (root / "app" / "Models").mkdir(parents=True)
    (root / "routes").mkdir()
    (root / "resources" / "css").mkdir(parents=True)
    (root / "app" / "Models" / "User.php").write_text(USER_MODEL, encoding="utf-8")
    (root / "routes" / "web.php").write_text("<?php\n\nRoute::get('/', fn () => view('welcome'));\n", encoding="utf-8")
    (root / "resources" / "css" / "app.css").write_text("@import 'tailwindcss';\n\nbody { margin: 0; }\n", encoding="utf-8")
    (root / ".env").write_text("APP_NAME=Laravel\nDB_CONNECTION=sqlite\nMAIL_MAILER=smtp\n", encoding="utf-8")
    return root


@pytest.fixture()
def config() -> InstallerConfig:
    config = InstallerConfig()
    config.update(
        {
            "project_name": "my-saas-app",
            "app_name": "My Saas App",
            "description": "Invoices <fast>",
            "brand_color": "#6366F1",
            "database_driver": "sqlite",
            "auth_strategy": "otp_only",
            "payment_provider": None,
        }
    )
    return config


def make_context(project: Path, config: InstallerConfig, make_ui, runner=None, coordinator=None) -> InstallContext:
    return InstallContext(
        config=config,
        project_path=project,
        runner=runner or FakeRunner(),
        ui=make_ui(),
        preferences=InstallerPreferences(),
        coordinator=coordinator,
    )


def test_step_list_order() -> None:
    steps = operations.build_install_steps()
    assert [step.key for step in steps] == [
        "directory", "laravel", "jetstream", "database", "auth", "payments", "filament", "roles",
        "branding", "integrations", "legal", "todo", "landing", "npm", "assets", "finalize", "super_admin",
    ]
    assert [step.key for step in steps if step.critical] == ["directory"]


def test_sqlite_database(project: Path, config: InstallerConfig, make_ui) -> None:
    ctx = make_context(project, config, make_ui)
    assert operations.configure_database(ctx) == "sqlite"
    assert (project / "database" / "database.sqlite").exists()
    assert parse_env_file(project / ".env")["DB_CONNECTION"] == "sqlite"


def test_mysql_database_unverified(project: Path, make_ui) -> None:
    config = InstallerConfig()
    config.update(
        {
            "database_driver": "mysql",
            "database_host": "127.0.0.1",
            "database_port": "3306",
            "database_name": "my_saas_app",
            "database_username": "root",
            "database_password": "p@ss word",
            "database_validated": False,
        }
    )
    ctx = make_context(project, config, make_ui)

    assert operations.configure_database(ctx) == "mysql (connection not verified)"
    env = parse_env_file(project / ".env")
    assert env["DB_CONNECTION"] == "mysql"
    assert env["DB_DATABASE"] == "my_saas_app"
    assert env["DB_PASSWORD"] == "p@ss word"
    assert env["APP_NAME"] == "Laravel"


def test_otp_only_auth_skips_socialite(project: Path, config: InstallerConfig, make_ui) -> None:
    runner = FakeRunner()
    ctx = make_context(project, config, make_ui, runner=runner)

    assert operations.setup_authentication(ctx) == "otp_only"
    env = parse_env_file(project / ".env")
    assert env["OTP_ENABLED"] == "true"
    assert env["OTP_DEFAULT_CODE"] == "123456"
    assert runner.calls == []


def test_social_auth_installs_socialite(project: Path, make_ui) -> None:
    config = InstallerConfig()
    config.update({"auth_strategy": "otp_socialite", "social_providers": ["google", "github"]})
    runner = FakeRunner()
    ctx = make_context(project, config, make_ui, runner=runner)

    assert operations.setup_authentication(ctx) == "otp_socialite (google, github)"
    assert "composer require laravel/socialite --no-interaction" in runner.commands()
    env = parse_env_file(project / ".env")
    assert env["GITHUB_REDIRECT_URI"] == "${APP_URL}/auth/github/callback"


def test_unselected_features_are_no_ops(project: Path, config: InstallerConfig, make_ui) -> None:
    runner = FakeRunner()
    ctx = make_context(project, config, make_ui, runner=runner)

    assert operations.install_payment_provider(ctx) == operations.NOT_SELECTED
    assert operations.install_filament(ctx) == operations.NOT_SELECTED
    assert operations.generate_legal_pages(ctx) == operations.NOT_SELECTED
    assert operations.setup_todo_system(ctx) == operations.NOT_SELECTED
    assert operations.apply_landing_page(ctx) == operations.NOT_SELECTED
    assert runner.calls == []


def test_stripe_payment(project: Path, config: InstallerConfig, make_ui) -> None:
    config.set("payment_provider", "stripe", reenter=True)
    config.set("trial_days", 14)
    runner = FakeRunner()
    ctx = make_context(project, config, make_ui, runner=runner)

    assert operations.install_payment_provider(ctx) == "stripe"
    assert runner.commands() == ["composer require laravel/cashier --no-interaction"]
    env = parse_env_file(project / ".env")
    assert env["SUBSCRIPTION_TRIAL_DAYS"] == "14"
    assert env["CASHIER_CURRENCY"] == "usd"


def test_filament_patches_user_model(project: Path, config: InstallerConfig, make_ui) -> None:
    config.update(
        {
            "filament": True,
            "filament_panel_name": "admin",
            "filament_resources": ["users", "subscriptions"],
            "filament_widgets": ["mrr"],
        }
    )
    runner = FakeRunner()
    ctx = make_context(project, config, make_ui, runner=runner)

    detail = operations.install_filament(ctx)

    assert detail == "panel 'admin', resources: users"
    commands = runner.commands()
    assert any(command.startswith("php artisan make:filament-resource User") for command in commands)
    assert any("MrrStatsOverview" in command for command in commands)
    user_model = (project / "app" / "Models" / "User.php").read_text(encoding="utf-8")
    assert "implements \\Filament\\Models\\Contracts\\FilamentUser" in user_model
    assert "canAccessPanel" in user_model
    assert (project / "app" / "Policies" / "AdminPanelAccess.php").exists()


def test_roles_write_config_and_traits(project: Path, config: InstallerConfig, make_ui) -> None:
    config.update({"team_creation_permission": "super_admin", "custom_roles": ["editor"]})
    ctx = make_context(project, config, make_ui)

    assert operations.configure_roles(ctx) == "super_admin, 1 custom role(s)"
    rendered = (project / "config" / "permission-teams.php").read_text(encoding="utf-8")
    assert '"editor"' in rendered
    user_model = (project / "app" / "Models" / "User.php").read_text(encoding="utf-8")
    assert "use \\Spatie\\Permission\\Traits\\HasRoles;" in user_model
    assert (project / "database" / "seeders" / "SpatieRolesSeeder.php").exists()

    # patching twice does not duplicate traits
    operations._patch_user_model(project, traits=["\\Spatie\\Permission\\Traits\\HasRoles"])
    user_model = (project / "app" / "Models" / "User.php").read_text(encoding="utf-8")
    assert user_model.count("HasRoles;") == 1


def test_branding_imports_brand_css_after_framework_imports(project: Path, config: InstallerConfig, make_ui) -> None:
    ctx = make_context(project, config, make_ui)

    assert operations.apply_branding(ctx) == "#6366F1"
    lines = (project / "resources" / "css" / "app.css").read_text(encoding="utf-8").splitlines()
    assert lines[:2] == ["@import 'tailwindcss';", "@import './brand.css';"]
    assert "#6366F1" in (project / "resources" / "css" / "brand.css").read_text(encoding="utf-8")
    assert parse_env_file(project / ".env")["APP_NAME"] == "My Saas App"


def test_integrations_default_to_log_mailer(project: Path, config: InstallerConfig, make_ui) -> None:
    ctx = make_context(project, config, make_ui)
    assert operations.configure_integrations(ctx) == "mail: log driver"
    assert parse_env_file(project / ".env")["MAIL_MAILER"] == "log"


def test_integrations_write_credentials(project: Path, config: InstallerConfig, make_ui) -> None:
    config.set("mailgun", {"domain": "mg.example.com", "api_key": "key-123"})
    ctx = make_context(project, config, make_ui)

    assert operations.configure_integrations(ctx) == "mailgun"
    env = parse_env_file(project / ".env")
    assert env["MAIL_MAILER"] == "mailgun"
    assert env["MAILGUN_SECRET"] == "key-123"


def test_legal_pages_and_routes(project: Path, config: InstallerConfig, make_ui) -> None:
    config.update({"legal_pages": ["terms", "privacy", "gdpr", "cookies"], "cookie_banner": True})
    ctx = make_context(project, config, make_ui)

    assert operations.generate_legal_pages(ctx) == "terms, privacy, gdpr, cookies"
    views = project / "resources" / "views"
    assert "Terms of Service" in (views / "legal" / "terms.blade.php").read_text(encoding="utf-8")
    assert (views / "components" / "cookie-consent.blade.php").exists()
    routes = (project / "routes" / "web.php").read_text(encoding="utf-8")
    assert "Route::view('/gdpr', 'legal.gdpr')->name('gdpr');" in routes

    operations.generate_legal_pages(ctx)
    assert (project / "routes" / "web.php").read_text(encoding="utf-8").count("legal.gdpr") == 1


def test_landing_page_uses_background_result(project: Path, config: InstallerConfig, make_ui) -> None:
    config.update({"landing_page": True, "ai_backend": "cli"})
    document = "<!DOCTYPE html><html>AI</html>"
    ctx = make_context(project, config, make_ui, coordinator=FakeCoordinator(background=document))

    assert operations.apply_landing_page(ctx) == "AI generated"
    assert (project / "resources" / "views" / "welcome.blade.php").read_text(encoding="utf-8") == document


def test_landing_page_falls_back_to_synchronous_generation(project: Path, config: InstallerConfig, make_ui) -> None:
    config.update({"landing_page": True, "ai_backend": "api"})
    coordinator = FakeCoordinator(background=None, synchronous="<!DOCTYPE html><html>sync</html>")
    ctx = make_context(project, config, make_ui, coordinator=coordinator)

    assert operations.apply_landing_page(ctx) == "AI generated (synchronous)"
    assert coordinator.sync_requests[0].backend == "api"


def test_landing_page_falls_back_to_default_template(project: Path, config: InstallerConfig, make_ui) -> None:
    config.update({"landing_page": True, "ai_backend": "cli"})
    ctx = make_context(project, config, make_ui, coordinator=FakeCoordinator())

    assert operations.apply_landing_page(ctx) == "default template"
    page = (project / "resources" / "views" / "welcome.blade.php").read_text(encoding="utf-8")
    assert page.startswith("<!DOCTYPE html>")
    assert page.rstrip().endswith("</html>")
    assert "My Saas App" in page
    assert "Invoices &lt;fast&gt;" in page


def test_landing_page_worker_log_is_reported(
    project: Path, config: InstallerConfig, make_ui, caplog: pytest.LogCaptureFixture
) -> None:
    config.update({"landing_page": True, "ai_backend": "cli"})
    coordinator = FakeCoordinator()
    coordinator.job.diagnostics = "claude: rate limited\n"
    ctx = make_context(project, config, make_ui, coordinator=coordinator)

    with caplog.at_level(logging.WARNING, logger="tallstack_installer.installer.operations"):
        operations.apply_landing_page(ctx)

    assert any(
        record.levelno == logging.WARNING and "claude: rate limited" in record.getMessage()
        for record in caplog.records
    )


def test_landing_page_survives_malformed_api_response(
    project: Path, config: InstallerConfig, make_ui, monkeypatch: pytest.MonkeyPatch
) -> None:
    config.update({"landing_page": True, "ai_backend": "api"})
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>proxy</html>")))
    monkeypatch.setattr(
        coordinator_module,
        "get_backend",
        lambda backend_id, api_key=None: AnthropicApiBackend(api_key="sk-ant-test", client=client),
    )
    ctx = make_context(project, config, make_ui, coordinator=GenerationCoordinator(api_key="sk-ant-test"))

    assert operations.apply_landing_page(ctx) == "default template"
    page = (project / "resources" / "views" / "welcome.blade.php").read_text(encoding="utf-8")
    assert "My Saas App" in page


def test_landing_page_without_ai(project: Path, config: InstallerConfig, make_ui) -> None:
    config.set("landing_page", True)
    ctx = make_context(project, config, make_ui)
    assert operations.apply_landing_page(ctx) == "default template"


def test_super_admin_password_only_in_environment(project: Path, config: InstallerConfig, make_ui) -> None:
    config.set("super_admin", {"name": "Ada", "email": "ada@example.com"})
    runner = FakeRunner()
    ctx = make_context(project, config, make_ui, runner=runner)
    ctx.process_env["SUPER_ADMIN_PASSWORD"] = "correct horse"

    assert operations.seed_super_admin(ctx) == "ada@example.com"
    seeder = (project / "database" / "seeders" / "SuperAdminSeeder.php").read_text(encoding="utf-8")
    assert "ada@example.com" in seeder
    assert "correct horse" not in seeder
    argv, env = runner.calls[-1]
    assert argv == ["php", "artisan", "db:seed", "--class=SuperAdminSeeder", "--force"]
    assert env == {"SUPER_ADMIN_PASSWORD": "correct horse"}


def test_super_admin_seeder_escapes_php_strings(project: Path, config: InstallerConfig, make_ui) -> None:
    config.set("super_admin", {"name": "Ops Team\\", "email": "o'brien@example.com"})
    ctx = make_context(project, config, make_ui)

    operations.seed_super_admin(ctx)

    seeder = (project / "database" / "seeders" / "SuperAdminSeeder.php").read_text(encoding="utf-8")
    assert "'name' => 'Ops Team\\\\'," in seeder
    assert "['email' => 'o\\'brien@example.com']" in seeder


def test_final_configuration_writes_project_notes(project: Path, config: InstallerConfig, make_ui) -> None:
    config.add_feature("Jetstream teams")
    config.add_feature("Filament admin")
    runner = FakeRunner()
    ctx = make_context(project, config, make_ui, runner=runner)

    operations.final_configuration(ctx)

    assert runner.commands()[:2] == ["php artisan key:generate --force", "php artisan migrate --force"]
    notes = (project / "CLAUDE.md").read_text(encoding="utf-8")
    assert "My Saas App" in notes
    assert "- Filament admin" in notes
