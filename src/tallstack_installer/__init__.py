"""
TALL Stack Installer - interactive setup for Laravel/Jetstream SaaS projects.

Usage:
    tallstack-install
    tallstack-install --clean
    tallstack-install --update
    tallstack-install check
"""

__version__ = "1.0.0"


def main():
    from tallstack_installer.cli.app import app

    app()
