"""Allow ``python -m browser_control``."""

from browser_control.cli.app import entrypoint

entrypoint()
