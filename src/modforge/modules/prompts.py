"""Interactive confirmation prompts and non-interactive detection."""

import logging
import os
import sys

import typer

logger = logging.getLogger(__name__)

# Set by common CI systems; nobody is there to answer an upgrade prompt.
_CI_MARKERS = (
    "CI",
    "GITHUB_ACTIONS",
    "JENKINS_HOME",
    "GITLAB_CI",
    "CIRCLECI",
    "TRAVIS",
    "BUILDKITE",
)


def is_interactive() -> bool:
    """Whether a major version upgrade can be confirmed by a person.

    False when stdin is not a terminal or a CI marker variable is set; the
    caller then rejects the upgrade unless it was allowed up front.
    """
    if not sys.stdin.isatty():
        return False
    marker = next((name for name in _CI_MARKERS if os.getenv(name)), None)
    if marker is not None:
        logger.debug("Not prompting for upgrades, %s is set", marker)
        return False
    return True


def confirm_major_upgrade(module: str, from_version: str, to_version: str, notes: str) -> bool:
    """Show *notes* and ask whether to take a major version upgrade.

    Raises:
        typer.Abort: If the user cancels with Ctrl+C.
    """
    typer.echo(
        f"\nModule {module} has a new major version ({from_version} -> {to_version})."
    )
    if notes:
        typer.echo(notes)
    return typer.confirm(f"Update {module} to {to_version}?", default=True)
