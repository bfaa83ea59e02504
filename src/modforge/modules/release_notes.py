"""Fetch and render GitHub release notes for a module version."""

from __future__ import annotations

import logging
import os

import httpx
from rich.console import Console
from rich.markdown import Markdown

from modforge.errors import ReleaseNotesUnavailable

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"


def github_token(token: str | None = None) -> str | None:
    """Token used for release lookups.

    An explicit *token* wins over ``GH_TOKEN`` and ``GITHUB_TOKEN``. Blank
    values count as unset.
    """
    for candidate in (token, os.getenv("GH_TOKEN"), os.getenv("GITHUB_TOKEN")):
        if candidate and candidate.strip():
            return candidate.strip()
    return None


def _release_request_headers(token: str | None) -> dict[str, str]:
    headers = {"Accept": "application/vnd.github+json"}
    resolved = github_token(token)
    if resolved:
        headers["Authorization"] = f"Bearer {resolved}"
    return headers


def fetch_release_notes(
    module: str,
    tag: str,
    *,
    client: httpx.Client | None = None,
    token: str | None = None,
) -> str:
    """Return the Markdown body of the GitHub release *tag* of *module*.

    The module import path is read as ``<host>/<org>/<repo>``.

    Raises:
        ReleaseNotesUnavailable: If the module path is not a repository path,
            or the release could not be fetched.
    """
    parts = module.split("/")
    if len(parts) < 3:
        raise ReleaseNotesUnavailable(f"unsupported module for release notes: {module}")

    api_url = f"{GITHUB_API_URL}/repos/{parts[1]}/{parts[2]}/releases/tags/{tag}"
    owns_client = client is None
    if client is None:
        client = httpx.Client()

    try:
        response = client.get(
            api_url,
            timeout=30,
            follow_redirects=True,
            headers=_release_request_headers(token),
        )
    except httpx.HTTPError as exc:
        raise ReleaseNotesUnavailable(f"failed to fetch {api_url}: {exc}") from exc
    finally:
        if owns_client:
            client.close()

    if response.status_code != 200:
        raise ReleaseNotesUnavailable(f"GitHub API returned {response.status_code} for {api_url}")
    try:
        release = response.json()
    except ValueError as exc:
        raise ReleaseNotesUnavailable(f"failed to parse release JSON from {api_url}: {exc}") from exc
    if not isinstance(release, dict):
        raise ReleaseNotesUnavailable(f"unexpected release payload from {api_url}: {type(release).__name__}")

    body = release.get("body")
    return body if isinstance(body, str) else ""


def render_markdown(text: str, console: Console | None = None) -> str:
    """Render *text* as terminal Markdown, returning *text* unchanged on failure."""
    if console is None:
        console = Console(soft_wrap=True)
    try:
        with console.capture() as capture:
            console.print(Markdown(text))
    except Exception as exc:
        logger.debug("Failed to render release notes, using raw text: %s", exc)
        return text
    return capture.get()
