"""Resolve which workspace and GitHub repository a proposal targets."""

import os
import subprocess
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple
from urllib.parse import urlparse

from config import get_default_repository


def resolve_project_root() -> Path:
    """Resolve project root using env or git; fallback to cwd."""
    env_root = os.environ.get("PREVIEW_GATE_PROJECT_ROOT")
    if env_root:
        candidate = Path(env_root).expanduser()
        if candidate.exists():
            return candidate.resolve()

    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            capture_output=True,
            text=True,
            check=True,
        )
        root = Path(result.stdout.strip())
        if root.exists():
            return root.resolve()
    except (subprocess.CalledProcessError, FileNotFoundError):
        pass

    return Path.cwd().resolve()


def parse_github_remote(url: str) -> Tuple[str, str]:
    """Return (owner, repo) for a github.com remote URL (ssh or https)."""
    url = (url or "").strip()
    if not url:
        raise RuntimeError("remote.origin.url is empty")
    if url.startswith("git@"):
        try:
            host_part, path = url.split(":", 1)
        except ValueError as exc:
            raise RuntimeError("remote.origin.url has an invalid format") from exc
        host = host_part.split("@", 1)[1]
    else:
        parsed = urlparse(url)
        host = parsed.hostname or ""
        path = parsed.path or ""
    host = host.lower()
    if not host.endswith("github.com"):
        raise RuntimeError("remote origin does not point at github.com")
    path = path.strip("/")
    if path.endswith(".git"):
        path = path[:-4]
    owner, _, repo = path.partition("/")
    if not owner or not repo:
        raise RuntimeError("remote origin has no owner/repo")
    return owner, repo


def detect_repo_slug(project_root: Optional[Path] = None) -> str:
    root = project_root or resolve_project_root()
    try:
        result = subprocess.run(
            ["git", "config", "--get", "remote.origin.url"],
            capture_output=True,
            text=True,
            check=True,
            cwd=str(root),
        )
    except (subprocess.CalledProcessError, FileNotFoundError) as exc:
        raise RuntimeError("remote.origin.url is not configured") from exc
    owner, repo = parse_github_remote(result.stdout)
    return f"{owner}/{repo}"


def resolve_repository(args: Mapping[str, Any]) -> str:
    """Repository slug for a proposal: explicit arg > configured default > git origin."""
    explicit = str(args.get("repository") or "").strip()
    if explicit:
        return explicit
    default = get_default_repository()
    if default:
        return default
    return detect_repo_slug()


__all__ = ["detect_repo_slug", "parse_github_remote", "resolve_project_root", "resolve_repository"]
