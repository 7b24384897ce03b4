"""Git remote discovery for source links."""
from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path


log = logging.getLogger(__name__)

_SSH_GITHUB_RE = re.compile(r"^git@github\.com:")
_HTTPS_GITHUB_RE = re.compile(r"^https://github\.com/")
_GIT_SUFFIX_RE = re.compile(r"\.git$")


@dataclass(frozen=True, slots=True)
class RepoLink:
    """Browsable repository base (``https://github.com/owner/repo``) and branch."""

    url: str
    branch: str = "main"

    def blob_url(self, path: str, line: int | None = None) -> str:
        url = f"{self.url}/blob/{self.branch}/{path}"
        if line is not None and line > 0:
            url += f"#L{line}"
        return url


def github_url_from_remote(remote: str) -> str | None:
    """Convert a git remote URL into an https GitHub URL.

    SSH remotes (``git@github.com:owner/repo.git``) and https remotes are
    accepted; the ``.git`` suffix is dropped. Non-GitHub remotes give None.
    """
    remote = remote.strip()
    if _SSH_GITHUB_RE.match(remote):
        return _GIT_SUFFIX_RE.sub("", _SSH_GITHUB_RE.sub("https://github.com/", remote))
    if _HTTPS_GITHUB_RE.match(remote):
        return _GIT_SUFFIX_RE.sub("", remote)
    return None


def git_remote_url(repo_dir: Path, *, remote: str = "origin") -> str | None:
    """Best-effort ``git remote get-url`` for ``repo_dir``."""
    try:
        proc = subprocess.run(
            ["git", "remote", "get-url", remote],
            cwd=str(repo_dir),
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        log.debug("git unavailable in %s: %s", repo_dir, exc)
        return None
    if proc.returncode != 0:
        return None
    out = proc.stdout.strip()
    return out if out else None


def plugin_remote_url(plugin_dir: Path) -> str | None:
    """GitHub URL of a vendored plugin checkout, if it is a GitHub clone."""
    if not (plugin_dir / ".git").exists():
        return None
    remote = git_remote_url(plugin_dir)
    return github_url_from_remote(remote) if remote else None


def resolve_repo_link(
    root: Path,
    *,
    enabled: bool = True,
    base_url: str | None = None,
    branch: str = "main",
) -> RepoLink | None:
    """Repository link for the scanned configuration itself.

    A configured ``base_url`` wins; otherwise the ``origin`` remote of
    ``root`` is used when it points at GitHub.
    """
    if not enabled:
        return None
    if base_url:
        return RepoLink(url=base_url.rstrip("/"), branch=branch)
    remote = git_remote_url(root)
    url = github_url_from_remote(remote) if remote else None
    if url is None:
        log.info("No GitHub remote for %s; sources will not be linked", root)
        return None
    return RepoLink(url=url, branch=branch)
