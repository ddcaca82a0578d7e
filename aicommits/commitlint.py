"""Detect commitlint rules so they can be injected into the prompt.

Lookup only happens in repositories using husky (a ``.husky`` directory at
the root).
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

# Checked in priority order.
CONFIG_FILES = (
    "commitlint.config.js",
    "commitlint.config.cjs",
    "commitlint.config.ts",
    ".commitlintrc",
    ".commitlintrc.json",
    ".commitlintrc.yaml",
    ".commitlintrc.yml",
    ".commitlintrc.cjs",
    ".commitlintrc.mjs",
)


def _read_file(path: Path) -> Optional[str]:
    try:
        content = path.read_text()
    except (OSError, UnicodeDecodeError):
        return None
    return content or None


def _resolve_via_cli(root: Path) -> Optional[str]:
    """Fully resolved rules (extended presets expanded) from the local CLI."""
    binary = root / "node_modules" / ".bin" / "commitlint"
    if not (binary.is_file() and os.access(binary, os.X_OK)):
        return None
    try:
        result = subprocess.run(
            [str(binary), "--print-config"],
            cwd=root,
            capture_output=True,
            text=True,
            check=False,
            timeout=30,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("commitlint --print-config failed: %s", e)
        return None
    output = result.stdout.strip()
    if result.returncode != 0 or not output:
        return None
    return output


def get_commitlint_rules(root: Union[str, Path]) -> tuple[Optional[str], bool]:
    """Return ``(rule_text, resolved)`` for the project at ``root``.

    ``resolved`` is True only when the commitlint CLI produced the rules.
    Falls back to the first dedicated config file, then to the ``commitlint``
    key of ``package.json``. Returns ``(None, False)`` when nothing is found
    or the project has no ``.husky`` directory.
    """
    root_path = Path(root)
    if not (root_path / ".husky").is_dir():
        return None, False

    resolved = _resolve_via_cli(root_path)
    if resolved:
        logger.debug("commitlint rules resolved via CLI")
        return resolved, True

    for filename in CONFIG_FILES:
        path = root_path / filename
        if path.is_file():
            logger.debug("commitlint rules read from %s", filename)
            return _read_file(path), False

    pkg_path = root_path / "package.json"
    if pkg_path.is_file():
        content = _read_file(pkg_path)
        if content:
            try:
                pkg = json.loads(content)
            except ValueError:
                pkg = None
            if isinstance(pkg, dict) and pkg.get("commitlint"):
                logger.debug("commitlint rules read from package.json")
                return json.dumps(pkg["commitlint"]), False

    return None, False
