"""System prompt construction shared by every provider.

The prompt is a pure function of its inputs: no timestamps, no randomness.
"""

from __future__ import annotations

import json
from typing import Optional

COMMIT_TYPES: dict[str, str] = {
    "feat": "A new feature",
    "fix": "A bug fix",
    "docs": "Documentation only changes",
    "style": (
        "Changes that do not affect the meaning of the code "
        "(white-space, formatting, missing semi-colons, etc)"
    ),
    "refactor": "A code change that neither fixes a bug nor adds a feature",
    "perf": "A code change that improves performance",
    "test": "Adding missing tests or correcting existing tests",
    "build": "Changes that affect the build system or external dependencies",
    "ci": "Changes to our CI configuration files and scripts",
    "chore": "Other changes that don't modify src or test files",
    "revert": "Reverts a previous commit",
}

OUTPUT_FORMAT = "<type>(<optional scope>): <commit message>"

COMMITLINT_PREAMBLE = (
    "IMPORTANT: The following commitlint rules are STRICTLY ENFORCED in this repository.",
    "You MUST follow every rule exactly. Violating any rule is not acceptable.",
    "Pay special attention to `subject-case` (never sentence-case or start-case) "
    "and `type-enum` (only listed types allowed).",
)
COMMITLINT_EPILOGUE = (
    "Double-check your message against every rule above before responding."
)


def build_system_prompt(max_length: int, commitlint_rules: Optional[str] = None) -> str:
    """Build the instruction prompt sent ahead of the diff.

    Args:
        max_length: Maximum commit message length in characters.
        commitlint_rules: Optional rule text appended verbatim as mandatory
            constraints.

    Returns:
        The prompt text.
    """
    parts = [
        "Generate a concise git commit message written in present tense for the "
        "following code diff with the given specifications below:",
        "Message language: en",
        f"Commit message must be a maximum of {max_length} characters.",
        "Exclude anything unnecessary such as translation. Your entire response "
        "will be passed directly into git commit.",
        "Choose a type from the type-to-description JSON below that best "
        "describes the git diff:",
        json.dumps(COMMIT_TYPES, indent=2),
        "The output response must be in format:",
        OUTPUT_FORMAT,
    ]
    if commitlint_rules is not None:
        parts.extend(COMMITLINT_PREAMBLE)
        parts.append(commitlint_rules)
        parts.append(COMMITLINT_EPILOGUE)
    return "\n".join(parts)
