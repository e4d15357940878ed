"""System prompts sent to every backend."""

import sys
from typing import Optional

PTEST_PROMPT = "list of files"


def build_system_prompt(platform: Optional[str] = None) -> str:
    """Instruction asking for a single one-line command for the user's shell."""
    platform = platform or sys.platform
    if platform == "win32":
        return (
            "You are a Windows command-line assistant. You receive instructions and reply with a single "
            "PowerShell command. One line only. No explanations, no markdown, no backticks. "
            "Chain multiple commands with ; or |. Output nothing but the command."
        )
    if platform == "darwin":
        os_name, shell = "macOS", "zsh"
    else:
        os_name, shell = "Linux", "bash"
    return (
        f"You are a {os_name} command-line assistant. You receive instructions and reply with a single "
        f"{shell} command. One line only. No explanations, no markdown, no backticks. "
        "Chain multiple commands with && or |. Output nothing but the command."
    )
