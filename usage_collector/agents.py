"""
Agent registry and command resolution.

Each agent reports usage through a ccusage-family CLI. A binary already on
PATH wins; then an alias or shell function from the user's interactive shell;
finally the npm package is fetched on demand through bunx or npx.
"""

import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass

from usage_collector.exceptions import CommandNotFoundError
from usage_collector.logger import get_logger

logger = get_logger(name="agents")

ALIAS_PROBE_TIMEOUT_SECONDS = 10


@dataclass(frozen=True)
class AgentSpec:
    agent_type: str
    label: str
    binary: str
    package: str
    args: tuple[str, ...] = ("daily", "--json")
    # Pay-as-you-go agents report credits instead of relying on a subscription
    pay_as_you_go: bool = False


AGENTS: dict[str, AgentSpec] = {
    "claude-code": AgentSpec("claude-code", "Claude Code", "ccusage", "ccusage@latest"),
    "amp": AgentSpec("amp", "Amp", "ccusage-amp", "@ccusage/amp@latest", pay_as_you_go=True),
    "codex": AgentSpec("codex", "Codex", "ccusage-codex", "@ccusage/codex@latest"),
    "opencode": AgentSpec("opencode", "OpenCode", "ccusage-opencode", "@ccusage/opencode@latest"),
}


def get_agent(agent_type: str) -> AgentSpec:
    try:
        return AGENTS[agent_type]
    except KeyError as err:
        supported = ", ".join(AGENTS)
        raise ValueError(f"Unknown agent type {agent_type!r} (supported: {supported})") from err


def user_shell() -> str | None:
    shell = os.getenv("SHELL")
    return shell if shell and shutil.which(shell) else None


def shell_defines(shell: str, name: str) -> bool:
    """True if ``name`` is an alias or function in the user's interactive shell."""
    try:
        result = subprocess.run(
            [shell, "-ic", f"type {shlex.quote(name)}"],
            capture_output=True,
            text=True,
            timeout=ALIAS_PROBE_TIMEOUT_SECONDS,
            stdin=subprocess.DEVNULL,
        )
    except (OSError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0


def resolve_command(agent_type: str) -> list[str]:
    """Build the argv that prints the agent's daily usage as JSON."""
    spec = get_agent(agent_type)

    binary_path = shutil.which(spec.binary)
    if binary_path:
        return [binary_path, *spec.args]

    shell = user_shell()
    if shell and shell_defines(shell, spec.binary):
        # Interactive shells may print startup noise before the JSON;
        # parsing.extract_json_object skips it.
        return [shell, "-ic", shlex.join([spec.binary, *spec.args])]

    if shutil.which("bunx"):
        return ["bunx", spec.package, *spec.args]
    if shutil.which("npx"):
        return ["npx", "-y", spec.package, *spec.args]

    raise CommandNotFoundError(agent_type, spec.binary)


def describe_command(agent_type: str) -> str:
    """Human-readable resolution result for ``status``."""
    try:
        return shlex.join(resolve_command(agent_type))
    except CommandNotFoundError as e:
        return f"unavailable ({e})"
