from unittest import TestCase
from unittest.mock import patch

from usage_collector.agents import describe_command, get_agent, resolve_command
from usage_collector.exceptions import CommandNotFoundError


def which_only(*available):
    return lambda name: f"/usr/bin/{name}" if name in available else None


class TestResolveCommand(TestCase):
    def test_unknown_agent(self):
        with self.assertRaises(ValueError):
            get_agent("copilot")

    def test_binary_on_path(self):
        with patch("usage_collector.agents.shutil.which", which_only("ccusage-codex")):
            self.assertEqual(
                resolve_command("codex"), ["/usr/bin/ccusage-codex", "daily", "--json"]
            )

    def test_shell_alias(self):
        with (
            patch("usage_collector.agents.shutil.which", which_only()),
            patch("usage_collector.agents.user_shell", return_value="/bin/zsh"),
            patch("usage_collector.agents.shell_defines", return_value=True),
        ):
            self.assertEqual(resolve_command("claude-code"), ["/bin/zsh", "-ic", "ccusage daily --json"])

    def test_bunx_then_npx(self):
        with (
            patch("usage_collector.agents.user_shell", return_value=None),
            patch("usage_collector.agents.shutil.which", which_only("bunx", "npx")),
        ):
            self.assertEqual(
                resolve_command("amp"), ["bunx", "@ccusage/amp@latest", "daily", "--json"]
            )
        with (
            patch("usage_collector.agents.user_shell", return_value=None),
            patch("usage_collector.agents.shutil.which", which_only("npx")),
        ):
            self.assertEqual(
                resolve_command("opencode"),
                ["npx", "-y", "@ccusage/opencode@latest", "daily", "--json"],
            )

    def test_nothing_available(self):
        with (
            patch("usage_collector.agents.user_shell", return_value=None),
            patch("usage_collector.agents.shutil.which", which_only()),
        ):
            with self.assertRaises(CommandNotFoundError):
                resolve_command("claude-code")
            self.assertTrue(describe_command("claude-code").startswith("unavailable"))
