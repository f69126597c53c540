import io
import json
import tempfile
from contextlib import redirect_stdout
from pathlib import Path
from unittest import TestCase
from unittest.mock import patch

from usage_collector.cli import main
from usage_collector.collector import AgentOutcome, RunReport
from usage_collector.config import CollectorConfig, ConfigManager
from usage_collector.exceptions import SyncError
from usage_collector.models import DeviceInfo, SyncResult, UsageData, UsageTotals

DEVICE = DeviceInfo(device_id="generated-id", device_name="laptop")

def usage_data(agent_type="claude-code"):
    return UsageData(
        device=DEVICE.model_copy(update={"agent_type": agent_type}),
        daily=[{"date": "2025-01-20", "totalTokens": 10, "totalCost": 0.5}],
        totals=UsageTotals(total_tokens=10, total_cost=0.5),
    )

class CliTestCase(TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.manager = ConfigManager(Path(self.tmp.name))
        self.collector_patch = patch("usage_collector.cli.UsageCollector")
        self.collector_cls = self.collector_patch.start()
        self.collector = self.collector_cls.return_value
        self.device_patch = patch(
            "usage_collector.cli.resolve_device_info", return_value=(DEVICE, True)
        )
        self.device_patch.start()

    def tearDown(self):
        self.device_patch.stop()
        self.collector_patch.stop()
        self.tmp.cleanup()

    def save_config(self, **overrides):
        config = CollectorConfig(
            api_key="secret", endpoint="https://dash.example.com/api/usage-sync", **overrides
        )
        self.manager.save_config(config)
        return config

    def run_cli(self, *argv):
        output = io.StringIO()
        with redirect_stdout(output):
            code = main(list(argv), manager=self.manager)
        return code, output.getvalue()

class TestSyncCommand(CliTestCase):
    def test_without_config(self):
        code, output = self.run_cli("sync")

        self.assertEqual(code, 1)
        self.assertIn("usage-collector config", output)
        self.collector.run.assert_not_called()

    def test_sync_persists_generated_identity(self):
        self.save_config()
        self.collector.run.return_value = RunReport(
            outcomes=[
                AgentOutcome(
                    "claude-code",
                    data=usage_data(),
                    sync_result=SyncResult(success=True, processed=1),
                )
            ]
        )

        code, output = self.run_cli("sync")

        self.assertEqual(code, 0)
        self.assertIn("synced 1 records", output)
        self.assertEqual(self.manager.load_config().device_id, "generated-id")
        self.collector.run.assert_called_once_with(dry_run=False, agent_types=None)

    def test_overrides_without_config_file(self):
        self.collector.run.return_value = RunReport(
            outcomes=[AgentOutcome("codex", data=usage_data("codex"))], dry_run=True
        )

        code, output = self.run_cli(
            "sync",
            "--dry-run",
            "--api-key", "k",
            "--endpoint", "https://other.example.com/api/usage-sync",
            "--max-retries", "5",
            "--agent", "codex",
        )

        self.assertEqual(code, 0)
        config = self.collector_cls.call_args.args[0]
        self.assertEqual(config.api_key, "k")
        self.assertEqual(config.max_retries, 5)
        self.collector.run.assert_called_once_with(dry_run=True, agent_types=["codex"])
        payload = json.loads(output[output.index("{") : output.rindex("}") + 1])
        self.assertEqual(payload["device"]["agentType"], "codex")
        self.assertFalse(self.manager.has_config())

    def test_all_agents_failing_exits_non_zero(self):
        self.save_config()
        self.collector.run.return_value = RunReport(
            outcomes=[AgentOutcome("claude-code", error="Failed to collect claude-code usage data")]
        )

        code, output = self.run_cli("sync")

        self.assertEqual(code, 1)
        self.assertIn("Failed to collect", output)

    def test_partial_failure_still_succeeds(self):
        self.save_config(agent_types=["claude-code", "amp"])
        self.collector.run.return_value = RunReport(
            outcomes=[
                AgentOutcome("claude-code", error="boom"),
                AgentOutcome("amp", data=usage_data("amp"), sync_result=SyncResult(success=True)),
            ]
        )

        code, _ = self.run_cli("sync")

        self.assertEqual(code, 0)

    def test_pay_as_you_go_agents_report_credits(self):
        self.save_config(agent_types=["claude-code", "amp"])
        amp = usage_data("amp")
        amp.totals.credits = 12.5
        claude = usage_data()
        claude.totals.credits = 3.0
        self.collector.run.return_value = RunReport(
            outcomes=[
                AgentOutcome(
                    "claude-code",
                    data=claude,
                    sync_result=SyncResult(success=True, processed=1),
                ),
                AgentOutcome("amp", data=amp, sync_result=SyncResult(success=True, processed=1)),
            ]
        )

        code, output = self.run_cli("sync")

        self.assertEqual(code, 0)
        self.assertIn("✅ amp: synced 1 records (12.5 credits)", output)
        self.assertIn("✅ claude-code: synced 1 records\n", output)

class TestInvalidOverrides(CliTestCase):
    def test_zero_retries_is_rejected(self):
        self.save_config()

        code, output = self.run_cli("sync", "--max-retries", "0")

        self.assertEqual(code, 1)
        self.assertIn("Invalid option", output)
        self.collector_cls.assert_not_called()

    def test_negative_retry_delay_is_rejected(self):
        self.save_config()

        code, output = self.run_cli("sync", "-d", "-5")

        self.assertEqual(code, 1)
        self.assertIn("Invalid option", output)
        self.collector.run.assert_not_called()

    def test_invalid_override_without_config_file(self):
        code, output = self.run_cli(
            "sync", "-k", "k", "-e", "https://other.example.com/api/usage-sync", "-r", "0"
        )

        self.assertEqual(code, 1)
        self.assertIn("Invalid option", output)
        self.collector_cls.assert_not_called()

    def test_valid_overrides_replace_stored_values(self):
        self.save_config(max_retries=2)
        self.collector.run.return_value = RunReport(outcomes=[], dry_run=True)

        code, _ = self.run_cli("sync", "--dry-run", "-r", "4", "-d", "0")

        self.assertEqual(code, 0)
        config = self.collector_cls.call_args.args[0]
        self.assertEqual(config.max_retries, 4)
        self.assertEqual(config.retry_delay, 0)
        self.assertEqual(config.api_key, "secret")

class TestOtherCommands(CliTestCase):
    def test_start_rejects_bad_cron(self):
        self.save_config()

        code, output = self.run_cli("start", "--schedule", "every hour")

        self.assertEqual(code, 1)
        self.assertIn("Invalid cron expression", output)

    def test_start_stops_on_ctrl_c(self):
        self.save_config()
        with patch("usage_collector.cli.CronScheduler") as scheduler_cls:
            scheduler_cls.return_value.run_forever.side_effect = KeyboardInterrupt
            code, output = self.run_cli("start")

        self.assertEqual(code, 0)
        self.assertEqual(scheduler_cls.call_args.args[0], "0 */4 * * *")
        self.assertIn("Stopping scheduled sync", output)

    def test_test_command_reports_sync_failure(self):
        self.save_config()
        self.collector.collect_all.return_value = [AgentOutcome("claude-code", data=usage_data())]
        self.collector.sync_data.side_effect = SyncError(1, "HTTP 500")

        code, output = self.run_cli("test")

        self.assertEqual(code, 1)
        self.assertIn("sync test failed", output)
        self.collector.sync_data.assert_called_once()
        self.assertEqual(self.collector.sync_data.call_args.kwargs["max_retries"], 1)

    def test_status(self):
        self.save_config(agent_types=["claude-code", "amp"])
        with patch("usage_collector.cli.describe_command", return_value="ccusage daily --json"):
            code, output = self.run_cli("status")

        self.assertEqual(code, 0)
        self.assertIn("https://dash.example.com/api/usage-sync", output)
        self.assertIn("Amp: ccusage daily --json", output)
        self.assertIn("generated-id", output)
