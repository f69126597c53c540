import subprocess
import time
from dataclasses import dataclass, field
from http import HTTPStatus

import requests

from usage_collector.agents import get_agent, resolve_command
from usage_collector.config import CollectorConfig
from usage_collector.device_info import resolve_device_info
from usage_collector.exceptions import (
    CollectorError,
    SyncAuthenticationError,
    SyncError,
    UsageCollectionError,
)
from usage_collector.logger import get_logger
from usage_collector.models import DeviceInfo, SyncResult, UsageData
from usage_collector.parsing import compute_totals, parse_usage_output

logger = get_logger(name="collector")

COMMAND_TIMEOUT_SECONDS = 300
AUTH_FAILURE_STATUSES = (HTTPStatus.UNAUTHORIZED, HTTPStatus.FORBIDDEN)


@dataclass
class AgentOutcome:
    """Result of collecting (and maybe syncing) one agent's usage."""

    agent_type: str
    data: UsageData | None = None
    sync_result: SyncResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RunReport:
    outcomes: list[AgentOutcome] = field(default_factory=list)
    dry_run: bool = False

    @property
    def succeeded(self) -> list[AgentOutcome]:
        return [outcome for outcome in self.outcomes if outcome.ok]

    @property
    def failed(self) -> list[AgentOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def all_failed(self) -> bool:
        return bool(self.outcomes) and not self.succeeded


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or body)
    return str(body)


class UsageCollector:
    """Collects usage from local agent tools and pushes it to the dashboard."""

    def __init__(self, config: CollectorConfig, device: DeviceInfo | None = None):
        self.config = config
        if device is None:
            device, _ = resolve_device_info(config)
        self.device = device

    def run_usage_command(self, agent_type: str) -> str:
        command = resolve_command(agent_type)
        logger.debug(f"Running {' '.join(command)}")
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                check=True,
                timeout=COMMAND_TIMEOUT_SECONDS,
                stdin=subprocess.DEVNULL,
            )
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip().splitlines()
            detail = stderr[-1] if stderr else f"exit code {e.returncode}"
            raise UsageCollectionError(agent_type, f"command failed: {detail}") from e
        except subprocess.TimeoutExpired as e:
            raise UsageCollectionError(
                agent_type, f"command timed out after {COMMAND_TIMEOUT_SECONDS}s"
            ) from e
        except OSError as e:
            raise UsageCollectionError(agent_type, str(e)) from e
        return completed.stdout

    def collect_usage_data(self, agent_type: str) -> UsageData:
        """Run the agent's usage command and normalize its daily records."""
        spec = get_agent(agent_type)
        logger.info(f"Collecting {spec.label} usage data...")

        try:
            stdout = self.run_usage_command(agent_type)
            daily = parse_usage_output(stdout)
        except UsageCollectionError:
            raise
        except CollectorError as e:
            raise UsageCollectionError(agent_type, str(e)) from e
        except ValueError as e:
            raise UsageCollectionError(agent_type, str(e)) from e

        device = self.device.model_copy(update={"agent_type": agent_type})
        logger.info(
            f"Collected {len(daily)} daily {spec.label} records for "
            f"{device.device_name} ({device.device_id})"
        )
        return UsageData(device=device, daily=daily, totals=compute_totals(daily))

    def collect_all(self, agent_types: list[str] | None = None) -> list[AgentOutcome]:
        """Collect every configured agent; one agent failing doesn't stop the rest."""
        outcomes = []
        for agent_type in agent_types or self.config.agent_types:
            try:
                data = self.collect_usage_data(agent_type)
            except (CollectorError, ValueError) as e:
                logger.error(str(e))
                outcomes.append(AgentOutcome(agent_type=agent_type, error=str(e)))
                continue
            outcomes.append(AgentOutcome(agent_type=agent_type, data=data))
        return outcomes

    def sync_data(self, data: UsageData, max_retries: int | None = None) -> SyncResult:
        """POST usage to the dashboard, retrying transient failures.

        401/403 fail immediately. Anything else is retried after a fixed
        ``retry_delay`` until ``max_retries`` attempts have been made.
        Per-record errors in a successful response are logged, not raised.
        """
        attempts = max_retries if max_retries is not None else self.config.max_retries
        delay_seconds = self.config.retry_delay / 1000
        payload = data.to_payload()
        headers = {"Content-Type": "application/json", "x-api-key": self.config.api_key}
        last_error = "no attempt made"

        for attempt in range(1, attempts + 1):
            logger.info(f"Syncing data (attempt {attempt}/{attempts})...")
            try:
                response = requests.post(
                    self.config.endpoint,
                    json=payload,
                    headers=headers,
                    timeout=self.config.timeout,
                )
                if response.status_code in AUTH_FAILURE_STATUSES:
                    raise SyncAuthenticationError(
                        response.status_code, _error_message(response)
                    )
                if response.status_code != HTTPStatus.OK:
                    last_error = f"HTTP {response.status_code} - {_error_message(response)}"
                else:
                    result = SyncResult.model_validate(response.json())
                    if result.success:
                        self._log_sync_result(result)
                        return result
                    last_error = f"server reported failure: {response.text}"
            except SyncAuthenticationError as e:
                logger.error(str(e))
                raise
            except requests.exceptions.RequestException as e:
                last_error = str(e)
            except ValueError as e:
                # Non-JSON body or a response that doesn't look like a SyncResult
                last_error = f"unexpected response: {e}"

            logger.warning(f"Sync failed (attempt {attempt}/{attempts}): {last_error}")
            if attempt < attempts:
                logger.info(f"Retrying in {self.config.retry_delay}ms...")
                time.sleep(delay_seconds)

        raise SyncError(attempts, last_error)

    @staticmethod
    def _log_sync_result(result: SyncResult) -> None:
        logger.info(f"Successfully synced {result.processed} records")
        errors = result.errors
        if errors:
            logger.warning(f"{len(errors)} records had errors:")
            for error in errors:
                logger.warning(f"  - {error.date}: {error.message}")

    def run(self, dry_run: bool = False, agent_types: list[str] | None = None) -> RunReport:
        """Collect every agent, then sync each successful collection."""
        report = RunReport(outcomes=self.collect_all(agent_types), dry_run=dry_run)
        if dry_run:
            return report

        for outcome in report.outcomes:
            if not outcome.ok:
                continue
            try:
                outcome.sync_result = self.sync_data(outcome.data)
            except CollectorError as e:
                logger.error(f"{outcome.agent_type}: {e}")
                outcome.error = str(e)
        return report
