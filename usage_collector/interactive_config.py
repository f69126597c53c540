from collections.abc import Callable
from getpass import getpass
from urllib.parse import urlparse

from usage_collector.collector import UsageCollector
from usage_collector.config import (
    AGENT_OPTIONS,
    DEFAULT_SCHEDULE,
    SCHEDULE_OPTIONS,
    CollectorConfig,
    ConfigManager,
    base_url_from_endpoint,
    endpoint_from_base_url,
)
from usage_collector.device_info import resolve_device_info


def is_valid_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def parse_choices(answer: str, options: list[dict], default: list[int]) -> list[int] | None:
    """'1,3' -> [0, 2]; empty -> default; None if anything is out of range."""
    if not answer.strip():
        return default
    try:
        indexes = [int(part.strip()) - 1 for part in answer.split(",") if part.strip()]
    except ValueError:
        return None
    if not indexes or any(index < 0 or index >= len(options) for index in indexes):
        return None
    return list(dict.fromkeys(indexes))


class InteractiveConfig:
    """Question-and-answer setup for ``usage-collector config``."""

    def __init__(
        self,
        config_manager: ConfigManager,
        prompt: Callable[[str], str] = input,
        secret_prompt: Callable[[str], str] = getpass,
    ):
        self.config_manager = config_manager
        self.prompt = prompt
        self.secret_prompt = secret_prompt

    def ask(self, question: str, default: str | None = None) -> str:
        suffix = f" [{default}]" if default else ""
        answer = self.prompt(f"{question}{suffix}: ").strip()
        return answer or (default or "")

    def confirm(self, question: str, default: bool = False) -> bool:
        hint = "Y/n" if default else "y/N"
        answer = self.prompt(f"{question} ({hint}): ").strip().lower()
        if not answer:
            return default
        return answer in ("y", "yes")

    def choose(self, question: str, options: list[dict], default: list[int], multiple: bool) -> list[int]:
        print(f"\n{question}")
        for number, option in enumerate(options, 1):
            marker = "*" if number - 1 in default else " "
            print(f"  {marker} {number}. {option['label']}")
        hint = "comma-separated numbers" if multiple else "a number"
        while True:
            answer = self.prompt(f"Enter {hint} (Enter for default): ")
            indexes = parse_choices(answer, options, default)
            if indexes is not None and (multiple or len(indexes) == 1):
                return indexes
            print("❌ Invalid choice, try again.")

    def run_configuration_wizard(self) -> CollectorConfig | None:
        print("\n🔧 usage-collector Configuration Wizard")
        print("=======================================\n")

        existing = self.config_manager.load_config()
        if existing:
            print("✅ Found existing configuration")
            if not self.confirm("Do you want to reconfigure?"):
                print("Configuration unchanged.")
                return existing

        agent_values = [option["value"] for option in AGENT_OPTIONS]
        default_agents = (
            [agent_values.index(a) for a in existing.agent_types if a in agent_values]
            if existing
            else [0]
        )
        agent_indexes = self.choose(
            "Select the coding agents to track:", AGENT_OPTIONS, default_agents or [0], multiple=True
        )

        api_key = ""
        while not api_key:
            api_key = self.secret_prompt(
                "Enter your API Key" + (" (Enter to keep current)" if existing else "") + ": "
            ).strip()
            if not api_key and existing:
                api_key = existing.api_key
            if not api_key:
                print("❌ API Key is required")

        default_url = base_url_from_endpoint(existing.endpoint) if existing else "https://your-app.com"
        while True:
            base_url = self.ask("Enter your dashboard URL (domain only)", default_url)
            if is_valid_url(base_url):
                break
            print("❌ Please enter a valid URL (e.g., https://your-app.com)")

        display_name = self.ask(
            "Enter a custom device name (optional, leave empty to use system name)",
            existing.display_name if existing else None,
        )

        schedule_values = [option["value"] for option in SCHEDULE_OPTIONS]
        current_schedule = existing.schedule if existing else DEFAULT_SCHEDULE
        default_schedule = (
            schedule_values.index(current_schedule) if current_schedule in schedule_values else 3
        )
        (schedule_index,) = self.choose(
            "Select sync frequency:", SCHEDULE_OPTIONS, [default_schedule], multiple=False
        )
        schedule = SCHEDULE_OPTIONS[schedule_index]

        config = CollectorConfig(
            api_key=api_key,
            endpoint=endpoint_from_base_url(base_url),
            schedule=schedule["value"],
            schedule_label=schedule["label"],
            max_retries=existing.max_retries if existing else 3,
            retry_delay=existing.retry_delay if existing else 1000,
            device_id=existing.device_id if existing else None,
            device_name=existing.device_name if existing else None,
            display_name=display_name or None,
            agent_types=[agent_values[index] for index in agent_indexes],
        )

        print("\n🧪 Testing configuration...")
        error = self.test_configuration(config)
        if error:
            print(f"❌ Configuration test failed: {error}")
            if not self.confirm("Save configuration anyway?"):
                print("Configuration cancelled.")
                return None
        else:
            print("✅ Configuration test passed!")

        self.config_manager.save_config(config)
        print("✅ Configuration saved successfully!")
        self.print_summary(config)
        return config

    def test_configuration(self, config: CollectorConfig) -> str | None:
        """Collect once per agent; return an error message or None."""
        device, _ = resolve_device_info(config)
        collector = UsageCollector(config.model_copy(update={"max_retries": 1}), device=device)
        problems = []
        for outcome in collector.collect_all():
            label = next(o["label"] for o in AGENT_OPTIONS if o["value"] == outcome.agent_type)
            if not outcome.ok:
                problems.append(outcome.error)
            elif not outcome.data.daily:
                problems.append(f"No usage data found. Make sure you have {label} usage to sync.")
            else:
                print(f"✅ {label}: data collection test passed")
        return "; ".join(problems) if problems else None

    def print_summary(self, config: CollectorConfig) -> None:
        labels = {option["value"]: option["label"] for option in AGENT_OPTIONS}
        print("\n📋 Configuration Summary:")
        print(f"   Agents: {', '.join(labels.get(a, a) for a in config.agent_types)}")
        print(f"   API Endpoint: {config.endpoint}")
        print(f"   Sync Schedule: {config.schedule_label}")
        if config.display_name:
            print(f"   Device Display Name: {config.display_name}")
        print(f"   Config saved to: {self.config_manager.config_path}")
        print("\n💡 Start the scheduler with:")
        print("   usage-collector start")
