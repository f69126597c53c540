#!/usr/bin/env python3
"""
usage-tui - terminal dashboard for coding agent usage.
Built with Textual; reads everything from a single /api/usage-stats call.
"""
import argparse
import asyncio
import os
from datetime import date
from http import HTTPStatus

import requests
from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import (
    Button, DataTable, Footer, Header, Input, LoadingIndicator, Select, Static,
    TabbedContent, TabPane,
)

from usage_tui.metrics import (
    TIME_RANGES,
    build_device_series,
    device_label,
    filter_by_time_range,
    format_currency,
    format_savings,
    paginate,
    plan_comparison,
    user_status,
)

DEFAULT_BASE_URL = "http://localhost:8000"
STATS_PATH = "/api/usage-stats"
PAGE_SIZE = 10

TIME_RANGE_LABELS = {
    "all": "All time",
    "7d": "Last 7 days",
    "14d": "Last 14 days",
    "30d": "Last 30 days",
    "custom": "Custom range",
}


class UsageAPI:
    """Client for the dashboard's stats endpoint"""

    def __init__(self, base_url: str, timeout: int = 30):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def fetch_stats(self) -> tuple[bool, dict | str]:
        url = f"{self.base_url}{STATS_PATH}"
        try:
            response = await asyncio.to_thread(requests.get, url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            return False, f"Request failed: {e}"

        if response.status_code != HTTPStatus.OK:
            error_msg = f"HTTP {response.status_code}"
            try:
                error_data = response.json()
                error_msg += f": {error_data.get('error') or error_data.get('detail') or response.text}"
            except ValueError:
                error_msg += f": {response.text}"
            return False, error_msg
        try:
            return True, response.json()
        except ValueError:
            return False, "Server returned invalid JSON"


class OverviewTab(Static):
    """Headline cards and the subscription value analysis"""

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static("📊 Overview", classes="tab-title")
            with Horizontal(classes="cards"):
                yield Static(id="card-cycle", classes="card")
                yield Static(id="card-total", classes="card")
                yield Static(id="card-30d", classes="card")
                yield Static(id="card-status", classes="card")
            yield Static("💰 Subscription Value Analysis", classes="tab-title")
            with Horizontal(classes="cards"):
                yield Static(id="plan-current", classes="card")
                yield Static(id="plan-100", classes="card")
                yield Static(id="plan-200", classes="card")
            yield Static(id="cumulative", classes="card")

    def show(self, stats: dict) -> None:
        cycle = stats["billingCycle"]
        current = stats["currentCycle"]
        previous = stats["previousCycle"]
        totals = stats["totals"]
        last_30 = stats["last30Days"]
        cumulative = stats["cumulative"]

        self.query_one("#card-cycle", Static).update(
            f"Current cycle ({cycle['label']})\n"
            f"[b]{format_currency(current['totalCost'])}[/b]\n"
            f"{cycle['daysRemaining']} days remaining, "
            f"previous {format_currency(previous['totalCost'])}"
        )
        self.query_one("#card-total", Static).update(
            f"All time\n[b]{format_currency(totals['totalCost'])}[/b]\n"
            f"{totals['totalTokens']:,} tokens over {totals['activeDays']} active days"
        )
        self.query_one("#card-30d", Static).update(
            f"Last 30 days\n[b]{format_currency(last_30['totalCost'])}[/b]\n"
            f"{format_currency(last_30['avgDailyCost'])} per active day"
        )
        status = user_status(cumulative["avgMonthlyCost"])
        self.query_one("#card-status", Static).update(
            f"{status.tier}\n[b]{format_currency(cumulative['avgMonthlyCost'])}/mo[/b]\n{status.subtitle}"
        )

        comparison = plan_comparison(current["totalCost"])
        self.query_one("#plan-current", Static).update(
            f"API value consumed\n[b]{format_currency(comparison.current_cycle_cost)}[/b]\n"
            f"{comparison.recommendation}, {current['activeDays']} active days"
        )
        for plan in comparison.plans:
            verdict = "Extra value gained" if plan.gained else "Remaining to break even"
            self.query_one(f"#plan-{plan.plan}", Static).update(
                f"vs ${plan.plan}/month plan\n[b]{format_savings(plan.value)}[/b]\n"
                f"{verdict} ({plan.roi_percent:.0f}% ROI)"
            )

        self.query_one("#cumulative", Static).update(
            f"Since {cumulative['subscriptionStartDate']}: "
            f"{format_currency(cumulative['totalCostAllTime'])} of API value over "
            f"{cumulative['totalMonths']} months on the ${cumulative['subscriptionPlan']} plan "
            f"({format_savings(cumulative['totalSavedVsPlan'])} vs subscription cost)"
        )


class DailyTab(Static):
    """Daily usage table with time-range filter and pagination"""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.records: list[dict] = []
        self.page = 1

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static("📅 Daily Usage", classes="tab-title")
            with Horizontal(classes="filter-bar"):
                yield Select(
                    [(TIME_RANGE_LABELS[value], value) for value in TIME_RANGES],
                    value="all",
                    allow_blank=False,
                    id="time-range",
                )
                yield Input(placeholder="From YYYY-MM-DD", id="custom-start")
                yield Input(placeholder="To YYYY-MM-DD", id="custom-end")
            yield DataTable(id="daily-table")
            with Horizontal(classes="pagination"):
                yield Button("◀ Prev", id="prev-page", variant="default")
                yield Static(id="page-label")
                yield Button("Next ▶", id="next-page", variant="default")

    def on_mount(self) -> None:
        table = self.query_one("#daily-table", DataTable)
        table.zebra_stripes = True
        table.add_columns("Date", "Cost", "Tokens", "Input", "Output", "Cache Create", "Cache Read")

    def show(self, stats: dict) -> None:
        self.records = stats["daily"]
        self.page = 1
        self.render_page()

    def filtered_records(self) -> list[dict]:
        time_range = self.query_one("#time-range", Select).value
        custom_start = _parse_date(self.query_one("#custom-start", Input).value)
        custom_end = _parse_date(self.query_one("#custom-end", Input).value)
        records = filter_by_time_range(self.records, time_range, date.today(), custom_start, custom_end)
        # Newest first in the table
        return list(reversed(records))

    def render_page(self) -> None:
        records = self.filtered_records()
        rows, page_count = paginate(records, self.page, PAGE_SIZE)
        self.page = min(self.page, page_count)

        table = self.query_one("#daily-table", DataTable)
        table.clear()
        for record in rows:
            table.add_row(
                record["date"],
                format_currency(record["totalCost"]),
                f"{record['totalTokens']:,}",
                f"{record['inputTokens']:,}",
                f"{record['outputTokens']:,}",
                f"{record['cacheCreationTokens']:,}",
                f"{record['cacheReadTokens']:,}",
            )
        label = f"Page {self.page} of {page_count}" if records else "No usage in this range"
        self.query_one("#page-label", Static).update(label)

    @on(Select.Changed, "#time-range")
    @on(Input.Submitted)
    def handle_filter_changed(self) -> None:
        self.page = 1
        self.render_page()

    @on(Button.Pressed, "#prev-page")
    def handle_prev(self) -> None:
        self.page = max(self.page - 1, 1)
        self.render_page()

    @on(Button.Pressed, "#next-page")
    def handle_next(self) -> None:
        self.page += 1
        self.render_page()


class DevicesTab(Static):
    """Per-device totals and daily cost by device"""

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static("💻 Devices", classes="tab-title")
            yield DataTable(id="devices-table")
            yield Static("Daily cost by device", classes="tab-title")
            yield DataTable(id="device-series-table")

    def on_mount(self) -> None:
        table = self.query_one("#devices-table", DataTable)
        table.zebra_stripes = True
        table.add_columns("Device", "Agents", "Records", "Total Cost", "Last Active")

    def show(self, stats: dict) -> None:
        table = self.query_one("#devices-table", DataTable)
        table.clear()
        for device in stats["devices"]:
            table.add_row(
                device_label(device),
                ", ".join(device.get("agentTypes") or []) or "-",
                str(device["recordCount"]),
                format_currency(device["totalCost"]),
                device.get("lastActiveDate") or "Never",
            )

        labels, rows = build_device_series(stats["deviceData"], stats["devices"])
        series = self.query_one("#device-series-table", DataTable)
        series.clear(columns=True)
        series.add_columns("Date", *labels)
        for row in reversed(rows):
            series.add_row(row["date"], *(format_currency(row[label]) for label in labels))


class AgentsTab(Static):
    """Daily usage split by agent"""

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static("🤖 Agents", classes="tab-title")
            yield DataTable(id="agents-table")

    def on_mount(self) -> None:
        table = self.query_one("#agents-table", DataTable)
        table.zebra_stripes = True
        table.add_columns("Date", "Agent", "Cost", "Tokens", "Credits")

    def show(self, stats: dict) -> None:
        table = self.query_one("#agents-table", DataTable)
        table.clear()
        for record in reversed(stats["agentData"]):
            table.add_row(
                record["date"],
                record["agentType"],
                format_currency(record["totalCost"]),
                f"{record['totalTokens']:,}",
                f"{record.get('credits', 0):,.2f}",
            )


class UsageApp(App):
    """Main usage dashboard application"""

    CSS = """
    .tab-title { text-style: bold; padding: 1 0 0 0; }
    .cards { height: auto; }
    .card { border: round $accent; padding: 0 1; width: 1fr; height: auto; }
    .filter-bar, .pagination { height: auto; }
    #time-range { width: 24; }
    #custom-start, #custom-end { width: 20; }
    #page-label { width: auto; padding: 1 2; }
    #status { padding: 1 2; }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", priority=True),
        Binding("f1", "toggle_dark", "Toggle Dark Mode"),
    ]

    def __init__(self, base_url: str):
        super().__init__()
        self.api = UsageAPI(base_url)
        self.stats: dict | None = None
        self.title = "Agent Usage Tracker"
        self.sub_title = base_url

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Container():
            yield LoadingIndicator(id="loading")
            yield Static(id="status")
            with TabbedContent(initial="overview", id="tabs"):
                with TabPane("📊 Overview", id="overview"):
                    yield OverviewTab()
                with TabPane("📅 Daily", id="daily"):
                    yield DailyTab()
                with TabPane("💻 Devices", id="devices"):
                    yield DevicesTab()
                with TabPane("🤖 Agents", id="agents"):
                    yield AgentsTab()
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#tabs").display = False
        self.query_one("#status").display = False
        self.call_later(self.load_stats)

    async def load_stats(self) -> None:
        success, result = await self.api.fetch_stats()
        self.query_one("#loading").display = False
        status = self.query_one("#status", Static)

        if not success:
            status.update(f"❌ Failed to load usage statistics: {result}")
            status.display = True
            self.notify(str(result), severity="error")
            return

        self.stats = result
        if not result.get("daily") and not result.get("devices"):
            status.update("No usage data yet. Run `usage-collector sync` on a device to get started.")
            status.display = True
            return

        self.query_one("#tabs").display = True
        for tab in (OverviewTab, DailyTab, DevicesTab, AgentsTab):
            self.query_one(tab).show(result)

    def action_toggle_dark(self) -> None:
        self.theme = "textual-light" if self.theme == "textual-dark" else "textual-dark"


def _parse_date(value: str) -> date | None:
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="usage-tui", description="Terminal usage dashboard")
    parser.add_argument(
        "--url",
        default=os.getenv("NEXT_PUBLIC_APP_URL", DEFAULT_BASE_URL),
        help="Dashboard base URL (default: $NEXT_PUBLIC_APP_URL or http://localhost:8000)",
    )
    args = parser.parse_args(argv)
    UsageApp(args.url).run()


if __name__ == "__main__":
    main()
