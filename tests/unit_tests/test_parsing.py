import json
from unittest import TestCase

from usage_collector.parsing import (
    compute_totals,
    extract_json_object,
    normalize_daily_record,
    normalize_date,
    parse_usage_output,
)

CCUSAGE_OUTPUT = json.dumps(
    {
        "daily": [
            {
                "date": "2025-01-20",
                "inputTokens": 100,
                "outputTokens": 50,
                "cacheCreationTokens": 10,
                "cacheReadTokens": 5,
                "totalTokens": 165,
                "totalCost": 1.25,
                "modelsUsed": ["claude-sonnet-4-20250514"],
            }
        ],
        "totals": {"totalCost": 1.25},
    }
)


class TestExtractJsonObject(TestCase):
    def test_skips_shell_noise(self):
        text = "Welcome to zsh!\n[oh-my-zsh] update available\n" + CCUSAGE_OUTPUT + "\nbye"
        self.assertEqual(extract_json_object(text)["daily"][0]["date"], "2025-01-20")

    def test_braces_inside_strings(self):
        text = 'noise {"daily": [], "note": "a } and a { and \\" quote"} trailing }'
        self.assertEqual(extract_json_object(text)["note"], 'a } and a { and " quote')

    def test_no_object(self):
        with self.assertRaises(ValueError):
            extract_json_object("command not found")

    def test_unterminated_object(self):
        with self.assertRaises(ValueError):
            extract_json_object('{"daily": [')


class TestNormalize(TestCase):
    def test_ccusage_record(self):
        daily = parse_usage_output(CCUSAGE_OUTPUT)

        self.assertEqual(
            daily,
            [
                {
                    "date": "2025-01-20",
                    "inputTokens": 100,
                    "outputTokens": 50,
                    "cacheCreationTokens": 10,
                    "cacheReadTokens": 5,
                    "totalTokens": 165,
                    "totalCost": 1.25,
                    "modelsUsed": ["claude-sonnet-4-20250514"],
                }
            ],
        )

    def test_codex_style_fields(self):
        record = normalize_daily_record(
            {
                "date": "Sep 18, 2025",
                "inputTokens": 1000,
                "cachedInputTokens": 400,
                "outputTokens": 200,
                "costUSD": 0.5,
                "models": {"gpt-5": {"inputTokens": 1000}},
            }
        )

        self.assertEqual(record["date"], "2025-09-18")
        self.assertEqual(record["cacheReadTokens"], 400)
        self.assertEqual(record["cacheCreationTokens"], 0)
        # No totalTokens in the source, so the components are summed
        self.assertEqual(record["totalTokens"], 1600)
        self.assertEqual(record["totalCost"], 0.5)
        self.assertEqual(record["modelsUsed"], ["gpt-5"])
        self.assertNotIn("credits", record)

    def test_amp_credits_and_model_breakdowns(self):
        record = normalize_daily_record(
            {
                "date": "2025-01-20",
                "totalTokens": 10,
                "cost": 2,
                "credits": 3.5,
                "modelBreakdowns": [{"modelName": "claude-opus-4"}, {"cost": 1}],
            }
        )

        self.assertEqual(record["credits"], 3.5)
        self.assertEqual(record["totalCost"], 2.0)
        self.assertEqual(record["modelsUsed"], ["claude-opus-4"])

    def test_garbage_numbers_become_zero(self):
        record = normalize_daily_record(
            {"date": "2025-01-20", "inputTokens": "lots", "outputTokens": None, "totalCost": "NaN"}
        )

        self.assertEqual(record["inputTokens"], 0)
        self.assertEqual(record["outputTokens"], 0)
        self.assertEqual(record["totalCost"], 0.0)

    def test_dates(self):
        self.assertEqual(normalize_date("2025-01-20"), "2025-01-20")
        self.assertEqual(normalize_date("2025-01-20T08:00:00Z"), "2025-01-20")
        self.assertEqual(normalize_date("January 5, 2025"), "2025-01-05")
        self.assertIsNone(normalize_date("yesterday"))
        self.assertIsNone(normalize_date(20250120))

    def test_missing_daily_array(self):
        with self.assertRaisesRegex(ValueError, "missing daily array"):
            parse_usage_output('{"totals": {}}')

    def test_totals(self):
        totals = compute_totals(
            [
                normalize_daily_record({"date": "2025-01-20", "inputTokens": 1, "totalCost": 0.5}),
                normalize_daily_record(
                    {"date": "2025-01-21", "outputTokens": 2, "totalCost": 0.25, "credits": 1}
                ),
            ]
        )

        self.assertEqual(totals.total_tokens, 3)
        self.assertEqual(totals.total_cost, 0.75)
        self.assertEqual(totals.credits, 1.0)
        self.assertIsNone(compute_totals([]).credits)
