"""
Tests for the HTTP API and the dashboard aggregates.
"""

import unittest
import os
import sys
import tempfile
import shutil
from datetime import datetime, timedelta, timezone
from unittest.mock import patch, MagicMock

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from fastapi.testclient import TestClient

from src.models import SentimentAssessment


def make_provider():
    provider = MagicMock()
    provider.assess_sentiment.return_value = SentimentAssessment(sentiment="negative", score=-0.6)
    provider.complete.return_value = "Customer reports an outage"
    return provider


class ApiTestCase(unittest.TestCase):

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.original_dir = os.getcwd()
        os.chdir(self.test_dir)

        from src.api import create_app
        from src.storage import FeedbackRepository
        from src.workflow import EnrichmentWorkflow

        self.repository = FeedbackRepository.from_url(f"sqlite:///{os.path.join(self.test_dir, 'feedback.db')}")
        self.workflow = EnrichmentWorkflow.build(make_provider(), self.repository)
        self.importer_factory = None
        self.client = TestClient(create_app(
            self.repository, self.workflow,
            importer_factory=lambda intake: self.importer_factory(intake),
        ))

    def tearDown(self):
        self.workflow.shutdown()
        self.repository.engine.dispose()
        os.chdir(self.original_dir)
        shutil.rmtree(self.test_dir)

    def submit(self, content, tier="free", source="support"):
        response = self.client.post("/api/feedback", json={
            "source": source, "content": content, "customer_tier": tier, "author": "alice",
        })
        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        self.workflow.wait(body["run_handle"], timeout=30)
        return body


class TestFeedbackEndpoints(ApiTestCase):

    def test_submit_enriches_and_lists(self):
        response = self.client.post("/api/feedback", json={
            "source": "support",
            "content": "Production is down, this is urgent, we are losing customers!",
            "customer_tier": "Enterprise",
        })
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "processing")
        self.assertEqual(sorted(body), ["id", "run_handle", "status"])

        self.workflow.wait(body["run_handle"], timeout=30)

        run = self.client.get(f"/api/runs/{body['run_handle']}").json()
        self.assertEqual(run["status"], "complete")
        self.assertEqual(run["run_handle"], body["run_handle"])
        self.assertEqual(run["completed_steps"][-1], "store_results")

        items = self.client.get("/api/feedback").json()
        self.assertEqual(len(items), 1)
        item = items[0]
        self.assertEqual(item["id"], body["id"])
        self.assertEqual(item["customer_tier"], "enterprise")
        self.assertEqual(item["urgency"], "critical")
        self.assertEqual(item["sentiment"], "negative")
        self.assertIn("reliability", item["themes"])
        self.assertEqual(item["arr_estimate"], 50000)
        self.assertIsNotNone(item["processed_at"])

    def test_list_ordered_by_priority_and_filtered(self):
        low = self.submit("The docs guide is confusing", tier="free", source="github")
        high = self.submit("Our production API is down", tier="enterprise", source="support")

        items = self.client.get("/api/feedback").json()
        self.assertEqual([i["id"] for i in items], [high["id"], low["id"]])
        self.assertGreater(items[0]["priority_score"], items[1]["priority_score"])

        by_source = self.client.get("/api/feedback", params={"source": "github"}).json()
        self.assertEqual([i["id"] for i in by_source], [low["id"]])

        by_theme = self.client.get("/api/feedback", params={"theme": "documentation"}).json()
        self.assertEqual([i["id"] for i in by_theme], [low["id"]])

        by_urgency = self.client.get("/api/feedback", params={"urgency": "critical"}).json()
        self.assertEqual([i["id"] for i in by_urgency], [high["id"]])

    def test_duplicate_submission_conflict(self):
        first = self.submit("Billing charged me twice")
        response = self.client.post("/api/feedback", json={"content": "Billing charged me twice"})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["id"], first["id"])
        self.assertIn("error", response.json())

    def test_blank_content_rejected(self):
        response = self.client.post("/api/feedback", json={"content": "   "})
        self.assertEqual(response.status_code, 422)

    def test_unknown_run(self):
        response = self.client.get("/api/runs/nope")
        self.assertEqual(response.status_code, 404)

    def test_themes_endpoint(self):
        self.submit("Pricing is too expensive for startups")
        self.assertEqual(self.client.get("/api/themes").status_code, 400)

        items = self.client.get("/api/themes", params={"theme": "pricing"}).json()
        self.assertEqual(len(items), 1)

    def test_clear(self):
        self.submit("First item about docs")
        self.submit("Second item about billing")

        response = self.client.post("/api/clear")
        self.assertEqual(response.json(), {"success": True, "deleted": 2})
        self.assertEqual(self.client.get("/api/feedback").json(), [])


class TestImportEndpoint(ApiTestCase):

    def test_import_without_credentials_is_configuration_error(self):
        from src.api import create_app

        client = TestClient(create_app(self.repository, self.workflow))
        with patch.dict(os.environ, {"SPREADSHEET_ID": "", "SHEETS_API_KEY": ""}):
            response = client.post("/api/import")

        self.assertEqual(response.status_code, 400)
        self.assertIn("not configured", response.json()["error"])

    def test_import_reports_per_source_counts(self):
        from src.importer import IngestionImporter

        class Sheets:
            def fetch_rows(self, sheet_name):
                return [["Feedback", "Author", "Tier"], [f"{sheet_name} feedback item", "x", "pro"]]

        self.importer_factory = lambda intake: IngestionImporter(
            intake, Sheets(), {"Support": "support", "Discord": "discord"}
        )
        response = self.client.post("/api/import")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["imported"], 2)
        self.assertEqual(body["sources"], {"support": 1, "discord": 1})
        self.assertEqual(body["message"], "Imported 2 items")


class TestInsights(unittest.TestCase):

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        from src.storage import FeedbackRepository
        self.repository = FeedbackRepository.from_url(f"sqlite:///{os.path.join(self.test_dir, 'feedback.db')}")

    def tearDown(self):
        self.repository.engine.dispose()
        shutil.rmtree(self.test_dir)

    def add(self, id_, tier, urgency=None, sentiment=None, themes=None, priority=None, days=0):
        from src.storage import FeedbackRecord
        from src.taxonomy import arr_for_tier

        now = datetime(2025, 6, 10, 12, 0, tzinfo=timezone.utc)
        self.repository.create(FeedbackRecord(
            id=id_, source="support" if tier != "free" else "discord", content=id_, content_hash=id_,
            customer_tier=tier, arr_estimate=arr_for_tier(tier),
            created_at=(now - timedelta(days=days)).isoformat(),
        ))
        if urgency:
            self.repository.save_enrichment(
                id_, sentiment=sentiment, sentiment_score=-0.5 if sentiment == "negative" else 0.5,
                urgency=urgency, themes=themes or ["general"], summary=id_, priority_score=priority,
            )
        return now

    def test_aggregates(self):
        from src.insights import InsightsAggregator

        self.add("a", "enterprise", "critical", "negative", ["reliability"], 9.1)
        self.add("b", "pro", "high", "negative", ["reliability", "pricing"], 6.5, days=2)
        self.add("c", "free", "low", "positive", ["features"], 1.5, days=30)
        now = self.add("d", "free")  # still processing

        insights = InsightsAggregator(self.repository).build(now=now)

        stats = insights["stats"]
        self.assertEqual(stats["total"], 4)
        self.assertEqual(stats["critical"], 1)
        self.assertEqual(stats["negative"], 2)
        self.assertEqual(stats["processing"], 1)
        self.assertEqual(insights["arr_at_risk"], 55000)

        tiers = {t["customer_tier"]: t for t in insights["by_tier"]}
        self.assertEqual(tiers["enterprise"]["arr_at_risk"], 50000)
        self.assertEqual(tiers["free"]["count"], 2)

        self.assertEqual(insights["top_themes"][0], {"theme": "reliability", "count": 2})
        self.assertEqual([s["urgency"] for s in insights["severity_distribution"]], ["critical", "high", "low"])
        self.assertEqual([i["id"] for i in insights["high_priority"]], ["a", "b", "c"])
        self.assertEqual([i["id"] for i in insights["recent_critical"]], ["a"])
        # Item "c" is older than the 7-day window
        self.assertEqual(sum(day["total"] for day in insights["temporal"]), 3)


if __name__ == "__main__":
    unittest.main()
