"""Integration tests for the Atlas dosing MCP server."""

from __future__ import annotations

import asyncio
import json

import pytest
from fastmcp import Client

from atlas.core.config.settings import Settings
from atlas.core.server.app import create_app


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _call(client: Client, tool: str, arguments: dict) -> dict:
    """Call a tool and decode its JSON text payload."""
    async def _go():
        async with client:
            result = await client.call_tool(tool, arguments)
            return json.loads(result.content[0].text)
    return _run(_go())


ALL_EXPECTED_TOOLS = [
    "health_check",
    "next_dose",
    "skip_dose",
    "log_dose",
    "recommend_injection_site",
    "injection_site_stats",
    "evaluate_site_rotation",
    "decrement_inventory",
    "restock_inventory",
    "open_new_vial",
    "inventory_summary",
    "reconstitution_calculator",
    "reconstitution_preset",
    "dashboard_summary",
]

NOW = "2026-01-14T10:00:00"


@pytest.fixture
def client():
    """Create an MCP client connected to a fresh server."""
    return Client(create_app())


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------

def test_server_starts_and_lists_tools(client):
    """Server should start and expose all registered tools."""
    async def _check():
        async with client:
            tools = await client.list_tools()
            tool_names = [t.name for t in tools]
            for expected in ALL_EXPECTED_TOOLS:
                assert expected in tool_names, f"Missing tool: {expected}"
    _run(_check())


def test_health_check_returns_ok(client):
    """health_check tool should return status ok."""
    async def _check():
        async with client:
            result = await client.call_tool("health_check", {})
            assert "ok" in str(result)
    _run(_check())


def test_settings_override_reaches_tools():
    """Tools should use the settings passed to create_app."""
    client = Client(create_app(settings_override=Settings(default_dose_hour=20)))
    data = _call(client, "next_dose", {"schedule_type": "daily", "now": NOW})
    assert data["next_due"] == "2026-01-14T20:00:00"


def test_site_resource_lists_body_parts(client):
    async def _check():
        async with client:
            contents = await client.read_resource("sites://injection/subq")
            data = json.loads(contents[0].text)
            assert data["category"] == "subq"
            assert data["site_count"] == 16
            assert "Love Handles" in data["body_parts"]
    _run(_check())


def test_presets_resource(client):
    async def _check():
        async with client:
            contents = await client.read_resource("reconstitution://presets")
            data = json.loads(contents[0].text)
            assert data["preset_count"] == 7
    _run(_check())


def test_prompts_registered(client):
    async def _check():
        async with client:
            prompts = await client.list_prompts()
            names = [p.name for p in prompts]
            assert "log_dose_prompt" in names
            assert "reconstitution_walkthrough_prompt" in names

            result = await client.get_prompt("log_dose_prompt", {"compound": "BPC-157"})
            assert "BPC-157" in result.messages[0].content.text
    _run(_check())


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------

class TestScheduleTools:
    def test_next_dose_daily(self, client):
        data = _call(client, "next_dose", {"schedule_type": "daily", "now": NOW, "upcoming_count": 2})
        assert data["status"] == "ok"
        assert data["schedule"] == "Daily"
        assert data["next_due"] == "2026-01-15T08:00:00"
        assert data["is_due_today"] is False
        assert data["upcoming"] == ["2026-01-15T08:00:00", "2026-01-16T08:00:00"]

    def test_next_dose_every_three_and_a_half_days(self, client):
        data = _call(client, "next_dose", {
            "schedule_type": "everyXDays",
            "interval_days": 3,
            "start_date": "2026-01-01T08:00:00",
            "now": NOW,
            "upcoming_count": 3,
        })
        assert data["schedule"] == "Every 3.5 days"
        assert data["upcoming"] == [
            "2026-01-15T08:00:00",
            "2026-01-18T08:00:00",
            "2026-01-22T08:00:00",
        ]

    def test_next_dose_as_needed(self, client):
        data = _call(client, "next_dose", {"schedule_type": "asNeeded", "now": NOW})
        assert data["next_due"] is None
        assert data["upcoming"] == []

    def test_next_dose_bad_schedule(self, client):
        data = _call(client, "next_dose", {"schedule_type": "hourly", "now": NOW})
        assert data["status"] == "error"
        assert "hourly" in data["message"]

    def test_next_dose_bad_weekdays(self, client):
        data = _call(client, "next_dose", {"schedule_type": "specificDays", "weekdays": [9], "now": NOW})
        assert data["status"] == "error"
        assert data["error_type"] == "ScheduleValidationError"

    def test_skip_dose(self, client):
        data = _call(client, "skip_dose", {
            "compound_id": "bpc-157",
            "schedule_type": "everyXDays",
            "interval_days": 2,
            "last_dose_date": "2026-01-12T08:00:00",
            "now": NOW,
        })
        assert data["status"] == "skipped"
        assert data["dose_event"]["dosage_amount"] == 0
        assert data["dose_event"]["notes"] == "Dose skipped"
        assert data["last_dose_date"] == NOW
        assert data["next_due"] == "2026-01-16T08:00:00"


# ---------------------------------------------------------------------------
# Dose logging
# ---------------------------------------------------------------------------

class TestLogDose:
    def test_full_injectable_flow(self, client):
        data = _call(client, "log_dose", {
            "compound_id": "bpc-157",
            "compound_category": "peptide",
            "dosage_amount": 250,
            "dosage_unit": "mcg",
            "schedule_type": "everyXDays",
            "interval_days": 3,
            "start_date": "2026-01-01T08:00:00",
            "injection_site": "left_belly_upper",
            "vial_count": 2,
            "vial_size_mg": 5,
            "remaining_in_current_vial_mg": 1.0,
            "now": NOW,
        })
        assert data["status"] == "ok"
        assert data["dose_event"]["dosage"] == "250 mcg"
        assert data["dose_event"]["injection_site"] == "left_belly_upper"
        assert data["last_dose_date"] == NOW
        assert data["next_due"] == "2026-01-15T08:00:00"
        assert data["inventory"]["success"] is True
        assert data["inventory"]["remaining_in_current_vial_mg"] == pytest.approx(0.75)
        assert data["next_site"]["site"] == "right_love_handle_lower"

    def test_oral_has_no_site_or_inventory(self, client):
        data = _call(client, "log_dose", {
            "compound_id": "vitamin-d",
            "compound_category": "supplement",
            "dosage_amount": 1,
            "dosage_unit": "caps",
            "schedule_type": "daily",
            "vial_count": 2,
            "vial_size_mg": 5,
            "now": NOW,
        })
        assert data["status"] == "ok"
        assert data["inventory"] is None
        assert data["next_site"] is None

    def test_site_from_wrong_category(self, client):
        data = _call(client, "log_dose", {
            "compound_id": "bpc-157",
            "compound_category": "peptide",
            "dosage_amount": 250,
            "dosage_unit": "mcg",
            "schedule_type": "daily",
            "injection_site": "glute_left",
            "now": NOW,
        })
        assert data["status"] == "error"
        assert "subq" in data["message"]

    def test_negative_amount_rejected(self, client):
        data = _call(client, "log_dose", {
            "compound_id": "test-e",
            "compound_category": "ped",
            "dosage_amount": -1,
            "schedule_type": "daily",
            "vial_count": 2,
            "vial_size_mg": 10,
            "now": NOW,
        })
        assert data["status"] == "error"
        assert "dosage_amount must be positive" in data["message"]

    def test_naive_history_on_local_clock(self, client):
        data = _call(client, "log_dose", {
            "compound_id": "test-e",
            "compound_category": "ped",
            "dosage_amount": 100,
            "schedule_type": "daily",
            "injection_site": "glute_left",
            "site_history": [{"site": "delt_right", "timestamp": "2026-01-15T08:00:00"}],
        })
        assert data["status"] == "ok"
        assert data["next_site"]["site"] not in ("glute_left", "delt_right")


# ---------------------------------------------------------------------------
# Rotation
# ---------------------------------------------------------------------------

class TestRotationTools:
    def test_recommend_empty_history(self, client):
        data = _call(client, "recommend_injection_site", {"category": "im", "now": NOW})
        assert data["recommended"]["site"] == "glute_left"
        assert data["last_used"] is None

    def test_recommend_from_history(self, client):
        data = _call(client, "recommend_injection_site", {
            "category": "ped",
            "site_history": [{"site": "glute_left", "timestamp": "2026-01-13T10:00:00"}],
            "now": NOW,
        })
        assert data["category"] == "im"
        assert data["recommended"]["site"] == "delt_right"
        assert data["last_used"]["site"] == "glute_left"

    def test_naive_history_on_local_clock(self, client):
        data = _call(client, "recommend_injection_site", {
            "category": "ped",
            "site_history": [{"site": "glute_left", "timestamp": "2026-01-15T08:00:00"}],
        })
        assert data["status"] == "ok"
        assert data["recommended"]["site"] == "delt_right"

    def test_bad_category(self, client):
        data = _call(client, "recommend_injection_site", {"category": "oral", "now": NOW})
        assert data["status"] == "error"

    def test_site_stats(self, client):
        data = _call(client, "injection_site_stats", {
            "category": "im",
            "site_history": [
                {"site": "quad_left", "timestamp": "2026-01-12T08:00:00"},
                {"site": "quad_left", "timestamp": "2026-01-10T08:00:00"},
            ],
        })
        assert len(data["sites"]) == 8
        assert data["sites"][-1]["site"] == "quad_left"
        assert data["sites"][-1]["count"] == 2
        assert data["sites"][-1]["last_used"] == "2026-01-12T08:00:00"

    def test_evaluate_rotation(self, client):
        data = _call(client, "evaluate_site_rotation", {
            "category": "im",
            "site_history": [
                {"site": "glute_left", "timestamp": "2026-01-12T08:00:00"},
                {"site": "glute_left", "timestamp": "2026-01-10T08:00:00"},
                {"site": "glute_left", "timestamp": "2026-01-08T08:00:00"},
            ],
        })
        assert data["is_good"] is False


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------

class TestInventoryTools:
    def test_decrement(self, client):
        data = _call(client, "decrement_inventory", {
            "dose_mg": 25,
            "vial_count": 3,
            "vial_size_mg": 100,
            "remaining_in_current_vial_mg": 10,
        })
        assert data["success"] is True
        assert data["inventory"]["vial_count"] == 2
        assert data["inventory"]["remaining_in_current_vial_mg"] == 85

    def test_decrement_out_of_stock(self, client):
        data = _call(client, "decrement_inventory", {
            "dose_mg": 25,
            "vial_count": 1,
            "vial_size_mg": 100,
            "remaining_in_current_vial_mg": 0,
        })
        assert data["status"] == "insufficient_stock"
        assert data["success"] is False
        assert data["inventory"]["stock_status"] == "Low stock (1 vial)"

    def test_decrement_negative_dose(self, client):
        data = _call(client, "decrement_inventory", {"dose_mg": -1, "vial_count": 2, "vial_size_mg": 10})
        assert data["status"] == "error"
        assert data["error_type"] == "ValueError"
        assert "dose_mg must be positive" in data["message"]

    def test_restock(self, client):
        data = _call(client, "restock_inventory", {"vials_added": 4, "vial_count": 1, "vial_size_mg": 10})
        assert data["inventory"]["vial_count"] == 5

    def test_restock_negative(self, client):
        data = _call(client, "restock_inventory", {"vials_added": -1, "vial_count": 1, "vial_size_mg": 10})
        assert data["status"] == "error"
        assert data["error_type"] == "InventoryValidationError"

    def test_open_new_vial(self, client):
        data = _call(client, "open_new_vial", {
            "vial_count": 3,
            "vial_size_mg": 10,
            "remaining_in_current_vial_mg": 2,
        })
        assert data["inventory"]["vial_count"] == 2
        assert data["inventory"]["remaining_in_current_vial_mg"] == 10

    def test_summary(self, client):
        data = _call(client, "inventory_summary", {
            "vial_count": 3,
            "vial_size_mg": 100,
            "remaining_in_current_vial_mg": 40,
            "dose_mg": 25,
            "interval_days": 3.5,
        })
        assert data["remaining"] == "240mg remaining"
        assert data["remaining_doses"] == 9
        assert data["days_of_supply"] == 31

    def test_invalid_snapshot(self, client):
        data = _call(client, "inventory_summary", {
            "vial_count": 1,
            "vial_size_mg": 10,
            "remaining_in_current_vial_mg": 20,
        })
        assert data["status"] == "error"


# ---------------------------------------------------------------------------
# Reconstitution
# ---------------------------------------------------------------------------

class TestReconstitutionTools:
    def test_calculator(self, client):
        data = _call(client, "reconstitution_calculator", {
            "vial_size": 5,
            "desired_dose": 250,
            "dose_unit": "mcg",
        })
        assert data["status"] == "ok"
        assert data["result"]["diluent_volume_ml"] == pytest.approx(4.0)
        assert data["result"]["syringe_units"] == 20
        assert "Add 4.00 ml" in data["explanation"]

    def test_dose_exceeds_vial(self, client):
        data = _call(client, "reconstitution_calculator", {"vial_size": 2, "desired_dose": 5})
        assert data["status"] == "error"
        assert data["error_type"] == "DoseExceedsVialError"
        assert data["message"] == "Dose cannot exceed vial size"

    def test_unknown_unit(self, client):
        data = _call(client, "reconstitution_calculator", {
            "vial_size": 5,
            "desired_dose": 1,
            "vial_unit": "grams",
        })
        assert data["status"] == "error"

    def test_preset(self, client):
        data = _call(client, "reconstitution_preset", {"name": "hgh"})
        assert data["preset"] == "HGH (10 IU)"
        assert data["result"]["diluent_volume_ml"] == pytest.approx(1.0)

    def test_unknown_preset(self, client):
        data = _call(client, "reconstitution_preset", {"name": "unobtainium"})
        assert data["status"] == "error"
        assert "BPC-157 (5mg)" in data["available"]


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

class TestDashboardSummary:
    def test_summary(self, client):
        data = _call(client, "dashboard_summary", {
            "regimens": [
                {
                    "compound_id": "vitamin-d",
                    "schedule_type": "daily",
                    "notification_time": "08:00",
                    "last_dose_date": "2026-01-14T08:05:00",
                },
                {"compound_id": "bpc-157", "schedule_type": "daily", "notification_time": "20:00"},
                {
                    "compound_id": "test-e",
                    "schedule_type": "everyXDays",
                    "interval_days": 5,
                    "start_date": "2026-01-12T08:00:00",
                },
                {"compound_id": "ibuprofen", "schedule_type": "asNeeded"},
                {"compound_id": "old", "schedule_type": "daily", "is_active": False},
            ],
            "dose_log": [
                {"compound_id": "test-e", "timestamp": "2026-01-10T09:00:00", "dosage_amount": 125},
                {"compound_id": "test-e", "timestamp": "2026-01-11T09:00:00", "dosage_amount": 125},
                {
                    "compound_id": "bpc-157",
                    "timestamp": "2026-01-13T20:00:00",
                    "dosage_amount": 0,
                    "notes": "Dose skipped",
                },
                {"compound_id": "vitamin-d", "timestamp": "2026-01-14T08:05:00", "dosage_amount": 1},
            ],
            "inventories": [
                {"compound_id": "bpc-157", "vial_count": 1, "vial_size_mg": 5},
                {"compound_id": "test-e", "vial_count": 5, "vial_size_mg": 250},
                {"compound_id": "tb-500", "vial_count": 0, "vial_size_mg": 5, "remaining_in_current_vial_mg": 0},
            ],
            "now": NOW,
        })
        assert data["status"] == "ok"
        assert [d["compound_id"] for d in data["today"]] == ["vitamin-d", "bpc-157"]
        assert data["today"][0]["completed"] is True
        assert data["today"][1]["next_due"] == "2026-01-14T20:00:00"
        assert data["completed_today"] == 1
        assert data["total_today"] == 2
        assert data["progress"] == 0.5
        assert data["upcoming"] == [
            {"compound_id": "vitamin-d", "next_due": "2026-01-15T08:00:00"},
            {"compound_id": "test-e", "next_due": "2026-01-17T08:00:00"},
        ]
        assert data["doses_this_week"] == 2
        assert data["active_count"] == 4
        assert [s["compound_id"] for s in data["low_stock"]] == ["tb-500", "bpc-157"]
        assert data["low_stock"][0]["stock_status"] == "Out of stock"

    def test_empty(self, client):
        data = _call(client, "dashboard_summary", {"now": NOW})
        assert data["total_today"] == 0
        assert data["progress"] == 0.0
        assert data["upcoming"] == []
        assert data["low_stock"] == []

    def test_bad_regimen(self, client):
        data = _call(client, "dashboard_summary", {
            "regimens": [{"compound_id": "x", "schedule_type": "fortnightly"}],
            "now": NOW,
        })
        assert data["status"] == "error"
        assert "Unknown schedule_type" in data["message"]
