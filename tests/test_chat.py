# -*- coding: utf-8 -*-

from __future__ import annotations

import shutil
import sqlite3
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from fastapi.testclient import TestClient

from nutrigenie.chat.intent import MEAL_PLAN_TOOL, RECIPE_TOOL
from nutrigenie.chat.orchestrator import TOOL_FALLBACK_TEXT
from tests.support import MEAL_PLAN_ARGS, FakeChatModel, build_app, register


class TestChat(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls._tmp = Path(tempfile.mkdtemp(prefix="nutrigenie-test-"))
        cls.llm = FakeChatModel()
        cls.app = build_app(cls._tmp, cls.llm)

    @classmethod
    def tearDownClass(cls) -> None:
        shutil.rmtree(cls._tmp, ignore_errors=True)

    def setUp(self) -> None:
        self.llm.reset()
        self._clients = []

    def tearDown(self) -> None:
        for client in self._clients:
            client.close()

    def _client(self, email: str) -> TestClient:
        client = TestClient(self.app, raise_server_exceptions=False)
        self._clients.append(client)
        resp = register(client, email)
        self.assertEqual(resp.status_code, 201, resp.text)
        return client

    def test_meal_plan_then_recipe_on_same_thread(self) -> None:
        client = self._client("planner@example.com")
        first = "Create a high protein vegetarian meal plan for me"

        resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": first}]})
        self.assertEqual(resp.status_code, 200, resp.text)
        body = resp.json()
        self.assertEqual(body["role"], "assistant")
        self.assertTrue(body["id"].startswith("msg-"))
        self.assertEqual(body["text"], self.llm.follow_up_text)
        self.assertEqual(body["toolCall"]["toolName"], MEAL_PLAN_TOOL)
        self.assertEqual(body["toolCall"]["output"]["title"], MEAL_PLAN_ARGS["title"])
        thread_id = body["threadId"]

        # Forced tool on the first call, tools disabled on the follow-up.
        self.assertEqual(len(self.llm.calls), 2)
        self.assertEqual(self.llm.calls[0]["tool_choice"], MEAL_PLAN_TOOL)
        self.assertEqual(self.llm.calls[0]["tools"][0]["function"]["name"], MEAL_PLAN_TOOL)
        self.assertEqual(self.llm.calls[1]["tool_choice"], "none")
        self.assertEqual(self.llm.calls[1]["messages"][-1]["role"], "tool")

        # The tool call persisted a meal plan for the caller.
        plans = client.get("/api/meal-plans").json()["mealPlans"]
        self.assertEqual(len(plans), 1)
        self.assertEqual(plans[0]["title"], MEAL_PLAN_ARGS["title"])
        self.assertEqual(plans[0]["totalNutrients"]["calories"], 1900)

        resp = client.post(
            "/api/chat",
            json={
                "threadId": thread_id,
                "messages": [
                    {"role": "user", "content": first},
                    {"role": "assistant", "content": body["text"]},
                    {"role": "user", "parts": [{"type": "text", "text": "Give me the recipe for paneer bhurji"}]},
                ],
            },
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        second = resp.json()
        self.assertEqual(second["threadId"], thread_id)
        self.assertEqual(second["toolCall"]["toolName"], RECIPE_TOOL)
        self.assertEqual(second["toolCall"]["output"]["prepTime"], "20 minutes")

        resp = client.get("/api/chat", params={"threadId": thread_id})
        self.assertEqual(resp.status_code, 200)
        history = resp.json()
        self.assertEqual(history["threadId"], thread_id)
        self.assertEqual(history["title"], first)
        self.assertEqual([m["role"] for m in history["messages"]], ["user", "assistant", "user", "assistant"])
        self.assertEqual(history["messages"][1]["toolCall"]["toolName"], MEAL_PLAN_TOOL)
        self.assertEqual(history["messages"][3]["toolCall"]["args"]["name"], "Paneer bhurji")
        self.assertEqual(history["messages"][2]["content"], "Give me the recipe for paneer bhurji")

        # Recipe output is not a meal plan.
        self.assertEqual(len(client.get("/api/meal-plans").json()["mealPlans"]), 1)

    def test_plain_question_has_no_tool(self) -> None:
        client = self._client("question@example.com")
        resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "How much water should I drink?"}]})
        self.assertEqual(resp.status_code, 200, resp.text)
        body = resp.json()
        self.assertIsNone(body["toolCall"])
        self.assertEqual(body["text"], self.llm.reply_text)
        self.assertEqual(len(self.llm.calls), 1)
        self.assertIsNone(self.llm.calls[0]["tools"])

    def test_health_context_reaches_system_prompt(self) -> None:
        client = self._client("allergic@example.com")
        resp = client.put("/api/profile/health", json={"allergies": ["Peanuts", " "], "activityLevel": "moderate"})
        self.assertEqual(resp.status_code, 200, resp.text)

        client.post("/api/chat", json={"messages": [{"role": "user", "content": "Any snack ideas?"}]})
        system = self.llm.calls[0]["system"]
        self.assertIn("User Profile:", system)
        self.assertIn('"allergies":["Peanuts"]', system)
        self.assertIn('"activityLevel":"moderate"', system)
        self.assertNotIn("allergic@example.com", system)

    def test_follow_up_without_text_uses_fallback(self) -> None:
        client = self._client("fallback@example.com")
        self.llm.follow_up_text = ""
        resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "I need a diet plan"}]})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["text"], TOOL_FALLBACK_TEXT)

    def test_forced_tool_not_called_returns_text_only(self) -> None:
        client = self._client("skipper@example.com")
        self.llm.skip_tools = True
        resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "How to make dal?"}]})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertIsNone(resp.json()["toolCall"])
        self.assertEqual(resp.json()["text"], self.llm.reply_text)

    def test_model_failures_record_nothing(self) -> None:
        client = self._client("broken@example.com")

        self.llm.reply_text = ""
        resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "Hello"}]})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"detail": "Internal Server Error"})

        self.llm.tool_args[MEAL_PLAN_TOOL] = {"title": "Broken"}
        resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "meal plan please"}]})
        self.assertEqual(resp.status_code, 500)

        self.llm.tool_args[MEAL_PLAN_TOOL] = "{not json"
        resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "meal plan please"}]})
        self.assertEqual(resp.status_code, 500)

        self.assertEqual(client.get("/api/chat", params={"threads": "1"}).json()["threads"], [])
        self.assertEqual(client.get("/api/meal-plans").json()["mealPlans"], [])

    def test_meal_plan_outside_storage_rules_still_answers(self) -> None:
        client = self._client("loose-plan@example.com")
        for title in ("", "x" * 201):
            self.llm.tool_args[MEAL_PLAN_TOOL]["title"] = title
            with self.assertLogs("nutrigenie.chat.tools", level="ERROR"):
                resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "Make a meal plan"}]})
            self.assertEqual(resp.status_code, 200, resp.text)
            body = resp.json()
            self.assertEqual(body["toolCall"]["toolName"], MEAL_PLAN_TOOL)
            self.assertEqual(body["toolCall"]["output"]["title"], title)
            self.assertEqual(body["text"], self.llm.follow_up_text)

        self.assertEqual(client.get("/api/meal-plans").json()["mealPlans"], [])
        self.assertEqual(len(client.get("/api/chat", params={"threads": "1"}).json()["threads"]), 2)

    def test_meal_plan_save_failure_still_answers(self) -> None:
        client = self._client("locked-db@example.com")
        failing_save = patch(
            "nutrigenie.chat.tools.create_meal_plan",
            side_effect=sqlite3.OperationalError("database is locked"),
        )
        with failing_save, self.assertLogs("nutrigenie.chat.tools", level="ERROR"):
            resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "Plan my meals"}]})
        self.assertEqual(resp.status_code, 200, resp.text)
        body = resp.json()
        self.assertEqual(body["toolCall"]["toolName"], MEAL_PLAN_TOOL)
        self.assertEqual(body["toolCall"]["output"]["title"], MEAL_PLAN_ARGS["title"])

        self.assertEqual(client.get("/api/meal-plans").json()["mealPlans"], [])
        history = client.get("/api/chat", params={"threadId": body["threadId"]}).json()
        self.assertEqual([m["role"] for m in history["messages"]], ["user", "assistant"])
        self.assertEqual(history["messages"][1]["toolCall"]["toolName"], MEAL_PLAN_TOOL)

    def test_long_history_is_accepted(self) -> None:
        client = self._client("chatty@example.com")
        messages = []
        for i in range(101):
            messages.append({"role": "user", "content": f"Question {i}"})
            messages.append({"role": "assistant", "content": f"Answer {i}"})
        messages.append({"role": "user", "content": "One more question"})
        self.assertEqual(len(messages), 203)

        resp = client.post("/api/chat", json={"messages": messages})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(len(self.llm.calls[0]["messages"]), 203)
        history = client.get("/api/chat", params={"threadId": resp.json()["threadId"]}).json()
        self.assertEqual(history["messages"][0]["content"], "One more question")

    def test_model_failure_is_logged_with_traceback(self) -> None:
        client = self._client("traceback@example.com")
        self.llm.reply_text = ""
        with self.assertLogs("nutrigenie.main", level="ERROR") as logs:
            resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "Hello"}]})
        self.assertEqual(resp.status_code, 500)
        self.assertIsNotNone(logs.records[0].exc_info)

        self.llm.tool_args[MEAL_PLAN_TOOL] = "{not json"
        with self.assertLogs("nutrigenie.main", level="ERROR") as logs:
            resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "meal plan please"}]})
        self.assertEqual(resp.status_code, 500)
        self.assertIsNotNone(logs.records[0].exc_info)

    def test_requires_a_user_message(self) -> None:
        client = self._client("silent@example.com")
        resp = client.post("/api/chat", json={"messages": [{"role": "assistant", "content": "Hi there"}]})
        self.assertEqual(resp.status_code, 400)
        resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": ""}]})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self.llm.calls, [])

    def test_thread_listing_rename_and_delete(self) -> None:
        client = self._client("threads@example.com")

        resp = client.get("/api/chat")
        self.assertEqual(resp.json(), {"threadId": None, "title": "New Chat", "messages": []})

        long_text = "Tell me " + "about fiber " * 10
        a = client.post("/api/chat", json={"messages": [{"role": "user", "content": long_text}]}).json()["threadId"]
        b = client.post("/api/chat", json={"messages": [{"role": "user", "content": "Second"}]}).json()["threadId"]
        self.assertNotEqual(a, b)

        threads = client.get("/api/chat", params={"threads": "1"}).json()["threads"]
        self.assertEqual([t["id"] for t in threads], [b, a])
        self.assertTrue(threads[1]["title"].endswith("..."))
        self.assertEqual(len(threads[1]["title"]), 63)

        # Without threadId the most recent thread is returned.
        self.assertEqual(client.get("/api/chat").json()["threadId"], b)

        resp = client.patch("/api/chat", json={"threadId": a, "title": "   "})
        self.assertEqual(resp.status_code, 400)
        resp = client.patch("/api/chat", json={"threadId": a, "title": "  Fiber   questions "})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"id": a, "title": "Fiber questions"})

        resp = client.delete(f"/api/chat/{a}")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(client.get("/api/chat", params={"threadId": a}).status_code, 404)
        self.assertEqual(client.delete(f"/api/chat/{a}").status_code, 404)

    def test_threads_are_private(self) -> None:
        owner = self._client("owner@example.com")
        other = self._client("intruder@example.com")
        thread_id = owner.post("/api/chat", json={"messages": [{"role": "user", "content": "Mine"}]}).json()["threadId"]

        self.assertEqual(other.get("/api/chat", params={"threadId": thread_id}).status_code, 404)
        self.assertEqual(other.patch("/api/chat", json={"threadId": thread_id, "title": "Hijack"}).status_code, 404)
        self.assertEqual(other.delete(f"/api/chat/{thread_id}").status_code, 404)

        # Posting into someone else's thread starts a new one for the caller.
        resp = other.post("/api/chat", json={"threadId": thread_id, "messages": [{"role": "user", "content": "Hi"}]})
        self.assertEqual(resp.status_code, 200)
        self.assertNotEqual(resp.json()["threadId"], thread_id)

        history = owner.get("/api/chat", params={"threadId": thread_id}).json()
        self.assertEqual(history["title"], "Mine")
        self.assertEqual(len(history["messages"]), 2)


if __name__ == "__main__":
    unittest.main()
