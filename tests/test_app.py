"""HTTP-level tests for the assembled gateway app."""

from __future__ import annotations

import json
import re

import httpx

from gateway.app import __version__

METADATA_URL = "https://api.nadapp.net/token"
SELF_URL = "http://127.0.0.1:3001"


def completion_body(upstream, index: int = -1) -> dict:
    return json.loads(upstream.provider_calls[index].content)


class TestOperational:
    def test_root_health(self, make_client):
        response = make_client().get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["version"] == __version__
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", body["timestamp"])

    def test_agent_health(self, make_client):
        response = make_client().get("/agents/code-audit/health")

        assert response.status_code == 200
        assert response.json()["agent"] == "CodeAuditor"
        assert re.search(r"\.\d{3}Z$", response.json()["timestamp"])

    def test_agent_info(self, make_client):
        response = make_client().get("/agents/orchestrator/info")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["agentId"] == 129
        assert data["name"] == "Orchestrator"
        assert data["endpoint"] == "/agents/orchestrator"
        assert data["type"] == "https://eips.ethereum.org/EIPS/eip-8004#registration-v1"
        assert data["x402"]["enabled"] is True
        assert data["x402"]["network"] == "eip155:143"
        assert "task-planning" in data["skills"]

    def test_unknown_route(self, make_client):
        response = make_client().get("/agents/nobody/info")

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_cors_exposes_challenge_header(self, make_client):
        response = make_client().get("/health", headers={"Origin": "https://app.example"})

        assert "PAYMENT-REQUIRED" in response.headers["access-control-expose-headers"]


class TestValidation:
    def test_summarize_rejects_short_max_length(self, make_client):
        client = make_client(x402_enabled=False)

        response = client.post("/agents/summary/summarize", json={"text": "t", "maxLength": 10})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "INVALID_PARAMS"
        assert body["error"] == "Validation error"
        assert body["details"]

    def test_chat_rejects_system_role(self, make_client):
        client = make_client(x402_enabled=False)

        response = client.post(
            "/agents/summary/chat", json={"messages": [{"role": "system", "content": "x"}]}
        )

        assert response.status_code == 400

    def test_chat_rejects_empty_messages(self, make_client):
        client = make_client(x402_enabled=False)

        response = client.post("/agents/summary/chat", json={"messages": []})

        assert response.status_code == 400


class TestActions:
    def test_summarize_demo_mode(self, make_client, upstream):
        client = make_client(x402_enabled=False)

        response = client.post("/agents/summary/summarize", json={"text": "Some article text"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["summary"] == '[Demo mode] SummaryBot would process: "Some article text..."'
        assert data["agentId"] == 127
        assert data["inputLength"] == len("Some article text")
        assert upstream.requests == []

    def test_summarize_max_tokens_from_length(self, make_client, upstream):
        upstream.queue_completion("Short summary.")
        client = make_client(api_key="sk-test", x402_enabled=False)

        response = client.post("/agents/summary/summarize", json={"text": "abc", "maxLength": 300})

        assert response.json()["data"]["summary"] == "Short summary."
        body = completion_body(upstream)
        assert body["max_tokens"] == 100
        assert body["model"] == "openai/gpt-4o-mini"
        assert "300 characters or less" in body["messages"][0]["content"]

    def test_audit(self, make_client, upstream, payment_proof):
        upstream.queue_completion("Overall: LOW RISK")
        client = make_client(api_key="sk-test")

        response = client.post(
            "/agents/code-audit/audit",
            json={"code": "pragma solidity ^0.8.0;", "language": "solidity"},
            headers={"X-PAYMENT": payment_proof},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data == {
            "agentId": 128,
            "audit": "Overall: LOW RISK",
            "language": "solidity",
            "codeLength": len("pragma solidity ^0.8.0;"),
            "model": "anthropic/claude-sonnet-4-5-20250929",
        }
        body = completion_body(upstream)
        assert body["max_tokens"] == 4096
        assert body["messages"][1]["content"].startswith("Language: solidity\n\n```\n")

    def test_provider_failure_is_502(self, make_client, upstream):
        upstream.queue_completion((500, "provider exploded"))
        client = make_client(api_key="sk-test", x402_enabled=False)

        response = client.post("/agents/code-audit/audit", json={"code": "x"})

        assert response.status_code == 502
        body = response.json()
        assert body["code"] == "UPSTREAM_ERROR"
        assert body["details"] == {"status": 500}

    def test_execute_orchestrates_sibling(self, make_client, upstream):
        plan = {
            "steps": [{"step": 1, "agent": "SummaryBot", "action": "summarize", "input": "Long text."}],
            "reasoning": "Delegate to SummaryBot",
        }
        upstream.queue_completion(json.dumps(plan), "All done.")
        upstream.route(
            f"{SELF_URL}/agents/summary/summarize",
            lambda request: httpx.Response(200, json={"data": {"summary": "Brief."}}),
        )
        client = make_client(api_key="sk-test", x402_enabled=False)

        response = client.post("/agents/orchestrator/execute", json={"task": "Summarize Long text."})

        assert response.status_code == 200
        assert response.json()["data"] == {
            "agentId": 129,
            "task": "Summarize Long text.",
            "plan": "Delegate to SummaryBot",
            "steps": [{"step": 1, "agent": "SummaryBot", "action": "summarize", "result": "Brief."}],
            "finalResult": "All done.",
            "model": "openai/gpt-4o-mini",
        }

    def test_execute_with_planner_failure_is_502(self, make_client, upstream):
        upstream.queue_completion((503, "unavailable"))
        client = make_client(api_key="sk-test", x402_enabled=False)

        response = client.post("/agents/orchestrator/execute", json={"task": "anything"})

        assert response.status_code == 502


class TestTokenMetadata:
    TOKEN_INFO = {
        "token_info": {
            "image_uri": "https://img.example/t.png",
            "description": "A token",
            "website": "https://t.example",
            "twitter": "@token",
            "is_graduated": True,
            "ignored": "field",
        }
    }

    def test_projects_and_caches(self, make_client, upstream):
        upstream.route(f"{METADATA_URL}/0xabc", lambda request: httpx.Response(200, json=self.TOKEN_INFO))
        client = make_client()

        first = client.get("/api/v1/tokens/0xABC/metadata")
        second = client.get("/api/v1/tokens/0xabc/metadata")

        assert first.status_code == 200
        assert first.json() == {
            "data": {
                "imageUri": "https://img.example/t.png",
                "description": "A token",
                "website": "https://t.example",
                "twitter": "@token",
                "isGraduated": True,
            }
        }
        assert second.json() == first.json()
        assert len(upstream.requests) == 1

    def test_missing_token_is_null_and_not_cached(self, make_client, upstream):
        upstream.route(f"{METADATA_URL}/0xdef", lambda request: httpx.Response(404))
        client = make_client()

        assert client.get("/api/v1/tokens/0xdef/metadata").json() == {"data": None}
        assert client.get("/api/v1/tokens/0xdef/metadata").json() == {"data": None}
        assert len(upstream.requests) == 2

    def test_unreachable_service_is_502(self, make_client, upstream):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        upstream.route(f"{METADATA_URL}/0x1", refuse)

        response = make_client().get("/api/v1/tokens/0x1/metadata")

        assert response.status_code == 502
        assert response.json()["code"] == "UPSTREAM_ERROR"
