"""
Tests for runs and the telemetry attached to them: logs, graph, costs and artifacts.
"""


class TestRunEndpoints:
    def test_new_run_is_queued(self, run):
        assert run["status"] == "queued"
        assert run["startedAt"] is None

    def test_every_trigger_type_queues(self, client, auth_headers, project):
        for trigger in ("manual", "webhook", "scheduled"):
            resp = client.post(
                "/api/runs",
                json={"projectId": project["id"], "name": trigger, "triggerType": trigger},
                headers=auth_headers,
            )
            assert resp.status_code == 201
            assert resp.json()["data"]["status"] == "queued"

    def test_unknown_trigger_type(self, client, auth_headers, project):
        resp = client.post(
            "/api/runs",
            json={"projectId": project["id"], "name": "x", "triggerType": "cron"},
            headers=auth_headers,
        )
        assert resp.status_code == 400

    def test_run_for_unknown_project(self, client, auth_headers):
        resp = client.post(
            "/api/runs",
            json={"projectId": "00000000-0000-0000-0000-000000000000", "name": "x", "triggerType": "manual"},
            headers=auth_headers,
        )
        assert resp.status_code == 404

    def test_list_runs_filtered_by_status(self, client, auth_headers, project, run):
        resp = client.get(f"/api/runs?projectId={project['id']}&status=queued", headers=auth_headers)
        assert [r["id"] for r in resp.json()["data"]["data"]] == [run["id"]]

        resp = client.get("/api/runs?status=completed", headers=auth_headers)
        assert resp.json()["data"]["data"] == []

    def test_queued_runs(self, client, auth_headers, run):
        resp = client.get("/api/runs/queued", headers=auth_headers)
        assert [r["id"] for r in resp.json()["data"]] == [run["id"]]

    def test_lifecycle_stamps_timestamps(self, client, auth_headers, run):
        resp = client.patch(f"/api/runs/{run['id']}/status", json={"status": "running"}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["startedAt"] is not None
        assert resp.json()["data"]["completedAt"] is None

        resp = client.patch(f"/api/runs/{run['id']}/status", json={"status": "completed"}, headers=auth_headers)
        assert resp.json()["data"]["status"] == "completed"
        assert resp.json()["data"]["completedAt"] is not None

    def test_terminal_runs_cannot_move(self, client, auth_headers, run):
        client.post(f"/api/runs/{run['id']}/cancel", headers=auth_headers)
        resp = client.patch(f"/api/runs/{run['id']}/status", json={"status": "running"}, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Cannot move run from cancelled to running"

    def test_queued_cannot_complete_directly(self, client, auth_headers, run):
        resp = client.patch(f"/api/runs/{run['id']}/status", json={"status": "completed"}, headers=auth_headers)
        assert resp.status_code == 400


class TestRunTelemetry:
    def _log(self, client, headers, run, message, timestamp):
        return client.post(
            "/api/logs",
            json={
                "runId": run["id"],
                "projectId": run["projectId"],
                "level": "info",
                "message": message,
                "source": "worker",
                "timestamp": timestamp,
            },
            headers=headers,
        )

    def test_logs_are_returned_oldest_first(self, client, auth_headers, run):
        assert self._log(client, auth_headers, run, "second", "2024-01-01T10:00:02").status_code == 201
        assert self._log(client, auth_headers, run, "first", "2024-01-01T10:00:01").status_code == 201

        resp = client.get(f"/api/runs/{run['id']}/logs", headers=auth_headers)
        assert [log["message"] for log in resp.json()["data"]] == ["first", "second"]

    def test_project_logs_filter_by_level(self, client, auth_headers, run):
        self._log(client, auth_headers, run, "hello", "2024-01-01T10:00:01")
        resp = client.get(f"/api/logs?projectId={run['projectId']}&level=error", headers=auth_headers)
        assert resp.json()["data"] == []

        resp = client.get(f"/api/logs?projectId={run['projectId']}&source=worker", headers=auth_headers)
        assert len(resp.json()["data"]) == 1

    def test_log_level_is_validated(self, client, auth_headers, run):
        resp = client.post(
            "/api/logs",
            json={"projectId": run["projectId"], "level": "fatal", "message": "x", "source": "worker"},
            headers=auth_headers,
        )
        assert resp.status_code == 400

    def test_graph_nodes_and_edges(self, client, auth_headers, run):
        for node_id, node_type in (("load", "data"), ("think", "llm")):
            resp = client.post(
                "/api/graph/nodes",
                json={"runId": run["id"], "nodeId": node_id, "label": node_id.title(), "type": node_type},
                headers=auth_headers,
            )
            assert resp.status_code == 201
            assert resp.json()["data"]["status"] == "pending"
        node_pk = resp.json()["data"]["id"]

        resp = client.post(
            "/api/graph/edges",
            json={"runId": run["id"], "sourceNodeId": "load", "targetNodeId": "think"},
            headers=auth_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["type"] == "default"

        resp = client.patch(f"/api/graph/nodes/{node_pk}", json={"status": "running"}, headers=auth_headers)
        assert resp.json()["data"]["status"] == "running"

        graph = client.get(f"/api/runs/{run['id']}/graph", headers=auth_headers).json()["data"]
        assert sorted(n["nodeId"] for n in graph["nodes"]) == ["load", "think"]
        assert graph["edges"][0]["sourceNodeId"] == "load"

    def test_cost_summary(self, client, auth_headers, run):
        entries = [
            {"service": "openai", "model": "gpt-4", "tokensInput": 10, "tokensOutput": 5, "costUsd": 0.01},
            {"service": "github", "tokensInput": 0, "tokensOutput": 0, "costUsd": 0},
        ]
        for entry in entries:
            resp = client.post(
                "/api/costs",
                json={"runId": run["id"], "projectId": run["projectId"], "operation": "call", **entry},
                headers=auth_headers,
            )
            assert resp.status_code == 201

        summary = client.get(f"/api/runs/{run['id']}/costs/summary", headers=auth_headers).json()["data"]
        assert summary["totalCostUsd"] == 0.01
        assert summary["totalTokens"] == 15
        assert summary["operations"] == 2
        assert summary["breakdown"][0]["key"] == "openai (gpt-4)"
        assert summary["remainingOperations"] == 0

        project_summary = client.get(
            f"/api/costs/summary?projectId={run['projectId']}", headers=auth_headers
        ).json()["data"]
        assert project_summary["totalTokens"] == 15

    def test_negative_cost_is_rejected(self, client, auth_headers, run):
        resp = client.post(
            "/api/costs",
            json={"projectId": run["projectId"], "service": "openai", "operation": "call", "costUsd": -1},
            headers=auth_headers,
        )
        assert resp.status_code == 400

    def test_artifacts(self, client, auth_headers, run):
        body = {
            "runId": run["id"],
            "projectId": run["projectId"],
            "name": "report.html",
            "type": "html",
            "contentType": "text/html",
            "sizeBytes": 120,
            "storagePath": "runs/report.html",
        }
        resp = client.post(f"/api/runs/{run['id']}/artifacts", json=body, headers=auth_headers)
        assert resp.status_code == 201

        resp = client.get(f"/api/runs/{run['id']}/artifacts", headers=auth_headers)
        assert [a["name"] for a in resp.json()["data"]] == ["report.html"]


class TestTelemetryOwnership:
    def _other_project(self, client, headers):
        resp = client.post("/api/projects", json={"name": "Elsewhere"}, headers=headers)
        assert resp.status_code == 201
        return resp.json()["data"]["id"]

    def test_log_into_foreign_run(self, client, auth_headers, other_headers, run):
        own_project = self._other_project(client, other_headers)
        resp = client.post(
            "/api/logs",
            json={"runId": run["id"], "projectId": own_project, "message": "injected", "source": "worker"},
            headers=other_headers,
        )
        assert resp.status_code == 404
        assert resp.json()["error"] == "Run not found"

        logs = client.get(f"/api/runs/{run['id']}/logs", headers=auth_headers).json()["data"]
        assert logs == []

    def test_cost_into_foreign_run(self, client, auth_headers, other_headers, run):
        own_project = self._other_project(client, other_headers)
        resp = client.post(
            "/api/costs",
            json={
                "runId": run["id"], "projectId": own_project, "service": "openai",
                "operation": "call", "costUsd": 99.0,
            },
            headers=other_headers,
        )
        assert resp.status_code == 404

        summary = client.get(f"/api/runs/{run['id']}/costs/summary", headers=auth_headers).json()["data"]
        assert summary["totalCostUsd"] == 0

    def test_run_must_belong_to_the_given_project(self, client, auth_headers, run):
        second_project = self._other_project(client, auth_headers)
        resp = client.post(
            "/api/logs",
            json={"runId": run["id"], "projectId": second_project, "message": "misfiled", "source": "worker"},
            headers=auth_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "runId does not belong to projectId"

        resp = client.post(
            "/api/costs",
            json={
                "runId": run["id"], "projectId": second_project, "service": "openai",
                "operation": "call", "costUsd": 1.0,
            },
            headers=auth_headers,
        )
        assert resp.status_code == 400

    def test_graph_node_of_another_owner(self, client, auth_headers, other_headers, run):
        node = client.post(
            "/api/graph/nodes",
            json={"runId": run["id"], "nodeId": "load", "label": "Load", "type": "data"},
            headers=auth_headers,
        ).json()["data"]

        resp = client.patch(f"/api/graph/nodes/{node['id']}", json={"status": "failed"}, headers=other_headers)
        assert resp.status_code == 404

        graph = client.get(f"/api/runs/{run['id']}/graph", headers=auth_headers).json()["data"]
        assert graph["nodes"][0]["status"] == "pending"

    def test_run_costs_newest_first_with_emitter_timestamps(self, client, auth_headers, run):
        for operation, timestamp in (("early", "2024-01-01T10:00:00"), ("late", "2024-01-01T11:00:00")):
            resp = client.post(
                "/api/costs",
                json={
                    "runId": run["id"], "projectId": run["projectId"], "service": "openai",
                    "operation": operation, "costUsd": 0.5, "timestamp": timestamp,
                },
                headers=auth_headers,
            )
            assert resp.status_code == 201
            assert resp.json()["data"]["timestamp"] == timestamp

        costs = client.get(f"/api/runs/{run['id']}/costs", headers=auth_headers).json()["data"]
        assert [c["operation"] for c in costs] == ["late", "early"]
