from typing import Any, Dict, List, Optional

import requests

from schemas import CostOut, LogOut, RunGraph, RunOut


class ApiError(RuntimeError):
    def __init__(self, status_code: int, error: str):
        super().__init__(f"HTTP {status_code}: {error}")
        self.status_code = status_code
        self.error = error


class FlowApiClient:
    """Thin requests wrapper over the API server's run endpoints."""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 30.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _get(self, path: str) -> Any:
        resp = self.session.get(f"{self.base_url}{path}", timeout=self.timeout)
        try:
            body: Dict[str, Any] = resp.json()
        except ValueError:
            body = {}
        if resp.status_code >= 400 or not body.get("success"):
            raise ApiError(resp.status_code, body.get("error") or resp.reason or "Request failed")
        return body.get("data")

    def get_run(self, run_id: str) -> RunOut:
        return RunOut.model_validate(self._get(f"/api/runs/{run_id}"))

    def get_run_logs(self, run_id: str) -> List[LogOut]:
        return [LogOut.model_validate(item) for item in self._get(f"/api/runs/{run_id}/logs")]

    def get_run_graph(self, run_id: str) -> RunGraph:
        return RunGraph.model_validate(self._get(f"/api/runs/{run_id}/graph"))

    def get_run_costs(self, run_id: str) -> List[CostOut]:
        return [CostOut.model_validate(item) for item in self._get(f"/api/runs/{run_id}/costs")]
