"""Client for the routing backend that builds graphs and runs allotments."""
from typing import Dict, List, Optional, Sequence, Tuple, Any

import requests
from loguru import logger

from configurations.config import Config
from core.errors import BackendError
from models.entities import AllotmentResult, BoundingBox, Centre, GraphBuildResult, Student


class AllotmentBackendClient:
    def __init__(self, base_url: Optional[str] = None, timeout: Optional[int] = None,
                 session: Optional[requests.Session] = None):
        self.base_url = (base_url or Config.API_BASE_URL).rstrip('/')
        self.timeout = timeout or Config.REQUEST_TIMEOUT_SECONDS
        self.session = session or requests.Session()

        logger.info(f"AllotmentBackendClient initialized with base URL: {self.base_url}")

    def build_graph(self, bounds: BoundingBox, centres: Sequence[Centre],
                    graph_detail: Optional[str] = None) -> GraphBuildResult:
        """Ask the backend to build a road graph covering the bounds."""
        payload = bounds.to_payload()
        payload['centres'] = [centre.to_payload() for centre in centres]
        graph_detail = graph_detail or Config.GRAPH_DETAIL
        if graph_detail:
            payload['graph_detail'] = graph_detail

        logger.info(f"Building graph for {len(centres)} centres")
        data = self._request('build graph', 'POST', '/build-graph', json=payload)

        try:
            return GraphBuildResult(
                nodes_count=int(data['nodes_count']),
                edges_count=int(data['edges_count']),
                timing=data.get('timing') or {},
            )
        except (KeyError, TypeError, ValueError) as e:
            raise BackendError('build graph', f"Malformed response: {e}") from e

    def run_allotment(self, students: Sequence[Student]) -> AllotmentResult:
        """Request a bulk allotment for the given students."""
        payload = {'students': [student.to_payload() for student in students]}

        logger.info(f"Running allotment for {len(students)} students")
        data = self._request('run allotment', 'POST', '/run-allotment', json=payload)

        assignments = data.get('assignments')
        if not isinstance(assignments, dict):
            raise BackendError('run allotment', "Response has no assignments mapping")

        travel_matrix = data.get('debug_distances')
        if travel_matrix is not None and not isinstance(travel_matrix, dict):
            logger.warning("Ignoring debug_distances that is not a mapping")
            travel_matrix = None

        return AllotmentResult(
            assignments={str(k): str(v) for k, v in assignments.items() if v is not None},
            travel_matrix=travel_matrix,
            timing=data.get('timing') or {},
        )

    def get_path(self, student_point: Tuple[float, float],
                 centre_point: Tuple[float, float]) -> List[Tuple[float, float]]:
        """Shortest path between two points as (lat, lon) pairs; empty if none was found."""
        params = {
            'student_lat': student_point[0],
            'student_lon': student_point[1],
            'centre_lat': centre_point[0],
            'centre_lon': centre_point[1],
        }
        data = self._request('get path', 'GET', '/get-path', params=params)

        try:
            return [(float(lat), float(lon)) for lat, lon in data.get('path') or []]
        except (TypeError, ValueError) as e:
            raise BackendError('get path', f"Malformed path: {e}") from e

    def export_diagnostics(self) -> Dict[str, Any]:
        return self._request('export diagnostics', 'GET', '/export-diagnostics')

    def run_parallel_dijkstra(self) -> Dict[str, Any]:
        """Benchmark shortest-path precomputation from every centre."""
        payload = {
            'workflow_name': 'Parallel_Center_Dijkstra_Precomputation',
            'workflow_type': 'parallel',
            'save_to_files': False,
        }
        return self._request('parallel dijkstra', 'POST', '/parallel-dijkstra', json=payload)

    def _request(self, operation: str, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"{operation} request to {url} failed: {e}")
            raise BackendError(operation, f"Failed to connect to backend at {self.base_url}: {e}") from e

        if not 200 <= response.status_code < 300:
            logger.error(f"API returned status {response.status_code}: {response.text[:200]}")
            raise BackendError(operation, response.text[:200] or "Unexpected status", response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(operation, "Response is not valid JSON", response.status_code) from e

        if not isinstance(data, dict):
            raise BackendError(operation, "Response is not a JSON object", response.status_code)
        if data.get('status', 'success') != 'success':
            raise BackendError(operation, data.get('message') or "Unknown error", response.status_code)

        if data.get('timing'):
            logger.debug(f"{operation} timing: {data['timing']}")
        return data
