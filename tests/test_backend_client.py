"""Tests for the routing backend client with a stubbed HTTP session."""
import json
import pytest
import requests
from core.errors import BackendError
from models.entities import BoundingBox, Centre, Student, StudentCategory
from services.backend_client import AllotmentBackendClient


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append({'method': method, 'url': url, 'timeout': timeout, **kwargs})
        if self.error is not None:
            raise self.error
        return self.response


def make_client(response=None, error=None):
    session = FakeSession(response, error)
    client = AllotmentBackendClient(base_url="http://backend:8080/", timeout=5, session=session)
    return client, session


class TestBuildGraph:
    def test_sends_bounds_and_centres(self):
        client, session = make_client(FakeResponse(payload={
            'status': 'success', 'nodes_count': 1500, 'edges_count': 3200,
            'timing': {'build_graph_ms': 42},
        }))
        centres = [Centre("centre_1", 26.27, 73.03, 100, has_wheelchair_access=True)]

        result = client.build_graph(BoundingBox(26.2, 73.0, 26.3, 73.1), centres, graph_detail='high')

        assert result.nodes_count == 1500
        assert result.edges_count == 3200
        assert result.timing == {'build_graph_ms': 42}

        call = session.calls[0]
        assert call['method'] == 'POST'
        assert call['url'] == "http://backend:8080/build-graph"
        assert call['timeout'] == 5
        assert call['json']['min_lat'] == 26.2
        assert call['json']['graph_detail'] == 'high'
        assert call['json']['centres'][0]['centre_id'] == 'centre_1'
        assert call['json']['centres'][0]['has_wheelchair_access'] is True

    def test_error_status_raises(self):
        client, _ = make_client(FakeResponse(payload={'status': 'error', 'message': 'Overpass timeout'}))
        with pytest.raises(BackendError, match="Overpass timeout") as exc_info:
            client.build_graph(BoundingBox(0, 0, 1, 1), [])
        assert exc_info.value.operation == 'build graph'

    def test_missing_counts_raise(self):
        client, _ = make_client(FakeResponse(payload={'status': 'success'}))
        with pytest.raises(BackendError, match="Malformed"):
            client.build_graph(BoundingBox(0, 0, 1, 1), [])


class TestRunAllotment:
    def setup_method(self):
        self.students = [Student("student_1", 26.27, 73.03, StudentCategory.PWD)]

    def test_parses_assignments_and_diagnostics(self):
        client, session = make_client(FakeResponse(payload={
            'status': 'success',
            'assignments': {'student_1': 'centre_1'},
            'debug_distances': {'student_1': {'centre_1': 240.5, 'centre_2': None}},
        }))

        result = client.run_allotment(self.students)

        assert result.assignments == {'student_1': 'centre_1'}
        assert result.travel_matrix['student_1']['centre_2'] is None
        assert session.calls[0]['json'] == {'students': [self.students[0].to_payload()]}
        assert session.calls[0]['json']['students'][0]['category'] == 'pwd'

    def test_null_assignment_means_unassigned(self):
        client, _ = make_client(FakeResponse(payload={
            'status': 'success',
            'assignments': {'student_1': 'centre_1', 'student_2': None},
        }))

        result = client.run_allotment(self.students)

        assert result.assignments == {'student_1': 'centre_1'}
        assert result.assigned_count == 1

    def test_diagnostics_optional(self):
        client, _ = make_client(FakeResponse(payload={'status': 'success', 'assignments': {}}))
        assert client.run_allotment(self.students).travel_matrix is None

    def test_missing_assignments_raise(self):
        client, _ = make_client(FakeResponse(payload={'status': 'success'}))
        with pytest.raises(BackendError):
            client.run_allotment(self.students)


class TestTransportFailures:
    def test_connection_error(self):
        client, _ = make_client(error=requests.ConnectionError("refused"))
        with pytest.raises(BackendError, match="Failed to connect"):
            client.export_diagnostics()

    def test_http_error_status(self):
        client, _ = make_client(FakeResponse(status_code=500, payload=None, text="boom"))
        with pytest.raises(BackendError) as exc_info:
            client.export_diagnostics()
        assert exc_info.value.status_code == 500

    def test_non_json_body(self):
        client, _ = make_client(FakeResponse(status_code=200, payload=None, text="<html>"))
        with pytest.raises(BackendError, match="not valid JSON"):
            client.export_diagnostics()


def test_get_path_returns_lat_lon_pairs():
    client, session = make_client(FakeResponse(payload={
        'status': 'success', 'path': [[26.27, 73.03], [26.28, 73.04]],
    }))

    path = client.get_path((26.27, 73.03), (26.28, 73.04))

    assert path == [(26.27, 73.03), (26.28, 73.04)]
    assert session.calls[0]['method'] == 'GET'
    assert session.calls[0]['params'] == {
        'student_lat': 26.27, 'student_lon': 73.03, 'centre_lat': 26.28, 'centre_lon': 73.04,
    }


def test_parallel_dijkstra_report():
    client, session = make_client(FakeResponse(payload={
        'status': 'success', 'centres_processed': 2, 'successful': 2, 'results': [],
    }))
    report = client.run_parallel_dijkstra()
    assert report['centres_processed'] == 2
    assert session.calls[0]['json']['workflow_type'] == 'parallel'
