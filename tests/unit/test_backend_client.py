import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests

from clinxr.core.backend_client import (
    BackendClientFactory,
    BackendEndpoint,
    UnknownBackendError,
    resolve_endpoints,
)
from clinxr.core.interceptors import (
    ForbiddenError,
    RequestFailedError,
    TransientError,
    UnauthenticatedError,
)
from clinxr.core.navigation import Navigator
from clinxr.core.session import SessionStore
from clinxr.utils.local_storage import LocalStorage


def _response(status=200, body=None, reason="OK"):
    resp = MagicMock()
    resp.status_code = status
    resp.reason = reason
    resp.headers = {"Content-Type": "application/json"}
    resp.json.return_value = body
    resp.content = json.dumps(body).encode("utf-8") if body is not None else b""
    resp.text = resp.content.decode("utf-8")
    return resp


class TestResolveEndpoints(unittest.TestCase):
    def test_defaults(self):
        endpoints = resolve_endpoints({})
        self.assertEqual(endpoints["primary"].base_url, "http://localhost:8080")
        self.assertEqual(endpoints["genomic"].base_url, "http://127.0.0.1:5000")
        self.assertEqual(endpoints["aggregator"].base_url, "http://127.0.0.1:5001")

    def test_environment_override(self):
        endpoints = resolve_endpoints({
            "CLINXR_PRIMARY_API_URL": "https://records.example.org/",
            "CLINXR_GENOMIC_API_URL": "   ",
        })
        self.assertEqual(endpoints["primary"].base_url, "https://records.example.org")
        # Blank values fall back to the default
        self.assertEqual(endpoints["genomic"].base_url, "http://127.0.0.1:5000")

    def test_descriptors_are_immutable(self):
        endpoint = resolve_endpoints({})["primary"]
        with self.assertRaises(Exception):
            endpoint.base_url = "http://elsewhere"


class BackendClientTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.session = SessionStore(LocalStorage(Path(self._tmp.name) / "storage.json"))
        self.navigator = Navigator(self.session, initial_path="/dashboard")
        self.factory = BackendClientFactory(self.session, self.navigator, endpoints=resolve_endpoints({}))

    def tearDown(self):
        self.factory.close()
        self._tmp.cleanup()


class TestBackendClientFactory(BackendClientTestCase):
    def test_one_client_per_backend(self):
        primary = self.factory.client_for("primary")
        self.assertIs(self.factory.client_for("primary"), primary)
        self.assertIsNot(self.factory.client_for("genomic"), primary)

    def test_clients_share_session(self):
        clients = [self.factory.client_for(name) for name in ("primary", "genomic", "aggregator")]
        for client in clients:
            self.assertIs(client.session, self.session)

    def test_unknown_backend(self):
        with self.assertRaises(UnknownBackendError):
            self.factory.client_for("billing")

    def test_custom_endpoints(self):
        factory = BackendClientFactory(
            self.session, self.navigator,
            endpoints={"primary": BackendEndpoint("primary", "http://records.test")},
        )
        self.assertEqual(factory.client_for("primary").url_for("api/patients"), "http://records.test/api/patients")
        factory.close()


@patch('clinxr.core.backend_client.requests.Session.request')
class TestBackendClientRequests(BackendClientTestCase):
    def test_bearer_header_when_credential_present(self, mock_request):
        mock_request.return_value = _response(body=[])
        self.session.set("tok-1")

        self.factory.client_for("primary").get("/api/patients")

        args, kwargs = mock_request.call_args
        self.assertEqual(args, ("GET", "http://localhost:8080/api/patients"))
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer tok-1")

    def test_no_header_without_credential(self, mock_request):
        mock_request.return_value = _response(body=[])

        self.factory.client_for("genomic").get("/api/rsids/10")

        _, kwargs = mock_request.call_args
        self.assertNotIn("Authorization", kwargs["headers"])

    def test_credential_change_visible_to_existing_clients(self, mock_request):
        mock_request.return_value = _response(body={})
        aggregator = self.factory.client_for("aggregator")

        self.session.set("later-token")
        aggregator.post("/api/upload/3", data=b"x")

        _, kwargs = mock_request.call_args
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer later-token")

    def test_skip_auth_sends_no_credential(self, mock_request):
        mock_request.return_value = _response(body="t")
        self.session.set("tok-1")

        self.factory.client_for("primary").post("/authenticate", json={}, skip_auth=True)

        _, kwargs = mock_request.call_args
        self.assertNotIn("Authorization", kwargs["headers"])

    def test_success_passes_through(self, mock_request):
        resp = _response(body=[{"id": 1}])
        mock_request.return_value = resp

        result = self.factory.client_for("primary").get("/api/patients")

        self.assertIs(result, resp)
        self.assertEqual(self.factory.client_for("primary").get_request_count(), 1)

    def test_unauthorized_clears_session_and_redirects(self, mock_request):
        mock_request.return_value = _response(status=401, reason="Unauthorized")
        self.session.set("expired")

        with self.assertRaises(UnauthenticatedError):
            self.factory.client_for("genomic").get("/api/studies/1")

        self.assertIsNone(self.session.get())
        self.assertEqual(self.navigator.current_path, "/")

    def test_unauthorized_is_not_a_request_failure(self, mock_request):
        mock_request.return_value = _response(status=401)
        self.session.set("expired")

        with self.assertRaises(UnauthenticatedError) as ctx:
            self.factory.client_for("primary").get("/api/patients")
        self.assertNotIsInstance(ctx.exception, RequestFailedError)

    def test_forbidden_keeps_session(self, mock_request):
        mock_request.return_value = _response(status=403, reason="Forbidden")
        self.session.set("valid")

        with self.assertRaises(ForbiddenError) as ctx:
            self.factory.client_for("primary").get("/api/patients")

        self.assertEqual(ctx.exception.status_code, 403)
        self.assertEqual(ctx.exception.user_message, "Access denied. Please check your permissions.")
        self.assertEqual(self.session.get(), "valid")
        self.assertEqual(self.navigator.current_path, "/dashboard")

    def test_server_error_is_transient(self, mock_request):
        mock_request.return_value = _response(status=503, reason="Service Unavailable")
        with self.assertRaises(TransientError):
            self.factory.client_for("primary").get("/api/patients")

    def test_not_found_is_generic_failure(self, mock_request):
        mock_request.return_value = _response(status=404, reason="Not Found")
        with self.assertRaises(RequestFailedError) as ctx:
            self.factory.client_for("primary").get("/api/patients/999")
        self.assertNotIsInstance(ctx.exception, TransientError)

    def test_network_error_is_transient(self, mock_request):
        mock_request.side_effect = requests.ConnectionError("Network down")
        self.session.set("valid")

        with self.assertRaises(TransientError):
            self.factory.client_for("primary").get("/api/patients")
        self.assertEqual(self.session.get(), "valid")

    def test_timeout_is_transient(self, mock_request):
        mock_request.side_effect = requests.Timeout("too slow")
        with self.assertRaises(TransientError):
            self.factory.client_for("aggregator").get("/api/upload/1")


if __name__ == '__main__':
    unittest.main()
