import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests

from clinxr.core.auth import AuthService, LoginError
from clinxr.core.backend_client import BackendClientFactory, resolve_endpoints
from clinxr.core.navigation import Navigator
from clinxr.core.session import SessionStore
from clinxr.utils.local_storage import LocalStorage


def _response(status=200, text="", content_type="text/plain", body=None):
    resp = MagicMock()
    resp.status_code = status
    resp.reason = ""
    resp.headers = {"Content-Type": content_type}
    resp.text = text
    resp.json.return_value = body
    return resp


@patch('clinxr.core.backend_client.requests.Session.request')
class TestAuthService(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.session = SessionStore(LocalStorage(Path(self._tmp.name) / "storage.json"))
        self.navigator = Navigator(self.session)
        self.factory = BackendClientFactory(self.session, self.navigator, endpoints=resolve_endpoints({}))
        self.auth = AuthService(self.factory)

    def tearDown(self):
        self.factory.close()
        self._tmp.cleanup()

    def test_login_stores_plain_text_credential(self, mock_request):
        mock_request.return_value = _response(text="eyJhbGciOi.payload.sig")

        token = self.auth.login("alice", "secret")

        self.assertEqual(token, "eyJhbGciOi.payload.sig")
        self.assertEqual(self.session.get(), token)
        self.assertEqual(self.navigator.current_path, "/dashboard")

        args, kwargs = mock_request.call_args
        self.assertEqual(args, ("POST", "http://localhost:8080/authenticate"))
        self.assertEqual(kwargs["json"], {"username": "alice", "password": "secret"})

    def test_login_accepts_json_wrapped_token(self, mock_request):
        mock_request.return_value = _response(content_type="application/json", body={"token": "wrapped"})
        self.assertEqual(self.auth.login("alice", "secret"), "wrapped")

    def test_login_rejected(self, mock_request):
        mock_request.return_value = _response(status=401)

        with self.assertRaises(LoginError) as ctx:
            self.auth.login("alice", "wrong")

        self.assertEqual(ctx.exception.user_message, "Invalid credentials")
        self.assertIsNone(self.session.get())
        self.assertEqual(self.navigator.current_path, "/")

    def test_login_unreachable_backend(self, mock_request):
        mock_request.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(LoginError):
            self.auth.login("alice", "secret")

    def test_empty_credential_is_a_failed_login(self, mock_request):
        mock_request.return_value = _response(text="   ")
        with self.assertRaises(LoginError):
            self.auth.login("alice", "secret")
        self.assertIsNone(self.session.get())

    def test_logout(self, mock_request):
        self.session.set("tok")
        self.navigator.navigate("/dashboard")

        self.auth.logout()

        self.assertIsNone(self.session.get())
        self.assertEqual(self.navigator.current_path, "/")
        mock_request.assert_not_called()

    def test_resume_immersive(self, mock_request):
        self.assertFalse(self.auth.resume_immersive())
        self.assertEqual(self.navigator.current_path, "/")

        self.session.set("tok")
        self.assertTrue(self.auth.resume_immersive())
        self.assertEqual(self.navigator.current_path, "/xr/dashboard")


if __name__ == '__main__':
    unittest.main()
