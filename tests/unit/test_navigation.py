import tempfile
import unittest
from pathlib import Path

from clinxr.core.navigation import NOT_FOUND, Navigator, resolve_route
from clinxr.core.session import SessionStore
from clinxr.utils.local_storage import LocalStorage


class TestRouteTable(unittest.TestCase):
    def test_known_routes(self):
        self.assertEqual(resolve_route("/").name, "login")
        self.assertEqual(resolve_route("/patients/7").name, "patient_details")
        self.assertEqual(resolve_route("/patients/7/genomics").name, "genomic_details")
        self.assertEqual(resolve_route("/patients/7/genstudy").name, "genomic_studies")
        self.assertEqual(resolve_route("/xr/genome?patientId=7").name, "xr_genome")

    def test_public_routes(self):
        self.assertFalse(resolve_route("/").protected)
        self.assertFalse(resolve_route("/xr").protected)
        self.assertTrue(resolve_route("/xr/dashboard").protected)

    def test_unknown_route(self):
        self.assertIs(resolve_route("/billing/report"), NOT_FOUND)


class TestNavigator(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.session = SessionStore(LocalStorage(Path(self._tmp.name) / "storage.json"))
        self.navigator = Navigator(self.session)
        self.events = []
        self.navigator.add_listener(lambda path, reload: self.events.append((path, reload)))

    def tearDown(self):
        self._tmp.cleanup()

    def test_protected_route_redirects_without_session(self):
        self.assertTrue(self.navigator.navigate("/dashboard"))
        self.assertEqual(self.navigator.current_path, "/")
        self.assertEqual(self.navigator.history, ["/"])

    def test_protected_route_allowed_with_session(self):
        self.session.set("tok")
        self.navigator.navigate("/dashboard")
        self.navigator.navigate("/patients/3")
        self.assertEqual(self.navigator.history, ["/", "/dashboard", "/patients/3"])
        self.assertEqual(self.events, [("/dashboard", False), ("/patients/3", False)])

    def test_reload_of_current_path_is_noop(self):
        self.assertFalse(self.navigator.navigate("/", reload=True))
        self.assertEqual(self.events, [])

    def test_replace(self):
        self.session.set("tok")
        self.navigator.navigate("/dashboard")
        self.navigator.navigate("/xr/dashboard", replace=True)
        self.assertEqual(self.navigator.history, ["/", "/xr/dashboard"])

    def test_removed_listener_not_called(self):
        calls = []
        listener = lambda path, reload: calls.append(path)
        self.navigator.add_listener(listener)
        self.navigator.remove_listener(listener)
        self.navigator.navigate("/xr")
        self.assertEqual(calls, [])


if __name__ == '__main__':
    unittest.main()
