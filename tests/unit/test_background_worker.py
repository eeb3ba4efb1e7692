import threading
import unittest

from clinxr.utils.background_worker import BackgroundWorker


class TestBackgroundWorker(unittest.TestCase):
    def setUp(self):
        self.worker = BackgroundWorker(name="TestWorker")

    def tearDown(self):
        self.worker.shutdown()

    def test_runs_on_daemon_thread(self):
        future = self.worker.submit(lambda: threading.current_thread().daemon)
        self.assertTrue(future.result(timeout=5))

    def test_result_and_exception_delivered_through_future(self):
        ok = self.worker.submit(lambda a, b: a + b, 2, 3)
        failing = self.worker.submit(lambda: 1 / 0)

        self.assertEqual(ok.result(timeout=5), 5)
        with self.assertRaises(ZeroDivisionError):
            failing.result(timeout=5)

    def test_fifo_order(self):
        seen = []
        for i in range(5):
            self.worker.submit(seen.append, i)
        self.worker.join()
        self.assertEqual(seen, [0, 1, 2, 3, 4])

    def test_replacing_cancels_pending_task(self):
        gate = threading.Event()
        ran = []

        self.worker.submit(gate.wait, 5)  # keep the thread busy
        first = self.worker.submit_replacing("detail", ran.append, "first")
        second = self.worker.submit_replacing("detail", ran.append, "second")
        gate.set()
        self.worker.join()

        self.assertTrue(first.cancelled())
        self.assertFalse(second.cancelled())
        self.assertEqual(ran, ["second"])

    def test_running_task_is_not_replaced(self):
        started = threading.Event()
        release = threading.Event()

        def _slow():
            started.set()
            release.wait(timeout=5)
            return "slow"

        running = self.worker.submit_replacing("detail", _slow)
        self.assertTrue(started.wait(timeout=5))
        newer = self.worker.submit_replacing("detail", lambda: "fast")
        release.set()

        self.assertEqual(running.result(timeout=5), "slow")
        self.assertEqual(newer.result(timeout=5), "fast")

    def test_submit_after_shutdown_is_cancelled(self):
        self.worker.shutdown()
        self.assertFalse(self.worker.is_alive())
        future = self.worker.submit(lambda: None)
        self.assertTrue(future.cancelled())


if __name__ == '__main__':
    unittest.main()
