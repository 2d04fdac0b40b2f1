"""Tests for shutdown handling, run statistics, monitoring and logging setup."""

import logging
import os
import signal
import tempfile
import threading
import time
import unittest
from unittest.mock import call, patch

import oracle_load_generator as olg


class TestGracefulShutdown(unittest.TestCase):
    def test_wait_times_out_without_request(self):
        shutdown = olg.GracefulShutdown()
        self.assertFalse(shutdown.wait(0.01))
        self.assertFalse(shutdown.is_shutdown_requested())

    def test_request_wakes_waiters(self):
        shutdown = olg.GracefulShutdown()
        woke = []
        waiter = threading.Thread(target=lambda: woke.append(shutdown.wait(10)))
        waiter.start()

        started = time.monotonic()
        shutdown.request_shutdown()
        waiter.join(timeout=5)

        self.assertEqual(woke, [True])
        self.assertLess(time.monotonic() - started, 5)

    def test_install_registers_sigint_and_sigterm(self):
        shutdown = olg.GracefulShutdown()
        with patch("oracle_load_generator.signal.signal") as register:
            shutdown.install()

        register.assert_has_calls([
            call(signal.SIGINT, shutdown._signal_handler),
            call(signal.SIGTERM, shutdown._signal_handler),
        ])

    def test_signal_handler_requests_shutdown(self):
        shutdown = olg.GracefulShutdown()
        with self.assertLogs("oracle_load_generator", level="INFO") as logs:
            shutdown._signal_handler(signal.SIGTERM, None)
            shutdown._signal_handler(signal.SIGTERM, None)

        self.assertTrue(shutdown.is_shutdown_requested())
        self.assertEqual(len(logs.output), 1)
        self.assertIn("SIGTERM received", logs.output[0])


class TestGeneratorStats(unittest.TestCase):
    def test_concurrent_updates(self):
        stats = olg.GeneratorStats()

        def work():
            for _ in range(1000):
                stats.record_success("latch")
                stats.record_error("buffer_busy")

        threads = [threading.Thread(target=work) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        snapshot = stats.snapshot()
        self.assertEqual(snapshot["latch"]["executions"], 8000)
        self.assertEqual(snapshot["buffer_busy"]["errors"], 8000)

    def test_snapshot_and_totals(self):
        stats = olg.GeneratorStats()
        stats.record_success("cpu")
        stats.record_success("cpu", count=2)
        stats.record_error("io")
        stats.record_skipped("parse")

        self.assertEqual(stats.snapshot(), {
            "cpu": {"executions": 3, "errors": 0, "skipped": 0},
            "io": {"executions": 0, "errors": 1, "skipped": 0},
            "parse": {"executions": 0, "errors": 0, "skipped": 1},
        })
        totals = stats.get_stats()
        self.assertEqual(totals["total_executions"], 3)
        self.assertEqual(totals["total_errors"], 1)
        self.assertEqual(totals["total_skipped"], 1)
        self.assertGreaterEqual(totals["elapsed_seconds"], 0)


class TestMonitorThread(unittest.TestCase):
    def test_logs_summary_until_shutdown(self):
        stats = olg.GeneratorStats()
        stats.record_success("enqueue", count=1234)
        shutdown = olg.GracefulShutdown()
        monitor = olg.MonitorThread(0.01, stats, shutdown)

        with self.assertLogs("oracle_load_generator", level="INFO") as logs:
            monitor.start()
            deadline = time.monotonic() + 5
            while time.monotonic() < deadline and not any("Executions" in line for line in logs.output):
                time.sleep(0.01)
            shutdown.request_shutdown()
            monitor.join(timeout=5)

        self.assertFalse(monitor.is_alive())
        self.assertTrue(monitor.daemon)
        summary = next(line for line in logs.output if "Executions" in line)
        self.assertIn("Executions: 1,234", summary)
        self.assertIn("enqueue=1234", summary)
        self.assertIn("[Monitor] Stopped", logs.output[-1])


class TestSetupLogging(unittest.TestCase):
    def setUp(self):
        self.root = logging.getLogger()
        self.saved_handlers = self.root.handlers[:]
        self.saved_level = self.root.level
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        for handler in self.root.handlers:
            if handler not in self.saved_handlers:
                handler.close()
        self.root.handlers = self.saved_handlers
        self.root.setLevel(self.saved_level)
        self.tmpdir.cleanup()

    def test_info_and_errors_go_to_separate_files(self):
        log_file = os.path.join(self.tmpdir.name, "load.log")
        error_file = os.path.join(self.tmpdir.name, "load_error.log")

        with patch("sys.stdout"), patch("sys.stderr"):
            olg.setup_logging(log_file, error_file, "INFO")
            logging.getLogger("oracle_load_generator").info("Executed CPU-intensive query")
            logging.getLogger("oracle_load_generator").error("Latch wait error: ORA-00060")
            for handler in self.root.handlers:
                handler.flush()

        with open(log_file) as f:
            main_log = f.read()
        with open(error_file) as f:
            error_log = f.read()

        self.assertIn("Executed CPU-intensive query", main_log)
        self.assertNotIn("ORA-00060", main_log)
        self.assertIn("ORA-00060", error_log)
        self.assertNotIn("Executed CPU-intensive query", error_log)
        self.assertIn("[MainThread", main_log)

    def test_file_logging_can_be_disabled(self):
        with patch("sys.stdout"), patch("sys.stderr"):
            olg.setup_logging(None, "", "DEBUG")

        self.assertFalse(any(isinstance(h, logging.FileHandler) for h in self.root.handlers))
        self.assertEqual(self.root.level, logging.DEBUG)

    def test_below_warning_filter(self):
        below = olg.BelowWarningFilter()
        info = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        warning = logging.LogRecord("x", logging.WARNING, __file__, 1, "msg", None, None)
        self.assertTrue(below.filter(info))
        self.assertFalse(below.filter(warning))


if __name__ == "__main__":
    unittest.main()
