"""Tests for the command line entry point."""

import io
import os
import tempfile
import unittest
from unittest.mock import patch

import oracledb

import oracle_load_generator as olg
from fakes import FakeConnector


class TestMain(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.env_file = os.path.join(self.tmpdir.name, ".env")
        with open(self.env_file, "w") as f:
            f.write("ORACLE_JDBC_URL=jdbc:oracle:thin:@//dbhost:1521/ORCLPDB1\n"
                    "ORACLE_USERNAME=loadtest\n"
                    "ORACLE_PASSWORD=secret\n")
        self.pid_file = os.path.join(self.tmpdir.name, "load_generator.pid")

        patcher = patch("oracle_load_generator.setup_logging")
        self.setup_logging = patcher.start()
        self.addCleanup(patcher.stop)

        patcher = patch.dict(os.environ, {}, clear=True)
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_version(self):
        with patch("sys.stdout", new_callable=io.StringIO) as stdout:
            self.assertEqual(olg.main(["--version"]), 0)
        self.assertIn(f"v{olg.VERSION}", stdout.getvalue())

    def test_print_ddl(self):
        with patch("sys.stdout", new_callable=io.StringIO) as stdout:
            self.assertEqual(olg.main(["--print-ddl", "--order-rows", "10"]), 0)
        output = stdout.getvalue()
        self.assertIn("CREATE TABLE LOAD_TEST_ORDERS", output)
        self.assertIn("CONNECT BY LEVEL <= 10", output)
        self.setup_logging.assert_not_called()

    def test_missing_credentials_exit_1(self):
        missing = os.path.join(self.tmpdir.name, "missing.env")
        with self.assertLogs("oracle_load_generator", level="ERROR") as logs:
            self.assertEqual(olg.main(["--env-file", missing]), 1)
        self.assertTrue(any("Missing required settings" in line for line in logs.output))

    def test_missing_jdbc_driver_exit_1(self):
        with patch("oracle_load_generator.find_jdbc_jar",
                   side_effect=olg.DriverNotFoundError("Oracle JDBC driver not found")):
            with self.assertLogs("oracle_load_generator", level="ERROR") as logs:
                self.assertEqual(olg.main(["--env-file", self.env_file, "--driver", "jdbc"]), 1)
        self.assertIn("Oracle JDBC driver not found", logs.output[-1])

    def test_thick_mode_failure_exit_1(self):
        error = oracledb.ProgrammingError("DPI-1047: Cannot locate a 64-bit Oracle Client library")
        with patch("oracle_load_generator.oracledb.init_oracle_client", side_effect=error):
            with self.assertLogs("oracle_load_generator", level="ERROR") as logs:
                status = olg.main(["--env-file", self.env_file, "--oracle-client-lib", "/nope"])

        self.assertEqual(status, 1)
        self.assertIn("DPI-1047", logs.output[-1])

    def test_runs_generator_and_removes_pid_file(self):
        pid_seen = []

        def fake_run(generator, duration=0, skip_setup=False):
            pid_seen.append(os.path.exists(self.pid_file))

        with patch("oracle_load_generator.create_connector", return_value=FakeConnector()), \
                patch("oracle_load_generator.GracefulShutdown.install") as install, \
                patch.object(olg.OracleLoadGenerator, "run", autospec=True, side_effect=fake_run) as run:
            with self.assertLogs("oracle_load_generator", level="INFO"):
                status = olg.main(["--env-file", self.env_file, "--duration", "5", "--skip-setup",
                                   "--pid-file", self.pid_file, "--log-level", "DEBUG"])

        self.assertEqual(status, 0)
        install.assert_called_once()
        self.assertEqual(run.call_args.kwargs, {"duration": 5.0, "skip_setup": True})
        self.assertEqual(pid_seen, [True])
        self.assertFalse(os.path.exists(self.pid_file))
        self.setup_logging.assert_called_once_with("oracle_load_generator.log",
                                                   "oracle_load_generator_error.log", "DEBUG")

    def test_runtime_failure_exit_1(self):
        with patch("oracle_load_generator.create_connector", return_value=FakeConnector()), \
                patch("oracle_load_generator.GracefulShutdown.install"), \
                patch.object(olg.OracleLoadGenerator, "run", side_effect=RuntimeError("ORA-12541: no listener")):
            with self.assertLogs("oracle_load_generator", level="ERROR") as logs:
                self.assertEqual(olg.main(["--env-file", self.env_file, "--pid-file", self.pid_file]), 1)

        self.assertIn("ORA-12541", logs.output[-1])
        self.assertFalse(os.path.exists(self.pid_file))


if __name__ == "__main__":
    unittest.main()
