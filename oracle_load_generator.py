#!/usr/bin/env python3
"""
Oracle Database Load Generator

Opens many concurrent sessions against one Oracle database and keeps issuing a
fixed catalogue of SQL to manufacture wait events for monitoring tooling:
- CPU-heavy scans and joins, I/O-heavy aggregates and bulk inserts
- Row lock contention (a blocker session plus blocked sessions)
- Enqueue, latch, buffer busy, log file sync, direct path and sequential reads
- A burst every 10 seconds: tablespace, temp, undo, library/row cache,
  checkpoint, archive log, hard parse, SQL*Net round trips, index contention

Connects with python-oracledb (thin, or thick with --oracle-client-lib) or
with the Oracle JDBC driver through JayDeBeApi.

Usage:
  # Credentials from .env (ORACLE_JDBC_URL, ORACLE_USERNAME, ORACLE_PASSWORD)
  python oracle_load_generator.py

  # Explicit DSN, run for 10 minutes without recreating the test tables
  python oracle_load_generator.py --dsn dbhost:1521/ORCLPDB1 \\
      --user loadtest --password secret --duration 600 --skip-setup

  # JDBC driver from ./jre/ojdbc*.jar
  python oracle_load_generator.py --driver jdbc --jre-dir ./jre
"""

import argparse
import contextlib
import glob
import logging
import os
import random
import re
import signal
import sys
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import jaydebeapi
import jpype
import oracledb
from dotenv import dotenv_values

import load_sql

VERSION = "1.0"

logger = logging.getLogger(__name__)


# ============================================================================
# Errors
# ============================================================================
class LoadGeneratorError(Exception):
    """Base error for the load generator"""


class ConfigurationError(LoadGeneratorError):
    """Missing or invalid settings"""


class DriverNotFoundError(LoadGeneratorError):
    """The Oracle JDBC driver jar could not be located"""


# ============================================================================
# Logging
# ============================================================================
LOG_FORMAT = '%(asctime)s - [%(threadName)-15s] - %(levelname)s - %(message)s'


class BelowWarningFilter(logging.Filter):
    """Pass only records below WARNING

    Keeps INFO/DEBUG on stdout and in the main log file while WARNING and
    above go to stderr and the separate error log file.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.WARNING


def setup_logging(log_file: Optional[str] = 'oracle_load_generator.log',
                  error_log_file: Optional[str] = 'oracle_load_generator_error.log',
                  level: str = 'INFO'):
    """Configure the root logger

    Args:
        log_file: main log file (records below WARNING), None or '' to disable
        error_log_file: WARNING and above, None or '' to disable
        level: logging level name
    """
    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
    handlers: List[logging.Handler] = []

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(BelowWarningFilter())
        handlers.append(file_handler)

    if error_log_file:
        error_handler = logging.FileHandler(error_log_file)
        error_handler.setLevel(logging.WARNING)
        error_handler.setFormatter(formatter)
        handlers.append(error_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(BelowWarningFilter())
    handlers.append(console_handler)

    error_console_handler = logging.StreamHandler(sys.stderr)
    error_console_handler.setLevel(logging.WARNING)
    error_console_handler.setFormatter(formatter)
    handlers.append(error_console_handler)

    logging.basicConfig(level=getattr(logging, level.upper()), handlers=handlers, force=True)


# ============================================================================
# Configuration
# ============================================================================
DEFAULT_INTERVALS: Dict[str, float] = {
    'cpu': 2.0,
    'io': 3.0,
    'enqueue': 1.0,
    'latch': 0.5,
    'buffer_busy': 0.3,
    'log_file': 0.2,
    'direct_path': 4.0,
    'sequential_read': 1.0,
}

DRIVERS = ('thin', 'jdbc')

# tasks start() submits besides the buffer busy workers: eight generators and the burst scheduler
CONTINUOUS_TASKS = 9


@dataclass
class LoadGeneratorConfig:
    """Connection settings and load tunables

    Attributes:
        jdbc_url: Oracle JDBC thin URL (ORACLE_JDBC_URL)
        user: database user (ORACLE_USERNAME)
        password: database password (ORACLE_PASSWORD)
        dsn: python-oracledb DSN, derived from jdbc_url when empty (ORACLE_DSN)
        driver: 'thin' (python-oracledb) or 'jdbc' (JayDeBeApi)
        jre_dir: directory searched for ojdbc*.jar
        oracle_client_lib: Instant Client directory, enables thick mode
        pool_size: worker threads shared by every generator
        intervals: sleep after each iteration, per continuous generator
    """
    jdbc_url: str = ''
    user: str = ''
    password: str = ''
    dsn: str = ''
    driver: str = 'thin'
    jre_dir: str = './jre'
    oracle_client_lib: Optional[str] = None
    pool_size: int = 20
    burst_interval: float = 10.0
    order_rows: int = 50000
    lock_rows: int = 100
    buffer_busy_workers: int = 10
    hot_rows: int = 10
    blocked_sessions: int = 5
    lock_hold_seconds: float = 20.0
    lock_start_delay: float = 2.0
    blocked_timeout_seconds: float = 30.0
    undo_hold_seconds: float = 2.0
    shutdown_timeout: float = 10.0
    monitor_interval: float = 30.0
    intervals: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_INTERVALS))


def parse_interval(value: str):
    """argparse type for --interval NAME=SECONDS"""
    name, sep, seconds = value.partition('=')
    name = name.strip().replace('-', '_')
    if not sep or name not in DEFAULT_INTERVALS:
        raise argparse.ArgumentTypeError(
            f"expected NAME=SECONDS with NAME in {', '.join(DEFAULT_INTERVALS)}: {value!r}")
    try:
        parsed = float(seconds)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid seconds for {name}: {seconds!r}")
    if parsed < 0:
        raise argparse.ArgumentTypeError(f"interval for {name} must not be negative")
    return name, parsed


def load_env_file(path: str) -> Dict[str, str]:
    """Read KEY=VALUE pairs from a .env file, {} when the file is missing"""
    if not path or not os.path.exists(path):
        logger.warning(f"Env file not found: {path} (create one based on .env.example)")
        return {}
    return {key: value.strip() for key, value in dotenv_values(path).items() if value is not None}


def _setting(cli_value: Optional[str], key: str, file_values: Dict[str, str], default: str = '') -> str:
    # CLI > process environment > .env file > default
    if cli_value:
        return cli_value
    if os.environ.get(key):
        return os.environ[key]
    return file_values.get(key) or default


def load_config(args: argparse.Namespace) -> LoadGeneratorConfig:
    """Build the configuration from CLI arguments, the environment and the .env file

    Raises:
        ConfigurationError: credentials are missing or a tunable is out of range
    """
    file_values = load_env_file(args.env_file)

    config = LoadGeneratorConfig(
        jdbc_url=_setting(args.jdbc_url, 'ORACLE_JDBC_URL', file_values),
        user=_setting(args.user, 'ORACLE_USERNAME', file_values),
        password=_setting(args.password, 'ORACLE_PASSWORD', file_values),
        dsn=_setting(args.dsn, 'ORACLE_DSN', file_values),
        driver=_setting(args.driver, 'ORACLE_DRIVER', file_values, 'thin').lower(),
        jre_dir=_setting(args.jre_dir, 'ORACLE_JRE_DIR', file_values, './jre'),
        oracle_client_lib=_setting(args.oracle_client_lib, 'ORACLE_CLIENT_LIB', file_values) or None,
        pool_size=args.pool_size,
        burst_interval=args.burst_interval,
        order_rows=args.order_rows,
        lock_rows=args.lock_rows,
        buffer_busy_workers=args.buffer_busy_workers,
        hot_rows=args.hot_rows,
        blocked_sessions=args.blocked_sessions,
        lock_hold_seconds=args.lock_hold,
        lock_start_delay=args.lock_start_delay,
        blocked_timeout_seconds=args.blocked_timeout,
        shutdown_timeout=args.shutdown_timeout,
        monitor_interval=args.monitor_interval,
    )
    for name, seconds in args.interval or []:
        config.intervals[name] = seconds

    missing = []
    if not (config.jdbc_url or config.dsn):
        missing.append('ORACLE_JDBC_URL (or ORACLE_DSN)')
    if not config.user:
        missing.append('ORACLE_USERNAME')
    if not config.password:
        missing.append('ORACLE_PASSWORD')
    if missing:
        raise ConfigurationError(
            f"Missing required settings: {', '.join(missing)}. "
            f"Set them in {args.env_file}, in the environment or on the command line")

    if config.driver not in DRIVERS:
        raise ConfigurationError(f"Unsupported driver: {config.driver} (choose from {', '.join(DRIVERS)})")
    if config.driver == 'jdbc' and not config.jdbc_url:
        raise ConfigurationError("The jdbc driver needs ORACLE_JDBC_URL")
    if config.pool_size < 1:
        raise ConfigurationError("--pool-size must be at least 1")
    long_running = CONTINUOUS_TASKS + config.buffer_busy_workers
    if config.pool_size <= long_running:
        raise ConfigurationError(
            f"--pool-size {config.pool_size} leaves no worker for bursts and blocked sessions: "
            f"{long_running} generator loops never finish, use at least {long_running + 1}")
    if config.burst_interval <= 0:
        raise ConfigurationError("--burst-interval must be positive")
    if config.hot_rows < 1 or config.hot_rows > config.lock_rows:
        raise ConfigurationError("--hot-rows must be between 1 and --lock-rows")
    if config.order_rows < 1:
        raise ConfigurationError("--order-rows must be at least 1")

    return config


JDBC_THIN_PREFIX = 'jdbc:oracle:thin:@'
_SID_TARGET = re.compile(r'^(?P<host>[^:/()]+):(?P<port>\d+):(?P<sid>[^:/()]+)$')


def jdbc_url_to_dsn(url: str) -> str:
    """Translate an Oracle JDBC thin URL into a python-oracledb DSN

    jdbc:oracle:thin:@//host:port/service -> host:port/service
    jdbc:oracle:thin:@host:port/service   -> host:port/service
    jdbc:oracle:thin:@host:port:SID       -> connect descriptor with SID
    Descriptors, TNS aliases and non-JDBC strings pass through unchanged.
    """
    if not url.lower().startswith(JDBC_THIN_PREFIX):
        return url
    target = url[len(JDBC_THIN_PREFIX):]
    if target.startswith('//'):
        return target[2:]
    match = _SID_TARGET.match(target)
    if match:
        return oracledb.makedsn(match.group('host'), int(match.group('port')), sid=match.group('sid'))
    return target


# ============================================================================
# Graceful shutdown
# ============================================================================
class GracefulShutdown:
    """Cooperative shutdown flag

    Every generator sleeps through wait() so a shutdown request wakes them
    immediately. install() routes SIGINT (Ctrl+C) and SIGTERM here.
    """

    def __init__(self):
        self._event = threading.Event()

    def install(self):
        """Register SIGINT/SIGTERM handlers (main thread only)"""
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, signum, frame):
        if not self._event.is_set():
            logger.info(f"[Shutdown] {signal.Signals(signum).name} received. Shutting down gracefully...")
        self._event.set()

    def is_shutdown_requested(self) -> bool:
        return self._event.is_set()

    def request_shutdown(self):
        self._event.set()

    def wait(self, seconds: Optional[float] = None) -> bool:
        """Sleep up to seconds; True as soon as shutdown is requested"""
        return self._event.wait(seconds)


# ============================================================================
# Run statistics (thread-safe)
# ============================================================================
class GeneratorStats:
    """Per-generator success/error counters"""

    def __init__(self):
        self.lock = threading.Lock()
        self.executions: Dict[str, int] = {}
        self.errors: Dict[str, int] = {}
        self.skipped: Dict[str, int] = {}
        self.start_time = time.time()

    def record_success(self, name: str, count: int = 1):
        with self.lock:
            self.executions[name] = self.executions.get(name, 0) + count

    def record_error(self, name: str):
        with self.lock:
            self.errors[name] = self.errors.get(name, 0) + 1

    def record_skipped(self, name: str):
        with self.lock:
            self.skipped[name] = self.skipped.get(name, 0) + 1

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        with self.lock:
            names = sorted(set(self.executions) | set(self.errors) | set(self.skipped))
            return {
                name: {
                    'executions': self.executions.get(name, 0),
                    'errors': self.errors.get(name, 0),
                    'skipped': self.skipped.get(name, 0),
                }
                for name in names
            }

    def get_stats(self) -> Dict[str, Any]:
        with self.lock:
            return {
                'total_executions': sum(self.executions.values()),
                'total_errors': sum(self.errors.values()),
                'total_skipped': sum(self.skipped.values()),
                'elapsed_seconds': time.time() - self.start_time,
            }


class MonitorThread(threading.Thread):
    """Logs a one-line summary every interval until shutdown"""

    def __init__(self, interval_seconds: float, stats: GeneratorStats, shutdown: GracefulShutdown):
        super().__init__(name="Monitor", daemon=True)
        self.interval_seconds = interval_seconds
        self.stats = stats
        self.shutdown = shutdown

    def run(self):
        logger.info(f"[Monitor] Starting (interval: {self.interval_seconds:g}s)")
        while not self.shutdown.wait(self.interval_seconds):
            stats = self.stats.get_stats()
            busiest = sorted(self.stats.snapshot().items(),
                             key=lambda item: item[1]['executions'], reverse=True)[:5]
            top = ', '.join(f"{name}={counts['executions']}" for name, counts in busiest) or '-'
            logger.info(
                f"[Monitor] Executions: {stats['total_executions']:,} | "
                f"Errors: {stats['total_errors']:,} | "
                f"Skipped: {stats['total_skipped']:,} | "
                f"Elapsed: {stats['elapsed_seconds']:.1f}s | "
                f"Top: {top}"
            )
        logger.info("[Monitor] Stopped")


# ============================================================================
# Connectors
# ============================================================================
class OracleConnector(ABC):
    """Opens Oracle sessions for the generators

    Every call returns a brand new session with autocommit off; the
    generators close it after one iteration, as the logon churn is part of
    the load.
    """

    name = 'oracle'

    @abstractmethod
    def connect(self, call_timeout: Optional[float] = None):
        """Open a new DB-API connection

        Args:
            call_timeout: seconds after which a single round trip is aborted
        """

    def prepare(self, sql: str) -> str:
        """Adapt bind placeholders to the driver's paramstyle"""
        return sql

    def cancel(self, connection):
        """Interrupt a call running on connection from another thread"""


class ThinConnector(OracleConnector):
    """python-oracledb connector (thin mode, thick with oracle_client_lib)"""

    name = 'python-oracledb'

    def __init__(self, config: LoadGeneratorConfig):
        if config.oracle_client_lib:
            try:
                oracledb.init_oracle_client(lib_dir=config.oracle_client_lib)
            except oracledb.Error as e:
                raise ConfigurationError(
                    f"Cannot load Oracle Client libraries from {config.oracle_client_lib}: {e}") from e
            self.name = 'python-oracledb (thick)'
        self.dsn = config.dsn or jdbc_url_to_dsn(config.jdbc_url)
        self.user = config.user
        self.password = config.password
        logger.info(f"Using {self.name}, DSN: {self.dsn}")

    def connect(self, call_timeout: Optional[float] = None):
        connection = oracledb.connect(user=self.user, password=self.password, dsn=self.dsn)
        connection.autocommit = False
        if call_timeout:
            connection.call_timeout = int(call_timeout * 1000)
        return connection

    def cancel(self, connection):
        connection.cancel()


ORACLE_JDBC_DRIVER = 'oracle.jdbc.OracleDriver'
ORACLE_JAR_PATTERN = 'ojdbc*.jar'
_POSITIONAL_BIND = re.compile(r'(?<![:\w]):\d+\b')


def qmark_binds(sql: str) -> str:
    """Rewrite Oracle positional binds (:1, :2) to JDBC '?' markers"""
    return _POSITIONAL_BIND.sub('?', sql)


def _jar_version(path: str):
    # ojdbc17.jar sorts after ojdbc8.jar
    match = re.search(r'ojdbc(\d+)', os.path.basename(path))
    return (int(match.group(1)) if match else 0, path)


def find_jdbc_jar(jre_dir: str = './jre') -> str:
    """Locate the newest ojdbc*.jar under jre_dir (then the current directory)

    Raises:
        DriverNotFoundError: no jar found
    """
    for directory in (jre_dir, '.'):
        pattern = os.path.join(directory, '**', ORACLE_JAR_PATTERN)
        jar_files = glob.glob(pattern, recursive=True)
        if jar_files:
            jar_file = sorted(jar_files, key=_jar_version)[-1]
            logger.info(f"Found JDBC driver: {jar_file}")
            return jar_file
    raise DriverNotFoundError(
        f"Oracle JDBC driver not found ({ORACLE_JAR_PATTERN} in {jre_dir} or the current directory). "
        "Download it from https://www.oracle.com/database/technologies/appdev/jdbc-downloads.html")


def initialize_jvm(jar_file: str):
    """Start the JVM once with the JDBC driver on the classpath"""
    if jpype.isJVMStarted():
        return

    try:
        jvm_path = jpype.getDefaultJVMPath()
        logger.info(f"Initializing JVM using: {jvm_path}")
        logger.info(f"JVM Classpath: {jar_file}")
        jpype.startJVM(jvm_path, f"-Djava.class.path={jar_file}", "-Dfile.encoding=UTF-8")
        logger.info("JVM initialized successfully")
    except Exception as e:
        raise ConfigurationError(f"Failed to initialize JVM (set JAVA_HOME to a JDK/JRE): {e}") from e


class JdbcConnector(OracleConnector):
    """Oracle JDBC thin driver through JayDeBeApi"""

    name = 'Oracle JDBC'

    def __init__(self, config: LoadGeneratorConfig):
        self.jdbc_url = config.jdbc_url
        self.user = config.user
        self.password = config.password
        self.jar_file = find_jdbc_jar(config.jre_dir)
        initialize_jvm(self.jar_file)
        logger.info(f"Using {self.name}, URL: {self.jdbc_url}")

    def connect(self, call_timeout: Optional[float] = None):
        properties = {'user': self.user, 'password': self.password}
        if call_timeout:
            properties['oracle.jdbc.ReadTimeout'] = str(int(call_timeout * 1000))
        connection = jaydebeapi.connect(ORACLE_JDBC_DRIVER, self.jdbc_url, properties, self.jar_file)
        connection.jconn.setAutoCommit(False)
        return connection

    def prepare(self, sql: str) -> str:
        return qmark_binds(sql)


def create_connector(config: LoadGeneratorConfig) -> OracleConnector:
    connectors = {
        'thin': ThinConnector,
        'jdbc': JdbcConnector,
    }
    if config.driver not in connectors:
        raise ConfigurationError(f"Unsupported driver: {config.driver}")
    return connectors[config.driver](config)


def _close_quietly(resource):
    try:
        resource.close()
    except Exception as e:
        logger.debug(f"Ignored error while closing {type(resource).__name__}: {e}")


def _rollback_quietly(connection):
    try:
        connection.rollback()
    except Exception as e:
        logger.debug(f"Ignored rollback error: {e}")


# ============================================================================
# Load generator
# ============================================================================
MIN_BACKOFF_SECONDS = 0.1
MAX_BACKOFF_SECONDS = 5.0
FETCH_BATCH_SIZE = 500

LIBRARY_CACHE_STATEMENTS = 50
ROW_CACHE_QUERIES = 30
ARCHIVE_LOG_BATCHES = 5
PARSE_STATEMENTS = 100
SQLNET_ROUND_TRIPS = 1000
INDEX_CONTENTION_ROWS = 500
INDEX_CONTENTION_BATCH = 100


class OracleLoadGenerator:
    """Runs every generator on one bounded worker pool

    Lifecycle: setup_test_data() -> start() -> ... -> stop(). run() does all
    three and blocks until shutdown is requested or the duration elapses.
    """

    def __init__(self, config: LoadGeneratorConfig, connector: OracleConnector,
                 shutdown: Optional[GracefulShutdown] = None,
                 stats: Optional[GeneratorStats] = None,
                 rng: Optional[random.Random] = None):
        self.config = config
        self.connector = connector
        self.shutdown = shutdown or GracefulShutdown()
        self.stats = stats or GeneratorStats()
        self.random = rng or random.Random()
        self.executor = ThreadPoolExecutor(max_workers=config.pool_size, thread_name_prefix="LoadGen")
        self.monitor: Optional[MonitorThread] = None

        self.blocker_connection = None
        self.blocked_connections: List[Any] = []

        self._lock = threading.Lock()
        self._futures: set = set()
        self._burst_futures: Dict[str, Future] = {}
        self._active_connections: Dict[int, Any] = {}
        self._stopped = False

    # ------------------------------------------------------------------
    # plumbing
    # ------------------------------------------------------------------
    def _submit(self, fn: Callable, *args) -> Optional[Future]:
        try:
            future = self.executor.submit(fn, *args)
        except RuntimeError:
            if self.shutdown.is_shutdown_requested():
                logger.debug(f"Not scheduling {fn.__name__}: shutting down")
                return None
            raise
        with self._lock:
            self._futures.add(future)
        future.add_done_callback(self._forget_future)
        return future

    def _forget_future(self, future: Future):
        with self._lock:
            self._futures.discard(future)

    def pending_futures(self) -> List[Future]:
        with self._lock:
            return list(self._futures)

    @contextlib.contextmanager
    def _connection(self, call_timeout: Optional[float] = None):
        """New tracked session; rolled back on error and always closed"""
        connection = self.connector.connect(call_timeout)
        with self._lock:
            self._active_connections[id(connection)] = connection
        try:
            yield connection
        except BaseException:
            _rollback_quietly(connection)
            raise
        finally:
            with self._lock:
                self._active_connections.pop(id(connection), None)
            _close_quietly(connection)

    def _execute(self, cursor, sql: str, params=None):
        if params is None:
            cursor.execute(self.connector.prepare(sql))
        else:
            cursor.execute(self.connector.prepare(sql), params)

    def _drain(self, cursor) -> int:
        """Fetch and discard rows until exhausted or shutdown"""
        rows = 0
        while not self.shutdown.is_shutdown_requested():
            batch = cursor.fetchmany(FETCH_BATCH_SIZE)
            if not batch:
                break
            rows += len(batch)
        return rows

    def _random_order_id(self) -> int:
        return self.random.randint(1, self.config.order_rows)

    def _run_loop(self, name: str, label: str, iteration: Callable[[], None], interval: float):
        """Repeat iteration until shutdown, sleeping interval after each success

        Errors are logged and counted, then the loop backs off
        (100ms doubling up to 5s) before the next attempt.
        """
        backoff = MIN_BACKOFF_SECONDS
        while not self.shutdown.is_shutdown_requested():
            try:
                iteration()
            except Exception as e:
                if self.shutdown.is_shutdown_requested():
                    break
                logger.error(f"{label} error: {e}")
                self.stats.record_error(name)
                self.shutdown.wait(backoff)
                backoff = min(backoff * 2, MAX_BACKOFF_SECONDS)
                continue
            self.stats.record_success(name)
            backoff = MIN_BACKOFF_SECONDS
            self.shutdown.wait(interval)

    def _run_once(self, name: str, label: str, task: Callable[[], None]):
        try:
            task()
            self.stats.record_success(name)
        except Exception as e:
            if not self.shutdown.is_shutdown_requested():
                logger.error(f"{label} error: {e}")
                self.stats.record_error(name)

    # ------------------------------------------------------------------
    # setup
    # ------------------------------------------------------------------
    def setup_test_data(self):
        """Recreate the LOAD_TEST_ tables and sequences and seed them"""
        logger.info("Setting up test tables and data...")

        with self._connection() as connection, contextlib.closing(connection.cursor()) as cursor:
            for what, statement in (('tables', load_sql.DROP_TABLES),
                                    ('sequences', load_sql.DROP_SEQUENCES)):
                try:
                    cursor.execute(statement)
                except Exception as e:
                    logger.debug(f"Ignored error dropping existing {what}: {e}")

            logger.info("Creating tables...")
            cursor.execute(load_sql.CREATE_ORDERS_TABLE)
            cursor.execute(load_sql.CREATE_LOCK_TABLE)
            cursor.execute(load_sql.CREATE_ORDER_SEQUENCE)
            cursor.execute(load_sql.CREATE_LOCK_SEQUENCE)

            logger.info(f"Inserting test data ({self.config.order_rows:,} orders)...")
            cursor.execute(load_sql.seed_orders_sql(self.config.order_rows))
            cursor.execute(load_sql.seed_lock_targets_sql(self.config.lock_rows))
            connection.commit()

        logger.info("Test data setup complete!")

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def start(self):
        logger.info("Starting load generators...")

        self._submit(self.generate_cpu_intensive_queries)
        self._submit(self.generate_io_intensive_operations)
        self._submit(self.generate_lock_contention)
        self._submit(self.generate_enqueue_waits)
        self._submit(self.generate_latch_waits)
        self._submit(self.generate_log_file_waits)
        self._submit(self.generate_direct_path_reads)
        self._submit(self.generate_db_file_sequential_reads)

        for worker_id in range(self.config.buffer_busy_workers):
            self._submit(self.generate_buffer_busy_waits, worker_id)

        self._submit(self.scheduled_metrics_generator)

        if self.config.monitor_interval > 0:
            self.monitor = MonitorThread(self.config.monitor_interval, self.stats, self.shutdown)
            self.monitor.start()

        logger.info("All load generators started successfully!")

    def run(self, duration: float = 0, skip_setup: bool = False):
        """Setup, start, block until shutdown (or duration seconds), stop"""
        try:
            if skip_setup:
                logger.info("Skipping test data setup (reusing existing LOAD_TEST_ objects)")
            else:
                self.setup_test_data()
            self.start()

            logger.info("Load generation running. Press Ctrl+C to stop...")
            logger.info("Monitor with these queries:")
            for query in load_sql.MONITORING_QUERIES:
                logger.info(f"  {query}")

            deadline = time.monotonic() + duration if duration > 0 else None
            while not self.shutdown.is_shutdown_requested():
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    logger.info(f"Requested duration of {duration:g}s elapsed")
                    break
                self.shutdown.wait(1.0 if remaining is None else min(1.0, remaining))
        finally:
            self.stop()

    def _cancel_in_flight(self):
        with self._lock:
            connections = list(self._active_connections.values()) + list(self.blocked_connections)
            if self.blocker_connection is not None:
                connections.append(self.blocker_connection)
        for connection in connections:
            try:
                self.connector.cancel(connection)
            except Exception as e:
                logger.debug(f"Ignored cancel error: {e}")

    def stop(self):
        """Stop every generator and release the lock-contention sessions (idempotent)"""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True

        self.shutdown.request_shutdown()
        self.executor.shutdown(wait=False, cancel_futures=True)
        self._cancel_in_flight()

        _, not_done = wait(self.pending_futures(), timeout=self.config.shutdown_timeout)
        if not_done:
            logger.error(f"Executor did not terminate in time ({len(not_done)} tasks still running)")

        with self._lock:
            blocker = self.blocker_connection
            blocked = list(self.blocked_connections)
            self.blocker_connection = None
            self.blocked_connections.clear()

        if blocker is not None:
            try:
                blocker.rollback()
                blocker.close()
            except Exception as e:
                logger.error(f"Error closing blocker connection: {e}")

        for connection in blocked:
            try:
                connection.close()
            except Exception as e:
                logger.error(f"Error closing blocked connection: {e}")

        if self.monitor is not None:
            self.monitor.join(timeout=5)

        self._log_summary()
        logger.info("Load generator stopped")

    def _log_summary(self):
        stats = self.stats.get_stats()
        logger.info("=" * 80)
        logger.info("LOAD GENERATOR SUMMARY")
        logger.info("=" * 80)
        for name, counts in self.stats.snapshot().items():
            logger.info(f"{name:<22} executions: {counts['executions']:>8,}  errors: {counts['errors']:>6,}"
                        f"  skipped: {counts['skipped']:>4,}")
        logger.info("-" * 80)
        logger.info(f"Total executions: {stats['total_executions']:,} | Total errors: {stats['total_errors']:,} | "
                    f"Elapsed: {stats['elapsed_seconds']:.1f}s")
        logger.info("=" * 80)

    # ------------------------------------------------------------------
    # continuous generators
    # ------------------------------------------------------------------
    def cpu_intensive_query(self):
        query = self.random.choice(load_sql.CPU_INTENSIVE_QUERIES)
        with self._connection() as connection, contextlib.closing(connection.cursor()) as cursor:
            cursor.execute(query)
            self._drain(cursor)
        logger.info("Executed CPU-intensive query")

    def generate_cpu_intensive_queries(self):
        self._run_loop('cpu', 'CPU query', self.cpu_intensive_query, self.config.intervals['cpu'])

    def io_intensive_operation(self):
        statement = self.random.choice(load_sql.IO_INTENSIVE_STATEMENTS)
        with self._connection() as connection, contextlib.closing(connection.cursor()) as cursor:
            cursor.execute(statement)
            if statement.lstrip().upper().startswith('INSERT'):
                connection.commit()
            else:
                self._drain(cursor)
        logger.info("Executed I/O-intensive operation")

    def generate_io_intensive_operations(self):
        self._run_loop('io', 'I/O query', self.io_intensive_operation, self.config.intervals['io'])

    def enqueue_wait(self):
        row_id = self.random.randint(1, self.config.lock_rows)
        with self._connection() as connection, contextlib.closing(connection.cursor()) as cursor:
            self._execute(cursor, load_sql.LOCK_TARGET_TOUCH, [row_id])
            connection.commit()

    def generate_enqueue_waits(self):
        self._run_loop('enqueue', 'Enqueue wait', self.enqueue_wait, self.config.intervals['enqueue'])

    def latch_wait(self):
        params = [self.random.randint(1, 1000), self.random.randint(1, 500), self.random.random() * 1000]
        with self._connection() as connection, contextlib.closing(connection.cursor()) as cursor:
            self._execute(cursor, load_sql.LATCH_INSERT, params)
            connection.commit()

    def generate_latch_waits(self):
        self._run_loop('latch', 'Latch wait', self.latch_wait, self.config.intervals['latch'])

    def buffer_busy_wait(self, worker_id: int):
        # every worker hammers the same few rows
        hot_row_id = self.random.randint(1, self.config.hot_rows)
        with self._connection() as connection, contextlib.closing(connection.cursor()) as cursor:
            self._execute(cursor, load_sql.HOT_ROW_UPDATE, [worker_id, hot_row_id])
            connection.commit()

    def generate_buffer_busy_waits(self, worker_id: int):
        self._run_loop('buffer_busy', f'Worker {worker_id} buffer busy wait',
                       lambda: self.buffer_busy_wait(worker_id), self.config.intervals['buffer_busy'])

    def log_file_wait(self):
        with self._connection() as connection, contextlib.closing(connection.cursor()) as cursor:
            cursor.execute(load_sql.REDO_INSERT)
            connection.commit()

    def generate_log_file_waits(self):
        self._run_loop('log_file', 'Log file wait', self.log_file_wait, self.config.intervals['log_file'])

    def direct_path_read(self):
        with self._connection() as connection, contextlib.closing(connection.cursor()) as cursor:
            cursor.execute(load_sql.DIRECT_PATH_SCAN)
            self._drain(cursor)
        logger.info("Executed direct path read query")

    def generate_direct_path_reads(self):
        self._run_loop('direct_path', 'Direct path read', self.direct_path_read,
                       self.config.intervals['direct_path'])

    def db_file_sequential_read(self):
        with self._connection() as connection, contextlib.closing(connection.cursor()) as cursor:
            self._execute(cursor, load_sql.ORDER_AMOUNT_BY_ID, [self._random_order_id()])
            cursor.fetchone()

    def generate_db_file_sequential_reads(self):
        self._run_loop('sequential_read', 'Sequential read', self.db_file_sequential_read,
                       self.config.intervals['sequential_read'])

    # ------------------------------------------------------------------
    # lock contention
    # ------------------------------------------------------------------
    def generate_lock_contention(self):
        """One blocker holding rows 1-50, blocked sessions queueing on rows 25-75

        The blocker keeps its locks for lock_hold_seconds and then rolls
        back. Blocked sessions give up after blocked_timeout_seconds.
        """
        try:
            if self.shutdown.wait(self.config.lock_start_delay):
                return

            blocker = self.connector.connect()
            with self._lock:
                self.blocker_connection = blocker

            logger.info("Starting blocker session (will hold locks)")
            with contextlib.closing(blocker.cursor()) as cursor:
                cursor.execute(load_sql.BLOCKER_UPDATE)
            logger.info("Blocker session acquired locks on rows 1-50")

            for session_number in range(self.config.blocked_sessions):
                blocked = self.connector.connect(call_timeout=self.config.blocked_timeout_seconds)
                with self._lock:
                    self.blocked_connections.append(blocked)
                self._submit(self.run_blocked_session, session_number, blocked)

            if self.shutdown.wait(self.config.lock_hold_seconds):
                return
            blocker.rollback()
            logger.info("Blocker session released locks")
            self.stats.record_success('lock_contention')
        except Exception as e:
            if not self.shutdown.is_shutdown_requested():
                logger.error(f"Lock contention error: {e}")
                self.stats.record_error('lock_contention')
                # rows 1-50 hold the hot rows and enqueue targets
                with self._lock:
                    blocker = self.blocker_connection
                if blocker is not None:
                    _rollback_quietly(blocker)

    def run_blocked_session(self, session_number: int, connection):
        try:
            logger.info(f"Blocked session {session_number} attempting to acquire locks...")
            with contextlib.closing(connection.cursor()) as cursor:
                cursor.execute(load_sql.BLOCKED_UPDATE)
            connection.commit()
            logger.info(f"Blocked session {session_number} acquired lock")
            self.stats.record_success('blocked_session')
        except Exception as e:
            # a timeout or lock error here is the expected outcome
            logger.info(f"Blocked session {session_number} wait event: {e}")
            self.stats.record_success('blocked_session_timeout')

    # ------------------------------------------------------------------
    # scheduled bursts
    # ------------------------------------------------------------------
    def burst_tasks(self):
        return [
            ('tablespace_pressure', 'Tablespace pressure', self.generate_tablespace_pressure),
            ('temp_space', 'Temp space', self.generate_temp_space_usage),
            ('undo_segment', 'Undo segment', self.generate_undo_segment_contention),
            ('library_cache', 'Library cache', self.generate_library_cache_contention),
            ('row_cache', 'Row cache', self.generate_row_cache_contention),
            ('checkpoint', 'Checkpoint', self.generate_checkpoint_activity),
            ('archive_log', 'Archive log', self.generate_archive_log_activity),
            ('parse', 'Parse activity', self.generate_parse_activity),
            ('sqlnet', 'SQL*Net activity', self.generate_sqlnet_activity),
            ('index_contention', 'Index contention', self.generate_index_contention),
        ]

    def scheduled_metrics_generator(self):
        logger.info(f"Starting scheduled metrics generator (runs every {self.config.burst_interval:g} seconds)...")
        while not self.shutdown.wait(self.config.burst_interval):
            self.trigger_burst()

    def trigger_burst(self) -> List[str]:
        """Submit one round of burst tasks, returns the names submitted

        A task whose previous instance is still queued or running is skipped
        for this round.
        """
        logger.info("=== Scheduled Metrics Burst ===")
        submitted = []
        for name, label, task in self.burst_tasks():
            previous = self._burst_futures.get(name)
            if previous is not None and not previous.done():
                logger.warning(f"  [Scheduled] {label} still pending from the previous burst, skipped")
                self.stats.record_skipped(name)
                continue
            future = self._submit(self._run_once, name, label, task)
            if future is None:
                break
            self._burst_futures[name] = future
            submitted.append(name)
        logger.info("=== Metrics burst triggered ===")
        return submitted

    def generate_tablespace_pressure(self):
        with self._connection() as connection, contextlib.closing(connection.cursor()) as cursor:
            cursor.execute(load_sql.TABLESPACE_PRESSURE_INSERT)
            connection.commit()
        logger.info("  [Scheduled] Generated tablespace pressure")

    def generate_temp_space_usage(self):
        with self._connection() as connection, contextlib.closing(connection.cursor()) as cursor:
            cursor.execute(load_sql.TEMP_SPACE_QUERY)
            # the sort spills to temp before the first row comes back
            cursor.fetchone()
        logger.info("  [Scheduled] Generated temp space usage")

    def generate_undo_segment_contention(self):
        with self._connection() as connection, contextlib.closing(connection.cursor()) as cursor:
            cursor.execute(load_sql.undo_update_sql(self.random.randrange(100)))
            self.shutdown.wait(self.config.undo_hold_seconds)
            connection.rollback()
        logger.info("  [Scheduled] Generated undo segment activity")

    def generate_library_cache_contention(self):
        with self._connection() as connection, contextlib.closing(connection.cursor()) as cursor:
            for _ in range(LIBRARY_CACHE_STATEMENTS):
                cursor.execute(load_sql.library_cache_sql(self.random.randrange(1000), self.random.randrange(10)))
                cursor.fetchall()
        logger.info(f"  [Scheduled] Generated library cache contention ({LIBRARY_CACHE_STATEMENTS} unique SQLs)")

    def generate_row_cache_contention(self):
        with self._connection() as connection, contextlib.closing(connection.cursor()) as cursor:
            for _ in range(ROW_CACHE_QUERIES):
                cursor.execute(load_sql.DICTIONARY_QUERY)
                cursor.fetchall()
        logger.info("  [Scheduled] Generated row cache (dictionary cache) contention")

    def generate_checkpoint_activity(self):
        with self._connection() as connection, contextlib.closing(connection.cursor()) as cursor:
            cursor.execute(load_sql.CHECKPOINT_INSERT)
            connection.commit()
            cursor.execute(load_sql.CHECKPOINT_UPDATE)
            connection.commit()
        logger.info("  [Scheduled] Generated checkpoint activity")

    def generate_archive_log_activity(self):
        with self._connection() as connection, contextlib.closing(connection.cursor()) as cursor:
            for _ in range(ARCHIVE_LOG_BATCHES):
                cursor.execute(load_sql.ARCHIVE_LOG_INSERT)
                connection.commit()
        logger.info("  [Scheduled] Generated archive log activity (heavy redo)")

    def generate_parse_activity(self):
        millis = int(time.time() * 1000)
        with self._connection() as connection, contextlib.closing(connection.cursor()) as cursor:
            for i in range(PARSE_STATEMENTS):
                self._execute(cursor, load_sql.parse_test_sql(i, millis), [self._random_order_id()])
                cursor.fetchall()
        logger.info(f"  [Scheduled] Generated parse activity ({PARSE_STATEMENTS} hard parses)")

    def generate_sqlnet_activity(self):
        with self._connection() as connection, contextlib.closing(connection.cursor()) as cursor:
            for _ in range(SQLNET_ROUND_TRIPS):
                self._execute(cursor, load_sql.ORDER_DETAIL_BY_ID, [self._random_order_id()])
                cursor.fetchall()
        logger.info(f"  [Scheduled] Generated SQL*Net activity ({SQLNET_ROUND_TRIPS} round-trips)")

    def generate_index_contention(self):
        rows = [[self.random.randint(1, 100), self.random.randint(1, 50), self.random.random() * 1000]
                for _ in range(INDEX_CONTENTION_ROWS)]
        sql = self.connector.prepare(load_sql.INDEX_CONTENTION_INSERT)
        with self._connection() as connection, contextlib.closing(connection.cursor()) as cursor:
            for start in range(0, len(rows), INDEX_CONTENTION_BATCH):
                cursor.executemany(sql, rows[start:start + INDEX_CONTENTION_BATCH])
            connection.commit()
        logger.info(f"  [Scheduled] Generated index contention ({INDEX_CONTENTION_ROWS} inserts on PK)")


# ============================================================================
# PID file
# ============================================================================
def write_pid_file(path: str):
    with open(path, 'w') as f:
        f.write(f"{os.getpid()}\n")
    logger.info(f"PID {os.getpid()} written to {path}")


def remove_pid_file(path: str):
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


# ============================================================================
# Command line
# ============================================================================
def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=f'Oracle Database Load Generator v{VERSION}',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Settings (CLI > environment > .env file):
  ORACLE_JDBC_URL   jdbc:oracle:thin:@//host:1521/service
  ORACLE_DSN        python-oracledb DSN (overrides the one derived from the URL)
  ORACLE_USERNAME, ORACLE_PASSWORD
  ORACLE_DRIVER     thin | jdbc
  ORACLE_JRE_DIR    directory holding ojdbc*.jar (jdbc driver)
  ORACLE_CLIENT_LIB Instant Client directory (python-oracledb thick mode)

Interval names for --interval NAME=SECONDS:
  cpu, io, enqueue, latch, buffer_busy, log_file, direct_path, sequential_read

Examples:
  python oracle_load_generator.py
  python oracle_load_generator.py --dsn dbhost:1521/ORCLPDB1 --user scott --password tiger
  python oracle_load_generator.py --duration 600 --interval cpu=5 --burst-interval 30
  python oracle_load_generator.py --print-ddl
        """
    )

    # connection
    parser.add_argument('--env-file', default='.env', help='Settings file (default: .env)')
    parser.add_argument('--jdbc-url', help='Oracle JDBC thin URL')
    parser.add_argument('--dsn', help='python-oracledb DSN')
    parser.add_argument('--user', help='Database username')
    parser.add_argument('--password', help='Database password')
    parser.add_argument('--driver', choices=DRIVERS, help='Database driver (default: thin)')
    parser.add_argument('--jre-dir', help='Directory searched for ojdbc*.jar (default: ./jre)')
    parser.add_argument('--oracle-client-lib', help='Oracle Instant Client directory (thick mode)')

    # load
    parser.add_argument('--pool-size', type=int, default=20, help='Worker threads (default: 20)')
    parser.add_argument('--burst-interval', type=float, default=10.0,
                        help='Seconds between scheduled bursts (default: 10)')
    parser.add_argument('--buffer-busy-workers', type=int, default=10)
    parser.add_argument('--hot-rows', type=int, default=10, help='Rows shared by the buffer busy workers')
    parser.add_argument('--blocked-sessions', type=int, default=5)
    parser.add_argument('--lock-hold', type=float, default=20.0, help='Seconds the blocker holds its locks')
    parser.add_argument('--lock-start-delay', type=float, default=2.0)
    parser.add_argument('--blocked-timeout', type=float, default=30.0,
                        help='Seconds a blocked session waits before giving up')
    parser.add_argument('--interval', type=parse_interval, action='append', metavar='NAME=SECONDS',
                        help='Override the sleep of one continuous generator (repeatable)')
    parser.add_argument('--duration', type=float, default=0,
                        help='Stop after this many seconds (default: 0 = until Ctrl+C/SIGTERM)')
    parser.add_argument('--shutdown-timeout', type=float, default=10.0)

    # test data
    parser.add_argument('--order-rows', type=int, default=50000, help='Seed orders (default: 50000)')
    parser.add_argument('--lock-rows', type=int, default=100, help='Seed lock target rows (default: 100)')
    parser.add_argument('--skip-setup', action='store_true', help='Reuse existing LOAD_TEST_ objects')
    parser.add_argument('--print-ddl', action='store_true', help='Print the setup script and exit')

    # monitoring / logging
    parser.add_argument('--monitor-interval', type=float, default=30.0,
                        help='Seconds between summary lines (0 disables)')
    parser.add_argument('--log-file', default='oracle_load_generator.log')
    parser.add_argument('--error-log-file', default='oracle_load_generator_error.log')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], default='INFO')
    parser.add_argument('--pid-file', help='Write the process id here while running')
    parser.add_argument('--version', action='store_true', help='Show version and exit')

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point, returns the process exit status"""
    args = parse_arguments(argv)

    if args.version:
        print(f"Oracle Database Load Generator v{VERSION}")
        return 0

    if args.print_ddl:
        print(load_sql.get_ddl(args.order_rows, args.lock_rows))
        return 0

    setup_logging(args.log_file, args.error_log_file, args.log_level)

    logger.info("=" * 80)
    logger.info(f"ORACLE DATABASE LOAD GENERATOR v{VERSION}")
    logger.info("=" * 80)

    try:
        config = load_config(args)
        connector = create_connector(config)
    except LoadGeneratorError as e:
        logger.error(str(e))
        return 1

    logger.info(f"Driver: {connector.name} | Pool size: {config.pool_size} | "
                f"Burst interval: {config.burst_interval:g}s | Duration: "
                f"{f'{args.duration:g}s' if args.duration > 0 else 'until stopped'}")

    shutdown = GracefulShutdown()
    shutdown.install()
    generator = OracleLoadGenerator(config, connector, shutdown)

    if args.pid_file:
        write_pid_file(args.pid_file)
    try:
        generator.run(duration=args.duration, skip_setup=args.skip_setup)
    except Exception as e:
        logger.error(f"Error: {e}", exc_info=True)
        return 1
    finally:
        if args.pid_file:
            remove_pid_file(args.pid_file)
    return 0


if __name__ == "__main__":
    sys.exit(main())
