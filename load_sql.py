"""
SQL catalogue for the Oracle load generator.

Every statement the generator issues lives here. Bind variables use Oracle
positional style (:1, :2, ...); the JDBC connector rewrites them to '?'.
"""

import time
from typing import List, Optional

ORDERS_TABLE = 'LOAD_TEST_ORDERS'
LOCK_TABLE = 'LOAD_TEST_LOCK_TARGET'
ORDER_SEQUENCE = 'LOAD_TEST_ORDER_SEQ'
LOCK_SEQUENCE = 'LOAD_TEST_LOCK_SEQ'


# ============================================================================
# Schema setup
# ============================================================================
DROP_TABLES = """
BEGIN
    FOR t IN (SELECT table_name FROM user_tables WHERE table_name LIKE 'LOAD_TEST_%') LOOP
        EXECUTE IMMEDIATE 'DROP TABLE ' || t.table_name || ' PURGE';
    END LOOP;
END;"""

DROP_SEQUENCES = """
BEGIN
    FOR s IN (SELECT sequence_name FROM user_sequences
              WHERE sequence_name IN ('LOAD_TEST_ORDER_SEQ', 'LOAD_TEST_LOCK_SEQ')) LOOP
        EXECUTE IMMEDIATE 'DROP SEQUENCE ' || s.sequence_name;
    END LOOP;
END;"""

CREATE_ORDERS_TABLE = """
CREATE TABLE LOAD_TEST_ORDERS (
    order_id      NUMBER PRIMARY KEY,
    customer_id   NUMBER,
    product_id    NUMBER,
    order_date    DATE,
    order_amount  NUMBER(10,2),
    status        VARCHAR2(20),
    region        VARCHAR2(50),
    sales_rep     VARCHAR2(100),
    comments      VARCHAR2(4000),
    lock_flag     NUMBER DEFAULT 0,
    created_date  TIMESTAMP DEFAULT SYSTIMESTAMP
)"""

CREATE_LOCK_TABLE = """
CREATE TABLE LOAD_TEST_LOCK_TARGET (
    id           NUMBER PRIMARY KEY,
    data         VARCHAR2(500),
    counter      NUMBER DEFAULT 0,
    last_update  TIMESTAMP DEFAULT SYSTIMESTAMP
)"""

CREATE_ORDER_SEQUENCE = "CREATE SEQUENCE load_test_order_seq START WITH 1 INCREMENT BY 1"
CREATE_LOCK_SEQUENCE = "CREATE SEQUENCE load_test_lock_seq START WITH 1 INCREMENT BY 1"

SEED_ORDERS = """
INSERT INTO LOAD_TEST_ORDERS
    (order_id, customer_id, product_id, order_date, order_amount, status, region, sales_rep, comments)
SELECT load_test_order_seq.NEXTVAL,
       MOD(LEVEL, 1000) + 1,
       MOD(LEVEL, 500) + 1,
       SYSDATE - DBMS_RANDOM.VALUE(1, 365),
       ROUND(DBMS_RANDOM.VALUE(10, 10000), 2),
       CASE MOD(LEVEL, 4)
           WHEN 0 THEN 'PENDING'
           WHEN 1 THEN 'PROCESSING'
           WHEN 2 THEN 'COMPLETED'
           ELSE 'CANCELLED' END,
       'Region' || MOD(LEVEL, 10),
       'Rep' || MOD(LEVEL, 50),
       RPAD('Order data ' || LEVEL, 1000, ' padding')
FROM dual CONNECT BY LEVEL <= {rows}"""

SEED_LOCK_TARGETS = """
INSERT INTO LOAD_TEST_LOCK_TARGET (id, data, counter)
SELECT load_test_lock_seq.NEXTVAL, 'Lock target ' || LEVEL, 0
FROM dual CONNECT BY LEVEL <= {rows}"""


def seed_orders_sql(rows: int) -> str:
    return SEED_ORDERS.format(rows=int(rows))


def seed_lock_targets_sql(rows: int) -> str:
    return SEED_LOCK_TARGETS.format(rows=int(rows))


def get_ddl(order_rows: int = 50000, lock_rows: int = 100) -> str:
    """DDL and seed script, in the order setup runs it"""
    statements = [
        DROP_TABLES,
        DROP_SEQUENCES,
        CREATE_ORDERS_TABLE,
        CREATE_LOCK_TABLE,
        CREATE_ORDER_SEQUENCE,
        CREATE_LOCK_SEQUENCE,
        seed_orders_sql(order_rows),
        seed_lock_targets_sql(lock_rows),
    ]
    script = []
    for statement in statements:
        statement = statement.strip()
        # PL/SQL blocks end with their own ';' and need a '/' for SQL*Plus
        if statement.startswith('BEGIN'):
            script.append(statement + '\n/')
        else:
            script.append(statement + ';')
    script.append('COMMIT;')
    return '\n\n'.join(script) + '\n'


# ============================================================================
# Continuous generators
# ============================================================================
CPU_INTENSIVE_QUERIES = (
    """
    SELECT /*+ FULL(o) */
           order_id, customer_id,
           POWER(order_amount, 2) AS amount_squared,
           SQRT(order_amount) AS amount_sqrt,
           LN(order_amount + 1) AS amount_log,
           DBMS_RANDOM.VALUE(1, 1000000) AS random_calc
    FROM LOAD_TEST_ORDERS o
    WHERE order_amount > (SELECT AVG(order_amount) * 0.8 FROM LOAD_TEST_ORDERS)
    ORDER BY order_amount DESC""",
    """
    SELECT /*+ USE_HASH(o1 o2) */ COUNT(*)
    FROM LOAD_TEST_ORDERS o1, LOAD_TEST_ORDERS o2
    WHERE o1.region = o2.region
      AND o1.status = o2.status
      AND ROWNUM <= 10000""",
    """
    SELECT o.order_id, o.customer_id, o.order_amount,
           (SELECT COUNT(*) FROM LOAD_TEST_ORDERS o2
            WHERE o2.customer_id = o.customer_id) AS cust_order_count
    FROM LOAD_TEST_ORDERS o
    WHERE o.status = 'PENDING'
      AND NOT EXISTS (SELECT 1 FROM LOAD_TEST_ORDERS o3
                      WHERE o3.customer_id = o.customer_id
                        AND o3.status = 'COMPLETED'
                        AND o3.order_date > o.order_date)""",
)

IO_INTENSIVE_STATEMENTS = (
    """
    SELECT customer_id, COUNT(*) AS order_count,
           SUM(order_amount) AS total_amount,
           AVG(order_amount) AS avg_amount,
           RANK() OVER (ORDER BY SUM(order_amount) DESC) AS customer_rank
    FROM LOAD_TEST_ORDERS
    GROUP BY customer_id
    ORDER BY total_amount DESC""",
    """
    SELECT region, status, COUNT(*) cnt, SUM(order_amount) total,
           ROW_NUMBER() OVER (PARTITION BY region ORDER BY COUNT(*) DESC) AS rn
    FROM LOAD_TEST_ORDERS
    GROUP BY region, status
    ORDER BY region, cnt DESC""",
    """
    INSERT INTO LOAD_TEST_ORDERS
        (order_id, customer_id, product_id, order_date, order_amount, status, region, sales_rep, comments)
    SELECT load_test_order_seq.NEXTVAL, MOD(ROWNUM, 1000) + 1, MOD(ROWNUM, 500) + 1,
           SYSDATE, ROUND(DBMS_RANDOM.VALUE(10, 1000), 2), 'PENDING',
           'Region' || MOD(ROWNUM, 10), 'Rep' || MOD(ROWNUM, 50), RPAD('Bulk insert', 500, ' data')
    FROM dual CONNECT BY LEVEL <= 1000""",
)

LOCK_TARGET_TOUCH = """
UPDATE LOAD_TEST_LOCK_TARGET
SET counter = counter + 1, last_update = SYSTIMESTAMP
WHERE id = :1"""

LATCH_INSERT = """
INSERT INTO LOAD_TEST_ORDERS
    (order_id, customer_id, product_id, order_date, order_amount, status, region, sales_rep, comments)
VALUES (load_test_order_seq.NEXTVAL, :1, :2, SYSDATE, :3, 'PENDING', 'Region0', 'Rep1', 'Latch contention test')"""

HOT_ROW_UPDATE = """
UPDATE LOAD_TEST_LOCK_TARGET
SET counter = counter + 1, data = SUBSTR('Worker' || :1 || ' updated', 1, 100)
WHERE id = :2"""

REDO_INSERT = """
INSERT INTO LOAD_TEST_ORDERS
    (order_id, customer_id, product_id, order_date, order_amount, status, region, sales_rep, comments)
SELECT load_test_order_seq.NEXTVAL, MOD(LEVEL, 1000) + 1, MOD(LEVEL, 500) + 1,
       SYSDATE, ROUND(DBMS_RANDOM.VALUE(10, 1000), 2), 'PENDING',
       'Region' || MOD(LEVEL, 10), 'Rep1', RPAD('Redo generation', 2000, ' heavy write load')
FROM dual CONNECT BY LEVEL <= 500"""

DIRECT_PATH_SCAN = """
SELECT /*+ FULL(o) PARALLEL(o, 4) */
       order_id, customer_id, product_id, order_amount, comments
FROM LOAD_TEST_ORDERS o
WHERE order_amount > 100
ORDER BY order_amount DESC"""

ORDER_AMOUNT_BY_ID = "SELECT order_amount FROM LOAD_TEST_ORDERS WHERE order_id = :1"


# ============================================================================
# Lock contention
# ============================================================================
BLOCKER_UPDATE = """
UPDATE LOAD_TEST_LOCK_TARGET
SET counter = counter + 1, last_update = SYSTIMESTAMP, data = data || ' LOCKED'
WHERE id BETWEEN 1 AND 50"""

BLOCKED_UPDATE = """
UPDATE LOAD_TEST_LOCK_TARGET
SET counter = counter + 100, data = data || ' BLOCKED_SESSION'
WHERE id BETWEEN 25 AND 75"""


# ============================================================================
# Scheduled bursts
# ============================================================================
TABLESPACE_PRESSURE_INSERT = """
INSERT INTO LOAD_TEST_ORDERS
SELECT load_test_order_seq.NEXTVAL, MOD(LEVEL, 1000), MOD(LEVEL, 500),
       SYSDATE, 999.99, 'PENDING', 'Region0', 'Rep1',
       RPAD('Tablespace pressure test', 3500, 'X'), 0, SYSTIMESTAMP
FROM dual CONNECT BY LEVEL <= 2000"""

TEMP_SPACE_QUERY = """
SELECT /*+ USE_HASH(o1 o2) */
       o1.order_id, o2.order_id,
       RANK() OVER (ORDER BY o1.order_amount + o2.order_amount DESC)
FROM LOAD_TEST_ORDERS o1, LOAD_TEST_ORDERS o2
WHERE o1.region = o2.region
ORDER BY o1.order_amount + o2.order_amount DESC"""

UNDO_UPDATE = """
UPDATE LOAD_TEST_ORDERS
SET order_amount = order_amount * 1.01,
    comments = SUBSTR(comments, 1, 3000) || ' UNDO_TEST'
WHERE MOD(order_id, 100) = {bucket}"""

DICTIONARY_QUERY = "SELECT table_name FROM user_tables WHERE table_name LIKE 'LOAD_TEST%'"

CHECKPOINT_INSERT = """
INSERT INTO LOAD_TEST_ORDERS
SELECT load_test_order_seq.NEXTVAL, LEVEL, LEVEL, SYSDATE,
       DBMS_RANDOM.VALUE(1, 1000), 'PENDING', 'Region0', 'Rep1',
       RPAD('Checkpoint test', 2000, 'Y'), 0, SYSTIMESTAMP
FROM dual CONNECT BY LEVEL <= 5000"""

CHECKPOINT_UPDATE = """
UPDATE LOAD_TEST_ORDERS SET status = 'PROCESSING'
WHERE status = 'PENDING' AND ROWNUM <= 3000"""

ARCHIVE_LOG_INSERT = """
INSERT INTO LOAD_TEST_ORDERS
SELECT load_test_order_seq.NEXTVAL, MOD(LEVEL, 500), MOD(LEVEL, 250),
       SYSDATE, 100, 'PENDING', 'Region0', 'Rep1',
       RPAD('Archive log generation', 1500, 'Z'), 0, SYSTIMESTAMP
FROM dual CONNECT BY LEVEL <= 1000"""

ORDER_DETAIL_BY_ID = """
SELECT order_id, customer_id, product_id, order_amount, status, region, comments
FROM LOAD_TEST_ORDERS WHERE order_id = :1"""

INDEX_CONTENTION_INSERT = """
INSERT INTO LOAD_TEST_ORDERS
    (order_id, customer_id, product_id, order_date, order_amount, status, region, sales_rep, comments)
VALUES (load_test_order_seq.NEXTVAL, :1, :2, SYSDATE, :3, 'PENDING', 'Region0', 'Rep1', 'Index contention')"""


def undo_update_sql(bucket: int) -> str:
    return UNDO_UPDATE.format(bucket=int(bucket))


def library_cache_sql(customer_id: int, region: int) -> str:
    """Literal values on purpose: each text is a distinct cursor in the shared pool"""
    return (f"SELECT COUNT(*) FROM LOAD_TEST_ORDERS "
            f"WHERE customer_id = {int(customer_id)} AND region = 'Region{int(region)}'")


def parse_test_sql(sequence: int, millis: Optional[int] = None) -> str:
    """Uniquely commented lookup so every call forces a hard parse"""
    if millis is None:
        millis = int(time.time() * 1000)
    return (f"SELECT /* PARSE_TEST_{millis}_{sequence} */ order_amount "
            f"FROM LOAD_TEST_ORDERS WHERE order_id = :1")


# ============================================================================
# Monitoring hints printed at startup
# ============================================================================
MONITORING_QUERIES: List[str] = [
    "SELECT event, total_waits, time_waited FROM v$system_event "
    "WHERE wait_class != 'Idle' ORDER BY time_waited DESC;",
    "SELECT blocking_session, sid, event, seconds_in_wait FROM v$session "
    "WHERE blocking_session IS NOT NULL;",
    "SELECT sql_id, executions, elapsed_time/1000000 elapsed_sec FROM v$sql "
    "WHERE elapsed_time > 1000000 ORDER BY elapsed_time DESC;",
]
