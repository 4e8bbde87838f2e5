"""Shared test configuration."""

import os
import shutil
import tempfile

# app.py reads DATABASE_PATH at import time, before any fixture runs
TEST_DB_DIR = tempfile.mkdtemp(prefix="oe_manager_test_")
os.environ.setdefault("DATABASE_PATH", os.path.join(TEST_DB_DIR, "oe_manager_test.db"))


def pytest_sessionfinish(session, exitstatus):
    shutil.rmtree(TEST_DB_DIR, ignore_errors=True)
