"""
Tests for audit rows written to the errors table.
"""

import asyncio

from mutualaid.audit import ErrorLog, describe_error
from mutualaid.errors import StoreError


class TestErrorLog:
    def test_writes_one_row(self, error_table, make_request):
        request = make_request()
        log = ErrorLog(error_table)

        written = asyncio.run(log.log_error_to_table("Requests", request, ValueError("bad"), "resolve coordinates"))

        assert written
        [(op, rows)] = error_table.calls
        assert op == "create"
        assert rows[0]["Table"] == "Requests"
        assert rows[0]["Record ID"] == request.id
        assert rows[0]["Operation"] == "resolve coordinates"
        assert rows[0]["Error"] == "ValueError: bad"
        assert "Logged At" in rows[0]

    def test_write_failure_is_not_raised(self, error_table, make_request):
        error_table.fail_create = StoreError("down")
        log = ErrorLog(error_table)

        written = asyncio.run(log.log_error_to_table("Requests", make_request(), ValueError("bad"), "split"))

        assert not written

    def test_describe_error_without_message(self):
        assert describe_error(TimeoutError()) == "TimeoutError"
