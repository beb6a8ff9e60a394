"""Tests for best-effort batch results."""

from household_ledger.split.batch import BatchResult


def boom():
    raise RuntimeError("disk full")


class TestBatchResult:
    """Outcome collection."""

    def test_failures_do_not_stop_the_batch(self):
        result = BatchResult()

        result.run("create", "alice", lambda: "p1")
        result.run("create", "bob", boom)
        result.run("delete", "p9", lambda: None)

        assert not result.ok
        assert [o.target for o in result.succeeded] == ["alice", "p9"]
        assert result.failures[0].error == "disk full"
        assert result.succeeded[0].result == "p1"

    def test_summary(self):
        result = BatchResult()
        result.run("create", "alice", lambda: "p1")
        result.run("create", "bob", boom)
        result.run("delete", "p9", lambda: None)

        assert result.summary() == "created 1 (1 failed), deleted 1"

    def test_empty_summary(self):
        assert BatchResult().ok
        assert BatchResult().summary() == "no portion changes"

    def test_merge(self):
        first = BatchResult()
        first.run("create", "alice", lambda: "p1")
        second = BatchResult()
        second.run("update", "p2", boom)

        merged = first.merge(second)

        assert [(o.action, o.ok) for o in merged.outcomes] == [
            ("create", True),
            ("update", False),
        ]
