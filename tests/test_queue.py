"""
Unit tests for the file queue.
"""
import pytest

from conftest import make_file, make_record
from core.exceptions import DataNotFoundError, InvalidTransitionError
from core.queue import FileQueue


def test_submit_appends_queued_entries_in_order():
    queue = FileQueue()
    queue.submit([make_file("a.pdf"), make_file("b.pdf")])
    queue.submit([make_file("c.png", "image/png")])

    entries = queue.snapshot()
    assert [e.source_file.filename for e in entries] == ["a.pdf", "b.pdf", "c.png"]
    assert all(e.status == "queued" for e in entries)
    assert len({e.id for e in entries}) == 3


def test_submit_nothing_is_a_no_op():
    queue = FileQueue()
    assert queue.submit([]) == ()
    assert len(queue) == 0


def test_snapshot_is_unaffected_by_later_transitions():
    queue = FileQueue()
    (entry,) = queue.submit([make_file()])
    before = queue.snapshot()

    queue.transition(entry.id, "processing")

    assert before[0].status == "queued"
    assert queue.snapshot()[0].status == "processing"


def test_claim_next_takes_earliest_queued():
    queue = FileQueue()
    first, second = queue.submit([make_file("a.pdf"), make_file("b.pdf")])

    claimed = queue.claim_next()
    assert claimed.id == first.id
    assert claimed.status == "processing"


def test_claim_next_blocked_while_processing():
    queue = FileQueue()
    queue.submit([make_file("a.pdf"), make_file("b.pdf")])
    queue.claim_next()

    assert queue.claim_next() is None
    assert queue.processing_count() == 1


def test_claim_next_skips_finished_entries():
    queue = FileQueue()
    first, second = queue.submit([make_file("a.pdf"), make_file("b.pdf")])
    queue.claim_next()
    queue.transition(first.id, "error", error_message="boom")

    assert queue.claim_next().id == second.id


def test_transition_to_processed_keeps_result():
    queue = FileQueue()
    (entry,) = queue.submit([make_file()])
    queue.transition(entry.id, "processing")
    record = make_record()

    done = queue.transition(entry.id, "processed", result=record)

    assert done.result == record
    assert done.error_message is None
    assert done.source_file is entry.source_file


def test_transition_requires_matching_payload():
    queue = FileQueue()
    (entry,) = queue.submit([make_file()])
    queue.transition(entry.id, "processing")

    with pytest.raises(ValueError):
        queue.transition(entry.id, "processed")


@pytest.mark.parametrize("path", [
    ["processed"],
    ["processing", "queued"],
    ["processing", "error", "processing"],
])
def test_invalid_transitions_rejected(path):
    queue = FileQueue()
    (entry,) = queue.submit([make_file()])

    with pytest.raises(InvalidTransitionError):
        for status in path:
            payload = {"error_message": "x"} if status == "error" else {}
            if status == "processed":
                payload = {"result": make_record()}
            queue.transition(entry.id, status, **payload)


def test_unknown_entry():
    queue = FileQueue()
    with pytest.raises(DataNotFoundError):
        queue.get("missing")
    with pytest.raises(DataNotFoundError):
        queue.transition("missing", "processing")
