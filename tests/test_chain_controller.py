import pytest

from thoughtchain.entities import ChainStatus
from thoughtchain.errors import NotFoundError, StorageError, ValidationError
from thoughtchain.session import ChainSession


def test_add_step_numbers_steps_sequentially(controller, session):
    for index in range(1, 4):
        result = controller.mutate(session, "add_step", f"thought {index}")
        assert result.step.id == index
    assert [step.id for step in session.current.steps] == [1, 2, 3]
    assert [step.builds_on for step in session.current.steps] == [[], [1], [2]]


def test_add_step_persists_every_mutation(controller, session):
    controller.mutate(session, "add_step", "persist me", "with a reflection")
    stored = controller.store.get(session.current.id)
    assert stored.to_dict() == session.current.to_dict()
    assert stored.steps[0].reflection == "with a reflection"
    assert stored.updated is not None


def test_add_step_requires_thought(controller, session):
    with pytest.raises(ValidationError, match="Thought is required"):
        controller.mutate(session, "add_step", "   ")
    assert session.current.steps == []


def test_rejected_content_leaves_session_untouched(controller, session):
    controller.mutate(session, "add_step", "safe")
    before = session.current
    with pytest.raises(ValidationError):
        controller.mutate(session, "add_step", "<script>alert(1)</script>")
    assert session.current is before


def test_review_returns_current_chain_without_writing(controller, session):
    result = controller.mutate(session, "review_chain")
    assert result.chain is session.current
    assert controller.store.get(session.current.id) is None


def test_conclude_marks_chain_and_stamps_time(controller, session):
    controller.mutate(session, "add_step", "premise")
    result = controller.mutate(session, "conclude", "therefore", "final thoughts")

    chain = result.chain
    assert chain.status == ChainStatus.concluded.value
    assert chain.concluded is not None
    assert chain.updated == chain.concluded
    assert result.step.is_conclusion
    assert result.step.id == 2
    assert controller.store.get(chain.id).is_concluded


def test_conclude_requires_thought(controller, session):
    with pytest.raises(ValidationError, match="Thought is required"):
        controller.mutate(session, "conclude", None)


def test_add_step_after_conclusion_is_allowed(controller, session):
    controller.mutate(session, "conclude", "done early")
    result = controller.mutate(session, "add_step", "one more thing")

    assert result.step.id == 2
    assert result.chain.status == ChainStatus.concluded.value


def test_new_chain_persists_but_does_not_swap(controller, session):
    original = session.current
    result = controller.mutate(session, "new_chain")

    assert session.current is original
    assert result.chain.id != original.id
    assert result.chain.steps == []
    assert controller.store.get(result.chain.id) is not None


def test_unknown_action_rejected(controller, session):
    with pytest.raises(ValidationError, match="Unknown action: rewind"):
        controller.mutate(session, "rewind")


def test_load_reactivates_and_swaps(controller, session):
    controller.mutate(session, "add_step", "first")
    concluded = controller.mutate(session, "conclude", "end").chain

    other = ChainSession()
    loaded = controller.load(other, concluded.id)

    assert other.current is loaded
    assert loaded.status == ChainStatus.active.value
    assert loaded.concluded == concluded.concluded
    assert len(loaded.steps) == 2
    assert controller.store.get(concluded.id).status == ChainStatus.active.value


def test_load_then_continue_numbering(controller, session):
    controller.mutate(session, "add_step", "one")
    controller.mutate(session, "add_step", "two")

    fresh = ChainSession()
    controller.load(fresh, session.current.id)
    result = controller.mutate(fresh, "add_step", "three")
    assert result.step.id == 3


def test_load_missing_chain(controller, session):
    original = session.current
    with pytest.raises(NotFoundError, match="Thought chain with ID missing-chain not found"):
        controller.load(session, "missing-chain")
    assert session.current is original


def test_load_rejects_bad_identifier(controller, session):
    with pytest.raises(ValidationError, match="Chain ID contains"):
        controller.load(session, "../../etc/passwd")


def test_search_defaults_and_filters(controller, session):
    controller.mutate(session, "add_step", "caching strategy")
    other = ChainSession()
    controller.mutate(other, "add_step", "database sharding")

    result = controller.search("caching")
    assert result.query == "caching"
    assert [chain.id for chain in result.chains] == [session.current.id]

    recent = controller.search()
    assert recent.query == ""
    assert len(recent.chains) == 2


def test_search_limit_is_validated(controller):
    with pytest.raises(ValidationError, match="Limit must be a number between 1 and 100"):
        controller.search("anything", 500)


def test_stats(controller, session):
    controller.mutate(session, "add_step", "a")
    controller.mutate(session, "conclude", "b")
    stats = controller.stats()
    assert stats.total_chains == 1
    assert stats.total_steps == 2
    assert stats.active_chains == 0


def test_resume_most_recent_active(controller, session):
    controller.mutate(session, "add_step", "keep going")

    resumed = ChainSession()
    chain = controller.resume_most_recent(resumed)
    assert chain.id == session.current.id
    assert resumed.current.id == session.current.id


def test_resume_with_nothing_stored_keeps_fresh_chain(controller):
    fresh = ChainSession()
    original = fresh.current
    assert controller.resume_most_recent(fresh) is None
    assert fresh.current is original


def test_failed_save_leaves_session_untouched(controller, session, monkeypatch):
    controller.mutate(session, "add_step", "saved")
    before = session.current

    def failing_put(chain):
        raise StorageError("Failed to save thought chain")

    monkeypatch.setattr(controller.store, "put", failing_put)
    with pytest.raises(StorageError):
        controller.mutate(session, "add_step", "not saved")
    assert session.current is before
    assert len(session.current.steps) == 1
