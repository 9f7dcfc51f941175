from livenotes.services.answer_chain import FALLBACK_ANSWER, AnswerChain
from livenotes.services.speech import NullSynthesizer


def test_full_chain_speaks_the_answer(answer_chain, collaborator, synthesizer, player):
    outcome = answer_chain.run("What is X?")

    assert collaborator.summarize_calls == ["What is X?"]
    assert collaborator.answer_calls == ["What is X?"]
    assert synthesizer.calls == ["X is Y"]
    assert player.played == [b"RIFF-fake-audio"]
    assert outcome.answer == "X is Y"
    assert outcome.topics == "Topic: X"
    assert outcome.spoken
    assert not outcome.used_fallback
    assert outcome.errors == []


def test_topic_failure_does_not_stop_the_answer(stubs, synthesizer, player):
    collaborator = stubs.Collaborator(fail_summary=True)
    chain = AnswerChain(collaborator, synthesizer, player)

    outcome = chain.run("What is X?")

    assert outcome.answer == "X is Y"
    assert outcome.topics is None
    assert outcome.spoken
    assert outcome.errors == ["summarize: quota exceeded"]


def test_answer_failure_speaks_fallback(stubs, synthesizer, player):
    collaborator = stubs.Collaborator(fail_answer=True)
    chain = AnswerChain(collaborator, synthesizer, player)

    outcome = chain.run("What is X?")

    assert outcome.answer == FALLBACK_ANSWER
    assert outcome.used_fallback
    assert synthesizer.calls == [FALLBACK_ANSWER]
    assert outcome.spoken


def test_synthesis_failure_skips_playback(collaborator, stubs, player):
    chain = AnswerChain(collaborator, stubs.Synthesizer(fail=True), player)

    outcome = chain.run("What is X?")

    assert outcome.answer == "X is Y"
    assert player.played == []
    assert not outcome.spoken
    assert outcome.errors == ["synthesize: tts down"]


def test_playback_failure_is_contained(collaborator, synthesizer, stubs):
    chain = AnswerChain(collaborator, synthesizer, stubs.Player(fail=True))

    outcome = chain.run("What is X?")

    assert not outcome.spoken
    assert outcome.errors == ["play: no output device"]


def test_disabled_synthesizer_skips_speech(collaborator, player):
    chain = AnswerChain(collaborator, NullSynthesizer(), player)

    outcome = chain.run("What is X?")

    assert outcome.answer == "X is Y"
    assert player.played == []
    assert not outcome.spoken


def test_interrupted_before_speech(answer_chain, synthesizer, player):
    outcome = answer_chain.run("What is X?", should_continue=lambda: False)

    assert outcome.interrupted
    assert synthesizer.calls == []
    assert player.played == []


def test_interrupted_between_synthesis_and_playback(answer_chain, synthesizer, player):
    checks = iter([True, False])

    outcome = answer_chain.run("What is X?", should_continue=lambda: next(checks))

    assert outcome.interrupted
    assert synthesizer.calls == ["X is Y"]
    assert player.played == []


def test_answers_are_logged_to_notes_when_enabled(
    collaborator, synthesizer, player, notes, event_bus
):
    events = []
    event_bus.subscribe(events.append)
    chain = AnswerChain(
        collaborator, synthesizer, player, notes=notes, event_bus=event_bus, log_answers=True
    )

    chain.run("What is X?")

    expected = "### Listener question\n\nTopic: X\n\n**Answer:** X is Y"
    assert notes.text() == expected
    assert [event.source for event in events] == ["answer"]
    assert events[0].entry == expected


def test_answers_not_logged_by_default(answer_chain, notes):
    answer_chain.run("What is X?")
    assert notes.text() == ""


def test_cancel_stops_playback(answer_chain, player):
    answer_chain.cancel()
    assert player.stopped == 1


def test_outcome_to_dict(answer_chain):
    data = answer_chain.run("What is X?").to_dict()
    assert data["question"] == "What is X?"
    assert data["answer"] == "X is Y"
    assert data["spoken"] is True
    assert data["errors"] == []
