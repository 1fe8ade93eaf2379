from datetime import timedelta

import pytest

from vocab_srs.core.selector import QuizQueue, due_count, due_queue, list_view, quiz_faces
from vocab_srs.models import Language, MasteryLevel, Status, ViewFilter


@pytest.fixture
def items(make_item, t0):
    return [
        make_item("one", "uno"),
        make_item("two", "dos", status=Status.CHECK_LATER),
        make_item("three", "tres", status=Status.ARCHIVED, review=True),
        make_item("four", "cuatro", is_active=False),
        make_item("five", "cinco", review=False),
        make_item("six", "seis", next_review_at=t0 + timedelta(days=1)),
        make_item("seven", "siete", level=MasteryLevel.MASTERED),
    ]


def _targets(items):
    return [i.target_text for i in items]


def test_all_filter_keeps_everything(items):
    assert len(list_view(items, ViewFilter.ALL)) == len(items)


def test_active_only(items):
    assert "cuatro" not in _targets(list_view(items, ViewFilter.ACTIVE_ONLY))


@pytest.mark.parametrize("view_filter,status", [
    (ViewFilter.REVIEW_NOW, Status.REVIEW_NOW),
    (ViewFilter.CHECK_LATER, Status.CHECK_LATER),
    (ViewFilter.ARCHIVED, Status.ARCHIVED),
])
def test_status_filters(items, view_filter, status):
    view = list_view(items, view_filter)
    assert view and all(i.status is status for i in view)


def test_review_only_excludes_archived_and_unreviewed(items):
    view = _targets(list_view(items, ViewFilter.ALL, review_only=True))
    assert "tres" not in view
    assert "cinco" not in view
    assert "uno" in view and "dos" in view
    assert list_view(items, ViewFilter.ARCHIVED, review_only=True) == []


def test_due_queue_membership_and_order(items, t0):
    assert _targets(due_queue(items, t0)) == ["uno", "cuatro"]
    assert _targets(due_queue(items, t0 + timedelta(days=2))) == ["uno", "cuatro", "seis"]
    assert due_count(items, t0) == 2


def test_due_queue_only_holds_review_now(items, t0):
    later = t0 + timedelta(days=365)
    assert all(i.status is Status.REVIEW_NOW and i.review for i in due_queue(items, later))


def test_quiz_position_wraps_when_queue_shrinks(make_item, t0):
    a, b, c = make_item("a", "a1"), make_item("b", "b1"), make_item("c", "c1")
    quiz = QuizQueue()
    quiz.refresh([a, b, c], t0)
    quiz.advance()
    quiz.advance()
    assert quiz.current() is c
    assert quiz.progress() == (3, 3)

    quiz.refresh([a, b], t0)
    assert quiz.position == 0
    assert quiz.current() is a


def test_quiz_advance_cycles_and_handles_empty(make_item, t0):
    quiz = QuizQueue()
    quiz.refresh([], t0)
    assert quiz.current() is None
    assert quiz.advance() is None
    assert quiz.progress() == (0, 0)

    a, b = make_item("a", "a1"), make_item("b", "b1")
    quiz.refresh([a, b], t0)
    assert quiz.advance() is b
    assert quiz.advance() is a


def test_quiz_faces(make_item):
    item = make_item("dog", "perro")
    assert quiz_faces(item, Language.SPANISH) == ("perro", "dog")
    assert quiz_faces(item, "english") == ("dog", "perro")
