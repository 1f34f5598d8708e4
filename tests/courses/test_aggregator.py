from __future__ import annotations

import pytest

from src.church_attendance.church_attendance.core.constants import COMPLETION_LOG_NOTE
from src.church_attendance.church_attendance.core.enums import AssignmentStatus, CourseStatus
from src.church_attendance.church_attendance.core.exceptions import NotFound, PersonNotFound, ValidationError, WriteConflict

ANA_ID = "AbCdEfGh12345678901234"
SUB = "sub-foundations"


@pytest.fixture
def foundations(catalog):
    for order in (1, 2, 3):
        catalog.add_course_event(f"evt-found-{order}", subcategory_id=SUB, order=order)
    return catalog


def _complete(aggregator, event_id):
    started = aggregator.start_course(ANA_ID, event_id, instructor_name="Pastor Kim")
    return aggregator.complete_course(started.completion_id, completed_by="operator-1")


def test_start_course_creates_in_progress_and_auto_assigns(aggregator, course_repo, foundations):
    completion = aggregator.start_course(ANA_ID, "evt-found-1", instructor_name=" Pastor Kim ", started_by="op-1")

    assert completion.status == CourseStatus.IN_PROGRESS
    assert completion.instructor_name == "Pastor Kim"
    assert completion.event_name == "Evt-Found-1"
    assert completion.subcategory_id == SUB

    assignment = course_repo.get_assignment(ANA_ID, SUB)
    assert assignment.status == AssignmentStatus.IN_PROGRESS
    assert assignment.assigned_by == "op-1"


def test_start_course_validates_inputs(aggregator, foundations):
    with pytest.raises(ValidationError):
        aggregator.start_course(ANA_ID, "evt-found-1", instructor_name="")
    with pytest.raises(NotFound):
        aggregator.start_course(ANA_ID, "evt-missing", instructor_name="Kim")
    with pytest.raises(PersonNotFound):
        aggregator.start_course("QqQqQqQqQqQqQqQqQqQqQq", "evt-found-1", instructor_name="Kim")


def test_non_course_event_is_not_assigned(aggregator, course_repo):
    aggregator.start_course(ANA_ID, "evt-sunday", instructor_name="Kim")

    assert course_repo.list_assignments_for_person(ANA_ID) == []


def test_two_of_three_required_is_not_completed(aggregator, foundations):
    _complete(aggregator, "evt-found-1")
    outcome = _complete(aggregator, "evt-found-2")

    assert not outcome.subcategory_completed
    progress = aggregator.subcategory_progress(ANA_ID, SUB)
    assert progress.is_completed is False
    assert progress.completion_percentage == 67
    assert progress.completed_count == 2
    assert progress.total_count == 3
    assert progress.is_assigned


def test_last_required_completion_appends_log_once(aggregator, course_repo, foundations):
    _complete(aggregator, "evt-found-1")
    _complete(aggregator, "evt-found-2")

    outcome = _complete(aggregator, "evt-found-3")

    assert outcome.subcategory_completed
    assert outcome.completion.completed_by == "operator-1"
    log = course_repo.get_completion_log(ANA_ID, SUB)
    assert log.note == COMPLETION_LOG_NOTE

    assert aggregator.evaluate_subcategory(ANA_ID, SUB) is False
    again = aggregator.complete_course(outcome.completion.completion_id)
    assert again.subcategory_completed is False
    assert len(course_repo.list_completion_logs(ANA_ID)) == 1

    progress = aggregator.subcategory_progress(ANA_ID, SUB)
    assert progress.is_completed
    assert progress.completion_percentage == 100
    assert progress.completed_at == log.completed_at


def test_optional_events_do_not_block_completion(aggregator, catalog, course_repo):
    catalog.add_course_event("evt-req", subcategory_id=SUB, order=1)
    catalog.add_course_event("evt-extra", subcategory_id=SUB, required=False, order=2)

    outcome = _complete(aggregator, "evt-req")

    assert outcome.subcategory_completed
    assert aggregator.subcategory_progress(ANA_ID, SUB).completion_percentage == 50


def test_subcategory_without_required_events_never_completes(aggregator, catalog, course_repo):
    catalog.add_course_event("evt-only", subcategory_id="sub-open", required=False, order=1)

    outcome = _complete(aggregator, "evt-only")

    assert not outcome.subcategory_completed
    assert course_repo.get_completion_log(ANA_ID, "sub-open") is None


def test_removing_required_completion_rolls_back_log(aggregator, course_repo, foundations):
    outcomes = [_complete(aggregator, f"evt-found-{order}") for order in (1, 2, 3)]
    assert course_repo.get_completion_log(ANA_ID, SUB) is not None

    removed = aggregator.remove_completion(outcomes[1].completion.completion_id)

    assert removed.event_id == "evt-found-2"
    assert course_repo.get_completion_log(ANA_ID, SUB) is None
    assert aggregator.subcategory_progress(ANA_ID, SUB).completion_percentage == 67
    with pytest.raises(NotFound):
        aggregator.remove_completion(removed.completion_id)


def test_restarting_a_completed_course_keeps_it_completed(aggregator, foundations):
    outcome = _complete(aggregator, "evt-found-1")

    again = aggregator.start_course(ANA_ID, "evt-found-1", instructor_name="Deacon Lee", notes="review")

    assert again.completion_id == outcome.completion.completion_id
    assert again.status == CourseStatus.COMPLETED
    assert again.instructor_name == "Deacon Lee"
    assert again.notes == "review"


def test_manual_assignment_and_unassignment(aggregator, course_repo):
    assignment = aggregator.assign_subcategory(ANA_ID, category_id="cat-growth", subcategory_id=SUB, assigned_by="op")

    assert assignment.status == AssignmentStatus.ASSIGNED
    assert aggregator.assign_subcategory(ANA_ID, category_id="cat-growth", subcategory_id=SUB) == assignment

    aggregator.unassign_subcategory(ANA_ID, SUB)
    with pytest.raises(NotFound):
        aggregator.unassign_subcategory(ANA_ID, SUB)


def test_person_progress_covers_assigned_and_started_subcategories(aggregator, foundations):
    aggregator.assign_subcategory(ANA_ID, category_id="cat-growth", subcategory_id="sub-prayer")
    _complete(aggregator, "evt-found-1")

    progress = {p.subcategory_id: p for p in aggregator.person_progress(ANA_ID)}

    assert set(progress) == {"sub-prayer", SUB}
    assert progress["sub-prayer"].total_count == 0
    assert progress["sub-prayer"].completion_percentage == 0
    assert progress[SUB].completion_percentage == 33
    assert progress[SUB].category_id == "cat-growth"


def test_concurrent_start_reuses_the_winning_row(aggregator, course_repo, foundations):
    real_create = course_repo.create_completion

    def lost_race(**row):
        real_create(**row)
        raise WriteConflict("Course already started for this person")

    course_repo.create_completion = lost_race

    completion = aggregator.start_course(ANA_ID, "evt-found-1", instructor_name="Pastor Kim", notes="second")

    assert len(course_repo.list_completions_for_person(ANA_ID)) == 1
    assert completion.notes == "second"
