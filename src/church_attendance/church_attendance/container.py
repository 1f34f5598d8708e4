from __future__ import annotations

from dataclasses import dataclass

from .childcare.mysql_childcare_repository import MySQLChildCareRepository
from .childcare.service import ChildCareTracker
from .courses.mysql_course_repository import MySQLCourseRepository
from .courses.service import CourseProgressAggregator
from .database.connection import DatabaseConnection
from .directory.mysql_directory_repository import MySQLDirectoryRepository
from .events.mysql_event_repository import MySQLEventRepository
from .events.service import EventService
from .identity.service import IdentityResolver
from .logs.service import UnifiedLogView
from .registrations.mysql_registration_repository import MySQLRegistrationRepository
from .registrations.service import RegistrationLedger
from .scanning.session import OperatorContext, ScanLoop, ScanLoopRegistry


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    directory_repo: MySQLDirectoryRepository
    events_repo: MySQLEventRepository
    registrations_repo: MySQLRegistrationRepository
    child_care_repo: MySQLChildCareRepository
    courses_repo: MySQLCourseRepository

    identity_resolver: IdentityResolver
    event_service: EventService
    registration_ledger: RegistrationLedger
    child_care_tracker: ChildCareTracker
    course_aggregator: CourseProgressAggregator
    log_view: UnifiedLogView
    scan_loops: ScanLoopRegistry


def build_container(*, db_config: dict) -> Container:
    conn = DatabaseConnection.from_settings(db_config)

    directory_repo = MySQLDirectoryRepository(conn)
    events_repo = MySQLEventRepository(conn)
    registrations_repo = MySQLRegistrationRepository(conn)
    child_care_repo = MySQLChildCareRepository(conn)
    courses_repo = MySQLCourseRepository(conn)

    identity_resolver = IdentityResolver(directory_repo)
    event_service = EventService(events_repo)
    registration_ledger = RegistrationLedger(registrations_repo, directory_repo, events_repo)
    child_care_tracker = ChildCareTracker(child_care_repo, registrations_repo, events_repo)
    course_aggregator = CourseProgressAggregator(courses_repo, events_repo, directory_repo)
    log_view = UnifiedLogView(registration_ledger, child_care_tracker, course_aggregator, directory_repo)

    def new_scan_loop(context: OperatorContext, event_id: str) -> ScanLoop:
        return ScanLoop(identity_resolver, registration_ledger, context=context, event_id=event_id)

    return Container(
        conn=conn,
        directory_repo=directory_repo,
        events_repo=events_repo,
        registrations_repo=registrations_repo,
        child_care_repo=child_care_repo,
        courses_repo=courses_repo,
        identity_resolver=identity_resolver,
        event_service=event_service,
        registration_ledger=registration_ledger,
        child_care_tracker=child_care_tracker,
        course_aggregator=course_aggregator,
        log_view=log_view,
        scan_loops=ScanLoopRegistry(factory=new_scan_loop),
    )
