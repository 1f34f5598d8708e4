"""Example: drive the service layer directly (no Flask).

Resolves a badge payload, registers the person for an event and prints the
event's log feed.
"""

import importlib
import sys

from config import get_settings_module

from src.church_attendance.church_attendance.container import build_container
from src.church_attendance.church_attendance.core.enums import RegistrationSource


def main(payload: str = "uid:AbCdEfGh12345678901234", event_id: str = "evt-sunday") -> None:
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)

    resolution = container.identity_resolver.resolve(payload, church_id="church-demo")
    if not resolution.is_resolved:
        print("signup redirect:", resolution.signup_query(event_id))
        return

    result = container.registration_ledger.register(
        event_id, resolution.person_id, RegistrationSource.MANUAL_CHECKIN, church_id="church-demo"
    )
    print(result.outcome.value, result.registration.full_name)
    print(container.log_view.refresh_all(event_id))


if __name__ == "__main__":
    main(*sys.argv[1:3])
