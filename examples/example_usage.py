"""Example: drive the service layer without Flask.

Pushes any offline attendance, then prints the latest records.
"""

import importlib

from config import get_settings_module

from src.gym_system.gym_system.container import build_container_from_settings


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container_from_settings(settings)

    report = container.sync_service.sync_offline_data()
    print("sync:", report.to_dict())
    for record in container.attendance_service.get_history()[:5]:
        print(record.date, record.time, record.user_id, record.attendance_type.value)


if __name__ == "__main__":
    main()
