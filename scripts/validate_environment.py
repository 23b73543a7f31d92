#!/usr/bin/env python3
"""Validate local dormitory allocation environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sqlite3
import sys
import tempfile
from dataclasses import replace
from importlib.metadata import version
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.domain.availability import get_available_beds, get_room_occupancy
from backend.domain.models import StayPeriod
from backend.repository.data_repository import DataRepository
from backend.utils.config import get_settings

SEPARATOR_LINE = "=" * 44
EXPECTED_DEMO_BEDS = 16


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="dormitory-env-")

    # CHECK 1 - Python version >= 3.11
    if sys.version_info >= (3, 11):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.11",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2 - Required packages importable with versions
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("pandas", "pandas"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    import_errors: list[str] = []
    for module_name, dist_name in package_specs:
        try:
            importlib.import_module(module_name)
            version(dist_name)
        except Exception as exc:  # pragma: no cover - runtime guard
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        temp_db_path = Path(temp_dir) / "dormitory_validation.db"
        validation_settings = replace(get_settings(), database_path=temp_db_path)
        repository = DataRepository(validation_settings)

        # CHECK 3 - Database initialization
        try:
            repository.initialize_database()
            ok, line = _print_result("Database initialization", True)
        except Exception as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4 - Demo inventory seeding
        try:
            repository.seed_demo_inventory()
            with sqlite3.connect(temp_db_path) as conn:
                seeded_beds = int(conn.execute("SELECT COUNT(*) FROM Beds;").fetchone()[0])
            if seeded_beds != EXPECTED_DEMO_BEDS:
                raise RuntimeError(f"expected {EXPECTED_DEMO_BEDS} beds, got {seeded_beds}")
            ok, line = _print_result(f"Demo inventory: {seeded_beds} beds", True)
        except Exception as exc:
            ok, line = _print_result("Demo inventory", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5 - Availability engine over the seeded inventory
        try:
            rooms = repository.list_rooms()
            if not rooms:
                raise RuntimeError("no rooms available")
            event = repository.list_events()[0]
            stay = StayPeriod(event.start_date, event.end_date)
            room = rooms[0]
            available = get_available_beds(room, repository.list_bookings(), None, stay)
            occupancy = get_room_occupancy(room, repository.list_bookings(), None, stay)
            if len(available) != len(room.beds) or occupancy.vacant != len(room.beds):
                raise RuntimeError("empty inventory should be fully available")
            ok, line = _print_result(
                "Availability engine",
                True,
                f": room {room.room_number} {len(available)}/{occupancy.capacity} free",
            )
        except Exception as exc:
            ok, line = _print_result("Availability engine", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Dormitory Allocation Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
