"""Repository layer responsible for all database access."""

from __future__ import annotations

import sqlite3
import uuid
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from backend.domain.models import (
    APPROVED,
    DECLINED,
    PENDING,
    Allocation,
    Bed,
    Booking,
    BookingDraft,
    Building,
    Comment,
    Event,
    LiveLink,
    Notification,
    Person,
    Room,
    StayPeriod,
)
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

AllocationResolver = Callable[
    [Booking, list[Room], list[Building], list[Booking]], Sequence[Allocation]
]


class DuplicateBookingNumberError(Exception):
    """Raised when a generated booking number collides with an existing one."""


def _new_id() -> str:
    return uuid.uuid4().hex


def _format_ts(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="seconds")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(str(value))


def _parse_day(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(str(value)[:10])


def _stay_period(stay_from: Optional[str], stay_to: Optional[str]) -> Optional[StayPeriod]:
    start, end = _parse_day(stay_from), _parse_day(stay_to)
    if start is None or end is None or start > end:
        return None
    return StayPeriod(stay_from=start, stay_to=end)


def _row_to_event(row: sqlite3.Row) -> Event:
    return Event(
        id=str(row["id"]),
        name=str(row["name"]),
        description=str(row["description"]),
        location=row["location"],
        start_date=_parse_day(row["start_date"]),
        end_date=_parse_day(row["end_date"]),
        booking_start_date=_parse_day(row["booking_start_date"]),
        booking_end_date=_parse_day(row["booking_end_date"]),
    )


def _row_to_building(row: sqlite3.Row) -> Building:
    return Building(id=str(row["id"]), name=str(row["name"]), gender=str(row["gender"]))


def _row_to_bed(row: sqlite3.Row) -> Bed:
    return Bed(
        id=str(row["id"]),
        name=str(row["name"]),
        type=str(row["bed_type"]),
        room_id=str(row["room_id"]),
    )


def _row_to_notification(row: sqlite3.Row) -> Notification:
    return Notification(
        id=str(row["id"]),
        user_id=row["user_id"],
        target=str(row["target"]),
        message=str(row["message"]),
        read=bool(row["read"]),
        created_at=_parse_ts(row["created_at"]),
        expires_at=_parse_ts(row["expires_at"]),
    )


def _row_to_comment(row: sqlite3.Row) -> Comment:
    return Comment(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        content=str(row["content"]),
        status=str(row["status"]),
        created_at=_parse_ts(row["created_at"]),
        updated_at=_parse_ts(row["updated_at"]),
    )


def _row_to_live_link(row: sqlite3.Row) -> LiveLink:
    return LiveLink(
        id=str(row["id"]),
        name=str(row["name"]),
        url=str(row["url"]),
        youtube_embed_url=row["youtube_embed_url"],
        live_from=_parse_ts(row["live_from"]),
        live_to=_parse_ts(row["live_to"]),
        created_at=_parse_ts(row["created_at"]),
    )


class DataRepository:
    """Encapsulates SQLite access so business logic stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.executescript(
                    """
                    CREATE TABLE IF NOT EXISTS Events (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        description TEXT NOT NULL,
                        location TEXT,
                        start_date TEXT NOT NULL,
                        end_date TEXT NOT NULL,
                        booking_start_date TEXT NOT NULL,
                        booking_end_date TEXT NOT NULL,
                        created_at TEXT NOT NULL
                    );

                    CREATE TABLE IF NOT EXISTS Buildings (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        gender TEXT NOT NULL CHECK (gender IN ('male', 'female', 'unisex')),
                        created_at TEXT NOT NULL
                    );

                    CREATE TABLE IF NOT EXISTS Rooms (
                        id TEXT PRIMARY KEY,
                        building_id TEXT NOT NULL,
                        room_number TEXT NOT NULL,
                        created_at TEXT NOT NULL,
                        FOREIGN KEY (building_id) REFERENCES Buildings(id) ON DELETE CASCADE
                    );

                    CREATE TABLE IF NOT EXISTS Beds (
                        id TEXT PRIMARY KEY,
                        room_id TEXT NOT NULL,
                        name TEXT NOT NULL,
                        bed_type TEXT NOT NULL CHECK (bed_type IN ('single', 'floor_bed')),
                        position INTEGER NOT NULL DEFAULT 0,
                        created_at TEXT NOT NULL,
                        FOREIGN KEY (room_id) REFERENCES Rooms(id) ON DELETE CASCADE
                    );

                    CREATE TABLE IF NOT EXISTS Bookings (
                        id TEXT PRIMARY KEY,
                        booking_number TEXT NOT NULL UNIQUE,
                        user_id TEXT NOT NULL,
                        event_id TEXT NOT NULL,
                        status TEXT NOT NULL DEFAULT 'pending'
                            CHECK (status IN ('pending', 'approved', 'declined')),
                        stay_from TEXT NOT NULL,
                        stay_to TEXT NOT NULL,
                        email TEXT,
                        contact_number TEXT,
                        address TEXT,
                        city TEXT,
                        ashram_name TEXT,
                        notes TEXT,
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL,
                        FOREIGN KEY (event_id) REFERENCES Events(id)
                    );

                    CREATE TABLE IF NOT EXISTS BookingPeople (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        booking_id TEXT NOT NULL,
                        person_index INTEGER NOT NULL,
                        name TEXT NOT NULL,
                        age INTEGER,
                        gender TEXT NOT NULL,
                        stay_from TEXT,
                        stay_to TEXT,
                        FOREIGN KEY (booking_id) REFERENCES Bookings(id) ON DELETE CASCADE
                    );

                    CREATE TABLE IF NOT EXISTS Allocations (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        booking_id TEXT NOT NULL,
                        person_index INTEGER NOT NULL,
                        building_id TEXT,
                        room_id TEXT,
                        bed_id TEXT,
                        FOREIGN KEY (booking_id) REFERENCES Bookings(id) ON DELETE CASCADE
                    );

                    CREATE TABLE IF NOT EXISTS Notifications (
                        id TEXT PRIMARY KEY,
                        user_id TEXT,
                        target TEXT NOT NULL CHECK (target IN ('user', 'admin', 'all')),
                        message TEXT NOT NULL,
                        created_at TEXT NOT NULL,
                        expires_at TEXT NOT NULL
                    );

                    CREATE TABLE IF NOT EXISTS NotificationReads (
                        notification_id TEXT NOT NULL,
                        user_id TEXT NOT NULL,
                        read_at TEXT NOT NULL,
                        PRIMARY KEY (notification_id, user_id),
                        FOREIGN KEY (notification_id) REFERENCES Notifications(id) ON DELETE CASCADE
                    );

                    CREATE TABLE IF NOT EXISTS Comments (
                        id TEXT PRIMARY KEY,
                        user_id TEXT NOT NULL,
                        content TEXT NOT NULL,
                        status TEXT NOT NULL DEFAULT 'pending'
                            CHECK (status IN ('pending', 'approved', 'rejected')),
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    );

                    CREATE TABLE IF NOT EXISTS LiveLinks (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        url TEXT NOT NULL,
                        youtube_embed_url TEXT,
                        live_from TEXT NOT NULL,
                        live_to TEXT NOT NULL,
                        created_at TEXT NOT NULL
                    );

                    CREATE INDEX IF NOT EXISTS idx_bookings_status ON Bookings(status);
                    CREATE INDEX IF NOT EXISTS idx_bookings_stay ON Bookings(stay_from, stay_to);
                    CREATE INDEX IF NOT EXISTS idx_allocations_bed ON Allocations(bed_id);
                    CREATE INDEX IF NOT EXISTS idx_people_booking ON BookingPeople(booking_id);
                    CREATE INDEX IF NOT EXISTS idx_notifications_user_expiry
                        ON Notifications(user_id, expires_at);
                    CREATE INDEX IF NOT EXISTS idx_comments_status ON Comments(status, created_at);
                    CREATE INDEX IF NOT EXISTS idx_live_links_window ON LiveLinks(live_from, live_to);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_demo_inventory(self) -> int:
        """Seed a small event and building inventory only when empty.

        Returns the number of beds created (0 when skipped).
        """
        inventory = [
            ("Men's Hall", "male", [
                ("M-101", [("M-101-A", "single"), ("M-101-B", "single"), ("M-101-C", "single")]),
                ("M-102", [("M-102-A", "single"), ("M-102-B", "single"), ("M-102-F", "floor_bed")]),
            ]),
            ("Women's Hall", "female", [
                ("W-101", [("W-101-A", "single"), ("W-101-B", "single"), ("W-101-C", "single")]),
                ("W-102", [("W-102-A", "single"), ("W-102-B", "single"), ("W-102-F", "floor_bed")]),
            ]),
            ("Family Block", "unisex", [
                ("F-1", [("F-1-A", "single"), ("F-1-B", "single"), ("F-1-C", "floor_bed"), ("F-1-D", "floor_bed")]),
            ]),
        ]
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) AS count FROM Buildings;")
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Inventory already present; skipping seed")
                    return 0

                created_at = _format_ts(_utc_now())
                today = _utc_now().date()
                cursor.execute(
                    """
                    INSERT INTO Events (
                        id, name, description, location, start_date, end_date,
                        booking_start_date, booking_end_date, created_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
                    """,
                    (
                        _new_id(),
                        "Annual Gathering",
                        "Residential gathering with dormitory accommodation",
                        "Main Campus",
                        (today + timedelta(days=30)).isoformat(),
                        (today + timedelta(days=37)).isoformat(),
                        today.isoformat(),
                        (today + timedelta(days=25)).isoformat(),
                        created_at,
                    ),
                )

                bed_rows = []
                for building_name, gender, rooms in inventory:
                    building_id = _new_id()
                    cursor.execute(
                        "INSERT INTO Buildings (id, name, gender, created_at) VALUES (?, ?, ?, ?);",
                        (building_id, building_name, gender, created_at),
                    )
                    for room_number, beds in rooms:
                        room_id = _new_id()
                        cursor.execute(
                            """
                            INSERT INTO Rooms (id, building_id, room_number, created_at)
                            VALUES (?, ?, ?, ?);
                            """,
                            (room_id, building_id, room_number, created_at),
                        )
                        for position, (bed_name, bed_type) in enumerate(beds):
                            bed_rows.append(
                                (_new_id(), room_id, bed_name, bed_type, position, created_at)
                            )

                cursor.executemany(
                    """
                    INSERT INTO Beds (id, room_id, name, bed_type, position, created_at)
                    VALUES (?, ?, ?, ?, ?, ?);
                    """,
                    bed_rows,
                )
                conn.commit()
            logger.info("Demo inventory seeded with %s beds", len(bed_rows))
            return len(bed_rows)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Demo inventory seeding failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def create_event(
        self,
        *,
        name: str,
        description: str,
        start_date: date,
        end_date: date,
        booking_start_date: date,
        booking_end_date: date,
        location: Optional[str] = None,
    ) -> Event:
        event_id = _new_id()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Events (
                    id, name, description, location, start_date, end_date,
                    booking_start_date, booking_end_date, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    event_id,
                    name,
                    description,
                    location,
                    start_date.isoformat(),
                    end_date.isoformat(),
                    booking_start_date.isoformat(),
                    booking_end_date.isoformat(),
                    _format_ts(_utc_now()),
                ),
            )
            conn.commit()
        return self.get_event(event_id)

    def get_event(self, event_id: str) -> Optional[Event]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM Events WHERE id = ?;", (event_id,)).fetchone()
            return _row_to_event(row) if row is not None else None

    def list_events(self) -> list[Event]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM Events ORDER BY start_date ASC, name ASC;").fetchall()
            return [_row_to_event(row) for row in rows]

    def update_event(
        self,
        event_id: str,
        *,
        name: str,
        description: str,
        start_date: date,
        end_date: date,
        booking_start_date: date,
        booking_end_date: date,
        location: Optional[str] = None,
    ) -> Optional[Event]:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE Events
                SET name = ?, description = ?, location = ?, start_date = ?, end_date = ?,
                    booking_start_date = ?, booking_end_date = ?
                WHERE id = ?;
                """,
                (
                    name,
                    description,
                    location,
                    start_date.isoformat(),
                    end_date.isoformat(),
                    booking_start_date.isoformat(),
                    booking_end_date.isoformat(),
                    event_id,
                ),
            )
            conn.commit()
            if cursor.rowcount == 0:
                return None
        return self.get_event(event_id)

    def delete_event(self, event_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM Events WHERE id = ?;", (event_id,))
            conn.commit()
            return cursor.rowcount > 0

    def count_active_bookings_for_event(self, event_id: str) -> int:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT COUNT(*) AS count FROM Bookings
                WHERE event_id = ? AND status IN (?, ?);
                """,
                (event_id, PENDING, APPROVED),
            ).fetchone()
            return int(row["count"])

    def delete_bookings_for_event(self, event_id: str) -> int:
        """Remove declined bookings still attached to an event being deleted."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM Bookings WHERE event_id = ?;", (event_id,))
            conn.commit()
            return cursor.rowcount

    # ------------------------------------------------------------------
    # Buildings, rooms and beds
    # ------------------------------------------------------------------

    def create_building(self, name: str, gender: str) -> Building:
        building_id = _new_id()
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO Buildings (id, name, gender, created_at) VALUES (?, ?, ?, ?);",
                (building_id, name, gender, _format_ts(_utc_now())),
            )
            conn.commit()
        return Building(id=building_id, name=name, gender=gender)

    def get_building(self, building_id: str) -> Optional[Building]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM Buildings WHERE id = ?;", (building_id,)).fetchone()
            return _row_to_building(row) if row is not None else None

    def list_buildings(self) -> list[Building]:
        with self._connect() as conn:
            return self._load_buildings(conn)

    def _load_buildings(self, conn: sqlite3.Connection) -> list[Building]:
        rows = conn.execute("SELECT * FROM Buildings ORDER BY name ASC, created_at ASC;").fetchall()
        return [_row_to_building(row) for row in rows]

    def update_building(self, building_id: str, name: str, gender: str) -> Optional[Building]:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE Buildings SET name = ?, gender = ? WHERE id = ?;",
                (name, gender, building_id),
            )
            conn.commit()
            if cursor.rowcount == 0:
                return None
        return Building(id=building_id, name=name, gender=gender)

    def delete_building(self, building_id: str) -> bool:
        """Delete a building; rooms and beds cascade."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM Buildings WHERE id = ?;", (building_id,))
            conn.commit()
            return cursor.rowcount > 0

    def create_room(
        self,
        building_id: str,
        room_number: str,
        beds: Sequence[tuple[str, str]],
    ) -> Room:
        """Insert a room and its beds in one transaction."""
        room_id = _new_id()
        created_at = _format_ts(_utc_now())
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO Rooms (id, building_id, room_number, created_at) VALUES (?, ?, ?, ?);",
                (room_id, building_id, room_number, created_at),
            )
            conn.executemany(
                """
                INSERT INTO Beds (id, room_id, name, bed_type, position, created_at)
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                [
                    (_new_id(), room_id, bed_name, bed_type, position, created_at)
                    for position, (bed_name, bed_type) in enumerate(beds)
                ],
            )
            conn.commit()
        return self.get_room(room_id)

    def get_room(self, room_id: str) -> Optional[Room]:
        with self._connect() as conn:
            rooms = self._load_rooms(conn, "WHERE r.id = ?", (room_id,))
        return rooms[0] if rooms else None

    def list_rooms(self, building_id: Optional[str] = None) -> list[Room]:
        with self._connect() as conn:
            if building_id is None:
                return self._load_rooms(conn)
            return self._load_rooms(conn, "WHERE r.building_id = ?", (building_id,))

    def _load_rooms(
        self,
        conn: sqlite3.Connection,
        where: str = "",
        params: tuple = (),
    ) -> list[Room]:
        room_rows = conn.execute(
            f"""
            SELECT r.id, r.building_id, r.room_number
            FROM Rooms AS r
            {where}
            ORDER BY r.room_number ASC, r.created_at ASC;
            """,
            params,
        ).fetchall()
        if not room_rows:
            return []

        room_ids = [str(row["id"]) for row in room_rows]
        placeholders = ",".join("?" for _ in room_ids)
        bed_rows = conn.execute(
            f"""
            SELECT id, room_id, name, bed_type
            FROM Beds
            WHERE room_id IN ({placeholders})
            ORDER BY position ASC, created_at ASC;
            """,
            tuple(room_ids),
        ).fetchall()
        beds_by_room: dict[str, list[Bed]] = defaultdict(list)
        for row in bed_rows:
            beds_by_room[str(row["room_id"])].append(_row_to_bed(row))

        return [
            Room(
                id=str(row["id"]),
                room_number=str(row["room_number"]),
                building_id=str(row["building_id"]),
                beds=tuple(beds_by_room.get(str(row["id"]), ())),
            )
            for row in room_rows
        ]

    def update_room(self, room_id: str, room_number: str) -> Optional[Room]:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE Rooms SET room_number = ? WHERE id = ?;",
                (room_number, room_id),
            )
            conn.commit()
            if cursor.rowcount == 0:
                return None
        return self.get_room(room_id)

    def delete_room(self, room_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM Rooms WHERE id = ?;", (room_id,))
            conn.commit()
            return cursor.rowcount > 0

    def create_bed(self, room_id: str, name: str, bed_type: str) -> Bed:
        bed_id = _new_id()
        with self._connect() as conn:
            row = conn.execute(
                "SELECT COALESCE(MAX(position) + 1, 0) AS next_position FROM Beds WHERE room_id = ?;",
                (room_id,),
            ).fetchone()
            conn.execute(
                """
                INSERT INTO Beds (id, room_id, name, bed_type, position, created_at)
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                (bed_id, room_id, name, bed_type, int(row["next_position"]), _format_ts(_utc_now())),
            )
            conn.commit()
        return Bed(id=bed_id, name=name, type=bed_type, room_id=room_id)

    def get_bed(self, bed_id: str) -> Optional[Bed]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, room_id, name, bed_type FROM Beds WHERE id = ?;",
                (bed_id,),
            ).fetchone()
            return _row_to_bed(row) if row is not None else None

    def update_bed(self, bed_id: str, name: str, bed_type: str) -> Optional[Bed]:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE Beds SET name = ?, bed_type = ? WHERE id = ?;",
                (name, bed_type, bed_id),
            )
            conn.commit()
            if cursor.rowcount == 0:
                return None
        return self.get_bed(bed_id)

    def delete_bed(self, bed_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM Beds WHERE id = ?;", (bed_id,))
            conn.commit()
            return cursor.rowcount > 0

    def find_occupant_name(self, bed_ids: Iterable[str]) -> Optional[str]:
        """Name of any person allocated to one of ``bed_ids`` by a live booking."""
        wanted = [bed_id for bed_id in bed_ids if bed_id]
        if not wanted:
            return None
        placeholders = ",".join("?" for _ in wanted)
        with self._connect() as conn:
            row = conn.execute(
                f"""
                SELECT bp.name
                FROM Allocations AS a
                INNER JOIN Bookings AS b ON b.id = a.booking_id
                LEFT JOIN BookingPeople AS bp
                    ON bp.booking_id = a.booking_id AND bp.person_index = a.person_index
                WHERE a.bed_id IN ({placeholders}) AND b.status != ?
                LIMIT 1;
                """,
                (*wanted, DECLINED),
            ).fetchone()
            if row is None:
                return None
            return str(row["name"] or "an allocated guest")

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    def create_booking(self, draft: BookingDraft, booking_number: str) -> Booking:
        booking_id = _new_id()
        now = _format_ts(_utc_now())
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO Bookings (
                        id, booking_number, user_id, event_id, status, stay_from, stay_to,
                        email, contact_number, address, city, ashram_name, notes,
                        created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
                    """,
                    (
                        booking_id,
                        booking_number,
                        draft.user_id,
                        draft.event_id,
                        PENDING,
                        draft.stay_period.stay_from.isoformat(),
                        draft.stay_period.stay_to.isoformat(),
                        draft.email,
                        draft.contact_number,
                        draft.address,
                        draft.city,
                        draft.ashram_name,
                        draft.notes,
                        now,
                        now,
                    ),
                )
                self._insert_people(conn, booking_id, draft.people)
                conn.commit()
        except sqlite3.IntegrityError as exc:
            if "booking_number" in str(exc):
                raise DuplicateBookingNumberError(booking_number) from exc
            raise
        return self.get_booking(booking_id)

    def _insert_people(
        self,
        conn: sqlite3.Connection,
        booking_id: str,
        people: Sequence[Person],
    ) -> None:
        conn.executemany(
            """
            INSERT INTO BookingPeople (
                booking_id, person_index, name, age, gender, stay_from, stay_to
            )
            VALUES (?, ?, ?, ?, ?, ?, ?);
            """,
            [
                (
                    booking_id,
                    index,
                    person.name,
                    person.age,
                    person.gender,
                    person.stay_period.stay_from.isoformat() if person.stay_period else None,
                    person.stay_period.stay_to.isoformat() if person.stay_period else None,
                )
                for index, person in enumerate(people)
            ],
        )

    def _replace_allocations(
        self,
        conn: sqlite3.Connection,
        booking_id: str,
        allocations: Sequence[Allocation],
    ) -> None:
        conn.execute("DELETE FROM Allocations WHERE booking_id = ?;", (booking_id,))
        conn.executemany(
            """
            INSERT INTO Allocations (booking_id, person_index, building_id, room_id, bed_id)
            VALUES (?, ?, ?, ?, ?);
            """,
            [
                (
                    booking_id,
                    allocation.person_index,
                    allocation.building_id,
                    allocation.room_id,
                    allocation.bed_id,
                )
                for allocation in allocations
            ],
        )

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        with self._connect() as conn:
            bookings = self._load_bookings(conn, "WHERE id = ?", (booking_id,))
        return bookings[0] if bookings else None

    def list_bookings(
        self,
        *,
        status: Optional[str] = None,
        user_id: Optional[str] = None,
        event_id: Optional[str] = None,
    ) -> list[Booking]:
        clauses: list[str] = []
        params: list[str] = []
        for column, value in (("status", status), ("user_id", user_id), ("event_id", event_id)):
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connect() as conn:
            return self._load_bookings(conn, where, tuple(params))

    def _load_bookings(
        self,
        conn: sqlite3.Connection,
        where: str = "",
        params: tuple = (),
    ) -> list[Booking]:
        booking_rows = conn.execute(
            f"SELECT * FROM Bookings {where} ORDER BY created_at DESC, booking_number ASC;",
            params,
        ).fetchall()
        if not booking_rows:
            return []

        booking_ids = [str(row["id"]) for row in booking_rows]
        placeholders = ",".join("?" for _ in booking_ids)
        people_rows = conn.execute(
            f"""
            SELECT booking_id, person_index, name, age, gender, stay_from, stay_to
            FROM BookingPeople
            WHERE booking_id IN ({placeholders})
            ORDER BY booking_id ASC, person_index ASC;
            """,
            tuple(booking_ids),
        ).fetchall()
        allocation_rows = conn.execute(
            f"""
            SELECT booking_id, person_index, building_id, room_id, bed_id
            FROM Allocations
            WHERE booking_id IN ({placeholders})
            ORDER BY booking_id ASC, person_index ASC;
            """,
            tuple(booking_ids),
        ).fetchall()

        people_by_booking: dict[str, list[Person]] = defaultdict(list)
        for row in people_rows:
            people_by_booking[str(row["booking_id"])].append(
                Person(
                    name=str(row["name"]),
                    age=int(row["age"]) if row["age"] is not None else None,
                    gender=str(row["gender"]),
                    stay_period=_stay_period(row["stay_from"], row["stay_to"]),
                )
            )
        allocations_by_booking: dict[str, list[Allocation]] = defaultdict(list)
        for row in allocation_rows:
            allocations_by_booking[str(row["booking_id"])].append(
                Allocation(
                    person_index=int(row["person_index"]),
                    building_id=row["building_id"],
                    room_id=row["room_id"],
                    bed_id=row["bed_id"],
                )
            )

        return [
            Booking(
                id=str(row["id"]),
                status=str(row["status"]),
                people=tuple(people_by_booking.get(str(row["id"]), ())),
                allocations=tuple(allocations_by_booking.get(str(row["id"]), ())),
                stay_period=_stay_period(row["stay_from"], row["stay_to"]),
                booking_number=str(row["booking_number"]),
                user_id=row["user_id"],
                event_id=row["event_id"],
                email=row["email"],
                contact_number=row["contact_number"],
                address=row["address"],
                city=row["city"],
                ashram_name=row["ashram_name"],
                notes=row["notes"],
                created_at=_parse_ts(row["created_at"]),
                updated_at=_parse_ts(row["updated_at"]),
            )
            for row in booking_rows
        ]

    def update_booking_form(self, booking_id: str, draft: BookingDraft) -> Optional[Booking]:
        """Replace form data, drop allocations and return the booking to pending."""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE Bookings
                SET event_id = ?, status = ?, stay_from = ?, stay_to = ?, email = ?,
                    contact_number = ?, address = ?, city = ?, ashram_name = ?, notes = ?,
                    updated_at = ?
                WHERE id = ?;
                """,
                (
                    draft.event_id,
                    PENDING,
                    draft.stay_period.stay_from.isoformat(),
                    draft.stay_period.stay_to.isoformat(),
                    draft.email,
                    draft.contact_number,
                    draft.address,
                    draft.city,
                    draft.ashram_name,
                    draft.notes,
                    _format_ts(_utc_now()),
                    booking_id,
                ),
            )
            if cursor.rowcount == 0:
                return None
            conn.execute("DELETE FROM BookingPeople WHERE booking_id = ?;", (booking_id,))
            self._insert_people(conn, booking_id, draft.people)
            self._replace_allocations(conn, booking_id, ())
            conn.commit()
        return self.get_booking(booking_id)

    def transition_booking(
        self,
        booking_id: str,
        status: str,
        resolve: AllocationResolver,
    ) -> Optional[Booking]:
        """Move a booking to ``status`` under a write lock.

        ``resolve`` receives the booking, rooms, buildings and every booking as
        read inside the transaction. It returns the allocations to store, or
        raises to abort the write.
        """
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE;")
            current = self._load_bookings(conn, "WHERE id = ?", (booking_id,))
            if not current:
                conn.rollback()
                return None
            allocations = resolve(
                current[0],
                self._load_rooms(conn),
                self._load_buildings(conn),
                self._load_bookings(conn),
            )
            conn.execute(
                "UPDATE Bookings SET status = ?, updated_at = ? WHERE id = ?;",
                (status, _format_ts(_utc_now()), booking_id),
            )
            self._replace_allocations(conn, booking_id, allocations)
            conn.commit()
        return self.get_booking(booking_id)

    def delete_booking(self, booking_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM Bookings WHERE id = ?;", (booking_id,))
            conn.commit()
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def create_notification(
        self,
        *,
        message: str,
        target: str,
        expires_at: datetime,
        user_id: Optional[str] = None,
    ) -> Notification:
        notification_id = _new_id()
        created_at = _utc_now()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Notifications (id, user_id, target, message, created_at, expires_at)
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                (
                    notification_id,
                    user_id,
                    target,
                    message,
                    _format_ts(created_at),
                    _format_ts(expires_at),
                ),
            )
            conn.commit()
        return Notification(
            id=notification_id,
            user_id=user_id,
            target=target,
            message=message,
            read=False,
            created_at=created_at.replace(microsecond=0),
            expires_at=expires_at,
        )

    def list_notifications(self, user_id: str, now: datetime) -> list[Notification]:
        """Unexpired notifications for a user plus broadcasts, newest first.

        ``read`` reflects this user's own read marks, so a broadcast read by one
        user stays unread for everyone else.
        """
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT n.*,
                    EXISTS (
                        SELECT 1 FROM NotificationReads r
                        WHERE r.notification_id = n.id AND r.user_id = ?
                    ) AS read
                FROM Notifications n
                WHERE (n.user_id = ? OR n.target = 'all') AND n.expires_at > ?
                ORDER BY n.created_at DESC, n.rowid DESC;
                """,
                (user_id, user_id, _format_ts(now)),
            ).fetchall()
            return [_row_to_notification(row) for row in rows]

    def mark_notification_read(self, notification_id: str, user_id: str) -> bool:
        """Record a read mark; ``False`` when the user cannot see the notification."""
        with self._connect() as conn:
            visible = conn.execute(
                """
                SELECT 1 FROM Notifications
                WHERE id = ? AND (user_id = ? OR target = 'all');
                """,
                (notification_id, user_id),
            ).fetchone()
            if visible is None:
                return False
            conn.execute(
                """
                INSERT OR IGNORE INTO NotificationReads (notification_id, user_id, read_at)
                VALUES (?, ?, ?);
                """,
                (notification_id, user_id, _format_ts(_utc_now())),
            )
            conn.commit()
            return True

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def create_comment(self, user_id: str, content: str) -> Comment:
        comment_id = _new_id()
        now = _format_ts(_utc_now())
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Comments (id, user_id, content, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                (comment_id, user_id, content, PENDING, now, now),
            )
            conn.commit()
        return self.get_comment(comment_id)

    def get_comment(self, comment_id: str) -> Optional[Comment]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM Comments WHERE id = ?;", (comment_id,)).fetchone()
            return _row_to_comment(row) if row is not None else None

    def list_comments(
        self,
        *,
        statuses: Sequence[str] = (),
        user_id: Optional[str] = None,
        oldest_first: bool = False,
    ) -> list[Comment]:
        clauses: list[str] = []
        params: list[str] = []
        if statuses:
            clauses.append(f"status IN ({','.join('?' for _ in statuses)})")
            params.extend(statuses)
        if user_id is not None:
            clauses.append("user_id = ?")
            params.append(user_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        direction = "ASC" if oldest_first else "DESC"
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM Comments {where} ORDER BY created_at {direction}, rowid {direction};",
                tuple(params),
            ).fetchall()
            return [_row_to_comment(row) for row in rows]

    def update_comment_status(
        self,
        comment_id: str,
        expected_status: str,
        status: str,
    ) -> Optional[Comment]:
        """Compare-and-set; ``None`` when the comment is gone or already moved on."""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE Comments SET status = ?, updated_at = ?
                WHERE id = ? AND status = ?;
                """,
                (status, _format_ts(_utc_now()), comment_id, expected_status),
            )
            conn.commit()
            if cursor.rowcount == 0:
                return None
        return self.get_comment(comment_id)

    def delete_comment(self, comment_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM Comments WHERE id = ?;", (comment_id,))
            conn.commit()
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Live links
    # ------------------------------------------------------------------

    def create_live_link(
        self,
        *,
        name: str,
        url: str,
        live_from: datetime,
        live_to: datetime,
        youtube_embed_url: Optional[str] = None,
    ) -> LiveLink:
        link_id = _new_id()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO LiveLinks (
                    id, name, url, youtube_embed_url, live_from, live_to, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    link_id,
                    name,
                    url,
                    youtube_embed_url,
                    _format_ts(live_from),
                    _format_ts(live_to),
                    _format_ts(_utc_now()),
                ),
            )
            conn.commit()
        return self.get_live_link(link_id)

    def get_live_link(self, link_id: str) -> Optional[LiveLink]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM LiveLinks WHERE id = ?;", (link_id,)).fetchone()
            return _row_to_live_link(row) if row is not None else None

    def list_live_links(self, active_at: Optional[datetime] = None) -> list[LiveLink]:
        """All links, or only those whose window contains ``active_at``."""
        where, params = "", ()
        if active_at is not None:
            moment = _format_ts(active_at)
            where, params = "WHERE live_from <= ? AND live_to >= ?", (moment, moment)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM LiveLinks {where} ORDER BY live_from ASC, name ASC;",
                params,
            ).fetchall()
            return [_row_to_live_link(row) for row in rows]

    def update_live_link(
        self,
        link_id: str,
        *,
        name: str,
        url: str,
        live_from: datetime,
        live_to: datetime,
        youtube_embed_url: Optional[str] = None,
    ) -> Optional[LiveLink]:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE LiveLinks
                SET name = ?, url = ?, youtube_embed_url = ?, live_from = ?, live_to = ?
                WHERE id = ?;
                """,
                (
                    name,
                    url,
                    youtube_embed_url,
                    _format_ts(live_from),
                    _format_ts(live_to),
                    link_id,
                ),
            )
            conn.commit()
            if cursor.rowcount == 0:
                return None
        return self.get_live_link(link_id)

    def delete_live_link(self, link_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM LiveLinks WHERE id = ?;", (link_id,))
            conn.commit()
            return cursor.rowcount > 0
