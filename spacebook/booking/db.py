# pyrefly: ignore-all-errors

from sqlalchemy import (
    DDL,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from typing import Optional

from spacebook.booking.model import ACTIVE_STATUSES, BookingStatus
from spacebook.catalog.db import WorkspaceDB
from spacebook.database import Base, UTCDateTime, utc_now


EXCLUSION_CONSTRAINT_NAME = "bookings_no_overlap"

_active_statuses_sql = ", ".join(f"'{status.value}'" for status in ACTIVE_STATUSES)
_all_statuses_sql = ", ".join(f"'{status.value}'" for status in BookingStatus)

# Two active bookings of one workspace may not share any instant of [start, end)
EXCLUSION_CONSTRAINT_DDL = (
    f"ALTER TABLE bookings ADD CONSTRAINT {EXCLUSION_CONSTRAINT_NAME} "
    "EXCLUDE USING gist ("
    "workspace_id WITH =, "
    "tstzrange(start_time, end_time, '[)') WITH &&"
    f") WHERE (status IN ({_active_statuses_sql}))"
)


class BookingDB(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="bookings_valid_time_range"),
        CheckConstraint("attendees > 0", name="bookings_attendees_positive"),
        CheckConstraint(f"status IN ({_all_statuses_sql})", name="bookings_status_valid"),
        Index("bookings_user_idx", "user_id"),
        Index("bookings_workspace_time_idx", "workspace_id", "start_time", "end_time"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    workspace_id: Mapped[str] = mapped_column(
        String, ForeignKey("workspaces.id"), nullable=False
    )
    start_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BookingStatus.CONFIRMED.value
    )
    attendees: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    special_requests: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now
    )

    # Relationships
    workspace: Mapped["WorkspaceDB"] = relationship("WorkspaceDB")


event.listen(
    BookingDB.__table__,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
event.listen(
    BookingDB.__table__,
    "after_create",
    DDL(EXCLUSION_CONSTRAINT_DDL).execute_if(dialect="postgresql"),
)

# SQLite has no exclusion constraints; triggers reject the same overlaps and
# carry the constraint name so the ledger maps them to a conflict
_overlap_guard_sql = (
    "SELECT RAISE(ABORT, '{name}') WHERE EXISTS ("
    "SELECT 1 FROM bookings WHERE workspace_id = NEW.workspace_id "
    "AND status IN ({active}) "
    "AND start_time < NEW.end_time AND end_time > NEW.start_time{extra})"
)

SQLITE_OVERLAP_TRIGGERS_DDL = [
    (
        f"CREATE TRIGGER {EXCLUSION_CONSTRAINT_NAME}_insert BEFORE INSERT ON bookings "
        f"WHEN NEW.status IN ({_active_statuses_sql}) BEGIN "
        + _overlap_guard_sql.format(
            name=EXCLUSION_CONSTRAINT_NAME, active=_active_statuses_sql, extra=""
        )
        + "; END"
    ),
    (
        f"CREATE TRIGGER {EXCLUSION_CONSTRAINT_NAME}_update "
        "BEFORE UPDATE OF workspace_id, start_time, end_time, status ON bookings "
        f"WHEN NEW.status IN ({_active_statuses_sql}) BEGIN "
        + _overlap_guard_sql.format(
            name=EXCLUSION_CONSTRAINT_NAME,
            active=_active_statuses_sql,
            extra=" AND id != NEW.id",
        )
        + "; END"
    ),
]

for _trigger_ddl in SQLITE_OVERLAP_TRIGGERS_DDL:
    event.listen(
        BookingDB.__table__,
        "after_create",
        DDL(_trigger_ddl).execute_if(dialect="sqlite"),
    )
