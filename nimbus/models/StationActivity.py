import enum
from datetime import datetime, timezone

from nimbus.app import db


class StationStatusValue(enum.Enum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"


class StationStatus(db.Model):
    """Heartbeat de conectividade; a linha mais recente define o estado atual."""

    __tablename__ = "station_status"
    __table_args__ = (
        db.Index("ix_station_status_station_created", "station_id", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    station_id = db.Column(db.String(50), db.ForeignKey("station.id"), nullable=False)
    status = db.Column(db.String(10), nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    station = db.relationship("Station")

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<StationStatus station={self.station_id!r} status={self.status}>"


class StationLog(db.Model):
    __tablename__ = "station_log"

    id = db.Column(db.Integer, primary_key=True)
    station_id = db.Column(db.String(50), db.ForeignKey("station.id"), nullable=False)
    data_sent = db.Column(db.Integer, nullable=False)  # KB
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    station = db.relationship("Station")

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<StationLog station={self.station_id!r} data_sent={self.data_sent}>"


class ProcessingLog(db.Model):
    __tablename__ = "processing_log"

    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<ProcessingLog id={self.id}>"
