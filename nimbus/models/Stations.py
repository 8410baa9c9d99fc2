from datetime import datetime, timezone

from nimbus.app import db


class Station(db.Model):
    __tablename__ = "station"

    # identificador textual vindo do campo (ex.: "EST001")
    id = db.Column(db.String(50), primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    address = db.Column(db.String(255))
    latitude = db.Column(db.Float)
    longitude = db.Column(db.Float)
    description = db.Column(db.Text)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    owner = db.relationship("User", back_populates="stations")
    parameters = db.relationship("Parameter", back_populates="station")

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Station id={self.id!r} name={self.name!r}>"


class ParameterType(db.Model):
    __tablename__ = "parameter_type"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    unit = db.Column(db.String(20))
    description = db.Column(db.Text)

    parameters = db.relationship("Parameter", back_populates="parameter_type")

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<ParameterType id={self.id} name={self.name!r} unit={self.unit!r}>"


class Parameter(db.Model):
    """Grandeza medida por uma estação (temperatura, umidade, ...)."""

    __tablename__ = "parameter"

    id = db.Column(db.Integer, primary_key=True)
    station_id = db.Column(
        db.String(50), db.ForeignKey("station.id"), nullable=False, index=True
    )
    parameter_type_id = db.Column(
        db.Integer, db.ForeignKey("parameter_type.id"), nullable=True
    )
    description = db.Column(db.Text)
    details = db.Column(db.JSON, nullable=True)

    station = db.relationship("Station", back_populates="parameters")
    parameter_type = db.relationship("ParameterType", back_populates="parameters")

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Parameter id={self.id} station={self.station_id!r}>"
