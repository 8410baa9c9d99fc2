from nimbus.app import db


class Measurement(db.Model):
    __tablename__ = "measurement"
    __table_args__ = (
        db.Index("ix_measurement_parameter_timestamp", "parameter_id", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    parameter_id = db.Column(
        db.Integer,
        db.ForeignKey("parameter.id", ondelete="CASCADE"),
        nullable=False,
    )
    value = db.Column(db.Float, nullable=False)
    # epoch em segundos informado pelo sensor, não pelo servidor
    timestamp = db.Column(db.BigInteger, nullable=False)

    parameter = db.relationship("Parameter")
    alarms = db.relationship(
        "Alarm",
        back_populates="measurement",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return (
            f"<Measurement id={self.id} parameter={self.parameter_id} "
            f"value={self.value} ts={self.timestamp}>"
        )
