from datetime import datetime, timezone

from nimbus.app import db


class Alarm(db.Model):
    """Ocorrência de um alerta para um usuário causada por uma medida.

    A chave é a tripla (usuário, medida, alerta); o registro nunca é alterado.
    """

    __tablename__ = "alarm"

    user_id = db.Column(
        db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), primary_key=True
    )
    measurement_id = db.Column(
        db.Integer,
        db.ForeignKey("measurement.id", ondelete="CASCADE"),
        primary_key=True,
    )
    alert_id = db.Column(
        db.Integer, db.ForeignKey("alert.id", ondelete="CASCADE"), primary_key=True
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    user = db.relationship("User")
    measurement = db.relationship("Measurement", back_populates="alarms")
    alert = db.relationship("Alert", back_populates="alarms")

    @property
    def key(self):
        return (self.user_id, self.measurement_id, self.alert_id)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return (
            f"<Alarm user={self.user_id} measurement={self.measurement_id} "
            f"alert={self.alert_id}>"
        )
