from datetime import datetime, timezone

from nimbus.app import db


alert_subscription = db.Table(
    "alert_subscription",
    db.Column(
        "alert_id",
        db.Integer,
        db.ForeignKey("alert.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    db.Column(
        "user_id",
        db.Integer,
        db.ForeignKey("user.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class AlertRule(db.Model):
    """Predicado ``value <operator> threshold`` ligado a um parâmetro."""

    __tablename__ = "alert_rule"

    id = db.Column(db.Integer, primary_key=True)
    # texto opaco: só é interpretado na avaliação
    operator = db.Column(db.String(10), nullable=False)
    threshold = db.Column(db.Float, nullable=False)
    parameter_id = db.Column(
        db.Integer, db.ForeignKey("parameter.id"), nullable=True, index=True
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    parameter = db.relationship("Parameter")
    alerts = db.relationship("Alert", back_populates="rule", order_by="Alert.id")

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return (
            f"<AlertRule id={self.id} {self.operator} {self.threshold} "
            f"parameter={self.parameter_id}>"
        )


class Alert(db.Model):
    __tablename__ = "alert"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(150), nullable=False)
    body = db.Column(db.Text)
    alert_rule_id = db.Column(
        db.Integer,
        db.ForeignKey("alert_rule.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    parameter_id = db.Column(db.Integer, db.ForeignKey("parameter.id"), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    rule = db.relationship("AlertRule", back_populates="alerts")
    parameter = db.relationship("Parameter")
    subscribers = db.relationship(
        "User",
        secondary=alert_subscription,
        order_by="User.id",
        backref=db.backref("subscribed_alerts", lazy="dynamic"),
    )
    alarms = db.relationship(
        "Alarm",
        back_populates="alert",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Alert id={self.id} title={self.title!r} rule={self.alert_rule_id}>"
