from datetime import datetime, timezone

from nimbus.app import db


class AccessLevel(db.Model):
    __tablename__ = "access_level"

    id = db.Column(db.Integer, primary_key=True)
    description = db.Column(db.String(100), nullable=False)

    users = db.relationship("User", back_populates="access_level")

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<AccessLevel id={self.id} description={self.description!r}>"


class User(db.Model):
    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False, default="")
    access_level_id = db.Column(
        db.Integer, db.ForeignKey("access_level.id"), nullable=True
    )
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    access_level = db.relationship("AccessLevel", back_populates="users")
    stations = db.relationship("Station", back_populates="owner")

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<User id={self.id} email={self.email!r}>"
