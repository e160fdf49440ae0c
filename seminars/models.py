from __future__ import annotations

from sqlalchemy.orm import validates

from .app import db


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    __table_args__ = (
        db.Index("ix_users_email_lower", db.func.lower(email), unique=True),
    )

    @validates("email")
    def lower_email(self, key, value):  # pragma: no cover - simple normalizer
        return value.lower()


class SeminarType(db.Model):
    __tablename__ = "seminar_types"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)


class Seminar(db.Model):
    __tablename__ = "seminars"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, unique=True)
    scheduled_at = db.Column(db.DateTime, nullable=False)
    seminar_type_id = db.Column(
        db.Integer, db.ForeignKey("seminar_types.id", ondelete="SET NULL")
    )
    seminar_type = db.relationship("SeminarType")
    created_at = db.Column(db.DateTime, server_default=db.func.now())


class Registration(db.Model):
    """A person's registration to a seminar; the unit certificates are issued for."""

    __tablename__ = "registrations"

    id = db.Column(db.Integer, primary_key=True)
    seminar_id = db.Column(
        db.Integer, db.ForeignKey("seminars.id", ondelete="SET NULL"), index=True
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), index=True
    )
    present = db.Column(
        db.Boolean, nullable=False, default=False, server_default=db.text("false")
    )
    certificate_code = db.Column(db.String(36), unique=True)
    certificate_sent = db.Column(
        db.Boolean, nullable=False, default=False, server_default=db.text("false")
    )
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    __table_args__ = (
        db.Index("ix_registrations_pending", "present", "certificate_sent"),
    )

    seminar = db.relationship("Seminar", backref="registrations")
    user = db.relationship("User", backref="registrations")
