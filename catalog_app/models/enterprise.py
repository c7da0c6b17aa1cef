# catalog_app/models/enterprise.py

from flask import current_app
from sqlalchemy import Index, UniqueConstraint
from sqlalchemy.exc import SQLAlchemyError

from .base import BaseModel, db


class User(BaseModel):
    """Account that uploads spreadsheets and manages enterprises."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)

    owned_enterprises = db.relationship("Enterprise", back_populates="owner")
    enterprise_roles = db.relationship("EnterpriseRole", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.email}>"

    @staticmethod
    def find_by_email(email):
        """Find user by email with error handling"""
        if not email:
            return None
        try:
            return User.query.filter(db.func.lower(User.email) == email.strip().lower()).first()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Database error finding user by email {email}: {str(e)}")
            return None


class Enterprise(BaseModel):
    """
    A supplier (producer) or hub.

    Suppliers own products; hubs hold per-variant inventory overrides.
    """

    __tablename__ = "enterprises"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False, index=True)
    is_primary_producer = db.Column(db.Boolean, default=True, nullable=False)
    sells = db.Column(db.String(10), default="any", nullable=False)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    owner = db.relationship("User", back_populates="owned_enterprises")
    roles = db.relationship("EnterpriseRole", back_populates="enterprise", cascade="all, delete-orphan")
    products = db.relationship("Product", back_populates="supplier")

    def __repr__(self):
        return f"<Enterprise {self.name}>"


class EnterpriseRole(BaseModel):
    """Grants a user management rights over an enterprise it does not own."""

    __tablename__ = "enterprise_roles"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    enterprise_id = db.Column(db.Integer, db.ForeignKey("enterprises.id", ondelete="CASCADE"), nullable=False)

    user = db.relationship("User", back_populates="enterprise_roles")
    enterprise = db.relationship("Enterprise", back_populates="roles")

    __table_args__ = (
        UniqueConstraint("user_id", "enterprise_id", name="uq_enterprise_roles_user_enterprise"),
        Index("idx_enterprise_roles_enterprise", "enterprise_id"),
    )
