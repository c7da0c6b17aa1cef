# catalog_app/models/inventory.py
"""Per-hub inventory: variant overrides and the visibility list hubs curate."""

from decimal import Decimal

from sqlalchemy import UniqueConstraint

from .base import AttributeAssignmentMixin, BaseModel, db
from .catalog import _greater_or_equal


class VariantOverride(AttributeAssignmentMixin, BaseModel):
    """A hub's own price and stock for a supplier's variant."""

    __tablename__ = "variant_overrides"

    ATTRIBUTE_ALIASES = {"on_hand": "count_on_hand"}

    id = db.Column(db.Integer, primary_key=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("variants.id", ondelete="CASCADE"), nullable=False)
    hub_id = db.Column(db.Integer, db.ForeignKey("enterprises.id", ondelete="CASCADE"), nullable=False, index=True)
    price = db.Column(db.Numeric(10, 2), nullable=True)
    count_on_hand = db.Column(db.Integer, nullable=True)
    on_demand = db.Column(db.Boolean, nullable=True)
    default_stock = db.Column(db.Integer, nullable=True)
    sku = db.Column(db.String(255), nullable=True)
    import_date = db.Column(db.DateTime(timezone=True), nullable=True)
    lock_version = db.Column(db.Integer, nullable=False)

    variant = db.relationship("Variant")
    hub = db.relationship("Enterprise")

    __mapper_args__ = {"version_id_col": lock_version}
    __table_args__ = (UniqueConstraint("variant_id", "hub_id", name="uq_variant_overrides_variant_hub"),)

    def __repr__(self):
        return f"<VariantOverride variant={self.variant_id} hub={self.hub_id}>"

    def detached_copy(self):
        values = {
            column.key: getattr(self, column.key)
            for column in self.__table__.columns
            if column.key not in ("id", "lock_version", "created_at", "updated_at")
        }
        return VariantOverride(**values)

    def validate(self):
        messages = []
        if self.variant_id is None:
            messages.append("Variant can't be blank")
        if self.hub_id is None:
            messages.append("Hub can't be blank")
        if self.price is not None:
            _greater_or_equal(messages, "Price", Decimal(str(self.price)), 0)
        if self.count_on_hand is not None:
            _greater_or_equal(messages, "Count on hand", self.count_on_hand, 0)
            if self.on_demand:
                messages.append("Count on hand must be blank if on demand")
        if self.default_stock is not None:
            _greater_or_equal(messages, "Default stock", self.default_stock, 0)
        return messages


class InventoryItem(BaseModel):
    """Marks whether a variant is listed in a hub's inventory."""

    __tablename__ = "inventory_items"

    id = db.Column(db.Integer, primary_key=True)
    enterprise_id = db.Column(db.Integer, db.ForeignKey("enterprises.id", ondelete="CASCADE"), nullable=False)
    variant_id = db.Column(db.Integer, db.ForeignKey("variants.id", ondelete="CASCADE"), nullable=False)
    visible = db.Column(db.Boolean, default=True, nullable=False)

    __table_args__ = (UniqueConstraint("enterprise_id", "variant_id", name="uq_inventory_items_enterprise_variant"),)

    def __repr__(self):
        return f"<InventoryItem enterprise={self.enterprise_id} variant={self.variant_id} visible={self.visible}>"
