# catalog_app/models/catalog.py
"""
Product catalog tables: taxons (categories), products and their variants.

Variants carry an optimistic lock (``lock_version``); concurrent writers get a
``StaleDataError`` on flush instead of silently overwriting each other.
"""

from decimal import Decimal

from sqlalchemy import Index

from .base import AttributeAssignmentMixin, BaseModel, db, is_blank

VARIANT_UNITS = ("weight", "volume", "items")
SCALED_VARIANT_UNITS = ("weight", "volume")


def _greater_or_equal(messages, label, value, minimum):
    if value is not None and value < minimum:
        messages.append(f"{label} must be greater than or equal to {minimum}")


class Taxon(BaseModel):
    """Catalog category a product is filed under."""

    __tablename__ = "taxons"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    permalink = db.Column(db.String(255), nullable=True)

    def __repr__(self):
        return f"<Taxon {self.name}>"


class Product(AttributeAssignmentMixin, BaseModel):
    """A supplier's product. Variant-level fields are delegated to the first standard variant."""

    __tablename__ = "products"

    VARIANT_DELEGATED_ATTRIBUTES = frozenset(
        {
            "price",
            "on_hand",
            "count_on_hand",
            "on_demand",
            "unit_value",
            "unit_description",
            "display_name",
            "sku",
            "import_date",
        }
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("enterprises.id"), nullable=False, index=True)
    primary_taxon_id = db.Column(db.Integer, db.ForeignKey("taxons.id"), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    variant_unit = db.Column(db.String(20), nullable=True)
    variant_unit_scale = db.Column(db.Float, nullable=True)
    variant_unit_name = db.Column(db.String(100), nullable=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    supplier = db.relationship("Enterprise", back_populates="products")
    primary_taxon = db.relationship("Taxon")
    variants = db.relationship(
        "Variant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="Variant.id",
    )

    __table_args__ = (Index("idx_products_supplier_name", "supplier_id", "name"),)

    def __repr__(self):
        return f"<Product {self.name}>"

    @property
    def master(self):
        return next((variant for variant in self.variants if variant.is_master), None)

    @property
    def standard_variants(self):
        return [variant for variant in self.variants if not variant.is_master and variant.deleted_at is None]

    @property
    def first_variant(self):
        standard = self.standard_variants
        return standard[0] if standard else None

    def _resolve_attribute(self, name):
        if name in self.VARIANT_DELEGATED_ATTRIBUTES:
            variant = self.first_variant
            if variant is None:
                return None, None
            return variant._resolve_attribute(name)
        return super()._resolve_attribute(name)

    def validate(self):
        """Return full error messages; an empty list means the product can be saved."""
        messages = []
        if is_blank(self.name):
            messages.append("Name can't be blank")
        if self.supplier_id is None:
            messages.append("Supplier can't be blank")
        if self.primary_taxon_id is None:
            messages.append("Primary taxon can't be blank")
        if is_blank(self.variant_unit):
            messages.append("Variant unit can't be blank")
        elif self.variant_unit not in VARIANT_UNITS:
            messages.append("Variant unit is not included in the list")
        elif self.variant_unit in SCALED_VARIANT_UNITS and self.variant_unit_scale is None:
            messages.append("Variant unit scale can't be blank")
        elif self.variant_unit == "items" and is_blank(self.variant_unit_name):
            messages.append("Variant unit name can't be blank")

        variant = self.first_variant
        if variant is None:
            messages.append("Variants can't be blank")
        else:
            for message in variant.validate(product=self):
                if message not in messages:
                    messages.append(message)
        return messages


class Variant(AttributeAssignmentMixin, BaseModel):
    """A purchasable unit of a product (the master variant only mirrors product-level data)."""

    __tablename__ = "variants"

    ATTRIBUTE_ALIASES = {"count_on_hand": "on_hand"}

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    is_master = db.Column(db.Boolean, default=False, nullable=False)
    display_name = db.Column(db.String(255), nullable=True)
    unit_value = db.Column(db.Float, nullable=True)
    unit_description = db.Column(db.String(255), nullable=True)
    sku = db.Column(db.String(255), nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=True)
    on_hand = db.Column(db.Integer, nullable=True)
    on_demand = db.Column(db.Boolean, default=False, nullable=False)
    import_date = db.Column(db.DateTime(timezone=True), nullable=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    lock_version = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product", back_populates="variants")

    __mapper_args__ = {"version_id_col": lock_version}
    __table_args__ = (Index("idx_variants_product_master", "product_id", "is_master"),)

    def __repr__(self):
        return f"<Variant {self.id} {self.display_name!r} {self.unit_value}>"

    def detached_copy(self):
        """Transient copy of the column values, used to validate changes without touching the session."""
        values = {
            column.key: getattr(self, column.key)
            for column in self.__table__.columns
            if column.key not in ("id", "lock_version", "created_at", "updated_at")
        }
        return Variant(**values)

    def validate(self, product=None):
        product = product if product is not None else self.product
        messages = []
        if self.product_id is None and product is None:
            messages.append("Product can't be blank")
        if self.price is None:
            messages.append("Price can't be blank")
        else:
            _greater_or_equal(messages, "Price", Decimal(str(self.price)), 0)
        if not self.on_demand:
            if self.on_hand is None:
                messages.append("On hand can't be blank")
            else:
                _greater_or_equal(messages, "On hand", self.on_hand, 0)

        variant_unit = product.variant_unit if product is not None else None
        if self.unit_value is None:
            if variant_unit in SCALED_VARIANT_UNITS:
                messages.append("Unit value can't be blank")
        elif self.unit_value <= 0:
            messages.append("Unit value must be greater than 0")
        return messages
