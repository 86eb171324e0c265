from __future__ import annotations

from ..extensions import db
from ..money import to_number
from kitchenpos.time_utils import to_utc_z


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    display_order = db.Column(db.Integer, nullable=False, default=0, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "display_order": self.display_order,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Ingredient(db.Model):
    """
    Stocked raw material.

    quantity is held in base units (pcs, mL, g); package_size is the number
    of base units in one purchased package. par_level is the reorder
    threshold in packages.
    """
    __tablename__ = "ingredients"
    __table_args__ = (
        db.Index("ix_ingredients_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    category = db.Column(db.String(64), nullable=True)

    quantity = db.Column(db.Numeric(12, 3), nullable=False, default=0)
    package_size = db.Column(db.Numeric(12, 3), nullable=False, default=1)
    par_level = db.Column(db.Integer, nullable=False, default=0)
    unit = db.Column(db.String(16), nullable=False, default="pcs")
    cost_per_package = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_restock_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Ingredient id={self.id} name={self.name!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "quantity": to_number(self.quantity),
            "package_size": to_number(self.package_size),
            "par_level": self.par_level,
            "unit": self.unit,
            "cost_per_package": to_number(self.cost_per_package),
            "is_active": self.is_active,
            "last_restock_at": to_utc_z(self.last_restock_at),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Sellable catalog entry.

    Stock is never stored on the product: it is derived from recipe_items
    (bill of materials) or from linked_ingredient. If both are present the
    recipe is authoritative. Neither means unlimited (service items).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_name", "category_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)
    linked_ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    category = db.relationship("Category", backref=db.backref("products", lazy=True, order_by="Product.name"))
    linked_ingredient = db.relationship("Ingredient", backref=db.backref("linked_products", lazy=True))
    recipe_items = db.relationship(
        "RecipeItem",
        back_populates="product",
        lazy=True,
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} category_id={self.category_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": to_number(self.price),
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "linked_ingredient_id": self.linked_ingredient_id,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class RecipeItem(db.Model):
    """Quantity of one ingredient (base units) consumed per serving of a product."""
    __tablename__ = "recipe_items"
    __table_args__ = (
        db.UniqueConstraint("product_id", "ingredient_id", name="uq_recipe_items_product_ingredient"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=False, index=True)
    quantity = db.Column(db.Numeric(12, 3), nullable=False)

    product = db.relationship("Product", back_populates="recipe_items")
    ingredient = db.relationship("Ingredient", backref=db.backref("recipe_items", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "ingredient_id": self.ingredient_id,
            "ingredient_name": self.ingredient.name if self.ingredient else None,
            "quantity": to_number(self.quantity),
        }


class IngredientHistory(db.Model):
    """
    Append-only audit row for a change to an ingredient field.

    source is restock, sale or inventory_count. Rows written by one
    operation share a change_id. old_value/new_value are stored as text.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "ingredient_history"
    __table_args__ = (
        db.Index("ix_ingredient_history_ingredient_created", "ingredient_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=False, index=True)
    ingredient_name = db.Column(db.String(100), nullable=False)
    change_id = db.Column(db.String(32), nullable=False, index=True)

    field = db.Column(db.String(32), nullable=False)
    old_value = db.Column(db.String(64), nullable=True)
    new_value = db.Column(db.String(64), nullable=True)
    source = db.Column(db.String(32), nullable=False)
    reason = db.Column(db.String(32), nullable=True)
    reason_note = db.Column(db.String(255), nullable=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    user_name = db.Column(db.String(128), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    ingredient = db.relationship("Ingredient", backref=db.backref("history", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ingredient_id": self.ingredient_id,
            "change_id": self.change_id,
            "field": self.field,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "source": self.source,
            "reason": self.reason,
            "reason_note": self.reason_note,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "created_at": to_utc_z(self.created_at),
        }
