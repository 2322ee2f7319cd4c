import uuid
from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from .database import Base


class Product(Base):
    """Sellable item. Bundles (is_bundle) have no stock of their own."""
    __tablename__ = "products"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category_id = Column(Uuid(as_uuid=True), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    selling_price = Column(Numeric(12, 2), nullable=False, default=0)
    is_bundle = Column(Boolean, nullable=False, default=False)
    stock = Column(Integer, nullable=False, default=0)

    category = relationship("Category", back_populates="products")
    bundle_items = relationship(
        "BundleItem",
        foreign_keys="BundleItem.bundle_product_id",
        back_populates="bundle",
        cascade="all, delete-orphan",
    )
    recipe_items = relationship("RecipeItem", back_populates="product", cascade="all, delete-orphan")


class BundleItem(Base):
    """Component of a bundle: `quantity` units of a non-bundle product."""
    __tablename__ = "bundle_items"
    __table_args__ = (
        UniqueConstraint("bundle_product_id", "item_product_id", name="ux_bundle_items_bundle_item"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bundle_product_id = Column(Uuid(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    item_product_id = Column(Uuid(as_uuid=True), ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)

    bundle = relationship("Product", foreign_keys=[bundle_product_id], back_populates="bundle_items")
    item = relationship("Product", foreign_keys=[item_product_id])


class RecipeItem(Base):
    """Quantity of an ingredient consumed to make one unit of a product."""
    __tablename__ = "recipes"
    __table_args__ = (
        UniqueConstraint("product_id", "ingredient_id", name="ux_recipes_product_ingredient"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    ingredient_id = Column(Uuid(as_uuid=True), ForeignKey("ingredients.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity = Column(Numeric(12, 3), nullable=False)

    product = relationship("Product", back_populates="recipe_items")
    ingredient = relationship("Ingredient")
