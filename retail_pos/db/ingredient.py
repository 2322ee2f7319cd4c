import uuid
from sqlalchemy import Column, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from .database import Base


class Ingredient(Base):
    """Raw material consumed by recipes."""
    __tablename__ = "ingredients"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True)
    unit_of_measurement = Column(String, nullable=False)  # 'kg', 'g', 'ml', 'piece', ...
    cost_per_unit = Column(Numeric(12, 4), nullable=False, default=0)
    low_stock_threshold = Column(Numeric(12, 3), nullable=False, default=10)

    stock = relationship(
        "IngredientStock",
        back_populates="ingredient",
        uselist=False,
        cascade="all, delete-orphan",
    )

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "unit_of_measurement": self.unit_of_measurement,
            "cost_per_unit": self.cost_per_unit,
            "low_stock_threshold": self.low_stock_threshold,
            "stock_quantity": self.stock.stock_quantity if self.stock else 0,
        }


class IngredientStock(Base):
    """Current on-hand quantity of one ingredient (one row per ingredient)."""
    __tablename__ = "ingredient_stock"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    ingredient_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("ingredients.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    stock_quantity = Column(Numeric(12, 3), nullable=False, default=0)

    ingredient = relationship("Ingredient", back_populates="stock")
