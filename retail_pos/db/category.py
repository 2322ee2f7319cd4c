import uuid
from sqlalchemy import Column, String, Uuid
from sqlalchemy.orm import relationship

from .database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True)

    products = relationship("Product", back_populates="category")

    @property
    def to_schema(self):
        return {"id": self.id, "name": self.name}
