from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import String, Text, Float
from typing import Optional
import uuid

def new_order_id() -> str:
    return uuid.uuid4().hex

class Base(DeclarativeBase):
    pass

class Order(Base):
    __tablename__ = "orders"
    # Opaque id assigned on insert, never reused
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_order_id)
    date: Mapped[str] = mapped_column(String(10))
    product_id: Mapped[str] = mapped_column(Text)
    client_id: Mapped[str] = mapped_column(Text, index=True)
    quantity: Mapped[float] = mapped_column(Float)
    # Unset until an update or a confirmation event supplies it
    price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(Text)

# Public (camelCase) field name -> mapped attribute
FIELD_ATTRIBUTES = {
    "id": "id",
    "date": "date",
    "productId": "product_id",
    "clientId": "client_id",
    "quantity": "quantity",
    "price": "price",
    "status": "status",
}
