from pydantic import BaseModel, Field
from typing import Any, Dict, Optional

class OrderRead(BaseModel):
    id: str
    date: str
    product_id: str = Field(serialization_alias="productId")
    client_id: str = Field(serialization_alias="clientId")
    quantity: float
    # Omitted from responses until set
    price: Optional[float] = None
    status: str

    class Config:
        from_attributes = True

class PubSubMessage(BaseModel):
    data: Optional[str] = None
    messageId: Optional[str] = None
    attributes: Dict[str, Any] = {}

class EventOutcome(BaseModel):
    status_code: int
    message: str
    affected: int = 0
