from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class ReceiptIn(BaseModel):
    booking_id: int
    final_price: float = Field(ge=0)
    service_personnel_name: str = Field(min_length=1)


class ReceiptOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    booking_id: int
    final_price: float
    service_personnel_name: str
    completion_date: datetime | None = None
