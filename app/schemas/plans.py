import uuid

from pydantic import BaseModel, ConfigDict


class PlanResponse(BaseModel):
    id: uuid.UUID
    name: str
    monthly_price_cents: int
    biannual_price_cents: int
    annual_price_cents: int
    enrollment_fee_cents: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
