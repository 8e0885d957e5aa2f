from pydantic import BaseModel, ConfigDict


class ProcedureItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price_cents: int
