from pydantic import BaseModel, ConfigDict, Field


class ServiceIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str = Field(min_length=1)
    price: float = Field(ge=0)
    icon_name: str = "WrenchIcon"
    image: str | None = None
    active: bool = True


class ServiceUpdateIn(BaseModel):
    """PATCH: only the fields sent are changed."""
    name: str | None = Field(None, min_length=1, max_length=120)
    description: str | None = Field(None, min_length=1)
    price: float | None = Field(None, ge=0)
    icon_name: str | None = None
    image: str | None = None
    active: bool | None = None


class ServiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    price: float
    icon_name: str
    image: str | None = None
    active: bool
