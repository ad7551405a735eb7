from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class DocumentCreateBase(BaseSchema):
    # Operator recorded as created_by; the auth layer fills this in front of us.
    created_by: str = "system@local"
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)
