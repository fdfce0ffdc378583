from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, constr, field_validator, model_validator


class ProcessMode(str, Enum):
    ANALYZE_IMAGE = "ANALYZE_IMAGE"
    GENERATE_CONTENT = "GENERATE_CONTENT"


class ProcessingConfig(BaseModel):
    """Settings for one batch run; frozen once the run starts."""

    model_config = ConfigDict(frozen=True)

    mode: ProcessMode = ProcessMode.ANALYZE_IMAGE
    image_field: str = ""
    text_fields: list[str] = Field(default_factory=list)
    output_field: constr(min_length=1)
    prompt_template: constr(min_length=1)

    @field_validator("output_field", "prompt_template")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @model_validator(mode="after")
    def _image_field_for_image_mode(self) -> "ProcessingConfig":
        if self.mode == ProcessMode.ANALYZE_IMAGE and not self.image_field.strip():
            raise ValueError("image_field is required when mode is ANALYZE_IMAGE")
        return self


class ConnectionCredentials(BaseModel):
    api_key: constr(strip_whitespace=True, min_length=1)
    base_id: constr(strip_whitespace=True, min_length=1)
    table_name: constr(strip_whitespace=True, min_length=1)


class WorkflowBlueprint(BaseModel):
    id: str
    name: str
    mode: ProcessMode
    description: str
    prompt: str
