"""Pydantic data contracts for uploads, analysis requests and match results."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ModelCard(BaseModel):
    """Metadata identifying the provider/model behind an analyzer."""

    name: str
    version: str


class UploadedImage(BaseModel):
    """A validated upload, ready to be encoded and sent to a provider."""

    model_config = ConfigDict(frozen=True)

    filename: str
    mime_type: str
    data: bytes


class AnalysisRequest(BaseModel):
    """One outbound analysis call: image payload plus the provider's fixed instruction."""

    model_config = ConfigDict(frozen=True)

    image_bytes: bytes
    mime_type: str
    prompt_text: str


class AnalysisResult(BaseModel):
    """The matched creature. Both fields are always populated and non-empty.

    On the wire the name travels as ``pokemon_name``; use ``to_wire()`` for that shape.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    creature_name: str = Field(alias="pokemon_name")
    description: str

    @field_validator("creature_name", "description")
    @classmethod
    def non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must be a non-empty string")
        return v

    def to_wire(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)
