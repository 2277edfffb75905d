"""
Request bodies for inline entity creation from the selectors.
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateStaffRequest(_Body):
    name_romaji: str = Field(
        ...,
        min_length=1,
        max_length=200,
        validation_alias=AliasChoices("nameRomaji", "name_romaji", "name"),
    )
    name_native: str | None = Field(default=None, max_length=200, validation_alias=AliasChoices("nameNative", "name_native"))
    image_url: str | None = Field(default=None, max_length=1000, validation_alias=AliasChoices("imageUrl", "image_url"))


class CreateStudioRequest(_Body):
    name: str = Field(..., min_length=1, max_length=200)


class CreateCharacterRequest(_Body):
    name: str = Field(..., min_length=1, max_length=200)
    name_romaji: str | None = Field(default=None, max_length=200, validation_alias=AliasChoices("nameRomaji", "name_romaji"))
    name_native: str | None = Field(default=None, max_length=200, validation_alias=AliasChoices("nameNative", "name_native"))
    image_url: str | None = Field(default=None, max_length=1000, validation_alias=AliasChoices("imageUrl", "image_url"))


class CreateVoiceActorRequest(_Body):
    name_romaji: str = Field(
        ...,
        min_length=1,
        max_length=200,
        validation_alias=AliasChoices("nameRomaji", "name_romaji", "name"),
    )
    name_native: str | None = Field(default=None, max_length=200, validation_alias=AliasChoices("nameNative", "name_native"))
    language: str = Field(..., min_length=1, max_length=32)
    image_url: str | None = Field(default=None, max_length=1000, validation_alias=AliasChoices("imageUrl", "image_url"))
