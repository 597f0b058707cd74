from __future__ import annotations
from typing import Any, List, Mapping, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigurationError


KNOWN_OPTIONS = {
    "mode", "schema.start.mode",
    "field-paths", "field_paths", "parser.path",
    "field-names", "field_names", "field.name",
    "case-sensitive", "case_sensitive",
    "primary-keys", "primary_keys",
    "id-wrapper", "id_wrapper",
    "computed-columns", "computed_columns",
}


class SourceOptions(BaseModel):
    """
    Options of one change-event source. Built from the flat string map a
    connector receives; both the short names and the dotted connector keys are
    accepted. Values are validated here, the mode itself when the extractor is
    constructed.
    """
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    mode: str = Field("dynamic", validation_alias=AliasChoices("mode", "schema.start.mode"))
    field_paths: Optional[str] = Field(None, validation_alias=AliasChoices("field-paths", "field_paths", "parser.path"))
    field_names: Optional[str] = Field(None, validation_alias=AliasChoices("field-names", "field_names", "field.name"))
    case_sensitive: bool = Field(True, validation_alias=AliasChoices("case-sensitive", "case_sensitive"))
    primary_keys: List[str] = Field(default_factory=lambda: ["_id"], validation_alias=AliasChoices("primary-keys", "primary_keys"))
    id_wrapper: str = Field("$oid", validation_alias=AliasChoices("id-wrapper", "id_wrapper"))
    computed_columns: List[str] = Field(default_factory=list, validation_alias=AliasChoices("computed-columns", "computed_columns"))

    @field_validator("primary_keys", mode="before")
    @classmethod
    def _split_keys(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [k.strip() for k in v.split(",") if k.strip()]
        return v

    @field_validator("primary_keys")
    @classmethod
    def _non_empty_keys(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("at least one primary key is required")
        return v

    @field_validator("computed_columns", mode="before")
    @classmethod
    def _split_expressions(cls, v: Any) -> Any:
        # expressions contain commas, so a single string is ';'-separated
        if isinstance(v, str):
            return [e.strip() for e in v.split(";") if e.strip()]
        return v

    @field_validator("id_wrapper")
    @classmethod
    def _non_empty_wrapper(cls, v: str) -> str:
        if not v:
            raise ValueError("must be a non-empty string")
        return v

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, Any]] = None) -> "SourceOptions":
        if options is None:
            return cls()
        if isinstance(options, SourceOptions):
            return options
        if not isinstance(options, Mapping):
            raise ConfigurationError("Source options must be a mapping.")

        try:
            return cls.model_validate(dict(options))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid source options: {e}") from e

    @staticmethod
    def unknown_keys(options: Mapping[str, Any]) -> List[str]:
        return sorted(k for k in options if k not in KNOWN_OPTIONS)
