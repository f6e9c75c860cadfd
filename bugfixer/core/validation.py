"""Validation schemas for configuration files and fix results"""

from dataclasses import asdict
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from bugfixer.core.data_types import BatchResult, FixAttemptResult, FixState


class FixerSettings(BaseModel):
    """`fixer` section of the configuration file"""

    model_config = ConfigDict(extra="forbid")

    preset: Optional[str] = None
    model: Optional[str] = None
    provider: Optional[Literal["openai", "anthropic"]] = None
    max_tokens: Optional[int] = Field(default=None, gt=0)
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    test_command: Optional[str] = None
    test_timeout: Optional[float] = Field(default=None, gt=0)
    llm_timeout: Optional[float] = Field(default=None, gt=0)
    safety_level: Optional[Literal["strict", "moderate", "permissive"]] = None
    daily_limit: Optional[float] = Field(default=None, ge=0)
    per_operation_limit: Optional[float] = Field(default=None, ge=0)
    cost_warning_threshold: Optional[float] = Field(default=None, ge=0)
    skip_patterns: Optional[List[str]] = None

    @field_validator("test_command")
    def test_command_not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError("test_command must not be blank")
        return v


class CISettings(BaseModel):
    """`ci` section of the configuration file"""

    model_config = ConfigDict(extra="forbid")

    max_retries: Optional[int] = Field(default=None, ge=1)
    auto_commit: Optional[bool] = None
    auto_push: Optional[bool] = None
    commit_message: Optional[str] = Field(default=None, min_length=1)
    default_file: Optional[str] = None
    source_extensions: Optional[List[str]] = None
    git_user_name: Optional[str] = None
    git_user_email: Optional[str] = None

    @field_validator("source_extensions")
    def extensions_not_empty(cls, v):
        if v is not None and not v:
            raise ValueError("source_extensions must list at least one extension")
        return v


class ConfigFile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    fixer: FixerSettings = Field(default_factory=FixerSettings)
    ci: CISettings = Field(default_factory=CISettings)


class BugFixResultSchema(BaseModel):
    success: bool
    filename: str = Field(min_length=1)
    original_code: str
    model_used: str
    final_state: FixState
    proposed_code: Optional[str] = None
    lines_changed: int = Field(ge=0)
    test_output: str
    test_error: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    cost: float = Field(ge=0)
    timestamp: datetime

    @model_validator(mode="after")
    def outcome_is_consistent(self):
        if self.success:
            if self.proposed_code is None:
                raise ValueError("successful result must carry proposed_code")
            if self.final_state != FixState.ACCEPTED:
                raise ValueError("successful result must end in the accepted state")
        elif not self.error:
            raise ValueError("failed result must carry an error message")
        return self


class BatchResultSchema(BaseModel):
    attempted: List[BugFixResultSchema]
    total_attempted: int = Field(ge=0)
    successful: int = Field(ge=0)
    failed: int = Field(ge=0)
    tests_passed_initially: bool
    committed: Optional[bool] = None
    pushed: Optional[bool] = None
    commit_error: Optional[str] = None
    error: Optional[str] = None
    test_output: Optional[str] = None
    timestamp: datetime

    @model_validator(mode="after")
    def counts_add_up(self):
        if self.successful + self.failed != self.total_attempted:
            raise ValueError("successful + failed must equal total_attempted")
        return self


def _format_errors(exc: ValidationError) -> List[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()))
        messages.append(f"{location}: {error['msg']}" if location else error["msg"])
    return messages


def validate_fix_result(result: FixAttemptResult) -> List[str]:
    """Return schema problems of a fix result (empty when valid)"""
    try:
        BugFixResultSchema.model_validate(asdict(result))
    except ValidationError as e:
        return _format_errors(e)
    return []


def validate_batch_result(result: BatchResult) -> List[str]:
    try:
        BatchResultSchema.model_validate(asdict(result))
    except ValidationError as e:
        return _format_errors(e)
    return []


def validate_config_data(data: dict) -> ConfigFile:
    """
    Validate raw configuration mapping

    Raises:
        ValidationError: If the mapping does not match the schema
    """
    return ConfigFile.model_validate(data)
