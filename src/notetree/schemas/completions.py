"""
Completion Schemas

Ollama-compatible request/response shapes exposed by the completion relay,
so clients written against a local Ollama server can talk to it unchanged.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class GenerateOptions(BaseModel):
    """Subset of Ollama generation options that maps onto the upstream API."""

    model_config = ConfigDict(extra="ignore")

    num_predict: int = Field(default=1024, gt=0)
    temperature: float | None = Field(default=None, ge=0.0, le=1.0)


class GenerateRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", protected_namespaces=())

    model: str
    system: str = ""
    prompt: str
    options: GenerateOptions = Field(default_factory=GenerateOptions)


class StreamChunk(BaseModel):
    """One incremental piece of generated text."""

    model_config = ConfigDict(protected_namespaces=())

    model: str
    response: str
    created_at: datetime
    done: bool = False


class CompletedStreamChunk(StreamChunk):
    """Terminal chunk. Durations are milliseconds; counters are not tracked."""

    done: bool = True
    context: list[int] = Field(default_factory=list)
    total_duration: int = 0
    load_duration: int = 0
    prompt_eval_count: int = 0
    prompt_eval_duration: int = 0
    eval_count: int = 0
    eval_duration: int = 0


class ModelName(BaseModel):
    name: str


class ModelList(BaseModel):
    models: list[ModelName]


class ModelDetails(BaseModel):
    parent_model: str
    format: str
    family: str
    families: list[str]
    parameter_size: str
    quantization_level: str


class ModelCard(BaseModel):
    license: str
    modelfile: str
    parameters: str
    template: str
    details: ModelDetails
