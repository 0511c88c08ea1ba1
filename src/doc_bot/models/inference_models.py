"""Inference provider response model."""

from pydantic import BaseModel, ConfigDict


class InferenceResponse(BaseModel):
    model_config = ConfigDict(frozen=False)

    text: str
    prompt_tokens: int = 0
    response_tokens: int = 0
    model: str = ""
    provider: str = ""

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.response_tokens
