# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Settings via pydantic-settings, read from the environment and `.env`."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .types.llm_types import ModelPricing
from .types.tool_types import AutoApprovalPolicy


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Credentials
    ANTHROPIC_API_KEY: str = ""
    PERPLEXITY_API_KEY: str = ""

    # Main conversation
    MODEL: str = "claude-3-5-sonnet-20240620"
    MAX_TOKENS: int = Field(default=4096, gt=0)
    INPUT_COST_PER_MILLION: float = Field(default=3.0, ge=0)
    OUTPUT_COST_PER_MILLION: float = Field(default=15.0, ge=0)
    MAX_REQUESTS_PER_TASK: int | None = Field(default=20, gt=0)

    # Side channel
    SIDE_CHANNEL_MODEL: str = "llama-3-sonar-large-32k-online"
    SIDE_CHANNEL_URL: str = "https://api.perplexity.ai/chat/completions"

    # Approval
    AUTO_APPROVE_NON_DESTRUCTIVE: bool = False
    AUTO_APPROVE_WRITE_TO_FILE: bool = False
    AUTO_APPROVE_EXECUTE_COMMAND: bool = False
    APPROVAL_TIMEOUT: float | None = Field(default=None, gt=0)
    COMMAND_TIMEOUT: float | None = Field(default=None, gt=0)

    LOG_LEVEL: str = "INFO"

    def auto_approval_policy(self) -> AutoApprovalPolicy:
        return AutoApprovalPolicy(
            non_destructive=self.AUTO_APPROVE_NON_DESTRUCTIVE,
            write_to_file=self.AUTO_APPROVE_WRITE_TO_FILE,
            execute_command=self.AUTO_APPROVE_EXECUTE_COMMAND,
        )

    def model_pricing(self) -> ModelPricing:
        return ModelPricing(
            input_cost_per_million=self.INPUT_COST_PER_MILLION,
            output_cost_per_million=self.OUTPUT_COST_PER_MILLION,
        )


settings = Settings()
