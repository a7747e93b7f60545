# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from typing import DefaultDict
from collections import defaultdict

from ..types.llm_types import ModelPricing, TokenUsage

# A mapping from model names to token usage, and to the pricing used to cost it
token_meter: DefaultDict[str, TokenUsage] = defaultdict(TokenUsage)
model_pricing: dict[str, ModelPricing] = {}


def calculate_cost(
    input_tokens: int, output_tokens: int, pricing: ModelPricing | None = None
) -> float:
    """USD cost of a request, from per-million-token prices"""
    pricing = pricing or ModelPricing()
    input_cost = (input_tokens / 1_000_000) * pricing.input_cost_per_million
    output_cost = (output_tokens / 1_000_000) * pricing.output_cost_per_million
    return input_cost + output_cost


def record_usage(
    model: str, usage: TokenUsage, pricing: ModelPricing | None = None
) -> None:
    token_meter[model] += usage
    if pricing is not None:
        model_pricing[model] = pricing


def get_total_cost() -> float:
    total = 0.0
    for model, usage in token_meter.items():
        total += calculate_cost(
            usage.input_tokens, usage.output_tokens, model_pricing.get(model)
        )
    return total


def get_total_usage() -> TokenUsage:
    usage = TokenUsage()
    for model_usage in token_meter.values():
        usage += model_usage
    return usage


def reset_meter() -> None:
    token_meter.clear()
    model_pricing.clear()
