# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from .metering import (
    calculate_cost,
    get_total_cost,
    get_total_usage,
    record_usage,
    token_meter,
)
from .providers import AnthropicProvider, BaseProvider, PerplexityProvider
