# Copyright 2025 Qilimanjaro Quantum Tech
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def default_logging_config_path() -> Path:
    return Path(__file__).with_name("logging_config.yaml").resolve()


class QuDiracSettings(BaseSettings):
    """
    Environment-based configuration settings for qudirac.

    These settings are automatically loaded from environment variables
    prefixed with `QUDIRAC_`, or from a local `.env` file if present.
    """

    model_config = SettingsConfigDict(env_prefix="qudirac_", env_file=".env", env_file_encoding="utf-8")

    logging_config_path: Path = Field(
        default_factory=default_logging_config_path,
        description="YAML file used for logging configuration. [env: QUDIRAC_LOGGING_CONFIG_PATH]",
    )
    zero_tolerance: float = Field(
        default=1e-14,
        ge=0,
        description="Magnitude at or below which filternz drops a coefficient. [env: QUDIRAC_ZERO_TOLERANCE]",
    )
    isclose_atol: float = Field(
        default=1e-9,
        ge=0,
        description="Default absolute tolerance of isclose comparisons. [env: QUDIRAC_ISCLOSE_ATOL]",
    )
    display_max_terms: int = Field(
        default=20,
        ge=1,
        description="Number of terms printed before a listing is elided. [env: QUDIRAC_DISPLAY_MAX_TERMS]",
    )
    parse_cache_size: int = Field(
        default=256,
        ge=0,
        description="Number of parsed Dirac-notation strings kept in memory. [env: QUDIRAC_PARSE_CACHE_SIZE]",
    )


@lru_cache(maxsize=1)
def get_settings() -> QuDiracSettings:
    """
    Returns a singleton instance of QuDiracSettings.

    This function caches the parsed environment-based settings to avoid
    redundant re-parsing across the application lifecycle.

    Returns:
        QuDiracSettings: The cached configuration object populated from environment variables.
    """
    return QuDiracSettings()
