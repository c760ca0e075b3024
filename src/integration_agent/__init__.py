"""Integration Agent - generates API integration configs from documentation pages."""

from .agent import (
    API_CONFIG_RESPONSE_SCHEMA,
    IntegrationResult,
    build_orchestrator,
    generate_api_config,
    parse_api_config,
    run_integration_agent,
)
from .config import AgentSettings
from .models import APIConfig, Auth, FieldMap, Input, Job, Output, Step

__version__ = "0.1.0"

__all__ = [
    "API_CONFIG_RESPONSE_SCHEMA",
    "IntegrationResult",
    "build_orchestrator",
    "generate_api_config",
    "parse_api_config",
    "run_integration_agent",
    "AgentSettings",
    "APIConfig",
    "Auth",
    "FieldMap",
    "Input",
    "Job",
    "Output",
    "Step",
]
