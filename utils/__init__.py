"""
Utils Module
Logging and exception helpers
"""
from .logger import configure_package_loggers, get_logger, setup_logger
from .exceptions import (
    CandidatesExhaustedError,
    ConfigurationError,
    ContentBotError,
    ContentFetchError,
    EmptyOutputError,
    GenerationError,
    GeneratorConfigError,
    LedgerError,
    LLMConfigurationError,
    LLMError,
    NoCandidatesError,
    ProfileError,
    QuotaExhaustedError,
    RefusalDetected,
    SourceFetchError,
    ValidationRejected,
)

__all__ = [
    "configure_package_loggers",
    "get_logger",
    "setup_logger",
    "CandidatesExhaustedError",
    "ConfigurationError",
    "ContentBotError",
    "ContentFetchError",
    "EmptyOutputError",
    "GenerationError",
    "GeneratorConfigError",
    "LedgerError",
    "LLMConfigurationError",
    "LLMError",
    "NoCandidatesError",
    "ProfileError",
    "QuotaExhaustedError",
    "RefusalDetected",
    "SourceFetchError",
    "ValidationRejected",
]
