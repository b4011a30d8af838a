"""
Custom Exceptions
Error taxonomy for the content generation pipeline
"""


class ContentBotError(Exception):
    """Base exception for the content bot"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(ContentBotError):
    """Missing or invalid configuration"""
    pass


class SourceFetchError(ContentBotError):
    """A single news source failed; soft, the batch continues"""

    def __init__(self, message: str, source: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.source = source


class ContentFetchError(ContentBotError):
    """A linked web page could not be fetched"""

    def __init__(self, message: str, url: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.url = url


class NoCandidatesError(ContentBotError):
    """Aggregation and ranking produced nothing to generate from"""
    pass


class LLMError(ContentBotError):
    """LLM call failed"""

    def __init__(self, message: str, provider: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.provider = provider


class LLMConfigurationError(LLMError):
    """LLM rejected the credentials or the client is not configured"""
    pass


class GenerationError(ContentBotError):
    """Generator collaborator failed for one candidate"""

    def __init__(self, message: str, article_url: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.article_url = article_url


class GeneratorConfigError(GenerationError):
    """Generator is misconfigured (credentials, endpoint); retrying is pointless"""
    pass


class ValidationRejected(ContentBotError):
    """Generated output was rejected by the validator"""
    pass


class RefusalDetected(ValidationRejected):
    """Generated output is a refusal to write the post"""

    def __init__(self, message: str, phrase: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.phrase = phrase


class EmptyOutputError(ValidationRejected):
    """Generated output is empty or whitespace"""
    pass


class CandidatesExhaustedError(ContentBotError):
    """Every ranked candidate was tried and none produced a valid post"""

    def __init__(self, message: str, attempts: int = 0, **kwargs):
        super().__init__(message, kwargs)
        self.attempts = attempts


class QuotaExhaustedError(ContentBotError):
    """User has no generations left"""

    def __init__(self, message: str, user_id: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.user_id = user_id


class LedgerError(ContentBotError):
    """Quota ledger operation failed"""

    def __init__(self, message: str, user_id: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.user_id = user_id


class ProfileError(ContentBotError):
    """Channel profile could not be built"""
    pass
