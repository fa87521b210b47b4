"""
Exception types raised across the competitive analysis pipeline.
"""


class CompetitiveAnalysisError(Exception):
    """Base class for competitive analysis errors."""
    pass


class MissingAPIKeyError(CompetitiveAnalysisError):
    """Raised when an assistant is requested but its API key is not configured"""
    pass


class ProviderError(CompetitiveAnalysisError):
    """Raised when an AI provider call returns nothing usable."""
    pass


class LLMParseError(CompetitiveAnalysisError):
    """Raised when the parser LLM output has no valid JSON array of mentions."""
    pass


class AnalysisNotFoundError(CompetitiveAnalysisError):
    """Raised when a saved analysis does not exist."""
    pass
