"""OpenAI chat-completions adapter for an upstream machine translation model."""

__version__ = "1.0.0"
