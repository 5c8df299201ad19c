# faqbot/errors.py


class FAQBotError(Exception):
    """Base class for every error raised by the bot."""


class SourceUnavailable(FAQBotError):
    """The FAQ corpus could not be fetched or parsed."""


class EmbeddingError(FAQBotError):
    """The embedding model did not return a usable vector."""


class MalformedRecord(FAQBotError):
    """A corpus row is missing its question or answer."""


class LineReplyError(FAQBotError):
    """The LINE reply API rejected the message or was unreachable."""
