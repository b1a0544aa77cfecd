"""quiztrack - quiz event ingestion and conversion statistics."""

__version__ = "0.1.0"
