"""AI Finance Hub: news, calendar, market quotes and glossary behind one small FastAPI app."""

__version__ = "1.0.0"
