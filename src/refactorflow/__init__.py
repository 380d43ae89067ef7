"""refactorflow: asynchronous, provider-driven refactor workflows for text editors."""

__version__ = "0.1.0"

__all__ = ["__version__"]
