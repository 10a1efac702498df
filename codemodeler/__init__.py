"""codemodeler - static code analysis and anonymization for model training data."""

__version__ = "0.1.0"
