"""Abstract base class for syntax providers.

This module defines the contract every language front end must follow. A
provider turns raw text into the neutral SyntaxTree the analysis engine reads;
the engine never touches a native parser directly, which lets tests drive it
with hand-built trees.
"""

from abc import ABC, abstractmethod

from .model import Document, SyntaxTree


class SyntaxProvider(ABC):
    """Parses one document into a SyntaxTree with bound symbols.

    Implementations:
    - PythonSyntaxProvider: standard library ast
    - CSharpSyntaxProvider: tree-sitter csharp grammar
    """

    language: str = ""
    extensions: tuple[str, ...] = ()

    @property
    def name(self) -> str:
        """Human-readable name for logging."""
        return self.__class__.__name__

    @abstractmethod
    def parse(self, document: Document) -> SyntaxTree | None:
        """
        Parse a document.

        Args:
            document: Path and text to parse

        Returns:
            SyntaxTree, or None when the text is absent, blank or unparseable.

        Raises:
            Should NOT raise for bad input - return None instead.
            MemoryError is the one exception that propagates.
        """
        pass
