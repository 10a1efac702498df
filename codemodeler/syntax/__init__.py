"""Syntax providers and the language-neutral tree they produce."""

from .base import SyntaxProvider
from .model import (
    MODULE_SCOPE,
    Access,
    Document,
    NodeKind,
    Role,
    SemanticModel,
    SourceText,
    Span,
    Symbol,
    SymbolKind,
    SymbolTable,
    SyntaxNode,
    SyntaxTree,
)
from .registry import ProviderRegistry, default_registry

__all__ = [
    "MODULE_SCOPE",
    "Access",
    "Document",
    "NodeKind",
    "ProviderRegistry",
    "Role",
    "SemanticModel",
    "SourceText",
    "Span",
    "Symbol",
    "SymbolKind",
    "SymbolTable",
    "SyntaxNode",
    "SyntaxProvider",
    "SyntaxTree",
    "default_registry",
]
