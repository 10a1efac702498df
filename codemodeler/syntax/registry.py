"""Provider lookup by language name or file extension."""

from pathlib import Path

from .base import SyntaxProvider
from .csharp_provider import CSharpSyntaxProvider
from .python_provider import PythonSyntaxProvider

# Language aliases accepted on Document.language
LANGUAGE_ALIASES = {
    "py": "python",
    "python3": "python",
    "cs": "csharp",
    "c#": "csharp",
    "c_sharp": "csharp",
}


class ProviderRegistry:
    """Maps languages and extensions to providers."""

    def __init__(self, providers: list[SyntaxProvider] | None = None):
        self._by_language: dict[str, SyntaxProvider] = {}
        self._by_extension: dict[str, SyntaxProvider] = {}
        for provider in providers or []:
            self.register(provider)

    def register(self, provider: SyntaxProvider) -> None:
        self._by_language[provider.language] = provider
        for ext in provider.extensions:
            self._by_extension[ext.lower()] = provider

    @property
    def languages(self) -> list[str]:
        return sorted(self._by_language)

    @property
    def extensions(self) -> list[str]:
        return sorted(self._by_extension)

    def for_language(self, language: str | None) -> SyntaxProvider | None:
        if not language:
            return None
        key = language.strip().lower()
        return self._by_language.get(LANGUAGE_ALIASES.get(key, key))

    def for_path(self, path: str | None) -> SyntaxProvider | None:
        if not path:
            return None
        return self._by_extension.get(Path(path).suffix.lower())

    def resolve(self, language: str | None, path: str | None) -> SyntaxProvider | None:
        """Explicit language wins; otherwise the file extension decides."""
        if language:
            return self.for_language(language)
        return self.for_path(path)


def default_registry() -> ProviderRegistry:
    """Registry with every built-in provider."""
    return ProviderRegistry([PythonSyntaxProvider(), CSharpSyntaxProvider()])
