"""Syntax tree provider backed by tree-sitter.

The match engine only needs a tree shaped like ``SyntaxTree`` below; a
``tree_sitter.Tree`` already is one. Grammars are loaded through an explicit
``LanguageCache`` owned by the host application.
"""

from __future__ import annotations

import asyncio
import importlib
from pathlib import PurePosixPath
from typing import Callable, Dict, Optional, Protocol, Sequence

import tree_sitter_javascript as tsjs
import tree_sitter_typescript as tsts
from tree_sitter import Language, Parser

from .logger import logger


class SyntaxNode(Protocol):
    @property
    def start_byte(self) -> int: ...

    @property
    def end_byte(self) -> int: ...

    @property
    def named_children(self) -> Sequence["SyntaxNode"]: ...


class SyntaxTree(Protocol):
    @property
    def root_node(self) -> SyntaxNode: ...


class SyntaxTreeProvider(Protocol):
    def parse(self, language_id: str, source_text: str) -> SyntaxTree: ...


class UnsupportedLanguageError(ValueError):
    """Raised when no grammar is available for a language id."""


LANGUAGE_MAP: Dict[str, str] = {
    "ts": "typescript",
    "tsx": "tsx",
    "js": "javascript",
    "jsx": "javascript",
    "css": "css",
    "html": "html",
    "json": "json",
    "py": "python",
    "rs": "rust",
    "go": "go",
}

# Grammars shipped as dependencies of this package
BUILTIN_GRAMMARS: Dict[str, Callable[[], object]] = {
    "javascript": tsjs.language,
    "typescript": tsts.language_typescript,
    "tsx": tsts.language_tsx,
}


def language_for_path(file_path: str) -> Optional[str]:
    ext = PurePosixPath(file_path).suffix.lower().lstrip(".")
    if not ext:
        return None
    return LANGUAGE_MAP.get(ext)


class LanguageCache:
    """Loaded tree-sitter languages, keyed by language id."""

    def __init__(self) -> None:
        self._languages: Dict[str, Language] = {}

    def __contains__(self, language_id: str) -> bool:
        return language_id in self._languages

    def get(self, language_id: str) -> Language:
        lang = self._languages.get(language_id)
        if lang is not None:
            return lang

        factory = BUILTIN_GRAMMARS.get(language_id)
        if factory is None:
            # Other grammars are picked up when their wheel is installed,
            # e.g. tree-sitter-python provides tree_sitter_python.language()
            try:
                module = importlib.import_module(f"tree_sitter_{language_id}")
            except ImportError as e:
                raise UnsupportedLanguageError(
                    f"No tree-sitter grammar installed for: {language_id}"
                ) from e
            factory = getattr(module, "language", None)
            if factory is None:
                raise UnsupportedLanguageError(
                    f"Grammar module for {language_id} has no language()"
                )

        lang = Language(factory())
        self._languages[language_id] = lang
        logger.debug("Loaded grammar", language=language_id)
        return lang


class TreeSitterProvider:
    def __init__(self, cache: LanguageCache) -> None:
        self._cache = cache

    @property
    def cache(self) -> LanguageCache:
        return self._cache

    def parse(self, language_id: str, source_text: str) -> SyntaxTree:
        parser = Parser()
        parser.language = self._cache.get(language_id)
        return parser.parse(source_text.encode("utf-8"))


class SyntaxContext:
    """
    Fetches trees for the structural match tier. Every failure is reported as
    "no tree" so that the tier is skipped instead of aborting the apply.
    """

    def __init__(
        self,
        provider: Optional[SyntaxTreeProvider] = None,
        *,
        enabled: bool = True,
    ) -> None:
        self.provider = provider
        self.enabled = enabled

    def get_tree(self, file_path: str, code: str) -> Optional[SyntaxTree]:
        if not self.enabled or self.provider is None:
            return None
        lang = language_for_path(file_path)
        if lang is None:
            return None
        try:
            return self.provider.parse(lang, code)
        except Exception as e:
            logger.warning(
                "Syntax tree parsing failed", path=file_path, language=lang, err=e
            )
            return None

    async def aget_tree(
        self,
        file_path: str,
        code: str,
        *,
        timeout: Optional[float] = None,
    ) -> Optional[SyntaxTree]:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.get_tree, file_path, code), timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Syntax tree parsing timed out", path=file_path)
            return None
