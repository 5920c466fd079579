"""Language analyzers that extract symbols and relationships from source files."""

from __future__ import annotations

import ast
from pathlib import PurePosixPath
from typing import Protocol

from markdown_it import MarkdownIt

from palace_index.core.errors import AnalysisError
from palace_index.ingest.types import FileAnalysis, Relationship, Symbol

LANGUAGE_BY_EXTENSION: dict[str, str] = {
    ".go": "go",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".py": "python",
    ".pyw": "python",
    ".pyi": "python",
    ".rs": "rust",
    ".java": "java",
    ".dart": "dart",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".rb": "ruby",
    ".swift": "swift",
    ".kt": "kotlin",
    ".scala": "scala",
    ".php": "php",
    ".sh": "bash",
    ".bash": "bash",
    ".sql": "sql",
    ".html": "html",
    ".css": "css",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".json": "json",
    ".jsonc": "json",
    ".md": "markdown",
    ".markdown": "markdown",
}


def detect_language(path: str) -> str:
    """Return the language tag for a path, or an empty string when unknown."""
    return LANGUAGE_BY_EXTENSION.get(PurePosixPath(path).suffix.lower(), "")


class Analyzer(Protocol):
    language: str

    def analyze(self, content: bytes, path: str) -> FileAnalysis:
        ...


class PythonAnalyzer:
    """Functions, classes, methods, imports and calls from Python sources."""

    language = "python"

    def analyze(self, content: bytes, path: str) -> FileAnalysis:
        try:
            tree = ast.parse(content, filename=path)
        except (SyntaxError, ValueError) as exc:
            raise AnalysisError(path, str(exc)) from exc
        analysis = FileAnalysis(path=path, language=self.language)
        for node in tree.body:
            symbol = _python_symbol(node, in_class=False)
            if symbol is not None:
                analysis.symbols.append(symbol)
        relationships: list[Relationship] = []
        for node in ast.walk(tree):
            relationships.extend(_python_relationships(node))
        relationships.sort(key=lambda rel: (rel.line, rel.column, rel.kind, rel.target_symbol))
        analysis.relationships = relationships
        return analysis


def _python_symbol(node: ast.AST, in_class: bool) -> Symbol | None:
    if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
        prefix = "async def" if isinstance(node, ast.AsyncFunctionDef) else "def"
        return Symbol(
            name=node.name,
            kind="method" if in_class else "function",
            line_start=node.lineno,
            line_end=node.end_lineno or node.lineno,
            signature=f"{prefix} {node.name}({ast.unparse(node.args)})",
            doc_comment=_first_line(ast.get_docstring(node)),
            exported=not node.name.startswith("_"),
        )
    if isinstance(node, ast.ClassDef):
        children = [
            child
            for child in (_python_symbol(item, in_class=True) for item in node.body)
            if child is not None
        ]
        return Symbol(
            name=node.name,
            kind="class",
            line_start=node.lineno,
            line_end=node.end_lineno or node.lineno,
            signature=f"class {node.name}",
            doc_comment=_first_line(ast.get_docstring(node)),
            exported=not node.name.startswith("_"),
            children=children,
        )
    return None


def _python_relationships(node: ast.AST) -> list[Relationship]:
    if isinstance(node, ast.Call):
        target = _dotted_name(node.func)
        if not target:
            return []
        return [Relationship(target_symbol=target, kind="call", line=node.lineno, column=node.col_offset)]
    if isinstance(node, ast.Import):
        return [
            Relationship(target_symbol=alias.name, kind="import", line=node.lineno, column=node.col_offset)
            for alias in node.names
        ]
    if isinstance(node, ast.ImportFrom):
        module = "." * node.level + (node.module or "")
        return [
            Relationship(
                target_symbol=f"{module}.{alias.name}" if module else alias.name,
                kind="import",
                line=node.lineno,
                column=node.col_offset,
            )
            for alias in node.names
        ]
    if isinstance(node, ast.ClassDef):
        return [
            Relationship(target_symbol=name, kind="extends", line=base.lineno, column=base.col_offset)
            for base in node.bases
            if (name := _dotted_name(base))
        ]
    return []


def _dotted_name(node: ast.AST) -> str:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        owner = _dotted_name(node.value)
        return f"{owner}.{node.attr}" if owner else node.attr
    return ""


def _first_line(doc: str | None) -> str:
    if not doc:
        return ""
    return doc.strip().splitlines()[0]


class MarkdownAnalyzer:
    """Headings become symbols; level one and two are sections, deeper ones subsections."""

    language = "markdown"

    def __init__(self) -> None:
        self._md = MarkdownIt("commonmark")

    def analyze(self, content: bytes, path: str) -> FileAnalysis:
        text = content.decode("utf-8", errors="replace")
        tokens = self._md.parse(text)
        analysis = FileAnalysis(path=path, language=self.language)
        for position, token in enumerate(tokens):
            if token.type == "heading_open" and token.map:
                level = int(token.tag[1:])
                inline = tokens[position + 1] if position + 1 < len(tokens) else None
                title = inline.content.strip() if inline is not None and inline.type == "inline" else ""
                if not title:
                    continue
                analysis.symbols.append(
                    Symbol(
                        name=title,
                        kind="class" if level <= 2 else "method",
                        line_start=token.map[0] + 1,
                        line_end=token.map[1],
                        signature="#" * level,
                        exported=True,
                    )
                )
            elif token.type == "inline" and token.children:
                for child in token.children:
                    href = child.attrs.get("href") if child.type == "link_open" else None
                    if href and not str(href).startswith(("http://", "https://", "#", "mailto:")):
                        analysis.relationships.append(
                            Relationship(
                                target_symbol=str(href),
                                kind="reference",
                                line=(token.map[0] + 1) if token.map else 0,
                                target_file=str(href).split("#", 1)[0] or None,
                            )
                        )
        return analysis


class AnalyzerRegistry:
    """Analyzers keyed by language tag."""

    def __init__(self) -> None:
        self._analyzers: dict[str, Analyzer] = {}

    def register(self, analyzer: Analyzer) -> None:
        self._analyzers[analyzer.language] = analyzer

    def for_language(self, language: str) -> Analyzer | None:
        return self._analyzers.get(language)


def default_registry() -> AnalyzerRegistry:
    registry = AnalyzerRegistry()
    registry.register(PythonAnalyzer())
    registry.register(MarkdownAnalyzer())
    return registry


__all__ = [
    "Analyzer",
    "AnalyzerRegistry",
    "LANGUAGE_BY_EXTENSION",
    "MarkdownAnalyzer",
    "PythonAnalyzer",
    "default_registry",
    "detect_language",
]
