"""
Documentation Extraction

Splits markdown documentation into heading-delimited sections and records
which code symbols each section mentions, so the drift detector can map a
code change to the prose that describes it.

Design Decisions:
    - Sections start at ATX headings (`#` to `######`); text before the
      first heading belongs to no section
    - Symbol detection is a casing heuristic: `name(`-shaped lower-case
      identifiers are functions, capitalized identifiers are classes/types;
      a capitalized heading names a class only
    - Fenced code blocks stay in the section content and are also captured
      as CodeExamples; headings inside a fence are not section breaks
    - Line numbers are 1-based

Academic Context:
    Input: Markdown text
    Transformation: Line scan with fence tracking + regex symbol harvesting
    Output: DocumentationSnapshot
    Limitation: Symbol references are approximate; prose mentions without
                backticks are not detected
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger

from engine.hash.semantic_hash import compute_content_hash
from engine.models import CodeExample, DocumentationSection, DocumentationSnapshot


HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)")
HEADING_FUNCTION_RE = re.compile(r"^([a-z][A-Za-z0-9_]*)\s*\(")
HEADING_CLASS_RE = re.compile(r"^([A-Z][A-Za-z0-9_]*)")
INLINE_SYMBOL_RE = re.compile(r"`([A-Za-z_][A-Za-z0-9_]*)(?:\(\))?`")
FENCE_LANGUAGE_RE = re.compile(r"```(\w+)")
CODE_FUNCTION_RE = re.compile(r"\b([a-z][A-Za-z0-9_]*)\s*\(")
CODE_CLASS_RE = re.compile(r"\b([A-Z][A-Za-z0-9_]*)\b")

_SOURCE_SUFFIXES = r"(?:ts|tsx|js|jsx|mjs|cjs|py|go|rs|java|rb)"
LINK_REFERENCE_RE = re.compile(r"\[.*?\]\(([^)\s]*?\." + _SOURCE_SUFFIXES + r")(?:[#?][^)]*)?\)")
INLINE_REFERENCE_RE = re.compile(r"`([^`\s]+\." + _SOURCE_SUFFIXES + r")`")

_CODE_KEYWORDS = frozenset({
    "if", "for", "while", "switch", "catch", "function", "return", "typeof",
    "elif", "with", "await", "new", "super", "def", "lambda", "not", "and",
    "or", "in", "print", "async",
})


def extract_symbols_from_code(code: str) -> tuple[list[str], list[str]]:
    """
    Harvest symbol names from a code example.

    Returns:
        (functions, classes): lower-case identifiers followed by `(`, and
        capitalized identifiers, each deduplicated in first-seen order
    """
    functions = list(dict.fromkeys(
        m.group(1) for m in CODE_FUNCTION_RE.finditer(code) if m.group(1) not in _CODE_KEYWORDS
    ))
    classes = list(dict.fromkeys(m.group(1) for m in CODE_CLASS_RE.finditer(code)))
    return functions, classes


def extract_code_references(content: str) -> list[str]:
    """Source-file paths mentioned in markdown links and inline code."""
    references = [m.group(1) for m in LINK_REFERENCE_RE.finditer(content)]
    references.extend(m.group(1) for m in INLINE_REFERENCE_RE.finditer(content))
    return list(dict.fromkeys(references))


@dataclass
class _SectionBuilder:
    title: str
    start_line: int
    functions: list[str] = field(default_factory=list)
    classes: list[str] = field(default_factory=list)
    types: list[str] = field(default_factory=list)
    examples: list[CodeExample] = field(default_factory=list)
    lines: list[str] = field(default_factory=list)

    def add_function(self, name: str) -> None:
        if name not in self.functions:
            self.functions.append(name)

    def add_class(self, name: str) -> None:
        if name not in self.classes:
            self.classes.append(name)
        if name not in self.types:
            self.types.append(name)

    def add_inline_symbols(self, text: str) -> None:
        for match in INLINE_SYMBOL_RE.finditer(text):
            symbol = match.group(1)
            if symbol[0].isupper():
                self.add_class(symbol)
            else:
                self.add_function(symbol)

    def build(self, end_line: int) -> DocumentationSection:
        return DocumentationSection(
            title=self.title,
            content="\n".join(self.lines),
            referenced_functions=tuple(self.functions),
            referenced_classes=tuple(self.classes),
            referenced_types=tuple(self.types),
            code_examples=tuple(self.examples),
            start_line=self.start_line,
            end_line=max(self.start_line, end_line),
        )


def _start_section(title: str, line_number: int) -> _SectionBuilder:
    section = _SectionBuilder(title=title, start_line=line_number)
    function_match = HEADING_FUNCTION_RE.match(title)
    if function_match:
        section.add_function(function_match.group(1))
    else:
        class_match = HEADING_CLASS_RE.match(title)
        if class_match:
            section.classes.append(class_match.group(1))
    section.add_inline_symbols(title)
    return section


def extract_sections(content: str) -> list[DocumentationSection]:
    """
    Split markdown into sections with their symbol references.

    Example:
        >>> sections = extract_sections("# API\\n\\n## add(a, b)\\nUse `Calculator`.\\n")
        >>> [(s.title, s.referenced_functions, s.referenced_classes) for s in sections]
        [('API', (), ('API',)), ('add(a, b)', ('add',), ('Calculator',))]
    """
    lines = content.split("\n")
    sections: list[DocumentationSection] = []
    current: Optional[_SectionBuilder] = None
    fence: Optional[tuple[str, list[str]]] = None

    for index, line in enumerate(lines, start=1):
        if fence is not None:
            if current is not None:
                current.lines.append(line)
            if line.startswith("```"):
                language, code_lines = fence
                code = "\n".join(code_lines)
                if current is not None:
                    functions, classes = extract_symbols_from_code(code)
                    current.examples.append(
                        CodeExample(
                            language=language,
                            code=code,
                            referenced_symbols=tuple(dict.fromkeys(functions + classes)),
                        )
                    )
                    for name in functions:
                        current.add_function(name)
                    for name in classes:
                        current.add_class(name)
                fence = None
            else:
                fence[1].append(line)
            continue

        heading = HEADING_RE.match(line)
        if heading:
            if current is not None:
                sections.append(current.build(index - 1))
            current = _start_section(heading.group(2).strip(), index)
            continue

        if line.startswith("```"):
            language_match = FENCE_LANGUAGE_RE.match(line)
            fence = (language_match.group(1) if language_match else "text", [])

        if current is not None:
            current.lines.append(line)
            if fence is None:
                current.add_inline_symbols(line)

    if current is not None:
        if fence is not None:
            # unterminated fence: keep what was collected
            functions, classes = extract_symbols_from_code("\n".join(fence[1]))
            for name in functions:
                current.add_function(name)
            for name in classes:
                current.add_class(name)
        sections.append(current.build(len(lines)))
    return sections


class DocumentationExtractor:
    """Builds DocumentationSnapshots from markdown files."""

    def extract(
        self,
        file_path: Path | str,
        content: str,
        last_updated: Optional[str] = None,
    ) -> DocumentationSnapshot:
        return DocumentationSnapshot(
            file_path=str(file_path),
            content_hash=compute_content_hash(content),
            referenced_code=tuple(extract_code_references(content)),
            last_updated=last_updated,
            sections=tuple(extract_sections(content)),
        )

    def extract_file(self, file_path: Path | str) -> Optional[DocumentationSnapshot]:
        """Read and extract a documentation file; None if it cannot be read."""
        path = Path(file_path)
        try:
            content = path.read_text(encoding="utf-8")
            mtime = path.stat().st_mtime
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(f"Failed to analyze documentation {path}: {exc}")
            return None
        last_updated = datetime.fromtimestamp(mtime, tz=timezone.utc).isoformat()
        return self.extract(path, content, last_updated)
