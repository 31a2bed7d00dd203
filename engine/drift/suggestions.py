"""
Suggestion Generation

Turns one structural change plus one documentation file into concrete,
confidence-scored edit proposals, one per affected section.

Suggestion kinds:
    removed:  strike every whole-word mention and prepend a removal note
              (confidence 0.8, never auto-applicable)
    added:    append a stub section with the new signature in a fenced block
              (confidence 0.6, never auto-applicable)
    modified: swap the old signature for the new one in place and prepend an
              update note (confidence 0.7, auto-applicable only for patch)

Confidence is static per kind. An optional feedback scorer may attach an
independent `feedback_score`; scorer failures are logged and ignored.
"""

import re
from dataclasses import replace
from typing import Callable, Optional

from loguru import logger

from engine.models import (
    CodeDiff,
    DiffCategory,
    DiffType,
    DocumentationSection,
    DocumentationSnapshot,
    DriftSuggestion,
    ImpactLevel,
)


FeedbackScorer = Callable[[DriftSuggestion], float]

CONFIDENCE = {
    DiffType.REMOVED: 0.8,
    DiffType.ADDED: 0.6,
    DiffType.MODIFIED: 0.7,
}


def is_section_affected(section: DocumentationSection, diff: CodeDiff) -> bool:
    """True when the section references the changed symbol under its category."""
    if diff.category == DiffCategory.FUNCTION:
        return diff.name in section.referenced_functions
    if diff.category == DiffCategory.CLASS:
        return diff.name in section.referenced_classes
    if diff.category in (DiffCategory.INTERFACE, DiffCategory.TYPE):
        return diff.name in section.referenced_types
    if diff.category == DiffCategory.EXPORT:
        return (
            diff.name in section.referenced_functions
            or diff.name in section.referenced_classes
            or diff.name in section.referenced_types
        )
    return False


def removal_content(section: DocumentationSection, diff: CodeDiff) -> str:
    pattern = re.compile(rf"\b{re.escape(diff.name)}\b")
    content = pattern.sub(f"~~{diff.name}~~ (removed)", section.content)
    notice = (
        f"\n\n> **Note**: The `{diff.name}` {diff.category.value} "
        f"has been removed in the latest version.\n"
    )
    return notice + content


def addition_content(section: DocumentationSection, diff: CodeDiff, language: str) -> str:
    stub = f"\n\n## {diff.name}\n\nA new {diff.category.value} has been added.\n\n"
    if diff.new_signature:
        return section.content + stub + f"```{language}\n{diff.new_signature}\n```\n"
    return (
        section.content
        + stub
        + f"> **Documentation needed**: Please document the `{diff.name}` {diff.category.value}.\n"
    )


def modification_content(section: DocumentationSection, diff: CodeDiff) -> str:
    content = section.content
    if diff.old_signature and diff.new_signature:
        content = content.replace(diff.old_signature, diff.new_signature, 1)
    return f"\n\n> **Updated**: {diff.details}\n" + content


def _reasoning(diff: CodeDiff) -> str:
    category = diff.category.value
    if diff.type == DiffType.REMOVED:
        return (
            f"The {category} '{diff.name}' has been removed from the codebase. "
            f"This section should be updated or removed."
        )
    if diff.type == DiffType.ADDED:
        return f"A new {category} '{diff.name}' has been added. Consider documenting it."
    return f"The {category} '{diff.name}' has been modified: {diff.details}"


class SuggestionGenerator:
    """
    Proposes documentation edits for code changes.

    Args:
        feedback_scorer: Optional callable scoring a suggestion (for example
            from issue-tracker signals). It may raise TimeoutError,
            ConnectionError or OSError when its backend is unavailable.

    Example:
        >>> generator = SuggestionGenerator()
        >>> suggestions = generator.generate(diff, doc_snapshot, "typescript")
        >>> suggestions[0].confidence
        0.7
    """

    def __init__(self, feedback_scorer: Optional[FeedbackScorer] = None):
        self.feedback_scorer = feedback_scorer

    def create_suggestion(
        self,
        diff: CodeDiff,
        doc_snapshot: DocumentationSnapshot,
        section: DocumentationSection,
        language: str,
    ) -> Optional[DriftSuggestion]:
        if diff.type == DiffType.REMOVED:
            suggested = removal_content(section, diff)
        elif diff.type == DiffType.ADDED:
            suggested = addition_content(section, diff, language)
        elif diff.type == DiffType.MODIFIED:
            suggested = modification_content(section, diff)
        else:
            return None

        return DriftSuggestion(
            doc_file=doc_snapshot.file_path,
            section=section.title,
            current_content=section.content,
            suggested_content=suggested,
            reasoning=_reasoning(diff),
            confidence=CONFIDENCE[diff.type],
            auto_applicable=diff.type == DiffType.MODIFIED and diff.impact_level == ImpactLevel.PATCH,
        )

    def _score(self, suggestion: DriftSuggestion) -> DriftSuggestion:
        if self.feedback_scorer is None:
            return suggestion
        try:
            score = float(self.feedback_scorer(suggestion))
        except (TimeoutError, ConnectionError, OSError) as exc:
            logger.warning(
                f"Feedback scorer unavailable for {suggestion.doc_file} "
                f"section '{suggestion.section}': {exc}"
            )
            return suggestion
        return replace(suggestion, feedback_score=score)

    def generate(
        self,
        diff: CodeDiff,
        doc_snapshot: DocumentationSnapshot,
        language: str = "typescript",
    ) -> list[DriftSuggestion]:
        """
        One suggestion per section of `doc_snapshot` affected by `diff`.

        Args:
            diff: The structural change
            doc_snapshot: Documentation file to edit
            language: Fence language for added signatures
        """
        suggestions = []
        for section in doc_snapshot.sections:
            if not is_section_affected(section, diff):
                continue
            suggestion = self.create_suggestion(diff, doc_snapshot, section, language)
            if suggestion is not None:
                suggestions.append(self._score(suggestion))
        return suggestions
