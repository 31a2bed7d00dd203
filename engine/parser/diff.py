"""
Structural Diff

Compares two structural models of the same file and classifies every change
by impact level.

Impact rules (functions):
    - previously exported and (parameter count changed, return type changed,
      or no longer exported) → breaking
    - async-ness changed → major
    - newly exported → minor
    - anything else → patch

Removed symbols are breaking when they were exported, minor otherwise.
Added symbols are patch. A function whose signature is unchanged but whose
semantic hash moved while a non-empty doc comment stayed identical yields a
patch-level "doc comment may be stale" diff.
"""

from typing import Callable, Iterable, Optional, TypeVar

from engine.models import (
    ClassInfo,
    CodeDiff,
    DiffCategory,
    DiffType,
    FileAnalysis,
    FunctionSignature,
    ImpactLevel,
    InterfaceInfo,
    TypeInfo,
)

T = TypeVar("T")


def format_function_signature(func: FunctionSignature) -> str:
    """
    Render a signature as `{async }name(p: type, ...): return`.

    Untyped parameters render as `any`, a missing return type as `void`.

    Example:
        >>> from engine.models import ParameterInfo
        >>> format_function_signature(FunctionSignature(
        ...     name="add", parameters=(ParameterInfo("a", "number"), ParameterInfo("b"))))
        'add(a: number, b: any): void'
    """
    params = ", ".join(f"{p.name}: {p.type or 'any'}" for p in func.parameters)
    prefix = "async " if func.is_async else ""
    return f"{prefix}{func.name}({params}): {func.return_type or 'void'}"


def _by_name(items: Iterable[T]) -> dict[str, T]:
    return {item.name: item for item in items}


def _added_removed(
    category: DiffCategory,
    label: str,
    old: dict[str, T],
    new: dict[str, T],
    signature: Optional[Callable[[T], str]] = None,
) -> list[CodeDiff]:
    diffs = []
    for name, item in old.items():
        if name not in new:
            diffs.append(
                CodeDiff(
                    type=DiffType.REMOVED,
                    category=category,
                    name=name,
                    details=f"{label} '{name}' was removed",
                    old_signature=signature(item) if signature else None,
                    impact_level=ImpactLevel.BREAKING if item.is_exported else ImpactLevel.MINOR,
                )
            )
    for name, item in new.items():
        if name not in old:
            diffs.append(
                CodeDiff(
                    type=DiffType.ADDED,
                    category=category,
                    name=name,
                    details=f"{label} '{name}' was added",
                    new_signature=signature(item) if signature else None,
                    impact_level=ImpactLevel.PATCH,
                )
            )
    return diffs


def _export_change(label: str, old: bool, new: bool) -> Optional[str]:
    if old == new:
        return None
    return f"{label} is now exported" if new else f"{label} is no longer exported"


# ---------------------------------------------------------------------------
# Functions
# ---------------------------------------------------------------------------


def detect_function_changes(old: FunctionSignature, new: FunctionSignature) -> list[str]:
    """Human-readable list of signature differences (empty when unchanged)."""
    changes = []
    if len(old.parameters) != len(new.parameters):
        changes.append(
            f"Parameter count changed from {len(old.parameters)} to {len(new.parameters)}"
        )
    else:
        for before, after in zip(old.parameters, new.parameters):
            if before.name != after.name:
                changes.append(f"Parameter '{before.name}' renamed to '{after.name}'")
            if before.type != after.type:
                changes.append(
                    f"Parameter '{after.name}' type changed from '{before.type}' to '{after.type}'"
                )
            if before.optional != after.optional:
                state = "optional" if after.optional else "required"
                changes.append(f"Parameter '{after.name}' is now {state}")
            if before.default_value != after.default_value:
                changes.append(
                    f"Parameter '{after.name}' default changed from "
                    f"'{before.default_value}' to '{after.default_value}'"
                )
    if old.return_type != new.return_type:
        changes.append(f"Return type changed from '{old.return_type}' to '{new.return_type}'")
    if old.is_async != new.is_async:
        changes.append("Function became async" if new.is_async else "Function is no longer async")
    export = _export_change("Function", old.is_exported, new.is_exported)
    if export:
        changes.append(export)
    return changes


def determine_function_impact(old: FunctionSignature, new: FunctionSignature) -> ImpactLevel:
    if old.is_exported and (
        len(old.parameters) != len(new.parameters)
        or old.return_type != new.return_type
        or not new.is_exported
    ):
        return ImpactLevel.BREAKING
    if old.is_async != new.is_async:
        return ImpactLevel.MAJOR
    if not old.is_exported and new.is_exported:
        return ImpactLevel.MINOR
    return ImpactLevel.PATCH


def _stale_doc(old: FunctionSignature, new: FunctionSignature) -> bool:
    return (
        bool(old.doc_comment)
        and old.doc_comment == new.doc_comment
        and old.semantic_hash is not None
        and new.semantic_hash is not None
        and old.semantic_hash != new.semantic_hash
    )


def compare_functions(
    old_functions: Iterable[FunctionSignature],
    new_functions: Iterable[FunctionSignature],
) -> list[CodeDiff]:
    old = _by_name(old_functions)
    new = _by_name(new_functions)
    diffs = _added_removed(DiffCategory.FUNCTION, "Function", old, new, format_function_signature)

    for name, after in new.items():
        before = old.get(name)
        if before is None:
            continue
        changes = detect_function_changes(before, after)
        if changes:
            impact = determine_function_impact(before, after)
            details = "; ".join(changes)
        elif _stale_doc(before, after):
            impact = ImpactLevel.PATCH
            details = "Implementation changed but the doc comment did not; doc comment may be stale"
        else:
            continue
        diffs.append(
            CodeDiff(
                type=DiffType.MODIFIED,
                category=DiffCategory.FUNCTION,
                name=name,
                details=details,
                old_signature=format_function_signature(before),
                new_signature=format_function_signature(after),
                impact_level=impact,
            )
        )
    return diffs


# ---------------------------------------------------------------------------
# Classes, interfaces, types
# ---------------------------------------------------------------------------


def _compare_members(
    old_methods: Iterable[FunctionSignature],
    new_methods: Iterable[FunctionSignature],
    public_only: bool,
) -> tuple[list[str], bool, bool]:
    """
    Compare method lists.

    Returns:
        (details, breaking, major) where breaking means a relevant method was
        removed or changed its parameter count or return type
    """
    changes: list[str] = []
    breaking = False
    major = False
    old = _by_name(old_methods)
    new = _by_name(new_methods)

    for name, before in old.items():
        relevant = before.is_public or not public_only
        after = new.get(name)
        if after is None:
            changes.append(f"Method '{name}' was removed")
            breaking = breaking or relevant
            continue
        if len(before.parameters) != len(after.parameters):
            changes.append(
                f"Method '{name}' parameter count changed from "
                f"{len(before.parameters)} to {len(after.parameters)}"
            )
            breaking = breaking or relevant
        if before.return_type != after.return_type:
            changes.append(
                f"Method '{name}' return type changed from "
                f"'{before.return_type}' to '{after.return_type}'"
            )
            breaking = breaking or relevant
        if before.is_async != after.is_async:
            changes.append(
                f"Method '{name}' became async" if after.is_async
                else f"Method '{name}' is no longer async"
            )
            major = True
        if before.parameters != after.parameters and len(before.parameters) == len(after.parameters):
            changes.append(f"Method '{name}' parameters changed")

    for name in new:
        if name not in old:
            changes.append(f"Method '{name}' was added")
    return changes, breaking, major


def compare_class(old: ClassInfo, new: ClassInfo) -> Optional[CodeDiff]:
    changes: list[str] = []
    breaking = False

    if old.extends != new.extends:
        changes.append(f"Superclass changed from '{old.extends}' to '{new.extends}'")
        breaking = True

    if old.implements != new.implements:
        changes.append(
            f"Implemented interfaces changed from {list(old.implements)} to {list(new.implements)}"
        )

    method_changes, method_breaking, major = _compare_members(old.methods, new.methods, public_only=True)
    changes.extend(method_changes)
    breaking = breaking or method_breaking

    old_props = _by_name(old.properties)
    new_props = _by_name(new.properties)
    for name, prop in old_props.items():
        if name not in new_props:
            changes.append(f"Property '{name}' was removed")
            breaking = breaking or prop.visibility == "public"
        elif prop != new_props[name]:
            changes.append(f"Property '{name}' changed")
    for name in new_props:
        if name not in old_props:
            changes.append(f"Property '{name}' was added")

    export = _export_change("Class", old.is_exported, new.is_exported)
    if export:
        changes.append(export)
        breaking = breaking or not new.is_exported

    if not changes:
        return None

    if old.is_exported and breaking:
        impact = ImpactLevel.BREAKING
    elif major:
        impact = ImpactLevel.MAJOR
    elif not old.is_exported and new.is_exported:
        impact = ImpactLevel.MINOR
    else:
        impact = ImpactLevel.PATCH

    return CodeDiff(
        type=DiffType.MODIFIED,
        category=DiffCategory.CLASS,
        name=new.name,
        details="; ".join(changes),
        impact_level=impact,
    )


def compare_interface(old: InterfaceInfo, new: InterfaceInfo) -> Optional[CodeDiff]:
    changes: list[str] = []
    breaking = False

    if old.extends != new.extends:
        changes.append(f"Extended interfaces changed from {list(old.extends)} to {list(new.extends)}")

    old_props = _by_name(old.properties)
    new_props = _by_name(new.properties)
    for name, prop in old_props.items():
        after = new_props.get(name)
        if after is None:
            changes.append(f"Member '{name}' was removed")
            breaking = True
        elif prop.type != after.type:
            changes.append(f"Member '{name}' type changed from '{prop.type}' to '{after.type}'")
            breaking = True
        elif prop != after:
            changes.append(f"Member '{name}' changed")
    for name in new_props:
        if name not in old_props:
            changes.append(f"Member '{name}' was added")

    method_changes, method_breaking, _ = _compare_members(old.methods, new.methods, public_only=False)
    changes.extend(method_changes)
    breaking = breaking or method_breaking

    export = _export_change("Interface", old.is_exported, new.is_exported)
    if export:
        changes.append(export)
        breaking = breaking or not new.is_exported

    if not changes:
        return None

    if old.is_exported and breaking:
        impact = ImpactLevel.BREAKING
    elif not old.is_exported and new.is_exported:
        impact = ImpactLevel.MINOR
    else:
        impact = ImpactLevel.PATCH

    return CodeDiff(
        type=DiffType.MODIFIED,
        category=DiffCategory.INTERFACE,
        name=new.name,
        details="; ".join(changes),
        impact_level=impact,
    )


def compare_type(old: TypeInfo, new: TypeInfo) -> Optional[CodeDiff]:
    changes: list[str] = []
    if old.definition != new.definition:
        changes.append(f"Definition changed from '{old.definition}' to '{new.definition}'")
    export = _export_change("Type", old.is_exported, new.is_exported)
    if export:
        changes.append(export)
    if not changes:
        return None

    if old.is_exported and old.definition != new.definition:
        impact = ImpactLevel.BREAKING
    elif not old.is_exported and new.is_exported:
        impact = ImpactLevel.MINOR
    else:
        impact = ImpactLevel.PATCH

    return CodeDiff(
        type=DiffType.MODIFIED,
        category=DiffCategory.TYPE,
        name=new.name,
        details="; ".join(changes),
        old_signature=f"type {old.name} = {old.definition}",
        new_signature=f"type {new.name} = {new.definition}",
        impact_level=impact,
    )


def _compare_modified(
    old: dict[str, T],
    new: dict[str, T],
    compare: Callable[[T, T], Optional[CodeDiff]],
) -> list[CodeDiff]:
    diffs = []
    for name, after in new.items():
        if name in old:
            diff = compare(old[name], after)
            if diff is not None:
                diffs.append(diff)
    return diffs


def _declared_names(analysis: FileAnalysis) -> set[str]:
    return {
        item.name
        for group in (analysis.functions, analysis.classes, analysis.interfaces, analysis.types)
        for item in group
    }


def compare_exports(old: FileAnalysis, new: FileAnalysis) -> list[CodeDiff]:
    """Diff export names that are not declarations of the file itself."""
    declared = _declared_names(old) | _declared_names(new)
    old_names = [n for n in old.exports if n not in declared]
    new_names = [n for n in new.exports if n not in declared]
    diffs = []
    for name in old_names:
        if name not in new_names:
            diffs.append(
                CodeDiff(
                    type=DiffType.REMOVED,
                    category=DiffCategory.EXPORT,
                    name=name,
                    details=f"Export '{name}' was removed",
                    impact_level=ImpactLevel.BREAKING,
                )
            )
    for name in new_names:
        if name not in old_names:
            diffs.append(
                CodeDiff(
                    type=DiffType.ADDED,
                    category=DiffCategory.EXPORT,
                    name=name,
                    details=f"Export '{name}' was added",
                    impact_level=ImpactLevel.MINOR,
                )
            )
    return diffs


def compare_analyses(old: FileAnalysis, new: FileAnalysis) -> list[CodeDiff]:
    """
    Compare two structural models of the same file.

    Args:
        old: Model from the earlier snapshot
        new: Model from the later snapshot

    Returns:
        CodeDiffs ordered by category: functions, classes, interfaces,
        types, exports

    Example:
        >>> diffs = compare_analyses(old_analysis, new_analysis)
        >>> [(d.name, d.impact_level.value) for d in diffs]
        [('add', 'breaking')]
    """
    diffs = compare_functions(old.functions, new.functions)

    old_classes, new_classes = _by_name(old.classes), _by_name(new.classes)
    diffs.extend(_added_removed(DiffCategory.CLASS, "Class", old_classes, new_classes))
    diffs.extend(_compare_modified(old_classes, new_classes, compare_class))

    old_ifaces, new_ifaces = _by_name(old.interfaces), _by_name(new.interfaces)
    diffs.extend(_added_removed(DiffCategory.INTERFACE, "Interface", old_ifaces, new_ifaces))
    diffs.extend(_compare_modified(old_ifaces, new_ifaces, compare_interface))

    old_types, new_types = _by_name(old.types), _by_name(new.types)
    diffs.extend(_added_removed(DiffCategory.TYPE, "Type", old_types, new_types))
    diffs.extend(_compare_modified(old_types, new_types, compare_type))

    diffs.extend(compare_exports(old, new))
    return diffs
