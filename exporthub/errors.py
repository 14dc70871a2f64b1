"""
Export hub error types with rich diagnostics.
"""

from typing import Any, List, Optional


class ExportHubError(Exception):
    """Base exception for export hub errors."""
    pass


class ImportDeclarationError(ExportHubError):
    """Import metadata on a member cannot be resolved to a shape."""

    def __init__(
        self,
        owner: str,
        member: str,
        reason: str,
        declared: Optional[Any] = None,
    ):
        self.owner = owner
        self.member = member
        self.reason = reason
        self.declared = declared

        msg = f"Invalid import declaration {owner}.{member}: {reason}"
        if declared is not None:
            msg += f"\nDeclared type: {declared!r}"

        msg += "\n\nSuggested fixes:"
        msg += "\n  - Declare a single class: Annotated[Optional[T], Import()]"
        msg += "\n  - Declare a collection: Annotated[list[T], Import()] or Annotated[tuple[T, ...], Import()]"
        msg += "\n  - Use @imports(T) on a single-argument method"

        super().__init__(msg)


class InvalidExportError(ExportHubError):
    """Instance cannot be exported (collection or parameterized container)."""

    def __init__(self, instance_type: type):
        self.instance_type = instance_type

        msg = (
            f"Collections and parameterized containers are not valid exports: "
            f"{instance_type.__module__}.{instance_type.__qualname__}"
            f"\n\nSuggested fixes:"
            f"\n  - Export each member individually"
            f"\n  - Wrap the collection in a dedicated container class"
        )

        super().__init__(msg)


class DuplicateExportError(ExportHubError):
    """Instance is already exported and the duplicate policy is 'raise'."""

    def __init__(self, instance: Any, existing: int = 1):
        self.instance = instance
        self.existing = existing

        t = type(instance)
        msg = (
            f"Export is being added multiple times: {t.__module__}.{t.__qualname__} "
            f"({existing} existing record(s))"
            f"\n\nSuggested fixes:"
            f"\n  - Call remove_export() exactly once per add_export()"
            f"\n  - Set duplicate_policy to 'ignore' or 'replace'"
        )

        super().__init__(msg)


class InjectorClosedError(ExportHubError):
    """Operation on an injector after ``shutdown()``."""

    def __init__(self, operation: str):
        self.operation = operation

        msg = (
            f"Cannot {operation}: injector has been shut down"
            f"\n\nSuggested fixes:"
            f"\n  - Create a new Injector instead of reusing a closed one"
            f"\n  - Keep add_export()/subscribe() calls inside the 'with Injector()' block"
        )

        super().__init__(msg)


class ConfigError(ExportHubError):
    """Configuration validation failed."""

    def __init__(self, errors: List[str], source: Optional[str] = None):
        self.errors = errors
        self.source = source

        msg = "Configuration validation failed"
        if source:
            msg += f" for '{source}'"
        msg += ":"
        for error in errors:
            msg += f"\n  - {error}"

        super().__init__(msg)
