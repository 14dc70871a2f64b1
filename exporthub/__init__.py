"""
ExportHub - process-wide export/import registry.

Components publish instances ("exports") and other components declare
dependencies on a type, interface or key ("imports") without holding a
reference to each other. Imports can be resolved once or kept live:
subscribed members are re-resolved whenever a matching export is added
or removed.

Key Features:
- Resolution by exact type, base class / interface, or string key
- Scalar, list and tuple shaped imports
- Live subscriptions with full re-resolution on every change
- Explicit Injector context objects (plus a process-wide default)
- Load-time service table with singleton / resource / constructor loading
"""

__version__ = "1.0.0"

from .core import Injector

from .records import (
    Export,
    ImportShape,
    ImportSlot,
    Subscription,
)

from .decorators import (
    Import,
    export,
    imports,
)

from .members import (
    discover_slots,
    make_slot,
    parse_shape,
)

from .bootstrap import (
    Bootstrapper,
    ResourceLoader,
    ServiceMeta,
    ServiceTable,
    default_table,
    service,
)

from .config import (
    ConfigLoader,
    DuplicatePolicy,
    HubConfig,
    configure_logging,
)

from .diagnostics import (
    ConsoleDiagnosticListener,
    DiagnosticListener,
    HubDiagnostics,
    HubEvent,
    HubEventType,
)

from .errors import (
    ConfigError,
    DuplicateExportError,
    ExportHubError,
    ImportDeclarationError,
    InjectorClosedError,
    InvalidExportError,
)

from .default import (
    add_export,
    create_injector,
    get_all,
    get_first,
    get_injector,
    has_export,
    import_into,
    remove_export,
    reset_injector,
    set_injector,
    subscribe,
    unsubscribe,
)

__all__ = [
    # Core
    "Injector",

    # Records
    "Export",
    "ImportShape",
    "ImportSlot",
    "Subscription",

    # Metadata
    "Import",
    "export",
    "imports",
    "discover_slots",
    "make_slot",
    "parse_shape",

    # Bootstrap
    "Bootstrapper",
    "ResourceLoader",
    "ServiceMeta",
    "ServiceTable",
    "default_table",
    "service",

    # Config
    "ConfigLoader",
    "DuplicatePolicy",
    "HubConfig",
    "configure_logging",

    # Diagnostics
    "ConsoleDiagnosticListener",
    "DiagnosticListener",
    "HubDiagnostics",
    "HubEvent",
    "HubEventType",

    # Errors
    "ConfigError",
    "DuplicateExportError",
    "ExportHubError",
    "ImportDeclarationError",
    "InjectorClosedError",
    "InvalidExportError",

    # Default injector
    "add_export",
    "create_injector",
    "get_all",
    "get_first",
    "get_injector",
    "has_export",
    "import_into",
    "remove_export",
    "reset_injector",
    "set_injector",
    "subscribe",
    "unsubscribe",
]
